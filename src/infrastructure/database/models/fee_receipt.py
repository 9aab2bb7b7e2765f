# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fee receipt table."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, new_id, uuid_column


class FeeReceipt(Base, TimestampMixin):
    """A fee demand against a branch enrollment and the payment made on it."""

    __tablename__ = "fee_receipts"
    __table_args__ = (
        CheckConstraint("base_fee_amount > 0", name="valid_base_fee"),
        CheckConstraint("discount_amount <= base_fee_amount", name="valid_discount"),
        CheckConstraint("amount_paid <= total_amount", name="valid_amount_paid"),
        CheckConstraint("due_date >= receipt_date", name="valid_due_date"),
        Index("ix_fee_receipts_student_status", "student_id", "receipt_status"),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    receipt_number: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    student_id: Mapped[str] = uuid_column(nullable=False)
    branch_id: Mapped[str] = uuid_column(nullable=False)
    enrollment_id: Mapped[str] = uuid_column(
        ForeignKey("branch_students.id", ondelete="RESTRICT"), nullable=False
    )
    class_id: Mapped[Optional[str]] = uuid_column()

    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    fee_month: Mapped[Optional[int]] = mapped_column(Integer)
    fee_year: Mapped[Optional[int]] = mapped_column(Integer)
    fee_period_start: Mapped[Optional[date]] = mapped_column(Date)
    fee_period_end: Mapped[Optional[date]] = mapped_column(Date)

    base_fee_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    late_fee_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    payment_method: Mapped[Optional[str]] = mapped_column(String(20))
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100))
    payment_date: Mapped[Optional[date]] = mapped_column(Date)
    receipt_status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    description: Mapped[Optional[str]] = mapped_column(String(1000))
    internal_notes: Mapped[Optional[str]] = mapped_column(Text)
    is_auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_by: Mapped[Optional[str]] = uuid_column()

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500))
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[Optional[str]] = uuid_column()
