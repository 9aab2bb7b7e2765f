# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Alembic environment (env.py) and revision scripts (versions/) for the
CoachLMS schema.
"""
