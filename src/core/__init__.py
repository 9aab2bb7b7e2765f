# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for CoachLMS.

This package contains application-wide plumbing:
- config: Application configuration and settings
- context: Per-session actor, clock and cache wiring
"""
