"""Multisite Signup Approval.

A small, local-first site request workflow for multisite networks:
- configuration loaded from `.env`
- structured logging
- request -> pending -> approve/reject, with site provisioning and email
"""

__version__ = "0.1.0"

from multisite_signup_approval.approval.config import ApprovalSettings

__all__ = ["__version__", "ApprovalSettings"]
