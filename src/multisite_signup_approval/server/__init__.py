"""FastAPI server adapter for multisite-signup-approval.

This module exposes a REST API over the workflow engine.

Design intent:
- Keep business logic in `multisite_signup_approval.approval.*`
- Keep server-specific concerns (routing, CORS, admin checks) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from multisite_signup_approval.server.app import create_app
