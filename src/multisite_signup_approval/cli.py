"""Console script entrypoint (`msa`).

The CLI is implemented in `multisite_signup_approval.approval.main`.
"""

from __future__ import annotations

from multisite_signup_approval.approval.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
