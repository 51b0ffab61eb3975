#!/usr/bin/env python3
"""Programmatic site request example.

This demonstrates using the workflow components directly:

* load settings from `.env` (NETWORK_DOMAIN is required)
* register a local user and submit a site request for them
* approve or reject it as an administrator

State is persisted under `APPROVAL_STATE_PATH` (default `approval_state/`).
"""

from __future__ import annotations

import argparse
from typing import Sequence

from multisite_signup_approval.approval.bootstrap import build_components
from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.local import LocalIdentityStore
from multisite_signup_approval.approval.logging import configure_logging
from multisite_signup_approval.approval.workflow.errors import ValidationError, WorkflowError


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Request a site (programmatic example).")
    parser.add_argument("--login", required=True, help="Login of the requesting user")
    parser.add_argument("--email", required=True, help="Email of the requesting user")
    parser.add_argument("--site-name", required=True, help="Desired site name")
    parser.add_argument(
        "--decision",
        choices=("approve", "reject", "none"),
        default="approve",
        help="What the administrator does with the request",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ApprovalSettings()
    configure_logging(settings.log_level)

    identities = LocalIdentityStore(settings.identities_state_file)
    user = identities.add_identity(login=args.login, email=args.email)

    engine = build_components(settings).engine

    try:
        request_id = engine.submit_request(user.id, args.site_name)
    except ValidationError as exc:
        print(f"Request refused: {exc.message}")
        return 1

    print(f"Submitted request {request_id}")

    try:
        if args.decision == "approve":
            site_id = engine.approve(request_id, "example-admin")
            print(f"Approved; site #{site_id} at {engine.get_request(request_id).site_url}")
        elif args.decision == "reject":
            engine.reject(request_id, "example-admin")
            print("Rejected")
    except WorkflowError as exc:
        print(f"Decision failed: {exc.message}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
