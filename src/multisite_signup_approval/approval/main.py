"""CLI entrypoint for the site request workflow.

Administrator and submitter actions over the local state: submit, approve,
reject, list and inspect requests, plus local identity management.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError as SettingsError

from multisite_signup_approval import __version__
from multisite_signup_approval.approval.bootstrap import build_components
from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.local import LocalIdentityStore
from multisite_signup_approval.approval.logging import configure_logging
from multisite_signup_approval.approval.state_files import CorruptStateError
from multisite_signup_approval.approval.store import SiteRequestRecord
from multisite_signup_approval.approval.workflow.errors import ValidationError, WorkflowError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="msa",
        description="Multisite signup approval: request, approve and reject network sites",
    )
    parser.add_argument(
        "--version", action="version", version=f"multisite-signup-approval {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Submit a site request for a user")
    submit.add_argument("--user-id", type=int, required=True, help="Requesting user id")
    submit.add_argument(
        "--site-name", required=True, help="Desired site name (becomes the subdomain)"
    )

    for name, help_text in (
        ("approve", "Approve a pending request and create the site"),
        ("reject", "Reject a pending request"),
    ):
        action = subparsers.add_parser(name, help=help_text)
        action.add_argument("--request-id", required=True, help="Request id")
        action.add_argument(
            "--actor",
            default="cli",
            help="Administrator recorded as the decision maker",
        )

    list_pending = subparsers.add_parser("list-pending", help="List pending requests")
    list_pending.add_argument("--limit", type=int, default=200, help="Maximum rows to show")
    list_pending.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    show = subparsers.add_parser("show", help="Show a single request as JSON")
    show.add_argument("--request-id", required=True, help="Request id")

    add_identity = subparsers.add_parser(
        "add-identity", help="Register a local user (local backend only)"
    )
    add_identity.add_argument("--login", required=True, help="User login")
    add_identity.add_argument("--email", required=True, help="User email address")

    delete_identity = subparsers.add_parser(
        "delete-identity",
        help="Delete a local user account (local backend only). Requests are kept.",
    )
    delete_identity.add_argument("--user-id", type=int, required=True, help="User id")

    return parser


def _format_row(record: SiteRequestRecord) -> str:
    return (
        f"{record.request_id}  user={record.requester_id}  "
        f"{record.requested_name}  {record.domain}  {record.created_at}"
    )


def _local_identities(settings: ApprovalSettings) -> LocalIdentityStore | None:
    if settings.backend != "local":
        print("This command only works with APPROVAL_BACKEND=local", file=sys.stderr)
        return None
    return LocalIdentityStore(settings.identities_state_file)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ApprovalSettings()
    except SettingsError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command in {"add-identity", "delete-identity"}:
            identities = _local_identities(settings)
            if identities is None:
                return 2
            if args.command == "add-identity":
                try:
                    identity = identities.add_identity(login=args.login, email=args.email)
                except ValueError as e:
                    print(f"Error: {e}", file=sys.stderr)
                    return 3
                print(f"Registered user #{identity.id} {identity.login} <{identity.email}>")
                return 0
            if identities.delete_identity(args.user_id):
                print(f"Deleted user #{args.user_id}")
                return 0
            print(f"User #{args.user_id} not found", file=sys.stderr)
            return 4

        engine = build_components(settings).engine

        if args.command == "submit":
            request_id = engine.submit_request(args.user_id, args.site_name)
            print(f"Submitted request {request_id}")
            return 0

        if args.command == "approve":
            site_id = engine.approve(args.request_id, args.actor)
            record = engine.get_request(args.request_id)
            print(f"Site request approved and site created: #{site_id} {record.site_url}")
            return 0

        if args.command == "reject":
            engine.reject(args.request_id, args.actor)
            print("Site request rejected.")
            return 0

        if args.command == "list-pending":
            pending = engine.list_pending(limit=args.limit)
            if args.json:
                print(json.dumps([r.model_dump(mode="json") for r in pending], indent=2))
                return 0
            if not pending:
                print("No pending requests.")
                return 0
            for record in pending:
                print(_format_row(record))
            return 0

        if args.command == "show":
            record = engine.get_request(args.request_id)
            print(json.dumps(record.model_dump(mode="json"), indent=2))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except ValidationError as e:
        logger.warning(e.message, extra={"code": e.code})
        print(f"Error: {e.message}", file=sys.stderr)
        return 3

    except WorkflowError as e:
        logger.warning(e.message, extra={"code": e.code, "request_id": e.request_id})
        print(f"Error: {e.message}", file=sys.stderr)
        return 4

    except CorruptStateError as e:
        logger.error("State file is corrupt; refusing to continue", extra={"path": str(e.path)})
        print(f"Error: {e}", file=sys.stderr)
        return 5

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
