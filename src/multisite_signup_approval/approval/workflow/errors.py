"""Errors surfaced by the request workflow.

Two families reach the caller:

- :class:`ValidationError` - bad input on submission, shown to the submitter.
- :class:`WorkflowError` - a refused administrator action or an unreachable
  backend. :class:`NetworkUnavailable` can also reach the submitter.

Collaborator failures have their own types (`ProvisionError`, `NotifyError`)
in :mod:`multisite_signup_approval.approval.interfaces`.

Every error carries a stable `code` that front ends use to pick a message or
an HTTP status.
"""

from __future__ import annotations

from .state_machine import RequestStatus


class ValidationError(Exception):
    """A site request was refused before anything was persisted."""

    code = "invalid_request"

    def __init__(self, message: str, *, requested_name: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.requested_name = requested_name


class EmptyName(ValidationError):
    code = "empty_name"

    def __init__(self) -> None:
        super().__init__("Please choose a site name.")


class InvalidFormat(ValidationError):
    code = "invalid_format"

    def __init__(self, requested_name: str) -> None:
        super().__init__(
            "Site name may only contain lowercase letters, numbers, and hyphens.",
            requested_name=requested_name,
        )


class NameTaken(ValidationError):
    code = "name_taken"

    def __init__(self, requested_name: str) -> None:
        super().__init__("That site name is already taken.", requested_name=requested_name)


class RequestExists(ValidationError):
    code = "request_exists"

    def __init__(self, requester_id: int, existing_request_id: str) -> None:
        super().__init__("You have already requested a site.")
        self.requester_id = requester_id
        self.existing_request_id = existing_request_id


class UnknownRequester(ValidationError):
    code = "unknown_requester"

    def __init__(self, requester_id: int) -> None:
        super().__init__(f"Unknown user: {requester_id}")
        self.requester_id = requester_id


class WorkflowError(Exception):
    """An administrator action could not be applied."""

    code = "workflow_error"

    def __init__(self, message: str, *, request_id: str) -> None:
        super().__init__(message)
        self.message = message
        self.request_id = request_id


class NotFound(WorkflowError):
    code = "not_found"

    def __init__(self, request_id: str, *, what: str = "request") -> None:
        super().__init__(f"Invalid user or request: {what} not found", request_id=request_id)


class NotPending(WorkflowError):
    """The request already left (or is leaving) the pending state.

    `status` is what was observed; `in_progress` is set when the request is
    still pending but another approval holds it.
    """

    code = "not_pending"

    def __init__(
        self, request_id: str, *, status: RequestStatus, in_progress: bool = False
    ) -> None:
        if in_progress:
            message = "This request is already being approved."
        else:
            message = f"This request has already been {status.value}."
        super().__init__(message, request_id=request_id)
        self.status = status
        self.in_progress = in_progress


class DomainExists(WorkflowError):
    code = "domain_exists"

    def __init__(self, request_id: str, domain: str) -> None:
        super().__init__("A site with that domain already exists.", request_id=request_id)
        self.domain = domain


class ProvisionFailed(WorkflowError):
    code = "create_failed"

    def __init__(self, request_id: str, reason: str) -> None:
        super().__init__(
            "Failed to create the site. Please check server logs.", request_id=request_id
        )
        self.reason = reason


class NetworkUnavailable(WorkflowError):
    """The identity store or provisioner could not answer a lookup.

    Raised on submission, where there is no request yet, so `request_id` is
    empty there.
    """

    code = "network_unavailable"

    def __init__(self, reason: str, *, request_id: str = "") -> None:
        super().__init__(
            "The network could not be reached. Please try again later.", request_id=request_id
        )
        self.reason = reason
