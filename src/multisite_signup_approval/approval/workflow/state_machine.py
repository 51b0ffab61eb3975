from __future__ import annotations

from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Approved and rejected are terminal: re-requesting is not supported.
ALLOWED_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.APPROVED, RequestStatus.REJECTED},
    RequestStatus.APPROVED: set(),
    RequestStatus.REJECTED: set(),
}


class IllegalTransitionError(ValueError):
    pass


def is_terminal(status: RequestStatus) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


def check_transition(*, current: RequestStatus, to: RequestStatus) -> RequestStatus:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to
