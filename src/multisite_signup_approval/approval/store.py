"""JSON-file backed persistence for site requests.

All reads and writes go through one lock, so every method below is atomic
with respect to the others within a process. Writes replace the file whole
(see :mod:`multisite_signup_approval.approval.state_files`), and a corrupt file
is refused with `CorruptStateError` rather than read as empty.

The status transition itself is only exposed as a conditional update
(:meth:`SiteRequestStore.update_status_if`): callers never read a status and
write a new one in two steps.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, Field

from multisite_signup_approval.approval.state_files import load_json_list, save_json_list
from multisite_signup_approval.approval.workflow.state_machine import (
    RequestStatus,
    check_transition,
)


class SiteRequestRecord(BaseModel):
    """Persisted representation of a site request."""

    request_id: str
    requester_id: int
    requested_name: str
    domain: str
    status: RequestStatus = Field(default=RequestStatus.PENDING)
    created_at: str
    updated_at: str

    decided_at: str | None = Field(default=None)
    decided_by: str | None = Field(default=None)
    site_id: int | None = Field(default=None)
    site_url: str | None = Field(default=None)

    # Set while an approval is provisioning the site.
    claim_token: str | None = Field(default=None)
    claimed_at: str | None = Field(default=None)


@dataclass(frozen=True, slots=True)
class RequestConflict(Exception):
    """Raised by :meth:`SiteRequestStore.create` when uniqueness would break."""

    reason: str  # "requester" or "name"
    existing: SiteRequestRecord

    def __str__(self) -> str:
        return (
            f"Conflicting site request ({self.reason}): "
            f"{self.existing.request_id} {self.existing.requested_name!r}"
        )


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SiteRequestStore:
    path: Path
    claim_ttl_seconds: float = 300.0
    clock: Callable[[], datetime] = field(default=_utc_now)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[SiteRequestRecord]:
        return [SiteRequestRecord.model_validate(item) for item in load_json_list(self.path)]

    def _save_unlocked(self, records: list[SiteRequestRecord]) -> None:
        save_json_list(self.path, records)

    def _claim_is_live(self, record: SiteRequestRecord, now: datetime) -> bool:
        if record.claim_token is None or record.claimed_at is None:
            return False
        try:
            claimed_at = datetime.fromisoformat(record.claimed_at)
        except ValueError:
            return False
        return now - claimed_at < timedelta(seconds=self.claim_ttl_seconds)

    def list(self) -> list[SiteRequestRecord]:
        with self._lock:
            return self._load_unlocked()

    def get(self, request_id: str) -> SiteRequestRecord | None:
        with self._lock:
            for record in self._load_unlocked():
                if record.request_id == request_id:
                    return record
            return None

    def find_by_requester(self, requester_id: int) -> SiteRequestRecord | None:
        with self._lock:
            for record in self._load_unlocked():
                if record.requester_id == requester_id:
                    return record
            return None

    def find_pending_by_name(self, requested_name: str) -> SiteRequestRecord | None:
        with self._lock:
            for record in self._load_unlocked():
                if (
                    record.status == RequestStatus.PENDING
                    and record.requested_name == requested_name
                ):
                    return record
            return None

    def list_by_status(self, status: RequestStatus) -> list[SiteRequestRecord]:
        """Records with `status`, oldest first (ties keep insertion order)."""

        with self._lock:
            matching = [r for r in self._load_unlocked() if r.status == status]
        return sorted(matching, key=lambda r: r.created_at)

    def create(self, *, requester_id: int, requested_name: str, domain: str) -> SiteRequestRecord:
        """Persist a new pending request.

        Raises:
            RequestConflict: the requester already has a request, or another
                pending request holds the same name.
        """

        with self._lock:
            records = self._load_unlocked()
            for existing in records:
                if existing.requester_id == requester_id:
                    raise RequestConflict(reason="requester", existing=existing)
                if (
                    existing.status == RequestStatus.PENDING
                    and existing.requested_name == requested_name
                ):
                    raise RequestConflict(reason="name", existing=existing)

            now = self.clock().isoformat()
            record = SiteRequestRecord(
                request_id=uuid.uuid4().hex,
                requester_id=requester_id,
                requested_name=requested_name,
                domain=domain,
                status=RequestStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            records.append(record)
            self._save_unlocked(records)
            return record

    def claim_if_pending(self, request_id: str, token: str) -> bool:
        """Reserve a pending request for one in-flight approval.

        Returns False if the request is not pending or another live claim
        holds it. Raises KeyError for unknown ids.
        """

        with self._lock:
            records = self._load_unlocked()
            now = self.clock()
            for idx, record in enumerate(records):
                if record.request_id != request_id:
                    continue
                if record.status != RequestStatus.PENDING:
                    return False
                if self._claim_is_live(record, now) and record.claim_token != token:
                    return False
                records[idx] = record.model_copy(
                    update={"claim_token": token, "claimed_at": now.isoformat()}
                )
                self._save_unlocked(records)
                return True
            raise KeyError(request_id)

    def release_claim(self, request_id: str, token: str) -> None:
        with self._lock:
            records = self._load_unlocked()
            for idx, record in enumerate(records):
                if record.request_id != request_id or record.claim_token != token:
                    continue
                records[idx] = record.model_copy(update={"claim_token": None, "claimed_at": None})
                self._save_unlocked(records)
                return

    def update_status_if(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        *,
        claim_token: str | None = None,
        **updates: object,
    ) -> bool:
        """Apply `new_status` only if the stored status is still `expected_status`.

        A live claim held by someone other than `claim_token` also fails the
        precondition. On success the claim is cleared and `updates` are merged
        into the record.

        Returns:
            True if the update was applied, False if the precondition failed.

        Raises:
            KeyError: unknown request id.
            IllegalTransitionError: `expected_status -> new_status` is not a
                legal transition.
        """

        check_transition(current=expected_status, to=new_status)
        with self._lock:
            records = self._load_unlocked()
            now = self.clock()
            for idx, record in enumerate(records):
                if record.request_id != request_id:
                    continue
                if record.status != expected_status:
                    return False
                if self._claim_is_live(record, now) and record.claim_token != claim_token:
                    return False
                records[idx] = record.model_copy(
                    update={
                        **updates,
                        "status": new_status,
                        "updated_at": now.isoformat(),
                        "claim_token": None,
                        "claimed_at": None,
                    }
                )
                self._save_unlocked(records)
                return True
            raise KeyError(request_id)
