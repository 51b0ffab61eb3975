"""Unit tests for site request persistence and the conditional update."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from multisite_signup_approval.approval.state_files import CorruptStateError
from multisite_signup_approval.approval.store import RequestConflict, SiteRequestStore
from multisite_signup_approval.approval.workflow.state_machine import (
    IllegalTransitionError,
    RequestStatus,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _create(store: SiteRequestStore, requester_id: int = 1, name: str = "garden") -> str:
    record = store.create(
        requester_id=requester_id, requested_name=name, domain=f"{name}.example.org"
    )
    return record.request_id


def test_store_roundtrip(tmp_path: Path) -> None:
    clock = FakeClock()
    path = tmp_path / "approval_state" / "requests.json"
    store = SiteRequestStore(path, clock=clock)
    assert store.list() == []

    request_id = _create(store)

    reloaded = SiteRequestStore(path).get(request_id)
    assert reloaded is not None
    assert reloaded.status == RequestStatus.PENDING
    assert reloaded.requested_name == "garden"
    assert reloaded.domain == "garden.example.org"
    assert reloaded.created_at == "2025-01-01T00:00:00+00:00"
    assert reloaded.claim_token is None


def test_corrupt_state_file_is_refused_not_overwritten(tmp_path: Path) -> None:
    path = tmp_path / "requests.json"
    store = SiteRequestStore(path)
    request_id = _create(store, requester_id=1)
    assert store.update_status_if(request_id, RequestStatus.PENDING, RequestStatus.APPROVED)

    # A write cut short leaves a truncated file behind.
    truncated = path.read_text(encoding="utf-8")[:40]
    path.write_text(truncated, encoding="utf-8")

    with pytest.raises(CorruptStateError):
        _create(store, requester_id=1)
    with pytest.raises(CorruptStateError):
        store.list()
    assert path.read_text(encoding="utf-8") == truncated


@pytest.mark.parametrize("content", ['{"unexpected": "object"}', "[1, 2]"])
def test_state_file_with_unexpected_shape_is_refused(tmp_path: Path, content: str) -> None:
    path = tmp_path / "requests.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(CorruptStateError):
        SiteRequestStore(path).list()


def test_failed_write_keeps_previous_state(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "requests.json"
    store = SiteRequestStore(path)
    first = _create(store, requester_id=1, name="garden")
    before = path.read_text(encoding="utf-8")

    def fail_replace(src: object, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail_replace)
    with pytest.raises(OSError):
        _create(store, requester_id=2, name="orchard")
    monkeypatch.undo()

    assert path.read_text(encoding="utf-8") == before
    assert [r.request_id for r in store.list()] == [first]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["requests.json"]


def test_create_enforces_one_request_per_requester(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    first = _create(store, requester_id=1, name="garden")

    with pytest.raises(RequestConflict) as excinfo:
        _create(store, requester_id=1, name="orchard")

    assert excinfo.value.reason == "requester"
    assert excinfo.value.existing.request_id == first
    assert len(store.list()) == 1


def test_create_enforces_unique_pending_names(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    first = _create(store, requester_id=1, name="garden")

    with pytest.raises(RequestConflict) as excinfo:
        _create(store, requester_id=2, name="garden")
    assert excinfo.value.reason == "name"

    # Once the first request is decided the name is free to request again.
    assert store.update_status_if(first, RequestStatus.PENDING, RequestStatus.REJECTED)
    _create(store, requester_id=2, name="garden")


def test_update_status_if_applies_once(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    request_id = _create(store)

    assert store.update_status_if(
        request_id, RequestStatus.PENDING, RequestStatus.APPROVED, decided_by="root", site_id=5
    )
    assert not store.update_status_if(request_id, RequestStatus.PENDING, RequestStatus.APPROVED)
    assert not store.update_status_if(request_id, RequestStatus.PENDING, RequestStatus.REJECTED)

    record = store.get(request_id)
    assert record is not None
    assert record.status == RequestStatus.APPROVED
    assert record.decided_by == "root"
    assert record.site_id == 5


def test_update_status_if_refuses_illegal_transitions(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    request_id = _create(store)

    with pytest.raises(IllegalTransitionError):
        store.update_status_if(request_id, RequestStatus.APPROVED, RequestStatus.PENDING)


def test_update_status_if_unknown_request(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    with pytest.raises(KeyError):
        store.update_status_if("missing", RequestStatus.PENDING, RequestStatus.REJECTED)


def test_claim_blocks_other_transitions_until_released(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    request_id = _create(store)

    assert store.claim_if_pending(request_id, "token-a")
    assert not store.claim_if_pending(request_id, "token-b")
    assert not store.update_status_if(request_id, RequestStatus.PENDING, RequestStatus.REJECTED)

    store.release_claim(request_id, "token-b")  # not the holder; no effect
    assert not store.claim_if_pending(request_id, "token-b")

    store.release_claim(request_id, "token-a")
    assert store.update_status_if(request_id, RequestStatus.PENDING, RequestStatus.REJECTED)


def test_claim_holder_commits_and_claim_is_cleared(tmp_path: Path) -> None:
    store = SiteRequestStore(tmp_path / "requests.json")
    request_id = _create(store)

    assert store.claim_if_pending(request_id, "token-a")
    assert store.update_status_if(
        request_id, RequestStatus.PENDING, RequestStatus.APPROVED, claim_token="token-a"
    )

    record = store.get(request_id)
    assert record is not None
    assert record.claim_token is None
    assert record.claimed_at is None
    assert not store.claim_if_pending(request_id, "token-b")


def test_abandoned_claims_expire(tmp_path: Path) -> None:
    clock = FakeClock()
    store = SiteRequestStore(tmp_path / "requests.json", claim_ttl_seconds=60, clock=clock)
    request_id = _create(store)

    assert store.claim_if_pending(request_id, "token-a")
    clock.advance(30)
    assert not store.claim_if_pending(request_id, "token-b")

    clock.advance(31)
    assert store.claim_if_pending(request_id, "token-b")
    # The expired holder can no longer commit.
    assert not store.update_status_if(
        request_id, RequestStatus.PENDING, RequestStatus.APPROVED, claim_token="token-a"
    )


def test_list_by_status_orders_by_creation(tmp_path: Path) -> None:
    clock = FakeClock()
    store = SiteRequestStore(tmp_path / "requests.json", clock=clock)

    ids = []
    for i in range(3):
        ids.append(_create(store, requester_id=i + 1, name=f"site-{i}"))
        clock.advance(1)

    store.update_status_if(ids[1], RequestStatus.PENDING, RequestStatus.APPROVED)

    pending = store.list_by_status(RequestStatus.PENDING)
    assert [r.request_id for r in pending] == [ids[0], ids[2]]
    assert [r.request_id for r in store.list_by_status(RequestStatus.APPROVED)] == [ids[1]]
