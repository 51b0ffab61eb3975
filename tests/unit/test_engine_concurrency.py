"""Concurrent administrator actions on the same request."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from multisite_signup_approval.approval.interfaces import Identity
from multisite_signup_approval.approval.local import LocalSiteDirectory
from multisite_signup_approval.approval.workflow.engine import RequestWorkflowEngine
from multisite_signup_approval.approval.workflow.errors import NotPending, WorkflowError
from multisite_signup_approval.approval.workflow.state_machine import RequestStatus


class BlockingSiteDirectory(LocalSiteDirectory):
    """Pauses inside create_site until the test lets it continue."""

    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.entered = threading.Event()
        self.release = threading.Event()

    def create_site(self, *, domain: str, path: str, title: str, owner_id: int) -> int:
        self.entered.set()
        assert self.release.wait(timeout=5), "test never released the provisioner"
        return super().create_site(domain=domain, path=path, title=title, owner_id=owner_id)


@pytest.fixture
def blocking_sites(state_dir: Path) -> BlockingSiteDirectory:
    return BlockingSiteDirectory(state_dir / "sites.json")


@pytest.fixture
def blocking_engine(
    engine: RequestWorkflowEngine, blocking_sites: BlockingSiteDirectory
) -> RequestWorkflowEngine:
    engine._provisioner = blocking_sites
    return engine


def _approve_in_thread(
    engine: RequestWorkflowEngine, request_id: str, results: list[object]
) -> threading.Thread:
    def run() -> None:
        try:
            results.append(engine.approve(request_id, "first-admin"))
        except WorkflowError as e:
            results.append(e)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


def test_second_approval_during_provisioning_observes_not_pending(
    blocking_engine: RequestWorkflowEngine,
    blocking_sites: BlockingSiteDirectory,
    alice: Identity,
) -> None:
    request_id = blocking_engine.submit_request(alice.id, "garden")

    results: list[object] = []
    thread = _approve_in_thread(blocking_engine, request_id, results)
    assert blocking_sites.entered.wait(timeout=5)

    with pytest.raises(NotPending) as excinfo:
        blocking_engine.approve(request_id, "second-admin")
    assert excinfo.value.in_progress is True

    blocking_sites.release.set()
    thread.join(timeout=5)

    assert len(results) == 1
    assert isinstance(results[0], int)
    assert len(blocking_sites.list()) == 1
    record = blocking_engine.get_request(request_id)
    assert record.status == RequestStatus.APPROVED
    assert record.decided_by == "first-admin"


def test_rejection_during_provisioning_is_refused(
    blocking_engine: RequestWorkflowEngine,
    blocking_sites: BlockingSiteDirectory,
    alice: Identity,
) -> None:
    request_id = blocking_engine.submit_request(alice.id, "garden")

    results: list[object] = []
    thread = _approve_in_thread(blocking_engine, request_id, results)
    assert blocking_sites.entered.wait(timeout=5)

    with pytest.raises(NotPending) as excinfo:
        blocking_engine.reject(request_id, "second-admin")
    assert excinfo.value.in_progress is True

    blocking_sites.release.set()
    thread.join(timeout=5)

    assert blocking_engine.get_request(request_id).status == RequestStatus.APPROVED


def test_racing_approvals_create_exactly_one_site(
    engine: RequestWorkflowEngine, sites: LocalSiteDirectory, alice: Identity
) -> None:
    request_id = engine.submit_request(alice.id, "garden")

    barrier = threading.Barrier(4)
    results: list[object] = []
    lock = threading.Lock()

    def run() -> None:
        barrier.wait(timeout=5)
        try:
            outcome: object = engine.approve(request_id, "admin")
        except WorkflowError as e:
            outcome = e
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=run, daemon=True) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    successes = [r for r in results if isinstance(r, int)]
    failures = [r for r in results if isinstance(r, NotPending)]
    assert len(successes) == 1
    assert len(failures) == 3
    assert len(sites.list()) == 1
