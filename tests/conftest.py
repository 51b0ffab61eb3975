"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.interfaces import Identity
from multisite_signup_approval.approval.local import LocalIdentityStore, LocalSiteDirectory
from multisite_signup_approval.approval.notifier import LogNotifier
from multisite_signup_approval.approval.store import SiteRequestStore
from multisite_signup_approval.approval.workflow.engine import RequestWorkflowEngine

NETWORK_DOMAIN = "www.example.org"
ADMIN_EMAIL = "network-admin@example.org"


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """The CLI reconfigures root logging; undo that after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Provide a temporary state directory."""
    path = tmp_path / "approval_state"
    path.mkdir()
    return path


@pytest.fixture
def settings(state_dir: Path) -> ApprovalSettings:
    """Provide test settings that ignore any local .env file."""
    return ApprovalSettings(
        _env_file=None,
        NETWORK_DOMAIN=NETWORK_DOMAIN,
        NETWORK_ADMIN_EMAIL=ADMIN_EMAIL,
        APPROVAL_STATE_PATH=state_dir,
        APPROVAL_ADMIN_TOKEN="admin-secret",
    )


@pytest.fixture
def store(state_dir: Path) -> SiteRequestStore:
    return SiteRequestStore(state_dir / "requests.json")


@pytest.fixture
def identities(state_dir: Path) -> LocalIdentityStore:
    return LocalIdentityStore(state_dir / "identities.json")


@pytest.fixture
def sites(state_dir: Path) -> LocalSiteDirectory:
    return LocalSiteDirectory(state_dir / "sites.json")


@pytest.fixture
def notifier() -> LogNotifier:
    return LogNotifier()


@pytest.fixture
def alice(identities: LocalIdentityStore) -> Identity:
    return identities.add_identity(login="alice", email="alice@example.com")


@pytest.fixture
def bob(identities: LocalIdentityStore) -> Identity:
    return identities.add_identity(login="bob", email="bob@example.com")


@pytest.fixture
def engine(
    store: SiteRequestStore,
    identities: LocalIdentityStore,
    sites: LocalSiteDirectory,
    notifier: LogNotifier,
) -> RequestWorkflowEngine:
    return RequestWorkflowEngine(
        store=store,
        identities=identities,
        provisioner=sites,
        notifier=notifier,
        network_domain=NETWORK_DOMAIN,
        admin_email=ADMIN_EMAIL,
    )
