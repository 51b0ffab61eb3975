"""Build the workflow engine and its collaborators from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.interfaces import IdentityStore, Notifier, SiteProvisioner
from multisite_signup_approval.approval.local import LocalIdentityStore, LocalSiteDirectory
from multisite_signup_approval.approval.network.client import NetworkApiClient
from multisite_signup_approval.approval.notifier import NotifierFactory
from multisite_signup_approval.approval.store import SiteRequestStore
from multisite_signup_approval.approval.workflow.engine import RequestWorkflowEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Components:
    engine: RequestWorkflowEngine
    store: SiteRequestStore
    identities: IdentityStore
    provisioner: SiteProvisioner
    notifier: Notifier


def build_components(
    settings: ApprovalSettings, *, notifier: Notifier | None = None
) -> Components:
    store = SiteRequestStore(
        settings.requests_state_file, claim_ttl_seconds=settings.claim_ttl_seconds
    )

    identities: IdentityStore
    provisioner: SiteProvisioner
    if settings.backend == "network":
        client = NetworkApiClient(
            base_url=settings.network_api_url, token=settings.network_api_token
        )
        identities = client
        provisioner = client
    else:
        identities = LocalIdentityStore(settings.identities_state_file)
        provisioner = LocalSiteDirectory(settings.sites_state_file)

    notifier = notifier or NotifierFactory.create(settings)

    engine = RequestWorkflowEngine(
        store=store,
        identities=identities,
        provisioner=provisioner,
        notifier=notifier,
        network_domain=settings.network_domain,
        admin_email=settings.network_admin_email,
        site_url_scheme=settings.site_url_scheme,
    )
    logger.debug(
        "Workflow engine ready",
        extra={"backend": settings.backend, "state_path": str(settings.approval_state_path)},
    )
    return Components(
        engine=engine,
        store=store,
        identities=identities,
        provisioner=provisioner,
        notifier=notifier,
    )
