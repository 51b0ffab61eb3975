"""The site request workflow engine.

Owns the request lifecycle: validation of the requested name, persistence,
the pending -> approved/rejected transitions and their side effects (site
provisioning, email). Front ends call these methods directly and render the
exceptions they raise.

Ordering rules:
- nothing is persisted when submission validation fails
- a transition is committed with a conditional update, never read-then-write
- the site is provisioned while the request is claimed, and the claim is
  released on every failure so the administrator can retry
- email is sent after the commit and can never undo or fail it
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from ..interfaces import (
    IdentityStore,
    Notifier,
    NotifyError,
    ProvisionError,
    SiteAlreadyExists,
    SiteProvisioner,
)
from ..naming import is_valid_site_name, normalize_site_name, site_domain, site_title
from ..store import RequestConflict, SiteRequestRecord, SiteRequestStore
from . import messages
from .errors import (
    DomainExists,
    EmptyName,
    InvalidFormat,
    NameTaken,
    NetworkUnavailable,
    NotFound,
    NotPending,
    ProvisionFailed,
    RequestExists,
    UnknownRequester,
)
from .state_machine import RequestStatus

logger = logging.getLogger(__name__)

SITE_PATH = "/"
OWNER_ROLE = "administrator"


class RequestWorkflowEngine:
    """Submit, approve, reject and list site requests."""

    def __init__(
        self,
        *,
        store: SiteRequestStore,
        identities: IdentityStore,
        provisioner: SiteProvisioner,
        notifier: Notifier,
        network_domain: str,
        admin_email: str = "",
        site_url_scheme: str = "https",
    ) -> None:
        if not network_domain.strip():
            raise ValueError("network_domain is required")
        self._store = store
        self._identities = identities
        self._provisioner = provisioner
        self._notifier = notifier
        self._network_domain = network_domain.strip()
        self._admin_email = admin_email.strip()
        self._site_url_scheme = site_url_scheme

    def submit_request(self, requester_id: int, requested_name: str) -> str:
        """Record a pending request and tell the network administrator.

        Returns:
            The new request id.

        Raises:
            EmptyName, UnknownRequester, InvalidFormat, NameTaken, RequestExists:
                the request was refused; nothing was stored.
            NetworkUnavailable: the identity store or provisioner could not
                answer; nothing was stored.
        """

        if not requested_name or not requested_name.strip():
            raise EmptyName()

        try:
            requester = self._identities.get_identity(requester_id)
        except LookupError as e:
            raise UnknownRequester(requester_id) from e
        except ProvisionError as e:
            raise self._unavailable(e) from e

        site_name = normalize_site_name(requested_name)
        if not is_valid_site_name(site_name):
            raise InvalidFormat(site_name)

        domain = site_domain(site_name, self._network_domain)
        try:
            taken = self._provisioner.domain_exists(domain, SITE_PATH)
        except ProvisionError as e:
            raise self._unavailable(e) from e
        if taken:
            raise NameTaken(site_name)

        try:
            record = self._store.create(
                requester_id=requester_id, requested_name=site_name, domain=domain
            )
        except RequestConflict as e:
            if e.reason == "requester":
                raise RequestExists(requester_id, e.existing.request_id) from e
            raise NameTaken(site_name) from e

        logger.info(
            "Site request submitted",
            extra={
                "request_id": record.request_id,
                "requester_id": requester_id,
                "site_name": site_name,
                "domain": domain,
            },
        )

        if self._admin_email:
            message = messages.request_received(requester=requester, site_name=site_name)
            self._notify(self._admin_email, message, request_id=record.request_id)
        else:
            logger.debug("No network admin email configured; skipping request notification")

        return record.request_id

    def approve(self, request_id: str, actor: str) -> int:
        """Provision the requested site and mark the request approved.

        The caller is responsible for checking that `actor` may administer the
        network.

        Returns:
            The id of the created site.

        Raises:
            NotFound, NotPending, DomainExists, ProvisionFailed
        """

        record = self.get_request(request_id)
        if record.status != RequestStatus.PENDING:
            raise NotPending(request_id, status=record.status)

        token = uuid.uuid4().hex
        if not self._store.claim_if_pending(request_id, token):
            raise self._not_pending(request_id)

        committed = False
        try:
            try:
                requester = self._identities.get_identity(record.requester_id)
            except LookupError as e:
                raise NotFound(request_id, what="user") from e
            except ProvisionError as e:
                raise ProvisionFailed(request_id, str(e)) from e

            domain = site_domain(record.requested_name, self._network_domain)
            site_id = self._provision(record, domain=domain)
            site_url = f"{self._site_url_scheme}://{domain}{SITE_PATH}"

            committed = self._store.update_status_if(
                request_id,
                RequestStatus.PENDING,
                RequestStatus.APPROVED,
                claim_token=token,
                domain=domain,
                site_id=site_id,
                site_url=site_url,
                decided_by=actor,
                decided_at=datetime.now(tz=UTC).isoformat(),
            )
            if not committed:
                # Only reachable if our claim expired mid-provisioning.
                logger.error(
                    "Site created but request could not be marked approved",
                    extra={"request_id": request_id, "site_id": site_id, "domain": domain},
                )
                raise self._not_pending(request_id)
        finally:
            if not committed:
                self._store.release_claim(request_id, token)

        logger.info(
            "Site request approved",
            extra={"request_id": request_id, "site_id": site_id, "domain": domain, "actor": actor},
        )
        message = messages.request_approved(requester=requester, site_url=site_url)
        self._notify(requester.email, message, request_id=request_id)
        return site_id

    def reject(self, request_id: str, actor: str) -> None:
        """Mark a pending request rejected and tell the requester.

        The requester's account is left alone; deleting it is a separate
        operation.

        Raises:
            NotFound, NotPending
        """

        record = self.get_request(request_id)
        if record.status != RequestStatus.PENDING:
            raise NotPending(request_id, status=record.status)

        applied = self._store.update_status_if(
            request_id,
            RequestStatus.PENDING,
            RequestStatus.REJECTED,
            decided_by=actor,
            decided_at=datetime.now(tz=UTC).isoformat(),
        )
        if not applied:
            raise self._not_pending(request_id)

        logger.info("Site request rejected", extra={"request_id": request_id, "actor": actor})

        try:
            requester = self._identities.get_identity(record.requester_id)
        except LookupError:
            logger.warning(
                "Requester no longer exists; skipping rejection email",
                extra={"request_id": request_id, "requester_id": record.requester_id},
            )
            return
        except ProvisionError:
            logger.warning(
                "Requester lookup failed; skipping rejection email",
                exc_info=True,
                extra={"request_id": request_id, "requester_id": record.requester_id},
            )
            return
        message = messages.request_rejected(requester=requester)
        self._notify(requester.email, message, request_id=request_id)

    def list_pending(self, limit: int | None = None) -> list[SiteRequestRecord]:
        """Pending requests, oldest first."""

        pending = self._store.list_by_status(RequestStatus.PENDING)
        if limit is not None:
            return pending[: max(limit, 0)]
        return pending

    def get_request(self, request_id: str) -> SiteRequestRecord:
        record = self._store.get(request_id)
        if record is None:
            raise NotFound(request_id)
        return record

    def _provision(self, record: SiteRequestRecord, *, domain: str) -> int:
        request_id = record.request_id
        try:
            # Re-check right before creating; the provisioner still has the last word.
            if self._provisioner.domain_exists(domain, SITE_PATH):
                raise DomainExists(request_id, domain)
            site_id = self._provisioner.create_site(
                domain=domain,
                path=SITE_PATH,
                title=site_title(record.requested_name),
                owner_id=record.requester_id,
            )
        except SiteAlreadyExists as e:
            raise DomainExists(request_id, domain) from e
        except ProvisionError as e:
            logger.error(
                "Site provisioning failed",
                extra={"request_id": request_id, "domain": domain, "error": str(e)},
            )
            raise ProvisionFailed(request_id, str(e)) from e

        try:
            self._provisioner.assign_owner(
                site_id=site_id, identity_id=record.requester_id, role=OWNER_ROLE
            )
        except ProvisionError:
            # The site already exists with the requester as owner.
            logger.warning(
                "Could not assign requester as site administrator",
                exc_info=True,
                extra={"request_id": request_id, "site_id": site_id},
            )
        return site_id

    def _unavailable(self, error: ProvisionError) -> NetworkUnavailable:
        logger.error("Network lookup failed during submission", extra={"error": str(error)})
        return NetworkUnavailable(str(error))

    def _not_pending(self, request_id: str) -> NotPending:
        current = self.get_request(request_id)
        return NotPending(
            request_id,
            status=current.status,
            in_progress=current.status == RequestStatus.PENDING,
        )

    def _notify(self, to_address: str, message: messages.EmailMessage, *, request_id: str) -> None:
        try:
            self._notifier.send(to_address=to_address, subject=message.subject, body=message.body)
        except NotifyError:
            logger.warning(
                "Notification failed",
                exc_info=True,
                extra={"request_id": request_id, "to": to_address, "subject": message.subject},
            )
        except Exception:
            logger.exception(
                "Notifier raised unexpectedly",
                extra={"request_id": request_id, "to": to_address, "subject": message.subject},
            )
