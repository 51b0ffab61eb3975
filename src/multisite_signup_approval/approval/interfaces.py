"""Collaborators the workflow engine calls but does not implement.

Concrete adapters live in `approval.local`, `approval.network` and
`approval.notifier`; tests substitute mocks built from these protocols.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class Identity:
    """Minimal user account metadata needed by the workflow."""

    id: int
    login: str
    email: str


class ProvisionError(Exception):
    """The site provisioner could not create or configure a site."""


class SiteAlreadyExists(ProvisionError):
    """The provisioner's own uniqueness check refused the domain."""

    def __init__(self, domain: str, path: str = "/") -> None:
        super().__init__(f"Site already exists: {domain}{path}")
        self.domain = domain
        self.path = path


class NotifyError(Exception):
    """An email could not be delivered."""


class IdentityStore(Protocol):
    def get_identity(self, identity_id: int) -> Identity:
        """Return the identity.

        Raises LookupError when it does not exist and ProvisionError when the
        backend cannot answer.
        """
        ...

    def identity_exists(self, identity_id: int) -> bool: ...


class SiteProvisioner(Protocol):
    def domain_exists(self, domain: str, path: str) -> bool: ...

    def create_site(self, *, domain: str, path: str, title: str, owner_id: int) -> int:
        """Create the site and return its id. Raises ProvisionError."""
        ...

    def assign_owner(self, *, site_id: int, identity_id: int, role: str) -> None: ...


class Notifier(Protocol):
    def send(self, *, to_address: str, subject: str, body: str) -> None:
        """Deliver a plain text email. Raises NotifyError."""
        ...
