"""Local-first identity store and site provisioner.

These keep identities and sites in JSON files next to the request state, so the
workflow can run end-to-end without a live network. They enforce the same
uniqueness a real network would: one site per (domain, path).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from multisite_signup_approval.approval.interfaces import (
    Identity,
    ProvisionError,
    SiteAlreadyExists,
)
from multisite_signup_approval.approval.state_files import load_json_list, save_json_list

logger = logging.getLogger(__name__)


class IdentityRecord(BaseModel):
    id: int
    login: str
    email: str
    created_at: str


class SiteMember(BaseModel):
    identity_id: int
    role: str


class SiteRecord(BaseModel):
    site_id: int
    domain: str
    path: str = Field(default="/")
    title: str
    owner_id: int
    created_at: str
    members: list[SiteMember] = Field(default_factory=list)


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


@dataclass
class LocalIdentityStore:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[IdentityRecord]:
        return [IdentityRecord.model_validate(item) for item in load_json_list(self.path)]

    def list(self) -> list[IdentityRecord]:
        with self._lock:
            return self._load_unlocked()

    def add_identity(self, *, login: str, email: str) -> Identity:
        login = login.strip()
        email = email.strip()
        if not login:
            raise ValueError("login is required")
        if "@" not in email:
            raise ValueError(f"Invalid email address: {email!r}")

        with self._lock:
            records = self._load_unlocked()
            for existing in records:
                if existing.login == login:
                    raise ValueError(f"Login already registered: {login}")
            next_id = max((r.id for r in records), default=0) + 1
            record = IdentityRecord(id=next_id, login=login, email=email, created_at=_utc_iso_now())
            records.append(record)
            save_json_list(self.path, records)

        logger.info("Identity registered", extra={"identity_id": next_id, "login": login})
        return Identity(id=record.id, login=record.login, email=record.email)

    def get_identity(self, identity_id: int) -> Identity:
        with self._lock:
            for record in self._load_unlocked():
                if record.id == identity_id:
                    return Identity(id=record.id, login=record.login, email=record.email)
        raise LookupError(f"Identity not found: {identity_id}")

    def identity_exists(self, identity_id: int) -> bool:
        with self._lock:
            return any(r.id == identity_id for r in self._load_unlocked())

    def delete_identity(self, identity_id: int) -> bool:
        """Remove an account. Returns False when it did not exist."""

        with self._lock:
            records = self._load_unlocked()
            remaining = [r for r in records if r.id != identity_id]
            if len(remaining) == len(records):
                return False
            save_json_list(self.path, remaining)

        logger.info("Identity deleted", extra={"identity_id": identity_id})
        return True


@dataclass
class LocalSiteDirectory:
    """A file-backed stand-in for the network's site table."""

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[SiteRecord]:
        return [SiteRecord.model_validate(item) for item in load_json_list(self.path)]

    def list(self) -> list[SiteRecord]:
        with self._lock:
            return self._load_unlocked()

    def domain_exists(self, domain: str, path: str) -> bool:
        domain = domain.lower()
        with self._lock:
            return any(s.domain == domain and s.path == path for s in self._load_unlocked())

    def create_site(self, *, domain: str, path: str, title: str, owner_id: int) -> int:
        domain = domain.lower()
        with self._lock:
            sites = self._load_unlocked()
            if any(s.domain == domain and s.path == path for s in sites):
                raise SiteAlreadyExists(domain, path)
            site_id = max((s.site_id for s in sites), default=1) + 1
            sites.append(
                SiteRecord(
                    site_id=site_id,
                    domain=domain,
                    path=path,
                    title=title,
                    owner_id=owner_id,
                    created_at=_utc_iso_now(),
                )
            )
            save_json_list(self.path, sites)

        logger.info("Site created", extra={"site_id": site_id, "domain": domain, "path": path})
        return site_id

    def assign_owner(self, *, site_id: int, identity_id: int, role: str) -> None:
        with self._lock:
            sites = self._load_unlocked()
            for idx, site in enumerate(sites):
                if site.site_id != site_id:
                    continue
                members = [m for m in site.members if m.identity_id != identity_id]
                members.append(SiteMember(identity_id=identity_id, role=role))
                sites[idx] = site.model_copy(update={"members": members})
                save_json_list(self.path, sites)
                return
        raise ProvisionError(f"Site not found: {site_id}")
