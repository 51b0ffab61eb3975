"""REST client for a network-management API.

Implements both the identity store and the site provisioner against a remote
network, so the workflow can run next to (rather than inside) the host that
owns users and sites. Endpoints used:

- ``GET  /users/{id}``                       -> ``{"id", "login", "email"}``
- ``GET  /sites?domain=&path=``              -> ``[{"site_id", ...}]``
- ``POST /sites``                            -> ``{"site_id"}`` (409 when taken)
- ``PUT  /sites/{site_id}/users/{user_id}``  -> assigns a role

A missing user is a `LookupError`. Every other failure (transport errors, HTTP
errors, bodies that are not the expected JSON) is raised as `ProvisionError`.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from multisite_signup_approval.approval.interfaces import (
    Identity,
    ProvisionError,
    SiteAlreadyExists,
)

logger = logging.getLogger(__name__)


class NetworkApiClient:
    """Small wrapper around `requests` for the calls the workflow needs."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("Network API base URL is required")

        self._base_url = base_url.strip().rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "multisite-signup-approval",
            }
        )
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        self._session.close()

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _fetch_user(self, identity_id: int) -> dict[str, Any] | None:
        if identity_id <= 0:
            return None
        try:
            resp = self._session.get(self._url(f"users/{identity_id}"), timeout=self._timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise ProvisionError(f"User lookup failed for {identity_id}: {e}") from e
        if not isinstance(data, dict):
            raise ProvisionError(f"Unexpected user response for {identity_id}")
        return data

    def get_identity(self, identity_id: int) -> Identity:
        data = self._fetch_user(identity_id)
        if data is None:
            raise LookupError(f"Identity not found: {identity_id}")
        login = data.get("login")
        email = data.get("email")
        if not isinstance(login, str) or not isinstance(email, str):
            raise ProvisionError(
                f"Unexpected user response for {identity_id}: missing login/email"
            )
        return Identity(id=identity_id, login=login, email=email)

    def identity_exists(self, identity_id: int) -> bool:
        return self._fetch_user(identity_id) is not None

    def domain_exists(self, domain: str, path: str) -> bool:
        try:
            resp = self._session.get(
                self._url("sites"),
                params={"domain": domain, "path": path},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise ProvisionError(f"Site lookup failed for {domain}{path}: {e}") from e
        return isinstance(data, list) and len(data) > 0

    def create_site(self, *, domain: str, path: str, title: str, owner_id: int) -> int:
        payload = {"domain": domain, "path": path, "title": title, "owner_id": owner_id}
        try:
            resp = self._session.post(self._url("sites"), json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise ProvisionError(f"Site creation failed for {domain}{path}: {e}") from e

        if resp.status_code == 409:
            raise SiteAlreadyExists(domain, path)
        if resp.status_code >= 400:
            raise ProvisionError(
                f"Site creation failed for {domain}{path}: "
                f"HTTP {resp.status_code} {resp.text[:200]}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProvisionError(
                f"Unexpected site creation response for {domain}{path}: {e}"
            ) from e
        site_id = data.get("site_id") if isinstance(data, dict) else None
        if not isinstance(site_id, int):
            raise ProvisionError("Unexpected site creation response: missing site_id")

        logger.info("Site created via network API", extra={"site_id": site_id, "domain": domain})
        return site_id

    def assign_owner(self, *, site_id: int, identity_id: int, role: str) -> None:
        try:
            resp = self._session.put(
                self._url(f"sites/{site_id}/users/{identity_id}"),
                json={"role": role},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ProvisionError(
                f"Assigning {role} on site {site_id} to user {identity_id} failed: {e}"
            ) from e
