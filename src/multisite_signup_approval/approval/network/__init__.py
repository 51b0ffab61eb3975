"""Adapters for a remote network-management API."""

from .client import NetworkApiClient

__all__ = ["NetworkApiClient"]
