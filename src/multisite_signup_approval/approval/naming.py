"""Site name normalization and domain helpers.

A requested site name becomes a subdomain of the network, so after
normalization it must be a plain slug: lowercase ASCII letters, digits and
hyphens.
"""

from __future__ import annotations

import re
import unicodedata

SITE_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")

_TAG_RE = re.compile(r"<[^>]*>")
_ENTITY_RE = re.compile(r"&[a-z0-9#]+;", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
# Underscores survive normalization on purpose: they are not valid in a
# hostname, so a name containing one is reported instead of silently rewritten.
_DISALLOWED_RE = re.compile(r"[^a-z0-9 _-]")
_HYPHENS_RE = re.compile(r"-+")
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_site_name(raw: str) -> str:
    """Turn free-form user input into a slug candidate.

    Markup and entities are removed, diacritics stripped, the result
    lowercased, whitespace turned into hyphens, any remaining character outside
    `[a-z0-9 _-]` dropped and runs of hyphens collapsed.

    The result is not guaranteed to be valid; check it with
    :func:`is_valid_site_name`.
    """

    value = _TAG_RE.sub("", raw)
    value = _ENTITY_RE.sub("", value)
    value = strip_diacritics(value).lower()
    value = _WHITESPACE_RE.sub("-", value.strip())
    value = _DISALLOWED_RE.sub("", value)
    value = _HYPHENS_RE.sub("-", value)
    return value.strip("-")


def is_valid_site_name(name: str) -> bool:
    return bool(SITE_NAME_PATTERN.match(name))


def strip_www(domain: str) -> str:
    """Remove a leading `www.` (any case) from a domain."""

    return _WWW_RE.sub("", domain.strip())


def site_domain(site_name: str, network_domain: str) -> str:
    return f"{site_name}.{strip_www(network_domain)}"


def site_title(site_name: str) -> str:
    return f"{site_name[:1].upper()}{site_name[1:]} Website"
