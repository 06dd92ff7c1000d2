"""
Converts between Immich asset identifiers and the string stored in an
attachment's external link, and digs asset identifiers out of pasted links.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple
from urllib.parse import urlparse, parse_qs

from .config import ImmichConfig

REFERENCE_PREFIX = "immich:"
URI_SCHEME_PREFIX = "immich://"

ASSET_ID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)


def is_asset_id(value: str) -> bool:
    """True when `value` is exactly one UUID-shaped identifier."""
    return bool(value) and ASSET_ID_PATTERN.fullmatch(value) is not None


def find_asset_id(text: str) -> Optional[str]:
    """Returns the first UUID-shaped substring of `text`, if any."""
    if not text:
        return None
    match = ASSET_ID_PATTERN.search(text)
    return match.group(0) if match else None


def encode_reference(asset_id: str) -> str:
    return REFERENCE_PREFIX + asset_id


def decode_reference(reference: str) -> Tuple[str, bool]:
    """
    Parses a persisted reference.

    Returns:
        `(asset_id, True)` for a well-formed reference, `("", False)` otherwise.
    """
    if not reference or not reference.startswith(REFERENCE_PREFIX):
        return "", False
    asset_id = reference[len(REFERENCE_PREFIX):].lstrip("/")
    return asset_id, asset_id != ""


def extract_asset_id_from_link(link: str, cfg: Optional[ImmichConfig] = None) -> Tuple[str, bool]:
    """
    Recovers an asset identifier from arbitrary user-pasted text.

    Accepted forms, tried in order: a persisted `immich:<id>` reference, an
    `immich://<id>` URI, or an http(s) URL pointing at the configured Immich
    host whose path or query carries a UUID. Never raises.

    Args:
        link: Text pasted by the user.
        cfg: When it carries a base URL, the link's host must match it.

    Returns:
        `(asset_id, True)` on success, `("", False)` otherwise.
    """
    link = (link or "").strip()
    if not link:
        return "", False

    if link.startswith(URI_SCHEME_PREFIX):
        asset_id = link[len(URI_SCHEME_PREFIX):].lstrip("/")
        return asset_id, asset_id != ""
    if link.startswith(REFERENCE_PREFIX):
        return decode_reference(link)

    try:
        parsed = urlparse(link)
        # userinfo is not part of the host.
        host = parsed.netloc.rpartition("@")[2]
        query = parse_qs(parsed.query, keep_blank_values=True)
    except ValueError:
        return "", False
    if not host:
        return "", False

    if cfg is not None and cfg.base_url:
        expected_host = cfg.host
        if not expected_host or host.lower() != expected_host.lower():
            return "", False

    asset_id = find_asset_id(parsed.path)
    if asset_id:
        return asset_id, True
    for values in query.values():
        for value in values:
            asset_id = find_asset_id(value)
            if asset_id:
                return asset_id, True
    return "", False
