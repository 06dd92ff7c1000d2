"""
Keeps attached Immich assets inside the configured album.

The album is resolved either from an explicit identifier or by a
case-insensitive name match, and created when it does not exist yet. Adding
an asset that is already a member succeeds, so calling this repeatedly for
the same asset never creates duplicates.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from .config import ImmichConfig
from .exceptions import DecodeError
from .immich_api import ImmichClient
from .models import Album, AlbumId
from .references import is_asset_id

logger = logging.getLogger(__name__)


def find_album_by_name(albums: List[Album], name: str) -> Optional[Album]:
    """Returns the first album whose display name equals `name`, ignoring case."""
    wanted = name.casefold()
    for album in albums:
        if album.id and album.display_name.casefold() == wanted:
            return album
    return None


def resolve_album_id(cfg: ImmichConfig, client: ImmichClient,
                     cancel: Optional[threading.Event] = None) -> AlbumId:
    """
    Resolves the target album, creating it by name when necessary.

    Raises:
        ImmichAPIError: If listing or creating albums fails.
    """
    if cfg.album_id:
        return cfg.album_id

    existing = find_album_by_name(client.list_albums(cancel=cancel), cfg.album_name)
    if existing is not None:
        logger.debug(f"Using existing Immich album '{existing.display_name}' ({existing.id})")
        return existing.id

    created = client.create_album(cfg.album_name, cancel=cancel)
    if not created.id:
        raise DecodeError(f"Immich did not return an identifier for new album '{cfg.album_name}'")
    logger.info(f"Created Immich album '{cfg.album_name}' with ID: {created.id}")
    return created.id


def ensure_asset_in_album(cfg: ImmichConfig, asset_id: str, client: Optional[ImmichClient] = None,
                          cancel: Optional[threading.Event] = None) -> None:
    """
    Makes sure `asset_id` is a member of the configured album.

    Does nothing when the asset id is empty or not UUID-shaped, when Immich is
    not configured, or when neither an album id nor an album name is set.

    Args:
        cfg: Connection and album settings.
        asset_id: Canonical asset identifier; leading slashes are ignored.
        client: Client to use; a new one is built from `cfg` when omitted.
        cancel: Set by the caller to stop before the next Immich request.

    Raises:
        ImmichAPIError: If resolving the album or adding the asset fails.
        ProbeCancelled: If `cancel` was set before the work was done.
    """
    asset_id = (asset_id or "").lstrip("/")
    if not asset_id or not is_asset_id(asset_id):
        return
    if not cfg.enabled:
        return
    if not cfg.album_id and not cfg.album_name:
        return

    if client is None:
        client = ImmichClient(cfg)
    album_id = resolve_album_id(cfg, client, cancel)
    client.add_assets_to_album(album_id, [asset_id], cancel=cancel)
