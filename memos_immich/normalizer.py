"""
Normalizes Immich JSON responses into the canonical DTOs.

Different Immich releases wrap the same records differently: a bare list, a
`{"assets": [...]}` object, a paged `{"assets": {"items": [...]}}` object and
so on. Each decoder below is an ordered chain of shape strategies. A strategy
returns the extracted value or None when the payload does not have its shape;
the first strategy that matches wins.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from .exceptions import DecodeError
from .models import Album, Asset, AssetInfo, SearchResult
from .references import find_asset_id

logger = logging.getLogger(__name__)

ASSET_ID_FIELDS = ("id", "assetId", "deviceAssetId", "uuid")
ALBUM_NAME_FIELDS = ("albumName", "name")
FILE_SIZE_FIELDS = ("fileSizeInByte", "fileSizeInBytes")

Strategy = Callable[[Any], Optional[Any]]


def decode_json(data: bytes | str) -> Any:
    """Parses a response body, raising DecodeError for anything that is not JSON."""
    try:
        return json.loads(data)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"immich response is not valid JSON: {e}") from e


def _first_match(payload: Any, strategies: Sequence[Strategy]) -> Optional[Any]:
    for strategy in strategies:
        result = strategy(payload)
        if result is not None:
            return result
    return None


def _first_text(record: Dict[str, Any], fields: Sequence[str]) -> str:
    for name in fields:
        value = record.get(name)
        if isinstance(value, str) and value:
            return value
    return ""


def _as_int(value: Any) -> int:
    """Best-effort integer coercion; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # json accepts 1e400 and Infinity, which int() cannot represent.
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def _object_list(value: Any) -> Optional[List[Dict[str, Any]]]:
    """Returns `value` when it is a list of JSON objects, else None."""
    if isinstance(value, list) and all(isinstance(item, dict) for item in value):
        return value
    return None


# --- Assets ---

def canonical_asset_id(record: Dict[str, Any]) -> str:
    """
    Recovers the canonical identifier of one asset record.

    The identifier fields are tried in order and leading slashes are stripped.
    When none of them carries a value, the first UUID found anywhere in the
    record's JSON text is used. An empty string means no identifier exists.
    """
    asset_id = _first_text(record, ASSET_ID_FIELDS).lstrip("/")
    if asset_id:
        return asset_id
    return find_asset_id(json.dumps(record)) or ""


def asset_from_record(record: Dict[str, Any]) -> Asset:
    return Asset(
        id=canonical_asset_id(record),
        original_file_name=_first_text(record, ("originalFileName",)),
        original_mime_type=_first_text(record, ("originalMimeType",)),
        file_size_in_bytes=_as_int(_first_present(record, FILE_SIZE_FIELDS)),
        type=_first_text(record, ("type",)),
    )


def _first_present(record: Dict[str, Any], fields: Sequence[str]) -> Any:
    for name in fields:
        if record.get(name) is not None:
            return record[name]
    exif = record.get("exifInfo")
    if isinstance(exif, dict):
        for name in fields:
            if exif.get(name) is not None:
                return exif[name]
    return None


def _assets_bare_list(payload: Any) -> Optional[List[Dict[str, Any]]]:
    return _object_list(payload)


def _assets_wrapped_list(payload: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(payload, dict):
        return _object_list(payload.get("assets"))
    return None


def _assets_paged_items(payload: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(payload, dict) and isinstance(payload.get("assets"), dict):
        return _object_list(payload["assets"].get("items"))
    return None


def _assets_items(payload: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(payload, dict):
        return _object_list(payload.get("items"))
    return None


ASSET_LIST_STRATEGIES: Sequence[Strategy] = (
    _assets_bare_list,
    _assets_wrapped_list,
    _assets_paged_items,
    _assets_items,
)


def assets_from_payload(payload: Any) -> List[Asset]:
    records = _first_match(payload, ASSET_LIST_STRATEGIES)
    if records is None:
        raise DecodeError("failed to decode immich assets")
    return [asset_from_record(record) for record in records]


def decode_assets(data: bytes | str) -> List[Asset]:
    """Decodes a list of assets from any of the known envelopes, preserving order."""
    return assets_from_payload(decode_json(data))


def _pagination_sources(payload: Any) -> List[Dict[str, Any]]:
    sources = []
    if isinstance(payload, dict):
        sources.append(payload)
        # Paged search responses keep the cursor next to the items.
        if isinstance(payload.get("assets"), dict):
            sources.append(payload["assets"])
    return sources


def decode_search_result(data: bytes | str) -> SearchResult:
    """
    Decodes one page of assets together with its pagination cursor.

    `nextPage` and `nextPageToken` are looked up independently; when neither
    is present the result reports no further pages.
    """
    payload = decode_json(data)
    assets = assets_from_payload(payload)

    next_page = 0
    next_page_token = ""
    for source in _pagination_sources(payload):
        if not next_page:
            next_page = max(_as_int(source.get("nextPage")), 0)
        if not next_page_token:
            token = source.get("nextPageToken")
            if isinstance(token, str):
                next_page_token = token
    return SearchResult(assets=assets, next_page=next_page, next_page_token=next_page_token)


def decode_asset_info(data: bytes | str) -> AssetInfo:
    payload = decode_json(data)
    record = _first_match(payload, (
        lambda p: p if isinstance(p, dict) and _first_text(p, ASSET_ID_FIELDS) else None,
        lambda p: p.get("asset") if isinstance(p, dict) and isinstance(p.get("asset"), dict) else None,
    ))
    if record is None:
        raise DecodeError("failed to decode immich asset info")
    asset = asset_from_record(record)
    return AssetInfo(
        id=asset.id,
        original_file_name=asset.original_file_name,
        original_mime_type=asset.original_mime_type,
        file_size_in_bytes=asset.file_size_in_bytes,
    )


# --- Albums ---

def album_from_record(record: Dict[str, Any]) -> Album:
    thumbnail = record.get("albumThumbnailAssetId")
    return Album(
        id=_first_text(record, ("id",)),
        display_name=_first_text(record, ALBUM_NAME_FIELDS),
        asset_count=_as_int(record.get("assetCount")),
        thumbnail_asset_id=thumbnail if isinstance(thumbnail, str) and thumbnail else None,
    )


def _has_album_identity(record: Any) -> bool:
    return isinstance(record, dict) and bool(_first_text(record, ("id",) + ALBUM_NAME_FIELDS))


def decode_album(data: bytes | str) -> Album:
    """Decodes a single album from a bare object or an `{"album": {...}}` wrapper."""
    payload = decode_json(data)
    record = _first_match(payload, (
        lambda p: p if _has_album_identity(p) else None,
        lambda p: p.get("album") if isinstance(p, dict) and _has_album_identity(p.get("album")) else None,
    ))
    if record is None:
        raise DecodeError("failed to decode immich album")
    return album_from_record(record)


def _albums_wrapped(payload: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(payload, dict):
        return _object_list(payload.get("albums"))
    return None


def _non_empty(strategy: Strategy) -> Strategy:
    def wrapped(payload: Any) -> Optional[Any]:
        result = strategy(payload)
        return result if result else None
    return wrapped


# An empty bare list is inconclusive: a non-empty `albums` field beats it.
ALBUM_LIST_STRATEGIES: Sequence[Strategy] = (
    _non_empty(_object_list),
    _non_empty(_albums_wrapped),
    _object_list,
    _albums_wrapped,
)


def decode_albums(data: bytes | str) -> List[Album]:
    payload = decode_json(data)
    records = _first_match(payload, ALBUM_LIST_STRATEGIES)
    if records is None:
        raise DecodeError("failed to decode immich albums")
    return [album_from_record(record) for record in records]
