"""
Lets Memos attach photos that live in an Immich server without copying them.
"""

from .config import ImmichConfig, load_immich_config
from .immich_api import ImmichClient
from .album_binder import ensure_asset_in_album
from .references import (
    REFERENCE_PREFIX,
    decode_reference,
    encode_reference,
    extract_asset_id_from_link,
)

__all__ = [
    "ImmichConfig",
    "load_immich_config",
    "ImmichClient",
    "ensure_asset_in_album",
    "REFERENCE_PREFIX",
    "decode_reference",
    "encode_reference",
    "extract_asset_id_from_link",
]
