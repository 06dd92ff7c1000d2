"""
Models package for the Memos Immich bridge.

This package contains the canonical DTOs every Immich response is normalized into.
"""

from .dto import (
    # Core DTOs
    Asset,
    AssetInfo,
    Album,
    SearchResult,
    ExternalAttachment,

    # Type aliases
    AssetId,
    AlbumId,
)

__all__ = [
    # Core DTOs
    'Asset',
    'AssetInfo',
    'Album',
    'SearchResult',
    'ExternalAttachment',

    # Type aliases
    'AssetId',
    'AlbumId',
]
