# memos_immich/models/dto.py
"""
Data Transfer Objects (DTOs) for the canonical Immich data model.

Immich deployments return the same logical records in several JSON shapes.
The normalizer maps all of them onto these frozen dataclasses, so the rest of
the application only ever sees one representation. Instances are built per
request and never mutated afterwards.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any

# Type aliases for better readability
AssetId = str
AlbumId = str


@dataclass(frozen=True)
class Asset:
    """An asset as listed or searched; `id` is the canonical identifier."""
    id: AssetId
    original_file_name: str = ""
    original_mime_type: str = ""
    file_size_in_bytes: int = 0
    type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AssetInfo:
    """Metadata used to enrich an attachment that points at an Immich asset."""
    id: AssetId
    original_file_name: str = ""
    original_mime_type: str = ""
    file_size_in_bytes: int = 0


@dataclass(frozen=True)
class Album:
    """An Immich album."""
    id: AlbumId
    display_name: str = ""
    asset_count: int = 0
    thumbnail_asset_id: Optional[AssetId] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SearchResult:
    """One page of assets plus whichever pagination cursor the server returned."""
    assets: List[Asset] = field(default_factory=list)
    next_page: int = 0
    next_page_token: str = ""

    @property
    def next_cursor(self) -> str:
        """
        Folds the two cursor styles into one opaque value.

        Returns the token when present, otherwise the page number as a string,
        otherwise an empty string meaning "no further pages".
        """
        if self.next_page_token:
            return self.next_page_token
        if self.next_page > 0:
            return str(self.next_page)
        return ""

    @property
    def has_more(self) -> bool:
        return bool(self.next_cursor)


@dataclass(frozen=True)
class ExternalAttachment:
    """What the attachment store needs to persist a link to an Immich asset."""
    external_link: str
    filename: str = ""
    mime_type: str = ""
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
