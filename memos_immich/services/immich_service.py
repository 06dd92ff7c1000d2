# memos_immich/services/immich_service.py
"""
Provides a unified service for everything the Memos host needs from Immich.

This class is a façade over the API client, the album binder and the
reference codec. It is what the host's route handlers and the attachment
creation flow call: it checks the caller, maps Immich failures onto
host-facing errors and shapes the JSON the picker dialog consumes.
"""
import logging
import threading
from typing import Any, Dict, Iterator, Mapping, Optional

import requests

from .config_service import config
from ..album_binder import ensure_asset_in_album
from ..config import ImmichConfig
from ..exceptions import (
    GatewayError,
    ImmichAPIError,
    ImmichBridgeError,
    IntegrationDisabledError,
    InvalidRequestError,
    UnauthorizedError,
)
from ..immich_api import ImmichClient
from ..models import ExternalAttachment, SearchResult
from ..references import REFERENCE_PREFIX, decode_reference, encode_reference, extract_asset_id_from_link

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 60
DEFAULT_ORDER = "desc"
THUMBNAIL_SIZES = ("thumbnail", "preview", "fullsize")
STREAM_CHUNK_BYTES = 64 * 1024
PASSTHROUGH_RESPONSE_HEADERS = (
    "Content-Type",
    "Content-Length",
    "Content-Range",
    "Accept-Ranges",
    "ETag",
    "Last-Modified",
    "Cache-Control",
)


def _positive_int(raw: Any, default: int) -> int:
    """Parses a query parameter, falling back to `default` for anything not > 0."""
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class AssetStream:
    """
    An upstream asset response opened for pass-through.

    The body is never buffered: iterate `chunks()` and close the stream when
    done (it is also a context manager).
    """

    def __init__(self, response: requests.Response):
        self._response = response
        self.status_code = response.status_code
        self.headers: Dict[str, str] = {
            name: response.headers[name]
            for name in PASSTHROUGH_RESPONSE_HEADERS
            if response.headers.get(name)
        }

    def chunks(self, chunk_size: int = STREAM_CHUNK_BYTES) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> 'AssetStream':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ImmichService:
    def __init__(self, cfg: Optional[ImmichConfig] = None, client: Optional[ImmichClient] = None):
        # The service is initialized once with the process-wide Immich settings.
        self.cfg = cfg if cfg is not None else config.immich
        self.client = client
        if self.client is None and self.cfg.enabled:
            self.client = ImmichClient(self.cfg)

    @property
    def enabled(self) -> bool:
        return self.cfg.enabled and self.client is not None

    def _require(self, user: Any) -> ImmichClient:
        if user is None:
            raise UnauthorizedError("unauthorized access")
        if not self.enabled:
            raise IntegrationDisabledError("immich is not configured")
        return self.client

    # ---------- picker ----------

    def list_albums(self, user: Any, cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        """
        Lists albums for the picker dialog.

        Args:
            user: The authenticated user, or None.
            cancel: The host request's cancellation signal.

        Returns:
            `{"albums": [{"id", "name", "assetCount", "thumbnailAssetId"}]}`.

        Raises:
            UnauthorizedError: If there is no current user.
            IntegrationDisabledError: If Immich is not configured.
            GatewayError: If Immich could not list albums.
        """
        client = self._require(user)
        try:
            albums = client.list_albums(cancel=cancel)
        except ImmichAPIError as e:
            logger.error(f"Failed to fetch Immich albums: {e}")
            raise GatewayError("failed to fetch immich albums") from e

        return {
            "albums": [
                {
                    "id": album.id,
                    "name": album.display_name,
                    "assetCount": album.asset_count,
                    "thumbnailAssetId": album.thumbnail_asset_id or "",
                }
                for album in albums
            ]
        }

    def list_assets(self, user: Any, page_size: Any = None, page_token: Any = None,
                    cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        """
        Lists one page of assets for the picker dialog, newest first.

        The plain listing endpoints are tried first; deployments that only
        offer metadata search are served through the search endpoints.

        Args:
            user: The authenticated user, or None.
            page_size: Requested page size; defaults to 60.
            page_token: Opaque cursor from a previous page; defaults to the first page.
            cancel: The host request's cancellation signal.

        Returns:
            `{"assets": [...], "nextPageToken": str}` where an empty token
            means there are no further pages.

        Raises:
            UnauthorizedError, IntegrationDisabledError, GatewayError.
        """
        client = self._require(user)
        size = _positive_int(page_size, DEFAULT_PAGE_SIZE)
        page = _positive_int(page_token, 1)

        try:
            result = client.list_assets(page, size, DEFAULT_ORDER, cancel=cancel)
        except ImmichAPIError as e:
            logger.info(f"Immich asset listing unavailable ({e}); falling back to search")
            try:
                result = client.search_assets(page=page, size=size, order=DEFAULT_ORDER, cancel=cancel)
            except ImmichAPIError as search_error:
                logger.error(f"Failed to fetch Immich assets: {search_error}")
                raise GatewayError("failed to fetch immich assets") from search_error

        return self._asset_page(result)

    @staticmethod
    def _asset_page(result: SearchResult) -> Dict[str, Any]:
        assets = []
        for asset in result.assets:
            if not asset.id:
                logger.debug("Skipping Immich asset without an identifier")
                continue
            assets.append({
                "id": asset.id,
                "filename": asset.original_file_name,
                "mimeType": asset.original_mime_type,
                "size": asset.file_size_in_bytes,
                "type": asset.type,
                "thumbnailUrl": f"/file/immich/{asset.id}?size=thumbnail",
                "previewUrl": f"/file/immich/{asset.id}?size=fullsize",
            })
        return {"assets": assets, "nextPageToken": result.next_cursor}

    # ---------- bytes ----------

    def open_asset_stream(self, user: Any, asset_id: str, size: str = "thumbnail",
                          download: bool = False,
                          request_headers: Optional[Mapping[str, str]] = None,
                          cancel: Optional[threading.Event] = None) -> AssetStream:
        """
        Opens the thumbnail, preview or original of an asset for streaming.

        `asset_id` may also be a persisted `immich:` reference. `size` is one
        of thumbnail, preview, fullsize or original; original implies download.

        Raises:
            UnauthorizedError, IntegrationDisabledError, InvalidRequestError, GatewayError.
        """
        client = self._require(user)
        asset_id = asset_id or ""
        if asset_id.startswith(REFERENCE_PREFIX):
            asset_id, _ = decode_reference(asset_id)
        asset_id = asset_id.lstrip("/")
        if not asset_id:
            raise InvalidRequestError("asset id is required")

        size = (size or "").strip().lower()
        if size == "original":
            download = True
            size = ""
        elif size and size not in THUMBNAIL_SIZES:
            raise InvalidRequestError(f"unsupported asset size: {size}")

        try:
            response = client.fetch_asset(asset_id, size=size, download=download,
                                          request_headers=request_headers, cancel=cancel)
        except ImmichAPIError as e:
            logger.error(f"Failed to fetch Immich asset {asset_id}: {e}")
            raise GatewayError("failed to fetch immich asset") from e
        return AssetStream(response)

    # ---------- attachments ----------

    def ensure_album_membership(self, asset_id: str, cancel: Optional[threading.Event] = None) -> bool:
        """
        Adds an attached asset to the configured album without ever failing
        the caller.

        Returns:
            True when the asset is (now) in the album or nothing had to be
            done, False when the attempt failed and was logged.
        """
        try:
            ensure_asset_in_album(self.cfg, asset_id, client=self.client, cancel=cancel)
            return True
        except ImmichBridgeError as e:
            logger.warning(f"Failed to add Immich asset {asset_id} to album: {e}")
            return False

    def prepare_external_attachment(self, link: str, add_to_album: bool = True,
                                    cancel: Optional[threading.Event] = None) -> ExternalAttachment:
        """
        Turns a pasted link into the attachment the host should persist.

        Links that point at an Immich asset are stored as `immich:<id>` and
        enriched with file name, MIME type and size when Immich can provide
        them. Missing metadata never blocks attachment creation. Any other
        link is returned unchanged.

        Args:
            link: Text pasted by the user.
            add_to_album: Also add the asset to the configured album.
            cancel: The host request's cancellation signal.
        """
        link = (link or "").strip()
        asset_id, found = extract_asset_id_from_link(link, self.cfg)
        if not found:
            return ExternalAttachment(external_link=link)

        filename, mime_type, size = "", "", 0
        if self.enabled:
            try:
                info = self.client.get_asset_info(asset_id, cancel=cancel)
                filename = info.original_file_name
                mime_type = info.original_mime_type
                size = info.file_size_in_bytes
            except ImmichAPIError as e:
                logger.warning(f"Immich asset info unavailable for {asset_id}: {e}")

        if add_to_album:
            self.ensure_album_membership(asset_id, cancel=cancel)

        return ExternalAttachment(
            external_link=encode_reference(asset_id),
            filename=filename or asset_id,
            mime_type=mime_type,
            size=size,
        )


# Singleton instance
immich_service = ImmichService()
