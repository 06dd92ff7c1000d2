"""
Manages all interactions with the Immich REST API: listing and searching
assets, listing and creating albums, adding assets to albums and streaming
asset bytes.

Every logical operation is expressed as an ordered list of candidate request
shapes handed to the prober, because Immich releases disagree on paths,
verbs and query styles.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from .config import ImmichConfig
from .exceptions import ConfigError, ProbeCancelled, TransportError, UpstreamStatusError, MAX_ERROR_BODY_BYTES
from .models import Album, AssetInfo, SearchResult
from .normalizer import decode_album, decode_albums, decode_asset_info, decode_search_result
from .prober import Candidate, probe

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
FORWARDED_REQUEST_HEADERS = ("Range", "If-Range")


def _normalize_host(host: str) -> str:
    """
    Ensure the Immich host is the root (no trailing '/api'), no trailing slash.
    """
    if not host:
        return host
    h = host.strip().rstrip('/')
    if h.lower().endswith('/api'):
        h = h[:-4]
        h = h.rstrip('/')
    return h


def _build_api_base(host: str) -> str:
    """
    Returns the API base URL (root + '/api'), exactly once.
    """
    root = _normalize_host(host)
    return f"{root}/api"


def _with_query(order: str, ints: Mapping[str, int]) -> Dict[str, Any]:
    """Builds a query dict, dropping an empty order and non-positive integers."""
    query: Dict[str, Any] = {}
    if order:
        query["order"] = order
    for key, value in ints.items():
        if value > 0:
            query[key] = str(value)
    return query


class ImmichClient:
    """
    Stateless Immich API client.

    The client owns one `requests.Session` which is only read after
    construction, so a single instance can be shared between threads.
    """

    def __init__(self, cfg: ImmichConfig, session: Optional[requests.Session] = None):
        if not cfg.base_url:
            raise ConfigError("Immich base URL is not configured")
        self.api_base_url = _build_api_base(cfg.base_url)
        self.timeout = cfg.timeout_seconds
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({API_KEY_HEADER: cfg.api_key, 'Accept': 'application/json'})
        logger.debug(f"Immich client initialized for {self.api_base_url}")

    # ---------- transport ----------

    def _send(self, candidate: Candidate) -> bytes:
        """Performs one physical request and returns the body of a 2xx answer."""
        url = self.api_base_url + candidate.path
        try:
            response = self.session.request(
                candidate.method,
                url,
                params=candidate.params or None,
                json=candidate.json,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"immich request {candidate.describe()} failed: {e}") from e

        with response:
            if not 200 <= response.status_code < 300:
                body = response.content[:MAX_ERROR_BODY_BYTES].decode('utf-8', errors='replace')
                raise UpstreamStatusError(response.status_code, body, candidate.method, candidate.path)
            return response.content

    def _probe(self, candidates: List[Candidate], cancel: Optional[threading.Event] = None) -> bytes:
        return probe(self._send, candidates, cancel=cancel)

    # ---------- assets ----------

    def get_asset_info(self, asset_id: str, cancel: Optional[threading.Event] = None) -> AssetInfo:
        paths = [f"/assets/{asset_id}", f"/asset/{asset_id}", f"/assets/{asset_id}/info"]
        body = self._probe([Candidate("GET", path) for path in paths], cancel)
        return decode_asset_info(body)

    def search_assets(self, page: int = 1, size: int = 60, order: str = "",
                      album_ids: Optional[List[str]] = None,
                      cancel: Optional[threading.Event] = None) -> SearchResult:
        """
        Searches assets through the metadata search endpoint family.

        Args:
            page: 1-based page number.
            size: Page size.
            order: `asc` or `desc`; omitted when empty.
            album_ids: Restrict the search to these albums; omitted when empty.
            cancel: Set by the caller to stop before the next candidate request.
        """
        payload: Dict[str, Any] = {"page": page, "size": size}
        if order:
            payload["order"] = order
        if album_ids:
            payload["albumIds"] = list(album_ids)
        paths = ["/search/metadata", "/search/assets", "/search"]
        body = self._probe([Candidate("POST", path, json=payload) for path in paths], cancel)
        return decode_search_result(body)

    def list_assets(self, page: int = 1, size: int = 60, order: str = "",
                    cancel: Optional[threading.Event] = None) -> SearchResult:
        """
        Lists assets through the plain listing endpoints, trying both the
        page/size and skip/take query styles, with and without an order.
        """
        page = max(page, 1)
        size = max(size, 1)
        skip = (page - 1) * size

        query_variants = [
            _with_query(order, {"page": page, "size": size}),
            _with_query(order, {"skip": skip, "take": size}),
            _with_query("", {"page": page, "size": size}),
            _with_query("", {"skip": skip, "take": size}),
        ]
        paths = ["/assets", "/asset", "/assets/owned", "/assets/all"]
        candidates = [
            Candidate("GET", path, params=query)
            for path in paths
            for query in query_variants
        ]
        return decode_search_result(self._probe(candidates, cancel))

    # ---------- albums ----------

    def list_albums(self, cancel: Optional[threading.Event] = None) -> List[Album]:
        body = self._probe([Candidate("GET", "/albums"), Candidate("GET", "/album")], cancel)
        return decode_albums(body)

    def create_album(self, name: str, cancel: Optional[threading.Event] = None) -> Album:
        logger.info(f"Creating Immich album '{name}'")
        body = self._probe([Candidate("POST", "/albums", json={"albumName": name})], cancel)
        return decode_album(body)

    def add_assets_to_album(self, album_id: str, asset_ids: List[str],
                            cancel: Optional[threading.Event] = None) -> None:
        """
        Adds assets to an album.

        Newer servers expose membership-add as `PUT`, some older ones as
        `POST`; the second verb is only tried when the first is unsupported.
        Assets that are already members are reported per id with a 2xx
        status, so repeating the call is harmless.
        """
        if not album_id or not asset_ids:
            return
        payload = {"ids": list(asset_ids)}
        path = f"/albums/{album_id}/assets"
        self._probe([
            Candidate("PUT", path, json=payload),
            Candidate("POST", path, json=payload),
        ], cancel)
        logger.info(f"Added {len(asset_ids)} asset(s) to Immich album {album_id}")

    # ---------- bytes ----------

    def fetch_asset(self, asset_id: str, size: str = "", download: bool = False,
                    request_headers: Optional[Mapping[str, str]] = None,
                    cancel: Optional[threading.Event] = None) -> requests.Response:
        """
        Opens a streaming response for the thumbnail, preview or original of
        an asset.

        `Range` and `If-Range` from the inbound request are forwarded verbatim
        so partial content works end to end. The body is not read here; the
        caller must close the returned response.

        Raises:
            ProbeCancelled: If `cancel` is already set.
            TransportError: If the request could not be sent.
        """
        if cancel is not None and cancel.is_set():
            raise ProbeCancelled(f"cancelled before fetching asset {asset_id}")
        path = f"/assets/{asset_id}/thumbnail"
        params: Dict[str, str] = {}
        if download:
            path = f"/assets/{asset_id}/original"
        elif size:
            params["size"] = size

        headers: Dict[str, str] = {}
        if request_headers:
            inbound = CaseInsensitiveDict(request_headers)
            for name in FORWARDED_REQUEST_HEADERS:
                value = inbound.get(name)
                if value:
                    headers[name] = value

        try:
            return self.session.get(
                self.api_base_url + path,
                params=params or None,
                headers=headers or None,
                stream=True,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"immich asset fetch for {asset_id} failed: {e}") from e
