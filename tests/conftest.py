"""Shared fixtures: a scripted stand-in for the Immich HTTP API."""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from unittest.mock import MagicMock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from memos_immich.config import ImmichConfig

BASE_URL = "https://photos.example"
API_BASE = f"{BASE_URL}/api"
ASSET_ID = "550e8400-e29b-41d4-a716-446655440000"
OTHER_ASSET_ID = "6ba7b810-9dad-41d1-80b4-00c04fd430c8"
ALBUM_ID = "0b4c8f0e-7f8a-4b9e-9c1d-2e3f4a5b6c7d"


def make_response(status_code: int = 200, payload: Any = None, body: Optional[bytes] = None,
                  headers: Optional[Dict[str, str]] = None) -> MagicMock:
    """Builds a fake `requests.Response` with the given status and JSON payload."""
    if body is None:
        body = json.dumps(payload).encode() if payload is not None else b""
    response = MagicMock()
    response.status_code = status_code
    response.content = body
    response.headers = CaseInsensitiveDict(headers or {})
    response.iter_content.return_value = iter([body]) if body else iter([])
    return response


@dataclass
class RecordedCall:
    method: str
    path: str
    params: Optional[Dict[str, Any]]
    json: Any
    headers: Optional[Dict[str, str]] = None


Handler = Union[MagicMock, Exception, Callable[["RecordedCall"], MagicMock]]


class FakeSession:
    """
    Routes requests by `(method, path)`. Unknown routes answer 404, like a
    deployment that does not expose the path.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Handler]] = None):
        self.routes: Dict[Tuple[str, str], Handler] = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.calls: List[RecordedCall] = []

    def _dispatch(self, call: RecordedCall) -> MagicMock:
        self.calls.append(call)
        handler = self.routes.get((call.method, call.path))
        if handler is None:
            return make_response(404, {"message": "Not Found"})
        if isinstance(handler, Exception):
            raise handler
        if callable(handler) and not isinstance(handler, MagicMock):
            return handler(call)
        return handler

    def request(self, method, url, params=None, json=None, timeout=None, **kwargs):
        assert url.startswith(API_BASE)
        assert timeout is not None
        return self._dispatch(RecordedCall(method, url[len(API_BASE):], params, json))

    def get(self, url, params=None, headers=None, stream=False, timeout=None, **kwargs):
        assert url.startswith(API_BASE)
        return self._dispatch(RecordedCall("GET", url[len(API_BASE):], params, None, headers))

    @property
    def attempted(self) -> List[Tuple[str, str]]:
        return [(call.method, call.path) for call in self.calls]


class FakeImmichServer:
    """A stateful Immich album API: albums can be listed, created and filled."""

    def __init__(self):
        self.albums: Dict[str, Dict[str, Any]] = {}
        self.members: Dict[str, set] = {}
        self._counter = 0

    def add_album(self, album_id: str, name: str) -> None:
        self.albums[album_id] = {"id": album_id, "albumName": name, "assetCount": 0}
        self.members[album_id] = set()

    def list_albums(self, call: RecordedCall) -> MagicMock:
        return make_response(200, list(self.albums.values()))

    def create_album(self, call: RecordedCall) -> MagicMock:
        self._counter += 1
        album_id = f"00000000-0000-4000-8000-{self._counter:012d}"
        self.add_album(album_id, call.json["albumName"])
        return make_response(201, self.albums[album_id])

    def add_assets(self, call: RecordedCall) -> MagicMock:
        album_id = call.path.split("/")[2]
        if album_id not in self.members:
            return make_response(400, {"message": "Not found or no album.access permission"})
        results = []
        for asset_id in call.json["ids"]:
            if asset_id in self.members[album_id]:
                results.append({"id": asset_id, "success": False, "error": "duplicate"})
            else:
                self.members[album_id].add(asset_id)
                self.albums[album_id]["assetCount"] += 1
                results.append({"id": asset_id, "success": True})
        return make_response(200, results)

    def session(self) -> FakeSession:
        server = self

        class _AlbumSession(FakeSession):
            def _dispatch(self, call):
                if call.method == "PUT" and call.path.startswith("/albums/") and call.path.endswith("/assets"):
                    self.calls.append(call)
                    return server.add_assets(call)
                return super()._dispatch(call)

        return _AlbumSession({
            ("GET", "/albums"): self.list_albums,
            ("POST", "/albums"): self.create_album,
        })


@pytest.fixture
def cfg() -> ImmichConfig:
    """An enabled configuration that resolves the album by name."""
    return ImmichConfig(base_url=BASE_URL, api_key="secret-key", album_name="Memos")


@pytest.fixture
def fake_server() -> FakeImmichServer:
    return FakeImmichServer()
