"""Tests for ordered endpoint probing."""

import threading
from typing import Dict, List

import pytest

from memos_immich.exceptions import (
    DecodeError,
    ImmichAPIError,
    ProbeCancelled,
    TransportError,
    UpstreamStatusError,
)
from memos_immich.prober import Candidate, probe


class ScriptedSender:
    """Answers each path with a fixed status; 2xx returns the path as body."""

    def __init__(self, statuses: Dict[str, int]):
        self.statuses = statuses
        self.attempted: List[str] = []

    def __call__(self, candidate: Candidate) -> bytes:
        self.attempted.append(candidate.path)
        status = self.statuses[candidate.path]
        if 200 <= status < 300:
            return candidate.path.encode()
        raise UpstreamStatusError(status, f"status {status}", candidate.method, candidate.path)


def _candidates(*paths: str) -> List[Candidate]:
    return [Candidate("GET", path) for path in paths]


class TestRetryClassification:
    @pytest.mark.parametrize("status", [404, 405])
    def test_not_found_and_method_not_allowed_are_retryable(self, status: int) -> None:
        assert UpstreamStatusError(status).retryable is True

    @pytest.mark.parametrize("status", [400, 401, 403, 409, 500, 502])
    def test_other_statuses_are_fatal(self, status: int) -> None:
        assert UpstreamStatusError(status).retryable is False

    def test_transport_and_decode_errors_are_fatal(self) -> None:
        assert TransportError("boom").retryable is False
        assert DecodeError("bad").retryable is False

    def test_body_is_truncated(self) -> None:
        error = UpstreamStatusError(500, "x" * 5000)
        assert len(error.body) == 1024


class TestProbe:
    def test_returns_first_success(self) -> None:
        sender = ScriptedSender({"/a": 404, "/b": 200, "/c": 200})

        assert probe(sender, _candidates("/a", "/b", "/c")) == b"/b"
        assert sender.attempted == ["/a", "/b"]

    def test_fatal_error_stops_probing(self) -> None:
        sender = ScriptedSender({"/a": 404, "/b": 500, "/c": 200})

        with pytest.raises(UpstreamStatusError) as exc_info:
            probe(sender, _candidates("/a", "/b", "/c"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.path == "/b"
        assert sender.attempted == ["/a", "/b"]

    def test_exhausted_candidates_raise_last_error(self) -> None:
        sender = ScriptedSender({"/a": 404, "/b": 405, "/c": 404})

        with pytest.raises(UpstreamStatusError) as exc_info:
            probe(sender, _candidates("/a", "/b", "/c"))

        assert exc_info.value.path == "/c"
        assert sender.attempted == ["/a", "/b", "/c"]

    def test_transport_error_is_not_retried(self) -> None:
        attempted = []

        def send(candidate: Candidate) -> bytes:
            attempted.append(candidate.path)
            raise TransportError("connection refused")

        with pytest.raises(TransportError):
            probe(send, _candidates("/a", "/b"))
        assert attempted == ["/a"]

    def test_empty_candidate_list(self) -> None:
        with pytest.raises(ValueError):
            probe(ScriptedSender({}), [])

    def test_cancelled_before_next_candidate(self) -> None:
        cancel = threading.Event()
        attempted = []

        def send(candidate: Candidate) -> bytes:
            attempted.append(candidate.path)
            cancel.set()
            raise UpstreamStatusError(404)

        with pytest.raises(ProbeCancelled):
            probe(send, _candidates("/a", "/b"), cancel=cancel)
        assert attempted == ["/a"]

    def test_cancelled_event_prevents_any_request(self) -> None:
        cancel = threading.Event()
        cancel.set()
        sender = ScriptedSender({"/a": 200})

        with pytest.raises(ProbeCancelled):
            probe(sender, _candidates("/a"), cancel=cancel)
        assert sender.attempted == []

    def test_errors_share_a_base_class(self) -> None:
        sender = ScriptedSender({"/a": 403})

        with pytest.raises(ImmichAPIError):
            probe(sender, _candidates("/a"))


class TestCandidate:
    def test_describe_includes_query(self) -> None:
        candidate = Candidate("GET", "/assets", params={"page": "2", "size": "60"})
        assert candidate.describe() == "GET /assets?page=2&size=60"
