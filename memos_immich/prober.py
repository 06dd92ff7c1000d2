"""
Ordered endpoint probing.

Immich has moved endpoints around between releases (`/asset` vs `/assets`,
`GET` vs `POST` search, page/size vs skip/take). Each logical operation is
expressed as an ordered list of candidate requests; the prober tries them one
after another and stops at the first success or at the first failure that is
not simply "this deployment does not have that endpoint".
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from .exceptions import ImmichAPIError, ProbeCancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """One physical request shape for a logical operation."""
    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None

    def describe(self) -> str:
        if self.params:
            query = "&".join(f"{key}={value}" for key, value in self.params.items())
            return f"{self.method} {self.path}?{query}"
        return f"{self.method} {self.path}"


Sender = Callable[[Candidate], bytes]


def probe(send: Sender, candidates: Iterable[Candidate],
          cancel: Optional[threading.Event] = None) -> bytes:
    """
    Executes candidates in order and returns the body of the first 2xx answer.

    Args:
        send: Performs one physical request, returning the body or raising an
            ImmichAPIError whose `retryable` flag says whether to go on.
        candidates: Request shapes, most preferred first.
        cancel: Optional event; once set, no further candidate is attempted.

    Returns:
        The raw body of the first successful candidate.

    Raises:
        ValueError: If there are no candidates.
        ProbeCancelled: If `cancel` was set before a candidate was attempted.
        ImmichAPIError: The first fatal error, or the error of the last
            candidate when every candidate was retryable.
    """
    candidates = list(candidates)
    if not candidates:
        raise ValueError("probe requires at least one candidate request")

    last_error: Optional[ImmichAPIError] = None
    for candidate in candidates:
        if cancel is not None and cancel.is_set():
            raise ProbeCancelled(f"cancelled before {candidate.describe()}")
        try:
            return send(candidate)
        except ImmichAPIError as e:
            if not e.retryable:
                raise
            logger.debug(f"{candidate.describe()} not supported by this deployment ({e}); trying next shape")
            last_error = e

    raise last_error
