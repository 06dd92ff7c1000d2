"""
Immutable Immich connection settings.

The settings are read from the environment once per process by the config
service; this module only holds the value type and its validation.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ConfigError

ENV_BASE_URL = "MEMOS_IMMICH_URL"
ENV_API_KEY = "MEMOS_IMMICH_API_KEY"
ENV_ALBUM_NAME = "MEMOS_IMMICH_ALBUM_NAME"
ENV_ALBUM_ID = "MEMOS_IMMICH_ALBUM_ID"

DEFAULT_ALBUM_NAME = "Memos"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class ImmichConfig:
    """
    Connection settings for one Immich deployment.

    An empty `album_name` together with an empty `album_id` turns automatic
    album membership off.
    """
    base_url: str = ""
    api_key: str = ""
    album_name: str = ""
    album_id: str = ""
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.base_url:
            parsed = urlparse(self.base_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigError(f"Immich base URL must be an absolute http(s) URL, got {self.base_url!r}")
        if self.timeout_seconds <= 0:
            raise ConfigError("Immich API timeout must be positive")

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.api_key)

    @property
    def host(self) -> str:
        """The `host[:port]` part of the base URL without userinfo, or an empty string."""
        if not self.base_url:
            return ""
        return urlparse(self.base_url).netloc.rpartition("@")[2]

    def __repr__(self) -> str:
        # Keep the API key out of logs and tracebacks.
        return (
            f"ImmichConfig(base_url={self.base_url!r}, api_key={'***' if self.api_key else ''!r}, "
            f"album_name={self.album_name!r}, album_id={self.album_id!r}, "
            f"timeout_seconds={self.timeout_seconds!r})"
        )


def load_immich_config(environ: Optional[Mapping[str, str]] = None,
                       timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> ImmichConfig:
    """
    Builds the Immich settings from environment variables.

    Args:
        environ: Mapping to read from; defaults to `os.environ`.
        timeout_seconds: Per-request timeout for the HTTP transport.

    Returns:
        An ImmichConfig. It is disabled (all fields empty) when either the
        base URL or the API key is missing.

    Raises:
        ConfigError: If the base URL is set but malformed.
    """
    env = os.environ if environ is None else environ
    base_url = (env.get(ENV_BASE_URL) or "").strip()
    api_key = (env.get(ENV_API_KEY) or "").strip()
    album_id = (env.get(ENV_ALBUM_ID) or "").strip()

    if not base_url or not api_key:
        return ImmichConfig(timeout_seconds=timeout_seconds)

    # An explicitly empty album name disables lookup by name; only a missing
    # variable falls back to the default.
    if ENV_ALBUM_NAME in env:
        album_name = (env.get(ENV_ALBUM_NAME) or "").strip()
    else:
        album_name = DEFAULT_ALBUM_NAME

    return ImmichConfig(
        base_url=base_url,
        api_key=api_key,
        album_name=album_name,
        album_id=album_id,
        timeout_seconds=timeout_seconds,
    )
