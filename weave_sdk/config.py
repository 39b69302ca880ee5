"""
SDK configuration: gateway endpoint, timeouts, and the submission protocol
constants (inline threshold, chunk size, retry bound/delay, concurrency).

- Loads defaults and supports overrides via environment variables (WEAVE_*).
- Provides helpers for building HTTP headers and validating endpoints.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .version import user_agent

DEFAULT_GATEWAY = "https://arweave.net/"

# Payloads up to this many bytes go inline in `POST /tx`; larger ones are chunked.
MAX_TX_DATA = 10_000_000
# Canonical block size, 256 KiB.
BLOCK_SIZE = 256 * 1024
# Multiplier applied to the caller's buffer to get the chunk upload concurrency.
CHUNKS_BUFFER_FACTOR = 20
# Attempts per header/chunk before giving up.
CHUNKS_RETRIES = 10
# Seconds between attempts.
CHUNKS_RETRY_SLEEP = 1.0


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v not in (None, "") else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


@dataclass(slots=True)
class SDKConfig:
    # Gateway
    gateway_url: str = DEFAULT_GATEWAY
    request_timeout: float = 30.0
    # Submission protocol
    inline_threshold: int = MAX_TX_DATA
    block_size: int = BLOCK_SIZE
    retries: int = CHUNKS_RETRIES
    retry_delay: float = CHUNKS_RETRY_SLEEP
    buffer_factor: int = CHUNKS_BUFFER_FACTOR
    buffer: int = 1
    # Headers / identity
    user_agent: str = field(default_factory=user_agent)

    def __post_init__(self) -> None:
        _ensure_scheme(self.gateway_url, ("http", "https"))
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.inline_threshold < 0:
            raise ValueError("inline_threshold must be non-negative")
        for name in ("block_size", "retries", "buffer_factor", "buffer"):
            if int(getattr(self, name)) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be non-negative")

    @classmethod
    def from_env(cls, prefix: str = "WEAVE_") -> "SDKConfig":
        """
        Create config from environment variables:

        WEAVE_GATEWAY_URL       (http/https)
        WEAVE_TIMEOUT           (float seconds, HTTP)
        WEAVE_INLINE_THRESHOLD  (int bytes)
        WEAVE_BLOCK_SIZE        (int bytes)
        WEAVE_RETRIES           (int attempts)
        WEAVE_RETRY_DELAY       (float seconds)
        WEAVE_BUFFER_FACTOR     (int)
        WEAVE_BUFFER            (int)
        WEAVE_USER_AGENT        (str)
        """
        return cls(
            gateway_url=_env(f"{prefix}GATEWAY_URL", DEFAULT_GATEWAY) or DEFAULT_GATEWAY,
            request_timeout=float(_env(f"{prefix}TIMEOUT", "30.0")),
            inline_threshold=int(_env(f"{prefix}INLINE_THRESHOLD", str(MAX_TX_DATA))),
            block_size=int(_env(f"{prefix}BLOCK_SIZE", str(BLOCK_SIZE))),
            retries=int(_env(f"{prefix}RETRIES", str(CHUNKS_RETRIES))),
            retry_delay=float(_env(f"{prefix}RETRY_DELAY", str(CHUNKS_RETRY_SLEEP))),
            buffer_factor=int(_env(f"{prefix}BUFFER_FACTOR", str(CHUNKS_BUFFER_FACTOR))),
            buffer=int(_env(f"{prefix}BUFFER", "1")),
            user_agent=_env(f"{prefix}USER_AGENT", user_agent()) or user_agent(),
        )

    @classmethod
    def with_overrides(cls, base: Optional["SDKConfig"] = None, **overrides: Any) -> "SDKConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys and None values are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data and v is not None})
        return cls(**data)

    def concurrency(self, buffer: Optional[int] = None) -> int:
        """Maximum chunk requests in flight: buffer_factor x buffer."""
        buf = self.buffer if buffer is None else int(buffer)
        if buf < 1:
            raise ValueError("buffer must be >= 1")
        return self.buffer_factor * buf

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


__all__ = [
    "SDKConfig",
    "DEFAULT_GATEWAY",
    "MAX_TX_DATA",
    "BLOCK_SIZE",
    "CHUNKS_BUFFER_FACTOR",
    "CHUNKS_RETRIES",
    "CHUNKS_RETRY_SLEEP",
]
