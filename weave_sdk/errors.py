"""
Typed error classes for the weave SDK.

These are raised by crypto/deep_hash, tx/encode, tx/sign, tx/send and the
gateway client so callers can catch specific failure modes while still being
able to catch the base `WeaveSdkError`.

Taxonomy
--------
- EncodingError        a field could not be canonicalized
- KeyUnavailable       signing attempted without a private key
- UnsignedTransaction  operation requires a signature that is absent
- AlreadySigned        sign() called on a SignedTransaction
- InvalidSignature     verification mismatch
- StatusCodeNotOk      header submission exhausted its retry bound
- ChunkUploadFailed    one or more chunks exhausted their retries
- GatewayError         anchor/price lookup failed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

__all__ = [
    "WeaveSdkError",
    "EncodingError",
    "KeyUnavailable",
    "UnsignedTransaction",
    "AlreadySigned",
    "InvalidSignature",
    "StatusCodeNotOk",
    "ChunkUploadFailed",
    "GatewayError",
]


class WeaveSdkError(Exception):
    """Base class for all SDK errors."""


@dataclass(slots=True, eq=False)
class EncodingError(WeaveSdkError):
    """
    Raised when a value cannot be represented in the canonical byte form.

    Typical causes: negative integers, str where bytes are required, unknown
    transaction format, payload that does not match its data_root.
    """

    message: str
    field: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" [field={self.field}]" if self.field else ""
        return f"EncodingError{where}: {self.message}"


@dataclass(slots=True, eq=False)
class KeyUnavailable(WeaveSdkError):
    """Raised when sign() is called on a verification-only provider."""

    message: str = "no private key loaded"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"KeyUnavailable: {self.message}"


@dataclass(slots=True, eq=False)
class UnsignedTransaction(WeaveSdkError):
    """Raised when verify/post is attempted on a transaction with no signature or id."""

    message: str = "transaction is not signed"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"UnsignedTransaction: {self.message}"


@dataclass(slots=True, eq=False)
class AlreadySigned(WeaveSdkError):
    """
    Raised when sign() receives a SignedTransaction.

    Call `SignedTransaction.unsigned()` first to re-anchor or re-sign.
    """

    message: str = "transaction is already signed"
    tx_id: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f" tx={self.tx_id}" if self.tx_id else ""
        return f"AlreadySigned{suffix}: {self.message}"


@dataclass(slots=True, eq=False)
class InvalidSignature(WeaveSdkError):
    """
    Raised when a signature does not verify: the transaction was tampered with,
    signed by a different key, or canonicalized differently.
    """

    message: str = "signature verification failed"
    tx_id: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f" tx={self.tx_id}" if self.tx_id else ""
        return f"InvalidSignature{suffix}: {self.message}"


@dataclass(slots=True, eq=False)
class StatusCodeNotOk(WeaveSdkError):
    """
    Raised when submission exhausted its retry bound without a success response.

    Fields:
      - status: last HTTP status seen (None if every attempt failed in transport)
      - attempts: number of attempts made
      - url: endpoint that was posted to
    """

    message: str
    status: Optional[int] = None
    attempts: int = 0
    url: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"StatusCodeNotOk: {self.message}", f"attempts={self.attempts}"]
        if self.status is not None:
            parts.append(f"http={self.status}")
        if self.url:
            parts.append(f"url={self.url}")
        return " ".join(parts)


@dataclass(slots=True, eq=False)
class ChunkUploadFailed(WeaveSdkError):
    """
    Raised after chunked submission when at least one chunk exhausted its retries.

    Chunks that did upload are left on the gateway; `failed` lists the chunk
    indices that did not.
    """

    message: str
    failed: List[int] = field(default_factory=list)
    total: int = 0

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"ChunkUploadFailed: {self.message} ({len(self.failed)}/{self.total} chunks failed)"


@dataclass(slots=True, eq=False)
class GatewayError(WeaveSdkError):
    """Raised when a gateway lookup (anchor, price) fails or returns garbage."""

    message: str
    status: Optional[int] = None
    url: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [self.message]
        if self.status is not None:
            bits.append(f"http={self.status}")
        if self.url:
            bits.append(f"url={self.url}")
        return "GatewayError: " + " ".join(bits)
