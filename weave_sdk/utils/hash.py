from __future__ import annotations

import hashlib

from .bytes import BytesLike, ensure_bytes


# --- SHA-2 --------------------------------------------------------------------
# SHA-384 backs the deep hash; SHA-256 backs transaction ids, addresses and the
# chunk merkle tree.

def sha256(data: BytesLike) -> bytes:
    """Return SHA-256 digest of *data* (32 bytes)."""
    return hashlib.sha256(ensure_bytes(data)).digest()


def sha384(data: BytesLike) -> bytes:
    """Return SHA-384 digest of *data* (48 bytes)."""
    return hashlib.sha384(ensure_bytes(data)).digest()


class SHA384:
    """Streaming SHA-384 hasher."""

    __slots__ = ("_h",)

    def __init__(self) -> None:
        self._h = hashlib.sha384()

    def update(self, data: BytesLike) -> "SHA384":
        self._h.update(ensure_bytes(data))
        return self

    def digest(self) -> bytes:
        return self._h.digest()


__all__ = [
    "sha256",
    "sha384",
    "SHA384",
]
