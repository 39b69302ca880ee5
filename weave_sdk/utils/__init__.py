"""
Utility helpers for the weave SDK.

Re-exports:
- bytes: base64url helpers
- hash: SHA-256 / SHA-384 convenience wrappers
"""

from .bytes import b64url_decode, b64url_encode, ensure_bytes
from .hash import sha256, sha384

__all__ = [
    # bytes
    "b64url_encode",
    "b64url_decode",
    "ensure_bytes",
    # hash
    "sha256",
    "sha384",
]
