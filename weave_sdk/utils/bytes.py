from __future__ import annotations

import base64
import binascii
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def ensure_bytes(data: BytesLike) -> bytes:
    """
    Ensure input is bytes.

    Accepts bytes / bytearray / memoryview. Text is rejected: callers must pick
    an encoding explicitly (see `b64url_decode` for wire values).
    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Unsupported type for ensure_bytes: {type(data)!r}")


def b64url_encode(b: BytesLike) -> str:
    """
    Bytes -> unpadded base64url text, the encoding gateways use for every
    binary transaction field.
    """
    return base64.urlsafe_b64encode(bytes(b)).rstrip(b"=").decode("ascii")


def b64url_decode(s: Union[str, bytes]) -> bytes:
    """
    Unpadded (or padded) base64url text -> bytes.

    Raises ValueError on characters outside the url-safe alphabet.
    """
    if isinstance(s, bytes):
        s = s.decode("ascii")
    if not isinstance(s, str):
        raise TypeError("b64url_decode expects a string")
    s = s.strip()
    if any(c in s for c in "+/"):
        raise ValueError("invalid base64url string: standard alphabet characters present")
    padded = s + "=" * (-len(s) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64url string: {e}") from e


__all__ = [
    "BytesLike",
    "ensure_bytes",
    "b64url_encode",
    "b64url_decode",
]
