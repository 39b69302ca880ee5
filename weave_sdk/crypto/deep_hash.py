"""
weave_sdk.crypto.deep_hash
==========================

Tagged, order-folding SHA-384 hash over nested byte strings.

This is the exact construction the network applies to a transaction's field
sequence before verifying its signature, so it must be reproduced bit for bit:

    leaf(b)      = H( H(b"blob" + ascii(len(b))) || H(b) )
    list([e...]) = fold(H(b"list" + ascii(len)), e...)
                   where fold(acc, e) = H(acc || deep_hash(e))

The length-prefixed tags keep a leaf from colliding with a list of leaves and
lists of different shapes from colliding with each other. Empty byte strings
are valid leaves; they are never skipped.
"""

from __future__ import annotations

from typing import Sequence, Union

from ..errors import EncodingError
from ..utils.hash import SHA384, sha384

DeepHashItem = Union[bytes, bytearray, memoryview, Sequence["DeepHashItem"]]

DIGEST_SIZE = 48

_BLOB_TAG = b"blob"
_LIST_TAG = b"list"


def _tag(kind: bytes, length: int) -> bytes:
    return kind + str(length).encode("ascii")


def _hash_leaf(data: bytes) -> bytes:
    tagged = sha384(_tag(_BLOB_TAG, len(data))) + sha384(data)
    return sha384(tagged)


def deep_hash(item: DeepHashItem) -> bytes:
    """
    Return the 48-byte deep hash of a byte string or a (nested) list of them.

    Raises EncodingError for anything else, including `str`: text has no
    canonical byte form until the caller picks one.
    """
    if isinstance(item, (bytes, bytearray, memoryview)):
        return _hash_leaf(bytes(item))
    if isinstance(item, (list, tuple)):
        acc = sha384(_tag(_LIST_TAG, len(item)))
        for child in item:
            acc = SHA384().update(acc).update(deep_hash(child)).digest()
        return acc
    raise EncodingError(
        f"deep hash items must be bytes or lists of bytes, got {type(item).__name__}"
    )


__all__ = ["DeepHashItem", "DIGEST_SIZE", "deep_hash"]
