"""
weave_sdk.tx.encode
===================

Canonical signature data and JSON wire encoding for transactions.

This module provides:
- `signature_items(tx)` -> the ordered field sequence a signature commits to
- `signature_data(tx)`  -> deep hash of that sequence (the message to sign)
- `to_json_dict(tx)`    -> gateway JSON body for `POST /tx`
- `from_json_dict(obj)` -> `Transaction` or `SignedTransaction`
- `dumps` / `loads`     -> the same as text

Field order
-----------
The order is a protocol constant and differs per format:

    format 2: [b"2", owner, target, quantity, reward, last_tx, tags,
               data_size, data_root]
    format 1: [owner, target, data, quantity, reward, last_tx, tags]

`tags` is a list of `[name, value]` pairs. Integers are ASCII decimal with no
sign or padding. Empty values stay in the sequence as zero-length leaves.

Wire format
-----------
Binary fields are unpadded base64url, integers other than `format` are
decimal strings:

    {"format": 2, "id": "...", "last_tx": "...", "owner": "...",
     "tags": [{"name": "...", "value": "..."}], "target": "...",
     "quantity": "0", "data": "...", "data_size": "0", "data_root": "...",
     "reward": "500000", "signature": "..."}
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Union

from ..crypto.deep_hash import DeepHashItem, deep_hash
from ..errors import EncodingError
from ..utils.bytes import b64url_decode, b64url_encode
from .types import FORMAT_V1, FORMAT_V2, AnyTransaction, SignedTransaction, Tag, Transaction

JsonDict = Dict[str, Any]


# -----------------------------------------------------------------------------
# Canonical field values
# -----------------------------------------------------------------------------


def _decimal(value: Any, name: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"expected an integer, got {type(value).__name__}", field=name)
    if value < 0:
        raise EncodingError(f"negative value {value} has no canonical form", field=name)
    return str(value).encode("ascii")


def _blob(value: Any, name: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise EncodingError(f"expected bytes, got {type(value).__name__}", field=name)


def _tag_items(tags: Any) -> List[List[bytes]]:
    return [[_blob(t.name, "tags.name"), _blob(t.value, "tags.value")] for t in tags]


def signature_items(tx: AnyTransaction) -> DeepHashItem:
    """
    Build the fixed-order field sequence for the transaction's format.

    Raises EncodingError for an unknown format or a field with no canonical
    byte form.
    """
    fmt = tx.format
    if fmt == FORMAT_V2:
        return [
            _decimal(fmt, "format"),
            _blob(tx.owner, "owner"),
            _blob(tx.target, "target"),
            _decimal(tx.quantity, "quantity"),
            _decimal(tx.fee, "fee"),
            _blob(tx.last_reference, "last_reference"),
            _tag_items(tx.tags),
            _decimal(tx.data_size, "data_size"),
            _blob(tx.data_root, "data_root"),
        ]
    if fmt == FORMAT_V1:
        return [
            _blob(tx.owner, "owner"),
            _blob(tx.target, "target"),
            _blob(tx.data, "data"),
            _decimal(tx.quantity, "quantity"),
            _decimal(tx.fee, "fee"),
            _blob(tx.last_reference, "last_reference"),
            _tag_items(tx.tags),
        ]
    raise EncodingError(f"unsupported transaction format: {fmt!r}", field="format")


def signature_data(tx: AnyTransaction) -> bytes:
    """Return the 48-byte message a transaction signature commits to."""
    return deep_hash(signature_items(tx))


# -----------------------------------------------------------------------------
# JSON wire format
# -----------------------------------------------------------------------------


def to_json_dict(tx: AnyTransaction, *, include_data: bool = True) -> JsonDict:
    """
    Gateway JSON body for a transaction.

    With `include_data=False` the `data` field is sent empty, which is how a
    format-2 header is posted when its payload goes through `/chunk`.
    """
    signed = isinstance(tx, SignedTransaction)
    return {
        "format": int(tx.format),
        "id": b64url_encode(tx.id) if signed else "",
        "last_tx": b64url_encode(tx.last_reference),
        "owner": b64url_encode(tx.owner),
        "tags": [{"name": b64url_encode(t.name), "value": b64url_encode(t.value)} for t in tx.tags],
        "target": b64url_encode(tx.target),
        "quantity": _decimal(tx.quantity, "quantity").decode("ascii"),
        "data": b64url_encode(tx.data) if include_data else "",
        "data_size": _decimal(tx.data_size, "data_size").decode("ascii"),
        "data_root": b64url_encode(tx.data_root),
        "reward": _decimal(tx.fee, "fee").decode("ascii"),
        "signature": b64url_encode(tx.signature) if signed else "",
    }


def _wire_bytes(obj: Mapping[str, Any], key: str) -> bytes:
    value = obj.get(key) or ""
    if not isinstance(value, str):
        raise EncodingError(f"expected base64url text, got {type(value).__name__}", field=key)
    try:
        return b64url_decode(value)
    except ValueError as e:
        raise EncodingError(str(e), field=key) from e


def _wire_int(obj: Mapping[str, Any], key: str, default: int = 0) -> int:
    value = obj.get(key, default)
    if isinstance(value, bool):
        raise EncodingError("expected a decimal integer, got bool", field=key)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    if value in ("", None):
        return default
    raise EncodingError(f"expected a decimal integer, got {value!r}", field=key)


def from_json_dict(obj: Mapping[str, Any]) -> Union[Transaction, SignedTransaction]:
    """
    Parse a gateway JSON transaction.

    Returns a `SignedTransaction` when `signature` is present and non-empty,
    otherwise a `Transaction` (any `id` is dropped).
    """
    if not isinstance(obj, Mapping):
        raise EncodingError("transaction JSON must be an object")

    raw_tags = obj.get("tags") or []
    if not isinstance(raw_tags, list):
        raise EncodingError("tags must be a list", field="tags")
    tags: List[Tag] = []
    for raw in raw_tags:
        if not isinstance(raw, Mapping):
            raise EncodingError("each tag must be an object with name/value", field="tags")
        tags.append(Tag(_wire_bytes(raw, "name"), _wire_bytes(raw, "value")))

    tx = Transaction(
        format=_wire_int(obj, "format", FORMAT_V2),
        last_reference=_wire_bytes(obj, "last_tx"),
        owner=_wire_bytes(obj, "owner"),
        target=_wire_bytes(obj, "target"),
        quantity=_wire_int(obj, "quantity"),
        fee=_wire_int(obj, "reward"),
        data=_wire_bytes(obj, "data"),
        data_size=_wire_int(obj, "data_size"),
        data_root=_wire_bytes(obj, "data_root"),
        tags=tags,
    )
    signature = _wire_bytes(obj, "signature")
    if not signature:
        return tx
    return SignedTransaction.from_unsigned(tx, signature=signature, id=_wire_bytes(obj, "id"))


def dumps(tx: AnyTransaction, *, include_data: bool = True, indent: int | None = None) -> str:
    return json.dumps(to_json_dict(tx, include_data=include_data), indent=indent)


def loads(text: Union[str, bytes]) -> Union[Transaction, SignedTransaction]:
    try:
        obj = json.loads(text)
    except ValueError as e:
        raise EncodingError(f"invalid transaction JSON: {e}") from e
    return from_json_dict(obj)


__all__ = [
    "signature_items",
    "signature_data",
    "to_json_dict",
    "from_json_dict",
    "dumps",
    "loads",
]
