"""
weave_sdk.tx.build
==================

Populate an unsigned `Transaction` from a signing provider, a payload and
tags. The result feeds straight into `weave_sdk.tx.sign.sign_transaction`
and then `weave_sdk.tx.send`.

Design notes
------------
- `owner` is taken from the provider so the builder's output already names
  its signer (signing sets it again from the same provider).
- Format 2 commits to the payload through `data_size` and `data_root`; the
  payload itself is kept on `tx.data` so `submit` can route it inline or as
  chunks.
- Format 1 signs the payload bytes directly and has no chunked path, so its
  payload must fit under the inline threshold.
- Fee and anchor are inputs here. Fetch them with
  `GatewayClient.get_price` / `GatewayClient.get_anchor` first.

Examples
--------
    provider = RsaProvider.from_keyfile("wallet.json")
    async with GatewayClient.from_config(cfg) as gw:
        tx = build_transaction(
            provider,
            data=payload,
            fee=await gw.get_price(len(payload)),
            last_reference=await gw.get_anchor(),
            tags=[("App-Name", "Test")],
            content_type="text/plain",
        )
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..config import BLOCK_SIZE, MAX_TX_DATA
from ..crypto.provider import SigningProvider
from ..errors import EncodingError
from ..utils.bytes import BytesLike, ensure_bytes
from .chunks import compute_data_root
from .types import FORMAT_V1, FORMAT_V2, TagLike, Transaction, coerce_tags

__all__ = ["build_transaction", "CONTENT_TYPE_TAG"]

CONTENT_TYPE_TAG = "Content-Type"


def build_transaction(
    provider: SigningProvider,
    *,
    fee: int,
    last_reference: BytesLike,
    data: BytesLike = b"",
    target: BytesLike = b"",
    quantity: int = 0,
    tags: Iterable[TagLike] = (),
    content_type: Optional[str] = None,
    format: int = FORMAT_V2,
    block_size: int = BLOCK_SIZE,
    inline_threshold: int = MAX_TX_DATA,
) -> Transaction:
    """
    Build an unsigned transaction.

    Args:
        provider: supplies `owner` (the raw public modulus)
        fee: payment for inclusion, usually from `GET /price`
        last_reference: anchor bytes, usually from `GET /tx_anchor`
        data: payload bytes
        target: recipient address bytes (empty for pure data transactions)
        quantity: amount transferred to `target`
        tags: (name, value) pairs or `Tag`s, in signing order
        content_type: appended as a trailing `Content-Type` tag when given
        format: 1 or 2
        block_size: chunk size used for the format-2 `data_root`
        inline_threshold: largest payload a format-1 transaction may carry

    Returns:
        A mutable `Transaction` ready for `sign_transaction`.
    """
    if format not in (FORMAT_V1, FORMAT_V2):
        raise EncodingError(f"unsupported transaction format: {format!r}", field="format")
    try:
        payload = ensure_bytes(data)
        anchor = ensure_bytes(last_reference)
        recipient = ensure_bytes(target)
    except TypeError as e:
        raise EncodingError(str(e)) from e

    tx = Transaction(
        format=format,
        last_reference=anchor,
        owner=provider.public_key(),
        target=recipient,
        quantity=quantity,
        fee=fee,
        data=payload,
        data_size=len(payload),
        tags=coerce_tags(tags),
    )
    if content_type:
        tx.add_tag(CONTENT_TYPE_TAG, content_type)
    if format == FORMAT_V1:
        if len(payload) > inline_threshold:
            raise EncodingError(
                f"format 1 payload of {len(payload)} bytes exceeds the inline limit of {inline_threshold}",
                field="data",
            )
    else:
        tx.data_root = compute_data_root(payload, block_size=block_size)
    return tx
