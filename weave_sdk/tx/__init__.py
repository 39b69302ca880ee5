"""
weave_sdk.tx
============

Transaction helpers: build, encode, sign, chunk and send.

Submodules
----------
- types : `Tag`, `Transaction` (unsigned) and `SignedTransaction`.
- encode: canonical signature data and the gateway JSON wire format.
- sign  : `sign_transaction` / `verify_transaction`.
- build : `build_transaction` from a provider, payload and tags.
- chunks: fixed-size chunking, `data_root` and `data_path` proofs.
- send  : `SubmissionPipeline` for `POST /tx` and `POST /chunk`.

Typical usage
-------------
    from weave_sdk.tx import build_transaction, sign_transaction, SubmissionPipeline

    tx = build_transaction(provider, data=payload, fee=fee, last_reference=anchor)
    signed = sign_transaction(tx, provider)
    tx_id, fee = await SubmissionPipeline(gateway, cfg).submit(signed)
"""

from __future__ import annotations

from . import build as build
from . import chunks as chunks
from . import encode as encode
from . import send as send
from . import sign as sign
from .build import build_transaction
from .chunks import chunk_payload, compute_data_root, validate_path
from .encode import from_json_dict, signature_data, to_json_dict
from .send import SubmissionPipeline, submit_transaction
from .sign import is_valid, sign_transaction, verify_transaction
from .types import FORMAT_V1, FORMAT_V2, SignedTransaction, Tag, Transaction

__all__ = [
    # submodules
    "build", "chunks", "encode", "send", "sign",
    # types
    "FORMAT_V1", "FORMAT_V2", "Tag", "Transaction", "SignedTransaction",
    # helpers
    "build_transaction",
    "chunk_payload", "compute_data_root", "validate_path",
    "signature_data", "to_json_dict", "from_json_dict",
    "sign_transaction", "verify_transaction", "is_valid",
    "SubmissionPipeline", "submit_transaction",
]
