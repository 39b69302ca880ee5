"""
weave_sdk.tx.sign
=================

Sign and verify transactions.

    signed = sign_transaction(tx, provider)
    verify_transaction(signed)            # raises on failure

Signing sets `owner` from the provider, deep-hashes the canonical field
sequence, signs that digest and derives the id from the signature:

    signature = provider.sign(deep_hash(fields))
    id        = sha256(signature)

so a transaction is identified by who signed what, not by its content alone.

Re-signing is rejected: `sign_transaction` refuses a `SignedTransaction`
with `AlreadySigned`. Call `signed.unsigned()` to reset it explicitly.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import replace
from typing import Optional

from ..crypto.provider import SigningProvider, rsa_pss_verify
from ..errors import AlreadySigned, InvalidSignature, UnsignedTransaction
from ..utils.hash import sha256
from .encode import signature_data
from .types import AnyTransaction, SignedTransaction, Transaction

log = logging.getLogger(__name__)

__all__ = ["sign_transaction", "verify_transaction", "is_valid"]


def sign_transaction(tx: AnyTransaction, provider: SigningProvider) -> SignedTransaction:
    """
    Return a signed, immutable copy of `tx`.

    Raises:
        AlreadySigned    if `tx` is already a SignedTransaction
        EncodingError    if a field has no canonical byte form
        KeyUnavailable   if the provider cannot sign
    """
    if isinstance(tx, SignedTransaction):
        raise AlreadySigned(
            "call .unsigned() before signing again", tx_id=tx.id_b64 or None
        )
    if not isinstance(tx, Transaction):
        raise TypeError(f"expected Transaction, got {type(tx).__name__}")

    owned = replace(tx, owner=provider.public_key(), tags=list(tx.tags))
    message = signature_data(owned)
    signature = provider.sign(message)
    tx_id = provider.hash(signature)
    signed = SignedTransaction.from_unsigned(owned, signature=signature, id=tx_id)
    log.debug("signed transaction id=%s format=%d", signed.id_b64, signed.format)
    return signed


def verify_transaction(tx: AnyTransaction, provider: Optional[SigningProvider] = None) -> None:
    """
    Check a transaction's signature and id. Pure; returns None on success.

    The public key comes from `tx.owner`. `provider` only supplies the verify
    primitive; by default the RSA-PSS verifier is used.

    Raises:
        UnsignedTransaction  if there is no signature
        InvalidSignature     on any mismatch (fields, key, or id)
        EncodingError        if a field has no canonical byte form
    """
    if not isinstance(tx, SignedTransaction) or not tx.signature:
        raise UnsignedTransaction("cannot verify a transaction without a signature")

    message = signature_data(tx)
    if provider is not None:
        ok = provider.verify(tx.owner, message, tx.signature)
    else:
        ok = rsa_pss_verify(tx.owner, message, tx.signature)
    id_ok = hmac.compare_digest(sha256(tx.signature), tx.id)

    if not (ok and id_ok):
        log.debug("verification failed id=%s signature_ok=%s id_ok=%s", tx.id_b64, ok, id_ok)
        raise InvalidSignature(tx_id=tx.id_b64 or None)


def is_valid(tx: AnyTransaction, provider: Optional[SigningProvider] = None) -> bool:
    """Boolean form of `verify_transaction`; unsigned transactions are not valid."""
    try:
        verify_transaction(tx, provider)
    except (UnsignedTransaction, InvalidSignature):
        return False
    return True
