"""
weave_sdk.crypto.provider
=========================

Signing providers for the weave SDK.

A provider is anything that offers the capability set the transaction signer
needs: `sign`, `verify`, `hash`, `public_key` and `address`. Callers depend on
the `SigningProvider` protocol; `RsaProvider` is the concrete backend for keys
held in memory (loaded from an Arweave JWK key file, a PEM blob, or generated).
Other key-storage mechanisms (e.g. a hardware token) plug in by implementing
the same five methods.

Scheme
------
- RSA with public exponent 65537; the public key travels as the raw
  big-endian modulus (`owner`).
- Signatures are RSASSA-PSS with MGF1(SHA-256), SHA-256 message digest and a
  32-byte salt. The message is the 48-byte deep hash; the PSS step digests it
  again with SHA-256, independently of the deep hash function.
- Verification accepts any valid PSS salt length and reports a plain boolean.
- `hash` is SHA-256; a transaction id is `hash(signature)` and an address is
  `hash(public_key)`.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

from cryptography.exceptions import InvalidSignature as _BadSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..errors import KeyUnavailable
from ..utils.bytes import BytesLike, b64url_decode, b64url_encode, ensure_bytes
from ..utils.hash import sha256

log = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537
SALT_LENGTH = 32
DEFAULT_KEY_SIZE = 4096

__all__ = [
    "SigningProvider",
    "RsaProvider",
    "public_key_from_owner",
    "owner_to_der",
    "rsa_pss_verify",
    "PUBLIC_EXPONENT",
    "SALT_LENGTH",
]


@runtime_checkable
class SigningProvider(Protocol):
    """Capability set consumed by the transaction signer/verifier."""

    def sign(self, message: bytes) -> bytes: ...
    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool: ...
    def hash(self, data: bytes) -> bytes: ...
    def public_key(self) -> bytes: ...
    def address(self) -> bytes: ...


# --- Helpers -----------------------------------------------------------------


def _int_to_bytes(n: int) -> bytes:
    return n.to_bytes((n.bit_length() + 7) // 8, "big")


def _jwk_int(jwk: Mapping[str, Any], name: str) -> int:
    value = jwk.get(name)
    if not isinstance(value, str) or not value:
        raise ValueError(f"JWK is missing RSA component '{name}'")
    return int.from_bytes(b64url_decode(value), "big")


def _pss_sign_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=SALT_LENGTH)


def _pss_verify_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO)


def public_key_from_owner(owner: BytesLike) -> rsa.RSAPublicKey:
    """
    Rebuild an RSA public key from a raw modulus with the fixed exponent 65537.

    Raises ValueError if the modulus is not a usable RSA modulus.
    """
    n = int.from_bytes(ensure_bytes(owner), "big")
    return rsa.RSAPublicNumbers(PUBLIC_EXPONENT, n).public_key()


def owner_to_der(owner: BytesLike) -> bytes:
    """DER (SubjectPublicKeyInfo) encoding of the public key behind `owner`."""
    return public_key_from_owner(owner).public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def rsa_pss_verify(owner: BytesLike, message: BytesLike, signature: BytesLike) -> bool:
    """
    Verify an RSA-PSS signature against a raw-modulus public key.

    Never raises: a malformed modulus, wrong key, bad padding or altered
    message all yield False.
    """
    try:
        key = public_key_from_owner(owner)
        key.verify(
            ensure_bytes(signature),
            ensure_bytes(message),
            _pss_verify_padding(),
            hashes.SHA256(),
        )
    except (_BadSignature, ValueError, TypeError):
        return False
    return True


# --- RSA backend -------------------------------------------------------------


class RsaProvider:
    """
    In-memory RSA key pair implementing `SigningProvider`.

    Create instances via:
        - RsaProvider.from_keyfile(path)    Arweave JWK wallet file
        - RsaProvider.from_jwk(mapping)
        - RsaProvider.from_pem(data, password=None)
        - RsaProvider.from_owner(modulus)   verification only
        - RsaProvider.generate(key_size=4096)
    """

    def __init__(
        self,
        *,
        private_key: Optional[rsa.RSAPrivateKey] = None,
        public_key: Optional[rsa.RSAPublicKey] = None,
    ) -> None:
        if private_key is None and public_key is None:
            raise ValueError("RsaProvider needs a private or a public key")
        if public_key is None:
            public_key = private_key.public_key()  # type: ignore[union-attr]
        numbers = public_key.public_numbers()
        if numbers.e != PUBLIC_EXPONENT:
            raise ValueError(f"public exponent must be {PUBLIC_EXPONENT}, got {numbers.e}")
        self._sk = private_key
        self._pk = public_key
        self._owner = _int_to_bytes(numbers.n)

    # ---- Constructors ----

    @classmethod
    def from_jwk(cls, jwk: Mapping[str, Any]) -> "RsaProvider":
        """
        Load a key from a JSON Web Key mapping (`kty` = RSA).

        A JWK with only `n`/`e` yields a verification-only provider.
        """
        if jwk.get("kty") != "RSA":
            raise ValueError(f"unsupported JWK key type: {jwk.get('kty')!r}")
        public_numbers = rsa.RSAPublicNumbers(_jwk_int(jwk, "e"), _jwk_int(jwk, "n"))
        if "d" not in jwk:
            return cls(public_key=public_numbers.public_key())
        private_numbers = rsa.RSAPrivateNumbers(
            p=_jwk_int(jwk, "p"),
            q=_jwk_int(jwk, "q"),
            d=_jwk_int(jwk, "d"),
            dmp1=_jwk_int(jwk, "dp"),
            dmq1=_jwk_int(jwk, "dq"),
            iqmp=_jwk_int(jwk, "qi"),
            public_numbers=public_numbers,
        )
        return cls(private_key=private_numbers.private_key())

    @classmethod
    def from_keyfile(cls, path: Union[str, os.PathLike]) -> "RsaProvider":
        """Load an Arweave-style JWK wallet file."""
        with open(path, "r", encoding="utf-8") as f:
            jwk = json.load(f)
        if not isinstance(jwk, dict):
            raise ValueError(f"key file {os.fspath(path)!r} does not contain a JSON object")
        provider = cls.from_jwk(jwk)
        log.debug("loaded key file %s (address=%s)", os.fspath(path), provider.address_b64())
        return provider

    @classmethod
    def from_pem(cls, data: Union[bytes, str], password: Optional[bytes] = None) -> "RsaProvider":
        """Load a PEM-encoded RSA private key (PKCS#1 or PKCS#8)."""
        if isinstance(data, str):
            data = data.encode("ascii")
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except UnsupportedAlgorithm as e:
            raise ValueError(f"unsupported PEM key: {e}") from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError(f"PEM key is not RSA: {type(key).__name__}")
        return cls(private_key=key)

    @classmethod
    def from_owner(cls, owner: BytesLike) -> "RsaProvider":
        """Verification-only provider for the key behind a raw modulus."""
        return cls(public_key=public_key_from_owner(owner))

    @classmethod
    def generate(cls, key_size: int = DEFAULT_KEY_SIZE) -> "RsaProvider":
        """Generate a fresh key pair (4096-bit by default, as the network expects)."""
        key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
        return cls(private_key=key)

    # ---- Properties ----

    @property
    def can_sign(self) -> bool:
        return self._sk is not None

    @property
    def key_size(self) -> int:
        return self._pk.key_size

    def public_key(self) -> bytes:
        """Raw big-endian modulus, the transaction `owner` value."""
        return self._owner

    def address(self) -> bytes:
        """SHA-256 of the public key: the network-visible account id."""
        return sha256(self._owner)

    def address_b64(self) -> str:
        return b64url_encode(self.address())

    # ---- Operations ----

    def hash(self, data: bytes) -> bytes:
        return sha256(data)

    def sign(self, message: bytes) -> bytes:
        """
        Sign `message` with RSA-PSS (SHA-256, 32-byte salt).

        Raises KeyUnavailable on a verification-only provider.
        """
        if self._sk is None:
            raise KeyUnavailable("provider holds only a public key; cannot sign")
        return self._sk.sign(ensure_bytes(message), _pss_sign_padding(), hashes.SHA256())

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Verify `signature` over `message` for the given raw-modulus public key."""
        return rsa_pss_verify(public_key, message, signature)

    def __repr__(self) -> str:
        kind = "keypair" if self.can_sign else "public"
        return f"RsaProvider({kind}, bits={self.key_size}, address={self.address_b64()})"
