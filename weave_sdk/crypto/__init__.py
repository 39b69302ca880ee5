"""
weave_sdk.crypto
================

- deep_hash: canonical tagged SHA-384 hash over nested byte strings
- provider : SigningProvider protocol and the RSA-PSS backend
"""

from __future__ import annotations

from .deep_hash import deep_hash
from .provider import RsaProvider, SigningProvider, rsa_pss_verify

__all__ = ["deep_hash", "RsaProvider", "SigningProvider", "rsa_pss_verify"]
