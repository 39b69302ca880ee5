"""
weave-sdk (Python)
Convenience exports for the most common client APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import SDKConfig  # noqa: F401
from .errors import (  # noqa: F401
    WeaveSdkError,
    EncodingError,
    KeyUnavailable,
    UnsignedTransaction,
    AlreadySigned,
    InvalidSignature,
    StatusCodeNotOk,
    ChunkUploadFailed,
    GatewayError,
)

# Crypto
from .crypto.deep_hash import deep_hash  # noqa: F401
from .crypto.provider import RsaProvider, SigningProvider  # noqa: F401

# Gateway
from .gateway.http import GatewayClient  # noqa: F401

# Tx helpers
from .tx.types import Tag, Transaction, SignedTransaction  # noqa: F401
from .tx.build import build_transaction  # noqa: F401
from .tx.sign import sign_transaction, verify_transaction  # noqa: F401
from .tx.send import SubmissionPipeline, submit_transaction  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "SDKConfig",
    "WeaveSdkError", "EncodingError", "KeyUnavailable", "UnsignedTransaction",
    "AlreadySigned", "InvalidSignature", "StatusCodeNotOk", "ChunkUploadFailed",
    "GatewayError",
    # Crypto
    "deep_hash", "RsaProvider", "SigningProvider",
    # Gateway
    "GatewayClient",
    # Tx
    "Tag", "Transaction", "SignedTransaction",
    "build_transaction", "sign_transaction", "verify_transaction",
    "SubmissionPipeline", "submit_transaction",
]
