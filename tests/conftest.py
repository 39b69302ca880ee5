"""
Shared pytest fixtures:
- Paths to the JWK test wallet and the golden signed transaction
- Providers (fixed RSA-4096 test wallet, a fresh 2048-bit key pair)
- A small SDKConfig suited to fast submission tests
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from weave_sdk.config import SDKConfig
from weave_sdk.crypto.provider import RsaProvider
from weave_sdk.tx.encode import from_json_dict
from weave_sdk.tx.types import SignedTransaction

FIXTURES = Path(__file__).parent / "fixtures"

# Deep hash of the example transaction in fixtures/sample_tx.json.
SAMPLE_DEEP_HASH_HEX = (
    "80f7267652cc9c9f5ce2531e7cd994192ca0096efa9198bf4b2e95f4a5ca2e02"
    "0e9a189295af6f49e3b16b09e74c7a63"
)
SAMPLE_ID_B64 = "_qsV2Kt_YqDFIQJMtVMFFY98ROa2BpJ28kdJRZSmbGU"
SAMPLE_ID_HEX = "feab15d8ab7f62a0c521024cb55305158f7c44e6b6069276f247494594a66c65"
WALLET_ADDRESS_B64 = "AWl6DAlnvy9F8X97gcUhkrNodIvmhELINehVD0qDMio"


@pytest.fixture(scope="session")
def wallet_path() -> Path:
    return FIXTURES / "test_wallet.json"


@pytest.fixture(scope="session")
def wallet_jwk(wallet_path: Path) -> Dict[str, Any]:
    return json.loads(wallet_path.read_text())


@pytest.fixture(scope="session")
def provider(wallet_path: Path) -> RsaProvider:
    """The fixed RSA-4096 test wallet."""
    return RsaProvider.from_keyfile(wallet_path)


@pytest.fixture(scope="session")
def fresh_provider() -> RsaProvider:
    """A throwaway 2048-bit key pair (faster to generate than 4096)."""
    return RsaProvider.generate(2048)


@pytest.fixture(scope="session")
def sample_tx_json() -> Dict[str, Any]:
    return json.loads((FIXTURES / "sample_tx.json").read_text())


@pytest.fixture
def sample_tx(sample_tx_json: Dict[str, Any]) -> SignedTransaction:
    tx = from_json_dict(sample_tx_json)
    assert isinstance(tx, SignedTransaction)
    return tx


@pytest.fixture
def fast_config() -> SDKConfig:
    """Small blocks, few retries and tiny thresholds so tests stay quick."""
    return SDKConfig(
        gateway_url="http://gateway.test/",
        inline_threshold=16,
        block_size=4,
        retries=3,
        retry_delay=0.25,
        buffer_factor=2,
        buffer=1,
    )


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()
