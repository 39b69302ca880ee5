import asyncio
from dataclasses import replace
from typing import Any, Callable, Dict, List

import httpx
import pytest

from weave_sdk.errors import ChunkUploadFailed, EncodingError, StatusCodeNotOk, UnsignedTransaction
from weave_sdk.tx.build import build_transaction
from weave_sdk.tx.chunks import validate_path
from weave_sdk.tx.encode import from_json_dict
from weave_sdk.tx.send import SubmissionPipeline, submit_transaction
from weave_sdk.tx.sign import is_valid, sign_transaction
from weave_sdk.tx.types import Transaction
from weave_sdk.utils.bytes import b64url_decode


class _Resp:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class FakeGateway:
    """
    In-memory gateway stub. Records every body and tracks how many chunk
    requests are in flight at once.
    """

    def __init__(
        self,
        *,
        tx_status: Callable[[int], int] = lambda attempt: 200,
        chunk_status: Callable[[Dict[str, Any], int], int] = lambda body, attempt: 200,
        chunk_delay: float = 0.0,
    ) -> None:
        self.tx_status = tx_status
        self.chunk_status = chunk_status
        self.chunk_delay = chunk_delay
        self.tx_bodies: List[Dict[str, Any]] = []
        self.chunk_bodies: List[Dict[str, Any]] = []
        self._chunk_attempts: Dict[str, int] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def post_tx(self, body: Dict[str, Any]) -> _Resp:
        self.tx_bodies.append(body)
        status = self.tx_status(len(self.tx_bodies))
        if status < 0:
            raise httpx.ConnectError("connection refused")
        return _Resp(status)

    async def post_chunk(self, body: Dict[str, Any]) -> _Resp:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.chunk_delay)
            self.chunk_bodies.append(body)
            n = self._chunk_attempts.get(body["offset"], 0) + 1
            self._chunk_attempts[body["offset"]] = n
            return _Resp(self.chunk_status(body, n))
        finally:
            self.in_flight -= 1

    def uploaded(self) -> Dict[int, bytes]:
        return {int(b["offset"]): b64url_decode(b["chunk"]) for b in self.chunk_bodies}


def _signed(provider, data: bytes, config, **kw):
    tx = build_transaction(
        provider,
        data=data,
        fee=1000,
        last_reference=b"\x07" * 32,
        block_size=config.block_size,
        **kw,
    )
    return sign_transaction(tx, provider)


# --- header --------------------------------------------------------------------


@pytest.mark.asyncio
async def test_post_transaction_success(fresh_provider, fast_config, sleeps):
    gw = FakeGateway()
    signed = _signed(fresh_provider, b"hi", fast_config)
    pipeline = SubmissionPipeline(gw, fast_config, sleep=sleeps)

    tx_id, fee = await pipeline.post_transaction(signed)

    assert (tx_id, fee) == (signed.id_b64, 1000)
    assert len(gw.tx_bodies) == 1
    assert gw.tx_bodies[0]["id"] == signed.id_b64
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_post_transaction_retry_exhaustion(fresh_provider, fast_config, sleeps):
    gw = FakeGateway(tx_status=lambda attempt: 503)
    signed = _signed(fresh_provider, b"hi", fast_config)
    pipeline = SubmissionPipeline(gw, fast_config, sleep=sleeps)

    with pytest.raises(StatusCodeNotOk) as ei:
        await pipeline.post_transaction(signed)

    assert len(gw.tx_bodies) == fast_config.retries
    # every attempt posts the same full body
    assert all(b == gw.tx_bodies[0] for b in gw.tx_bodies)
    # delay only between attempts
    assert sleeps.calls == [fast_config.retry_delay] * (fast_config.retries - 1)
    assert ei.value.status == 503
    assert ei.value.attempts == fast_config.retries


@pytest.mark.asyncio
async def test_post_transaction_recovers_after_failures(fresh_provider, fast_config, sleeps):
    # transport error, then 500, then success
    gw = FakeGateway(tx_status=lambda attempt: {1: -1, 2: 500}.get(attempt, 200))
    signed = _signed(fresh_provider, b"hi", fast_config)

    tx_id, _ = await SubmissionPipeline(gw, fast_config, sleep=sleeps).post_transaction(signed)

    assert tx_id == signed.id_b64
    assert len(gw.tx_bodies) == 3
    assert sleeps.calls == [fast_config.retry_delay] * 2


@pytest.mark.asyncio
async def test_only_200_counts_as_success(fresh_provider, fast_config, sleeps):
    gw = FakeGateway(tx_status=lambda attempt: 208)
    signed = _signed(fresh_provider, b"hi", fast_config)
    with pytest.raises(StatusCodeNotOk):
        await SubmissionPipeline(gw, fast_config, sleep=sleeps).post_transaction(signed)


@pytest.mark.asyncio
async def test_unsigned_transaction_is_never_posted(fast_config, sleeps):
    gw = FakeGateway()
    pipeline = SubmissionPipeline(gw, fast_config, sleep=sleeps)
    with pytest.raises(UnsignedTransaction):
        await pipeline.post_transaction(Transaction(fee=1))
    with pytest.raises(UnsignedTransaction):
        await pipeline.submit(Transaction(fee=1, data=b"x" * 100))
    assert gw.tx_bodies == [] and gw.chunk_bodies == []
    assert sleeps.calls == []


# --- routing -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_payload_at_threshold_goes_inline(fresh_provider, fast_config, sleeps):
    data = b"a" * fast_config.inline_threshold
    gw = FakeGateway()
    signed = _signed(fresh_provider, data, fast_config)

    await SubmissionPipeline(gw, fast_config, sleep=sleeps).submit(signed)

    assert len(gw.tx_bodies) == 1
    assert b64url_decode(gw.tx_bodies[0]["data"]) == data
    assert gw.chunk_bodies == []


@pytest.mark.asyncio
async def test_payload_above_threshold_is_chunked(fresh_provider, fast_config, sleeps):
    data = bytes(range(fast_config.inline_threshold + 1))
    gw = FakeGateway()
    signed = _signed(fresh_provider, data, fast_config)

    tx_id, fee = await SubmissionPipeline(gw, fast_config, sleep=sleeps).submit(signed)

    assert tx_id == signed.id_b64 and fee == 1000
    assert len(gw.tx_bodies) == 1
    assert gw.tx_bodies[0]["data"] == ""
    assert gw.tx_bodies[0]["data_size"] == str(len(data))
    # 17 bytes in 4-byte blocks
    assert len(gw.chunk_bodies) == 5
    uploaded = gw.uploaded()
    assert sorted(uploaded) == [0, 4, 8, 12, 16]
    assert b"".join(uploaded[k] for k in sorted(uploaded)) == data
    for body in gw.chunk_bodies:
        assert body["data_root"] == gw.tx_bodies[0]["data_root"]
        rng = validate_path(
            b64url_decode(body["data_root"]),
            int(body["offset"]),
            int(body["data_size"]),
            b64url_decode(body["data_path"]),
        )
        assert rng is not None and rng[0] == int(body["offset"])


@pytest.mark.asyncio
async def test_submit_with_separate_inline_payload(fresh_provider, fast_config, sleeps):
    data = b"small"
    tx = build_transaction(
        fresh_provider, data=data, fee=1, last_reference=b"a", block_size=fast_config.block_size
    )
    signed = replace(sign_transaction(tx, fresh_provider), data=b"")
    gw = FakeGateway()

    await SubmissionPipeline(gw, fast_config, sleep=sleeps).submit(signed, data)

    assert b64url_decode(gw.tx_bodies[0]["data"]) == data


# --- chunks --------------------------------------------------------------------


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_bound(fresh_provider, fast_config, sleeps):
    data = bytes(200)  # 50 chunks of 4 bytes
    gw = FakeGateway(chunk_delay=0.001)
    signed = _signed(fresh_provider, data, fast_config)
    pipeline = SubmissionPipeline(gw, fast_config, sleep=sleeps)

    uploaded = await pipeline.upload_chunks(signed, data, buffer=3)

    assert uploaded == 50
    assert len(gw.chunk_bodies) == 50
    assert gw.max_in_flight <= fast_config.concurrency(3) == 6
    # the pool is actually used
    assert gw.max_in_flight > 1


@pytest.mark.asyncio
async def test_chunk_retries_are_independent(fresh_provider, fast_config, sleeps):
    # chunk at offset 4 fails once, then succeeds
    def status(body, attempt):
        return 500 if body["offset"] == "4" and attempt == 1 else 200

    data = bytes(range(20))
    gw = FakeGateway(chunk_status=status)
    signed = _signed(fresh_provider, data, fast_config)

    assert await SubmissionPipeline(gw, fast_config, sleep=sleeps).upload_chunks(signed, data) == 5
    assert len(gw.chunk_bodies) == 6
    assert sleeps.calls == [fast_config.retry_delay]


@pytest.mark.asyncio
async def test_failed_chunk_does_not_abort_siblings(fresh_provider, fast_config, sleeps):
    def status(body, attempt):
        return 502 if body["offset"] in ("0", "12") else 200

    data = bytes(range(20))
    gw = FakeGateway(chunk_status=status)
    signed = _signed(fresh_provider, data, fast_config)

    with pytest.raises(ChunkUploadFailed) as ei:
        await SubmissionPipeline(gw, fast_config, sleep=sleeps).upload_chunks(signed, data)

    assert ei.value.failed == [0, 3]
    assert ei.value.total == 5
    # the three good chunks went up once each, the bad ones exhausted retries
    assert len(gw.chunk_bodies) == 3 + 2 * fast_config.retries
    assert {int(b["offset"]) for b in gw.chunk_bodies} == {0, 4, 8, 12, 16}


@pytest.mark.asyncio
async def test_payload_must_match_data_root(fresh_provider, fast_config, sleeps):
    data = bytes(range(20))
    signed = _signed(fresh_provider, data, fast_config)
    gw = FakeGateway()
    pipeline = SubmissionPipeline(gw, fast_config, sleep=sleeps)

    tampered = bytearray(data)
    tampered[7] ^= 1
    with pytest.raises(EncodingError):
        await pipeline.upload_chunks(signed, bytes(tampered))
    with pytest.raises(EncodingError):
        await pipeline.submit(signed, bytes(tampered))
    # nothing is posted when the payload is inconsistent
    assert gw.tx_bodies == [] and gw.chunk_bodies == []


@pytest.mark.asyncio
@pytest.mark.parametrize("other", [b"other payload", b"HELLO"])
async def test_inline_payload_must_match_commitment(fresh_provider, fast_config, sleeps, other):
    # a different size, then the same size with different bytes
    signed = _signed(fresh_provider, b"hello", fast_config)
    gw = FakeGateway()

    with pytest.raises(EncodingError) as ei:
        await SubmissionPipeline(gw, fast_config, sleep=sleeps).submit(signed, other)

    assert ei.value.field == ("data_size" if len(other) != 5 else "data_root")
    assert gw.tx_bodies == []


@pytest.mark.asyncio
async def test_format1_inline_payload_must_equal_signed_data(fresh_provider, fast_config, sleeps):
    signed = _signed(fresh_provider, b"hello", fast_config, format=1)
    gw = FakeGateway()
    pipeline = SubmissionPipeline(gw, fast_config, sleep=sleeps)

    with pytest.raises(EncodingError) as ei:
        await pipeline.submit(signed, b"EVIL!")
    assert ei.value.field == "data"
    assert gw.tx_bodies == []

    # an equal copy is accepted and the posted body still verifies
    await pipeline.submit(signed, bytearray(b"hello"))
    assert is_valid(from_json_dict(gw.tx_bodies[0]))


@pytest.mark.asyncio
async def test_non_positive_fee_is_never_posted(fresh_provider, fast_config, sleeps):
    tx = build_transaction(fresh_provider, data=b"hi", fee=0, last_reference=b"a")
    signed = sign_transaction(tx, fresh_provider)
    gw = FakeGateway()

    with pytest.raises(EncodingError) as ei:
        await SubmissionPipeline(gw, fast_config, sleep=sleeps).submit(signed)

    assert ei.value.field == "fee"
    assert gw.tx_bodies == []
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_format1_cannot_be_chunked(fresh_provider, fast_config, sleeps):
    data = b"z" * 20
    signed = _signed(fresh_provider, data, fast_config, format=1, inline_threshold=100)
    gw = FakeGateway()
    with pytest.raises(EncodingError):
        await SubmissionPipeline(gw, fast_config, sleep=sleeps).submit(signed)
    assert gw.tx_bodies == []


@pytest.mark.asyncio
async def test_timeout_abandons_in_flight_chunks(fresh_provider, fast_config):
    data = bytes(40)
    gw = FakeGateway(chunk_delay=10.0)
    signed = _signed(fresh_provider, data, fast_config)

    with pytest.raises(TimeoutError):
        await SubmissionPipeline(gw, fast_config).submit(signed, timeout=0.05)

    # header went out, chunk requests were cancelled mid-flight
    assert len(gw.tx_bodies) == 1
    assert gw.chunk_bodies == []
    assert gw.in_flight == 0


@pytest.mark.asyncio
async def test_submit_transaction_helper(fresh_provider, fast_config):
    gw = FakeGateway()
    signed = _signed(fresh_provider, b"", fast_config)
    tx_id, fee = await submit_transaction(gw, signed, config=fast_config)
    assert tx_id == signed.id_b64
    assert gw.tx_bodies[0]["data"] == ""
    assert gw.tx_bodies[0]["data_root"] == ""
