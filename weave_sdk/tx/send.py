"""
weave_sdk.tx.send
=================

Publish signed transactions to a gateway.

Primary entry points
--------------------
- SubmissionPipeline.post_transaction(signed, include_data=True) -> (id, fee)
    Posts the header to `POST /tx`, retrying up to `config.retries` attempts
    with a fixed `config.retry_delay` sleep between attempts.

- SubmissionPipeline.upload_chunks(signed, data, buffer=None) -> int
    Splits `data` into `config.block_size` chunks and posts each to
    `POST /chunk` through a fixed pool of workers. Every chunk has its own
    retry budget; a failing chunk does not stop its siblings.

- SubmissionPipeline.submit(signed, data=None, buffer=None, timeout=None)
    Routes by payload size. Up to `config.inline_threshold` bytes the data
    rides inline in the header; anything larger posts the header without
    data and then uploads the chunks.

- submit_transaction(gateway, signed, ...) -> (id, fee)
    One-shot convenience wrapper around `SubmissionPipeline.submit`.

`id` is returned as unpadded base64url text, the form gateways and explorers
use. Chunks that uploaded before a failure or timeout are left on the
gateway; the network ignores them unless the full set under `data_root`
arrives.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Protocol, Tuple

import httpx

from ..config import SDKConfig
from ..errors import ChunkUploadFailed, EncodingError, StatusCodeNotOk, UnsignedTransaction
from ..utils.bytes import BytesLike, b64url_encode
from .chunks import Chunk, ChunkedPayload, chunk_payload, compute_data_root
from .encode import to_json_dict
from .types import FORMAT_V1, AnyTransaction, SignedTransaction

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
Sleep = Callable[[float], Awaitable[Any]]

__all__ = ["SubmissionPipeline", "submit_transaction", "chunk_body"]


class _Gateway(Protocol):
    """
    Minimal interface expected from `weave_sdk.gateway.GatewayClient`.

    Responses only need a `status_code`; transport failures raise
    `httpx.HTTPError`.
    """

    async def post_tx(self, body: JsonDict) -> Any: ...

    async def post_chunk(self, body: JsonDict) -> Any: ...


def _require_signed(tx: AnyTransaction) -> SignedTransaction:
    if not isinstance(tx, SignedTransaction) or not tx.id:
        raise UnsignedTransaction("transaction has no id; sign it before posting")
    return tx


def chunk_body(payload: ChunkedPayload, chunk: Chunk) -> JsonDict:
    """JSON body for `POST /chunk`."""
    return {
        "data_root": b64url_encode(payload.data_root),
        "data_size": str(payload.data_size),
        "data_path": b64url_encode(chunk.data_path),
        "chunk": b64url_encode(bytes(chunk.data)),
        "offset": str(chunk.offset),
    }


class SubmissionPipeline:
    """
    Parameters
    ----------
    gateway : GatewayClient (or anything with async post_tx/post_chunk)
    config : SDKConfig | None
        Retry bound, delay, block size, threshold and concurrency. Defaults
        to `SDKConfig()`.
    sleep : async callable
        Used for the inter-attempt delay. Tests pass a recorder.
    """

    def __init__(
        self,
        gateway: _Gateway,
        config: Optional[SDKConfig] = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.gateway = gateway
        self.config = config or SDKConfig()
        self._sleep = sleep

    # --- header ----------------------------------------------------------

    async def post_transaction(
        self, signed: AnyTransaction, *, include_data: bool = True
    ) -> Tuple[str, int]:
        """
        POST the transaction header until the gateway answers 200.

        Raises:
            UnsignedTransaction  before any request if the id is empty
            EncodingError        before any request if the fee is not positive
            StatusCodeNotOk      after `config.retries` failed attempts
        """
        tx = _require_signed(signed)
        if tx.fee <= 0:
            raise EncodingError(f"fee must be positive, got {tx.fee}", field="fee")
        body = to_json_dict(tx, include_data=include_data)
        retries = self.config.retries
        last_status: Optional[int] = None

        for attempt in range(1, retries + 1):
            try:
                resp = await self.gateway.post_tx(body)
            except httpx.HTTPError as e:
                log.warning("POST /tx %s attempt %d/%d failed: %s", tx.id_b64, attempt, retries, e)
            else:
                if resp.status_code == 200:
                    log.info("posted transaction %s (attempt %d)", tx.id_b64, attempt)
                    return tx.id_b64, tx.fee
                last_status = resp.status_code
                log.warning(
                    "POST /tx %s attempt %d/%d returned HTTP %d",
                    tx.id_b64, attempt, retries, resp.status_code,
                )
            if attempt < retries:
                await self._sleep(self.config.retry_delay)

        raise StatusCodeNotOk(
            f"transaction {tx.id_b64} was not accepted",
            status=last_status,
            attempts=retries,
            url="/tx",
        )

    # --- chunks ----------------------------------------------------------

    def plan_chunks(self, signed: AnyTransaction, data: BytesLike) -> ChunkedPayload:
        """
        Chunk `data` and check it against the transaction's commitment.

        Raises EncodingError for format-1 transactions or when the payload's
        data root or size differs from the signed one.
        """
        tx = _require_signed(signed)
        if tx.format == FORMAT_V1:
            raise EncodingError("format 1 transactions carry data inline and cannot be chunked", field="format")
        payload = chunk_payload(data, block_size=self.config.block_size)
        if payload.data_root != tx.data_root:
            raise EncodingError("payload does not match the transaction data_root", field="data_root")
        if payload.data_size != tx.data_size:
            raise EncodingError(
                f"payload is {payload.data_size} bytes, transaction declares {tx.data_size}",
                field="data_size",
            )
        return payload

    def _check_inline(self, tx: SignedTransaction, data: BytesLike) -> bytes:
        # Format 1 signs the bytes themselves; format 2 signs size and root.
        payload = bytes(data)
        if tx.format == FORMAT_V1:
            if payload != tx.data:
                raise EncodingError("payload differs from the signed format 1 data", field="data")
            return payload
        if len(payload) != tx.data_size:
            raise EncodingError(
                f"payload is {len(payload)} bytes, transaction declares {tx.data_size}",
                field="data_size",
            )
        if compute_data_root(payload, block_size=self.config.block_size) != tx.data_root:
            raise EncodingError("payload does not match the transaction data_root", field="data_root")
        return payload

    async def upload_chunks(
        self, signed: AnyTransaction, data: BytesLike, *, buffer: Optional[int] = None
    ) -> int:
        """
        Upload every chunk of `data`; return how many were uploaded.

        Raises ChunkUploadFailed once all workers have finished if any chunk
        exhausted its retries.
        """
        payload = self.plan_chunks(signed, data)
        return await self._upload(payload, buffer)

    async def _upload(self, payload: ChunkedPayload, buffer: Optional[int]) -> int:
        total = len(payload)
        if total == 0:
            return 0

        workers = min(self.config.concurrency(buffer), total)
        pending: Iterator[Chunk] = iter(payload.chunks)
        failed: List[int] = []

        async def worker() -> None:
            # next() never awaits, so workers can share the iterator.
            for chunk in pending:
                if not await self._post_chunk(payload, chunk):
                    failed.append(chunk.index)

        log.info(
            "uploading %d chunks (%d bytes) with %d workers",
            total, payload.data_size, workers,
        )
        tasks = [asyncio.create_task(worker()) for _ in range(workers)]
        try:
            await asyncio.gather(*tasks)
        finally:
            for t in tasks:
                if not t.done():
                    t.cancel()

        if failed:
            failed.sort()
            raise ChunkUploadFailed(
                f"chunks {failed} exhausted {self.config.retries} attempts",
                failed=failed,
                total=total,
            )
        log.info("uploaded %d chunks for data_root %s", total, b64url_encode(payload.data_root))
        return total

    async def _post_chunk(self, payload: ChunkedPayload, chunk: Chunk) -> bool:
        body = chunk_body(payload, chunk)
        retries = self.config.retries
        for attempt in range(1, retries + 1):
            try:
                resp = await self.gateway.post_chunk(body)
            except httpx.HTTPError as e:
                log.warning("POST /chunk #%d attempt %d/%d failed: %s", chunk.index, attempt, retries, e)
            else:
                if resp.status_code == 200:
                    log.debug("chunk #%d offset=%d uploaded", chunk.index, chunk.offset)
                    return True
                log.warning(
                    "POST /chunk #%d attempt %d/%d returned HTTP %d",
                    chunk.index, attempt, retries, resp.status_code,
                )
            if attempt < retries:
                await self._sleep(self.config.retry_delay)
        return False

    # --- routing ---------------------------------------------------------

    async def submit(
        self,
        signed: AnyTransaction,
        data: Optional[BytesLike] = None,
        *,
        buffer: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[str, int]:
        """
        Post `signed` and its payload, inline or chunked depending on size.

        `data` defaults to `signed.data`. With `timeout`, in-flight requests
        are cancelled and TimeoutError is raised once it elapses.
        """
        tx = _require_signed(signed)
        payload = tx.data if data is None else data
        if timeout is None:
            return await self._submit(tx, payload, buffer)
        try:
            return await asyncio.wait_for(self._submit(tx, payload, buffer), timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"submission of {tx.id_b64} timed out after {timeout}s") from e

    async def _submit(
        self, tx: SignedTransaction, data: BytesLike, buffer: Optional[int]
    ) -> Tuple[str, int]:
        size = len(data)
        if size <= self.config.inline_threshold:
            if data is not tx.data:
                tx = replace(tx, data=self._check_inline(tx, data))
            log.debug("submitting %s inline (%d bytes)", tx.id_b64, size)
            return await self.post_transaction(tx, include_data=True)

        plan = self.plan_chunks(tx, data)
        log.debug("submitting %s chunked (%d bytes, %d chunks)", tx.id_b64, size, len(plan))
        result = await self.post_transaction(tx, include_data=False)
        await self._upload(plan, buffer)
        return result


async def submit_transaction(
    gateway: _Gateway,
    signed: AnyTransaction,
    data: Optional[BytesLike] = None,
    *,
    config: Optional[SDKConfig] = None,
    buffer: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Tuple[str, int]:
    """
    Submit `signed` (and `data`) through a one-off `SubmissionPipeline`.
    """
    return await SubmissionPipeline(gateway, config).submit(
        signed, data, buffer=buffer, timeout=timeout
    )
