"""
weave_sdk.gateway.http
======================

Async HTTP client for the gateway endpoints the SDK consumes:

- **POST /tx**                      submit a transaction header (JSON)
- **POST /chunk**                   submit one data chunk (JSON)
- **GET  /tx_anchor**               current anchor for `last_tx`
- **GET  /price/{bytes}[/{target}]** fee in the network's base unit

This is a transport boundary only. `post_tx` / `post_chunk` return the raw
`httpx.Response` and let `httpx` transport errors propagate; the retry and
backoff policy lives in `weave_sdk.tx.send`. The lookups (`get_anchor`,
`get_price`) are single requests that raise `GatewayError` on failure.

Typical usage
-------------
    async with GatewayClient.from_config(SDKConfig.from_env()) as gw:
        anchor = await gw.get_anchor()
        fee = await gw.get_price(len(data))
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin

import httpx

from ..config import SDKConfig
from ..errors import GatewayError
from ..utils.bytes import b64url_decode, b64url_encode

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

__all__ = ["GatewayClient"]


class GatewayClient:
    """
    Parameters
    ----------
    base_url : str
        Gateway root, e.g. "https://arweave.net/".
    timeout_s : float
        Per-request timeout.
    headers : Mapping[str, str] | None
        Extra headers merged over the JSON defaults.
    client : httpx.AsyncClient | None
        Optional pre-built client (tests, custom transports). Not closed by
        `aclose()` when supplied by the caller.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        merged: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if headers:
            merged.update(dict(headers))
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=float(timeout_s), headers=merged)

    @classmethod
    def from_config(cls, config: SDKConfig, **kwargs: Any) -> "GatewayClient":
        return cls(
            config.gateway_url,
            timeout_s=config.request_timeout,
            headers=config.http_headers(),
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # --- helpers ---------------------------------------------------------

    def url(self, path: str) -> str:
        return urljoin(self._base_url, path.lstrip("/"))

    async def _get_text(self, path: str) -> str:
        url = self.url(path)
        try:
            resp = await self._http.get(url)
        except httpx.HTTPError as e:
            raise GatewayError(f"GET failed: {e}", url=url) from e
        if resp.status_code != 200:
            raise GatewayError(resp.text[:256] or "unexpected status", status=resp.status_code, url=url)
        return resp.text.strip()

    # --- submission (no retries here) ------------------------------------

    async def post_tx(self, body: JsonDict) -> httpx.Response:
        """POST a transaction header. Transport errors propagate."""
        return await self._http.post(self.url("tx"), json=body)

    async def post_chunk(self, body: JsonDict) -> httpx.Response:
        """POST one chunk. Transport errors propagate."""
        return await self._http.post(self.url("chunk"), json=body)

    # --- lookups ---------------------------------------------------------

    async def get_anchor(self) -> bytes:
        """Fetch the current anchor used to populate `last_reference`."""
        text = await self._get_text("tx_anchor")
        try:
            anchor = b64url_decode(text)
        except ValueError as e:
            raise GatewayError(f"anchor is not base64url: {text[:64]!r}", url=self.url("tx_anchor")) from e
        if not anchor:
            raise GatewayError("gateway returned an empty anchor", url=self.url("tx_anchor"))
        log.debug("fetched anchor %s", text)
        return anchor

    async def get_price(self, byte_count: int, target: Optional[bytes] = None) -> int:
        """
        Fee required to store `byte_count` bytes (and pay `target`, if given).
        """
        if byte_count < 0:
            raise ValueError("byte_count must be non-negative")
        path = f"price/{int(byte_count)}"
        if target:
            path += f"/{b64url_encode(target)}"
        text = await self._get_text(path)
        if not text.isdigit():
            raise GatewayError(f"price is not an integer: {text[:64]!r}", url=self.url(path))
        return int(text)
