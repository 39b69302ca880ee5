"""
weave - command line interface for the weave SDK.

Commands:
  weave address --keyfile wallet.json
  weave anchor
  weave price 1048576 [--target ADDRESS]
  weave sign --keyfile wallet.json --data-file blob.bin --tag App-Name=Test -o tx.json
  weave verify tx.json
  weave submit tx.json [--data-file blob.bin] [--buffer 2] [--timeout 600]

Global options:
  --gateway TEXT     Override the gateway URL (WEAVE_GATEWAY_URL)
  --log-level TEXT   Logging level (WEAVE_LOG_LEVEL, default WARNING)

All other settings (retries, block size, thresholds) come from the WEAVE_*
environment variables read by `SDKConfig.from_env`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, NoReturn, Optional, Tuple

import typer

from ..config import SDKConfig
from ..crypto.provider import RsaProvider
from ..errors import WeaveSdkError
from ..gateway.http import GatewayClient
from ..tx.build import build_transaction
from ..tx.encode import dumps, loads
from ..tx.send import SubmissionPipeline
from ..tx.sign import sign_transaction, verify_transaction
from ..tx.types import SignedTransaction
from ..utils.bytes import b64url_decode, b64url_encode

log = logging.getLogger(__name__)

app = typer.Typer(
    name="weave",
    help="Sign, verify and submit transactions to a weave gateway",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.gateway_url: Optional[str] = None


_ctx = GlobalContext()


@app.callback()
def main_callback(
    gateway: Optional[str] = typer.Option(
        None,
        "--gateway",
        help="Gateway URL (default: WEAVE_GATEWAY_URL or https://arweave.net/)",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
        envvar="WEAVE_LOG_LEVEL",
    ),
) -> None:
    """
    weave CLI: build, sign, verify and post transactions with large payloads.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _ctx.gateway_url = gateway


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _config() -> SDKConfig:
    try:
        return SDKConfig.with_overrides(SDKConfig.from_env(), gateway_url=_ctx.gateway_url)
    except ValueError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(2)


def _fail(what: str, e: BaseException) -> NoReturn:
    typer.echo(f"Error {what}: {e}", err=True)
    raise typer.Exit(1)


def _parse_tags(raw: Optional[List[str]]) -> List[Tuple[str, str]]:
    tags: List[Tuple[str, str]] = []
    for item in raw or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected NAME=VALUE, got {item!r}", param_hint="--tag")
        tags.append((name, value))
    return tags


def _load_provider(keyfile: Path) -> RsaProvider:
    try:
        return RsaProvider.from_keyfile(keyfile)
    except (OSError, ValueError, KeyError, WeaveSdkError) as e:
        _fail(f"loading key file {keyfile}", e)


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@app.command()
def address(
    keyfile: Path = typer.Option(..., "--keyfile", "-k", help="JWK wallet file"),
) -> None:
    """Print the wallet address (base64url SHA-256 of the public modulus)."""
    provider = _load_provider(keyfile)
    typer.echo(provider.address_b64())


@app.command()
def anchor() -> None:
    """Fetch the current anchor for `last_tx`."""
    cfg = _config()

    async def _run() -> bytes:
        async with GatewayClient.from_config(cfg) as gw:
            return await gw.get_anchor()

    try:
        value = asyncio.run(_run())
    except WeaveSdkError as e:
        _fail("fetching anchor", e)
    typer.echo(b64url_encode(value))


@app.command()
def price(
    byte_count: int = typer.Argument(..., min=0, help="Payload size in bytes"),
    target: Optional[str] = typer.Option(None, "--target", help="Recipient address (base64url)"),
) -> None:
    """Query the fee for storing BYTE_COUNT bytes."""
    cfg = _config()
    try:
        target_bytes = b64url_decode(target) if target else None
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--target")

    async def _run() -> int:
        async with GatewayClient.from_config(cfg) as gw:
            return await gw.get_price(byte_count, target_bytes)

    try:
        fee = asyncio.run(_run())
    except WeaveSdkError as e:
        _fail("fetching price", e)
    typer.echo(str(fee))


@app.command()
def sign(
    keyfile: Path = typer.Option(..., "--keyfile", "-k", help="JWK wallet file"),
    data_file: Optional[Path] = typer.Option(None, "--data-file", "-d", help="Payload file"),
    target: str = typer.Option("", "--target", help="Recipient address (base64url)"),
    quantity: int = typer.Option(0, "--quantity", min=0, help="Amount transferred to --target"),
    fee: Optional[int] = typer.Option(None, "--fee", min=0, help="Fee (fetched from /price if omitted)"),
    anchor_b64: Optional[str] = typer.Option(
        None, "--anchor", help="Anchor, base64url (fetched from /tx_anchor if omitted)"
    ),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag as NAME=VALUE (repeatable)"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Adds a Content-Type tag"),
    fmt: int = typer.Option(2, "--format", min=1, max=2, help="Transaction format"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write signed JSON to file"),
) -> None:
    """
    Build and sign a transaction, printing (or saving) its JSON.

    Payloads above the inline threshold are left out of the JSON; pass the
    same --data-file to `weave submit`.
    """
    cfg = _config()
    provider = _load_provider(keyfile)
    tags = _parse_tags(tag)
    try:
        data = data_file.read_bytes() if data_file else b""
        target_bytes = b64url_decode(target) if target else b""
        anchor_bytes = b64url_decode(anchor_b64) if anchor_b64 else None
    except OSError as e:
        _fail(f"reading {data_file}", e)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    async def _lookups() -> Tuple[int, bytes]:
        async with GatewayClient.from_config(cfg) as gw:
            f = fee if fee is not None else await gw.get_price(len(data), target_bytes or None)
            a = anchor_bytes if anchor_bytes is not None else await gw.get_anchor()
            return f, a

    try:
        if fee is None or anchor_bytes is None:
            fee_value, anchor_value = asyncio.run(_lookups())
        else:
            fee_value, anchor_value = fee, anchor_bytes
        tx = build_transaction(
            provider,
            data=data,
            target=target_bytes,
            quantity=quantity,
            fee=fee_value,
            last_reference=anchor_value,
            tags=tags,
            content_type=content_type,
            format=fmt,
            block_size=cfg.block_size,
            inline_threshold=cfg.inline_threshold,
        )
        signed = sign_transaction(tx, provider)
    except WeaveSdkError as e:
        _fail("signing transaction", e)

    text = dumps(signed, include_data=len(data) <= cfg.inline_threshold, indent=2)
    if output:
        output.write_text(text + "\n")
        typer.echo(f"✓ Signed transaction {signed.id_b64} saved to {output}")
    else:
        typer.echo(text)


@app.command()
def verify(
    tx_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Transaction JSON file"),
) -> None:
    """Verify the signature and id of a transaction JSON file."""
    try:
        tx = loads(tx_file.read_bytes())
        verify_transaction(tx)
    except WeaveSdkError as e:
        _fail("verifying transaction", e)
    assert isinstance(tx, SignedTransaction)
    typer.echo(f"✓ valid {tx.id_b64}")


@app.command()
def submit(
    tx_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Signed transaction JSON file"),
    data_file: Optional[Path] = typer.Option(
        None, "--data-file", "-d", help="Payload file (default: the JSON's inline data)"
    ),
    buffer: Optional[int] = typer.Option(None, "--buffer", min=1, help="Chunk concurrency buffer"),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=0, help="Give up after N seconds"),
) -> None:
    """Post a signed transaction and, when large, its chunks."""
    cfg = _config()
    try:
        tx = loads(tx_file.read_bytes())
        data = data_file.read_bytes() if data_file else None
    except WeaveSdkError as e:
        _fail(f"reading {tx_file}", e)
    except OSError as e:
        _fail(f"reading {data_file}", e)

    async def _run() -> Tuple[str, int]:
        async with GatewayClient.from_config(cfg) as gw:
            pipeline = SubmissionPipeline(gw, cfg)
            return await pipeline.submit(tx, data, buffer=buffer, timeout=timeout)

    try:
        tx_id, reward = asyncio.run(_run())
    except (WeaveSdkError, TimeoutError) as e:
        _fail("submitting transaction", e)
    typer.echo(_pretty({"id": tx_id, "reward": str(reward)}))


def main() -> None:
    """Entry point for the weave CLI."""
    app()


if __name__ == "__main__":
    main()
