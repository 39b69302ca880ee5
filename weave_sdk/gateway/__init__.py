"""
weave_sdk.gateway
=================

HTTP boundary to the gateway (`/tx`, `/chunk`, `/tx_anchor`, `/price`).
"""

from __future__ import annotations

from .http import GatewayClient

__all__ = ["GatewayClient"]
