"""
Version helpers for the weave SDK.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    """Default User-Agent sent to gateways, e.g. 'weave-sdk-py/0.1.0'."""
    return f"weave-sdk-py/{__version__}"


__all__ = ["__version__", "user_agent"]
