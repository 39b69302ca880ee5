"""Command line tools for the weave SDK.

`weave` wraps the SDK for signing, verifying and posting transactions from a
shell. Key handling is limited to reading existing JWK wallet files.
"""

from __future__ import annotations

__all__ = ["main"]
