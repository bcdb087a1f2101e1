"""Exception types shared across relaygram."""

from __future__ import annotations


class RelaygramError(Exception):
    """Base class for relaygram errors."""


class DeliveryError(RelaygramError):
    """Peer lookup or send failed at the transport layer.

    Always caught at the call site: translations fall back to the source text
    and publishes drop the unit of work.
    """

    def __init__(self, peer: str, reason: str) -> None:
        super().__init__(f"delivery to {peer!r} failed: {reason}")
        self.peer = peer
        self.reason = reason


class ConfigurationError(RelaygramError):
    """Missing or malformed configuration detected before the loop starts."""
