"""Request/reply correlation with the external translation bot.

Each request is sent as `"<token>\\n<text>"`. Replies are matched in FIFO
order: the oldest pending request is resolved by the next reply, whatever
token it carries. This assumes the responder answers in the order it was
asked. If it ever reorders or drops a reply, pairings shift by one until the
pending table drains through timeouts.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..ingest.models import MessageChannel
from ..metrics.registry import (
    PENDING_TRANSLATIONS,
    REPLIES_DISCARDED,
    TRANSLATIONS_FAILED,
    TRANSLATIONS_REQUESTED,
    TRANSLATIONS_RESOLVED,
    TRANSLATIONS_TIMED_OUT,
)
from .language_detector import HEBREW_RANGES, ScriptRange, contains_source_script


logger = logging.getLogger("relaygram.translate")

_TOKEN_ALPHABET = string.digits + string.ascii_lowercase


@dataclass
class PendingTranslation:
    token: str
    original_text: str
    deadline: float  # loop.time() based
    settle: asyncio.Future


def extract_translation(reply: Optional[str]) -> str:
    """Drop the reply's first line (the bot's label/echo) and keep the rest.

    Single-line replies are returned whole.
    """
    text = (reply or "").strip()
    lines = text.split("\n")
    if len(lines) >= 2:
        return "\n".join(lines[1:]).strip()
    return text


class TranslationCorrelator:
    """Owns the pending-translation table.

    Only the event loop thread mutates the table. An entry is popped in the
    same step that settles it, so whichever of reply or timeout comes second
    finds nothing and does nothing.
    """

    def __init__(
        self,
        channel: MessageChannel,
        responder: str,
        timeout_seconds: float = 15.0,
        ranges: Sequence[ScriptRange] = HEBREW_RANGES,
    ) -> None:
        self._channel = channel
        self._responder = responder
        self._timeout = timeout_seconds
        self._ranges = tuple(ranges)
        self._pending: "OrderedDict[str, PendingTranslation]" = OrderedDict()

    @property
    def responder(self) -> str:
        return self._responder

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending_tokens(self) -> List[str]:
        return list(self._pending)

    def _new_token(self) -> str:
        while True:
            suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(9))
            token = f"{int(time.time() * 1000)}{suffix}"
            if token not in self._pending:
                return token

    def _remove(self, token: str) -> Optional[PendingTranslation]:
        entry = self._pending.pop(token, None)
        PENDING_TRANSLATIONS.set(len(self._pending))
        return entry

    async def translate(self, text: str) -> str:
        """Return the responder's translation of `text`, or `text` itself.

        Never raises for transport failures or timeouts; both fall back to
        the original text.
        """
        if not text or not text.strip():
            return text
        if not contains_source_script(text, self._ranges):
            logger.debug("no source script detected, keeping original")
            return text

        loop = asyncio.get_running_loop()
        token = self._new_token()
        entry = PendingTranslation(
            token=token,
            original_text=text,
            deadline=loop.time() + self._timeout,
            settle=loop.create_future(),
        )
        self._pending[token] = entry
        PENDING_TRANSLATIONS.set(len(self._pending))
        TRANSLATIONS_REQUESTED.inc()

        try:
            try:
                await self._channel.send_text(self._responder, f"{token}\n{text}")
            except Exception as e:  # DeliveryError, or anything a channel leaks
                self._remove(token)
                TRANSLATIONS_FAILED.inc()
                logger.error(
                    "failed to send translation request",
                    extra={"responder": self._responder, "token": token, "error": str(e)},
                )
                return entry.original_text

            logger.info(
                "translation requested",
                extra={"responder": self._responder, "token": token},
            )
            remaining = max(0.0, entry.deadline - loop.time())
            try:
                return await asyncio.wait_for(entry.settle, timeout=remaining)
            except asyncio.TimeoutError:
                if self._remove(token) is None and _has_result(entry.settle):
                    return entry.settle.result()
                TRANSLATIONS_TIMED_OUT.inc()
                logger.warning(
                    "translation timeout, using original text",
                    extra={"token": token, "timeout_seconds": self._timeout},
                )
                return entry.original_text
        finally:
            # Covers cancellation of the caller as well
            if token in self._pending:
                self._remove(token)

    def handle_reply(self, reply: str) -> bool:
        """Resolve the oldest pending request with the reply's payload.

        Returns False when nothing was pending and the reply was discarded.
        """
        if not self._pending:
            REPLIES_DISCARDED.inc()
            logger.info("responder reply with nothing pending, discarded")
            return False

        token = next(iter(self._pending))
        entry = self._remove(token)
        translated = extract_translation(reply)
        if not entry.settle.done():
            entry.settle.set_result(translated)
        TRANSLATIONS_RESOLVED.inc()
        logger.info(
            "translation received",
            extra={"token": token, "still_pending": len(self._pending)},
        )
        return True


def _has_result(fut: asyncio.Future) -> bool:
    return fut.done() and not fut.cancelled() and fut.exception() is None
