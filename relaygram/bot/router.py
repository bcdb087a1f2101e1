"""Inbound message dispatch.

Replies from the translation bot go to the correlator. Posts from allowed
sources go to the album aggregator when grouped, otherwise straight to the
destination. Everything else is ignored.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..ingest.album_aggregator import AlbumAggregator
from ..ingest.composer import compose_caption, message_link, qualifying_media
from ..ingest.models import InboundMessage, OutboundPost, Publisher
from ..metrics.registry import MESSAGES_RECEIVED, POSTS_PUBLISHED, PUBLISH_FAILURES
from ..runtime.errors import DeliveryError
from ..translate.correlator import TranslationCorrelator


logger = logging.getLogger("relaygram.router")


class MessageRouter:
    def __init__(
        self,
        correlator: TranslationCorrelator,
        aggregator: AlbumAggregator,
        publisher: Publisher,
        sources: Iterable[str],
        destination: str,
        label: str,
    ) -> None:
        self._correlator = correlator
        self._aggregator = aggregator
        self._publisher = publisher
        self._sources = {s.strip().lower().lstrip("@") for s in sources if s.strip()}
        self._responder = correlator.responder.lower()
        self._destination = destination
        self._label = label

    async def route(self, message: InboundMessage) -> Optional[str]:
        """Dispatch one message. Returns the route taken, for logs and tests."""
        sender = (message.sender_username or "").lower()

        if sender and sender == self._responder:
            MESSAGES_RECEIVED.labels(route="reply").inc()
            self._correlator.handle_reply(message.text)
            return "reply"

        if sender not in self._sources:
            MESSAGES_RECEIVED.labels(route="ignored").inc()
            return None

        if message.group_id is not None:
            MESSAGES_RECEIVED.labels(route="album").inc()
            self._aggregator.enqueue(message)
            return "album"

        MESSAGES_RECEIVED.labels(route="single").inc()
        await self._publish_single(message)
        return "single"

    async def _publish_single(self, message: InboundMessage) -> None:
        original = (message.text or "").strip()
        translated = await self._correlator.translate(original) if original else ""
        caption = compose_caption(
            translated or original,
            message_link(message.sender_username.lower(), message.message_id),
            self._label,
        )

        media = qualifying_media(message)
        post = OutboundPost(text=caption, media=[media] if media is not None else [])
        kind = "single" if post.media else "text"
        try:
            await self._publisher.send_single(self._destination, post)
        except DeliveryError as e:
            PUBLISH_FAILURES.labels(kind=kind).inc()
            logger.error(
                "send failed",
                extra={"message_id": message.message_id, "error": str(e)},
            )
            return
        POSTS_PUBLISHED.labels(kind=kind).inc()
        logger.info("message sent", extra={"message_id": message.message_id, "kind": kind})
