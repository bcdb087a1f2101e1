"""Caption composition and media selection for outbound posts.

The same composition rule serves single messages and flushed albums:
`<text>\\n\\n<label>: <attribution>`, or just `<label>: <attribution>` when
there is no text.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from ..metrics.registry import POSTS_PUBLISHED, PUBLISH_FAILURES
from ..runtime.errors import DeliveryError
from ..translate.correlator import TranslationCorrelator
from .models import QUALIFYING_KINDS, InboundMessage, OutboundPost, Publisher


logger = logging.getLogger("relaygram.compose")


def is_image_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith("image/")


def is_video_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith("video/")


def compose_caption(text: str, attribution: str, label: str) -> str:
    if text:
        return f"{text}\n\n{label}: {attribution}"
    return f"{label}: {attribution}"


def message_link(username: str, message_id: int) -> str:
    if not username:
        return ""
    return f"https://t.me/{username}/{message_id}"


def album_attribution(first: InboundMessage) -> str:
    """Link to the album's first post, or the channel name without a username."""
    link = message_link(first.sender_username, first.message_id)
    return link or first.chat_title


def qualifying_media(message: InboundMessage) -> Any:
    """Media handle for photos and image/video documents, else None."""
    if message.media is None or message.media_kind not in QUALIFYING_KINDS:
        return None
    return message.media


def caption_source(messages: List[InboundMessage]) -> str:
    for msg in messages:
        text = (msg.text or "").strip()
        if text:
            return text
    return ""


class AlbumPublisher:
    """Turns a flushed album into one grouped post."""

    def __init__(
        self,
        correlator: TranslationCorrelator,
        publisher: Publisher,
        destination: str,
        label: str,
        text_only_fallback: bool = False,
    ) -> None:
        self._correlator = correlator
        self._publisher = publisher
        self._destination = destination
        self._label = label
        self._text_only_fallback = text_only_fallback

    async def process_album(self, messages: List[InboundMessage]) -> Optional[OutboundPost]:
        """Compose and publish an album. Returns the post that was sent, if any."""
        if not messages:
            return None

        original = caption_source(messages)
        translated = await self._correlator.translate(original) if original else ""
        caption = compose_caption(
            translated or original, album_attribution(messages[0]), self._label
        )

        media = [m for m in (qualifying_media(msg) for msg in messages) if m is not None]
        if not media:
            if not self._text_only_fallback:
                logger.info(
                    "album has no qualifying media, dropped",
                    extra={"chat_id": messages[0].chat_id, "item_count": len(messages)},
                )
                return None
            post = OutboundPost(text=caption)
            kind = "text"
            send = self._publisher.send_single
        else:
            post = OutboundPost(text=caption, media=media)
            kind = "group"
            send = self._publisher.send_group

        try:
            await send(self._destination, post)
        except DeliveryError as e:
            PUBLISH_FAILURES.labels(kind=kind).inc()
            logger.error(
                "album send failed",
                extra={"destination": self._destination, "error": str(e)},
            )
            return None

        POSTS_PUBLISHED.labels(kind=kind).inc()
        logger.info("album sent", extra={"items": len(media), "kind": kind})
        return post
