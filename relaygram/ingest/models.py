"""Shared message types and the transport capabilities the core depends on."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol


class MediaKind(str, enum.Enum):
    PHOTO = "photo"
    IMAGE_DOCUMENT = "image_document"
    VIDEO_DOCUMENT = "video_document"
    OTHER = "other"


QUALIFYING_KINDS = frozenset(
    {MediaKind.PHOTO, MediaKind.IMAGE_DOCUMENT, MediaKind.VIDEO_DOCUMENT}
)


@dataclass
class InboundMessage:
    """Transport-neutral view of one incoming message.

    `media` is an opaque handle that the publisher knows how to resend.
    """

    message_id: int
    chat_id: int
    sender_username: str = ""
    text: str = ""
    group_id: Optional[int] = None
    chat_title: str = ""
    media_kind: Optional[MediaKind] = None
    media: Any = None
    mime_type: Optional[str] = None


@dataclass
class OutboundPost:
    text: str
    media: List[Any] = field(default_factory=list)


class MessageChannel(Protocol):
    async def send_text(self, peer: str, text: str) -> None:
        """Send plain text to a peer by name. Raises DeliveryError."""
        ...


class Publisher(Protocol):
    async def send_single(self, destination: str, post: OutboundPost) -> None:
        """Publish text with at most one media item. Raises DeliveryError."""
        ...

    async def send_group(self, destination: str, post: OutboundPost) -> None:
        """Publish several media items as one grouped post. Raises DeliveryError."""
        ...
