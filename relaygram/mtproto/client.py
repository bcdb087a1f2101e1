"""MTProto user-session transport using Telethon.

Responsibilities:
- Manage the Telethon client lifecycle and StringSession persistence
- Interactive first login on a terminal; fail fast when unattended
- Send text, single media and grouped media, wrapping failures in DeliveryError
- Convert incoming NewMessage events into `InboundMessage` records
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import getpass
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Optional

from telethon import TelegramClient, events
from telethon.sessions import StringSession

from ..ingest.composer import is_image_mime, is_video_mime
from ..ingest.models import InboundMessage, MediaKind, OutboundPost
from ..runtime.config import AppConfig
from ..runtime.errors import ConfigurationError, DeliveryError


logger = logging.getLogger("relaygram.mtproto")


InboundHandler = Callable[[InboundMessage], Awaitable[Any]]


def resolve_session(config: AppConfig) -> str:
    """Pick the session string from SESSION, SESSION_B64, then the session file."""
    if config.session:
        return config.session
    if config.session_b64:
        try:
            return base64.b64decode(config.session_b64).decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigurationError(f"SESSION_B64 is not valid base64: {e}") from e
    if config.session_file and os.path.exists(config.session_file):
        with open(config.session_file, "r", encoding="utf-8") as f:
            return f.read().strip()
    return ""


async def prompt(label: str, secret: bool = False) -> str:
    """Read a login answer from stdin without blocking the event loop.

    The health server shares the loop and keeps answering while we wait.
    """
    reader = getpass.getpass if secret else input
    loop = asyncio.get_running_loop()
    answer = await loop.run_in_executor(None, reader, label)
    return answer.strip()


def classify_media(message: Any) -> tuple[Optional[MediaKind], Any, Optional[str]]:
    """Return (kind, handle, mime_type) for a Telethon message."""
    if getattr(message, "photo", None):
        return MediaKind.PHOTO, message.photo, "image/jpeg"
    document = getattr(message, "document", None)
    mime = getattr(document, "mime_type", None) if document else None
    if document and is_image_mime(mime):
        return MediaKind.IMAGE_DOCUMENT, message.media, mime
    if document and is_video_mime(mime):
        return MediaKind.VIDEO_DOCUMENT, message.media, mime
    if getattr(message, "media", None):
        return MediaKind.OTHER, message.media, mime
    return None, None, None


class TelethonTransport:
    """Implements the MessageChannel and Publisher capabilities over Telethon.

    Attributes:
    - _client: TelegramClient | None - underlying client instance
    - _entities: cache of resolved peers by name
    """

    def __init__(self, config: AppConfig) -> None:
        self._cfg = config
        self._client: Optional[TelegramClient] = None
        self._entities: Dict[str, Any] = {}

    @property
    def connected(self) -> bool:
        return bool(self._client and self._client.is_connected())

    async def start(self) -> None:
        """Connect with a stored session, or log in interactively on first run."""
        session = resolve_session(self._cfg)
        self._client = TelegramClient(
            StringSession(session),
            self._cfg.api_id,
            self._cfg.api_hash,
            connection_retries=self._cfg.connection_retries,
        )

        if session:
            await self._client.connect()
            if not await self._client.is_user_authorized():
                raise ConfigurationError("stored Telegram session is not authorized")
        else:
            # No TTY in production; fail fast instead of hanging on input()
            if self._cfg.unattended:
                raise ConfigurationError("Missing Telegram SESSION. Set the SESSION env var.")
            await self._client.start(
                phone=lambda: prompt("Phone: "),
                code_callback=lambda: prompt("Code: "),
                password=lambda: prompt("2FA (optional): ", secret=True),
            )
            self._save_session()

        me = await self._client.get_me()
        logger.info("MTProto client started", extra={"user": getattr(me, "username", None)})

        # Resolve the destination once so a bad DEST_CHANNEL fails at startup
        await self._entity(self._cfg.dest_channel)

    def _save_session(self) -> None:
        assert self._client
        saved = self._client.session.save()
        with open(self._cfg.session_file, "w", encoding="utf-8") as f:
            f.write(saved)
        logger.info("session saved", extra={"path": self._cfg.session_file})

    async def stop(self) -> None:
        if self._client:
            await self._client.disconnect()
            self._client = None

    async def _entity(self, peer: str) -> Any:
        if not self._client:
            raise DeliveryError(peer, "client not connected")
        cached = self._entities.get(peer)
        if cached is not None:
            return cached
        try:
            entity = await self._client.get_entity(peer)
        except Exception as e:  # ValueError for unknown names, RPCError, network
            raise DeliveryError(peer, f"lookup failed: {e}") from e
        self._entities[peer] = entity
        return entity

    async def send_text(self, peer: str, text: str) -> None:
        entity = await self._entity(peer)
        try:
            await self._client.send_message(entity, text)
        except Exception as e:
            raise DeliveryError(peer, str(e)) from e

    async def send_single(self, destination: str, post: OutboundPost) -> None:
        entity = await self._entity(destination)
        try:
            if post.media:
                await self._client.send_file(
                    entity, post.media[0], caption=post.text, force_document=False
                )
            elif post.text:
                await self._client.send_message(entity, post.text)
        except Exception as e:
            raise DeliveryError(destination, str(e)) from e

    async def send_group(self, destination: str, post: OutboundPost) -> None:
        entity = await self._entity(destination)
        try:
            # Telethon puts a single caption string on the first album item
            await self._client.send_file(
                entity, list(post.media), caption=post.text, force_document=False
            )
        except Exception as e:
            raise DeliveryError(destination, str(e)) from e

    def on_incoming(self, handler: InboundHandler) -> None:
        """Register `handler` for every new message the session sees."""
        assert self._client, "start() must be called first"

        async def _on_new_message(event: events.NewMessage.Event) -> None:
            try:
                inbound = await self.to_inbound(event)
                await handler(inbound)
            except Exception:
                logger.exception(
                    "message handling failed",
                    extra={"message_id": getattr(event.message, "id", None)},
                )

        self._client.add_event_handler(_on_new_message, events.NewMessage())

    @staticmethod
    async def to_inbound(event: Any) -> InboundMessage:
        msg = event.message
        chat = await event.get_chat()
        username = getattr(chat, "username", None) or ""
        kind, media, mime = classify_media(msg)
        return InboundMessage(
            message_id=msg.id,
            chat_id=event.chat_id,
            sender_username=str(username).lower(),
            text=msg.message or "",
            group_id=msg.grouped_id,
            chat_title=getattr(chat, "title", None) or "",
            media_kind=kind,
            media=media,
            mime_type=mime,
        )
