"""Shared fakes for the relaygram tests."""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Tuple

import pytest

from relaygram.ingest.models import InboundMessage, MediaKind, OutboundPost
from relaygram.runtime.config import AppConfig
from relaygram.runtime.errors import DeliveryError


class FakeChannel:
    """MessageChannel that records requests and can answer them."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []
        self.on_send: Optional[Callable[[str, str], None]] = None

    async def send_text(self, peer: str, text: str) -> None:
        if self.fail:
            raise DeliveryError(peer, "peer not found")
        self.sent.append((peer, text))
        if self.on_send:
            asyncio.get_running_loop().call_soon(self.on_send, peer, text)


class FakePublisher:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.singles: List[Tuple[str, OutboundPost]] = []
        self.groups: List[Tuple[str, OutboundPost]] = []

    async def send_single(self, destination: str, post: OutboundPost) -> None:
        if self.fail:
            raise DeliveryError(destination, "flood wait")
        self.singles.append((destination, post))

    async def send_group(self, destination: str, post: OutboundPost) -> None:
        if self.fail:
            raise DeliveryError(destination, "flood wait")
        self.groups.append((destination, post))


def make_message(
    message_id: int,
    text: str = "",
    *,
    chat_id: int = -1001,
    sender: str = "newsil",
    group_id: Optional[int] = None,
    kind: Optional[MediaKind] = None,
    title: str = "News IL",
) -> InboundMessage:
    return InboundMessage(
        message_id=message_id,
        chat_id=chat_id,
        sender_username=sender,
        text=text,
        group_id=group_id,
        chat_title=title,
        media_kind=kind,
        media=f"media-{message_id}" if kind else None,
    )


def make_config(**overrides) -> AppConfig:
    values = dict(
        api_id=12345,
        api_hash="hash",
        session="",
        session_b64="",
        session_file="./session.txt",
        connection_retries=5,
        source_channels=["newsil"],
        dest_channel="dest_channel",
        translate_bot="YTranslateBot",
        target_language="ar",
        source_script_ranges="0590-05FF",
        translation_timeout_seconds=15.0,
        album_debounce_seconds=2.0,
        attribution_label="المصدر",
        album_text_only_fallback=False,
        log_level="INFO",
        logs_dir=None,
        log_rotate_max_bytes=1024,
        log_rotate_backup_count=1,
        health_port=3000,
        bind_health_localhost_only=True,
        script_ranges=[(0x0590, 0x05FF)],
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()
