"""In-memory album aggregation with a debounce window.

Collects messages sharing the same chat and `grouped_id` and flushes them as
one album once no new item has arrived for the window. Every arrival resets
the group's timer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set

from ..metrics.registry import ALBUMS_FLUSHED, OPEN_ALBUMS
from .models import InboundMessage


logger = logging.getLogger("relaygram.album_aggregator")


FlushCb = Callable[[List[InboundMessage]], Awaitable[None]]


@dataclass
class AlbumGroup:
    group_key: str
    messages: List[InboundMessage] = field(default_factory=list)
    debounce_handle: Optional[asyncio.TimerHandle] = None


class AlbumAggregator:
    def __init__(self, flush: FlushCb, debounce_seconds: float = 2.0) -> None:
        self._flush = flush
        self._window = debounce_seconds
        self._groups: Dict[str, AlbumGroup] = {}
        self._tasks: Set[asyncio.Task] = set()

    @property
    def open_groups(self) -> int:
        return len(self._groups)

    @staticmethod
    def group_key(message: InboundMessage) -> str:
        return f"{message.chat_id}_{message.group_id}"

    def enqueue(self, message: InboundMessage) -> None:
        """Add a grouped message and (re)start its group's quiet timer.

        Must be called from the event loop thread.
        """
        if message.group_id is None:
            raise ValueError("enqueue() requires a message with a group id")

        loop = asyncio.get_running_loop()
        key = self.group_key(message)
        group = self._groups.get(key)
        if group is None:
            group = AlbumGroup(group_key=key, messages=[message])
            self._groups[key] = group
            OPEN_ALBUMS.set(len(self._groups))
            logger.debug("album group opened", extra={"group_key": key})
        else:
            group.messages.append(message)
            if group.debounce_handle is not None:
                group.debounce_handle.cancel()
            logger.debug(
                "album item added",
                extra={"group_key": key, "item_count": len(group.messages)},
            )
        group.debounce_handle = loop.call_later(self._window, self._on_quiet, key)

    def _on_quiet(self, key: str) -> None:
        group = self._groups.pop(key, None)
        OPEN_ALBUMS.set(len(self._groups))
        if group is None:
            return
        self._spawn_flush(group)

    def _spawn_flush(self, group: AlbumGroup) -> None:
        task = asyncio.ensure_future(self._run_flush(group))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_flush(self, group: AlbumGroup) -> None:
        ALBUMS_FLUSHED.inc()
        logger.info(
            "flushing album",
            extra={"group_key": group.group_key, "item_count": len(group.messages)},
        )
        try:
            await self._flush(list(group.messages))
        except Exception:
            logger.exception("album flush failed", extra={"group_key": group.group_key})

    async def flush_all(self) -> None:
        """Flush every open group now, without waiting for its window.

        Used on shutdown so buffered albums still go out.
        """
        for key in list(self._groups):
            group = self._groups.pop(key)
            if group.debounce_handle is not None:
                group.debounce_handle.cancel()
            self._spawn_flush(group)
        OPEN_ALBUMS.set(0)
        await self.drain()

    async def drain(self) -> None:
        """Wait for flushes already in progress."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
