"""Bridge service for relaygram.

Wires the Telethon transport, translation correlator, album aggregator and
router together, and owns their start/stop lifecycle.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..ingest.album_aggregator import AlbumAggregator
from ..ingest.composer import AlbumPublisher
from ..mtproto.client import TelethonTransport
from ..runtime.config import AppConfig
from ..translate.correlator import TranslationCorrelator
from .router import MessageRouter


logger = logging.getLogger("relaygram.bot")


class BridgeService:
    def __init__(self, config: AppConfig, transport: Optional[TelethonTransport] = None) -> None:
        self._config = config
        self._transport = transport or TelethonTransport(config)
        self.correlator = TranslationCorrelator(
            self._transport,
            responder=config.translate_bot,
            timeout_seconds=config.translation_timeout_seconds,
            ranges=config.script_ranges,
        )
        self.albums = AlbumPublisher(
            self.correlator,
            self._transport,
            destination=config.dest_channel,
            label=config.attribution_label,
            text_only_fallback=config.album_text_only_fallback,
        )
        self.aggregator = AlbumAggregator(
            self.albums.process_album,
            debounce_seconds=config.album_debounce_seconds,
        )
        self.router = MessageRouter(
            self.correlator,
            self.aggregator,
            self._transport,
            sources=config.source_channels,
            destination=config.dest_channel,
            label=config.attribution_label,
        )

    async def start(self) -> None:
        await self._transport.start()
        self._transport.on_incoming(self.router.route)
        logger.info(
            "bridge started",
            extra={
                "sources": self._config.source_channels,
                "destination": self._config.dest_channel,
                "responder": self._config.translate_bot,
                "target_language": self._config.target_language,
            },
        )

    async def stop(self) -> None:
        """Flush buffered albums, then disconnect."""
        if self.aggregator.open_groups:
            logger.info("flushing open albums", extra={"count": self.aggregator.open_groups})
        await self.aggregator.flush_all()
        await self._transport.stop()
        logger.info("bridge stopped")

    def snapshot(self) -> Dict[str, Any]:
        return {
            "connected": self._transport.connected,
            "pending_translations": self.correlator.pending_count,
            "open_albums": self.aggregator.open_groups,
        }
