import pytest

from conftest import FakeChannel, FakePublisher, make_config, make_message
from relaygram.bot.service import BridgeService
from relaygram.ingest.models import MediaKind


class FakeTransport(FakeChannel, FakePublisher):
    def __init__(self):
        FakeChannel.__init__(self)
        FakePublisher.__init__(self)
        self.started = False
        self.handler = None

    @property
    def connected(self):
        return self.started

    async def start(self):
        self.started = True

    async def stop(self):
        self.started = False

    def on_incoming(self, handler):
        self.handler = handler


@pytest.mark.asyncio
async def test_start_registers_router():
    transport = FakeTransport()
    service = BridgeService(make_config(), transport=transport)
    await service.start()

    assert transport.handler == service.router.route
    assert service.snapshot() == {
        "connected": True,
        "pending_translations": 0,
        "open_albums": 0,
    }


@pytest.mark.asyncio
async def test_stop_flushes_buffered_albums():
    transport = FakeTransport()
    service = BridgeService(make_config(album_debounce_seconds=60), transport=transport)
    await service.start()

    for mid in (1, 2):
        await transport.handler(make_message(mid, group_id=3, kind=MediaKind.PHOTO))
    assert service.snapshot()["open_albums"] == 1

    await service.stop()

    assert len(transport.groups) == 1
    assert transport.groups[0][1].media == ["media-1", "media-2"]
    assert transport.connected is False
