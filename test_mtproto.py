import asyncio
import base64
import time
from types import SimpleNamespace

import pytest

from conftest import make_config
from relaygram.ingest.models import MediaKind, OutboundPost
from relaygram.mtproto import client as mtproto_client
from relaygram.mtproto.client import TelethonTransport, classify_media, prompt, resolve_session
from relaygram.runtime.errors import ConfigurationError, DeliveryError


def test_session_prefers_env_string(tmp_path):
    path = tmp_path / "session.txt"
    path.write_text("from-file")
    cfg = make_config(session="plain", session_b64="ignored", session_file=str(path))
    assert resolve_session(cfg) == "plain"


def test_session_from_base64(tmp_path):
    encoded = base64.b64encode(b"decoded-session").decode()
    cfg = make_config(session_b64=encoded, session_file=str(tmp_path / "missing"))
    assert resolve_session(cfg) == "decoded-session"


def test_session_from_file(tmp_path):
    path = tmp_path / "session.txt"
    path.write_text("from-file\n")
    assert resolve_session(make_config(session_file=str(path))) == "from-file"


def test_no_session_anywhere(tmp_path):
    assert resolve_session(make_config(session_file=str(tmp_path / "missing"))) == ""


def test_invalid_base64_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        resolve_session(make_config(session_b64="!!!not base64"))


def _doc(mime):
    return SimpleNamespace(photo=None, document=SimpleNamespace(mime_type=mime), media="doc-media")


def test_classify_media():
    assert classify_media(SimpleNamespace(photo="p", media="m"))[:2] == (MediaKind.PHOTO, "p")
    assert classify_media(_doc("image/webp"))[0] is MediaKind.IMAGE_DOCUMENT
    assert classify_media(_doc("video/mp4"))[:2] == (MediaKind.VIDEO_DOCUMENT, "doc-media")
    assert classify_media(_doc("audio/ogg"))[0] is MediaKind.OTHER
    assert classify_media(SimpleNamespace(photo=None, document=None, media="webpage"))[0] is MediaKind.OTHER
    assert classify_media(SimpleNamespace(photo=None, document=None, media=None)) == (None, None, None)


@pytest.mark.asyncio
async def test_to_inbound_lowercases_chat_username():
    chat = SimpleNamespace(username="NewsIL", title="News IL")
    msg = SimpleNamespace(
        id=17, message="שלום", grouped_id=555, photo="p", document=None, media="m"
    )

    async def get_chat():
        return chat

    event = SimpleNamespace(message=msg, chat_id=-100, get_chat=get_chat)
    inbound = await TelethonTransport.to_inbound(event)

    assert inbound.sender_username == "newsil"
    assert inbound.group_id == 555
    assert inbound.chat_id == -100
    assert inbound.media_kind is MediaKind.PHOTO
    assert inbound.chat_title == "News IL"


class FakeClient:
    def __init__(self, known=("dest", "ytranslatebot"), fail_send=False):
        self.known = set(known)
        self.fail_send = fail_send
        self.lookups = 0
        self.calls = []

    async def get_entity(self, peer):
        self.lookups += 1
        if peer.lower() not in self.known:
            raise ValueError(f'No user has "{peer}" as username')
        return f"entity:{peer}"

    async def send_message(self, entity, text):
        if self.fail_send:
            raise ConnectionError("network down")
        self.calls.append(("message", entity, text))

    async def send_file(self, entity, file, caption=None, force_document=False):
        self.calls.append(("file", entity, file, caption))


def _transport(client):
    transport = TelethonTransport(make_config())
    transport._client = client
    return transport


@pytest.mark.asyncio
async def test_lookup_failure_raises_delivery_error():
    transport = _transport(FakeClient(known=()))
    with pytest.raises(DeliveryError):
        await transport.send_text("YTranslateBot", "x")


@pytest.mark.asyncio
async def test_send_failure_raises_delivery_error():
    transport = _transport(FakeClient(fail_send=True))
    with pytest.raises(DeliveryError):
        await transport.send_text("YTranslateBot", "x")


@pytest.mark.asyncio
async def test_entities_are_cached():
    client = FakeClient()
    transport = _transport(client)
    await transport.send_text("dest", "a")
    await transport.send_text("dest", "b")
    assert client.lookups == 1


@pytest.mark.asyncio
async def test_publisher_calls():
    client = FakeClient()
    transport = _transport(client)

    await transport.send_single("dest", OutboundPost(text="caption", media=["m1"]))
    await transport.send_single("dest", OutboundPost(text="plain"))
    await transport.send_group("dest", OutboundPost(text="album", media=["m1", "m2"]))

    assert client.calls == [
        ("file", "entity:dest", "m1", "caption"),
        ("message", "entity:dest", "plain"),
        ("file", "entity:dest", ["m1", "m2"], "album"),
    ]


@pytest.mark.asyncio
async def test_not_connected_is_a_delivery_error():
    with pytest.raises(DeliveryError):
        await TelethonTransport(make_config()).send_text("dest", "x")


@pytest.mark.asyncio
async def test_unattended_start_without_session_fails_fast(tmp_path):
    cfg = make_config(unattended=True, session_file=str(tmp_path / "missing"))
    with pytest.raises(ConfigurationError):
        await TelethonTransport(cfg).start()


@pytest.mark.asyncio
async def test_login_prompt_does_not_block_the_loop(monkeypatch):
    answered = []

    def slow_input(label):
        time.sleep(0.1)
        answered.append(label)
        return " +15550001 \n"

    monkeypatch.setattr("builtins.input", slow_input)
    ticks = 0

    async def ticker():
        nonlocal ticks
        while not answered:
            ticks += 1
            await asyncio.sleep(0.01)

    tick_task = asyncio.create_task(ticker())
    assert await prompt("Phone: ") == "+15550001"
    await tick_task
    assert answered == ["Phone: "]
    assert ticks > 1


@pytest.mark.asyncio
async def test_secret_prompt_uses_getpass(monkeypatch):
    monkeypatch.setattr(mtproto_client.getpass, "getpass", lambda label: "hunter2")
    assert await prompt("2FA (optional): ", secret=True) == "hunter2"
