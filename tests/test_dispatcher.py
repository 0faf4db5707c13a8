"""
Tests for the runtime event dispatcher (zapbot.bot.dispatcher).
"""

import asyncio
import logging

import pytest

from conftest import FakeClient, FakeDevice, FakeTranscriber
from zapbot.bot.dispatcher import EventDispatcher, compose_reply
from zapbot.bot.events import DisconnectedEvent, MessageEvent, OtherEvent
from zapbot.bot.state import ConnectionStatus, StatusStore

_SENDER = "5511999990000@s.whatsapp.net"


def _voice_note(message_id: str = "3EB0C767D26A1D8E") -> MessageEvent:
    return MessageEvent(
        chat=_SENDER,
        sender=_SENDER,
        message_id=message_id,
        content={"audioMessage": {"seconds": 4}},
        audio={"url": "https://mmg.example/voice.enc"},
    )


def _text_message() -> MessageEvent:
    return MessageEvent(
        chat=_SENDER,
        sender=_SENDER,
        message_id="ABCDEF",
        content={"conversation": "hi"},
    )


def _connected_store() -> StatusStore:
    store = StatusStore()
    store.try_begin_connect()
    store.set_connected()
    return store


async def _drain(dispatcher: EventDispatcher, wait_until) -> None:
    await wait_until(lambda: dispatcher.pending == 0)


def test_compose_reply_embeds_transcript():
    text = compose_reply("Transcript: {transcript}", "  hello world \n")
    assert text == "Transcript: hello world"


@pytest.mark.asyncio
class TestVoiceNotes:
    async def test_transcript_sent_as_quoted_reply(self, transcriber, wait_until):
        store = _connected_store()
        dispatcher = EventDispatcher(store, transcriber)
        client = FakeClient(FakeDevice(paired=True))
        event = _voice_note()

        dispatcher.handle(client, event)
        assert dispatcher.pending == 1
        await _drain(dispatcher, wait_until)

        assert transcriber.received == [client.download_result]
        assert len(client.sent) == 1
        recipient, text, quoted = client.sent[0]
        assert recipient == _SENDER
        assert "hello" in text
        assert quoted.sender == _SENDER
        assert quoted.message_id == event.message_id
        assert quoted.content == event.content

    async def test_transcription_error_sends_nothing(self, failing_transcriber, wait_until):
        store = _connected_store()
        before = store.snapshot()
        dispatcher = EventDispatcher(store, failing_transcriber)
        client = FakeClient(FakeDevice(paired=True))

        dispatcher.handle(client, _voice_note())
        await _drain(dispatcher, wait_until)

        assert "download" in client.calls
        assert "send" not in client.calls
        assert store.snapshot() == before

    async def test_download_error_drops_message(self, transcriber, wait_until):
        dispatcher = EventDispatcher(_connected_store(), transcriber)
        client = FakeClient(FakeDevice(paired=True))
        client.download_error = ConnectionError("media expired")

        dispatcher.handle(client, _voice_note())
        await _drain(dispatcher, wait_until)

        assert transcriber.received == []
        assert "send" not in client.calls

    async def test_send_error_is_contained(self, transcriber, wait_until):
        store = _connected_store()
        before = store.snapshot()
        dispatcher = EventDispatcher(store, transcriber)
        client = FakeClient(FakeDevice(paired=True))
        client.send_error = ConnectionError("not connected")

        dispatcher.handle(client, _voice_note())
        await _drain(dispatcher, wait_until)

        assert client.calls.count("send") == 1
        assert store.snapshot() == before

    async def test_deadline_abandons_message(self, transcriber, wait_until):
        dispatcher = EventDispatcher(_connected_store(), transcriber, timeout=0.05)
        client = FakeClient(FakeDevice(paired=True))
        client.download_delay = 5.0

        dispatcher.handle(client, _voice_note())
        await _drain(dispatcher, wait_until)

        assert transcriber.received == []
        assert client.sent == []

    async def test_messages_are_independent(self, transcriber, wait_until):
        dispatcher = EventDispatcher(_connected_store(), transcriber, timeout=0.2)
        slow = FakeClient(FakeDevice(paired=True))
        slow.download_delay = 5.0
        fast = FakeClient(FakeDevice(paired=True))

        dispatcher.handle(slow, _voice_note("SLOW"))
        dispatcher.handle(fast, _voice_note("FAST"))
        await wait_until(lambda: fast.sent)
        assert fast.sent[0][2].message_id == "FAST"
        await _drain(dispatcher, wait_until)
        assert slow.sent == []

    async def test_custom_reply_template(self, transcriber, wait_until):
        dispatcher = EventDispatcher(
            _connected_store(), transcriber, reply_template="You said: {transcript}"
        )
        client = FakeClient(FakeDevice(paired=True))
        dispatcher.handle(client, _voice_note())
        await _drain(dispatcher, wait_until)
        assert client.sent[0][1] == "You said: hello"

    async def test_unexpected_transcriber_error_is_logged(self, wait_until, caplog):
        store = _connected_store()
        before = store.snapshot()
        broken = FakeTranscriber(error=RuntimeError("model crashed"))
        dispatcher = EventDispatcher(store, broken)
        client = FakeClient(FakeDevice(paired=True))

        with caplog.at_level(logging.ERROR, logger="zapbot.bot.dispatcher"):
            task = dispatcher._spawn(client, _voice_note("CRASH"))
            await _drain(dispatcher, wait_until)

        assert task.done() and task.exception() is None
        assert "send" not in client.calls
        assert store.snapshot() == before
        assert any(
            "CRASH" in r.getMessage() and "model crashed" in r.getMessage()
            for r in caplog.records
        )

    async def test_aclose_cancels_pending(self, transcriber):
        dispatcher = EventDispatcher(_connected_store(), transcriber)
        client = FakeClient(FakeDevice(paired=True))
        client.download_delay = 5.0

        dispatcher.handle(client, _voice_note())
        await asyncio.sleep(0)
        await dispatcher.aclose()
        assert dispatcher.pending == 0
        assert client.sent == []


@pytest.mark.asyncio
class TestOtherEvents:
    async def test_text_message_is_ignored(self, transcriber):
        dispatcher = EventDispatcher(_connected_store(), transcriber)
        client = FakeClient(FakeDevice(paired=True))

        dispatcher.handle(client, _text_message())
        await asyncio.sleep(0)

        assert dispatcher.pending == 0
        assert client.calls == []
        assert transcriber.received == []

    async def test_unknown_events_are_ignored(self, transcriber):
        store = _connected_store()
        before = store.snapshot()
        dispatcher = EventDispatcher(store, transcriber)
        client = FakeClient(FakeDevice(paired=True))

        dispatcher.handle(client, OtherEvent("receipt"))
        dispatcher.handle(client, object())

        assert dispatcher.pending == 0
        assert client.calls == []
        assert store.snapshot() == before

    async def test_disconnected_event_resets_status(self, transcriber):
        store = _connected_store()
        dispatcher = EventDispatcher(store, transcriber)
        client = FakeClient(FakeDevice(paired=True))

        dispatcher.handle(client, DisconnectedEvent())

        state = store.snapshot()
        assert state.status is ConnectionStatus.DISCONNECTED
        assert state.session_start is None
