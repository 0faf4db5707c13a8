"""
Fake messaging and transcription collaborators shared by the test modules.
"""

import asyncio
from typing import Any, Callable

import pytest

from zapbot.bot.events import HandshakeEvent, HandshakeKind, QuotedMessage
from zapbot.transcription.groq import TranscriptionError


class FakeDevice:
    def __init__(self, paired: bool = False) -> None:
        self.is_paired = paired


class FakeSessionStore:
    def __init__(self, device: FakeDevice | None = None) -> None:
        self.device = device
        self.created: list[FakeDevice] = []

    async def get_first_device(self) -> FakeDevice | None:
        return self.device

    def new_device(self) -> FakeDevice:
        device = FakeDevice()
        self.created.append(device)
        return device


class FakeClient:
    """Messaging client whose handshake channel is fed by the test."""

    def __init__(self, device: FakeDevice) -> None:
        self.device = device
        self.handshake: asyncio.Queue[HandshakeEvent | None] = asyncio.Queue()
        self.handlers: list[Callable[[Any], None]] = []
        self.calls: list[str] = []
        self.connected = False
        self.connect_error: Exception | None = None
        self.download_result: bytes = b"OggS-voice-note"
        self.download_error: Exception | None = None
        self.send_error: Exception | None = None
        self.download_delay: float = 0.0
        self.sent: list[tuple[str, str, QuotedMessage]] = []

    async def connect(self) -> None:
        self.calls.append("connect")
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def disconnect(self) -> None:
        self.calls.append("disconnect")
        self.connected = False

    def is_connected(self) -> bool:
        self.calls.append("is_connected")
        return self.connected

    async def open_handshake_channel(self):
        self.calls.append("open_handshake_channel")
        return self._iter_handshake()

    async def _iter_handshake(self):
        while True:
            event = await self.handshake.get()
            if event is None:
                return
            yield event

    def subscribe(self, handler: Callable[[Any], None]) -> None:
        self.calls.append("subscribe")
        self.handlers.append(handler)

    def emit(self, event: Any) -> None:
        for handler in self.handlers:
            handler(event)

    async def download(self, media: Any) -> bytes:
        self.calls.append("download")
        if self.download_delay:
            await asyncio.sleep(self.download_delay)
        if self.download_error is not None:
            raise self.download_error
        return self.download_result

    async def send(self, recipient: str, text: str, quoted: QuotedMessage) -> None:
        self.calls.append("send")
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((recipient, text, quoted))

    # handshake helpers
    async def push_code(self, code: str) -> None:
        await self.handshake.put(HandshakeEvent(HandshakeKind.CODE, code=code))

    async def push_success(self) -> None:
        await self.handshake.put(HandshakeEvent(HandshakeKind.SUCCESS))

    async def close_handshake(self) -> None:
        await self.handshake.put(None)


class FakeBackend:
    def __init__(self, session_store: FakeSessionStore | None = None) -> None:
        self.session_store = session_store or FakeSessionStore()
        self.clients: list[FakeClient] = []
        self.store_opens = 0
        self.open_error: Exception | None = None

    async def open_session_store(self) -> FakeSessionStore:
        self.store_opens += 1
        if self.open_error is not None:
            raise self.open_error
        return self.session_store

    def create_client(self, device: FakeDevice) -> FakeClient:
        client = FakeClient(device)
        self.clients.append(client)
        return client


class FakeTranscriber:
    def __init__(self, text: str = "hello", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.received: list[bytes] = []

    async def transcribe(self, audio: bytes) -> str:
        self.received.append(audio)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def paired_backend() -> FakeBackend:
    return FakeBackend(FakeSessionStore(FakeDevice(paired=True)))


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def failing_transcriber() -> FakeTranscriber:
    return FakeTranscriber(error=TranscriptionError("API error 500: boom"))


@pytest.fixture
def wait_until():
    """Return a coroutine that yields to the loop until *predicate* holds."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.001)

    return _wait
