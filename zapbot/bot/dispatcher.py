"""
Runtime event dispatcher — reacts to the messaging client's event feed.

Design
------
- ``DisconnectedEvent`` flips the shared status to ``Disconnected`` (accepted
  only while connected; see ``StatusStore``).
- A ``MessageEvent`` carrying a voice note gets its own task: download the
  audio, transcribe it, reply to the sender quoting the original message.
- Each task runs under its own deadline (``timeout``, 30 s by default).  When
  it expires the in-flight download / transcription / send is cancelled and
  the message is dropped.  Other tasks and the status store are unaffected.
- Tasks share nothing mutable; the client is handed to each one read-only.
- Every other event is ignored.
"""

import asyncio
import logging
from typing import Any

from zapbot.bot.client import MessagingClient
from zapbot.bot.events import (
    DisconnectedEvent,
    MessageEvent,
    OtherEvent,
    QuotedMessage,
)
from zapbot.bot.state import StatusStore
from zapbot.config import DEFAULT_REPLY_TEMPLATE
from zapbot.transcription.groq import Transcriber, TranscriptionError

logger = logging.getLogger(__name__)

MESSAGE_TIMEOUT: float = 30.0


def compose_reply(template: str, transcript: str) -> str:
    """Embed *transcript* in the reply template."""
    return template.format(transcript=transcript.strip())


class EventDispatcher:
    def __init__(
        self,
        store: StatusStore,
        transcriber: Transcriber,
        *,
        reply_template: str = DEFAULT_REPLY_TEMPLATE,
        timeout: float = MESSAGE_TIMEOUT,
    ) -> None:
        self._store = store
        self._transcriber = transcriber
        self._reply_template = reply_template
        self._timeout = timeout
        # Strong references so running tasks are not garbage-collected.
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of voice notes currently being handled."""
        return len(self._tasks)

    def handle(self, client: MessagingClient, event: Any) -> None:
        """
        Subscription callback.  Bind the client with ``functools.partial``
        before registering it.  Must run on the event loop.
        """
        if isinstance(event, DisconnectedEvent):
            self._store.set_disconnected()
        elif isinstance(event, MessageEvent):
            if event.audio is not None:
                self._spawn(client, event)
        elif isinstance(event, OtherEvent):
            logger.debug("Ignoring event %s", event.kind or "<unnamed>")
        else:
            logger.debug("Ignoring unrecognised event %r", type(event).__name__)

    def _spawn(self, client: MessagingClient, event: MessageEvent) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._handle_voice_note(client, event),
            name=f"voice_note:{event.message_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _handle_voice_note(self, client: MessagingClient, event: MessageEvent) -> None:
        try:
            await asyncio.wait_for(self._transcribe_and_reply(client, event), self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Voice note %s from %s abandoned after %.0fs",
                event.message_id,
                event.sender,
                self._timeout,
            )
        except Exception as exc:
            logger.error(
                "Voice note %s from %s failed: %s",
                event.message_id,
                event.sender,
                exc,
                exc_info=True,
            )

    async def _transcribe_and_reply(self, client: MessagingClient, event: MessageEvent) -> None:
        logger.info("🎙️ Received voice note from %s", event.sender)

        try:
            audio = await client.download(event.audio)
        except Exception as exc:
            logger.error("Error downloading audio %s: %s", event.message_id, exc)
            return

        try:
            transcript = await self._transcriber.transcribe(audio)
        except TranscriptionError as exc:
            logger.error("❌ Transcription error for %s: %s", event.message_id, exc)
            return

        text = compose_reply(self._reply_template, transcript)
        quoted = QuotedMessage(
            sender=event.sender,
            message_id=event.message_id,
            content=event.content,
        )
        try:
            await client.send(event.chat, text, quoted)
        except Exception as exc:
            logger.error("Error sending reply to %s: %s", event.chat, exc)
            return

        logger.info("Replied to %s with a %d-character transcript", event.sender, len(transcript))

    async def aclose(self) -> None:
        """Cancel every in-flight voice note and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending voice note(s)", len(tasks))
