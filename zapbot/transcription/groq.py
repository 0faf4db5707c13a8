"""
Groq speech-to-text client.

Usage
-----
    from zapbot.transcription.groq import GroqTranscriber, TranscriptionError

    transcriber = GroqTranscriber(api_key)
    try:
        text = await transcriber.transcribe(audio_bytes)
    except TranscriptionError as exc:
        ...
    await transcriber.aclose()

The request is the OpenAI-compatible multipart upload: a ``file`` part holding
the audio and a ``model`` field.  The response body is ``{"text": "..."}``.
"""

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

GROQ_TRANSCRIPTIONS_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
DEFAULT_MODEL = "whisper-large-v3-turbo"


class TranscriptionError(Exception):
    """The transcription service could not produce a transcript."""


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes) -> str: ...


class GroqTranscriber:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        url: str = GROQ_TRANSCRIPTIONS_URL,
        timeout: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def transcribe(self, audio: bytes, filename: str = "audio.ogg") -> str:
        """
        Upload *audio* and return the transcript text.

        Raises ``TranscriptionError`` on transport failure, a non-200 reply,
        or a body without a ``text`` field.
        """
        try:
            response = await self._client.post(
                self._url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                data={"model": self._model},
                files={"file": (filename, audio, "audio/ogg")},
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"failed to send request: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise TranscriptionError(f"API error {response.status_code}: {response.text}")

        try:
            text = response.json()["text"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TranscriptionError(f"failed to decode response: {exc}") from exc

        logger.debug("Transcribed %d byte(s) into %d character(s)", len(audio), len(text))
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
