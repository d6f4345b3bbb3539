# debate_transcripts/transcription/speech.py
"""
Speech-to-text providers.

Single responsibility: turn raw audio bytes plus a language hint into plain text.
The hosted provider (OpenAI) is the default; the local Whisper provider lives
in transcription.whisper and is selected with speech_provider="local".
"""

from __future__ import annotations

import mimetypes
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from debate_transcripts.config import AcquisitionConfig
from debate_transcripts.transcription.errors import AcquisitionFailed, StrategyUnavailable
from debate_transcripts.transcription.transport import bounded, with_retry


class SpeechToText(Protocol):
    def check_available(self, strategy: str) -> None:
        """Raise StrategyUnavailable before any media is downloaded."""
        ...

    async def transcribe(self, audio: bytes, *, filename: str, language: str, strategy: str) -> str:
        """Return non-empty text or raise a StrategyError subclass."""
        ...

    async def aclose(self) -> None:
        ...


TRANSIENT_OPENAI_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAISpeechToText:
    """Hosted transcription through the OpenAI audio API."""

    def __init__(self, config: AcquisitionConfig, client: Optional[AsyncOpenAI] = None) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def check_available(self, strategy: str) -> None:
        if self._client is None and not self._config.secret("openai_api_key"):
            raise StrategyUnavailable(
                strategy,
                "OPENAI_API_KEY is not configured; audio transcription is unavailable",
                ["Set OPENAI_API_KEY", "Or use DEBATE_TRANSCRIPTS_SPEECH_PROVIDER=local"],
            )

    def _get_client(self, strategy: str) -> AsyncOpenAI:
        self.check_available(strategy)
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._config.secret("openai_api_key"),
                timeout=self._config.timeouts.transcription,
                max_retries=0,  # retries are ours, see with_retry
            )
        return self._client

    async def transcribe(self, audio: bytes, *, filename: str, language: str, strategy: str) -> str:
        if not audio:
            raise AcquisitionFailed(strategy, "refusing to transcribe an empty audio payload")

        client = self._get_client(strategy)
        content_type = mimetypes.guess_type(filename)[0] or "audio/mpeg"

        async def call() -> str:
            try:
                response = await bounded(
                    client.audio.transcriptions.create(
                        model=self._config.openai_transcription_model,
                        file=(filename, audio, content_type),
                        language=language,
                    ),
                    self._config.timeouts.transcription,
                    strategy=strategy,
                    step="transcription",
                )
            except TRANSIENT_OPENAI_ERRORS as exc:
                raise AcquisitionFailed(
                    strategy,
                    f"speech-to-text call failed: {exc.__class__.__name__}",
                    ["Retry later"],
                    transient=True,
                ) from exc
            except openai.APIStatusError as exc:
                raise AcquisitionFailed(
                    strategy,
                    f"speech-to-text rejected the audio: HTTP {exc.status_code}",
                    ["Check the media format is supported", "Check the OpenAI account quota"],
                ) from exc
            return (response.text or "").strip()

        text = await with_retry(call, self._config)
        if not text:
            raise AcquisitionFailed(
                strategy,
                "speech-to-text returned an empty transcript",
                ["Check the media actually contains speech"],
            )
        return text

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()


def build_speech_to_text(config: AcquisitionConfig) -> SpeechToText:
    """Pick the provider named by config.speech_provider."""
    if config.speech_provider == "local":
        from debate_transcripts.transcription.whisper import LocalWhisperSpeechToText

        return LocalWhisperSpeechToText(config)
    return OpenAISpeechToText(config)
