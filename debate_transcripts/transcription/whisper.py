# debate_transcripts/transcription/whisper.py
"""
Local Whisper speech-to-text provider.
Single responsibility: manage the temporary audio file and model invocation.
Model cached module-level; GPU detection.

Requires the "local" extra (openai-whisper, torch) and ffmpeg on PATH.
"""

from __future__ import annotations

import importlib.util
import os
import tempfile
import threading
from typing import Any

from debate_transcripts.config import AcquisitionConfig
from debate_transcripts.transcription.base import run_blocking
from debate_transcripts.transcription.errors import AcquisitionFailed, StrategyUnavailable

# Module-level cache, keyed by model name
_MODELS: dict[str, Any] = {}
_MODEL_LOCK = threading.Lock()


def _load_model(model_name: str = "base") -> Any:
    with _MODEL_LOCK:
        if model_name not in _MODELS:
            import torch
            import whisper

            device = "cuda" if torch.cuda.is_available() else "cpu"
            _MODELS[model_name] = whisper.load_model(model_name, device=device)
        return _MODELS[model_name]


def _transcribe_file(model_name: str, audio_path: str, language: str) -> str:
    model = _load_model(model_name)
    result = model.transcribe(audio_path, language=language, fp16=False)
    return (result.get("text") or "").strip()


class LocalWhisperSpeechToText:
    """Runs Whisper in-process. Slower than the hosted API but needs no credential."""

    def __init__(self, config: AcquisitionConfig) -> None:
        self._config = config

    def check_available(self, strategy: str) -> None:
        if importlib.util.find_spec("whisper") is None or importlib.util.find_spec("torch") is None:
            raise StrategyUnavailable(
                strategy,
                "local Whisper provider selected but openai-whisper/torch are not installed",
                ["pip install 'debate-transcripts[local]'"],
            )

    async def transcribe(self, audio: bytes, *, filename: str, language: str, strategy: str) -> str:
        self.check_available(strategy)
        if not audio:
            raise AcquisitionFailed(strategy, "refusing to transcribe an empty audio payload")

        suffix = os.path.splitext(filename)[1] or ".mp3"
        with tempfile.TemporaryDirectory() as tmpdir:
            audio_path = os.path.join(tmpdir, f"audio{suffix}")
            with open(audio_path, "wb") as handle:
                handle.write(audio)

            try:
                text = await run_blocking(
                    _transcribe_file,
                    self._config.local_whisper_model,
                    audio_path,
                    language,
                    seconds=self._config.timeouts.transcription,
                    strategy=strategy,
                    step="transcription",
                )
            except (RuntimeError, OSError) as exc:
                raise AcquisitionFailed(
                    strategy,
                    f"local Whisper failed: {exc}",
                    ["Check ffmpeg is installed", "Check audio quality"],
                ) from exc

        if not text:
            raise AcquisitionFailed(
                strategy,
                "Whisper returned empty transcript",
                ["Check audio quality", "Try larger model"],
            )
        return text

    async def aclose(self) -> None:
        return None
