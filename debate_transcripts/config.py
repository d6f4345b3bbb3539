# debate_transcripts/config.py
"""
Configuration for transcript acquisition.

Values come from keyword arguments or from the environment via
AcquisitionConfig.from_env(). A missing credential never fails here; the
strategy that needs it reports itself unavailable at run time.
"""

from __future__ import annotations

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


ENV_PREFIX = "DEBATE_TRANSCRIPTS_"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Timeouts(BaseModel):
    """Per-step budgets in seconds. Exceeding one counts as a network error."""
    metadata: float = Field(default=10.0, gt=0)
    audio_fetch: float = Field(default=60.0, gt=0)
    transcription: float = Field(default=120.0, gt=0)
    reconciliation: float = Field(default=30.0, gt=0)

    model_config = ConfigDict(frozen=True)


class AcquisitionConfig(BaseModel):
    language: str = "en"
    youtube_api_key: Optional[SecretStr] = None
    openai_api_key: Optional[SecretStr] = None

    speech_provider: Literal["openai", "local"] = "openai"
    openai_transcription_model: str = "whisper-1"
    local_whisper_model: str = "base"

    reconciler: Literal["openai", "sequence"] = "openai"
    openai_reconcile_model: str = "gpt-4o-mini"
    verify: bool = True

    max_audio_bytes: int = Field(default=25 * 1024 * 1024, gt=0)  # OpenAI upload limit
    max_reconcile_chars: int = Field(default=40000, gt=0)
    retry_attempts: int = Field(default=2, ge=1, le=3)
    retry_backoff_seconds: float = Field(default=0.5, ge=0)
    user_agent: str = DEFAULT_USER_AGENT
    timeouts: Timeouts = Field(default_factory=Timeouts)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "AcquisitionConfig":
        """Build a config from environment variables; explicit overrides win."""
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        values: dict = {}
        for key in ("youtube_api_key", "openai_api_key"):
            value = get(key.upper()) or env.get(key.upper()) or None
            if value:
                values[key] = value

        for key in (
            "language",
            "speech_provider",
            "openai_transcription_model",
            "local_whisper_model",
            "reconciler",
            "openai_reconcile_model",
            "verify",
            "max_audio_bytes",
            "max_reconcile_chars",
            "retry_attempts",
            "retry_backoff_seconds",
            "user_agent",
        ):
            value = get(key.upper())
            if value is not None:
                values[key] = value

        timeouts = {
            step: get(f"TIMEOUT_{step.upper()}")
            for step in Timeouts.model_fields
        }
        timeouts = {step: value for step, value in timeouts.items() if value is not None}
        if timeouts:
            values["timeouts"] = Timeouts(**timeouts)

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)

    def secret(self, name: Literal["youtube_api_key", "openai_api_key"]) -> Optional[str]:
        value = getattr(self, name)
        return value.get_secret_value() if value is not None else None
