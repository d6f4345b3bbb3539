# debate_transcripts/transcription/schema.py
"""
Shared contracts for the transcription subsystem.

Defines:
- PlatformTag: the closed set of platform families a source can belong to
- StrategyTag: where a transcript candidate came from
- SourceReference / TranscriptCandidate: request-scoped values passed between components
- AttemptFailure / DispatchResult: the outcome of running strategies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PlatformTag(str, Enum):
    """Platform families. Adding one requires a strategy in transcription.core."""
    VIDEO = "video"
    AUDIO = "audio"
    SHORT_FORM = "short_form"
    MICROBLOG = "microblog"
    PODCAST = "podcast"
    MESSAGING = "messaging"
    DIRECT_MEDIA = "direct_media"
    UNKNOWN = "unknown"


class StrategyTag(str, Enum):
    CAPTIONS = "captions"
    PLATFORM_LOOKUP = "platform_lookup"
    PODCAST_FEED = "podcast_feed"
    DIRECT_AUDIO = "direct_audio"
    UNSUPPORTED = "unsupported"
    # Secondary sources
    CAPTIONS_API = "captions_api"
    PUBLISHED_SUBTITLES = "published_subtitles"


class FailureType(str, Enum):
    """Typed failure categories for machine-parsable diagnostics."""
    SOURCE_ID_EXTRACTION_FAILED = "source_id_extraction_failed"
    STRATEGY_UNAVAILABLE = "strategy_unavailable"
    NO_TRANSCRIPT = "no_transcript"
    ACQUISITION_FAILED = "acquisition_failed"
    FALLBACK_SKIPPED = "fallback_skipped"


class SourceReference(BaseModel):
    """Resolved (platform, identifier, URL) triple for a debate's media."""
    platform: PlatformTag
    source_id: str
    source_url: str
    # Set when a platform was detected but no identifier could be extracted
    unresolved_platform: Optional[PlatformTag] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_source_id(self) -> "SourceReference":
        if self.platform != PlatformTag.UNKNOWN and not self.source_id:
            raise ValueError(f"source_id must not be empty for platform {self.platform.value}")
        return self


class TranscriptCandidate(BaseModel):
    """Text produced by one acquisition attempt. Blank content is never a success."""
    content: str
    origin_strategy: StrategyTag
    # Caption track the text was read from ("uploader:en", "asr:en"), when known
    track: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("transcript content must not be empty")
        return value.strip()


def caption_track_id(generated: bool, language: str) -> str:
    """Track identity shared by every caption source, so two sources can be compared."""
    base = (language or "").split("-")[0].lower()
    return f"{'asr' if generated else 'uploader'}:{base}"


class AttemptFailure(BaseModel):
    """Structured record of one strategy that did not produce a transcript."""
    strategy: str
    type: FailureType
    cause: str
    suggested_fixes: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        return f"{self.strategy} ({self.type.value}): {self.cause}"


@dataclass
class DispatchResult:
    """Outcome of the dispatcher and, when it ran, the fallback controller."""
    candidate: Optional[TranscriptCandidate] = None
    attempts: List[AttemptFailure] = field(default_factory=list)
    strategies_tried: List[StrategyTag] = field(default_factory=list)
    used_fallback: bool = False

    @property
    def success(self) -> bool:
        return self.candidate is not None
