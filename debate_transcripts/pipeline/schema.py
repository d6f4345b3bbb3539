# debate_transcripts/pipeline/schema.py
"""
Authoritative output contracts for the acquisition pipeline.

- VerificationOutcome: result of cross-verifying primary and secondary transcripts
- TranscriptRecord: the finished record handed to the persistence collaborator

Records are frozen. Re-verifying a debate produces a new record.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from debate_transcripts.transcription.schema import PlatformTag, StrategyTag


class VerificationOutcome(BaseModel):
    final_content: str = Field(min_length=1)
    verified: bool
    similarity: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    degraded_reason: Optional[str] = None
    truncated: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_flags(self) -> "VerificationOutcome":
        if self.verified and self.degraded_reason:
            raise ValueError("a degraded verification cannot be marked verified")
        return self


class TranscriptRecord(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    debate_id: str = Field(min_length=1)
    content: str = Field(min_length=1)
    language: str = "en"
    verified: bool = False
    source_platform: PlatformTag
    source_url: str
    source_id: str
    origin_strategy: Optional[StrategyTag] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)



# High-Level Intent
# schema.py holds the two values that leave the pipeline. Intermediate values
# (SourceReference, TranscriptCandidate, AttemptFailure) live in
# transcription.schema because strategies produce them.

# Edge Cases
# verified=True together with degraded_reason is rejected at construction.
# similarity is diagnostic only; None when there was no second transcript.
