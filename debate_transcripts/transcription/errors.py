# debate_transcripts/transcription/errors.py
"""
Exception taxonomy for transcript acquisition.

Strategy-level exceptions (StrategyUnavailable, NoTranscriptAvailable,
AcquisitionFailed) never leave the dispatcher; they are converted into
AttemptFailure records. Only AllStrategiesExhausted, PersistenceFailed and
AcquisitionCancelled reach callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from debate_transcripts.transcription.schema import AttemptFailure, FailureType, PlatformTag

if TYPE_CHECKING:
    from debate_transcripts.pipeline.schema import TranscriptRecord


class TranscriptPipelineError(Exception):
    """Base class for every error raised by this package."""


class StrategyError(TranscriptPipelineError):
    """A single strategy did not produce a transcript."""

    failure_type: FailureType = FailureType.ACQUISITION_FAILED

    def __init__(self, strategy: str, cause: str, suggested_fixes: Optional[List[str]] = None) -> None:
        super().__init__(f"{strategy}: {cause}")
        self.strategy = strategy
        self.cause = cause
        self.suggested_fixes = list(suggested_fixes or [])

    def to_failure(self) -> AttemptFailure:
        return AttemptFailure(
            strategy=self.strategy,
            type=self.failure_type,
            cause=self.cause,
            suggested_fixes=self.suggested_fixes,
        )


class SourceIdExtractionFailed(StrategyError):
    failure_type = FailureType.SOURCE_ID_EXTRACTION_FAILED


class StrategyUnavailable(StrategyError):
    """Required credential or configuration is missing."""
    failure_type = FailureType.STRATEGY_UNAVAILABLE


class NoTranscriptAvailable(StrategyError):
    """The service answered, but has no transcript for this content."""
    failure_type = FailureType.NO_TRANSCRIPT


class AcquisitionFailed(StrategyError):
    failure_type = FailureType.ACQUISITION_FAILED

    def __init__(
        self,
        strategy: str,
        cause: str,
        suggested_fixes: Optional[List[str]] = None,
        *,
        transient: bool = False,
    ) -> None:
        super().__init__(strategy, cause, suggested_fixes)
        self.transient = transient


class AllStrategiesExhausted(TranscriptPipelineError):
    """Terminal: no strategy produced a transcript."""

    def __init__(self, platform: PlatformTag, source_url: str, attempts: Sequence[AttemptFailure]) -> None:
        self.platform = platform
        self.source_url = source_url
        self.attempts = list(attempts)
        tried = "; ".join(attempt.describe() for attempt in self.attempts) or "no strategy was attempted"
        super().__init__(
            f"Could not acquire a transcript for {platform.value} source {source_url}. Tried: {tried}"
        )


class PersistenceFailed(TranscriptPipelineError):
    """The store rejected a finished record. The record is kept for a retry."""

    def __init__(self, record: "TranscriptRecord", cause: str) -> None:
        super().__init__(f"Failed to store transcript {record.id} for debate {record.debate_id}: {cause}")
        self.record = record
        self.cause = cause


class AcquisitionCancelled(TranscriptPipelineError):
    """The caller signalled cancellation before the pipeline finished."""
