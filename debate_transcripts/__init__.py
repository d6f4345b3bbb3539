"""Debate transcript acquisition and cross-verification."""

from debate_transcripts.config import AcquisitionConfig, Timeouts
from debate_transcripts.pipeline.output.store import JsonTranscriptStore, TranscriptStore
from debate_transcripts.pipeline.runner import acquire_transcript
from debate_transcripts.pipeline.schema import TranscriptRecord, VerificationOutcome
from debate_transcripts.pipeline.stages.resolve_source import resolve
from debate_transcripts.transcription.errors import (
    AcquisitionCancelled,
    AllStrategiesExhausted,
    PersistenceFailed,
    TranscriptPipelineError,
)
from debate_transcripts.transcription.schema import PlatformTag, SourceReference, StrategyTag

__version__ = "0.1.0"

__all__ = [
    "AcquisitionCancelled",
    "AcquisitionConfig",
    "AllStrategiesExhausted",
    "JsonTranscriptStore",
    "PersistenceFailed",
    "PlatformTag",
    "SourceReference",
    "StrategyTag",
    "Timeouts",
    "TranscriptPipelineError",
    "TranscriptRecord",
    "TranscriptStore",
    "VerificationOutcome",
    "acquire_transcript",
    "resolve",
]
