from debate_transcripts.transcription.base import StrategyContext
from debate_transcripts.transcription.core import PRIMARY_STRATEGIES, dispatch, transcribe
from debate_transcripts.transcription.fallback import with_fallback
from debate_transcripts.transcription.schema import (
    AttemptFailure,
    DispatchResult,
    FailureType,
    PlatformTag,
    SourceReference,
    StrategyTag,
    TranscriptCandidate,
)
from debate_transcripts.transcription.speech import SpeechToText, build_speech_to_text

__all__ = [
    "AttemptFailure",
    "DispatchResult",
    "FailureType",
    "PRIMARY_STRATEGIES",
    "PlatformTag",
    "SourceReference",
    "SpeechToText",
    "StrategyContext",
    "StrategyTag",
    "TranscriptCandidate",
    "build_speech_to_text",
    "dispatch",
    "transcribe",
    "with_fallback",
]
