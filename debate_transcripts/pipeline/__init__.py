from debate_transcripts.pipeline.runner import acquire_transcript
from debate_transcripts.pipeline.schema import TranscriptRecord, VerificationOutcome

__all__ = ["TranscriptRecord", "VerificationOutcome", "acquire_transcript"]
