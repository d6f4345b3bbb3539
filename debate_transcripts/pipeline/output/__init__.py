from debate_transcripts.pipeline.output.store import JsonTranscriptStore, TranscriptStore

__all__ = ["JsonTranscriptStore", "TranscriptStore"]
