# debate_transcripts/pipeline/output/store.py
"""
Transcript persistence.

The pipeline only depends on the TranscriptStore protocol. JsonTranscriptStore
is the bundled implementation: one JSON artifact per record, named by the
record id, inside a single directory.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Protocol

from debate_transcripts.pipeline.schema import TranscriptRecord


class TranscriptStore(Protocol):
    async def save(self, record: TranscriptRecord) -> None:
        ...

    async def get(self, transcript_id: uuid.UUID | str) -> Optional[TranscriptRecord]:
        ...

    async def list_for_debate(self, debate_id: str) -> List[TranscriptRecord]:
        """Newest first."""
        ...


class JsonTranscriptStore:
    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, transcript_id: uuid.UUID | str) -> Path:
        # Validates the id, so a caller cannot address files outside the directory
        return self.directory / f"{uuid.UUID(str(transcript_id))}.json"

    def _write(self, record: TranscriptRecord) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self._path(record.id)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(record.model_dump_json(indent=2))
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _read(self, path: Path) -> TranscriptRecord:
        return TranscriptRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def _get(self, transcript_id: uuid.UUID | str) -> Optional[TranscriptRecord]:
        try:
            path = self._path(transcript_id)
        except ValueError:
            return None
        if not path.is_file():
            return None
        return self._read(path)

    def _list(self, debate_id: str) -> List[TranscriptRecord]:
        if not self.directory.is_dir():
            return []
        records = [self._read(path) for path in sorted(self.directory.glob("*.json"))]
        matching = [record for record in records if record.debate_id == debate_id]
        return sorted(matching, key=lambda record: record.created_at, reverse=True)

    async def save(self, record: TranscriptRecord) -> None:
        await asyncio.to_thread(self._write, record)

    async def get(self, transcript_id: uuid.UUID | str) -> Optional[TranscriptRecord]:
        return await asyncio.to_thread(self._get, transcript_id)

    async def list_for_debate(self, debate_id: str) -> List[TranscriptRecord]:
        return await asyncio.to_thread(self._list, debate_id)



# High-Level Intent
# Persistence is a collaborator, not part of acquisition. Any exception from
# save() is turned into PersistenceFailed by the runner, which keeps the
# finished record so the caller can retry without re-transcribing.

# Layout
# <directory>/<record id>.json, pretty-printed model_dump_json output.
# Writes go through a temp file + os.replace so readers never see half a record.
