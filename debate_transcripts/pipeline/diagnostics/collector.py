# debate_transcripts/pipeline/diagnostics/collector.py
"""
Attempt aggregation for one acquisition request.

Central authority for the AttemptFailure records that end up in an
AllStrategiesExhausted error or in the success log line.
"""

from __future__ import annotations

from typing import Dict, Iterable, List
from uuid import UUID

from debate_transcripts.transcription.errors import AllStrategiesExhausted
from debate_transcripts.transcription.schema import AttemptFailure, PlatformTag, StrategyTag


class AttemptCollector:
    """
    Accumulates AttemptFailure objects in the order they happened.

    Thread-safe not required (one collector per request, one event loop).
    """

    def __init__(self, run_id: UUID) -> None:
        self.run_id = run_id
        self._attempts: List[AttemptFailure] = []
        self._strategies_tried: List[StrategyTag] = []

    def add(self, failure: AttemptFailure) -> None:
        self._attempts.append(failure)

    def extend(self, failures: Iterable[AttemptFailure]) -> None:
        self._attempts.extend(failures)

    def record_tried(self, strategies: Iterable[StrategyTag]) -> None:
        for tag in strategies:
            if tag not in self._strategies_tried:
                self._strategies_tried.append(tag)

    @property
    def attempts(self) -> List[AttemptFailure]:
        return list(self._attempts)

    def suggested_fixes(self) -> List[str]:
        """Deduplicated, order preserved."""
        return list(dict.fromkeys(fix for attempt in self._attempts for fix in attempt.suggested_fixes))

    def summary(self) -> Dict[str, object]:
        """Log-friendly view; no secrets, no transcript text."""
        return {
            "run_id": str(self.run_id),
            "strategies_tried": [tag.value for tag in self._strategies_tried],
            "failures": [attempt.describe() for attempt in self._attempts],
            "suggested_fixes": self.suggested_fixes(),
        }

    def exhausted(self, platform: PlatformTag, source_url: str) -> AllStrategiesExhausted:
        return AllStrategiesExhausted(platform, source_url, self._attempts)



# High-Level Intent
# Keeps attempt bookkeeping out of the runner.
# Runner creates one collector per request → adds the resolver's extraction
# failure and every dispatcher/fallback attempt → either logs summary() on
# success or raises exhausted() on failure.
