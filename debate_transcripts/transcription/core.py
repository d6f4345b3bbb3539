# debate_transcripts/transcription/core.py
"""
Strategy dispatcher.
Single responsibility: map a platform to its primary strategy and run it.

PRIMARY_STRATEGIES is exhaustive over PlatformTag; a missing entry fails at
import time rather than at the first request for that platform.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

from debate_transcripts.transcription.base import Strategy, StrategyContext, run_strategy
from debate_transcripts.transcription.captions import get_captions
from debate_transcripts.transcription.errors import StrategyUnavailable
from debate_transcripts.transcription.fallback import with_fallback
from debate_transcripts.transcription.media import direct_audio
from debate_transcripts.transcription.platform_lookup import platform_lookup, podcast_feed
from debate_transcripts.transcription.schema import (
    DispatchResult,
    PlatformTag,
    SourceReference,
    StrategyTag,
    TranscriptCandidate,
)


async def unsupported(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    """Unknown sources have no platform strategy; only the generic fallback can help."""
    raise StrategyUnavailable(
        StrategyTag.UNSUPPORTED.value,
        "no platform-specific strategy for unrecognised sources",
        ["Provide a platform hint", "Use a direct link to the audio/video file"],
    )


PRIMARY_STRATEGIES: Mapping[PlatformTag, Tuple[StrategyTag, Strategy]] = MappingProxyType({
    PlatformTag.VIDEO: (StrategyTag.CAPTIONS, get_captions),
    PlatformTag.AUDIO: (StrategyTag.PLATFORM_LOOKUP, platform_lookup),
    PlatformTag.SHORT_FORM: (StrategyTag.PLATFORM_LOOKUP, platform_lookup),
    PlatformTag.MICROBLOG: (StrategyTag.PLATFORM_LOOKUP, platform_lookup),
    PlatformTag.MESSAGING: (StrategyTag.PLATFORM_LOOKUP, platform_lookup),
    PlatformTag.PODCAST: (StrategyTag.PODCAST_FEED, podcast_feed),
    PlatformTag.DIRECT_MEDIA: (StrategyTag.DIRECT_AUDIO, direct_audio),
    PlatformTag.UNKNOWN: (StrategyTag.UNSUPPORTED, unsupported),
})

_unmapped = set(PlatformTag) - set(PRIMARY_STRATEGIES)
if _unmapped:
    raise RuntimeError(f"No primary strategy registered for: {sorted(tag.value for tag in _unmapped)}")


async def dispatch(ref: SourceReference, ctx: StrategyContext) -> DispatchResult:
    """Run the primary strategy registered for ref.platform."""
    tag, strategy = PRIMARY_STRATEGIES[ref.platform]
    candidate, failure = await run_strategy(tag, strategy, ref, ctx, stage_name="dispatch")

    result = DispatchResult(candidate=candidate, strategies_tried=[tag])
    if failure is not None:
        result.attempts.append(failure)
    return result


async def transcribe(ref: SourceReference, ctx: StrategyContext) -> DispatchResult:
    """Orchestrate the primary strategy with the generic fallback."""
    primary = await dispatch(ref, ctx)
    if primary.success:
        return primary
    return await with_fallback(primary, ref, ctx)
