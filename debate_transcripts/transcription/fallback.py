# debate_transcripts/transcription/fallback.py
"""
Fallback controller.

When the primary strategy fails, a URL that points straight at a media file
gets one generic download-and-transcribe attempt. Nothing else qualifies.
"""

from __future__ import annotations

import logging

from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.transcription.base import StrategyContext, run_strategy
from debate_transcripts.transcription.media import direct_audio, is_direct_media_url
from debate_transcripts.transcription.schema import (
    AttemptFailure,
    DispatchResult,
    FailureType,
    SourceReference,
    StrategyTag,
)


STAGE_NAME = "fallback"


def _skip(primary: DispatchResult, ref: SourceReference, ctx: StrategyContext, reason: str) -> DispatchResult:
    primary.attempts.append(
        AttemptFailure(
            strategy=STAGE_NAME,
            type=FailureType.FALLBACK_SKIPPED,
            cause=reason,
            suggested_fixes=["Provide a direct link to the audio/video file"],
        )
    )
    log_event(
        ctx.logger,
        logging.INFO,
        "Fallback not attempted",
        stage_name=STAGE_NAME,
        event_type="failure",
        metadata={"reason": reason, "platform": ref.platform.value},
    )
    return primary


async def with_fallback(primary: DispatchResult, ref: SourceReference, ctx: StrategyContext) -> DispatchResult:
    """
    Try direct-media transcription once after a failed primary attempt.

    The returned DispatchResult carries every attempt, primary and fallback.
    """
    if primary.success or primary.used_fallback:
        return primary

    if StrategyTag.DIRECT_AUDIO in primary.strategies_tried:
        return _skip(primary, ref, ctx, "direct media transcription already attempted")

    if not is_direct_media_url(ref.source_url):
        return _skip(primary, ref, ctx, "source URL is not a recognised audio/video file")

    candidate, failure = await run_strategy(
        StrategyTag.DIRECT_AUDIO,
        direct_audio,
        ref,
        ctx,
        stage_name=STAGE_NAME,
    )

    primary.used_fallback = True
    primary.strategies_tried.append(StrategyTag.DIRECT_AUDIO)
    primary.candidate = candidate
    if failure is not None:
        primary.attempts.append(failure)
    return primary
