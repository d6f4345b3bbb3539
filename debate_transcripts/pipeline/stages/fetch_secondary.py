# debate_transcripts/pipeline/stages/fetch_secondary.py
"""
Stage 3 (runs alongside acquisition): fetch an independent second transcript.

Responsibility:
- YouTube: official caption tracks through the YouTube Data API (keyed), then
  uploader-published subtitles when the API is keyless, refused or empty
- Other platforms: uploader-published subtitles reported by yt-dlp
- Absence is a normal outcome; failures are logged and treated as absence

Never raises except on cancellation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.transcription.base import Strategy, StrategyContext, timer
from debate_transcripts.transcription.captions import is_youtube_url
from debate_transcripts.transcription.errors import (
    AcquisitionFailed,
    NoTranscriptAvailable,
    StrategyError,
    StrategyUnavailable,
)
from debate_transcripts.transcription.schema import (
    PlatformTag,
    SourceReference,
    StrategyTag,
    TranscriptCandidate,
    caption_track_id,
)
from debate_transcripts.transcription.subtitles import captions_to_text, fetch_caption_text
from debate_transcripts.transcription.transport import bounded, is_transient, with_retry
from debate_transcripts.transcription.ytdlp import caption_track, extract_info


STAGE_NAME = "fetch_secondary"

YOUTUBE_CAPTIONS_ENDPOINT = "https://www.googleapis.com/youtube/v3/captions"


async def _youtube_get(ctx: StrategyContext, url: str, params: Dict[str, str]) -> httpx.Response:
    strategy = StrategyTag.CAPTIONS_API.value

    async def call() -> httpx.Response:
        try:
            response = await bounded(
                ctx.http.get(url, params=params),
                ctx.config.timeouts.metadata,
                strategy=strategy,
                step="captions API call",
            )
        except httpx.HTTPError as exc:
            raise AcquisitionFailed(strategy, f"captions API unreachable: {exc}", transient=is_transient(exc)) from exc
        if response.status_code in (401, 403):
            raise StrategyUnavailable(
                strategy,
                f"captions API refused access (HTTP {response.status_code})",
                ["Check YOUTUBE_API_KEY", "The uploader may not allow caption downloads"],
            )
        if response.status_code >= 400:
            raise AcquisitionFailed(
                strategy,
                f"captions API returned HTTP {response.status_code}",
                transient=response.status_code in (429, 500, 502, 503, 504),
            )
        return response

    return await with_retry(call, ctx.config)


def pick_caption_id(items: List[Dict[str, Any]], language: str) -> Optional[Tuple[str, str]]:
    """(id, language) of a human-authored track; ASR and forced tracks are not independent sources."""
    for item in items:
        snippet = item.get("snippet") or {}
        track_language = (snippet.get("language") or "").lower()
        if snippet.get("trackKind", "").lower() != "standard":
            continue
        if track_language == language or track_language.split("-")[0] == language:
            return item.get("id"), track_language
    return None


async def youtube_captions_api(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    strategy = StrategyTag.CAPTIONS_API
    api_key = ctx.config.secret("youtube_api_key")
    if not api_key:
        raise StrategyUnavailable(strategy.value, "YOUTUBE_API_KEY is not configured")

    listing = await _youtube_get(
        ctx,
        YOUTUBE_CAPTIONS_ENDPOINT,
        {"part": "snippet", "videoId": ref.source_id, "key": api_key},
    )
    picked = pick_caption_id(listing.json().get("items") or [], ctx.config.language)
    if not picked:
        raise NoTranscriptAvailable(strategy.value, f"no human-authored '{ctx.config.language}' caption track")
    caption_id, track_language = picked

    download = await _youtube_get(
        ctx,
        f"{YOUTUBE_CAPTIONS_ENDPOINT}/{caption_id}",
        {"tfmt": "vtt", "key": api_key},
    )
    return TranscriptCandidate(
        content=captions_to_text(download.text),
        origin_strategy=strategy,
        track=caption_track_id(False, track_language),
    )


async def published_subtitles(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    strategy = StrategyTag.PUBLISHED_SUBTITLES
    info = await extract_info(ref.source_url, ctx, strategy=strategy.value)
    found = caption_track(info, ctx.config.language, include_automatic=False)
    if not found:
        raise NoTranscriptAvailable(strategy.value, "uploader published no subtitles")
    url, track = found
    text = await fetch_caption_text(url, ctx, strategy=strategy.value)
    return TranscriptCandidate(content=text, origin_strategy=strategy, track=track)


async def _video_secondary(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    if not is_youtube_url(ref.source_url):
        return await published_subtitles(ref, ctx)

    # captions.download answers 401/403 unless the key's project owns the video
    try:
        return await youtube_captions_api(ref, ctx)
    except (StrategyUnavailable, NoTranscriptAvailable) as exc:
        log_event(
            ctx.logger,
            logging.INFO,
            "Captions API gave no track; trying uploader subtitles",
            stage_name=STAGE_NAME,
            event_type="degraded",
            metadata={"cause": exc.cause},
        )
    return await published_subtitles(ref, ctx)


SECONDARY_SOURCES: Mapping[PlatformTag, Optional[Strategy]] = {
    PlatformTag.VIDEO: _video_secondary,
    PlatformTag.AUDIO: published_subtitles,
    PlatformTag.SHORT_FORM: published_subtitles,
    PlatformTag.MICROBLOG: published_subtitles,
    PlatformTag.MESSAGING: published_subtitles,
    PlatformTag.PODCAST: published_subtitles,
    PlatformTag.DIRECT_MEDIA: None,
    PlatformTag.UNKNOWN: None,
}

_unmapped = set(PlatformTag) - set(SECONDARY_SOURCES)
if _unmapped:
    raise RuntimeError(f"No secondary source entry for: {sorted(tag.value for tag in _unmapped)}")


async def fetch_secondary(ref: SourceReference, ctx: StrategyContext) -> Optional[TranscriptCandidate]:
    """Second, independently sourced transcript, or None."""
    source = SECONDARY_SOURCES[ref.platform]
    if source is None:
        log_event(
            ctx.logger,
            logging.INFO,
            "Platform has no secondary transcript source",
            stage_name=STAGE_NAME,
            event_type="skipped",
            metadata={"platform": ref.platform.value},
        )
        return None

    with timer() as end:
        try:
            candidate = await source(ref, ctx)
        except (NoTranscriptAvailable, StrategyUnavailable) as exc:
            log_event(
                ctx.logger,
                logging.INFO,
                "Secondary transcript unavailable",
                stage_name=STAGE_NAME,
                event_type="skipped",
                metadata={"strategy": exc.strategy, "cause": exc.cause},
            )
            return None
        except StrategyError as exc:
            log_event(
                ctx.logger,
                logging.WARNING,
                "Secondary transcript fetch failed; continuing without it",
                stage_name=STAGE_NAME,
                event_type="failure",
                metadata={"strategy": exc.strategy, "cause": exc.cause},
            )
            return None
        except Exception as exc:  # pylint: disable=broad-except
            # Includes a blank track rejected by TranscriptCandidate validation
            log_event(
                ctx.logger,
                logging.WARNING,
                "Unexpected error fetching secondary transcript; continuing without it",
                stage_name=STAGE_NAME,
                event_type="failure",
                metadata={"exception": f"{exc.__class__.__name__}: {exc}"},
            )
            return None

    log_event(
        ctx.logger,
        logging.INFO,
        "Secondary transcript fetched",
        stage_name=STAGE_NAME,
        event_type="success",
        metadata={
            "strategy": candidate.origin_strategy.value,
            "characters": len(candidate.content),
            "execution_time_ms": end(),
        },
    )
    return candidate
