# debate_transcripts/transcription/media.py
"""
Direct-media strategy: download an audio/video file and transcribe it.
Single responsibility: payload validation + hand-off to speech-to-text.

Also owns the "is this URL a media file" rule shared by the resolver and
the fallback controller.
"""

from __future__ import annotations

import logging
import posixpath
import re
from urllib.parse import urlsplit

from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.transcription.base import StrategyContext, timer
from debate_transcripts.transcription.schema import SourceReference, StrategyTag, TranscriptCandidate
from debate_transcripts.transcription.transport import fetch_media


MEDIA_EXTENSIONS = (
    "mp3", "m4a", "aac", "wav", "ogg", "oga", "opus", "flac", "weba",
    "mp4", "m4v", "mov", "webm", "mkv", "mpeg", "mpga", "avi",
)

_MEDIA_PATH = re.compile(r"\.(?:%s)$" % "|".join(MEDIA_EXTENSIONS), re.IGNORECASE)


def is_direct_media_url(url: str) -> bool:
    """True when the URL path ends in a known media extension (query string ignored)."""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False
    return bool(_MEDIA_PATH.search(parts.path))


def media_filename(url: str, default: str = "audio.mp3") -> str:
    name = posixpath.basename(urlsplit(url).path)
    return name if _MEDIA_PATH.search(name) else default


async def transcribe_url(
    media_url: str,
    ctx: StrategyContext,
    *,
    strategy: StrategyTag,
    headers: dict | None = None,
) -> TranscriptCandidate:
    """Fetch media_url and run speech-to-text on the payload."""
    ctx.speech.check_available(strategy.value)
    with timer() as end:
        audio = await fetch_media(ctx.http, media_url, ctx.config, strategy=strategy.value, headers=headers)
        log_event(
            ctx.logger,
            logging.INFO,
            "Media downloaded",
            stage_name=strategy.value,
            event_type="progress",
            metadata={"bytes": len(audio), "execution_time_ms": end()},
        )
        text = await ctx.speech.transcribe(
            audio,
            filename=media_filename(media_url),
            language=ctx.config.language,
            strategy=strategy.value,
        )
    return TranscriptCandidate(content=text, origin_strategy=strategy)


async def direct_audio(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    """Strategy for DirectMedia sources and the generic fallback."""
    return await transcribe_url(ref.source_url, ctx, strategy=StrategyTag.DIRECT_AUDIO)
