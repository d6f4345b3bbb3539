# debate_transcripts/transcription/captions.py
"""
Caption strategy for video platforms.
Single responsibility: fetch and concatenate captions.

YouTube sources go through youtube_transcript_api; other video hosts use the
caption tracks yt-dlp reports for the page.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple
from urllib.parse import urlsplit

import requests
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.transcription.base import StrategyContext, run_blocking
from debate_transcripts.transcription.errors import AcquisitionFailed, NoTranscriptAvailable
from debate_transcripts.transcription.schema import (
    SourceReference,
    StrategyTag,
    TranscriptCandidate,
    caption_track_id,
)
from debate_transcripts.transcription.subtitles import fetch_caption_text
from debate_transcripts.transcription.transport import with_retry
from debate_transcripts.transcription.ytdlp import caption_track, extract_info


YOUTUBE_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")

STRATEGY = StrategyTag.CAPTIONS


class _TimeoutSession(requests.Session):
    """requests has no session-wide timeout; inject one so worker threads stay bounded."""

    def __init__(self, timeout: float, user_agent: str, language: str) -> None:
        super().__init__()
        self._timeout = timeout
        self.headers.update({"User-Agent": user_agent, "Accept-Language": f"{language},en;q=0.8"})

    def request(self, method, url, **kwargs):  # type: ignore[override]
        kwargs.setdefault("timeout", self._timeout)
        return super().request(method, url, **kwargs)


def is_youtube_url(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    return any(host == known or host.endswith("." + known) for known in YOUTUBE_HOSTS)


def _fetch_youtube_captions(video_id: str, language: str, timeout: float, user_agent: str) -> Tuple[str, str]:
    with _TimeoutSession(timeout, user_agent, language) as session:
        api = YouTubeTranscriptApi(http_client=session)
        fetched = api.fetch(video_id, languages=[language])
    text = " ".join(snippet.text.strip() for snippet in fetched if snippet.text.strip())
    return text, caption_track_id(fetched.is_generated, fetched.language_code)


async def _youtube_captions(ref: SourceReference, ctx: StrategyContext) -> Tuple[str, str]:
    async def call() -> Tuple[str, str]:
        try:
            return await run_blocking(
                _fetch_youtube_captions,
                ref.source_id,
                ctx.config.language,
                ctx.config.timeouts.metadata,
                ctx.config.user_agent,
                seconds=ctx.config.timeouts.metadata,
                strategy=STRATEGY.value,
                step="captions lookup",
            )
        except (TranscriptsDisabled, NoTranscriptFound) as exc:
            raise NoTranscriptAvailable(
                STRATEGY.value,
                f"YouTube captions unavailable in '{ctx.config.language}'",
                ["Fallback to audio transcription"],
            ) from exc
        except VideoUnavailable as exc:
            raise NoTranscriptAvailable(
                STRATEGY.value,
                "video is unavailable",
                ["Check if video is public and not deleted"],
            ) from exc
        except CouldNotRetrieveTranscript as exc:
            raise AcquisitionFailed(
                STRATEGY.value,
                f"caption fetch failed: {exc.__class__.__name__}",
                ["Retry caption fetch"],
            ) from exc
        except requests.RequestException as exc:
            raise AcquisitionFailed(
                STRATEGY.value,
                f"caption fetch failed: {exc.__class__.__name__}: {exc}",
                ["Check network connectivity"],
                transient=True,
            ) from exc

    return await with_retry(call, ctx.config)


async def _hosted_captions(ref: SourceReference, ctx: StrategyContext) -> Tuple[str, str]:
    info = await extract_info(ref.source_url, ctx, strategy=STRATEGY.value)
    found: Optional[Tuple[str, str]] = caption_track(info, ctx.config.language, include_automatic=True)
    if not found:
        raise NoTranscriptAvailable(
            STRATEGY.value,
            f"no '{ctx.config.language}' caption track published for this video",
            ["Fallback to audio transcription"],
        )
    url, track = found
    return await fetch_caption_text(url, ctx, strategy=STRATEGY.value), track


async def get_captions(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    if is_youtube_url(ref.source_url):
        text, track = await _youtube_captions(ref, ctx)
    else:
        text, track = await _hosted_captions(ref, ctx)

    if not text.strip():
        raise NoTranscriptAvailable(STRATEGY.value, "caption track is empty")

    log_event(
        ctx.logger,
        logging.INFO,
        "Captions fetched",
        stage_name=STRATEGY.value,
        event_type="success",
        metadata={"source_id": ref.source_id, "track": track, "characters": len(text)},
    )
    return TranscriptCandidate(content=text, origin_strategy=STRATEGY, track=track)
