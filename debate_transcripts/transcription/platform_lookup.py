# debate_transcripts/transcription/platform_lookup.py
"""
Platform-API-backed strategies: locate the media behind a platform page, then
transcribe its audio.

- platform_lookup: yt-dlp resolves the audio stream (SoundCloud, TikTok, X,
  Reddit, Telegram, Twitch, ...)
- podcast_feed: RSS/Atom feeds are parsed with feedparser and the episode
  enclosure is transcribed; podcast pages that are not feeds use platform_lookup
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit

import feedparser
import httpx

from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.transcription.base import StrategyContext
from debate_transcripts.transcription.errors import AcquisitionFailed, NoTranscriptAvailable
from debate_transcripts.transcription.media import transcribe_url
from debate_transcripts.transcription.schema import SourceReference, StrategyTag, TranscriptCandidate
from debate_transcripts.transcription.transport import bounded, is_transient, with_retry
from debate_transcripts.transcription.ytdlp import best_audio, extract_info


_FEED_PATH = re.compile(r"(?:\.rss|\.xml|/feed/?|/rss/?)$", re.IGNORECASE)


def is_feed_url(url: str) -> bool:
    parts = urlsplit(url)
    return bool(_FEED_PATH.search(parts.path)) or "format=rss" in parts.query.lower()


async def lookup_and_transcribe(
    ref: SourceReference,
    ctx: StrategyContext,
    *,
    strategy: StrategyTag = StrategyTag.PLATFORM_LOOKUP,
) -> TranscriptCandidate:
    ctx.speech.check_available(strategy.value)
    info = await extract_info(ref.source_url, ctx, strategy=strategy.value)

    stream = best_audio(info)
    if stream is None:
        raise NoTranscriptAvailable(
            strategy.value,
            "the platform reports no audio or video stream for this post",
            ["Text-only posts have no transcript to acquire"],
        )

    media_url, headers = stream
    log_event(
        ctx.logger,
        logging.INFO,
        "Media stream located",
        stage_name=strategy.value,
        event_type="progress",
        metadata={"extractor": info.get("extractor_key"), "duration_seconds": info.get("duration")},
    )
    return await transcribe_url(media_url, ctx, strategy=strategy, headers=headers or None)


async def platform_lookup(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    return await lookup_and_transcribe(ref, ctx)


def _entry_enclosure(entry: Any) -> Optional[str]:
    for enclosure in entry.get("enclosures") or []:
        if enclosure.get("href"):
            return enclosure["href"]
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and link.get("href"):
            return link["href"]
    return None


def select_episode(feed: Any, episode_key: Optional[str]) -> Optional[Any]:
    """Entry matching episode_key (guid, link or title), else the newest entry."""
    entries = list(feed.get("entries") or [])
    if not entries:
        return None
    if episode_key:
        for entry in entries:
            if episode_key in (entry.get("id"), entry.get("guid"), entry.get("link"), entry.get("title")):
                return entry
        return None
    return entries[0]


async def _fetch_feed(url: str, ctx: StrategyContext) -> Any:
    strategy = StrategyTag.PODCAST_FEED.value

    async def call() -> bytes:
        try:
            response = await bounded(ctx.http.get(url), ctx.config.timeouts.metadata, strategy=strategy, step="feed fetch")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AcquisitionFailed(
                strategy,
                f"feed fetch failed: {exc.__class__.__name__}: {exc}",
                ["Check the feed URL"],
                transient=is_transient(exc),
            ) from exc
        return response.content

    feed = feedparser.parse(await with_retry(call, ctx.config))
    if feed.get("bozo") and not feed.get("entries"):
        raise AcquisitionFailed(
            strategy,
            f"feed is malformed: {feed.get('bozo_exception')}",
            ["Check the URL points at an RSS/Atom feed"],
        )
    return feed


async def podcast_feed(ref: SourceReference, ctx: StrategyContext) -> TranscriptCandidate:
    if not is_feed_url(ref.source_url):
        return await lookup_and_transcribe(ref, ctx, strategy=StrategyTag.PODCAST_FEED)

    strategy = StrategyTag.PODCAST_FEED
    ctx.speech.check_available(strategy.value)
    feed_url, _, episode_key = ref.source_url.partition("#")
    feed = await _fetch_feed(feed_url, ctx)

    entry = select_episode(feed, episode_key or None)
    if entry is None:
        raise NoTranscriptAvailable(
            strategy.value,
            f"feed has no episode matching '{episode_key}'" if episode_key else "feed has no episodes",
            ["Check the episode guid after '#'"],
        )
    enclosure = _entry_enclosure(entry)
    if not enclosure:
        raise NoTranscriptAvailable(strategy.value, "episode has no audio enclosure")

    log_event(
        ctx.logger,
        logging.INFO,
        "Podcast episode selected",
        stage_name=strategy.value,
        event_type="progress",
        metadata={"episode": entry.get("title"), "feed": feed.get("feed", {}).get("title")},
    )
    return await transcribe_url(enclosure, ctx, strategy=strategy)
