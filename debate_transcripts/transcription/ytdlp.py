# debate_transcripts/transcription/ytdlp.py
"""
yt-dlp metadata lookups.

Responsibility:
- Extract the info dict for any supported platform URL without downloading media
- Pick the best audio stream and caption tracks from it

Requires yt-dlp>=2024 (handles modern platform changes).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import yt_dlp

from debate_transcripts.transcription.base import StrategyContext, run_blocking
from debate_transcripts.transcription.errors import AcquisitionFailed, NoTranscriptAvailable
from debate_transcripts.transcription.schema import caption_track_id
from debate_transcripts.transcription.transport import with_retry


YDL_PARAMS = {
    "quiet": True,
    "no_warnings": True,
    "skip_download": True,
    "noplaylist": True,
    "format": "bestaudio/best",
}

CAPTION_FORMATS = ("vtt", "srt")


def _extract(url: str, socket_timeout: float) -> Dict[str, Any]:
    params = {**YDL_PARAMS, "socket_timeout": socket_timeout}
    with yt_dlp.YoutubeDL(params) as ydl:
        info = ydl.extract_info(url, download=False)
    if not info:
        raise yt_dlp.DownloadError("No info returned")
    return ydl.sanitize_info(info)


async def extract_info(url: str, ctx: StrategyContext, *, strategy: str) -> Dict[str, Any]:
    """
    Metadata for url, bounded by the metadata budget.

    Unavailable/private/unsupported content is NoTranscriptAvailable;
    anything else is a (possibly transient) AcquisitionFailed.
    """

    async def call() -> Dict[str, Any]:
        try:
            return await run_blocking(
                _extract,
                url,
                ctx.config.timeouts.metadata,
                seconds=ctx.config.timeouts.metadata,
                strategy=strategy,
                step="metadata lookup",
            )
        except yt_dlp.DownloadError as exc:
            # Covers unsupported, unavailable, private, deleted, age-restricted, geo-blocked
            message = str(exc).lower()
            if "unsupported url" in message:
                raise NoTranscriptAvailable(strategy, "no extractor supports this URL") from exc
            if any(marker in message for marker in ("unavailable", "private", "removed", "not found", "404", "no video")):
                raise NoTranscriptAvailable(
                    strategy,
                    f"content unavailable: {exc}",
                    ["Check the post is public and not deleted"],
                ) from exc
            suggested = ["Try again later", "Update yt-dlp"]
            if "sign in" in message or "login" in message or "age" in message:
                suggested.append("Content requires an authenticated session")
            raise AcquisitionFailed(
                strategy,
                f"metadata lookup failed: {exc}",
                suggested,
                transient=any(marker in message for marker in ("timed out", "timeout", "connection", "429")),
            ) from exc

    return await with_retry(call, ctx.config)


def best_audio(info: Dict[str, Any]) -> Optional[Tuple[str, Dict[str, str]]]:
    """(url, http_headers) of the stream yt-dlp selected, or the best audio-only format."""
    if info.get("url"):
        return info["url"], dict(info.get("http_headers") or {})

    formats = info.get("formats") or []
    audio_only = [f for f in formats if f.get("url") and f.get("vcodec") in (None, "none")]
    candidates = audio_only or [f for f in formats if f.get("url")]
    if not candidates:
        return None
    best = max(candidates, key=lambda f: (f.get("abr") or 0, f.get("tbr") or 0))
    return best["url"], dict(best.get("http_headers") or info.get("http_headers") or {})


def caption_track(
    info: Dict[str, Any],
    language: str,
    *,
    include_automatic: bool,
) -> Optional[Tuple[str, str]]:
    """
    (url, track id) of a VTT/SRT caption track in language (or a regional variant of it).

    Uploader subtitles win over automatic captions.
    """
    pools = [(False, info.get("subtitles") or {})]
    if include_automatic:
        pools.append((True, info.get("automatic_captions") or {}))

    for generated, pool in pools:
        keys = [key for key in pool if key == language or key.split("-")[0] == language]
        for key in sorted(keys, key=lambda k: k != language):
            for fmt in CAPTION_FORMATS:
                for track in pool[key]:
                    if track.get("ext") == fmt and track.get("url"):
                        return track["url"], caption_track_id(generated, key)
    return None
