# debate_transcripts/pipeline/stages/resolve_source.py
"""
Stage 1: Source resolution.

Responsibility:
- Classify a debate's source URL into a PlatformTag
- Extract the platform-native identifier
- Degrade to PlatformTag.UNKNOWN instead of failing

Detection order: platform hint, host table, path shape, feed URL, media file
extension, unknown. No external network calls; pure and deterministic.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlsplit, SplitResult

from debate_transcripts.transcription.media import is_direct_media_url
from debate_transcripts.transcription.platform_lookup import is_feed_url
from debate_transcripts.transcription.schema import PlatformTag, SourceReference


# Product platform names accepted as hints, lower-cased
PLATFORM_ALIASES: Dict[str, PlatformTag] = {
    "youtube": PlatformTag.VIDEO,
    "twitch": PlatformTag.VIDEO,
    "vimeo": PlatformTag.VIDEO,
    "x": PlatformTag.MICROBLOG,
    "twitter": PlatformTag.MICROBLOG,
    "reddit": PlatformTag.MICROBLOG,
    "tiktok": PlatformTag.SHORT_FORM,
    "instagram": PlatformTag.SHORT_FORM,
    "soundcloud": PlatformTag.AUDIO,
    "spotify": PlatformTag.PODCAST,
    "podcasts": PlatformTag.PODCAST,
    "podcast": PlatformTag.PODCAST,
    "substack": PlatformTag.PODCAST,
    "telegram": PlatformTag.MESSAGING,
    "discord": PlatformTag.MESSAGING,
    "directmedia": PlatformTag.DIRECT_MEDIA,
    "other": PlatformTag.UNKNOWN,
}

# Ordered; first substring match on the host wins
HOST_TABLE: Sequence[Tuple[str, PlatformTag]] = (
    ("youtube.com", PlatformTag.VIDEO),
    ("youtube-nocookie.com", PlatformTag.VIDEO),
    ("youtu.be", PlatformTag.VIDEO),
    ("twitch.tv", PlatformTag.VIDEO),
    ("vimeo.com", PlatformTag.VIDEO),
    ("twitter.com", PlatformTag.MICROBLOG),
    ("x.com", PlatformTag.MICROBLOG),
    ("reddit.com", PlatformTag.MICROBLOG),
    ("tiktok.com", PlatformTag.SHORT_FORM),
    ("instagram.com", PlatformTag.SHORT_FORM),
    ("soundcloud.com", PlatformTag.AUDIO),
    ("podcasts.apple.com", PlatformTag.PODCAST),
    ("substack.com", PlatformTag.PODCAST),
    ("t.me", PlatformTag.MESSAGING),
    ("telegram.me", PlatformTag.MESSAGING),
    ("discord.com", PlatformTag.MESSAGING),
)

VIDEO_KEYWORDS = ("shorts", "embed", "live", "v", "videos", "video")
MICROBLOG_KEYWORDS = ("status", "statuses", "comments")
SHORT_FORM_KEYWORDS = ("video", "reel", "reels", "p", "shorts")


def parse_platform_hint(hint: Optional[str | PlatformTag]) -> Optional[PlatformTag]:
    """
    Accept a PlatformTag, a tag value ("video") or a product name ("YouTube").

    Unrecognised values and "unknown"/"Other" mean "no hint".
    """
    if hint is None:
        return None
    if isinstance(hint, PlatformTag):
        tag = hint
    else:
        key = str(hint).strip().lower().replace(" ", "").replace("_", "")
        tag = next((t for t in PlatformTag if t.value.replace("_", "") == key), None) or PLATFORM_ALIASES.get(key)
    if tag is None or tag == PlatformTag.UNKNOWN:
        return None
    return tag


def _parse(url: str) -> Optional[SplitResult]:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname or " " in url.strip():
        return None
    return parts


def _segments(parts: SplitResult) -> List[str]:
    return [segment for segment in parts.path.split("/") if segment]


def _after(segments: Sequence[str], keywords: Sequence[str]) -> Optional[str]:
    for index, segment in enumerate(segments[:-1]):
        if segment.lower() in keywords:
            return segments[index + 1]
    return None


def _query(parts: SplitResult, name: str) -> Optional[str]:
    values = parse_qs(parts.query).get(name)
    return values[0].strip() if values and values[0].strip() else None


def _single_segment(segments: Sequence[str]) -> Optional[str]:
    if len(segments) == 1 and not segments[0].startswith("@") and segments[0].lower() != "watch":
        return segments[0]
    return None


def _host_platform(parts: SplitResult) -> Optional[PlatformTag]:
    host = (parts.hostname or "").lower()
    if "spotify.com" in host:
        return PlatformTag.AUDIO if "/track/" in parts.path else PlatformTag.PODCAST
    for needle, tag in HOST_TABLE:
        if host == needle or host.endswith("." + needle) or (needle.count(".") > 1 and needle in host):
            return tag
    return None


def _path_platform(parts: SplitResult) -> Optional[PlatformTag]:
    segments = [segment.lower() for segment in _segments(parts)]
    if segments[-1:] == ["watch"] and _query(parts, "v"):
        return PlatformTag.VIDEO
    if _after(segments, ("status", "statuses")):
        return PlatformTag.MICROBLOG
    if _after(segments, ("episode",)):
        return PlatformTag.PODCAST
    if _after(segments, ("track",)):
        return PlatformTag.AUDIO
    return None


def _last_numeric(segments: Sequence[str]) -> Optional[str]:
    return next((segment for segment in reversed(segments) if segment.isdigit()), None)


def _video_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    # vimeo.com/channels/staffpicks/123 and similar nested paths end in the numeric id
    return (
        _query(parts, "v")
        or _after(segments, VIDEO_KEYWORDS)
        or _single_segment(segments)
        or _last_numeric(segments)
    )


def _microblog_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    return _after(segments, MICROBLOG_KEYWORDS)


def _short_form_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    return _after(segments, SHORT_FORM_KEYWORDS) or _single_segment(segments)


def _audio_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    return _after(segments, ("track",)) or ("/".join(segments) if len(segments) >= 2 else None)


def _podcast_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    if is_feed_url(parts.geturl()):
        return parts.path
    return _query(parts, "i") or _after(segments, ("episode",)) or (segments[-1] if segments else None)


def _messaging_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    return "/".join(segments) or None


def _direct_media_id(parts: SplitResult, segments: List[str]) -> Optional[str]:
    return parts.path or None


EXTRACTORS: Dict[PlatformTag, Callable[[SplitResult, List[str]], Optional[str]]] = {
    PlatformTag.VIDEO: _video_id,
    PlatformTag.MICROBLOG: _microblog_id,
    PlatformTag.SHORT_FORM: _short_form_id,
    PlatformTag.AUDIO: _audio_id,
    PlatformTag.PODCAST: _podcast_id,
    PlatformTag.MESSAGING: _messaging_id,
    PlatformTag.DIRECT_MEDIA: _direct_media_id,
}

_unmapped = set(PlatformTag) - set(EXTRACTORS) - {PlatformTag.UNKNOWN}
if _unmapped:
    raise RuntimeError(f"No identifier extractor for: {sorted(tag.value for tag in _unmapped)}")


def detect_platform(parts: SplitResult, url: str) -> PlatformTag:
    return (
        _host_platform(parts)
        or _path_platform(parts)
        or (PlatformTag.PODCAST if is_feed_url(url) else None)
        or (PlatformTag.DIRECT_MEDIA if is_direct_media_url(url) else PlatformTag.UNKNOWN)
    )


def resolve(url: str, hint: Optional[str | PlatformTag] = None) -> SourceReference:
    """
    Resolve url (plus optional hint) into a SourceReference.

    Never raises. A malformed URL resolves to UNKNOWN with source_id=url; a
    detected platform whose identifier cannot be extracted is downgraded to
    UNKNOWN with unresolved_platform set.
    """
    url = (url or "").strip()
    parts = _parse(url)
    if parts is None:
        return SourceReference(platform=PlatformTag.UNKNOWN, source_id=url, source_url=url)

    platform = parse_platform_hint(hint) or detect_platform(parts, url)
    if platform == PlatformTag.UNKNOWN:
        return SourceReference(platform=PlatformTag.UNKNOWN, source_id=url, source_url=url)

    source_id = (EXTRACTORS[platform](parts, _segments(parts)) or "").strip()
    if not source_id:
        return SourceReference(
            platform=PlatformTag.UNKNOWN,
            source_id=url,
            source_url=url,
            unresolved_platform=platform,
        )
    return SourceReference(platform=platform, source_id=source_id, source_url=url)



# High-Level Intent
# resolve_source is the first stage and the only one without I/O.
# It decides which strategy the dispatcher will run, so its output must be
# stable: the same (url, hint) always gives the same SourceReference.

# Valid forms (examples)
# https://www.youtube.com/watch?v=dQw4w9WgXcQ        → video / dQw4w9WgXcQ
# https://youtu.be/dQw4w9WgXcQ?t=30                   → video / dQw4w9WgXcQ
# https://x.com/someone/status/1790000000000000000     → microblog / 1790000000000000000
# https://open.spotify.com/episode/4rOoJ6Egrf8K2IrywzwOMk → podcast / 4rOoJ6Egrf8K2IrywzwOMk
# https://cdn.example.org/debates/final.mp3?sig=abc    → direct_media / /debates/final.mp3

# Edge Cases
# "not a url", ftp:// links, missing host → unknown, source_id = input
# youtube.com/@channel (no video id) → unknown with unresolved_platform=video
# Hint "Other"/"unknown" is ignored so direct media links are still detected
