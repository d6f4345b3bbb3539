# debate_transcripts/transcription/subtitles.py
"""Plain-text extraction from WebVTT and SRT caption files."""

from __future__ import annotations

import html
import re
from typing import List

import httpx

from debate_transcripts.transcription.base import StrategyContext
from debate_transcripts.transcription.errors import AcquisitionFailed, NoTranscriptAvailable
from debate_transcripts.transcription.transport import bounded, is_transient, with_retry

_TAG = re.compile(r"<[^>]+>")


def captions_to_text(payload: str) -> str:
    """
    Collapse a VTT or SRT document into one line of text.

    Drops headers, cue numbers, timing lines, NOTE/STYLE blocks and inline
    tags. Consecutive duplicate lines (rolling captions) are kept once.
    """
    parts: List[str] = []
    skipping_block = False

    for raw_line in payload.replace("\r\n", "\n").split("\n"):
        line = raw_line.strip()
        if not line:
            skipping_block = False
            continue
        if skipping_block:
            continue
        if line.startswith(("WEBVTT", "NOTE", "STYLE", "REGION")):
            # Header (Kind:, Language:) and comment blocks run to the next blank line
            skipping_block = True
            continue
        if "-->" in line or line.isdigit():
            continue

        text = html.unescape(_TAG.sub("", line)).strip()
        if text and (not parts or parts[-1] != text):
            parts.append(text)

    return " ".join(parts)


async def fetch_caption_text(url: str, ctx: StrategyContext, *, strategy: str) -> str:
    """Download a caption file and return its text; an empty track is NoTranscriptAvailable."""

    async def call() -> str:
        try:
            response = await bounded(
                ctx.http.get(url),
                ctx.config.timeouts.metadata,
                strategy=strategy,
                step="caption download",
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AcquisitionFailed(
                strategy,
                f"caption download failed: {exc.__class__.__name__}: {exc}",
                ["Retry later"],
                transient=is_transient(exc),
            ) from exc
        return response.text

    text = captions_to_text(await with_retry(call, ctx.config))
    if not text:
        raise NoTranscriptAvailable(strategy, "caption track is empty")
    return text
