# debate_transcripts/pipeline/stages/cross_verify.py
"""
Stage 4: Cross-verification.

Responsibility:
- Reconcile the primary transcript against the secondary one when there is one
- Set verified=True only after a successful reconciliation
- Degrade to the unverified primary on timeout, error or blank output

Never raises except on cancellation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.pipeline.reconcile import Reconciler, jaccard_similarity
from debate_transcripts.pipeline.schema import VerificationOutcome
from debate_transcripts.transcription.base import timer


STAGE_NAME = "cross_verify"


def split_at_word_boundary(text: str, limit: int) -> Tuple[str, str]:
    """
    Cut text to at most limit characters without splitting a word.

    Returns (head, rest) with head + rest == text. A single word longer than
    limit is cut hard.
    """
    if len(text) <= limit:
        return text, ""
    cut = limit
    if not text[cut].isspace():
        boundary = max(text.rfind(" ", 0, cut), text.rfind("\n", 0, cut))
        if boundary > 0:
            cut = boundary
    return text[:cut], text[cut:]


def _degraded(primary: str, reason: str, similarity: Optional[float], logger) -> VerificationOutcome:
    log_event(
        logger,
        logging.WARNING,
        "Verification degraded; keeping unverified primary transcript",
        stage_name=STAGE_NAME,
        event_type="degraded",
        metadata={"reason": reason},
    )
    return VerificationOutcome(
        final_content=primary,
        verified=False,
        similarity=similarity,
        degraded_reason=reason,
    )


async def cross_verify(
    primary: str,
    secondary: Optional[str],
    reconciler: Reconciler,
    *,
    max_chars: int,
    timeout: float,
    logger: logging.Logger | logging.LoggerAdapter,
) -> VerificationOutcome:
    """Reconcile primary with secondary into a VerificationOutcome."""
    if not secondary:
        log_event(
            logger,
            logging.INFO,
            "No secondary transcript; returning primary unverified",
            stage_name=STAGE_NAME,
            event_type="skipped",
        )
        return VerificationOutcome(final_content=primary, verified=False)

    similarity = jaccard_similarity(primary, secondary)
    primary_head, primary_rest = split_at_word_boundary(primary, max_chars)
    secondary_head, _ = split_at_word_boundary(secondary, max_chars)
    truncated = bool(primary_rest) or len(secondary_head) < len(secondary)

    log_event(
        logger,
        logging.INFO,
        "Reconciling transcripts",
        stage_name=STAGE_NAME,
        event_type="start",
        metadata={
            "primary_characters": len(primary),
            "secondary_characters": len(secondary),
            "similarity": similarity,
            "truncated": truncated,
        },
    )

    with timer() as end:
        try:
            merged = await asyncio.wait_for(reconciler.reconcile(primary_head, secondary_head), timeout=timeout)
        except asyncio.TimeoutError:
            return _degraded(primary, f"reconciliation exceeded {timeout:g}s budget", similarity, logger)
        except Exception as exc:  # pylint: disable=broad-except
            return _degraded(primary, f"reconciliation failed: {exc.__class__.__name__}: {exc}", similarity, logger)

    if not merged or not merged.strip():
        return _degraded(primary, "reconciler returned an empty transcript", similarity, logger)

    final_content = merged.strip() + primary_rest.rstrip() if primary_rest else merged.strip()

    log_event(
        logger,
        logging.INFO,
        "Transcripts reconciled",
        stage_name=STAGE_NAME,
        event_type="success",
        metadata={"characters": len(final_content), "execution_time_ms": end()},
    )
    return VerificationOutcome(
        final_content=final_content,
        verified=True,
        similarity=similarity,
        truncated=truncated,
    )



# High-Level Intent
# cross_verify turns two transcripts into one outcome and owns the verified
# flag. Nothing else in the pipeline may set verified=True.

# Truncation
# Long transcripts are reconciled up to max_chars; the remainder of the
# primary is appended verbatim and truncated=True records that it was not
# cross-checked.

# Edge Cases
# secondary None or blank → primary, verified=False, no reconciler call
# reconciler raises / times out / returns "" → primary, verified=False, degraded_reason set
