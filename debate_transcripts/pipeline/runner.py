# debate_transcripts/pipeline/runner.py
"""
Orchestration runner for debate transcript acquisition.

Responsibilities:
- Initialize traceability (run_id, logger, attempt collector)
- Resolve the source, then acquire the primary transcript while the
  secondary transcript is fetched concurrently
- Cross-verify, build the TranscriptRecord and hand it to the store
- Own every request-scoped resource and close it on every exit path

No business logic lives here, only orchestration.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Optional

import httpx

from debate_transcripts.config import AcquisitionConfig
from debate_transcripts.logging_core.logger import get_logger, log_event
from debate_transcripts.pipeline.diagnostics.collector import AttemptCollector
from debate_transcripts.pipeline.output.store import TranscriptStore
from debate_transcripts.pipeline.reconcile import Reconciler, build_reconciler
from debate_transcripts.pipeline.schema import TranscriptRecord, VerificationOutcome
from debate_transcripts.pipeline.stages.cross_verify import cross_verify
from debate_transcripts.pipeline.stages.fetch_secondary import fetch_secondary
from debate_transcripts.pipeline.stages.resolve_source import parse_platform_hint, resolve
from debate_transcripts.transcription.base import StrategyContext, timer
from debate_transcripts.transcription.core import transcribe
from debate_transcripts.transcription.errors import (
    AcquisitionCancelled,
    PersistenceFailed,
    SourceIdExtractionFailed,
)
from debate_transcripts.transcription.schema import PlatformTag, TranscriptCandidate
from debate_transcripts.transcription.speech import SpeechToText, build_speech_to_text
from debate_transcripts.transcription.transport import new_http_client


async def _join_secondary(task: Optional[asyncio.Task]) -> Optional[TranscriptCandidate]:
    if task is None:
        return None
    return await task


async def _discard(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done():
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


def _independent(
    primary: TranscriptCandidate,
    secondary: Optional[TranscriptCandidate],
    logger: logging.LoggerAdapter,
) -> Optional[TranscriptCandidate]:
    """Drop a secondary read from the very caption track the primary used."""
    if secondary is None or secondary.track is None or secondary.track != primary.track:
        return secondary
    log_event(
        logger,
        logging.INFO,
        "Secondary transcript is the primary's own caption track; not independent",
        stage_name="fetch_secondary",
        event_type="skipped",
        metadata={"track": secondary.track, "strategy": secondary.origin_strategy.value},
    )
    return None


async def _acquire(
    debate_id: str,
    source_url: str,
    platform_hint: Optional[str | PlatformTag],
    config: AcquisitionConfig,
    store: Optional[TranscriptStore],
    speech: Optional[SpeechToText],
    reconciler: Optional[Reconciler],
    transport: Optional[httpx.AsyncBaseTransport],
) -> TranscriptRecord:
    run_id = uuid.uuid4()
    logger = get_logger(run_id)
    collector = AttemptCollector(run_id)

    log_event(
        logger,
        logging.INFO,
        "Starting transcript acquisition",
        event_type="pipeline_start",
        metadata={"debate_id": debate_id, "url": source_url, "platform_hint": str(platform_hint or "")},
    )

    if platform_hint and str(platform_hint).strip().lower() not in ("unknown", "other"):
        if parse_platform_hint(platform_hint) is None:
            log_event(
                logger,
                logging.WARNING,
                "Unrecognised platform hint ignored",
                stage_name="resolve_source",
                event_type="degraded",
                metadata={"platform_hint": str(platform_hint)},
            )

    ref = resolve(source_url, platform_hint)
    log_event(
        logger,
        logging.INFO,
        "Source resolved",
        stage_name="resolve_source",
        event_type="success",
        metadata={
            "platform": ref.platform.value,
            "source_id": ref.source_id,
            "unresolved_platform": ref.unresolved_platform.value if ref.unresolved_platform else None,
        },
    )
    if ref.unresolved_platform is not None:
        collector.add(
            SourceIdExtractionFailed(
                "resolve_source",
                f"detected {ref.unresolved_platform.value} but could not extract an identifier",
                ["Check the URL points at a single item, not a channel or profile"],
            ).to_failure()
        )

    owns_speech = speech is None
    owns_reconciler = reconciler is None
    http: Optional[httpx.AsyncClient] = None
    secondary_task: Optional[asyncio.Task] = None

    try:
        speech = speech or build_speech_to_text(config)
        http = new_http_client(config, transport)
        ctx = StrategyContext(config=config, http=http, speech=speech, logger=logger)

        with timer() as end:
            if config.verify:
                secondary_task = asyncio.create_task(fetch_secondary(ref, ctx), name=f"secondary-{run_id}")

            result = await transcribe(ref, ctx)
            collector.record_tried(result.strategies_tried)
            collector.extend(result.attempts)

            if not result.success:
                await _discard(secondary_task)
                error = collector.exhausted(ref.platform, ref.source_url)
                log_event(
                    logger,
                    logging.ERROR,
                    "All strategies exhausted",
                    event_type="pipeline_failure",
                    metadata={**collector.summary(), "execution_time_ms": end()},
                )
                raise error

            primary = result.candidate
            if config.verify:
                secondary = _independent(primary, await _join_secondary(secondary_task), logger)
                if reconciler is None:
                    reconciler = build_reconciler(config)
                outcome = await cross_verify(
                    primary.content,
                    secondary.content if secondary else None,
                    reconciler,
                    max_chars=config.max_reconcile_chars,
                    timeout=config.timeouts.reconciliation,
                    logger=logger,
                )
            else:
                outcome = VerificationOutcome(final_content=primary.content, verified=False)
    finally:
        await _discard(secondary_task)
        if http is not None:
            await http.aclose()
        if owns_speech and speech is not None:
            await speech.aclose()
        if owns_reconciler and reconciler is not None:
            await reconciler.aclose()

    record = TranscriptRecord(
        debate_id=debate_id,
        content=outcome.final_content,
        language=config.language,
        verified=outcome.verified,
        source_platform=ref.platform,
        source_url=ref.source_url,
        source_id=ref.source_id,
        origin_strategy=primary.origin_strategy,
    )

    if store is not None:
        try:
            await store.save(record)
        except Exception as exc:  # pylint: disable=broad-except
            log_event(
                logger,
                logging.ERROR,
                "Failed to persist transcript",
                event_type="pipeline_failure",
                metadata={"transcript_id": str(record.id), "exception": f"{exc.__class__.__name__}: {exc}"},
            )
            raise PersistenceFailed(record, f"{exc.__class__.__name__}: {exc}") from exc

    log_event(
        logger,
        logging.INFO,
        "Transcript acquisition completed",
        event_type="pipeline_success",
        metadata={
            **collector.summary(),
            "transcript_id": str(record.id),
            "origin_strategy": primary.origin_strategy.value,
            "verified": outcome.verified,
            "similarity": outcome.similarity,
            "degraded_reason": outcome.degraded_reason,
            "truncated": outcome.truncated,
            "persisted": store is not None,
        },
    )
    return record


async def acquire_transcript(
    debate_id: str,
    source_url: str,
    platform_hint: Optional[str | PlatformTag] = None,
    *,
    config: Optional[AcquisitionConfig] = None,
    store: Optional[TranscriptStore] = None,
    speech: Optional[SpeechToText] = None,
    reconciler: Optional[Reconciler] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> TranscriptRecord:
    """
    Acquire, cross-verify and persist a transcript for one debate.

    Args:
        debate_id: Debate the transcript belongs to
        source_url: Where the debate's media lives
        platform_hint: Optional PlatformTag or product name ("YouTube", "Spotify")
        config: Defaults to AcquisitionConfig.from_env()
        store: Persistence collaborator; None returns the record without saving
        speech / reconciler / transport: injectable collaborators
        cancel_event: Setting it cancels all in-flight work

    Returns:
        The finished TranscriptRecord.

    Raises:
        ValueError: blank debate_id or source_url
        AllStrategiesExhausted: no strategy produced a transcript
        PersistenceFailed: the store rejected the record (carried on the error)
        AcquisitionCancelled: cancel_event was set before completion
    """
    if not debate_id or not debate_id.strip():
        raise ValueError("debate_id must not be blank")
    if not source_url or not source_url.strip():
        raise ValueError("source_url must not be blank")

    config = config or AcquisitionConfig.from_env()
    work = _acquire(
        debate_id.strip(),
        source_url.strip(),
        platform_hint,
        config,
        store,
        speech,
        reconciler,
        transport,
    )

    if cancel_event is None:
        return await work

    if cancel_event.is_set():
        work.close()
        raise AcquisitionCancelled(f"Acquisition for debate {debate_id} cancelled before start")

    task = asyncio.create_task(work)
    waiter = asyncio.create_task(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        await _discard(task)
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    await _discard(task)
    raise AcquisitionCancelled(f"Acquisition for debate {debate_id} cancelled")


# High-Level Intent
# runner.py is the orchestration heart of the acquisition pipeline.
# State machine: Start → Resolved → {PrimaryAcquired | FallbackAcquired | Failed}
# → Verified → Persisted → Done.

# Data Flow
# CLI / caller → acquire_transcript(debate_id, url, hint)
# → resolve() (never fails)
# → create_task(fetch_secondary)      ┐ concurrent
# → transcribe() = dispatch + fallback ┘
# → failed: cancel secondary, raise AllStrategiesExhausted with every attempt
# → join secondary → cross_verify → TranscriptRecord → store.save()

# Edge Cases & Failure Scenarios
# Unextractable identifier → resolved as unknown, extraction failure recorded,
#   only the direct-media fallback can still succeed.
# Secondary read from the same caption track as the primary → dropped, unverified.
# Store raises → PersistenceFailed carrying the finished record.
# Cancelling the calling task cancels the secondary fetch and closes clients;
#   CancelledError propagates unchanged.
