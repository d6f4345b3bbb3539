# debate_transcripts/transcription/base.py
"""
Shared base definitions for acquisition strategies.

This module defines:
- The Strategy function contract
- StrategyContext, the request-scoped collaborators handed to every strategy
- A lightweight timer for consistent execution_time_ms measurement
- run_strategy(), which turns a strategy outcome into a candidate or an AttemptFailure
- run_blocking() for libraries without an async API

No business logic belongs here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, Optional, Tuple, TypeAlias, TypeVar

import httpx
from pydantic import ValidationError

from debate_transcripts.config import AcquisitionConfig
from debate_transcripts.logging_core.logger import log_event
from debate_transcripts.transcription.errors import StrategyError
from debate_transcripts.transcription.schema import (
    AttemptFailure,
    FailureType,
    SourceReference,
    StrategyTag,
    TranscriptCandidate,
)
from debate_transcripts.transcription.speech import SpeechToText
from debate_transcripts.transcription.transport import bounded


T = TypeVar("T")


@dataclass(frozen=True)
class StrategyContext:
    """Everything a strategy may touch. Built once per acquisition request."""
    config: AcquisitionConfig
    http: httpx.AsyncClient
    speech: SpeechToText
    logger: logging.Logger | logging.LoggerAdapter


Strategy: TypeAlias = Callable[[SourceReference, StrategyContext], Awaitable[TranscriptCandidate]]
"""
Type alias for strategy functions.

Signature:
    await strategy(ref, ctx) -> TranscriptCandidate

A strategy raises StrategyUnavailable, NoTranscriptAvailable or
AcquisitionFailed instead of returning empty text.
"""


@contextmanager
def timer() -> Iterator[Callable[[], float]]:
    """
    Context manager that provides an end() function returning elapsed milliseconds.

    Usage:
        with timer() as end:
            ...
        execution_time_ms = end()
    """
    start = time.perf_counter()

    def end() -> float:
        return round((time.perf_counter() - start) * 1000, 1)

    yield end


async def run_strategy(
    tag: StrategyTag,
    strategy: Strategy,
    ref: SourceReference,
    ctx: StrategyContext,
    *,
    stage_name: str,
) -> Tuple[Optional[TranscriptCandidate], Optional[AttemptFailure]]:
    """
    Invoke one strategy and contain its failure.

    Returns (candidate, None) on success, (None, failure) otherwise. Only
    cancellation propagates.
    """
    log_event(
        ctx.logger,
        logging.INFO,
        "Strategy started",
        stage_name=stage_name,
        event_type="start",
        metadata={"strategy": tag.value, "platform": ref.platform.value},
    )

    with timer() as end:
        try:
            candidate = await strategy(ref, ctx)
        except StrategyError as exc:
            failure = exc.to_failure()
        except ValidationError as exc:
            # TranscriptCandidate rejected blank content
            failure = AttemptFailure(
                strategy=tag.value,
                type=FailureType.ACQUISITION_FAILED,
                cause=f"strategy produced no usable text: {exc.errors()[0]['msg']}",
            )
        except Exception as exc:  # pylint: disable=broad-except
            failure = AttemptFailure(
                strategy=tag.value,
                type=FailureType.ACQUISITION_FAILED,
                cause=f"unexpected error: {exc.__class__.__name__}: {exc}",
                suggested_fixes=["Review logs", "Report bug with traceback"],
            )
        else:
            log_event(
                ctx.logger,
                logging.INFO,
                "Strategy produced a transcript",
                stage_name=stage_name,
                event_type="success",
                metadata={"strategy": tag.value, "characters": len(candidate.content), "execution_time_ms": end()},
            )
            return candidate, None

    log_event(
        ctx.logger,
        logging.WARNING,
        "Strategy failed",
        stage_name=stage_name,
        event_type="failure",
        metadata={
            "strategy": tag.value,
            "failure_type": failure.type.value,
            "cause": failure.cause,
            "execution_time_ms": end(),
        },
    )
    return None, failure


async def run_blocking(
    func: Callable[..., T],
    *args: Any,
    seconds: float,
    strategy: str,
    step: str,
) -> T:
    """
    Run a blocking library call in a worker thread under a time budget.

    The library's own socket timeout must also be set so the worker thread
    cannot outlive the budget by much once the awaiting task gives up.
    """
    return await bounded(asyncio.to_thread(func, *args), seconds, strategy=strategy, step=step)
