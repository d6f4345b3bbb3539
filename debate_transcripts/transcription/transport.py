# debate_transcripts/transcription/transport.py
"""
Outbound call helpers shared by every strategy.

- new_http_client(): request-scoped httpx client with a browser User-Agent
- bounded(): per-step timeout budget
- with_retry(): strategy-local, bounded retry for transient failures
- fetch_media(): validated download of an arbitrary media URL
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_fixed

from debate_transcripts.config import AcquisitionConfig
from debate_transcripts.transcription.errors import AcquisitionFailed


T = TypeVar("T")

RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


def new_http_client(
    config: AcquisitionConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """One client per acquisition request; callers own closing it."""
    return httpx.AsyncClient(
        headers={"User-Agent": config.user_agent, "Accept": "*/*"},
        follow_redirects=True,
        timeout=httpx.Timeout(config.timeouts.metadata, read=config.timeouts.audio_fetch),
        transport=transport,
    )


def is_transient(exc: BaseException) -> bool:
    """Network errors, timeouts and throttling are worth one more try."""
    if isinstance(exc, AcquisitionFailed):
        return exc.transient
    if isinstance(exc, (asyncio.TimeoutError, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS
    return False


async def bounded(awaitable: Awaitable[T], seconds: float, *, strategy: str, step: str) -> T:
    """Await with a budget; expiry becomes a transient AcquisitionFailed."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise AcquisitionFailed(
            strategy,
            f"{step} exceeded {seconds:g}s budget",
            ["Retry later", f"Raise the {step} timeout"],
            transient=True,
        ) from exc


async def with_retry(call: Callable[[], Awaitable[T]], config: AcquisitionConfig) -> T:
    """
    Run call() with at most config.retry_attempts attempts.

    Only transient failures are retried; the last exception is re-raised.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.retry_attempts),
        wait=wait_fixed(config.retry_backoff_seconds),
        retry=retry_if_exception(is_transient),
        reraise=True,
    )
    return await retrying(call)


def oversize_fixes(config: AcquisitionConfig) -> List[str]:
    """The size cap applies to every provider; only the local one can take a raised cap."""
    if config.speech_provider == "local":
        return ["Use a shorter clip", "Raise DEBATE_TRANSCRIPTS_MAX_AUDIO_BYTES"]
    return [
        "Use a shorter clip",
        "Set DEBATE_TRANSCRIPTS_SPEECH_PROVIDER=local and raise DEBATE_TRANSCRIPTS_MAX_AUDIO_BYTES",
    ]


async def fetch_media(
    client: httpx.AsyncClient,
    url: str,
    config: AcquisitionConfig,
    *,
    strategy: str,
    headers: Optional[dict] = None,
) -> bytes:
    """
    Download a media payload.

    Non-2xx responses, empty bodies and payloads above max_audio_bytes are
    failures, never partial results.
    """

    async def download() -> bytes:
        async with client.stream("GET", url, headers=headers) as response:
            if not response.is_success:
                raise AcquisitionFailed(
                    strategy,
                    f"media fetch returned HTTP {response.status_code}",
                    ["Check the URL is publicly reachable"],
                    transient=response.status_code in RETRYABLE_STATUS,
                )
            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > config.max_audio_bytes:
                raise AcquisitionFailed(
                    strategy,
                    f"media is {declared} bytes, above the {config.max_audio_bytes} byte limit",
                    oversize_fixes(config),
                )
            chunks = bytearray()
            async for chunk in response.aiter_bytes():
                chunks.extend(chunk)
                if len(chunks) > config.max_audio_bytes:
                    raise AcquisitionFailed(
                        strategy,
                        f"media exceeds the {config.max_audio_bytes} byte limit",
                        oversize_fixes(config),
                    )
        if not chunks:
            raise AcquisitionFailed(strategy, "media fetch returned an empty body")
        return bytes(chunks)

    async def attempt() -> bytes:
        try:
            return await bounded(download(), config.timeouts.audio_fetch, strategy=strategy, step="audio fetch")
        except httpx.HTTPError as exc:
            raise AcquisitionFailed(
                strategy,
                f"media fetch failed: {exc.__class__.__name__}: {exc}",
                ["Check network connectivity"],
                transient=is_transient(exc),
            ) from exc

    return await with_retry(attempt, config)
