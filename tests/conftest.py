"""
Pytest configuration and shared fakes for the transcript pipeline tests
"""
from typing import Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from debate_transcripts.config import AcquisitionConfig, Timeouts
from debate_transcripts.logging_core.logger import get_logger
from debate_transcripts.transcription.base import StrategyContext
from debate_transcripts.transcription.errors import AcquisitionFailed, StrategyUnavailable


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require network)"
    )


def pytest_addoption(parser):
    """Add custom command line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (require network)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is passed"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def make_config(**overrides) -> AcquisitionConfig:
    """Fast, offline-friendly config: no backoff, short budgets."""
    values = {
        "openai_api_key": "sk-test",
        "retry_backoff_seconds": 0,
        "reconciler": "sequence",
        "timeouts": Timeouts(metadata=2, audio_fetch=2, transcription=2, reconciliation=2),
    }
    values.update(overrides)
    return AcquisitionConfig(**values)


class FakeSpeech:
    """SpeechToText stand-in that records every call."""

    def __init__(self, text: str = "transcribed speech", available: bool = True, error: Optional[Exception] = None):
        self.text = text
        self.available = available
        self.error = error
        self.calls: List[Dict[str, object]] = []
        self.closed = False

    def check_available(self, strategy: str) -> None:
        if not self.available:
            raise StrategyUnavailable(strategy, "speech-to-text disabled in test")

    async def transcribe(self, audio: bytes, *, filename: str, language: str, strategy: str) -> str:
        self.calls.append({"audio": audio, "filename": filename, "language": language, "strategy": strategy})
        if self.error is not None:
            raise self.error
        if not self.text:
            raise AcquisitionFailed(strategy, "empty transcript")
        return self.text

    async def aclose(self) -> None:
        self.closed = True


class FakeReconciler:
    """Reconciler stand-in: returns a fixed text, raises, or sleeps."""

    def __init__(self, result: str = "", error: Optional[Exception] = None, delay: float = 0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []

    async def reconcile(self, primary: str, secondary: str) -> str:
        import asyncio

        self.calls.append((primary, secondary))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def aclose(self) -> None:
        return None


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps the requests it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def not_found(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404)


@pytest.fixture
def fake_speech():
    return FakeSpeech()


@pytest_asyncio.fixture
async def make_ctx():
    """Factory for StrategyContext objects; their http clients are closed on teardown."""
    clients: List[httpx.AsyncClient] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response] = not_found,
        speech: Optional[FakeSpeech] = None,
        config: Optional[AcquisitionConfig] = None,
    ) -> StrategyContext:
        transport = handler if isinstance(handler, httpx.MockTransport) else RecordingTransport(handler)
        client = httpx.AsyncClient(transport=transport)
        clients.append(client)
        return StrategyContext(
            config=config or make_config(),
            http=client,
            speech=speech or FakeSpeech(),
            logger=get_logger("test"),
        )

    yield factory

    for client in clients:
        await client.aclose()
