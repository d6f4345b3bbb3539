"""
End-to-end tests for acquire_transcript with every external service faked
"""
import asyncio

import httpx
import pytest

from conftest import FakeReconciler, FakeSpeech, RecordingTransport, make_config
from debate_transcripts.pipeline import runner
from debate_transcripts.pipeline.stages import fetch_secondary
from debate_transcripts.transcription import captions, platform_lookup
from debate_transcripts.transcription.errors import (
    AcquisitionCancelled,
    AllStrategiesExhausted,
    NoTranscriptAvailable,
    PersistenceFailed,
)
from debate_transcripts.transcription.schema import PlatformTag, StrategyTag


class MemoryStore:
    def __init__(self, error=None):
        self.saved = []
        self.error = error

    async def save(self, record):
        if self.error is not None:
            raise self.error
        self.saved.append(record)

    async def get(self, transcript_id):
        return next((record for record in self.saved if str(record.id) == str(transcript_id)), None)

    async def list_for_debate(self, debate_id):
        return [record for record in self.saved if record.debate_id == debate_id]


def youtube_api(request):
    if request.url.path == "/youtube/v3/captions":
        return httpx.Response(
            200,
            json={
                "items": [
                    {"id": "asr-track", "snippet": {"language": "en", "trackKind": "asr"}},
                    {"id": "human-track", "snippet": {"language": "en", "trackKind": "standard"}},
                ]
            },
        )
    if request.url.path in ("/youtube/v3/captions/human-track", "/en.vtt"):
        return httpx.Response(200, text="WEBVTT\n\n00:00.000 --> 00:01.000\nHello, world!\n")
    return httpx.Response(404)


def audio_ok(request):
    return httpx.Response(200, content=b"ID3fakeaudio")


@pytest.fixture
def youtube_captions(monkeypatch):
    """Primary read from YouTube's automatic track."""
    def fake_fetch(video_id, language, timeout, user_agent):
        return "Hello world.", "asr:en"

    monkeypatch.setattr(captions, "_fetch_youtube_captions", fake_fetch)


def uploader_subtitles(monkeypatch, published):
    async def fake_extract(url, ctx, *, strategy):
        if not published:
            return {}
        return {"subtitles": {"en": [{"ext": "vtt", "url": "https://cdn.test/en.vtt"}]}}

    monkeypatch.setattr(fetch_secondary, "extract_info", fake_extract)


class TestSuccess:

    @pytest.mark.asyncio
    async def test_two_sources_reconcile_to_verified_record(self, youtube_captions):
        store = MemoryStore()
        transport = RecordingTransport(youtube_api)
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(youtube_api_key="yt-key"),
            store=store,
            speech=FakeSpeech(),
            transport=transport,
        )

        assert record.content == "Hello, world."
        assert record.verified is True
        assert record.debate_id == "debate-42"
        assert record.source_platform == PlatformTag.VIDEO
        assert record.source_id == "dQw4w9WgXcQ"
        assert record.origin_strategy == StrategyTag.CAPTIONS
        assert store.saved == [record]

        listing = transport.requests[0]
        assert listing.url.params["videoId"] == "dQw4w9WgXcQ"
        assert listing.url.params["key"] == "yt-key"
        assert transport.requests[1].url.params["tfmt"] == "vtt"

    @pytest.mark.asyncio
    async def test_reconciled_text_becomes_record_content(self, youtube_captions):
        reconciler = FakeReconciler(result="Hello, world!")
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(youtube_api_key="yt-key"),
            speech=FakeSpeech(),
            reconciler=reconciler,
            transport=RecordingTransport(youtube_api),
        )
        assert reconciler.calls == [("Hello world.", "Hello, world!")]
        assert record.content == "Hello, world!"
        assert record.verified is True

    @pytest.mark.asyncio
    async def test_keyless_youtube_verifies_against_uploader_subtitles(self, youtube_captions, monkeypatch):
        uploader_subtitles(monkeypatch, published=True)
        reconciler = FakeReconciler(result="Hello, world!")
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(),
            speech=FakeSpeech(),
            reconciler=reconciler,
            transport=RecordingTransport(youtube_api),
        )
        assert reconciler.calls == [("Hello world.", "Hello, world!")]
        assert record.verified is True

    @pytest.mark.asyncio
    async def test_secondary_from_primary_track_is_not_verification(self, monkeypatch):
        def uploader_track(video_id, language, timeout, user_agent):
            return "Hello, world!", "uploader:en"

        monkeypatch.setattr(captions, "_fetch_youtube_captions", uploader_track)
        uploader_subtitles(monkeypatch, published=True)
        reconciler = FakeReconciler(result="Hello, world!")
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(),
            speech=FakeSpeech(),
            reconciler=reconciler,
            transport=RecordingTransport(youtube_api),
        )
        assert reconciler.calls == []
        assert record.verified is False

    @pytest.mark.asyncio
    async def test_missing_secondary_gives_unverified_primary(self, youtube_captions, monkeypatch):
        uploader_subtitles(monkeypatch, published=False)
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(),
            store=None,
            speech=FakeSpeech(),
            transport=RecordingTransport(youtube_api),
        )
        assert record.content == "Hello world."
        assert record.verified is False

    @pytest.mark.asyncio
    async def test_reconciliation_failure_gives_unverified_primary(self, youtube_captions):
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(youtube_api_key="yt-key"),
            speech=FakeSpeech(),
            reconciler=FakeReconciler(error=RuntimeError("forced failure")),
            transport=RecordingTransport(youtube_api),
        )
        assert record.content == "Hello world."
        assert record.verified is False

    @pytest.mark.asyncio
    async def test_no_verify_skips_secondary(self, youtube_captions):
        transport = RecordingTransport(youtube_api)
        record = await runner.acquire_transcript(
            "debate-42",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            config=make_config(youtube_api_key="yt-key", verify=False),
            speech=FakeSpeech(),
            transport=transport,
        )
        assert record.verified is False
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_direct_media_with_product_hint_recovers_through_fallback(self, monkeypatch):
        async def no_tracks(url, ctx, *, strategy):
            raise NoTranscriptAvailable(strategy, "no captions")

        monkeypatch.setattr(captions, "extract_info", no_tracks)
        monkeypatch.setattr(fetch_secondary, "extract_info", no_tracks)

        record = await runner.acquire_transcript(
            "debate-7",
            "https://cdn.test/debate.mp4",
            "YouTube",
            config=make_config(),
            speech=FakeSpeech(text="Fallback transcript."),
            transport=RecordingTransport(audio_ok),
        )
        assert record.source_platform == PlatformTag.VIDEO
        assert record.origin_strategy == StrategyTag.DIRECT_AUDIO
        assert record.content == "Fallback transcript."
        assert record.verified is False


class TestFailure:

    @pytest.mark.asyncio
    async def test_unrecognised_page_exhausts_strategies(self):
        store = MemoryStore()
        transport = RecordingTransport(audio_ok)
        with pytest.raises(AllStrategiesExhausted) as excinfo:
            await runner.acquire_transcript(
                "debate-9",
                "https://debates.example.org/events/final",
                config=make_config(),
                store=store,
                speech=FakeSpeech(),
                transport=transport,
            )

        message = str(excinfo.value)
        assert "unknown" in message
        assert "unsupported" in message
        assert "fallback" in message
        assert excinfo.value.platform == PlatformTag.UNKNOWN
        assert store.saved == []
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_extraction_failure_is_reported(self):
        with pytest.raises(AllStrategiesExhausted) as excinfo:
            await runner.acquire_transcript(
                "debate-9",
                "https://www.youtube.com/@somechannel",
                config=make_config(),
                speech=FakeSpeech(),
                transport=RecordingTransport(audio_ok),
            )
        assert excinfo.value.attempts[0].type.value == "source_id_extraction_failed"

    @pytest.mark.asyncio
    async def test_secondary_is_cancelled_when_acquisition_fails(self, monkeypatch):
        secondary_cancelled = asyncio.Event()

        async def primary_lookup(url, ctx, *, strategy):
            await asyncio.sleep(0.01)
            raise NoTranscriptAvailable(strategy, "post has no media")

        async def slow_lookup(url, ctx, *, strategy):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                secondary_cancelled.set()
                raise
            return {}

        monkeypatch.setattr(platform_lookup, "extract_info", primary_lookup)
        monkeypatch.setattr(fetch_secondary, "extract_info", slow_lookup)

        with pytest.raises(AllStrategiesExhausted):
            await runner.acquire_transcript(
                "debate-9",
                "https://x.com/someone/status/42",
                config=make_config(),
                speech=FakeSpeech(),
                transport=RecordingTransport(audio_ok),
            )
        assert secondary_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_persistence_failure_carries_record(self):
        with pytest.raises(PersistenceFailed) as excinfo:
            await runner.acquire_transcript(
                "debate-3",
                "https://files.test/clip.mp3?token=xyz",
                config=make_config(),
                store=MemoryStore(error=OSError("disk full")),
                speech=FakeSpeech(text="Closing remarks."),
                transport=RecordingTransport(audio_ok),
            )
        assert excinfo.value.record.content == "Closing remarks."
        assert excinfo.value.record.source_id == "/clip.mp3"
        assert "disk full" in str(excinfo.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("debate_id,url", [("", "https://files.test/a.mp3"), ("d", "  "), ("  ", "x")])
    async def test_blank_inputs_rejected(self, debate_id, url):
        with pytest.raises(ValueError):
            await runner.acquire_transcript(debate_id, url, config=make_config())


class TestResources:

    @pytest.mark.asyncio
    async def test_speech_closed_when_http_client_cannot_be_built(self, monkeypatch):
        speech = FakeSpeech()

        def broken_client(config, transport=None):
            raise RuntimeError("no client")

        monkeypatch.setattr(runner, "build_speech_to_text", lambda config: speech)
        monkeypatch.setattr(runner, "new_http_client", broken_client)
        with pytest.raises(RuntimeError):
            await runner.acquire_transcript("debate-1", "https://files.test/clip.mp3", config=make_config())
        assert speech.closed is True


class SlowSpeech(FakeSpeech):
    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.cancelled = False

    async def transcribe(self, audio, *, filename, language, strategy):
        self.started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return "never"


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_event_stops_in_flight_work(self):
        speech = SlowSpeech()
        cancel = asyncio.Event()
        store = MemoryStore()

        task = asyncio.create_task(
            runner.acquire_transcript(
                "debate-5",
                "https://files.test/clip.mp3",
                config=make_config(),
                store=store,
                speech=speech,
                transport=RecordingTransport(audio_ok),
                cancel_event=cancel,
            )
        )
        await asyncio.wait_for(speech.started.wait(), timeout=2)
        cancel.set()

        with pytest.raises(AcquisitionCancelled):
            await asyncio.wait_for(task, timeout=2)
        assert speech.cancelled is True
        assert store.saved == []

    @pytest.mark.asyncio
    async def test_already_set_event_does_nothing(self):
        cancel = asyncio.Event()
        cancel.set()
        transport = RecordingTransport(audio_ok)
        with pytest.raises(AcquisitionCancelled):
            await runner.acquire_transcript(
                "debate-5",
                "https://files.test/clip.mp3",
                config=make_config(),
                speech=FakeSpeech(),
                transport=transport,
                cancel_event=cancel,
            )
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_completed_work_is_returned_with_unset_event(self):
        record = await runner.acquire_transcript(
            "debate-5",
            "https://files.test/clip.mp3",
            config=make_config(),
            speech=FakeSpeech(text="Done."),
            transport=RecordingTransport(audio_ok),
            cancel_event=asyncio.Event(),
        )
        assert record.content == "Done."
