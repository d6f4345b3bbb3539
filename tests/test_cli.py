"""
Tests for the debate-transcripts CLI
"""
import json

import pytest
from typer.testing import CliRunner

from debate_transcripts.cli import transcripts as cli
from debate_transcripts.pipeline.schema import TranscriptRecord
from debate_transcripts.transcription.errors import AllStrategiesExhausted, PersistenceFailed
from debate_transcripts.transcription.schema import AttemptFailure, FailureType, PlatformTag, StrategyTag


runner = CliRunner()


def sample_record(**overrides):
    values = {
        "debate_id": "debate-1",
        "content": "Madam chair, I rise to oppose.",
        "verified": True,
        "source_platform": PlatformTag.VIDEO,
        "source_url": "https://www.youtube.com/watch?v=abc",
        "source_id": "abc",
        "origin_strategy": StrategyTag.CAPTIONS,
    }
    values.update(overrides)
    return TranscriptRecord(**values)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    # Keep developer .env files and keys out of the tests
    monkeypatch.chdir(tmp_path)
    for name in ("OPENAI_API_KEY", "YOUTUBE_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    # CliRunner swaps stderr per invocation; keep the package handler off it
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


class TestResolveCommand:

    def test_prints_reference(self):
        result = runner.invoke(cli.app, ["resolve", "https://example-video.test/watch?v=ABC123"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["platform"] == "video"
        assert payload["source_id"] == "ABC123"

    def test_hint(self):
        result = runner.invoke(cli.app, ["resolve", "https://media.example.org/debates/42", "--platform", "Telegram"])
        assert json.loads(result.stdout)["platform"] == "messaging"


class TestAcquireCommand:

    def test_success_stores_record(self, monkeypatch, tmp_path):
        captured = {}

        async def fake_acquire(debate_id, url, platform, *, config, store):
            captured.update(debate_id=debate_id, url=url, platform=platform, config=config)
            record = sample_record(debate_id=debate_id)
            await store.save(record)
            return record

        monkeypatch.setattr(cli, "acquire_transcript", fake_acquire)
        result = runner.invoke(
            cli.app,
            [
                "acquire", "debate-1", "https://www.youtube.com/watch?v=abc",
                "--store-dir", str(tmp_path / "store"),
                "--language", "de",
                "--no-verify",
                "--reconciler", "sequence",
                "--platform", "YouTube",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Transcript acquired" in result.stdout
        assert captured["platform"] == "YouTube"
        assert captured["config"].language == "de"
        assert captured["config"].verify is False
        assert captured["config"].reconciler == "sequence"
        assert len(list((tmp_path / "store").glob("*.json"))) == 1

    def test_exhausted_exits_1_with_attempts(self, monkeypatch):
        async def fake_acquire(debate_id, url, platform, *, config, store):
            raise AllStrategiesExhausted(
                PlatformTag.UNKNOWN,
                url,
                [
                    AttemptFailure(
                        strategy="unsupported",
                        type=FailureType.STRATEGY_UNAVAILABLE,
                        cause="no platform-specific strategy",
                        suggested_fixes=["Provide a platform hint"],
                    )
                ],
            )

        monkeypatch.setattr(cli, "acquire_transcript", fake_acquire)
        result = runner.invoke(cli.app, ["acquire", "debate-1", "https://debates.example.org/final"])

        assert result.exit_code == 1
        assert "unsupported (strategy_unavailable)" in result.output
        assert "Provide a platform hint" in result.output

    def test_persistence_failure_exits_1(self, monkeypatch):
        async def fake_acquire(debate_id, url, platform, *, config, store):
            raise PersistenceFailed(sample_record(), "disk full")

        monkeypatch.setattr(cli, "acquire_transcript", fake_acquire)
        result = runner.invoke(cli.app, ["acquire", "debate-1", "https://files.test/a.mp3"])
        assert result.exit_code == 1
        assert "disk full" in result.output

    def test_invalid_reconciler_exits_1(self):
        result = runner.invoke(cli.app, ["acquire", "debate-1", "https://files.test/a.mp3", "--reconciler", "magic"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestStoreCommands:

    def _seed(self, store_dir, *records):
        store = cli.JsonTranscriptStore(store_dir)
        for record in records:
            store._write(record)

    def test_list(self, tmp_path):
        first, second = sample_record(), sample_record(verified=False)
        self._seed(tmp_path, first, second, sample_record(debate_id="other"))

        result = runner.invoke(cli.app, ["list", "debate-1", "--store-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert str(first.id) in result.stdout
        assert str(second.id) in result.stdout
        assert len(result.stdout.strip().splitlines()) == 2

    def test_list_empty(self, tmp_path):
        result = runner.invoke(cli.app, ["list", "debate-1", "--store-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No transcripts" in result.stdout

    def test_show(self, tmp_path):
        record = sample_record()
        self._seed(tmp_path, record)

        result = runner.invoke(cli.app, ["show", str(record.id), "--store-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "Madam chair, I rise to oppose." in result.stdout

        as_json = runner.invoke(cli.app, ["show", str(record.id), "--store-dir", str(tmp_path), "--json"])
        assert json.loads(as_json.stdout)["id"] == str(record.id)

    def test_show_missing_exits_1(self, tmp_path):
        result = runner.invoke(cli.app, ["show", "not-a-uuid", "--store-dir", str(tmp_path)])
        assert result.exit_code == 1
