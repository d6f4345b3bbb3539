# debate_transcripts/cli/transcripts.py
"""
CLI entrypoint for debate transcript acquisition.

Thin adapter, no business logic.
Responsibilities:
- Load .env / .env.local and parse arguments
- Invoke the acquisition pipeline or the transcript store
- Provide clear user feedback; exit code 1 on failure

Structured JSON logs go to stderr so stdout stays readable.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from debate_transcripts.config import AcquisitionConfig
from debate_transcripts.logging_core.logger import configure_logging
from debate_transcripts.pipeline.output.store import JsonTranscriptStore
from debate_transcripts.pipeline.runner import acquire_transcript
from debate_transcripts.pipeline.schema import TranscriptRecord
from debate_transcripts.pipeline.stages.resolve_source import resolve
from debate_transcripts.transcription.errors import (
    AcquisitionCancelled,
    AllStrategiesExhausted,
    PersistenceFailed,
)


DEFAULT_STORE_DIR = "./transcripts"

app = typer.Typer(
    name="debate-transcripts",
    help="Acquire and cross-verify debate transcripts",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
) -> None:
    load_dotenv(".env.local")
    load_dotenv(".env")
    configure_logging(getattr(logging, log_level.upper(), logging.INFO), stream=sys.stderr)


def _fail(title: str, detail: str) -> NoReturn:
    typer.echo("")
    typer.echo(typer.style(f"✗ {title}", fg=typer.colors.RED, bold=True), err=True)
    typer.echo(detail, err=True)
    sys.exit(1)


def _summary(record: TranscriptRecord) -> None:
    status = "verified" if record.verified else "unverified"
    typer.echo(f"Transcript:  {record.id}")
    typer.echo(f"Debate:      {record.debate_id}")
    typer.echo(f"Source:      {record.source_platform.value} / {record.source_id}")
    typer.echo(f"Strategy:    {record.origin_strategy.value if record.origin_strategy else '-'}")
    typer.echo(f"Status:      {status}")
    typer.echo(f"Created:     {record.created_at.isoformat()}")


@app.command()
def acquire(
    debate_id: str = typer.Argument(..., help="Debate the transcript belongs to"),
    url: str = typer.Argument(..., help="Source URL of the debate recording"),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Platform hint, e.g. YouTube, Spotify, direct_media"),
    store_dir: str = typer.Option(DEFAULT_STORE_DIR, "--store-dir", "-s", help="Directory for transcript JSON files"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Transcript language (default: en)"),
    no_verify: bool = typer.Option(False, "--no-verify", help="Skip the secondary transcript and reconciliation"),
    reconciler: Optional[str] = typer.Option(None, "--reconciler", help="openai or sequence"),
) -> None:
    """
    Acquire a transcript for a debate, cross-verify it and store it.
    """
    try:
        config = AcquisitionConfig.from_env(
            language=language,
            verify=False if no_verify else None,
            reconciler=reconciler,
        )
    except ValidationError as exc:
        _fail("Invalid configuration", str(exc))

    store = JsonTranscriptStore(Path(store_dir).expanduser())
    typer.echo(f"Acquiring transcript for debate {debate_id} from: {url}")

    try:
        record = asyncio.run(acquire_transcript(debate_id, url, platform, config=config, store=store))
    except AllStrategiesExhausted as exc:
        lines = [str(exc), ""]
        lines.extend(f"  - {attempt.describe()}" for attempt in exc.attempts)
        fixes = list(dict.fromkeys(fix for attempt in exc.attempts for fix in attempt.suggested_fixes))
        if fixes:
            lines.append("")
            lines.append("Suggested fixes:")
            lines.extend(f"  * {fix}" for fix in fixes)
        _fail("No transcript could be acquired", "\n".join(lines))
    except PersistenceFailed as exc:
        _fail("Transcript acquired but not stored", str(exc))
    except ValueError as exc:
        _fail("Invalid arguments", str(exc))
    except (KeyboardInterrupt, AcquisitionCancelled):
        typer.echo("\nInterrupted by user.", err=True)
        sys.exit(1)

    typer.echo("")
    typer.echo(typer.style("✓ Transcript acquired", fg=typer.colors.GREEN, bold=True))
    _summary(record)
    typer.echo(f"Stored in:   {store.directory.resolve()}")
    if not record.verified:
        typer.echo("")
        typer.echo(typer.style("⚠ Not cross-verified; see the cross_verify log lines for the reason.", fg=typer.colors.YELLOW))


@app.command("resolve")
def resolve_command(
    url: str = typer.Argument(..., help="Source URL to classify"),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Platform hint"),
) -> None:
    """
    Show how a URL is classified, without any network access.
    """
    typer.echo(resolve(url, platform).model_dump_json(indent=2))


@app.command("list")
def list_transcripts(
    debate_id: str = typer.Argument(..., help="Debate id"),
    store_dir: str = typer.Option(DEFAULT_STORE_DIR, "--store-dir", "-s", help="Directory for transcript JSON files"),
) -> None:
    """
    List stored transcripts for a debate, newest first.
    """
    records = asyncio.run(JsonTranscriptStore(Path(store_dir).expanduser()).list_for_debate(debate_id))
    if not records:
        typer.echo(f"No transcripts stored for debate {debate_id}")
        return
    for record in records:
        status = "verified" if record.verified else "unverified"
        typer.echo(
            f"{record.id}  {record.created_at.isoformat()}  {status:<10}  "
            f"{record.source_platform.value}  {record.source_url}"
        )


@app.command()
def show(
    transcript_id: str = typer.Argument(..., help="Transcript id"),
    store_dir: str = typer.Option(DEFAULT_STORE_DIR, "--store-dir", "-s", help="Directory for transcript JSON files"),
    as_json: bool = typer.Option(False, "--json", help="Print the full record as JSON"),
) -> None:
    """
    Print one stored transcript.
    """
    record = asyncio.run(JsonTranscriptStore(Path(store_dir).expanduser()).get(transcript_id))
    if record is None:
        _fail("Transcript not found", f"No transcript {transcript_id} in {store_dir}")
    if as_json:
        typer.echo(record.model_dump_json(indent=2))
        return
    _summary(record)
    typer.echo("")
    typer.echo(record.content)


if __name__ == "__main__":
    app()




# High-Level Intent
# cli/transcripts.py is the console front end to acquire_transcript() and the
# JSON store. It replaces a one-off "generate transcript" script with four
# subcommands: acquire, resolve, list, show.

# Data Flow
# CLI invocation → dotenv + logging → Typer parses → AcquisitionConfig.from_env(overrides)
# → asyncio.run(acquire_transcript(...)) → record stored → summary printed

# Edge Cases & Failure Scenarios
# AllStrategiesExhausted → every attempt and deduplicated suggested fixes, exit 1
# PersistenceFailed → exit 1 (the record was produced but not written)
# show with an unknown or malformed id → exit 1
