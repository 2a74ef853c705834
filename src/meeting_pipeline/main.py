"""Command line entry point for processing a single meeting recording."""

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

from meeting_pipeline.config import AppConfig, load_config
from meeting_pipeline.dependencies import build_handler
from meeting_pipeline.domain import MeetingResult
from meeting_pipeline.exceptions import (
    ProtocolSynthesisError,
    TranscriptionJobFailedError,
    UploadError,
)
from meeting_pipeline.logging import setup_logging

logger = setup_logging()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="meeting-pipeline",
        description="Transcribe a meeting recording and generate its protocol",
    )
    parser.add_argument("audio", type=Path, help="Path to the meeting audio file")
    parser.add_argument("--title", default=None, help="Meeting name used in the protocol")
    parser.add_argument("--agenda", type=Path, default=None, help="Text file with the agenda")
    parser.add_argument("--language", default=None, help="Spoken language code, e.g. sv")
    return parser.parse_args(argv)


async def _process(args: argparse.Namespace, config: AppConfig) -> MeetingResult:
    audio = args.audio.read_bytes()
    agenda = args.agenda.read_text(encoding="utf-8") if args.agenda else None
    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
        handler = build_handler(config, client)
        try:
            return await handler.process(
                audio,
                args.audio.name,
                title=args.title or args.audio.stem,
                agenda=agenda,
                language=args.language,
            )
        finally:
            handler.shutdown()


def main(argv: list[str] | None = None) -> int:
    """Runs the whole pipeline for one file and prints the protocol as JSON."""
    args = _parse_args(argv)
    if not args.audio.is_file():
        logger.error("Audio file not found", extra={"path": str(args.audio)})
        return 2

    config = load_config()
    try:
        result = asyncio.run(_process(args, config))
    except UploadError as e:
        logger.error("Upload failed", extra={"error": str(e)})
        return 1
    except TranscriptionJobFailedError as e:
        logger.error("Transcription failed", extra={"job_id": e.job_id, "error": e.reason})
        return 1
    except ProtocolSynthesisError as e:
        logger.error(
            "Protocol synthesis failed",
            extra={"error": str(e), "user_message": e.user_message},
        )
        return 1

    sys.stdout.write(result.protocol.model_dump_json(indent=2) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
