"""Command-line interface for the Speechmatics Call Transcript Converter.

WHY: Operators need a simple way to turn a call recording (or a saved
recognition result, or a text transcript) into the Agent/Customer
transcript the scoring service reads, without running the web stack.

HOW: Uses argparse to accept an input file, attempt/format options, and
an output directory. The input's extension picks the path:
  .json  : a saved Speechmatics json-v2 result, formatted offline
  .txt   : a display transcript, parsed and re-normalized
  audio  : sent through the TranscriptionOrchestrator (needs an API key)
Status messages go to stderr; output files are saved next to the source
(or to --output-dir).

RULES:
- Positional argument: input file path
- The API key is loaded and validated once, before any API call
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-transcript-2.json)
- Status output goes to stderr (not stdout)
- Exit code 1 with "Error: ..." on stderr for any terminal failure
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import jsonschema

from speechmatics_converter.api.client import SpeechmaticsClient
from speechmatics_converter.config import (
    DEFAULT_MAX_ATTEMPTS,
    SPEECHMATICS_SUPPORTED_FORMATS,
    DiarizationSettings,
    RetryPolicy,
    load_api_key,
)
from speechmatics_converter.core.assembler import format_transcript
from speechmatics_converter.core.ir import Transcript
from speechmatics_converter.core.parser import parse_transcript_text
from speechmatics_converter.formatters import FORMATTERS
from speechmatics_converter.formatters.base import FormatterOutput
from speechmatics_converter.orchestrator import (
    TranscriptionFailedError,
    TranscriptionOrchestrator,
    resplit_single_speaker,
)


class CLIError(Exception):
    """A user-facing error that ends the CLI with exit code 1."""


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed."""
    print(msg, file=sys.stderr, flush=True)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    WHY: Operators may run the converter several times on the same call.
    Overwriting previous output would lose work.

    HOW: Check if {stem}{suffix} exists. If so, increment a counter
    and insert it before the file extension until a free name is found.

    RULES:
    - First attempt: {stem}{suffix} (e.g. call-transcript.json)
    - Conflict: insert counter before extension (e.g. call-transcript-2.json)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _parse_format_keys(formats: Optional[str]) -> List[str]:
    if not formats:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in formats.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            raise CLIError("Unknown format '{}'. Available formats: {}".format(key, available))
    return keys


async def _transcribe_audio(input_path: Path, args: argparse.Namespace) -> Transcript:
    ext = input_path.suffix.lower()
    if ext not in SPEECHMATICS_SUPPORTED_FORMATS:
        raise CLIError(
            "Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SPEECHMATICS_SUPPORTED_FORMATS | {".json", ".txt"}))
            )
        )

    api_key = load_api_key()
    policy = RetryPolicy(max_attempts=args.max_attempts)

    async with SpeechmaticsClient(api_key) as client:
        orchestrator = TranscriptionOrchestrator(
            client,
            settings=DiarizationSettings(),
            policy=policy,
            split_single_speaker=args.split_single_speaker,
            on_status=_status,
        )
        return await orchestrator.attempt(input_path)


async def _load_transcript(input_path: Path, args: argparse.Namespace) -> Transcript:
    """Produce a Transcript from whichever kind of input was given."""
    ext = input_path.suffix.lower()

    if ext == ".json":
        _status("Formatting saved recognition result...")
        raw = json.loads(input_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise CLIError("Expected a json-v2 transcript object in {}".format(input_path.name))
        transcript = format_transcript(raw)
    elif ext == ".txt":
        _status("Parsing text transcript...")
        transcript = parse_transcript_text(input_path.read_text(encoding="utf-8"))
    else:
        return await _transcribe_audio(input_path, args)

    if args.split_single_speaker:
        transcript = resplit_single_speaker(transcript)
    return transcript


async def _run_pipeline(args: argparse.Namespace) -> List[Path]:
    """Execute the pipeline and save every selected output.

    Returns:
        Paths of the saved files.
    """
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        raise CLIError("File not found: {}".format(input_path))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        raise CLIError("Output directory does not exist: {}".format(output_dir))

    format_keys = _parse_format_keys(args.formats)

    transcript = await _load_transcript(input_path, args)
    _status("  {} utterances, roles: {}".format(
        len(transcript.utterances), ", ".join(transcript.roles()) or "none",
    ))

    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        for output in formatter.format(transcript):
            saved_path = _save_output(output, input_path.stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    return saved_files


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="speechmatics_converter",
        description="Transcribe a two-party call with Speechmatics and produce a "
                    "stable Agent/Customer transcript.",
    )

    parser.add_argument(
        "input_file",
        help="Audio file to transcribe, a saved json-v2 result (.json), "
             "or a text transcript (.txt).",
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as input file).",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--max-attempts",
        type=int,
        default=DEFAULT_MAX_ATTEMPTS,
        help="Maximum recognition attempts per file (default: %(default)s).",
    )

    parser.add_argument(
        "--split-single-speaker",
        action="store_true",
        help="Re-split transcripts that came back with a single speaker.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline details (speaker statistics, mapping, attempts).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m speechmatics_converter``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        saved = asyncio.run(_run_pipeline(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except (CLIError, TranscriptionFailedError, jsonschema.ValidationError, ValueError) as e:
        message = e.message if isinstance(e, jsonschema.ValidationError) else str(e)
        print("Error: {}".format(message), file=sys.stderr)
        sys.exit(1)

    _status("")
    _status("Done! Saved {} file(s)".format(len(saved)))


if __name__ == "__main__":
    main()
