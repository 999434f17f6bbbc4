"""Transcript JSON formatter for the analysis consumer's payload.

WHY: The scoring service reads ``speakers``, ``utterances`` and
``full_transcript`` verbatim. Renaming a field or changing the fixed
speaker pair silently breaks it, so the payload is checked against a
JSON schema before it is written.

HOW: Serializes Transcript.to_dict() and validates it with jsonschema
against schemas/transcript.schema.json.

RULES:
- Output suffix: "-transcript.json"
- UTF-8 JSON, non-ASCII kept, 2-space indent
- Validate output against the schema before returning; raise on failure
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from speechmatics_converter.core.ir import Transcript
from speechmatics_converter.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "transcript.schema.json"

_CACHED_SCHEMA: dict[str, Any] | None = None


def get_schema() -> dict[str, Any]:
    """Load the transcript schema, cached after the first call."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def validate_payload(payload: dict[str, Any]) -> None:
    """Raise jsonschema.ValidationError if the payload breaks the contract."""
    jsonschema.validate(instance=payload, schema=get_schema())


class TranscriptJSONFormatter(BaseFormatter):
    """Formatter producing the schema-validated transcript payload."""

    @property
    def name(self) -> str:
        return "Transcript JSON"

    def format(self, transcript: Transcript) -> list[FormatterOutput]:
        payload = transcript.to_dict()
        validate_payload(payload)
        return [
            FormatterOutput(
                suffix="-transcript.json",
                content=json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
                media_type="application/json",
            )
        ]
