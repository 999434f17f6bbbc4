"""Output formatter registry.

WHY: The CLI needs a single lookup to find the right formatter by name.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["transcript_json"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from speechmatics_converter.formatters.plain_text import PlainTextFormatter
from speechmatics_converter.formatters.transcript_json import TranscriptJSONFormatter

if TYPE_CHECKING:
    from speechmatics_converter.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "transcript_json": TranscriptJSONFormatter,
    "plain_text": PlainTextFormatter,
}
