"""Plain text transcript formatter.

WHY: Reviewers want to read a call without opening JSON. The display
transcript already carries timestamps and roles, one utterance per
paragraph.

HOW: Writes Transcript.full_text followed by a single newline.

RULES:
- Output suffix: "-transcript.txt"
- Media type: "text/plain"
- The empty-transcript sentinel is written as-is
"""

from __future__ import annotations

from typing import List

from speechmatics_converter.core.ir import Transcript
from speechmatics_converter.formatters.base import BaseFormatter, FormatterOutput


class PlainTextFormatter(BaseFormatter):
    """Formatter that writes the "[m:ss] Role: text" display transcript."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix="-transcript.txt",
                content=transcript.full_text.rstrip() + "\n",
                media_type="text/plain",
            )
        ]
