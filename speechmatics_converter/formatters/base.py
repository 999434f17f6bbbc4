"""Formatter interface and the output file container.

WHY: A finished call is written in more than one shape: the JSON
payload the scoring service reads, and a text file for reviewers. A
shared interface lets the CLI loop over whichever formatters were asked
for without knowing what they produce.

HOW: BaseFormatter declares a ``name`` property plus ``format()``, which
turns a Transcript into FormatterOutput records. Each record carries the
file suffix, the text content, and its MIME type.

RULES:
- ``format()`` never writes files; saving is the CLI's job
- Suffixes begin with "-" so they can follow the input file stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from speechmatics_converter.core.ir import Transcript


@dataclass
class FormatterOutput:
    """A single file a formatter wants written.

    Attributes:
        suffix: Appended to the input stem, so ``"-transcript.txt"``
                turns ``call.wav`` into ``call-transcript.txt``.
        content: Text content of the file.
        media_type: MIME type, e.g. ``"text/plain"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Base class for transcript formatters.

    New formatters subclass this and get a key in
    ``formatters.FORMATTERS`` to become selectable from ``--formats``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name, e.g. 'Plain Text'."""

    @abstractmethod
    def format(self, transcript: Transcript) -> list[FormatterOutput]:
        """Render the transcript as one or more output files."""
