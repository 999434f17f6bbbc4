"""Parse a display transcript back into the Transcript IR.

WHY: Calls are sometimes transcribed elsewhere and arrive as text, and
saved display transcripts need to be re-scored. Reading the
"[m:ss] Role: text" format back gives both paths the same Transcript
shape the recognition pipeline produces.

HOW: Each non-blank line is matched against three formats, most
specific first:
  1. "[m:ss] Speaker: content"
  2. "Speaker: content"
  3. bare content: the speaker is guessed from the words "agent" /
     "customer" (or their Indonesian forms), else alternates by line
Speaker names are then normalized to "Agent" / "Customer" when they
mention either role.

RULES:
- A line without a parseable timestamp starts at index * 30 seconds
- Every utterance lasts DEFAULT_LINE_DURATION_S with confidence 1.0
- Unknown speaker names are kept verbatim
- Blank input → empty transcript
"""

from __future__ import annotations

import re
from typing import List

from speechmatics_converter.core.assembler import build_transcript
from speechmatics_converter.core.ir import AGENT, CUSTOMER, Transcript, Utterance

DEFAULT_LINE_DURATION_S = 30

_TIMESTAMP_LINE_RE = re.compile(r"^\[([^\]]+)\]\s*([^:]+):\s*(.+)$")


def _parse_timestamp(value: str) -> int | None:
    parts = value.split(":")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        return None


def normalize_speaker(name: str) -> str:
    lowered = name.lower()
    if "agent" in lowered or "agen" in lowered:
        return AGENT
    if "customer" in lowered or "pelanggan" in lowered or "client" in lowered:
        return CUSTOMER
    return name


def _guess_speaker(line: str, index: int) -> str:
    lowered = line.lower()
    if "agent" in lowered or "agen" in lowered:
        return AGENT
    if "customer" in lowered or "pelanggan" in lowered:
        return CUSTOMER
    return AGENT if index % 2 == 0 else CUSTOMER


def parse_transcript_text(text: str) -> Transcript:
    """Read a display transcript into a Transcript.

    Args:
        text: Transcript text, one utterance per non-blank line.

    Returns:
        Transcript whose full_text is re-rendered in the canonical format.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    utterances: List[Utterance] = []

    for index, line in enumerate(lines):
        start = index * DEFAULT_LINE_DURATION_S
        match = _TIMESTAMP_LINE_RE.match(line)

        if match:
            parsed = _parse_timestamp(match.group(1))
            if parsed is not None:
                start = parsed
            speaker = match.group(2).strip()
            content = match.group(3).strip()
        elif ":" in line:
            speaker, _, content = line.partition(":")
            speaker = speaker.strip()
            content = content.strip()
        else:
            speaker = _guess_speaker(line, index)
            content = line

        if not content:
            continue

        utterances.append(Utterance(
            speaker=normalize_speaker(speaker),
            text=content,
            start_time=float(start),
            end_time=float(start + DEFAULT_LINE_DURATION_S),
            confidence=1.0,
        ))

    return build_transcript(utterances)
