"""Transcript assembly and the full result → Transcript pipeline.

WHY: The analysis consumer needs a display transcript ("[0:05] Agent:
...") alongside the structured utterances, and a caller holding a raw
json-v2 result wants one call that runs every stabilization stage.

HOW: build_transcript() renders each utterance as a timestamped line and
joins them with blank lines. format_transcript() chains the stages:
extract_words → analyze_speaker_patterns → build_speaker_map →
group_into_utterances → apply_speaker_corrections → build_transcript.

RULES:
- Line format: "[m:ss] Role: text" (minutes unpadded, seconds two digits)
- Lines are separated by a blank line ("\\n\\n")
- No utterances → full_text is EMPTY_TRANSCRIPT_TEXT
- speakers is always ["Agent", "Customer"]
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Sequence

from speechmatics_converter.core.corrector import apply_speaker_corrections
from speechmatics_converter.core.extractor import extract_words
from speechmatics_converter.core.ir import (
    EMPTY_TRANSCRIPT_TEXT,
    Transcript,
    Utterance,
)
from speechmatics_converter.core.segmenter import group_into_utterances
from speechmatics_converter.core.speakers import (
    analyze_speaker_patterns,
    build_speaker_map,
)

logger = logging.getLogger(__name__)


def format_timestamp(seconds: float) -> str:
    """Render seconds as "m:ss" using floor division."""
    total = max(seconds, 0.0)
    minutes = int(total // 60)
    remaining = int(total % 60)
    return "{}:{:02d}".format(minutes, remaining)


def format_line(utterance: Utterance) -> str:
    return "[{}] {}: {}".format(
        format_timestamp(utterance.start_time), utterance.speaker, utterance.text
    )


def empty_transcript() -> Transcript:
    return Transcript(utterances=[], full_text=EMPTY_TRANSCRIPT_TEXT)


def build_transcript(utterances: Sequence[Utterance]) -> Transcript:
    """Build the Transcript from finished utterances.

    Args:
        utterances: Segmented and corrected utterances, in order.

    Returns:
        Transcript with the rendered display text.
    """
    if not utterances:
        return empty_transcript()

    full_text = "\n\n".join(format_line(u) for u in utterances)

    distribution = Counter(u.speaker for u in utterances)
    logger.info("Formatted transcript with %d utterances", len(utterances))
    logger.debug("Final speaker distribution: %s", dict(distribution))

    return Transcript(utterances=list(utterances), full_text=full_text)


def format_transcript(raw_transcript: Dict[str, Any]) -> Transcript:
    """Run the full stabilization pipeline over a json-v2 transcript.

    WHY: This is the single entry point from a raw provider result to
    the Transcript the analysis consumer reads.

    HOW: Reads ``results`` (missing or empty → empty transcript) and runs
    each stage in order. Each call builds fresh state; nothing is shared
    between calls.

    Args:
        raw_transcript: The json-v2 response body.

    Returns:
        The assembled Transcript.
    """
    results = raw_transcript.get("results") or []
    if not results:
        return empty_transcript()

    words = extract_words(results)
    stats = analyze_speaker_patterns(words)
    for tag, entry in stats.items():
        logger.debug(
            "Speaker %s: %d words, %d turns, avg %.1f words/turn, starts first: %s",
            tag, entry.word_count, entry.turn_count,
            entry.avg_words_per_utterance, entry.starts_first,
        )

    speaker_map = build_speaker_map(words, stats)
    utterances: List[Utterance] = group_into_utterances(words, speaker_map)
    apply_speaker_corrections(utterances)
    return build_transcript(utterances)
