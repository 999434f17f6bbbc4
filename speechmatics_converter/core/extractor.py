"""Flatten Speechmatics json-v2 recognition results into WordTokens.

WHY: The json-v2 ``results`` array mixes words, punctuation, and entity
items, and the speaker tag may sit on the primary alternative or on the
item itself. The rest of the pipeline wants one uniform, time-ordered
list of words with a raw speaker tag that is never missing.

HOW: Single pass over the result items. Word items with a non-empty
primary alternative become WordTokens; everything else is skipped.

RULES:
- Keep only items with type == "word" and a non-empty alternatives[0].content
- raw_speaker: alternatives[0].speaker → item.speaker → DEFAULT_SPEAKER_TAG
- Missing confidence → DEFAULT_CONFIDENCE (0.9); missing times → 0.0
- Confidence is clamped to [0, 1]
- Output order equals input order (no sorting)
- Malformed items are skipped, never raised on
"""

from __future__ import annotations

from typing import Any, Iterable, List

from speechmatics_converter.core.ir import WordToken

DEFAULT_SPEAKER_TAG = "S1"
DEFAULT_CONFIDENCE = 0.9


def _primary_alternative(item: dict[str, Any]) -> dict[str, Any] | None:
    alternatives = item.get("alternatives")
    if not isinstance(alternatives, list) or not alternatives:
        return None
    first = alternatives[0]
    return first if isinstance(first, dict) else None


def _as_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def extract_words(results: Iterable[Any]) -> List[WordToken]:
    """Extract timed word tokens from raw recognition result items.

    Args:
        results: The ``results`` array of a json-v2 transcript.

    Returns:
        WordTokens in encounter order.
    """
    words: List[WordToken] = []

    for item in results:
        if not isinstance(item, dict) or item.get("type") != "word":
            continue

        alternative = _primary_alternative(item)
        if alternative is None or not alternative.get("content"):
            continue

        raw_speaker = alternative.get("speaker") or item.get("speaker") or DEFAULT_SPEAKER_TAG
        start_time = _as_float(item.get("start_time"), 0.0)
        end_time = _as_float(item.get("end_time"), 0.0)

        words.append(WordToken(
            word=str(alternative["content"]),
            raw_speaker=str(raw_speaker),
            confidence=min(max(_as_float(alternative.get("confidence"), DEFAULT_CONFIDENCE), 0.0), 1.0),
            start_time=start_time,
            end_time=max(end_time, start_time),
        ))

    return words
