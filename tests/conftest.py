"""Shared test fixtures for the speechmatics_converter test suite.

WHY: Most test modules need json-v2 recognition items and WordTokens for
short Indonesian sales-call openings. Centralizing the builders here keeps
every test on the same item shape the batch API returns.

HOW: Fixtures return factory callables (so tests can build their own
conversations) plus one canonical two-speaker opening.

RULES:
- Item shape matches the Speechmatics json-v2 ``results`` entries
- Words inside one turn are 0.4s apart with 0.3s duration
- The canonical opening: S1 greets and introduces the company, S2 agrees
"""

from typing import Any, Dict, List

import pytest

from speechmatics_converter.core.ir import WordToken


def _word_item(content, speaker, start, end, confidence=0.95) -> Dict[str, Any]:
    return {
        "type": "word",
        "start_time": start,
        "end_time": end,
        "alternatives": [
            {"content": content, "confidence": confidence, "language": "id", "speaker": speaker},
        ],
    }


def _turn_items(speaker: str, text: str, start: float) -> List[Dict[str, Any]]:
    items = []
    for offset, content in enumerate(text.split()):
        begin = round(start + offset * 0.4, 3)
        items.append(_word_item(content, speaker, begin, round(begin + 0.3, 3)))
    return items


def _conversation(turns) -> List[Dict[str, Any]]:
    """Build json-v2 items for (speaker, text, start_time) turns."""
    items: List[Dict[str, Any]] = []
    for speaker, text, start in turns:
        items.extend(_turn_items(speaker, text, start))
    return items


def _tokens(turns) -> List[WordToken]:
    """Build WordTokens for (speaker, text, start_time) turns."""
    tokens: List[WordToken] = []
    for speaker, text, start in turns:
        for offset, content in enumerate(text.split()):
            begin = round(start + offset * 0.4, 3)
            tokens.append(WordToken(
                word=content,
                raw_speaker=speaker,
                confidence=0.9,
                start_time=begin,
                end_time=round(begin + 0.3, 3),
            ))
    return tokens


@pytest.fixture
def word_item():
    return _word_item


@pytest.fixture
def conversation():
    return _conversation


@pytest.fixture
def make_tokens():
    return _tokens


OPENING_TURNS = [
    ("S1", "Selamat pagi perkenalkan saya dari PT Asuransi", 0.0),
    ("S2", "Ya boleh", 3.2),
]


@pytest.fixture
def opening_items():
    """json-v2 results for the canonical two-speaker opening."""
    return _conversation(OPENING_TURNS)


@pytest.fixture
def opening_transcript_json(opening_items):
    """Full json-v2 transcript body wrapping the canonical opening."""
    return {
        "format": "2.9",
        "job": {"id": "job-123", "data_name": "call.wav", "duration": 5},
        "results": opening_items,
    }
