"""Tests for transcript assembly and the full json-v2 → Transcript pipeline.

WHY: The assembled Transcript is the contract with the scoring service.
Its display text, fixed speaker pair, and empty-case sentinel must not
drift.

HOW: Unit tests for timestamp and line rendering, then end-to-end runs of
format_transcript over hand-built json-v2 bodies.
"""

import pytest

from speechmatics_converter.core.assembler import (
    build_transcript,
    format_timestamp,
    format_transcript,
)
from speechmatics_converter.core.ir import EMPTY_TRANSCRIPT_TEXT, Utterance
from speechmatics_converter.core.parser import parse_transcript_text


class TestFormatTimestamp:

    @pytest.mark.parametrize("seconds,expected", [
        (0.0, "0:00"),
        (5.9, "0:05"),
        (65.2, "1:05"),
        (600.0, "10:00"),
    ])
    def test_floor_division(self, seconds, expected):
        assert format_timestamp(seconds) == expected


class TestBuildTranscript:

    def test_lines_and_separator(self):
        utterances = [
            Utterance("Agent", "Selamat pagi", 0.0, 1.0, 0.9),
            Utterance("Customer", "Ya", 65.4, 66.0, 0.8),
        ]
        transcript = build_transcript(utterances)
        assert transcript.full_text == "[0:00] Agent: Selamat pagi\n\n[1:05] Customer: Ya"
        assert transcript.speakers == ["Agent", "Customer"]

    def test_speakers_fixed_without_customer_turns(self):
        utterances = [Utterance("Agent", "halo", 0.0, 1.0, 0.9)]
        assert build_transcript(utterances).speakers == ["Agent", "Customer"]

    def test_empty(self):
        transcript = build_transcript([])
        assert transcript.utterances == []
        assert transcript.full_text == EMPTY_TRANSCRIPT_TEXT
        assert transcript.speakers == ["Agent", "Customer"]

    def test_to_dict_shape(self):
        transcript = build_transcript([Utterance("Agent", "halo", 1.0, 2.0, 0.9)])
        payload = transcript.to_dict()
        assert set(payload) == {"speakers", "utterances", "full_transcript"}
        assert payload["utterances"][0] == {
            "speaker": "Agent",
            "text": "halo",
            "start_time": 1.0,
            "end_time": 2.0,
            "confidence": 0.9,
        }


class TestFormatTranscript:

    def test_opening_scenario(self, opening_transcript_json):
        transcript = format_transcript(opening_transcript_json)
        assert [(u.speaker, u.text) for u in transcript.utterances] == [
            ("Agent", "Selamat pagi perkenalkan saya dari PT Asuransi"),
            ("Customer", "Ya boleh"),
        ]
        assert transcript.full_text.startswith("[0:00] Agent: Selamat pagi")
        assert "[0:03] Customer: Ya boleh" in transcript.full_text

    def test_no_results(self):
        for body in ({}, {"results": []}, {"results": None}):
            transcript = format_transcript(body)
            assert transcript.utterances == []
            assert transcript.full_text == EMPTY_TRANSCRIPT_TEXT
            assert transcript.to_dict()["speakers"] == ["Agent", "Customer"]

    def test_only_punctuation_results(self):
        body = {"results": [{"type": "punctuation", "alternatives": [{"content": "."}]}]}
        transcript = format_transcript(body)
        assert transcript.utterances == []
        assert transcript.full_text == EMPTY_TRANSCRIPT_TEXT

    def test_four_speakers_get_overflow_roles(self, conversation):
        body = {"results": conversation([
            ("S1", "halo semuanya", 0.0),
            ("S2", "pagi", 1.0),
            ("S3", "siapa ini", 2.0),
            ("S4", "saya juga", 3.0),
        ])}
        transcript = format_transcript(body)
        assert transcript.roles() == ["Agent", "Customer", "Speaker_3", "Speaker_4"]

    def test_calls_are_independent(self, opening_transcript_json, conversation):
        first = format_transcript(opening_transcript_json)
        format_transcript({"results": conversation([("S9", "lain", 0.0)])})
        again = format_transcript(opening_transcript_json)
        assert first == again


class TestDisplayRoundTrip:

    def test_parse_recovers_speaker_text_pairs(self, conversation):
        body = {"results": conversation([
            ("S1", "Selamat pagi perkenalkan saya dari PT Asuransi", 0.0),
            ("S2", "Ya boleh", 3.2),
            ("S1", "Kami punya produk asuransi kesehatan: premi ringan", 4.5),
            ("S2", "Berapa preminya per bulan", 75.0),
        ])}
        transcript = format_transcript(body)
        parsed = parse_transcript_text(transcript.full_text)
        assert [(u.speaker, u.text) for u in parsed.utterances] == [
            (u.speaker, u.text) for u in transcript.utterances
        ]
        assert parsed.full_text == transcript.full_text
