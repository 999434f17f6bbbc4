"""Intermediate representation dataclasses for diarized call transcripts.

WHY: Speechmatics returns a flat list of recognition items whose speaker
tags are unstable. Every pipeline stage needs a well-typed view of the
data it transforms, and the analysis consumer needs one fixed transcript
shape. The IR decouples the provider's JSON from both.

HOW: Four dataclasses follow the data flow:
  WordToken:    one recognized word with a raw speaker tag and timing
  SpeakerStats: per-raw-tag statistics used for role assignment
  Utterance:    a contiguous run of words attributed to one role
  Transcript:   the terminal artifact handed to the analysis consumer

RULES:
- WordToken is frozen; tokens are ordered by time
- Utterance.speaker is the only field mutated after creation
  (by the speaker corrector)
- Transcript.speakers is always the literal pair ["Agent", "Customer"]
- All times are float seconds
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

AGENT = "Agent"
CUSTOMER = "Customer"

TRANSCRIPT_SPEAKERS: tuple[str, str] = (AGENT, CUSTOMER)
"""Fixed speaker list exposed to the analysis consumer."""

EMPTY_TRANSCRIPT_TEXT = "Tidak ada transkrip tersedia"
"""Display text used when no utterances were recognized."""


def overflow_role(index: int) -> str:
    """Role label for the third and later raw tags (0-based encounter index)."""
    return "Speaker_{}".format(index + 1)


@dataclass(frozen=True)
class WordToken:
    """A single recognized word with its raw diarization tag.

    RULES:
    - raw_speaker: provider label such as "S1", never empty
    - confidence: float 0.0–1.0
    - end_time >= start_time >= 0
    """

    word: str
    raw_speaker: str
    confidence: float
    start_time: float
    end_time: float


@dataclass
class SpeakerStats:
    """Statistics for one raw speaker tag, recomputed per attempt.

    RULES:
    - vocabulary holds the tag's words lowercased, in encounter order
    - starts_first is True only for the tag of the first token
    - turn_count is the number of maximal same-tag runs (at least 1)
    """

    word_count: int = 0
    vocabulary: list[str] = field(default_factory=list)
    starts_first: bool = False
    turn_count: int = 0
    avg_words_per_utterance: float = 0.0


@dataclass
class Utterance:
    """A contiguous run of words attributed to one role.

    RULES:
    - text is non-empty after trimming
    - end_time >= start_time
    - confidence is the mean of the constituent token confidences
    """

    speaker: str
    text: str
    start_time: float
    end_time: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "speaker": self.speaker,
            "text": self.text,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "confidence": self.confidence,
        }


@dataclass
class Transcript:
    """The complete speaker-labeled transcript of one call.

    WHY: This is what the analysis consumer receives. Its field names and
    the fixed speaker pair are the contract; changing either breaks the
    consumer.

    RULES:
    - speakers: always ["Agent", "Customer"] regardless of roles present
    - utterances: ordered by start time
    - full_text: "[m:ss] Role: text" lines separated by blank lines, or
      EMPTY_TRANSCRIPT_TEXT when there are no utterances
    """

    utterances: list[Utterance]
    full_text: str
    speakers: list[str] = field(default_factory=lambda: list(TRANSCRIPT_SPEAKERS))

    def roles(self) -> list[str]:
        """Distinct roles present in the utterances, in first-seen order."""
        seen: list[str] = []
        for utterance in self.utterances:
            if utterance.speaker not in seen:
                seen.append(utterance.speaker)
        return seen

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the payload shape the analysis consumer reads."""
        return {
            "speakers": list(self.speakers),
            "utterances": [u.to_dict() for u in self.utterances],
            "full_transcript": self.full_text,
        }
