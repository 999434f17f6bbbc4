"""Lexical speaker overrides and single-speaker splitting.

WHY: The recognizer's diarization disproportionately misattributes short
acknowledgement turns ("ya", "tidak") and sometimes folds a whole call
into one speaker. A small, explainable override layer fixes the common
cases without a trained classifier.

HOW: apply_speaker_corrections() runs two independent rules per
utterance, the later rule winning when both fire:
  1. the first utterance containing a greeting token becomes Agent
  2. any utterance shorter than SHORT_UTTERANCE_CHARS containing an
     affirmation/negation token becomes Customer
split_single_speaker() is the opt-in fallback for single-role calls: it
scores each utterance with classify_speaker() and merges the result.

RULES:
- Tokens match as whole words, case-insensitive
- apply_speaker_corrections mutates only Utterance.speaker and is idempotent
- split_single_speaker never mutates its input
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, List, Sequence

from speechmatics_converter.core.ir import AGENT, CUSTOMER, Utterance
from speechmatics_converter.core.segmenter import merge_consecutive_speakers

GREETING_TOKENS = frozenset({"selamat"})
AFFIRMATION_TOKENS = frozenset({"ya", "tidak", "iya"})
SHORT_UTTERANCE_CHARS = 50

AGENT_INDICATORS: tuple[str, ...] = (
    "selamat", "bapak", "ibu", "kami", "perusahaan", "produk", "asuransi",
    "manfaat", "premi", "perlindungan", "terima kasih", "mari kita", "saya akan",
    "membantu", "layanan", "penawaran", "harga", "paket", "benefit",
)

CUSTOMER_INDICATORS: tuple[str, ...] = (
    "ya", "tidak", "iya", "saya tertarik", "berapa", "bagaimana", "boleh",
    "bisa", "mau", "nggak", "gimana", "oh", "oke", "baik", "saya mau",
    "kapan", "dimana", "kenapa", "wah", "hmm",
)

_QUESTION_WORDS_RE = re.compile(r"(?<!\w)(berapa|bagaimana|kapan|dimana|kenapa)(?!\w)")
_TOKEN_RE = re.compile(r"\w+")


def _tokens(text: str) -> set[str]:
    return set(_TOKEN_RE.findall(text.lower()))


def _count_phrases(text: str, phrases: Iterable[str]) -> int:
    return sum(
        1 for phrase in phrases
        if re.search(r"(?<!\w){}(?!\w)".format(re.escape(phrase)), text)
    )


def apply_speaker_corrections(utterances: List[Utterance]) -> List[Utterance]:
    """Apply the greeting and short-affirmation overrides in place.

    Args:
        utterances: Segmented utterances; their speaker fields may change.

    Returns:
        The same list object, for chaining.
    """
    for index, utterance in enumerate(utterances):
        tokens = _tokens(utterance.text)

        if index == 0 and tokens & GREETING_TOKENS:
            utterance.speaker = AGENT

        if len(utterance.text) < SHORT_UTTERANCE_CHARS and tokens & AFFIRMATION_TOKENS:
            utterance.speaker = CUSTOMER

    return utterances


def classify_speaker(text: str, index: int) -> str:
    """Guess the role of one utterance from its wording alone.

    WHY: When diarization collapses a call into one speaker there is no
    tag signal left; wording and position are all that remain.

    HOW: Indicator phrase hits score 2 points each for their side. Long
    text (> 80 chars) and being the first utterance add 1 to Agent; a
    question adds 2 to Customer; a very short "ya"/"tidak" adds 3 more.

    RULES:
    - Customer only when customer points strictly exceed agent points

    Args:
        text: Utterance text.
        index: Position of the utterance in the transcript.

    Returns:
        "Agent" or "Customer".
    """
    lowered = text.lower()
    tokens = _tokens(text)

    agent_points = _count_phrases(lowered, AGENT_INDICATORS) * 2
    customer_points = _count_phrases(lowered, CUSTOMER_INDICATORS) * 2

    if len(text) > 80:
        agent_points += 1
    if "?" in text or _QUESTION_WORDS_RE.search(lowered):
        customer_points += 2
    if index == 0:
        agent_points += 1
    if len(text) < 20 and tokens & {"ya", "tidak"}:
        customer_points += 3

    return CUSTOMER if customer_points > agent_points else AGENT


def split_single_speaker(utterances: Sequence[Utterance]) -> List[Utterance]:
    """Reassign roles by wording when only one role is present.

    Transcripts with two or more roles are returned as a new list of the
    same objects.
    """
    if len({u.speaker for u in utterances}) != 1:
        return list(utterances)

    reclassified = [
        replace(utterance, speaker=classify_speaker(utterance.text, index))
        for index, utterance in enumerate(utterances)
    ]
    return merge_consecutive_speakers(reclassified)
