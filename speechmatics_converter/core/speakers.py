"""Per-speaker statistics and deterministic raw-tag → role mapping.

WHY: Speechmatics assigns arbitrary labels ("S1", "S2") whose order says
nothing about who is the call-center agent. Scoring needs "Agent" and
"Customer", and the same input must always yield the same mapping.

HOW: analyze_speaker_patterns() makes one left-to-right pass collecting
word counts, lowercased vocabulary, turn counts, and the first-speaker
flag per raw tag. build_speaker_map() then decides roles. With exactly
two tags a tag is "agent-like" when any of these signals holds:
  (a) it speaks first
  (b) its average words per turn is strictly higher than the other's
  (c) its vocabulary hits at least AGENT_KEYWORD_THRESHOLD agent keywords
The first-seen tag is the Agent when it is agent-like; otherwise the
second tag is the Agent when it is agent-like. When neither is, the
first-seen tag is the Agent.
Any other tag count falls back to encounter order.

RULES:
- The map is total over the tags present in the tokens
- First-seen order decides fallbacks: Agent, Customer, Speaker_3, ...
- Keyword matching is on whole words, case-insensitive
- Pure functions: no state survives between calls
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Sequence

from speechmatics_converter.core.ir import (
    AGENT,
    CUSTOMER,
    SpeakerStats,
    WordToken,
    overflow_role,
)

logger = logging.getLogger(__name__)

# Formal / sales-opening vocabulary typical of an outbound insurance agent.
AGENT_KEYWORDS: tuple[str, ...] = (
    "selamat", "perkenalkan", "saya", "dari", "pt", "perusahaan",
    "kami", "produk", "asuransi", "terima kasih", "membantu",
    "informasi", "manfaat", "premi", "polis",
)

AGENT_KEYWORD_THRESHOLD = 3


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"(?<!\w){}(?!\w)".format(re.escape(keyword)))


_AGENT_KEYWORD_PATTERNS = [_keyword_pattern(k) for k in AGENT_KEYWORDS]


def speakers_in_order(words: Sequence[WordToken]) -> List[str]:
    """Distinct raw speaker tags in first-encounter order."""
    seen: Dict[str, None] = {}
    for word in words:
        seen.setdefault(word.raw_speaker, None)
    return list(seen)


def analyze_speaker_patterns(words: Sequence[WordToken]) -> Dict[str, SpeakerStats]:
    """Compute per-raw-tag statistics in a single pass.

    WHY: Role assignment only needs relative signal strength between the
    raw tags, not an exact segmentation.

    HOW: Accumulates vocabulary and counts per tag. A new turn starts for
    a tag whenever its token follows a token of a different tag (or opens
    the sequence). The average is word_count / max(turn_count, 1).

    Args:
        words: WordTokens in time order.

    Returns:
        Mapping of raw tag → SpeakerStats, in first-encounter order.
    """
    stats: Dict[str, SpeakerStats] = {}
    previous_tag: str | None = None

    for index, word in enumerate(words):
        tag = word.raw_speaker
        entry = stats.get(tag)
        if entry is None:
            entry = SpeakerStats(starts_first=index == 0)
            stats[tag] = entry

        entry.vocabulary.append(word.word.lower())
        entry.word_count += 1
        if tag != previous_tag:
            entry.turn_count += 1
        previous_tag = tag

    for entry in stats.values():
        entry.avg_words_per_utterance = entry.word_count / max(entry.turn_count, 1)

    return stats


def count_agent_keywords(vocabulary: Sequence[str]) -> int:
    """Number of distinct AGENT_KEYWORDS present in the vocabulary."""
    text = " ".join(vocabulary).lower()
    return sum(1 for pattern in _AGENT_KEYWORD_PATTERNS if pattern.search(text))


def has_agent_language_patterns(vocabulary: Sequence[str]) -> bool:
    """True when the vocabulary hits at least AGENT_KEYWORD_THRESHOLD keywords."""
    return count_agent_keywords(vocabulary) >= AGENT_KEYWORD_THRESHOLD


def _is_agent_like(own: SpeakerStats, other: SpeakerStats) -> bool:
    return (
        own.starts_first
        or own.avg_words_per_utterance > other.avg_words_per_utterance
        or has_agent_language_patterns(own.vocabulary)
    )


def build_speaker_map(
    words: Sequence[WordToken],
    stats: Dict[str, SpeakerStats] | None = None,
) -> Dict[str, str]:
    """Map every raw speaker tag in ``words`` to a role.

    Args:
        words: WordTokens in time order.
        stats: Precomputed statistics; computed from ``words`` when omitted.

    Returns:
        Raw tag → "Agent" | "Customer" | "Speaker_N".
    """
    tags = speakers_in_order(words)
    if stats is None:
        stats = analyze_speaker_patterns(words)

    logger.debug("Raw detected speakers: %s", tags)

    speaker_map: Dict[str, str] = {}

    if len(tags) == 2:
        first, second = tags
        first_agent_like = _is_agent_like(stats[first], stats[second])
        second_agent_like = _is_agent_like(stats[second], stats[first])
        logger.debug(
            "Agent-like: %s=%s, %s=%s", first, first_agent_like, second, second_agent_like
        )
        if first_agent_like or not second_agent_like:
            speaker_map[first] = AGENT
            speaker_map[second] = CUSTOMER
        else:
            speaker_map[first] = CUSTOMER
            speaker_map[second] = AGENT
    else:
        for index, tag in enumerate(tags):
            if index == 0:
                speaker_map[tag] = AGENT
            elif index == 1:
                speaker_map[tag] = CUSTOMER
            else:
                speaker_map[tag] = overflow_role(index)

    logger.info("Final speaker mapping: %s", sorted(speaker_map.items()))
    return speaker_map
