"""Group role-mapped words into utterances.

WHY: The analysis consumer reads a conversation as turns, not words.
A turn ends when the role changes or when the speaker pauses long
enough that the next words belong to a new thought.

HOW: Walk the tokens with a running buffer. Before adding a token,
close the buffer if the token's role differs from the buffer's role or
if the silence since the previous token's end exceeds PAUSE_THRESHOLD_S.
Flush whatever remains at the end.

RULES:
- Role lookup falls back to "Agent" for tags missing from the map
- Split when start_time - previous end_time > PAUSE_THRESHOLD_S (strict)
- Text = words joined by single spaces, trimmed; empty text is discarded
- start_time/end_time come from the first/last buffered token
- confidence = arithmetic mean of the buffered token confidences
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from speechmatics_converter.core.ir import AGENT, Utterance, WordToken

PAUSE_THRESHOLD_S = 2.0

MIN_MERGED_TEXT_LENGTH = 3


def _close_utterance(speaker: str, buffer: List[WordToken]) -> Utterance | None:
    """Build an Utterance from the buffer, or None if its text is empty."""
    text = " ".join(w.word for w in buffer).strip()
    if not text:
        return None
    return Utterance(
        speaker=speaker,
        text=text,
        start_time=buffer[0].start_time,
        end_time=buffer[-1].end_time,
        confidence=sum(w.confidence for w in buffer) / len(buffer),
    )


def group_into_utterances(
    words: Sequence[WordToken],
    speaker_map: Dict[str, str],
    pause_threshold_s: float = PAUSE_THRESHOLD_S,
) -> List[Utterance]:
    """Segment WordTokens into utterances on role change or long pause.

    Args:
        words: WordTokens in time order.
        speaker_map: Raw tag → role, from build_speaker_map().
        pause_threshold_s: Silence (seconds) that forces a new utterance.

    Returns:
        Utterances in emission order.
    """
    utterances: List[Utterance] = []
    buffer: List[WordToken] = []
    current_role: str | None = None
    last_end_time = 0.0

    for word in words:
        role = speaker_map.get(word.raw_speaker, AGENT)
        pause = word.start_time - last_end_time > pause_threshold_s

        if buffer and (role != current_role or pause):
            utterance = _close_utterance(current_role, buffer)
            if utterance is not None:
                utterances.append(utterance)
            buffer = []

        if not buffer:
            current_role = role

        buffer.append(word)
        last_end_time = word.end_time

    if buffer:
        utterance = _close_utterance(current_role, buffer)
        if utterance is not None:
            utterances.append(utterance)

    return utterances


def merge_consecutive_speakers(utterances: Sequence[Utterance]) -> List[Utterance]:
    """Join adjacent utterances that share a role and drop noise fragments.

    WHY: After roles are reassigned (e.g. by the single-speaker split),
    neighbouring utterances often end up with the same role and read as
    one broken turn.

    HOW: Extends the running utterance with each same-role neighbour:
    texts joined with a space, end time moved forward, confidence
    averaged pairwise. Utterances whose trimmed text is shorter than
    MIN_MERGED_TEXT_LENGTH are dropped afterwards.

    RULES:
    - Inputs are not mutated; new Utterance objects are returned
    - Pairwise confidence averaging weights later utterances more heavily
    """
    merged: List[Utterance] = []
    current: Utterance | None = None

    for utterance in utterances:
        if current is not None and current.speaker == utterance.speaker:
            current.text = "{} {}".format(current.text, utterance.text)
            current.end_time = utterance.end_time
            current.confidence = (current.confidence + utterance.confidence) / 2
        else:
            if current is not None:
                merged.append(current)
            current = Utterance(
                speaker=utterance.speaker,
                text=utterance.text,
                start_time=utterance.start_time,
                end_time=utterance.end_time,
                confidence=utterance.confidence,
            )

    if current is not None:
        merged.append(current)

    return [u for u in merged if len(u.text.strip()) >= MIN_MERGED_TEXT_LENGTH]
