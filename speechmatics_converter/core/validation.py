"""Structural plausibility check for a diarized transcript.

WHY: A two-party sales call should have one or two dominant roles. When
diarization shatters the call into many tiny speakers, or returns
nothing, the orchestrator should try recognition again instead of
handing a broken transcript to scoring.

HOW: Count utterances per role and apply the rules below in order.

RULES:
- Zero utterances → implausible
- Exactly one role → plausible (single-speaker calls are kept)
- More than MAX_ROLES roles → implausible
- Otherwise plausible iff the number of roles holding more than
  DOMINANT_SHARE of the utterances is between 1 and MAX_ROLES
"""

from __future__ import annotations

import logging
from collections import Counter

from speechmatics_converter.core.ir import Transcript

logger = logging.getLogger(__name__)

MAX_ROLES = 3
DOMINANT_SHARE = 0.1


class ImplausibleDiarizationError(Exception):
    """Raised when a transcript fails the plausibility check.

    Carries the rejected transcript so a caller that runs out of retries
    can still fall back to it.
    """

    def __init__(self, transcript: Transcript, reason: str) -> None:
        self.transcript = transcript
        self.reason = reason
        super().__init__(f"Implausible speaker diarization: {reason}")


def check_plausibility(transcript: Transcript) -> str | None:
    """Return why the transcript is implausible, or None when it is fine."""
    utterances = transcript.utterances
    if not utterances:
        return "no utterances"

    counts = Counter(u.speaker for u in utterances)

    if len(counts) == 1:
        logger.info("Only one speaker detected, transcript may need splitting")
        return None

    if len(counts) > MAX_ROLES:
        return "too many speakers detected: {}".format(len(counts))

    total = len(utterances)
    dominant = [role for role, count in counts.items() if count / total > DOMINANT_SHARE]
    if not 1 <= len(dominant) <= MAX_ROLES:
        return "{} dominant speakers out of {}".format(len(dominant), len(counts))
    return None


def validate_speaker_consistency(transcript: Transcript) -> bool:
    return check_plausibility(transcript) is None


def ensure_plausible(transcript: Transcript) -> Transcript:
    """Return the transcript unchanged or raise ImplausibleDiarizationError."""
    reason = check_plausibility(transcript)
    if reason is not None:
        raise ImplausibleDiarizationError(transcript, reason)
    return transcript
