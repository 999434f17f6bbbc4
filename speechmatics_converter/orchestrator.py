"""Retry loop around recognition, stabilization, and plausibility checks.

WHY: Speechmatics diarization is not deterministic. The same call can
come back cleanly split into two speakers on one run and shattered into
four on the next, and provider calls fail transiently. The orchestrator
runs recognition attempts until one yields a plausible transcript, and
prefers returning an imperfect transcript over blocking the user.

HOW: Each attempt is submit → poll → fetch → delete (via
SpeechmaticsClient), then format_transcript() and ensure_plausible().
  - provider failure  → wait failure_backoff_s, try again
  - implausible result → remember it, wait invalid_backoff_s, try again
  - plausible result  → accept
When attempts run out, the last implausible transcript is returned if
there is one; otherwise TranscriptionFailedError is raised from the
last provider error.

RULES:
- Attempts are strictly sequential (never duplicate billable jobs)
- No backoff sleep after the final attempt
- Every job that was created is deleted, whatever the outcome
- Single-role transcripts are accepted; with split_single_speaker=True
  they are re-split by wording before being returned
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from speechmatics_converter.api.client import (
    JobRejectedError,
    PollTimeoutError,
    SpeechmaticsAPIError,
    SpeechmaticsClient,
)
from speechmatics_converter.config import DiarizationSettings, RetryPolicy
from speechmatics_converter.core.assembler import build_transcript, format_transcript
from speechmatics_converter.core.corrector import split_single_speaker
from speechmatics_converter.core.ir import Transcript
from speechmatics_converter.core.validation import (
    ImplausibleDiarizationError,
    ensure_plausible,
)

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    SpeechmaticsAPIError,
    JobRejectedError,
    PollTimeoutError,
    httpx.HTTPError,
    KeyError,
)
"""Errors from one attempt that the loop retries (KeyError: malformed response)."""


class TranscriptionFailedError(Exception):
    """Raised when every attempt failed without producing a transcript.

    RULES:
    - attempts is the number of attempts made
    - last_error is also chained as __cause__
    """

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = str(last_error) if last_error else "no attempt succeeded"
        super().__init__(
            f"Failed to transcribe audio after {attempts} attempt(s): {detail}"
        )


class TranscriptionOrchestrator:
    """Drives recognition attempts until a plausible transcript is accepted.

    Args:
        client: An entered SpeechmaticsClient.
        settings: Diarization parameters sent with every job.
        policy: Attempt ceiling, backoffs, and polling bounds.
        split_single_speaker: Re-split single-role transcripts by wording.
        on_status: Optional callback for human-facing progress lines.
    """

    def __init__(
        self,
        client: SpeechmaticsClient,
        settings: DiarizationSettings | None = None,
        policy: RetryPolicy | None = None,
        split_single_speaker: bool = False,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or DiarizationSettings()
        self._policy = policy or RetryPolicy()
        self._split_single_speaker = split_single_speaker
        self._on_status = on_status

    async def attempt(self, audio_path: Path) -> Transcript:
        """Transcribe one audio file, retrying as the policy allows.

        Args:
            audio_path: The audio file to send to Speechmatics.

        Returns:
            The accepted transcript, or the last implausible one when
            retries are exhausted. A stored implausible transcript takes
            precedence over provider failures in later attempts.

        Raises:
            TranscriptionFailedError: No attempt produced a transcript.
        """
        max_attempts = self._policy.max_attempts
        last_error: BaseException | None = None
        best_effort: Transcript | None = None

        for attempt in range(1, max_attempts + 1):
            logger.info("Transcription attempt %d/%d", attempt, max_attempts)
            if self._on_status:
                self._on_status(f"Transcription attempt {attempt}/{max_attempts}")

            try:
                transcript = await self._run_attempt(Path(audio_path))
            except ImplausibleDiarizationError as e:
                best_effort = e.transcript
                logger.warning("Attempt %d: %s", attempt, e.reason)
                if attempt < max_attempts:
                    logger.info("Speaker diarization inconsistent, retrying...")
                    await asyncio.sleep(self._policy.invalid_backoff_s)
                continue
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning("Attempt %d failed: %s", attempt, e)
                if attempt < max_attempts:
                    await asyncio.sleep(self._policy.failure_backoff_s)
                continue

            logger.info("Speaker diarization validation passed")
            return self._finalize(transcript)

        if best_effort is not None:
            logger.warning(
                "Diarization still implausible after %d attempts, "
                "returning the last transcript",
                max_attempts,
            )
            return self._finalize(best_effort)

        raise TranscriptionFailedError(max_attempts, last_error) from last_error

    async def _run_attempt(self, audio_path: Path) -> Transcript:
        job_id = await self._client.submit_job(
            audio_path, self._settings, on_status=self._on_status
        )
        try:
            await self._client.poll_until_complete(
                job_id,
                poll_interval_s=self._policy.poll_interval_s,
                max_polls=self._policy.max_polls,
                on_status=self._on_status,
            )
            raw = await self._client.fetch_transcript(job_id, on_status=self._on_status)
        finally:
            await self._client.delete_job(job_id)

        return ensure_plausible(format_transcript(raw))

    def _finalize(self, transcript: Transcript) -> Transcript:
        if self._split_single_speaker:
            return resplit_single_speaker(transcript)
        return transcript


def resplit_single_speaker(transcript: Transcript) -> Transcript:
    """Re-split a single-role transcript by wording; others pass through."""
    if len(transcript.roles()) != 1:
        return transcript
    logger.info("Splitting single-speaker transcript by wording")
    return build_transcript(split_single_speaker(transcript.utterances))
