"""Tests for the recognition retry loop.

WHY: The orchestrator decides when a call is billed again, how long the
user waits, and what comes back when diarization never settles. Those
decisions must hold without a network.

HOW: A MagicMock stands in for SpeechmaticsClient with AsyncMock methods;
fetch_transcript side effects script each attempt. asyncio.sleep in the
orchestrator module is patched so backoffs are recorded, not waited.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, call, patch

import httpx
import pytest

from speechmatics_converter.api.client import (
    JobRejectedError,
    SpeechmaticsAPIError,
    SpeechmaticsClient,
)
from speechmatics_converter.config import RetryPolicy
from speechmatics_converter.orchestrator import (
    TranscriptionFailedError,
    TranscriptionOrchestrator,
    resplit_single_speaker,
)
from speechmatics_converter.core.assembler import format_transcript

SLEEP = "speechmatics_converter.orchestrator.asyncio.sleep"

SHATTERED_TURNS = [
    ("S1", "halo semuanya", 0.0),
    ("S2", "pagi", 1.0),
    ("S3", "siapa ini", 2.0),
    ("S4", "saya juga", 3.0),
]

SINGLE_SPEAKER_TURNS = [
    ("S1", "Selamat pagi bapak saya dari perusahaan asuransi", 0.0),
    ("S1", "Berapa biayanya?", 6.0),
    ("S1", "Kami punya paket perlindungan dengan manfaat lengkap", 10.0),
]


@pytest.fixture
def shattered_json(conversation):
    return {"results": conversation(SHATTERED_TURNS)}


@pytest.fixture
def single_speaker_json(conversation):
    return {"results": conversation(SINGLE_SPEAKER_TURNS)}


def _fake_client(fetch_results):
    client = MagicMock()
    client.submit_job = AsyncMock(side_effect=["job-{}".format(i) for i in range(1, 10)])
    client.poll_until_complete = AsyncMock()
    client.fetch_transcript = AsyncMock(side_effect=list(fetch_results))
    client.delete_job = AsyncMock()
    return client


def _run(orchestrator, path="call.wav"):
    return asyncio.run(orchestrator.attempt(path))


class TestAcceptance:

    def test_plausible_first_attempt(self, opening_transcript_json):
        client = _fake_client([opening_transcript_json])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            transcript = _run(orchestrator)

        assert [u.speaker for u in transcript.utterances] == ["Agent", "Customer"]
        assert client.submit_job.await_count == 1
        client.delete_job.assert_awaited_once_with("job-1")
        sleep.assert_not_awaited()

    def test_polling_bounds_come_from_policy(self, opening_transcript_json):
        client = _fake_client([opening_transcript_json])
        policy = RetryPolicy(max_attempts=1, poll_interval_s=0.5, max_polls=7)

        with patch(SLEEP, new=AsyncMock()):
            _run(TranscriptionOrchestrator(client, policy=policy))

        kwargs = client.poll_until_complete.await_args.kwargs
        assert kwargs["poll_interval_s"] == 0.5
        assert kwargs["max_polls"] == 7

    def test_status_callback(self, opening_transcript_json):
        messages = []
        client = _fake_client([opening_transcript_json])
        orchestrator = TranscriptionOrchestrator(
            client, policy=RetryPolicy(max_attempts=2), on_status=messages.append
        )

        with patch(SLEEP, new=AsyncMock()):
            _run(orchestrator)

        assert messages[0] == "Transcription attempt 1/2"


class TestImplausibleRetries:

    def test_shattered_then_clean(self, shattered_json, opening_transcript_json):
        client = _fake_client([shattered_json, opening_transcript_json])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            transcript = _run(orchestrator)

        assert transcript.roles() == ["Agent", "Customer"]
        assert client.submit_job.await_count == 2
        assert sleep.await_args_list == [call(2.0)]

    def test_best_effort_after_exhaustion(self, shattered_json):
        client = _fake_client([shattered_json] * 3)
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            transcript = _run(orchestrator)

        assert transcript.roles() == ["Agent", "Customer", "Speaker_3", "Speaker_4"]
        assert client.submit_job.await_count == 3
        assert client.delete_job.await_args_list == [call("job-1"), call("job-2"), call("job-3")]
        assert sleep.await_args_list == [call(2.0), call(2.0)]

    def test_empty_results_are_retried(self, opening_transcript_json):
        client = _fake_client([{"results": []}, opening_transcript_json])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=2))

        with patch(SLEEP, new=AsyncMock()):
            transcript = _run(orchestrator)

        assert len(transcript.utterances) == 2


class TestProviderFailures:

    def test_failure_then_success(self, opening_transcript_json):
        client = _fake_client([SpeechmaticsAPIError(500, "boom"), opening_transcript_json])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            transcript = _run(orchestrator)

        assert transcript.roles() == ["Agent", "Customer"]
        assert sleep.await_args_list == [call(3.0)]
        assert client.delete_job.await_count == 2

    def test_all_failures_raise(self):
        client = _fake_client([])
        error = httpx.ConnectError("network down")
        client.submit_job = AsyncMock(side_effect=error)
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            with pytest.raises(TranscriptionFailedError) as exc_info:
                _run(orchestrator)

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is error
        assert exc_info.value.__cause__ is error
        assert sleep.await_args_list == [call(3.0), call(3.0)]
        client.delete_job.assert_not_awaited()

    def test_rejected_job_is_still_deleted(self):
        client = _fake_client([])
        client.poll_until_complete = AsyncMock(
            side_effect=JobRejectedError("job-1", "rejected", "bad audio")
        )
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=1))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            with pytest.raises(TranscriptionFailedError):
                _run(orchestrator)

        client.delete_job.assert_awaited_once_with("job-1")
        sleep.assert_not_awaited()

    def test_implausible_result_beats_later_failures(self, shattered_json):
        client = _fake_client([
            shattered_json,
            SpeechmaticsAPIError(503, "unavailable"),
            SpeechmaticsAPIError(503, "unavailable"),
        ])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            transcript = _run(orchestrator)

        assert len(transcript.roles()) == 4
        assert sleep.await_args_list == [call(2.0), call(3.0)]

    def test_malformed_response_is_retried(self, opening_transcript_json):
        client = _fake_client([opening_transcript_json])
        client.submit_job = AsyncMock(side_effect=[KeyError("id"), "job-2"])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=2))

        with patch(SLEEP, new=AsyncMock()):
            transcript = _run(orchestrator)

        assert transcript.roles() == ["Agent", "Customer"]


class TestSingleSpeaker:

    def test_kept_by_default(self, single_speaker_json):
        client = _fake_client([single_speaker_json])
        orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))

        with patch(SLEEP, new=AsyncMock()) as sleep:
            transcript = _run(orchestrator)

        assert transcript.roles() == ["Agent"]
        assert len(transcript.utterances) == 3
        sleep.assert_not_awaited()

    def test_split_when_enabled(self, single_speaker_json):
        client = _fake_client([single_speaker_json])
        orchestrator = TranscriptionOrchestrator(
            client, policy=RetryPolicy(max_attempts=3), split_single_speaker=True
        )

        with patch(SLEEP, new=AsyncMock()):
            transcript = _run(orchestrator)

        assert [u.speaker for u in transcript.utterances] == ["Agent", "Customer", "Agent"]
        assert "[0:06] Customer: Berapa biayanya?" in transcript.full_text

    def test_resplit_leaves_two_role_transcripts(self, opening_transcript_json):
        transcript = format_transcript(opening_transcript_json)
        assert resplit_single_speaker(transcript) is transcript


class TestMalformedProviderResponses:

    def test_html_submit_response_is_retried_then_fails(self, tmp_path):
        audio = tmp_path / "call.wav"
        audio.write_bytes(b"RIFF fake audio")
        submissions = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                submissions.append(request.url.path)
            return httpx.Response(200, text="<html>gateway</html>")

        async def _main():
            transport = httpx.MockTransport(handler)
            async with SpeechmaticsClient("test-key", transport=transport) as client:
                orchestrator = TranscriptionOrchestrator(client, policy=RetryPolicy(max_attempts=3))
                return await orchestrator.attempt(audio)

        with patch(SLEEP, new=AsyncMock()) as sleep:
            with pytest.raises(TranscriptionFailedError) as exc_info:
                asyncio.run(_main())

        assert len(submissions) == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, SpeechmaticsAPIError)
        assert sleep.await_args_list == [call(3.0), call(3.0)]
