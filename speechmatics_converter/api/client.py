"""Async HTTP client for the Speechmatics batch speech-to-text API.

WHY: Each recognition attempt submits an audio file with diarization
enabled, polls the job until it finishes, fetches the json-v2 transcript,
and deletes the job. This module keeps that workflow behind one client
class so the orchestrator (and tests) never deal with HTTP details.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. SpeechmaticsClient is
an async context manager. Enter it to get an authenticated client, exit
to close the connection pool. Each API step is a separate method:
submit_job → poll_until_complete → fetch_transcript → delete_job.

RULES:
- Always use the async context manager (async with SpeechmaticsClient(...) as client:)
- Polling uses a fixed interval and a hard ceiling on the number of checks
- Non-2xx responses raise SpeechmaticsAPIError
- So do 2xx responses whose body is not the expected JSON object
- A "rejected" (or deleted/expired) job raises JobRejectedError
- Exhausting the poll ceiling raises PollTimeoutError
- delete_job() is best-effort and never raises
- Status callback (on_status) is optional; when provided, called with status strings
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from speechmatics_converter.api.models import (
    JOB_DONE,
    JOB_FAILED_STATES,
    JobDetails,
    TranscriptResponse,
)
from speechmatics_converter.config import (
    DEFAULT_MAX_POLLS,
    DEFAULT_POLL_INTERVAL_S,
    SPEECHMATICS_BASE_URL,
    DiarizationSettings,
)

logger = logging.getLogger(__name__)

_TRANSCRIPT_FORMAT = "json-v2"


class SpeechmaticsAPIError(Exception):
    """Raised when the Speechmatics API returns an error response.

    WHY: Callers need a typed exception to tell provider errors apart
    from job rejection or timeouts.

    RULES:
    - Always include status_code and message
    - message is the response's ``detail`` field or the body text
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Speechmatics API error {status_code}: {message}")

    @classmethod
    def from_response(cls, resp: httpx.Response) -> SpeechmaticsAPIError:
        message = resp.text
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("detail"):
            message = str(body["detail"])
        return cls(resp.status_code, message)


class JobRejectedError(Exception):
    """Raised when the provider rejects (or drops) a submitted job.

    RULES:
    - job_id and status identify the job; message is the provider's first error
    """

    def __init__(self, job_id: str, status: str, message: str) -> None:
        self.job_id = job_id
        self.status = status
        self.message = message
        super().__init__(f"Transcription job {job_id} was {status}: {message}")


class PollTimeoutError(TimeoutError):
    """Raised when a job does not finish within the polling ceiling.

    RULES:
    - Message includes the job ID and the number of checks made
    """


def _json_object(resp: httpx.Response) -> dict[str, Any]:
    """Decode a 2xx body that must be a JSON object.

    Gateways sometimes answer 200 with an HTML page; that is reported as
    SpeechmaticsAPIError so callers treat it like any other bad response.
    """
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise SpeechmaticsAPIError(resp.status_code, "invalid response body")
    return body


class SpeechmaticsClient:
    """Async client for the Speechmatics batch transcription API.

    WHY: Provides a clean, typed interface for one recognition attempt:
    submit → poll → fetch → delete. Handles auth and error wrapping.

    HOW: Wraps httpx.AsyncClient with Bearer token auth. Each API step
    is an async method.

    RULES:
    - api_key is passed in explicitly; the caller loads and validates it
    - base_url defaults to SPEECHMATICS_BASE_URL from config
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or SPEECHMATICS_BASE_URL).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SpeechmaticsClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "SpeechmaticsClient must be used as an async context manager: "
                "async with SpeechmaticsClient(api_key) as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Step 1: Submit job
    # ------------------------------------------------------------------

    async def submit_job(
        self,
        file_path: Path,
        settings: DiarizationSettings,
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Upload an audio file with its job config and return the job ID.

        WHY: The batch API takes the audio and the transcription config in
        one multipart POST /v2/jobs request.

        HOW: Sends ``data_file`` (the audio) and ``config`` (JSON string
        from settings.to_job_config()) as multipart form fields.

        RULES:
        - file_path must point to an existing file
        - Raises SpeechmaticsAPIError on non-2xx responses

        Args:
            file_path: Path to the audio file to transcribe.
            settings: Diarization parameters for this job.
            on_status: Optional callback for status updates.

        Returns:
            The job ID string assigned by Speechmatics.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Submitting transcription job...")

        file_path = Path(file_path)
        config = json.dumps(settings.to_job_config())
        with open(file_path, "rb") as f:
            resp = await client.post(
                "/jobs",
                files={"data_file": (file_path.name, f)},
                data={"config": config},
            )

        if resp.status_code not in (200, 201):
            raise SpeechmaticsAPIError.from_response(resp)

        job_id = _json_object(resp).get("id")
        if not job_id:
            raise SpeechmaticsAPIError(resp.status_code, "response has no job id")
        logger.info("Transcription job created: %s", job_id)
        return job_id

    # ------------------------------------------------------------------
    # Step 2: Poll until complete
    # ------------------------------------------------------------------

    async def get_job(self, job_id: str) -> JobDetails:
        client = self._ensure_client()
        resp = await client.get(f"/jobs/{job_id}")
        if resp.status_code != 200:
            raise SpeechmaticsAPIError.from_response(resp)
        try:
            return JobDetails.from_dict(_json_object(resp))
        except (KeyError, TypeError, AttributeError):
            raise SpeechmaticsAPIError(resp.status_code, "invalid job status body") from None

    async def poll_until_complete(
        self,
        job_id: str,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        max_polls: int = DEFAULT_MAX_POLLS,
        on_status: Callable[[str], None] | None = None,
    ) -> JobDetails:
        """Poll a job until it is done, rejected, or the ceiling is hit.

        WHY: Batch transcription is not instant; the job status must be
        checked until it leaves "running".

        HOW: Checks GET /v2/jobs/{id} up to max_polls times with a fixed
        sleep of poll_interval_s between checks.

        RULES:
        - Returns JobDetails when status is "done"
        - Raises JobRejectedError when status is rejected/deleted/expired
        - Raises PollTimeoutError after max_polls checks
        - No sleep after the final check

        Args:
            job_id: The ID from submit_job().
            poll_interval_s: Seconds to wait between checks.
            max_polls: Maximum number of status checks.
            on_status: Optional callback for status updates.

        Returns:
            JobDetails with status "done".
        """
        for check in range(1, max_polls + 1):
            job = await self.get_job(job_id)
            logger.debug("Poll %d/%d: job %s is %s", check, max_polls, job_id, job.status)

            if job.status == JOB_DONE:
                if on_status:
                    on_status("Transcription complete.")
                return job

            if job.status in JOB_FAILED_STATES:
                if on_status:
                    on_status(f"Transcription {job.status}: {job.error_message}")
                raise JobRejectedError(job_id, job.status, job.error_message)

            if on_status:
                on_status(f"Transcribing... (check {check}/{max_polls})")

            if check < max_polls:
                await asyncio.sleep(poll_interval_s)

        raise PollTimeoutError(
            f"Transcription job {job_id} did not complete after {max_polls} checks"
        )

    # ------------------------------------------------------------------
    # Step 3: Fetch transcript
    # ------------------------------------------------------------------

    async def fetch_transcript(
        self,
        job_id: str,
        on_status: Callable[[str], None] | None = None,
    ) -> dict[str, Any]:
        """Fetch the json-v2 transcript of a finished job.

        RULES:
        - Only call after poll_until_complete returns
        - Returns the json-v2 body as a dict (results untouched)
        - Raises SpeechmaticsAPIError on non-2xx responses
        """
        client = self._ensure_client()
        if on_status:
            on_status("Fetching transcript...")

        resp = await client.get(
            f"/jobs/{job_id}/transcript", params={"format": _TRANSCRIPT_FORMAT}
        )
        if resp.status_code != 200:
            raise SpeechmaticsAPIError.from_response(resp)

        try:
            return TranscriptResponse.from_dict(_json_object(resp)).to_dict()
        except (TypeError, ValueError):
            raise SpeechmaticsAPIError(resp.status_code, "invalid transcript body") from None

    # ------------------------------------------------------------------
    # Step 4: Cleanup
    # ------------------------------------------------------------------

    async def delete_job(
        self,
        job_id: str,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        """Delete a job and its audio from Speechmatics, ignoring errors.

        Cleanup is best-effort since the transcript (or the failure) is
        already in hand.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Cleaning up...")

        try:
            resp = await client.delete(f"/jobs/{job_id}")
        except httpx.HTTPError as e:
            logger.debug("Failed to delete job %s: %s", job_id, e)
            return
        if resp.status_code not in (200, 204):
            logger.debug("Failed to delete job %s: HTTP %d", job_id, resp.status_code)
