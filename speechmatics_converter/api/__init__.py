"""Speechmatics API client package: async HTTP interface to the batch ASR service.

WHY: Each recognition attempt needs to submit audio, poll the job, fetch
the json-v2 transcript, and clean up. This package encapsulates all
Speechmatics communication behind an async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Response data is
parsed into typed dataclasses defined in models.py.

RULES:
- All HTTP calls go through SpeechmaticsClient (no direct httpx usage elsewhere)
- Authentication is via Bearer token passed in by the caller
- Always delete jobs after fetching their transcript
"""

from speechmatics_converter.api.client import (
    JobRejectedError,
    PollTimeoutError,
    SpeechmaticsAPIError,
    SpeechmaticsClient,
)
from speechmatics_converter.api.models import JobDetails, TranscriptResponse

__all__ = [
    "JobDetails",
    "JobRejectedError",
    "PollTimeoutError",
    "SpeechmaticsAPIError",
    "SpeechmaticsClient",
    "TranscriptResponse",
]
