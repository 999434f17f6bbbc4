"""Speechmatics batch API response dataclasses.

WHY: The batch API wraps job state in a ``job`` object and returns the
json-v2 transcript as a results array plus metadata. Typed dataclasses
make the fields the client relies on explicit and catch mismatches early.

HOW: Each dataclass maps one API JSON object. Factory methods (from_dict)
handle parsing from raw responses. Recognition results stay as plain
dicts because the word extractor must tolerate partial items.

RULES:
- JobDetails.status is one of: "running", "done", "rejected", "deleted", "expired"
- errors is a list of {timestamp, message} dicts (or bare strings on
  older responses); error_message reads the first one
- TranscriptResponse.results is the unmodified json-v2 results array
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

JOB_DONE = "done"
JOB_RUNNING = "running"
JOB_FAILED_STATES = frozenset({"rejected", "deleted", "expired"})


@dataclass
class JobDetails:
    """Status response from GET /v2/jobs/{id}.

    RULES:
    - id and status are always required
    - data_name is the uploaded file name, when reported
    - duration is the audio length in seconds, when reported
    """

    id: str
    status: str
    data_name: str | None = None
    duration: float | None = None
    errors: list[Any] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        if not self.errors:
            return "Unknown error"
        first = self.errors[0]
        if isinstance(first, dict):
            return str(first.get("message") or first)
        return str(first)

    @classmethod
    def from_dict(cls, data: dict) -> JobDetails:
        """Parse JobDetails from the raw response (with or without the ``job`` wrapper)."""
        job = data.get("job", data)
        return cls(
            id=job["id"],
            status=job["status"],
            data_name=job.get("data_name"),
            duration=job.get("duration"),
            errors=list(job.get("errors") or []),
        )


@dataclass
class TranscriptResponse:
    """json-v2 transcript from GET /v2/jobs/{id}/transcript.

    RULES:
    - results is passed to the word extractor untouched
    - format is the json-v2 schema version string, when present
    """

    results: list[Any]
    format: str | None = None
    job: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> TranscriptResponse:
        return cls(
            results=list(data.get("results") or []),
            format=data.get("format"),
            job=dict(data.get("job") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"format": self.format, "job": dict(self.job), "results": list(self.results)}
