"""Configuration constants, diarization settings, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. The diarization knobs sent to Speechmatics and the
retry/backoff parameters of the orchestrator are plain data, not buried
in logic, so a deployment can tune them without touching the pipeline.

HOW: python-dotenv loads the .env file on import. Defaults are module-level
constants read from the environment. Two dataclasses bundle the tunables
that are passed explicitly into the client and orchestrator:
  DiarizationSettings: the transcription config sent with every job
  RetryPolicy:         attempt ceiling, backoffs, and polling bounds

RULES:
- API key is loaded from .env via python-dotenv, never hardcoded
- load_api_key() is called once by the outer driver, not by the pipeline
- All defaults can be overridden via environment variables
- RetryPolicy rejects a failure backoff that is not longer than the
  validation backoff
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


# ---------------------------------------------------------------------------
# Supported audio file extensions
# ---------------------------------------------------------------------------

SPEECHMATICS_SUPPORTED_FORMATS: set[str] = {
    ".aac", ".amr", ".flac", ".m4a", ".mp3", ".mp4",
    ".mpeg", ".ogg", ".wav", ".webm",
}
"""Audio/video file extensions accepted by the batch API (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

SPEECHMATICS_BASE_URL = os.getenv(
    "SPEECHMATICS_BASE_URL", "https://asr.api.speechmatics.com/v2"
)
DEFAULT_LANGUAGE = os.getenv("SPEECHMATICS_LANGUAGE", "id")
DEFAULT_OPERATING_POINT = os.getenv("SPEECHMATICS_OPERATING_POINT", "enhanced")
DEFAULT_SPEAKER_SENSITIVITY = float(os.getenv("SPEECHMATICS_SPEAKER_SENSITIVITY", "0.5"))
DEFAULT_PREFER_CURRENT_SPEAKER = _env_bool("SPEECHMATICS_PREFER_CURRENT_SPEAKER", True)
DEFAULT_MAX_SPEAKERS = int(os.getenv("SPEECHMATICS_MAX_SPEAKERS", "3"))
DEFAULT_PUNCTUATION_SENSITIVITY = float(
    os.getenv("SPEECHMATICS_PUNCTUATION_SENSITIVITY", "0.8")
)
DEFAULT_DOMAIN = os.getenv("SPEECHMATICS_DOMAIN", "telephony")

# ---------------------------------------------------------------------------
# Orchestration defaults
# ---------------------------------------------------------------------------

DEFAULT_MAX_ATTEMPTS = int(os.getenv("TRANSCRIPTION_MAX_ATTEMPTS", "3"))
DEFAULT_FAILURE_BACKOFF_S = 3.0
DEFAULT_INVALID_BACKOFF_S = 2.0
DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_MAX_POLLS = 60


def load_api_key() -> str:
    """Load the Speechmatics API key from the environment.

    WHY: The API key is required for all Speechmatics calls. Loading it
    from the environment (via .env) keeps it out of source code.

    HOW: Reads SPEECHMATICS_API_KEY from os.environ (populated by python-dotenv).

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("SPEECHMATICS_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Speechmatics API key not configured. "
            "Add SPEECHMATICS_API_KEY to the .env file in the app folder."
        )
    return key


@dataclass
class DiarizationSettings:
    """The transcription parameters sent upstream with every job.

    WHY: Speaker sensitivity and prefer-current-speaker trade stability
    against responsiveness. Keeping them in one tunable set lets a
    deployment pick either behavior without a second code path.

    RULES:
    - speaker_sensitivity is in [0, 1]
    - max_speakers >= 2
    - an empty domain is omitted from the job config
    """

    language: str = DEFAULT_LANGUAGE
    operating_point: str = DEFAULT_OPERATING_POINT
    speaker_sensitivity: float = DEFAULT_SPEAKER_SENSITIVITY
    prefer_current_speaker: bool = DEFAULT_PREFER_CURRENT_SPEAKER
    max_speakers: int = DEFAULT_MAX_SPEAKERS
    punctuation_sensitivity: float = DEFAULT_PUNCTUATION_SENSITIVITY
    domain: str = DEFAULT_DOMAIN

    def __post_init__(self) -> None:
        if not 0.0 <= self.speaker_sensitivity <= 1.0:
            raise ValueError(
                f"speaker_sensitivity must be between 0 and 1, got {self.speaker_sensitivity}"
            )
        if self.max_speakers < 2:
            raise ValueError(f"max_speakers must be at least 2, got {self.max_speakers}")

    def to_job_config(self) -> dict[str, Any]:
        """Render the Speechmatics batch job config for these settings."""
        transcription_config: dict[str, Any] = {
            "language": self.language,
            "diarization": "speaker",
            "operating_point": self.operating_point,
            "speaker_diarization_config": {
                "speaker_sensitivity": self.speaker_sensitivity,
                "prefer_current_speaker": self.prefer_current_speaker,
                "max_speakers": self.max_speakers,
            },
            "punctuation_overrides": {
                "sensitivity": self.punctuation_sensitivity,
            },
        }
        if self.domain:
            transcription_config["domain"] = self.domain
        return {
            "type": "transcription",
            "transcription_config": transcription_config,
        }


@dataclass
class RetryPolicy:
    """Attempt ceiling, backoffs, and polling bounds for the orchestrator.

    RULES:
    - max_attempts >= 1
    - failure_backoff_s > invalid_backoff_s (provider failures cost more)
    - poll_interval_s >= 0 and max_polls >= 1
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    failure_backoff_s: float = DEFAULT_FAILURE_BACKOFF_S
    invalid_backoff_s: float = DEFAULT_INVALID_BACKOFF_S
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    max_polls: int = DEFAULT_MAX_POLLS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.failure_backoff_s <= self.invalid_backoff_s:
            raise ValueError(
                "failure_backoff_s ({}) must be longer than invalid_backoff_s ({})".format(
                    self.failure_backoff_s, self.invalid_backoff_s
                )
            )
        if self.poll_interval_s < 0:
            raise ValueError(f"poll_interval_s must not be negative, got {self.poll_interval_s}")
        if self.max_polls < 1:
            raise ValueError(f"max_polls must be at least 1, got {self.max_polls}")
