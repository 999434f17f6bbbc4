"""Speechmatics Call Transcript Converter: stable two-party call transcripts.

WHY: Speechmatics diarization labels each recognized word with a raw
speaker tag ("S1", "S2", ...) that is not stable between jobs and carries
no conversational meaning. Downstream call scoring needs every utterance
attributed to "Agent" or "Customer" in a fixed, predictable shape.

HOW: Three-stage pipeline: ingest (async API client), stabilize (core:
extract words, analyze speakers, map roles, segment, correct, assemble),
and orchestrate (retry recognition until the diarization is plausible).
Formatters render the resulting Transcript to files.

RULES:
- Core stages are pure functions over in-memory data
- The Transcript payload shape is the contract with the analysis consumer
- Only the orchestrator performs network I/O (through SpeechmaticsClient)
"""

__version__ = "0.1.0"
