"""Core speaker-stabilization pipeline and intermediate representation.

WHY: The core package is the algorithmic heart of the converter. It
turns noisy per-word diarization tags into consistent Agent/Customer
utterances. Every stage is a pure function so each can be tested
without the API client or the orchestrator.

HOW: ir.py defines the data structures. The stages run in order:
extractor → speakers (analyze + map) → segmenter → corrector →
assembler. validation.py judges plausibility; parser.py reads a
display transcript back into the IR.

RULES:
- No network or file I/O in this package
- Only the corrector mutates its input (Utterance.speaker)
"""
