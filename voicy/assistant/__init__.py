"""
Voice command assistant core

- Session: background listening loop with optional wake-phrase gating and a
  serialized parse -> dispatch -> speak pipeline
- Intent resolution: Azure AI Language (optional), regex pattern table, exact
  rules, tried in that order
- Commands: screenshot, current time, open folder
- Speech: Wyoming protocol (faster-whisper STT, Piper TTS)
- Telemetry: session events mirrored to MQTT

Key modules:
- config: Configuration management from environment variables
- session: Session state machine
- intent_parsers / language_service: Resolver chain and cloud NLU parser
- commands: Command registry and built-in handlers
- events / activity_log: Ordered notifications and the bounded activity log
"""

from __future__ import annotations

__all__ = [
    "activity_log",
    "app",
    "cancellation",
    "commands",
    "config",
    "events",
    "intent_parsers",
    "language_service",
    "session",
    "speech",
]
