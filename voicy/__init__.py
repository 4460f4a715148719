"""
Voicy - voice-driven command assistant

Root package. Spoken or typed input is resolved into a named intent, routed to
a single action handler, and the outcome is spoken back.

Core modules:
- utils: Environment parsing and small async helpers
- assistant: Session state machine, intent resolver chain, command registry,
  speech adapters and telemetry
"""

__version__ = "0.4.2"
