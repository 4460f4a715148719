#!/usr/bin/env python3
"""Voicy voice assistant daemon."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from voicy.assistant.app import AssistantRuntime
from voicy.assistant.config import AssistantConfig

LOGGER = logging.getLogger("voicy-assistant")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Voice-driven command assistant")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--text", help="Run a single typed command and exit")
    parser.add_argument(
        "--wake-word",
        dest="wake_word",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Require the wake phrase before each command (default: VOICY_USE_WAKE_WORD)",
    )
    return parser.parse_args(argv)


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = AssistantConfig.from_env()
    runtime = AssistantRuntime(config)
    session = runtime.session
    if args.wake_word is not None:
        session.use_wake_word = args.wake_word

    runtime.start()
    try:
        if args.text:
            await session.process_text_command(args.text)
            return

        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        def _handle_signal(signum: int) -> None:
            LOGGER.info("Received signal %s, shutting down", signum)
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _handle_signal, sig)

        if session.use_wake_word:
            LOGGER.info("Say '%s' to wake the assistant", session.wake_phrase)
        session.start_listening()
        await stop_event.wait()
    finally:
        await runtime.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
