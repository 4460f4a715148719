"""Wire configuration, adapters and the session together."""

from __future__ import annotations

import logging

from .activity_log import ActivityLog
from .commands import (
    CommandHandler,
    CommandRegistry,
    GetTimeCommandHandler,
    OpenFolderCommandHandler,
    TakeScreenshotCommandHandler,
)
from .config import AssistantConfig
from .desktop import CommandScreenshotProvider, DesktopFolderOpener
from .events import EventHub
from .intent_parsers import build_default_chain
from .language_service import AzureLanguageIntentParser
from .mqtt import AssistantMqtt
from .mqtt_publisher import SessionEventPublisher
from .session import VoiceAssistantSession
from .speech import Recognizer, Synthesizer, WyomingRecognizer, WyomingSynthesizer

LOGGER = logging.getLogger("voicy-assistant")


def build_handlers(config: AssistantConfig, logger: logging.Logger | None = None) -> list[CommandHandler]:
    platform = config.platform
    return [
        TakeScreenshotCommandHandler(CommandScreenshotProvider(platform.screenshot_dir, logger=logger)),
        GetTimeCommandHandler(),
        OpenFolderCommandHandler(DesktopFolderOpener(platform.folder_search_paths, logger=logger)),
    ]


def build_session(
    config: AssistantConfig,
    *,
    recognizer: Recognizer | None = None,
    synthesizer: Synthesizer | None = None,
    language_parser: AzureLanguageIntentParser | None = None,
    events: EventHub | None = None,
    logger: logging.Logger | None = None,
) -> VoiceAssistantSession:
    """Build a session with the Wyoming speech adapters and built-in handlers.

    The cloud parser joins the resolver chain only when Azure Language is
    configured.
    """
    logger = logger or LOGGER
    if language_parser is None and config.language_service.configured:
        language_parser = AzureLanguageIntentParser(config.language_service, logger=logger)
    recognizer = recognizer or WyomingRecognizer(
        endpoint=config.stt_endpoint,
        mic_config=config.mic,
        phrase=config.phrase,
        language=config.language,
        logger=logger,
    )
    synthesizer = synthesizer or WyomingSynthesizer(
        endpoint=config.tts_endpoint,
        voice_name=config.tts_voice,
        logger=logger,
    )
    events = events or EventHub(activity_log=ActivityLog(config.session.activity_log_size), logger=logger)
    return VoiceAssistantSession(
        recognizer=recognizer,
        synthesizer=synthesizer,
        resolver=build_default_chain(language_parser, logger=logger),
        registry=CommandRegistry(build_handlers(config, logger), logger=logger),
        events=events,
        use_wake_word=config.session.use_wake_word,
        wake_phrase=config.session.wake_phrase,
        processing_poll_seconds=config.session.processing_poll_seconds,
        logger=logger,
    )


class AssistantRuntime:
    """Session plus the long-lived clients it shares the process with."""

    def __init__(
        self,
        config: AssistantConfig,
        *,
        session: VoiceAssistantSession | None = None,
        mqtt: AssistantMqtt | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or LOGGER
        self.language_parser: AzureLanguageIntentParser | None = None
        if session is None:
            if config.language_service.configured:
                self.language_parser = AzureLanguageIntentParser(config.language_service, logger=self.logger)
            session = build_session(config, language_parser=self.language_parser, logger=self.logger)
        self.session = session
        self.mqtt = mqtt or AssistantMqtt(config.mqtt, logger=self.logger)
        self._unsubscribe = None

    def start(self) -> None:
        if self.mqtt.connect():
            publisher = SessionEventPublisher(self.mqtt, self.config.mqtt.topic_base, logger=self.logger)
            self._unsubscribe = self.session.events.subscribe(publisher)

    async def shutdown(self) -> None:
        await self.session.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.language_parser is not None:
            await self.language_parser.close()
        self.mqtt.disconnect()
