"""
Rule-based intent parsing and the resolver chain

Transcripts are resolved by an ordered chain of parsers. Every parser shares
the ``resolve(transcript) -> IntentResult`` contract and reports "nothing
matched" with the ``Unknown`` sentinel instead of raising.

Parsers:
- RuleBasedIntentParser: exact phrases plus the ``open folder <name>`` template
- PatternIntentParser: ordered regex table with optional parameter extractors
- AzureLanguageIntentParser (language_service): cloud NLU with a confidence gate

IntentResolverChain walks its parsers in order and returns the first result
that is not ``Unknown``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from voicy.utils import collapse_whitespace

from .models import FOLDER_NAME, GET_TIME, OPEN_FOLDER, TAKE_SCREENSHOT, IntentResult

LOGGER = logging.getLogger(__name__)

ParameterExtractor = Callable[[re.Match[str]], dict[str, str]]


class IntentParser:
    name = "parser"

    async def resolve(self, transcript: str) -> IntentResult:
        raise NotImplementedError


class RuleBasedIntentParser(IntentParser):
    """Exact-phrase parser for the built-in commands."""

    name = "rules"

    _PHRASES = {
        "take a screenshot": TAKE_SCREENSHOT,
        "what time is it": GET_TIME,
    }
    _OPEN_FOLDER = re.compile(r"^open folder (.*)$", re.IGNORECASE)

    async def resolve(self, transcript: str) -> IntentResult:
        text = collapse_whitespace(transcript)
        if not text:
            return IntentResult.unknown()
        intent_name = self._PHRASES.get(text.lower())
        if intent_name:
            return IntentResult(intent_name)
        match = self._OPEN_FOLDER.match(text)
        if match:
            folder = match.group(1).strip()
            if folder:
                return IntentResult(OPEN_FOLDER, {FOLDER_NAME: folder})
        return IntentResult.unknown()


@dataclass(frozen=True)
class IntentPattern:
    intent_name: str
    regex: re.Pattern[str]
    extractor: ParameterExtractor | None = None


def _extract_folder_name(match: re.Match[str]) -> dict[str, str]:
    folder = match.group("leading") or match.group("trailing")
    folder = collapse_whitespace(folder)
    return {FOLDER_NAME: folder} if folder else {}


DEFAULT_PATTERNS: tuple[IntentPattern, ...] = (
    IntentPattern(
        TAKE_SCREENSHOT,
        re.compile(
            r"^(?:(?:take|capture|get|grab)\s+)?(?:an?\s+)?(?:screen\s*shot|screen\s+capture)\b.*$",
            re.IGNORECASE,
        ),
    ),
    IntentPattern(
        GET_TIME,
        re.compile(
            r"^(?:what|tell\s+me|show(?:\s+me)?)?\s*(?:is\s+|what's\s+|whats\s+)?(?:the\s+)?"
            r"(?:current\s+)?time(?:\s+is\s+it|\s+now)?\b.*$",
            re.IGNORECASE,
        ),
    ),
    IntentPattern(
        OPEN_FOLDER,
        re.compile(
            r"^(?:open|browse|show|navigate\s+to|go\s+to)\s+(?:(?:the|my)\s+)?"
            r"(?:folder\s+(?P<leading>.+)|(?P<trailing>.+?)\s+folder)$",
            re.IGNORECASE,
        ),
        _extract_folder_name,
    ),
)


class PatternIntentParser(IntentParser):
    """Ordered regex table; the first matching pattern wins."""

    name = "patterns"

    def __init__(
        self,
        patterns: Iterable[IntentPattern] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.patterns: tuple[IntentPattern, ...] = tuple(DEFAULT_PATTERNS if patterns is None else patterns)
        self.logger = logger or LOGGER
        self.logger.debug("[nlu] Initialized %d intent patterns", len(self.patterns))

    async def resolve(self, transcript: str) -> IntentResult:
        text = collapse_whitespace(transcript)
        if not text:
            return IntentResult.unknown()
        for pattern in self.patterns:
            match = pattern.regex.match(text)
            if not match:
                continue
            self.logger.debug("[nlu] Matched %s with pattern %s", pattern.intent_name, pattern.regex.pattern)
            parameters: dict[str, str] = {}
            if pattern.extractor is not None:
                try:
                    parameters = dict(pattern.extractor(match))
                except Exception as exc:
                    self.logger.error(
                        "[nlu] Parameter extraction failed for %s: %s", pattern.intent_name, exc, exc_info=True
                    )
                    parameters = {}
            return IntentResult(pattern.intent_name, parameters)
        self.logger.debug("[nlu] No pattern matched: %s", text)
        return IntentResult.unknown()


class IntentResolverChain:
    """Try each parser in order until one returns something other than Unknown."""

    def __init__(self, parsers: Sequence[IntentParser], logger: logging.Logger | None = None) -> None:
        self.parsers = list(parsers)
        self.logger = logger or LOGGER

    async def resolve(self, transcript: str) -> IntentResult:
        for parser in self.parsers:
            try:
                result = await parser.resolve(transcript)
            except Exception as exc:
                self.logger.error("[nlu] Parser %s failed: %s", parser.name, exc, exc_info=True)
                continue
            if result is not None and not result.is_unknown:
                self.logger.info("[nlu] %s resolved intent %s", parser.name, result.name)
                return result
        return IntentResult.unknown()


def build_default_chain(
    language_parser: IntentParser | None = None,
    logger: logging.Logger | None = None,
) -> IntentResolverChain:
    """Cloud NLU (when available), then the pattern table, then exact rules."""
    parsers: list[IntentParser] = []
    if language_parser is not None:
        parsers.append(language_parser)
    parsers.append(PatternIntentParser(logger=logger))
    parsers.append(RuleBasedIntentParser())
    return IntentResolverChain(parsers, logger=logger)
