"""Azure AI Language (conversational language understanding) intent parser."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from .config import LanguageServiceConfig
from .intent_parsers import IntentParser
from .models import FOLDER_NAME, UNKNOWN_INTENT, IntentResult

LOGGER = logging.getLogger(__name__)

_FOLDER_NAME_ALIASES = {"folder.name", "folder_name", "foldername"}
_ENTITY_SEPARATORS = re.compile(r"[._ ]+")


class LanguageServiceError(RuntimeError):
    """Generic Azure Language API failure."""


def format_entity_name(category: str) -> str:
    """Map an entity category to a parameter name (``folder.name`` -> ``FolderName``)."""
    if category.lower() in _FOLDER_NAME_ALIASES:
        return FOLDER_NAME
    parts = [part for part in _ENTITY_SEPARATORS.split(category) if part]
    return "".join(part[0].upper() + part[1:] for part in parts)


def parse_prediction(payload: dict[str, Any], confidence_threshold: float) -> IntentResult:
    """Convert an ``analyze-conversations`` response into an IntentResult."""
    result = payload.get("result") if isinstance(payload, dict) else None
    prediction = result.get("prediction") if isinstance(result, dict) else None
    if not isinstance(prediction, dict):
        raise LanguageServiceError("Response missing prediction")

    top_intent = prediction.get("topIntent")
    intent_name = top_intent if isinstance(top_intent, str) and top_intent else UNKNOWN_INTENT

    for intent in prediction.get("intents") or []:
        if not isinstance(intent, dict) or intent.get("category") != intent_name:
            continue
        confidence = intent.get("confidenceScore")
        if isinstance(confidence, (int, float)) and confidence < confidence_threshold:
            LOGGER.info("[nlu] Intent %s confidence %.2f below threshold; marking unknown", intent_name, confidence)
            intent_name = UNKNOWN_INTENT
        break

    values_by_parameter: dict[str, list[str]] = {}
    for entity in prediction.get("entities") or []:
        if not isinstance(entity, dict):
            continue
        category = entity.get("category")
        text = entity.get("text")
        if not isinstance(category, str) or not isinstance(text, str) or not category or not text:
            continue
        values_by_parameter.setdefault(format_entity_name(category), []).append(text)

    parameters: dict[str, str] = {}
    for parameter, values in values_by_parameter.items():
        if parameter == FOLDER_NAME and len(values) > 1:
            values = [value for value in values if value.lower() != "folder"]
            if not values:
                continue
        parameters[parameter] = values[0]

    return IntentResult(intent_name, parameters)


class AzureLanguageIntentParser(IntentParser):
    """Resolve intents with a deployed Azure conversational language project.

    Every failure (missing configuration, transport errors, error responses,
    unexpected payloads) is logged and reported as ``Unknown`` so the resolver
    chain falls through to the local parsers.
    """

    name = "azure-language"

    def __init__(
        self,
        config: LanguageServiceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or LOGGER
        self._client: httpx.AsyncClient | None = None
        if not config.configured:
            self.logger.warning("[nlu] Azure Language options not configured; cloud parser disabled")
            return
        self._client = httpx.AsyncClient(
            base_url=config.endpoint or "",
            headers={
                "Ocp-Apim-Subscription-Key": config.api_key or "",
                "Content-Type": "application/json",
            },
            timeout=config.timeout,
            transport=transport,
        )

    @property
    def available(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        client = self._client
        self._client = None
        if client is not None:
            await client.aclose()

    async def resolve(self, transcript: str) -> IntentResult:
        text = (transcript or "").strip()
        if not text or self._client is None:
            return IntentResult.unknown()
        try:
            payload = await self._analyze(text)
            result = parse_prediction(payload, self.config.confidence_threshold)
        except (httpx.HTTPError, LanguageServiceError, ValueError) as exc:
            self.logger.warning("[nlu] Azure Language request failed: %s", exc)
            return IntentResult.unknown()
        self.logger.info("[nlu] Azure recognized intent %s %s", result.name, dict(result.parameters))
        return result

    async def _analyze(self, text: str) -> dict[str, Any]:
        client = self._client
        if client is None:
            raise LanguageServiceError("Azure Language client is closed")
        body = {
            "kind": "Conversation",
            "analysisInput": {
                "conversationItem": {
                    "id": "1",
                    "participantId": "user",
                    "text": text,
                }
            },
            "parameters": {
                "projectName": self.config.project_name,
                "deploymentName": self.config.deployment_name,
                "verbose": True,
                "stringIndexType": "Utf16CodeUnit",
            },
        }
        response = await client.post(
            "/language/:analyze-conversations",
            params={"api-version": self.config.api_version},
            json=body,
        )
        if response.status_code in (401, 403):
            raise LanguageServiceError(f"Azure Language rejected credentials ({response.status_code})")
        if response.is_error:
            raise LanguageServiceError(f"Azure Language HTTP error: {response.status_code}")
        payload = response.json()
        if not isinstance(payload, dict):
            raise LanguageServiceError("Unexpected Azure Language payload")
        self.logger.debug("[nlu] Azure Language response: %s", payload)
        return payload
