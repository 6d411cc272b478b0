"""Client for the external word enrichment service."""
import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from wordsheet.config import EnrichmentSettings
from wordsheet.errors import EnrichmentServiceError, ParseError
from wordsheet.models.records import (
    GeneralExample,
    Meaning,
    RelatedForm,
    SenseGroup,
)

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

PROMPT_TEMPLATE = (
    "Describe the {source} word \"{word}\" for a {native} speaking learner. "
    "Answer with JSON only: a list with one object per part of speech, each with "
    "partOfSpeech, meanings [{{definition, example, translation}}], "
    "generalExamples [{{example, translation}}], synonyms, antonyms, notes, "
    "pronunciation {{uk, us}} and relatedForms [{{word, partOfSpeech}}]. "
    "Translations are in {native}."
)


def _pick(item: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return default


def _text(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    raise ParseError(f"Expected text for {what}, got {type(value).__name__}")


def _text_list(value: Any, what: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ParseError(f"Expected a list for {what}, got {type(value).__name__}")
    return [text for text in (_text(item, what) for item in value) if text]


def _object_list(value: Any, what: str) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ParseError(f"Expected a list of objects for {what}")
    return value


def _sense_group(item: Any) -> SenseGroup:
    if not isinstance(item, dict):
        raise ParseError(f"Expected a sense-group object, got {type(item).__name__}")
    part_of_speech = _text(_pick(item, "partOfSpeech", "part_of_speech", "pos"), "partOfSpeech")
    if not part_of_speech:
        raise ParseError("Sense-group without partOfSpeech")

    pronunciation = _pick(item, "pronunciation", default={})
    if isinstance(pronunciation, str):
        pronunciation = {"uk": pronunciation}
    if not isinstance(pronunciation, dict):
        raise ParseError("Expected an object for pronunciation")

    return SenseGroup(
        part_of_speech=part_of_speech,
        meanings=[
            Meaning(
                definition=_text(m.get("definition"), "definition"),
                example=_text(m.get("example"), "example"),
                translation=_text(m.get("translation"), "translation"),
            )
            for m in _object_list(item.get("meanings"), "meanings")
        ],
        general_examples=[
            GeneralExample(
                example=_text(e.get("example"), "example"),
                translation=_text(e.get("translation"), "translation"),
            )
            for e in _object_list(_pick(item, "generalExamples", "general_examples"), "generalExamples")
            if e.get("example")
        ],
        synonyms=_text_list(item.get("synonyms"), "synonyms"),
        antonyms=_text_list(item.get("antonyms"), "antonyms"),
        notes=_text_list(item.get("notes"), "notes"),
        pronunciation={
            str(region).lower(): _text(value, "pronunciation")
            for region, value in pronunciation.items()
            if value
        },
        related_forms=[
            RelatedForm(
                word=_text(f.get("word"), "relatedForms.word"),
                part_of_speech=_text(_pick(f, "partOfSpeech", "part_of_speech"), "relatedForms.partOfSpeech"),
            )
            for f in _object_list(_pick(item, "relatedForms", "related_forms"), "relatedForms")
        ],
    )


def _extract_json(text: str) -> Any:
    """Decode the JSON value in a reply that may carry fences or prose around it."""
    text = text.strip()
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
    if not starts:
        raise ParseError("No JSON found in enrichment reply")
    try:
        value, _ = json.JSONDecoder().raw_decode(text[min(starts):])
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON in enrichment reply: {e}") from e
    return value


def parse_sense_groups(text: str) -> List[SenseGroup]:
    """Parse the service reply into sense-groups.

    Raises:
        ParseError: if the reply is not a non-empty list of sense-groups.
    """
    payload = _extract_json(text)
    if isinstance(payload, dict):
        payload = _pick(payload, "senseGroups", "sense_groups", "groups")
    if not isinstance(payload, list):
        raise ParseError("Enrichment reply is not a list of sense-groups")
    groups = [_sense_group(item) for item in payload]
    if not groups:
        raise ParseError("Enrichment reply has no sense-groups")
    return groups


class EnrichmentClient:
    """Looks words up in a chat-completions style language service."""

    def __init__(self, settings: EnrichmentSettings, http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the client; an ``http_client`` may be injected for tests."""
        self.settings = settings
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_request(self, word: str) -> Dict[str, Any]:
        prompt = PROMPT_TEMPLATE.format(
            word=word,
            source=self.settings.source_language,
            native=self.settings.native_language,
        )
        return {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": "You are a lexicographer. Reply with JSON only."},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
        }

    async def lookup(self, word: str) -> List[SenseGroup]:
        """Get the sense-groups of a word.

        Raises:
            EnrichmentServiceError: on transport errors or error statuses.
            ParseError: on a malformed reply.
        """
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        try:
            response = await self._client.post(
                self.settings.api_url,
                headers=headers,
                json=self.build_request(word),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EnrichmentServiceError(
                f"Enrichment service returned HTTP {e.response.status_code} for '{word}'"
            ) from e
        except httpx.HTTPError as e:
            raise EnrichmentServiceError(f"Enrichment service unreachable for '{word}': {e}") from e

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ParseError(f"Unexpected enrichment response shape for '{word}'") from e
        if not isinstance(content, str):
            raise ParseError(f"Unexpected enrichment content for '{word}'")

        groups = parse_sense_groups(content)
        logger.debug(f"Enrichment for '{word}': {[g.part_of_speech for g in groups]}")
        return groups
