from __future__ import annotations

import json
from typing import List, Optional

import openai
from openai import OpenAI
from pydantic import ValidationError
import structlog

from flashgen import config
from flashgen.errors import GenerationError
from flashgen.schemas import Flashcard, FlashcardDeck
from flashgen.services.logging import log_performance

logger = structlog.get_logger()


SYSTEM_PROMPT = """
You are a flashcard creator that helps with learning algorithms needed for technical interviews. You take in text and create multiple flashcards from it. Make sure to create exactly {count} flashcards.
Both front and back should be one sentence long.
You should return in the following JSON format:
{{
  "flashcards":[
    {{
      "front": "Front of the card",
      "back": "Back of the card"
    }}
  ]
}}
"""


def _get_client() -> OpenAI:
    api_key = config.require_openai_api_key()
    # Set timeouts per-request via with_options()
    return OpenAI(api_key=api_key)


def parse_flashcards(content: Optional[str], expected_count: int) -> List[Flashcard]:
    """Validate a completion's text as ``{"flashcards": [{front, back}, ...]}``."""
    if not content or not content.strip():
        raise GenerationError("Empty completion content")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Completion is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GenerationError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        deck = FlashcardDeck.model_validate(data)
    except ValidationError as e:
        raise GenerationError(f"Completion does not match the flashcard schema: {e}") from e
    if len(deck.flashcards) != expected_count:
        raise GenerationError(f"Expected {expected_count} flashcards, got {len(deck.flashcards)}")
    return deck.flashcards


class FlashcardGenerator:
    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = config.OPENAI_MODEL,
        timeout: float = config.OPENAI_TIMEOUT_SECONDS,
        card_count: int = config.FLASHCARD_COUNT,
    ):
        self._client = client
        self.model = model
        self.timeout = timeout
        self.card_count = card_count

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = _get_client()
        return self._client

    def build_messages(self, raw_text: str) -> List[dict]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT.format(count=self.card_count)},
            {"role": "user", "content": raw_text},
        ]

    @log_performance("flashcard_generation")
    def generate(self, raw_text: str) -> List[Flashcard]:
        try:
            completion = self.client.with_options(timeout=self.timeout).chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=self.build_messages(raw_text),
            )
        except openai.OpenAIError as e:
            raise GenerationError(f"OpenAI request failed: {e}") from e

        logger.info("openai_response", model=self.model, response=completion.model_dump_json())

        if not completion.choices:
            raise GenerationError("No choices returned from OpenAI API")
        return parse_flashcards(completion.choices[0].message.content, self.card_count)


generator = FlashcardGenerator()


def get_generator() -> FlashcardGenerator:
    return generator
