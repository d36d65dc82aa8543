"""
Text generation client for the companion chat.

Uses the official Google GenAI SDK for async completions. The conversation
manager only depends on the ``TextGenerator`` protocol, so tests and other
providers can stand in for Gemini.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from google import genai
from google.genai import types

from .config import DEFAULT_MODEL, Settings
from .models import Turn

logger = logging.getLogger(__name__)


class GeneratorUnavailable(Exception):
    """The generation client could not be created."""


class EmptyCompletion(Exception):
    """The service answered without any text."""


class TextGenerator(Protocol):
    """Anything able to produce a completion for a list of turns."""

    async def generate(self, turns: Sequence[Turn], system_instruction: str) -> str:
        ...


class GeminiGenerator:
    """
    Gemini-backed text generator.

    One client is created per instance and reused for every request. There is
    no retry and no timeout; failures propagate to the caller.
    """

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, **client_kwargs: Any):
        self._model = model
        self._client = genai.Client(api_key=api_key, **client_kwargs)

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _convert_turns(turns: Sequence[Turn]) -> list[types.Content]:
        return [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in turns
        ]

    async def generate(self, turns: Sequence[Turn], system_instruction: str) -> str:
        """
        Generate a completion for the given turns.

        Args:
            turns: Alternating turns, starting with a user turn
            system_instruction: The persona prompt

        Returns:
            The completion text

        Raises:
            EmptyCompletion: If the response carries no text
        """
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=self._convert_turns(turns),
            config=types.GenerateContentConfig(system_instruction=system_instruction),
        )

        text = response.text
        if not text:
            raise EmptyCompletion(f"Empty completion from {self._model}")
        return text


def create_generator(settings: Settings) -> GeminiGenerator:
    """
    Create the Gemini generator from process settings.

    Raises:
        GeneratorUnavailable: If no API key is configured or the SDK rejects it
    """
    if not settings.api_key:
        raise GeneratorUnavailable("No Gemini API key configured")

    try:
        return GeminiGenerator(api_key=settings.api_key, model=settings.model)
    except Exception as e:
        logger.exception("Failed to initialize the Gemini client")
        raise GeneratorUnavailable(str(e)) from e
