"""Boundary to the generative text service."""

import json
import logging
from dataclasses import dataclass
from typing import Protocol

from grocery_health.errors import DependencyDegradedError
from grocery_health.services.retry import call_with_retry

_logger = logging.getLogger(__name__)

Message = dict[str, str]


class TextGenerationClient(Protocol):
    """Interface for chat-style text completion."""

    async def complete(self, messages: list[Message]) -> str:
        """Return the free-form text reply for the messages."""


@dataclass
class TextGenerationService:
    """Calls the text service with a timeout and a short retry."""

    client: TextGenerationClient
    timeout_seconds: float = 20.0
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5

    async def generate(self, prompt: str, *, action: str) -> str:
        """Send a single user prompt and return the reply text."""
        return await self.chat([{"role": "user", "content": prompt}], action=action)

    async def chat(self, messages: list[Message], *, action: str) -> str:
        """Send role/content messages and return the reply text."""
        try:
            reply = await call_with_retry(
                lambda: self.client.complete(messages),
                action=f"text generation {action}",
                attempts=self.retry_attempts,
                delay_seconds=self.retry_delay_seconds,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception as exc:
            raise DependencyDegradedError(action) from exc
        if not isinstance(reply, str) or not reply.strip():
            raise DependencyDegradedError(action, f"Empty reply during {action}")
        return reply

    async def generate_json_array(self, prompt: str, *, action: str) -> list[object]:
        """Generate and extract a non-empty JSON array from the reply."""
        reply = await self.generate(prompt, action=action)
        parsed = extract_json_array(reply)
        if not parsed:
            _logger.warning("No usable JSON array in %s reply", action)
            raise DependencyDegradedError(action, f"Unusable reply during {action}")
        return parsed

    async def generate_json_object(
        self, prompt: str, *, action: str
    ) -> dict[str, object]:
        """Generate and extract a JSON object from the reply."""
        reply = await self.generate(prompt, action=action)
        parsed = extract_json_object(reply)
        if parsed is None:
            _logger.warning("No usable JSON object in %s reply", action)
            raise DependencyDegradedError(action, f"Unusable reply during {action}")
        return parsed


def extract_json_array(text: str) -> list[object] | None:
    """Return the first decodable ``[...]`` span in the text."""
    value = _first_json_value(text, "[")
    return value if isinstance(value, list) else None


def extract_json_object(text: str) -> dict[str, object] | None:
    """Return the first decodable ``{...}`` span in the text."""
    value = _first_json_value(text, "{")
    return value if isinstance(value, dict) else None


def _first_json_value(text: str, opener: str) -> object | None:
    if not text:
        return None
    decoder = json.JSONDecoder()
    start = text.find(opener)
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find(opener, start + 1)
            continue
        return value
    return None
