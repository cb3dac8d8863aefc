"""OpenAI Responses API client for text generation."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from grocery_health.services.text_generation import Message, TextGenerationClient


@dataclass
class OpenAITextClient(TextGenerationClient):
    """Text generation backed by the OpenAI Responses API."""

    client: AsyncOpenAI
    model: str

    @classmethod
    def create(cls, api_key: str, model: str) -> "OpenAITextClient":
        """Create a client for ``model``."""
        return cls(client=AsyncOpenAI(api_key=api_key), model=model)

    async def complete(self, messages: list[Message]) -> str:
        """Send the conversation and return the reply text."""
        response = await self.client.responses.create(
            model=self.model,
            input=[
                {"role": message["role"], "content": message["content"]}
                for message in messages
            ],
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
