import logging

import openai
from openai import AsyncOpenAI

from relay.errors import ProviderError

logger = logging.getLogger(__name__)


class CompletionClient:
    """Turns (system prompt, user text) into one reply via OpenAI chat completions."""

    def __init__(self, api_key: str, model: str = "gpt-4o", client: AsyncOpenAI | None = None):
        self.model = model
        self._ai = client or AsyncOpenAI(api_key=api_key)

    async def complete(self, system_prompt: str, user_text: str) -> str:
        try:
            resp = await self._ai.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"completion request failed: {e}") from e

        try:
            answer = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError("completion response had no choices") from e
        if not answer or not answer.strip():
            raise ProviderError("completion response was empty")

        logger.debug("Generated %d chars with %s", len(answer), self.model)
        return answer.strip()

    async def aclose(self):
        await self._ai.close()
