import openai
from loguru import logger

from buddy_match.errors import ProviderError
from buddy_match.providers.common import transient_retrying

_TRANSIENT = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
)


class OpenAIProvider:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4.1-mini",
        max_tokens: int = 512,
        temperature: float = 0.7,
        max_attempts: int = 2,
    ):
        self._client = openai.AsyncOpenAI(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._max_attempts = max_attempts

    async def complete(self, messages: list[dict]) -> str:
        logger.debug(f"Completion request: model={self._model}, messages={len(messages)}")
        try:
            async for attempt in transient_retrying(_TRANSIENT, self._max_attempts):
                with attempt:
                    response = await self._client.chat.completions.create(
                        model=self._model,
                        max_tokens=self._max_tokens,
                        temperature=self._temperature,
                        messages=messages,
                    )
        except openai.OpenAIError as ex:
            raise ProviderError(f"OpenAI completion failed: {type(ex).__name__}") from ex

        text = (response.choices[0].message.content or "") if response.choices else ""
        if not text.strip():
            raise ProviderError("OpenAI returned an empty completion")
        logger.debug(f"Completion response: len={len(text)}")
        return text
