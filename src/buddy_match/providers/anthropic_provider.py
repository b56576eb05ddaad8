import anthropic
from loguru import logger

from buddy_match.errors import ProviderError
from buddy_match.providers.common import transient_retrying

_TRANSIENT = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.APITimeoutError,
)


def _split_system(messages: list[dict]) -> tuple[str, list[dict]]:
    """Anthropic takes the system prompt separately and wants alternating turns starting with user."""
    system_parts = [m["content"] for m in messages if m.get("role") == "system"]
    turns: list[dict] = []
    for m in messages:
        role = m.get("role")
        if role not in ("user", "assistant"):
            continue
        if not turns and role == "assistant":
            continue
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"] += "\n" + m["content"]
        else:
            turns.append({"role": role, "content": m["content"]})
    return "\n\n".join(system_parts), turns


class AnthropicProvider:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 512,
        temperature: float = 0.7,
        max_attempts: int = 2,
    ):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._max_attempts = max_attempts

    async def complete(self, messages: list[dict]) -> str:
        system_prompt, turns = _split_system(messages)
        if not turns:
            raise ProviderError("Nothing to reply to")
        logger.debug(f"Completion request: model={self._model}, messages={len(turns)}")
        try:
            async for attempt in transient_retrying(_TRANSIENT, self._max_attempts):
                with attempt:
                    response = await self._client.messages.create(
                        model=self._model,
                        max_tokens=self._max_tokens,
                        temperature=self._temperature,
                        system=system_prompt,
                        messages=turns,
                    )
        except anthropic.AnthropicError as ex:
            raise ProviderError(f"Anthropic completion failed: {type(ex).__name__}") from ex

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text.strip():
            raise ProviderError("Anthropic returned an empty completion")
        logger.debug(f"Completion response: stop_reason={response.stop_reason}, len={len(text)}")
        return text
