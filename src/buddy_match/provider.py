from typing import Protocol, runtime_checkable


@runtime_checkable
class CompletionsProvider(Protocol):
    async def complete(self, messages: list[dict]) -> str:
        """Return one reply for an ordered list of {role, content} messages.

        Raises ProviderError when no reply can be produced.
        """
        ...


def create_provider(
    provider_name: str,
    api_key: str,
    *,
    model: str,
    max_tokens: int = 512,
    temperature: float = 0.7,
    max_attempts: int = 2,
) -> CompletionsProvider:
    """Factory: create a CompletionsProvider by name."""
    name = provider_name.strip().lower()
    if name == "openai":
        from buddy_match.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, model=model, max_tokens=max_tokens, temperature=temperature, max_attempts=max_attempts)
    if name == "anthropic":
        from buddy_match.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key, model=model, max_tokens=max_tokens, temperature=temperature, max_attempts=max_attempts)
    raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'openai', 'anthropic'")
