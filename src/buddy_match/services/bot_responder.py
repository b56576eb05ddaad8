from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from buddy_match.errors import InvalidInput, ProviderError
from buddy_match.provider import CompletionsProvider
from buddy_match.services.session_store import SessionStore
from buddy_match.store.models import HUMAN_PAIRED, Message
from buddy_match.system_prompt import build_system_prompt

BOT_SENDER_ID = "ai_buddy"
DEGRADED_REPLY = "Your AI buddy is taking a short break. Please try again in a moment."


@dataclass(frozen=True)
class BotReply:
    available: bool
    text: str
    message: Message | None = None


def to_completion_messages(system_prompt: str, transcript: list[Message]) -> list[dict]:
    out: list[dict] = [{"role": "system", "content": system_prompt}]
    for message in transcript:
        role = "assistant" if message.sender_id == BOT_SENDER_ID else "user"
        out.append({"role": role, "content": message.text})
    return out


class BotResponder:
    """Automated partner for ai-fallback sessions.

    Provider failures and timeouts never reach the caller: they produce a
    degraded reply and leave the session unchanged.
    """

    def __init__(self, sessions: SessionStore, provider: CompletionsProvider, *, timeout_seconds: float = 20.0):
        self._sessions = sessions
        self._provider = provider
        self._timeout_seconds = timeout_seconds

    async def reply(self, session_id: str) -> BotReply:
        if not session_id:
            raise InvalidInput("Missing sessionId")
        session = self._sessions.get_session(session_id)
        if session is not None and session.kind == HUMAN_PAIRED:
            raise InvalidInput("Session is paired with a human buddy")
        transcript = list(session.messages) if session is not None else []
        if not any(m.sender_id != BOT_SENDER_ID for m in transcript):
            raise InvalidInput("Nothing to reply to yet")

        messages = to_completion_messages(build_system_prompt(), transcript)
        try:
            text = await asyncio.wait_for(self._provider.complete(messages), timeout=self._timeout_seconds)
        except TimeoutError:
            logger.warning(f"Bot reply for {session_id} timed out after {self._timeout_seconds}s")
            return BotReply(available=False, text=DEGRADED_REPLY)
        except ProviderError as ex:
            logger.warning(f"Bot reply for {session_id} unavailable: {ex}")
            return BotReply(available=False, text=DEGRADED_REPLY)

        message = self._sessions.send_message(session_id, BOT_SENDER_ID, text.strip())
        return BotReply(available=True, text=message.text, message=message)
