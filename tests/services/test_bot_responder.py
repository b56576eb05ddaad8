import asyncio

from tests.base import BuddyStoreTestCase
from buddy_match.errors import InvalidInput, ProviderError
from buddy_match.services import BotResponder
from buddy_match.services.bot_responder import BOT_SENDER_ID, DEGRADED_REPLY, to_completion_messages
from buddy_match.store.models import AI_FALLBACK, HUMAN_PAIRED


class _FakeProvider:
    def __init__(self, reply: str = "I'm here for you.", error: Exception | None = None, delay: float = 0.0):
        self._reply = reply
        self._error = error
        self._delay = delay
        self.calls: list[list[dict]] = []

    async def complete(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._reply


class BotResponderTests(BuddyStoreTestCase):
    def _ai_session(self) -> str:
        session = self._sessions.create_session(["carol"], AI_FALLBACK, session_id="ai_1")
        self._sessions.send_message(session.session_id, "carol", "rough day")
        return session.session_id

    def test_reply_is_appended_to_session(self) -> None:
        sid = self._ai_session()
        provider = _FakeProvider()
        bot = BotResponder(self._sessions, provider)

        reply = asyncio.run(bot.reply(sid))

        self.assertTrue(reply.available)
        self.assertEqual("I'm here for you.", reply.text)
        messages = self._sessions.get_messages(sid)
        self.assertEqual(BOT_SENDER_ID, messages[-1].sender_id)
        self.assertEqual("system", provider.calls[0][0]["role"])
        self.assertEqual({"role": "user", "content": "rough day"}, provider.calls[0][1])

    def test_provider_error_degrades(self) -> None:
        sid = self._ai_session()
        bot = BotResponder(self._sessions, _FakeProvider(error=ProviderError("boom")))

        reply = asyncio.run(bot.reply(sid))

        self.assertFalse(reply.available)
        self.assertEqual(DEGRADED_REPLY, reply.text)
        self.assertIsNone(reply.message)
        self.assertEqual(1, len(self._sessions.get_messages(sid)))

    def test_timeout_degrades(self) -> None:
        sid = self._ai_session()
        bot = BotResponder(self._sessions, _FakeProvider(delay=1.0), timeout_seconds=0.05)

        reply = asyncio.run(bot.reply(sid))

        self.assertFalse(reply.available)
        self.assertEqual(1, len(self._sessions.get_messages(sid)))

    def test_human_session_gets_no_bot(self) -> None:
        session = self._sessions.create_session(["a", "b"], HUMAN_PAIRED)
        self._sessions.send_message(session.session_id, "a", "hi")
        bot = BotResponder(self._sessions, _FakeProvider())
        with self.assertRaises(InvalidInput):
            asyncio.run(bot.reply(session.session_id))

    def test_empty_session_gets_no_bot(self) -> None:
        bot = BotResponder(self._sessions, _FakeProvider())
        with self.assertRaises(InvalidInput):
            asyncio.run(bot.reply("ai_empty"))

    def test_transcript_roles(self) -> None:
        sid = self._ai_session()
        self._sessions.send_message(sid, BOT_SENDER_ID, "tell me more")
        messages = to_completion_messages("sys", self._sessions.get_messages(sid))
        self.assertEqual(["system", "user", "assistant"], [m["role"] for m in messages])
