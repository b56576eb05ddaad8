from concurrent.futures import ThreadPoolExecutor

from tests.base import BuddyStoreTestCase
from buddy_match.errors import InvalidInput
from buddy_match.store.models import AI_FALLBACK, HUMAN_PAIRED


class SessionStoreTests(BuddyStoreTestCase):
    def test_unknown_session_has_no_messages(self) -> None:
        self.assertEqual([], self._sessions.get_messages("nope"))

    def test_sends_are_appended_in_order_with_unique_ids(self) -> None:
        session = self._sessions.create_session(["a", "b"], HUMAN_PAIRED)
        texts = [f"message {i}" for i in range(5)]
        for i, text in enumerate(texts):
            self._sessions.send_message(session.session_id, "a" if i % 2 == 0 else "b", text)

        messages = self._sessions.get_messages(session.session_id)
        self.assertEqual(texts, [m.text for m in messages])
        self.assertEqual(5, len({m.id for m in messages}))
        timestamps = [m.timestamp for m in messages]
        self.assertEqual(sorted(timestamps), timestamps)

    def test_send_to_unknown_session_creates_it(self) -> None:
        message = self._sessions.send_message("lazy", "u1", "hello")
        session = self._sessions.get_session("lazy")
        self.assertIsNotNone(session)
        self.assertEqual(AI_FALLBACK, session.kind)
        self.assertEqual(("u1",), session.participant_ids)
        self.assertEqual([message], list(session.messages))

    def test_send_rejects_missing_fields(self) -> None:
        with self.assertRaises(InvalidInput):
            self._sessions.send_message("s1", "u1", "")
        with self.assertRaises(InvalidInput):
            self._sessions.send_message("s1", "u1", "   ")
        with self.assertRaises(InvalidInput):
            self._sessions.send_message("", "u1", "hi")
        with self.assertRaises(InvalidInput):
            self._sessions.send_message("s1", "", "hi")
        self.assertIsNone(self._sessions.get_session("s1"))

    def test_concurrent_sends_are_not_lost(self) -> None:
        session = self._sessions.create_session(["a", "b"], HUMAN_PAIRED)

        def _send(worker: int) -> None:
            for i in range(10):
                self._sessions.send_message(session.session_id, f"user-{worker}", f"{worker}-{i}")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(_send, range(8)))

        messages = self._sessions.get_messages(session.session_id)
        self.assertEqual(80, len(messages))
        self.assertEqual(80, len({m.id for m in messages}))
        for worker in range(8):
            own = [m.text for m in messages if m.sender_id == f"user-{worker}"]
            self.assertEqual([f"{worker}-{i}" for i in range(10)], own)

    def test_send_bumps_updated_at(self) -> None:
        session = self._sessions.create_session(["a"], AI_FALLBACK)
        message = self._sessions.send_message(session.session_id, "a", "hi")
        self.assertEqual(message.timestamp, self._sessions.get_session(session.session_id).updated_at)
