import unittest

from buddy_match.store.models import (
    LISTENER,
    SEEKER,
    Message,
    SavedChatEntry,
    Session,
    complement_role,
    new_message,
)


class ModelTests(unittest.TestCase):
    def test_complement_role(self) -> None:
        self.assertEqual(LISTENER, complement_role(SEEKER))
        self.assertEqual(SEEKER, complement_role(LISTENER))

    def test_message_record_uses_sender_field(self) -> None:
        message = Message(id="m1", text="hi", sender_id="u1", timestamp=5)
        record = message.to_record()
        self.assertEqual("u1", record["sender"])
        self.assertEqual(message, Message.from_record(record))

    def test_new_message_timestamp_never_goes_backwards(self) -> None:
        future = Message(id="m1", text="hi", sender_id="u1", timestamp=10**15)
        nxt = new_message([future], "u2", "hello")
        self.assertEqual(10**15, nxt.timestamp)
        self.assertNotEqual(future.id, nxt.id)
        self.assertTrue(nxt.id.startswith("msg_"))

    def test_session_decodes_old_records_without_updated_at(self) -> None:
        session = Session.from_record({"sessionId": "s1", "messages": [], "createdAt": 7, "extra": "ignored"})
        self.assertEqual(7, session.updated_at)
        self.assertEqual((), session.participant_ids)

    def test_saved_chat_with_message_leaves_original_untouched(self) -> None:
        entry = SavedChatEntry(session_id="s1", friend_id="u2")
        updated = entry.with_message(Message(id="m1", text="hi", sender_id="u1", timestamp=1))
        self.assertEqual((), entry.messages)
        self.assertEqual(1, len(updated.messages))


if __name__ == "__main__":
    unittest.main()
