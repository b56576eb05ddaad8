from tests.base import BuddyStoreTestCase
from buddy_match.store import prune_store
from buddy_match.store.keys import pairing_key, presence_key, saved_chats_key, session_key
from buddy_match.store.models import AI_FALLBACK


class PruningTests(BuddyStoreTestCase):
    def test_old_sessions_are_removed(self) -> None:
        self._sessions.create_session(["u1"], AI_FALLBACK, session_id="old")
        self._sessions.create_session(["u2"], AI_FALLBACK, session_id="fresh")
        self._store.update(session_key("old"), lambda cur: {**cur, "updatedAt": 0})

        removed = prune_store(self._store, session_retention_days=1, presence_ttl_minutes=60)

        self.assertEqual((1, 0, 0), removed)
        self.assertIsNone(self._sessions.get_session("old"))
        self.assertIsNotNone(self._sessions.get_session("fresh"))

    def test_stale_presence_is_removed(self) -> None:
        self._registry.join("stale", "seeker")
        self._registry.join("recent", "listener")
        self._store.update(presence_key("stale"), lambda cur: {**cur, "joinedAt": 0})

        removed = prune_store(self._store, session_retention_days=30, presence_ttl_minutes=5)

        self.assertEqual((0, 1, 0), removed)
        self.assertIsNone(self._registry.get("stale"))
        self.assertIsNotNone(self._registry.get("recent"))

    def test_stale_pairing_notices_are_removed(self) -> None:
        self._matchmaker.request_join("alice", "seeker")
        self._matchmaker.request_join("bob", "listener")
        self._matchmaker.request_join("carol", "seeker")
        self._matchmaker.request_join("dave", "listener")
        self._store.update(pairing_key("alice"), lambda cur: {**cur, "timestamp": 0})

        removed = prune_store(self._store, session_retention_days=30, presence_ttl_minutes=5)

        self.assertEqual((0, 0, 1), removed)
        self.assertFalse(self._matchmaker.check_match("alice").matched)
        self.assertTrue(self._matchmaker.check_match("carol").matched)

    def test_saved_chats_are_never_touched(self) -> None:
        self._store.set(saved_chats_key("u1"), {"chats": [{"sessionId": "s", "friendId": "u2", "messages": [], "createdAt": 0}]})

        prune_store(self._store, session_retention_days=1, presence_ttl_minutes=1)

        self.assertEqual(1, len(self._archive.list("u1")))
