from tests.base import BuddyStoreTestCase
from buddy_match.errors import InvalidInput
from buddy_match.store.keys import presence_key
from buddy_match.store.models import MATCHED, WAITING


class WaitingRegistryTests(BuddyStoreTestCase):
    def test_join_creates_waiting_record(self) -> None:
        record = self._registry.join("u1", "seeker")
        self.assertEqual(WAITING, record.status)
        self.assertEqual("seeker", record.role)
        self.assertIsNotNone(self._store.get(presence_key("u1")))

    def test_join_rejects_bad_input(self) -> None:
        with self.assertRaises(InvalidInput):
            self._registry.join("", "seeker")
        with self.assertRaises(InvalidInput):
            self._registry.join("u1", "")
        with self.assertRaises(InvalidInput):
            self._registry.join("u1", "therapist")

    def test_rejoin_same_role_keeps_queue_position(self) -> None:
        self._registry.join("u1", "seeker")
        self._store.update(presence_key("u1"), lambda cur: {**cur, "joinedAt": 42})
        again = self._registry.join("u1", "seeker")
        self.assertEqual(42, again.joined_at)

    def test_rejoin_other_role_resets_joined_at(self) -> None:
        self._registry.join("u1", "seeker")
        self._store.update(presence_key("u1"), lambda cur: {**cur, "joinedAt": 42})
        switched = self._registry.join("u1", "listener")
        self.assertEqual("listener", switched.role)
        self.assertNotEqual(42, switched.joined_at)

    def test_leave_is_idempotent(self) -> None:
        self._registry.join("u1", "seeker")
        self._registry.leave("u1")
        self._registry.leave("u1")
        self.assertIsNone(self._registry.get("u1"))

    def test_waiting_orders_by_joined_at(self) -> None:
        for user_id, joined_at in (("late", 300), ("early", 100), ("middle", 200)):
            self._registry.join(user_id, "listener")
            self._store.update(presence_key(user_id), lambda cur, j=joined_at: {**cur, "joinedAt": j})
        self._registry.join("seeker-1", "seeker")

        ids = [r.user_id for r in self._registry.waiting("listener")]
        self.assertEqual(["early", "middle", "late"], ids)
        self.assertEqual([], [r for r in self._registry.waiting("listener", exclude="early") if r.user_id == "early"])

    def test_claim_is_single_use(self) -> None:
        self._registry.join("u1", "listener")
        self.assertTrue(self._registry.claim("u1", "s1"))
        self.assertFalse(self._registry.claim("u1", "s2"))
        record = self._registry.get("u1")
        self.assertEqual(MATCHED, record.status)
        self.assertEqual("s1", record.session_id)
        self.assertFalse(self._registry.claim("ghost", "s1"))

    def test_join_does_not_reset_a_claimed_record(self) -> None:
        self._registry.join("u1", "listener")
        self._registry.claim("u1", "s1")
        record = self._registry.join("u1", "listener")
        self.assertEqual(MATCHED, record.status)
        self.assertEqual("s1", record.session_id)

    def test_release_only_undoes_own_claim(self) -> None:
        self._registry.join("u1", "listener")
        self._registry.claim("u1", "s1")
        self._registry.release("u1", "other")
        self.assertEqual(MATCHED, self._registry.get("u1").status)
        self._registry.release("u1", "s1")
        self.assertEqual(WAITING, self._registry.get("u1").status)

    def test_remove_claimed_keeps_unrelated_records(self) -> None:
        self._registry.join("u1", "listener")
        self._registry.remove_claimed("u1", "s1")
        self.assertIsNotNone(self._registry.get("u1"))
        self._registry.claim("u1", "s1")
        self._registry.remove_claimed("u1", "s1")
        self.assertIsNone(self._registry.get("u1"))
