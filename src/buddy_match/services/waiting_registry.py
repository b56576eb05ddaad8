from __future__ import annotations

from loguru import logger

from buddy_match.errors import InvalidInput
from buddy_match.store.keys import PRESENCE_PREFIX, pairing_key, presence_key
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import MATCHED, ROLES, WAITING, PresenceRecord, now_millis


def validate_user_id(user_id: str | None, field_name: str = "userId") -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidInput(f"Missing {field_name}")
    return user_id


def validate_join(user_id: str | None, role: str | None) -> None:
    validate_user_id(user_id)
    if role not in ROLES:
        raise InvalidInput(f"Unrecognized role: {role!r}")


class WaitingRegistry:
    def __init__(self, store: KeyValueStore):
        self._store = store

    def join(self, user_id: str, role: str) -> PresenceRecord:
        """Upsert a waiting presence record.

        A user already waiting in the same role keeps its original joinedAt.
        A record already claimed for a pairing is returned unchanged.
        """
        validate_join(user_id, role)

        def _upsert(current: dict | None) -> dict | None:
            joined_at = now_millis()
            if current is not None:
                existing = PresenceRecord.from_record(current)
                if existing.status == MATCHED:
                    return None
                if existing.role == role:
                    joined_at = existing.joined_at
            return PresenceRecord(user_id=user_id, role=role, status=WAITING, joined_at=joined_at).to_record()

        stored = self._store.update(presence_key(user_id), _upsert)
        logger.debug(f"Presence upserted: user={user_id}, role={role}")
        return PresenceRecord.from_record(stored)

    def leave(self, user_id: str) -> None:
        """Drop the presence record and any undelivered pairing notice."""
        self._store.delete(presence_key(user_id))
        self._store.delete(pairing_key(user_id))

    def get(self, user_id: str) -> PresenceRecord | None:
        record = self._store.get(presence_key(user_id))
        return PresenceRecord.from_record(record) if record is not None else None

    def waiting(self, role: str, *, exclude: str | None = None) -> list[PresenceRecord]:
        """Waiting records for ``role``, earliest joiner first."""
        records = [PresenceRecord.from_record(r) for r in self._store.get_by_prefix(PRESENCE_PREFIX)]
        candidates = [
            r for r in records
            if r.role == role and r.status == WAITING and r.user_id != exclude
        ]
        candidates.sort(key=lambda r: (r.joined_at, r.user_id))
        return candidates

    def claim(self, user_id: str, session_id: str) -> bool:
        """Mark a waiting user as matched into ``session_id``.

        Returns False if the user is absent or was already claimed.
        """
        claimed = False

        def _claim(current: dict | None) -> dict | None:
            nonlocal claimed
            if current is None:
                return None
            record = PresenceRecord.from_record(current)
            if record.status != WAITING:
                return None
            claimed = True
            return PresenceRecord(
                user_id=record.user_id,
                role=record.role,
                status=MATCHED,
                joined_at=record.joined_at,
                session_id=session_id,
            ).to_record()

        self._store.update(presence_key(user_id), _claim)
        return claimed

    def release(self, user_id: str, session_id: str) -> None:
        """Return a user claimed for ``session_id`` to the waiting state."""

        def _release(current: dict | None) -> dict | None:
            if current is None:
                return None
            record = PresenceRecord.from_record(current)
            if record.status != MATCHED or record.session_id != session_id:
                return None
            return PresenceRecord(
                user_id=record.user_id,
                role=record.role,
                status=WAITING,
                joined_at=record.joined_at,
            ).to_record()

        self._store.update(presence_key(user_id), _release)

    def remove_claimed(self, user_id: str, session_id: str) -> None:
        """Delete a presence record only if it is still claimed for ``session_id``."""

        def _still_claimed(current: dict) -> bool:
            record = PresenceRecord.from_record(current)
            return record.status == MATCHED and record.session_id == session_id

        self._store.delete_if(presence_key(user_id), _still_claimed)
