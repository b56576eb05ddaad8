from __future__ import annotations

from loguru import logger

from buddy_match.store.keys import (
    PAIRING_PREFIX,
    PRESENCE_PREFIX,
    SESSION_PREFIX,
    pairing_key,
    presence_key,
    session_key,
)
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import PairingNotice, PresenceRecord, Session, now_millis

_MINUTE_MS = 60 * 1000
_DAY_MS = 24 * 60 * _MINUTE_MS


def prune_store(
    store: KeyValueStore,
    *,
    session_retention_days: int,
    presence_ttl_minutes: int,
) -> tuple[int, int, int]:
    """Delete inactive sessions, stale presence records and undelivered pairing notices.

    Notices share the presence TTL. Saved chats and friend requests are never
    touched. Returns (sessions_removed, presence_removed, notices_removed).
    """
    now = now_millis()
    session_cutoff = now - max(1, session_retention_days) * _DAY_MS
    presence_cutoff = now - max(1, presence_ttl_minutes) * _MINUTE_MS

    sessions_removed = 0
    for record in store.get_by_prefix(SESSION_PREFIX):
        session = Session.from_record(record)
        if session.updated_at < session_cutoff:
            store.delete(session_key(session.session_id))
            sessions_removed += 1

    presence_removed = 0
    for record in store.get_by_prefix(PRESENCE_PREFIX):
        presence = PresenceRecord.from_record(record)
        if presence.joined_at < presence_cutoff:
            store.delete(presence_key(presence.user_id))
            presence_removed += 1

    notices_removed = 0
    for record in store.get_by_prefix(PAIRING_PREFIX):
        notice = PairingNotice.from_record(record)
        if notice.timestamp < presence_cutoff:
            store.delete(pairing_key(notice.user_id))
            notices_removed += 1

    if sessions_removed or presence_removed or notices_removed:
        logger.info(
            f"Pruned {sessions_removed} session(s), {presence_removed} stale waiter(s) "
            f"and {notices_removed} pairing notice(s)"
        )
    return sessions_removed, presence_removed, notices_removed
