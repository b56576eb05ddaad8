from __future__ import annotations

from loguru import logger

from buddy_match.errors import InvalidInput
from buddy_match.services.saved_chats import SavedChatArchive
from buddy_match.services.session_store import SessionStore
from buddy_match.store.keys import FRIEND_REQUEST_PREFIX, friend_request_key
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import ACCEPTED, PENDING, FriendRequest, SavedChatEntry, now_millis


def _require(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not isinstance(value, str) or not value.strip()]
    if missing:
        raise InvalidInput(f"Missing {', '.join(missing)}")


class FriendRequestCoordinator:
    """Propose/accept/decline handshake keyed by the ordered pair (from, to).

    Accepting snapshots the session transcript into both parties' archives.
    Accepted requests are kept for audit; declining removes a pending one.
    """

    def __init__(self, store: KeyValueStore, sessions: SessionStore, archive: SavedChatArchive):
        self._store = store
        self._sessions = sessions
        self._archive = archive

    def propose(self, from_user_id: str, to_user_id: str, session_id: str) -> FriendRequest:
        _require(fromUserId=from_user_id, toUserId=to_user_id, sessionId=session_id)
        if from_user_id == to_user_id:
            raise InvalidInput("Cannot send a friend request to yourself")
        request = FriendRequest(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            session_id=session_id,
            status=PENDING,
            timestamp=now_millis(),
        )
        self._store.set(friend_request_key(from_user_id, to_user_id), request.to_record())
        logger.info(f"Friend request {from_user_id} -> {to_user_id} (session {session_id})")
        return request

    def status(self, for_user_id: str) -> FriendRequest | None:
        """Earliest pending request addressed to ``for_user_id``."""
        incoming = [
            FriendRequest.from_record(r)
            for r in self._store.get_by_prefix(FRIEND_REQUEST_PREFIX)
            if r.get("toUserId") == for_user_id and r.get("status") == PENDING
        ]
        if not incoming:
            return None
        incoming.sort(key=lambda r: (r.timestamp, r.from_user_id))
        return incoming[0]

    def accept(self, from_user_id: str, to_user_id: str, session_id: str) -> list[SavedChatEntry]:
        _require(fromUserId=from_user_id, toUserId=to_user_id, sessionId=session_id)
        accepted = FriendRequest(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            session_id=session_id,
            status=ACCEPTED,
            timestamp=now_millis(),
        )
        self._store.set(friend_request_key(from_user_id, to_user_id), accepted.to_record())

        messages = tuple(self._sessions.get_messages(session_id))
        created_at = now_millis()
        saved: list[SavedChatEntry] = []
        for owner_id, friend_id in ((to_user_id, from_user_id), (from_user_id, to_user_id)):
            entry = SavedChatEntry(session_id=session_id, friend_id=friend_id, messages=messages, created_at=created_at)
            if self._archive.add_entry(owner_id, entry):
                saved.append(entry)
        logger.info(f"Friend request {from_user_id} -> {to_user_id} accepted; {len(messages)} message(s) saved")
        return saved

    def decline(self, from_user_id: str, to_user_id: str) -> None:
        removed = self._store.delete_if(
            friend_request_key(from_user_id, to_user_id),
            lambda record: record.get("status") == PENDING,
        )
        if removed:
            logger.info(f"Friend request {from_user_id} -> {to_user_id} declined")
