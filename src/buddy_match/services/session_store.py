from __future__ import annotations

from uuid import uuid4

from loguru import logger

from buddy_match.errors import InvalidInput
from buddy_match.store.keys import session_key
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import AI_FALLBACK, Message, Session, new_message, now_millis


class SessionStore:
    """Owns session transcripts.

    Sending to an unknown session creates it (upsert-or-create): the new
    session is an ai-fallback session whose only participant is the sender.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def create_session(
        self,
        participant_ids: list[str],
        kind: str,
        session_id: str | None = None,
    ) -> Session:
        sid = session_id or str(uuid4())
        now = now_millis()
        session = Session(
            session_id=sid,
            participant_ids=tuple(participant_ids),
            kind=kind,
            created_at=now,
            updated_at=now,
        )
        self._store.set(session_key(sid), session.to_record())
        logger.info(f"Session created: id={sid}, kind={kind}, participants={len(participant_ids)}")
        return session

    def get_session(self, session_id: str) -> Session | None:
        record = self._store.get(session_key(session_id))
        return Session.from_record(record) if record is not None else None

    def get_messages(self, session_id: str) -> list[Message]:
        session = self.get_session(session_id)
        if session is None:
            return []
        return list(session.messages)

    def send_message(self, session_id: str, sender_id: str, text: str) -> Message:
        if not session_id:
            raise InvalidInput("Missing sessionId")
        if not sender_id:
            raise InvalidInput("Missing userId")
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Message text must not be empty")

        appended: list[Message] = []

        def _append(current: dict | None) -> dict:
            if current is None:
                now = now_millis()
                session = Session(
                    session_id=session_id,
                    participant_ids=(sender_id,),
                    kind=AI_FALLBACK,
                    created_at=now,
                    updated_at=now,
                )
                logger.debug(f"Lazily creating session {session_id} on first message")
            else:
                session = Session.from_record(current)
            message = new_message(list(session.messages), sender_id, text)
            appended.append(message)
            return session.with_message(message).to_record()

        self._store.update(session_key(session_id), _append)
        return appended[-1]
