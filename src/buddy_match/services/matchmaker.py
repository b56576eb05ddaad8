from __future__ import annotations

from uuid import uuid4

from loguru import logger

from buddy_match.errors import StoreError
from buddy_match.services.session_store import SessionStore
from buddy_match.services.waiting_registry import WaitingRegistry, validate_join
from buddy_match.store.keys import pairing_key
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import (
    AI_FALLBACK,
    HUMAN_PAIRED,
    MATCHED,
    JoinResult,
    PairingNotice,
    complement_role,
    now_millis,
)


class Matchmaker:
    """Pairs a joining user with the earliest waiting counterpart.

    Claims go one presence key at a time: the requester claims itself, then
    the candidate. Whoever loses a claim backs off, so a user ends up in at
    most one human-paired session. A user left without a partner gets an
    ai-fallback session and stays waiting; a later joiner who pairs with it
    leaves a pairing notice that the next ``request_join`` or ``check_match``
    call picks up.
    """

    def __init__(self, store: KeyValueStore, registry: WaitingRegistry, sessions: SessionStore):
        self._store = store
        self._registry = registry
        self._sessions = sessions

    def request_join(self, user_id: str, role: str) -> JoinResult:
        validate_join(user_id, role)

        pending = self._take_notice(user_id)
        if pending is not None:
            return self._notified(pending)

        presence = self._registry.join(user_id, role)
        if presence.status == MATCHED:
            return self._claimed_elsewhere(user_id, role)

        pending = self._take_notice(user_id)
        if pending is not None:
            # Paired between the first notice check and the upsert; retire the fresh record.
            if self._registry.claim(user_id, pending.session_id):
                self._registry.remove_claimed(user_id, pending.session_id)
            return self._notified(pending)

        for candidate in self._registry.waiting(complement_role(role), exclude=user_id):
            session_id = str(uuid4())
            if not self._registry.claim(user_id, session_id):
                return self._claimed_elsewhere(user_id, role)
            if not self._registry.claim(candidate.user_id, session_id):
                self._registry.release(user_id, session_id)
                logger.debug(f"Candidate {candidate.user_id} taken before {user_id} could claim it")
                continue
            return self._pair(user_id, candidate.user_id, session_id)

        session = self._sessions.create_session([user_id], AI_FALLBACK, session_id=f"ai_{uuid4().hex}")
        logger.info(f"No {complement_role(role)} waiting for {user_id}; using ai-fallback session {session.session_id}")
        return JoinResult(matched=False, session_id=session.session_id, kind=AI_FALLBACK)

    def check_match(self, user_id: str) -> JoinResult:
        notice = self._take_notice(user_id)
        if notice is None:
            return JoinResult(matched=False, session_id=None)
        return self._notified(notice)

    def _notified(self, notice: PairingNotice) -> JoinResult:
        logger.debug(f"Delivering pairing notice to {notice.user_id}: session {notice.session_id}")
        return JoinResult(matched=True, session_id=notice.session_id, partner_id=notice.partner_id, kind=HUMAN_PAIRED)

    def _pair(self, user_id: str, partner_id: str, session_id: str) -> JoinResult:
        notice = PairingNotice(user_id=partner_id, session_id=session_id, partner_id=user_id, timestamp=now_millis())
        try:
            self._sessions.create_session([partner_id, user_id], HUMAN_PAIRED, session_id=session_id)
            self._store.set(pairing_key(partner_id), notice.to_record())
            self._registry.remove_claimed(user_id, session_id)
            self._registry.remove_claimed(partner_id, session_id)
        except StoreError:
            logger.error(f"Pairing {partner_id} with {user_id} failed; releasing both claims")
            self._undo_pair(user_id, partner_id, session_id)
            raise
        logger.info(f"Paired {partner_id} with {user_id} in session {session_id}")
        return JoinResult(matched=True, session_id=session_id, partner_id=partner_id, kind=HUMAN_PAIRED)

    def _undo_pair(self, user_id: str, partner_id: str, session_id: str) -> None:
        # Both users go back to waiting. A notice for this session must not survive.
        try:
            self._store.delete_if(pairing_key(partner_id), lambda record: record.get("sessionId") == session_id)
            self._registry.release(partner_id, session_id)
            self._registry.release(user_id, session_id)
        except StoreError as ex:
            logger.error(f"Could not release claims for session {session_id}: {ex}")

    def _claimed_elsewhere(self, user_id: str, role: str) -> JoinResult:
        # Another joiner claimed us between our upsert and our own claim.
        presence = self._registry.get(user_id)
        if presence is not None and presence.status == MATCHED and presence.session_id:
            notice = self._take_notice(user_id)
            partner_id = notice.partner_id if notice is not None else None
            return JoinResult(matched=True, session_id=presence.session_id, partner_id=partner_id, kind=HUMAN_PAIRED)
        notice = self._take_notice(user_id)
        if notice is not None:
            return self._notified(notice)
        # The presence record vanished (concurrent leave); fall back like a lone joiner.
        session = self._sessions.create_session([user_id], AI_FALLBACK, session_id=f"ai_{uuid4().hex}")
        logger.info(f"{user_id} ({role}) left while joining; using ai-fallback session {session.session_id}")
        return JoinResult(matched=False, session_id=session.session_id, kind=AI_FALLBACK)

    def _take_notice(self, user_id: str) -> PairingNotice | None:
        taken: list[dict] = []

        def _take(current: dict) -> bool:
            taken.append(current)
            return True

        self._store.delete_if(pairing_key(user_id), _take)
        return PairingNotice.from_record(taken[0]) if taken else None
