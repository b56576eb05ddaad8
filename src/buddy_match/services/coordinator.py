from __future__ import annotations

from loguru import logger

from buddy_match.errors import InvalidInput, StoreError
from buddy_match.provider import CompletionsProvider
from buddy_match.services.bot_responder import BotReply, BotResponder
from buddy_match.services.friend_requests import FriendRequestCoordinator
from buddy_match.services.matchmaker import Matchmaker
from buddy_match.services.saved_chats import SavedChatArchive
from buddy_match.services.session_store import SessionStore
from buddy_match.services.waiting_registry import WaitingRegistry, validate_user_id
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import FriendRequest, JoinResult, Message, SavedChatEntry


class BuddyCoordinator:
    """Request surface over the coordination services.

    Read paths degrade to empty results when the store fails. ``leave`` and
    ``decline_friend`` are best-effort cleanup and always report success.
    Every other write propagates StoreError.
    """

    def __init__(
        self,
        store: KeyValueStore,
        provider: CompletionsProvider | None = None,
        *,
        bot_timeout_seconds: float = 20.0,
    ):
        self.registry = WaitingRegistry(store)
        self.sessions = SessionStore(store)
        self.archive = SavedChatArchive(store)
        self.matchmaker = Matchmaker(store, self.registry, self.sessions)
        self.friend_requests = FriendRequestCoordinator(store, self.sessions, self.archive)
        self.bot = (
            BotResponder(self.sessions, provider, timeout_seconds=bot_timeout_seconds)
            if provider is not None
            else None
        )

    def join(self, user_id: str, role: str) -> JoinResult:
        validate_user_id(user_id)
        logger.info(f"User {user_id} joining as {role}")
        return self.matchmaker.request_join(user_id, role)

    def check_match(self, user_id: str) -> JoinResult:
        validate_user_id(user_id)
        try:
            return self.matchmaker.check_match(user_id)
        except StoreError as ex:
            logger.error(f"Error checking match for {user_id}: {ex}")
            return JoinResult(matched=False, session_id=None)

    def get_messages(self, session_id: str) -> list[Message]:
        if not session_id:
            return []
        try:
            return self.sessions.get_messages(session_id)
        except StoreError as ex:
            logger.error(f"Error getting messages for {session_id}: {ex}")
            return []

    def send_message(self, session_id: str, user_id: str, text: str) -> Message:
        return self.sessions.send_message(session_id, user_id, text)

    async def bot_reply(self, session_id: str) -> BotReply:
        if self.bot is None:
            raise InvalidInput("No automated buddy is configured")
        return await self.bot.reply(session_id)

    def leave(self, user_id: str) -> None:
        if not user_id:
            return
        try:
            self.registry.leave(user_id)
            logger.info(f"User {user_id} left")
        except Exception as ex:
            logger.error(f"Error leaving for {user_id}: {ex}")

    def propose_friend(self, from_user_id: str, to_user_id: str, session_id: str) -> FriendRequest:
        return self.friend_requests.propose(from_user_id, to_user_id, session_id)

    def friend_request_status(self, user_id: str) -> FriendRequest | None:
        if not user_id:
            return None
        try:
            return self.friend_requests.status(user_id)
        except StoreError as ex:
            logger.error(f"Error getting friend request status for {user_id}: {ex}")
            return None

    def accept_friend(self, from_user_id: str, to_user_id: str, session_id: str) -> list[SavedChatEntry]:
        return self.friend_requests.accept(from_user_id, to_user_id, session_id)

    def decline_friend(self, from_user_id: str, to_user_id: str) -> None:
        try:
            self.friend_requests.decline(from_user_id, to_user_id)
        except Exception as ex:
            logger.error(f"Error declining friend request {from_user_id} -> {to_user_id}: {ex}")

    def list_saved_chats(self, user_id: str) -> list[SavedChatEntry]:
        if not user_id:
            return []
        try:
            return self.archive.list(user_id)
        except StoreError as ex:
            logger.error(f"Error getting saved chats for {user_id}: {ex}")
            return []

    def append_saved_message(self, user_id: str, chat_id: str, sender_id: str, text: str) -> Message:
        return self.archive.append_message(user_id, chat_id, sender_id, text)
