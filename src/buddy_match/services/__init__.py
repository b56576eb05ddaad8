from buddy_match.services.bot_responder import BotReply, BotResponder
from buddy_match.services.coordinator import BuddyCoordinator
from buddy_match.services.friend_requests import FriendRequestCoordinator
from buddy_match.services.matchmaker import Matchmaker
from buddy_match.services.saved_chats import SavedChatArchive
from buddy_match.services.session_store import SessionStore
from buddy_match.services.waiting_registry import WaitingRegistry

__all__ = [
    "BotReply",
    "BotResponder",
    "BuddyCoordinator",
    "FriendRequestCoordinator",
    "Matchmaker",
    "SavedChatArchive",
    "SessionStore",
    "WaitingRegistry",
]
