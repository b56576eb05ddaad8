from __future__ import annotations

from loguru import logger

from buddy_match.errors import InvalidInput, NotFound
from buddy_match.store.keys import saved_chats_key
from buddy_match.store.kv_store import KeyValueStore
from buddy_match.store.models import Message, SavedChatEntry, new_message


def _entries(record: dict | None) -> list[SavedChatEntry]:
    if record is None:
        return []
    return [SavedChatEntry.from_record(chat) for chat in record.get("chats", [])]


def _record(entries: list[SavedChatEntry]) -> dict:
    return {"chats": [entry.to_record() for entry in entries]}


class SavedChatArchive:
    """Per-user list of saved chats, stored as one record per owner."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def list(self, user_id: str) -> list[SavedChatEntry]:
        return _entries(self._store.get(saved_chats_key(user_id)))

    def add_entry(self, owner_id: str, entry: SavedChatEntry) -> bool:
        """Append ``entry`` to the owner's archive unless one for its session already exists."""
        added = False

        def _add(current: dict | None) -> dict | None:
            nonlocal added
            entries = _entries(current)
            if any(e.session_id == entry.session_id for e in entries):
                return None
            added = True
            return _record(entries + [entry])

        self._store.update(saved_chats_key(owner_id), _add)
        if added:
            logger.info(f"Saved chat {entry.session_id} for {owner_id} ({len(entry.messages)} messages)")
        else:
            logger.debug(f"Saved chat {entry.session_id} already archived for {owner_id}")
        return added

    def append_message(self, user_id: str, chat_id: str, sender_id: str, text: str) -> Message:
        if not user_id or not chat_id or not sender_id:
            raise InvalidInput("Missing userId, chatId or senderId")
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Message text must not be empty")

        appended: list[Message] = []

        def _append(current: dict | None) -> dict:
            entries = _entries(current)
            for index, entry in enumerate(entries):
                if entry.session_id == chat_id:
                    message = new_message(list(entry.messages), sender_id, text)
                    appended.append(message)
                    entries[index] = entry.with_message(message)
                    return _record(entries)
            raise NotFound(f"Chat not found: {chat_id}")

        self._store.update(saved_chats_key(user_id), _append)
        return appended[-1]
