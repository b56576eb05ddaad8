from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, replace
from typing import Any

SEEKER = "seeker"
LISTENER = "listener"
ROLES = (SEEKER, LISTENER)

WAITING = "waiting"
MATCHED = "matched"

HUMAN_PAIRED = "human-paired"
AI_FALLBACK = "ai-fallback"

PENDING = "pending"
ACCEPTED = "accepted"
DECLINED = "declined"


def now_millis() -> int:
    return int(time.time() * 1000)


def complement_role(role: str) -> str:
    return LISTENER if role == SEEKER else SEEKER


@dataclass(frozen=True)
class Message:
    id: str
    text: str
    sender_id: str
    timestamp: int

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "sender": self.sender_id, "timestamp": self.timestamp}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Message:
        return cls(
            id=str(record["id"]),
            text=str(record.get("text", "")),
            sender_id=str(record.get("sender", "")),
            timestamp=int(record.get("timestamp", 0)),
        )


def new_message(existing: list[Message], sender_id: str, text: str) -> Message:
    """Build the next message for a container, keeping ids unique and timestamps non-decreasing."""
    timestamp = now_millis()
    if existing:
        timestamp = max(timestamp, existing[-1].timestamp)
    taken = {m.id for m in existing}
    while True:
        message_id = f"msg_{timestamp}_{secrets.token_hex(5)[:9]}"
        if message_id not in taken:
            break
    return Message(id=message_id, text=text, sender_id=sender_id, timestamp=timestamp)


@dataclass(frozen=True)
class PresenceRecord:
    user_id: str
    role: str
    status: str
    joined_at: int
    session_id: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "role": self.role,
            "status": self.status,
            "joinedAt": self.joined_at,
            "sessionId": self.session_id,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PresenceRecord:
        return cls(
            user_id=str(record["userId"]),
            role=str(record.get("role", "")),
            status=str(record.get("status", WAITING)),
            joined_at=int(record.get("joinedAt", 0)),
            session_id=record.get("sessionId"),
        )


@dataclass(frozen=True)
class Session:
    session_id: str
    participant_ids: tuple[str, ...]
    kind: str
    messages: tuple[Message, ...] = ()
    created_at: int = 0
    updated_at: int = 0

    def with_message(self, message: Message) -> Session:
        return replace(self, messages=self.messages + (message,), updated_at=message.timestamp)

    def to_record(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "participantIds": list(self.participant_ids),
            "kind": self.kind,
            "messages": [m.to_record() for m in self.messages],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Session:
        created_at = int(record.get("createdAt", 0))
        return cls(
            session_id=str(record["sessionId"]),
            participant_ids=tuple(record.get("participantIds", [])),
            kind=str(record.get("kind", AI_FALLBACK)),
            messages=tuple(Message.from_record(m) for m in record.get("messages", [])),
            created_at=created_at,
            updated_at=int(record.get("updatedAt", created_at)),
        )


@dataclass(frozen=True)
class FriendRequest:
    from_user_id: str
    to_user_id: str
    session_id: str
    status: str
    timestamp: int

    def to_record(self) -> dict[str, Any]:
        return {
            "fromUserId": self.from_user_id,
            "toUserId": self.to_user_id,
            "sessionId": self.session_id,
            "status": self.status,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> FriendRequest:
        return cls(
            from_user_id=str(record["fromUserId"]),
            to_user_id=str(record["toUserId"]),
            session_id=str(record.get("sessionId", "")),
            status=str(record.get("status", PENDING)),
            timestamp=int(record.get("timestamp", 0)),
        )


@dataclass(frozen=True)
class SavedChatEntry:
    session_id: str
    friend_id: str
    messages: tuple[Message, ...] = ()
    created_at: int = 0

    def with_message(self, message: Message) -> SavedChatEntry:
        return replace(self, messages=self.messages + (message,))

    def to_record(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "friendId": self.friend_id,
            "messages": [m.to_record() for m in self.messages],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SavedChatEntry:
        return cls(
            session_id=str(record["sessionId"]),
            friend_id=str(record.get("friendId", "")),
            messages=tuple(Message.from_record(m) for m in record.get("messages", [])),
            created_at=int(record.get("createdAt", 0)),
        )


@dataclass(frozen=True)
class PairingNotice:
    user_id: str
    session_id: str
    partner_id: str
    timestamp: int

    def to_record(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "sessionId": self.session_id,
            "partnerId": self.partner_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PairingNotice:
        return cls(
            user_id=str(record["userId"]),
            session_id=str(record["sessionId"]),
            partner_id=str(record.get("partnerId", "")),
            timestamp=int(record.get("timestamp", 0)),
        )


@dataclass(frozen=True)
class JoinResult:
    matched: bool
    session_id: str | None
    partner_id: str | None = None
    kind: str | None = None
