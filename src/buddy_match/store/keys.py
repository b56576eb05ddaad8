PRESENCE_PREFIX = "presence:"
SESSION_PREFIX = "session:"
FRIEND_REQUEST_PREFIX = "friend_request:"
SAVED_CHATS_PREFIX = "saved_chats:"
PAIRING_PREFIX = "pairing:"


def presence_key(user_id: str) -> str:
    return f"{PRESENCE_PREFIX}{user_id}"


def session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def friend_request_key(from_user_id: str, to_user_id: str) -> str:
    # Length prefix keeps the ordered pair unambiguous when ids contain ":".
    return f"{FRIEND_REQUEST_PREFIX}{len(from_user_id)}:{from_user_id}:{to_user_id}"


def saved_chats_key(user_id: str) -> str:
    return f"{SAVED_CHATS_PREFIX}{user_id}"


def pairing_key(user_id: str) -> str:
    return f"{PAIRING_PREFIX}{user_id}"
