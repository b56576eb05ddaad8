from __future__ import annotations

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from buddy_match.errors import InvalidInput, NotFound, StoreError
from buddy_match.services.coordinator import BuddyCoordinator
from buddy_match.store.models import AI_FALLBACK, FriendRequest, JoinResult, SavedChatEntry


class JoinBody(BaseModel):
    userId: str | None = None
    role: str | None = None


class SendBody(BaseModel):
    sessionId: str | None = None
    userId: str | None = None
    message: str | None = None


class SessionBody(BaseModel):
    sessionId: str | None = None


class LeaveBody(BaseModel):
    userId: str | None = None
    sessionId: str | None = None


class FriendBody(BaseModel):
    fromUserId: str | None = None
    toUserId: str | None = None
    sessionId: str | None = None


class SendSavedBody(BaseModel):
    userId: str | None = None
    chatId: str | None = None
    senderId: str | None = None
    message: str | None = None


def _join_payload(result: JoinResult) -> dict:
    payload = {
        "matched": result.matched,
        "sessionId": result.session_id,
        "partnerId": result.partner_id,
        "kind": result.kind,
    }
    if result.kind == AI_FALLBACK:
        payload["message"] = "Connected to AI support buddy"
    elif result.matched:
        payload["message"] = "Connected to a buddy"
    return payload


def _request_payload(request: FriendRequest | None) -> dict | None:
    return request.to_record() if request is not None else None


def _chat_payload(entry: SavedChatEntry) -> dict:
    return entry.to_record()


def create_app(coordinator: BuddyCoordinator, *, cors_origins: list[str] | None = None) -> FastAPI:
    app = FastAPI(title="talking-buddy")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidInput)
    async def _invalid_input(req: Request, exc: InvalidInput) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(NotFound)
    async def _not_found(req: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=404)

    @app.exception_handler(StoreError)
    async def _store_error(req: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"{req.method} {req.url.path} failed: {exc}")
        return JSONResponse({"error": "Request failed, please try again"}, status_code=500)

    @app.get("/health")
    def _health():
        return {"status": "ok", "message": "Server is running", "timestamp": int(time.time() * 1000)}

    @app.post("/buddy/join")
    def _join(body: JoinBody):
        if not body.userId or not body.role:
            raise InvalidInput("Missing userId or role")
        return _join_payload(coordinator.join(body.userId, body.role))

    @app.get("/buddy/match")
    def _match(userId: str | None = None):
        if not userId:
            raise InvalidInput("Missing userId")
        return _join_payload(coordinator.check_match(userId))

    @app.get("/buddy/messages")
    def _messages(sessionId: str | None = None):
        if not sessionId:
            raise InvalidInput("Missing sessionId")
        return {"messages": [m.to_record() for m in coordinator.get_messages(sessionId)]}

    @app.post("/buddy/send")
    def _send(body: SendBody):
        message = coordinator.send_message(body.sessionId or "", body.userId or "", body.message or "")
        return {"success": True, "message": message.to_record()}

    @app.post("/buddy/bot-reply")
    async def _bot_reply(body: SessionBody):
        reply = await coordinator.bot_reply(body.sessionId or "")
        return {
            "success": reply.available,
            "text": reply.text,
            "message": reply.message.to_record() if reply.message is not None else None,
        }

    @app.post("/buddy/leave")
    def _leave(body: LeaveBody):
        coordinator.leave(body.userId or "")
        return {"success": True}

    @app.post("/buddy/friend-request")
    def _friend_request(body: FriendBody):
        request = coordinator.propose_friend(body.fromUserId or "", body.toUserId or "", body.sessionId or "")
        return {"success": True, "request": _request_payload(request)}

    @app.get("/buddy/friend-request-status")
    def _friend_request_status(userId: str | None = None):
        return {"request": _request_payload(coordinator.friend_request_status(userId or ""))}

    @app.post("/buddy/accept-friend")
    def _accept_friend(body: FriendBody):
        saved = coordinator.accept_friend(body.fromUserId or "", body.toUserId or "", body.sessionId or "")
        return {"success": True, "saved": len(saved)}

    @app.post("/buddy/decline-friend")
    def _decline_friend(body: FriendBody):
        coordinator.decline_friend(body.fromUserId or "", body.toUserId or "")
        return {"success": True}

    @app.get("/buddy/saved-chats")
    def _saved_chats(userId: str | None = None):
        return {"chats": [_chat_payload(c) for c in coordinator.list_saved_chats(userId or "")]}

    @app.post("/buddy/send-saved")
    def _send_saved(body: SendSavedBody):
        user_id = body.userId or ""
        message = coordinator.append_saved_message(
            user_id,
            body.chatId or "",
            body.senderId or user_id,
            body.message or "",
        )
        return {"success": True, "message": message.to_record()}

    return app
