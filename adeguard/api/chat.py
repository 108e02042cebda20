from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from adeguard.api.common import to_http_exception
from adeguard.errors import ADEGuardError
from adeguard.llm.chat import ChatSession
from adeguard.llm.transport import GeminiTransport, get_transport
from adeguard.storage.chat_registry import ChatEntry, close_chat, get_chat, open_chat

router = APIRouter(prefix="/chat/sessions", tags=["chat"])


class ChatMessageRequest(BaseModel):
    text: str


def _history(session: ChatSession):
    return [{"role": turn.role, "text": turn.text} for turn in session.history]


def _lookup(session_id: str) -> ChatEntry:
    try:
        return get_chat(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Chat session not found")


@router.post("")
async def create_chat_session(transport: GeminiTransport = Depends(get_transport)):
    entry = open_chat(transport)
    return {"sessionId": entry.session.session_id, "history": []}


@router.post("/{session_id}/messages")
async def send_chat_message(session_id: str, message: ChatMessageRequest):
    entry = _lookup(session_id)

    try:
        async with entry.lock:
            reply = await entry.session.send(message.text)
    except ADEGuardError as e:
        raise to_http_exception(e)

    return {"reply": reply, "history": _history(entry.session)}


@router.get("/{session_id}")
async def get_chat_session(session_id: str):
    entry = _lookup(session_id)
    return {"sessionId": session_id, "history": _history(entry.session)}


@router.delete("/{session_id}")
async def delete_chat_session(session_id: str):
    _lookup(session_id)
    close_chat(session_id)
    return {"status": "ok"}
