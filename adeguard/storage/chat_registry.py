import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List

from adeguard.config import settings
from adeguard.llm.chat import ChatSession
from adeguard.llm.transport import GeminiTransport

logger = logging.getLogger(__name__)


@dataclass
class ChatEntry:
    session: ChatSession
    # one turn in flight per session; history order depends on it
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_used: float = field(default_factory=time.monotonic)


_chats: Dict[str, ChatEntry] = {}


def _expire_idle() -> None:
    cutoff = time.monotonic() - settings.CHAT_IDLE_SECONDS
    for session_id in [sid for sid, entry in _chats.items() if entry.last_used < cutoff]:
        # a session with a turn in flight is still in use
        if not _chats[session_id].lock.locked():
            del _chats[session_id]
            logger.info("Chat session %s expired", session_id)


def open_chat(transport: GeminiTransport) -> ChatEntry:
    _expire_idle()
    entry = ChatEntry(ChatSession(transport))
    _chats[entry.session.session_id] = entry
    logger.info("Chat session %s opened (%d active)", entry.session.session_id, len(_chats))
    return entry


def get_chat(session_id: str) -> ChatEntry:
    """Raises KeyError for unknown, closed or expired sessions."""
    _expire_idle()
    entry = _chats[session_id]
    entry.last_used = time.monotonic()
    return entry


def close_chat(session_id: str) -> None:
    if _chats.pop(session_id, None) is not None:
        logger.info("Chat session %s closed", session_id)


def active_chats() -> List[str]:
    return list(_chats)
