import logging
import uuid
from typing import List, Optional, Tuple

from adeguard.config import settings
from adeguard.errors import InvalidInputError, TransportError
from adeguard.llm.transport import GeminiTransport
from adeguard.models import ConversationTurn

logger = logging.getLogger(__name__)

CHAT_PERSONA = (
    "You are the ADEGuard AI Assistant. Help users understand drug safety, "
    "analyze symptoms, and navigate the dashboard. "
    "Be professional, medical, yet accessible."
)

EMPTY_REPLY = "I could not generate a response."
ERROR_REPLY = "I encountered an error. Please try again."


class ChatSession:
    """
    Linear user/model conversation.

    History is append-only. Sends against one session must be serialized
    by the caller.
    """

    def __init__(
        self,
        transport: GeminiTransport,
        session_id: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.model = model or settings.CHAT_MODEL
        self._transport = transport
        self._history: List[ConversationTurn] = []

    @property
    def history(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._history)

    async def send(self, text: str) -> str:
        if not (text or "").strip():
            raise InvalidInputError("empty chat message")

        prior = list(self._history)
        self._history.append(ConversationTurn(role="user", text=text))

        try:
            reply = await self._transport.chat(
                model=self.model,
                history=prior,
                system_instruction=CHAT_PERSONA,
                message=text,
            )
        except TransportError:
            logger.warning("Chat session %s fell back after a failed turn", self.session_id)
            reply = ERROR_REPLY

        if not reply.strip():
            reply = EMPTY_REPLY

        self._history.append(ConversationTurn(role="model", text=reply))
        return reply
