import base64
import logging
from functools import lru_cache
from typing import Any, Dict, List, Sequence

from google import genai
from google.genai import types

from adeguard.config import settings
from adeguard.errors import SchemaViolationError, TransportError
from adeguard.models import ConversationTurn

logger = logging.getLogger(__name__)


class GeminiTransport:
    """
    The three call shapes the core needs from the Gemini service.

    Every service-side failure is re-raised as TransportError. No retries,
    no timeouts of its own.
    """

    def __init__(self, api_key: str | None = None):
        self._api_key = api_key
        self._client: genai.Client | None = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key or settings.GEMINI_API_KEY)
        return self._client

    async def generate_structured(
        self,
        *,
        model: str,
        parts: List[types.Part],
        system_instruction: str,
        schema: Dict[str, Any],
    ) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                    system_instruction=system_instruction,
                    temperature=0.0,
                ),
            )
        except Exception as e:
            logger.error("Structured generation failed on %s: %s", model, e)
            raise TransportError(str(e)) from e

        return response.text or ""

    async def generate_speech(self, *, model: str, text: str, voice: str) -> str:
        """Returns base64 PCM16 mono audio."""
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=[types.Content(parts=[types.Part(text=text)])],
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
                        )
                    ),
                ),
            )
        except Exception as e:
            logger.error("Speech generation failed on %s: %s", model, e)
            raise TransportError(str(e)) from e

        try:
            data = response.candidates[0].content.parts[0].inline_data.data
        except (AttributeError, IndexError, TypeError):
            data = None

        if not data:
            raise SchemaViolationError("empty_audio_response")

        # the SDK hands back raw bytes; the contract is base64
        if isinstance(data, bytes):
            return base64.b64encode(data).decode("ascii")
        return data

    async def chat(
        self,
        *,
        model: str,
        history: Sequence[ConversationTurn],
        system_instruction: str,
        message: str,
    ) -> str:
        try:
            session = self.client.aio.chats.create(
                model=model,
                config=types.GenerateContentConfig(system_instruction=system_instruction),
                history=[
                    types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
                    for turn in history
                ],
            )
            response = await session.send_message(message)
        except Exception as e:
            logger.error("Chat call failed on %s: %s", model, e)
            raise TransportError(str(e)) from e

        return response.text or ""


@lru_cache(maxsize=1)
def get_transport() -> GeminiTransport:
    return GeminiTransport()
