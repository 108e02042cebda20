import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from adeguard.config import settings
from adeguard.errors import InvalidInputError, SchemaViolationError
from adeguard.llm.transport import GeminiTransport
from adeguard.models import AnalysisResult
from adeguard.pipeline.pcm import AudioBuffer, decode_base64_pcm16

logger = logging.getLogger(__name__)


class VoicePreset(str, Enum):
    PRIMARY = "primary"      # English read-aloud
    SECONDARY = "secondary"  # Tamil read-aloud


def voice_name(preset: VoicePreset) -> str:
    if preset == VoicePreset.SECONDARY:
        return settings.SECONDARY_VOICE
    return settings.PRIMARY_VOICE


@dataclass(frozen=True)
class ReadAloud:
    text: str
    voice: VoicePreset


def read_aloud_for(result: AnalysisResult) -> ReadAloud:
    """Tamil summary in the secondary voice if Tamil was heard, else the English one."""
    if "tamil" in (result.detected_language or "").lower():
        return ReadAloud(result.tamil_analysis.summary, VoicePreset.SECONDARY)
    return ReadAloud(result.summary, VoicePreset.PRIMARY)


async def synthesize(
    text: str,
    voice: VoicePreset = VoicePreset.PRIMARY,
    *,
    transport: GeminiTransport,
    sample_rate: Optional[int] = None,
) -> AudioBuffer:
    if not (text or "").strip():
        raise InvalidInputError("nothing to synthesize")

    encoded = await transport.generate_speech(
        model=settings.TTS_MODEL,
        text=text,
        voice=voice_name(voice),
    )

    try:
        buffer = decode_base64_pcm16(
            encoded,
            sample_rate=sample_rate or settings.TTS_SAMPLE_RATE,
            channels=1,
        )
    except (binascii.Error, ValueError) as e:
        raise SchemaViolationError("invalid_audio_payload") from e

    logger.info("Synthesized %.2fs of audio with %s", buffer.duration, voice.value)
    return buffer
