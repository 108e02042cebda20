from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel

from adeguard.api.common import to_http_exception
from adeguard.errors import ADEGuardError
from adeguard.llm.speech import VoicePreset, synthesize
from adeguard.llm.transport import GeminiTransport, get_transport
from adeguard.pipeline.pcm import to_wav_bytes

router = APIRouter(prefix="/speech", tags=["speech"])


class SpeechRequest(BaseModel):
    text: str
    voice: VoicePreset = VoicePreset.PRIMARY


@router.post("")
async def speech_endpoint(
    request: SpeechRequest,
    transport: GeminiTransport = Depends(get_transport),
):
    try:
        buffer = await synthesize(request.text, request.voice, transport=transport)
    except ADEGuardError as e:
        raise to_http_exception(e)

    return Response(
        content=to_wav_bytes(buffer),
        media_type="audio/wav",
        headers={"X-Sample-Rate": str(buffer.sample_rate)},
    )
