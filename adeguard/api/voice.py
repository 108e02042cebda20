import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional, Set

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from adeguard.api.common import analysis_payload, error_kind
from adeguard.audio.capture import ChunkRecorder
from adeguard.audio.playback import SpeechPlayer, WebSocketAudioSink
from adeguard.audio.voice import VoicePipeline
from adeguard.errors import (
    ADEGuardError,
    AttachmentTooLargeError,
    DeviceAccessError,
    InvalidInputError,
)
from adeguard.llm.speech import VoicePreset
from adeguard.llm.transport import GeminiTransport, get_transport
from adeguard.storage.history_store import store_analysis

logger = logging.getLogger(__name__)

ws_router = APIRouter()


async def receive_events(ws: WebSocket) -> AsyncIterator[Dict[str, Any]]:
    """
    Normalize incoming frames:
    binary frames are audio chunks, text frames are JSON commands
    (a bare "stop" is accepted too).
    """
    while True:
        msg = await ws.receive()

        if msg["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(msg.get("code", 1000))

        if msg.get("bytes") is not None:
            yield {"type": "chunk", "data": msg["bytes"]}
            continue

        raw = (msg.get("text") or "").strip()
        if not raw:
            continue

        if raw == "stop":
            yield {"type": "stop"}
            continue

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            yield {"type": "unknown", "raw": raw}
            continue

        # audio only ever arrives in binary frames
        if isinstance(payload, dict) and payload.get("type") and payload["type"] != "chunk":
            yield payload
        else:
            yield {"type": "unknown", "raw": raw}


def _optional_str(event: Dict[str, Any], key: str) -> Optional[str]:
    value = event.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidInputError(f"{key} must be a string")
    return value


@ws_router.websocket("/ws/voice")
async def voice_endpoint(
    ws: WebSocket,
    transport: GeminiTransport = Depends(get_transport),
):
    await ws.accept()

    recorder = ChunkRecorder()
    player = SpeechPlayer(WebSocketAudioSink(ws))
    pipeline = VoicePipeline(transport, recorder, player)

    # every analysis/speech task this socket started and that has not finished yet
    tasks: Set[asyncio.Task] = set()

    def task_done(task: asyncio.Task):
        tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Voice task failed", exc_info=task.exception())

    async def spawn(coro) -> None:
        task = asyncio.create_task(coro)
        tasks.add(task)
        task.add_done_callback(task_done)
        # let the task reach its first suspension point before the next frame
        await asyncio.sleep(0)

    async def send_error(exc: ADEGuardError):
        await ws.send_json({"type": "error", "kind": error_kind(exc), "detail": str(exc)})

    async def run_analysis():
        try:
            result = await pipeline.capture_and_analyze()
        except ADEGuardError as e:
            await send_error(e)
            return

        narrative = result.transcript or ""
        item = store_analysis(narrative or "Voice Input", result)
        await ws.send_json({"type": "analysis", **analysis_payload(result, narrative, item.id)})

        try:
            await pipeline.read_aloud(result)
        except ADEGuardError as e:
            await send_error(e)

    async def run_speech(text: str, voice: VoicePreset):
        try:
            await pipeline.speak(text, voice)
        except ADEGuardError as e:
            await send_error(e)

    async def handle(event: Dict[str, Any]):
        kind = event["type"]

        # ---------------- CAPTURE ----------------

        if kind == "start":
            triage_level = _optional_str(event, "triageLevel")
            mime_type = _optional_str(event, "mimeType")

            pipeline.triage_level = triage_level or pipeline.triage_level
            await recorder.start(mime_type)
            await spawn(run_analysis())
            await ws.send_json({"type": "recording"})
            return

        if kind == "chunk":
            if not recorder.recording:
                raise InvalidInputError("no recording in progress")
            try:
                recorder.write(event["data"])
            except AttachmentTooLargeError:
                # write() already failed the recording; the analysis task reports it
                pass
            return

        if kind == "stop":
            if not recorder.recording:
                raise InvalidInputError("no recording in progress")

            await ws.send_json({"type": "processing"})
            try:
                await recorder.stop()
            except InvalidInputError:
                # the analysis task receives the same error and reports it
                pass
            return

        if kind == "device_error":
            error = DeviceAccessError(_optional_str(event, "detail") or "microphone unavailable")
            if recorder.recording:
                recorder.fail(error)
            else:
                await send_error(error)
            return

        # ---------------- PLAYBACK ----------------

        if kind == "speak":
            text = _optional_str(event, "text") or ""
            voice_value = _optional_str(event, "voice") or VoicePreset.PRIMARY.value
            try:
                voice = VoicePreset(voice_value)
            except ValueError:
                raise InvalidInputError(f"unknown voice: {voice_value}")
            await spawn(run_speech(text, voice))
            return

        if kind == "stop_playback":
            await player.stop()
            await ws.send_json({"type": "playback_stopped"})
            return

        raise InvalidInputError(f"unknown message type: {kind}")

    try:
        async for event in receive_events(ws):
            try:
                await handle(event)
            except InvalidInputError as e:
                await send_error(e)

    except WebSocketDisconnect:
        logger.info("Voice socket closed")

    finally:
        pending = list(tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await pipeline.shutdown()
