import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional, Protocol

from adeguard.pipeline.pcm import AudioBuffer, to_pcm16_bytes

logger = logging.getLogger(__name__)


class AudioSink(Protocol):
    """Where a decoded buffer is actually rendered."""

    sample_rate: Optional[int]

    async def render(self, buffer: AudioBuffer) -> None: ...


class PlaybackSession:
    """A single-use playable source wrapping one decoded buffer."""

    def __init__(
        self,
        buffer: AudioBuffer,
        sink: AudioSink,
        on_ended: Callable[["PlaybackSession"], None],
    ):
        self.buffer = buffer
        self._sink = sink
        self._on_ended = on_ended
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("playback source already used")
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            await self._sink.render(self.buffer)
            logger.debug("Playback ended after %.2fs", self.buffer.duration)
        except Exception:
            # nobody awaits a fire-and-forget source; this is its only report
            logger.exception("Playback failed")
        finally:
            self._on_ended(self)

    async def stop(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task

    async def wait(self) -> None:
        if self._task is not None:
            await self._task


class SpeechPlayer:
    """
    Owns at most one playback session.

    play() stops and awaits the current session before starting the next,
    so two voices never overlap.
    """

    def __init__(self, sink: AudioSink):
        self._sink = sink
        self._current: Optional[PlaybackSession] = None
        self._lock = asyncio.Lock()

    @property
    def sample_rate(self) -> Optional[int]:
        return getattr(self._sink, "sample_rate", None)

    @property
    def is_playing(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> Optional[PlaybackSession]:
        return self._current

    async def play(self, buffer: AudioBuffer) -> PlaybackSession:
        async with self._lock:
            await self.stop()

            session = PlaybackSession(buffer, self._sink, on_ended=self._ended)
            self._current = session
            session.start()

        logger.info("Playback started: %.2fs", buffer.duration)
        return session

    async def stop(self) -> None:
        current, self._current = self._current, None
        if current is not None:
            await current.stop()
            logger.info("Playback stopped")

    def _ended(self, session: PlaybackSession) -> None:
        if self._current is session:
            self._current = None


class WebSocketAudioSink:
    """
    Streams PCM16 frames to a browser over an open WebSocket, paced at
    real time so that a stop lands mid-stream.
    """

    def __init__(self, ws, chunk_seconds: float = 0.25, realtime: bool = True, sample_rate: Optional[int] = None):
        self.ws = ws
        self.chunk_seconds = chunk_seconds
        self.realtime = realtime
        self.sample_rate = sample_rate

    async def render(self, buffer: AudioBuffer) -> None:
        await self.ws.send_json({
            "type": "audio_start",
            "sampleRate": buffer.sample_rate,
            "channels": buffer.channels,
            "encoding": "pcm_s16le",
        })

        frames_per_chunk = max(1, int(buffer.sample_rate * self.chunk_seconds))
        for start in range(0, buffer.frames, frames_per_chunk):
            chunk = AudioBuffer(
                samples=buffer.samples[:, start : start + frames_per_chunk],
                sample_rate=buffer.sample_rate,
            )
            await self.ws.send_bytes(to_pcm16_bytes(chunk))
            if self.realtime:
                await asyncio.sleep(chunk.duration)

        await self.ws.send_json({"type": "audio_end"})
