import asyncio
import logging
from typing import List, Optional, Protocol

from adeguard.config import settings
from adeguard.errors import AttachmentTooLargeError, InvalidInputError
from adeguard.models import Attachment
from adeguard.pipeline.attachments import encode_recording

logger = logging.getLogger(__name__)


class AudioCapture(Protocol):
    """What the voice pipeline needs from a microphone source."""

    async def start(self, mime_type: Optional[str] = None) -> None: ...

    async def stop(self) -> Attachment: ...

    async def record(self) -> Attachment: ...

    async def cancel(self) -> None: ...


def _mark_retrieved(future: asyncio.Future) -> None:
    # stop()/fail() also report to their own caller, a record() waiter is optional
    if not future.cancelled():
        future.exception()


class ChunkRecorder:
    """
    Accumulates microphone chunks pushed by a client into one audio blob.

    One recording at a time: start() while recording cancels the current
    one first. record() suspends until stop() or fail() settles it.
    """

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes or settings.MAX_RECORDING_BYTES
        self._chunks: List[bytes] = []
        self._size = 0
        self._mime_type: Optional[str] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def recording(self) -> bool:
        return self._pending is not None

    async def start(self, mime_type: Optional[str] = None) -> None:
        if self.recording:
            logger.info("Recording superseded by a new start")
            await self.cancel()

        self._mime_type = mime_type
        self._pending = asyncio.get_running_loop().create_future()
        self._pending.add_done_callback(_mark_retrieved)
        logger.info("Recording started (%s)", mime_type or "default type")

    def write(self, chunk: bytes) -> None:
        if not self.recording:
            raise InvalidInputError("no recording in progress")
        if not chunk:
            return

        self._size += len(chunk)
        if self._size > self.max_bytes:
            error = AttachmentTooLargeError(f"recording exceeds {self.max_bytes} bytes")
            self.fail(error)
            raise error

        self._chunks.append(chunk)

    async def stop(self) -> Attachment:
        if not self.recording:
            raise InvalidInputError("no recording in progress")

        pending = self._pending
        blob = b"".join(self._chunks)
        mime_type = self._mime_type

        try:
            attachment = encode_recording(blob, mime_type)
        except InvalidInputError as e:
            pending.set_exception(e)
            raise
        finally:
            self._release()

        logger.info("Recording stopped: %d bytes", len(blob))
        pending.set_result(attachment)
        return attachment

    def fail(self, error: Exception) -> None:
        """Settle the current recording with an error (e.g. DeviceAccessError)."""
        if not self.recording:
            return
        pending = self._pending
        self._release()
        pending.set_exception(error)

    async def cancel(self) -> None:
        if not self.recording:
            return
        pending = self._pending
        self._release()
        pending.cancel()

    async def record(self) -> Attachment:
        if not self.recording:
            raise InvalidInputError("no recording in progress")
        return await self._pending

    def _release(self) -> None:
        self._chunks = []
        self._size = 0
        self._mime_type = None
        self._pending = None
