import base64
import io
import wave
from dataclasses import dataclass

import numpy as np

PCM16_SCALE = 32768.0


@dataclass(frozen=True)
class AudioBuffer:
    samples: np.ndarray  # float32, shape (channels, frames), values in [-1.0, 1.0]
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)

    def channel_data(self, channel: int) -> np.ndarray:
        return self.samples[channel]


def decode_pcm16(data: bytes, sample_rate: int = 24000, channels: int = 1) -> AudioBuffer:
    """
    Decode little-endian signed 16-bit interleaved PCM into float samples.

    Trailing bytes that do not make up a full frame are dropped.
    """
    if channels < 1:
        raise ValueError("channels must be >= 1")

    usable = len(data) - (len(data) % 2)
    ints = np.frombuffer(data[:usable], dtype="<i2")

    frames = len(ints) // channels
    ints = ints[: frames * channels]

    samples = ints.reshape(frames, channels).T.astype(np.float32) / PCM16_SCALE
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


def decode_base64_pcm16(encoded: str, sample_rate: int = 24000, channels: int = 1) -> AudioBuffer:
    return decode_pcm16(base64.b64decode(encoded, validate=True), sample_rate, channels)


def to_pcm16_bytes(buffer: AudioBuffer) -> bytes:
    scaled = np.clip(np.round(buffer.samples * PCM16_SCALE), -32768, 32767)
    # back to interleaved frame order
    return scaled.T.astype("<i2").tobytes()


def to_wav_bytes(buffer: AudioBuffer) -> bytes:
    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(buffer.channels)
        wf.setsampwidth(2)
        wf.setframerate(buffer.sample_rate)
        wf.writeframes(to_pcm16_bytes(buffer))
    return out.getvalue()
