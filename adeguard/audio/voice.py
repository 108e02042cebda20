import logging

from adeguard.audio.capture import AudioCapture
from adeguard.audio.playback import PlaybackSession, SpeechPlayer
from adeguard.llm.analysis import analyze
from adeguard.llm.speech import VoicePreset, read_aloud_for, synthesize
from adeguard.llm.transport import GeminiTransport
from adeguard.models import AnalysisResult

logger = logging.getLogger(__name__)


class VoicePipeline:
    """Microphone in, analysis through the audio model, summary read back out."""

    def __init__(
        self,
        transport: GeminiTransport,
        recorder: AudioCapture,
        player: SpeechPlayer,
        triage_level: str = "Routine",
    ):
        self.transport = transport
        self.recorder = recorder
        self.player = player
        self.triage_level = triage_level

    async def capture_and_analyze(self) -> AnalysisResult:
        attachment = await self.recorder.record()
        return await analyze(
            None,
            self.triage_level,
            attachment,
            transport=self.transport,
        )

    async def speak(self, text: str, voice: VoicePreset = VoicePreset.PRIMARY) -> PlaybackSession:
        buffer = await synthesize(
            text,
            voice,
            transport=self.transport,
            sample_rate=self.player.sample_rate,
        )
        return await self.player.play(buffer)

    async def read_aloud(self, result: AnalysisResult) -> PlaybackSession:
        target = read_aloud_for(result)
        logger.info("Reading summary aloud with the %s voice", target.voice.value)
        return await self.speak(target.text, target.voice)

    async def shutdown(self) -> None:
        await self.recorder.cancel()
        await self.player.stop()
