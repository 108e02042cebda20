import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    ENV = os.getenv("ENV", "dev")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

    TEXT_MODEL = os.getenv("TEXT_MODEL", "gemini-2.5-flash")
    VISION_MODEL = os.getenv("VISION_MODEL", "gemini-3-pro-preview")
    AUDIO_MODEL = os.getenv("AUDIO_MODEL", "gemini-2.5-flash")
    DOCUMENT_MODEL = os.getenv("DOCUMENT_MODEL", "gemini-2.5-flash")
    CHAT_MODEL = os.getenv("CHAT_MODEL", "gemini-3-pro-preview")
    TTS_MODEL = os.getenv("TTS_MODEL", "gemini-2.5-flash-preview-tts")

    PRIMARY_VOICE = os.getenv("PRIMARY_VOICE", "Kore")
    SECONDARY_VOICE = os.getenv("SECONDARY_VOICE", "Puck")
    TTS_SAMPLE_RATE = int(os.getenv("TTS_SAMPLE_RATE", "24000"))

    MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
    MAX_RECORDING_BYTES = int(os.getenv("MAX_RECORDING_BYTES", str(20 * 1024 * 1024)))

    CHAT_IDLE_SECONDS = int(os.getenv("CHAT_IDLE_SECONDS", "3600"))

    DATA_DIR = os.getenv("DATA_DIR", "data")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
