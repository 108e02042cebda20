from __future__ import annotations

import asyncio
import json

import numpy as np
import pytest

from adeguard.config import settings
from adeguard.errors import InvalidInputError, SchemaViolationError, TransportError
from adeguard.llm.analysis import parse_analysis
from adeguard.llm.speech import VoicePreset, read_aloud_for, synthesize


def test_synthesize_decodes_pcm_at_fixed_rate(transport):
    buffer = asyncio.run(synthesize("Probable ACE-inhibitor cough.", transport=transport))

    assert buffer.sample_rate == 24000
    assert buffer.channels == 1
    np.testing.assert_allclose(buffer.channel_data(0), [0.0, 0.5, -0.5, 32767 / 32768.0], atol=1e-7)

    call = transport.speech_calls[0]
    assert call["model"] == settings.TTS_MODEL
    assert call["voice"] == settings.PRIMARY_VOICE


def test_synthesize_secondary_voice_and_custom_rate(transport):
    buffer = asyncio.run(
        synthesize("வணக்கம்", VoicePreset.SECONDARY, transport=transport, sample_rate=48000)
    )
    assert buffer.sample_rate == 48000
    assert transport.speech_calls[0]["voice"] == settings.SECONDARY_VOICE


def test_synthesize_refuses_blank_text(transport):
    with pytest.raises(InvalidInputError):
        asyncio.run(synthesize("  ", transport=transport))
    assert transport.call_count == 0


def test_synthesize_rejects_garbled_audio(transport):
    transport.speech_response = "not base64!!"
    with pytest.raises(SchemaViolationError):
        asyncio.run(synthesize("hello", transport=transport))


def test_synthesize_transport_failure(failing_transport):
    with pytest.raises(TransportError):
        asyncio.run(synthesize("hello", transport=failing_transport))


@pytest.mark.parametrize("language", ["Tamil", "tamil", "Mixed English/TAMIL", "Tanglish (Tamil-English)"])
def test_read_aloud_routes_tamil_to_secondary_voice(sample_payload, language):
    sample_payload["detectedLanguage"] = language
    result = parse_analysis(json.dumps(sample_payload))

    target = read_aloud_for(result)

    assert target.voice == VoicePreset.SECONDARY
    assert target.text == sample_payload["tamilAnalysis"]["summary"]


@pytest.mark.parametrize("language", ["English", "", None])
def test_read_aloud_defaults_to_primary_summary(sample_payload, language):
    if language is None:
        del sample_payload["detectedLanguage"]
    else:
        sample_payload["detectedLanguage"] = language
    result = parse_analysis(json.dumps(sample_payload))

    target = read_aloud_for(result)

    assert target.voice == VoicePreset.PRIMARY
    assert target.text == sample_payload["summary"]
