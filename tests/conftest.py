from __future__ import annotations

import asyncio
import base64
import copy
import json
import struct
from typing import Any

import pytest
from fastapi.testclient import TestClient

from adeguard.config import settings
from adeguard.errors import TransportError
from adeguard.llm.transport import get_transport

SAMPLE_NOTE = (
    "Patient is a 68-year-old male with a history of hypertension. "
    "He was prescribed Lisinopril 10mg daily two weeks ago. He presented today "
    "complaining of a persistent, dry hacking cough that worsens at night."
)

SAMPLE_PAYLOAD: dict[str, Any] = {
    "transcript": "",
    "detectedLanguage": "English",
    "entities": [
        {"text": "cough", "type": "ADE"},
        {"text": "dry hacking cough", "type": "ADE", "severity": "MODERATE"},
        {"text": "lisinopril", "type": "DRUG"},
        {"text": "hypertension", "type": "INDICATION"},
    ],
    "summary": "Probable ACE-inhibitor induced cough.",
    "patientAgeGroup": "Elderly",
    "overallRiskScore": 55,
    "clinicalReasoning": "Dry cough is a known class effect of ACE inhibitors.",
    "suggestedActions": ["Consider switching to an ARB", "Report to pharmacovigilance"],
    "sentiment": "Negative",
    "classification": "Adverse Event Report",
    "tamilAnalysis": {
        "summary": "ACE தடுப்பான் காரணமாக இருமல்.",
        "clinicalReasoning": "உலர் இருமல் அறியப்பட்ட பக்கவிளைவு.",
        "suggestedActions": ["ARB க்கு மாற்றவும்"],
    },
}


def pcm16_base64(values: list[int]) -> str:
    return base64.b64encode(struct.pack(f"<{len(values)}h", *values)).decode("ascii")


class FakeTransport:
    """Stands in for GeminiTransport and records every call."""

    def __init__(self):
        self.structured_calls: list[dict] = []
        self.speech_calls: list[dict] = []
        self.chat_calls: list[dict] = []

        self.structured_response: str = json.dumps(SAMPLE_PAYLOAD)
        self.speech_response: str = pcm16_base64([0, 16384, -16384, 32767])
        self.chat_responses: list[Any] = []

        # when set, speech calls hang until cancelled
        self.block_speech = False
        self.cancelled_speech: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.structured_calls) + len(self.speech_calls) + len(self.chat_calls)

    async def generate_structured(self, *, model, parts, system_instruction, schema):
        self.structured_calls.append({
            "model": model,
            "parts": parts,
            "system_instruction": system_instruction,
            "schema": schema,
        })
        if isinstance(self.structured_response, Exception):
            raise self.structured_response
        return self.structured_response

    async def generate_speech(self, *, model, text, voice):
        self.speech_calls.append({"model": model, "text": text, "voice": voice})
        if self.block_speech:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled_speech.append(text)
                raise
        if isinstance(self.speech_response, Exception):
            raise self.speech_response
        return self.speech_response

    async def chat(self, *, model, history, system_instruction, message):
        self.chat_calls.append({
            "model": model,
            "history": list(history),
            "system_instruction": system_instruction,
            "message": message,
        })
        reply = self.chat_responses.pop(0) if self.chat_responses else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def failing_transport() -> FakeTransport:
    fake = FakeTransport()
    fake.structured_response = TransportError("503 service unavailable")
    fake.speech_response = TransportError("503 service unavailable")
    fake.chat_responses = [TransportError("503 service unavailable")]
    return fake


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "data"


@pytest.fixture
def client(transport, data_dir):
    from main import app

    app.dependency_overrides[get_transport] = lambda: transport
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
