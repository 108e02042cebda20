from typing import Any, Dict, Optional

from fastapi import HTTPException

from adeguard.errors import (
    ADEGuardError,
    AnalysisFailedError,
    AttachmentTooLargeError,
    DeviceAccessError,
    InvalidInputError,
    SchemaViolationError,
    UnsupportedMediaTypeError,
)
from adeguard.llm.speech import read_aloud_for
from adeguard.models import AnalysisResult
from adeguard.pipeline.annotate import annotate, segments_to_wire


def risk_band(score: int) -> str:
    if score > 70:
        return "high"
    if score > 40:
        return "elevated"
    return "low"


def error_kind(exc: ADEGuardError) -> str:
    if isinstance(exc, InvalidInputError):
        return "invalid_input"
    if isinstance(exc, SchemaViolationError):
        return "schema_violation"
    if isinstance(exc, AnalysisFailedError):
        return "transport_failure"
    if isinstance(exc, DeviceAccessError):
        return "device_access"
    return "error"


def to_http_exception(exc: ADEGuardError) -> HTTPException:
    if isinstance(exc, AttachmentTooLargeError):
        return HTTPException(status_code=413, detail=str(exc))
    if isinstance(exc, UnsupportedMediaTypeError):
        return HTTPException(status_code=415, detail=str(exc))
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AnalysisFailedError):
        return HTTPException(status_code=502, detail=f"Analysis did not complete: {exc}")
    return HTTPException(status_code=500, detail=str(exc))


def analysis_payload(
    result: AnalysisResult,
    narrative: str,
    history_id: Optional[str] = None,
) -> Dict[str, Any]:
    read_aloud = read_aloud_for(result)
    return {
        "historyId": history_id,
        "result": result.to_wire(),
        "narrative": narrative,
        "segments": segments_to_wire(annotate(narrative, result.entities)),
        "riskBand": risk_band(result.overall_risk_score),
        "readAloud": {"text": read_aloud.text, "voice": read_aloud.voice.value},
    }
