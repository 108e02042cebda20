import json
import logging
from typing import List, Optional

from google.genai import types
from pydantic import ValidationError

from adeguard.errors import SchemaViolationError
from adeguard.llm.router import route_request
from adeguard.llm.transport import GeminiTransport
from adeguard.models import AnalysisResult, Attachment
from adeguard.pipeline.attachments import decode_attachment

logger = logging.getLogger(__name__)

ATTACHMENT_ONLY_PROMPT = "Analyze this clinical input."


def build_parts(text: Optional[str], attachment: Optional[Attachment]) -> List[types.Part]:
    text = (text or "").strip()

    if attachment is None:
        return [types.Part(text=text)]

    return [
        types.Part(text=text or ATTACHMENT_ONLY_PROMPT),
        types.Part.from_bytes(
            data=decode_attachment(attachment),
            mime_type=attachment.mime_type,
        ),
    ]


def parse_analysis(raw_text: str) -> AnalysisResult:
    """Validate a raw service payload into an AnalysisResult or fail."""
    raw_text = (raw_text or "").strip()

    if not raw_text:
        raise SchemaViolationError("empty_llm_response")

    # Defensive markdown stripping
    if raw_text.startswith("```"):
        raw_text = raw_text.strip("`")
        if raw_text.lower().startswith("json"):
            raw_text = raw_text[4:].strip()

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as e:
        raise SchemaViolationError(f"invalid_json: {e.msg}") from e

    if not isinstance(parsed, dict):
        raise SchemaViolationError("invalid_schema: payload is not an object")

    try:
        return AnalysisResult.model_validate(parsed)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        logger.warning("Analysis payload rejected, bad fields: %s", ", ".join(fields))
        raise SchemaViolationError(f"invalid_schema: {', '.join(fields)}") from e


async def analyze(
    text: Optional[str],
    triage_level: str,
    attachment: Optional[Attachment] = None,
    *,
    transport: GeminiTransport,
) -> AnalysisResult:
    """
    Run one structured analysis call.

    Raises InvalidInputError before dispatch when there is nothing to
    analyze; TransportError or SchemaViolationError when the call does
    not yield a complete result.
    """
    selection = route_request(text, triage_level, attachment)

    raw_text = await transport.generate_structured(
        model=selection.model_id,
        parts=build_parts(text, attachment),
        system_instruction=selection.system_instruction,
        schema=selection.output_schema,
    )

    return parse_analysis(raw_text)
