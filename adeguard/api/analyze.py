from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from adeguard.api.common import analysis_payload, to_http_exception
from adeguard.errors import ADEGuardError
from adeguard.llm.analysis import analyze
from adeguard.llm.transport import GeminiTransport, get_transport
from adeguard.pipeline.attachments import encode_upload
from adeguard.storage.history_store import store_analysis

router = APIRouter(tags=["analysis"])


@router.post("/analyze")
async def analyze_endpoint(
    text: str = Form(""),
    triage_level: str = Form("Routine"),
    file: Optional[UploadFile] = File(None),
    transport: GeminiTransport = Depends(get_transport),
):
    try:
        attachment = None
        if file is not None and file.filename:
            attachment = encode_upload(await file.read(), file.content_type, name=file.filename)

        result = await analyze(text, triage_level, attachment, transport=transport)
    except ADEGuardError as e:
        raise to_http_exception(e)

    if text.strip():
        narrative, label = text, text
    else:
        # attachment-only: route_request already refused the empty case
        narrative, label = result.transcript or "", f"[File: {attachment.name}]"

    item = store_analysis(label, result)
    return analysis_payload(result, narrative, item.id)
