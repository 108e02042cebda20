from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from adeguard.storage.history_store import list_history, load_history_item
from adeguard.storage.report_pdf import render_report_pdf

router = APIRouter(prefix="/history", tags=["history"])


def _load(item_id: str):
    try:
        return load_history_item(item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="History item not found")


@router.get("")
async def get_history():
    return [
        {
            "id": item.id,
            "timestamp": item.timestamp,
            "text": item.text,
            "classification": item.result.classification,
            "overallRiskScore": item.result.overall_risk_score,
        }
        for item in list_history()
    ]


@router.get("/{item_id}")
async def get_history_item(item_id: str):
    return _load(item_id).model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("/{item_id}/report.pdf")
async def download_report(
    item_id: str,
    summary: bool = True,
    entities: bool = True,
    reasoning: bool = True,
    actions: bool = True,
):
    item = _load(item_id)
    flags = {"summary": summary, "entities": entities, "reasoning": reasoning, "actions": actions}

    pdf = render_report_pdf(item.result, sections=[name for name, on in flags.items() if on])
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="ADEGuard_Report_{item.id}.pdf"'},
    )
