import io
from datetime import datetime
from typing import Iterable, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from adeguard.models import AnalysisResult

ALL_SECTIONS = frozenset({"summary", "entities", "reasoning", "actions"})


def _render_section(
    story: list,
    title: str,
    items: Iterable[str],
    section_style,
    body_style,
):
    story.append(Paragraph(title, section_style))
    items = list(items)
    if items:
        for item in items:
            story.append(Paragraph(escape(item), body_style))
    else:
        story.append(Paragraph("-", body_style))


def _bullets(lines: List[str]) -> List[str]:
    return [f"• {line}" for line in lines]


def render_report_pdf(
    result: AnalysisResult,
    sections: Iterable[str] = ALL_SECTIONS,
    generated_at: datetime | None = None,
) -> bytes:
    """Render an AnalysisResult as an A4 PDF report and return its bytes."""
    sections = set(sections)
    generated_at = generated_at or datetime.now()

    styles = getSampleStyleSheet()
    story: list = []

    title_style = ParagraphStyle(
        "Title",
        parent=styles["Heading1"],
        alignment=TA_LEFT,
        spaceAfter=12,
    )

    section_style = ParagraphStyle(
        "Section",
        parent=styles["Heading3"],
        spaceBefore=12,
        spaceAfter=6,
    )

    body_style = styles["Normal"]
    italic_style = styles["Italic"]

    # ---------------- TITLE ----------------
    story.append(Paragraph("ADEGuard Clinical Report", title_style))
    story.append(Paragraph(f"Generated: {generated_at:%Y-%m-%d %H:%M}", body_style))
    story.append(Spacer(1, 12))

    # ---------------- CONTEXT ----------------
    context_table = Table(
        [
            ["Classification", result.classification],
            ["Sentiment", result.sentiment],
            ["Patient Cohort", result.patient_age_group],
            ["Risk Score", f"{result.overall_risk_score}/100"],
        ],
        colWidths=[120, 350],
    )

    context_table.setStyle(
        TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BACKGROUND", (0, 0), (0, -1), colors.whitesmoke),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("FONT", (0, 0), (-1, -1), "Helvetica"),
            ]
        )
    )

    story.append(context_table)
    story.append(Spacer(1, 14))

    # ---------------- SECTIONS ----------------
    if "summary" in sections:
        _render_section(story, "Executive Summary", [result.summary], section_style, body_style)

    if "reasoning" in sections:
        _render_section(story, "Clinical Reasoning", [result.clinical_reasoning], section_style, italic_style)

    if "actions" in sections:
        _render_section(
            story,
            "Recommended Actions",
            _bullets(result.suggested_actions),
            section_style,
            body_style,
        )

    # ---------------- ENTITIES ----------------
    if "entities" in sections:
        story.append(Paragraph("Identified Entities", section_style))
        rows = [["Entity", "Type", "Severity"]]
        for entity in result.entities:
            rows.append([
                Paragraph(escape(entity.text), body_style),
                entity.type.value,
                entity.severity.value if entity.severity else "-",
            ])

        entity_table = Table(rows, colWidths=[250, 110, 110], repeatRows=1)
        entity_table.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ]
            )
        )
        story.append(entity_table)

    # ---------------- TAMIL ----------------
    tamil = result.tamil_analysis
    _render_section(
        story,
        "Tamil Analysis",
        [tamil.summary, tamil.clinical_reasoning] + _bullets(tamil.suggested_actions),
        section_style,
        body_style,
    )

    # ---------------- FOOTER ----------------
    story.append(Spacer(1, 20))
    story.append(
        Paragraph(
            "Generated AI Report, clinician verification required.",
            italic_style,
        )
    )

    out = io.BytesIO()
    doc = SimpleDocTemplate(
        out,
        pagesize=A4,
        rightMargin=36,
        leftMargin=36,
        topMargin=36,
        bottomMargin=36,
        title="ADEGuard Clinical Report",
    )

    doc.build(story)
    return out.getvalue()
