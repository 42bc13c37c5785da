"""Subject line and HTML body of the report email sent to the assessor."""

import datetime
from html import escape
from typing import Optional

from pydantic import BaseModel

from .tokens import DECISIONS, decision_url

DECISION_LABELS = {
    "admit": "Admit",
    "admit_with_support": "Admit with support",
    "waitlist": "Waitlist",
    "reject": "Reject",
    "request_info": "Request more information",
}

BAND_COLOURS = {
    "ready": "#16a34a",
    "support": "#2563eb",
    "borderline": "#d97706",
    "other": "#dc2626",
}


class ReportEmailData(BaseModel):
    assessor_name: Optional[str] = None
    student_name: str
    student_ref: str = ""
    school_name: str
    grade: int
    test_date: str
    recommendation_band: str
    overall_academic_pct: float
    english_combined: float
    maths_combined: float
    reasoning_pct: float
    mindset_score: float
    report_url: str


def format_test_date(submitted_at: Optional[str]) -> str:
    """'3 Mar 2026' style date; falls back to today when unparseable."""
    try:
        when = datetime.datetime.fromisoformat((submitted_at or "").replace("Z", "+00:00"))
    except ValueError:
        when = datetime.datetime.now()
    return f"{when.day} {when:%b %Y}"


def email_subject(student_name: str, grade: int, school_name: str) -> str:
    return f"Evalent Admissions Report: {student_name} - Grade {grade} - {school_name}"


def band_colour(band: str) -> str:
    lowered = band.lower()
    if "support" in lowered:
        return BAND_COLOURS["support"]
    if "ready to admit" in lowered:
        return BAND_COLOURS["ready"]
    if "borderline" in lowered:
        return BAND_COLOURS["borderline"]
    return BAND_COLOURS["other"]


def render_report_email(data: ReportEmailData, app_url: str, token: str) -> str:
    """Render the assessor email with score summary, report link and decision links."""
    rows = [
        ("English (Combined)", f"{data.english_combined:.1f}%"),
        ("Mathematics (Combined)", f"{data.maths_combined:.1f}%"),
        ("Reasoning (MCQ)", f"{data.reasoning_pct:.1f}%"),
        ("Mindset", f"{data.mindset_score:.1f} / 4"),
    ]
    score_rows = "\n".join(
        f'<tr><td style="padding:8px 12px;">{escape(name)}</td>'
        f'<td style="padding:8px 12px;text-align:center;font-weight:600;">{value}</td></tr>'
        for name, value in rows
    )
    decision_links = "\n".join(
        f'<a href="{escape(decision_url(app_url, token, decision))}" '
        f'style="display:inline-block;margin:4px;padding:8px 14px;border:1px solid #e2e8f0;'
        f'border-radius:6px;text-decoration:none;">{escape(DECISION_LABELS[decision])}</a>'
        for decision in DECISIONS
    )
    greeting = f"<p>Dear {escape(data.assessor_name)},</p>" if data.assessor_name else ""
    colour = band_colour(data.recommendation_band)
    ref = f"Ref: {escape(data.student_ref)} &bull; " if data.student_ref else ""

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Evalent Report: {escape(data.student_name)}</title></head>
<body style="font-family:'Segoe UI',Arial,sans-serif;color:#1e293b;">
<h1 style="color:#1a365d;">Evalent Admissions Report</h1>
<p style="color:#64748b;">{escape(data.school_name)}</p>
{greeting}
<h2>{escape(data.student_name)}</h2>
<p style="color:#64748b;">{ref}Grade {data.grade} &bull; Test: {escape(data.test_date)}</p>
<p style="border-left:4px solid {colour};padding-left:12px;">
  Recommendation: <strong style="color:{colour};">{escape(data.recommendation_band)}</strong><br>
  Overall Academic: <strong>{data.overall_academic_pct:.1f}%</strong>
</p>
<table cellpadding="0" cellspacing="0" style="border:1px solid #e2e8f0;">
{score_rows}
</table>
<p><a href="{escape(data.report_url)}">View Full Report &rarr;</a></p>
<p>Record your admission decision:</p>
<p>{decision_links}</p>
<p style="font-size:11px;color:#94a3b8;">This email was sent by Evalent on behalf of {escape(data.school_name)}.
Decision links expire in 30 days.</p>
</body>
</html>"""
