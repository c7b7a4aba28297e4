"""
PDF exports for administrators: the per-student report and the subscribers
list. Both render the dicts built by ``AdminService`` into A4 documents
with reportlab.
"""

import datetime
import io
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from lms.config import settings

HEADER_COLOR = colors.HexColor("#1e40af")
ALERT_COLOR = colors.HexColor("#dc2626")
RECOMMENDATION_COLOR = colors.HexColor("#059669")
MARGIN = 50

SUMMARY_COLUMNS = [200, 150, 150]
PROFILE_COLUMNS = [150, 350]


def _styles() -> Dict[str, ParagraphStyle]:
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(name="ReportTitle", parent=styles["Title"], textColor=HEADER_COLOR),
        "subtitle": ParagraphStyle(
            name="ReportSubtitle", parent=styles["Normal"], alignment=1, textColor=colors.HexColor("#666666")
        ),
        "heading": ParagraphStyle(name="Section", parent=styles["Heading2"], textColor=HEADER_COLOR),
        "subheading": ParagraphStyle(name="Subsection", parent=styles["Heading3"], textColor=HEADER_COLOR),
        "alerts": ParagraphStyle(name="Alerts", parent=styles["Heading3"], textColor=ALERT_COLOR),
        "recommendations": ParagraphStyle(
            name="Recommendations", parent=styles["Heading3"], textColor=RECOMMENDATION_COLOR
        ),
        "body": styles["Normal"],
        "bullet": ParagraphStyle(name="BulletItem", parent=styles["Normal"], leftIndent=20),
    }


def _text(value: Any) -> str:
    return escape("" if value is None else str(value))


def _table(headers: List[str], rows: List[List[Any]], col_widths: List[int]) -> Table:
    """A grid with a coloured header row and alternating row backgrounds."""
    data = [headers] + [["" if cell is None else str(cell) for cell in row] for row in rows]
    table = Table(data, colWidths=col_widths, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 11),
        ("FONTSIZE", (0, 1), (-1, -1), 10),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.HexColor("#f9fafb"), colors.white]),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    return table


def _percent(ratio: Optional[float]) -> str:
    return f"{(ratio or 0) * 100:.1f}%"


def _share(count: int, total: int) -> str:
    return f"{count / total * 100:.1f}%" if total > 0 else "0%"


def _build(story: List[Any]) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4, leftMargin=MARGIN, rightMargin=MARGIN, topMargin=MARGIN, bottomMargin=MARGIN
    )
    doc.build(story)
    content = buffer.getvalue()
    buffer.close()
    return content


def _profile_rows(email: str, profile: Dict[str, Any]) -> List[List[Any]]:
    rows = [
        ["Email", email],
        ["Phone", profile.get("phone") or "N/A"],
        ["Country", profile.get("country") or "N/A"],
        ["City", profile.get("city") or "N/A"],
        ["Is Student", "Yes" if profile.get("isStudent") else "No"],
    ]
    if profile.get("isStudent"):
        rows.append(["University", profile.get("university") or "N/A"])
        rows.append(["Major", profile.get("major") or "N/A"])
        if profile.get("educationLevel"):
            rows.append(["Education Level", profile["educationLevel"]])
        if profile.get("graduationYear"):
            rows.append(["Graduation Year", profile["graduationYear"]])
    if profile.get("bio"):
        rows.append(["Bio", profile["bio"]])
    for field, label in (("skills", "Skills"), ("interests", "Interests")):
        if isinstance(profile.get(field), list) and profile[field]:
            rows.append([label, ", ".join(profile[field])])
    return rows


def _course_section(entry: Dict[str, Any], styles: Dict[str, ParagraphStyle]) -> List[Any]:
    metrics = entry["metrics"]
    attendance = entry["attendanceSummary"]
    assignments = entry["assignmentSummary"]
    exams = entry["examsSummary"]

    story = [
        PageBreak(),
        Paragraph(f"Course: {_text(entry['course']['title'])}", styles["heading"]),
        Paragraph("Attendance Summary", styles["subheading"]),
        _table(["Status", "Count", "Percentage"], [
            ["Total Sessions", attendance["total"], "100%"],
            ["Present", attendance["present"], _share(attendance["present"], attendance["total"])],
            ["Absent", attendance["absent"], _share(attendance["absent"], attendance["total"])],
            ["Late", attendance["late"], _share(attendance["late"], attendance["total"])],
            ["Excused", attendance["excused"], _share(attendance["excused"], attendance["total"])],
            ["Attendance Rate", _percent(metrics.get("attendanceRate")), "-"],
        ], SUMMARY_COLUMNS),
        Spacer(1, 16),
        Paragraph("Assignments Summary", styles["subheading"]),
        _table(["Metric", "Value", "Percentage"], [
            ["Total Assignments", assignments["total"], "100%"],
            ["Submitted", assignments["submitted"], _share(assignments["submitted"], assignments["total"])],
            ["Approved", assignments["approved"], _share(assignments["approved"], assignments["submitted"])],
            ["Needs Changes", assignments["needsChanges"],
             _share(assignments["needsChanges"], assignments["submitted"])],
            ["Completion Rate", _percent(metrics.get("assignmentCompletionRate")), "-"],
            ["Quality Score", _percent(metrics.get("assignmentQuality")), "-"],
        ], SUMMARY_COLUMNS),
        Spacer(1, 16),
        Paragraph("Exams/Quizzes Summary", styles["subheading"]),
        _table(["Type", "Attempts", "Average Score"], [
            ["Quizzes", exams["quizAttempts"], "-"],
            ["Exams", exams["examAttempts"], "-"],
            ["Total", exams["quizAttempts"] + exams["examAttempts"], f"{exams['avgScore']:.1f}/10"],
        ], SUMMARY_COLUMNS),
        Spacer(1, 16),
        Paragraph("Overall Score", styles["subheading"]),
        _table(["Component", "Score", "Weight"], [
            ["Attendance Rate", _percent(metrics.get("attendanceRate")), "30%"],
            ["Assignments", _percent(
                (metrics.get("assignmentCompletionRate") or 0) * 0.5 + (metrics.get("assignmentQuality") or 0) * 0.5
            ), "40%"],
            ["Exams/Quizzes", _percent(metrics.get("examsAvg")), "30%"],
            ["Overall Score", f"{metrics.get('overallScore') or 0:.1f}/100", "100%"],
        ], SUMMARY_COLUMNS),
    ]

    for key, title in (("alerts", "Alerts"), ("recommendations", "Recommendations")):
        items = metrics.get(key) or []
        if items:
            story.append(Spacer(1, 12))
            story.append(Paragraph(title, styles[key]))
            story.extend(Paragraph(f"&bull; {_text(item)}", styles["bullet"]) for item in items)
    return story


def student_report_pdf(report: Dict[str, Any]) -> bytes:
    """
    Render a student report as returned by ``AdminService.student_report``.

    The first page holds the profile overview; every enrollment gets its
    own page with attendance, assignment, assessment and overall score
    tables followed by the course alerts and recommendations.
    """
    styles = _styles()
    profile = report.get("profile") or {}
    name = profile.get("fullName4") or report["name"]

    story = [
        Paragraph(_text(settings.PROJECT_NAME), styles["title"]),
        Paragraph(f"Report Date: {datetime.date.today().isoformat()}", styles["subtitle"]),
        Spacer(1, 24),
        Paragraph(f"Student Report: {_text(name)}", styles["heading"]),
        Paragraph("Profile Overview", styles["subheading"]),
        _table(["Field", "Value"], _profile_rows(report["email"], profile), PROFILE_COLUMNS),
    ]
    for entry in report["enrollments"]:
        story.extend(_course_section(entry, styles))
    return _build(story)


def subscribers_pdf(subscribers: List[Dict[str, Any]]) -> bytes:
    """Render the filtered subscribers list, one block of contact lines per user."""
    styles = _styles()
    story = [
        Paragraph(f"{_text(settings.PROJECT_NAME)} - Subscribers Report", styles["title"]),
        Paragraph(f"Generated: {datetime.date.today().isoformat()}", styles["subtitle"]),
        Spacer(1, 24),
        Paragraph("Subscribers List", styles["heading"]),
    ]
    if not subscribers:
        story.append(Paragraph("No subscribers found.", styles["body"]))

    for index, subscriber in enumerate(subscribers, start=1):
        profile = subscriber.get("profile") or {}
        lines = [f"Email: {subscriber['email']}"]
        if profile.get("phone"):
            lines.append(f"Phone: {profile['phone']}")
        location = ", ".join(part for part in (profile.get("city"), profile.get("country")) if part)
        if location:
            lines.append(f"Location: {location}")
        if "isStudent" in profile:
            lines.append(f"Student: {'Yes' if profile['isStudent'] else 'No'}")
        for field, label in (("university", "University"), ("major", "Major"), ("heardFrom", "Heard From")):
            if profile.get(field):
                lines.append(f"{label}: {profile[field]}")
        if isinstance(profile.get("skills"), list) and profile["skills"]:
            lines.append(f"Skills: {', '.join(profile['skills'])}")

        name = profile.get("fullName4") or subscriber.get("name") or "N/A"
        story.append(Paragraph(f"<b>{index}. {_text(name)}</b>", styles["subheading"]))
        story.extend(Paragraph(_text(line), styles["body"]) for line in lines)
        story.append(Spacer(1, 10))
    return _build(story)
