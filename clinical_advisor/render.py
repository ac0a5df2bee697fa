import re

from markupsafe import Markup, escape

from .schemas import (
    ActionView,
    AssessmentResult,
    AssessmentView,
    ConditionView,
    DoctorView,
)

TRIAGE_BADGES = {"EMERGENCY": "badge-emergency"}
DEFAULT_TRIAGE_BADGE = "badge-info"

LIKELIHOOD_BADGES = {
    "HIGH": "badge-high",
    "MODERATE": "badge-moderate",
    "LOW": "badge-low",
}

# -----------------------------
# STRUCTURED REPORT
# -----------------------------
def present_assessment(result: AssessmentResult) -> AssessmentView:
    doctor = result.suggested_doctor
    return AssessmentView(
        impression=result.impression,
        triage_status=result.triage_status,
        triage_badge=TRIAGE_BADGES.get(result.triage_status, DEFAULT_TRIAGE_BADGE),
        conditions=[
            ConditionView(
                condition=c.condition,
                likelihood=c.likelihood,
                explanation=c.explanation,
                badge=LIKELIHOOD_BADGES[c.likelihood],
            )
            for c in result.probable_conditions
        ],
        actions=[
            ActionView(number=i, text=action)
            for i, action in enumerate(result.recommended_actions, start=1)
        ],
        doctor=DoctorView(
            name=doctor.name,
            department=doctor.department,
            timing=doctor.timing,
            charges=doctor.charges,
            reason_for_referral=doctor.reason_for_referral,
        ),
    )

# -----------------------------
# MARKDOWN REPORT
# -----------------------------
# Order matters: the paragraph pass skips lines that already start with a tag
# produced by the heading or bullet passes.
HEADING_RULES = [
    (re.compile(r"^### (.*)$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^## (.*)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.*)$", re.MULTILINE), r"<h1>\1</h1>"),
]
BULLET_RULES = [
    (re.compile(r"^\* (.*)$", re.MULTILINE), r"<li>\1</li>"),
    (re.compile(r"^- (.*)$", re.MULTILINE), r"<li>\1</li>"),
]
BOLD_RULES = [
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
]


def _apply(rules, text: str) -> str:
    for pattern, replacement in rules:
        text = pattern.sub(replacement, text)
    return text


def _wrap_paragraphs(text: str) -> str:
    lines = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("<h") or stripped.startswith("<li"):
            lines.append(stripped)
        else:
            lines.append(f"<p>{stripped}</p>")
    return "\n".join(lines)


def render_markdown(text: str) -> Markup:
    """
    Render the small Markdown subset the narrative report uses.

    Model output is untrusted, so it is HTML-escaped before any tag is added.
    """
    html = str(escape(text.replace("\r\n", "\n")))
    html = _apply(HEADING_RULES, html)
    html = _apply(BULLET_RULES, html)
    html = _apply(BOLD_RULES, html)
    return Markup(_wrap_paragraphs(html))
