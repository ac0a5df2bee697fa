import json
import re

from pydantic import ValidationError

from .schemas import AssessmentResult, ParsedAssessment, ParseOutcome, UnparsedAssessment

_JSON_FENCE = re.compile(r"```json\n?([\s\S]*?)\n?```")
_ANY_FENCE = re.compile(r"```\n?([\s\S]*?)\n?```")


def strip_code_fence(text: str) -> str:
    """Return the content of the first fenced block, or the text unchanged."""
    match = _JSON_FENCE.search(text) or _ANY_FENCE.search(text)
    if match:
        return match.group(1)
    return text


def parse_assessment(text: str) -> ParseOutcome:
    """
    Turn raw model output into an AssessmentResult.

    Never raises: anything that is not a JSON object matching the schema comes
    back as UnparsedAssessment with the raw text attached.
    """
    raw = text or "{}"
    cleaned = strip_code_fence(raw).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return UnparsedAssessment(raw_text=raw, reason=f"Invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        return UnparsedAssessment(raw_text=raw, reason="Expected a JSON object")

    try:
        result = AssessmentResult.model_validate(data)
    except ValidationError as e:
        return UnparsedAssessment(raw_text=raw, reason=f"Schema mismatch: {e.error_count()} error(s)")
    return ParsedAssessment(result=result)
