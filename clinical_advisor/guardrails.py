from .errors import IncompleteSubmissionError
from .schemas import PatientProfile

STRUCTURED_NOTICE = "Please enter patient information and symptoms to begin analysis."
NARRATIVE_NOTICE = "Please enter patient information, vitals or symptoms to begin analysis."


def _blank(value: str) -> bool:
    return not (value or "").strip()


def check_submission(mode: str, profile: PatientProfile, symptoms: str) -> None:
    """Refuse a submission that carries too little input to analyze."""
    if mode == "narrative":
        heart_rate = getattr(profile, "heart_rate", "")
        if _blank(profile.full_name) and _blank(symptoms) and _blank(heart_rate):
            raise IncompleteSubmissionError(NARRATIVE_NOTICE)
        return

    if _blank(profile.full_name) and _blank(symptoms):
        raise IncompleteSubmissionError(STRUCTURED_NOTICE)
