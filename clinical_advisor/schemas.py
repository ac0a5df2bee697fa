from sqlmodel import SQLModel, Field as SQLField, Column, JSON
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Literal, Dict, Union
from dataclasses import dataclass
from datetime import datetime, timezone

Mode = Literal["structured", "narrative"]
Likelihood = Literal["HIGH", "MODERATE", "LOW"]
TriageStatus = Literal["NORMAL", "MONITOR", "URGENT", "EMERGENCY"]
VitalStatus = Literal["normal", "warning", "danger", "unknown"]

# -----------------------------
# DATABASE TABLE
# -----------------------------
class AssessmentRecord(SQLModel, table=True):
    """One completed submission of a form session."""
    id: Optional[int] = SQLField(default=None, primary_key=True)
    session_id: str = SQLField(index=True)
    mode: str
    symptoms: str = ""
    profile: Optional[Dict] = SQLField(default=None, sa_column=Column(JSON))
    outcome: str = "ok"
    result: Optional[Dict] = SQLField(default=None, sa_column=Column(JSON))
    timestamp: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc))

# -----------------------------
# FORM DATA
# -----------------------------
class PatientProfile(BaseModel):
    full_name: str = ""
    age: str = ""
    gender: str = ""
    weight: str = ""
    height: str = ""
    blood_group: str = ""

class VitalsProfile(PatientProfile):
    heart_rate: str = ""
    systolic: str = ""
    diastolic: str = ""
    temperature: str = ""
    spo2: str = ""

class VitalSign(BaseModel):
    key: str
    label: str
    value: str
    unit: str
    status: VitalStatus

# -----------------------------
# MODEL OUTPUT (structured mode)
# -----------------------------
class _ModelOutput(BaseModel):
    # The model answers in camelCase; python code uses snake_case.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

class ProbableCondition(_ModelOutput):
    condition: str
    likelihood: Likelihood
    explanation: str

    @field_validator("likelihood", mode="before")
    @classmethod
    def _upper_likelihood(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

class DoctorRecommendation(_ModelOutput):
    name: str
    department: str
    timing: str
    charges: str
    reason_for_referral: str = Field(alias="reasonForReferral")

class AssessmentResult(_ModelOutput):
    impression: str
    probable_conditions: List[ProbableCondition] = Field(alias="probableConditions")
    recommended_actions: List[str] = Field(alias="recommendedActions")
    triage_status: TriageStatus = Field(alias="triageStatus")
    suggested_doctor: DoctorRecommendation = Field(alias="suggestedDoctor")

    @field_validator("triage_status", mode="before")
    @classmethod
    def _upper_status(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

@dataclass(frozen=True)
class ParsedAssessment:
    result: AssessmentResult

@dataclass(frozen=True)
class UnparsedAssessment:
    raw_text: str
    reason: str

ParseOutcome = Union[ParsedAssessment, UnparsedAssessment]

# -----------------------------
# RENDERED VIEWS
# -----------------------------
class ConditionView(BaseModel):
    condition: str
    likelihood: Likelihood
    explanation: str
    badge: str

class ActionView(BaseModel):
    number: int
    text: str

class DoctorView(BaseModel):
    name: str
    department: str
    timing: str
    charges: str
    reason_for_referral: str

class AssessmentView(BaseModel):
    impression: str
    triage_status: TriageStatus
    triage_badge: str
    conditions: List[ConditionView]
    actions: List[ActionView]
    doctor: DoctorView

class NarrativeReport(BaseModel):
    markdown: str
    html: str

# -----------------------------
# API SCHEMAS
# -----------------------------
class CreateSessionRequest(BaseModel):
    mode: Mode = "structured"

class FieldUpdate(BaseModel):
    field: str
    value: str = ""

class SymptomsUpdate(BaseModel):
    symptoms: str = ""

class ResetRequest(BaseModel):
    confirm: bool = False

class SessionState(BaseModel):
    session_id: str
    mode: Mode
    profile: Dict[str, str]
    symptoms: str
    busy: bool
    assessment: Optional[AssessmentView] = None
    report: Optional[NarrativeReport] = None
    vitals: List[VitalSign] = Field(default_factory=list)

class ResetResponse(BaseModel):
    reset: bool
    state: SessionState

class HistoryItem(BaseModel):
    id: int
    mode: str
    symptoms: str
    outcome: str
    timestamp: datetime
    result: Optional[Dict] = None
