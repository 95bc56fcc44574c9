"""
Patient Context - Aggregate models

The PatientContext is the deliverable handed to prompt compilation. Every
model here is frozen: transformations build new instances with model_copy.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinical_context.models.enums import ContextPurpose
from clinical_context.models.records import (
    Alert,
    Assessment,
    Diagnosis,
    Medication,
    PatientRecord,
    Provider,
    Session,
    Transcript,
    TreatmentGoal,
    TreatmentPlan,
)


def calculate_age(date_of_birth: date, today: date) -> int:
    """
    Calculate age in whole years using calendar semantics.

    One year is subtracted when today's month/day has not yet reached the
    birth month/day, so a patient born on 2000-03-01 is still 23 on
    2024-02-29.
    """
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


class Demographics(BaseModel):
    """Patient identity with a calculated age."""

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str
    date_of_birth: date
    age: int = Field(..., ge=0)
    gender: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None


class DiagnosisWithProvider(Diagnosis):
    provider: Optional[Provider] = None


class MedicationWithProvider(Medication):
    provider: Optional[Provider] = None


class TreatmentPlanWithGoals(TreatmentPlan):
    goals: tuple[TreatmentGoal, ...] = Field(default_factory=tuple)
    provider: Optional[Provider] = None


class SessionWithTranscript(Session):
    transcript: Optional[Transcript] = None
    provider: Optional[Provider] = None


class AssessmentResult(Assessment):
    provider: Optional[Provider] = None


class ContextMetadata(BaseModel):
    """Provenance of an assembled context."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    context_version: str = Field(..., description="Schema version of the context")
    generated_at: datetime = Field(..., description="When assembly started")
    token_count: int = Field(default=0, ge=0, description="Estimated tokens of the final context")
    purpose: Optional[ContextPurpose] = None
    truncated: bool = Field(default=False, description="Whether any degradation stage removed data")
    query_duration_ms: int = Field(default=0, ge=0, description="Wall time spent assembling")


class PatientContext(BaseModel):
    """
    Bounded snapshot of a patient's clinical record.

    Collection sections are always tuples, including sections that were not
    requested for the purpose. Only the treatment plan may be absent.
    """

    model_config = ConfigDict(frozen=True)

    patient: PatientRecord
    demographics: Demographics
    diagnoses: tuple[DiagnosisWithProvider, ...] = Field(default_factory=tuple)
    medications: tuple[MedicationWithProvider, ...] = Field(default_factory=tuple)
    treatment_plan: Optional[TreatmentPlanWithGoals] = None
    recent_sessions: tuple[SessionWithTranscript, ...] = Field(default_factory=tuple)
    assessment_history: tuple[AssessmentResult, ...] = Field(default_factory=tuple)
    alerts: tuple[Alert, ...] = Field(default_factory=tuple)
    metadata: ContextMetadata


class PatientContextOptions(BaseModel):
    """Caller-supplied knobs for a single assembly."""

    model_config = ConfigDict(use_enum_values=True)

    purpose: Optional[ContextPurpose] = None
    max_tokens: Optional[int] = Field(default=None, gt=0, description="Overrides the purpose budget")
    max_session_count: Optional[int] = Field(default=None, ge=1)
    max_assessment_count: Optional[int] = Field(default=None, ge=1)
    include_transcripts: bool = True

    @field_validator("purpose", mode="before")
    @classmethod
    def _resolve_purpose(cls, value):
        # Unknown purposes fall back to general, as with an explicit purpose argument.
        if value is None:
            return None
        from clinical_context.profiles import resolve_purpose
        return resolve_purpose(value)
