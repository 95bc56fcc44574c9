"""
Data models for records returned by the clinical record store.

These mirror the storage layer's rows. They are owned by the store and are
read-only from the point of view of context assembly.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordModel(BaseModel):
    """Base for all store records: immutable once loaded."""

    model_config = ConfigDict(frozen=True)


class Provider(RecordModel):
    """A clinician referenced by other records."""

    id: str
    name: Optional[str] = None
    title: Optional[str] = None
    specialty: Optional[str] = None
    npi_number: Optional[str] = Field(default=None, max_length=10)


class PatientRecord(RecordModel):
    """Canonical patient identity record."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class Diagnosis(RecordModel):
    """An ICD-10 coded diagnosis."""

    id: str
    patient_id: str
    provider_id: Optional[str] = None
    session_id: Optional[str] = None
    icd10_code: str
    description: str
    status: str = Field(default="active", description="active, resolved, in_remission")
    onset_date: Optional[date] = None
    resolved_date: Optional[date] = None


class Medication(RecordModel):
    """A prescribed medication."""

    id: str
    patient_id: str
    provider_id: Optional[str] = None
    medication_name: str
    dosage: str
    frequency: str
    route: str = "oral"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = Field(default="active", description="active, discontinued, completed")
    notes: Optional[str] = None


class TreatmentPlan(RecordModel):
    """A treatment plan. At most one is expected to be active."""

    id: str
    patient_id: str
    provider_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    status: str = Field(default="active", description="active, completed, paused, cancelled")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None


class TreatmentGoal(RecordModel):
    """A goal within a treatment plan."""

    id: str
    treatment_plan_id: str
    goal_text: str
    target_date: Optional[date] = None
    status: str = "not_started"
    progress_percentage: int = Field(default=0, ge=0, le=100)
    priority: int = Field(default=3, ge=1, le=5, description="1 (highest) to 5 (lowest)")


class Session(RecordModel):
    """A scheduled or completed clinical session."""

    id: str
    patient_id: str
    provider_id: Optional[str] = None
    session_type: str = "individual"
    session_status: str = Field(default="ended", description="scheduled, in_progress, ended")
    scheduled_at: datetime
    ended_at: Optional[datetime] = None


class TranscriptEntry(RecordModel):
    """One utterance in a session transcript."""

    speaker: str
    text: str = ""
    timestamp: Optional[datetime] = None


class Transcript(RecordModel):
    """Full transcript of a session, entries in spoken order."""

    id: str
    session_id: str
    entries: tuple[TranscriptEntry, ...] = Field(default_factory=tuple)
    duration: int = Field(default=0, ge=0, description="Duration in seconds")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    word_count: Optional[int] = None


class Assessment(RecordModel):
    """A scored administration of a standardized instrument (PHQ-9, GAD-7, ...)."""

    id: str
    patient_id: str
    provider_id: Optional[str] = None
    session_id: Optional[str] = None
    assessment_type: str
    total_score: int
    severity: Optional[str] = None
    responses: tuple[dict[str, Any], ...] = Field(default_factory=tuple)
    administered_at: datetime


class Alert(RecordModel):
    """An unresolved clinical flag raised against a patient."""

    id: str
    patient_id: str
    provider_id: Optional[str] = None
    session_id: Optional[str] = None
    alert_type: str
    severity: str = Field(..., description="low, medium, high, critical")
    risk_score: Optional[int] = Field(default=None, ge=0, le=100)
    alert_title: str
    alert_description: str = ""
    recommended_actions: tuple[str, ...] = Field(default_factory=tuple)
    status: str = Field(default="new", description="new, acknowledged, resolved, false_positive")
    created_at: Optional[datetime] = None
