"""Data models for patient context assembly."""

from clinical_context.models.context import (
    AssessmentResult,
    ContextMetadata,
    Demographics,
    DiagnosisWithProvider,
    MedicationWithProvider,
    PatientContext,
    PatientContextOptions,
    SessionWithTranscript,
    TreatmentPlanWithGoals,
    calculate_age,
)
from clinical_context.models.enums import ContextPurpose, ContextSection

__all__ = [
    "AssessmentResult",
    "ContextMetadata",
    "ContextPurpose",
    "ContextSection",
    "Demographics",
    "DiagnosisWithProvider",
    "MedicationWithProvider",
    "PatientContext",
    "PatientContextOptions",
    "SessionWithTranscript",
    "TreatmentPlanWithGoals",
    "calculate_age",
]
