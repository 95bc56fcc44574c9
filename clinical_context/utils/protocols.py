"""
Shared Protocol definitions for type hints across the codebase.

These protocols define the interfaces expected from external collaborators
(the clinical record store and downstream pipeline executors), allowing for
dependency injection and testing.
"""

from typing import Any, Optional, Protocol

from clinical_context.models.context import PatientContext
from clinical_context.models.enums import ContextPurpose
from clinical_context.models.pipeline import PipelineResult
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


class RecordStoreProtocol(Protocol):
    """
    Read operations against the clinical record store.

    Every method is an independent read; implementations own their own
    timeout and retry policy.
    """

    async def get_patient_by_id(self, patient_id: str) -> Optional[PatientRecord]:
        ...

    async def get_diagnoses_by_patient_id(
        self, patient_id: str, status: Optional[str] = None
    ) -> list[Diagnosis]:
        ...

    async def get_medications_by_patient_id(
        self, patient_id: str, status: Optional[str] = None
    ) -> list[Medication]:
        ...

    async def get_treatment_plans_by_patient_id(
        self, patient_id: str, status: Optional[str] = None
    ) -> list[TreatmentPlan]:
        """Plans for the patient, most recently created first."""
        ...

    async def get_treatment_goals_by_plan_id(self, plan_id: str) -> list[TreatmentGoal]:
        ...

    async def get_sessions_by_patient_id(
        self, patient_id: str, limit: int = 10, status: Optional[str] = None
    ) -> list[Session]:
        """Sessions for the patient, most recently scheduled first."""
        ...

    async def get_transcript_by_session_id(self, session_id: str) -> Optional[Transcript]:
        ...

    async def get_assessments_by_patient_id(
        self,
        patient_id: str,
        assessment_type: Optional[str] = None,
        limit: int = 10,
    ) -> list[Assessment]:
        """Assessments for the patient, most recently administered first."""
        ...

    async def get_alerts_by_patient_id(
        self,
        patient_id: str,
        status: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> list[Alert]:
        ...

    async def get_provider_by_id(self, provider_id: str) -> Optional[Provider]:
        ...


class PipelineExecutorProtocol(Protocol):
    """Downstream analysis pipeline that consumes an assembled context."""

    async def analyze(
        self,
        purpose: ContextPurpose,
        context: PatientContext,
        session_transcript: str = "",
        variables: Optional[dict[str, Any]] = None,
    ) -> PipelineResult:
        """
        Run the pipeline for a purpose.

        Args:
            purpose: Pipeline to run
            context: Assembled patient context
            session_transcript: Raw transcript text of the current session
            variables: Additional template variables

        Returns:
            PipelineResult with success flag and execution metadata
        """
        ...
