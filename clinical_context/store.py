"""
In-memory record store.

Implements RecordStoreProtocol over plain dicts with the same filters and
orderings as the production queries. Used for tests, fixtures and local
experimentation without a database.
"""

from datetime import datetime
from typing import Iterable, Optional

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


_EPOCH = datetime.min


class InMemoryRecordStore:
    """
    Record store backed by in-process collections.

    Every call is recorded in `calls` as (method name, arguments) so tests
    can verify which fetches an assembly issued.
    """

    def __init__(
        self,
        patients: Iterable[PatientRecord] = (),
        providers: Iterable[Provider] = (),
        diagnoses: Iterable[Diagnosis] = (),
        medications: Iterable[Medication] = (),
        treatment_plans: Iterable[TreatmentPlan] = (),
        treatment_goals: Iterable[TreatmentGoal] = (),
        sessions: Iterable[Session] = (),
        transcripts: Iterable[Transcript] = (),
        assessments: Iterable[Assessment] = (),
        alerts: Iterable[Alert] = (),
    ):
        self.patients = {p.id: p for p in patients}
        self.providers = {p.id: p for p in providers}
        self.diagnoses = list(diagnoses)
        self.medications = list(medications)
        self.treatment_plans = list(treatment_plans)
        self.treatment_goals = list(treatment_goals)
        self.sessions = list(sessions)
        self.transcripts = {t.session_id: t for t in transcripts}
        self.assessments = list(assessments)
        self.alerts = list(alerts)
        self.calls: list[tuple[str, dict]] = []

    def _record(self, method: str, **arguments) -> None:
        self.calls.append((method, arguments))

    def called(self, method: str) -> list[dict]:
        """Arguments of every call made to a method."""
        return [arguments for name, arguments in self.calls if name == method]

    def reset_calls(self) -> None:
        self.calls = []

    async def get_patient_by_id(self, patient_id: str) -> Optional[PatientRecord]:
        self._record("get_patient_by_id", patient_id=patient_id)
        return self.patients.get(patient_id)

    async def get_diagnoses_by_patient_id(
        self, patient_id: str, status: Optional[str] = None
    ) -> list[Diagnosis]:
        self._record("get_diagnoses_by_patient_id", patient_id=patient_id, status=status)
        return [
            d for d in self.diagnoses
            if d.patient_id == patient_id and (status is None or d.status == status)
        ]

    async def get_medications_by_patient_id(
        self, patient_id: str, status: Optional[str] = None
    ) -> list[Medication]:
        self._record("get_medications_by_patient_id", patient_id=patient_id, status=status)
        matches = [
            m for m in self.medications
            if m.patient_id == patient_id and (status is None or m.status == status)
        ]
        return sorted(matches, key=lambda m: m.start_date or datetime.min.date(), reverse=True)

    async def get_treatment_plans_by_patient_id(
        self, patient_id: str, status: Optional[str] = None
    ) -> list[TreatmentPlan]:
        self._record("get_treatment_plans_by_patient_id", patient_id=patient_id, status=status)
        matches = [
            p for p in self.treatment_plans
            if p.patient_id == patient_id and (status is None or p.status == status)
        ]
        return sorted(matches, key=lambda p: p.created_at or _EPOCH, reverse=True)

    async def get_treatment_goals_by_plan_id(self, plan_id: str) -> list[TreatmentGoal]:
        self._record("get_treatment_goals_by_plan_id", plan_id=plan_id)
        return [g for g in self.treatment_goals if g.treatment_plan_id == plan_id]

    async def get_sessions_by_patient_id(
        self, patient_id: str, limit: int = 10, status: Optional[str] = None
    ) -> list[Session]:
        self._record("get_sessions_by_patient_id", patient_id=patient_id, limit=limit, status=status)
        matches = [
            s for s in self.sessions
            if s.patient_id == patient_id and (status is None or s.session_status == status)
        ]
        return sorted(matches, key=lambda s: s.scheduled_at, reverse=True)[:limit]

    async def get_transcript_by_session_id(self, session_id: str) -> Optional[Transcript]:
        self._record("get_transcript_by_session_id", session_id=session_id)
        return self.transcripts.get(session_id)

    async def get_assessments_by_patient_id(
        self,
        patient_id: str,
        assessment_type: Optional[str] = None,
        limit: int = 10,
    ) -> list[Assessment]:
        self._record(
            "get_assessments_by_patient_id",
            patient_id=patient_id,
            assessment_type=assessment_type,
            limit=limit,
        )
        matches = [
            a for a in self.assessments
            if a.patient_id == patient_id
            and (assessment_type is None or a.assessment_type == assessment_type)
        ]
        return sorted(matches, key=lambda a: a.administered_at, reverse=True)[:limit]

    async def get_alerts_by_patient_id(
        self,
        patient_id: str,
        status: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> list[Alert]:
        self._record("get_alerts_by_patient_id", patient_id=patient_id, status=status, severity=severity)
        matches = [
            a for a in self.alerts
            if a.patient_id == patient_id
            and (status is None or a.status == status)
            and (severity is None or a.severity == severity)
        ]
        return sorted(matches, key=lambda a: a.created_at or _EPOCH, reverse=True)

    async def get_provider_by_id(self, provider_id: str) -> Optional[Provider]:
        self._record("get_provider_by_id", provider_id=provider_id)
        return self.providers.get(provider_id)
