"""
Pytest configuration and shared fixtures for the test suite.
"""

from datetime import date, datetime, timedelta

import pytest

from clinical_context.assembler import PatientContextService
from clinical_context.models.context import (
    AssessmentResult,
    ContextMetadata,
    Demographics,
    PatientContext,
    SessionWithTranscript,
)
from clinical_context.models.records import (
    Alert,
    Assessment,
    Diagnosis,
    Medication,
    PatientRecord,
    Provider,
    Session,
    Transcript,
    TranscriptEntry,
    TreatmentGoal,
    TreatmentPlan,
)
from clinical_context.store import InMemoryRecordStore


FIXED_NOW = datetime(2024, 3, 1, 9, 30)
PATIENT_ID = "patient-1"

UTTERANCE = "I have been sleeping better since we changed the evening routine. "


def utterance(length: int) -> str:
    """Transcript text of an exact length."""
    return (UTTERANCE * (length // len(UTTERANCE) + 1))[:length]


def make_transcript(
    session_id: str,
    entries: int = 4,
    entry_chars: int = 150,
    start: datetime = FIXED_NOW,
) -> Transcript:
    return Transcript(
        id=f"transcript-{session_id}",
        session_id=session_id,
        entries=[
            TranscriptEntry(
                speaker="patient" if i % 2 else "therapist",
                text=utterance(entry_chars),
                timestamp=start + timedelta(seconds=30 * i),
            )
            for i in range(entries)
        ],
        duration=30 * entries,
        start_time=start,
    )


# ============================================================================
# Record Store Fixtures
# ============================================================================

@pytest.fixture
def providers():
    """Two providers referenced across records."""
    return [
        Provider(id="provider-1", name="Dana Reyes", title="LCSW", specialty="Psychotherapy", npi_number="1234567890"),
        Provider(id="provider-2", name="Sam Okafor", title="MD", specialty="Psychiatry", npi_number="2345678901"),
    ]


@pytest.fixture
def patient():
    """A patient born on 2000-03-01."""
    return PatientRecord(
        id=PATIENT_ID,
        first_name="John",
        last_name="Doe",
        date_of_birth=date(2000, 3, 1),
        gender="male",
        contact_phone="555-0100",
        contact_email="john.doe@example.com",
    )


@pytest.fixture
def record_store(patient, providers):
    """Store with a fully populated record for one patient."""
    sessions = [
        Session(
            id=f"session-{i}",
            patient_id=PATIENT_ID,
            provider_id="provider-1",
            scheduled_at=FIXED_NOW - timedelta(days=7 * i),
            ended_at=FIXED_NOW - timedelta(days=7 * i) + timedelta(minutes=50),
        )
        for i in range(1, 7)
    ]
    upcoming = Session(
        id="session-upcoming",
        patient_id=PATIENT_ID,
        provider_id="provider-1",
        session_status="scheduled",
        scheduled_at=FIXED_NOW + timedelta(days=7),
    )

    return InMemoryRecordStore(
        patients=[patient],
        providers=providers,
        diagnoses=[
            Diagnosis(id="dx-1", patient_id=PATIENT_ID, provider_id="provider-2",
                      icd10_code="F32.1", description="Major depressive disorder, single episode, moderate"),
            Diagnosis(id="dx-2", patient_id=PATIENT_ID, provider_id="provider-1",
                      icd10_code="F41.1", description="Generalized anxiety disorder"),
            Diagnosis(id="dx-3", patient_id=PATIENT_ID, provider_id="provider-2",
                      icd10_code="F10.10", description="Alcohol use disorder, mild", status="resolved"),
        ],
        medications=[
            Medication(id="med-1", patient_id=PATIENT_ID, provider_id="provider-2",
                       medication_name="Sertraline", dosage="100 mg", frequency="daily",
                       start_date=date(2023, 10, 1)),
            Medication(id="med-2", patient_id=PATIENT_ID, provider_id="provider-2",
                       medication_name="Hydroxyzine", dosage="25 mg", frequency="as needed",
                       start_date=date(2024, 1, 15)),
            Medication(id="med-3", patient_id=PATIENT_ID, provider_id="provider-2",
                       medication_name="Fluoxetine", dosage="20 mg", frequency="daily",
                       start_date=date(2023, 1, 1), status="discontinued"),
        ],
        treatment_plans=[
            TreatmentPlan(id="plan-old", patient_id=PATIENT_ID, provider_id="provider-1",
                          title="Initial stabilization", status="completed",
                          created_at=datetime(2023, 6, 1)),
            TreatmentPlan(id="plan-1", patient_id=PATIENT_ID, provider_id="provider-1",
                          title="CBT for depression and anxiety", created_at=datetime(2023, 10, 1)),
        ],
        treatment_goals=[
            TreatmentGoal(id="goal-1", treatment_plan_id="plan-1",
                          goal_text="Reduce PHQ-9 below 10", status="in_progress",
                          progress_percentage=40, priority=1),
            TreatmentGoal(id="goal-2", treatment_plan_id="plan-1",
                          goal_text="Practice sleep hygiene five nights a week", priority=2),
        ],
        sessions=sessions + [upcoming],
        transcripts=[make_transcript(s.id, start=s.scheduled_at) for s in sessions],
        assessments=[
            Assessment(
                id=f"assessment-{i}",
                patient_id=PATIENT_ID,
                provider_id="provider-1",
                assessment_type="PHQ-9" if i % 2 else "GAD-7",
                total_score=20 - i,
                administered_at=FIXED_NOW - timedelta(days=7 * i),
            )
            for i in range(1, 13)
        ],
        alerts=[
            Alert(id="alert-1", patient_id=PATIENT_ID, provider_id="provider-1",
                  alert_type="suicide_risk", severity="high",
                  alert_title="Passive ideation reported", created_at=FIXED_NOW - timedelta(days=7)),
            Alert(id="alert-2", patient_id=PATIENT_ID, provider_id="provider-1",
                  alert_type="substance_abuse", severity="medium",
                  alert_title="Increased alcohol use", created_at=FIXED_NOW - timedelta(days=14)),
            Alert(id="alert-3", patient_id=PATIENT_ID, provider_id="provider-1",
                  alert_type="violence_risk", severity="low",
                  alert_title="Resolved concern", status="resolved"),
        ],
    )


@pytest.fixture
def service(record_store):
    """Context service over the populated store with a fixed clock."""
    return PatientContextService(record_store, clock=lambda: FIXED_NOW)


# ============================================================================
# Context Fixtures
# ============================================================================

@pytest.fixture
def make_context(patient):
    """Factory for synthetic contexts of controllable size."""
    def _create(
        sessions: int = 5,
        entries_per_session: int = 10,
        entry_chars: int = 200,
        assessments: int = 6,
        truncated: bool = False,
    ) -> PatientContext:
        return PatientContext(
            patient=patient,
            demographics=Demographics(
                id=patient.id,
                first_name=patient.first_name,
                last_name=patient.last_name,
                date_of_birth=patient.date_of_birth,
                age=24,
            ),
            recent_sessions=[
                SessionWithTranscript(
                    id=f"session-{i}",
                    patient_id=patient.id,
                    scheduled_at=FIXED_NOW - timedelta(days=7 * i),
                    transcript=make_transcript(
                        f"session-{i}",
                        entries=entries_per_session,
                        entry_chars=entry_chars,
                    ),
                )
                for i in range(1, sessions + 1)
            ],
            assessment_history=[
                AssessmentResult(
                    id=f"assessment-{i}",
                    patient_id=patient.id,
                    assessment_type="PHQ-9",
                    total_score=15,
                    administered_at=FIXED_NOW - timedelta(days=7 * i),
                )
                for i in range(1, assessments + 1)
            ],
            metadata=ContextMetadata(
                context_version="1.0.0",
                generated_at=FIXED_NOW,
                truncated=truncated,
            ),
        )
    return _create
