"""
Context Assembler - builds a PatientContext from the record store.

Handles:
- Existence check and demographics derivation
- Concurrent fan-out of section fetches (all seven, or a purpose's subset)
- Per-record provider enrichment within each section
- Handing the merged draft to the degradation optimizer

A missing patient yields None. Any store failure aborts the whole assembly
with UpstreamFetchError; a partially assembled context is never returned.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from clinical_context.config import ContextSettings
from clinical_context.errors import ContextAssemblyError, DataIntegrityError, UpstreamFetchError
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
from clinical_context.models.records import (
    Alert,
    PatientRecord,
    Provider,
    Session,
    Transcript,
)
from clinical_context.optimizer import optimize_context
from clinical_context.profiles import (
    ALL_SECTIONS,
    get_profile,
    get_token_budget,
    resolve_purpose,
    sections_by_priority,
)
from clinical_context.utils.logging import AssemblyLogger, AssemblyStage
from clinical_context.utils.protocols import RecordStoreProtocol


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SectionRequest:
    """Which sections to fetch for one assembly, and with what limits."""

    sections: frozenset[ContextSection]
    session_limit: int
    include_transcripts: bool
    assessment_limit: int


def _tighten(limit: int, override: Optional[int]) -> int:
    """Apply a caller override that may only lower a limit."""
    if override is None:
        return limit
    return min(limit, override)


class PatientContextService:
    """
    Assembles patient contexts for downstream pipelines.

    The service holds no per-patient state; one instance can serve any
    number of concurrent assemblies.
    """

    def __init__(
        self,
        store: RecordStoreProtocol,
        settings: Optional[ContextSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the service.

        Args:
            store: Record store providing the read operations
            settings: Assembly constants (defaults when omitted)
            clock: Source of the current time, used for generation time and age
        """
        self.store = store
        self.settings = settings or ContextSettings()
        self.clock = clock

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    async def assemble(
        self,
        patient_id: str,
        options: Optional[PatientContextOptions] = None,
    ) -> Optional[PatientContext]:
        """
        Assemble a context, scoped to options.purpose when one is given.

        An unknown purpose in options resolves to general, the same fallback
        get_context_for_purpose applies.

        Args:
            patient_id: Patient to assemble for
            options: Purpose, budget and limit overrides

        Returns:
            PatientContext, or None if the patient does not exist
        """
        options = options or PatientContextOptions()
        if options.purpose is None:
            return await self.get_full_context(patient_id, options)
        return await self.get_context_for_purpose(patient_id, options.purpose, options)

    async def get_full_context(
        self,
        patient_id: str,
        options: Optional[PatientContextOptions] = None,
    ) -> Optional[PatientContext]:
        """
        Assemble every section with default or overridden limits.

        Args:
            patient_id: Patient to assemble for
            options: Limit overrides; options.purpose only selects the budget

        Returns:
            PatientContext, or None if the patient does not exist
        """
        options = options or PatientContextOptions()
        request = SectionRequest(
            sections=ALL_SECTIONS,
            session_limit=options.max_session_count or self.settings.default_session_count,
            include_transcripts=options.include_transcripts,
            assessment_limit=options.max_assessment_count or self.settings.default_assessment_count,
        )
        max_tokens = options.max_tokens or get_token_budget(options.purpose)
        purpose = resolve_purpose(options.purpose) if options.purpose is not None else None

        return await self._assemble(patient_id, request, purpose, max_tokens)

    async def get_context_for_purpose(
        self,
        patient_id: str,
        purpose: Union[ContextPurpose, str],
        options: Optional[PatientContextOptions] = None,
    ) -> Optional[PatientContext]:
        """
        Assemble only the sections the purpose's profile requires.

        Sections outside the profile come back empty. options.max_tokens
        replaces the profile budget; session and assessment counts in
        options can only lower the profile's limits.

        Args:
            patient_id: Patient to assemble for
            purpose: Pipeline the context is for
            options: Budget and limit overrides

        Returns:
            PatientContext, or None if the patient does not exist
        """
        options = options or PatientContextOptions()
        profile = get_profile(purpose)
        request = SectionRequest(
            sections=profile.sections,
            session_limit=_tighten(
                profile.session_limit or self.settings.default_session_count,
                options.max_session_count,
            ),
            include_transcripts=profile.include_transcripts,
            assessment_limit=_tighten(
                profile.assessment_limit or self.settings.default_assessment_count,
                options.max_assessment_count,
            ),
        )
        max_tokens = options.max_tokens or profile.max_tokens

        return await self._assemble(patient_id, request, profile.purpose, max_tokens)

    async def _assemble(
        self,
        patient_id: str,
        request: SectionRequest,
        purpose: Optional[ContextPurpose],
        max_tokens: int,
    ) -> Optional[PatientContext]:
        started = time.perf_counter()
        generated_at = self.clock()
        log = AssemblyLogger(logger, patient_id=patient_id, purpose=purpose.value if purpose else None)

        log.stage(
            AssemblyStage.ASSEMBLY_START,
            sections=",".join(sorted(s.value for s in request.sections)),
            budget=max_tokens,
        )

        try:
            patient = await self._fetch(
                "patient", patient_id, self.store.get_patient_by_id(patient_id), log,
            )
            if patient is None:
                log.stage(AssemblyStage.NOT_FOUND)
                return None

            demographics = self._derive_demographics(patient, generated_at.date())

            fetches = self._section_fetches(patient_id, request, purpose, log)
            results = await asyncio.gather(*fetches.values())
        except ContextAssemblyError as e:
            log.stage(
                AssemblyStage.FAILED,
                level=logging.ERROR,
                error=type(e).__name__,
                section=getattr(e, "section", None),
                cause=type(e.__cause__).__name__ if e.__cause__ else None,
                reason=str(e),
            )
            raise

        sections = dict(zip(fetches.keys(), results))

        draft = PatientContext(
            patient=patient,
            demographics=demographics,
            diagnoses=sections.get(ContextSection.DIAGNOSES, []),
            medications=sections.get(ContextSection.MEDICATIONS, []),
            treatment_plan=sections.get(ContextSection.TREATMENT_PLAN),
            recent_sessions=sections.get(ContextSection.RECENT_SESSIONS, []),
            assessment_history=sections.get(ContextSection.ASSESSMENT_HISTORY, []),
            alerts=sections.get(ContextSection.ALERTS, []),
            metadata=ContextMetadata(
                context_version=self.settings.context_version,
                generated_at=generated_at,
                purpose=purpose,
            ),
        )

        context = optimize_context(draft, max_tokens, self.settings, log)

        duration_ms = int((time.perf_counter() - started) * 1000)
        context = context.model_copy(update={
            "metadata": context.metadata.model_copy(update={"query_duration_ms": duration_ms}),
        })

        log.stage(
            AssemblyStage.COMPLETE,
            tokens=context.metadata.token_count,
            truncated=context.metadata.truncated,
            duration_ms=duration_ms,
        )
        return context

    def _section_fetches(
        self,
        patient_id: str,
        request: SectionRequest,
        purpose: Optional[ContextPurpose],
        log: AssemblyLogger,
    ) -> dict[ContextSection, Awaitable[Any]]:
        """Build one fetch per requested section, most important first."""
        fetchers: dict[ContextSection, Callable[[], Awaitable[Any]]] = {
            ContextSection.DIAGNOSES: lambda: self.get_diagnoses(patient_id, log=log),
            ContextSection.MEDICATIONS: lambda: self.get_medications(patient_id, log=log),
            ContextSection.TREATMENT_PLAN: lambda: self.get_treatment_plan(patient_id, log=log),
            ContextSection.RECENT_SESSIONS: lambda: self.get_recent_sessions(
                patient_id,
                limit=request.session_limit,
                include_transcripts=request.include_transcripts,
                log=log,
            ),
            ContextSection.ASSESSMENT_HISTORY: lambda: self.get_assessment_history(
                patient_id, limit=request.assessment_limit, log=log,
            ),
            ContextSection.ALERTS: lambda: self.get_alerts(patient_id, log=log),
        }

        return {
            section: fetchers[section]()
            for section in sections_by_priority(purpose)
            if section in request.sections and section in fetchers
        }

    # =========================================================================
    # DEMOGRAPHICS
    # =========================================================================

    def _derive_demographics(self, patient: PatientRecord, today: date) -> Demographics:
        if patient.date_of_birth is None:
            raise DataIntegrityError(patient.id, "demographics", "date of birth is missing")
        if not patient.first_name or not patient.last_name:
            raise DataIntegrityError(patient.id, "demographics", "name is missing")

        age = calculate_age(patient.date_of_birth, today)
        if age < 0:
            raise DataIntegrityError(patient.id, "demographics", "date of birth is in the future")

        return Demographics(
            id=patient.id,
            first_name=patient.first_name,
            last_name=patient.last_name,
            date_of_birth=patient.date_of_birth,
            age=age,
            gender=patient.gender,
            contact_phone=patient.contact_phone,
            contact_email=patient.contact_email,
            address=patient.address,
        )

    async def get_patient_demographics(
        self,
        patient_id: str,
        log: Optional[AssemblyLogger] = None,
    ) -> Optional[Demographics]:
        """Demographics with calculated age, or None if the patient does not exist."""
        log = log or AssemblyLogger(logger, patient_id=patient_id)
        patient = await self._fetch(
            ContextSection.DEMOGRAPHICS.value, patient_id, self.store.get_patient_by_id(patient_id), log,
        )
        if patient is None:
            return None
        return self._derive_demographics(patient, self.clock().date())

    # =========================================================================
    # SECTION FETCHES
    # =========================================================================

    async def get_diagnoses(
        self,
        patient_id: str,
        status: Optional[str] = None,
        log: Optional[AssemblyLogger] = None,
    ) -> list[DiagnosisWithProvider]:
        """Diagnoses (active by default) with their providers attached."""
        async def load() -> list[DiagnosisWithProvider]:
            diagnoses = await self.store.get_diagnoses_by_patient_id(
                patient_id, status=status or self.settings.diagnosis_status,
            )
            providers = await self._lookup_providers(diagnoses)
            return [
                DiagnosisWithProvider(**diagnosis.model_dump(), provider=provider)
                for diagnosis, provider in zip(diagnoses, providers)
            ]

        return await self._fetch(ContextSection.DIAGNOSES.value, patient_id, load(), log)

    async def get_medications(
        self,
        patient_id: str,
        status: Optional[str] = None,
        log: Optional[AssemblyLogger] = None,
    ) -> list[MedicationWithProvider]:
        """Medications (active by default) with their providers attached."""
        async def load() -> list[MedicationWithProvider]:
            medications = await self.store.get_medications_by_patient_id(
                patient_id, status=status or self.settings.medication_status,
            )
            providers = await self._lookup_providers(medications)
            return [
                MedicationWithProvider(**medication.model_dump(), provider=provider)
                for medication, provider in zip(medications, providers)
            ]

        return await self._fetch(ContextSection.MEDICATIONS.value, patient_id, load(), log)

    async def get_treatment_plan(
        self,
        patient_id: str,
        log: Optional[AssemblyLogger] = None,
    ) -> Optional[TreatmentPlanWithGoals]:
        """The most recent active plan with goals and provider, or None."""
        async def load() -> Optional[TreatmentPlanWithGoals]:
            plans = await self.store.get_treatment_plans_by_patient_id(
                patient_id, status=self.settings.treatment_plan_status,
            )
            if not plans:
                return None

            plan = plans[0]
            goals, provider = await asyncio.gather(
                self.store.get_treatment_goals_by_plan_id(plan.id),
                self._lookup_provider(plan.provider_id),
            )
            return TreatmentPlanWithGoals(**plan.model_dump(), goals=goals, provider=provider)

        return await self._fetch(ContextSection.TREATMENT_PLAN.value, patient_id, load(), log)

    async def get_recent_sessions(
        self,
        patient_id: str,
        limit: Optional[int] = None,
        include_transcripts: bool = True,
        log: Optional[AssemblyLogger] = None,
    ) -> list[SessionWithTranscript]:
        """Most recent ended sessions, with transcripts and providers attached."""
        limit = limit or self.settings.default_session_count

        async def enrich(session: Session) -> SessionWithTranscript:
            transcript, provider = await asyncio.gather(
                self._lookup_transcript(session.id, include_transcripts),
                self._lookup_provider(session.provider_id),
            )
            return SessionWithTranscript(**session.model_dump(), transcript=transcript, provider=provider)

        async def load() -> list[SessionWithTranscript]:
            sessions = await self.store.get_sessions_by_patient_id(
                patient_id, limit=limit, status=self.settings.session_status,
            )
            return list(await asyncio.gather(*(enrich(session) for session in sessions)))

        return await self._fetch(ContextSection.RECENT_SESSIONS.value, patient_id, load(), log)

    async def get_assessment_history(
        self,
        patient_id: str,
        assessment_type: Optional[str] = None,
        limit: Optional[int] = None,
        log: Optional[AssemblyLogger] = None,
    ) -> list[AssessmentResult]:
        """Most recent assessments (optionally of one type) with providers attached."""
        limit = limit or self.settings.default_assessment_count

        async def load() -> list[AssessmentResult]:
            assessments = await self.store.get_assessments_by_patient_id(
                patient_id, assessment_type=assessment_type, limit=limit,
            )
            providers = await self._lookup_providers(assessments)
            return [
                AssessmentResult(**assessment.model_dump(), provider=provider)
                for assessment, provider in zip(assessments, providers)
            ]

        return await self._fetch(ContextSection.ASSESSMENT_HISTORY.value, patient_id, load(), log)

    async def get_alerts(
        self,
        patient_id: str,
        severity: Optional[str] = None,
        log: Optional[AssemblyLogger] = None,
    ) -> list[Alert]:
        """Unresolved alerts, optionally of a single severity."""
        return await self._fetch(
            ContextSection.ALERTS.value,
            patient_id,
            self.store.get_alerts_by_patient_id(
                patient_id, status=self.settings.alert_status, severity=severity,
            ),
            log,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _fetch(
        self,
        section: str,
        patient_id: str,
        operation: Awaitable[T],
        log: Optional[AssemblyLogger],
    ) -> T:
        """Await one section fetch, wrapping store failures."""
        log = log or AssemblyLogger(logger, patient_id=patient_id)
        log.stage(AssemblyStage.FETCH_START, level=logging.DEBUG, section=section)
        started = time.perf_counter()

        try:
            result = await operation
        except ContextAssemblyError:
            raise
        except Exception as e:
            log.stage(
                AssemblyStage.FETCH_END,
                level=logging.DEBUG,
                section=section,
                duration_ms=int((time.perf_counter() - started) * 1000),
                failed=True,
                cause=type(e).__name__,
            )
            raise UpstreamFetchError(patient_id, section) from e

        detail: dict[str, Any] = {
            "section": section,
            "duration_ms": int((time.perf_counter() - started) * 1000),
        }
        if isinstance(result, list):
            detail["count"] = len(result)
        log.stage(AssemblyStage.FETCH_END, level=logging.DEBUG, **detail)
        return result

    async def _lookup_provider(self, provider_id: Optional[str]) -> Optional[Provider]:
        if not provider_id:
            return None
        return await self.store.get_provider_by_id(provider_id)

    async def _lookup_providers(self, records: list[Any]) -> list[Optional[Provider]]:
        # One store call per record. TODO: switch to a bulk provider lookup once the store offers one.
        return list(await asyncio.gather(
            *(self._lookup_provider(record.provider_id) for record in records)
        ))

    async def _lookup_transcript(self, session_id: str, include: bool) -> Optional[Transcript]:
        if not include:
            return None
        return await self.store.get_transcript_by_session_id(session_id)
