"""
Context aggregation as a phase of an analysis pipeline.

Pipeline executors time each of their phases for the audit recorder. This
module provides the first phase, context aggregation, so executors get a
context (or a single typed error) and a recorded duration without knowing
how the context is assembled.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from clinical_context.assembler import PatientContextService
from clinical_context.errors import ContextAggregationError, ContextAssemblyError
from clinical_context.models.context import PatientContext, PatientContextOptions
from clinical_context.models.enums import ContextPurpose
from clinical_context.models.pipeline import ExecutionMetadata, PipelineResult
from clinical_context.profiles import resolve_purpose
from clinical_context.utils.protocols import PipelineExecutorProtocol


logger = logging.getLogger(__name__)

# Variable name under which a caller may hand over a prebuilt context.
PROVIDED_CONTEXT_VARIABLE = "patient_context"


class PipelinePhase(str, Enum):
    """Phases of a pipeline execution that are timed separately."""

    CONTEXT_AGGREGATION = "context_aggregation"
    PROMPT_COMPILATION = "prompt_compilation"
    MODEL_EXECUTION = "model_execution"
    VALIDATION = "validation"


@dataclass
class PipelineTimings:
    """Per-phase durations for one pipeline execution."""

    durations_ms: dict[str, int] = field(default_factory=dict)

    def record(self, phase: PipelinePhase, duration_ms: int) -> None:
        self.durations_ms[phase.value] = duration_ms

    def get(self, phase: PipelinePhase) -> Optional[int]:
        return self.durations_ms.get(phase.value)

    @property
    def total_ms(self) -> int:
        return sum(self.durations_ms.values())


async def aggregate_context(
    service: PatientContextService,
    patient_id: str,
    purpose: Union[ContextPurpose, str],
    variables: Optional[dict[str, Any]] = None,
    timings: Optional[PipelineTimings] = None,
    options: Optional[PatientContextOptions] = None,
) -> PatientContext:
    """
    Obtain the context for a pipeline execution.

    A PatientContext passed in variables["patient_context"] is used as is;
    otherwise a purpose-scoped context is assembled.

    Args:
        service: Context service to assemble with
        patient_id: Patient the pipeline runs for
        purpose: Pipeline purpose
        variables: Pipeline variables, possibly carrying a prebuilt context
        timings: Receives the context aggregation duration
        options: Budget and limit overrides for assembly

    Returns:
        The context to compile into the prompt

    Raises:
        ContextAggregationError: Patient not found or assembly failed
    """
    started = time.perf_counter()

    try:
        provided = (variables or {}).get(PROVIDED_CONTEXT_VARIABLE)
        if isinstance(provided, PatientContext):
            logger.info(f"Using provided patient context for patient {patient_id}")
            return provided

        try:
            context = await service.get_context_for_purpose(patient_id, purpose, options)
        except ContextAssemblyError as e:
            raise ContextAggregationError(
                f"Failed to aggregate patient context: {e}", patient_id=patient_id,
            ) from e

        if context is None:
            raise ContextAggregationError("Patient context not found", patient_id=patient_id)

        return context
    finally:
        if timings is not None:
            timings.record(
                PipelinePhase.CONTEXT_AGGREGATION,
                int((time.perf_counter() - started) * 1000),
            )


async def run_pipeline(
    executor: PipelineExecutorProtocol,
    service: PatientContextService,
    patient_id: str,
    purpose: Union[ContextPurpose, str],
    session_transcript: str = "",
    variables: Optional[dict[str, Any]] = None,
) -> PipelineResult:
    """
    Aggregate a context and hand it to a pipeline executor.

    The aggregation duration and the context's token estimate are merged
    into the executor's result metadata. Aggregation failures are returned
    as an unsuccessful result rather than raised.

    Args:
        executor: Pipeline to run
        service: Context service to assemble with
        patient_id: Patient the pipeline runs for
        purpose: Pipeline purpose
        session_transcript: Raw transcript text of the current session
        variables: Extra pipeline variables

    Returns:
        PipelineResult from the executor, or a failure result
    """
    purpose = resolve_purpose(purpose)
    timings = PipelineTimings()

    try:
        context = await aggregate_context(service, patient_id, purpose, variables, timings)
    except ContextAggregationError as e:
        logger.error(f"Context aggregation failed for patient {patient_id}: {e}")
        return PipelineResult(
            success=False,
            error=str(e),
            metadata=ExecutionMetadata(
                execution_id=uuid.uuid4().hex,
                purpose=purpose,
                phase_durations_ms=dict(timings.durations_ms),
            ),
        )

    result = await executor.analyze(purpose, context, session_transcript, variables)

    metadata = result.metadata.model_copy(update={
        "context_token_count": context.metadata.token_count,
        "phase_durations_ms": {**timings.durations_ms, **result.metadata.phase_durations_ms},
    })
    return result.model_copy(update={"metadata": metadata})


async def check_context_health(
    service: PatientContextService,
    probe_patient_id: Optional[str] = None,
) -> dict:
    """
    Check that context assembly can reach the record store.

    With a probe patient id a full purpose-scoped assembly is run; otherwise
    a single patient lookup is issued. A missing probe patient still counts
    as healthy.

    Returns:
        Dict with healthy flag, latency and an error message when unhealthy
    """
    started = time.perf_counter()
    try:
        if probe_patient_id:
            await service.get_context_for_purpose(probe_patient_id, ContextPurpose.GENERAL)
        else:
            await service.store.get_patient_by_id("health-check")
    except Exception as e:
        logger.warning(f"Context health check failed: {e}")
        return {
            "healthy": False,
            "latency_ms": int((time.perf_counter() - started) * 1000),
            "error": str(e),
        }

    return {
        "healthy": True,
        "latency_ms": int((time.perf_counter() - started) * 1000),
    }
