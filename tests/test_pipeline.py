"""Tests for the context aggregation pipeline phase."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from clinical_context.errors import ContextAggregationError, UpstreamFetchError
from clinical_context.models import ContextPurpose
from clinical_context.models.pipeline import ExecutionMetadata, PipelineResult, TokenUsage
from clinical_context.pipeline import (
    PipelinePhase,
    PipelineTimings,
    aggregate_context,
    check_context_health,
    run_pipeline,
)

from tests.conftest import PATIENT_ID


@pytest.fixture
def mock_executor():
    """Executor whose analyze returns a successful result."""
    executor = MagicMock()
    executor.analyze = AsyncMock(return_value=PipelineResult(
        success=True,
        data={"cpt_code": "90834"},
        metadata=ExecutionMetadata(
            execution_id="exec-1",
            purpose=ContextPurpose.BILLING,
            model_id="anthropic/claude-3.5-sonnet",
            token_usage=TokenUsage(input_tokens=1200, output_tokens=80, total_tokens=1280),
            phase_durations_ms={"model_execution": 840},
        ),
    ))
    return executor


class TestPipelineTimings:
    """Tests for PipelineTimings."""

    def test_record_and_total(self):
        """Test recording phases and summing them."""
        timings = PipelineTimings()
        timings.record(PipelinePhase.CONTEXT_AGGREGATION, 12)
        timings.record(PipelinePhase.MODEL_EXECUTION, 30)

        assert timings.get(PipelinePhase.CONTEXT_AGGREGATION) == 12
        assert timings.get(PipelinePhase.VALIDATION) is None
        assert timings.total_ms == 42


class TestAggregateContext:
    """Tests for aggregate_context."""

    @pytest.mark.asyncio
    async def test_assembles_for_purpose(self, service):
        """Test that a purpose-scoped context is assembled and timed."""
        timings = PipelineTimings()

        context = await aggregate_context(service, PATIENT_ID, "billing", timings=timings)

        assert context.metadata.purpose == "billing"
        assert timings.get(PipelinePhase.CONTEXT_AGGREGATION) is not None

    @pytest.mark.asyncio
    async def test_provided_context_used(self, service, record_store, make_context):
        """Test that a context passed in variables skips assembly."""
        provided = make_context()

        context = await aggregate_context(
            service, PATIENT_ID, "billing", variables={"patient_context": provided},
        )

        assert context is provided
        assert record_store.calls == []

    @pytest.mark.asyncio
    async def test_not_found(self, service):
        """Test that a missing patient is an aggregation error."""
        timings = PipelineTimings()

        with pytest.raises(ContextAggregationError, match="Patient context not found"):
            await aggregate_context(service, "nobody", "billing", timings=timings)

        assert timings.get(PipelinePhase.CONTEXT_AGGREGATION) is not None

    @pytest.mark.asyncio
    async def test_assembly_failure_wrapped(self, service, record_store):
        """Test that assembly errors are wrapped with their cause."""
        record_store.get_sessions_by_patient_id = AsyncMock(side_effect=ConnectionError("db down"))

        with pytest.raises(ContextAggregationError) as exc_info:
            await aggregate_context(service, PATIENT_ID, "billing")

        assert isinstance(exc_info.value.__cause__, UpstreamFetchError)
        assert exc_info.value.patient_id == PATIENT_ID


class TestRunPipeline:
    """Tests for run_pipeline."""

    @pytest.mark.asyncio
    async def test_success_merges_metadata(self, service, mock_executor):
        """Test that context size and aggregation time reach the result."""
        result = await run_pipeline(mock_executor, service, PATIENT_ID, "billing", "Therapist: Hello.")

        assert result.success is True
        assert result.data == {"cpt_code": "90834"}
        assert result.metadata.context_token_count > 0
        assert result.metadata.phase_durations_ms["model_execution"] == 840
        assert "context_aggregation" in result.metadata.phase_durations_ms

        purpose, context, transcript, variables = mock_executor.analyze.call_args.args
        assert purpose is ContextPurpose.BILLING
        assert context.metadata.token_count == result.metadata.context_token_count
        assert transcript == "Therapist: Hello."

    @pytest.mark.asyncio
    async def test_aggregation_failure_returns_result(self, service, mock_executor):
        """Test that a missing patient yields a failed result without running the model."""
        result = await run_pipeline(mock_executor, service, "nobody", ContextPurpose.SAFETY_CHECK)

        assert result.success is False
        assert result.error == "Patient context not found"
        assert result.metadata.purpose == "safety_check"
        assert "context_aggregation" in result.metadata.phase_durations_ms
        mock_executor.analyze.assert_not_called()


class TestContextHealth:
    """Tests for check_context_health."""

    @pytest.mark.asyncio
    async def test_healthy(self, service):
        """Test a reachable store."""
        health = await check_context_health(service)

        assert health["healthy"] is True
        assert "error" not in health

    @pytest.mark.asyncio
    async def test_probe_patient(self, service, record_store):
        """Test a health check that runs a full assembly."""
        health = await check_context_health(service, probe_patient_id=PATIENT_ID)

        assert health["healthy"] is True
        assert record_store.called("get_diagnoses_by_patient_id")

    @pytest.mark.asyncio
    async def test_unhealthy(self, service, record_store):
        """Test an unreachable store."""
        record_store.get_patient_by_id = AsyncMock(side_effect=ConnectionError("refused"))

        health = await check_context_health(service)

        assert health["healthy"] is False
        assert health["error"] == "refused"
