"""
Models describing the result of a downstream analysis pipeline.

Context assembly only supplies the input to these pipelines; the models live
here so executors and audit recorders share one shape.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from clinical_context.models.enums import ContextPurpose


class TokenUsage(BaseModel):
    """Token usage reported by a model execution."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class ExecutionMetadata(BaseModel):
    """Metadata attached to every pipeline result."""

    model_config = ConfigDict(use_enum_values=True)

    execution_id: str
    purpose: ContextPurpose
    model_id: Optional[str] = None
    cache_hit: bool = False
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    context_token_count: int = Field(default=0, ge=0, description="Estimated tokens of the input context")
    phase_durations_ms: dict[str, int] = Field(default_factory=dict)


class PipelineResult(BaseModel):
    """Typed outcome of a pipeline execution."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    metadata: ExecutionMetadata
