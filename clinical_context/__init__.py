"""Patient context assembly for clinical language-model pipelines."""

from clinical_context.assembler import PatientContextService
from clinical_context.config import ContextSettings, load_settings
from clinical_context.errors import (
    ContextAggregationError,
    ContextAssemblyError,
    DataIntegrityError,
    UpstreamFetchError,
)
from clinical_context.models import ContextPurpose, PatientContext, PatientContextOptions
from clinical_context.optimizer import optimize_context
from clinical_context.tokens import estimate_token_count

__version__ = "1.0.0"

__all__ = [
    "ContextAggregationError",
    "ContextAssemblyError",
    "ContextPurpose",
    "ContextSettings",
    "DataIntegrityError",
    "PatientContext",
    "PatientContextOptions",
    "PatientContextService",
    "UpstreamFetchError",
    "estimate_token_count",
    "load_settings",
    "optimize_context",
]
