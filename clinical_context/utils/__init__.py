"""Utility functions and helpers."""

from clinical_context.utils.logging import (
    AssemblyLogger,
    AssemblyStage,
    get_logger,
    setup_logging,
)
from clinical_context.utils.protocols import PipelineExecutorProtocol, RecordStoreProtocol

__all__ = [
    "AssemblyLogger",
    "AssemblyStage",
    "get_logger",
    "setup_logging",
    "PipelineExecutorProtocol",
    "RecordStoreProtocol",
]
