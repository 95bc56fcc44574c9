"""
Exceptions raised during patient context assembly.

A missing patient is not an error: assembly returns None for it. Everything
here is a failure the caller must handle distinctly from "not found".
"""

from typing import Optional


class ContextAssemblyError(Exception):
    """Base class for context assembly failures."""

    def __init__(self, message: str, patient_id: Optional[str] = None):
        super().__init__(message)
        self.patient_id = patient_id


class DataIntegrityError(ContextAssemblyError):
    """The patient exists but a mandatory section cannot be derived."""

    def __init__(self, patient_id: str, section: str, reason: str):
        super().__init__(
            f"Patient {patient_id} has no derivable {section}: {reason}",
            patient_id=patient_id,
        )
        self.section = section
        self.reason = reason


class UpstreamFetchError(ContextAssemblyError):
    """A record store call failed; the whole assembly is aborted."""

    def __init__(self, patient_id: str, section: str):
        super().__init__(
            f"Failed to fetch {section} for patient {patient_id}",
            patient_id=patient_id,
        )
        self.section = section


class ContextAggregationError(ContextAssemblyError):
    """A pipeline could not obtain a context for its execution."""
