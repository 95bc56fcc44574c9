"""
Patient Context - Enumerations

Centralized enum definitions for context assembly.
"""

from enum import Enum


class ContextPurpose(str, Enum):
    """Downstream pipeline a context is assembled for."""

    SAFETY_CHECK = "safety_check"  # Risk review: alerts, meds, recent scores
    BILLING = "billing"  # Coding from the latest session
    PROGRESS_TRACKING = "progress_tracking"  # Plan goals against outcomes
    GENERAL = "general"  # Default clinical overview
    CHAT = "chat"  # Conversational assistant


class ContextSection(str, Enum):
    """Sections of a patient context that can be loaded selectively."""

    DEMOGRAPHICS = "demographics"
    DIAGNOSES = "diagnoses"
    MEDICATIONS = "medications"
    TREATMENT_PLAN = "treatmentPlan"
    RECENT_SESSIONS = "recentSessions"
    ASSESSMENT_HISTORY = "assessmentHistory"
    ALERTS = "alerts"
