"""
Purpose Profile Registry - what each downstream pipeline needs.

A single static table maps every ContextPurpose to the sections it
requires, the per-section limits for that purpose and its token budget.
Nothing else in the codebase branches on purpose.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from clinical_context.models.enums import ContextPurpose, ContextSection


logger = logging.getLogger(__name__)


ALL_SECTIONS: frozenset[ContextSection] = frozenset(ContextSection)


@dataclass(frozen=True)
class PurposeProfile:
    """Section requirements and limits for one purpose."""

    purpose: ContextPurpose
    sections: frozenset[ContextSection]
    max_tokens: int
    session_limit: Optional[int] = None
    include_transcripts: bool = False
    assessment_limit: Optional[int] = None

    def requires(self, section: ContextSection) -> bool:
        return section in self.sections


# =============================================================================
# PURPOSE PROFILES
# =============================================================================

PURPOSE_PROFILES: dict[ContextPurpose, PurposeProfile] = {
    ContextPurpose.SAFETY_CHECK: PurposeProfile(
        purpose=ContextPurpose.SAFETY_CHECK,
        sections=frozenset({
            ContextSection.DEMOGRAPHICS,
            ContextSection.MEDICATIONS,
            ContextSection.ASSESSMENT_HISTORY,
            ContextSection.ALERTS,
        }),
        max_tokens=3000,
        assessment_limit=5,
    ),
    ContextPurpose.BILLING: PurposeProfile(
        purpose=ContextPurpose.BILLING,
        sections=frozenset({
            ContextSection.DEMOGRAPHICS,
            ContextSection.DIAGNOSES,
            ContextSection.RECENT_SESSIONS,
        }),
        max_tokens=2500,
        session_limit=1,
        include_transcripts=True,
    ),
    ContextPurpose.PROGRESS_TRACKING: PurposeProfile(
        purpose=ContextPurpose.PROGRESS_TRACKING,
        sections=frozenset({
            ContextSection.DEMOGRAPHICS,
            ContextSection.TREATMENT_PLAN,
            ContextSection.ASSESSMENT_HISTORY,
            ContextSection.RECENT_SESSIONS,
        }),
        max_tokens=3500,
        session_limit=3,
        include_transcripts=False,
        assessment_limit=3,
    ),
    ContextPurpose.GENERAL: PurposeProfile(
        purpose=ContextPurpose.GENERAL,
        sections=frozenset({
            ContextSection.DEMOGRAPHICS,
            ContextSection.DIAGNOSES,
            ContextSection.MEDICATIONS,
            ContextSection.TREATMENT_PLAN,
        }),
        max_tokens=4000,
    ),
    ContextPurpose.CHAT: PurposeProfile(
        purpose=ContextPurpose.CHAT,
        sections=frozenset({
            ContextSection.DEMOGRAPHICS,
            ContextSection.DIAGNOSES,
            ContextSection.MEDICATIONS,
            ContextSection.RECENT_SESSIONS,
        }),
        max_tokens=4000,
        session_limit=3,
        include_transcripts=True,
    ),
}

DEFAULT_PURPOSE = ContextPurpose.GENERAL

# Relative importance of each section per purpose (10 = most important).
SECTION_PRIORITIES: dict[ContextPurpose, dict[ContextSection, int]] = {
    ContextPurpose.SAFETY_CHECK: {
        ContextSection.ALERTS: 10,
        ContextSection.ASSESSMENT_HISTORY: 9,
        ContextSection.MEDICATIONS: 8,
        ContextSection.DIAGNOSES: 7,
        ContextSection.RECENT_SESSIONS: 6,
        ContextSection.TREATMENT_PLAN: 5,
    },
    ContextPurpose.BILLING: {
        ContextSection.RECENT_SESSIONS: 10,
        ContextSection.DIAGNOSES: 9,
        ContextSection.TREATMENT_PLAN: 7,
        ContextSection.MEDICATIONS: 5,
        ContextSection.ASSESSMENT_HISTORY: 3,
        ContextSection.ALERTS: 2,
    },
    ContextPurpose.PROGRESS_TRACKING: {
        ContextSection.TREATMENT_PLAN: 10,
        ContextSection.ASSESSMENT_HISTORY: 9,
        ContextSection.RECENT_SESSIONS: 8,
        ContextSection.DIAGNOSES: 6,
        ContextSection.MEDICATIONS: 5,
        ContextSection.ALERTS: 4,
    },
    ContextPurpose.GENERAL: {
        ContextSection.DIAGNOSES: 8,
        ContextSection.MEDICATIONS: 8,
        ContextSection.TREATMENT_PLAN: 8,
        ContextSection.RECENT_SESSIONS: 7,
        ContextSection.ASSESSMENT_HISTORY: 6,
        ContextSection.ALERTS: 5,
    },
    ContextPurpose.CHAT: {
        ContextSection.RECENT_SESSIONS: 9,
        ContextSection.DIAGNOSES: 8,
        ContextSection.MEDICATIONS: 8,
        ContextSection.TREATMENT_PLAN: 7,
        ContextSection.ASSESSMENT_HISTORY: 6,
        ContextSection.ALERTS: 5,
    },
}


def _check_registry() -> None:
    missing = set(ContextPurpose) - set(PURPOSE_PROFILES)
    if missing:
        raise RuntimeError(f"Purposes without a profile: {sorted(p.value for p in missing)}")
    for purpose, profile in PURPOSE_PROFILES.items():
        if ContextSection.DEMOGRAPHICS not in profile.sections:
            raise RuntimeError(f"Profile {purpose.value} must require demographics")


_check_registry()


# =============================================================================
# LOOKUP
# =============================================================================


def resolve_purpose(purpose: Union[ContextPurpose, str, None]) -> ContextPurpose:
    """
    Normalize a purpose value, falling back to the general purpose.

    Args:
        purpose: Enum member, its string value, or None

    Returns:
        The matching ContextPurpose
    """
    if purpose is None:
        return DEFAULT_PURPOSE
    try:
        return ContextPurpose(purpose)
    except ValueError:
        logger.warning(f"Unknown context purpose: {purpose}, falling back to {DEFAULT_PURPOSE.value}")
        return DEFAULT_PURPOSE


def get_profile(purpose: Union[ContextPurpose, str, None]) -> PurposeProfile:
    """Get the profile for a purpose (general when unknown or None)."""
    return PURPOSE_PROFILES[resolve_purpose(purpose)]


def get_token_budget(purpose: Union[ContextPurpose, str, None] = None) -> int:
    """Get the default token budget for a purpose."""
    return get_profile(purpose).max_tokens


def sections_by_priority(purpose: Union[ContextPurpose, str, None]) -> list[ContextSection]:
    """
    Sections of a purpose ordered from most to least important.

    Demographics is always first; ties keep enum declaration order.
    """
    weights = SECTION_PRIORITIES[resolve_purpose(purpose)]
    ranked = sorted(
        (section for section in ContextSection if section != ContextSection.DEMOGRAPHICS),
        key=lambda section: -weights.get(section, 0),
    )
    return [ContextSection.DEMOGRAPHICS] + ranked
