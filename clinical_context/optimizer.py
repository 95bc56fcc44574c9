"""
Degradation Optimizer - fits an assembled context into a token budget.

Stages run in a fixed order, each re-measuring the context after it acts:

1. Transcript truncation: keep the earliest entries of each transcript up
   to a per-session character budget, then a single marker entry.
2. Session pruning: keep only the most recent session.
3. Assessment pruning: keep only the most recent assessments.

The first stage that brings the estimate within budget ends the pass. No
stage reorders kept data or restores removed data, so running the optimizer
on its own output with the same budget returns an identical context.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from clinical_context.config import ContextSettings
from clinical_context.models.context import PatientContext
from clinical_context.models.records import TranscriptEntry
from clinical_context.tokens import estimate_token_count
from clinical_context.utils.logging import AssemblyLogger, AssemblyStage


logger = logging.getLogger(__name__)

TRANSCRIPT_TRUNCATION_MARKER = "... [transcript truncated for context optimization]"


def truncate_transcript(
    entries: Sequence[TranscriptEntry],
    max_chars: int,
) -> tuple[TranscriptEntry, ...]:
    """
    Keep transcript entries until their combined text exceeds max_chars.

    The entry that crosses the budget is replaced by a truncation marker
    (keeping its speaker and timestamp) and everything after it is dropped.

    Args:
        entries: Transcript entries in spoken order
        max_chars: Character budget for the combined entry text

    Returns:
        The kept entries, ending with a marker entry if anything was cut
    """
    total_length = 0
    kept: list[TranscriptEntry] = []

    for entry in entries:
        total_length += len(entry.text)
        if total_length > max_chars:
            kept.append(entry.model_copy(update={"text": TRANSCRIPT_TRUNCATION_MARKER}))
            break
        kept.append(entry)

    return tuple(kept)


# =============================================================================
# STAGES
# =============================================================================
# Each stage returns the same object when it has nothing to remove.


def _truncate_transcripts(context: PatientContext, settings: ContextSettings) -> PatientContext:
    sessions = []
    changed = False

    for session in context.recent_sessions:
        transcript = session.transcript
        if transcript is None or not transcript.entries:
            sessions.append(session)
            continue

        entries = truncate_transcript(transcript.entries, settings.transcript_char_budget)
        if entries == transcript.entries:
            sessions.append(session)
            continue

        changed = True
        sessions.append(session.model_copy(update={
            "transcript": transcript.model_copy(update={"entries": entries}),
        }))

    if not changed:
        return context
    return context.model_copy(update={"recent_sessions": tuple(sessions)})


def _prune_sessions(context: PatientContext, settings: ContextSettings) -> PatientContext:
    if len(context.recent_sessions) <= settings.pruned_session_count:
        return context
    return context.model_copy(update={
        "recent_sessions": context.recent_sessions[:settings.pruned_session_count],
    })


def _prune_assessments(context: PatientContext, settings: ContextSettings) -> PatientContext:
    if len(context.assessment_history) <= settings.pruned_assessment_count:
        return context
    return context.model_copy(update={
        "assessment_history": context.assessment_history[:settings.pruned_assessment_count],
    })


@dataclass(frozen=True)
class DegradationStage:
    """One size-reduction step of the optimizer."""

    name: str
    apply: Callable[[PatientContext, ContextSettings], PatientContext]


DEGRADATION_STAGES: tuple[DegradationStage, ...] = (
    DegradationStage("truncate_transcripts", _truncate_transcripts),
    DegradationStage("prune_sessions", _prune_sessions),
    DegradationStage("prune_assessments", _prune_assessments),
)


# =============================================================================
# OPTIMIZER
# =============================================================================


def optimize_context(
    context: PatientContext,
    max_tokens: int,
    settings: Optional[ContextSettings] = None,
    log: Optional[AssemblyLogger] = None,
) -> PatientContext:
    """
    Reduce a context until its estimated size fits max_tokens.

    When the budget cannot be met the smallest achievable context is
    returned. Never raises for any valid context.

    Args:
        context: Draft context
        max_tokens: Token budget
        settings: Degradation constants (defaults when omitted)
        log: Assembly-scoped logger for stage events

    Returns:
        New context whose metadata carries the final token count and a
        truncated flag that is True if any stage removed or altered data
    """
    settings = settings or ContextSettings()
    log = log or AssemblyLogger(
        logger,
        patient_id=context.patient.id,
        purpose=context.metadata.purpose,
    )

    tokens = estimate_token_count(context, settings.chars_per_token)
    truncated = context.metadata.truncated
    log.stage(AssemblyStage.ESTIMATE, tokens=tokens, budget=max_tokens)

    if tokens > max_tokens:

        for stage in DEGRADATION_STAGES:
            reduced = stage.apply(context, settings)
            if reduced is context:
                log.stage(AssemblyStage.OPTIMIZER_STAGE, level=logging.DEBUG, name=stage.name, changed=False)
                continue

            context = reduced
            truncated = True
            tokens = estimate_token_count(context, settings.chars_per_token)
            log.stage(AssemblyStage.OPTIMIZER_STAGE, name=stage.name, changed=True, tokens=tokens)

            if tokens <= max_tokens:
                break

        if tokens > max_tokens:
            log.stage(AssemblyStage.OVER_BUDGET, level=logging.WARNING, tokens=tokens, budget=max_tokens)

    metadata = context.metadata.model_copy(update={
        "token_count": tokens,
        "truncated": truncated,
    })
    return context.model_copy(update={"metadata": metadata})
