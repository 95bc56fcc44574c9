"""
Approximate token estimation for assembled contexts.

The estimate divides the length of the context's canonical JSON by a fixed
characters-per-token ratio. It is not tied to any model's tokenizer and
callers must not treat it as exact.
"""

import math

from clinical_context.models.context import PatientContext


APPROXIMATE_CHARS_PER_TOKEN = 4


def serialize_context(context: PatientContext) -> str:
    """
    Canonical textual form of a context's clinical content.

    Metadata is excluded: it describes the context rather than being part of
    the prompt, and including the token count would make the estimate depend
    on itself.
    """
    return context.model_dump_json(exclude={"metadata"})


def estimate_token_count(
    context: PatientContext,
    chars_per_token: int = APPROXIMATE_CHARS_PER_TOKEN,
) -> int:
    """
    Estimate the number of tokens a context will occupy in a prompt.

    Args:
        context: Context to measure
        chars_per_token: Characters counted as one token

    Returns:
        Estimated token count, rounded up
    """
    return math.ceil(len(serialize_context(context)) / chars_per_token)
