"""Template similarity scoring.

A weighted blend of name and description string similarity with exact
maturity-level and phase matches. Every function here is pure and
deterministic, so the template scorer is memoized.
"""

from __future__ import annotations

import functools

from tessera.models import Template

NAME_WEIGHT = 0.3
DESCRIPTION_WEIGHT = 0.4
MATURITY_WEIGHT = 0.2
PHASE_WEIGHT = 0.1

# Float sums such as 0.7 + 0.1 land a hair below 0.8; rounding keeps the
# strategy thresholds (strict > comparisons) exact at their boundaries.
_SCORE_PRECISION = 12


def edit_distance(a: str, b: str) -> int:
    """Classic Levenshtein distance: insertion, deletion and substitution cost 1."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + (ca != cb),  # substitution
                )
            )
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """Return ``1 - distance / len(longer)``; two empty strings score 1.0."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - edit_distance(a, b)) / longest


@functools.lru_cache(maxsize=4096)
def template_similarity(a: Template, b: Template) -> float:
    """Similarity of two templates in [0, 1]; symmetric in its arguments."""
    score = (
        NAME_WEIGHT * string_similarity(a.name, b.name)
        + DESCRIPTION_WEIGHT * string_similarity(a.description, b.description)
        + (MATURITY_WEIGHT if a.maturity_level == b.maturity_level else 0.0)
        + (PHASE_WEIGHT if a.phase == b.phase else 0.0)
    )
    return round(score, _SCORE_PRECISION)
