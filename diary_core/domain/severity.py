"""
Severity classification: the only place bucket boundaries are defined.

Scores live on a 0-10 scale. Buckets are half-open on the left so every score
falls into exactly one of them:

    0            -> none
    (0, 4]       -> mild
    (4, 7]       -> moderate
    (7, 10]      -> severe

Labels that older diary versions stored instead of numbers map onto the
{0, 3, 6, 9} score table, which sits inside the buckets above.
"""

from diary_core.domain.models import SeverityLevel

MIN_SCORE = 0.0
MAX_SCORE = 10.0

# Upper bound (inclusive) of each bucket above zero, in ascending order
LEVEL_BREAKPOINTS: tuple[tuple[float, SeverityLevel], ...] = (
    (4.0, SeverityLevel.MILD),
    (7.0, SeverityLevel.MODERATE),
    (MAX_SCORE, SeverityLevel.SEVERE),
)

LEVEL_SCORES: dict[SeverityLevel, float] = {
    SeverityLevel.NONE: 0.0,
    SeverityLevel.MILD: 3.0,
    SeverityLevel.MODERATE: 6.0,
    SeverityLevel.SEVERE: 9.0,
}

# Labels found in stored rows, including the German ones of the first app version
LABEL_ALIASES: dict[str, SeverityLevel] = {
    "none": SeverityLevel.NONE,
    "-": SeverityLevel.NONE,
    "keine": SeverityLevel.NONE,
    "mild": SeverityLevel.MILD,
    "leicht": SeverityLevel.MILD,
    "moderate": SeverityLevel.MODERATE,
    "mittel": SeverityLevel.MODERATE,
    "severe": SeverityLevel.SEVERE,
    "stark": SeverityLevel.SEVERE,
    "sehr_stark": SeverityLevel.SEVERE,
    "sehr stark": SeverityLevel.SEVERE,
}


def clamp_score(score: float) -> float:
    return min(MAX_SCORE, max(MIN_SCORE, float(score)))


def score_to_level(score: float) -> SeverityLevel:
    """Map a numeric score to its bucket. Out-of-range scores are clamped first."""
    score = clamp_score(score)
    if score == MIN_SCORE:
        return SeverityLevel.NONE
    for upper, level in LEVEL_BREAKPOINTS:
        if score <= upper:
            return level
    return SeverityLevel.SEVERE


def is_severe(score: float | None) -> bool:
    return score is not None and score_to_level(score) is SeverityLevel.SEVERE


def label_to_score(label: str) -> float | None:
    """Canonical score for a stored ordinal label, or None if the label is unknown."""
    level = LABEL_ALIASES.get(label.strip().lower())
    if level is None:
        return None
    return LEVEL_SCORES[level]
