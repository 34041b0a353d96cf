"""Site risk score from a set of signals.

Every signal adds its severity; the total is capped at 100. There is no
weighting by dimension, source or age, so the score is monotone,
order-independent and explainable signal by signal.
"""

from typing import Iterable, Optional, Protocol

from ..models.check_result import RiskScore
from ..models.site import RiskLevel

MIN_SCORE = 0
MAX_SCORE = 100

# Inclusive upper bound of each bucket, checked in order
LEVEL_THRESHOLDS = (
    (20, RiskLevel.LOW),
    (40, RiskLevel.MEDIUM),
    (70, RiskLevel.HIGH),
    (MAX_SCORE, RiskLevel.CRITICAL),
)


class HasSeverity(Protocol):
    severity: Optional[int]


def level_for_score(score: int) -> RiskLevel:
    """Map a score in [0, 100] to its risk level."""
    for upper_bound, level in LEVEL_THRESHOLDS:
        if score <= upper_bound:
            return level
    return RiskLevel.CRITICAL


def score_signals(signals: Iterable[HasSeverity]) -> RiskScore:
    """Compute the risk score and level of a signal set.

    Args:
        signals: Stored signals or drafts; a missing severity counts as 0

    Returns:
        Score clamped to [0, 100] and its level
    """
    raw = sum(signal.severity or 0 for signal in signals)
    score = max(MIN_SCORE, min(MAX_SCORE, raw))
    return RiskScore(score=score, level=level_for_score(score))
