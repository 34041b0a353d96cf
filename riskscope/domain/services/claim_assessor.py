"""Plausibility assessment of a claimed monthly revenue figure.

The assessor first classifies the available metrics into exactly one kind of
evidence, then walks an ordered decision table for that evidence. The first
matching rule produces the verdict, the confidence and the notes together, so
the explanation always describes the branch that decided.

Evidence priority:
    1. NoEvidence        - the metric set is empty
    2. VerifiedRevenue   - authoritative 30-day revenue from payment data
    3. StoreProxy        - lifetime downloads and price from an app store
    4. InsufficientProxy - metrics exist but none of the above is usable
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from ..errors import ValidationError
from ..models.verification import AssessmentResult, MetricDraft, Verdict

logger = logging.getLogger(__name__)

# Assumed share of downloads that turn into a paid transaction. Not derived
# from data; calibrate against products with verified revenue.
CONVERSION_RATE = 0.05

# Months over which lifetime paid downloads are assumed to have been earned.
REVENUE_WINDOW_MONTHS = 3

VERIFIED_REVENUE_METRIC = "revenue_30d_verified"
DOWNLOADS_METRIC = "downloads_lifetime"
PRICE_METRIC = "price_usd"

# Store sources in lookup priority order
STORE_SOURCE_PRIORITY = ("android_store", "ios_store")

NO_EVIDENCE_CONFIDENCE = 0.2


class AssessmentSettings(BaseModel):
    """Tunable constants of the store-proxy estimate."""

    conversion_rate: float = Field(default=CONVERSION_RATE, gt=0, le=1)
    revenue_window_months: float = Field(default=REVENUE_WINDOW_MONTHS, gt=0)


@dataclass(frozen=True)
class NoEvidence:
    pass


@dataclass(frozen=True)
class VerifiedRevenue:
    revenue_30d: float


@dataclass(frozen=True)
class StoreProxy:
    downloads: float
    price: float


@dataclass(frozen=True)
class InsufficientProxy:
    metric_count: int


Evidence = Union[NoEvidence, VerifiedRevenue, StoreProxy, InsufficientProxy]


def validate_claimed_value(value) -> float:
    """Return ``value`` as a float, or raise if it is not finite and positive."""
    if isinstance(value, bool):
        raise ValidationError("claimed_value must be a positive number", field="claimed_value")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("claimed_value must be a positive number", field="claimed_value")
    if not math.isfinite(number) or number <= 0:
        raise ValidationError("claimed_value must be a positive number", field="claimed_value")
    return number


def _money(value: float) -> str:
    if value == int(value):
        return f"${value:,.0f}"
    return f"${value:,.2f}"


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _is_newer(candidate: MetricDraft, current: MetricDraft) -> bool:
    new_at: Optional[datetime] = getattr(candidate, "captured_at", None)
    old_at: Optional[datetime] = getattr(current, "captured_at", None)
    if new_at is None or old_at is None:
        return True
    return new_at >= old_at


def latest_metrics(metrics: Iterable[MetricDraft]) -> Dict[Tuple[str, str], MetricDraft]:
    """Index readings by ``(source, metric_name)``, keeping the most recent."""
    latest: Dict[Tuple[str, str], MetricDraft] = {}
    for metric in metrics:
        key = (metric.source, metric.metric_name)
        if key not in latest or _is_newer(metric, latest[key]):
            latest[key] = metric
    return latest


def _store_value(latest: Dict[Tuple[str, str], MetricDraft], metric_name: str) -> Optional[float]:
    for source in STORE_SOURCE_PRIORITY:
        metric = latest.get((source, metric_name))
        if metric is not None:
            return metric.metric_value
    return None


def find_verified_revenue(metrics: Iterable[MetricDraft]) -> Optional[float]:
    """Most recent verified 30-day revenue reading from any source."""
    found: Optional[MetricDraft] = None
    for metric in metrics:
        if metric.metric_name != VERIFIED_REVENUE_METRIC or not metric.is_verified:
            continue
        if found is None or _is_newer(metric, found):
            found = metric
    return found.metric_value if found is not None else None


def classify_evidence(metrics: Sequence[MetricDraft]) -> Evidence:
    """Pick the strongest kind of evidence the metric set supports."""
    if not metrics:
        return NoEvidence()

    verified = find_verified_revenue(metrics)
    if _usable(verified):
        return VerifiedRevenue(revenue_30d=verified)

    latest = latest_metrics(metrics)
    downloads = _store_value(latest, DOWNLOADS_METRIC)
    price = _store_value(latest, PRICE_METRIC)
    if _usable(downloads) and _usable(price):
        return StoreProxy(downloads=downloads, price=price)

    return InsufficientProxy(metric_count=len(metrics))


def store_proxy_estimate(downloads: float, price: float, settings: AssessmentSettings) -> float:
    """Conservative upper bound of monthly revenue from store data."""
    return downloads * settings.conversion_rate * price / settings.revenue_window_months


@dataclass(frozen=True)
class _RatioRule:
    applies: Callable[[float], bool]
    verdict: Verdict
    confidence: float
    notes: str


# Claimed / verified ratio bands, first match wins
VERIFIED_RATIO_RULES: List[_RatioRule] = [
    _RatioRule(
        applies=lambda ratio: 0.95 <= ratio <= 1.05,
        verdict=Verdict.VERIFIED,
        confidence=0.95,
        notes="Claimed revenue ({claimed}) matches verified 30-day revenue ({reference}), ratio {ratio:.2f}.",
    ),
    _RatioRule(
        applies=lambda ratio: 0.80 <= ratio < 0.95,
        verdict=Verdict.PLAUSIBLE,
        confidence=0.85,
        notes=(
            "Claimed revenue ({claimed}) is slightly below verified 30-day revenue "
            "({reference}), ratio {ratio:.2f}, which is plausible."
        ),
    ),
    _RatioRule(
        applies=lambda ratio: 1.05 < ratio <= 1.20,
        verdict=Verdict.PLAUSIBLE,
        confidence=0.80,
        notes=(
            "Claimed revenue ({claimed}) is slightly above verified 30-day revenue "
            "({reference}), ratio {ratio:.2f}, which could be plausible with additional revenue streams."
        ),
    ),
    _RatioRule(
        applies=lambda ratio: True,
        verdict=Verdict.UNLIKELY,
        confidence=0.90,
        notes=(
            "Claimed revenue ({claimed}) significantly differs from verified 30-day revenue "
            "({reference}), ratio {ratio:.2f}."
        ),
    ),
]

# Claimed / estimate bands for the store proxy, first match wins
STORE_PROXY_RULES: List[_RatioRule] = [
    _RatioRule(
        applies=lambda ratio: ratio <= 0.5,
        verdict=Verdict.PLAUSIBLE,
        confidence=0.7,
        notes=(
            "Based on ~{downloads:,.0f} lifetime downloads and price ~{price}, a rough upper bound "
            "monthly revenue is about {reference}. The claim ({claimed}) is at most half of that, "
            "so it seems plausible."
        ),
    ),
    _RatioRule(
        applies=lambda ratio: ratio > 2.0,
        verdict=Verdict.UNLIKELY,
        confidence=0.8,
        notes=(
            "Based on ~{downloads:,.0f} lifetime downloads and price ~{price}, a rough upper bound "
            "monthly revenue is about {reference}. The claim ({claimed}) is more than twice that, "
            "so it looks unlikely."
        ),
    ),
    _RatioRule(
        applies=lambda ratio: True,
        verdict=Verdict.PLAUSIBLE,
        confidence=0.5,
        notes=(
            "The claim ({claimed}) is in the same ballpark as a rough estimate of {reference} "
            "based on ~{downloads:,.0f} lifetime downloads and price ~{price}, but the data is noisy."
        ),
    ),
]


def _first_rule(rules: Sequence[_RatioRule], ratio: float) -> _RatioRule:
    return next(rule for rule in rules if rule.applies(ratio))


def _assess_no_evidence(claimed: float, evidence: NoEvidence, settings: AssessmentSettings) -> AssessmentResult:
    return AssessmentResult(
        verdict=Verdict.NO_EVIDENCE,
        confidence=NO_EVIDENCE_CONFIDENCE,
        max_plausible_estimate=None,
        notes=(
            f"No app store or payment metrics found for this product yet, so the claim "
            f"({_money(claimed)}) cannot be checked. Run enrichment workers to populate data."
        ),
    )


def _assess_verified(claimed: float, evidence: VerifiedRevenue, settings: AssessmentSettings) -> AssessmentResult:
    reference = evidence.revenue_30d
    ratio = claimed / reference
    rule = _first_rule(VERIFIED_RATIO_RULES, ratio)
    return AssessmentResult(
        verdict=rule.verdict,
        confidence=rule.confidence,
        max_plausible_estimate=reference,
        notes=rule.notes.format(claimed=_money(claimed), reference=_money(reference), ratio=ratio),
    )


def _assess_store_proxy(claimed: float, evidence: StoreProxy, settings: AssessmentSettings) -> AssessmentResult:
    estimate = store_proxy_estimate(evidence.downloads, evidence.price, settings)
    if not _usable(estimate):
        # A zero ceiling is not actionable
        return _assess_insufficient(claimed, InsufficientProxy(metric_count=0), settings)

    rule = _first_rule(STORE_PROXY_RULES, claimed / estimate)
    return AssessmentResult(
        verdict=rule.verdict,
        confidence=rule.confidence,
        max_plausible_estimate=estimate,
        notes=rule.notes.format(
            claimed=_money(claimed),
            reference=_money(round(estimate)),
            downloads=evidence.downloads,
            price=_money(evidence.price),
        ),
    )


def _assess_insufficient(
    claimed: float, evidence: InsufficientProxy, settings: AssessmentSettings
) -> AssessmentResult:
    return AssessmentResult(
        verdict=Verdict.NO_EVIDENCE,
        confidence=NO_EVIDENCE_CONFIDENCE,
        max_plausible_estimate=None,
        notes=(
            f"Found {evidence.metric_count} metric(s) for this product, but neither verified 30-day "
            f"revenue nor both lifetime downloads and price are available, so the claim "
            f"({_money(claimed)}) cannot be checked."
        ),
    )


_EVIDENCE_HANDLERS = {
    NoEvidence: _assess_no_evidence,
    VerifiedRevenue: _assess_verified,
    StoreProxy: _assess_store_proxy,
    InsufficientProxy: _assess_insufficient,
}


def assess_claim(
    claimed_value: float,
    metrics: Sequence[MetricDraft],
    settings: Optional[AssessmentSettings] = None,
) -> AssessmentResult:
    """Judge whether a claimed monthly revenue is plausible.

    Args:
        claimed_value: Claimed monthly revenue, finite and > 0
        metrics: Every metric reading currently known for the product
        settings: Store-proxy tunables, module defaults when omitted

    Returns:
        Verdict, confidence, plausible-estimate ceiling and notes

    Raises:
        ValidationError: If claimed_value is not a finite positive number
    """
    claimed = validate_claimed_value(claimed_value)
    settings = settings or AssessmentSettings()

    evidence = classify_evidence(metrics)
    result = _EVIDENCE_HANDLERS[type(evidence)](claimed, evidence, settings)
    logger.debug(f"🧮 {type(evidence).__name__} evidence -> {result.verdict.value} ({result.confidence:.2f})")
    return result
