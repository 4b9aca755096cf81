from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import datetime

from staleware.config.schema import RecommendationPolicy
from staleware.models.enums import Severity
from staleware.models.recommendation import Recommendation
from staleware.models.usage import RankedItem
from staleware.services.formatting import format_bytes

ORPHAN_REASON = "orphaned dependency — no longer required"

_SECONDS_PER_DAY = 86_400


def days_since(last_used: datetime, now: datetime) -> int:
    """Whole days elapsed, floored (a future timestamp yields a negative count)."""
    return int((now - last_used).total_seconds() // _SECONDS_PER_DAY)


def classify(
    item: RankedItem,
    orphan_set: Collection[str],
    now: datetime,
    policy: RecommendationPolicy,
) -> Recommendation | None:
    """Apply the rules in order; the first one that matches decides."""
    size = item.size_bytes or 0

    if item.name in orphan_set:
        return Recommendation(item.name, ORPHAN_REASON, Severity.SAFE, size)

    if item.last_used is not None:
        days = days_since(item.last_used, now)
        if days >= policy.review_days:
            months = days // policy.months_divisor
            reason = f"not used in {days} days (~{months} months)"
            return Recommendation(item.name, reason, Severity.REVIEW, size)
        if days >= policy.warning_days:
            return Recommendation(item.name, f"not used in {days} days", Severity.WARNING, size)
        return None

    if item.size_bytes is not None and item.size_bytes > policy.large_unused_bytes:
        reason = f"no usage data — {format_bytes(item.size_bytes)} in size"
        return Recommendation(item.name, reason, Severity.REVIEW, item.size_bytes)

    return None


def generate_recommendations(
    items: Iterable[RankedItem],
    orphan_set: Collection[str] | None,
    now: datetime,
    policy: RecommendationPolicy | None = None,
) -> list[Recommendation]:
    """Rank cleanup candidates: SAFE, then REVIEW, then WARNING; larger first.

    ``sorted`` is stable, so items that tie keep their input order.
    """
    orphans = orphan_set if orphan_set is not None else frozenset()
    active = policy or RecommendationPolicy()
    found = [rec for item in items if (rec := classify(item, orphans, now, active)) is not None]
    return sorted(found, key=lambda rec: rec.sort_key)


def reclaimable_bytes(recommendations: Iterable[Recommendation]) -> int:
    return sum(rec.recoverable_size for rec in recommendations)
