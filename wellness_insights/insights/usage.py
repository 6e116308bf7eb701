from __future__ import annotations

import logging

from wellness_insights.insights.schemas import Insight, InsightEngineInput, InsightType, ProductUsageEntry
from wellness_insights.insights.stats import cap_confidence, exceeds, half_means
from wellness_insights.insights.window import WindowSet, in_window

logger = logging.getLogger(__name__)

# Never binding on its own: the weekday and weekend minimums already sum to 7.
MIN_CONSISTENCY_ENTRIES = 7
MIN_WEEKDAY_ENTRIES = 5
MIN_WEEKEND_ENTRIES = 2
CONSISTENCY_GAP_THRESHOLD = 0.30

MIN_DRIFT_ENTRIES = 10
DRIFT_GAP_THRESHOLD_DAYS = 0.5


def _usage_in_window(data: InsightEngineInput, windows: WindowSet) -> list[ProductUsageEntry]:
    return [entry for entry in data.product_usage_history if in_window(entry.date, windows.main)]


def _completion_rate(entries: list[ProductUsageEntry]) -> float:
    return sum(1 for entry in entries if entry.completed) / len(entries)


def detect_product_consistency(data: InsightEngineInput, windows: WindowSet) -> Insight | None:
    usage = _usage_in_window(data, windows)
    if len(usage) < MIN_CONSISTENCY_ENTRIES:
        logger.debug("product consistency abstained: %d entries in window", len(usage))
        return None

    weekday = [entry for entry in usage if entry.date.weekday() < 5]
    weekend = [entry for entry in usage if entry.date.weekday() >= 5]
    if len(weekday) < MIN_WEEKDAY_ENTRIES or len(weekend) < MIN_WEEKEND_ENTRIES:
        logger.debug("product consistency abstained: weekday=%d weekend=%d", len(weekday), len(weekend))
        return None

    weekday_rate = _completion_rate(weekday)
    weekend_rate = _completion_rate(weekend)
    diff = abs(weekday_rate - weekend_rate)
    if not exceeds(diff, CONSISTENCY_GAP_THRESHOLD):
        logger.debug("product consistency abstained: completion gap %.3f", diff)
        return None

    weekday_pct = round(weekday_rate * 100)
    weekend_pct = round(weekend_rate * 100)
    if weekday_rate > weekend_rate:
        title = "Weekend Protocol Opportunity"
        message = (
            f"Your weekday supplement consistency is {weekday_pct}% vs {weekend_pct}% on weekends. "
            "Your body doesn't take weekends off from healing."
        )
        suggestion = "Set weekend reminders or pre-organize supplements on Friday evening."
    else:
        title = "Weekday Routine Strength"
        message = (
            f"Your weekend consistency shines at {weekend_pct}% vs {weekday_pct}% on weekdays. "
            "You've found your rhythm when life slows down."
        )
        suggestion = (
            "Apply your weekend mindfulness to weekday routines. "
            "Consider morning rituals that mirror weekend calm."
        )

    return Insight(
        icon="\U0001f4e6",
        title=title,
        message=message,
        suggestion=suggestion,
        type=InsightType.PRODUCT_CONSISTENCY,
        confidence=cap_confidence(diff * 2),
        data_points=len(usage),
    )


def detect_routine_drift(data: InsightEngineInput, windows: WindowSet) -> Insight | None:
    usage = sorted(_usage_in_window(data, windows), key=lambda entry: entry.date)
    if len(usage) < MIN_DRIFT_ENTRIES:
        logger.debug("routine drift abstained: %d entries in window", len(usage))
        return None

    gaps = [float((current.date - previous.date).days) for previous, current in zip(usage, usage[1:])]
    means = half_means(gaps)
    if means is None:
        logger.debug("routine drift abstained: %d gaps", len(gaps))
        return None
    first_avg, second_avg = means
    increase = second_avg - first_avg
    if not exceeds(increase, DRIFT_GAP_THRESHOLD_DAYS):
        logger.debug("routine drift abstained: gap increase %.3f days", increase)
        return None

    return Insight(
        icon="\U0001f504",
        title="Routine Drift Detected",
        message=(
            f"Time between supplement logs has increased from {first_avg:.1f} to {second_avg:.1f} days. "
            "Life is pulling you away from your healing rhythm."
        ),
        suggestion=(
            "Reset your routine anchor. Choose one non-negotiable daily moment to reconnect with your protocol."
        ),
        type=InsightType.ROUTINE_DRIFT,
        confidence=cap_confidence(increase),
        data_points=len(gaps),
    )
