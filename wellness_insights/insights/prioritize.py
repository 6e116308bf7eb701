from __future__ import annotations

import random
from collections.abc import Iterable
from datetime import datetime, timedelta

from wellness_insights.insights.schemas import Insight, InsightReport, InsightType, ShownInsight
from wellness_insights.insights.window import ensure_aware

MAX_INSIGHTS = 3
RECENT_PENALTY = 0.7
NOVELTY_BOOST = 1.3
DEFAULT_RECENCY = timedelta(days=3)


def _rank(insights: list[Insight], scores: list[float], rng: random.Random, limit: int) -> list[Insight]:
    # Remaining ties are shuffled so the same pair of insights does not
    # always surface in the same order.
    keyed = [
        (-score, -(insight.data_points or 0), rng.random(), index)
        for index, (insight, score) in enumerate(zip(insights, scores))
    ]
    keyed.sort()
    return [insights[item[3]] for item in keyed[: max(0, limit)]]


def prioritize_insights(
    insights: list[Insight],
    rng: random.Random | None = None,
    limit: int = MAX_INSIGHTS,
) -> list[Insight]:
    return _rank(insights, [insight.confidence for insight in insights], rng or random.Random(), limit)


def recently_shown_types(
    history: Iterable[ShownInsight],
    now: datetime,
    recency: timedelta = DEFAULT_RECENCY,
) -> set[InsightType]:
    current = ensure_aware(now)
    return {shown.type for shown in history if current - ensure_aware(shown.shown_at) < recency}


def prioritize_with_history(
    insights: list[Insight],
    history: Iterable[ShownInsight],
    now: datetime,
    rng: random.Random | None = None,
    recency: timedelta = DEFAULT_RECENCY,
    limit: int = MAX_INSIGHTS,
) -> list[Insight]:
    recent = recently_shown_types(history, now, recency)
    scores = [
        insight.confidence * (RECENT_PENALTY if insight.type in recent else NOVELTY_BOOST) for insight in insights
    ]
    return _rank(insights, scores, rng or random.Random(), limit)


def shown_from_reports(reports: Iterable[InsightReport]) -> list[ShownInsight]:
    return [
        ShownInsight(type=insight.type, shown_at=report.generated_at)
        for report in reports
        for insight in report.insights
    ]
