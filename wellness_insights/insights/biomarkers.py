from __future__ import annotations

import logging
from statistics import pstdev

from wellness_insights.insights.schemas import Insight, InsightEngineInput, InsightType
from wellness_insights.insights.stats import cap_confidence, exceeds, half_means
from wellness_insights.insights.window import WindowSet, in_window

logger = logging.getLogger(__name__)

MOOD = "Mood"
MIN_MOOD_SAMPLES = 5
MOOD_STDDEV_THRESHOLD = 2.0

TREND_BIOMARKERS = ("Energy", "Sleep", "Digestion", "Mood", "Focus", "Hydration")
TREND_SAMPLE_LIMIT = 14
MIN_TREND_SAMPLES = 7
TREND_IMPROVEMENT_PERCENT = 10.0
MIN_IMPROVING_BIOMARKERS = 3


def _format_score(value: float) -> str:
    return f"{value:g}"


def detect_mood_variability(data: InsightEngineInput, windows: WindowSet) -> Insight | None:
    scores = [
        note.biomarkers[MOOD]
        for note in data.progress_notes
        if MOOD in note.biomarkers and in_window(note.date, windows.recent)
    ]
    if len(scores) < MIN_MOOD_SAMPLES:
        logger.debug("mood variability abstained: %d mood samples this week", len(scores))
        return None

    spread = pstdev(scores)
    if not exceeds(spread, MOOD_STDDEV_THRESHOLD):
        logger.debug("mood variability abstained: stddev %.3f", spread)
        return None

    return Insight(
        icon="\U0001f4c9",
        title="Mood Waves This Week",
        message=(
            f"Your Mood has ranged from {_format_score(min(scores))} to {_format_score(max(scores))} this week. "
            "These emotional tides are part of deep healing - your nervous system is recalibrating."
        ),
        suggestion=(
            "Focus on grounding practices during dips. "
            "Consider adding magnesium or adaptogens to smooth the emotional waves."
        ),
        type=InsightType.MOOD_VARIABILITY,
        confidence=cap_confidence(spread / 3),
        data_points=len(scores),
    )


def biomarker_improvements(data: InsightEngineInput) -> dict[str, float]:
    """Percent change of the later half mean over the earlier half, for improving biomarkers only."""
    ordered = sorted(data.progress_notes, key=lambda note: note.date)
    improvements: dict[str, float] = {}
    for biomarker in TREND_BIOMARKERS:
        scores = [note.biomarkers[biomarker] for note in ordered if biomarker in note.biomarkers]
        scores = scores[-TREND_SAMPLE_LIMIT:]
        if len(scores) < MIN_TREND_SAMPLES:
            continue
        means = half_means(scores)
        if means is None:
            continue
        first_avg, second_avg = means
        if first_avg <= 0:
            continue
        change = (second_avg - first_avg) / first_avg * 100
        if exceeds(change, TREND_IMPROVEMENT_PERCENT):
            improvements[biomarker] = change
    return improvements


def detect_improvement_trend(data: InsightEngineInput, windows: WindowSet) -> Insight | None:
    improvements = biomarker_improvements(data)
    if len(improvements) < MIN_IMPROVING_BIOMARKERS:
        logger.debug("improvement trend abstained: %d improving biomarkers", len(improvements))
        return None

    leader, change = max(improvements.items(), key=lambda item: item[1])
    return Insight(
        icon="\U0001f4c8",
        title="Multi-System Upgrade",
        message=(
            f"{len(improvements)} biomarkers are trending upward, led by {leader} improving {change:.0f}%. "
            "Your protocol is creating systemic change."
        ),
        suggestion="Stay the course. Consider documenting what's working to replicate this success pattern.",
        type=InsightType.IMPROVEMENT_TREND,
        confidence=cap_confidence(len(improvements) / 5),
        data_points=len(improvements),
    )
