from __future__ import annotations

import logging
from datetime import date, timedelta
from statistics import mean

from wellness_insights.insights.schemas import Insight, InsightEngineInput, InsightType, ProgressNote
from wellness_insights.insights.stats import cap_confidence, exceeds
from wellness_insights.insights.window import WindowSet, in_window

logger = logging.getLogger(__name__)

ENERGY = "Energy"
SLEEP = "Sleep"
SCALAR_MARKER = "scalar"

MIN_SCALAR_SESSIONS = 3
MIN_ENERGY_PAIRS = 3
MIN_ENERGY_SAMPLES = 5
ENERGY_LIFT_THRESHOLD = 0.5

EARLY_HOUR_CUTOFF = 10
MIN_EARLY_ENTRIES = 5
MIN_SLEEP_DAYS = 7
MIN_SLEEP_GROUP = 3
SLEEP_LIFT_THRESHOLD = 0.5


def _first_score(notes: list[ProgressNote], day: date, biomarker: str) -> float | None:
    for note in notes:
        if note.date == day and biomarker in note.biomarkers:
            return note.biomarkers[biomarker]
    return None


def detect_energy_after_modality(data: InsightEngineInput, windows: WindowSet) -> Insight | None:
    sessions = [
        session
        for session in data.modality_sessions
        if in_window(session.date, windows.main) and SCALAR_MARKER in session.type.lower()
    ]
    if len(sessions) < MIN_SCALAR_SESSIONS:
        logger.debug("energy after modality abstained: %d scalar sessions in window", len(sessions))
        return None

    next_day_energy: list[float] = []
    for session in sessions:
        score = _first_score(data.progress_notes, session.date + timedelta(days=1), ENERGY)
        if score is not None:
            next_day_energy.append(score)
    if len(next_day_energy) < MIN_ENERGY_PAIRS:
        logger.debug("energy after modality abstained: %d matched pairs", len(next_day_energy))
        return None

    all_energy = [note.biomarkers[ENERGY] for note in data.progress_notes if ENERGY in note.biomarkers]
    if len(all_energy) < MIN_ENERGY_SAMPLES:
        logger.debug("energy after modality abstained: %d energy samples", len(all_energy))
        return None

    after_avg = mean(next_day_energy)
    overall_avg = mean(all_energy)
    increase = after_avg - overall_avg
    if not exceeds(increase, ENERGY_LIFT_THRESHOLD):
        logger.debug("energy after modality abstained: lift %.3f", increase)
        return None

    return Insight(
        icon="\u26a1\ufe0f",
        title="Scalar Sessions Energize You",
        message=(
            f"Your Energy scores average {after_avg:.1f} the day after Scalar sessions, "
            f"compared to your usual {overall_avg:.1f}. Your cells are responding to the frequency healing."
        ),
        suggestion=(
            "Consider scheduling Scalar sessions before demanding days or when you feel energy depletion coming."
        ),
        type=InsightType.ENERGY_MODALITY,
        confidence=cap_confidence(increase / 2),
        data_points=len(next_day_energy),
    )


def detect_sleep_and_morning_protocol(data: InsightEngineInput, windows: WindowSet) -> Insight | None:
    early_days: set[date] = set()
    early_count = 0
    for entry in data.product_usage_history:
        hour = entry.logged_hour
        if hour is None or hour >= EARLY_HOUR_CUTOFF or not in_window(entry.date, windows.main):
            continue
        early_days.add(entry.date)
        early_count += 1
    if early_count < MIN_EARLY_ENTRIES:
        logger.debug("sleep protocol abstained: %d early logs in window", early_count)
        return None

    with_early: list[float] = []
    without_early: list[float] = []
    for note in data.progress_notes:
        if SLEEP not in note.biomarkers:
            continue
        bucket = with_early if note.date in early_days else without_early
        bucket.append(note.biomarkers[SLEEP])

    paired = len(with_early) + len(without_early)
    if paired < MIN_SLEEP_DAYS:
        logger.debug("sleep protocol abstained: %d sleep days", paired)
        return None
    if len(with_early) < MIN_SLEEP_GROUP or len(without_early) < MIN_SLEEP_GROUP:
        logger.debug(
            "sleep protocol abstained: with_early=%d without_early=%d", len(with_early), len(without_early)
        )
        return None

    early_avg = mean(with_early)
    late_avg = mean(without_early)
    diff = early_avg - late_avg
    if not exceeds(diff, SLEEP_LIFT_THRESHOLD):
        logger.debug("sleep protocol abstained: difference %.3f", diff)
        return None

    return Insight(
        icon="\U0001f319",
        title="Morning Rituals Improve Sleep",
        message=(
            f"Your Sleep quality averages {early_avg:.1f} on days when you log supplements before 10am, "
            f"vs {late_avg:.1f} otherwise. Morning consistency creates evening peace."
        ),
        suggestion=(
            "Establish a morning supplement ritual. Your circadian rhythm thrives on predictable morning signals."
        ),
        type=InsightType.SLEEP_PROTOCOL,
        confidence=cap_confidence(diff / 2),
        data_points=paired,
    )
