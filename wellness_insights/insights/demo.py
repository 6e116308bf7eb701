from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta

from wellness_insights.insights.schemas import (
    InsightEngineInput,
    ModalitySession,
    ProductUsageEntry,
    ProgressNote,
    UserPreferences,
)

DEMO_DAYS = 14


def _clamp(value: float, low: float = 1.0, high: float = 10.0) -> float:
    return round(max(low, min(high, value)), 2)


def build_demo_input(now: datetime | None = None, rng: random.Random | None = None) -> InsightEngineInput:
    current = now or datetime.now(UTC)
    rand = rng or random.Random(7)
    usage: list[ProductUsageEntry] = []
    sessions: list[ModalitySession] = []
    notes: list[ProgressNote] = []

    for days_ago in range(DEMO_DAYS - 1, -1, -1):
        day = (current - timedelta(days=days_ago)).date()
        is_weekend = day.weekday() >= 5
        completion_rate = 0.6 if is_weekend else 0.9

        if rand.random() < completion_rate:
            usage.append(
                ProductUsageEntry(
                    date=day,
                    product_id="liver-cleanse",
                    product_name="Liver Cleanse",
                    completed=True,
                    time_logged="09:30" if is_weekend else "08:15",
                )
            )

        had_session = days_ago % 3 == 0
        if had_session:
            sessions.append(ModalitySession(type="scalar", date=day, duration=round(30 + rand.random() * 30, 1)))

        energy_boost = 1.5 if had_session else 0.0
        notes.append(
            ProgressNote(
                date=day,
                biomarkers={
                    "Energy": _clamp(6 + energy_boost + (rand.random() - 0.5) * 2),
                    "Sleep": _clamp(6.5 + (rand.random() - 0.5) * 3),
                    "Digestion": _clamp(7 + (rand.random() - 0.5) * 2),
                    "Mood": _clamp(6.8 + (rand.random() - 0.5) * 4),
                    "Focus": _clamp(6.2 + (rand.random() - 0.5) * 2),
                    "Hydration": _clamp(7.5 + (rand.random() - 0.5) * 1.5),
                },
            )
        )

    return InsightEngineInput(
        product_usage_history=usage,
        modality_sessions=sessions,
        progress_notes=notes,
        user_preferences=UserPreferences(wake_time="07:00", sleep_time="22:30"),
    )
