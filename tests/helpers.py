from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from wellness_insights.insights.schemas import (
    Insight,
    InsightEngineInput,
    InsightType,
    ModalitySession,
    ProductUsageEntry,
    ProgressNote,
)

# Monday; the 14-day window covers 2026-03-03 .. 2026-03-16 and the
# 7-day window covers 2026-03-10 .. 2026-03-16.
NOW = datetime(2026, 3, 16, 12, 0, tzinfo=UTC)


def day(month_day: int) -> date:
    return date(2026, 3, month_day)


def usage(
    month_day: int,
    completed: bool = True,
    time_logged: str | None = None,
    product_id: str = "p1",
) -> ProductUsageEntry:
    return ProductUsageEntry(date=day(month_day), product_id=product_id, completed=completed, time_logged=time_logged)


def session(month_day: int, kind: str = "Scalar Wave", duration: float = 30) -> ModalitySession:
    return ModalitySession(type=kind, date=day(month_day), duration=duration)


def note(month_day: int, **biomarkers: float) -> ProgressNote:
    return ProgressNote(date=day(month_day), biomarkers=biomarkers)


def bundle(
    usage_entries: list[ProductUsageEntry] | None = None,
    sessions: list[ModalitySession] | None = None,
    notes: list[ProgressNote] | None = None,
) -> InsightEngineInput:
    return InsightEngineInput(
        product_usage_history=usage_entries or [],
        modality_sessions=sessions or [],
        progress_notes=notes or [],
    )


def make_insight(
    insight_type: InsightType = InsightType.PRODUCT_CONSISTENCY,
    confidence: float = 0.5,
    data_points: int | None = None,
    title: str | None = None,
) -> Insight:
    return Insight(
        icon="*",
        title=title or f"{insight_type.value} insight",
        message="message",
        suggestion="suggestion",
        type=insight_type,
        confidence=confidence,
        data_points=data_points,
    )


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta
