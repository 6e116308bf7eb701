from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from wellness_insights.insights.schemas import AnalysisWindow

DEFAULT_WINDOW_DAYS = 14
RECENT_WINDOW_DAYS = 7


def ensure_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def select_window(now: datetime, days: int = DEFAULT_WINDOW_DAYS) -> AnalysisWindow:
    if days < 1:
        raise ValueError("analysis window must span at least one day")
    end = ensure_aware(now)
    start = end - timedelta(days=days)
    return AnalysisWindow(start=start, end=end, days_analyzed=(end - start).days)


def day_anchor(day: date, window: AnalysisWindow) -> datetime:
    return datetime.combine(day, time.min, tzinfo=window.end.tzinfo)


def in_window(day: date, window: AnalysisWindow) -> bool:
    """Both bounds are exclusive; a record dated today is anchored at midnight."""
    anchor = day_anchor(day, window)
    return window.start < anchor < window.end


@dataclass(frozen=True, slots=True)
class WindowSet:
    main: AnalysisWindow
    recent: AnalysisWindow


def select_windows(
    now: datetime,
    main_days: int = DEFAULT_WINDOW_DAYS,
    recent_days: int = RECENT_WINDOW_DAYS,
) -> WindowSet:
    return WindowSet(main=select_window(now, main_days), recent=select_window(now, recent_days))
