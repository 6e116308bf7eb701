from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from wellness_insights.config import AppConfig
from wellness_insights.insights.biomarkers import detect_improvement_trend, detect_mood_variability
from wellness_insights.insights.correlations import detect_energy_after_modality, detect_sleep_and_morning_protocol
from wellness_insights.insights.prioritize import prioritize_insights, prioritize_with_history
from wellness_insights.insights.schemas import Insight, InsightEngineInput, InsightReport, ShownInsight
from wellness_insights.insights.usage import detect_product_consistency, detect_routine_drift
from wellness_insights.insights.window import WindowSet, ensure_aware, select_windows
from wellness_insights.telemetry import INSIGHTS_EMITTED

logger = logging.getLogger(__name__)

Detector = Callable[[InsightEngineInput, WindowSet], Insight | None]

DETECTORS: tuple[Detector, ...] = (
    detect_product_consistency,
    detect_energy_after_modality,
    detect_sleep_and_morning_protocol,
    detect_mood_variability,
    detect_improvement_trend,
    detect_routine_drift,
)


class InsightEngine:
    def __init__(
        self,
        config: AppConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        detectors: tuple[Detector, ...] = DETECTORS,
    ) -> None:
        self.config = config or AppConfig()
        self.rng = rng or random.Random()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.detectors = detectors

    def run_detectors(self, data: InsightEngineInput, windows: WindowSet) -> list[Insight]:
        candidates: list[Insight] = []
        for detector in self.detectors:
            insight = detector(data, windows)
            if insight is None:
                continue
            logger.debug("detector %s fired with confidence %.3f", detector.__name__, insight.confidence)
            candidates.append(insight)
        return candidates

    def generate_insights(
        self,
        data: InsightEngineInput,
        user_id: str,
        now: datetime | None = None,
        history: Iterable[ShownInsight] | None = None,
    ) -> InsightReport:
        current = ensure_aware(now or self.clock())
        windows = select_windows(current, self.config.window_days, self.config.recent_window_days)
        candidates = self.run_detectors(data, windows)

        if history is None:
            selected = prioritize_insights(candidates, rng=self.rng, limit=self.config.max_insights)
        else:
            selected = prioritize_with_history(
                candidates,
                history,
                now=current,
                rng=self.rng,
                recency=timedelta(days=self.config.history_recency_days),
                limit=self.config.max_insights,
            )

        for insight in selected:
            INSIGHTS_EMITTED.labels(type=insight.type.value).inc()
        logger.info(
            "generated insight report",
            extra={
                "user_id": user_id,
                "candidates": len(candidates),
                "selected": [insight.type.value for insight in selected],
            },
        )

        return InsightReport(
            user_id=user_id,
            insights=tuple(selected),
            generated_at=current,
            analysis_window=windows.main,
        )


def generate_insights(data: InsightEngineInput, user_id: str, now: datetime | None = None) -> InsightReport:
    return InsightEngine().generate_insights(data, user_id, now=now)
