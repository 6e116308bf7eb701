from __future__ import annotations

from statistics import mean

# Metrics are compared after rounding so that values which are exactly at a
# threshold in decimal (0.9 - 0.6) do not fire on binary float noise.
PRECISION = 9


def exceeds(value: float, threshold: float) -> bool:
    return round(value - threshold, PRECISION) > 0


def cap_confidence(value: float) -> float:
    return max(0.0, min(value, 1.0))


def split_halves(values: list[float]) -> tuple[list[float], list[float]]:
    half = len(values) // 2
    if half == 0:
        return [], []
    return values[:half], values[-half:]


def half_means(values: list[float]) -> tuple[float, float] | None:
    first, second = split_halves(values)
    if not first or not second:
        return None
    return mean(first), mean(second)
