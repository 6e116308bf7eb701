from __future__ import annotations

import random

import pytest

from tests.helpers import NOW, FakeClock
from wellness_insights.insights.window import WindowSet, select_windows


@pytest.fixture()
def windows() -> WindowSet:
    return select_windows(NOW)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)
