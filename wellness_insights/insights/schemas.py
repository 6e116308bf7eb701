from __future__ import annotations

import datetime as dt
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

TIME_LOGGED_RE = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


class InsightType(str, Enum):
    PRODUCT_CONSISTENCY = "product-consistency"
    ENERGY_MODALITY = "energy-modality"
    SLEEP_PROTOCOL = "sleep-protocol"
    MOOD_VARIABILITY = "mood-variability"
    IMPROVEMENT_TREND = "improvement-trend"
    ROUTINE_DRIFT = "routine-drift"


class ProductUsageEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    date: dt.date
    product_id: str = Field(min_length=1)
    product_name: str | None = None
    completed: bool
    time_logged: str | None = None

    @field_validator("time_logged")
    @classmethod
    def validate_time_logged(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not TIME_LOGGED_RE.match(value):
            raise ValueError("time_logged must look like HH:MM")
        return value

    @property
    def logged_hour(self) -> int | None:
        if self.time_logged is None:
            return None
        return int(self.time_logged.split(":", 1)[0])


class ModalitySession(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str = Field(min_length=1)
    date: dt.date
    duration: float = Field(ge=0)
    notes: str | None = None


class ProgressNote(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    date: dt.date
    biomarkers: dict[str, float] = Field(default_factory=dict)
    notes: str | None = None


class UserPreferences(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    wake_time: str | None = None
    sleep_time: str | None = None
    timezone: str | None = None


class InsightEngineInput(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    product_usage_history: list[ProductUsageEntry] = Field(default_factory=list)
    modality_sessions: list[ModalitySession] = Field(default_factory=list)
    progress_notes: list[ProgressNote] = Field(default_factory=list)
    user_preferences: UserPreferences | None = None


class Insight(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    icon: str
    title: str = Field(min_length=1, max_length=240)
    message: str = Field(min_length=1, max_length=1200)
    suggestion: str = Field(min_length=1, max_length=600)
    type: InsightType
    confidence: float = Field(ge=0, le=1)
    data_points: int | None = Field(default=None, ge=0)


class AnalysisWindow(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    start: dt.datetime
    end: dt.datetime
    days_analyzed: int = Field(ge=0)


class InsightReport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str = Field(min_length=1)
    insights: tuple[Insight, ...] = Field(default=(), max_length=3)
    generated_at: dt.datetime
    analysis_window: AnalysisWindow


class ShownInsight(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: InsightType
    shown_at: dt.datetime


class CachedInsight(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    report: InsightReport
    timestamp: int = Field(ge=0)
    ttl: int = Field(ge=0)

    def is_valid(self, now_ms: int) -> bool:
        return (now_ms - self.timestamp) < self.ttl


class CacheStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_entries: int = Field(ge=0)
    valid_entries: int = Field(ge=0)
    expired_entries: int = Field(ge=0)
    cache_hit_rate: float = Field(ge=0, le=1)
    memory_usage: int = Field(ge=0)
