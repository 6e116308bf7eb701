"""Log setup for the insight engine and cache.

Structured extras pass through ``scrub_fields`` before they are written:
user identifiers and cache keys become a stable digest, health payloads
(free-text notes, biomarker readings, whole reports) are left out, and
connection credentials are masked.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

LOG_FORMAT_ENV = "WELLNESS_INSIGHTS_LOG_FORMAT"

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}
_PSEUDONYMIZED = frozenset({"user_id", "cache_key"})
_WITHHELD = frozenset({"notes", "biomarkers", "progress_notes", "report", "input"})
_CREDENTIAL_MARKERS = ("password", "secret", "token", "redis_url")


def pseudonymize(value: object) -> str:
    digest = hashlib.sha256(str(value).encode("utf-8")).hexdigest()
    return f"anon-{digest[:12]}"


def scrub_fields(fields: dict[str, Any]) -> dict[str, Any]:
    clean: dict[str, Any] = {}
    for key, value in fields.items():
        lowered = key.lower()
        if lowered in _WITHHELD:
            continue
        if lowered in _PSEUDONYMIZED:
            clean[key] = pseudonymize(value)
        elif any(marker in lowered for marker in _CREDENTIAL_MARKERS):
            clean[key] = "[REDACTED]"
        else:
            clean[key] = value
    return clean


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        payload: dict[str, Any] = scrub_fields(extras)
        payload.update(
            ts=datetime.fromtimestamp(record.created, UTC).isoformat(),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_logging(verbose: bool = False) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    if os.getenv(LOG_FORMAT_ENV, "json").lower() == "text":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
