from __future__ import annotations

import json
import logging

import pytest

from tests.helpers import NOW, bundle
from wellness_insights.insights.engine import InsightEngine
from wellness_insights.logging import JsonFormatter, pseudonymize, scrub_fields


def _format(**fields: object) -> dict[str, object]:
    record = logging.makeLogRecord({"name": "wellness_insights.test", "msg": "event", "levelname": "INFO", **fields})
    return json.loads(JsonFormatter().format(record))


def test_user_ids_are_pseudonymized() -> None:
    payload = _format(user_id="alice@example.com", cache_key="alice@example.com_2026-03-16")

    assert payload["user_id"] == pseudonymize("alice@example.com")
    assert "alice" not in json.dumps(payload)


def test_pseudonym_is_stable_and_distinct() -> None:
    assert pseudonymize("user-1") == pseudonymize("user-1")
    assert pseudonymize("user-1") != pseudonymize("user-2")
    assert pseudonymize("user-1").startswith("anon-")


def test_health_payloads_are_withheld() -> None:
    payload = _format(notes="felt anxious after the appointment", biomarkers={"Mood": 2}, candidates=4)

    assert "notes" not in payload
    assert "biomarkers" not in payload
    assert payload["candidates"] == 4


def test_credentials_are_masked() -> None:
    payload = _format(redis_url="redis://:hunter2@cache:6379/0", api_token="abc")

    assert payload["redis_url"] == "[REDACTED]"
    assert payload["api_token"] == "[REDACTED]"


def test_standard_fields_survive_scrubbing() -> None:
    payload = _format(user_id="user-1")

    assert payload["level"] == "INFO"
    assert payload["logger"] == "wellness_insights.test"
    assert payload["message"] == "event"
    assert "ts" in payload


def test_scrub_fields_leaves_plain_values() -> None:
    assert scrub_fields({"operation": "save", "selected": ["mood-variability"]}) == {
        "operation": "save",
        "selected": ["mood-variability"],
    }


def test_engine_report_log_hides_the_user(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="wellness_insights.insights.engine"):
        InsightEngine().generate_insights(bundle(), "alice@example.com", now=NOW)

    record = next(record for record in caplog.records if record.getMessage() == "generated insight report")
    line = JsonFormatter().format(record)

    assert "alice@example.com" not in line
    assert json.loads(line)["user_id"] == pseudonymize("alice@example.com")
