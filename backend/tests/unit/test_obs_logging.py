from __future__ import annotations

import json
import logging

from heritage.obs import logging as obs_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("heritage.test", logging.INFO, __file__, 1, "moderation report created", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_redacts_free_text_and_binds_request_id() -> None:
    tokens = obs_logging.bind_context(request_id="req-123", route="/api/mod/v1/reports")
    try:
        line = obs_logging.JSONLogFormatter().format(
            _record(report_id="r1", description="numero de telephone", resolution_notes="interne")
        )
    finally:
        obs_logging.reset_context(tokens)
    payload = json.loads(line)
    assert payload["msg"] == "moderation report created"
    assert payload["request_id"] == "req-123"
    assert payload["report_id"] == "r1"
    assert payload["description"] == "[redacted]"
    assert payload["resolution_notes"] == "[redacted]"
    assert obs_logging.current_request_id() is None


def test_long_values_are_truncated() -> None:
    payload = json.loads(obs_logging.JSONLogFormatter().format(_record(entity_id="x" * 400)))
    assert len(payload["entity_id"]) == 257
