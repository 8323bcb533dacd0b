# ruff: noqa: INP001
"""Log formatters render structured extras."""

from __future__ import annotations

import json
import logging

from habit_tracker.core.logging import TRACE_LEVEL, JsonFormatter, TextFormatter, _resolve_level


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="habit_tracker.services.tasks",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="tasks.created",
        args=(),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_merges_extras_at_top_level() -> None:
    line = JsonFormatter().format(_record(task_id="abc", frequency_type="daily"))

    payload = json.loads(line)
    assert payload["message"] == "tasks.created"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "habit_tracker.services.tasks"
    assert payload["task_id"] == "abc"
    assert payload["frequency_type"] == "daily"


def test_text_formatter_appends_sorted_key_values() -> None:
    line = TextFormatter(fmt="%(levelname)s %(message)s").format(
        _record(task_id="abc", frequency_type="daily"),
    )

    assert line == "INFO tasks.created frequency_type=daily task_id=abc"


def test_text_formatter_without_extras_is_unchanged() -> None:
    line = TextFormatter(fmt="%(message)s").format(_record())

    assert line == "tasks.created"


def test_resolve_level_handles_trace_and_unknown_names() -> None:
    assert _resolve_level(" trace ") == TRACE_LEVEL
    assert _resolve_level("warning") == logging.WARNING
    assert _resolve_level("chatty") == logging.INFO
