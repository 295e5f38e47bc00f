from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.reset_scheduler",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Retention boundary crossed; readings wiped",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context_keys() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    message = formatter.format(
        _record(policy="calendar_day", deleted_count=4, missing_fields=["lightLevel", "pumpActive"])
    )

    assert message == (
        "Retention boundary crossed; readings wiped"
        " | deleted_count=4 policy=calendar_day missing_fields=lightLevel,pumpActive"
    )


def test_formatter_skips_unknown_and_empty_keys() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    message = formatter.format(_record(backend=None, unrelated="x"))

    assert message == "Retention boundary crossed; readings wiped"
