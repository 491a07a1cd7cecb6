import json
import logging
import sys

from exam_portal.core.logging import JsonFormatter


def _record(**extra):
    record = logging.LogRecord("access", logging.INFO, __file__, 1, "access_resolved", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_whitelisted_extra_fields_are_kept():
    line = json.loads(JsonFormatter().format(_record(user_id="u1", plan_names=["gold"], password="x")))

    assert line["message"] == "access_resolved"
    assert line["level"] == "INFO"
    assert line["user_id"] == "u1"
    assert line["plan_names"] == ["gold"]
    assert "password" not in line


def test_exception_is_serialized():
    try:
        raise RuntimeError("db down")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    line = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: db down" in line["exception"]
