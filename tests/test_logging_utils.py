import json
import logging

from transcription_api.logging_utils import JsonFormatter, set_request_id


def _record(msg, **extra):
    rec = logging.LogRecord("transcription-api", logging.INFO, __file__, 1, msg, (), None)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


def test_json_line_carries_extra_fields():
    out = json.loads(JsonFormatter().format(_record("tool.run", tool="ffmpeg", dur_ms=12.5)))
    assert out["message"] == "tool.run"
    assert out["level"] == "info"
    assert out["tool"] == "ffmpeg" and out["dur_ms"] == 12.5
    assert "args" not in out and "msg" not in out


def test_request_id_from_context():
    set_request_id("rid-1")
    try:
        out = json.loads(JsonFormatter().format(_record("x")))
        assert out["request_id"] == "rid-1"
    finally:
        set_request_id(None)
