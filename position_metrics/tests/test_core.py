import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from position_metrics.core.config import Settings  # noqa: E402
from position_metrics.core.logging import StructuredFormatter  # noqa: E402


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("position_metrics.test", logging.WARNING, __file__, 1, "metrics_push_ignored", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_splits_event_and_extra():
    line = StructuredFormatter().format(make_record(event="metrics_push_ignored", authority="margin"))
    data = json.loads(line)
    assert data["level"] == "WARNING"
    assert data["logger"] == "position_metrics.test"
    assert data["message"] == "metrics_push_ignored"
    assert data["event"] == "metrics_push_ignored"
    assert data["extra"] == {"authority": "margin"}


def test_structured_formatter_without_extra():
    data = json.loads(StructuredFormatter().format(make_record()))
    assert "event" not in data
    assert "extra" not in data


def test_settings_defaults_and_overrides():
    settings = Settings(cors_origins="http://localhost:5173, http://127.0.0.1:5173", editor_debounce_ms=150)
    assert settings.cors_origin_list() == ["http://localhost:5173", "http://127.0.0.1:5173"]
    assert settings.editor_debounce_seconds == 0.15
    assert Settings(cors_origins=" ").cors_origin_list() == ["*"]
