import json
import logging
import time

from pttflow.config import Settings
from pttflow.logging import configure_logging
from pttflow.metrics import Gauge, Timer, events_received_total


def test_json_logging_structure(monkeypatch, capsys):
    monkeypatch.setenv("LOG_FORMAT", "json")
    configure_logging()
    logging.getLogger(__name__).info(
        "sample",
        extra={
            "event_type": "ptt",
            "node_id": "rx",
            "event_id": "e1",
            "sender": "bob",
            "error_category": "network",
            "latency_ms": 1.2,
        },
    )
    captured = capsys.readouterr().err.strip().splitlines()[-1]
    data = json.loads(captured)
    for key in ["event_type", "node_id", "event_id", "sender", "error_category", "latency_ms"]:
        assert key in data
    assert data["event_type"] == "ptt"
    assert data["node_id"] == "rx"


def test_counter_gauge_and_timer_update():
    events_received_total.value = 0
    events_received_total.inc()
    assert events_received_total.value == 1
    gauge = Gauge()
    gauge.inc()
    gauge.inc()
    gauge.dec()
    assert gauge.value == 1
    timer = Timer()
    with timer.time():
        time.sleep(0.001)
    assert timer.last_ms is not None and timer.last_ms > 0


def test_lowercase_levels_are_accepted(monkeypatch):
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    root = logging.getLogger()
    previous = root.level
    try:
        configure_logging(Settings(log_level="debug").log_level)
        assert root.level == logging.DEBUG
        monkeypatch.setenv("LOG_LEVEL", "warning")
        configure_logging()
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
