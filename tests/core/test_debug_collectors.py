import json
import math

import pandas as pd

from panelsim.core.debug import (
    JsonDebugWriter,
    JsonlDebugWriter,
    ListDebugCollector,
    NullDebugCollector,
    ScopedDebugCollector,
    build_debug_collector,
)


def test_list_collector_records_events():
    collector = ListDebugCollector()
    collector.emit("stage1", {"b": 2, "a": 1}, ts="2025-01-01T00:00:00Z", site="site1", hour=3)
    assert len(collector.events) == 1
    event = collector.events[0]
    assert event["stage"] == "stage1"
    assert event["hour"] == 3
    # payload should be key-sorted for determinism
    assert list(event["payload"].keys()) == ["a", "b"]
    assert collector.stages() == ["stage1"]


def test_payload_is_json_safe():
    collector = ListDebugCollector()
    ts = pd.Timestamp("2024-06-21 12:00", tz="UTC")
    collector.emit("stage", {"am": math.inf, "when": ts}, ts=ts)
    event = collector.events[0]
    assert event["ts"] == ts.isoformat()
    assert event["payload"]["am"] == "inf"
    json.dumps(event)


def test_jsonl_writer(tmp_path):
    path = tmp_path / "debug.jsonl"
    writer = JsonlDebugWriter(path)
    writer.emit("stage1", {"z": 1, "y": {"b": 1, "a": 2}}, ts=1)
    writer.emit("stage2", {"b": [2, 1]}, ts=2, site="s", hour=5)
    writer.finalize()

    lines = path.read_text().splitlines()
    assert len(lines) == 2
    events = [json.loads(line) for line in lines]
    assert events[0]["stage"] == "stage1"
    assert list(events[0]["payload"]["y"].keys()) == ["a", "b"]


def test_json_writer_writes_array_on_finalize(tmp_path):
    path = tmp_path / "debug.json"
    writer = build_debug_collector(path)
    assert isinstance(writer, JsonDebugWriter)
    writer.emit("stage", {"x": 1}, ts=None)
    assert not path.exists()
    writer.finalize()
    assert [e["stage"] for e in json.loads(path.read_text())] == ["stage"]


def test_factory_defaults_to_jsonl(tmp_path):
    writer = build_debug_collector(tmp_path / "debug.log")
    assert isinstance(writer, JsonlDebugWriter)
    writer.finalize()


def test_scoped_collector_injects_context():
    inner = ListDebugCollector()
    scoped = ScopedDebugCollector(inner, site="home", hour=7)
    scoped.emit("a", {}, ts=None)
    scoped.emit("b", {}, ts=None, hour=8)
    assert (inner.events[0]["site"], inner.events[0]["hour"]) == ("home", 7)
    assert inner.events[1]["hour"] == 8


def test_null_collector_noop():
    NullDebugCollector().emit("stage", {"x": 1}, ts=0)
