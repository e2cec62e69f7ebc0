"""Tests for document sinks."""

import json

import pytest

from correlator.config import SinkConfig
from correlator.errors import SinkError
from correlator.sinks import (
    DEFAULT_LOG_INDEX,
    FileSink,
    IndexBatch,
    MemorySink,
    get_sink,
    index_for_document,
    list_supported_sinks,
)


def _batch():
    batch = IndexBatch()
    batch.add(".alerts-security.alerts-default", {"kibana.alert.uuid": "a1"})
    batch.add("logs-network.flows-default", {"event.action": "network-connection"})
    batch.add("logs-network.flows-default", {"event.action": "network-connection"})
    return batch


def test_index_batch_layout():
    batch = _batch()
    assert len(batch) == 3
    assert batch.operations[0] == {"create": {"_index": ".alerts-security.alerts-default"}}
    assert list(batch.by_index()) == [".alerts-security.alerts-default", "logs-network.flows-default"]


def test_index_for_document():
    assert index_for_document({"data_stream.dataset": "security"}) == "logs-security-default"
    assert index_for_document({
        "data_stream.dataset": "security", "data_stream.namespace": "lab",
    }) == "logs-security-lab"
    assert index_for_document({}) == DEFAULT_LOG_INDEX


def test_file_sink_ndjson(tmp_path):
    sink = FileSink(SinkConfig(output_dir=str(tmp_path)))
    result = sink.write_batch(_batch())

    assert result.success
    assert result.documents_written == 3
    alerts = tmp_path / "alerts-security.alerts-default.ndjson"
    logs = tmp_path / "logs-network.flows-default.ndjson"
    assert len(alerts.read_text().splitlines()) == 1
    assert len(logs.read_text().splitlines()) == 2

    # NDJSON appends
    sink.write_batch(_batch())
    assert len(logs.read_text().splitlines()) == 4


def test_file_sink_json_accumulates(tmp_path):
    sink = FileSink(SinkConfig(output_dir=str(tmp_path), format="json"))
    sink.write_batch(_batch())
    sink.write_batch(_batch())

    with open(tmp_path / "logs-network.flows-default.json") as f:
        assert len(json.load(f)) == 4


def test_memory_sink_rejections():
    sink = MemorySink(reject={"logs-network.flows-default"})
    with pytest.raises(SinkError):
        sink.write_batch(_batch())

    lenient = MemorySink(SinkConfig(type="memory", fail_on_error=False), reject={"logs-network.flows-default"})
    progress = []
    result = lenient.write_batch(_batch(), progress_callback=lambda done, total: progress.append(done))

    assert not result.success
    assert result.documents_written == 1
    assert result.documents_failed == 2
    assert lenient.count() == 1
    assert progress == [1, 3]


def test_sink_registry():
    assert list_supported_sinks() == ["file", "memory"]
    assert isinstance(get_sink("MEMORY"), MemorySink)
    with pytest.raises(ValueError):
        get_sink("elasticsearch")
