"""Tests for the log correlation engine."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from correlator.builder.correlation import LogCorrelationEngine
from correlator.builder.events import ProcessEvent, Trigger
from correlator.builder.timestamp_gen import WindowPolicy
from correlator.config import CorrelationConfig, TimestampConfig
from correlator.errors import TemplateGenerationError
from correlator.runtime import GenerationMetrics
from correlator.templates import TechniqueTemplate, TemplateRegistry, TemplateSlot


T1059_ACTIONS = [
    "process-started",
    "network-connection",
    "file-created",
    "explicit-credential-logon",
    "registry-value-set",
    "behavioral-anomaly",
]


def _trigger(anchor, technique="T1059"):
    return Trigger(host="host1", user="alice", technique_id=technique, anchor_timestamp=anchor)


def test_scripting_scenario(anchor):
    """T1059 yields the six-step PowerShell chain ending a minute before the alert."""
    engine = LogCorrelationEngine(seed=7)
    logs = engine.generate_correlated_logs(_trigger(anchor), count=6)

    assert [log.action for log in logs] == T1059_ACTIONS
    assert logs[0].timestamp == anchor - timedelta(minutes=10)
    assert logs[-1].timestamp == anchor - timedelta(minutes=1)
    assert all(log.host == "host1" and log.user == "alice" for log in logs)
    assert all(log.technique_id == "T1059" for log in logs)

    # Shared process identity across slots
    pids = {log.pid for log in logs}
    assert len(pids) == 1


def test_attack_scenario_narrative_and_causality(make_alert):
    alert = make_alert(technique="T1059")
    engine = LogCorrelationEngine(seed=7)
    scenario = engine.generate_attack_scenario(alert, CorrelationConfig(log_count=6))

    assert scenario.alert is alert
    assert len(scenario.supporting_logs) == 6
    assert scenario.attack_narrative.startswith("Command and scripting attack:")
    assert all(log.timestamp <= alert.timestamp for log in scenario.supporting_logs)

    doc = scenario.to_dict()
    assert set(doc) == {"alert", "supportingLogs", "attackNarrative"}
    assert doc["supportingLogs"][0]["event.action"] == "process-started"


def test_phishing_offsets(anchor):
    engine = LogCorrelationEngine(seed=1)
    logs = engine.generate_correlated_logs(_trigger(anchor, "T1566.001"), count=8)

    offsets = [int((anchor - log.timestamp).total_seconds() // 60) for log in logs]
    assert offsets == [30, 25, 20, 15, 10, 8, 5, 2]


def test_generic_template_for_uncatalogued_technique(anchor):
    engine = LogCorrelationEngine(seed=1)
    logs = engine.generate_correlated_logs(_trigger(anchor, "T1083"), count=10)

    assert len(logs) == 4
    assert all(log.timestamp < anchor for log in logs)


def test_truncates_never_pads(anchor):
    engine = LogCorrelationEngine(seed=3)
    short = engine.generate_correlated_logs(_trigger(anchor), count=3)
    assert [log.action for log in short] == T1059_ACTIONS[:3]

    long = engine.generate_correlated_logs(_trigger(anchor), count=100)
    assert len(long) == 6


def test_zero_and_negative_counts(anchor):
    engine = LogCorrelationEngine(seed=3)
    assert engine.generate_correlated_logs(_trigger(anchor), count=0) == []
    with pytest.raises(ValueError):
        engine.generate_correlated_logs(_trigger(anchor), count=-1)


def test_failing_slot_is_skipped(anchor, caplog):
    def good(ctx, ts):
        return ProcessEvent(**ctx.envelope(ts, "endpoint.events.process", "process-started"),
                            process_name="a.exe")

    def bad(ctx, ts):
        raise RuntimeError("builder exploded")

    template = TechniqueTemplate("T1059", "flaky", lambda ctx: [
        TemplateSlot("first", timedelta(minutes=5), good),
        TemplateSlot("broken", timedelta(minutes=3), bad),
        TemplateSlot("last", timedelta(minutes=1), good),
    ])
    engine = LogCorrelationEngine(registry=TemplateRegistry([template]), seed=1)

    with caplog.at_level(logging.WARNING):
        result = engine.generate(_trigger(anchor), count=6)

    assert len(result.events) == 2
    assert not result.ok
    assert [err.slot for err in result.errors] == ["broken"]
    assert "builder exploded" in result.errors[0].error
    assert "broken" in caplog.text


def test_window_mode_is_sorted_and_clamped(make_alert):
    alert = make_alert(technique="T1566")
    config = CorrelationConfig(
        log_count=8,
        timestamp_config=TimestampConfig(
            start_date="2024-12-31T00:00:00Z",
            end_date="2025-01-02T00:00:00Z",
            pattern="attack_simulation",
        ),
    )
    engine = LogCorrelationEngine(seed=11)
    scenario = engine.generate_attack_scenario(alert, config)
    stamps = [log.timestamp for log in scenario.supporting_logs]

    assert len(stamps) == 8
    assert stamps == sorted(stamps)
    assert stamps[0] >= datetime(2024, 12, 31, tzinfo=timezone.utc)
    assert stamps[-1] <= alert.timestamp


def test_window_policy_directly(anchor):
    policy = WindowPolicy(anchor - timedelta(hours=2), anchor)
    engine = LogCorrelationEngine(seed=5)
    logs = engine.generate_correlated_logs(_trigger(anchor, "T1055"), count=5, policy=policy)

    assert len(logs) == 5
    assert all(anchor - timedelta(hours=2) <= log.timestamp <= anchor for log in logs)


def test_same_seed_same_documents(anchor):
    first = LogCorrelationEngine(seed=99).generate_correlated_logs(_trigger(anchor, "T1003"), 5)
    second = LogCorrelationEngine(seed=99).generate_correlated_logs(_trigger(anchor, "T1003"), 5)
    assert [log.to_document() for log in first] == [log.to_document() for log in second]


def test_metrics_recorded(anchor):
    metrics = GenerationMetrics(max_samples=10)
    engine = LogCorrelationEngine(seed=1, metrics=metrics)
    engine.generate_correlated_logs(_trigger(anchor, "T1486"), count=4)
    assert metrics.total("logs_generated") == 4


def test_log_documents(anchor):
    engine = LogCorrelationEngine(seed=2, namespace="lab")
    logs = engine.generate_correlated_logs(_trigger(anchor), count=2)
    doc = logs[1].to_document()

    assert logs[1].index_name == "logs-network.flows-lab"
    assert doc["data_stream.namespace"] == "lab"
    assert doc["destination.ip"] == "192.168.100.50"
    assert doc["destination.port"] == 80
    assert doc["related.user"] == ["alice"]
    assert doc["@timestamp"] == "2025-01-01T09:52:00.000Z"


def test_broken_template_raises(anchor):
    def broken(ctx):
        raise KeyError("missing catalog entry")

    registry = TemplateRegistry([TechniqueTemplate("T1059", "broken", broken)])
    engine = LogCorrelationEngine(registry=registry, seed=1)

    with pytest.raises(TemplateGenerationError) as excinfo:
        engine.generate(_trigger(anchor), count=3)
    assert excinfo.value.technique_id == "T1059"


def test_registry_with_only_a_default_is_kept(anchor):
    """A registry with no family templates is still the one the engine uses."""
    def single(ctx):
        return [TemplateSlot("only", timedelta(minutes=4), lambda c, ts: ProcessEvent(
            **c.envelope(ts, "endpoint.events.process", "custom-step"), process_name="custom.exe"))]

    registry = TemplateRegistry([], default=TechniqueTemplate("default", "custom", single))
    engine = LogCorrelationEngine(registry=registry, seed=1)

    assert engine.registry is registry
    logs = engine.generate_correlated_logs(_trigger(anchor, "T1059"), count=5)
    assert [log.action for log in logs] == ["custom-step"]
    assert logs[0].timestamp == anchor - timedelta(minutes=4)
