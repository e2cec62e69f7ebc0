"""Tests for the detection simulator."""

import random
from datetime import timedelta

import pytest

from correlator.builder.alerts import AlertFactory
from correlator.builder.detection import (
    ALERT_GENERATION_FAILED,
    BELOW_DETECTION_THRESHOLD,
    NO_LOGS,
    DetectionSimulator,
    StageLogs,
)
from correlator.config import DetectionConfig
from correlator.errors import DetectionSimulationError, GenerationCancelled
from correlator.runtime import CancellationToken


def _stage(make_log, name="execution", minutes=(0, 5, 10, 15), host="host1"):
    return StageLogs(
        stage_id=f"id-{name}",
        stage_name=name,
        techniques=["T1059.001"],
        logs=[make_log(m, host=host) for m in minutes],
    )


def test_rate_one_always_detects(make_log):
    simulator = DetectionSimulator(DetectionConfig(detection_rate=1.0), seed=1)
    stages = [_stage(make_log, name=f"s{i}") for i in range(10)]
    outcome = simulator.simulate(stages)

    assert all(stage.detected for stage in stages)
    assert outcome.missed == []
    assert len(outcome.alerts) == 20


def test_rate_zero_never_detects(make_log):
    simulator = DetectionSimulator(DetectionConfig(detection_rate=0.0), seed=1)
    stages = [_stage(make_log, name=f"s{i}") for i in range(10)]
    outcome = simulator.simulate(stages)

    assert not any(stage.detected for stage in stages)
    assert outcome.alerts == []
    assert [m.reason for m in outcome.missed] == [BELOW_DETECTION_THRESHOLD] * 10
    assert all(m.logs == 4 for m in outcome.missed)


def test_stage_without_logs_is_missed(make_log):
    simulator = DetectionSimulator(DetectionConfig(detection_rate=1.0), seed=1)
    empty = StageLogs(stage_id="x", stage_name="empty", techniques=["T1083"])
    outcome = simulator.simulate([empty, _stage(make_log)])

    assert outcome.missed[0].reason == NO_LOGS
    assert outcome.missed[0].logs == 0
    assert not empty.detected
    assert len(outcome.alerts) == 2


def test_alerts_link_to_exactly_one_trigger(make_log):
    simulator = DetectionSimulator(DetectionConfig(detection_rate=1.0, delay_range="2m-30m"), seed=5)
    stage = _stage(make_log, minutes=(15, 0, 10, 5))
    alerts, missed = simulator.simulate_stage(stage)

    assert missed is None
    assert len(alerts) == 2
    delay = timedelta(minutes=stage.detection_delay_minutes)
    assert 2 <= stage.detection_delay_minutes <= 30

    for alert in alerts:
        matches = [log for log in stage.logs if alert.source_log.matches(log)]
        assert len(matches) == 1
        assert alert.timestamp == matches[0].timestamp + delay
        assert alert.timestamp > matches[0].timestamp
        assert alert.host == matches[0].host

    # The last two logs in temporal order are the triggers
    trigger_times = sorted(alert.source_log.timestamp for alert in alerts)
    latest = sorted(log.timestamp for log in stage.logs)[-2:]
    assert trigger_times == latest


def test_alert_document_references_source_index(make_log):
    simulator = DetectionSimulator(DetectionConfig(detection_rate=1.0, space="soc"), seed=2)
    alerts, _ = simulator.simulate_stage(_stage(make_log))
    doc = alerts[0].to_document()

    assert alerts[0].index_name == ".alerts-security.alerts-soc"
    ancestor = doc["kibana.alert.ancestors"][0]
    assert ancestor["index"] == "logs-endpoint.events.process-default"
    assert ancestor["id"] != alerts[0].id
    assert ancestor["id"] == alerts[0].source_log.event_id
    assert doc["_source_log"]["dataset"] == "endpoint.events.process"
    assert doc["kibana.alert.rule.threat"][0]["technique"][0]["id"] == "T1059"
    assert 40 <= doc["kibana.alert.risk_score"] <= 89


def test_uncatalogued_technique_defaults(make_log):
    factory = AlertFactory(random.Random(3))
    trigger = make_log(0, technique="T9999", action="odd-thing")
    alert = factory.from_trigger(trigger, "T9999", timedelta(minutes=3))

    assert alert.severity == "medium"
    assert alert.rule_name == "Endpoint.events.process: Suspicious odd-thing"


def test_non_positive_delay_rejected(make_log):
    factory = AlertFactory(random.Random(3))
    with pytest.raises(ValueError):
        factory.from_trigger(make_log(0), "T1059", timedelta(0))


def test_mark_detected_never_resets(make_log):
    stage = _stage(make_log)
    stage.mark_detected(5)
    stage.mark_detected(12)
    assert stage.detected
    assert stage.detection_delay_minutes == 5

    # A later undetected trial leaves the flag alone
    DetectionSimulator(DetectionConfig(detection_rate=0.0), seed=1).simulate([stage])
    assert stage.detected
    assert stage.detection_delay_minutes == 5


def test_alert_failure_is_contained(make_log):
    class BrokenFactory(AlertFactory):
        def from_trigger(self, trigger, technique_id, delay, space="default"):
            if trigger.host == "bad-host":
                raise RuntimeError("rule lookup failed")
            return super().from_trigger(trigger, technique_id, delay, space)

    rng = random.Random(4)
    simulator = DetectionSimulator(
        DetectionConfig(detection_rate=1.0), rng=rng, alert_factory=BrokenFactory(rng)
    )
    broken = _stage(make_log, name="broken", host="bad-host")
    healthy = _stage(make_log, name="healthy")
    outcome = simulator.simulate([broken, healthy])

    assert [m.reason for m in outcome.missed] == [ALERT_GENERATION_FAILED]
    assert not broken.detected
    assert healthy.detected
    assert len(outcome.alerts) == 2


def test_seed_determinism_of_split(make_log):
    def run(seed):
        stages = [_stage(make_log, name=f"s{i}", minutes=(0, 1)) for i in range(100)]
        DetectionSimulator(DetectionConfig(detection_rate=0.5), seed=seed).simulate(stages)
        return [stage.detected for stage in stages]

    first = run(42)
    assert first == run(42)

    # Mean over several seeded runs of 100 stages lands in 40-60 detected
    mean = sum(sum(run(seed)) for seed in range(1, 6)) / 5
    assert 40 <= mean <= 60


def test_cancelled_token_stops_simulation(make_log):
    token = CancellationToken()
    token.cancel("stop")
    simulator = DetectionSimulator(DetectionConfig(detection_rate=1.0), seed=1)
    with pytest.raises(GenerationCancelled):
        simulator.simulate([_stage(make_log)], cancel_token=token)


def test_delay_range_without_whole_minutes_rejected():
    with pytest.raises(DetectionSimulationError):
        DetectionSimulator(DetectionConfig(delay_range="10s-40s"))


def test_delay_stays_inside_range(make_log):
    simulator = DetectionSimulator(DetectionConfig(detection_rate=1.0, delay_range="5m-7m"), seed=8)
    for i in range(20):
        stage = _stage(make_log, name=f"s{i}")
        simulator.simulate_stage(stage)
        assert simulator.delay_range.contains(stage.detection_delay_minutes * 60)


def test_ancestor_id_identifies_the_source_log(make_log):
    factory = AlertFactory(random.Random(6))
    trigger = make_log(0)
    first = factory.from_trigger(trigger, "T1059", timedelta(minutes=2))
    second = factory.from_trigger(trigger, "T1059", timedelta(minutes=9))
    other = factory.from_trigger(make_log(5), "T1059", timedelta(minutes=2))

    def ancestor_id(alert):
        return alert.to_document()["kibana.alert.ancestors"][0]["id"]

    assert first.id != second.id
    assert ancestor_id(first) == ancestor_id(second)
    assert ancestor_id(first) != ancestor_id(other)


class RecordingRules:
    def __init__(self):
        self.definitions = []

    def create_rule(self, definition):
        self.definitions.append(definition)
        return {"id": f"rule-{len(self.definitions)}", "name": f"Registered {definition['name']}"}


def test_rules_registered_once_per_technique(make_log):
    rules = RecordingRules()
    factory = AlertFactory(random.Random(7), rule_registry=rules)

    a = factory.from_trigger(make_log(0), "T1059", timedelta(minutes=2))
    b = factory.from_trigger(make_log(5), "T1059", timedelta(minutes=2))
    c = factory.from_trigger(make_log(10, technique="T1486"), "T1486", timedelta(minutes=2))

    assert len(rules.definitions) == 2
    assert rules.definitions[0]["threat"][0]["technique"][0]["id"] == "T1059"
    assert a.rule_id == b.rule_id == "rule-1"
    assert c.rule_id == "rule-2"
    assert a.rule_name.startswith("Registered ")
    assert a.to_document()["kibana.alert.rule.uuid"] == "rule-1"
