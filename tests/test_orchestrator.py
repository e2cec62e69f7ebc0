"""Tests for batch and campaign orchestration."""

import asyncio
from datetime import datetime, timezone

import pytest

from correlator.builder.events import Alert
from correlator.builder.orchestrator import FALLBACK_NARRATIVE, AttackOrchestrator
from correlator.config import BatchConfig, CampaignConfig, DetectionConfig
from correlator.errors import GenerationCancelled
from correlator.runtime import CancellationToken
from correlator.sinks import MemorySink
from correlator.templates import TechniqueTemplate, TemplateRegistry


NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FailingSource:
    def __init__(self):
        self.calls = 0

    async def generate_alert(self, context):
        self.calls += 1
        raise RuntimeError("model unavailable")


class SlowSource:
    async def generate_alert(self, context):
        await asyncio.sleep(5)


class StaticSource:
    async def generate_alert(self, context):
        return Alert(
            id="ai-1",
            timestamp=context.timestamp,
            host=context.host,
            user=context.user,
            technique_id=context.technique_id,
            rule_name="Generated rule",
        )


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def test_batch_without_ai():
    orchestrator = AttackOrchestrator(seed=1, now=NOW)
    result = asyncio.run(orchestrator.generate_batch(5, BatchConfig(log_count=4)))

    assert len(result.scenarios) == 5
    assert result.success_count == 5
    assert result.failure_count == 0
    for scenario in result.scenarios:
        assert len(scenario.supporting_logs) <= 4
        assert all(log.timestamp <= scenario.alert.timestamp for log in scenario.supporting_logs)
        assert scenario.attack_narrative != FALLBACK_NARRATIVE


def test_failing_source_falls_back_and_keeps_count():
    source = FailingSource()
    sleep = SleepRecorder()
    orchestrator = AttackOrchestrator(seed=2, alert_source=source, now=NOW, sleep=sleep)
    config = BatchConfig(use_ai=True, throttle_seconds=0.5, techniques=["T1059.001"])

    result = asyncio.run(orchestrator.generate_batch(4, config))

    assert len(result.scenarios) == 4
    assert result.failure_count == 4
    assert [f.index for f in result.failures] == [0, 1, 2, 3]
    assert all(s.attack_narrative == FALLBACK_NARRATIVE for s in result.scenarios)
    assert all(s.supporting_logs for s in result.scenarios)
    assert source.calls == 4
    # Throttle between calls, not after the last one
    assert sleep.delays == [0.5, 0.5, 0.5]


def test_source_timeout_uses_fallback():
    orchestrator = AttackOrchestrator(seed=3, alert_source=SlowSource(), now=NOW, sleep=SleepRecorder())
    config = BatchConfig(use_ai=True, ai_timeout_seconds=0.01)

    result = asyncio.run(orchestrator.generate_batch(1, config))

    assert result.failure_count == 1
    assert "timed out" in result.failures[0].error
    assert result.scenarios[0].attack_narrative == FALLBACK_NARRATIVE


def test_source_alert_is_used():
    orchestrator = AttackOrchestrator(seed=4, alert_source=StaticSource(), now=NOW, sleep=SleepRecorder())
    config = BatchConfig(use_ai=True, host_name="WS09", user_name="bob", techniques=["T1486"])

    scenario = asyncio.run(orchestrator.generate_correlated_alert(config))

    assert scenario.alert.id == "ai-1"
    assert scenario.alert.host == "WS09"
    assert scenario.attack_narrative.startswith("Ransomware impact:")


def test_ai_disabled_ignores_source():
    source = FailingSource()
    orchestrator = AttackOrchestrator(seed=5, alert_source=source, now=NOW)
    result = asyncio.run(orchestrator.generate_batch(2, BatchConfig(use_ai=False)))

    assert source.calls == 0
    assert result.failure_count == 0


def test_groups_and_hooks():
    seen = []

    async def hook(group):
        seen.append(group)

    orchestrator = AttackOrchestrator(seed=6, now=NOW)
    progress = []
    result = asyncio.run(orchestrator.generate_batch(
        5,
        BatchConfig(concurrency=2),
        between_groups=hook,
        progress_callback=lambda done, total: progress.append((done, total)),
    ))

    assert len(result.scenarios) == 5
    assert seen == [0, 1, 2]
    assert progress == [(2, 5), (4, 5), (5, 5)]


def test_sync_hook_supported():
    seen = []
    orchestrator = AttackOrchestrator(seed=6, now=NOW)
    asyncio.run(orchestrator.generate_batch(3, BatchConfig(concurrency=3), between_groups=seen.append))
    assert seen == [0]


def test_zero_and_negative_counts():
    orchestrator = AttackOrchestrator(seed=7, now=NOW)
    assert asyncio.run(orchestrator.generate_batch(0)).scenarios == []
    with pytest.raises(ValueError):
        asyncio.run(orchestrator.generate_batch(-1))


def test_cancelled_batch():
    token = CancellationToken()
    token.cancel()
    orchestrator = AttackOrchestrator(seed=8, now=NOW)
    with pytest.raises(GenerationCancelled):
        asyncio.run(orchestrator.generate_batch(2, cancel_token=token))


def test_same_seed_same_batch():
    def run():
        orchestrator = AttackOrchestrator(seed=9, now=NOW)
        result = asyncio.run(orchestrator.generate_batch(3))
        return [s.to_dict() for s in result.scenarios]

    assert run() == run()


def test_extract_for_indexing():
    orchestrator = AttackOrchestrator(seed=10, now=NOW)
    result = asyncio.run(orchestrator.generate_batch(2, BatchConfig(space="lab", log_count=3)))
    batch = orchestrator.extract_for_indexing(result.scenarios)
    pairs = batch.pairs()

    assert len(batch) == 2 + sum(len(s.supporting_logs) for s in result.scenarios)
    assert batch.operations[0] == {"create": {"_index": ".alerts-security.alerts-lab"}}
    assert pairs[0][1]["kibana.alert.uuid"] == result.scenarios[0].alert.id
    for index, doc in pairs[1:4]:
        assert index == f"logs-{doc['data_stream.dataset']}-default"


def test_write_to_sink():
    orchestrator = AttackOrchestrator(seed=11, now=NOW)
    result = asyncio.run(orchestrator.generate_batch(2))
    batch = orchestrator.extract_for_indexing(result.scenarios)
    sink = MemorySink()

    ingest = asyncio.run(orchestrator.write(batch, sink))

    assert ingest.success
    assert ingest.documents_written == len(batch)
    assert sink.count(".alerts-security.alerts-default") == 2


def test_attack_campaign_round_robin():
    orchestrator = AttackOrchestrator(seed=12, now=NOW)
    result = asyncio.run(orchestrator.generate_attack_campaign(4, ["WS01", "WS02"], ["alice"]))

    assert [s.alert.host for s in result.scenarios] == ["WS01", "WS02", "WS01", "WS02"]
    assert result.summary["total_alerts"] == 4
    assert result.summary["affected_hosts"] == ["WS01", "WS02"]
    assert result.summary["affected_users"] == ["alice"]
    assert result.summary["total_logs"] == sum(len(s.supporting_logs) for s in result.scenarios)
    assert result.summary["time_span"]["start"] <= result.summary["time_span"]["end"]

    with pytest.raises(ValueError):
        asyncio.run(orchestrator.generate_attack_campaign(1, [], ["alice"]))


def test_realistic_campaigns():
    orchestrator = AttackOrchestrator(seed=13, now=NOW)
    config = CampaignConfig(
        campaign_type="ransomware",
        complexity="low",
        logs_per_stage=3,
        detection=DetectionConfig(detection_rate=1.0),
    )
    result = asyncio.run(orchestrator.generate_realistic_campaigns(2, config))

    assert len(result.results) == 2
    assert result.failures == []
    for campaign in result.results:
        assert all(stage.detected for stage in campaign.stage_logs if stage.logs)
        assert campaign.campaign.end <= NOW

    batch = orchestrator.extract_campaign_for_indexing(result.results)
    alerts = [doc for index, doc in batch.pairs() if index.startswith(".alerts-security")]
    assert len(alerts) == sum(len(r.detected_alerts) for r in result.results)


def test_failing_fallback_still_keeps_count():
    """When the fallback cannot build logs either, the alert is kept and both errors recorded."""
    def broken(ctx):
        raise RuntimeError("template data missing")

    registry = TemplateRegistry([], default=TechniqueTemplate("default", "broken", broken))
    orchestrator = AttackOrchestrator(seed=12, registry=registry, now=NOW)
    assert orchestrator.engine.registry is registry

    result = asyncio.run(orchestrator.generate_batch(3, BatchConfig(concurrency=3, techniques=["T1083"])))

    assert len(result.scenarios) == 3
    assert [f.index for f in result.failures] == [0, 1, 2]
    assert all("fallback:" in f.error for f in result.failures)
    for scenario in result.scenarios:
        assert scenario.attack_narrative == FALLBACK_NARRATIVE
        assert scenario.supporting_logs == ()
        assert scenario.alert.technique_id == "T1083"
