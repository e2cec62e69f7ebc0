"""Tests for campaign planning and the realistic campaign engine."""

from datetime import datetime, timedelta, timezone

import pytest

from correlator.builder.campaign import RealisticAttackEngine
from correlator.builder.correlation import LogCorrelationEngine
from correlator.config import CampaignConfig, CampaignType, Complexity, DetectionConfig
from correlator.errors import GenerationCancelled
from correlator.random import CampaignPlanner, NameGenerator, get_profile
from correlator.random.profiles import CAMPAIGN_STAGES, THREAT_ACTORS
from correlator.runtime import CancellationToken, GenerationMetrics
from correlator.templates import TechniqueTemplate, TemplateRegistry


NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def test_expert_plan_covers_the_kill_chain():
    campaign = CampaignPlanner(seed=1, now=NOW).plan(CampaignType.APT, Complexity.EXPERT)
    catalog = [stage.name for stage in CAMPAIGN_STAGES[CampaignType.APT]]

    assert [stage.name for stage in campaign.stages] == catalog
    assert campaign.threat_actor in THREAT_ACTORS[CampaignType.APT]
    assert campaign.name.startswith(campaign.threat_actor.name + ": ")
    for stage in campaign.stages:
        assert 1 <= len(stage.techniques) <= 3
        assert stage.start_time < stage.end_time


def test_stages_are_ordered_with_gaps():
    campaign = CampaignPlanner(seed=2, now=NOW).plan("ransomware", "high")
    profile = get_profile("high")

    assert profile.min_stages <= len(campaign.stages) <= profile.max_stages
    for earlier, later in zip(campaign.stages, campaign.stages[1:]):
        gap = later.start_time - earlier.end_time
        assert timedelta(hours=1) <= gap <= timedelta(hours=24)
    assert campaign.start == campaign.stages[0].start_time
    assert campaign.end == campaign.stages[-1].end_time
    assert campaign.end < NOW


def test_low_complexity_is_short():
    campaign = CampaignPlanner(seed=3, now=NOW).plan(CampaignType.INSIDER, Complexity.LOW)
    assert 2 <= len(campaign.stages) <= 3
    assert len(campaign.hosts) == 1
    assert len(campaign.users) == 1


def test_explicit_hosts_and_users():
    campaign = CampaignPlanner(seed=4, now=NOW).plan(
        "supply_chain", "medium", hosts=["BUILD01"], users=["svc_build"]
    )
    assert campaign.hosts == ["BUILD01"]
    assert campaign.users == ["svc_build"]


def test_same_seed_same_plan():
    first = CampaignPlanner(seed=5, now=NOW).plan()
    second = CampaignPlanner(seed=5, now=NOW).plan()
    assert first == second


def test_unknown_campaign_type_rejected():
    with pytest.raises(ValueError):
        CampaignPlanner(seed=6, now=NOW).plan("cryptojacking")


def test_name_generator_values():
    names = NameGenerator(seed=7)
    hosts = names.hostnames(5)

    assert len(set(hosts)) == 5
    assert "." in names.username()
    assert names.generate_c2_ip().split(".")[0] in ("192", "198", "203")
    assert len(names.md5()) == 32
    assert names.uuid() != names.uuid()


def test_realistic_engine_pipeline():
    planner = CampaignPlanner(seed=8, now=NOW)
    config = CampaignConfig(
        campaign_type="apt",
        complexity="medium",
        logs_per_stage=4,
        detection=DetectionConfig(detection_rate=1.0, triggers_per_stage=2),
    )
    metrics = GenerationMetrics()
    engine = RealisticAttackEngine(config, seed=8, planner=planner, metrics=metrics)
    result = engine.generate_campaign()

    assert len(result.stage_logs) == len(result.campaign.stages)
    assert result.failures == []
    for stage, logs in zip(result.campaign.stages, result.stage_logs):
        assert logs.detected
        assert all(stage.start_time <= log.timestamp <= stage.end_time for log in logs.logs)
        assert all(log.host in result.campaign.hosts for log in logs.logs)

    all_logs = [log for stage in result.stage_logs for log in stage.logs]
    for alert in result.detected_alerts:
        assert sum(1 for log in all_logs if alert.source_log.matches(log)) >= 1

    assert len(result.investigation_guide) == 3
    stamps = [event.timestamp for event in result.timeline.stages]
    assert stamps == sorted(stamps)
    assert result.summary()["alerts"] == len(result.detected_alerts)
    assert metrics.total("campaign_alerts") == len(result.detected_alerts)


def test_configured_hosts_override_plan():
    config = CampaignConfig(complexity="low", hosts=["LAB01"], users=["tester"])
    engine = RealisticAttackEngine(config, planner=CampaignPlanner(seed=9, now=NOW), seed=9)
    result = engine.generate_campaign()

    assert {log.host for stage in result.stage_logs for log in stage.logs} == {"LAB01"}
    assert {log.user for stage in result.stage_logs for log in stage.logs} == {"tester"}


def test_campaign_cancellation():
    token = CancellationToken()
    token.cancel("shutdown")
    engine = RealisticAttackEngine(CampaignConfig(complexity="low"), planner=CampaignPlanner(seed=10, now=NOW))
    with pytest.raises(GenerationCancelled):
        engine.generate_campaign(cancel_token=token)


def test_failing_technique_is_recorded():
    def broken(ctx):
        raise RuntimeError("no template data")

    registry = TemplateRegistry([], default=TechniqueTemplate("default", "broken", broken))
    config = CampaignConfig(complexity="low", detection=DetectionConfig(detection_rate=1.0))
    engine = RealisticAttackEngine(config, planner=CampaignPlanner(seed=11, now=NOW), seed=11)
    engine.engine = LogCorrelationEngine(registry=registry, rng=engine.rng)

    result = engine.generate_campaign()

    techniques = [t for stage in result.campaign.stages for t in stage.techniques]
    assert len(result.failures) == len(techniques)
    assert all(stage.logs == [] for stage in result.stage_logs)
    assert {m.reason for m in result.missed_activities} == {"no_logs"}
