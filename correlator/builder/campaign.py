"""
Realistic campaign engine.

Runs the per-scenario pipeline: plan a campaign, generate supporting
logs for every stage technique inside the stage window, simulate
detection, then assemble the timeline and investigation guide.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config.models import CampaignConfig, TimestampPattern
from ..runtime import CancellationToken, GenerationMetrics
from ..random.planner import Campaign, CampaignPlanner, StagePlanner
from .correlation import LogCorrelationEngine
from .detection import DetectionSimulator, MissedActivity, StageLogs
from .events import Alert, Trigger
from .investigation import InvestigationStep, generate_investigation_guide
from .timeline import CampaignTimeline, assemble_timeline
from .timestamp_gen import WindowPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TechniqueFailure:
    """A stage technique whose logs could not be generated."""

    stage: str
    technique_id: str
    error: str


@dataclass
class RealisticCampaignResult:
    campaign: Campaign
    stage_logs: List[StageLogs] = field(default_factory=list)
    detected_alerts: List[Alert] = field(default_factory=list)
    missed_activities: List[MissedActivity] = field(default_factory=list)
    timeline: Optional[CampaignTimeline] = None
    investigation_guide: List[InvestigationStep] = field(default_factory=list)
    failures: List[TechniqueFailure] = field(default_factory=list)

    @property
    def total_logs(self) -> int:
        return sum(len(s.logs) for s in self.stage_logs)

    def summary(self) -> Dict[str, Any]:
        return {
            "campaign": self.campaign.name,
            "type": self.campaign.campaign_type.value,
            "threat_actor": self.campaign.threat_actor.name,
            "stages": len(self.stage_logs),
            "detected_stages": sum(1 for s in self.stage_logs if s.detected),
            "logs": self.total_logs,
            "alerts": len(self.detected_alerts),
            "missed": len(self.missed_activities),
            "failures": len(self.failures),
        }


class RealisticAttackEngine:
    """
    Generates a complete, detection-simulated campaign.

    Args:
        config: Campaign configuration
        seed: Random seed for reproducibility (ignored when rng is given)
        rng: Shared random generator
        planner: Campaign planner (randomized catalog planner by default)
        metrics: Optional bounded metrics buffer
    """

    def __init__(
        self,
        config: Optional[CampaignConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        planner: Optional[StagePlanner] = None,
        metrics: Optional[GenerationMetrics] = None,
    ):
        self.config = config or CampaignConfig()
        self.rng = rng if rng is not None else random.Random(seed)
        self.planner = planner or CampaignPlanner(rng=self.rng)
        self.metrics = metrics
        self.engine = LogCorrelationEngine(rng=self.rng, metrics=metrics)
        self.simulator = DetectionSimulator(self.config.detection, rng=self.rng)

    def generate_campaign(
        self,
        campaign: Optional[Campaign] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RealisticCampaignResult:
        """
        Run the campaign pipeline.

        Args:
            campaign: Pre-planned campaign; planned from the config when omitted
            cancel_token: Checked between stages and techniques

        Returns:
            RealisticCampaignResult
        """
        if campaign is None:
            campaign = self.planner.plan(self.config.campaign_type, self.config.complexity)
        logger.info("Generating campaign %r (%d stages)", campaign.name, len(campaign.stages))

        result = RealisticCampaignResult(campaign=campaign)
        result.stage_logs = self._generate_stage_logs(campaign, result.failures, cancel_token)

        outcome = self.simulator.simulate(result.stage_logs, cancel_token)
        result.detected_alerts = outcome.alerts
        result.missed_activities = outcome.missed

        result.timeline = assemble_timeline(
            campaign, result.stage_logs, result.detected_alerts, self.config.timeline_logs_per_stage
        )
        result.investigation_guide = generate_investigation_guide(
            result.detected_alerts, campaign.campaign_type
        )

        if self.metrics is not None:
            self.metrics.record("campaign_alerts", len(result.detected_alerts), campaign=campaign.id)
            self.metrics.record("campaign_missed", len(result.missed_activities), campaign=campaign.id)
        logger.info(
            "Campaign %r: %d logs, %d alerts, %d missed stages",
            campaign.name, result.total_logs, len(result.detected_alerts), len(result.missed_activities),
        )
        return result

    def _generate_stage_logs(
        self,
        campaign: Campaign,
        failures: List[TechniqueFailure],
        cancel_token: Optional[CancellationToken],
    ) -> List[StageLogs]:
        hosts = self.config.hosts or campaign.hosts or ["unknown-host"]
        users = self.config.users or campaign.users or ["unknown-user"]
        pattern = (
            self.config.timestamp_config.pattern
            if self.config.timestamp_config else TimestampPattern.UNIFORM
        )

        stage_logs = []
        for stage in campaign.stages:
            policy = WindowPolicy(stage.start_time, stage.end_time, pattern)
            logs = StageLogs(stage_id=stage.id, stage_name=stage.name, techniques=list(stage.techniques))

            for technique_id in stage.techniques:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                trigger = Trigger(
                    host=self.rng.choice(hosts),
                    user=self.rng.choice(users),
                    technique_id=technique_id,
                    anchor_timestamp=stage.end_time,
                )
                try:
                    generated = self.engine.generate(trigger, self.config.logs_per_stage, policy)
                except Exception as e:
                    logger.warning("Technique %s failed in stage %r: %s", technique_id, stage.name, e)
                    failures.append(TechniqueFailure(stage.name, technique_id, str(e)))
                    continue
                logs.logs.extend(generated.events)
                failures.extend(
                    TechniqueFailure(stage.name, technique_id, f"{err.slot}: {err.error}")
                    for err in generated.errors
                )

            stage_logs.append(logs)
        return stage_logs
