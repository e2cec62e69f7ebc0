"""
Campaign Planner

Plans randomized multi-stage campaigns: picks a threat actor, selects
kill-chain stages for the complexity level, and lays the stages out in
time with gaps between them.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Protocol, Union

from ..builder.timestamp_gen import utcnow
from ..config.models import CampaignType, Complexity
from .names import NameGenerator
from .profiles import (
    CAMPAIGN_NAMES,
    CAMPAIGN_STAGES,
    THREAT_ACTORS,
    ComplexityProfile,
    StageTemplate,
    ThreatActor,
    get_profile,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    """A time-bounded phase of a campaign."""
    id: str
    name: str
    tactic: str
    techniques: List[str]
    start_time: datetime
    end_time: datetime
    objectives: List[str] = field(default_factory=list)


@dataclass
class Campaign:
    """An ordered list of stages plus campaign metadata."""
    id: str
    name: str
    campaign_type: CampaignType
    complexity: Complexity
    threat_actor: ThreatActor
    start: datetime
    end: datetime
    stages: List[Stage] = field(default_factory=list)
    objectives: List[str] = field(default_factory=list)
    hosts: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)


class StagePlanner(Protocol):
    """Anything that can supply a campaign to the realistic engine."""

    def plan(
        self,
        campaign_type: Union[CampaignType, str],
        complexity: Union[Complexity, str],
    ) -> Campaign:
        ...


class CampaignPlanner:
    """
    Plans randomized campaigns from the stage catalogs.

    Stages keep kill-chain order; each stage lasts a random number of
    hours and is followed by a random gap before the next one.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        now: Optional[datetime] = None,
    ):
        """
        Initialize the planner.

        Args:
            seed: Random seed for reproducibility (ignored when rng is given)
            rng: Shared random generator
            now: Reference time; campaigns are placed in the past relative to it
        """
        self.rng = rng if rng is not None else random.Random(seed)
        self.names = NameGenerator(rng=self.rng)
        self.now = now

    def plan(
        self,
        campaign_type: Union[CampaignType, str] = CampaignType.APT,
        complexity: Union[Complexity, str] = Complexity.HIGH,
        hosts: Optional[List[str]] = None,
        users: Optional[List[str]] = None,
    ) -> Campaign:
        """
        Plan a campaign.

        Args:
            campaign_type: Campaign type (apt, ransomware, insider, supply_chain)
            complexity: Complexity level (low, medium, high, expert)
            hosts: Hosts to attribute activity to; generated when omitted
            users: Users to attribute activity to; generated when omitted

        Returns:
            Planned Campaign
        """
        campaign_type = CampaignType(campaign_type)
        complexity = Complexity(complexity)
        profile = get_profile(complexity)

        actor = self.rng.choice(THREAT_ACTORS[campaign_type])
        templates = self._select_stages(CAMPAIGN_STAGES[campaign_type], profile)

        now = self.now or utcnow()
        start = now - timedelta(days=self.rng.randint(*profile.start_days_ago))
        stages = self._layout(templates, start, profile)
        end = stages[-1].end_time if stages else start

        name = f"{actor.name}: {self.rng.choice(CAMPAIGN_NAMES[campaign_type])}"
        objectives = [obj for stage in stages for obj in stage.objectives]

        campaign = Campaign(
            id=self.names.uuid(),
            name=name,
            campaign_type=campaign_type,
            complexity=complexity,
            threat_actor=actor,
            start=start,
            end=end,
            stages=stages,
            objectives=objectives or ["Establish persistence", "Collect intelligence", "Maintain access"],
            hosts=list(hosts) if hosts else self.names.hostnames(profile.host_count),
            users=list(users) if users else self.names.usernames(profile.user_count),
        )
        logger.debug(
            "Planned %s campaign %r with %d stages (%s)",
            campaign_type.value, campaign.name, len(stages), complexity.value,
        )
        return campaign

    def _select_stages(
        self, catalog: List[StageTemplate], profile: ComplexityProfile
    ) -> List[StageTemplate]:
        count = min(len(catalog), self.rng.randint(profile.min_stages, profile.max_stages))
        indices = sorted(self.rng.sample(range(len(catalog)), count))
        return [catalog[i] for i in indices]

    def _layout(
        self, templates: List[StageTemplate], start: datetime, profile: ComplexityProfile
    ) -> List[Stage]:
        stages = []
        current = start
        for template in templates:
            duration = timedelta(hours=self.rng.randint(*profile.stage_duration_hours))
            k = min(len(template.techniques), self.rng.randint(profile.min_techniques, profile.max_techniques))
            techniques = self.rng.sample(list(template.techniques), k)

            stages.append(Stage(
                id=self.names.uuid(),
                name=template.name,
                tactic=template.tactic,
                techniques=techniques,
                start_time=current,
                end_time=current + duration,
                objectives=list(template.objectives),
            ))
            current = current + duration + timedelta(hours=self.rng.randint(*profile.stage_gap_hours))
        return stages
