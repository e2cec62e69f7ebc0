"""Timeline assembly for realistic campaigns."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from ..random.planner import Campaign
from .detection import StageLogs
from .events import Alert

STAGE_START = "stage_start"
LOG = "log"
ALERT = "alert"


@dataclass(frozen=True)
class TimelineEvent:
    timestamp: datetime
    kind: str
    description: str
    technique: Optional[str] = None
    severity: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "type": self.kind,
            "description": self.description,
            "technique": self.technique,
            "severity": self.severity,
        }


@dataclass
class CampaignTimeline:
    start: datetime
    end: datetime
    stages: List[TimelineEvent] = field(default_factory=list)


def assemble_timeline(
    campaign: Campaign,
    stage_logs: Sequence[StageLogs],
    alerts: Sequence[Alert],
    logs_per_stage: int = 3,
) -> CampaignTimeline:
    """
    Merge campaign, stage, log and alert events into one ordered timeline.

    Only the first ``logs_per_stage`` logs of each stage are included.
    Events are sorted by timestamp; ties keep insertion order.
    """
    events: List[TimelineEvent] = [
        TimelineEvent(
            timestamp=campaign.start,
            kind=STAGE_START,
            description=f"Campaign started: {campaign.name}",
        )
    ]

    for stage in campaign.stages:
        events.append(TimelineEvent(
            timestamp=stage.start_time,
            kind=STAGE_START,
            description=f"Stage started: {stage.name}",
            technique=stage.techniques[0] if stage.techniques else None,
        ))

    for stage in stage_logs:
        for log in stage.logs[:logs_per_stage]:
            events.append(TimelineEvent(
                timestamp=log.timestamp,
                kind=LOG,
                description=f"{log.dataset}: {log.action} on {log.host}",
                technique=log.technique_id,
            ))

    for alert in alerts:
        events.append(TimelineEvent(
            timestamp=alert.timestamp,
            kind=ALERT,
            description=f"Alert: {alert.rule_name}",
            technique=alert.technique_id,
            severity=alert.severity,
        ))

    # sorted() is stable
    ordered = sorted(events, key=lambda e: e.timestamp)
    end = max(campaign.end, ordered[-1].timestamp)
    return CampaignTimeline(start=campaign.start, end=end, stages=ordered)
