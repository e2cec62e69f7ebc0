"""
Investigation guide generation.

A fixed decision table: every guide reviews the alerts and the logs
around them; APT campaigns add a lateral movement and persistence hunt.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from ..config.models import CampaignType
from .events import Alert


@dataclass(frozen=True)
class InvestigationStep:
    step: int
    action: str
    expected_findings: List[str] = field(default_factory=list)
    query: str = ""
    timeframe: str = ""

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "action": self.action,
            "expected_findings": list(self.expected_findings),
            "query": self.query,
            "timeframe": self.timeframe,
        }


def _distinct(values) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def _or_clause(field_name: str, values: List[str]) -> str:
    if not values:
        return f"{field_name}:*"
    return f"{field_name}:(" + " OR ".join(f'"{v}"' for v in values) + ")"


def generate_investigation_guide(
    alerts: Sequence[Alert],
    campaign_type: CampaignType,
) -> List[InvestigationStep]:
    """
    Build the runbook for a campaign's detected alerts.

    Args:
        alerts: Detected alerts
        campaign_type: Declared campaign type

    Returns:
        Ordered investigation steps
    """
    hosts = _distinct(a.host for a in alerts)
    techniques = _distinct(a.technique_id for a in alerts)
    host_clause = _or_clause("host.name", hosts)
    technique_clause = _or_clause("threat.technique.id", techniques)

    steps = [
        InvestigationStep(
            step=1,
            action="Review initial alerts and identify affected systems",
            expected_findings=[
                f"{len(alerts)} alerts across {len(hosts)} hosts",
                "Techniques observed: " + (", ".join(techniques) or "none"),
            ],
            query=f"kibana.alert.workflow_status:open AND {host_clause}",
            timeframe="Alert window",
        ),
        InvestigationStep(
            step=2,
            action="Investigate supporting logs around alert times",
            expected_findings=[
                "Process execution preceding each alert",
                "Network connections to external infrastructure",
                "File and registry changes made by the same processes",
            ],
            query=f"{host_clause} AND {technique_clause}",
            timeframe="30 minutes before each alert",
        ),
    ]

    if CampaignType(campaign_type) == CampaignType.APT:
        steps.append(InvestigationStep(
            step=3,
            action="Look for lateral movement and persistence",
            expected_findings=[
                "Remote logons from compromised hosts",
                "Run keys, scheduled tasks or services created by the attacker",
            ],
            query=(
                f"{host_clause} AND (event.action:(remote-logon OR registry-value-set "
                "OR scheduled-task-created) OR winlog.event_id:(4624 OR 4648))"
            ),
            timeframe="Full campaign duration",
        ))

    return steps
