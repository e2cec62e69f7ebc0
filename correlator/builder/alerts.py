"""
Alert construction.

The AlertFactory is the default, deterministic alert generator: it
builds anchor alerts for scenarios and secondary alerts from trigger
logs. An optional AlertSource (for example an AI text generator) may
replace it for anchor alerts. When a RuleRegistry is given, the factory
registers one rule per technique and stamps its id on every alert.
"""

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol, Sequence

from .. import mitre
from ..config.models import Severity
from ..random.names import NameGenerator
from .events import Alert, LogEvent, SourceLogRef

REALISTIC_ALERT_NAMES = [
    "Suspicious PowerShell Activity Detected",
    "Malware Detection - Endpoint Security",
    "Failed Login Attempts from Multiple IPs",
    "Privilege Escalation Attempt",
    "Suspicious Network Traffic to External Domain",
    "File Integrity Monitoring Alert",
    "Credential Dumping Activity",
    "Process Injection Detected",
    "Unusual Outbound Network Connection",
    "Windows Defender Real-time Protection Disabled",
    "Suspicious Registry Modification",
    "Unauthorized Service Installation",
    "Command and Control Communication",
    "Data Exfiltration Attempt",
    "Lateral Movement Detected",
    "Web Shell Detection",
    "Suspicious DNS Query",
    "Endpoint Agent Tampering",
    "Critical System File Modified",
]

# Inclusive risk score bands per severity
RISK_BANDS = {
    Severity.LOW: (21, 39),
    Severity.MEDIUM: (40, 69),
    Severity.HIGH: (70, 89),
    Severity.CRITICAL: (90, 100),
}

DEFAULT_TECHNIQUES = ("T1566.001", "T1059.001", "T1055", "T1003.001", "T1486", "T1083", "T1021.001")


@dataclass(frozen=True)
class AlertContext:
    """What an alert source is asked to produce an alert for."""

    host: str
    user: str
    technique_id: str
    timestamp: datetime
    space: str = "default"


class AlertSource(Protocol):
    """Pluggable producer of anchor alerts (e.g. an AI text generator)."""

    async def generate_alert(self, context: AlertContext) -> Alert:
        ...


class RuleRegistry(Protocol):
    """Registers detection rules with a SIEM."""

    def create_rule(self, definition: Dict[str, Any]) -> Dict[str, str]:
        """Create a rule and return ``{"id": ..., "name": ...}``."""
        ...


class AlertFactory:
    """
    Builds alerts from the technique catalog.

    Args:
        rng: Random generator for ids, risk scores and choices
        rule_registry: Optional SIEM rule registry. When given, each
            technique's rule is registered once and alerts carry the
            registered rule's id and name.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        rule_registry: Optional[RuleRegistry] = None,
    ):
        self.rng = rng or random.Random()
        self.values = NameGenerator(rng=self.rng)
        self.rule_registry = rule_registry
        self._rules: Dict[str, Dict[str, str]] = {}

    def risk_score(self, severity: Severity) -> int:
        low, high = RISK_BANDS.get(severity, RISK_BANDS[Severity.MEDIUM])
        return self.rng.randint(low, high)

    def pick_technique(self, techniques: Optional[Sequence[str]] = None) -> str:
        return self.rng.choice(list(techniques or DEFAULT_TECHNIQUES))

    def _rule(self, technique_id: str, name: str, severity: Severity, risk: int, query: str) -> Dict[str, str]:
        if self.rule_registry is None:
            rule_id = self.values.uuid()
            return {"id": rule_id, "uuid": self.values.uuid(), "name": name}

        if technique_id not in self._rules:
            created = self.rule_registry.create_rule({
                "name": name,
                "description": mitre.rule_description_for(technique_id),
                "severity": severity.value,
                "risk_score": risk,
                "query": query,
                "language": "kuery",
                "type": "query",
                "threat": [{"framework": "MITRE ATT&CK", "technique": [{"id": technique_id}]}],
            })
            self._rules[technique_id] = {
                "id": created["id"],
                "uuid": created["id"],
                "name": created.get("name") or name,
            }
        return self._rules[technique_id]

    def create_alert(self, context: AlertContext) -> Alert:
        """
        Build an anchor alert for a scenario.

        Args:
            context: Host, user, technique and timestamp of the alert

        Returns:
            Alert rendered from the technique catalog
        """
        info = mitre.get_technique(context.technique_id)
        severity = mitre.severity_for(context.technique_id)
        rule_name = info.rule_name if info and info.rule_name else self.rng.choice(REALISTIC_ALERT_NAMES)
        action = info.action if info else "suspicious-activity"
        query = mitre.detection_query_for(context.technique_id, "logs-*", action)

        alert_id = self.values.uuid()
        risk = self.risk_score(severity)
        rule = self._rule(context.technique_id, rule_name, severity, risk, query)
        return Alert(
            id=alert_id,
            timestamp=context.timestamp,
            host=context.host,
            user=context.user,
            technique_id=context.technique_id,
            technique_name=mitre.technique_name(context.technique_id),
            rule_name=rule["name"],
            severity=severity.value,
            risk_score=risk,
            description=mitre.rule_description_for(context.technique_id),
            query=query,
            rule_id=rule["id"],
            rule_uuid=rule["uuid"],
            space=context.space,
        )

    def from_trigger(
        self,
        trigger: LogEvent,
        technique_id: str,
        delay: timedelta,
        space: str = "default",
    ) -> Alert:
        """
        Build a secondary alert anchored to one trigger log.

        The alert is timestamped ``delay`` after the trigger and links back
        to it through ``source_log``.
        """
        if delay <= timedelta(0):
            raise ValueError("Detection delay must be positive")

        severity = mitre.severity_for(technique_id)
        query = mitre.detection_query_for(technique_id, trigger.dataset, trigger.action)
        alert_id = self.values.uuid()
        risk = self.risk_score(severity)
        rule = self._rule(
            technique_id,
            mitre.rule_name_for(technique_id, trigger.dataset, trigger.action),
            severity,
            risk,
            query,
        )
        return Alert(
            id=alert_id,
            timestamp=trigger.timestamp + delay,
            host=trigger.host,
            user=trigger.user,
            technique_id=technique_id,
            technique_name=mitre.technique_name(technique_id),
            rule_name=rule["name"],
            severity=severity.value,
            risk_score=risk,
            reason=f"{trigger.action} on {trigger.host} matched {technique_id}",
            description=mitre.rule_description_for(technique_id),
            query=query,
            rule_id=rule["id"],
            rule_uuid=rule["uuid"],
            space=space,
            source_log=SourceLogRef.from_log(trigger),
            source_indices=(trigger.index_name,),
        )
