"""
Event records produced by the correlation engine and detection simulator.

Supporting logs are a closed set of category records sharing one
envelope. Each renders a flat, ECS-style document for indexing.
"""

import base64
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple

from .timestamp_gen import format_timestamp, parse_timestamp


def _compact(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


# ============================================================
# Supporting logs
# ============================================================

@dataclass(frozen=True)
class LogEvent:
    """Envelope shared by every supporting log."""

    category: ClassVar[str] = "host"

    timestamp: datetime
    dataset: str
    host: str
    user: str
    action: str
    namespace: str = "default"
    technique_id: Optional[str] = None
    message: Optional[str] = None
    tags: Tuple[str, ...] = ()
    related_users: Tuple[str, ...] = ()

    @property
    def index_name(self) -> str:
        return f"logs-{self.dataset}-{self.namespace}"

    def to_document(self) -> Dict[str, Any]:
        """Render the flat document for indexing."""
        related = [self.user] + [u for u in self.related_users if u != self.user]
        doc = {
            "@timestamp": format_timestamp(self.timestamp),
            "data_stream.dataset": self.dataset,
            "data_stream.namespace": self.namespace,
            "data_stream.type": "logs",
            "event.action": self.action,
            "event.category": [self.category],
            "host.name": self.host,
            "user.name": self.user,
            "related.user": related,
        }
        if self.technique_id:
            doc["threat.technique.id"] = self.technique_id
        if self.message:
            doc["message"] = self.message
        if self.tags:
            doc["tags"] = list(self.tags)
        doc.update(_compact(self._payload()))
        return doc

    def _payload(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class ProcessEvent(LogEvent):
    category: ClassVar[str] = "process"

    process_name: str = ""
    pid: Optional[int] = None
    ppid: Optional[int] = None
    command_line: Optional[str] = None
    executable: Optional[str] = None
    parent_name: Optional[str] = None

    def _payload(self) -> Dict[str, Any]:
        return {
            "process.name": self.process_name,
            "process.pid": self.pid,
            "process.ppid": self.ppid,
            "process.command_line": self.command_line,
            "process.executable": self.executable,
            "process.parent.name": self.parent_name,
        }


@dataclass(frozen=True)
class NetworkEvent(LogEvent):
    category: ClassVar[str] = "network"

    source_ip: str = ""
    source_port: int = 0
    destination_ip: str = ""
    destination_port: int = 0
    destination_domain: Optional[str] = None
    protocol: str = "tcp"
    bytes: int = 0
    process_name: Optional[str] = None
    pid: Optional[int] = None

    def _payload(self) -> Dict[str, Any]:
        return {
            "source.ip": self.source_ip,
            "source.port": self.source_port,
            "destination.ip": self.destination_ip,
            "destination.port": self.destination_port,
            "destination.domain": self.destination_domain,
            "network.protocol": self.protocol,
            "network.bytes": self.bytes,
            "process.name": self.process_name,
            "process.pid": self.pid,
            "related.ip": [self.destination_ip],
        }


@dataclass(frozen=True)
class FileEvent(LogEvent):
    category: ClassVar[str] = "file"

    file_name: str = ""
    file_path: str = ""
    size: Optional[int] = None
    extension: Optional[str] = None
    md5: Optional[str] = None
    sha256: Optional[str] = None
    process_name: Optional[str] = None
    pid: Optional[int] = None

    def _payload(self) -> Dict[str, Any]:
        payload = {
            "file.name": self.file_name,
            "file.path": self.file_path,
            "file.size": self.size,
            "file.extension": self.extension,
            "file.hash.md5": self.md5,
            "file.hash.sha256": self.sha256,
            "process.name": self.process_name,
            "process.pid": self.pid,
        }
        if self.md5:
            payload["related.hash"] = [self.md5]
        return payload


@dataclass(frozen=True)
class RegistryEvent(LogEvent):
    category: ClassVar[str] = "registry"

    key: str = ""
    value: str = ""
    data: Tuple[str, ...] = ()
    process_name: Optional[str] = None
    pid: Optional[int] = None

    def _payload(self) -> Dict[str, Any]:
        return {
            "registry.key": self.key,
            "registry.value": self.value,
            "registry.data.strings": list(self.data),
            "process.name": self.process_name,
            "process.pid": self.pid,
        }


@dataclass(frozen=True)
class AuthenticationEvent(LogEvent):
    category: ClassVar[str] = "authentication"

    event_id: Optional[int] = None
    channel: str = "Security"
    outcome: Optional[str] = None
    target_user: Optional[str] = None
    source_ip: Optional[str] = None
    process_name: Optional[str] = None
    pid: Optional[int] = None

    def _payload(self) -> Dict[str, Any]:
        return {
            "winlog.event_id": self.event_id,
            "winlog.channel": self.channel if self.event_id else None,
            "event.outcome": self.outcome,
            "user.target.name": self.target_user,
            "source.ip": self.source_ip,
            "process.name": self.process_name,
            "process.pid": self.pid,
        }


@dataclass(frozen=True)
class EmailAttachment:
    name: str
    extension: str
    size: int

    def to_document(self) -> Dict[str, Any]:
        return {"file.name": self.name, "file.extension": self.extension, "file.size": self.size}


@dataclass(frozen=True)
class EmailEvent(LogEvent):
    category: ClassVar[str] = "email"

    subject: str = ""
    sender: Optional[str] = None
    recipient: Optional[str] = None
    attachments: Tuple[EmailAttachment, ...] = ()
    outcome: Optional[str] = None
    user_agent: Optional[str] = None
    indicator_domain: Optional[str] = None

    def _payload(self) -> Dict[str, Any]:
        return {
            "email.subject": self.subject,
            "email.from.address": self.sender,
            "email.to.address": self.recipient,
            "email.attachments": [a.to_document() for a in self.attachments] or None,
            "event.outcome": self.outcome,
            "user_agent.original": self.user_agent,
            "threat.indicator.email.domain": self.indicator_domain,
        }


@dataclass(frozen=True)
class ApiEvent(LogEvent):
    category: ClassVar[str] = "process"

    api_name: str = ""
    parameters: str = ""
    process_name: Optional[str] = None
    pid: Optional[int] = None
    target_process_name: Optional[str] = None
    target_pid: Optional[int] = None
    memory_size: Optional[int] = None
    memory_protection: Optional[str] = None

    def _payload(self) -> Dict[str, Any]:
        return {
            "api.name": self.api_name,
            "api.parameters": self.parameters,
            "process.name": self.process_name,
            "process.pid": self.pid,
            "Target.process.name": self.target_process_name,
            "Target.process.pid": self.target_pid,
            "memory.region.size": self.memory_size,
            "memory.region.protection": self.memory_protection,
        }


@dataclass(frozen=True)
class SecurityEvent(LogEvent):
    """Endpoint detections and behavioral findings."""

    category: ClassVar[str] = "intrusion_detection"

    event_category: str = "intrusion_detection"
    severity: int = 4
    rule_name: Optional[str] = None
    process_name: Optional[str] = None
    pid: Optional[int] = None
    technique_name: Optional[str] = None
    threat_family: Optional[str] = None
    threat_name: Optional[str] = None
    file_name: Optional[str] = None
    file_md5: Optional[str] = None
    anomaly_score: Optional[float] = None
    target_process_name: Optional[str] = None
    target_pid: Optional[int] = None
    injection_technique: Optional[str] = None

    def _payload(self) -> Dict[str, Any]:
        payload = {
            "event.category": [self.event_category],
            "event.severity": self.severity,
            "rule.name": self.rule_name,
            "process.name": self.process_name,
            "process.pid": self.pid,
            "threat.technique.name": self.technique_name,
            "threat.software.family": self.threat_family,
            "threat.software.name": self.threat_name,
            "file.name": self.file_name,
            "file.hash.md5": self.file_md5,
            "Target.process.name": self.target_process_name,
            "Target.process.pid": self.target_pid,
            "injection.technique": self.injection_technique,
        }
        if self.anomaly_score is not None:
            payload["ml.anomaly_score"] = self.anomaly_score
            payload["ml.is_anomaly"] = True
        if self.file_md5:
            payload["related.hash"] = [self.file_md5]
        return payload


# ============================================================
# Alerts
# ============================================================

@dataclass(frozen=True)
class SourceLogRef:
    """Link from an alert back to the log that triggered it."""

    index: str
    dataset: str
    timestamp: datetime
    host: str
    user: str

    @classmethod
    def from_log(cls, log: LogEvent) -> "SourceLogRef":
        return cls(
            index=log.index_name,
            dataset=log.dataset,
            timestamp=log.timestamp,
            host=log.host,
            user=log.user,
        )

    @property
    def event_id(self) -> str:
        """Stable document id of the source log, derived from its identity."""
        key = "|".join((self.index, format_timestamp(self.timestamp), self.host, self.user))
        digest = hashlib.sha1(key.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")[:20]

    def matches(self, log: LogEvent) -> bool:
        return (
            self.timestamp == log.timestamp
            and self.host == log.host
            and self.user == log.user
            and self.dataset == log.dataset
        )


@dataclass(frozen=True)
class Alert:
    """A detection result. Immutable once created."""

    id: str
    timestamp: datetime
    host: str
    user: str
    technique_id: str
    rule_name: str
    severity: str = "medium"
    risk_score: int = 47
    technique_name: Optional[str] = None
    reason: Optional[str] = None
    description: Optional[str] = None
    query: Optional[str] = None
    rule_id: Optional[str] = None
    rule_uuid: Optional[str] = None
    space: str = "default"
    source_log: Optional[SourceLogRef] = None
    source_indices: Tuple[str, ...] = ("logs-*",)

    @property
    def index_name(self) -> str:
        return f".alerts-security.alerts-{self.space}"

    def to_document(self) -> Dict[str, Any]:
        """Render a Kibana security alert document."""
        ts = format_timestamp(self.timestamp)
        threat = []
        if self.technique_id:
            threat.append({
                "framework": "MITRE ATT&CK",
                "technique": [{
                    "id": self.technique_id,
                    "name": self.technique_name or self.technique_id,
                    "reference": f"https://attack.mitre.org/techniques/{self.technique_id.replace('.', '/')}/",
                }],
            })
        doc = {
            "@timestamp": ts,
            "host.name": self.host,
            "user.name": self.user,
            "event.kind": "signal",
            "event.category": ["intrusion_detection"],
            "kibana.alert.uuid": self.id,
            "kibana.alert.start": ts,
            "kibana.alert.last_detected": ts,
            "kibana.alert.original_time": ts,
            "kibana.alert.status": "active",
            "kibana.alert.workflow_status": "open",
            "kibana.alert.depth": 1,
            "kibana.alert.reason": self.reason or f"Suspicious activity detected on {self.host}",
            "kibana.alert.severity": self.severity,
            "kibana.alert.risk_score": self.risk_score,
            "kibana.alert.rule.name": self.rule_name,
            "kibana.alert.rule.description": self.description or self.rule_name,
            "kibana.alert.rule.severity": self.severity,
            "kibana.alert.rule.risk_score": self.risk_score,
            "kibana.alert.rule.rule_id": self.rule_id,
            "kibana.alert.rule.uuid": self.rule_uuid,
            "kibana.alert.rule.category": "Custom Query Rule",
            "kibana.alert.rule.consumer": "siem",
            "kibana.alert.rule.producer": "siem",
            "kibana.alert.rule.rule_type_id": "siem.queryRule",
            "kibana.alert.rule.type": "query",
            "kibana.alert.rule.interval": "5m",
            "kibana.alert.rule.from": "now-360s",
            "kibana.alert.rule.to": "now",
            "kibana.alert.rule.indices": list(self.source_indices),
            "kibana.alert.rule.threat": threat,
            "kibana.alert.rule.parameters": {
                "description": self.description or self.rule_name,
                "risk_score": self.risk_score,
                "severity": self.severity,
                "threat": threat,
                "query": self.query or "*",
                "language": "kuery",
                "type": "query",
                "index": list(self.source_indices),
            },
            "kibana.space_ids": [self.space],
            "threat.technique.id": self.technique_id,
            "threat.technique.name": self.technique_name or self.technique_id,
        }
        if self.source_log is not None:
            doc["kibana.alert.ancestors"] = [{
                "id": self.source_log.event_id,
                "type": "event",
                "index": self.source_log.index,
                "depth": 0,
            }]
            doc["_source_log"] = {
                "index": self.source_log.index,
                "dataset": self.source_log.dataset,
                "timestamp": format_timestamp(self.source_log.timestamp),
            }
        return _compact(doc)


# ============================================================
# Correlation inputs and outputs
# ============================================================

@dataclass(frozen=True)
class Trigger:
    """The context a supporting log sequence is generated for."""

    host: str
    user: str
    technique_id: str
    anchor_timestamp: datetime
    alert_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "anchor_timestamp", parse_timestamp(self.anchor_timestamp))

    @classmethod
    def from_alert(cls, alert: Alert) -> "Trigger":
        return cls(
            host=alert.host,
            user=alert.user,
            technique_id=alert.technique_id,
            anchor_timestamp=alert.timestamp,
            alert_id=alert.id,
        )

    @classmethod
    def from_document(cls, doc: Dict[str, Any], default_technique: str = "T1059") -> "Trigger":
        """
        Build a trigger from a plain alert document.

        Accepts both the short form (``host``, ``user``, ``techniqueId``,
        ``id``) and Kibana alert fields.
        """
        technique = doc.get("techniqueId") or doc.get("threat.technique.id") or default_technique
        if isinstance(technique, (list, tuple)):
            technique = technique[0] if technique else default_technique
        return cls(
            host=doc.get("host") or doc.get("host.name") or "unknown-host",
            user=doc.get("user") or doc.get("user.name") or "unknown-user",
            technique_id=technique,
            anchor_timestamp=doc["@timestamp"],
            alert_id=doc.get("id") or doc.get("kibana.alert.uuid"),
        )


@dataclass(frozen=True)
class CorrelatedLogSet:
    """An alert, the supporting logs that explain it, and the narrative."""

    alert: Alert
    supporting_logs: Tuple[LogEvent, ...] = field(default_factory=tuple)
    attack_narrative: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert": self.alert.to_document(),
            "supportingLogs": [log.to_document() for log in self.supporting_logs],
            "attackNarrative": self.attack_narrative,
        }
