"""
Pydantic models for configuration validation.

These models define the schema for correlation, detection, campaign,
batch and sink configurations.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator
import re


class Severity(str, Enum):
    """Alert severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CampaignType(str, Enum):
    """Supported campaign types (attack objectives)."""
    APT = "apt"
    RANSOMWARE = "ransomware"
    INSIDER = "insider"
    SUPPLY_CHAIN = "supply_chain"


class Complexity(str, Enum):
    """Campaign complexity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXPERT = "expert"


class TimestampPattern(str, Enum):
    """Distribution patterns for timestamps sampled from a window."""
    UNIFORM = "uniform"
    RANDOM = "random"
    BUSINESS_HOURS = "business_hours"
    ATTACK_SIMULATION = "attack_simulation"
    WEEKEND_HEAVY = "weekend_heavy"


_TECHNIQUE_PATTERN = re.compile(r"^T\d{4}(\.\d{3})?$")
_RANGE_PATTERN = re.compile(r"^\s*\d+(ms|s|m|h|d|w)\s*(-\s*\d+(ms|s|m|h|d|w)\s*)?$")
_RELATIVE_DATE = re.compile(r"^(\d+)([mhdwMy])$")


def validate_technique_id(value: str) -> str:
    """Validate MITRE ATT&CK technique ID format."""
    if not _TECHNIQUE_PATTERN.match(value):
        raise ValueError(f"Invalid MITRE ATT&CK technique ID: {value}")
    return value


# ============================================================
# Timestamp Configuration
# ============================================================

class TimestampConfig(BaseModel):
    """
    Absolute or relative time window for sampled timestamps.

    Dates accept ISO-8601 strings, "now", or relative offsets into the
    past such as "30m", "6h", "7d", "2w", "1M", "1y".
    """

    start_date: Optional[str] = Field(None, description="Window start (ISO-8601, 'now' or relative like '7d')")
    end_date: Optional[str] = Field(None, description="Window end (ISO-8601, 'now' or relative)")
    pattern: TimestampPattern = Field(default=TimestampPattern.UNIFORM, description="Distribution pattern")
    offset_hours: int = Field(default=24, description="Window size when no dates are given")

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        """Accept 'now', relative offsets, or ISO-8601 timestamps."""
        if v is None or v == "now" or _RELATIVE_DATE.match(v):
            return v
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Invalid date: {v}")
        return v

    @field_validator("offset_hours")
    @classmethod
    def validate_offset(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("offset_hours must be positive")
        return v


# ============================================================
# Correlation Configuration
# ============================================================

class CorrelationConfig(BaseModel):
    """Configuration for one correlated log request."""

    host_name: Optional[str] = Field(None, description="Host the supporting logs occur on")
    user_name: Optional[str] = Field(None, description="User the supporting logs belong to")
    timestamp_config: Optional[TimestampConfig] = Field(
        None, description="Sample log timestamps from this window instead of fixed offsets"
    )
    log_count: int = Field(default=6, description="Number of supporting logs to return")
    alert_timestamp: Optional[datetime] = Field(None, description="Anchor timestamp of the alert")

    @field_validator("log_count")
    @classmethod
    def validate_log_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError("log_count cannot be negative")
        return v


# ============================================================
# Detection Configuration
# ============================================================

class DetectionConfig(BaseModel):
    """Parameters of the per-stage detection simulation."""

    detection_rate: float = Field(default=0.7, description="Probability a stage is detected (0.0-1.0)")
    delay_range: str = Field(default="2m-30m", description="Detection delay after the trigger log")
    triggers_per_stage: int = Field(default=2, description="Most recent logs used as alert triggers")
    space: str = Field(default="default", description="Kibana space for generated alerts")

    @field_validator("detection_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("detection_rate must be between 0.0 and 1.0")
        return v

    @field_validator("delay_range")
    @classmethod
    def validate_delay(cls, v: str) -> str:
        if not _RANGE_PATTERN.match(v):
            raise ValueError(f"Invalid delay range: {v}")
        return v

    @field_validator("triggers_per_stage")
    @classmethod
    def validate_triggers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("triggers_per_stage must be at least 1")
        return v


# ============================================================
# Campaign Configuration
# ============================================================

class CampaignConfig(BaseModel):
    """
    Realistic campaign configuration.

    Controls the planner (campaign type and complexity), how many logs
    are generated per stage technique, and detection simulation.
    """

    campaign_type: CampaignType = Field(default=CampaignType.APT, description="Campaign type")
    complexity: Complexity = Field(default=Complexity.HIGH, description="Campaign complexity")
    logs_per_stage: int = Field(default=6, description="Supporting logs per stage technique")
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    timeline_logs_per_stage: int = Field(default=3, description="Logs per stage shown on the timeline")
    timestamp_config: Optional[TimestampConfig] = Field(None, description="Override the campaign window")
    hosts: List[str] = Field(default_factory=list, description="Hosts to draw stage activity from")
    users: List[str] = Field(default_factory=list, description="Users to draw stage activity from")

    @field_validator("logs_per_stage", "timeline_logs_per_stage")
    @classmethod
    def validate_counts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Counts cannot be negative")
        return v


# ============================================================
# Batch Configuration
# ============================================================

class BatchConfig(BaseModel):
    """Configuration for batch scenario generation."""

    count: int = Field(default=10, description="Number of scenarios to generate")
    log_count: int = Field(default=6, description="Supporting logs per alert")
    host_name: Optional[str] = Field(None, description="Pin all scenarios to one host")
    user_name: Optional[str] = Field(None, description="Pin all scenarios to one user")
    techniques: List[str] = Field(default_factory=list, description="Techniques to draw alerts from")
    space: str = Field(default="default", description="Kibana space")
    timestamp_config: Optional[TimestampConfig] = Field(None, description="Alert timestamp window")
    use_ai: bool = Field(default=False, description="Use the AI alert source when available")
    throttle_seconds: float = Field(default=0.2, description="Delay between AI-assisted generations")
    ai_timeout_seconds: float = Field(default=30.0, description="Timeout for one AI alert call")
    concurrency: int = Field(default=1, description="Scenarios generated concurrently per group")

    @field_validator("techniques")
    @classmethod
    def validate_techniques(cls, v: List[str]) -> List[str]:
        for tech in v:
            validate_technique_id(tech)
        return v

    @model_validator(mode="after")
    def check_bounds(self):
        if self.count < 0 or self.log_count < 0:
            raise ValueError("count and log_count cannot be negative")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.throttle_seconds < 0 or self.ai_timeout_seconds <= 0:
            raise ValueError("throttle_seconds must be >= 0 and ai_timeout_seconds > 0")
        return self


# ============================================================
# Sink Configuration
# ============================================================

class SinkConfig(BaseModel):
    """Where flattened write-batches are delivered."""

    type: str = Field(default="file", description="Sink type (file, memory)")
    output_dir: str = Field(default="./output", description="Directory for file sinks")
    format: str = Field(default="ndjson", description="File format (ndjson, json)")
    fail_on_error: bool = Field(default=True, description="Treat rejected documents as fatal")
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("ndjson", "json"):
            raise ValueError(f"Unsupported sink format: {v}")
        return v
