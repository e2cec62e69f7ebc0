"""Configuration handling for the alert correlator."""

from .models import (
    Severity,
    CampaignType,
    Complexity,
    TimestampPattern,
    TimestampConfig,
    CorrelationConfig,
    DetectionConfig,
    CampaignConfig,
    BatchConfig,
    SinkConfig,
)
from .loader import ConfigLoader, ConfigError

__all__ = [
    "Severity",
    "CampaignType",
    "Complexity",
    "TimestampPattern",
    "TimestampConfig",
    "CorrelationConfig",
    "DetectionConfig",
    "CampaignConfig",
    "BatchConfig",
    "SinkConfig",
    "ConfigLoader",
    "ConfigError",
]
