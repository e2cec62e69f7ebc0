"""Correlation, detection and campaign building components."""

from .events import (
    Alert,
    ApiEvent,
    AuthenticationEvent,
    CorrelatedLogSet,
    EmailEvent,
    FileEvent,
    LogEvent,
    NetworkEvent,
    ProcessEvent,
    RegistryEvent,
    SecurityEvent,
    SourceLogRef,
    Trigger,
)
from .timestamp_gen import OffsetPolicy, TimeRange, TimestampSampler, WindowPolicy

__all__ = [
    "Alert",
    "ApiEvent",
    "AuthenticationEvent",
    "CorrelatedLogSet",
    "EmailEvent",
    "FileEvent",
    "LogEvent",
    "NetworkEvent",
    "ProcessEvent",
    "RegistryEvent",
    "SecurityEvent",
    "SourceLogRef",
    "Trigger",
    "OffsetPolicy",
    "TimeRange",
    "TimestampSampler",
    "WindowPolicy",
]
