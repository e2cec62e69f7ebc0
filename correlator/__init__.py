"""Alert correlation and detection simulation for synthetic security telemetry."""

__version__ = "1.0.0"
