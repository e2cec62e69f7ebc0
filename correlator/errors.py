"""Exception hierarchy shared across the correlator package."""


class CorrelatorError(Exception):
    """Base class for all correlator errors."""
    pass


class ConfigError(CorrelatorError):
    """Configuration loading or validation error."""
    pass


class TemplateGenerationError(CorrelatorError):
    """A technique template (or one of its log slots) failed to build."""

    def __init__(self, technique_id: str, slot: str, message: str):
        self.technique_id = technique_id
        self.slot = slot
        super().__init__(f"{technique_id}/{slot}: {message}")


class AlertGenerationError(CorrelatorError):
    """An alert could not be produced for a scenario."""
    pass


class DetectionSimulationError(CorrelatorError):
    """Detection simulation failed for a stage."""
    pass


class SinkError(CorrelatorError):
    """A document sink rejected or could not store documents."""
    pass


class GenerationCancelled(CorrelatorError):
    """Generation was stopped through a cancellation token."""
    pass
