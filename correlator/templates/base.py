"""
Building blocks shared by technique templates.

A template is a pure function of a SlotContext that returns the slots
of its narrative, in order. Each slot carries an offset before the
anchor alert and a builder that turns a timestamp into a LogEvent.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List

from ..builder.events import LogEvent
from ..random.names import NameGenerator


@dataclass
class SlotContext:
    """Everything a template needs to build one request's logs."""

    host: str
    user: str
    technique_id: str
    values: NameGenerator
    namespace: str = "default"
    # Values shared between slots of one request (pids, file names, ...)
    shared: Dict[str, Any] = field(default_factory=dict)

    def remember(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the shared value for ``key``, creating it on first use."""
        if key not in self.shared:
            self.shared[key] = factory()
        return self.shared[key]

    def envelope(self, timestamp: datetime, dataset: str, action: str, **extra: Any) -> Dict[str, Any]:
        """Envelope keyword arguments common to every LogEvent."""
        fields = {
            "timestamp": timestamp,
            "dataset": dataset,
            "namespace": self.namespace,
            "host": self.host,
            "user": self.user,
            "action": action,
            "technique_id": self.technique_id,
        }
        fields.update(extra)
        return fields


SlotBuilder = Callable[[SlotContext, datetime], LogEvent]


@dataclass(frozen=True)
class TemplateSlot:
    """One position in a template's narrative."""

    name: str
    offset: timedelta
    builder: SlotBuilder


TemplateFn = Callable[[SlotContext], List[TemplateSlot]]


@dataclass(frozen=True)
class TechniqueTemplate:
    """A named template registered for a technique family."""

    technique_id: str
    name: str
    build: TemplateFn

    def slots(self, ctx: SlotContext) -> List[TemplateSlot]:
        return list(self.build(ctx))


def minutes(value: float) -> timedelta:
    return timedelta(minutes=value)
