"""
Log Correlation Engine.

Turns an alert (or an abstract trigger) into the ordered sequence of
supporting logs that plausibly caused it. Templates are resolved
through the TemplateRegistry; timestamps come from a placement policy
(fixed offsets before the anchor by default, or sampled from a window).
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from ..config.models import CorrelationConfig
from ..errors import TemplateGenerationError
from ..random.names import NameGenerator
from ..runtime import GenerationMetrics
from ..templates.base import SlotContext
from ..templates.registry import TemplateRegistry, default_registry, narrative_for
from .events import Alert, CorrelatedLogSet, LogEvent, Trigger
from .timestamp_gen import OffsetPolicy, WindowPolicy

logger = logging.getLogger(__name__)

Policy = Union[OffsetPolicy, WindowPolicy]


@dataclass(frozen=True)
class SlotError:
    """A template slot that failed to build and was skipped."""

    technique_id: str
    slot: str
    error: str


@dataclass
class CorrelationResult:
    """Logs produced for one request plus any skipped slots."""

    technique_id: str
    template: str
    events: List[LogEvent] = field(default_factory=list)
    errors: List[SlotError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class LogCorrelationEngine:
    """
    Generates supporting logs for a trigger.

    Output follows the template's narrative order and is truncated to the
    requested count; it is never padded or shuffled. A slot whose builder
    raises is skipped and reported in ``CorrelationResult.errors``.
    """

    def __init__(
        self,
        registry: Optional[TemplateRegistry] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        namespace: str = "default",
        metrics: Optional[GenerationMetrics] = None,
    ):
        """
        Initialize the engine.

        Args:
            registry: Template registry (built-in templates when omitted)
            seed: Random seed for reproducibility (ignored when rng is given)
            rng: Shared random generator
            namespace: Data stream namespace for generated logs
            metrics: Optional bounded metrics buffer
        """
        self.registry = registry if registry is not None else default_registry()
        self.rng = rng if rng is not None else random.Random(seed)
        self.namespace = namespace
        self.metrics = metrics
        self.default_policy = OffsetPolicy()

    def generate(
        self,
        trigger: Trigger,
        count: int,
        policy: Optional[Policy] = None,
    ) -> CorrelationResult:
        """
        Generate supporting logs and report skipped slots.

        Args:
            trigger: Host, user, technique and anchor timestamp
            count: Maximum number of logs to return
            policy: Timestamp placement policy (offsets before the anchor by default)

        Returns:
            CorrelationResult with at most ``count`` events

        Raises:
            TemplateGenerationError: If the template cannot produce its slots
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        template = self.registry.lookup(trigger.technique_id)
        result = CorrelationResult(technique_id=trigger.technique_id, template=template.technique_id)
        if count == 0:
            return result

        ctx = SlotContext(
            host=trigger.host,
            user=trigger.user,
            technique_id=trigger.technique_id,
            values=NameGenerator(rng=self.rng),
            namespace=self.namespace,
        )
        try:
            slots = template.slots(ctx)
        except Exception as e:
            raise TemplateGenerationError(trigger.technique_id, template.name, str(e)) from e
        policy = policy or self.default_policy
        timestamps = policy.place([slot.offset for slot in slots], trigger.anchor_timestamp, self.rng)

        for slot, timestamp in zip(slots, timestamps):
            try:
                result.events.append(slot.builder(ctx, timestamp))
            except Exception as e:
                logger.warning(
                    "Skipping %s slot %r for %s: %s",
                    template.technique_id, slot.name, trigger.technique_id, e,
                )
                result.errors.append(SlotError(trigger.technique_id, slot.name, str(e)))

        result.events = result.events[:count]
        if self.metrics is not None:
            self.metrics.record("logs_generated", len(result.events), technique=trigger.technique_id)
            if result.errors:
                self.metrics.record("slots_skipped", len(result.errors), technique=trigger.technique_id)
        return result

    def generate_correlated_logs(
        self,
        trigger: Trigger,
        count: int = 6,
        policy: Optional[Policy] = None,
    ) -> List[LogEvent]:
        """Generate up to ``count`` supporting logs in narrative order."""
        return self.generate(trigger, count, policy).events

    def generate_attack_scenario(
        self,
        alert: Alert,
        config: Optional[CorrelationConfig] = None,
        now: Optional[datetime] = None,
    ) -> CorrelatedLogSet:
        """
        Build the supporting logs and narrative for an alert.

        With a timestamp window configured, the window is clamped so that
        no log lands after the alert.

        Args:
            alert: Anchor alert
            config: Log count and optional timestamp window
            now: Reference time for relative window dates

        Returns:
            CorrelatedLogSet for the alert
        """
        config = config or CorrelationConfig()
        trigger = Trigger.from_alert(alert)

        policy: Policy = self.default_policy
        if config.timestamp_config is not None:
            policy = WindowPolicy.from_config(config.timestamp_config, now).clamped(alert.timestamp)

        logs = self.generate_correlated_logs(trigger, config.log_count, policy)
        return CorrelatedLogSet(
            alert=alert,
            supporting_logs=tuple(logs),
            attack_narrative=narrative_for(alert.technique_id),
        )
