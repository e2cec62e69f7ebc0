"""
Detection Simulator.

Decides, per campaign stage, whether a detector caught the stage. A
detected stage yields one alert per trigger log (the most recent logs of
the stage), each timestamped a bounded delay after its trigger. An
undetected stage is recorded as a missed activity.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from ..config.models import DetectionConfig
from ..errors import DetectionSimulationError
from ..runtime import CancellationToken
from .alerts import AlertFactory
from .events import Alert, LogEvent
from .timestamp_gen import TimeRange

logger = logging.getLogger(__name__)

BELOW_DETECTION_THRESHOLD = "below_detection_threshold"
NO_LOGS = "no_logs"
ALERT_GENERATION_FAILED = "alert_generation_failed"


@dataclass
class StageLogs:
    """Logs generated for one stage, and its detection state."""

    stage_id: str
    stage_name: str
    techniques: List[str]
    logs: List[LogEvent] = field(default_factory=list)
    detected: bool = False
    detection_delay_minutes: Optional[int] = None

    def mark_detected(self, delay_minutes: int) -> None:
        """Flag the stage as detected. The first delay recorded is kept."""
        if self.detected:
            return
        self.detected = True
        self.detection_delay_minutes = delay_minutes


@dataclass(frozen=True)
class MissedActivity:
    """A stage the detector did not alert on."""

    stage: str
    reason: str
    logs: int


@dataclass
class DetectionOutcome:
    """Alerts and missed activities across all simulated stages."""

    alerts: List[Alert] = field(default_factory=list)
    missed: List[MissedActivity] = field(default_factory=list)


class DetectionSimulator:
    """
    Runs one Bernoulli trial per stage at ``detection_rate``.

    On success the last ``triggers_per_stage`` logs (in temporal order)
    become triggers; one delay is sampled from ``delay_range`` for the
    stage and every trigger's alert is placed that long after it.
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        alert_factory: Optional[AlertFactory] = None,
    ):
        """
        Initialize the simulator.

        Args:
            config: Detection rate, delay range and trigger count
            seed: Random seed for reproducibility (ignored when rng is given)
            rng: Shared random generator
            alert_factory: Builds alerts from trigger logs

        Raises:
            DetectionSimulationError: If the delay range cannot yield a whole-minute delay
        """
        self.config = config or DetectionConfig()
        self.rng = rng if rng is not None else random.Random(seed)
        self.alert_factory = alert_factory or AlertFactory(self.rng)
        self.delay_range = TimeRange.from_string(self.config.delay_range)

        low, high = self.delay_range.whole_minutes()
        if high < low:
            raise DetectionSimulationError(
                f"delay_range {self.config.delay_range!r} holds no whole minute of delay"
            )

    def select_triggers(self, logs: Sequence[LogEvent]) -> List[LogEvent]:
        """The most recent ``triggers_per_stage`` logs, oldest first."""
        ordered = sorted(logs, key=lambda log: log.timestamp)
        return ordered[-self.config.triggers_per_stage:]

    def simulate_stage(self, stage: StageLogs) -> Tuple[List[Alert], Optional[MissedActivity]]:
        """
        Simulate detection for one stage.

        Returns:
            (alerts, None) when detected, or ([], MissedActivity) otherwise
        """
        if not stage.logs:
            return [], MissedActivity(stage.stage_name, NO_LOGS, 0)

        if self.rng.random() >= self.config.detection_rate:
            return [], MissedActivity(stage.stage_name, BELOW_DETECTION_THRESHOLD, len(stage.logs))

        delay_minutes = self.delay_range.random_whole_minutes(self.rng)
        delay = timedelta(minutes=delay_minutes)
        fallback_technique = stage.techniques[0] if stage.techniques else "T1059"

        try:
            alerts = [
                self.alert_factory.from_trigger(
                    trigger,
                    trigger.technique_id or fallback_technique,
                    delay,
                    space=self.config.space,
                )
                for trigger in self.select_triggers(stage.logs)
            ]
        except Exception as e:
            logger.warning("Alert generation failed for stage %r: %s", stage.stage_name, e)
            return [], MissedActivity(stage.stage_name, ALERT_GENERATION_FAILED, len(stage.logs))

        stage.mark_detected(delay_minutes)
        return alerts, None

    def simulate(
        self,
        stages: Sequence[StageLogs],
        cancel_token: Optional[CancellationToken] = None,
    ) -> DetectionOutcome:
        """
        Simulate detection across stages. A failing stage never stops the others.

        Args:
            stages: Stage logs in campaign order
            cancel_token: Checked before each stage

        Returns:
            DetectionOutcome with alerts in stage order
        """
        outcome = DetectionOutcome()
        for stage in stages:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            alerts, missed = self.simulate_stage(stage)
            outcome.alerts.extend(alerts)
            if missed is not None:
                outcome.missed.append(missed)
                logger.debug("Stage %r missed: %s", stage.stage_name, missed.reason)
            else:
                logger.debug(
                    "Stage %r detected after %s minutes (%d alerts)",
                    stage.stage_name, stage.detection_delay_minutes, len(alerts),
                )
        return outcome
