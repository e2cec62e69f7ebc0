"""
Batch and campaign orchestration.

Drives repeated scenario generation. Anchor alerts come from an optional
AlertSource (awaited with a timeout and throttled) or from the default
AlertFactory; a scenario that fails falls back to the default path so a
batch always returns the requested number of scenarios. Generated
scenarios are flattened into an IndexBatch for a DocumentSink.
"""

import asyncio
import inspect
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ..config.models import BatchConfig, CampaignConfig, CorrelationConfig
from ..errors import AlertGenerationError, GenerationCancelled
from ..random.names import NameGenerator
from ..random.planner import CampaignPlanner
from ..runtime import CancellationToken, GenerationMetrics
from ..sinks.base import DocumentSink, IndexBatch, IngestResult, index_for_document
from ..templates.registry import TemplateRegistry
from .alerts import AlertContext, AlertFactory, AlertSource, RuleRegistry
from .campaign import RealisticAttackEngine, RealisticCampaignResult
from .correlation import LogCorrelationEngine
from .events import CorrelatedLogSet
from .timestamp_gen import TimestampSampler, format_timestamp

logger = logging.getLogger(__name__)

FALLBACK_NARRATIVE = "Fallback attack scenario: Basic detection with supporting evidence"

GroupHook = Callable[[int], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ScenarioFailure:
    """A scenario whose primary generation failed and was replaced by a fallback."""

    index: int
    error: str


@dataclass
class BatchResult:
    scenarios: List[CorrelatedLogSet] = field(default_factory=list)
    failures: List[ScenarioFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.scenarios) - len(self.failures)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


@dataclass
class AttackCampaignResult:
    """Scenarios spread over a set of hosts and users, with a summary."""

    scenarios: List[CorrelatedLogSet]
    summary: Dict[str, Any]
    failures: List[ScenarioFailure] = field(default_factory=list)


@dataclass(frozen=True)
class CampaignFailure:
    index: int
    error: str


@dataclass
class RealisticBatchResult:
    results: List[RealisticCampaignResult] = field(default_factory=list)
    failures: List[CampaignFailure] = field(default_factory=list)


class AttackOrchestrator:
    """
    Generates correlated scenarios in batches.

    Args:
        seed: Random seed for reproducibility (ignored when rng is given)
        rng: Shared random generator
        alert_source: Optional external alert producer
        registry: Template registry for the correlation engine
        rule_registry: Optional SIEM rule registry for anchor alerts
        metrics: Bounded metrics buffer shared by all runs
        now: Reference time for sampled alert timestamps
        sleep: Coroutine used for throttle delays
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        alert_source: Optional[AlertSource] = None,
        registry: Optional[TemplateRegistry] = None,
        rule_registry: Optional[RuleRegistry] = None,
        metrics: Optional[GenerationMetrics] = None,
        now: Optional[datetime] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.rng = rng if rng is not None else random.Random(seed)
        self.alert_source = alert_source
        self.metrics = metrics if metrics is not None else GenerationMetrics()
        self.now = now
        self.sleep = sleep
        self.values = NameGenerator(rng=self.rng)
        self.alert_factory = AlertFactory(self.rng, rule_registry=rule_registry)
        self.engine = LogCorrelationEngine(registry=registry, rng=self.rng, metrics=self.metrics)

    # ------------------------------------------------------------
    # Single scenarios
    # ------------------------------------------------------------

    def _context(self, config: BatchConfig) -> AlertContext:
        sampler = TimestampSampler(self.rng)
        return AlertContext(
            host=config.host_name or self.values.generate_hostname(),
            user=config.user_name or self.values.username(),
            technique_id=self.alert_factory.pick_technique(config.techniques),
            timestamp=sampler.from_config(config.timestamp_config, self.now),
            space=config.space,
        )

    def _uses_ai(self, config: BatchConfig) -> bool:
        return config.use_ai and self.alert_source is not None

    async def generate_correlated_alert(
        self,
        config: Optional[BatchConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> CorrelatedLogSet:
        """
        Generate one alert and its supporting logs.

        Raises:
            AlertGenerationError: If the alert source fails or times out
        """
        config = config or BatchConfig()
        context = self._context(config)

        if self._uses_ai(config):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                alert = await asyncio.wait_for(
                    self.alert_source.generate_alert(context),
                    timeout=config.ai_timeout_seconds,
                )
            except asyncio.TimeoutError:
                raise AlertGenerationError(
                    f"Alert source timed out after {config.ai_timeout_seconds}s"
                )
            except GenerationCancelled:
                raise
            except Exception as e:
                raise AlertGenerationError(f"Alert source failed: {e}") from e
        else:
            alert = self.alert_factory.create_alert(context)

        return self.engine.generate_attack_scenario(
            alert, CorrelationConfig(log_count=config.log_count), self.now
        )

    def generate_fallback(
        self,
        config: Optional[BatchConfig] = None,
        errors: Optional[List[str]] = None,
    ) -> CorrelatedLogSet:
        """
        Default alert plus supporting logs, without the alert source.

        If the supporting logs cannot be built, the alert is returned on its
        own and the error is appended to ``errors`` when given.
        """
        config = config or BatchConfig()
        alert = self.alert_factory.create_alert(self._context(config))
        try:
            scenario = self.engine.generate_attack_scenario(
                alert, CorrelationConfig(log_count=config.log_count), self.now
            )
            logs = scenario.supporting_logs
        except Exception as e:
            if errors is None:
                raise
            logger.error("Fallback logs for %s failed: %s", alert.technique_id, e)
            errors.append(str(e))
            logs = ()
        return CorrelatedLogSet(
            alert=alert,
            supporting_logs=logs,
            attack_narrative=FALLBACK_NARRATIVE,
        )

    async def _generate_one(
        self,
        index: int,
        config: BatchConfig,
        failures: List[ScenarioFailure],
        cancel_token: Optional[CancellationToken],
    ) -> CorrelatedLogSet:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            scenario = await self.generate_correlated_alert(config, cancel_token)
        except GenerationCancelled:
            raise
        except Exception as e:
            logger.warning("Scenario %d failed, using fallback: %s", index + 1, e)
            self.metrics.record("scenario_fallback", 1, index=index)
            errors = [str(e)]
            scenario = self.generate_fallback(config, errors)
            failures.append(ScenarioFailure(index=index, error="; fallback: ".join(errors)))
            return scenario
        self.metrics.record("scenario_generated", 1, index=index)
        return scenario

    # ------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------

    async def generate_batch(
        self,
        count: Optional[int] = None,
        config: Optional[BatchConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
        between_groups: Optional[GroupHook] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> BatchResult:
        """
        Generate ``count`` scenarios in request order.

        Scenarios run in groups of ``config.concurrency``; groups run one
        after another. When the alert source is in use, ``throttle_seconds``
        is slept between groups.

        Args:
            count: Number of scenarios (defaults to ``config.count``)
            config: Batch configuration
            cancel_token: Checked before each scenario and external call
            between_groups: Hook called with the group number after each group
            progress_callback: Optional callback(current, total)

        Returns:
            BatchResult holding exactly ``count`` scenarios
        """
        config = config or BatchConfig()
        count = config.count if count is None else count
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        result = BatchResult()
        size = config.concurrency
        groups = [range(i, min(i + size, count)) for i in range(0, count, size)]

        for group_number, group in enumerate(groups):
            scenarios = await asyncio.gather(*[
                self._generate_one(i, config, result.failures, cancel_token) for i in group
            ])
            result.scenarios.extend(scenarios)

            if progress_callback:
                progress_callback(len(result.scenarios), count)
            if between_groups is not None:
                outcome = between_groups(group_number)
                if inspect.isawaitable(outcome):
                    await outcome
            if self._uses_ai(config) and config.throttle_seconds > 0 and group_number < len(groups) - 1:
                await self.sleep(config.throttle_seconds)

        result.failures.sort(key=lambda f: f.index)
        logger.info(
            "Batch complete: %d scenarios, %d fallbacks", len(result.scenarios), result.failure_count
        )
        return result

    async def generate_attack_campaign(
        self,
        count: int,
        hosts: Sequence[str],
        users: Sequence[str],
        config: Optional[BatchConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttackCampaignResult:
        """
        Generate scenarios round-robin over hosts and users, with a summary.
        """
        if not hosts or not users:
            raise ValueError("hosts and users must not be empty")
        config = config or BatchConfig()

        failures: List[ScenarioFailure] = []
        scenarios = []
        for i in range(count):
            item_config = config.model_copy(update={
                "host_name": hosts[i % len(hosts)],
                "user_name": users[i % len(users)],
            })
            scenarios.append(await self._generate_one(i, item_config, failures, cancel_token))
            if self._uses_ai(config) and config.throttle_seconds > 0 and i < count - 1:
                await self.sleep(config.throttle_seconds)

        return AttackCampaignResult(
            scenarios=scenarios,
            summary=self.summarize(scenarios),
            failures=failures,
        )

    @staticmethod
    def summarize(scenarios: Sequence[CorrelatedLogSet]) -> Dict[str, Any]:
        """Counts, distinct techniques/hosts/users and the overall time span."""

        def distinct(values):
            seen = []
            for v in values:
                if v not in seen:
                    seen.append(v)
            return seen

        timestamps = [s.alert.timestamp for s in scenarios]
        timestamps += [log.timestamp for s in scenarios for log in s.supporting_logs]
        return {
            "total_alerts": len(scenarios),
            "total_logs": sum(len(s.supporting_logs) for s in scenarios),
            "attack_types": distinct(s.alert.technique_id for s in scenarios),
            "affected_hosts": distinct(s.alert.host for s in scenarios),
            "affected_users": distinct(s.alert.user for s in scenarios),
            "time_span": {
                "start": format_timestamp(min(timestamps)) if timestamps else None,
                "end": format_timestamp(max(timestamps)) if timestamps else None,
            },
        }

    async def generate_realistic_campaigns(
        self,
        count: int,
        config: Optional[CampaignConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RealisticBatchResult:
        """
        Run the realistic campaign pipeline ``count`` times.

        A campaign that fails is recorded in ``failures``; the others continue.
        """
        config = config or CampaignConfig()
        result = RealisticBatchResult()
        planner = CampaignPlanner(rng=self.rng, now=self.now)
        engine = RealisticAttackEngine(config, rng=self.rng, planner=planner, metrics=self.metrics)

        for i in range(count):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                result.results.append(engine.generate_campaign(cancel_token=cancel_token))
            except GenerationCancelled:
                raise
            except Exception as e:
                logger.warning("Campaign %d failed: %s", i + 1, e)
                result.failures.append(CampaignFailure(index=i, error=str(e)))
            # Yield to the loop between campaigns
            await asyncio.sleep(0)
        return result

    # ------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------

    @staticmethod
    def extract_for_indexing(scenarios: Sequence[CorrelatedLogSet]) -> IndexBatch:
        """
        Flatten scenarios into a write-batch.

        Each alert goes to ``.alerts-security.alerts-<space>`` and each log
        to ``logs-<dataset>-<namespace>``, in request order.
        """
        batch = IndexBatch()
        for scenario in scenarios:
            batch.add(scenario.alert.index_name, scenario.alert.to_document())
            for log in scenario.supporting_logs:
                doc = log.to_document()
                batch.add(index_for_document(doc), doc)
        return batch

    @staticmethod
    def extract_campaign_for_indexing(results: Sequence[RealisticCampaignResult]) -> IndexBatch:
        """Flatten realistic campaigns: every stage log, then the detected alerts."""
        batch = IndexBatch()
        for result in results:
            for stage in result.stage_logs:
                for log in stage.logs:
                    doc = log.to_document()
                    batch.add(index_for_document(doc), doc)
            for alert in result.detected_alerts:
                batch.add(alert.index_name, alert.to_document())
        return batch

    async def write(
        self,
        batch: IndexBatch,
        sink: DocumentSink,
        cancel_token: Optional[CancellationToken] = None,
    ) -> IngestResult:
        """Hand a write-batch to a sink without blocking the event loop."""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, sink.write_batch, batch)
