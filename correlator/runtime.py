"""
Runtime helpers shared by long-running generation loops.

Provides an explicit cancellation token that is passed down the call
chain, and a bounded metrics buffer for generation statistics.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from .errors import GenerationCancelled


class CancellationToken:
    """
    Cooperative stop signal.

    Loops check the token at iteration boundaries and before each
    external call; nothing is interrupted mid-step.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation."""
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise GenerationCancelled if cancellation was requested."""
        if self._event.is_set():
            raise GenerationCancelled(self.reason or "cancelled")


@dataclass
class MetricSample:
    """A single recorded generation measurement."""

    name: str
    value: float
    recorded_at: float
    labels: Dict[str, Any] = field(default_factory=dict)


class GenerationMetrics:
    """
    Bounded, append-only buffer of generation measurements.

    Oldest samples are evicted once ``max_samples`` is reached.
    """

    def __init__(self, max_samples: int = 1000):
        if max_samples <= 0:
            raise ValueError("max_samples must be positive")
        self._samples: Deque[MetricSample] = deque(maxlen=max_samples)

    def record(self, name: str, value: float, **labels: Any) -> None:
        self._samples.append(
            MetricSample(name=name, value=value, recorded_at=time.time(), labels=labels)
        )

    def samples(self, name: Optional[str] = None) -> List[MetricSample]:
        """Snapshot of recorded samples, optionally filtered by name."""
        if name is None:
            return list(self._samples)
        return [s for s in self._samples if s.name == name]

    def total(self, name: str) -> float:
        return sum(s.value for s in self._samples if s.name == name)

    def __len__(self) -> int:
        return len(self._samples)
