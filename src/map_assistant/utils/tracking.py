import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Step:
    name: str
    duration_ms: float
    elapsed_ms: float


@dataclass
class StepTracker:
    """Wall-clock timing of the steps of one user turn, logged at debug level."""

    label: str
    steps: list[Step] = field(default_factory=list)
    _started: float = field(default_factory=time.perf_counter, repr=False)
    _last: float | None = field(default=None, repr=False)

    def step(self, name: str) -> Step:
        now = time.perf_counter()
        previous = self._last if self._last is not None else self._started
        step = Step(
            name=name,
            duration_ms=(now - previous) * 1000,
            elapsed_ms=(now - self._started) * 1000,
        )
        self._last = now
        self.steps.append(step)
        logger.debug("[%s] %s: %.0fms (total %.0fms)", self.label, name, step.duration_ms, step.elapsed_ms)
        return step

    def ran(self, name: str) -> bool:
        return any(step.name == name for step in self.steps)

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def slowest(self) -> Step | None:
        return max(self.steps, key=lambda step: step.duration_ms, default=None)

    def end(self) -> float:
        total = self.total_ms
        slowest = self.slowest()
        logger.debug(
            "[%s] done in %.0fms over %d steps; slowest: %s",
            self.label,
            total,
            len(self.steps),
            f"{slowest.name} ({slowest.duration_ms:.0f}ms)" if slowest else "n/a",
        )
        return total
