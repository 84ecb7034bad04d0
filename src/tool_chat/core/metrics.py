from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepTiming:
    name: str
    elapsed_ms: float


class Timer:
    """Small utility to measure step latencies (rounds, tool calls)."""

    def __init__(self) -> None:
        self._steps: list[StepTiming] = []

    def measure(self, name: str, fn: Callable[[], T]) -> T:
        with self.step(name):
            return fn()

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - start) * 1000.0
            self._steps.append(StepTiming(name=name, elapsed_ms=elapsed))

    @property
    def steps(self) -> list[StepTiming]:
        return list(self._steps)

    def last(self) -> float:
        return self._steps[-1].elapsed_ms if self._steps else 0.0

    def summary(self) -> Dict[str, float]:
        out: Dict[str, float] = {s.name: s.elapsed_ms for s in self._steps}
        out["total_ms"] = sum(s.elapsed_ms for s in self._steps)
        return out
