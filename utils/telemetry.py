from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Iterator, List


class Telemetry:
    """In-process counters and latency samples for one orchestrator."""

    def __init__(self) -> None:
        self.counters: Dict[str, int] = {}
        self._samples_ms: Dict[str, List[float]] = {}

    def incr(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def observe_ms(self, name: str, ms: float) -> None:
        self._samples_ms.setdefault(name, []).append(ms)

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe_ms(name, (time.perf_counter() - start) * 1000.0)

    def summary(self) -> Dict[str, object]:
        timings: Dict[str, Dict[str, float]] = {}
        for name, samples in self._samples_ms.items():
            total = sum(samples)
            timings[name] = {
                "count": float(len(samples)),
                "total_ms": float(total),
                "avg_ms": float(total / len(samples)) if samples else 0.0,
                "min_ms": float(min(samples)) if samples else 0.0,
                "max_ms": float(max(samples)) if samples else 0.0,
            }
        return {"counters": dict(self.counters), "timings": timings}
