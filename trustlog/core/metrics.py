"""trustlog.core.metrics

A tiny metrics surface.

No Prometheus dependency here. Just a stable interface that can be wired later.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock


@dataclass
class Counter:
    name: str
    _value: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class Timing:
    """Running count/total/max of observed durations, in microseconds."""

    name: str
    count: int = 0
    total_us: int = 0
    max_us: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def observe(self, us: int) -> None:
        with self._lock:
            self.count += 1
            self.total_us += us
            self.max_us = max(self.max_us, us)

    @property
    def mean_us(self) -> float:
        with self._lock:
            return self.total_us / self.count if self.count else 0.0


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, Counter] = {}
        self._timings: dict[str, Timing] = {}

    def counter(self, name: str) -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name)
            return self._counters[name]

    def timing(self, name: str) -> Timing:
        with self._lock:
            if name not in self._timings:
                self._timings[name] = Timing(name=name)
            return self._timings[name]

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            data: dict[str, float] = {}
            data.update({f"counter.{k}": float(v.value) for k, v in self._counters.items()})
            for k, t in self._timings.items():
                data[f"timing.{k}.count"] = float(t.count)
                data[f"timing.{k}.mean_us"] = t.mean_us
                data[f"timing.{k}.max_us"] = float(t.max_us)
            return data


REGISTRY = MetricsRegistry()
