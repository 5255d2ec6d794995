from __future__ import annotations

from trustlog.core.metrics import MetricsRegistry


def test_counter_and_timing() -> None:
    reg = MetricsRegistry()
    reg.counter("livelog.published").inc()
    reg.counter("livelog.published").inc(2)
    reg.timing("livelog.processing").observe(10)
    reg.timing("livelog.processing").observe(30)

    assert reg.counter("livelog.published").value == 3
    t = reg.timing("livelog.processing")
    assert t.count == 2
    assert t.mean_us == 20.0
    assert t.max_us == 30

    snap = reg.snapshot()
    assert snap["counter.livelog.published"] == 3.0
    assert snap["timing.livelog.processing.mean_us"] == 20.0


def test_empty_timing_mean_is_zero() -> None:
    assert MetricsRegistry().timing("x").mean_us == 0.0
