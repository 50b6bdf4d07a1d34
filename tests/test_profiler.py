"""Test timing helpers and request deadlines.

Tests for sigil_sdf.utils.profiler:
    - timer() reports to a sink
    - TimerAccumulator totals and means
    - Deadline with an injected clock

Run:
    pytest tests/test_profiler.py -v
"""

import itertools

import pytest

from sigil_sdf.errors import ResourceLimitExceeded
from sigil_sdf.utils.profiler import Deadline, TimerAccumulator, timer


def test_timer_sink():
    timings = {}
    with timer("encode", sink=timings.__setitem__):
        pass
    assert set(timings) == {"encode"}
    assert timings["encode"] >= 0.0


def test_timer_reports_on_error():
    timings = {}
    with pytest.raises(KeyError):
        with timer("interpret", sink=timings.__setitem__):
            raise KeyError("boom")
    assert "interpret" in timings


def test_accumulator():
    acc = TimerAccumulator()
    acc.add("rasterize", 1.0)
    acc.add("rasterize", 3.0)
    assert acc.mean("rasterize") == 2.0
    assert acc.mean("missing") == 0.0
    assert acc.summary()["rasterize"] == {"total_s": 4.0, "count": 2, "mean_s": 2.0}


def test_deadline():
    deadline = Deadline(25.0, clock=itertools.count(0, 10).__next__)
    deadline.check("interpret")      # t=10
    deadline.check("rasterize")      # t=20
    with pytest.raises(ResourceLimitExceeded) as exc_info:
        deadline.check("distance_field")  # t=30
    err = exc_info.value
    assert (err.resource, err.limit, err.stage) == ("time", 25.0, "distance_field")
    assert err.to_dict()["kind"] == "resource_limit"


def test_unlimited():
    deadline = Deadline.unlimited()
    assert deadline.remaining == float("inf")
    assert not deadline.expired()
    deadline.check("anything")
