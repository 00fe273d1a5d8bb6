from __future__ import annotations

from core import Module
from resource_pipeline.schedule import enforce_time_windows, redistribute_day_ranges


def _module(module_id: str, hours: float, day_start=None, day_end=None) -> Module:
    return Module(id=module_id, title=f"Module {module_id}", estimated_hours=hours, day_start=day_start, day_end=day_end)


def _ranges(modules):
    return [(m.day_start, m.day_end) for m in modules]


def test_redistribute_lays_modules_out_consecutively() -> None:
    modules = [_module("a", 2), _module("b", 3), _module("c", 0.2)]
    out = redistribute_day_ranges(modules, None, 1)
    assert _ranges(out) == [(1, 2), (3, 5), (6, 6)]
    assert {m.week for m in out} == {1}
    assert modules[0].day_start is None


def test_redistribute_scales_remaining_modules_after_completed_ones() -> None:
    done = _module("a", 3, 1, 3)
    modules = [done, _module("b", 4), _module("c", 4)]

    out = redistribute_day_ranges(modules, 10, 2, completed_ids={"a"})

    assert out[0] is done
    assert _ranges(out[1:]) == [(4, 6), (7, 10)]
    assert out[-1].day_end == 10


def test_redistribute_gives_each_module_at_least_one_day() -> None:
    modules = [_module(str(i), 1) for i in range(5)]
    out = redistribute_day_ranges(modules, 3, 1)
    assert all(m.day_end >= m.day_start for m in out)
    assert out[-1].day_end == 5


def test_redistribute_assigns_week_from_start_day() -> None:
    modules = [_module("a", 7), _module("b", 2)]
    out = redistribute_day_ranges(modules, None, 1)
    assert [m.week for m in out] == [1, 2]


def test_redistribute_with_everything_completed_is_a_noop() -> None:
    modules = [_module("a", 1, 1, 1)]
    out = redistribute_day_ranges(modules, 5, 1, completed_ids=["a"])
    assert out[0] is modules[0]


def test_enforce_time_windows_caps_hours_to_window() -> None:
    heavy = _module("a", 5, 1, 2)
    light = _module("b", 3, 3, 4)
    done = _module("c", 9, 5, 5)
    unscheduled = _module("d", 9)

    out = enforce_time_windows([heavy, light, done, unscheduled], 2, completed_ids={"c"})

    assert out[0].estimated_hours == 4.0
    assert out[1] is light
    assert out[2] is done
    assert out[3] is unscheduled
    assert heavy.estimated_hours == 5


def test_enforce_time_windows_keeps_estimates_within_tolerance_and_raises_tiny_ones() -> None:
    slightly_over = _module("a", 4.1, 1, 2)
    tiny = _module("b", 0.2, 3, 3)

    out = enforce_time_windows([slightly_over, tiny], 2)

    assert out[0] is slightly_over
    assert out[1].estimated_hours == 0.5
