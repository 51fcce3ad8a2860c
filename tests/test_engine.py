from datetime import datetime, timedelta, timezone

import pytest

from analytics.engine import (
    MetricsEngine,
    cognitive_fluency,
    error_rate,
    flatten_taps,
    max_span,
    persistence,
    self_correction_index,
)
from core.config import AnalyticsSettings
from core.models import Round, Tap

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_round(level, attempt, stamps, correct=None, is_correct=None):
    """Build a round; ``correct`` flags which taps match their expected symbol."""
    correct = correct if correct is not None else [True] * len(stamps)
    taps = [
        Tap(timestamp=ts, input_value=i if ok else -1, expected_value=i, position=i)
        for i, (ts, ok) in enumerate(zip(stamps, correct))
    ]
    if is_correct is None:
        is_correct = all(correct) and len(stamps) == level
    return Round(level=level, attempt=attempt, is_correct=is_correct, time_taken=1.0, taps=taps, start_time=T0, end_time=T0)


def taps_from(stamps, correct):
    return [
        Tap(timestamp=ts, input_value=i if ok else -1, expected_value=i, position=i)
        for i, (ts, ok) in enumerate(zip(stamps, correct))
    ]


def test_empty_rounds_resolve_to_zero():
    record = MetricsEngine().compute([], T0, T0 + timedelta(seconds=10))
    assert record.max_span == 0
    assert record.error_rate == 0
    assert record.persistence == 0
    assert record.cognitive_fluency == 0
    assert record.self_correction_index == 0
    assert record.total_attempts == 0
    assert record.total_session_time == 10
    assert record.all_taps == ()


def test_max_span_counts_only_successful_rounds():
    rounds = [
        make_round(3, 1, [0, 200, 400]),
        make_round(4, 1, [0, 200, 400, 600]),
        make_round(5, 1, [0, 200], correct=[True, False]),
    ]
    assert max_span(rounds) == 4
    assert max_span([rounds[2]]) == 0


def test_error_rate_and_counts():
    rounds = [
        make_round(3, 1, [0, 100, 200]),
        make_round(4, 1, [0, 100], correct=[True, False]),
        make_round(4, 2, [0, 100, 200, 300]),
        make_round(5, 1, [0], correct=[False]),
    ]
    assert error_rate(rounds) == 50.0
    record = MetricsEngine().compute(rounds, T0, T0)
    assert record.total_attempts == 4
    assert record.successful_attempts == 2
    assert 0 <= record.error_rate <= 100


def test_scenario_attempt_counting_persistence():
    rounds = [
        make_round(5, 1, [0, 100], correct=[True, False]),
        make_round(5, 2, [0, 100, 200], correct=[True, True, False]),
        make_round(5, 3, [0, 100, 200, 300, 400]),
    ]
    assert persistence(rounds) == 2
    assert persistence(rounds) <= len(rounds)


def test_scenario_fluency_single_round():
    rounds = [make_round(3, 1, [0, 300, 700])]
    assert cognitive_fluency(rounds) == pytest.approx(350.0)


def test_fluency_ignores_failed_rounds_and_round_boundaries():
    rounds = [
        make_round(2, 1, [0, 100]),
        # failed round: its intervals are never used
        make_round(3, 1, [5000, 9000], correct=[True, False]),
        make_round(2, 2, [20000, 20300]),
    ]
    # pooled intervals: 100 and 300; the 19900 gap between rounds is never paired
    assert cognitive_fluency(rounds) == pytest.approx(200.0)


def test_fluency_skips_incorrect_taps_inside_successful_round():
    round_ = make_round(3, 1, [0, 500, 900], correct=[True, False, True], is_correct=True)
    # only the correct taps at 0 and 900 are paired
    assert cognitive_fluency([round_]) == pytest.approx(900.0)


def test_fluency_zero_when_no_pairs():
    assert cognitive_fluency([make_round(1, 1, [0])]) == 0.0


def test_scenario_self_correction():
    taps = taps_from([0, 300, 600, 900, 1400, 1900, 2400], [True, True, True, False, True, True, True])
    assert self_correction_index(taps) == pytest.approx(66.6667, rel=1e-4)


def test_self_correction_speeding_up_is_negative():
    taps = taps_from([0, 400, 800, 1200, 1400, 1600, 1800], [True, True, True, False, True, True, True])
    assert self_correction_index(taps) == pytest.approx(-50.0)


def test_self_correction_excludes_errors_near_edges():
    # errors at index 2 and at index n-3 never qualify
    taps = taps_from([0, 100, 200, 300, 500, 700, 900], [True, True, False, True, False, True, True])
    assert self_correction_index(taps) == 0.0


def test_self_correction_averages_all_qualifying_errors():
    stamps = [0, 100, 200, 300, 500, 700, 900, 1000, 1100, 1200]
    correct = [True, True, True, False, True, True, False, True, True, True]
    taps = taps_from(stamps, correct)
    # error at 3: pre (100,100,100) post (200,200,200) -> +100%
    # error at 6: pre (200,200,200) post (100,100,100) -> -50%
    assert self_correction_index(taps) == pytest.approx(25.0)


def test_self_correction_ignores_zero_pre_window():
    taps = taps_from([0, 0, 0, 0, 100, 200, 300], [True, True, True, False, True, True, True])
    assert self_correction_index(taps) == 0.0


def test_self_correction_spans_round_boundaries():
    rounds = [
        make_round(3, 1, [0, 300, 600]),
        make_round(4, 1, [900, 1400, 1900, 2400], correct=[False, True, True, True], is_correct=False),
    ]
    record = MetricsEngine().compute(rounds, T0, T0)
    assert len(record.all_taps) == 7
    assert record.self_correction_index == pytest.approx(66.6667, rel=1e-4)


def test_window_sizes_come_from_settings():
    taps = taps_from([0, 300, 600, 1100, 1600], [True, True, False, True, True])
    assert self_correction_index(taps) == 0.0
    assert self_correction_index(taps, pre_window=2, post_window=2) == pytest.approx(66.6667, rel=1e-4)

    rounds = [make_round(5, 1, [0, 300, 600, 1100, 1600], correct=[True, True, False, True, True], is_correct=False)]
    settings = AnalyticsSettings(self_correction_pre_window=2, self_correction_post_window=2)
    record = MetricsEngine(settings=settings).compute(rounds, T0, T0)
    assert record.self_correction_index == pytest.approx(66.6667, rel=1e-4)


def test_flatten_keeps_round_order():
    rounds = [make_round(2, 1, [10, 20]), make_round(1, 1, [5])]
    assert [t.timestamp for t in flatten_taps(rounds)] == [10, 20, 5]


def test_compute_is_idempotent():
    rounds = [
        make_round(3, 1, [0, 300, 700]),
        make_round(4, 1, [1000, 1200, 1500], correct=[True, True, False]),
        make_round(4, 2, [2000, 2300, 2700, 2900]),
    ]
    engine = MetricsEngine()
    end = T0 + timedelta(minutes=3)
    first = engine.compute(rounds, T0, end)
    second = engine.compute(rounds, T0, end)
    assert first == second
    assert first.rounds_data == tuple(rounds)


def test_compute_uses_clock_when_end_time_missing(clock):
    engine = MetricsEngine(clock=clock)
    start = clock.now()
    clock.advance(seconds=42)
    record = engine.compute([], start.isoformat())
    assert record.total_session_time == pytest.approx(42.0)


def test_record_serializes_for_storage():
    record = MetricsEngine().compute([make_round(3, 1, [0, 300, 700])], T0, T0 + timedelta(seconds=5))
    doc = record.model_dump(mode="json", by_alias=True)
    assert doc["maxSpan"] == 3
    assert doc["cognitiveFluency"] == pytest.approx(350.0)
    assert len(doc["allTaps"]) == 3
    assert doc["roundsData"][0]["level"] == 3
