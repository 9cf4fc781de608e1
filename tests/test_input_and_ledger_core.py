from __future__ import annotations

import pytest

from arithmetic_defense.entities import EntityType, Operator, make_entity
from arithmetic_defense.input_buffer import InputBuffer
from arithmetic_defense.ledger import MAX_LIVES, ComboTracker, LivesLedger, ScoreLedger, base_value, hit_points
from arithmetic_defense.matcher import find_target


def test_buffer_overflow_restarts_with_new_digit() -> None:
    buf = InputBuffer()
    for d in "123":
        assert buf.push_digit(d) is True
    assert buf.text == "123"
    assert buf.push_digit("4") is True
    assert buf.text == "4"


def test_buffer_rejects_non_digits() -> None:
    buf = InputBuffer()
    buf.push_digit("1")
    assert buf.push_digit("x") is False
    assert buf.push_digit("12") is False
    assert buf.push_digit("") is False
    assert buf.text == "1"


def test_buffer_backspace_and_clear() -> None:
    buf = InputBuffer()
    buf.backspace()
    assert buf.text == ""
    buf.push_digit("4")
    buf.push_digit("2")
    buf.backspace()
    assert buf.text == "4"
    assert buf.value() == 4
    buf.clear()
    assert buf.value() is None


def test_buffer_leading_zero_value() -> None:
    buf = InputBuffer()
    buf.push_digit("0")
    buf.push_digit("7")
    assert buf.value() == 7


def test_buffer_length_must_be_positive() -> None:
    with pytest.raises(ValueError):
        InputBuffer(max_length=0)


def test_find_target_prefers_earliest_spawn_then_lower_id() -> None:
    late = make_entity(entity_id=5, a=4, b=1, op=Operator.ADD, spawn_time=5)
    early = make_entity(entity_id=2, a=2, b=3, op=Operator.ADD, spawn_time=2)
    other = make_entity(entity_id=1, a=9, b=1, op=Operator.ADD, spawn_time=1)
    assert find_target([late, early, other], 5) is early

    tie_hi = make_entity(entity_id=9, a=1, b=4, op=Operator.ADD, spawn_time=3)
    tie_lo = make_entity(entity_id=8, a=3, b=2, op=Operator.ADD, spawn_time=3)
    assert find_target([tie_hi, tie_lo], 5) is tie_lo

    assert find_target([late, early], 6) is None
    assert find_target([late, early], None) is None


def test_score_values_and_combo_bonus() -> None:
    assert base_value(EntityType.NORMAL) == 10
    assert base_value(EntityType.FAST) == 10
    assert base_value(EntityType.BOSS) == 50
    assert hit_points(EntityType.BOSS, 3) == 65

    ledger = ScoreLedger()
    assert ledger.award(EntityType.NORMAL, 0) == 10
    assert ledger.award(EntityType.FAST, 1) == 15
    assert ledger.total == 25


def test_combo_tracker_returns_value_before_hit() -> None:
    combo = ComboTracker()
    assert combo.hit() == 0
    assert combo.hit() == 1
    assert combo.value == 2
    combo.miss()
    assert combo.value == 0


def test_lives_never_go_below_zero() -> None:
    lives = LivesLedger(2)
    assert lives.lose() == 1
    assert lives.lose() == 0
    assert lives.depleted
    assert lives.lose() == 0
    with pytest.raises(ValueError):
        LivesLedger(0)


def test_lives_capped_at_three() -> None:
    lives = LivesLedger()
    assert lives.starting == lives.remaining == MAX_LIVES == 3
    with pytest.raises(ValueError):
        LivesLedger(MAX_LIVES + 1)
