"""
Unit tests for the supply calculator.
"""

import pytest

from vial_tracker.core.calculator import VialState, compute_vial_state, parse_amount
from vial_tracker.storage.models import UsageRecord


def _records(*amounts):
    return [
        UsageRecord(id=f"r{i}", date="2024-01-01", amount_ml=amount)
        for i, amount in enumerate(amounts)
    ]


class TestParseAmount:
    """Test amount parsing."""

    def test_numeric_strings(self):
        assert parse_amount("0.11") == 0.11
        assert parse_amount(" 2 ") == 2.0
        assert parse_amount("1e-1") == 0.1

    def test_numbers_pass_through(self):
        assert parse_amount(3) == 3.0
        assert parse_amount(0.5) == 0.5

    @pytest.mark.parametrize("value", ["", "   ", "abc", "0,11", None, "nan", "inf", True])
    def test_unparseable_values_return_none(self, value):
        assert parse_amount(value) is None


class TestComputeVialState:
    """Test vial state derivation."""

    def test_full_vial(self):
        """An empty ledger leaves the whole vial: 10 ml is 90 shots of 0.11 ml."""
        state = compute_vial_state([], 10, 0.11)

        assert state.remaining_ml == 10.0
        assert f"{state.remaining_ml:.2f}" == "10.00"
        assert state.shots_taken == 0
        assert state.shots_remaining == 90
        assert state.days_remaining == 90
        assert state.can_register

    def test_usage_is_subtracted(self):
        state = compute_vial_state(_records("0.11", "0.22", "0.5"), 10, 0.11)

        assert state.total_used_ml == pytest.approx(0.83)
        assert state.remaining_ml == pytest.approx(9.17)
        assert state.shots_taken == 3
        assert state.shots_remaining == 83

    def test_exact_multiple_is_not_lost_to_rounding(self):
        state = compute_vial_state(_records("9.67"), 10, 0.11)

        assert state.remaining_ml == pytest.approx(0.33)
        assert state.shots_remaining == 3

    def test_overshoot_clamps_to_zero(self):
        state = compute_vial_state(_records("6", "5.5"), 10, 0.11)

        assert state.total_used_ml == 11.5
        assert state.remaining_ml == 0
        assert state.shots_remaining == 0
        assert state.days_remaining == 0
        assert not state.can_register

    def test_malformed_amounts_count_as_zero(self):
        """Unreadable ml amounts add nothing but are counted."""
        state = compute_vial_state(_records("1", "", "abc", "1"), 10, 0.11)

        assert state.total_used_ml == 2.0
        assert state.remaining_ml == 8.0
        assert state.shots_taken == 4
        assert state.malformed_count == 2

    @pytest.mark.parametrize("amounts", [
        (),
        ("0",),
        ("0.11",) * 50,
        ("3", "3", "3"),
        ("10",),
        ("2.5",) * 10,
    ])
    def test_remaining_stays_within_capacity(self, amounts):
        state = compute_vial_state(_records(*amounts), 10, 0.11)
        assert 0 <= state.remaining_ml <= 10

    def test_same_snapshot_gives_same_state(self):
        records = _records("0.11", "x", "0.3")

        first = compute_vial_state(records, 10, 0.11)
        second = compute_vial_state(records, 10, 0.11)

        assert first == second
        assert isinstance(first, VialState)

    def test_shots_per_day_scales_days_remaining(self):
        state = compute_vial_state([], 10, 0.11, shots_per_day=2)

        assert state.shots_remaining == 90
        assert state.days_remaining == 45

    @pytest.mark.parametrize("capacity,shot", [(0, 0.11), (-1, 0.11), (10, 0), (10, -0.1)])
    def test_rejects_non_positive_constants(self, capacity, shot):
        with pytest.raises(ValueError):
            compute_vial_state([], capacity, shot)
