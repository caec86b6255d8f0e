"""Tests for pm_common.fixed_point."""

import math

import pytest

from src.pm_common.fixed_point import (
    bps_of,
    floor_to_int,
    format_atomic,
    log_sum_exp,
    mul_div_floor,
    softmax,
    to_basis_points,
)


class TestLogSumExp:
    def test_matches_naive_for_small_values(self) -> None:
        values = [0.1, 0.5, 2.0]
        naive = math.log(sum(math.exp(v) for v in values))
        assert log_sum_exp(values) == pytest.approx(naive, rel=1e-12)

    def test_stable_for_large_values(self) -> None:
        # exp(1000) overflows a float; the shifted form does not
        assert log_sum_exp([1000.0, 1000.0]) == pytest.approx(1000.0 + math.log(2))

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError):
            log_sum_exp([])


class TestSoftmax:
    def test_sums_to_one(self) -> None:
        probs = softmax([3.0, 1.0, 0.2, 900.0])
        assert sum(probs) == pytest.approx(1.0, abs=1e-12)

    def test_uniform(self) -> None:
        assert softmax([0.0, 0.0, 0.0, 0.0]) == [0.25, 0.25, 0.25, 0.25]


class TestFloorToInt:
    def test_truncates_down(self) -> None:
        assert floor_to_int(10.999) == 10
        assert floor_to_int(-0.5) == -1

    def test_no_snap_below_integer(self) -> None:
        assert floor_to_int(2.9999999999) == 2
        assert floor_to_int(3.0) == 3

    def test_rejects_nan(self) -> None:
        with pytest.raises(ValueError):
            floor_to_int(float("nan"))


class TestIntegerHelpers:
    def test_mul_div_floor(self) -> None:
        assert mul_div_floor(7, 3, 2) == 10
        assert mul_div_floor(1, 1, 3) == 0

    def test_mul_div_floor_rejects_zero_divisor(self) -> None:
        with pytest.raises(ValueError):
            mul_div_floor(1, 1, 0)

    def test_bps_of_rounds_down(self) -> None:
        # 999 * 500 / 10000 = 49.95 -> 49
        assert bps_of(999, 500) == 49

    def test_bps_of_zero(self) -> None:
        assert bps_of(0, 500) == 0
        assert bps_of(1000, 0) == 0

    def test_format_atomic(self) -> None:
        assert format_atomic(1_500_000_000) == "1.500000000"
        assert format_atomic(-25, decimals=2) == "-0.25"


class TestToBasisPoints:
    def test_even_split(self) -> None:
        assert to_basis_points([0.5, 0.5]) == [5000, 5000]

    def test_thirds_sum_to_10000(self) -> None:
        bps = to_basis_points([1 / 3, 1 / 3, 1 / 3])
        assert sum(bps) == 10_000
        assert sorted(bps) == [3333, 3333, 3334]

    def test_rounding_overshoot_corrected(self) -> None:
        # Each rounds up to 1667 -> 10002 before correction
        bps = to_basis_points([1 / 6] * 6)
        assert sum(bps) == 10_000
        assert all(b in (1666, 1667) for b in bps)
