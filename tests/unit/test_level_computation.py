"""Level computation tests. Thresholds MUST match the web client's level table."""

import pytest

from tabanok.gamification.level_thresholds import LEVEL_THRESHOLDS, calculate_level, compute_level, level_title


class TestCalculateLevel:
    """calculate_level is a pure, monotonic function of total points."""

    def test_level_1_at_zero_points(self):
        assert calculate_level(0) == 1

    def test_boundary_99_points(self):
        """99 points is still level 1."""
        assert calculate_level(99) == 1

    def test_level_2_at_100_points(self):
        assert calculate_level(100) == 2

    def test_level_3_at_250_points(self):
        assert calculate_level(250) == 3

    def test_negative_clamps_to_level_1(self):
        assert calculate_level(-10) == 1

    def test_max_level(self):
        assert calculate_level(10_000_000) == LEVEL_THRESHOLDS[-1]["level"]

    def test_monotonic(self):
        previous = calculate_level(0)
        for points in range(0, 120_000, 37):
            level = calculate_level(points)
            assert level >= previous
            previous = level

    def test_thresholds_ascending(self):
        cumulative = [t["cumulative"] for t in LEVEL_THRESHOLDS]
        assert cumulative == sorted(cumulative)
        for prev, cur in zip(LEVEL_THRESHOLDS, LEVEL_THRESHOLDS[1:]):
            assert cur["cumulative"] - prev["cumulative"] == cur["points_required"]


class TestComputeLevel:
    def test_title_at_zero(self):
        result = compute_level(0)
        assert result["level"] == 1
        assert result["title"] == "Newcomer"
        assert result["next_level"] == 2

    def test_points_into_level(self):
        result = compute_level(150)  # 50 points into level 2
        assert result["level"] == 2
        assert result["points_into_level"] == 50
        assert result["points_for_level"] == 150  # 250 - 100

    def test_at_boundary(self):
        result = compute_level(100)
        assert result["points_into_level"] == 0

    def test_max_level_avoids_zero_division(self):
        result = compute_level(200_000)
        assert result["level"] == 25
        assert result["points_for_level"] == 1

    @pytest.mark.parametrize("points", [0, 99, 100, 1000, 9999, 10_000, 60_000])
    def test_agrees_with_calculate_level(self, points):
        assert compute_level(points)["level"] == calculate_level(points)


class TestLevelTitle:
    def test_exact_level(self):
        assert level_title(3) == "First Words"

    def test_between_thresholds(self):
        """Levels 11-14 keep the level 10 title."""
        assert level_title(12) == "Fluent Speaker"
