"""Tests for rounding, input validation and page bounds checks."""

import math

import pytest

from geometry import (
    compute_bounds,
    is_number,
    round_to_precision,
    validate_against_page_bounds,
    validate_positioning,
    validate_positioning_inputs,
)

A4 = {"width": 210, "height": 297}


class TestNumbers:
    """Tests for is_number and round_to_precision."""

    @pytest.mark.parametrize("value", [0, 1, -3, 2.5, 1e6])
    def test_finite_numbers(self, value):
        assert is_number(value)

    @pytest.mark.parametrize("value", [None, "10", True, False, math.nan, math.inf, -math.inf, [1]])
    def test_not_numbers(self, value):
        assert not is_number(value)

    def test_round_half_away_from_zero(self):
        """Halves round away from zero on both sides."""
        assert round_to_precision(2.5, 0) == 3
        assert round_to_precision(-2.5, 0) == -3
        assert round_to_precision(0.125, 2) == 0.13
        assert round_to_precision(-0.125, 2) == -0.13

    def test_round_truncates_digits(self):
        assert round_to_precision(1.234567, 2) == 1.23
        assert round_to_precision(1.236, 2) == 1.24

    @pytest.mark.parametrize("value", [0.0, 1.005, 33.333333, -12.3456, 204.999, 1e-9])
    def test_round_is_idempotent(self, value):
        once = round_to_precision(value, 2)
        assert round_to_precision(once, 2) == once


class TestInputValidation:
    """Tests for validate_positioning_inputs."""

    def test_valid_inputs(self):
        assert validate_positioning_inputs(10, 10, 50, 50, 10) == {"valid": True}

    @pytest.mark.parametrize("key", ["x", "y", "width", "height"])
    def test_non_number_is_reported_by_name(self, key):
        values = {"x": 10, "y": 10, "width": 50, "height": 50}
        values[key] = "abc"
        result = validate_positioning_inputs(min_dimension=10, **values)
        assert result["valid"] is False
        assert result["input"] == key
        assert result["reason"] == f"{key} must be a valid number"

    def test_first_bad_input_wins(self):
        result = validate_positioning_inputs(None, math.nan, 50, 50, 10)
        assert result["input"] == "x"

    def test_non_positive_size_suggests_minimum(self):
        result = validate_positioning_inputs(10, 10, 0, 40, 10)
        assert result["valid"] is False
        assert result["reason"] == "Width and height must be positive"
        assert result["suggested"] == {"width": 10, "height": 40}

    def test_negative_height(self):
        result = validate_positioning_inputs(10, 10, 40, -5, 10)
        assert result["suggested"] == {"width": 40, "height": 10}


class TestPageBounds:
    """Tests for validate_against_page_bounds."""

    def test_inside_page(self):
        result = validate_against_page_bounds(20, 20, 100, 50, A4, 5, 10)
        assert result == {"valid": True, "reason": "Positioning is within page bounds"}

    def test_touching_min_margin_is_valid(self):
        """x + width == pageWidth - minMargin is still inside."""
        assert validate_against_page_bounds(5, 5, 200, 287, A4, 5, 10)["valid"]

    def test_left_edge_reported_first(self):
        """Left/top/right violations together report only the left edge."""
        result = validate_against_page_bounds(2, 2, 500, 500, A4, 5, 10)
        assert result["valid"] is False
        assert "left edge" in result["reason"]
        assert result["suggested"] == {"x": 5}
        assert result["bounds"] == {"min_x": 5}

    def test_top_edge(self):
        result = validate_against_page_bounds(20, 1, 50, 50, A4, 5, 10)
        assert "top edge" in result["reason"]
        assert result["suggested"] == {"y": 5}
        assert result["bounds"] == {"min_y": 5}

    def test_right_edge_shrinks_width(self):
        result = validate_against_page_bounds(150, 20, 100, 50, A4, 5, 10)
        assert "right edge" in result["reason"]
        assert result["suggested"] == {"width": 55}
        assert result["bounds"] == {"max_x": 205}

    def test_right_edge_too_narrow_moves_start(self):
        """A shrink below the minimum size becomes minimum size plus a move."""
        result = validate_against_page_bounds(200, 20, 50, 50, A4, 5, 10)
        assert result["suggested"] == {"width": 10, "x": 195}

    def test_bottom_edge_shrinks_height(self):
        result = validate_against_page_bounds(20, 280, 50, 30, A4, 5, 10)
        assert "bottom edge" in result["reason"]
        assert result["suggested"] == {"height": 12}
        assert result["bounds"] == {"max_y": 292}

    def test_bottom_edge_too_short_moves_start(self):
        result = validate_against_page_bounds(20, 290, 50, 30, A4, 5, 10)
        assert result["suggested"] == {"height": 10, "y": 282}


class TestValidatePositioning:
    """Tests for the combined validator."""

    def test_input_check_runs_first(self):
        result = validate_positioning("x", 2, 50, 50, A4, 5, 10)
        assert result["input"] == "x"

    def test_without_page_dimensions(self):
        result = validate_positioning(-100, -100, 5000, 5000, None, 5, 10)
        assert result["valid"] is True
        assert "warning" in result

    def test_delegates_to_bounds(self):
        assert validate_positioning(150, 20, 100, 50, A4, 5, 10)["suggested"] == {"width": 55}


class TestComputeBounds:
    """Tests for compute_bounds."""

    def test_a4(self):
        bounds = compute_bounds(A4, 20, 5)
        assert bounds["safe_area"] == {"x": 20, "y": 20, "width": 170, "height": 257}
        assert bounds["absolute_bounds"] == {"x": 5, "y": 5, "width": 200, "height": 287}
        assert bounds["center"] == {"x": 105, "y": 148.5}
        assert bounds["page_width"] == 210
        assert bounds["margin"] == 20
        assert bounds["min_margin"] == 5

    def test_tiny_page_clamps_to_zero(self):
        bounds = compute_bounds({"width": 30, "height": 30}, 20, 5)
        assert bounds["safe_area"]["width"] == 0
        assert bounds["safe_area"]["height"] == 0
