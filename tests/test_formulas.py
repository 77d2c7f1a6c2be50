"""
Tests for the formula catalog and solvers.
"""

import math

import pytest

from calculator_api.exceptions import FormulaNotFoundError, UnsolvableFormulaError
from calculator_api.services.formulas import (
    FORMULA_CATEGORIES,
    FORMULAS,
    get_formula,
    solve,
)


class TestCatalog:
    """Tests for catalog structure."""

    def test_category_order(self):
        """Categories are listed in the order shown to students."""
        assert [c.category_id for c in FORMULA_CATEGORIES] == [
            "area",
            "volume",
            "circle",
            "triangle",
            "finance",
            "trigonometry",
            "algebra",
        ]

    def test_shared_formulas_are_single_entries(self):
        """circle_area and sector_area appear in two categories but one lookup entry."""
        area = {f.formula_id for f in FORMULA_CATEGORIES[0].formulas}
        circle = {f.formula_id for f in FORMULA_CATEGORIES[2].formulas}
        assert {"circle_area", "sector_area"} <= area & circle
        assert FORMULAS["circle_area"] is get_formula("circle_area")

    def test_every_solvable_symbol_is_a_variable_or_x(self):
        """Each solver target is a declared variable (quadratic solves for x)."""
        for formula in FORMULAS.values():
            symbols = {v.symbol for v in formula.variables}
            for target in formula.solvable_for:
                assert target in symbols or (formula.formula_id == "quadratic_roots" and target == "x")

    def test_heron_only_solves_area(self):
        """Heron's formula is one-directional."""
        assert get_formula("triangle_area_heron").solvable_for == ["A"]

    def test_cosine_rule_targets(self):
        """Cosine rule solves for side a and angle A only."""
        assert get_formula("cosine_rule").solvable_for == ["a", "A"]

    def test_unknown_formula(self):
        """Unknown ids raise FormulaNotFoundError."""
        with pytest.raises(FormulaNotFoundError) as exc_info:
            get_formula("volume_of_tesseract")
        assert exc_info.value.formula_id == "volume_of_tesseract"


class TestSolve:
    """Tests for solve()."""

    def test_circle_area(self):
        assert solve("circle_area", "A", {"r": 2}) == pytest.approx(4 * math.pi)

    def test_circle_radius_from_area(self):
        assert solve("circle_area", "r", {"A": math.pi * 9}) == pytest.approx(3)

    def test_sector_angle(self):
        assert solve("sector_area", "θ", {"A": math.pi, "r": 2}) == pytest.approx(90)

    def test_trapezium_side(self):
        assert solve("trapezium_area", "a", {"A": 30, "h": 5, "b": 4}) == pytest.approx(8)

    def test_sphere_volume_radius_uses_cube_root(self):
        v = (4 / 3) * math.pi * 27
        assert solve("sphere_volume", "r", {"V": v}) == pytest.approx(3)

    def test_cone_volume(self):
        assert solve("cone_volume", "V", {"A": 9, "h": 4}) == pytest.approx(12)

    def test_arc_length(self):
        assert solve("arc_length", "S", {"θ": 180, "r": 1}) == pytest.approx(math.pi)

    def test_triangle_area_sin_in_degrees(self):
        assert solve("triangle_area_sin", "A", {"a": 4, "b": 5, "C": 30}) == pytest.approx(5)

    def test_triangle_included_angle(self):
        assert solve("triangle_area_sin", "C", {"A": 5, "a": 4, "b": 5}) == pytest.approx(30)

    def test_heron(self):
        assert solve("triangle_area_heron", "A", {"a": 3, "b": 4, "c": 5}) == pytest.approx(6)

    def test_simple_interest(self):
        assert solve("simple_interest", "SI", {"P": 1000, "R": 5, "T": 3}) == pytest.approx(150)

    def test_compound_interest_years(self):
        assert solve("compound_interest", "n", {"A": 1210, "P": 1000, "r": 10}) == pytest.approx(2)

    def test_depreciation_rate(self):
        assert solve("depreciation", "r", {"A": 810, "P": 1000, "n": 2}) == pytest.approx(10)

    def test_pythagoras(self):
        assert solve("pythagoras", "a", {"b": 3, "c": 4}) == pytest.approx(5)
        assert solve("pythagoras", "b", {"a": 5, "c": 4}) == pytest.approx(3)

    def test_sine_angle(self):
        assert solve("sine", "θ", {"opposite": 1, "hypotenuse": 2}) == pytest.approx(30)

    def test_tangent_side(self):
        assert solve("tangent", "opposite", {"θ": 45, "adjacent": 7}) == pytest.approx(7)

    def test_sine_rule(self):
        assert solve("sine_rule", "a", {"b": 10, "A": 30, "B": 90}) == pytest.approx(5)

    def test_cosine_rule_angle(self):
        assert solve("cosine_rule", "A", {"a": 5, "b": 3, "c": 4}) == pytest.approx(90)

    def test_quadratic_roots(self):
        """x² - 5x + 6 = 0 has roots 3 and 2, larger root first."""
        assert solve("quadratic_roots", "x", {"a": 1, "b": -5, "c": 6}) == pytest.approx((3, 2))

    def test_quadratic_repeated_root(self):
        assert solve("quadratic_roots", "x", {"a": 1, "b": 2, "c": 1}) == pytest.approx((-1, -1))


class TestUnsolvable:
    """Tests for inputs with no real answer."""

    def test_negative_discriminant(self):
        with pytest.raises(UnsolvableFormulaError) as exc_info:
            solve("quadratic_roots", "x", {"a": 1, "b": 0, "c": 1})
        assert "discriminant" in exc_info.value.reason

    def test_zero_leading_coefficient(self):
        with pytest.raises(UnsolvableFormulaError):
            solve("quadratic_roots", "x", {"a": 0, "b": 2, "c": 1})

    def test_unknown_target(self):
        with pytest.raises(UnsolvableFormulaError) as exc_info:
            solve("triangle_area_heron", "a", {"A": 6, "b": 4, "c": 5})
        assert "cannot solve" in exc_info.value.reason

    def test_missing_value(self):
        with pytest.raises(UnsolvableFormulaError) as exc_info:
            solve("prism_volume", "V", {"A": 3})
        assert "'h'" in exc_info.value.reason

    def test_division_by_zero(self):
        with pytest.raises(UnsolvableFormulaError):
            solve("prism_volume", "h", {"V": 10, "A": 0})

    def test_asin_out_of_domain(self):
        with pytest.raises(UnsolvableFormulaError):
            solve("sine", "θ", {"opposite": 3, "hypotenuse": 2})

    def test_impossible_triangle_side(self):
        """A leg longer than the hypotenuse has no real answer."""
        with pytest.raises(UnsolvableFormulaError):
            solve("pythagoras", "b", {"a": 3, "c": 4})

    def test_fractional_power_of_negative_ratio(self):
        """Negative A/P under a fractional root yields no real rate."""
        with pytest.raises(UnsolvableFormulaError):
            solve("compound_interest", "r", {"A": -100, "P": 1000, "n": 2})

    def test_unknown_formula(self):
        with pytest.raises(FormulaNotFoundError):
            solve("nope", "x", {})
