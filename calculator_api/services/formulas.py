"""
CSEC formula catalog and solvers.

Each formula maps a target symbol to a closed-form solver over the
remaining variables. Angles are in degrees.
"""

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from calculator_api.exceptions import FormulaNotFoundError, UnsolvableFormulaError

Values = Mapping[str, float]
Solver = Callable[[Values], "float | tuple[float, float]"]


@dataclass(frozen=True)
class Variable:
    """Formula variable description."""

    symbol: str
    name: str
    unit: str | None = None


@dataclass(frozen=True)
class Formula:
    """Formula with a solver per solvable symbol."""

    formula_id: str
    name: str
    equation: str
    variables: tuple[Variable, ...]
    solvers: Mapping[str, Solver] = field(repr=False)

    @property
    def solvable_for(self) -> list[str]:
        """Symbols this formula can be solved for."""
        return list(self.solvers)


@dataclass(frozen=True)
class FormulaCategory:
    """Group of related formulas."""

    category_id: str
    name: str
    formulas: tuple[Formula, ...]


def _sin(degrees: float) -> float:
    return math.sin(math.radians(degrees))


def _cos(degrees: float) -> float:
    return math.cos(math.radians(degrees))


def _tan(degrees: float) -> float:
    return math.tan(math.radians(degrees))


def _quadratic_roots(v: Values) -> tuple[float, float]:
    discriminant = v["b"] ** 2 - 4 * v["a"] * v["c"]
    if discriminant < 0:
        raise ValueError("no real roots (discriminant < 0)")
    root = math.sqrt(discriminant)
    return (-v["b"] + root) / (2 * v["a"]), (-v["b"] - root) / (2 * v["a"])


def _heron_area(v: Values) -> float:
    s = (v["a"] + v["b"] + v["c"]) / 2
    return math.sqrt(s * (s - v["a"]) * (s - v["b"]) * (s - v["c"]))


CIRCLE_AREA = Formula(
    formula_id="circle_area",
    name="Area of a circle",
    equation="A = πr²",
    variables=(Variable("A", "Area"), Variable("r", "Radius")),
    solvers={
        "A": lambda v: math.pi * v["r"] ** 2,
        "r": lambda v: math.sqrt(v["A"] / math.pi),
    },
)

SECTOR_AREA = Formula(
    formula_id="sector_area",
    name="Area of a sector",
    equation="A = (θ/360) × πr²",
    variables=(Variable("A", "Area"), Variable("θ", "Angle (degrees)"), Variable("r", "Radius")),
    solvers={
        "A": lambda v: (v["θ"] / 360) * math.pi * v["r"] ** 2,
        "θ": lambda v: (360 * v["A"]) / (math.pi * v["r"] ** 2),
        "r": lambda v: math.sqrt((360 * v["A"]) / (v["θ"] * math.pi)),
    },
)

AREA_FORMULAS = (
    CIRCLE_AREA,
    SECTOR_AREA,
    Formula(
        formula_id="trapezium_area",
        name="Area of a trapezium",
        equation="A = (1/2)(a + b)h",
        variables=(
            Variable("A", "Area"),
            Variable("a", "Length of first parallel side"),
            Variable("b", "Length of second parallel side"),
            Variable("h", "Perpendicular distance"),
        ),
        solvers={
            "A": lambda v: 0.5 * (v["a"] + v["b"]) * v["h"],
            "h": lambda v: (2 * v["A"]) / (v["a"] + v["b"]),
            "a": lambda v: (2 * v["A"] / v["h"]) - v["b"],
            "b": lambda v: (2 * v["A"] / v["h"]) - v["a"],
        },
    ),
    Formula(
        formula_id="cone_surface",
        name="Curved surface area of a cone",
        equation="CSA = πrl",
        variables=(
            Variable("CSA", "Curved surface area"),
            Variable("r", "Radius of the base"),
            Variable("l", "Slant height"),
        ),
        solvers={
            "CSA": lambda v: math.pi * v["r"] * v["l"],
            "r": lambda v: v["CSA"] / (math.pi * v["l"]),
            "l": lambda v: v["CSA"] / (math.pi * v["r"]),
        },
    ),
    Formula(
        formula_id="sphere_surface",
        name="Surface area of a sphere",
        equation="SA = 4πr²",
        variables=(Variable("SA", "Surface area"), Variable("r", "Radius")),
        solvers={
            "SA": lambda v: 4 * math.pi * v["r"] ** 2,
            "r": lambda v: math.sqrt(v["SA"] / (4 * math.pi)),
        },
    ),
)

VOLUME_FORMULAS = (
    Formula(
        formula_id="prism_volume",
        name="Volume of a prism",
        equation="V = Ah",
        variables=(
            Variable("V", "Volume"),
            Variable("A", "Area of cross-section"),
            Variable("h", "Perpendicular height"),
        ),
        solvers={
            "V": lambda v: v["A"] * v["h"],
            "A": lambda v: v["V"] / v["h"],
            "h": lambda v: v["V"] / v["A"],
        },
    ),
    Formula(
        formula_id="cylinder_volume",
        name="Volume of a cylinder",
        equation="V = πr²h",
        variables=(
            Variable("V", "Volume"),
            Variable("r", "Radius of the base"),
            Variable("h", "Perpendicular height"),
        ),
        solvers={
            "V": lambda v: math.pi * v["r"] ** 2 * v["h"],
            "r": lambda v: math.sqrt(v["V"] / (math.pi * v["h"])),
            "h": lambda v: v["V"] / (math.pi * v["r"] ** 2),
        },
    ),
    Formula(
        formula_id="cone_volume",
        name="Volume of a cone/pyramid",
        equation="V = (1/3)Ah",
        variables=(
            Variable("V", "Volume"),
            Variable("A", "Area of the base"),
            Variable("h", "Perpendicular height"),
        ),
        solvers={
            "V": lambda v: v["A"] * v["h"] / 3,
            "A": lambda v: (3 * v["V"]) / v["h"],
            "h": lambda v: (3 * v["V"]) / v["A"],
        },
    ),
    Formula(
        formula_id="sphere_volume",
        name="Volume of a sphere",
        equation="V = (4/3)πr³",
        variables=(Variable("V", "Volume"), Variable("r", "Radius")),
        solvers={
            "V": lambda v: (4 / 3) * math.pi * v["r"] ** 3,
            "r": lambda v: math.cbrt((3 * v["V"]) / (4 * math.pi)),
        },
    ),
)

CIRCLE_FORMULAS = (
    Formula(
        formula_id="circle_circumference",
        name="Circumference of a circle",
        equation="C = 2πr",
        variables=(Variable("C", "Circumference"), Variable("r", "Radius")),
        solvers={
            "C": lambda v: 2 * math.pi * v["r"],
            "r": lambda v: v["C"] / (2 * math.pi),
        },
    ),
    CIRCLE_AREA,
    Formula(
        formula_id="arc_length",
        name="Arc length",
        equation="S = (θ/360) × 2πr",
        variables=(
            Variable("S", "Arc length"),
            Variable("θ", "Angle subtended by the arc (degrees)"),
            Variable("r", "Radius"),
        ),
        solvers={
            "S": lambda v: (v["θ"] / 360) * 2 * math.pi * v["r"],
            "θ": lambda v: (360 * v["S"]) / (2 * math.pi * v["r"]),
            "r": lambda v: (360 * v["S"]) / (v["θ"] * 2 * math.pi),
        },
    ),
    SECTOR_AREA,
)

TRIANGLE_FORMULAS = (
    Formula(
        formula_id="triangle_area_base",
        name="Area of a triangle (base × height)",
        equation="A = (1/2)bh",
        variables=(
            Variable("A", "Area"),
            Variable("b", "Base length"),
            Variable("h", "Perpendicular height"),
        ),
        solvers={
            "A": lambda v: 0.5 * v["b"] * v["h"],
            "b": lambda v: (2 * v["A"]) / v["h"],
            "h": lambda v: (2 * v["A"]) / v["b"],
        },
    ),
    Formula(
        formula_id="triangle_area_sin",
        name="Area of a triangle (two sides and included angle)",
        equation="A = (1/2)ab sin C",
        variables=(
            Variable("A", "Area"),
            Variable("a", "Length of first adjacent side"),
            Variable("b", "Length of second adjacent side"),
            Variable("C", "Included angle (degrees)"),
        ),
        solvers={
            "A": lambda v: 0.5 * v["a"] * v["b"] * _sin(v["C"]),
            "a": lambda v: (2 * v["A"]) / (v["b"] * _sin(v["C"])),
            "b": lambda v: (2 * v["A"]) / (v["a"] * _sin(v["C"])),
            "C": lambda v: math.degrees(math.asin((2 * v["A"]) / (v["a"] * v["b"]))),
        },
    ),
    Formula(
        formula_id="triangle_area_heron",
        name="Area of a triangle (Heron's formula)",
        equation="A = √[s(s-a)(s-b)(s-c)] where s = (a+b+c)/2",
        variables=(
            Variable("A", "Area"),
            Variable("a", "Length of first side"),
            Variable("b", "Length of second side"),
            Variable("c", "Length of third side"),
        ),
        solvers={"A": _heron_area},
    ),
)

FINANCE_FORMULAS = (
    Formula(
        formula_id="simple_interest",
        name="Simple interest",
        equation="SI = (P × R × T) / 100",
        variables=(
            Variable("SI", "Simple Interest"),
            Variable("P", "Principal (initial amount)"),
            Variable("R", "Annual rate of interest (%)"),
            Variable("T", "Time (years)"),
        ),
        solvers={
            "SI": lambda v: (v["P"] * v["R"] * v["T"]) / 100,
            "P": lambda v: (v["SI"] * 100) / (v["R"] * v["T"]),
            "R": lambda v: (v["SI"] * 100) / (v["P"] * v["T"]),
            "T": lambda v: (v["SI"] * 100) / (v["P"] * v["R"]),
        },
    ),
    Formula(
        formula_id="compound_interest",
        name="Compound interest",
        equation="A = P(1 + r/100)ⁿ",
        variables=(
            Variable("A", "Total amount after n years"),
            Variable("P", "Principal (initial amount)"),
            Variable("r", "Annual rate of interest (%)"),
            Variable("n", "Number of years"),
        ),
        solvers={
            "A": lambda v: v["P"] * (1 + v["r"] / 100) ** v["n"],
            "P": lambda v: v["A"] / (1 + v["r"] / 100) ** v["n"],
            "r": lambda v: 100 * ((v["A"] / v["P"]) ** (1 / v["n"]) - 1),
            "n": lambda v: math.log(v["A"] / v["P"]) / math.log(1 + v["r"] / 100),
        },
    ),
    Formula(
        formula_id="depreciation",
        name="Depreciation",
        equation="A = P(1 - r/100)ⁿ",
        variables=(
            Variable("A", "Value after depreciation"),
            Variable("P", "Initial value"),
            Variable("r", "Annual rate of depreciation (%)"),
            Variable("n", "Number of years"),
        ),
        solvers={
            "A": lambda v: v["P"] * (1 - v["r"] / 100) ** v["n"],
            "P": lambda v: v["A"] / (1 - v["r"] / 100) ** v["n"],
            "r": lambda v: 100 * (1 - (v["A"] / v["P"]) ** (1 / v["n"])),
            "n": lambda v: math.log(v["A"] / v["P"]) / math.log(1 - v["r"] / 100),
        },
    ),
)

TRIGONOMETRY_FORMULAS = (
    Formula(
        formula_id="pythagoras",
        name="Pythagorean theorem",
        equation="a² = b² + c²",
        variables=(
            Variable("a", "Length of hypotenuse"),
            Variable("b", "Length of opposite side"),
            Variable("c", "Length of adjacent side"),
        ),
        solvers={
            "a": lambda v: math.sqrt(v["b"] ** 2 + v["c"] ** 2),
            "b": lambda v: math.sqrt(v["a"] ** 2 - v["c"] ** 2),
            "c": lambda v: math.sqrt(v["a"] ** 2 - v["b"] ** 2),
        },
    ),
    Formula(
        formula_id="sine",
        name="Sine ratio",
        equation="sin θ = opposite / hypotenuse",
        variables=(
            Variable("θ", "Angle (degrees)"),
            Variable("opposite", "Opposite side"),
            Variable("hypotenuse", "Hypotenuse"),
        ),
        solvers={
            "θ": lambda v: math.degrees(math.asin(v["opposite"] / v["hypotenuse"])),
            "opposite": lambda v: v["hypotenuse"] * _sin(v["θ"]),
            "hypotenuse": lambda v: v["opposite"] / _sin(v["θ"]),
        },
    ),
    Formula(
        formula_id="cosine",
        name="Cosine ratio",
        equation="cos θ = adjacent / hypotenuse",
        variables=(
            Variable("θ", "Angle (degrees)"),
            Variable("adjacent", "Adjacent side"),
            Variable("hypotenuse", "Hypotenuse"),
        ),
        solvers={
            "θ": lambda v: math.degrees(math.acos(v["adjacent"] / v["hypotenuse"])),
            "adjacent": lambda v: v["hypotenuse"] * _cos(v["θ"]),
            "hypotenuse": lambda v: v["adjacent"] / _cos(v["θ"]),
        },
    ),
    Formula(
        formula_id="tangent",
        name="Tangent ratio",
        equation="tan θ = opposite / adjacent",
        variables=(
            Variable("θ", "Angle (degrees)"),
            Variable("opposite", "Opposite side"),
            Variable("adjacent", "Adjacent side"),
        ),
        solvers={
            "θ": lambda v: math.degrees(math.atan(v["opposite"] / v["adjacent"])),
            "opposite": lambda v: v["adjacent"] * _tan(v["θ"]),
            "adjacent": lambda v: v["opposite"] / _tan(v["θ"]),
        },
    ),
    Formula(
        formula_id="sine_rule",
        name="Sine rule",
        equation="a/sin A = b/sin B = c/sin C",
        variables=(
            Variable("a", "Side a"),
            Variable("A", "Angle A (degrees) opposite side a"),
            Variable("b", "Side b"),
            Variable("B", "Angle B (degrees) opposite side b"),
        ),
        solvers={
            "a": lambda v: v["b"] * _sin(v["A"]) / _sin(v["B"]),
            "b": lambda v: v["a"] * _sin(v["B"]) / _sin(v["A"]),
            "A": lambda v: math.degrees(math.asin(v["a"] * _sin(v["B"]) / v["b"])),
            "B": lambda v: math.degrees(math.asin(v["b"] * _sin(v["A"]) / v["a"])),
        },
    ),
    Formula(
        formula_id="cosine_rule",
        name="Cosine rule",
        equation="a² = b² + c² - 2bc cos A",
        variables=(
            Variable("a", "Side a"),
            Variable("b", "Side b"),
            Variable("c", "Side c"),
            Variable("A", "Angle A (degrees) opposite side a"),
        ),
        solvers={
            "a": lambda v: math.sqrt(
                v["b"] ** 2 + v["c"] ** 2 - 2 * v["b"] * v["c"] * _cos(v["A"])
            ),
            "A": lambda v: math.degrees(
                math.acos((v["b"] ** 2 + v["c"] ** 2 - v["a"] ** 2) / (2 * v["b"] * v["c"]))
            ),
        },
    ),
)

ALGEBRA_FORMULAS = (
    Formula(
        formula_id="quadratic_roots",
        name="Roots of quadratic equation",
        equation="ax² + bx + c = 0",
        variables=(
            Variable("a", "Coefficient of x²"),
            Variable("b", "Coefficient of x"),
            Variable("c", "Constant term"),
        ),
        solvers={"x": _quadratic_roots},
    ),
)

FORMULA_CATEGORIES: tuple[FormulaCategory, ...] = (
    FormulaCategory("area", "Area Formulas", AREA_FORMULAS),
    FormulaCategory("volume", "Volume Formulas", VOLUME_FORMULAS),
    FormulaCategory("circle", "Circle Formulas", CIRCLE_FORMULAS),
    FormulaCategory("triangle", "Triangle Formulas", TRIANGLE_FORMULAS),
    FormulaCategory("finance", "Finance Formulas", FINANCE_FORMULAS),
    FormulaCategory("trigonometry", "Trigonometry", TRIGONOMETRY_FORMULAS),
    FormulaCategory("algebra", "Algebra", ALGEBRA_FORMULAS),
)

# Formulas listed in more than one category share one entry
FORMULAS: dict[str, Formula] = {
    formula.formula_id: formula
    for category in FORMULA_CATEGORIES
    for formula in category.formulas
}


def get_formula(formula_id: str) -> Formula:
    """
    Get formula by ID.

    Raises:
        FormulaNotFoundError: If formula ID not found
    """
    formula = FORMULAS.get(formula_id)
    if formula is None:
        raise FormulaNotFoundError(formula_id)
    return formula


def solve(formula_id: str, solve_for: str, values: Values) -> float | tuple[float, float]:
    """
    Solve a formula for one symbol.

    Returns a float, or (root1, root2) for the quadratic.

    Raises:
        FormulaNotFoundError: Unknown formula
        UnsolvableFormulaError: Unknown target, missing input, or no real answer
    """
    formula = get_formula(formula_id)

    solver = formula.solvers.get(solve_for)
    if solver is None:
        raise UnsolvableFormulaError(formula_id, f"cannot solve for {solve_for!r}")

    try:
        result = solver(values)
    except KeyError as exc:
        raise UnsolvableFormulaError(formula_id, f"missing value for {exc.args[0]!r}") from exc
    except ZeroDivisionError as exc:
        raise UnsolvableFormulaError(formula_id, "division by zero") from exc
    except (ValueError, OverflowError) as exc:
        raise UnsolvableFormulaError(formula_id, str(exc)) from exc

    numbers = result if isinstance(result, tuple) else (result,)
    # complex results come from fractional powers of negative bases
    if any(isinstance(n, complex) or not math.isfinite(n) for n in numbers):
        raise UnsolvableFormulaError(formula_id, "no real solution")

    return result
