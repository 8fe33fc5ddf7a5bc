"""Tests for the B-spline basis engine.

Covers knot span search, non-vanishing basis functions and their derivatives.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.testing as nptest
import pytest
from scipy.interpolate import BSpline

from openspline.basis import (
    basis_function_derivatives,
    basis_functions,
    find_span,
    tabulate_basis_functions,
)
from openspline.errors import DomainError
from openspline.tolerance import get_conservative_tolerance, get_default_tolerance

KNOTS_QUADRATIC = [0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0]
KNOTS_DOUBLE_INTERIOR = [0.0, 0.0, 0.0, 0.5, 0.5, 1.0, 1.0, 1.0]
KNOTS_CUBIC_NONUNIFORM = [0.0, 0.0, 0.0, 0.0, 0.2, 0.3, 0.7, 1.0, 1.0, 1.0, 1.0]
KNOTS_UNCLAMPED = [-1.0, -0.5, 0.0, 0.5, 1.0, 1.5, 2.0]


def _scipy_basis(knots: list[float], degree: int, u: float, nu: int = 0) -> np.ndarray:
    """Evaluate every basis function (or its derivative) with SciPy."""
    t = np.asarray(knots, dtype=np.float64)
    num_basis = t.size - degree - 1
    values = np.empty(num_basis)
    for i in range(num_basis):
        coeffs = np.zeros(num_basis)
        coeffs[i] = 1.0
        values[i] = BSpline(t, coeffs, degree, extrapolate=False)(u, nu=nu)
    return values


class TestFindSpan:
    """Test suite for find_span."""

    @pytest.mark.parametrize(
        ("u", "expected"),
        [
            (0.0, 2),
            (0.25, 2),
            (0.5, 3),
            (0.75, 3),
            (1.0, 3),
        ],
    )
    def test_quadratic(self, u: float, expected: int) -> None:
        """Spans at interior points, interior knots and the domain ends."""
        assert find_span(KNOTS_QUADRATIC, 2, u) == expected

    def test_scalar_returns_int(self) -> None:
        """A scalar parameter gives a Python int."""
        span = find_span(KNOTS_QUADRATIC, 2, 0.3)
        assert isinstance(span, int)

    def test_array_shape(self) -> None:
        """Array parameters keep their shape."""
        u = np.array([[0.0, 0.5], [0.75, 1.0]])
        spans = find_span(KNOTS_QUADRATIC, 2, u)
        assert spans.shape == (2, 2)
        nptest.assert_array_equal(spans, [[2, 3], [3, 3]])

    def test_double_interior_knot(self) -> None:
        """At a repeated interior knot the span to its right is chosen."""
        assert find_span(KNOTS_DOUBLE_INTERIOR, 2, 0.5) == 4  # noqa: PLR2004
        assert find_span(KNOTS_DOUBLE_INTERIOR, 2, 0.4999) == 2  # noqa: PLR2004

    def test_domain_end_returns_last_nonempty_span(self) -> None:
        """The end of the domain falls in the last span of non-zero length."""
        knots = KNOTS_CUBIC_NONUNIFORM
        span = find_span(knots, 3, 1.0)
        assert span == len(knots) - 3 - 2
        assert knots[span] < knots[span + 1]

    def test_unclamped(self) -> None:
        """Spans on an unclamped knot vector only cover the domain."""
        nptest.assert_array_equal(find_span(KNOTS_UNCLAMPED, 2, [0.0, 0.5, 1.0]), [2, 3, 3])

    def test_degree_zero(self) -> None:
        """Degree zero spans are the knot intervals."""
        knots = [0.0, 1.0, 2.0, 3.0]
        nptest.assert_array_equal(find_span(knots, 0, [0.0, 1.0, 2.5, 3.0]), [0, 1, 2, 2])

    @pytest.mark.parametrize(
        ("knots", "degree"),
        [
            (KNOTS_QUADRATIC, 2),
            (KNOTS_DOUBLE_INTERIOR, 2),
            (KNOTS_CUBIC_NONUNIFORM, 3),
            (KNOTS_UNCLAMPED, 2),
        ],
    )
    def test_monotonic_and_in_range(self, knots: list[float], degree: int) -> None:
        """Spans never decrease with u and stay within [degree, len-degree-2]."""
        start, end = knots[degree], knots[len(knots) - degree - 1]
        u = np.linspace(start, end, 201)
        spans = find_span(knots, degree, u)
        assert np.all(np.diff(spans) >= 0)
        assert spans.min() >= degree
        assert spans.max() <= len(knots) - degree - 2
        knots_arr = np.asarray(knots)
        assert np.all(knots_arr[spans] <= u)
        assert np.all(u <= knots_arr[spans + 1])

    def test_tolerance_clipping(self) -> None:
        """Parameters slightly outside the domain are clipped."""
        eps = 1e-16
        assert find_span(KNOTS_QUADRATIC, 2, -eps) == 2  # noqa: PLR2004
        assert find_span(KNOTS_QUADRATIC, 2, 1.0 + eps) == 3  # noqa: PLR2004

    @pytest.mark.parametrize("u", [-0.1, 1.1, np.nan, np.inf])
    def test_out_of_domain_raises(self, u: float) -> None:
        """Parameters outside the domain raise DomainError."""
        with pytest.raises(DomainError):
            find_span(KNOTS_QUADRATIC, 2, u)

    def test_domain_error_is_value_error(self) -> None:
        """DomainError can be caught as a ValueError."""
        with pytest.raises(ValueError, match="outside the domain"):
            find_span(KNOTS_QUADRATIC, 2, 2.0)


class TestBasisFunctions:
    """Test suite for basis_functions."""

    def test_quadratic_bezier(self) -> None:
        """Bernstein polynomials of degree 2 at u=0.5."""
        nptest.assert_allclose(basis_functions([0, 0, 0, 1, 1, 1], 2, 0.5), [0.25, 0.5, 0.25])

    def test_integer_knots_promoted(self) -> None:
        """Integer knots are evaluated in double precision."""
        values = basis_functions([0, 0, 1, 1], 1, 0.25)
        assert values.dtype == np.float64

    def test_dtype_preserved(self, float_dtype: type[np.floating[Any]]) -> None:
        """The knots dtype is the evaluation dtype."""
        knots = np.array(KNOTS_QUADRATIC, dtype=float_dtype)
        values = basis_functions(knots, 2, np.linspace(0.0, 1.0, 5))
        assert values.dtype == float_dtype
        assert values.shape == (5, 3)

    @pytest.mark.parametrize(
        ("knots", "degree"),
        [
            (KNOTS_QUADRATIC, 2),
            (KNOTS_DOUBLE_INTERIOR, 2),
            (KNOTS_CUBIC_NONUNIFORM, 3),
            (KNOTS_UNCLAMPED, 2),
        ],
    )
    def test_partition_of_unity(
        self, knots: list[float], degree: int, float_dtype: type[np.floating[Any]]
    ) -> None:
        """Basis values are non-negative and sum to one."""
        knots_arr = np.array(knots, dtype=float_dtype)
        start, end = knots_arr[degree], knots_arr[knots_arr.size - degree - 1]
        u = np.linspace(start, end, 101, dtype=float_dtype)
        values = basis_functions(knots_arr, degree, u)
        tol = get_conservative_tolerance(float_dtype)
        assert np.all(values >= -tol)
        nptest.assert_allclose(values.sum(axis=-1), 1.0, atol=tol)

    @pytest.mark.parametrize("u", [0.0, 0.1, 0.25, 0.5, 0.65, 0.99, 1.0])
    def test_against_scipy(self, u: float) -> None:
        """Non-vanishing values agree with SciPy's B-spline evaluation."""
        knots = KNOTS_CUBIC_NONUNIFORM
        degree = 3
        values, span = tabulate_basis_functions(knots, degree, u)
        expected = _scipy_basis(knots, degree, u)
        nptest.assert_allclose(values, expected[span - degree : span + 1], atol=1e-14)

    def test_double_interior_knot(self) -> None:
        """At a double knot the quadratic basis interpolates the middle control point."""
        values, span = tabulate_basis_functions(KNOTS_DOUBLE_INTERIOR, 2, 0.5)
        assert span == 4  # noqa: PLR2004
        nptest.assert_allclose(values, [1.0, 0.0, 0.0], atol=1e-15)

    def test_given_span(self) -> None:
        """A correct span gives the same values as the computed one."""
        expected = basis_functions(KNOTS_QUADRATIC, 2, 0.25)
        nptest.assert_allclose(basis_functions(KNOTS_QUADRATIC, 2, 0.25, span=2), expected)

    def test_given_span_not_containing_u(self) -> None:
        """A span that does not contain u is rejected."""
        with pytest.raises(ValueError, match="does not contain"):
            basis_functions(KNOTS_QUADRATIC, 2, 0.25, span=3)

    def test_given_empty_span(self) -> None:
        """A zero-length span at a repeated knot is rejected."""
        with pytest.raises(ValueError, match="non-zero length"):
            basis_functions(KNOTS_DOUBLE_INTERIOR, 2, 0.5, span=3)
        with pytest.raises(ValueError, match="non-zero length"):
            basis_function_derivatives(KNOTS_DOUBLE_INTERIOR, 2, 0.5, 1, span=3)
        values = basis_functions(KNOTS_DOUBLE_INTERIOR, 2, 0.5, span=4)
        assert np.sum(values) == pytest.approx(1.0)

    @pytest.mark.parametrize(("dtype", "scale"), [(np.float32, 1e-7), (np.float64, 1e-16)])
    def test_domain_shorter_than_tolerance(self, dtype: Any, scale: float) -> None:
        """Spans shorter than the strict tolerance still give a partition of unity."""
        knots = np.array(KNOTS_QUADRATIC, dtype=dtype) * dtype(scale)
        u = dtype(0.25) * dtype(scale)
        values = basis_functions(knots, 2, u)
        nptest.assert_allclose(values, [0.25, 0.625, 0.125], rtol=1e-5)
        assert np.sum(values) == pytest.approx(1.0, rel=1e-5)
        ders = basis_function_derivatives(knots, 2, u, 1)
        assert np.sum(ders[0]) == pytest.approx(1.0, rel=1e-5)
        assert abs(np.sum(ders[1])) < 1e-4 / scale

    def test_given_span_out_of_range(self) -> None:
        """Spans outside [degree, len-degree-2] are rejected."""
        with pytest.raises(ValueError, match="span must be in the range"):
            basis_functions(KNOTS_QUADRATIC, 2, 0.0, span=1)

    def test_out_array(self) -> None:
        """Results are written into a provided output array."""
        out = np.empty((4, 3), dtype=np.float64)
        result = basis_functions(KNOTS_QUADRATIC, 2, [0.0, 0.3, 0.6, 1.0], out=out)
        assert result is out
        nptest.assert_allclose(out.sum(axis=-1), 1.0)

    def test_out_array_wrong_shape(self) -> None:
        """An output array with the wrong shape is rejected."""
        out = np.empty((2, 3), dtype=np.float64)
        with pytest.raises(ValueError, match="shape"):
            basis_functions(KNOTS_QUADRATIC, 2, [0.0, 0.3, 0.6], out=out)

    def test_out_array_wrong_dtype(self) -> None:
        """An output array with the wrong dtype is rejected."""
        out = np.empty(3, dtype=np.float32)
        with pytest.raises(ValueError, match="dtype"):
            basis_functions(KNOTS_QUADRATIC, 2, 0.3, out=out)

    @pytest.mark.parametrize(
        ("knots", "degree", "error", "match"),
        [
            ([[0.0, 1.0]], 0, TypeError, "1D"),
            ([0.0, 0.0, 1.0, 1.0], -1, ValueError, "non-negative"),
            ([0.0, 0.0, 1.0], 1, ValueError, "at least"),
            ([0.0, 0.0, 1.0, 0.5, 1.0, 1.0], 1, ValueError, "non-decreasing"),
            ([0.0, 0.0, 0.0, 0.0], 1, ValueError, "non-zero length"),
            (np.array([0, 0, 1, 1], dtype=np.float16), 1, ValueError, "Unsupported dtype"),
        ],
    )
    def test_invalid_knots(
        self, knots: Any, degree: int, error: type[Exception], match: str
    ) -> None:
        """Invalid knot vectors and degrees are rejected."""
        with pytest.raises(error, match=match):
            basis_functions(knots, degree, 0.0)


class TestBasisFunctionDerivatives:
    """Test suite for basis_function_derivatives."""

    def test_quadratic_bezier(self) -> None:
        """Derivatives of the degree 2 Bernstein polynomials at u=0.5."""
        ders = basis_function_derivatives([0, 0, 0, 1, 1, 1], 2, 0.5, 3)
        expected = [[0.25, 0.5, 0.25], [-1.0, 0.0, 1.0], [2.0, -4.0, 2.0], [0.0, 0.0, 0.0]]
        nptest.assert_allclose(ders, expected, atol=1e-14)

    def test_order_zero_matches_values(self, float_dtype: type[np.floating[Any]]) -> None:
        """Row zero equals the basis values."""
        knots = np.array(KNOTS_CUBIC_NONUNIFORM, dtype=float_dtype)
        u = np.linspace(0.0, 1.0, 17, dtype=float_dtype)
        ders = basis_function_derivatives(knots, 3, u, 2)
        assert ders.shape == (17, 3, 4)
        assert ders.dtype == float_dtype
        nptest.assert_allclose(
            ders[:, 0, :], basis_functions(knots, 3, u), atol=get_default_tolerance(float_dtype)
        )

    @pytest.mark.parametrize("u", [0.0, 0.15, 0.3, 0.5, 0.8, 1.0])
    @pytest.mark.parametrize("order", [1, 2, 3])
    def test_against_scipy(self, u: float, order: int) -> None:
        """Derivatives agree with SciPy's B-spline derivatives."""
        knots = KNOTS_CUBIC_NONUNIFORM
        degree = 3
        span = find_span(knots, degree, u)
        ders = basis_function_derivatives(knots, degree, u, order)
        expected = _scipy_basis(knots, degree, u, nu=order)
        nptest.assert_allclose(ders[order], expected[span - degree : span + 1], atol=1e-10)

    def test_derivatives_sum_to_zero(self) -> None:
        """Derivatives of a partition of unity sum to zero."""
        ders = basis_function_derivatives(KNOTS_CUBIC_NONUNIFORM, 3, np.linspace(0, 1, 23), 3)
        nptest.assert_allclose(ders[:, 1:, :].sum(axis=-1), 0.0, atol=1e-10)

    @pytest.mark.parametrize("degree", [0, 1, 2, 3])
    def test_orders_above_degree_are_zero(self, degree: int) -> None:
        """Rows for orders above the degree are zero."""
        knots = np.concatenate([np.zeros(degree + 1), [0.4], np.ones(degree + 1)])
        ders = basis_function_derivatives(knots, degree, [0.1, 0.4, 0.9], degree + 3)
        assert ders.shape == (3, degree + 4, degree + 1)
        nptest.assert_array_equal(ders[:, degree + 1 :, :], 0.0)

    def test_double_interior_knot(self) -> None:
        """First derivatives at a double knot use the span to the right."""
        ders = basis_function_derivatives(KNOTS_DOUBLE_INTERIOR, 2, 0.5, 1)
        expected = _scipy_basis(KNOTS_DOUBLE_INTERIOR, 2, 0.5, nu=1)
        nptest.assert_allclose(ders[1], expected[2:5], atol=1e-12)

    def test_negative_order_raises(self) -> None:
        """A negative order is rejected."""
        with pytest.raises(ValueError, match="max_order must be non-negative"):
            basis_function_derivatives(KNOTS_QUADRATIC, 2, 0.5, -1)

    def test_out_of_domain_raises(self) -> None:
        """Parameters outside the domain raise DomainError."""
        with pytest.raises(DomainError):
            basis_function_derivatives(KNOTS_QUADRATIC, 2, [0.5, 1.5], 1)
