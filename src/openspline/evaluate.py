"""NURBS curve evaluation: points, rational points and derivatives.

The functions in this module are stateless. They take the curve description
(knots, degree, control points and, for rational curves, weights) explicitly,
validate it, and evaluate at one or several parameter values.

The evaluation dtype is the one of the control points (float32 or float64;
integer control points are promoted to float64). Knots, weights and
parameters are converted to it.
"""

from __future__ import annotations

import functools
from typing import cast

import numpy as np
from numpy import typing as npt
from scipy.special import comb

from ._curve_impl import (
    _curve_derivatives_impl,
    _curve_points_impl,
    _rational_curve_derivatives_impl,
    _rational_curve_points_impl,
)
from ._input_utils import (
    _check_knot_vector,
    _check_relation,
    _clip_to_domain,
    _normalize_control_points,
    _normalize_knots,
    _normalize_parameters,
    _normalize_weights,
    _resolve_dtype,
    _validate_out_array,
)
from .errors import DegenerateWeightError
from .tolerance import get_strict_tolerance

_FloatArray = npt.NDArray[np.float32 | np.float64]


@functools.cache
def _binomial_table(n: int, dtype_name: str) -> _FloatArray:
    """Table of binomial coefficients ``binom[k, i]`` for ``0 <= i, k <= n``.

    Entries with ``i > k`` are zero. The returned array is shared; do not modify it.
    """
    k = np.arange(n + 1)
    table = comb(k[:, np.newaxis], k[np.newaxis, :])
    return cast(_FloatArray, np.ascontiguousarray(table, dtype=dtype_name))


def _prepare_curve(
    knots: npt.ArrayLike,
    degree: int,
    control_points: npt.ArrayLike,
    weights: npt.ArrayLike | None = None,
) -> tuple[_FloatArray, _FloatArray, _FloatArray | None]:
    """Convert and validate a curve description.

    Returns:
        tuple[_FloatArray, _FloatArray, _FloatArray | None]: Knots, control points
            and weights (None for non-rational curves), all of the evaluation dtype.

    Raises:
        InvalidRelationError: If the number of knots is not degree + number of control
            points + 1, or there are fewer than degree+1 control points.
        DegenerateWeightError: If a weight is not strictly positive.
        ValueError: If the degree, knots or weights are otherwise invalid.
        TypeError: If an input has the wrong number of dimensions.
    """
    dtype = _resolve_dtype(control_points)
    ctrl_pts = _normalize_control_points(control_points, dtype)
    knots_arr = _normalize_knots(knots, dtype)
    _check_relation(knots_arr.size, degree, ctrl_pts.shape[0])
    _check_knot_vector(knots_arr, degree)
    w = None if weights is None else _normalize_weights(weights, ctrl_pts.shape[0], dtype)
    return knots_arr, ctrl_pts, w


def _evaluate_points(  # noqa: PLR0913
    knots: _FloatArray,
    degree: int,
    ctrl_pts: _FloatArray,
    weights: _FloatArray | None,
    u: npt.ArrayLike,
    out: _FloatArray | None = None,
) -> _FloatArray:
    """Evaluate a validated curve at the parameters `u`.

    Args:
        knots (_FloatArray): Validated knot vector.
        degree (int): Degree.
        ctrl_pts (_FloatArray): Validated control points, shape (num_ctrl_pts, dim).
        weights (_FloatArray | None): Validated weights, or None for a non-rational curve.
        u (npt.ArrayLike): Parameter value(s).
        out (_FloatArray | None): Optional output array of shape ``(*u.shape, dim)``.

    Returns:
        _FloatArray: Points, shape ``(*u.shape, dim)``.

    Raises:
        DomainError: If a parameter lies outside the domain.
        DegenerateWeightError: If the homogeneous denominator vanishes.
        ValueError: If `out` has an incorrect shape or dtype.
    """
    dtype = ctrl_pts.dtype
    tol = get_strict_tolerance(dtype)
    pts, input_shape = _normalize_parameters(u, dtype)
    pts = _clip_to_domain(knots, degree, pts, tol)

    dim = ctrl_pts.shape[1]
    expected_shape = (*input_shape, dim)
    if out is None:
        out = np.empty(expected_shape, dtype=dtype)
    _validate_out_array(out, expected_shape, dtype)
    out_2d = out.reshape(pts.size, dim)

    if weights is None:
        _curve_points_impl(knots, degree, ctrl_pts, pts, out_2d)
    else:
        min_den = _rational_curve_points_impl(knots, degree, ctrl_pts, weights, pts, out_2d)
        if min_den <= 0.0:
            raise DegenerateWeightError(
                f"Vanishing homogeneous denominator ({min_den}) in rational curve evaluation"
            )
    return out


def _evaluate_derivatives(  # noqa: PLR0913
    knots: _FloatArray,
    degree: int,
    ctrl_pts: _FloatArray,
    weights: _FloatArray | None,
    u: npt.ArrayLike,
    order: int,
) -> _FloatArray:
    """Evaluate the derivatives of orders 0 to `order` of a validated curve.

    Returns:
        _FloatArray: Derivatives, shape ``(*u.shape, order+1, dim)``.

    Raises:
        ValueError: If `order` is negative.
        DomainError: If a parameter lies outside the domain.
        DegenerateWeightError: If the homogeneous denominator vanishes.
    """
    if order < 0:
        raise ValueError("order must be non-negative")

    dtype = ctrl_pts.dtype
    tol = get_strict_tolerance(dtype)
    pts, input_shape = _normalize_parameters(u, dtype)
    pts = _clip_to_domain(knots, degree, pts, tol)

    dim = ctrl_pts.shape[1]
    n_ders = int(order)
    out = np.zeros((pts.size, n_ders + 1, dim), dtype=dtype)

    if weights is None:
        _curve_derivatives_impl(knots, degree, ctrl_pts, pts, n_ders, out)
    else:
        binom = _binomial_table(n_ders, dtype.name)
        min_den = _rational_curve_derivatives_impl(
            knots, degree, ctrl_pts, weights, pts, n_ders, binom, out
        )
        if min_den <= 0.0:
            raise DegenerateWeightError(
                f"Vanishing homogeneous denominator ({min_den}) in rational curve evaluation"
            )
    return out.reshape(*input_shape, n_ders + 1, dim)


def curve_point(
    knots: npt.ArrayLike,
    degree: int,
    control_points: npt.ArrayLike,
    u: npt.ArrayLike,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a non-rational B-spline curve.

    The point is the combination of the degree+1 active control points weighted
    by the non-vanishing basis functions, so it lies in their convex hull.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector of length
            degree + number of control points + 1.
        degree (int): Degree.
        control_points (npt.ArrayLike): Control points, shape (num_ctrl_pts, dim).
        u (npt.ArrayLike): Parameter value(s).
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output array of
            shape ``(*u.shape, dim)`` and the control points dtype. This follows
            NumPy's style for output arrays. Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Curve point(s), shape ``(*u.shape, dim)``.

    Raises:
        InvalidRelationError: If the knots, degree and control points do not match.
        DomainError: If a parameter lies outside the domain.
        ValueError: If the inputs are otherwise invalid.

    Example:
        >>> curve_point([0, 0, 0, 1, 1, 1], 2, [[0.0, 0.0], [1.0, 2.0], [2.0, 0.0]], 0.5)
        array([1., 1.])
    """
    knots_arr, ctrl_pts, _ = _prepare_curve(knots, degree, control_points)
    return _evaluate_points(knots_arr, degree, ctrl_pts, None, u, out)


def rational_curve_point(
    knots: npt.ArrayLike,
    degree: int,
    control_points: npt.ArrayLike,
    weights: npt.ArrayLike,
    u: npt.ArrayLike,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a rational (NURBS) curve.

    The weighted control points are combined in homogeneous coordinates and the
    result is divided by the combined weight.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        control_points (npt.ArrayLike): Control points, shape (num_ctrl_pts, dim).
        weights (npt.ArrayLike): Strictly positive weights, one per control point.
        u (npt.ArrayLike): Parameter value(s).

    Returns:
        npt.NDArray[np.float32 | np.float64]: Curve point(s), shape ``(*u.shape, dim)``.

    Raises:
        InvalidRelationError: If the knots, degree and control points do not match.
        DegenerateWeightError: If a weight is not strictly positive.
        DomainError: If a parameter lies outside the domain.
        ValueError: If the inputs are otherwise invalid.

    Example:
        >>> s = np.sqrt(0.5)
        >>> rational_curve_point(
        ...     [0, 0, 0, 1, 1, 1], 2, [[1.0, 0.0], [1.0, 1.0], [0.0, 1.0]], [1.0, s, 1.0], 0.5
        ... )
        array([0.70710678, 0.70710678])
    """
    knots_arr, ctrl_pts, w = _prepare_curve(knots, degree, control_points, weights)
    return _evaluate_points(knots_arr, degree, ctrl_pts, w, u)


def curve_derivatives(
    knots: npt.ArrayLike,
    degree: int,
    control_points: npt.ArrayLike,
    u: npt.ArrayLike,
    order: int,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a non-rational curve and its derivatives up to `order`.

    Derivatives of order higher than the degree are zero vectors.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        control_points (npt.ArrayLike): Control points, shape (num_ctrl_pts, dim).
        u (npt.ArrayLike): Parameter value(s).
        order (int): Highest derivative order.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape ``(*u.shape, order+1, dim)``
            whose entry ``[..., k, :]`` is the k-th derivative (k=0 is the point).

    Raises:
        InvalidRelationError: If the knots, degree and control points do not match.
        DomainError: If a parameter lies outside the domain.
        ValueError: If `order` is negative or the inputs are otherwise invalid.
    """
    knots_arr, ctrl_pts, _ = _prepare_curve(knots, degree, control_points)
    return _evaluate_derivatives(knots_arr, degree, ctrl_pts, None, u, order)


def rational_curve_derivatives(  # noqa: PLR0913
    knots: npt.ArrayLike,
    degree: int,
    control_points: npt.ArrayLike,
    weights: npt.ArrayLike,
    u: npt.ArrayLike,
    order: int,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a rational curve and its derivatives up to `order`.

    The weighted curve and the weight function are differentiated as
    non-rational curves; the derivatives of the rational curve follow from
    Leibniz's rule applied to ``A(u) = w(u) C(u)``. Unlike the non-rational
    case, derivatives of order higher than the degree do not vanish in general.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        control_points (npt.ArrayLike): Control points, shape (num_ctrl_pts, dim).
        weights (npt.ArrayLike): Strictly positive weights, one per control point.
        u (npt.ArrayLike): Parameter value(s).
        order (int): Highest derivative order.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape ``(*u.shape, order+1, dim)``.

    Raises:
        InvalidRelationError: If the knots, degree and control points do not match.
        DegenerateWeightError: If a weight is not strictly positive.
        DomainError: If a parameter lies outside the domain.
        ValueError: If `order` is negative or the inputs are otherwise invalid.
    """
    knots_arr, ctrl_pts, w = _prepare_curve(knots, degree, control_points, weights)
    return _evaluate_derivatives(knots_arr, degree, ctrl_pts, w, u, order)


__all__ = [
    "curve_derivatives",
    "curve_point",
    "rational_curve_derivatives",
    "rational_curve_point",
]
