"""B-spline basis engine: span search, basis functions and their derivatives.

All functions accept a scalar parameter or an array-like of parameters. For a
parameter array of shape ``S`` results have shape ``(*S, ...)``; for a scalar
the leading dimensions are dropped.
"""

from __future__ import annotations

from typing import cast

import numpy as np
from numpy import typing as npt

from ._basis_core import _tabulate_basis_ders_impl, _tabulate_basis_funs_impl
from ._input_utils import (
    _clip_to_domain,
    _normalize_parameters,
    _prepare_knots,
    _validate_out_array,
)
from ._knots_impl import _find_spans_impl
from .tolerance import get_strict_tolerance


def _prepare_spans(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    span: npt.ArrayLike | None,
    tol: float,
) -> npt.NDArray[np.int_]:
    """Compute knot spans, or validate user-provided ones against the points.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of in-domain parameters.
        span (npt.ArrayLike | None): Optional span index (or indices, one per point).
        tol (float): Tolerance used to check the spans contain the points.

    Returns:
        npt.NDArray[np.int_]: One span per point.

    Raises:
        ValueError: If a given span is out of range, empty
            or does not contain its point.
    """
    if span is None:
        spans = np.empty(pts.size, dtype=np.int_)
        _find_spans_impl(knots, degree, pts, spans)
        return spans

    spans = np.broadcast_to(np.asarray(span, dtype=np.int_).ravel(), pts.shape).copy()
    last = knots.size - degree - 2
    if np.any(spans < degree) or np.any(spans > last):
        raise ValueError(f"span must be in the range [{degree}, {last}]")
    if np.any(knots[spans] > pts + tol) or np.any(knots[spans + 1] < pts - tol):
        raise ValueError("The given span does not contain the parameter value")
    if np.any(knots[spans] >= knots[spans + 1]):
        raise ValueError("The given span must have non-zero length")
    return spans


def find_span(knots: npt.ArrayLike, degree: int, u: npt.ArrayLike) -> int | npt.NDArray[np.int_]:
    """Find the knot span index of one or several parameter values.

    Returns the index ``i`` such that ``knots[i] <= u < knots[i+1]``, found by
    binary search. At interior knots the span to the right is returned. At the
    end of the domain the last span of non-zero length is returned, so the
    curve is defined on the closed domain.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        u (npt.ArrayLike): Parameter value(s).

    Returns:
        int | npt.NDArray[np.int_]: Span index (an int for scalar `u`, otherwise an
            array with the shape of `u`). Always in ``[degree, len(knots) - degree - 2]``.

    Raises:
        DomainError: If a parameter lies outside the domain.
        ValueError: If the knot vector or degree are invalid.

    Example:
        >>> find_span([0, 0, 0, 0.5, 1, 1, 1], 2, [0.0, 0.5, 1.0])
        array([2, 3, 3])
    """
    knots_arr = _prepare_knots(knots, degree)
    tol = get_strict_tolerance(knots_arr.dtype)
    pts, input_shape = _normalize_parameters(u, knots_arr.dtype)
    pts = _clip_to_domain(knots_arr, degree, pts, tol)

    spans = _prepare_spans(knots_arr, degree, pts, None, tol)
    if len(input_shape) == 0:
        return int(spans[0])
    return spans.reshape(input_shape)


def basis_functions(
    knots: npt.ArrayLike,
    degree: int,
    u: npt.ArrayLike,
    span: npt.ArrayLike | None = None,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the degree+1 non-vanishing basis functions.

    The values are computed with the triangular Cox-de Boor recurrence. Terms
    whose knot difference vanishes (repeated knots) contribute zero. The values
    are non-negative and sum to one.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        u (npt.ArrayLike): Parameter value(s).
        span (npt.ArrayLike | None): Knot span(s) of `u`, as returned by
            :func:`find_span`. Computed when not given.
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output array.
            Must have shape ``(*u.shape, degree+1)`` and the knots dtype. This
            follows NumPy's style for output arrays. Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Basis values, shape ``(*u.shape, degree+1)``.
            Entry ``j`` corresponds to basis function ``span - degree + j``.

    Raises:
        DomainError: If a parameter lies outside the domain.
        ValueError: If the inputs are invalid, `span` does not contain `u`, or
            `out` has an incorrect shape or dtype.

    Example:
        >>> basis_functions([0, 0, 0, 1, 1, 1], 2, 0.5)
        array([0.25, 0.5 , 0.25])
    """
    knots_arr = _prepare_knots(knots, degree)
    dtype = knots_arr.dtype
    tol = get_strict_tolerance(dtype)
    pts, input_shape = _normalize_parameters(u, dtype)
    pts = _clip_to_domain(knots_arr, degree, pts, tol)
    spans = _prepare_spans(knots_arr, degree, pts, span, tol)

    order = degree + 1
    expected_shape = (*input_shape, order)
    if out is None:
        out = np.empty(expected_shape, dtype=dtype)
    _validate_out_array(out, expected_shape, dtype)

    _tabulate_basis_funs_impl(knots_arr, degree, pts, spans, out.reshape(pts.size, order))
    return out


def tabulate_basis_functions(
    knots: npt.ArrayLike, degree: int, u: npt.ArrayLike
) -> tuple[npt.NDArray[np.float32 | np.float64], int | npt.NDArray[np.int_]]:
    """Evaluate the non-vanishing basis functions together with their knot span.

    Combines :func:`find_span` and :func:`basis_functions` in a single pass, so
    the span is only searched once.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        u (npt.ArrayLike): Parameter value(s).

    Returns:
        tuple[npt.NDArray[np.float32 | np.float64], int | npt.NDArray[np.int_]]:
            Basis values of shape ``(*u.shape, degree+1)`` and the span(s). The
            first non-vanishing basis function has index ``span - degree``.

    Raises:
        DomainError: If a parameter lies outside the domain.
        ValueError: If the knot vector or degree are invalid.

    Example:
        >>> values, span = tabulate_basis_functions([0, 0, 0, 0.5, 1, 1, 1], 2, 0.25)
        >>> values
        array([0.25 , 0.625, 0.125])
        >>> span
        2
    """
    knots_arr = _prepare_knots(knots, degree)
    dtype = knots_arr.dtype
    tol = get_strict_tolerance(dtype)
    pts, input_shape = _normalize_parameters(u, dtype)
    pts = _clip_to_domain(knots_arr, degree, pts, tol)
    spans = _prepare_spans(knots_arr, degree, pts, None, tol)

    order = degree + 1
    out = np.empty((pts.size, order), dtype=dtype)
    _tabulate_basis_funs_impl(knots_arr, degree, pts, spans, out)

    if len(input_shape) == 0:
        return out.reshape(order), int(spans[0])
    return out.reshape(*input_shape, order), spans.reshape(input_shape)


def basis_function_derivatives(
    knots: npt.ArrayLike,
    degree: int,
    u: npt.ArrayLike,
    max_order: int,
    span: npt.ArrayLike | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the non-vanishing basis functions and their derivatives.

    Requesting derivatives of order higher than `degree` is allowed: those rows
    are zero, as the basis functions are piecewise polynomials of that degree.

    Args:
        knots (npt.ArrayLike): Non-decreasing knot vector.
        degree (int): Degree.
        u (npt.ArrayLike): Parameter value(s).
        max_order (int): Highest derivative order. Order 0 gives the values.
        span (npt.ArrayLike | None): Knot span(s) of `u`. Computed when not given.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(*u.shape, max_order+1, degree+1)`` where ``[..., k, j]`` is the
            k-th derivative of basis function ``span - degree + j``.

    Raises:
        DomainError: If a parameter lies outside the domain.
        ValueError: If `max_order` is negative or the inputs are invalid.

    Example:
        >>> basis_function_derivatives([0, 0, 0, 1, 1, 1], 2, 0.5, 3)
        array([[ 0.25,  0.5 ,  0.25],
               [-1.  ,  0.  ,  1.  ],
               [ 2.  , -4.  ,  2.  ],
               [ 0.  ,  0.  ,  0.  ]])
    """
    if max_order < 0:
        raise ValueError("max_order must be non-negative")

    knots_arr = _prepare_knots(knots, degree)
    dtype = knots_arr.dtype
    tol = get_strict_tolerance(dtype)
    pts, input_shape = _normalize_parameters(u, dtype)
    pts = _clip_to_domain(knots_arr, degree, pts, tol)
    spans = _prepare_spans(knots_arr, degree, pts, span, tol)

    order = degree + 1
    out = np.empty((pts.size, max_order + 1, order), dtype=dtype)
    _tabulate_basis_ders_impl(knots_arr, degree, pts, spans, int(max_order), out)
    return cast(
        npt.NDArray[np.float32 | np.float64],
        out.reshape(*input_shape, max_order + 1, order),
    )


__all__ = [
    "basis_function_derivatives",
    "basis_functions",
    "find_span",
    "tabulate_basis_functions",
]
