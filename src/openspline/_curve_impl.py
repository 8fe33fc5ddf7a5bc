"""Core NURBS curve evaluation kernels.

Points and derivatives are linear combinations of the active control points
weighted by the non-vanishing basis functions (or their derivatives). Rational
curves are evaluated in homogeneous coordinates and projected back.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

from ._basis_core import _compute_basis_ders_impl, _compute_basis_funs_impl
from ._knots_impl import _find_span_impl

F = TypeVar("F", bound=Callable[..., Any])

if TYPE_CHECKING:
    # During type-checking, make the decorator a no-op that preserves types.
    def nb_jit(*args: object, **kwargs: object) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            return func

        return decorator
else:
    # At runtime, use the real Numba decorator.
    nb_jit = nb.jit  # type: ignore[attr-defined]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _curve_points_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    ctrl_pts: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate a non-rational curve at several parameters.

    Algorithm A3.1 from "The NURBS Book".

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        ctrl_pts (npt.NDArray[np.float32 | np.float64]): Control points,
            shape (num_ctrl_pts, dim).
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of in-domain parameters.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape (n_pts, dim).

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)
    order = degree + 1
    dim = ctrl_pts.shape[1]
    basis = np.zeros(order, dtype=knots.dtype)

    for pt_id in range(pts.size):
        u = pts[pt_id]
        span = _find_span_impl(knots, degree, u)
        _compute_basis_funs_impl(knots, degree, span, u, basis)
        first = span - degree
        for d in range(dim):
            acc = zero
            for j in range(order):
                acc += basis[j] * ctrl_pts[first + j, d]
            out[pt_id, d] = acc


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _rational_curve_points_impl(  # noqa: PLR0913
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    ctrl_pts: npt.NDArray[np.float32 | np.float64],
    weights: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> float:
    """Evaluate a rational curve at several parameters.

    Algorithm A4.1 from "The NURBS Book": the weighted control points are
    combined in homogeneous coordinates and divided by the combined weight.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        ctrl_pts (npt.NDArray[np.float32 | np.float64]): Control points,
            shape (num_ctrl_pts, dim).
        weights (npt.NDArray[np.float32 | np.float64]): Weights, shape (num_ctrl_pts,).
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of in-domain parameters.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape (n_pts, dim).

    Returns:
        float: Smallest homogeneous denominator found. Points whose denominator
        is not strictly positive are left unset; the caller must check this value.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)
    order = degree + 1
    dim = ctrl_pts.shape[1]
    basis = np.zeros(order, dtype=knots.dtype)
    min_den = np.inf

    for pt_id in range(pts.size):
        u = pts[pt_id]
        span = _find_span_impl(knots, degree, u)
        _compute_basis_funs_impl(knots, degree, span, u, basis)
        first = span - degree

        den = zero
        for j in range(order):
            den += basis[j] * weights[first + j]
        if den < min_den:
            min_den = den
        if den <= zero:
            continue

        for d in range(dim):
            acc = zero
            for j in range(order):
                acc += basis[j] * weights[first + j] * ctrl_pts[first + j, d]
            out[pt_id, d] = acc / den

    return min_den


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _curve_derivatives_impl(  # noqa: PLR0913
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    ctrl_pts: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate a non-rational curve and its derivatives up to order `n_ders`.

    Algorithm A3.2 from "The NURBS Book". Derivatives of order above `degree`
    are zero vectors.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        ctrl_pts (npt.NDArray[np.float32 | np.float64]): Control points,
            shape (num_ctrl_pts, dim).
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of in-domain parameters.
        n_ders (int): Highest derivative order.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            (n_pts, n_ders+1, dim).

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)
    order = degree + 1
    dim = ctrl_pts.shape[1]
    ders = np.zeros((n_ders + 1, order), dtype=knots.dtype)

    for pt_id in range(pts.size):
        u = pts[pt_id]
        span = _find_span_impl(knots, degree, u)
        _compute_basis_ders_impl(knots, degree, span, u, n_ders, ders)
        first = span - degree
        for k in range(n_ders + 1):
            for d in range(dim):
                acc = zero
                for j in range(order):
                    acc += ders[k, j] * ctrl_pts[first + j, d]
                out[pt_id, k, d] = acc


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _rational_curve_derivatives_impl(  # noqa: PLR0913
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    ctrl_pts: npt.NDArray[np.float32 | np.float64],
    weights: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    binom: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> float:
    """Evaluate a rational curve and its derivatives up to order `n_ders`.

    The weighted curve ``A(u) = sum N_i w_i P_i`` and the weight function
    ``w(u) = sum N_i w_i`` are differentiated as non-rational curves and the
    Euclidean derivatives are recovered with Leibniz's rule (Algorithm A4.2
    from "The NURBS Book"):

        C^(k) = (A^(k) - sum_{i=1}^{k} binom(k, i) w^(i) C^(k-i)) / w

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        ctrl_pts (npt.NDArray[np.float32 | np.float64]): Control points,
            shape (num_ctrl_pts, dim).
        weights (npt.NDArray[np.float32 | np.float64]): Weights, shape (num_ctrl_pts,).
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of in-domain parameters.
        n_ders (int): Highest derivative order.
        binom (npt.NDArray[np.float32 | np.float64]): Binomial coefficients,
            shape (n_ders+1, n_ders+1), ``binom[k, i] = k! / (i! (k-i)!)``.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            (n_pts, n_ders+1, dim).

    Returns:
        float: Smallest weight function value found. Points where it is not
        strictly positive are left unset; the caller must check this value.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    zero = knots.dtype.type(0.0)
    order = degree + 1
    dim = ctrl_pts.shape[1]
    ders = np.zeros((n_ders + 1, order), dtype=knots.dtype)
    a_ders = np.zeros((n_ders + 1, dim), dtype=knots.dtype)
    w_ders = np.zeros(n_ders + 1, dtype=knots.dtype)
    min_den = np.inf

    for pt_id in range(pts.size):
        u = pts[pt_id]
        span = _find_span_impl(knots, degree, u)
        _compute_basis_ders_impl(knots, degree, span, u, n_ders, ders)
        first = span - degree

        for k in range(n_ders + 1):
            w_acc = zero
            for j in range(order):
                w_acc += ders[k, j] * weights[first + j]
            w_ders[k] = w_acc
            for d in range(dim):
                acc = zero
                for j in range(order):
                    acc += ders[k, j] * weights[first + j] * ctrl_pts[first + j, d]
                a_ders[k, d] = acc

        den = w_ders[0]
        if den < min_den:
            min_den = den
        if den <= zero:
            continue

        for k in range(n_ders + 1):
            for d in range(dim):
                v = a_ders[k, d]
                for i in range(1, k + 1):
                    v -= binom[k, i] * w_ders[i] * out[pt_id, k - i, d]
                out[pt_id, k, d] = v / den

    return min_den


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0], dtype=np.float64)
    ctrl_dummy = np.array([[0.0, 0.0], [1.0, 2.0], [2.0, 0.0]], dtype=np.float64)
    weights_dummy = np.ones(3, dtype=np.float64)
    pts_dummy = np.array([0.5], dtype=np.float64)
    degree_dummy = 2
    n_ders_dummy = 1
    binom_dummy = np.array([[1.0, 0.0], [1.0, 1.0]], dtype=np.float64)
    out_pts = np.empty((pts_dummy.size, 2), dtype=np.float64)
    out_ders = np.empty((pts_dummy.size, n_ders_dummy + 1, 2), dtype=np.float64)

    _curve_points_impl(knots_dummy, degree_dummy, ctrl_dummy, pts_dummy, out_pts)
    _rational_curve_points_impl(
        knots_dummy, degree_dummy, ctrl_dummy, weights_dummy, pts_dummy, out_pts
    )
    _curve_derivatives_impl(
        knots_dummy, degree_dummy, ctrl_dummy, pts_dummy, n_ders_dummy, out_ders
    )
    _rational_curve_derivatives_impl(
        knots_dummy,
        degree_dummy,
        ctrl_dummy,
        weights_dummy,
        pts_dummy,
        n_ders_dummy,
        binom_dummy,
        out_ders,
    )


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_curve_derivatives_impl",
    "_curve_points_impl",
    "_rational_curve_derivatives_impl",
    "_rational_curve_points_impl",
]
