"""Core B-spline basis function kernels.

This module provides numba kernels evaluating the non-vanishing B-spline
basis functions, and their derivatives, on a given knot span using the
triangular Cox-de Boor recurrence.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

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
def _compute_basis_funs_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    span: int,
    u: float,
    out_basis: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the degree+1 non-vanishing basis functions at `u`.

    This function implements Algorithm A2.2 from "The NURBS Book" by Piegl
    and Tiller. Results are written directly to the output array (C-style).
    Terms whose knot difference denominator is zero (repeated knots) vanish.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        span (int): Knot span containing `u`.
        u (float): Parameter value.
        out_basis (npt.NDArray[np.float32 | np.float64]): Output array of
            length degree+1 and the same dtype as `knots`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dtype = knots.dtype
    zero = dtype.type(0.0)
    one = dtype.type(1.0)

    left = np.zeros_like(out_basis)
    right = np.zeros_like(out_basis)

    out_basis[0] = one
    for j in range(1, degree + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u
        saved = zero
        for r in range(j):
            den = right[r + 1] + left[j - r]
            temp = zero if den <= zero else out_basis[r] / den
            out_basis[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        out_basis[j] = saved


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _compute_basis_ders_impl(  # noqa: PLR0913, PLR0912
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    span: int,
    u: float,
    n_ders: int,
    out_ders: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the non-vanishing basis functions and their derivatives at `u`.

    This function implements Algorithm A2.3 from "The NURBS Book" by Piegl
    and Tiller. The first pass fills the triangular table ``ndu`` whose upper
    triangle holds the basis functions of every degree up to `degree` and whose
    lower triangle holds the knot differences. The second pass combines them
    into derivatives. Rows above `degree` are left at zero.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        span (int): Knot span containing `u`.
        u (float): Parameter value.
        n_ders (int): Highest derivative order. May exceed `degree`.
        out_ders (npt.NDArray[np.float32 | np.float64]): Output array of shape
            (n_ders+1, degree+1) and the same dtype as `knots`. Row k holds the
            k-th derivatives.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dtype = knots.dtype
    zero = dtype.type(0.0)
    one = dtype.type(1.0)
    order = degree + 1

    out_ders.fill(zero)

    ndu = np.zeros((order, order), dtype=knots.dtype)
    a = np.zeros((2, order), dtype=knots.dtype)
    left = np.zeros(order, dtype=knots.dtype)
    right = np.zeros(order, dtype=knots.dtype)

    ndu[0, 0] = one
    for j in range(1, order):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u
        saved = zero
        for r in range(j):
            ndu[j, r] = right[r + 1] + left[j - r]
            temp = zero if ndu[j, r] <= zero else ndu[r, j - 1] / ndu[j, r]
            ndu[r, j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        ndu[j, j] = saved

    for j in range(order):
        out_ders[0, j] = ndu[j, degree]

    du = min(n_ders, degree)

    for r in range(order):
        s1 = 0
        s2 = 1
        a[0, 0] = one
        for k in range(1, du + 1):
            d = zero
            rk = r - k
            pk = degree - k
            if r >= k:
                den = ndu[pk + 1, rk]
                a[s2, 0] = zero if den <= zero else a[s1, 0] / den
                d = a[s2, 0] * ndu[rk, pk]
            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else degree - r
            for j in range(j1, j2 + 1):
                den = ndu[pk + 1, rk + j]
                a[s2, j] = zero if den <= zero else (a[s1, j] - a[s1, j - 1]) / den
                d += a[s2, j] * ndu[rk + j, pk]
            if r <= pk:
                den = ndu[pk + 1, r]
                a[s2, k] = zero if den <= zero else -a[s1, k - 1] / den
                d += a[s2, k] * ndu[r, pk]
            out_ders[k, r] = d
            s1, s2 = s2, s1

    # Multiply through by the falling factorial degree!/(degree-k)!
    factor = degree
    for k in range(1, du + 1):
        for j in range(order):
            out_ders[k, j] *= factor
        factor *= degree - k


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _tabulate_basis_funs_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    spans: npt.NDArray[np.int_],
    out_basis: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate basis functions at several points.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Degree.
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of parameters.
        spans (npt.NDArray[np.int_]): Knot span of every point.
        out_basis (npt.NDArray[np.float32 | np.float64]): Output array of shape
            (n_pts, degree+1).

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for pt_id in range(pts.size):
        _compute_basis_funs_impl(knots, degree, spans[pt_id], pts[pt_id], out_basis[pt_id])


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _tabulate_basis_ders_impl(  # noqa: PLR0913
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    spans: npt.NDArray[np.int_],
    n_ders: int,
    out_ders: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate basis function derivatives at several points.

    `out_ders` has shape (n_pts, n_ders+1, degree+1).

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for pt_id in range(pts.size):
        _compute_basis_ders_impl(knots, degree, spans[pt_id], pts[pt_id], n_ders, out_ders[pt_id])


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call.

    This function triggers compilation of the numba-decorated functions
    with float64 arrays, ensuring they are cached and ready for use.
    """
    knots_dummy = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0], dtype=np.float64)
    pts_dummy = np.array([0.5], dtype=np.float64)
    degree_dummy = 2
    n_ders_dummy = 1
    spans_dummy = np.array(
        [_find_span_impl(knots_dummy, degree_dummy, pts_dummy[0])], dtype=np.int_
    )
    basis_dummy = np.empty((pts_dummy.size, degree_dummy + 1), dtype=np.float64)
    ders_dummy = np.empty((pts_dummy.size, n_ders_dummy + 1, degree_dummy + 1), dtype=np.float64)

    _tabulate_basis_funs_impl(knots_dummy, degree_dummy, pts_dummy, spans_dummy, basis_dummy)
    _tabulate_basis_ders_impl(
        knots_dummy, degree_dummy, pts_dummy, spans_dummy, n_ders_dummy, ders_dummy
    )


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_compute_basis_ders_impl",
    "_compute_basis_funs_impl",
    "_tabulate_basis_ders_impl",
    "_tabulate_basis_funs_impl",
]
