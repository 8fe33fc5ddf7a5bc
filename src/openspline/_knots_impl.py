"""Knot span search kernels.

The span search follows Algorithm A2.1 of "The NURBS Book" (Piegl & Tiller):
a binary search over the knot vector returning the index ``i`` such that
``knots[i] <= u < knots[i+1]``. At interior knots (of any multiplicity) the
span to the right is chosen. At the end of the domain the last span of
non-zero length is returned.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

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
def _find_span_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    u: float,
) -> int:
    """Find the knot span index of a single parameter value.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Non-decreasing knot vector.
        degree (int): Curve degree.
        u (float): Parameter value, assumed to be inside the domain.

    Returns:
        int: Span index in ``[degree, knots.size - degree - 2]``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    last = knots.size - degree - 2

    if u >= knots[last + 1]:
        # Domain end: skip empty spans created by the end knot multiplicity.
        span = last
        while span > degree and knots[span] >= knots[span + 1]:
            span -= 1
        return span

    if u <= knots[degree]:
        low = degree
        while low < last and knots[low + 1] <= knots[degree]:
            low += 1
        return low

    low = degree
    high = last + 1
    while high - low > 1:
        mid = (low + high) // 2
        if u < knots[mid]:
            high = mid
        else:
            low = mid
    return low


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _find_spans_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    out_spans: npt.NDArray[np.int_],
) -> None:
    """Find the knot span of every point, writing into `out_spans`.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Non-decreasing knot vector.
        degree (int): Curve degree.
        pts (npt.NDArray[np.float32 | np.float64]): 1D array of in-domain parameters.
        out_spans (npt.NDArray[np.int_]): Output array with the same length as `pts`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for pt_id in range(pts.size):
        out_spans[pt_id] = _find_span_impl(knots, degree, pts[pt_id])


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0], dtype=np.float64)
    pts_dummy = np.array([0.0, 0.25, 1.0], dtype=np.float64)
    spans_dummy = np.empty(pts_dummy.size, dtype=np.int_)

    _find_span_impl(knots_dummy, 2, pts_dummy[0])
    _find_spans_impl(knots_dummy, 2, pts_dummy, spans_dummy)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_find_span_impl",
    "_find_spans_impl",
]
