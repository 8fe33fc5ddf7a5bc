"""Knot vector utilities for NURBS curves.

This module provides functions to create uniform clamped and unclamped knot
vectors, to validate the knot/control point relation, and the splice
operations used to clamp, unclamp, close and open a curve. Every editing
function returns a new array and leaves its input untouched.
"""

from typing import Any, cast

import numpy as np
import numpy.typing as npt

from ._input_utils import _prepare_knots
from .tolerance import get_strict_tolerance


def _get_domain_ends_and_dtype(
    domain: tuple[float | np.floating[Any], float | np.floating[Any]] | None,
    dtype: npt.DTypeLike | None,
) -> tuple[np.floating[Any], np.floating[Any], np.dtype[np.floating[Any]]]:
    """Get the start, end, and dtype for a knot vector.

    Args:
        domain (tuple[float | np.floating, float | np.floating] | None): Domain
            boundaries as (start, end). Defaults to (0.0, 1.0) if not provided.
        dtype (npt.DTypeLike | None): Data type for the knot vector.
            If None, inferred from the domain values or defaults to float64.

    Returns:
        tuple[np.floating, np.floating, np.dtype]: Tuple of (start, end, dtype).

    Raises:
        ValueError: If the dtype is not float32 or float64, or if end <= start.
    """
    if dtype is None:
        dtype_obj = np.dtype(np.float64)
        if domain is not None and all(isinstance(v, np.float32) for v in domain):
            dtype_obj = np.dtype(np.float32)
    else:
        dtype_obj = np.dtype(dtype)
    if dtype_obj not in (np.dtype(np.float32), np.dtype(np.float64)):
        raise ValueError("dtype must be float64 or float32")

    start_raw, end_raw = (0.0, 1.0) if domain is None else domain
    start = cast(np.floating[Any], dtype_obj.type(start_raw))
    end = cast(np.floating[Any], dtype_obj.type(end_raw))
    if end <= start:
        raise ValueError("end must be greater than start")
    return start, end, cast(np.dtype[np.floating[Any]], dtype_obj)


def _validate_counts(num_control_points: int, degree: int) -> None:
    """Raise ValueError unless degree >= 0 and num_control_points >= degree+1."""
    if degree < 0:
        raise ValueError("degree must be non-negative")
    if num_control_points < degree + 1:
        raise ValueError(
            f"num_control_points must be at least degree+1 = {degree + 1}. "
            f"Got {num_control_points}."
        )


def is_valid_relation(degree: int, num_knots: int, num_control_points: int) -> bool:
    """Check whether ``num_knots == degree + num_control_points + 1``.

    Args:
        degree (int): Curve degree.
        num_knots (int): Length of the knot vector.
        num_control_points (int): Number of control points.

    Returns:
        bool: True if the relation holds and there are at least degree+1 control points.
    """
    return (
        degree >= 0
        and num_control_points >= degree + 1
        and num_knots == degree + num_control_points + 1
    )


def create_uniform_open_knot_vector(
    num_control_points: int,
    degree: int,
    domain: tuple[float | np.floating[Any], float | np.floating[Any]] | None = None,
    dtype: npt.DTypeLike | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Create a uniform clamped (open) knot vector.

    The first and last knots are repeated degree+1 times, so the curve
    interpolates its first and last control points. Interior knots are
    uniformly spaced with multiplicity one.

    Args:
        num_control_points (int): Number of control points. At least degree+1.
        degree (int): Curve degree. Must be non-negative.
        domain (tuple[float | np.floating, float | np.floating] | None): Domain
            boundaries as (start, end). Defaults to (0.0, 1.0).
        dtype (npt.DTypeLike | None): float32 or float64. If None, float32 when both
            domain values are float32, float64 otherwise.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Knot vector of length
            num_control_points + degree + 1.

    Raises:
        ValueError: If any parameter is invalid.

    Example:
        >>> create_uniform_open_knot_vector(4, 2)
        array([0. , 0. , 0. , 0.5, 1. , 1. , 1. ])
    """
    _validate_counts(num_control_points, degree)
    start, end, dtype_obj = _get_domain_ends_and_dtype(domain, dtype)

    num_intervals = num_control_points - degree
    unique_knots = np.linspace(start, end, num_intervals + 1, dtype=dtype_obj)
    return np.concatenate(
        [
            np.full(degree, start, dtype=dtype_obj),
            unique_knots,
            np.full(degree, end, dtype=dtype_obj),
        ]
    )


def create_uniform_unclamped_knot_vector(
    num_control_points: int,
    degree: int,
    domain: tuple[float | np.floating[Any], float | np.floating[Any]] | None = None,
    dtype: npt.DTypeLike | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Create a uniform unclamped knot vector.

    All knots are equally spaced; the domain ``[knots[degree], knots[-degree-1]]``
    is the given one and the remaining knots extend beyond it.

    Args:
        num_control_points (int): Number of control points. At least degree+1.
        degree (int): Curve degree. Must be non-negative.
        domain (tuple[float | np.floating, float | np.floating] | None): Domain
            boundaries as (start, end). Defaults to (0.0, 1.0).
        dtype (npt.DTypeLike | None): float32 or float64.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Knot vector of length
            num_control_points + degree + 1.

    Raises:
        ValueError: If any parameter is invalid.

    Example:
        >>> create_uniform_unclamped_knot_vector(4, 2)
        array([-1. , -0.5,  0. ,  0.5,  1. ,  1.5,  2. ])
    """
    _validate_counts(num_control_points, degree)
    start, end, dtype_obj = _get_domain_ends_and_dtype(domain, dtype)

    num_intervals = num_control_points - degree
    length = (end - start) / num_intervals
    ids = np.arange(num_control_points + degree + 1) - degree
    knots = (start + ids * length).astype(dtype_obj)
    # Avoid round-off at the domain end.
    knots[num_control_points] = end
    return knots


def snap_knots(
    knots: npt.ArrayLike, tol: float | None = None
) -> npt.NDArray[np.float32 | np.float64]:
    """Snap knots within tolerance to avoid numerical precision issues.

    Knots are rounded to a precision determined by the tolerance and knots
    that round to the same value are replaced by their mean. Knots that
    round to different values are left untouched.

    Args:
        knots (npt.ArrayLike): Knot vector.
        tol (float | None): Snapping tolerance. Defaults to the strict tolerance
            of the knots dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New snapped knot vector.
    """
    knots_arr = np.asarray(knots)
    if np.issubdtype(knots_arr.dtype, np.integer):
        knots_arr = knots_arr.astype(np.float64)
    if tol is None:
        tol = get_strict_tolerance(knots_arr.dtype)

    scale = 1.0 / tol
    rounded = np.round(knots_arr * scale) / scale
    snapped = knots_arr.copy()
    for val in np.unique(rounded):
        mask = rounded == val
        snapped[mask] = np.mean(knots_arr[mask], dtype=knots_arr.dtype)
    return snapped


def is_clamped_start(knots: npt.ArrayLike, degree: int, tol: float | None = None) -> bool:
    """Check whether the first degree+1 knots are equal (up to tolerance).

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.
        tol (float | None): Comparison tolerance. Defaults to the strict tolerance.

    Returns:
        bool: True if the start of the knot vector is clamped.
    """
    knots_arr = _prepare_knots(knots, degree)
    tol = get_strict_tolerance(knots_arr.dtype) if tol is None else tol
    return bool(np.isclose(knots_arr[0], knots_arr[degree], atol=tol, rtol=0.0))


def is_clamped_end(knots: npt.ArrayLike, degree: int, tol: float | None = None) -> bool:
    """Check whether the last degree+1 knots are equal (up to tolerance).

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.
        tol (float | None): Comparison tolerance. Defaults to the strict tolerance.

    Returns:
        bool: True if the end of the knot vector is clamped.
    """
    knots_arr = _prepare_knots(knots, degree)
    tol = get_strict_tolerance(knots_arr.dtype) if tol is None else tol
    return bool(np.isclose(knots_arr[-degree - 1], knots_arr[-1], atol=tol, rtol=0.0))


def _first_span_length(knots: npt.NDArray[np.float32 | np.float64], degree: int) -> Any:
    """Length of the first non-empty span of the domain."""
    lengths = np.diff(knots[degree : knots.size - degree])
    return lengths[np.flatnonzero(lengths > 0)[0]]


def _last_span_length(knots: npt.NDArray[np.float32 | np.float64], degree: int) -> Any:
    """Length of the last non-empty span of the domain."""
    lengths = np.diff(knots[degree : knots.size - degree])
    return lengths[np.flatnonzero(lengths > 0)[-1]]


def clamp_start(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Clamp the start of a knot vector.

    The `degree` knots preceding the domain start are set to the domain start,
    so the curve interpolates its first control point. The length of the knot
    vector and the domain are unchanged.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New clamped knot vector.

    Example:
        >>> clamp_start([-1.0, -0.5, 0.0, 0.5, 1.0, 1.5, 2.0], 2)
        array([0. , 0. , 0. , 0.5, 1. , 1.5, 2. ])
    """
    new_knots = _prepare_knots(knots, degree).copy()
    new_knots[:degree] = new_knots[degree]
    return new_knots


def clamp_end(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Clamp the end of a knot vector.

    The `degree` knots following the domain end are set to the domain end,
    so the curve interpolates its last control point.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New clamped knot vector.
    """
    new_knots = _prepare_knots(knots, degree).copy()
    end_id = new_knots.size - degree - 1
    new_knots[end_id + 1 :] = new_knots[end_id]
    return new_knots


def unclamp_start(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Unclamp the start of a knot vector.

    The `degree` knots preceding the domain start are respaced uniformly, with
    the length of the first non-empty span of the domain.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New unclamped knot vector.

    Example:
        >>> unclamp_start([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0], 2)
        array([-1. , -0.5,  0. ,  0.5,  1. ,  1. ,  1. ])
    """
    new_knots = _prepare_knots(knots, degree).copy()
    length = _first_span_length(new_knots, degree)
    offsets = np.arange(degree, 0, -1, dtype=new_knots.dtype)
    new_knots[:degree] = new_knots[degree] - offsets * length
    return new_knots


def unclamp_end(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Unclamp the end of a knot vector.

    The `degree` knots following the domain end are respaced uniformly, with
    the length of the last non-empty span of the domain.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New unclamped knot vector.
    """
    new_knots = _prepare_knots(knots, degree).copy()
    length = _last_span_length(new_knots, degree)
    end_id = new_knots.size - degree - 1
    offsets = np.arange(1, degree + 1, dtype=new_knots.dtype)
    new_knots[end_id + 1 :] = new_knots[end_id] + offsets * length
    return new_knots


def close_knot_vector(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Splice one knot in so that the curve can take one more (seam) control point.

    The domain end knot is kept as an interior knot and the trailing degree+1
    knots are shifted by the length of the last non-empty span. The new knot
    vector is one knot longer and its domain one span longer.

    Args:
        knots (npt.ArrayLike): Knot vector.
        degree (int): Curve degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New knot vector.

    Example:
        >>> close_knot_vector([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0], 2)
        array([0. , 0. , 0. , 0.5, 1. , 1.5, 1.5, 1.5])
    """
    knots_arr = _prepare_knots(knots, degree)
    length = _last_span_length(knots_arr, degree)
    end_id = knots_arr.size - degree - 1
    return np.concatenate([knots_arr[: end_id + 1], knots_arr[end_id:] + length])


def open_knot_vector(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Remove the knot spliced in by :func:`close_knot_vector`.

    The domain-end knot ``knots[len(knots) - degree - 1]`` is removed and the
    knots after it are shifted back by the length of the last span, so the
    domain ends at the previous knot again.

    Args:
        knots (npt.ArrayLike): Knot vector with at least 2*degree+3 knots.
        degree (int): Curve degree.

    Returns:
        npt.NDArray[np.float32 | np.float64]: New knot vector, one knot shorter.

    Raises:
        ValueError: If removing a knot would leave fewer than 2*degree+2 knots.
    """
    knots_arr = _prepare_knots(knots, degree)
    if knots_arr.size < 2 * degree + 3:
        raise ValueError("knots must have at least 2*degree+3 elements to remove one")
    end_id = knots_arr.size - degree - 1
    length = knots_arr[end_id] - knots_arr[end_id - 1]
    return np.concatenate([knots_arr[:end_id], knots_arr[end_id + 1 :] - length])


__all__ = [
    "clamp_end",
    "clamp_start",
    "close_knot_vector",
    "create_uniform_open_knot_vector",
    "create_uniform_unclamped_knot_vector",
    "is_clamped_end",
    "is_clamped_start",
    "is_valid_relation",
    "open_knot_vector",
    "snap_knots",
    "unclamp_end",
    "unclamp_start",
]
