"""Normalization and validation helpers for evaluator inputs."""

from typing import Any, cast

import numpy as np
from numpy import typing as npt

from .errors import DegenerateWeightError, DomainError, InvalidRelationError
from .tolerance import _ensure_float_dtype


def _resolve_dtype(control_points: npt.ArrayLike) -> np.dtype[np.floating[Any]]:
    """Get the evaluation dtype from the control points.

    Integer control points are promoted to float64. Floating types other than
    float32 and float64 are rejected.

    Args:
        control_points (npt.ArrayLike): Control points.

    Returns:
        np.dtype[np.floating[Any]]: Either float32 or float64.

    Raises:
        ValueError: If the control points have an unsupported dtype.
    """
    dtype = np.asarray(control_points).dtype
    if np.issubdtype(dtype, np.integer):
        return cast(np.dtype[np.floating[Any]], np.dtype(np.float64))
    return _ensure_float_dtype(dtype)


def _normalize_control_points(
    control_points: npt.ArrayLike, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Convert control points to a contiguous 2D array of the given dtype.

    Args:
        control_points (npt.ArrayLike): Control points, shape (num_points, dim).
        dtype (npt.DTypeLike): Target dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape (num_points, dim).

    Raises:
        TypeError: If the control points are not a 2D array.
    """
    cpts = np.ascontiguousarray(control_points, dtype=dtype)
    if cpts.ndim != 2:  # noqa: PLR2004
        raise TypeError("control_points must be a 2D array of shape (num_points, dim)")
    return cpts


def _normalize_knots(
    knots: npt.ArrayLike, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Convert knots to a contiguous 1D array of the given dtype.

    Raises:
        TypeError: If the knots are not 1-dimensional.
    """
    knots_arr = np.ascontiguousarray(knots, dtype=dtype)
    if knots_arr.ndim != 1:
        raise TypeError("knots must be a 1D array")
    return knots_arr


def _normalize_weights(
    weights: npt.ArrayLike, num_control_points: int, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Convert and validate rational weights.

    Args:
        weights (npt.ArrayLike): One weight per control point.
        num_control_points (int): Number of control points.
        dtype (npt.DTypeLike): Target dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: 1D array of weights.

    Raises:
        TypeError: If the weights are not 1-dimensional.
        ValueError: If the number of weights differs from the number of control points.
        DegenerateWeightError: If any weight is not strictly positive.
    """
    w = np.ascontiguousarray(weights, dtype=dtype)
    if w.ndim != 1:
        raise TypeError("weights must be a 1D array")
    if w.size != num_control_points:
        raise ValueError(
            f"Expected one weight per control point. Got {w.size} weights and "
            f"{num_control_points} control points."
        )
    if not np.all(w > 0):
        raise DegenerateWeightError("weights must be strictly positive")
    return w


def _check_relation(num_knots: int, degree: int, num_control_points: int) -> None:
    """Check the knot count relation and the minimal number of control points.

    Raises:
        ValueError: If degree is negative.
        InvalidRelationError: If ``num_knots != degree + num_control_points + 1`` or there
            are fewer than ``degree + 1`` control points.
    """
    if degree < 0:
        raise ValueError("degree must be non-negative")
    if num_knots != degree + num_control_points + 1:
        raise InvalidRelationError(
            f"nKnots != degree + nCtrlPts + 1: got {num_knots} knots, degree {degree} "
            f"and {num_control_points} control points"
        )
    if num_control_points < degree + 1:
        raise InvalidRelationError(
            f"At least degree+1 = {degree + 1} control points are required. "
            f"Got {num_control_points}."
        )


def _check_knot_vector(knots: npt.NDArray[np.float32 | np.float64], degree: int) -> None:
    """Validate basic constraints on a knot vector and degree.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector to check.
        degree (int): Non-negative degree.

    Raises:
        TypeError: If `knots` is not 1-dimensional.
        ValueError: If `degree` is negative, there are fewer than `2*degree+2`
            knots, the knot vector is not non-decreasing or its domain is empty.
    """
    if knots.ndim != 1:
        raise TypeError("knots must be a 1D array")
    if degree < 0:
        raise ValueError("degree must be non-negative")
    if knots.size < (2 * degree + 2):
        raise ValueError("knots must have at least 2*degree+2 elements")
    if not np.all(np.diff(knots) >= 0):
        raise ValueError("knots must be non-decreasing")
    if not knots[degree] < knots[knots.size - degree - 1]:
        raise ValueError("knots must define a domain of non-zero length")


def _prepare_knots(knots: npt.ArrayLike, degree: int) -> npt.NDArray[np.float32 | np.float64]:
    """Convert and validate a standalone knot vector.

    Integer knots are promoted to float64; float32 knots keep single precision.

    Raises:
        TypeError: If knots are not 1-dimensional.
        ValueError: If degree or knots are invalid, or the dtype is unsupported.
    """
    knots_arr = np.asarray(knots)
    if np.issubdtype(knots_arr.dtype, np.integer):
        knots_arr = knots_arr.astype(np.float64)
    dtype = _ensure_float_dtype(knots_arr.dtype)
    knots_arr = np.ascontiguousarray(knots_arr, dtype=dtype)
    _check_knot_vector(knots_arr, degree)
    return knots_arr


def _normalize_parameters(
    params: npt.ArrayLike, dtype: npt.DTypeLike
) -> tuple[npt.NDArray[np.float32 | np.float64], tuple[int, ...]]:
    """Flatten parameter values to a 1D array of the evaluation dtype.

    Args:
        params (npt.ArrayLike): Scalar or array of parameter values.
        dtype (npt.DTypeLike): Evaluation dtype.

    Returns:
        tuple[npt.NDArray[np.float32 | np.float64], tuple[int, ...]]: The flattened
            parameters and the original shape (empty for scalars).
    """
    arr = np.asarray(params)
    input_shape = arr.shape
    return np.ascontiguousarray(arr.ravel(), dtype=dtype), input_shape


def _clip_to_domain(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    params: npt.NDArray[np.float32 | np.float64],
    tol: float,
) -> npt.NDArray[np.float32 | np.float64]:
    """Clip parameters that are within tolerance of the domain to the domain.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector.
        degree (int): Curve degree.
        params (npt.NDArray[np.float32 | np.float64]): 1D parameters.
        tol (float): Absolute tolerance.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Parameters inside the closed domain.

    Raises:
        DomainError: If a parameter lies outside the domain by more than `tol`,
            or is not finite.
    """
    start, end = knots[degree], knots[knots.size - degree - 1]
    if not np.all(np.isfinite(params)):
        raise DomainError("Parameter values must be finite")
    outside = (params < start - tol) | (params > end + tol)
    if np.any(outside):
        raise DomainError(
            f"One or more parameter values {params[outside]} are outside the "
            f"domain [{start}, {end}]"
        )
    return np.clip(params, start, end)


def _validate_out_array(
    out: npt.NDArray[np.float32 | np.float64],
    expected_shape: tuple[int, ...],
    expected_dtype: npt.DTypeLike,
) -> None:
    """Validate that an output array has the correct shape and dtype.

    This follows NumPy's style for output array validation.

    Raises:
        ValueError: If the array shape or dtype does not match expectations, or the
            array is read-only.
    """
    if out.shape != expected_shape:
        raise ValueError(f"Output array has shape {out.shape}, but expected shape {expected_shape}")
    if out.dtype != expected_dtype:
        raise ValueError(f"Output array has dtype {out.dtype}, but expected dtype {expected_dtype}")
    if not out.flags.writeable:
        raise ValueError("Output array is not writeable")
    if not out.flags.c_contiguous:
        raise ValueError("Output array must be C-contiguous")
