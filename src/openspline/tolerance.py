"""Tolerance presets for single and double precision NURBS evaluation."""

from functools import cache
from typing import Any, NamedTuple, TypedDict, cast

import numpy as np
from numpy import typing as npt

SUPPORTED_DTYPES: tuple[type[np.floating[Any]], ...] = (np.float32, np.float64)


@cache
def _ensure_float_dtype_by_name(name: str) -> np.dtype[np.floating[Any]]:
    """Cached validator returning a supported floating dtype from its canonical name.

    Args:
        name (str): Canonical NumPy dtype name (e.g., "float64").

    Returns:
        np.dtype[np.floating[Any]]: Validated floating-point dtype.

    Raises:
        ValueError: If dtype is neither float32 nor float64.
    """
    dtype_obj = np.dtype(name)
    if dtype_obj.type not in SUPPORTED_DTYPES:
        raise ValueError(f"Unsupported dtype: {name}. Only float32 and float64 are supported")
    return cast(np.dtype[np.floating[Any]], dtype_obj)


def _ensure_float_dtype(dtype: npt.DTypeLike) -> np.dtype[np.floating[Any]]:
    """Normalize and validate a dtype-like into float32 or float64."""
    dtype_obj = np.dtype(dtype)
    return _ensure_float_dtype_by_name(dtype_obj.name)


class _TolerancePreset(NamedTuple):
    """Tolerance values for single and double precision."""

    float32: float
    float64: float


_TOLERANCE_PRESETS = {
    "default": _TolerancePreset(1e-6, 1e-12),
    "strict": _TolerancePreset(1e-7, 1e-15),
    "conservative": _TolerancePreset(1e-5, 1e-10),
}


def _get_tolerance(dtype: npt.DTypeLike, preset: _TolerancePreset) -> float:
    """Get the tolerance value for a specific dtype from a preset.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.
        preset (_TolerancePreset): Preset to read from.

    Returns:
        float: Tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    dtype_obj = _ensure_float_dtype(dtype)
    if dtype_obj.type == np.float32:
        return preset.float32
    return preset.float64


def get_default_tolerance(dtype: npt.DTypeLike) -> float:
    """Get a reasonable default tolerance for floating-point comparisons.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type or numpy scalar
            type.

    Returns:
        float: Recommended tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.

    Example:
        >>> get_default_tolerance(np.float32)
        1e-06
        >>> get_default_tolerance("float64")
        1e-12
    """
    return _get_tolerance(dtype, _TOLERANCE_PRESETS["default"])


def get_strict_tolerance(dtype: npt.DTypeLike) -> float:
    """Get a strict tolerance, used for knot and parameter comparisons.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Strict tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    return _get_tolerance(dtype, _TOLERANCE_PRESETS["strict"])


def get_conservative_tolerance(dtype: npt.DTypeLike) -> float:
    """Get a conservative tolerance for robust floating-point comparisons.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Conservative tolerance value for the given dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    return _get_tolerance(dtype, _TOLERANCE_PRESETS["conservative"])


def get_machine_epsilon(dtype: npt.DTypeLike) -> float:
    """Get machine epsilon for a given floating-point dtype.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Machine epsilon for the given dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    return float(np.finfo(_ensure_float_dtype(dtype)).eps)


class ToleranceInfo(TypedDict):
    """Tolerance and precision summary of a dtype."""

    dtype: npt.DTypeLike
    machine_epsilon: float
    default_tolerance: float
    strict_tolerance: float
    conservative_tolerance: float
    precision_decimals: int
    resolution: float


def get_tolerance_info(dtype: npt.DTypeLike) -> ToleranceInfo:
    """Get tolerance information for a dtype.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        ToleranceInfo: Machine epsilon, the three tolerance presets and the
            decimal precision and resolution of the dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    dt = _ensure_float_dtype(dtype)
    finfo = np.finfo(dt)

    return {
        "dtype": dtype,
        "machine_epsilon": get_machine_epsilon(dt),
        "default_tolerance": get_default_tolerance(dt),
        "strict_tolerance": get_strict_tolerance(dt),
        "conservative_tolerance": get_conservative_tolerance(dt),
        "precision_decimals": finfo.precision,
        "resolution": float(finfo.resolution),
    }
