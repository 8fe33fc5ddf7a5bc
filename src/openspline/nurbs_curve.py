"""NurbsCurve class: a NURBS curve object owning its knots, control points and weights."""

from __future__ import annotations

import logging
import threading
from typing import NamedTuple

import numpy as np
from numpy import typing as npt

from . import knots as _knots
from ._input_utils import (
    _check_knot_vector,
    _check_relation,
    _normalize_control_points,
    _normalize_knots,
    _normalize_weights,
    _resolve_dtype,
)
from .errors import DegenerateTangentError
from .evaluate import _evaluate_derivatives, _evaluate_points
from .tolerance import get_default_tolerance, get_strict_tolerance

_logger = logging.getLogger(__name__)

_SUPPORTED_DIMS = (2, 3)


class _CurveState(NamedTuple):
    """Immutable snapshot of the data defining a curve.

    The arrays are never modified after the snapshot is created.
    """

    knots: npt.NDArray[np.float32 | np.float64]
    control_points: npt.NDArray[np.float32 | np.float64]
    weights: npt.NDArray[np.float32 | np.float64] | None
    is_rational: bool
    is_closed: bool


def _freeze(array: npt.NDArray[np.float32 | np.float64]) -> npt.NDArray[np.float32 | np.float64]:
    array.flags.writeable = False
    return array


class NurbsCurve:
    """A non-uniform rational B-spline curve in 2D or 3D.

    The curve owns its degree, knot vector, control points and (for rational
    curves) weights. Queries evaluate the curve through the functions of
    :mod:`openspline.evaluate`. Edits never modify arrays in place: they build a
    new snapshot of the curve data, validate it and swap it in under a lock, so
    a concurrent reader sees either the old or the new curve.

    The dtype of the curve (float32 or float64) is taken from the control points.

    Attributes:
        _degree (int): Polynomial degree of the curve.
        _state (_CurveState): Current snapshot of knots, control points and weights.
        _lock (threading.Lock): Lock serializing edits.
    """

    _degree: int
    _state: _CurveState
    _lock: threading.Lock

    def __init__(
        self,
        degree: int,
        knots: npt.ArrayLike,
        control_points: npt.ArrayLike,
        weights: npt.ArrayLike | None = None,
        snap_knots: bool = True,
    ) -> None:
        """Initialize a NURBS curve.

        Args:
            degree (int): Polynomial degree. Must be non-negative.
            knots (npt.ArrayLike): Non-decreasing knot vector of length
                degree + number of control points + 1.
            control_points (npt.ArrayLike): Control points, shape (num_control_points, dim)
                with dim 2 or 3.
            weights (npt.ArrayLike | None): Strictly positive weights, one per control
                point. If given, the curve is rational. Defaults to None.
            snap_knots (bool): Whether to snap nearby knots to avoid numerical issues.
                Defaults to True.

        Raises:
            ValueError: If the degree is negative, the knots are invalid, or the
                control points are not 2D or 3D.
            InvalidRelationError: If the number of knots does not match the degree
                and the number of control points.
            DegenerateWeightError: If a weight is not strictly positive.
            TypeError: If an input has the wrong number of dimensions.
        """
        if degree < 0:
            raise ValueError("degree must be non-negative")

        dtype = _resolve_dtype(control_points)
        ctrl_pts = _normalize_control_points(control_points, dtype)
        if ctrl_pts.shape[1] not in _SUPPORTED_DIMS:
            raise ValueError(
                f"Only 2D and 3D curves are supported. Got control points of dimension "
                f"{ctrl_pts.shape[1]}."
            )

        knots_arr = _normalize_knots(knots, dtype)
        _check_relation(knots_arr.size, degree, ctrl_pts.shape[0])
        _check_knot_vector(knots_arr, degree)
        if snap_knots:
            knots_arr = _knots.snap_knots(knots_arr, get_strict_tolerance(dtype))
            _check_knot_vector(knots_arr, degree)

        w = None if weights is None else _normalize_weights(weights, ctrl_pts.shape[0], dtype)

        self._degree = int(degree)
        self._lock = threading.Lock()
        self._state = _CurveState(
            knots=_freeze(knots_arr.copy()),
            control_points=_freeze(ctrl_pts.copy()),
            weights=None if w is None else _freeze(w.copy()),
            is_rational=w is not None,
            is_closed=False,
        )

    def __repr__(self) -> str:
        state = self._state
        return (
            f"{type(self).__name__}(degree={self._degree}, "
            f"num_control_points={state.control_points.shape[0]}, dim={self.dim}, "
            f"rational={state.is_rational}, closed={state.is_closed}, dtype={self.dtype})"
        )

    @property
    def degree(self) -> int:
        """Get the polynomial degree of the curve.

        Returns:
            int: The degree.
        """
        return self._degree

    @property
    def knots(self) -> npt.NDArray[np.float32 | np.float64]:
        """Get a copy of the knot vector.

        Returns:
            npt.NDArray[np.float32 | np.float64]: The knot vector.
        """
        return self._state.knots.copy()

    @property
    def control_points(self) -> npt.NDArray[np.float32 | np.float64]:
        """Get a copy of the control points.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape (num_control_points, dim).
        """
        return self._state.control_points.copy()

    @property
    def weights(self) -> npt.NDArray[np.float32 | np.float64] | None:
        """Get a copy of the weights, or None if the curve never had weights.

        Weights are kept when the curve is made non-rational, so this may be
        an array even if :attr:`is_rational` is False.

        Returns:
            npt.NDArray[np.float32 | np.float64] | None: Array of shape (num_control_points,).
        """
        w = self._state.weights
        return None if w is None else w.copy()

    @property
    def dim(self) -> int:
        """Get the spatial dimension of the curve (2 or 3)."""
        return int(self._state.control_points.shape[1])

    @property
    def dtype(self) -> np.dtype[np.float32 | np.float64]:
        """Get the data type used in computations."""
        return self._state.control_points.dtype

    @property
    def tolerance(self) -> float:
        """Get the tolerance used for numerical comparisons.

        Returns:
            float: The strict tolerance of the curve dtype.
        """
        return get_strict_tolerance(self.dtype)

    @property
    def num_control_points(self) -> int:
        """Get the number of control points."""
        return int(self._state.control_points.shape[0])

    @property
    def is_rational(self) -> bool:
        """Check whether the curve is evaluated with its weights."""
        return self._state.is_rational

    @property
    def is_closed(self) -> bool:
        """Check whether the curve has been closed with :meth:`set_closed`."""
        return self._state.is_closed

    @property
    def domain(self) -> tuple[np.float32 | np.float64, np.float32 | np.float64]:
        """Get the parameter domain.

        Returns:
            tuple[np.float32 | np.float64, np.float32 | np.float64]: Tuple of
            (start_value, end_value) defining the domain.

        Example:
            >>> curve = NurbsCurve(2, [0, 0, 0, 1, 2, 2, 2], [[0, 0], [1, 1], [2, 0], [3, 1]])
            >>> curve.domain
            (0.0, 2.0)
        """
        knots = self._state.knots
        return (knots[self._degree], knots[knots.size - self._degree - 1])

    @property
    def is_clamped_start(self) -> bool:
        """Check whether the first degree+1 knots are equal.

        A curve clamped at the start interpolates its first control point.
        """
        return _knots.is_clamped_start(self._state.knots, self._degree, self.tolerance)

    @property
    def is_clamped_end(self) -> bool:
        """Check whether the last degree+1 knots are equal.

        A curve clamped at the end interpolates its last control point.
        """
        return _knots.is_clamped_end(self._state.knots, self._degree, self.tolerance)

    def control_point(self, index: int) -> npt.NDArray[np.float32 | np.float64]:
        """Get a copy of a single control point.

        Args:
            index (int): Control point index. Negative indices count from the end.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape (dim,).

        Raises:
            IndexError: If the index is out of range.
        """
        return self._state.control_points[index].copy()

    def _active_weights(self, state: _CurveState) -> npt.NDArray[np.float32 | np.float64] | None:
        return state.weights if state.is_rational else None

    def point(self, u: npt.ArrayLike) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the curve at one or several parameter values.

        Args:
            u (npt.ArrayLike): Parameter value(s) in the domain.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Points, shape ``(*u.shape, dim)``.

        Raises:
            DomainError: If a parameter lies outside the domain.
            DegenerateWeightError: If the homogeneous denominator vanishes.
        """
        state = self._state
        return _evaluate_points(
            state.knots, self._degree, state.control_points, self._active_weights(state), u
        )

    def points(self, num: int) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the curve at `num` uniformly spaced parameters over the domain.

        Args:
            num (int): Number of points. Must be at least 2.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Points, shape (num, dim). The first and
            last rows are the curve at the domain start and end.

        Raises:
            ValueError: If `num` is smaller than 2.
        """
        if num < 2:  # noqa: PLR2004
            raise ValueError("num must be at least 2")
        state = self._state
        knots = state.knots
        params = np.linspace(
            knots[self._degree], knots[knots.size - self._degree - 1], num, dtype=knots.dtype
        )
        return _evaluate_points(
            knots, self._degree, state.control_points, self._active_weights(state), params
        )

    def derivatives(self, u: npt.ArrayLike, order: int) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the curve and its derivatives up to `order`.

        Rational curves are differentiated with the quotient rule in homogeneous
        form, so rows above the degree are non-zero in general.

        Args:
            u (npt.ArrayLike): Parameter value(s) in the domain.
            order (int): Highest derivative order.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape ``(*u.shape, order+1, dim)``
            whose entry ``[..., k, :]`` is the k-th derivative (k=0 is the point).

        Raises:
            ValueError: If `order` is negative.
            DomainError: If a parameter lies outside the domain.
        """
        state = self._state
        return _evaluate_derivatives(
            state.knots, self._degree, state.control_points, self._active_weights(state), u, order
        )

    def tangent(self, u: npt.ArrayLike) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the unit tangent vector.

        Args:
            u (npt.ArrayLike): Parameter value(s) in the domain.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Unit vectors, shape ``(*u.shape, dim)``.

        Raises:
            DegenerateTangentError: If the first derivative vanishes at a parameter.
            DomainError: If a parameter lies outside the domain.
        """
        first = self.derivatives(u, 1)[..., 1, :]
        norm = np.linalg.norm(first, axis=-1, keepdims=True)
        if np.any(norm < get_default_tolerance(self.dtype)):
            raise DegenerateTangentError(
                "The first derivative vanishes; the tangent is undefined"
            )
        return first / norm

    def _update(self, action: str, **changes: object) -> None:
        """Build a new snapshot from the current one and swap it in.

        Must be called with `_lock` held.
        """
        new_state = self._state._replace(**changes)
        _check_relation(new_state.knots.size, self._degree, new_state.control_points.shape[0])
        self._state = new_state
        _logger.debug("%s: %r", action, self)

    def set_control_point(self, index: int, point: npt.ArrayLike) -> None:
        """Replace one control point.

        Args:
            index (int): Control point index. Negative indices count from the end.
            point (npt.ArrayLike): New control point, shape (dim,).

        Raises:
            IndexError: If the index is out of range.
            ValueError: If the point does not have shape (dim,) or is not finite.
        """
        pt = np.asarray(point, dtype=self.dtype)
        if pt.shape != (self.dim,):
            raise ValueError(f"point must have shape ({self.dim},). Got {pt.shape}.")
        if not np.all(np.isfinite(pt)):
            raise ValueError("point must be finite")
        with self._lock:
            ctrl_pts = self._state.control_points.copy()
            ctrl_pts[index] = pt
            self._update(f"set control point {index}", control_points=_freeze(ctrl_pts))

    def set_rational(self, flag: bool) -> None:
        """Make the curve rational or non-rational.

        When turned on for a curve without weights, all weights are set to one,
        which leaves the geometry unchanged. Turning it off keeps the weights,
        so turning it on again restores them.

        Args:
            flag (bool): Whether the curve is rational.
        """
        with self._lock:
            state = self._state
            if bool(flag) == state.is_rational:
                return
            weights = state.weights
            if flag and weights is None:
                weights = _freeze(np.ones(state.control_points.shape[0], dtype=self.dtype))
            self._update(f"set rational {bool(flag)}", weights=weights, is_rational=bool(flag))

    def clamp_start(self) -> None:
        """Clamp the start of the knot vector. No-op if already clamped."""
        with self._lock:
            if self.is_clamped_start:
                return
            new_knots = _knots.clamp_start(self._state.knots, self._degree)
            self._update("clamp start", knots=_freeze(new_knots))

    def clamp_end(self) -> None:
        """Clamp the end of the knot vector. No-op if already clamped."""
        with self._lock:
            if self.is_clamped_end:
                return
            new_knots = _knots.clamp_end(self._state.knots, self._degree)
            self._update("clamp end", knots=_freeze(new_knots))

    def unclamp_start(self) -> None:
        """Unclamp the start of the knot vector. No-op if already unclamped."""
        with self._lock:
            if not self.is_clamped_start:
                return
            new_knots = _knots.unclamp_start(self._state.knots, self._degree)
            self._update("unclamp start", knots=_freeze(new_knots))

    def unclamp_end(self) -> None:
        """Unclamp the end of the knot vector. No-op if already unclamped."""
        with self._lock:
            if not self.is_clamped_end:
                return
            new_knots = _knots.unclamp_end(self._state.knots, self._degree)
            self._update("unclamp end", knots=_freeze(new_knots))

    def set_closed(self, flag: bool) -> None:
        """Close or open the curve.

        Closing appends a copy of the first control point (the seam) and splices
        one knot with :func:`openspline.knots.close_knot_vector`, so the curve
        ends where it starts. The seam weight is duplicated as well. Opening is
        the exact inverse. No-op when the curve is already in the requested state.

        Args:
            flag (bool): Whether the curve is closed.

        Raises:
            ValueError: If closing a curve that is not clamped at both ends.
        """
        with self._lock:
            state = self._state
            if bool(flag) == state.is_closed:
                return

            if flag:
                if not (self.is_clamped_start and self.is_clamped_end):
                    raise ValueError("Only curves clamped at both ends can be closed")
                new_knots = _knots.close_knot_vector(state.knots, self._degree)
                ctrl_pts = np.concatenate([state.control_points, state.control_points[:1]])
                weights = state.weights
                if weights is not None:
                    weights = np.concatenate([weights, weights[:1]])
            else:
                new_knots = _knots.open_knot_vector(state.knots, self._degree)
                ctrl_pts = state.control_points[:-1].copy()
                weights = None if state.weights is None else state.weights[:-1].copy()

            self._update(
                "close" if flag else "open",
                knots=_freeze(new_knots),
                control_points=_freeze(ctrl_pts),
                weights=None if weights is None else _freeze(weights),
                is_closed=bool(flag),
            )


__all__ = ["NurbsCurve"]
