"""Exceptions raised by NURBS curve construction and evaluation.

All of them derive from `ValueError`, so callers validating input the
usual way keep working.
"""


class NurbsError(ValueError):
    """Base class for NURBS curve errors."""


class InvalidRelationError(NurbsError):
    """Raised when the knot count does not match degree + number of control points + 1."""


class DomainError(NurbsError):
    """Raised for parameters outside the knot vector domain."""


class DegenerateWeightError(NurbsError):
    """Raised for non-positive weights or a vanishing homogeneous denominator."""


class DegenerateTangentError(NurbsError):
    """Raised when the tangent is requested where the first derivative vanishes."""


__all__ = [
    "DegenerateTangentError",
    "DegenerateWeightError",
    "DomainError",
    "InvalidRelationError",
    "NurbsError",
]
