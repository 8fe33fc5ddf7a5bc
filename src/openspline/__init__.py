"""Public API surface for openspline.

Defines package metadata and exported interfaces.
"""

from typing import Final

# Private API imports (accessible but not in __all__)
# Users can access private functions via: openspline._curve_impl._function_name, etc.
from . import (
    _basis_core,  # noqa: F401
    _curve_impl,  # noqa: F401
    _knots_impl,  # noqa: F401
)

# Public API imports
from .basis import (
    basis_function_derivatives,
    basis_functions,
    find_span,
    tabulate_basis_functions,
)
from .errors import (
    DegenerateTangentError,
    DegenerateWeightError,
    DomainError,
    InvalidRelationError,
    NurbsError,
)
from .evaluate import (
    curve_derivatives,
    curve_point,
    rational_curve_derivatives,
    rational_curve_point,
)
from .knots import (
    clamp_end,
    clamp_start,
    close_knot_vector,
    create_uniform_open_knot_vector,
    create_uniform_unclamped_knot_vector,
    is_clamped_end,
    is_clamped_start,
    is_valid_relation,
    open_knot_vector,
    snap_knots,
    unclamp_end,
    unclamp_start,
)
from .nurbs_curve import NurbsCurve
from .tolerance import (
    ToleranceInfo,
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_strict_tolerance,
    get_tolerance_info,
)

# Package metadata
__version__: Final[str] = "0.1.0"
__license__: Final[str] = "MIT"
__author__: Final[str] = "openspline developers"

# Public interface: only functions/classes that don't start with _
__all__ = [
    "DegenerateTangentError",
    "DegenerateWeightError",
    "DomainError",
    "InvalidRelationError",
    "NurbsCurve",
    "NurbsError",
    "ToleranceInfo",
    "__author__",
    "__license__",
    "__version__",
    "basis_function_derivatives",
    "basis_functions",
    "clamp_end",
    "clamp_start",
    "close_knot_vector",
    "create_uniform_open_knot_vector",
    "create_uniform_unclamped_knot_vector",
    "curve_derivatives",
    "curve_point",
    "find_span",
    "get_conservative_tolerance",
    "get_default_tolerance",
    "get_machine_epsilon",
    "get_strict_tolerance",
    "get_tolerance_info",
    "is_clamped_end",
    "is_clamped_start",
    "is_valid_relation",
    "open_knot_vector",
    "rational_curve_derivatives",
    "rational_curve_point",
    "snap_knots",
    "tabulate_basis_functions",
    "unclamp_end",
    "unclamp_start",
]
