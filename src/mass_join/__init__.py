"""
mass_join: tolerance-aware joins of sorted m/z or retention time sequences.
"""

from .closest import closest
from .join import (
    JoinResult,
    inner_join_closest,
    join,
    left_join,
    left_join_closest,
    outer_join,
    outer_join_diagonal,
)
from .lcms_utils import ppm
from .match_engine import JoinConfig, JoinEngine, TableJoinResult

__version__ = "0.1.0"

__all__ = [
    "JoinConfig",
    "JoinEngine",
    "JoinResult",
    "TableJoinResult",
    "closest",
    "inner_join_closest",
    "join",
    "left_join",
    "left_join_closest",
    "outer_join",
    "outer_join_diagonal",
    "ppm",
    "__version__",
]
