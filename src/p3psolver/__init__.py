from p3psolver import problem
from p3psolver.api import (
    DegenerateInputError,
    NumericalDegeneracyError,
    P3PConfig,
    load_pose_candidates,
    save_pose_candidates,
    solve_p3p,
)

__all__ = [
    "problem",
    "solve_p3p",
    "P3PConfig",
    "DegenerateInputError",
    "NumericalDegeneracyError",
    "load_pose_candidates",
    "save_pose_candidates",
]
