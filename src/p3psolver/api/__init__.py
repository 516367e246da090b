from p3psolver.api.p3p import NumericalDegeneracyError, P3PConfig, solve_p3p
from p3psolver.api.pose_io import load_pose_candidates, save_pose_candidates
from p3psolver.core.frames import DegenerateInputError

__all__ = [
    "solve_p3p",
    "P3PConfig",
    "DegenerateInputError",
    "NumericalDegeneracyError",
    "load_pose_candidates",
    "save_pose_candidates",
]
