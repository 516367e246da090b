from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


class DegenerateInputError(ValueError):
    pass


@dataclass(frozen=True)
class Correspondences:
    """
    Three bearing/world-point pairs in the order used by the solver.

    `swapped` records whether roles 1 and 2 were exchanged w.r.t. the caller's order.
    """

    f1: np.ndarray  # (3,)
    f2: np.ndarray  # (3,)
    f3: np.ndarray  # (3,)
    P1: np.ndarray  # (3,)
    P2: np.ndarray  # (3,)
    P3: np.ndarray  # (3,)
    swapped: bool = False


@dataclass(frozen=True)
class Frames:
    T: np.ndarray  # (3,3) camera -> intermediate camera frame
    N: np.ndarray  # (3,3) world -> intermediate world frame
    f1: np.ndarray  # (3,)
    f2: np.ndarray  # (3,)
    f3_t: np.ndarray  # (3,) = T f3, f3_t[2] <= 0
    P1: np.ndarray  # (3,) origin of the intermediate world frame
    P2: np.ndarray  # (3,)
    P3_n: np.ndarray  # (3,) = N (P3 - P1)
    swapped: bool


def as_triplet(x: np.ndarray, name: str) -> np.ndarray:
    x = np.array(x, dtype=np.float64)
    if x.shape != (3, 3):
        raise ValueError(f"{name} must be (3,3) with one vector per row (got {x.shape})")
    return x


def check_non_collinear(world_points: np.ndarray, tol: float = 0.0) -> None:
    """
    Raise DegenerateInputError when the three world points are collinear.

    With tol == 0 only an exactly vanishing cross product is rejected.
    """
    P = as_triplet(world_points, "world_points")
    area2 = float(np.linalg.norm(np.cross(P[1] - P[0], P[2] - P[0])))
    if area2 <= float(tol):
        logger.warning("collinear world points: |(P2-P1) x (P3-P1)| = %g <= %g", area2, tol)
        raise DegenerateInputError("world points are collinear")


def camera_frame(f1: np.ndarray, f2: np.ndarray) -> np.ndarray:
    e1 = f1
    e3 = np.cross(f1, f2)
    e3 = e3 / np.linalg.norm(e3)
    e2 = np.cross(e3, e1)
    return np.stack([e1, e2, e3], axis=0)


def world_frame(P1: np.ndarray, P2: np.ndarray, P3: np.ndarray) -> np.ndarray:
    n1 = P2 - P1
    n1 = n1 / np.linalg.norm(n1)
    n3 = np.cross(n1, P3 - P1)
    n3 = n3 / np.linalg.norm(n3)
    n2 = np.cross(n3, n1)
    return np.stack([n1, n2, n3], axis=0)


def canonicalize(bearings: np.ndarray, world_points: np.ndarray) -> Correspondences:
    """
    Order the correspondences so that the third bearing has a non-positive
    z-coordinate in the camera frame built from the first two (theta in [0, pi]).
    """
    f = as_triplet(bearings, "bearings")
    P = as_triplet(world_points, "world_points")

    T = camera_frame(f[0], f[1])
    if (T @ f[2])[2] > 0:
        logger.debug("swapping correspondences 1 and 2")
        return Correspondences(f1=f[1], f2=f[0], f3=f[2], P1=P[1], P2=P[0], P3=P[2], swapped=True)
    return Correspondences(f1=f[0], f2=f[1], f3=f[2], P1=P[0], P2=P[1], P3=P[2], swapped=False)


def build_frames(bearings: np.ndarray, world_points: np.ndarray, collinear_tol: float = 0.0) -> Frames:
    check_non_collinear(world_points, tol=collinear_tol)
    c = canonicalize(bearings, world_points)

    T = camera_frame(c.f1, c.f2)
    N = world_frame(c.P1, c.P2, c.P3)
    return Frames(
        T=T,
        N=N,
        f1=c.f1,
        f2=c.f2,
        f3_t=T @ c.f3,
        P1=c.P1,
        P2=c.P2,
        P3_n=N @ (c.P3 - c.P1),
        swapped=c.swapped,
    )
