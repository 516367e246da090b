from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from p3psolver.core.frames import Frames, build_frames
from p3psolver.core.quartic import solve_quartic

logger = logging.getLogger(__name__)


class NumericalDegeneracyError(ArithmeticError):
    pass


@dataclass(frozen=True)
class P3PConfig:
    """
    Solver options. The defaults reproduce the plain closed-form behaviour:
    only exactly collinear world points are rejected, every other degeneracy
    propagates as non-finite candidate entries.

    - `collinear_tol`: reject when |(P2-P1) x (P3-P1)| <= collinear_tol
    - `strict`: raise NumericalDegeneracyError on degenerate bearing geometry,
      a vanishing leading coefficient, or when no candidate is finite
    - `parallel_tol`: strict mode only, rays 1 and 2 are parallel when 1 - cos^2 <= parallel_tol
    - `coplanar_tol`: strict mode only, ray 3 lies in the plane of rays 1 and 2 when
      its component along their normal is <= coplanar_tol in magnitude
    """

    collinear_tol: float = 0.0
    strict: bool = False
    parallel_tol: float = 1e-12
    coplanar_tol: float = 1e-12


@dataclass(frozen=True)
class P3PInvariants:
    d12: float  # |P2 - P1|
    f_1: float  # f3_t[0] / f3_t[2]
    f_2: float  # f3_t[1] / f3_t[2]
    p_1: float  # P3_n[0]
    p_2: float  # P3_n[1]
    cos_beta: float  # f1 . f2
    b: float  # cot(beta)


def derive_invariants(frames: Frames) -> P3PInvariants:
    f3_t = frames.f3_t
    cos_beta = np.dot(frames.f1, frames.f2)
    b = np.sqrt(1.0 / (1.0 - cos_beta**2) - 1.0)
    if cos_beta < 0:
        b = -b
    return P3PInvariants(
        d12=np.linalg.norm(frames.P2 - frames.P1),
        f_1=f3_t[0] / f3_t[2],
        f_2=f3_t[1] / f3_t[2],
        p_1=frames.P3_n[0],
        p_2=frames.P3_n[1],
        cos_beta=cos_beta,
        b=b,
    )


def quartic_coefficients(inv: P3PInvariants) -> np.ndarray:
    """
    Coefficients (a4, a3, a2, a1, a0) of the quartic in cos(theta)
    (Kneip, Scaramuzza, Siegwart, CVPR 2011, eq. 11).
    """
    f_1, f_2, p_1, p_2, d_12, b = inv.f_1, inv.f_2, inv.p_1, inv.p_2, inv.d12, inv.b

    f_1_pw2 = f_1**2
    f_2_pw2 = f_2**2

    p_1_pw2 = p_1**2
    p_1_pw3 = p_1_pw2 * p_1
    p_1_pw4 = p_1_pw3 * p_1

    p_2_pw2 = p_2**2
    p_2_pw3 = p_2_pw2 * p_2
    p_2_pw4 = p_2_pw3 * p_2

    d_12_pw2 = d_12**2
    b_pw2 = b**2

    factors = np.empty((5,), dtype=np.float64)
    factors[0] = -f_2_pw2 * p_2_pw4 - p_2_pw4 * f_1_pw2 - p_2_pw4
    factors[1] = (
        2.0 * p_2_pw3 * d_12 * b
        + 2.0 * f_2_pw2 * p_2_pw3 * d_12 * b
        - 2.0 * f_2 * p_2_pw3 * f_1 * d_12
    )
    factors[2] = (
        -f_2_pw2 * p_2_pw2 * p_1_pw2
        - f_2_pw2 * p_2_pw2 * d_12_pw2 * b_pw2
        - f_2_pw2 * p_2_pw2 * d_12_pw2
        + f_2_pw2 * p_2_pw4
        + p_2_pw4 * f_1_pw2
        + 2.0 * p_1 * p_2_pw2 * d_12
        + 2.0 * f_1 * f_2 * p_1 * p_2_pw2 * d_12 * b
        - p_2_pw2 * p_1_pw2 * f_1_pw2
        + 2.0 * p_1 * p_2_pw2 * f_2_pw2 * d_12
        - p_2_pw2 * d_12_pw2 * b_pw2
        - 2.0 * p_1_pw2 * p_2_pw2
    )
    factors[3] = (
        2.0 * p_1_pw2 * p_2 * d_12 * b
        + 2.0 * f_2 * p_2_pw3 * f_1 * d_12
        - 2.0 * f_2_pw2 * p_2_pw3 * d_12 * b
        - 2.0 * p_1 * p_2 * d_12_pw2 * b
    )
    factors[4] = (
        -2.0 * f_2 * p_2_pw2 * f_1 * p_1 * d_12 * b
        + f_2_pw2 * p_2_pw2 * d_12_pw2
        + 2.0 * p_1_pw3 * d_12
        - p_1_pw2 * d_12_pw2
        + f_2_pw2 * p_2_pw2 * p_1_pw2
        - p_1_pw4
        - 2.0 * f_2_pw2 * p_2_pw2 * p_1 * d_12
        + p_2_pw2 * f_1_pw2 * p_1_pw2
        + f_2_pw2 * p_2_pw2 * d_12_pw2 * b_pw2
    )
    return factors


def back_substitute(root: float, inv: P3PInvariants, frames: Frames) -> np.ndarray:
    """
    Camera pose [R | C] (3,4) for one root r = cos(theta).

    R maps camera-frame vectors to the world frame, C is the camera center in world coordinates.
    """
    f_1, f_2, p_1, p_2, d_12, b = inv.f_1, inv.f_2, inv.p_1, inv.p_2, inv.d12, inv.b
    root = np.float64(root)

    cot_alpha = (-f_1 * p_1 / f_2 - root * p_2 + d_12 * b) / (-f_1 * root * p_2 / f_2 + p_1 - d_12)

    cos_theta = root
    sin_theta = np.sqrt(1.0 - root**2)
    sin_alpha = np.sqrt(1.0 / (cot_alpha**2 + 1.0))
    cos_alpha = np.sqrt(1.0 - sin_alpha**2)
    if cot_alpha < 0:
        cos_alpha = -cos_alpha

    k = d_12 * (sin_alpha * b + cos_alpha)
    C = np.array(
        [
            cos_alpha * k,
            sin_alpha * cos_theta * k,
            sin_alpha * sin_theta * k,
        ],
        dtype=np.float64,
    )
    C = frames.P1 + frames.N.T @ C

    R = np.array(
        [
            [-cos_alpha, -sin_alpha * cos_theta, -sin_alpha * sin_theta],
            [sin_alpha, -cos_alpha * cos_theta, -cos_alpha * sin_theta],
            [0.0, -sin_theta, cos_theta],
        ],
        dtype=np.float64,
    )
    R = frames.N.T @ R.T @ frames.T

    pose = np.empty((3, 4), dtype=np.float64)
    pose[:, :3] = R
    pose[:, 3] = C
    return pose


def solve_p3p(bearings: np.ndarray, world_points: np.ndarray, config: P3PConfig | None = None) -> list[np.ndarray]:
    """
    Absolute pose of a calibrated camera from three bearing/world-point pairs.

    `bearings` and `world_points` are (3,3) arrays, row i being correspondence i;
    bearings must be unit vectors (they are not renormalized).

    Returns exactly four (3,4) candidates [R | C] (duplicates when roots coincide,
    non-finite entries when a root is not a valid cosine). Raises
    DegenerateInputError for collinear world points.
    """
    cfg = config or P3PConfig()

    with np.errstate(all="ignore"):
        frames = build_frames(bearings, world_points, collinear_tol=cfg.collinear_tol)
        inv = derive_invariants(frames)
        if cfg.strict:
            _check_bearing_geometry(frames, inv, cfg)

        factors = quartic_coefficients(inv)
        logger.debug("quartic coefficients: %s", factors)
        if cfg.strict and (factors[0] == 0 or not np.all(np.isfinite(factors))):
            raise NumericalDegeneracyError("quartic is degenerate (vanishing leading coefficient)")

        roots = solve_quartic(factors)
        poses = [back_substitute(r, inv, frames) for r in roots]

    n_bad = sum(1 for p in poses if not np.all(np.isfinite(p)))
    if n_bad:
        logger.debug("%d of %d candidates are non-finite (roots=%s)", n_bad, len(poses), roots)
    if cfg.strict and n_bad == len(poses):
        raise NumericalDegeneracyError("no finite pose candidate")
    return poses


def _check_bearing_geometry(frames: Frames, inv: P3PInvariants, cfg: P3PConfig) -> None:
    if 1.0 - inv.cos_beta**2 <= cfg.parallel_tol:
        raise NumericalDegeneracyError("bearings 1 and 2 are parallel")
    if not np.all(np.isfinite(frames.f3_t)) or abs(frames.f3_t[2]) <= cfg.coplanar_tol:
        raise NumericalDegeneracyError("bearing 3 lies in the plane of bearings 1 and 2")
