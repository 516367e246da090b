from __future__ import annotations

import json
import logging

import numpy as np

from p3psolver.api.p3p import NumericalDegeneracyError, P3PConfig, solve_p3p
from p3psolver.core.frames import DegenerateInputError
from p3psolver.core.geometry import rotation_angle_between, split_pose
from p3psolver.sim.synthetic import generate_case

logger = logging.getLogger(__name__)


def pose_errors(poses: list[np.ndarray], R_true: np.ndarray, C_true: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Rotation error (rad) and camera-center error per candidate; nan for non-finite candidates.
    """
    C_true = np.asarray(C_true, dtype=np.float64).reshape(3)
    rot_err = np.full((len(poses),), np.nan, dtype=np.float64)
    trans_err = np.full((len(poses),), np.nan, dtype=np.float64)
    for i, pose in enumerate(poses):
        if not np.all(np.isfinite(pose)):
            continue
        R, C = split_pose(pose)
        rot_err[i] = rotation_angle_between(R_true, R)
        trans_err[i] = float(np.linalg.norm(C - C_true))
    return rot_err, trans_err


def best_candidate_errors(
    poses: list[np.ndarray], R_true: np.ndarray, C_true: np.ndarray
) -> tuple[float, float]:
    """Errors of the candidate closest to the ground truth (rotation error + center error)."""
    rot_err, trans_err = pose_errors(poses, R_true, C_true)
    score = rot_err + trans_err
    if not np.any(np.isfinite(score)):
        return float("nan"), float("nan")
    i = int(np.nanargmin(score))
    return float(rot_err[i]), float(trans_err[i])


def _summary(vals: list[float]) -> dict[str, float]:
    v = np.asarray(vals, dtype=np.float64)
    v = v[np.isfinite(v)]
    if v.size == 0:
        return {"p50": float("nan"), "p95": float("nan"), "max": float("nan")}
    return {
        "p50": float(np.quantile(v, 0.50)),
        "p95": float(np.quantile(v, 0.95)),
        "max": float(np.max(v)),
    }


def eval_oracle(
    trials: int = 1000,
    seed: int = 0,
    noise_deg: float = 0.0,
    tol_rot: float = 1e-6,
    tol_trans: float = 1e-6,
    config: P3PConfig | None = None,
) -> dict[str, object]:
    """
    Run the solver on random synthetic cases with known pose.

    A trial succeeds when one of the four candidates is within (tol_rot, tol_trans)
    of the ground truth.
    """
    if trials <= 0:
        raise ValueError("trials must be > 0")
    rng = np.random.default_rng(seed)

    n_success = 0
    n_degenerate = 0
    n_nonfinite = 0
    rot_best: list[float] = []
    trans_best: list[float] = []
    for _ in range(int(trials)):
        case = generate_case(rng, noise_deg=noise_deg)
        try:
            poses = solve_p3p(case.bearings, case.world_points, config=config)
        except (DegenerateInputError, NumericalDegeneracyError) as e:
            logger.debug("trial rejected: %s", e)
            n_degenerate += 1
            continue
        n_nonfinite += sum(1 for p in poses if not np.all(np.isfinite(p)))
        e_rot, e_trans = best_candidate_errors(poses, case.R, case.C)
        rot_best.append(e_rot)
        trans_best.append(e_trans)
        if e_rot <= tol_rot and e_trans <= tol_trans:
            n_success += 1

    return {
        "trials": int(trials),
        "seed": int(seed),
        "noise_deg": float(noise_deg),
        "success_rate": n_success / float(trials),
        "n_degenerate": int(n_degenerate),
        "n_nonfinite_candidates": int(n_nonfinite),
        "rot_err_rad": _summary(rot_best),
        "center_err": _summary(trans_best),
    }


def print_oracle_report(stats: dict[str, object]) -> None:
    print(json.dumps(stats, indent=2, sort_keys=True))
