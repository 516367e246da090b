"""
P3P API demo: minimal RANSAC around `solve_p3p`.

This script is meant to be:
- readable (heavily commented),
- runnable (no hidden imports, synthetic data only).

It does:
1) draw a random camera and N world points in its field of view,
2) corrupt a fraction of the bearing vectors (outliers),
3) run a RANSAC loop: 3 random correspondences -> 4 P3P candidates,
   each candidate scored by the angular error on all correspondences,
4) compare the best hypothesis to the ground truth.

Candidate selection and outlier rejection live here, on the caller side:
the solver only returns the four algebraic candidates.
"""

from __future__ import annotations

import argparse
import json

import numpy as np

from p3psolver import DegenerateInputError, solve_p3p
from p3psolver.core.geometry import bearing_angular_errors, finite_candidates, is_valid_pose, rotation_angle_between, split_pose


def make_scene(rng: np.random.Generator, n: int, outlier_ratio: float) -> dict[str, np.ndarray]:
    from scipy.spatial.transform import Rotation

    R = Rotation.from_quat(rng.normal(size=4)).as_matrix()
    C = rng.uniform(-2.0, 2.0, size=3)

    z = rng.uniform(3.0, 12.0, size=n)
    xy = rng.uniform(-0.5, 0.5, size=(n, 2)) * z[:, None]
    P_cam = np.column_stack([xy, z])
    P_world = P_cam @ R.T + C

    f = P_cam / np.linalg.norm(P_cam, axis=-1, keepdims=True)
    outliers = rng.uniform(size=n) < outlier_ratio
    junk = rng.normal(size=(int(outliers.sum()), 3))
    junk[:, 2] = np.abs(junk[:, 2]) + 1.0
    f[outliers] = junk / np.linalg.norm(junk, axis=-1, keepdims=True)
    return {"R": R, "C": C, "bearings": f, "world_points": P_world, "outliers": outliers}


def ransac_p3p(
    rng: np.random.Generator,
    bearings: np.ndarray,
    world_points: np.ndarray,
    iters: int = 200,
    thresh_rad: float = 1e-3,
) -> tuple[np.ndarray | None, np.ndarray]:
    n = bearings.shape[0]
    best_pose = None
    best_inliers = np.zeros((n,), dtype=bool)
    for _ in range(int(iters)):
        idx = rng.choice(n, size=3, replace=False)
        try:
            poses = solve_p3p(bearings[idx], world_points[idx])
        except DegenerateInputError:
            continue

        # The four candidates are unverified: drop non-finite ones and score the rest.
        for pose in finite_candidates(poses):
            if not is_valid_pose(pose):
                continue
            err = bearing_angular_errors(pose, world_points, bearings)
            inliers = err < thresh_rad
            if inliers.sum() > best_inliers.sum():
                best_pose, best_inliers = pose, inliers
    return best_pose, best_inliers


def main() -> int:
    ap = argparse.ArgumentParser(description="Minimal RANSAC + P3P demo on synthetic data.")
    ap.add_argument("--points", type=int, default=100)
    ap.add_argument("--outlier-ratio", type=float, default=0.3)
    ap.add_argument("--iters", type=int, default=200)
    ap.add_argument("--seed", type=int, default=0)
    args = ap.parse_args()

    rng = np.random.default_rng(args.seed)
    scene = make_scene(rng, args.points, args.outlier_ratio)

    pose, inliers = ransac_p3p(rng, scene["bearings"], scene["world_points"], iters=args.iters)
    if pose is None:
        print("No valid hypothesis.")
        return 1

    R, C = split_pose(pose)
    report = {
        "n_points": int(args.points),
        "n_outliers_true": int(scene["outliers"].sum()),
        "n_inliers_found": int(inliers.sum()),
        "rot_err_rad": rotation_angle_between(scene["R"], R),
        "center_err": float(np.linalg.norm(C - scene["C"])),
    }
    print(json.dumps(report, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
