from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from p3psolver.core.geometry import bearings_from_points, normalize_rows
from p3psolver.problem import P3PProblem, PoseTruth, save_problem


@dataclass(frozen=True)
class SyntheticCase:
    """
    One P3P instance with known pose.

    R maps camera -> world, C is the camera center: X_world = R X_cam + C.
    """

    bearings: np.ndarray  # (3,3)
    world_points: np.ndarray  # (3,3)
    R: np.ndarray  # (3,3)
    C: np.ndarray  # (3,)

    def to_problem(self) -> P3PProblem:
        return P3PProblem(
            bearings=self.bearings,
            world_points=self.world_points,
            truth=PoseTruth(R=self.R, C=self.C),
        )


def _perturb_bearings(rng: np.random.Generator, bearings: np.ndarray, noise_deg: float) -> np.ndarray:
    # Rotate each bearing by a small random angle about a random perpendicular axis.
    sigma = np.deg2rad(float(noise_deg))
    out = []
    for f in bearings:
        axis = np.cross(f, rng.normal(size=3))
        axis /= np.linalg.norm(axis)
        angle = rng.normal(scale=sigma)
        out.append(np.cos(angle) * f + np.sin(angle) * axis)
    return normalize_rows(np.asarray(out))


def generate_case(
    rng: np.random.Generator,
    depth_range: tuple[float, float] = (2.0, 10.0),
    half_fov_deg: float = 30.0,
    center_scale: float = 5.0,
    noise_deg: float = 0.0,
    min_area: float = 1e-2,
) -> SyntheticCase:
    """
    Draw a random camera pose and three points inside its field of view.

    `min_area` rejects nearly collinear triplets (|(P2-P1) x (P3-P1)| below it).
    """
    from scipy.spatial.transform import Rotation  # type: ignore

    # normalized Gaussian quaternion: uniform on SO(3)
    R = Rotation.from_quat(rng.normal(size=4)).as_matrix()
    C = rng.uniform(-center_scale, center_scale, size=3)

    t = np.tan(np.deg2rad(float(half_fov_deg)))
    while True:
        z = rng.uniform(depth_range[0], depth_range[1], size=3)
        xy = rng.uniform(-t, t, size=(3, 2)) * z[:, None]
        P_cam = np.column_stack([xy, z])
        if np.linalg.norm(np.cross(P_cam[1] - P_cam[0], P_cam[2] - P_cam[0])) >= min_area:
            break

    world_points = P_cam @ R.T + C[None, :]
    bearings = bearings_from_points(P_cam)
    if noise_deg > 0:
        bearings = _perturb_bearings(rng, bearings, noise_deg)
    return SyntheticCase(bearings=bearings, world_points=world_points, R=R, C=C)


def generate_problem_file(out_path: Path, seed: int = 0, noise_deg: float = 0.0) -> Path:
    rng = np.random.default_rng(seed)
    case = generate_case(rng, noise_deg=noise_deg)
    return save_problem(out_path, case.to_problem())
