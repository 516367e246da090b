from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def normalize_rows(v: np.ndarray) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    return v / np.linalg.norm(v, axis=-1, keepdims=True)


def bearings_from_points(points_cam: np.ndarray) -> np.ndarray:
    """Unit bearing vectors pointing from the camera center to camera-frame points (N,3)."""
    return normalize_rows(np.asarray(points_cam, dtype=np.float64).reshape(-1, 3))


@dataclass(frozen=True)
class PinholeCamera:
    fx: float
    fy: float
    cx: float
    cy: float

    def bearings_from_pixels(self, uv_px: np.ndarray) -> np.ndarray:
        """
        Unit rays (N,3) from pixel coordinates (N,2), camera frame: x right, y down, z forward.
        """
        uv_px = np.asarray(uv_px, dtype=np.float64).reshape(-1, 2)
        x = (uv_px[:, 0] - self.cx) / self.fx
        y = (uv_px[:, 1] - self.cy) / self.fy
        dirs = np.stack([x, y, np.ones_like(x)], axis=-1)
        return normalize_rows(dirs)

    def project(self, points_cam: np.ndarray) -> np.ndarray:
        """Pixel coordinates (N,2) of camera-frame points (N,3)."""
        p = np.asarray(points_cam, dtype=np.float64).reshape(-1, 3)
        u = self.fx * p[:, 0] / p[:, 2] + self.cx
        v = self.fy * p[:, 1] / p[:, 2] + self.cy
        return np.stack([u, v], axis=-1)


def compose_pose(R: np.ndarray, C: np.ndarray) -> np.ndarray:
    pose = np.empty((3, 4), dtype=np.float64)
    pose[:, :3] = np.asarray(R, dtype=np.float64).reshape(3, 3)
    pose[:, 3] = np.asarray(C, dtype=np.float64).reshape(3)
    return pose


def split_pose(pose: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    pose = np.asarray(pose, dtype=np.float64).reshape(3, 4)
    return pose[:, :3].copy(), pose[:, 3].copy()


def world_to_camera(pose: np.ndarray, points_world: np.ndarray) -> np.ndarray:
    """
    Map world points (N,3) into the camera frame of a pose [R | C].

    R maps camera -> world and C is the camera center, so X_cam = R^T (X_world - C).
    """
    R, C = split_pose(pose)
    P = np.asarray(points_world, dtype=np.float64).reshape(-1, 3)
    return (P - C[None, :]) @ R


def bearing_angular_errors(pose: np.ndarray, points_world: np.ndarray, bearings: np.ndarray) -> np.ndarray:
    """Angle (rad) between observed bearings and the bearings predicted by `pose`, per point."""
    pred = bearings_from_points(world_to_camera(pose, points_world))
    obs = normalize_rows(np.asarray(bearings, dtype=np.float64).reshape(-1, 3))
    return np.arctan2(np.linalg.norm(np.cross(pred, obs), axis=-1), np.sum(pred * obs, axis=-1))


def rotation_angle_between(R1: np.ndarray, R2: np.ndarray) -> float:
    """Geodesic distance (rad) between two rotation matrices."""
    from scipy.spatial.transform import Rotation  # type: ignore

    R1 = np.asarray(R1, dtype=np.float64).reshape(3, 3)
    R2 = np.asarray(R2, dtype=np.float64).reshape(3, 3)
    return float(Rotation.from_matrix(R1.T @ R2).magnitude())


def is_valid_pose(pose: np.ndarray, tol: float = 1e-6) -> bool:
    """True when the pose is finite and its rotation block is orthonormal with det +1."""
    pose = np.asarray(pose, dtype=np.float64)
    if pose.shape != (3, 4) or not np.all(np.isfinite(pose)):
        return False
    R = pose[:, :3]
    if np.max(np.abs(R @ R.T - np.eye(3))) > tol:
        return False
    return abs(float(np.linalg.det(R)) - 1.0) <= tol


def finite_candidates(poses: list[np.ndarray]) -> list[np.ndarray]:
    return [p for p in poses if np.all(np.isfinite(p))]
