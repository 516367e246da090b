from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from p3psolver.core.geometry import compose_pose, is_valid_pose, split_pose

SCHEMA_VERSION = "p3psolver.poses.v0"


def _to_float_matrix(x: Any, shape: tuple[int, ...]) -> np.ndarray:
    # null entries (non-finite values) load as nan
    x = np.array(x, dtype=np.float64)
    return x.reshape(shape)


def json_safe_list(x: np.ndarray) -> list:
    x = np.asarray(x, dtype=np.float64)
    return np.where(np.isfinite(x), x, None).tolist()


def save_pose_candidates(path: Path, poses: list[np.ndarray]) -> Path:
    """
    Save P3P candidates as JSON:

      {"schema_version": ..., "candidates": [{"R": 3x3, "C": 3, "valid": bool}, ...]}

    Non-finite entries are written as null so the file stays strict JSON.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    candidates: list[dict[str, Any]] = []
    for pose in poses:
        R, C = split_pose(pose)
        candidates.append({"R": json_safe_list(R), "C": json_safe_list(C), "valid": bool(is_valid_pose(pose))})

    meta = {"schema_version": SCHEMA_VERSION, "candidates": candidates}
    path.write_text(json.dumps(meta, indent=2, sort_keys=True), encoding="utf-8")
    return path


def load_pose_candidates(path: Path) -> list[np.ndarray]:
    meta = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(meta, dict) or str(meta.get("schema_version")) != SCHEMA_VERSION:
        raise ValueError("unsupported pose file schema")
    candidates = meta.get("candidates")
    if not isinstance(candidates, list):
        raise ValueError("pose file must contain a 'candidates' list")

    poses: list[np.ndarray] = []
    for i, c in enumerate(candidates):
        try:
            R = _to_float_matrix(c["R"], (3, 3))
            C = _to_float_matrix(c["C"], (3,))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"candidate {i} must have R (3x3) and C (3)") from e
        poses.append(compose_pose(R, C))
    return poses
