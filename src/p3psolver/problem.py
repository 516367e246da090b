from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

SCHEMA_VERSION = "p3psolver.problem.v0"


class ProblemValidationError(ValueError):
    pass


@dataclass(frozen=True)
class PoseTruth:
    R: np.ndarray  # (3,3) camera -> world
    C: np.ndarray  # (3,) camera center, world frame


@dataclass(frozen=True)
class P3PProblem:
    bearings: np.ndarray  # (3,3), one unit vector per row
    world_points: np.ndarray  # (3,3), one point per row
    truth: PoseTruth | None = None


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ProblemValidationError(msg)


def _matrix(raw: Any, shape: tuple[int, ...], name: str) -> np.ndarray:
    _require(raw is not None, f"{name} is required")
    try:
        x = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ProblemValidationError(f"{name} must be numeric") from e
    _require(x.shape == shape, f"{name} must have shape {list(shape)} (got {list(x.shape)})")
    _require(bool(np.all(np.isfinite(x))), f"{name} must be finite")
    return x


def load_problem(path: Path) -> P3PProblem:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_problem(data)


def parse_problem(data: dict[str, Any]) -> P3PProblem:
    _require(isinstance(data, dict), "problem must be a JSON object")
    schema_version = data.get("schema_version")
    _require(schema_version == SCHEMA_VERSION, f"schema_version must be {SCHEMA_VERSION}")

    bearings = _matrix(data.get("bearings"), (3, 3), "bearings")
    world_points = _matrix(data.get("world_points"), (3, 3), "world_points")

    unit_tol = float(data.get("unit_tol", 1e-6))
    _require(unit_tol > 0.0, "unit_tol must be > 0")
    norms = np.linalg.norm(bearings, axis=-1)
    _require(
        bool(np.all(np.abs(norms - 1.0) <= unit_tol)),
        f"bearings must be unit vectors (norms {norms.tolist()})",
    )

    truth = None
    raw_truth = data.get("truth")
    if raw_truth is not None:
        _require(isinstance(raw_truth, dict), "truth must be an object with R and C")
        truth = PoseTruth(R=_matrix(raw_truth.get("R"), (3, 3), "truth.R"), C=_matrix(raw_truth.get("C"), (3,), "truth.C"))

    return P3PProblem(bearings=bearings, world_points=world_points, truth=truth)


def problem_to_dict(problem: P3PProblem) -> dict[str, Any]:
    out: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "bearings": np.asarray(problem.bearings, dtype=np.float64).tolist(),
        "world_points": np.asarray(problem.world_points, dtype=np.float64).tolist(),
    }
    if problem.truth is not None:
        out["truth"] = {
            "R": np.asarray(problem.truth.R, dtype=np.float64).tolist(),
            "C": np.asarray(problem.truth.C, dtype=np.float64).reshape(3).tolist(),
        }
    return out


def save_problem(path: Path, problem: P3PProblem) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(problem_to_dict(problem), indent=2, sort_keys=True), encoding="utf-8")
    return path
