from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from p3psolver.api.p3p import NumericalDegeneracyError, P3PConfig, solve_p3p
from p3psolver.api.pose_io import json_safe_list, save_pose_candidates
from p3psolver.core.frames import DegenerateInputError
from p3psolver.core.geometry import is_valid_pose, split_pose
from p3psolver.eval.oracle import eval_oracle, pose_errors, print_oracle_report
from p3psolver.problem import ProblemValidationError, load_problem
from p3psolver.sim.synthetic import generate_problem_file

EXIT_INVALID = 1
EXIT_DEGENERATE = 2


def _config_from_args(args: argparse.Namespace) -> P3PConfig:
    return P3PConfig(collinear_tol=float(args.collinear_tol), strict=bool(args.strict))


def run_solve(problem_path: Path, config: P3PConfig, out: Path | None = None) -> int:
    try:
        problem = load_problem(problem_path)
    except (ProblemValidationError, json.JSONDecodeError) as e:
        print(json.dumps({"status": "invalid", "reason": str(e)}))
        return EXIT_INVALID
    try:
        poses = solve_p3p(problem.bearings, problem.world_points, config=config)
    except (DegenerateInputError, NumericalDegeneracyError) as e:
        print(json.dumps({"status": "degenerate", "reason": str(e)}))
        return EXIT_DEGENERATE

    report: dict[str, object] = {"status": "ok", "candidates": []}
    for pose in poses:
        R, C = split_pose(pose)
        report["candidates"].append(
            {"R": json_safe_list(R), "C": json_safe_list(C), "valid": bool(is_valid_pose(pose))}
        )
    if problem.truth is not None:
        rot_err, trans_err = pose_errors(poses, problem.truth.R, problem.truth.C)
        report["truth_rot_err_rad"] = json_safe_list(rot_err)
        report["truth_center_err"] = json_safe_list(trans_err)
    print(json.dumps(report, indent=2, sort_keys=True))

    if out is not None:
        save_pose_candidates(out, poses)
        print(f"Wrote {out}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="p3psolver")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate-problem", help="Write a synthetic P3P problem (with ground truth) as JSON.")
    gen.add_argument("--out", type=Path, required=True)
    gen.add_argument("--seed", type=int, default=0)
    gen.add_argument("--noise-deg", type=float, default=0.0, help="Bearing noise (std, degrees).")

    solve = sub.add_parser("solve", help="Solve a P3P problem file and print the four candidate poses.")
    solve.add_argument("problem", type=Path)
    solve.add_argument("--out", type=Path, default=None, help="Also write the candidates to a JSON file.")
    solve.add_argument("--collinear-tol", type=float, default=0.0)
    solve.add_argument("--strict", action="store_true", help="Report numerical degeneracies instead of nan poses.")

    oracle = sub.add_parser("eval-oracle", help="Solver accuracy on random synthetic cases with known pose.")
    oracle.add_argument("--trials", type=int, default=1000)
    oracle.add_argument("--seed", type=int, default=0)
    oracle.add_argument("--noise-deg", type=float, default=0.0)
    oracle.add_argument("--tol-rot", type=float, default=1e-6, help="Rotation tolerance (rad).")
    oracle.add_argument("--tol-trans", type=float, default=1e-6, help="Camera-center tolerance (world units).")
    oracle.add_argument("--collinear-tol", type=float, default=0.0)
    oracle.add_argument("--strict", action="store_true")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.cmd == "generate-problem":
        path = generate_problem_file(args.out, seed=args.seed, noise_deg=args.noise_deg)
        print(f"Wrote {path}")
        return 0

    if args.cmd == "solve":
        return run_solve(args.problem, _config_from_args(args), out=args.out)

    if args.cmd == "eval-oracle":
        stats = eval_oracle(
            trials=args.trials,
            seed=args.seed,
            noise_deg=args.noise_deg,
            tol_rot=args.tol_rot,
            tol_trans=args.tol_trans,
            config=_config_from_args(args),
        )
        print_oracle_report(stats)
        return 0

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
