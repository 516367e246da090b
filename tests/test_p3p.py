from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

import p3psolver.api.p3p as p3p_module
from p3psolver.api.p3p import (
    NumericalDegeneracyError,
    P3PConfig,
    derive_invariants,
    quartic_coefficients,
    solve_p3p,
)
from p3psolver.core.frames import DegenerateInputError, build_frames
from p3psolver.core.geometry import bearing_angular_errors, is_valid_pose, rotation_angle_between, split_pose
from p3psolver.eval.oracle import best_candidate_errors
from p3psolver.sim.synthetic import generate_case


def _known_pose_case():
    R = Rotation.from_euler("xyz", [0.1, -0.2, 0.3]).as_matrix()
    C = np.array([0.5, -1.0, 2.0])
    P_cam = np.array([[0.5, 0.2, 4.0], [-0.6, 0.3, 5.0], [0.1, -0.7, 3.5]])
    P_world = P_cam @ R.T + C
    f = (P_world - C) @ R
    f /= np.linalg.norm(f, axis=-1, keepdims=True)
    return f, P_world, R, C


def _closest(poses, R_true, C_true):
    best = None
    best_err = np.inf
    for pose in poses:
        if not np.all(np.isfinite(pose)):
            continue
        R, C = split_pose(pose)
        err = rotation_angle_between(R_true, R) + np.linalg.norm(C - C_true)
        if err < best_err:
            best, best_err = pose, err
    return best


def test_exact_recovery_known_pose():
    f, P, R_true, C_true = _known_pose_case()
    poses = solve_p3p(f, P)
    assert len(poses) == 4
    pose = _closest(poses, R_true, C_true)
    assert pose is not None
    R, C = split_pose(pose)
    assert rotation_angle_between(R_true, R) < 1e-6
    assert np.linalg.norm(C - C_true) < 1e-6


def test_reprojection_of_recovered_pose_matches_bearings():
    f, P, R_true, C_true = _known_pose_case()
    pose = _closest(solve_p3p(f, P), R_true, C_true)
    assert np.max(bearing_angular_errors(pose, P, f)) < 1e-6


@pytest.mark.parametrize("order", [(0, 1, 2), (1, 0, 2), (2, 1, 0), (0, 2, 1), (1, 2, 0), (2, 0, 1)])
def test_recovery_is_independent_of_correspondence_order(order):
    f, P, R_true, C_true = _known_pose_case()
    idx = list(order)
    e_rot, e_trans = best_candidate_errors(solve_p3p(f[idx], P[idx]), R_true, C_true)
    assert e_rot < 1e-6
    assert e_trans < 1e-6


def test_random_cases_recover_truth():
    rng = np.random.default_rng(42)
    n_ok = 0
    trials = 200
    for _ in range(trials):
        case = generate_case(rng)
        poses = solve_p3p(case.bearings, case.world_points)
        assert len(poses) == 4
        e_rot, e_trans = best_candidate_errors(poses, case.R, case.C)
        if e_rot < 1e-5 and e_trans < 1e-5:
            n_ok += 1
    assert n_ok >= 0.95 * trials


def test_finite_candidates_are_proper_rotations():
    rng = np.random.default_rng(7)
    for _ in range(100):
        case = generate_case(rng)
        for pose in solve_p3p(case.bearings, case.world_points):
            if np.all(np.isfinite(pose)):
                assert is_valid_pose(pose, tol=1e-9)


def test_collinear_world_points_raise_regardless_of_bearings():
    rng = np.random.default_rng(3)
    P = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    for _ in range(5):
        f = rng.normal(size=(3, 3))
        f /= np.linalg.norm(f, axis=-1, keepdims=True)
        with pytest.raises(DegenerateInputError):
            solve_p3p(f, P)


def test_collinear_tol_from_config():
    f, P, _R, _C = _known_pose_case()
    P_flat = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 1e-9, 0.0]])
    assert len(solve_p3p(f, P_flat)) == 4
    with pytest.raises(DegenerateInputError):
        solve_p3p(f, P_flat, config=P3PConfig(collinear_tol=1e-6))
    assert len(solve_p3p(f, P, config=P3PConfig(collinear_tol=1e-6))) == 4


def test_parallel_rays_propagate_non_finite_by_default():
    f, P, _R, _C = _known_pose_case()
    f = f.copy()
    f[1] = f[0]
    poses = solve_p3p(f, P)
    assert len(poses) == 4
    assert all(not np.all(np.isfinite(p)) for p in poses)


def test_parallel_rays_raise_in_strict_mode():
    f, P, _R, _C = _known_pose_case()
    f = f.copy()
    f[1] = f[0]
    with pytest.raises(NumericalDegeneracyError):
        solve_p3p(f, P, config=P3PConfig(strict=True))


def test_coplanar_third_ray_raises_in_strict_mode():
    f, P, _R, _C = _known_pose_case()
    f = f.copy()
    f[2] = f[0] + f[1]
    f[2] /= np.linalg.norm(f[2])
    with pytest.raises(NumericalDegeneracyError):
        solve_p3p(f, P, config=P3PConfig(strict=True))


def test_strict_mode_keeps_four_slots_on_regular_input():
    f, P, R_true, C_true = _known_pose_case()
    poses = solve_p3p(f, P, config=P3PConfig(strict=True))
    assert len(poses) == 4
    e_rot, e_trans = best_candidate_errors(poses, R_true, C_true)
    assert e_rot < 1e-6 and e_trans < 1e-6


def test_quartic_vanishes_at_true_cos_theta():
    f, P, R_true, C_true = _known_pose_case()
    frames = build_frames(f, P)
    factors = quartic_coefficients(derive_invariants(frames))
    # cos(theta) of the true pose can be read off the third row of the intermediate rotation
    R_int = (frames.N @ R_true @ frames.T.T).T
    cos_theta = R_int[2, 2]
    value = np.polyval(factors, cos_theta)
    assert abs(value) < 1e-8 * np.max(np.abs(factors))


def test_solver_is_reentrant():
    rng = np.random.default_rng(11)
    cases = [generate_case(rng) for _ in range(32)]
    expected = [solve_p3p(c.bearings, c.world_points) for c in cases]
    with ThreadPoolExecutor(max_workers=4) as pool:
        got = list(pool.map(lambda c: solve_p3p(c.bearings, c.world_points), cases))
    for a, b in zip(expected, got):
        for pa, pb in zip(a, b):
            assert np.array_equal(pa, pb, equal_nan=True)


def test_inputs_are_not_modified():
    f, P, _R, _C = _known_pose_case()
    f0, P0 = f.copy(), P.copy()
    solve_p3p(f, P)
    assert np.array_equal(f, f0)
    assert np.array_equal(P, P0)


def test_vanishing_leading_coefficient():
    f, _P, _R, _C = _known_pose_case()
    # p_2**4 underflows to zero while the points still pass the collinearity check
    P = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 1e-100, 0.0]])
    poses = solve_p3p(f, P)
    assert len(poses) == 4
    assert all(not np.all(np.isfinite(p)) for p in poses)
    with pytest.raises(NumericalDegeneracyError, match="leading coefficient"):
        solve_p3p(f, P, config=P3PConfig(strict=True))


def test_no_finite_candidate_raises_in_strict_mode(monkeypatch):
    f, P, _R, _C = _known_pose_case()
    # roots outside [-1, 1] are not valid cosines, every candidate becomes nan
    monkeypatch.setattr(p3p_module, "solve_quartic", lambda factors: np.full(4, 2.0))
    poses = solve_p3p(f, P)
    assert len(poses) == 4
    assert all(not np.all(np.isfinite(p)) for p in poses)
    with pytest.raises(NumericalDegeneracyError, match="no finite pose candidate"):
        solve_p3p(f, P, config=P3PConfig(strict=True))
