import numpy as np

from p3psolver.core.quartic import depress_quartic, solve_quartic


def _coeffs_from_roots(roots, scale=1.0):
    return scale * np.real(np.poly(np.asarray(roots, dtype=np.complex128)))


def test_four_real_roots():
    roots = [1.0, 2.0, -0.5, 0.3]
    found = solve_quartic(_coeffs_from_roots(roots, scale=-2.5))
    assert found.shape == (4,)
    assert np.max(np.abs(np.sort(found) - np.sort(roots))) < 1e-8


def test_complex_pair_returns_real_parts():
    roots = [0.9, -0.4, 0.2 + 0.7j, 0.2 - 0.7j]
    found = solve_quartic(_coeffs_from_roots(roots, scale=3.0))
    assert np.max(np.abs(np.sort(found) - np.array([-0.4, 0.2, 0.2, 0.9]))) < 1e-8


def test_random_real_roots_within_unit_interval():
    rng = np.random.default_rng(0)
    for _ in range(100):
        roots = rng.uniform(-1.0, 1.0, size=4)
        if np.min(np.diff(np.sort(roots))) < 0.05:
            continue
        found = solve_quartic(_coeffs_from_roots(roots, scale=rng.uniform(0.5, 5.0)))
        assert np.max(np.abs(np.sort(found) - np.sort(roots))) < 1e-5


def test_depressed_quartic_has_shifted_roots():
    roots = np.array([1.5, -0.7, 0.25, -2.0])
    A, B, C, D, E = _coeffs_from_roots(roots, scale=1.7)
    alpha, beta, gamma = depress_quartic(A, B, C, D, E)
    u = roots + B / (4.0 * A)
    residual = u**4 + alpha * u**2 + beta * u + gamma
    assert np.max(np.abs(residual)) < 1e-10


def test_vanishing_leading_coefficient_still_returns_four_values():
    with np.errstate(all="ignore"):
        found = solve_quartic(np.array([0.0, 1.0, -2.0, 0.5, 0.1]))
    assert found.shape == (4,)
    assert not np.all(np.isfinite(found))
