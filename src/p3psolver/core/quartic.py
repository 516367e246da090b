from __future__ import annotations

import numpy as np


def depress_quartic(A: float, B: float, C: float, D: float, E: float) -> tuple[float, float, float]:
    """
    Coefficients (alpha, beta, gamma) of the depressed quartic

      u^4 + alpha u^2 + beta u + gamma = 0,   x = u - B / (4A)
    """
    A_pw2 = A * A
    B_pw2 = B * B
    A_pw3 = A_pw2 * A
    B_pw3 = B_pw2 * B
    A_pw4 = A_pw3 * A
    B_pw4 = B_pw3 * B

    alpha = -3.0 * B_pw2 / (8.0 * A_pw2) + C / A
    beta = B_pw3 / (8.0 * A_pw3) - B * C / (2.0 * A_pw2) + D / A
    gamma = -3.0 * B_pw4 / (256.0 * A_pw4) + B_pw2 * C / (16.0 * A_pw3) - B * D / (4.0 * A_pw2) + E / A
    return alpha, beta, gamma


def solve_quartic(factors: np.ndarray) -> np.ndarray:
    """
    Roots of A x^4 + B x^3 + C x^2 + D x + E (Ferrari, resolvent cubic).

    Intermediates are complex; the real parts of the four roots are returned,
    in the order (+w, +), (+w, -), (-w, +), (-w, -). The imaginary parts are
    dropped, so complex-conjugate root pairs show up as their common real part.
    """
    factors = np.asarray(factors, dtype=np.float64).reshape(5)
    A, B, C, D, E = (factors[i] for i in range(5))

    alpha, beta, gamma = depress_quartic(A, B, C, D, E)
    alpha_pw2 = alpha * alpha
    alpha_pw3 = alpha_pw2 * alpha

    P = np.complex128(-alpha_pw2 / 12.0 - gamma)
    Q = np.complex128(-alpha_pw3 / 108.0 + alpha * gamma / 3.0 - beta * beta / 8.0)
    R = -Q / 2.0 + np.sqrt(Q**2 / 4.0 + P**3 / 27.0)

    U = R ** (1.0 / 3.0)
    if U.real == 0:
        y = -5.0 * alpha / 6.0 - Q ** (1.0 / 3.0)
    else:
        y = -5.0 * alpha / 6.0 - P / (3.0 * U) + U

    w = np.sqrt(alpha + 2.0 * y)
    shift = -B / (4.0 * A)
    s_plus = np.sqrt(-(3.0 * alpha + 2.0 * y + 2.0 * beta / w))
    s_minus = np.sqrt(-(3.0 * alpha + 2.0 * y - 2.0 * beta / w))

    roots = np.array(
        [
            shift + 0.5 * (w + s_plus),
            shift + 0.5 * (w - s_plus),
            shift + 0.5 * (-w + s_minus),
            shift + 0.5 * (-w - s_minus),
        ],
        dtype=np.complex128,
    )
    return roots.real.copy()
