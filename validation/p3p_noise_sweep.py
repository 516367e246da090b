"""
Sanity check of the P3P solver under bearing noise.

For each noise level, runs the oracle evaluation (random synthetic cases with
known pose) and prints the best-candidate rotation / camera-center errors.
Errors should grow roughly linearly with the noise level, and the noise-free
row should sit at floating-point precision.
"""
from __future__ import annotations

import numpy as np

from p3psolver.api.p3p import P3PConfig
from p3psolver.eval.oracle import eval_oracle


def main():
    levels_deg = [0.0, 1e-4, 1e-3, 1e-2, 1e-1]
    trials = 2000
    print(f"{'noise_deg':>10} {'rot_p50':>10} {'rot_p95':>10} {'C_p50':>10} {'C_p95':>10} {'degenerate':>10}")
    for noise in levels_deg:
        stats = eval_oracle(
            trials=trials,
            seed=0,
            noise_deg=noise,
            tol_rot=np.inf,
            tol_trans=np.inf,
            config=P3PConfig(strict=True),
        )
        rot = stats["rot_err_rad"]
        cen = stats["center_err"]
        print(
            f"{noise:10.1e} {rot['p50']:10.2e} {rot['p95']:10.2e} "
            f"{cen['p50']:10.2e} {cen['p95']:10.2e} {stats['n_degenerate']:10d}"
        )


if __name__ == "__main__":
    main()
