from __future__ import annotations


def test_public_api_exports() -> None:
    import p3psolver as ps

    assert hasattr(ps, "solve_p3p")
    assert hasattr(ps, "P3PConfig")
    assert hasattr(ps, "DegenerateInputError")
    assert hasattr(ps, "NumericalDegeneracyError")
    assert hasattr(ps, "load_pose_candidates")
    assert hasattr(ps, "save_pose_candidates")
