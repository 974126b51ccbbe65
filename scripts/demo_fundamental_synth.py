import logging

import numpy as np

from orsacv.ransac.types import points_to_matches
from orsacv.estimation import build_estimator, error_statistics, orsa_fundamental, ransac_fundamental


def _rotation_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def _skew(t: np.ndarray) -> np.ndarray:
    return np.array([[0.0, -t[2], t[1]], [t[2], 0.0, -t[0]], [-t[1], t[0], 0.0]])


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    rng = np.random.default_rng(0)

    w, h = 1000, 800
    K = np.array([[900.0, 0.0, w / 2], [0.0, 900.0, h / 2], [0.0, 0.0, 1.0]])
    R = _rotation_y(-0.1)
    t = np.array([1.0, 0.1, 0.2])

    # True fundamental matrix: x2^T F x1 = 0
    K_inv = np.linalg.inv(K)
    F_true = K_inv.T @ _skew(t) @ R @ K_inv
    F_true /= np.linalg.norm(F_true)

    # Generate inlier points (3D scene seen by both cameras)
    n_in = 200
    X = rng.uniform([-4.0, -3.0, 10.0], [4.0, 3.0, 20.0], size=(n_in, 3))
    x1 = X @ K.T
    x1 = x1[:, :2] / x1[:, 2:3]
    x2 = (X @ R.T + t) @ K.T
    x2 = x2[:, :2] / x2[:, 2:3]

    # Add Gaussian noise (pixel noise)
    x2 += rng.normal(0.0, 1.0, size=x2.shape)

    # Add outliers (wrong matches)
    n_out = 100
    o1 = rng.uniform([0, 0], [w, h], size=(n_out, 2))
    o2 = rng.uniform([0, 0], [w, h], size=(n_out, 2))

    matches = points_to_matches(np.vstack([x1, o1]), np.vstack([x2, o2]))

    print("F_true:\n", F_true)

    res = orsa_fundamental(matches, w, h, w, h, seed=42)
    if not res.ok:
        print("ORSA failed.")
    else:
        est = build_estimator(matches, (w, h), (w, h))
        stats = error_statistics(est, res.model, res.inliers)
        print("F_orsa:\n", res.model)
        print("num_inliers:", res.num_inliers, "/", len(matches))
        print(f"precision: {res.threshold:.3f}px  log10(NFA): {res.log_nfa:.1f}")
        print(f"rms/max error: {stats.rms:.3f}/{stats.max:.3f}px  refined: {res.refined}")
        print("iterations:", res.iterations)

    res = ransac_fundamental(matches, w, h, w, h, 3.0, seed=42)
    if res.model is None:
        print("RANSAC failed.")
        return

    print("F_ransac:\n", res.model)
    print("num_inliers:", res.num_inliers, "/", len(matches))
    print("iterations:", res.iterations)


if __name__ == "__main__":
    main()
