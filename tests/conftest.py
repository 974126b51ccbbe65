"""
Synthetic two-view data shared by the tests.
"""

from dataclasses import dataclass

import numpy as np
import pytest

WIDTH, HEIGHT = 1000, 800


def rotation(ax: float, ay: float, az: float) -> np.ndarray:
    cx, sx = np.cos(ax), np.sin(ax)
    cy, sy = np.cos(ay), np.sin(ay)
    cz, sz = np.cos(az), np.sin(az)
    Rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    Ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    Rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return Rz @ Ry @ Rx


def skew(t: np.ndarray) -> np.ndarray:
    return np.array([[0, -t[2], t[1]], [t[2], 0, -t[0]], [-t[1], t[0], 0]], dtype=np.float64)


@dataclass
class TwoViewData:
    pts1: np.ndarray        # (N,2)
    pts2: np.ndarray        # (N,2)
    is_inlier: np.ndarray   # (N,) bool
    F: np.ndarray           # ground truth, unit norm, x2^T F x1 = 0
    size: tuple = (WIDTH, HEIGHT)

    @property
    def matches(self) -> np.ndarray:
        return np.hstack([self.pts1, self.pts2])


def make_epipolar_data(
        seed: int = 0,
        *,
        n_inliers: int = 200,
        n_outliers: int = 100,
        noise: float = 2.0,
        width: int = WIDTH,
        height: int = HEIGHT,
) -> TwoViewData:
    """
    Project random 3D points in two cameras, add Gaussian noise to image 2
    points, then append uniform random (unrelated) correspondences.
    """
    rng = np.random.default_rng(seed)
    K = np.array([[900.0, 0, width / 2], [0, 900.0, height / 2], [0, 0, 1]])
    R = rotation(0.04, -0.12, 0.03)
    t = np.array([1.0, 0.15, 0.2])

    pts1, pts2 = [], []
    while len(pts1) < n_inliers:
        X = np.column_stack([
            rng.uniform(-6, 6, 500),
            rng.uniform(-5, 5, 500),
            rng.uniform(10, 25, 500),
        ])
        x1 = X @ K.T
        x1 = x1[:, :2] / x1[:, 2:3]
        x2 = (X @ R.T + t) @ K.T
        x2 = x2[:, :2] / x2[:, 2:3]
        inside = (
            (x1[:, 0] >= 0) & (x1[:, 0] < width) & (x1[:, 1] >= 0) & (x1[:, 1] < height)
            & (x2[:, 0] >= 0) & (x2[:, 0] < width) & (x2[:, 1] >= 0) & (x2[:, 1] < height)
        )
        pts1.extend(x1[inside])
        pts2.extend(x2[inside])

    pts1 = np.array(pts1[:n_inliers], dtype=np.float64)
    pts2 = np.array(pts2[:n_inliers], dtype=np.float64)
    if noise > 0:
        pts2 = pts2 + rng.normal(0.0, noise, size=pts2.shape)

    o1 = rng.uniform([0, 0], [width, height], size=(n_outliers, 2))
    o2 = rng.uniform([0, 0], [width, height], size=(n_outliers, 2))

    all1 = np.vstack([pts1, o1])
    all2 = np.vstack([pts2, o2])
    is_inlier = np.concatenate([np.ones(n_inliers, bool), np.zeros(n_outliers, bool)])

    perm = rng.permutation(all1.shape[0])
    Kinv = np.linalg.inv(K)
    F = Kinv.T @ skew(t) @ R @ Kinv
    F = F / np.linalg.norm(F)
    return TwoViewData(all1[perm], all2[perm], is_inlier[perm], F, (width, height))


def make_homography_data(seed: int = 0, *, n_inliers: int = 150, n_outliers: int = 50, noise: float = 1.0) -> TwoViewData:
    rng = np.random.default_rng(seed)
    H = np.array([[1.02, 0.05, 30.0], [-0.03, 0.98, -20.0], [1e-5, 2e-5, 1.0]])

    p1 = rng.uniform([50, 50], [WIDTH - 50, HEIGHT - 50], size=(n_inliers, 2))
    ph = np.hstack([p1, np.ones((n_inliers, 1))]) @ H.T
    p2 = ph[:, :2] / ph[:, 2:3] + rng.normal(0.0, noise, size=(n_inliers, 2))

    o1 = rng.uniform([0, 0], [WIDTH, HEIGHT], size=(n_outliers, 2))
    o2 = rng.uniform([0, 0], [WIDTH, HEIGHT], size=(n_outliers, 2))

    all1 = np.vstack([p1, o1])
    all2 = np.vstack([p2, o2])
    is_inlier = np.concatenate([np.ones(n_inliers, bool), np.zeros(n_outliers, bool)])
    perm = rng.permutation(all1.shape[0])
    return TwoViewData(all1[perm], all2[perm], is_inlier[perm], H)


def make_outlier_data(seed: int = 0, n: int = 100) -> TwoViewData:
    rng = np.random.default_rng(seed)
    p1 = rng.uniform([0, 0], [WIDTH, HEIGHT], size=(n, 2))
    p2 = rng.uniform([0, 0], [WIDTH, HEIGHT], size=(n, 2))
    return TwoViewData(p1, p2, np.zeros(n, bool), np.full((3, 3), np.nan))


class DegenerateEstimator:
    """Every sample is degenerate: no candidate model is ever produced."""
    min_samples = 7
    max_models = 3
    dist_to_point = False
    alpha0 = (1e-3, 1e-3)

    def __init__(self, n: int):
        self.num_data = n
        self.calls = 0

    def compute_models(self, indices):
        self.calls += 1
        return []

    def compute_model(self, indices):
        return None

    def errors(self, model):
        raise AssertionError("errors() must not be called without a model")

    def residuals(self, model):
        raise AssertionError("residuals() must not be called without a model")


@pytest.fixture(scope="module")
def epipolar_data() -> TwoViewData:
    return make_epipolar_data(seed=7)


@pytest.fixture(scope="module")
def clean_epipolar_data() -> TwoViewData:
    return make_epipolar_data(seed=3, n_inliers=60, n_outliers=0, noise=0.0)


@pytest.fixture(scope="module")
def homography_data() -> TwoViewData:
    return make_homography_data(seed=11)


@pytest.fixture(scope="module")
def outlier_data() -> TwoViewData:
    return make_outlier_data(seed=5)
