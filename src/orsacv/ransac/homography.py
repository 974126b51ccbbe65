"""
Homography model utilities (3x3 projective form).

We estimate H such that:

    [x2, y2, 1]^T  ~  H @ [x1, y1, 1]^T      (equality up to scale)

Each correspondence gives 2 linear equations (DLT) in the 9 entries of H:

    [ 0,  0,  0, -x1, -y1, -1, y2*x1, y2*y1, y2] · h = 0
    [x1, y1,  1,   0,   0,  0, -x2*x1, -x2*y1, -x2] · h = 0

4 points give 8 equations -> h is the null vector (up to scale).
More points -> least squares null vector via SVD.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import Points2D, Mat3x3, FloatArray, IndexArray, as_homogeneous, is_valid_mat3x3
from .fundamental import RANK_TOL

# Smallest |det(H)| (normalized coordinates) accepted as invertible.
DET_TOL = 1e-12


# ---------- Degeneracy Check Helpers ----------
def _triangle_area(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
    """
    Return 2x the triangle area formed by (p1, p2, p3):

        area2 = |(p2 - p1) x (p3 - p1)|

    If area2 is near 0, the three points are collinear.
    """
    u = p2 - p1
    v = p3 - p1
    return float(abs(u[0] * v[1] - u[1] * v[0]))


def has_collinear_triplet(pts: Points2D, eps_area: float = 1e-6) -> bool:
    """
    Check whether any 3 of the 4 points (shape (4,2)) are nearly collinear.
    A homography is not determined by such a sample.
    """
    if pts.shape != (4, 2):
        raise ValueError(f"Expected (4,2) sample, got {pts.shape}")

    for skip in range(4):
        a, b, c = [pts[j] for j in range(4) if j != skip]
        if _triangle_area(a, b, c) < eps_area:
            return True
    return False


def homography_alpha0(width: int, height: int) -> float:
    """
    Probability that a uniform random point of the image falls within unit
    distance of a given point: pi / area.
    """
    return float(np.pi / (float(width) * float(height)))


# ---------- Homography Fitting ----------
def _dlt_system(pts1: Points2D, pts2: Points2D) -> FloatArray:
    n = pts1.shape[0]
    A = np.zeros((2 * n, 9), dtype=np.float64)
    x1, y1 = pts1[:, 0], pts1[:, 1]
    x2, y2 = pts2[:, 0], pts2[:, 1]

    A[0::2, 3] = -x1
    A[0::2, 4] = -y1
    A[0::2, 5] = -1.0
    A[0::2, 6] = y2 * x1
    A[0::2, 7] = y2 * y1
    A[0::2, 8] = y2

    A[1::2, 0] = x1
    A[1::2, 1] = y1
    A[1::2, 2] = 1.0
    A[1::2, 6] = -x2 * x1
    A[1::2, 7] = -x2 * y1
    A[1::2, 8] = -x2
    return A


def fit_homography_dlt(pts1: Points2D, pts2: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Fit a homography from N >= 4 (normalized) correspondences.

    With exactly 4 points, collinear triplets are rejected first.

    Returns:
      3x3 matrix, or None if degenerate / solve fails.
    """
    if pts1.shape != pts2.shape:
        raise ValueError(f"pts1 and pts2 must have same shape, got {pts1.shape} vs {pts2.shape}")
    if pts1.ndim != 2 or pts1.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts1.shape}")
    if pts1.shape[0] < 4:
        return None

    if pts1.shape[0] == 4 and (has_collinear_triplet(pts1, eps_area) or has_collinear_triplet(pts2, eps_area)):
        return None

    A = _dlt_system(pts1, pts2)
    if A.shape[0] < 9:
        A = np.vstack([A, np.zeros((9 - A.shape[0], 9), dtype=np.float64)])
    try:
        _, sv, vt = np.linalg.svd(A, full_matrices=False)
    except np.linalg.LinAlgError:
        return None

    if sv[0] <= 0 or sv[7] < RANK_TOL * sv[0]:
        return None

    H = vt[8].reshape(3, 3)
    if not is_valid_mat3x3(H) or abs(np.linalg.det(H)) < DET_TOL:
        return None
    return H


def denormalize_homography(H_n: Mat3x3, N1: Mat3x3, N2: Mat3x3) -> Mat3x3:
    """
    x2n = Hn x1n with xn = N x  ->  x2 = (N2^-1 Hn N1) x1.
    Scaled so that H[2,2] = 1 when possible, unit norm otherwise.
    """
    H = np.linalg.solve(N2, H_n @ N1)
    if abs(H[2, 2]) > 1e-12:
        return H / H[2, 2]
    return H / np.linalg.norm(H)


# ---------- Transfer errors ----------
def _project(H: Mat3x3, pts: Points2D) -> Points2D:
    ph = as_homogeneous(pts) @ H.T
    w = ph[:, 2:3]
    w = np.where(np.abs(w) < np.finfo(np.float64).tiny, np.finfo(np.float64).tiny, w)
    return ph[:, :2] / w


def transfer_errors(H: Mat3x3, pts1: Points2D, pts2: Points2D) -> FloatArray:
    """
    Squared forward transfer error ||H x1 - x2||^2 (pixels^2), shape (N,).
    """
    diff = _project(H, pts1) - pts2
    return np.sum(diff * diff, axis=1)


def symmetric_transfer_errors(H: Mat3x3, pts1: Points2D, pts2: Points2D) -> tuple[FloatArray, IndexArray]:
    """
    Larger of forward (image 2, side 1) and backward (image 1, side 0)
    squared transfer errors.
    """
    err2 = transfer_errors(H, pts1, pts2)
    try:
        H_inv = np.linalg.inv(H)
    except np.linalg.LinAlgError:
        return np.full(err2.shape, np.inf), np.ones(err2.shape, dtype=np.intp)
    err1 = transfer_errors(H_inv, pts2, pts1)
    side = np.where(err1 > err2, 0, 1).astype(np.intp)
    return np.maximum(err1, err2), side
