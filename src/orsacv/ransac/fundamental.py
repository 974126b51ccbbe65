"""
Fundamental matrix utilities.

We estimate F (3x3, rank 2) such that for every correspondence:

    [x2, y2, 1] @ F @ [x1, y1, 1]^T  ≈  0

Each correspondence gives one linear equation in the 9 entries of F
(row-major vector f):

    kron([x2, y2, 1], [x1, y1, 1]) · f = 0

- 7 points: the solution space is 2-dimensional, {a F1 + (1-a) F2}.
  The rank-2 constraint det(F) = 0 is a cubic in a -> up to 3 solutions.
- 8+ points: least squares null vector (SVD), then rank 2 is enforced by
  zeroing the smallest singular value.

Solvers expect points normalized with normalization_matrix(); pixel values
of several hundreds make the linear system badly conditioned.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import Points2D, Mat3x3, FloatArray, IndexArray, as_homogeneous, is_valid_mat3x3

# Relative singular value below which the linear system is considered rank deficient.
RANK_TOL = 1e-10
# |imag| tolerance for accepting a root of the cubic as real.
ROOT_IMAG_TOL = 1e-8


# ---------- Normalization ----------
def normalization_matrix(width: int, height: int) -> Mat3x3:
    """
    Similarity mapping the image to a unit-area frame centered on the image center:

        N = [[s, 0, -w/2 s],
             [0, s, -h/2 s],
             [0, 0,  1    ]],   s = 1 / sqrt(w h)
    """
    s = 1.0 / np.sqrt(float(width) * float(height))
    N = np.array(
        [
            [s, 0.0, -0.5 * width * s],
            [0.0, s, -0.5 * height * s],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )
    return N


def normalize_points(pts: Points2D, N: Mat3x3) -> Points2D:
    """Apply a normalization similarity to (N,2) points."""
    return pts.astype(np.float64) * N[0, 0] + N[:2, 2]


def fundamental_alpha0(width: int, height: int) -> float:
    """
    Probability that a uniform random point of the image falls within unit
    distance of a given line: roughly 2 * diagonal / area.
    """
    diag = np.sqrt(float(width) ** 2 + float(height) ** 2)
    return float(2.0 * diag / (float(width) * float(height)))


# ---------- Linear algebra helpers ----------
def _epipolar_system(pts1: Points2D, pts2: Points2D) -> FloatArray:
    """
    Build the (N,9) matrix A with rows kron(x2h, x1h), so that A @ F.ravel() = 0.
    """
    p1 = as_homogeneous(pts1)
    p2 = as_homogeneous(pts2)
    # Row i: [x2*x1, x2*y1, x2, y2*x1, y2*y1, y2, x1, y1, 1]
    return (p2[:, :, None] * p1[:, None, :]).reshape(-1, 9)


def _singular_decomposition(A: FloatArray) -> tuple[FloatArray, FloatArray]:
    """
    Singular values and right singular vectors of A, padded with zero rows so
    that all 9 right singular vectors are returned even when A has < 9 rows.
    """
    if A.shape[0] < 9:
        A = np.vstack([A, np.zeros((9 - A.shape[0], 9), dtype=np.float64)])
    _, sv, vt = np.linalg.svd(A, full_matrices=False)
    return sv, vt


def enforce_rank2(F: Mat3x3) -> Mat3x3:
    """
    Closest rank-2 matrix in Frobenius norm: null the smallest singular value.
    """
    U, S, Vt = np.linalg.svd(F)
    S[2] = 0.0
    return (U * S) @ Vt


def denormalize_fundamental(F_n: Mat3x3, N1: Mat3x3, N2: Mat3x3) -> Mat3x3:
    """
    Bring a fundamental matrix from normalized to pixel coordinates:

        x2n^T Fn x1n = x2^T (N2^T Fn N1) x1

    Result is scaled to unit Frobenius norm.
    """
    F = N2.T @ F_n @ N1
    norm = np.linalg.norm(F)
    if norm > 0:
        F = F / norm
    return F


# ---------- Fundamental Fitting ----------
def fit_fundamental_7pt(pts1: Points2D, pts2: Points2D) -> list[Mat3x3]:
    """
    Minimal solver from exactly 7 (normalized) correspondences.

    Returns:
      list of 1 to 3 rank-2 matrices, or an empty list if degenerate.
    """
    if pts1.shape != (7, 2) or pts2.shape != (7, 2):
        raise ValueError(f"fit_fundamental_7pt expects (7,2) inputs, got {pts1.shape} and {pts2.shape}")

    A = _epipolar_system(pts1, pts2)
    try:
        sv, vt = _singular_decomposition(A)
    except np.linalg.LinAlgError:
        return []

    # 7 independent equations are required for a 2D solution space.
    if sv[0] <= 0 or sv[6] < RANK_TOL * sv[0]:
        return []

    F1 = vt[7].reshape(3, 3)
    F2 = vt[8].reshape(3, 3)

    # det(a F1 + (1-a) F2) is a cubic in a.
    # Sample it at 4 values and interpolate exactly to get its coefficients.
    xs = np.array([-1.0, 0.0, 1.0, 2.0])
    ys = np.array([np.linalg.det(a * F1 + (1.0 - a) * F2) for a in xs])
    coeffs = np.polyfit(xs, ys, 3)

    if not np.any(np.abs(coeffs) > 0):
        return []

    roots = np.roots(coeffs)
    models: list[Mat3x3] = []
    for r in roots:
        if abs(r.imag) > ROOT_IMAG_TOL * max(1.0, abs(r.real)):
            continue
        a = float(r.real)
        F = a * F1 + (1.0 - a) * F2
        if is_valid_mat3x3(F) and np.linalg.norm(F) > 0:
            models.append(F)
    return models


def fit_fundamental_8pt(pts1: Points2D, pts2: Points2D) -> Optional[Mat3x3]:
    """
    Least squares solver from N >= 8 (normalized) correspondences.

    Used after consensus picks inliers: refit with all inliers.
    Minimizes ||A f||^2 subject to ||f|| = 1, then enforces rank 2.
    """
    if pts1.shape != pts2.shape:
        raise ValueError(f"pts1 and pts2 must have same shape, got {pts1.shape} vs {pts2.shape}")
    if pts1.ndim != 2 or pts1.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts1.shape}")
    if pts1.shape[0] < 8:
        return None

    A = _epipolar_system(pts1, pts2)
    try:
        sv, vt = _singular_decomposition(A)
    except np.linalg.LinAlgError:
        return None

    # Fewer than 8 independent equations: the null space is not a single line.
    if sv[0] <= 0 or sv[7] < RANK_TOL * sv[0]:
        return None

    F = enforce_rank2(vt[8].reshape(3, 3))
    if not is_valid_mat3x3(F):
        return None
    return F


# ---------- Epipolar errors ----------
def _line_point_sq_dist(lines: FloatArray, pts_h: FloatArray) -> FloatArray:
    """
    Squared distance of each homogeneous point to the matching line (a, b, c):

        (a x + b y + c)^2 / (a^2 + b^2)
    """
    d = np.sum(lines * pts_h, axis=1)
    nrm = lines[:, 0] ** 2 + lines[:, 1] ** 2
    nrm = np.maximum(nrm, np.finfo(np.float64).tiny)
    return (d * d) / nrm


def epipolar_errors(F: Mat3x3, pts1: Points2D, pts2: Points2D) -> FloatArray:
    """
    Squared distance (pixels^2) of each point in image 2 to its epipolar line F x1.

    Returns shape (N,)
    """
    p1 = as_homogeneous(pts1)
    p2 = as_homogeneous(pts2)
    lines2 = p1 @ F.T       # rows are F @ x1
    return _line_point_sq_dist(lines2, p2)


def symmetric_epipolar_errors(F: Mat3x3, pts1: Points2D, pts2: Points2D) -> tuple[FloatArray, IndexArray]:
    """
    Larger of the two one-sided squared point-to-line distances.

    Returns:
      err: shape (N,)
      side: shape (N,), 1 when the error was measured in image 2, 0 for image 1
    """
    p1 = as_homogeneous(pts1)
    p2 = as_homogeneous(pts2)
    err2 = _line_point_sq_dist(p1 @ F.T, p2)    # line F x1 in image 2
    err1 = _line_point_sq_dist(p2 @ F, p1)      # line F^T x2 in image 1
    side = np.where(err1 > err2, 0, 1).astype(np.intp)
    return np.maximum(err1, err2), side
