"""
Shared typed primitives for two-view robust estimation.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) float arrays
    - Models are 3x3 matrices (fundamental matrix or homography)
- The correspondence record (Match) and conversion to point arrays
- Model protocol shared by the consensus engines (RANSAC and ORSA)
- Structured engine result containers (model + inliers + stats)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TypeVar, Generic, Optional, Sequence, TypeAlias, Union

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# float64 for geometry / matrices, intp for index sets, bool_ for masks.

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]
IndexArray: TypeAlias = npt.NDArray[np.intp]

# Points in 2D image coordinates.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# Homogeneous points [x, y, 1].
PointsHomog: TypeAlias = FloatArray   # shape: (N, 3)

# 3x3 model matrix (fundamental matrix or homography).
Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)

# Image size as (width, height) in pixels.
ImageSize: TypeAlias = tuple[int, int]

M = TypeVar("M")


# ---------- Correspondences ----------
@dataclass(frozen=True)
class Match:
    """One candidate correspondence: (x1, y1) in image 1, (x2, y2) in image 2."""
    x1: float
    y1: float
    x2: float
    y2: float


MatchesLike: TypeAlias = Union[Sequence[Match], FloatArray]


def matches_to_points(matches: MatchesLike) -> tuple[Points2D, Points2D]:
    """
    Convert correspondences to two parallel (N,2) float64 arrays.

    Accepts a sequence of Match or an (N,4) array with rows [x1, y1, x2, y2].
    """
    if isinstance(matches, np.ndarray):
        arr = np.asarray(matches, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 4:
            raise ValueError(f"Expected matches array shape (N,4), got {arr.shape}")
    else:
        arr = np.array([[m.x1, m.y1, m.x2, m.y2] for m in matches], dtype=np.float64)
        arr = arr.reshape(-1, 4)
    return arr[:, 0:2].copy(), arr[:, 2:4].copy()


def points_to_matches(pts1: Points2D, pts2: Points2D) -> list[Match]:
    check_point_pair(pts1, pts2)
    return [Match(float(a[0]), float(a[1]), float(b[0]), float(b[1])) for a, b in zip(pts1, pts2)]


# ---------- Model contract ----------
class ModelEstimator(Protocol[M]):
    """
    Interface a geometric model must implement to be usable by the consensus engines.

    The instance owns the correspondences (normalized internally as it sees fit);
    engines only talk to it through indices into the correspondence list.

    Engine steps:
    1) Fit candidate models from a minimal sample (compute_models)
    2) Score every correspondence under a candidate (errors)
    3) Refit a single model from all inliers (compute_model)
    """

    # Number of correspondences needed for one minimal fit.
    min_samples: int
    # Maximum number of solutions a minimal sample can produce.
    max_models: int
    # True when error() is a point-to-point distance, False for point-to-line.
    dist_to_point: bool

    @property
    def num_data(self) -> int:
        ...

    @property
    def alpha0(self) -> tuple[float, float]:
        """A-priori probability density (per unit error) for image 1 and image 2."""
        ...

    def compute_models(self, indices: IndexArray) -> list[M]:
        """
        Minimal solve when len(indices) == min_samples, least squares otherwise.
        Return an empty list if the sample is degenerate.
        """
        ...

    def compute_model(self, indices: IndexArray) -> Optional[M]:
        """
        Single-solution fit. Return None if degenerate or ambiguous.
        """
        ...

    def error(self, model: M, index: int) -> float:
        """Squared error of one correspondence, as used for inlier tests."""
        ...

    def errors(self, model: M) -> tuple[FloatArray, IndexArray]:
        """
        Squared errors of all correspondences, shape (N,), and the side
        (0 = image 1, 1 = image 2) each error was measured in.
        """
        ...

    def residuals(self, model: M) -> FloatArray:
        """One-sided squared error in image 2 for all correspondences, shape (N,)."""
        ...


# ---------- Engine output containers ----------
@dataclass(frozen=True)
class RansacResult(Generic[M]):
    model: Optional[M]      # best model found, None if no sample produced a model
    inliers: IndexArray     # ascending indices of inliers under the best model
    iterations: int         # how many iterations were actually run
    threshold: float        # the inlier threshold (pixels)

    @property
    def num_inliers(self) -> int:
        return int(self.inliers.shape[0])


@dataclass(frozen=True)
class OrsaResult(Generic[M]):
    model: Optional[M]      # most meaningful model, None if log_nfa >= 0
    inliers: IndexArray     # ascending indices of inliers, empty if not meaningful
    log_nfa: float          # best log10(NFA) explored (inf if no model at all)
    threshold: float        # discovered threshold (pixels), or the upper bound
    side: int               # image (0/1) where the threshold was measured
    iterations: int

    @property
    def num_inliers(self) -> int:
        return int(self.inliers.shape[0])

    @property
    def meaningful(self) -> bool:
        return self.log_nfa < 0.0


@dataclass(frozen=True)
class ErrorStats:
    rms: float              # root-mean-square inlier error (pixels)
    max: float              # maximum inlier error (pixels)


# ---------- Helper Functions ----------
def check_point_pair(pts1: Points2D, pts2: Points2D) -> None:
    if pts1.shape != pts2.shape:
        raise ValueError(f"pts1 and pts2 must have same shape, got {pts1.shape} vs {pts2.shape}")
    if pts1.ndim != 2 or pts1.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts1.shape}")


def check_image_size(size: ImageSize) -> tuple[int, int]:
    w, h = int(size[0]), int(size[1])
    if w <= 0 or h <= 0:
        raise ValueError(f"Image size must be positive, got {size}")
    return w, h


def as_homogeneous(pts: Points2D) -> PointsHomog:
    """
    Convert (N,2) points -> (N,3) homogeneous points: [x, y, 1].
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")

    ones = np.ones((pts.shape[0], 1), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), ones])


def is_valid_mat3x3(T: Mat3x3) -> bool:
    """
    Verify a 3x3 model matrix.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == (3, 3) and np.isfinite(T).all()


def empty_indices() -> IndexArray:
    return np.zeros((0,), dtype=np.intp)
