"""
RANSAC package

This module provides:
- The model protocol shared by the consensus engines
- Typed geometry primitives and correspondences
- Fundamental matrix and homography models
- Fixed-threshold RANSAC and a-contrario ORSA engines
"""

from .types import (
    FloatArray, BoolArray, IndexArray, Points2D, PointsHomog, Mat3x3, ImageSize,
    Match, MatchesLike, ModelEstimator, RansacResult, OrsaResult, ErrorStats,
    matches_to_points, points_to_matches, as_homogeneous, is_valid_mat3x3,
)

from .params import RansacParams, OrsaParams

from .fundamental import (
    normalization_matrix, normalize_points, fundamental_alpha0, enforce_rank2,
    fit_fundamental_7pt, fit_fundamental_8pt, denormalize_fundamental,
    epipolar_errors, symmetric_epipolar_errors,
)

from .fundamental_model import FundamentalModel

from .homography import (
    homography_alpha0, fit_homography_dlt, denormalize_homography,
    transfer_errors, symmetric_transfer_errors,
)

from .homography_model import HomographyModel

from .core import ransac, required_iterations

from .orsa import orsa, best_nfa, log_combi

__all__ = [
    "FloatArray", "BoolArray", "IndexArray", "Points2D", "PointsHomog", "Mat3x3", "ImageSize",
    "Match", "MatchesLike", "ModelEstimator", "RansacResult", "OrsaResult", "ErrorStats",
    "matches_to_points", "points_to_matches", "as_homogeneous", "is_valid_mat3x3",
    "RansacParams", "OrsaParams",
    "normalization_matrix", "normalize_points", "fundamental_alpha0", "enforce_rank2",
    "fit_fundamental_7pt", "fit_fundamental_8pt", "denormalize_fundamental",
    "epipolar_errors", "symmetric_epipolar_errors",
    "FundamentalModel",
    "homography_alpha0", "fit_homography_dlt", "denormalize_homography",
    "transfer_errors", "symmetric_transfer_errors",
    "HomographyModel",
    "ransac", "required_iterations",
    "orsa", "best_nfa", "log_combi",
]
