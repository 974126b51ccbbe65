from .refine import Refinement, error_statistics, refine

from .two_view import (
    ModelKind, TwoViewResult, build_estimator,
    estimate_fixed_threshold, estimate_auto_threshold,
    ransac_fundamental, orsa_fundamental, ransac_homography, orsa_homography,
)

from .verification import (
    VerifyBackend, TwoViewVerifier, matches_from_keypoints, orb_matches,
)

__all__ = [
    "Refinement", "error_statistics", "refine",
    "ModelKind", "TwoViewResult", "build_estimator",
    "estimate_fixed_threshold", "estimate_auto_threshold",
    "ransac_fundamental", "orsa_fundamental", "ransac_homography", "orsa_homography",
    "VerifyBackend", "TwoViewVerifier", "matches_from_keypoints", "orb_matches",
]
