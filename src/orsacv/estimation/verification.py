"""
Geometric verification of an image pair.

Glue between a feature matcher and the two-view estimators:
  - ORB detection + brute-force Hamming matching (cross-check or KNN ratio)
  - conversion of OpenCV keypoints / DMatch objects to Match records
  - TwoViewVerifier: one configured entry point with selectable backend

Backends:
  - "orsa":               estimate_auto_threshold (automatic threshold)
  - "ransac":             estimate_fixed_threshold
  - "opencv_fundamental": cv2.findFundamentalMat(..., FM_RANSAC), for reference
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

import cv2
import numpy as np

from ..ransac.types import ImageSize, Match, MatchesLike, matches_to_points, empty_indices
from ..ransac.params import RansacParams, OrsaParams
from .two_view import ModelKind, TwoViewResult, estimate_auto_threshold, estimate_fixed_threshold

VerifyBackend = Literal["orsa", "ransac", "opencv_fundamental"]
logger = logging.getLogger(__name__)


def matches_from_keypoints(kp1: Sequence, kp2: Sequence, dmatches: Sequence) -> list[Match]:
    """
    Build Match records from OpenCV keypoints and DMatch objects
    (queryIdx -> image 1, trainIdx -> image 2).
    """
    out = []
    for m in dmatches:
        x1, y1 = kp1[m.queryIdx].pt
        x2, y2 = kp2[m.trainIdx].pt
        out.append(Match(float(x1), float(y1), float(x2), float(y2)))
    return out


def orb_matches(
        gray1: np.ndarray,
        gray2: np.ndarray,
        *,
        nfeatures: int = 2000,
        use_knn_ratio: bool = False,
        ratio: float = 0.75,
        max_matches: int | None = None,
) -> list[Match]:
    """
    Detect ORB features on two grayscale images and match them.

    Matching: crossCheck brute force, or KNN (k=2) + Lowe ratio test.
    Returns matches sorted by descriptor distance.
    """
    if gray1 is None or gray2 is None or gray1.size == 0 or gray2.size == 0:
        raise ValueError("orb_matches received empty image(s).")
    if gray1.ndim != 2 or gray2.ndim != 2:
        raise ValueError("orb_matches expects grayscale (H,W) images.")

    orb = cv2.ORB_create(nfeatures=nfeatures)
    k1, d1 = orb.detectAndCompute(gray1, None)
    k2, d2 = orb.detectAndCompute(gray2, None)

    if d1 is None or d2 is None or len(k1) < 2 or len(k2) < 2:
        return []

    if use_knn_ratio:
        bf = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)
        knn = bf.knnMatch(d1, d2, k=2)
        dm = []
        for pair in knn:
            if len(pair) < 2:
                continue
            m, n = pair
            if m.distance < ratio * n.distance:
                dm.append(m)
    else:
        bf = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=True)
        dm = list(bf.match(d1, d2))

    dm = sorted(dm, key=lambda m: m.distance)
    if max_matches is not None:
        dm = dm[:max_matches]
    return matches_from_keypoints(k1, k2, dm)


def _opencv_fundamental(
        matches: MatchesLike,
        params: RansacParams,
        log: logging.Logger | logging.LoggerAdapter,
) -> TwoViewResult:
    pts1, pts2 = matches_to_points(matches)
    if pts1.shape[0] < 8:
        log.error("OpenCV FM_RANSAC needs 8 matches or more to proceed")
        return TwoViewResult(ok=False, model=None, inliers=empty_indices(), iterations=0,
                             threshold=params.precision)

    # OpenCV expects float32
    F, mask = cv2.findFundamentalMat(
        pts1.astype(np.float32),
        pts2.astype(np.float32),
        method=cv2.FM_RANSAC,
        ransacReprojThreshold=float(params.precision),
        confidence=float(params.beta),
    )
    if F is None or mask is None or F.shape != (3, 3):
        log.warning("OpenCV FM_RANSAC found no model")
        return TwoViewResult(ok=True, model=None, inliers=empty_indices(), iterations=0,
                             threshold=params.precision)

    F = F / np.linalg.norm(F)
    inliers = np.flatnonzero(mask.ravel()).astype(np.intp)
    return TwoViewResult(ok=True, model=F, inliers=inliers, iterations=0, threshold=params.precision)


@dataclass
class TwoViewVerifier:
    """
    Configured geometric verification of image pairs.

    - verify(matches, size1, size2): run the selected backend
    - verify_images(gray1, gray2): ORB matching + verify
    """
    method: VerifyBackend = "orsa"
    model_kind: ModelKind = "fundamental"
    ransac_params: RansacParams = field(default_factory=RansacParams)
    orsa_params: OrsaParams = field(default_factory=OrsaParams)
    seed: int = 0

    # ORB matching
    nfeatures: int = 2000
    use_knn_ratio: bool = False
    ratio: float = 0.75

    log: Optional[logging.Logger | logging.LoggerAdapter] = None

    def verify(self, matches: MatchesLike, size1: ImageSize, size2: ImageSize) -> TwoViewResult:
        """size1/size2 are (width, height) of image 1 / image 2."""
        log = self.log if self.log is not None else logger
        (w1, h1), (w2, h2) = size1, size2

        if self.method == "orsa":
            p = self.orsa_params
            return estimate_auto_threshold(
                matches, w1, h1, w2, h2, p.max_precision, p.max_iters,
                model_kind=self.model_kind, beta=p.beta, focused_fraction=p.focused_fraction,
                seed=self.seed, log=log,
            )
        if self.method == "ransac":
            p = self.ransac_params
            return estimate_fixed_threshold(
                matches, w1, h1, w2, h2, p.precision, p.max_iters, p.beta,
                model_kind=self.model_kind, seed=self.seed, log=log,
            )
        if self.method == "opencv_fundamental":
            if self.model_kind != "fundamental":
                raise ValueError("opencv_fundamental backend only estimates fundamental matrices")
            return _opencv_fundamental(matches, self.ransac_params, log)
        raise ValueError(f"Unknown verification method: {self.method}")

    def verify_images(self, gray1: np.ndarray, gray2: np.ndarray) -> tuple[list[Match], TwoViewResult]:
        """Match ORB features between two grayscale images, then verify."""
        matches = orb_matches(gray1, gray2, nfeatures=self.nfeatures,
                              use_knn_ratio=self.use_knn_ratio, ratio=self.ratio)
        h1, w1 = gray1.shape[:2]
        h2, w2 = gray2.shape[:2]
        return matches, self.verify(matches, (w1, h1), (w2, h2))
