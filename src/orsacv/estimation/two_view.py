"""
Two-view estimation entry points.

Both operations take a list of correspondences plus the two image sizes and:
  1) build the model (fundamental matrix or homography) on the correspondences
  2) run a consensus engine (fixed-threshold RANSAC or a-contrario ORSA)
  3) refine the winner on all its inliers, keeping the refit only if it does
     not regress (see refine.py)

Expected failures are reported through TwoViewResult.ok and the logger,
never by raising:
  - too few correspondences for the minimal sample
  - no meaningful model (ORSA only): a legitimate negative result
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from ..ransac.types import (
    ErrorStats, IndexArray, Mat3x3, MatchesLike, ModelEstimator, ImageSize,
    matches_to_points, empty_indices)
from ..ransac.core import ransac
from ..ransac.orsa import orsa
from ..ransac.fundamental_model import FundamentalModel
from ..ransac.homography_model import HomographyModel
from .refine import refine

ModelKind = Literal["fundamental", "homography"]
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TwoViewResult:
    ok: bool                                # see estimate_* for the meaning
    model: Optional[Mat3x3]                 # None when ok is False or no model was found
    inliers: IndexArray                     # ascending indices into the correspondences
    iterations: int                         # consensus iterations actually run
    threshold: float                        # inlier threshold in pixels (discovered for ORSA)
    log_nfa: Optional[float] = None         # ORSA only
    stats_before: Optional[ErrorStats] = None
    stats_after: Optional[ErrorStats] = None
    refined: bool = False                   # True if the least squares refit was kept

    @property
    def num_inliers(self) -> int:
        return int(self.inliers.shape[0])


def build_estimator(
        matches: MatchesLike,
        size1: ImageSize,
        size2: ImageSize,
        *,
        model_kind: ModelKind = "fundamental",
        symmetric_error: bool = True,
) -> ModelEstimator[Mat3x3]:
    """
    Build the model on the correspondences. size1/size2 are (width, height).
    """
    pts1, pts2 = matches_to_points(matches)
    if model_kind == "fundamental":
        return FundamentalModel(pts1, pts2, size1, size2, symmetric_error=symmetric_error)
    if model_kind == "homography":
        return HomographyModel(pts1, pts2, size1, size2, symmetric_error=symmetric_error)
    raise ValueError(f"Unknown model_kind: {model_kind}")


def _refined_result(
        estimator: ModelEstimator[Mat3x3],
        model: Mat3x3,
        inliers: IndexArray,
        *,
        iterations: int,
        threshold: float,
        log_nfa: Optional[float],
        log: logging.Logger | logging.LoggerAdapter,
) -> TwoViewResult:
    ref = refine(estimator, model, inliers, log=log)

    # A kept refit may move some inliers past the engine threshold; widen it so
    # every reported inlier stays within the reported threshold.
    if ref.refined and ref.after is not None:
        threshold = max(threshold, ref.after.max)

    return TwoViewResult(
        ok=True,
        model=ref.model,
        inliers=inliers,
        iterations=iterations,
        threshold=threshold,
        log_nfa=log_nfa,
        stats_before=ref.before,
        stats_after=ref.after,
        refined=ref.refined,
    )


def estimate_fixed_threshold(
        matches: MatchesLike,
        w1: int, h1: int,
        w2: int, h2: int,
        precision: float,
        max_iters: int = 1000,
        beta: float = 0.99,
        *,
        model_kind: ModelKind = "fundamental",
        seed: int | np.random.Generator | None = 0,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
) -> TwoViewResult:
    """
    Regular RANSAC with a fixed threshold, followed by refinement.

    Inputs:
    - matches: correspondences (sequence of Match or (N,4) array)
    - w1,h1 / w2,h2: dimensions of the left / right image
    - precision: inlier/outlier threshold in pixels
    - max_iters: maximal number of iterations
    - beta: probability of one all-inlier sample (adjusts iterations)

    Returns:
    - ok is False iff there are fewer matches than the minimal sample.
      Otherwise ok is True: the estimation ran to completion, whatever the
      number of inliers.
    """
    log = log if log is not None else logger
    estimator = build_estimator(matches, (w1, h1), (w2, h2), model_kind=model_kind)

    if estimator.num_data < estimator.min_samples:
        log.error("RANSAC needs %d matches or more to proceed", estimator.min_samples)
        return TwoViewResult(ok=False, model=None, inliers=empty_indices(), iterations=0,
                             threshold=float(precision))

    res = ransac(estimator, precision=precision, max_iters=max_iters, beta=beta, seed=seed, log=log)
    log.info("Iterations: %d", res.iterations)

    if res.model is None:
        log.warning("no sample produced a model, nothing to refine")
        return TwoViewResult(ok=True, model=None, inliers=res.inliers, iterations=res.iterations,
                             threshold=res.threshold)

    return _refined_result(estimator, res.model, res.inliers,
                           iterations=res.iterations, threshold=res.threshold, log_nfa=None, log=log)


def estimate_auto_threshold(
        matches: MatchesLike,
        w1: int, h1: int,
        w2: int, h2: int,
        max_precision: float = 0.0,
        max_iters: int = 1000,
        *,
        model_kind: ModelKind = "fundamental",
        beta: float = 0.99,
        focused_fraction: float = 0.1,
        seed: int | np.random.Generator | None = 0,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
) -> TwoViewResult:
    """
    ORSA (automatic threshold) followed by refinement.

    Inputs:
    - matches: correspondences (sequence of Match or (N,4) array)
    - w1,h1 / w2,h2: dimensions of the left / right image
    - max_precision: upper bound on the threshold in pixels, <= 0 for none
    - max_iters: maximal number of iterations

    Returns:
    - ok is False if there are not more matches than the minimal sample, or
      if no meaningful model (log10 NFA < 0) was found. In both cases model is
      None and inliers is empty. Otherwise threshold is the discovered one.
    """
    log = log if log is not None else logger
    estimator = build_estimator(matches, (w1, h1), (w2, h2), model_kind=model_kind)

    if estimator.num_data <= estimator.min_samples:
        log.error("ORSA needs %d matches or more to proceed", estimator.min_samples + 1)
        return TwoViewResult(ok=False, model=None, inliers=empty_indices(), iterations=0,
                             threshold=float(max_precision))

    res = orsa(
        estimator,
        alpha0=estimator.alpha0,
        max_precision=max_precision,
        max_iters=max_iters,
        beta=beta,
        focused_fraction=focused_fraction,
        seed=seed,
        log=log,
    )
    log.info("Iterations: %d, log10(NFA): %.3f", res.iterations, res.log_nfa)

    if res.model is None:
        log.info("no meaningful model found")
        return TwoViewResult(ok=False, model=None, inliers=empty_indices(), iterations=res.iterations,
                             threshold=res.threshold, log_nfa=res.log_nfa)

    log.info("Inliers: %d/%d, precision: %.3f px (im%d)",
             res.num_inliers, estimator.num_data, res.threshold, res.side + 1)
    return _refined_result(estimator, res.model, res.inliers,
                           iterations=res.iterations, threshold=res.threshold, log_nfa=res.log_nfa, log=log)


# ---------- Convenience wrappers ----------
def ransac_fundamental(matches, w1, h1, w2, h2, precision, max_iters=1000, beta=0.99, **kwargs) -> TwoViewResult:
    return estimate_fixed_threshold(matches, w1, h1, w2, h2, precision, max_iters, beta,
                                    model_kind="fundamental", **kwargs)


def orsa_fundamental(matches, w1, h1, w2, h2, max_precision=0.0, max_iters=1000, **kwargs) -> TwoViewResult:
    return estimate_auto_threshold(matches, w1, h1, w2, h2, max_precision, max_iters,
                                   model_kind="fundamental", **kwargs)


def ransac_homography(matches, w1, h1, w2, h2, precision, max_iters=1000, beta=0.99, **kwargs) -> TwoViewResult:
    return estimate_fixed_threshold(matches, w1, h1, w2, h2, precision, max_iters, beta,
                                    model_kind="homography", **kwargs)


def orsa_homography(matches, w1, h1, w2, h2, max_precision=0.0, max_iters=1000, **kwargs) -> TwoViewResult:
    return estimate_auto_threshold(matches, w1, h1, w2, h2, max_precision, max_iters,
                                   model_kind="homography", **kwargs)
