"""
Safety-checked refinement of a consensus result.

After a consensus engine picks a model from a minimal sample, the model is
refit by least squares on ALL its inliers. The refit is kept only if it does
not make things worse:

    rms(refined model, inliers) <= max(original model, inliers)

Otherwise (or if the refit is degenerate) the original model is kept and a
warning is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

import numpy as np

from ..ransac.types import ErrorStats, IndexArray, ModelEstimator

M = TypeVar("M")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Refinement(Generic[M]):
    model: M                        # refined model, or the original one if rejected
    refined: bool                   # True if the refit was accepted
    before: ErrorStats              # inlier statistics of the original model
    after: Optional[ErrorStats]     # inlier statistics of the refit (None if the refit failed)


def error_statistics(estimator: ModelEstimator[M], model: M, inliers: IndexArray) -> ErrorStats:
    """
    RMS and max inlier error in pixels, from the one-sided squared residuals.
    """
    idx = np.asarray(inliers, dtype=np.intp)
    if idx.shape[0] == 0:
        raise ValueError("error_statistics needs at least one inlier")

    sq = estimator.residuals(model)[idx]
    return ErrorStats(rms=float(np.sqrt(np.mean(sq))), max=float(np.sqrt(np.max(sq))))


def refine(
        estimator: ModelEstimator[M],
        model: M,
        inliers: IndexArray,
        *,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
) -> Refinement[M]:
    """
    Re-estimate model from all inliers, keeping it only if it does not regress.
    """
    log = log if log is not None else logger

    before = error_statistics(estimator, model, inliers)
    log.info("Before refinement: Average/max error: %.6g/%.6g", before.rms, before.max)

    if np.asarray(inliers).shape[0] < estimator.min_samples:
        log.warning("error in refinement, result is suspect")
        return Refinement(model=model, refined=False, before=before, after=None)

    refit = estimator.compute_model(inliers)
    if refit is None:
        log.warning("error in refinement, result is suspect")
        return Refinement(model=model, refined=False, before=before, after=None)

    after = error_statistics(estimator, refit, inliers)
    log.info("After  refinement: Average/max error: %.6g/%.6g", after.rms, after.max)

    if after.rms <= before.max:
        return Refinement(model=refit, refined=True, before=before, after=after)

    log.warning("error after refinement is too large, thus ignored")
    return Refinement(model=model, refined=False, before=before, after=after)
