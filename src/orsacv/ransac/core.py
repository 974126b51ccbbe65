"""
Generic RANSAC loop (model-agnostic), fixed inlier threshold.

RANSAC overview:
- Randomly sample a *minimal* subset of correspondences
- Fit candidate models from that subset (a sample may give several)
- Score all correspondences by computing their errors
- Mark inliers where error <= precision
- Keep the model with the most inliers (first found wins ties)
- Shrink the iteration budget each time the best inlier ratio improves

Refitting on all inliers is left to the caller (see orsacv.estimation.refine).

Uses the ModelEstimator Protocol from types.py:
    RANSAC works with both fundamental matrix and homography models
"""
from __future__ import annotations

import logging
from typing import Optional, TypeVar

import numpy as np

from .types import IndexArray, ModelEstimator, RansacResult, empty_indices

M = TypeVar("M")
logger = logging.getLogger(__name__)


def required_iterations(
        *,
        beta: float,
        inlier_ratio: float,
        sample_size: int,
        max_iters: int,
) -> int:
    """
    Compute the number of iterations needed so that the probability of having
    drawn at least ONE all-inlier minimal sample is >= beta.

    inlier ratio w = (# inliers) / N, Minimal sample s = sample_size,
    - P(all-inliers) = w^s
    - P(not-all-inlier-for-k-times) = (1 - w^s)^k
    - P(at-least-once-all-inliers) = 1 - (1 - w^s)^k >= beta

    Formula:
       k >= log(1 - beta) / log(1 - w^s)

    Result is clamped to [1, max_iters].

    Edge cases:
     - w == 0  -> impossible, return max_iters
     - w == 1  -> 1 iteration is enough
    """
    s = int(sample_size)
    if s <= 0:
        raise ValueError("sample_size must be >= 1")

    # Clamp inputs to avoid log(0)
    p = float(np.clip(beta, 1e-12, 1.0 - 1e-12))
    w = float(np.clip(inlier_ratio, 0.0, 1.0))

    if w >= 1.0:
        return 1
    if w <= 0.0:
        return int(max_iters)

    w_to_s = w ** s
    # If w^s is extremely tiny, log(1 - w^s) rounds to 0
    if w_to_s < 1e-15:
        return int(max_iters)

    k = np.ceil(np.log(1.0 - p) / np.log1p(-w_to_s))
    return int(min(max(1.0, k), float(max_iters)))


def ransac(
        estimator: ModelEstimator[M],
        *,
        precision: float,
        max_iters: int = 1000,
        beta: float = 0.99,
        seed: int | np.random.Generator | None = 0,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
) -> RansacResult[M]:
    """
    Run RANSAC on the correspondences owned by `estimator`.

    Inputs:
    - estimator: provides min_samples, compute_models, errors
    - precision: inlier threshold in pixels
    - max_iters: hard cap on the number of iterations
    - beta: probability of drawing one all-inlier sample (adaptive budget)
    - seed: RNG seed or Generator, for reproducibility

    Returns:
    - RansacResult with best model + ascending inlier indices.
      model is None when no sample produced a model (or n < min_samples).
    """
    log = log if log is not None else logger
    if precision <= 0:
        raise ValueError(f"precision must be > 0, got {precision}")
    if max_iters < 1:
        raise ValueError(f"max_iters must be >= 1, got {max_iters}")

    n = estimator.num_data
    s = estimator.min_samples
    threshold_sq = float(precision) ** 2

    if n < s:
        return RansacResult(model=None, inliers=empty_indices(), iterations=0, threshold=float(precision))

    # RNG: reproducible sampling (default_rng passes a Generator through unchanged)
    rng = np.random.default_rng(seed)

    # Track the best hypothesis
    best_model: Optional[M] = None
    best_inliers: IndexArray = empty_indices()

    target_iters = int(max_iters)
    iters_run = 0

    # ---------- Main RANSAC Loop ----------
    while iters_run < target_iters:
        iters_run += 1

        # Sample a minimal subset (unique indices, no replacement)
        sample_idx = rng.choice(n, size=s, replace=False)

        # Degenerate samples give no model but still count as an iteration
        candidates = estimator.compute_models(sample_idx)

        for candidate in candidates:
            err, _ = estimator.errors(candidate)
            inliers = np.flatnonzero(err <= threshold_sq)

            # Primary criterion: more inliers. Ties keep the first found.
            if inliers.shape[0] <= best_inliers.shape[0]:
                continue

            best_model = candidate
            best_inliers = inliers

            w = best_inliers.shape[0] / float(n)
            iter_needed = required_iterations(
                beta=beta,
                inlier_ratio=w,
                sample_size=s,
                max_iters=max_iters,
            )
            target_iters = min(target_iters, max(iter_needed, iters_run))
            log.debug("[RANSAC] better model: inliers=%d/%d, w=%.3f, target_iters=%d (iter=%d)",
                      best_inliers.shape[0], n, w, target_iters, iters_run)

    return RansacResult(
        model=best_model,
        inliers=best_inliers.astype(np.intp),
        iterations=iters_run,
        threshold=float(precision),
    )
