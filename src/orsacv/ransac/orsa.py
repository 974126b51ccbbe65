"""
ORSA: a-contrario RANSAC with an automatic inlier threshold.

Instead of a fixed threshold, every candidate model is scored by the Number
of False Alarms (NFA) of its best inlier/outlier split. With the errors
sorted increasingly, e_1 <= ... <= e_n, keeping the k smallest gives

    NFA(k) = max_models * (n - s) * C(n, k) * C(k, s) * alpha(e_k)^(k - s)

where s is the minimal sample size and alpha(e) is the probability that an
unrelated random point has error <= e:

    - point-to-line errors (fundamental):  alpha(e) = alpha0 * e
    - point-to-point errors (homography):  alpha(e) = alpha0 * e^2

alpha0 is taken for the image where e_k was measured (the "side").
Everything is computed as log10. A model is meaningful iff log10(NFA) < 0.

Reference: Moisan, Moulon, Monasse, "Automatic Homographic Registration of
a Pair of Images, with A Contrario Elimination of Outliers", IPOL 2012.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, TypeVar

import numpy as np

from .types import FloatArray, IndexArray, ModelEstimator, OrsaResult, empty_indices
from .core import required_iterations

M = TypeVar("M")
logger = logging.getLogger(__name__)

# Keeps log10 finite for exact fits (zero error).
_ERR_EPS = float(np.finfo(np.float32).eps)


# ---------- Binomial tables ----------
def log_combi(k: int, n: int) -> float:
    """log10 of the binomial coefficient C(n, k), 0 outside 0 < k < n."""
    if k >= n or k <= 0:
        return 0.0
    return (math.lgamma(n + 1) - math.lgamma(k + 1) - math.lgamma(n - k + 1)) / math.log(10.0)


def log_combi_n_table(n: int) -> FloatArray:
    """table[k] = log10 C(n, k) for k = 0..n"""
    i = np.arange(1, n + 1, dtype=np.float64)
    steps = np.log10(n - i + 1.0) - np.log10(i)
    return np.concatenate([[0.0], np.cumsum(steps)])


def log_combi_k_table(k: int, n_max: int) -> FloatArray:
    """table[m] = log10 C(m, k) for m = 0..n_max"""
    return np.array([log_combi(k, m) for m in range(n_max + 1)], dtype=np.float64)


def best_nfa(
        sorted_err: FloatArray,
        sorted_side: IndexArray,
        *,
        log_alpha0: FloatArray,
        sample_size: int,
        loge0: float,
        mult_error: float,
        max_threshold_sq: float,
        logc_n: FloatArray,
        logc_k: FloatArray,
) -> tuple[float, int]:
    """
    Most meaningful split of increasingly sorted squared errors.

    Sweeps k = s+1 .. n while e_k <= max_threshold_sq.

    Returns:
      (log10 NFA, k). log10 NFA is inf when no k is admissible.
    """
    s = int(sample_size)

    e = sorted_err[s:]
    count = int(np.searchsorted(e, max_threshold_sq, side="right"))
    if count == 0:
        return float("inf"), s

    e = e[:count]
    ks = np.arange(s + 1, s + 1 + count)
    log_alpha = log_alpha0[sorted_side[s:s + count]] + mult_error * np.log10(e + _ERR_EPS)
    nfa = loge0 + log_alpha * (ks - s) + logc_n[ks] + logc_k[ks]

    # argmin keeps the first (smallest k) minimum
    j = int(np.argmin(nfa))
    if not np.isfinite(nfa[j]):
        return float("inf"), s
    return float(nfa[j]), int(ks[j])


# ---------- Main loop ----------
def orsa(
        estimator: ModelEstimator[M],
        *,
        alpha0: Optional[Sequence[float]] = None,
        max_precision: float = 0.0,
        max_iters: int = 1000,
        beta: float = 0.99,
        focused_fraction: float = 0.1,
        seed: int | np.random.Generator | None = 0,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
) -> OrsaResult[M]:
    """
    Run ORSA on the correspondences owned by `estimator`.

    Inputs:
    - estimator: provides min_samples, max_models, dist_to_point, compute_models, errors
    - alpha0: a-priori probabilities (image 1, image 2); defaults to estimator.alpha0
    - max_precision: upper bound on the threshold in pixels, <= 0 for none
    - max_iters: hard cap on the number of iterations
    - beta: confidence used to shrink the budget after a meaningful model
    - focused_fraction: share of max_iters reserved for sampling among the
      best inliers once the uniform phase is over
    - seed: RNG seed or Generator, for reproducibility

    Returns:
    - OrsaResult. When log_nfa >= 0 no meaningful model was found: model is
      None, inliers is empty and threshold is max_precision.
    """
    log = log if log is not None else logger
    if max_iters < 1:
        raise ValueError(f"max_iters must be >= 1, got {max_iters}")
    if not 0.0 <= focused_fraction < 1.0:
        raise ValueError(f"focused_fraction must be in [0,1), got {focused_fraction}")

    n = estimator.num_data
    s = estimator.min_samples
    max_precision = float(max_precision)

    if n <= s:
        return OrsaResult(model=None, inliers=empty_indices(), log_nfa=float("inf"),
                          threshold=max_precision, side=1, iterations=0)

    a0 = estimator.alpha0 if alpha0 is None else alpha0
    if len(a0) != 2 or min(a0) <= 0:
        raise ValueError(f"alpha0 must hold two positive values, got {a0}")
    log_alpha0 = np.log10(np.asarray(a0, dtype=np.float64))

    max_threshold_sq = max_precision ** 2 if max_precision > 0 else float("inf")
    mult_error = 1.0 if estimator.dist_to_point else 0.5

    # Number of tests: models per sample times candidate splits
    loge0 = math.log10(estimator.max_models * (n - s))
    logc_n = log_combi_n_table(n)
    logc_k = log_combi_k_table(s, n)

    rng = np.random.default_rng(seed)

    n_reserve = int(max_iters * focused_fraction)
    n_iter = max_iters - n_reserve
    pool: IndexArray = np.arange(n)
    focused = False

    best_log_nfa = float("inf")
    best_model: Optional[M] = None
    best_inliers: IndexArray = empty_indices()
    best_err_sq = 0.0
    best_side = 1

    it = 0
    while it < n_iter:
        sample_idx = rng.choice(pool, size=s, replace=False)
        better = False

        for candidate in estimator.compute_models(sample_idx):
            err, side = estimator.errors(candidate)
            order = np.argsort(err, kind="stable")
            log_nfa, k = best_nfa(
                err[order], side[order],
                log_alpha0=log_alpha0,
                sample_size=s,
                loge0=loge0,
                mult_error=mult_error,
                max_threshold_sq=max_threshold_sq,
                logc_n=logc_n,
                logc_k=logc_k,
            )
            if log_nfa >= best_log_nfa:
                continue

            best_log_nfa = log_nfa
            if log_nfa < 0.0:
                better = True
                best_model = candidate
                best_inliers = order[:k]
                best_err_sq = float(err[order[k - 1]])
                best_side = int(side[order[k - 1]])
                log.debug("[ORSA] nfa=%.3f inliers=%d precision=%.3f im%d (iter=%d, sample=%s)",
                          log_nfa, k, math.sqrt(best_err_sq), best_side + 1, it,
                          ",".join(str(int(i)) for i in sample_idx))

        it += 1

        if better:
            if focused:
                pool = best_inliers
            else:
                w = best_inliers.shape[0] / float(n)
                iter_needed = required_iterations(
                    beta=beta, inlier_ratio=w, sample_size=s, max_iters=max_iters - n_reserve)
                n_iter = min(n_iter, max(it, iter_needed))

        # End of the uniform phase: spend the reserve, inside the best inliers if any
        if it == n_iter and not focused and n_reserve > 0:
            focused = True
            n_iter += n_reserve
            if best_model is not None:
                pool = best_inliers

    if best_model is None:
        return OrsaResult(model=None, inliers=empty_indices(), log_nfa=best_log_nfa,
                          threshold=max_precision, side=1, iterations=it)

    return OrsaResult(
        model=best_model,
        inliers=np.sort(best_inliers).astype(np.intp),
        log_nfa=best_log_nfa,
        threshold=math.sqrt(best_err_sq),
        side=best_side,
        iterations=it,
    )
