"""
Parameters for the two consensus engines.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RansacParams:
    """
    Parameters for fixed-threshold RANSAC.

    precision:
      - Inlier/outlier threshold in pixels.
    max_iters:
      - Hard cap on the number of iterations.
    beta:
      - Desired probability of drawing at least one all-inlier sample.
        Drives the adaptive iteration budget.
    """
    precision: float = 1.0
    max_iters: int = 1000
    beta: float = 0.99

    def __post_init__(self) -> None:
        if self.precision <= 0:
            raise ValueError(f"precision must be > 0, got {self.precision}")
        if self.max_iters < 1:
            raise ValueError(f"max_iters must be >= 1, got {self.max_iters}")
        if not 0.0 < self.beta < 1.0:
            raise ValueError(f"beta must be in (0,1), got {self.beta}")


@dataclass(frozen=True)
class OrsaParams:
    """
    Parameters for a-contrario (ORSA) estimation.

    max_precision:
      - Upper bound on the discovered threshold in pixels. <= 0 means no bound.
    max_iters:
      - Hard cap on the number of iterations.
    beta:
      - Confidence used to shrink the budget once a meaningful model is found.
    focused_fraction:
      - Share of max_iters reserved for sampling inside the best inlier set.
    """
    max_precision: float = 0.0
    max_iters: int = 1000
    beta: float = 0.99
    focused_fraction: float = 0.1

    def __post_init__(self) -> None:
        if self.max_iters < 1:
            raise ValueError(f"max_iters must be >= 1, got {self.max_iters}")
        if not 0.0 < self.beta < 1.0:
            raise ValueError(f"beta must be in (0,1), got {self.beta}")
        if not 0.0 <= self.focused_fraction < 1.0:
            raise ValueError(f"focused_fraction must be in [0,1), got {self.focused_fraction}")
