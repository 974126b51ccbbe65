"""
Adapter: makes the fundamental matrix functions conform to the ModelEstimator Protocol.

Points are normalized once at construction (per image, from its dimensions).
Every model handed out is already de-normalized, so errors and thresholds are
in pixels.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import (
    Points2D, Mat3x3, FloatArray, IndexArray, ImageSize, ModelEstimator,
    check_point_pair, check_image_size)
from .fundamental import (
    normalization_matrix, normalize_points, fundamental_alpha0,
    fit_fundamental_7pt, fit_fundamental_8pt, denormalize_fundamental,
    epipolar_errors, symmetric_epipolar_errors)


class FundamentalModel(ModelEstimator[Mat3x3]):
    """
    Epipolar geometry between two images.

    symmetric_error:
      - False: error is the distance of point 2 to the epipolar line of point 1.
      - True: error is the larger of the distances measured in both images.
    """
    min_samples = 7
    max_models = 3
    dist_to_point = False

    def __init__(
            self,
            pts1: Points2D,
            pts2: Points2D,
            size1: ImageSize,
            size2: ImageSize,
            *,
            symmetric_error: bool = False,
    ) -> None:
        check_point_pair(pts1, pts2)
        w1, h1 = check_image_size(size1)
        w2, h2 = check_image_size(size2)

        self.pts1 = np.asarray(pts1, dtype=np.float64)
        self.pts2 = np.asarray(pts2, dtype=np.float64)
        self.size1 = (w1, h1)
        self.size2 = (w2, h2)
        self.symmetric_error = symmetric_error

        self._N1 = normalization_matrix(w1, h1)
        self._N2 = normalization_matrix(w2, h2)
        self._pts1_n = normalize_points(self.pts1, self._N1)
        self._pts2_n = normalize_points(self.pts2, self._N2)

    @property
    def num_data(self) -> int:
        return int(self.pts1.shape[0])

    @property
    def alpha0(self) -> tuple[float, float]:
        return fundamental_alpha0(*self.size1), fundamental_alpha0(*self.size2)

    def compute_models(self, indices: IndexArray) -> list[Mat3x3]:
        idx = np.asarray(indices, dtype=np.intp)
        if idx.shape[0] < self.min_samples:
            raise ValueError(f"FundamentalModel needs >= {self.min_samples} indices, got {idx.shape[0]}")

        s1 = self._pts1_n[idx]
        s2 = self._pts2_n[idx]
        if idx.shape[0] == self.min_samples:
            models_n = fit_fundamental_7pt(s1, s2)
        else:
            F_n = fit_fundamental_8pt(s1, s2)
            models_n = [] if F_n is None else [F_n]

        return [denormalize_fundamental(F_n, self._N1, self._N2) for F_n in models_n]

    def compute_model(self, indices: IndexArray) -> Optional[Mat3x3]:
        models = self.compute_models(indices)
        # The 7-point case may be ambiguous (up to 3 roots)
        if len(models) != 1:
            return None
        return models[0]

    def error(self, model: Mat3x3, index: int) -> float:
        i = slice(int(index), int(index) + 1)
        if self.symmetric_error:
            err, _ = symmetric_epipolar_errors(model, self.pts1[i], self.pts2[i])
        else:
            err = epipolar_errors(model, self.pts1[i], self.pts2[i])
        return float(err[0])

    def errors(self, model: Mat3x3) -> tuple[FloatArray, IndexArray]:
        if self.symmetric_error:
            return symmetric_epipolar_errors(model, self.pts1, self.pts2)
        err = epipolar_errors(model, self.pts1, self.pts2)
        return err, np.ones(err.shape, dtype=np.intp)

    def residuals(self, model: Mat3x3) -> FloatArray:
        return epipolar_errors(model, self.pts1, self.pts2)
