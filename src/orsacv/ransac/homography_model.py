"""
Adapter: makes the homography functions conform to the ModelEstimator Protocol.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import (
    Points2D, Mat3x3, FloatArray, IndexArray, ImageSize, ModelEstimator,
    check_point_pair, check_image_size)
from .fundamental import normalization_matrix, normalize_points
from .homography import (
    homography_alpha0, fit_homography_dlt, denormalize_homography,
    transfer_errors, symmetric_transfer_errors)


class HomographyModel(ModelEstimator[Mat3x3]):
    """
    Planar mapping from image 1 to image 2.

    symmetric_error:
      - False: forward transfer error in image 2.
      - True: larger of forward and backward transfer errors.
    """
    min_samples = 4
    max_models = 1
    dist_to_point = True

    def __init__(
            self,
            pts1: Points2D,
            pts2: Points2D,
            size1: ImageSize,
            size2: ImageSize,
            *,
            symmetric_error: bool = False,
            eps_area: float = 1e-6,
    ) -> None:
        check_point_pair(pts1, pts2)
        w1, h1 = check_image_size(size1)
        w2, h2 = check_image_size(size2)

        self.pts1 = np.asarray(pts1, dtype=np.float64)
        self.pts2 = np.asarray(pts2, dtype=np.float64)
        self.size1 = (w1, h1)
        self.size2 = (w2, h2)
        self.symmetric_error = symmetric_error
        self.eps_area = eps_area

        self._N1 = normalization_matrix(w1, h1)
        self._N2 = normalization_matrix(w2, h2)
        self._pts1_n = normalize_points(self.pts1, self._N1)
        self._pts2_n = normalize_points(self.pts2, self._N2)

    @property
    def num_data(self) -> int:
        return int(self.pts1.shape[0])

    @property
    def alpha0(self) -> tuple[float, float]:
        return homography_alpha0(*self.size1), homography_alpha0(*self.size2)

    def compute_models(self, indices: IndexArray) -> list[Mat3x3]:
        idx = np.asarray(indices, dtype=np.intp)
        if idx.shape[0] < self.min_samples:
            raise ValueError(f"HomographyModel needs >= {self.min_samples} indices, got {idx.shape[0]}")

        # Collinearity is measured in normalized units: scale the pixel tolerance.
        eps = self.eps_area * self._N1[0, 0] * self._N2[0, 0]
        H_n = fit_homography_dlt(self._pts1_n[idx], self._pts2_n[idx], eps_area=eps)
        if H_n is None:
            return []
        return [denormalize_homography(H_n, self._N1, self._N2)]

    def compute_model(self, indices: IndexArray) -> Optional[Mat3x3]:
        models = self.compute_models(indices)
        return models[0] if models else None

    def error(self, model: Mat3x3, index: int) -> float:
        i = slice(int(index), int(index) + 1)
        if self.symmetric_error:
            err, _ = symmetric_transfer_errors(model, self.pts1[i], self.pts2[i])
        else:
            err = transfer_errors(model, self.pts1[i], self.pts2[i])
        return float(err[0])

    def errors(self, model: Mat3x3) -> tuple[FloatArray, IndexArray]:
        if self.symmetric_error:
            return symmetric_transfer_errors(model, self.pts1, self.pts2)
        err = transfer_errors(model, self.pts1, self.pts2)
        return err, np.ones(err.shape, dtype=np.intp)

    def residuals(self, model: Mat3x3) -> FloatArray:
        return transfer_errors(model, self.pts1, self.pts2)
