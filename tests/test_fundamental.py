"""
Unit tests for the fundamental matrix solvers and model.
"""

import numpy as np
import pytest

from orsacv.ransac.fundamental import (
    normalization_matrix, normalize_points, fundamental_alpha0, enforce_rank2,
    fit_fundamental_7pt, fit_fundamental_8pt, denormalize_fundamental,
    epipolar_errors, symmetric_epipolar_errors,
)
from orsacv.ransac.fundamental_model import FundamentalModel

from conftest import WIDTH, HEIGHT


def _same_up_to_sign(A, B, tol):
    return min(np.linalg.norm(A - B), np.linalg.norm(A + B)) < tol


# y1 == y2 constraint (pure horizontal motion): error is (y1 - y2)^2
F_HORIZONTAL = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, -1.0], [0.0, 1.0, 0.0]])


class TestNormalization:

    def test_center_maps_to_origin(self):
        N = normalization_matrix(WIDTH, HEIGHT)
        out = normalize_points(np.array([[WIDTH / 2, HEIGHT / 2]]), N)
        np.testing.assert_allclose(out, [[0.0, 0.0]], atol=1e-12)

    def test_unit_area(self):
        N = normalization_matrix(WIDTH, HEIGHT)
        corners = normalize_points(np.array([[0.0, 0.0], [WIDTH, HEIGHT]]), N)
        extent = corners[1] - corners[0]
        assert extent[0] * extent[1] == pytest.approx(1.0)

    def test_alpha0(self):
        diag = np.hypot(WIDTH, HEIGHT)
        assert fundamental_alpha0(WIDTH, HEIGHT) == pytest.approx(2 * diag / (WIDTH * HEIGHT))


class TestSolvers:

    def test_seven_point_contains_true_solution(self, clean_epipolar_data):
        d = clean_epipolar_data
        N = normalization_matrix(*d.size)
        p1 = normalize_points(d.pts1, N)
        p2 = normalize_points(d.pts2, N)

        models = fit_fundamental_7pt(p1[:7], p2[:7])
        assert 1 <= len(models) <= 3

        best = min(
            np.max(epipolar_errors(denormalize_fundamental(F, N, N), d.pts1, d.pts2))
            for F in models
        )
        assert np.sqrt(best) < 1e-3

    def test_seven_point_solutions_are_rank2(self, clean_epipolar_data):
        d = clean_epipolar_data
        N = normalization_matrix(*d.size)
        models = fit_fundamental_7pt(normalize_points(d.pts1[:7], N), normalize_points(d.pts2[:7], N))
        for F in models:
            sv = np.linalg.svd(F, compute_uv=False)
            assert sv[2] / sv[0] < 1e-6

    def test_seven_point_degenerate(self):
        p = np.tile([[0.1, 0.2]], (7, 1))
        assert fit_fundamental_7pt(p, p + 0.05) == []

    def test_seven_point_wrong_shape(self):
        with pytest.raises(ValueError):
            fit_fundamental_7pt(np.zeros((6, 2)), np.zeros((6, 2)))

    def test_eight_point_recovers_truth(self, clean_epipolar_data):
        d = clean_epipolar_data
        N = normalization_matrix(*d.size)
        F_n = fit_fundamental_8pt(normalize_points(d.pts1, N), normalize_points(d.pts2, N))
        assert F_n is not None
        F = denormalize_fundamental(F_n, N, N)
        assert np.linalg.norm(F) == pytest.approx(1.0)
        assert _same_up_to_sign(F, d.F, 1e-6)

    def test_eight_point_enforces_rank2(self, epipolar_data):
        d = epipolar_data
        N = normalization_matrix(*d.size)
        F = fit_fundamental_8pt(normalize_points(d.pts1, N), normalize_points(d.pts2, N))
        sv = np.linalg.svd(F, compute_uv=False)
        assert sv[2] < 1e-12 * sv[0]

    def test_eight_point_too_few(self):
        assert fit_fundamental_8pt(np.zeros((7, 2)), np.zeros((7, 2))) is None

    def test_eight_point_degenerate(self):
        p = np.tile([[0.1, 0.2]], (10, 1))
        assert fit_fundamental_8pt(p, p) is None

    def test_enforce_rank2(self):
        A = np.arange(9, dtype=np.float64).reshape(3, 3) + np.eye(3)
        F = enforce_rank2(A)
        assert np.linalg.matrix_rank(F) == 2


class TestEpipolarErrors:

    def test_point_to_line_distance(self):
        pts1 = np.array([[10.0, 20.0], [5.0, 5.0]])
        pts2 = np.array([[40.0, 23.0], [9.0, 1.0]])
        np.testing.assert_allclose(epipolar_errors(F_HORIZONTAL, pts1, pts2), [9.0, 16.0])

    def test_symmetric_sides(self):
        pts1 = np.array([[10.0, 20.0]])
        pts2 = np.array([[40.0, 23.0]])
        err, side = symmetric_epipolar_errors(F_HORIZONTAL, pts1, pts2)
        np.testing.assert_allclose(err, [9.0])
        # ties are attributed to image 2
        assert side.tolist() == [1]

    def test_symmetric_is_upper_bound(self, epipolar_data):
        d = epipolar_data
        one_sided = epipolar_errors(d.F, d.pts1, d.pts2)
        sym, side = symmetric_epipolar_errors(d.F, d.pts1, d.pts2)
        assert np.all(sym >= one_sided)
        assert set(np.unique(side)) <= {0, 1}


class TestFundamentalModel:

    def test_contract_constants(self, epipolar_data):
        d = epipolar_data
        model = FundamentalModel(d.pts1, d.pts2, d.size, d.size)
        assert model.min_samples == 7
        assert model.max_models == 3
        assert model.dist_to_point is False
        assert model.num_data == d.pts1.shape[0]
        a0 = fundamental_alpha0(*d.size)
        assert model.alpha0 == pytest.approx((a0, a0))

    def test_models_are_in_pixels(self, clean_epipolar_data):
        d = clean_epipolar_data
        model = FundamentalModel(d.pts1, d.pts2, d.size, d.size)
        F = model.compute_model(np.arange(d.pts1.shape[0]))
        assert F is not None
        assert np.sqrt(np.max(model.residuals(F))) < 1e-4

    def test_error_matches_errors(self, epipolar_data):
        d = epipolar_data
        for symmetric in (False, True):
            model = FundamentalModel(d.pts1, d.pts2, d.size, d.size, symmetric_error=symmetric)
            err, side = model.errors(d.F)
            for i in (0, 5, 17):
                assert model.error(d.F, i) == pytest.approx(err[i])
            if not symmetric:
                assert np.all(side == 1)
                np.testing.assert_allclose(err, model.residuals(d.F))

    def test_too_few_indices(self, epipolar_data):
        d = epipolar_data
        model = FundamentalModel(d.pts1, d.pts2, d.size, d.size)
        with pytest.raises(ValueError):
            model.compute_models(np.arange(6))

    def test_degenerate_sample_gives_no_model(self):
        p = np.tile([[100.0, 200.0]], (7, 1))
        model = FundamentalModel(p, p, (640, 480), (640, 480))
        assert model.compute_models(np.arange(7)) == []
        assert model.compute_model(np.arange(7)) is None

    def test_mismatched_points(self):
        with pytest.raises(ValueError):
            FundamentalModel(np.zeros((10, 2)), np.zeros((9, 2)), (640, 480), (640, 480))

    def test_bad_image_size(self):
        with pytest.raises(ValueError):
            FundamentalModel(np.zeros((10, 2)), np.zeros((10, 2)), (0, 480), (640, 480))
