"""
End-to-end tests for the two-view estimation entry points.
"""

import logging

import numpy as np
import pytest

from orsacv.ransac.types import Match, points_to_matches
from orsacv.estimation.refine import error_statistics
from orsacv.estimation.two_view import (
    build_estimator, estimate_fixed_threshold, estimate_auto_threshold,
    ransac_fundamental, orsa_fundamental, orsa_homography, ransac_homography,
)

from conftest import WIDTH, HEIGHT


def _five_matches():
    return [Match(10.0 * i, 5.0 * i, 10.0 * i + 3.0, 5.0 * i + 1.0) for i in range(1, 6)]


class TestNotEnoughMatches:

    def test_fixed_threshold(self, caplog):
        with caplog.at_level(logging.ERROR):
            res = estimate_fixed_threshold(_five_matches(), WIDTH, HEIGHT, WIDTH, HEIGHT, 1.0)
        assert not res.ok
        assert res.model is None
        assert res.iterations == 0
        assert res.num_inliers == 0
        assert "needs 7 matches" in caplog.text

    def test_auto_threshold(self):
        res = estimate_auto_threshold(_five_matches(), WIDTH, HEIGHT, WIDTH, HEIGHT)
        assert not res.ok
        assert res.model is None
        assert res.iterations == 0

    def test_orsa_needs_more_than_minimal(self, clean_epipolar_data):
        d = clean_epipolar_data
        matches = d.matches[:7]
        assert not orsa_fundamental(matches, WIDTH, HEIGHT, WIDTH, HEIGHT).ok
        # RANSAC runs with exactly the minimal number
        assert ransac_fundamental(matches, WIDTH, HEIGHT, WIDTH, HEIGHT, 1.0).ok

    def test_bad_matches_array(self):
        with pytest.raises(ValueError):
            estimate_auto_threshold(np.zeros((10, 3)), WIDTH, HEIGHT, WIDTH, HEIGHT)


class TestFundamental:

    def test_orsa_end_to_end(self, epipolar_data):
        d = epipolar_data
        res = orsa_fundamental(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, seed=0)

        assert res.ok
        assert res.model.shape == (3, 3)
        assert res.log_nfa < 0
        assert 150 <= res.num_inliers <= 230
        assert np.mean(d.is_inlier[res.inliers]) > 0.9
        assert res.stats_before is not None

        est = build_estimator(d.matches, d.size, d.size)
        stats = error_statistics(est, res.model, res.inliers)
        assert stats.rms < 3.0

        # Reported inliers stay within the reported threshold
        residuals = est.residuals(res.model)[res.inliers]
        assert np.sqrt(residuals.max()) <= res.threshold + 1e-9

    def test_ransac_end_to_end(self, epipolar_data):
        d = epipolar_data
        res = ransac_fundamental(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, 6.0, seed=0)
        assert res.ok
        assert res.model is not None
        assert res.num_inliers >= 140
        assert res.log_nfa is None
        assert res.threshold >= 6.0

    def test_match_list_and_array_agree(self, epipolar_data):
        d = epipolar_data
        a = orsa_fundamental(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, max_iters=200, seed=3)
        b = orsa_fundamental(points_to_matches(d.pts1, d.pts2), WIDTH, HEIGHT, WIDTH, HEIGHT,
                             max_iters=200, seed=3)
        np.testing.assert_array_equal(a.inliers, b.inliers)

    def test_all_outliers(self, outlier_data):
        d = outlier_data
        fixed = estimate_fixed_threshold(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, 1.0, max_iters=200)
        assert fixed.ok

        auto = estimate_auto_threshold(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, max_iters=300)
        assert not auto.ok
        assert auto.model is None
        assert auto.num_inliers == 0
        assert auto.iterations == 300

    def test_logs_iterations(self, epipolar_data, caplog):
        d = epipolar_data
        log = logging.getLogger("orsacv.test.two_view")
        with caplog.at_level(logging.INFO, logger="orsacv.test.two_view"):
            estimate_fixed_threshold(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, 4.0, log=log)
        assert "Iterations:" in caplog.text
        assert "Before refinement" in caplog.text

    def test_unknown_model_kind(self, epipolar_data):
        with pytest.raises(ValueError):
            build_estimator(epipolar_data.matches, (WIDTH, HEIGHT), (WIDTH, HEIGHT), model_kind="affine")


class TestHomography:

    def test_orsa_end_to_end(self, homography_data):
        d = homography_data
        res = orsa_homography(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, seed=0)
        assert res.ok
        assert res.num_inliers >= 130
        assert np.mean(d.is_inlier[res.inliers]) > 0.95

        inl = np.flatnonzero(d.is_inlier)
        est = build_estimator(d.matches, d.size, d.size, model_kind="homography")
        assert error_statistics(est, res.model, inl).rms < 2.5

    def test_ransac_end_to_end(self, homography_data):
        d = homography_data
        res = ransac_homography(d.matches, WIDTH, HEIGHT, WIDTH, HEIGHT, 3.0, seed=0)
        assert res.ok
        assert res.num_inliers >= 120
