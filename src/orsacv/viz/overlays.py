"""
Drawing helpers for two-view verification results.
"""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from ..ransac.types import Mat3x3, Points2D, IndexArray, as_homogeneous


def _as_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    return img.copy()


def resize_for_display(img: np.ndarray, scale: float) -> np.ndarray:
    """Resize only for display so large image pairs fit on screen."""
    if img is None or img.size == 0 or scale == 1.0:
        return img

    h, w = img.shape[:2]
    new_h = max(1, int(h * scale))
    new_w = max(1, int(w * scale))
    return cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_AREA)


def make_side_by_side(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """
    Create a side-by-side image: [ Left | Right ].

    The shorter image is padded with black at the bottom.
    """
    if left is None or right is None:
        raise ValueError("make_side_by_side received None image(s).")
    if left.size == 0 or right.size == 0:
        raise ValueError("make_side_by_side received empty image(s).")

    L = _as_bgr(left)
    R = _as_bgr(right)
    h = max(L.shape[0], R.shape[0])

    def pad(img: np.ndarray) -> np.ndarray:
        out = np.zeros((h, img.shape[1], 3), dtype=img.dtype)
        out[:img.shape[0]] = img
        return out

    return np.concatenate([pad(L), pad(R)], axis=1)


def overlay_epipolar_lines(
        img2: np.ndarray,
        F: Mat3x3,
        pts1: Points2D,
        *,
        color: tuple[int, int, int] = (0, 255, 0),
        thickness: int = 1,
) -> np.ndarray:
    """
    Draw in image 2 the epipolar lines l = F x1 of the given image-1 points.

    Lines are clipped to the image borders; lines missing the image are skipped.
    """
    if img2 is None or img2.size == 0:
        return img2

    vis = _as_bgr(img2)
    h, w = vis.shape[:2]
    lines = as_homogeneous(pts1) @ F.T

    for a, b, c in lines:
        # Intersections with the 4 borders, keep those inside the image
        ends = []
        if abs(b) > 1e-12:
            for x in (0.0, w - 1.0):
                y = -(a * x + c) / b
                if 0.0 <= y <= h - 1.0:
                    ends.append((x, y))
        if abs(a) > 1e-12:
            for y in (0.0, h - 1.0):
                x = -(b * y + c) / a
                if 0.0 <= x <= w - 1.0:
                    ends.append((x, y))
        if len(ends) < 2:
            continue
        p, q = ends[0], ends[-1]
        cv2.line(vis, (int(round(p[0])), int(round(p[1]))), (int(round(q[0])), int(round(q[1]))),
                 color, thickness)
    return vis


def draw_inlier_matches(
        img1: np.ndarray,
        img2: np.ndarray,
        pts1: Points2D,
        pts2: Points2D,
        inliers: IndexArray | Sequence[int],
        *,
        inlier_color: tuple[int, int, int] = (0, 255, 0),
        outlier_color: tuple[int, int, int] = (0, 0, 255),
        draw_outliers: bool = True,
) -> np.ndarray:
    """
    Side-by-side view with one segment per correspondence:
    green for inliers, red for outliers.
    """
    vis = make_side_by_side(img1, img2)
    offset = _as_bgr(img1).shape[1]

    mask = np.zeros((pts1.shape[0],), dtype=bool)
    mask[np.asarray(inliers, dtype=np.intp)] = True

    for i in range(pts1.shape[0]):
        if not mask[i] and not draw_outliers:
            continue
        color = inlier_color if mask[i] else outlier_color
        p = (int(round(pts1[i, 0])), int(round(pts1[i, 1])))
        q = (int(round(pts2[i, 0])) + offset, int(round(pts2[i, 1])))
        cv2.circle(vis, p, 2, color, -1)
        cv2.circle(vis, q, 2, color, -1)
        cv2.line(vis, p, q, color, 1)
    return vis


def draw_status_text(img_bgr: np.ndarray, lines: list[str]) -> np.ndarray:
    """
    Draw multiple lines of status text in the top-left corner.
    """
    vis = img_bgr.copy()
    y = 25
    for text in lines:
        cv2.putText(vis, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 0), 3, cv2.LINE_AA)
        cv2.putText(vis, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1, cv2.LINE_AA)
        y += 24
    return vis
