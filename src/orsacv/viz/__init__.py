from .overlays import (
    resize_for_display, make_side_by_side, overlay_epipolar_lines, draw_inlier_matches, draw_status_text
)

__all__ = [
    "resize_for_display", "make_side_by_side", "overlay_epipolar_lines", "draw_inlier_matches",
    "draw_status_text",
]
