"""
Estimate the fundamental matrix of an image pair.

ORB matches are verified with ORSA (automatic threshold), or with RANSAC when
a fixed precision is given. Writes the inlier matches and the epipolar lines
of a few inliers in both images.

    python scripts/demo_orsa_fundamental.py left.png right.png --out outputs
"""

import argparse
import logging
from pathlib import Path

import cv2
import numpy as np

from orsacv.ransac.params import RansacParams, OrsaParams
from orsacv.ransac.types import matches_to_points
from orsacv.estimation import TwoViewVerifier
from orsacv.viz.overlays import (
    resize_for_display, make_side_by_side, overlay_epipolar_lines, draw_inlier_matches, draw_status_text
)

logger = logging.getLogger("demo_orsa_fundamental")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("image1", help="Left image")
    ap.add_argument("image2", help="Right image")
    ap.add_argument("--precision", type=float, default=0.0,
                    help="Fixed inlier threshold in pixels (RANSAC). 0 means ORSA")
    ap.add_argument("--max-precision", type=float, default=0.0,
                    help="Upper bound on the ORSA threshold in pixels, 0 for none")
    ap.add_argument("--max-iters", type=int, default=1000, help="Maximal number of iterations")
    ap.add_argument("--seed", type=int, default=0, help="Seed for random sampling")
    ap.add_argument("--nfeatures", type=int, default=2000, help="ORB features per image")
    ap.add_argument("--num-lines", type=int, default=10, help="Epipolar lines to draw")
    ap.add_argument("--out", default="outputs", help="Output directory")
    ap.add_argument("--show", action="store_true", help="Display results")
    ap.add_argument("--display-scale", type=float, default=0.5)
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    img1 = cv2.imread(args.image1, cv2.IMREAD_COLOR)
    img2 = cv2.imread(args.image2, cv2.IMREAD_COLOR)
    if img1 is None or img2 is None:
        raise FileNotFoundError(f"Could not read {args.image1} / {args.image2}")

    gray1 = cv2.cvtColor(img1, cv2.COLOR_BGR2GRAY)
    gray2 = cv2.cvtColor(img2, cv2.COLOR_BGR2GRAY)

    fixed = args.precision > 0
    verifier = TwoViewVerifier(
        method="ransac" if fixed else "orsa",
        model_kind="fundamental",
        ransac_params=RansacParams(precision=args.precision if fixed else 1.0, max_iters=args.max_iters),
        orsa_params=OrsaParams(max_precision=args.max_precision, max_iters=args.max_iters),
        seed=args.seed,
        nfeatures=args.nfeatures,
        log=logger,
    )

    matches, res = verifier.verify_images(gray1, gray2)
    logger.info("Matches: %d", len(matches))
    if not res.ok or res.model is None:
        logger.error("Failed to estimate a model")
        return

    np.set_printoptions(precision=6, suppress=True)
    print("F =\n", res.model)
    print(f"inliers: {res.num_inliers}/{len(matches)}  precision: {res.threshold:.3f}px")

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    pts1, pts2 = matches_to_points(matches)
    status = [
        f"{verifier.method}: inliers={res.num_inliers}/{len(matches)}",
        f"precision={res.threshold:.2f}px  iters={res.iterations}",
    ]
    match_vis = draw_status_text(draw_inlier_matches(img1, img2, pts1, pts2, res.inliers), status)

    # Lines in image 2 from inliers of image 1, and the reverse with F^T
    sel = res.inliers[:: max(1, res.num_inliers // args.num_lines)][:args.num_lines]
    lines2 = overlay_epipolar_lines(img2, res.model, pts1[sel])
    lines1 = overlay_epipolar_lines(img1, res.model.T, pts2[sel])
    for i in sel:
        cv2.circle(lines1, (int(round(pts1[i, 0])), int(round(pts1[i, 1]))), 4, (0, 0, 255), -1)
        cv2.circle(lines2, (int(round(pts2[i, 0])), int(round(pts2[i, 1]))), 4, (0, 0, 255), -1)
    epi_vis = make_side_by_side(lines1, lines2)

    cv2.imwrite(str(out_dir / "inlier_matches.png"), match_vis)
    cv2.imwrite(str(out_dir / "epipolar_lines.png"), epi_vis)
    logger.info("Wrote results to %s", out_dir)

    if args.show:
        cv2.imshow("Inlier matches", resize_for_display(match_vis, args.display_scale))
        cv2.imshow("Epipolar lines", resize_for_display(epi_vis, args.display_scale))
        cv2.waitKey(0)
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
