import math

import numpy as np

from acfilter.ransac.homography import apply_T
from acfilter.ransac.kernel import ACKernelAdaptor
from acfilter.ransac.core import ACRansacParams, ac_ransac
from acfilter.ransac.homography_fitter import HomographyFitter


def main() -> None:
    rng = np.random.default_rng(0)
    w, h = 640, 480

    # True homography
    H_true = np.array(
        [[0.95, 0.08, 25.0],
         [-0.05, 1.02, -12.0],
         [2e-4, -1e-4, 1.0]],
        dtype=np.float64,
    )

    # Generate inlier points
    n_in = 200
    pts0 = rng.uniform([0, 0], [w, h], size=(n_in, 2))
    pts1 = apply_T(H_true, pts0)

    # Add bounded pixel noise
    pts1 += rng.uniform(-0.5, 0.5, size=pts1.shape)

    # Add outliers (wrong matches)
    n_out = 80
    o0 = rng.uniform([0, 0], [w, h], size=(n_out, 2))
    o1 = rng.uniform([0, 0], [w, h], size=(n_out, 2))

    xI = np.vstack([pts0, o0])
    xJ = np.vstack([pts1, o1])

    # Run AC-RANSAC, no threshold to choose
    kernel = ACKernelAdaptor(HomographyFitter(), xI, w, h, xJ, w, h)
    res = ac_ransac(kernel, params=ACRansacParams(max_iters=1024, upper_bound_precision=math.inf), seed=42)

    print("H_true:\n", H_true)
    if res is None:
        print("AC-RANSAC failed.")
        return

    print("H_est:\n", res.model)
    print("num_inliers:", res.num_inliers, "/", xI.shape[0])
    print("robust precision (px):", res.precision)
    print("log10 NFA:", res.nfa)
    print("iterations:", res.iterations)


if __name__ == "__main__":
    main()
