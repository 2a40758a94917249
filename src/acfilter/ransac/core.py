# Andy Zhao
"""
Generic a-contrario RANSAC loop (model-agnostic).

AC-RANSAC overview:
- Randomly sample a *minimal* subset of correspondences
- Fit candidate model(s) from that subset
- Score all correspondences by their residual errors, sorted ascending
- Instead of a fixed inlier threshold tau, try every "k smallest residuals are
  the inliers" hypothesis and score it with the Number of False Alarms (NFA):
  how many times such a good fit would be expected from random data
- Keep the (model, k) with the lowest NFA over all iterations
- Accept only if the model is meaningful (NFA < 1, i.e. log10 NFA < 0) and
  supported by enough inliers

Reference: Moisan, Moulon, Monasse, "Automatic Homographic Registration of a
Pair of Images, with A Contrario Elimination of Outliers", IPOL 2012.

Uses the ACKernel Protocol from types.py, so any ModelFitter wrapped in an
ACKernelAdaptor works (homography, affine, ...).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TypeVar
import math
import os

import numpy as np

from .types import FloatArray, IntArray, ACKernel, ACRansacResult

M = TypeVar("M")
_ACRANSAC_DEBUG = os.environ.get("ACFILTER_DEBUG", "0") == "1"

# Keeps log10 finite for the (near) zero residuals of the sample itself
_EPS32 = float(np.finfo(np.float32).eps)


@dataclass(frozen=True)
class ACRansacParams:
    """
    AC-RANSAC settings.

    max_iters:
      - Iteration budget (number of minimal samples drawn).
    upper_bound_precision:
      - Largest residual (pixels) an inlier may have. math.inf = no cap,
        the NFA alone picks the threshold.
    min_inlier_coef:
      - A model needs more than min_inlier_coef * min_samples inliers.
    max_stall_iters:
      - Early exit: once a meaningful model is held, stop after this many
        consecutive iterations without improvement. None = run the full budget.
    """
    max_iters: int = 1024
    upper_bound_precision: float = math.inf
    min_inlier_coef: float = 2.5
    max_stall_iters: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_iters < 1:
            raise ValueError(f"max_iters must be >= 1, got {self.max_iters}")
        if not self.upper_bound_precision >= 0.0:
            raise ValueError(f"upper_bound_precision must be >= 0, got {self.upper_bound_precision}")
        if self.min_inlier_coef < 0.0:
            raise ValueError(f"min_inlier_coef must be >= 0, got {self.min_inlier_coef}")
        if self.max_stall_iters is not None and self.max_stall_iters < 1:
            raise ValueError(f"max_stall_iters must be >= 1 or None, got {self.max_stall_iters}")


# ---------- Combinatorics (log10) ----------
def _log10_factorials(n: int) -> FloatArray:
    """
    lf[i] = log10(i!) for i in [0, n].
    """
    lf = np.zeros((n + 1,), dtype=np.float64)
    if n > 0:
        lf[1:] = np.cumsum(np.log10(np.arange(1, n + 1, dtype=np.float64)))
    return lf


def log_combi_n(n: int) -> FloatArray:
    """
    logc_n[k] = log10 C(n, k) for k in [0, n].
    """
    lf = _log10_factorials(n)
    k = np.arange(n + 1)
    return lf[n] - lf[k] - lf[n - k]


def log_combi_k(s: int, n: int) -> FloatArray:
    """
    logc_k[k] = log10 C(k, s) for k in [0, n] (0 where k < s).
    """
    lf = _log10_factorials(n)
    out = np.zeros((n + 1,), dtype=np.float64)
    k = np.arange(s, n + 1)
    out[s:] = lf[k] - lf[s] - lf[k - s]
    return out


# ---------- NFA sweep ----------
def best_nfa(
        sorted_err: FloatArray,
        *,
        min_samples: int,
        max_threshold: float,
        logalpha0: float,
        mult_error: float,
        loge0: float,
        logc_n: FloatArray,
        logc_k: FloatArray,
) -> tuple[float, int]:
    """
    Best inlier count k for one model.

    sorted_err: (N,) squared residuals sorted ascending.

    For k in [s+1, N] with e_(k) <= max_threshold, the hypothesis
    "the k smallest residuals are inliers" has

        log10 NFA(k) = loge0 + log10 C(N,k) + log10 C(k,s)
                       + (k - s) * log10 alpha(e_(k))

    where loge0 = log10(max_models * (N - s)) counts the tests and
    alpha(e) = 10^logalpha0 * e^mult_error is the chance that a random point
    has error <= e. The s sample points are excluded since they fit by construction.

    Returns:
      (log10 NFA, k) of the minimum, ties broken towards larger k;
      (inf, 0) when no k passes the threshold.
    """
    s = int(min_samples)
    n = int(sorted_err.shape[0])
    if n <= s:
        return math.inf, 0

    errs = sorted_err[s:n]                 # e_(k) for k = s+1 .. n
    valid = errs <= max_threshold
    if not valid.any():
        return math.inf, 0

    ks = np.arange(s + 1, n + 1)
    with np.errstate(divide="ignore", invalid="ignore"):
        logalpha = logalpha0 + mult_error * np.log10(errs + _EPS32)
        nfa = loge0 + logalpha * (ks - s) + logc_n[ks] + logc_k[ks]
    nfa = np.where(valid & ~np.isnan(nfa), nfa, math.inf)

    best = float(nfa.min())
    k = int(ks[np.flatnonzero(nfa == best)[-1]])
    return best, k


# ---------- Main loop ----------
def ac_ransac(
        kernel: ACKernel[M],
        *,
        params: ACRansacParams = ACRansacParams(),
        rng: Optional[np.random.Generator] = None,
        seed: int = 0,
) -> Optional[ACRansacResult[M]]:
    """
    Run AC-RANSAC on a kernel.

    Inputs:
    - kernel: fit / residuals / null-hypothesis model for one point pair set
    - params: iteration budget, precision cap, support and early-exit settings
    - rng: random generator used for sampling (takes precedence over seed)
    - seed: seed for a fresh generator when rng is None

    Returns:
    - ACRansacResult with the best model and its inliers, or None if no
      meaningful, well-supported model was found.
    """
    s = kernel.min_samples
    n = kernel.num_samples

    if n <= s:
        if _ACRANSAC_DEBUG:
            print(f"[ACRANSAC] not enough points: {n} <= min_samples={s}")
        return None

    if rng is None:
        rng = np.random.default_rng(seed)

    if math.isinf(params.upper_bound_precision):
        max_threshold = math.inf
    else:
        max_threshold = float(params.upper_bound_precision) ** 2

    # Precompute everything that only depends on N and s
    loge0 = math.log10(kernel.max_models * (n - s))
    logc_n = log_combi_n(n)
    logc_k = log_combi_k(s, n)
    logalpha0 = kernel.logalpha0
    mult_error = kernel.mult_error

    # Track the best hypothesis
    best_model: Optional[M] = None
    best_nfa_val = math.inf
    best_k = 0
    best_order: Optional[IntArray] = None
    best_sorted_err: Optional[FloatArray] = None

    stall = 0
    iters_run = 0

    for i in range(params.max_iters):
        iters_run = i + 1

        # Sample a minimal subset (unique indices, no replacement)
        sample_idx = rng.choice(n, size=s, replace=False)

        # Degenerate samples yield no model
        models = kernel.fit(sample_idx)

        improved = False
        for model in models:
            err = kernel.residuals(model)
            order = np.argsort(err, kind="stable")
            sorted_err = err[order]

            nfa, k = best_nfa(
                sorted_err,
                min_samples=s,
                max_threshold=max_threshold,
                logalpha0=logalpha0,
                mult_error=mult_error,
                loge0=loge0,
                logc_n=logc_n,
                logc_k=logc_k,
            )
            if k == 0:
                continue

            # Strictly better NFA, or same NFA with more support.
            # Earlier iterations win remaining ties.
            if nfa < best_nfa_val or (nfa == best_nfa_val and k > best_k):
                best_model = model
                best_nfa_val = nfa
                best_k = k
                best_order = order
                best_sorted_err = sorted_err
                improved = True
                if _ACRANSAC_DEBUG:
                    print(f"[ACRANSAC] iter={i} better model: nfa={nfa:.2f}, inliers={k}/{n}, "
                          f"precision={math.sqrt(float(sorted_err[k - 1])):.3f}px")

        if improved:
            stall = 0
        elif params.max_stall_iters is not None and best_nfa_val < 0.0:
            stall += 1
            if stall >= params.max_stall_iters:
                if _ACRANSAC_DEBUG:
                    print(f"[ACRANSAC] early exit after {iters_run} iterations ({stall} without improvement)")
                break

    if best_model is None or best_order is None or best_sorted_err is None:
        if _ACRANSAC_DEBUG:
            print(f"[ACRANSAC] no model found in {iters_run} iterations")
        return None

    # Not meaningful: at least one false alarm expected under the null hypothesis
    if best_nfa_val >= 0.0:
        if _ACRANSAC_DEBUG:
            print(f"[ACRANSAC] best model not meaningful: nfa={best_nfa_val:.2f}")
        return None

    if best_k <= params.min_inlier_coef * s:
        if _ACRANSAC_DEBUG:
            print(f"[ACRANSAC] too few inliers: {best_k} <= {params.min_inlier_coef} * {s}")
        return None

    threshold = float(best_sorted_err[best_k - 1])
    inliers = np.sort(best_order[:best_k]).astype(np.int64)

    return ACRansacResult(
        model=best_model,
        inliers=inliers,
        num_inliers=int(best_k),
        nfa=float(best_nfa_val),
        residual_threshold=threshold,
        precision=math.sqrt(threshold),
        iterations=iters_run,
    )
