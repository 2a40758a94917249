# Andy Zhao
"""
Correspondence containers.

IndMatches: (M,2) int64 array, each row (idx_i, idx_j) indexes the regions of
image I and image J for one describer type.
MatchesPerDescType: {DescriberType: IndMatches}
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, TypeAlias

import numpy as np
import numpy.typing as npt

from .describer import DescriberType

IndMatches: TypeAlias = npt.NDArray[np.int64]   # shape: (M, 2)
MatchesPerDescType: TypeAlias = Dict[DescriberType, IndMatches]


def as_ind_matches(matches: Iterable | np.ndarray) -> IndMatches:
    """
    Coerce [(i, j), ...] or an array to an (M,2) int64 array.
    """
    arr = np.asarray(matches, dtype=np.int64)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected matches shape (M,2), got {arr.shape}")
    return arr


def empty_matches() -> IndMatches:
    return np.zeros((0, 2), dtype=np.int64)


def count_matches(matches: Mapping[DescriberType, IndMatches]) -> int:
    """
    Total number of matches over all describer types.
    """
    return int(sum(np.asarray(m).shape[0] for m in matches.values()))
