# Andy Zhao
"""
Per-view feature containers.

Regions:
  positions of the features detected for one describer type in one image,
  plus (optionally) their descriptors.

RegionsPerView:
  view_id -> {DescriberType: Regions}
  Describer order is insertion order; it defines how blocks are concatenated
  when all regions of a view are flattened into one point matrix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import numpy as np
import numpy.typing as npt

from ..ransac.types import Points2D, as_points2d
from .describer import DescriberType

Pair = tuple[int, int]
MapRegionsPerDesc = Dict[DescriberType, "Regions"]


@dataclass(frozen=True)
class Regions:
    """
    positions:   (N,2) raw pixel coordinates
    descriptors: (N,D) uint8 (binary kinds) or float32 (real valued kinds), optional
    """
    positions: Points2D
    descriptors: Optional[npt.NDArray] = None

    def __post_init__(self) -> None:
        pos = as_points2d(self.positions, name="positions")
        object.__setattr__(self, "positions", pos)

        if self.descriptors is not None:
            desc = np.asarray(self.descriptors)
            if desc.ndim != 2 or desc.shape[0] != pos.shape[0]:
                raise ValueError(
                    f"descriptors must be (N,D) with N={pos.shape[0]}, got {desc.shape}")
            object.__setattr__(self, "descriptors", desc)

    @property
    def count(self) -> int:
        return int(self.positions.shape[0])

    def __len__(self) -> int:
        return self.count


@dataclass
class RegionsPerView:
    """
    Read-only (after construction) lookup of regions by view and describer type.
    """
    data: Dict[int, MapRegionsPerDesc] = field(default_factory=dict)

    def add(self, view_id: int, desc_type: DescriberType, regions: Regions) -> None:
        self.data.setdefault(int(view_id), {})[desc_type] = regions

    def all_regions(self, view_id: int) -> Mapping[DescriberType, Regions]:
        """
        Every describer block of a view (empty mapping for an unknown view).
        """
        return self.data.get(int(view_id), {})

    def regions(self, view_id: int, desc_type: DescriberType) -> Regions:
        try:
            return self.data[int(view_id)][desc_type]
        except KeyError:
            raise KeyError(f"No {desc_type.value} regions for view {view_id}") from None

    def common_desc_types(self, pair: Pair) -> list[DescriberType]:
        """
        Describer types available in both views, in view I's order.
        """
        view_i, view_j = pair
        regions_j = self.all_regions(view_j)
        return [d for d in self.all_regions(view_i) if d in regions_j]
