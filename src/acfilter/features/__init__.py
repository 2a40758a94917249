"""
Features package: describer kinds, regions and matches.
"""
from .describer import DescriberType
from .regions import Regions, RegionsPerView, MapRegionsPerDesc, Pair
from .matches import IndMatches, MatchesPerDescType, as_ind_matches, empty_matches, count_matches

__all__ = [
    "DescriberType",
    "Regions", "RegionsPerView", "MapRegionsPerDesc", "Pair",
    "IndMatches", "MatchesPerDescType", "as_ind_matches", "empty_matches", "count_matches",
]
