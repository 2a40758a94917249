"""
Matching package: guided matching and match clean-up.
"""
from .guided import guided_matching_geometry, guided_matching_descriptors, descriptor_distances
from .dedup import deduplicate_matches, unique_coordinates_mask

__all__ = [
    "guided_matching_geometry", "guided_matching_descriptors", "descriptor_distances",
    "deduplicate_matches", "unique_coordinates_mask",
]
