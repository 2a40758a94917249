# Andy Zhao
"""
Closed set of descriptor kinds a region can carry.

Each kind knows how its descriptors are compared:
- binary descriptors (bit strings packed in uint8) -> Hamming distance
- real valued descriptors -> squared L2 distance
"""

from __future__ import annotations

from enum import Enum


class DescriberType(Enum):
    SIFT = "SIFT"
    SIFT_FLOAT = "SIFT_FLOAT"
    AKAZE = "AKAZE"
    AKAZE_MLDB = "AKAZE_MLDB"
    ORB = "ORB"
    CCTAG3 = "CCTAG3"
    CCTAG4 = "CCTAG4"

    @property
    def is_binary(self) -> bool:
        return self in _BINARY

    @classmethod
    def from_string(cls, name: str) -> "DescriberType":
        """
        Parse a describer name ("sift", "AKAZE_MLDB", ...), case insensitive.
        """
        try:
            return cls(name.strip().upper())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown describer type {name!r}, expected one of: {valid}") from None


_BINARY = frozenset({DescriberType.AKAZE_MLDB, DescriberType.ORB})
