from __future__ import annotations

import math
from typing import Dict, Mapping

from fingerpress.core.config import TrackingSafety
from fingerpress.core.types import HandSide, Vec3


def _dist(a: Vec3, b: Vec3) -> float:
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return math.sqrt(dx * dx + dy * dy + dz * dz)


class DriftMonitor:
    """
    Compares live palm positions with the positions recorded during baseline
    capture. Only hands passed to set_baseline() are monitored; callers
    leave out hands that were never calibrated.

    Resuming uses a tighter radius (max_position_drift * resume_factor) than
    pausing so a hand sitting right at the boundary does not flap between
    the two.
    """

    def __init__(self, tracking: TrackingSafety = TrackingSafety()) -> None:
        self.max_position_drift = float(tracking.max_position_drift)
        self.resume_factor = float(tracking.resume_factor)
        self._baseline: Dict[HandSide, Vec3] = {}

    @property
    def resume_radius(self) -> float:
        return self.max_position_drift * self.resume_factor

    def set_baseline(self, positions: Mapping[HandSide, Vec3]) -> None:
        self._baseline = {side: tuple(pos) for side, pos in positions.items()}

    def calibrated_sides(self):
        return tuple(self._baseline.keys())

    def distances(self, current: Mapping[HandSide, Vec3]) -> Dict[HandSide, float]:
        out: Dict[HandSide, float] = {}
        for side, base in self._baseline.items():
            pos = current.get(side)
            if pos is None:
                continue
            out[side] = _dist(base, pos)
        return out

    def check_drift(self, current: Mapping[HandSide, Vec3]) -> bool:
        return any(d > self.max_position_drift for d in self.distances(current).values())

    def check_resume(self, current: Mapping[HandSide, Vec3]) -> bool:
        radius = self.resume_radius
        for side, base in self._baseline.items():
            pos = current.get(side)
            if pos is None:
                return False
            if _dist(base, pos) > radius:
                return False
        return True
