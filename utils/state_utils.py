#!/usr/bin/env python3
"""
State Extraction Utilities
==========================

Read-only views of vehicle progress and the observation vector handed to
the decision policy.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

POSITION_DIMS = 3


@dataclass(frozen=True)
class VehicleProgressSnapshot:
    """Progress of one vehicle as seen by the controller in one tick"""
    vehicle_id: str
    position: Tuple[float, float, float]
    remaining_count: Optional[int]
    completed: bool = False

    @property
    def countable(self) -> bool:
        """False when the vehicle's progress could not be read this tick"""
        return self.remaining_count is not None


class ProgressTracker:
    """
    Per-vehicle progress: elapsed time plus checkpoint hits

    Elapsed time runs until the required number of checkpoints has been
    reached, after which the tracker is done.
    """

    def __init__(self, required_checkpoints: int = 2):
        self.required_checkpoints = required_checkpoints
        self.checkpoints = 0
        self.elapsed_time = 0.0
        self.active = True

    def tick(self, dt: float):
        if self.active:
            self.elapsed_time += dt
        if self.checkpoints >= self.required_checkpoints:
            self.active = False

    def record_checkpoint(self):
        self.checkpoints += 1

    @property
    def remaining_count(self) -> int:
        return max(0, self.required_checkpoints - self.checkpoints)

    @property
    def completed(self) -> bool:
        return self.checkpoints >= self.required_checkpoints


def read_snapshot(vehicle_id: str, vehicle: Any) -> VehicleProgressSnapshot:
    """
    Build a snapshot from a vehicle exposing ``position`` and ``progress``

    A missing or unreadable progress component yields a non-countable
    snapshot instead of an error.
    """
    position = getattr(vehicle, "position", None)
    if position is None:
        position = (0.0,) * POSITION_DIMS
    position = tuple(float(v) for v in position)

    progress = getattr(vehicle, "progress", None)
    if progress is None:
        return VehicleProgressSnapshot(vehicle_id, position, None, False)

    try:
        remaining = int(progress.remaining_count)
        completed = bool(progress.completed)
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug("Progress of vehicle %s unreadable this tick: %s", vehicle_id, e)
        return VehicleProgressSnapshot(vehicle_id, position, None, False)

    return VehicleProgressSnapshot(vehicle_id, position, remaining, completed)


class VehicleRegistry:
    """
    Explicitly owned collection of vehicles

    The vehicle subsystem adds and removes vehicles; the controller only
    reads snapshots from it.
    """

    def __init__(self):
        self._vehicles: Dict[str, Any] = {}

    def add(self, vehicle_id: str, vehicle: Any):
        if vehicle_id in self._vehicles:
            logger.debug("Vehicle %s re-registered", vehicle_id)
        self._vehicles[vehicle_id] = vehicle

    def remove(self, vehicle_id: str):
        self._vehicles.pop(vehicle_id, None)

    def clear(self):
        self._vehicles.clear()

    def get(self, vehicle_id: str) -> Optional[Any]:
        return self._vehicles.get(vehicle_id)

    def vehicles(self) -> List[Any]:
        return list(self._vehicles.values())

    def __len__(self) -> int:
        return len(self._vehicles)

    def __contains__(self, vehicle_id: str) -> bool:
        return vehicle_id in self._vehicles

    def snapshots(self) -> List[VehicleProgressSnapshot]:
        """Snapshots of all registered vehicles in registration order"""
        return [read_snapshot(vid, vehicle) for vid, vehicle in self._vehicles.items()]


def count_vehicles(snapshots: List[VehicleProgressSnapshot]) -> Tuple[int, int]:
    """
    Count vehicles for reward and termination

    Returns:
        Tuple[int, int]: (tracked, active) where tracked counts readable
        snapshots and active those not yet completed
    """
    tracked = 0
    active = 0
    for snapshot in snapshots:
        if not snapshot.countable:
            continue
        tracked += 1
        if not snapshot.completed:
            active += 1
    return tracked, active


def build_observation(snapshots: List[VehicleProgressSnapshot]) -> np.ndarray:
    """Flattened vehicle positions, one position per vehicle"""
    if not snapshots:
        return np.zeros(0, dtype=np.float32)
    return np.array([snapshot.position for snapshot in snapshots], dtype=np.float32).reshape(-1)


def pad_observation(observation: np.ndarray, size: int) -> np.ndarray:
    """Zero-pad or truncate an observation to a fixed length"""
    padded = np.zeros(size, dtype=np.float32)
    n = min(size, observation.shape[0])
    padded[:n] = observation[:n]
    return padded


def get_state_summary(snapshots: List[VehicleProgressSnapshot]) -> Dict[str, int]:
    """Summary counts of the current vehicle state"""
    tracked, active = count_vehicles(snapshots)
    return {
        'total_vehicles': len(snapshots),
        'tracked_vehicles': tracked,
        'active_vehicles': active,
        'completed_vehicles': tracked - active,
        'read_misses': len(snapshots) - tracked
    }
