#!/usr/bin/env python3
"""
Traffic Generator - Scenario vehicles for controller episodes
Stands in for the external vehicle subsystem: it spawns simple vehicles
on the approaches served by each signal cycle and moves them along a
straight line, holding at the stop line while their cycle is not green.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from signal_controller import CycleId, SignalState, SignalPhaseController
from utils.state_utils import ProgressTracker, VehicleRegistry

logger = logging.getLogger(__name__)

# Share of vehicles approaching on cycle A; the rest use cycle B
SCENARIO_WEIGHTS = {
    "uniform": 0.5,
    "tidal": 0.8,
    "asymmetric": 0.3
}

# Unit direction of travel per cycle
APPROACH_DIRECTIONS = {
    CycleId.A: (0.0, 0.0, 1.0),
    CycleId.B: (1.0, 0.0, 0.0)
}

STOP_GAP = 0.01


class SimulatedVehicle:
    """A vehicle driving straight through the intersection"""

    def __init__(self,
                 vehicle_id: str,
                 cycle: CycleId,
                 start_distance: float,
                 speed: float = 10.0,
                 exit_distance: float = 10.0):
        self.vehicle_id = vehicle_id
        self.cycle = cycle
        self.speed = speed
        self.exit_distance = exit_distance
        # Signed distance along the approach; the stop line is at 0
        self.distance = -abs(start_distance)
        self.progress = ProgressTracker(required_checkpoints=2)

    @property
    def position(self) -> Tuple[float, float, float]:
        dx, dy, dz = APPROACH_DIRECTIONS[self.cycle]
        return (dx * self.distance, dy * self.distance, dz * self.distance)

    def update(self, dt: float, green: bool):
        """Move forward unless held at a non-green stop line"""
        if not self.progress.completed:
            step = self.speed * dt
            before = self.distance
            if before < 0.0 and before + step >= 0.0 and not green:
                # Wait at the stop line
                self.distance = max(before, -STOP_GAP)
            else:
                self.distance = before + step
                if before < 0.0 <= self.distance:
                    self.progress.record_checkpoint()
                if before < self.exit_distance <= self.distance:
                    self.progress.record_checkpoint()
        self.progress.tick(dt)


class TrafficGenerator:
    """Spawns scenario vehicles into a registry and drives them each tick"""

    def __init__(self, n_vehicles: int = 4, seed: Optional[int] = None, scenario: str = "uniform"):
        self.n_vehicles = n_vehicles
        self.scenario = scenario
        self.rng = np.random.default_rng(seed)
        self.current_episode = 0
        self.vehicles: List[SimulatedVehicle] = []

    def generate(self, registry: VehicleRegistry, scenario: Optional[str] = None) -> List[SimulatedVehicle]:
        """
        Populate the registry with a fresh set of vehicles

        Args:
            registry: Registry to fill (cleared first)
            scenario: Scenario name, defaults to the generator's scenario

        Returns:
            List[SimulatedVehicle]: The generated vehicles
        """
        scenario = scenario or self.scenario
        if scenario not in SCENARIO_WEIGHTS:
            logger.warning("Unknown scenario %r, using uniform", scenario)
            scenario = "uniform"

        share_a = SCENARIO_WEIGHTS[scenario]
        registry.clear()
        self.vehicles = []

        for i in range(self.n_vehicles):
            cycle = CycleId.A if self.rng.random() < share_a else CycleId.B
            start = float(self.rng.uniform(5.0, 30.0))
            speed = float(self.rng.uniform(8.0, 12.0))
            vehicle = SimulatedVehicle(f"{cycle.value}_{i}", cycle, start, speed=speed)
            self.vehicles.append(vehicle)
            registry.add(vehicle.vehicle_id, vehicle)

        self.current_episode += 1
        logger.debug("Generated %d vehicles for scenario %s", len(self.vehicles), scenario)
        return self.vehicles

    def step(self, dt: float, controller: SignalPhaseController):
        """Move every vehicle according to the current signal states"""
        for vehicle in self.vehicles:
            cycle = controller.cycles.get(vehicle.cycle)
            green = cycle is not None and cycle.state == SignalState.GREEN
            vehicle.update(dt, green)

    def get_scenario_counts(self) -> Dict[str, int]:
        counts = {c.value: 0 for c in CycleId}
        for vehicle in self.vehicles:
            counts[vehicle.cycle.value] += 1
        return counts
