#!/usr/bin/env python3
"""
Intersection Manager - Fixed-timestep control loop
Wires the signal phase controller, decision scheduler, reward evaluator
and episode manager together and runs them in a fixed order each tick.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np

from controller_config import ControllerConfig
from signal_controller import SignalPhaseController, CycleId
from decision_scheduler import DecisionScheduler
from episode_manager import EpisodeManager, EpisodeOutcome
from agents.policies import Policy, IdlePolicy
from utils.reward_utils import RewardEvaluator, RewardLog
from utils.state_utils import VehicleRegistry, build_observation, get_state_summary

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """Reward contribution and terminal flag of one tick"""
    reward: float
    done: bool
    outcome: Optional[EpisodeOutcome] = None
    info: Dict[str, Any] = field(default_factory=dict)


class IntersectionManager:
    """
    Runs one intersection episode after another

    Every tick runs, in order: budget update, decision window, phase
    advance, reward scoring, terminal check. A finished episode is reset
    within the same tick.
    """

    def __init__(self,
                 config: Optional[ControllerConfig] = None,
                 policy: Optional[Policy] = None,
                 registry: Optional[VehicleRegistry] = None,
                 scene_reset: Optional[Callable[[], None]] = None,
                 reward_log: Optional[RewardLog] = None,
                 controller: Optional[SignalPhaseController] = None):
        self.config = config or ControllerConfig()
        self.policy = policy or IdlePolicy()
        self.registry = registry if registry is not None else VehicleRegistry()

        self.controller = controller or SignalPhaseController.from_config(self.config)
        self.evaluator = RewardEvaluator(self.config, reward_log)
        self.scheduler = DecisionScheduler(self.controller, self.policy, self._cooldowns())
        self.controller.add_cycle_complete_listener(self.evaluator.on_cycle_complete)

        self.episode = EpisodeManager(self.evaluator,
                                      episode_duration=self.config.episode_duration,
                                      scene_reset=scene_reset)
        self.episode.add_reset_hook(self.controller.reset)
        self.episode.add_reset_hook(self.scheduler.reset)

        self.total_ticks = 0

        if not self.controller.enabled:
            logger.warning("Intersection controller disabled, ticks will not be processed")

    def _cooldowns(self) -> Dict[CycleId, float]:
        cooldowns = {}
        for cycle in CycleId:
            cooldowns[cycle] = self.config.cooldown_for(cycle.value)
        return cooldowns

    @property
    def enabled(self) -> bool:
        return self.controller.enabled

    def get_observation(self) -> np.ndarray:
        """Observation vector of the current vehicle positions"""
        return build_observation(self.registry.snapshots())

    def tick(self, dt: Optional[float] = None) -> TickResult:
        """
        Run one fixed-timestep tick

        Args:
            dt: Tick length, defaults to the configured tick_dt

        Returns:
            TickResult: Reward contribution, terminal flag and tick info
        """
        if dt is None:
            dt = self.config.tick_dt

        if not self.controller.enabled:
            return TickResult(reward=0.0, done=False, info={'enabled': False})

        try:
            return self._run_tick(dt)
        except Exception as e:
            logger.exception("Tick %d failed: %s", self.total_ticks, e)
            # Contributions scored before the failure belong to this tick
            components = self.evaluator.collect()
            return TickResult(reward=components.total_reward,
                              done=False,
                              info={'error': str(e), 'components': components})

    def _run_tick(self, dt: float) -> TickResult:
        snapshots = self.registry.snapshots()

        self.episode.update_budget(dt, snapshots)
        budget = self.episode.budget

        action = self.scheduler.tick(dt, build_observation(snapshots))
        self.controller.advance(dt)

        self.evaluator.score_tick(dt, snapshots, budget.tracked_vehicle_count, budget.active_vehicle_count)
        outcome = self.episode.check_terminal()

        components = self.evaluator.collect(budget.tracked_vehicle_count, budget.active_vehicle_count)
        self.total_ticks += 1

        info = {
            'episode': self.episode.episode,
            'action': action,
            'episode_reward': self.evaluator.total,
            'remaining_time': budget.remaining_time,
            'decision_countdown': self.scheduler.window.countdown,
            'signal': self.controller.get_signal_info(),
            'vehicles': get_state_summary(snapshots),
            'components': components
        }

        if outcome is not None:
            info['outcome'] = outcome.value
            self.episode.reset_episode()

        return TickResult(reward=components.total_reward,
                          done=outcome is not None,
                          outcome=outcome,
                          info=info)

    def reset(self):
        """Start a fresh episode without applying terminal rewards"""
        self.episode.reset_episode()

    def run_episode(self,
                    vehicle_step: Optional[Callable[[float], None]] = None,
                    max_ticks: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Tick until the current episode ends

        Args:
            vehicle_step: Called with ``dt`` before every tick to move vehicles
            max_ticks: Safety limit, defaults to the budget plus one second

        Returns:
            Optional[Dict[str, Any]]: Info of the terminal tick, or None if the
            controller is disabled or the limit was reached
        """
        if not self.controller.enabled:
            return None

        dt = self.config.tick_dt
        if max_ticks is None:
            max_ticks = int((self.config.episode_duration + 1.0) / dt) + 1

        for _ in range(max_ticks):
            if vehicle_step is not None:
                vehicle_step(dt)
            result = self.tick(dt)
            if result.done:
                return result.info
        return None
