#!/usr/bin/env python3
"""
Episode Manager - Time budget and termination
Tracks the remaining episode time and the number of vehicles still in
progress, applies the terminal reward exactly once and resets the episode.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Dict, Any

import numpy as np

from utils.reward_utils import RewardEvaluator
from utils.state_utils import VehicleProgressSnapshot, count_vehicles

logger = logging.getLogger(__name__)


class EpisodeStatus(Enum):
    """Episode lifecycle"""
    RUNNING = "running"
    TERMINATING = "terminating"
    RESET = "reset"


class EpisodeOutcome(Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"


@dataclass
class EpisodeBudget:
    """Per-episode time budget and vehicle counts"""
    remaining_time: float
    active_vehicle_count: int = 0
    tracked_vehicle_count: int = 0
    elapsed_time: float = 0.0


@dataclass
class EpisodeSummary:
    """Result of a finished episode"""
    episode: int
    outcome: EpisodeOutcome
    duration: float
    total_reward: float
    completed_vehicles: int
    incomplete_vehicles: int
    cycle_completions: int


class EpisodeManager:
    """Owns the episode budget and decides when an episode ends"""

    def __init__(self,
                 evaluator: RewardEvaluator,
                 episode_duration: float = 30.0,
                 scene_reset: Optional[Callable[[], None]] = None):
        self.evaluator = evaluator
        self.episode_duration = episode_duration
        self.scene_reset = scene_reset

        self.episode = 0
        self.status = EpisodeStatus.RUNNING
        self.budget = EpisodeBudget(remaining_time=episode_duration)
        self.last_outcome: Optional[EpisodeOutcome] = None
        self.vehicles_seen = False
        self.summaries: List[EpisodeSummary] = []
        self._reset_hooks: List[Callable[[], None]] = []

    def add_reset_hook(self, hook: Callable[[], None]):
        """Register state that must be re-initialised on every reset"""
        self._reset_hooks.append(hook)

    def update_budget(self, dt: float, snapshots: List[VehicleProgressSnapshot]):
        """Spend ``dt`` of the time budget and recount vehicles"""
        self.budget.remaining_time -= dt
        self.budget.elapsed_time += dt
        tracked, active = count_vehicles(snapshots)
        self.budget.tracked_vehicle_count = tracked
        self.budget.active_vehicle_count = active
        if tracked > 0:
            self.vehicles_seen = True

    def check_terminal(self) -> Optional[EpisodeOutcome]:
        """
        Apply the terminal rule if the episode has ended

        Returns:
            Optional[EpisodeOutcome]: The outcome when the episode ended this
            tick, otherwise None
        """
        if self.status != EpisodeStatus.RUNNING:
            return None

        # A scene that never had a readable vehicle cannot succeed
        if self.vehicles_seen and self.budget.active_vehicle_count == 0:
            outcome = EpisodeOutcome.SUCCESS
            self.evaluator.apply_success()
        elif self.budget.remaining_time <= 0.0:
            outcome = EpisodeOutcome.TIMEOUT
            self.evaluator.apply_timeout(self.budget.active_vehicle_count)
        else:
            return None

        self.status = EpisodeStatus.TERMINATING
        self.last_outcome = outcome
        self.summaries.append(EpisodeSummary(
            episode=self.episode,
            outcome=outcome,
            duration=self.budget.elapsed_time,
            total_reward=self.evaluator.total,
            completed_vehicles=self.budget.tracked_vehicle_count - self.budget.active_vehicle_count,
            incomplete_vehicles=self.budget.active_vehicle_count,
            cycle_completions=self.evaluator.cycle_completions
        ))
        logger.info("Episode %d ended (%s) after %.2f with reward %.3f",
                    self.episode, outcome.value, self.budget.elapsed_time, self.evaluator.total)
        return outcome

    def reset_episode(self):
        """Reload the scene and re-initialise all owned state"""
        self.status = EpisodeStatus.RESET

        if self.scene_reset is not None:
            try:
                self.scene_reset()
            except Exception as e:
                logger.error("Scene reset failed: %s", e)

        for hook in self._reset_hooks:
            hook()

        self.evaluator.reset()
        self.budget = EpisodeBudget(remaining_time=self.episode_duration)
        self.vehicles_seen = False
        self.episode += 1
        self.evaluator.episode = self.episode
        self.status = EpisodeStatus.RUNNING

    def get_episode_summary(self) -> Dict[str, Any]:
        """Aggregate statistics over finished episodes"""
        if not self.summaries:
            return {}

        successes = [s for s in self.summaries if s.outcome == EpisodeOutcome.SUCCESS]
        rewards = [s.total_reward for s in self.summaries]
        return {
            'episodes': len(self.summaries),
            'successes': len(successes),
            'timeouts': len(self.summaries) - len(successes),
            'mean_reward': float(np.mean(rewards)),
            'mean_duration': float(np.mean([s.duration for s in self.summaries])),
            'last_outcome': self.summaries[-1].outcome.value
        }
