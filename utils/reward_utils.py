#!/usr/bin/env python3
"""
Reward Calculation Utilities
============================

Scores the controller each tick: a density-normalised step penalty,
completion bonuses, cycle-completion costs and the episode-terminal
bonus or penalty. Rewards are only ever added.
"""

import csv
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Set

import pandas as pd

from controller_config import ControllerConfig
from utils.state_utils import VehicleProgressSnapshot

logger = logging.getLogger(__name__)


@dataclass
class RewardComponents:
    """Reward contributions of a single tick"""
    step_penalty: float = 0.0
    completion_bonus: float = 0.0
    cycle_cost: float = 0.0
    terminal_reward: float = 0.0

    @property
    def total_reward(self) -> float:
        return self.step_penalty + self.completion_bonus + self.cycle_cost + self.terminal_reward


class RewardLog:
    """Appends one CSV row per scored tick"""

    COLUMNS = [
        'episode',
        'step',
        'timestamp',
        'step_penalty',
        'completion_bonus',
        'cycle_cost',
        'terminal_reward',
        'total_reward',
        'cumulative_reward',
        'tracked_vehicles',
        'active_vehicles'
    ]

    def __init__(self, log_file: str = "reward_log.csv"):
        self.log_file = log_file
        self._init_reward_log()

    def _init_reward_log(self):
        """Initialize the reward log CSV file"""
        directory = os.path.dirname(self.log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.log_file):
            with open(self.log_file, 'w', newline='') as csvfile:
                csv.writer(csvfile).writerow(self.COLUMNS)

    def write(self,
              episode: int,
              step: int,
              components: RewardComponents,
              cumulative_reward: float,
              tracked: int,
              active: int):
        try:
            with open(self.log_file, 'a', newline='') as csvfile:
                csv.writer(csvfile).writerow([
                    episode,
                    step,
                    datetime.now().isoformat(),
                    components.step_penalty,
                    components.completion_bonus,
                    components.cycle_cost,
                    components.terminal_reward,
                    components.total_reward,
                    cumulative_reward,
                    tracked,
                    active
                ])
        except OSError as e:
            logger.warning("Error logging reward: %s", e)

    def get_reward_summary(self) -> Dict[str, float]:
        """Get summary statistics of logged rewards"""
        return summarize_reward_log(self.log_file)


def summarize_reward_log(log_file: str) -> Dict[str, float]:
    """Summary statistics of a reward log, grouped into per-episode totals"""
    if not os.path.exists(log_file):
        return {}

    df = pd.read_csv(log_file)
    if df.empty:
        return {}

    per_episode = df.groupby('episode')['total_reward'].sum()
    return {
        'total_steps': int(len(df)),
        'episodes': int(per_episode.shape[0]),
        'mean_step_reward': float(df['total_reward'].mean()),
        'mean_episode_reward': float(per_episode.mean()),
        'min_episode_reward': float(per_episode.min()),
        'max_episode_reward': float(per_episode.max()),
        'total_step_penalty': float(df['step_penalty'].sum()),
        'total_completion_bonus': float(df['completion_bonus'].sum()),
        'total_cycle_cost': float(df['cycle_cost'].sum()),
        'total_terminal_reward': float(df['terminal_reward'].sum())
    }


class RewardEvaluator:
    """Accumulates the reward of one episode"""

    def __init__(self, config: Optional[ControllerConfig] = None, reward_log: Optional[RewardLog] = None):
        self.config = config or ControllerConfig()
        self.reward_log = reward_log
        self.episode = 0
        self.reset()

    def reset(self):
        """Reset the reward calculator for a new episode"""
        self.total = 0.0
        self.reward_timer = self.config.initial_reward_timer
        self.step_count = 0
        self.cycle_completions = 0
        self.terminal_applied = False
        self._rewarded: Set[str] = set()
        self._tick = RewardComponents()
        self.history: List[float] = []

    def _add(self, field_name: str, amount: float):
        setattr(self._tick, field_name, getattr(self._tick, field_name) + amount)
        self.total += amount

    def on_cycle_complete(self, cycle=None):
        """Cost of one finished switch"""
        self.cycle_completions += 1
        self._add('cycle_cost', self.config.cycle_completion_cost)

    def score_tick(self, dt: float, snapshots: List[VehicleProgressSnapshot], tracked: int, active: int):
        """
        Apply the continuous rewards of one tick

        Args:
            dt: Elapsed time of the tick
            snapshots: Vehicle snapshots read this tick
            tracked: Number of readable snapshots
            active: Number of readable snapshots not yet completed
        """
        self.reward_timer += dt

        if active > 0 and tracked > 0:
            self._add('step_penalty', self.config.step_penalty * (active / tracked))

        for snapshot in snapshots:
            if not snapshot.countable or not snapshot.completed:
                continue
            if snapshot.vehicle_id in self._rewarded:
                continue
            self._rewarded.add(snapshot.vehicle_id)
            self._add('completion_bonus', self.config.completion_bonus / self.reward_timer)

    def apply_success(self) -> float:
        """Bonus for completing every vehicle within the time budget"""
        if self.terminal_applied:
            logger.debug("Terminal reward already applied this episode")
            return 0.0
        self.terminal_applied = True
        self._add('terminal_reward', self.config.success_bonus)
        return self.config.success_bonus

    def apply_timeout(self, incomplete: int) -> float:
        """Penalty per vehicle still incomplete when the budget runs out"""
        if self.terminal_applied:
            logger.debug("Terminal reward already applied this episode")
            return 0.0
        self.terminal_applied = True
        penalty = self.config.timeout_penalty_per_vehicle * incomplete
        self._add('terminal_reward', penalty)
        return penalty

    def collect(self, tracked: int = 0, active: int = 0) -> RewardComponents:
        """Close the current tick and return its contributions"""
        components = self._tick
        self._tick = RewardComponents()
        self.step_count += 1
        self.history.append(components.total_reward)

        if self.reward_log is not None:
            self.reward_log.write(self.episode, self.step_count, components,
                                  self.total, tracked, active)
        return components

    def get_reward_summary(self) -> Dict[str, float]:
        """Summary of the episode so far"""
        return {
            'total_reward': self.total,
            'steps': self.step_count,
            'cycle_completions': self.cycle_completions,
            'vehicles_rewarded': len(self._rewarded),
            'reward_timer': self.reward_timer,
            'terminal_applied': self.terminal_applied
        }
