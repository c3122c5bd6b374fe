#!/usr/bin/env python3
"""
Traffic Environment - Gym-compatible wrapper for the intersection controller
===========================================================================

A gym environment where the agent's action is fed through the decision
scheduler of the intersection controller. One environment step spans a
fixed number of controller ticks.
"""

from typing import Dict, Any, Optional, Tuple

import gym
import numpy as np
from gym import spaces

from controller_config import ControllerConfig
from intersection_manager import IntersectionManager
from generate_traffic import TrafficGenerator
from agents.policies import ExternalActionPolicy, get_action_name
from utils.state_utils import VehicleRegistry, POSITION_DIMS, pad_observation, get_state_summary


class IntersectionEnv(gym.Env):
    """
    Gym-compatible two-cycle signal control environment

    Actions: 0 = no switch, 1 = cycle A green, 2 = cycle B green. Actions
    submitted while the decision window is open are dropped.
    """

    metadata = {"render_modes": ["human"]}

    def __init__(self,
                 config: Optional[ControllerConfig] = None,
                 n_vehicles: int = 4,
                 max_vehicles: Optional[int] = None,
                 decision_interval: float = 0.5,
                 scenario: str = "uniform",
                 seed: Optional[int] = None,
                 render_mode: Optional[str] = None):
        super(IntersectionEnv, self).__init__()

        self.config = config or ControllerConfig()
        self.render_mode = render_mode
        self.max_vehicles = max_vehicles or n_vehicles
        self.ticks_per_step = max(1, int(round(decision_interval / self.config.tick_dt)))

        self.registry = VehicleRegistry()
        self.generator = TrafficGenerator(n_vehicles=n_vehicles, seed=seed, scenario=scenario)
        self.policy = ExternalActionPolicy()
        self.manager = IntersectionManager(config=self.config,
                                           policy=self.policy,
                                           registry=self.registry,
                                           scene_reset=self._reload_scene)

        self.action_space = spaces.Discrete(3)
        self.observation_space = spaces.Box(
            low=-np.inf,
            high=np.inf,
            shape=(self.max_vehicles * POSITION_DIMS,),
            dtype=np.float32
        )

        self.current_step = 0
        self.episode_reward = 0.0
        self._reload_scene()

    def _reload_scene(self):
        self.generator.generate(self.registry)

    def _get_state(self) -> np.ndarray:
        return pad_observation(self.manager.get_observation(), self.observation_space.shape[0])

    def reset(self, *, seed: Optional[int] = None, options: Optional[Dict[str, Any]] = None):
        """
        Reset the environment for a new episode

        Returns:
            Tuple[np.ndarray, Dict]: Initial observation and info
        """
        super().reset(seed=seed)
        if seed is not None:
            self.generator.rng = np.random.default_rng(seed)

        self.manager.reset()
        self.current_step = 0
        self.episode_reward = 0.0

        return self._get_state(), {'episode': self.manager.episode.episode}

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict]:
        """
        Submit an action and run one decision interval

        Args:
            action: Integer action (0-2)

        Returns:
            Tuple containing observation, reward, terminated, truncated, info
        """
        self.policy.submit(int(action))

        dt = self.config.tick_dt
        reward = 0.0
        terminated = False
        last_info: Dict[str, Any] = {}

        for _ in range(self.ticks_per_step):
            self.generator.step(dt, self.manager.controller)
            result = self.manager.tick(dt)
            reward += result.reward
            last_info = result.info
            if result.done:
                terminated = True
                break

        self.current_step += 1
        self.episode_reward += reward

        info = {
            'step': self.current_step,
            'action': int(action),
            'action_name': get_action_name(int(action)),
            'episode_reward': self.episode_reward,
            'outcome': last_info.get('outcome'),
            'signal': last_info.get('signal', self.manager.controller.get_signal_info())
        }

        if terminated:
            self.current_step = 0
            self.episode_reward = 0.0

        return self._get_state(), reward, terminated, False, info

    def render(self):
        """Print a one-line summary of the intersection"""
        if self.render_mode != "human":
            return
        signal = self.manager.controller.get_signal_info()
        vehicles = get_state_summary(self.registry.snapshots())
        print(f"Step {self.current_step}: "
              f"Granted {signal['granted_cycle']} ({signal['sub_phase']}), "
              f"Active {vehicles['active_vehicles']}/{vehicles['tracked_vehicles']}, "
              f"Remaining {self.manager.episode.budget.remaining_time:.1f}, "
              f"Reward {self.episode_reward:.3f}")

    def get_episode_summary(self) -> Dict[str, Any]:
        """Get summary of completed episodes"""
        return self.manager.episode.get_episode_summary()

    def close(self):
        self.registry.clear()
