#!/usr/bin/env python3
"""
Decision Policies
=================

Implementations of the policy boundary. A policy maps an observation
vector of vehicle positions to one discrete action:

    0 - no switch
    1 - request cycle A green
    2 - request cycle B green
"""

import logging
from typing import Iterable, List, Optional, Set

import numpy as np

logger = logging.getLogger(__name__)

NO_SWITCH = 0
REQUEST_A = 1
REQUEST_B = 2
VALID_ACTIONS = (NO_SWITCH, REQUEST_A, REQUEST_B)

ACTION_NAMES = {
    NO_SWITCH: "No_Switch",
    REQUEST_A: "Cycle_A_Green",
    REQUEST_B: "Cycle_B_Green"
}


def get_action_name(action: int) -> str:
    """Get human-readable name for an action"""
    return ACTION_NAMES.get(action, f"Action_{action}")


class Policy:
    """Base class for decision policies"""

    def decide(self, observation: np.ndarray) -> int:
        """
        Choose an action for the current observation

        Subclasses must override this. It is only called once the decision
        window has closed.

        Args:
            observation: Flattened vehicle positions

        Returns:
            int: One of NO_SWITCH, REQUEST_A or REQUEST_B
        """
        raise NotImplementedError(f"{type(self).__name__} must implement decide()")

    def suppress(self):
        """Called on ticks where the decision window is still open"""
        pass

    def reset(self):
        """Called at every episode boundary"""
        pass


class IdlePolicy(Policy):
    """Never requests a switch"""

    def decide(self, observation: np.ndarray) -> int:
        return NO_SWITCH


class ScriptedPolicy(Policy):
    """Replays a fixed action sequence, then returns ``default``"""

    def __init__(self, actions: Iterable[int], default: int = NO_SWITCH, loop: bool = False):
        self.actions: List[int] = list(actions)
        self.default = default
        self.loop = loop
        self.index = 0

    def decide(self, observation: np.ndarray) -> int:
        if self.index >= len(self.actions):
            if not self.loop or not self.actions:
                return self.default
            self.index = 0
        action = self.actions[self.index]
        self.index += 1
        return action

    def reset(self):
        self.index = 0


class RandomPolicy(Policy):
    """Uniformly random actions from a seeded generator"""

    def __init__(self, seed: Optional[int] = None, switch_probability: float = 1.0):
        self.seed = seed
        self.switch_probability = switch_probability
        self.rng = np.random.default_rng(seed)

    def decide(self, observation: np.ndarray) -> int:
        if self.rng.random() >= self.switch_probability:
            return NO_SWITCH
        return int(self.rng.choice(VALID_ACTIONS))


class ManualPolicy(Policy):
    """
    Keyboard-style manual override

    Holding ``S`` requests cycle A and holding ``A`` requests cycle B;
    with no key held the policy does nothing.
    """

    KEY_ACTIONS = {
        "S": REQUEST_A,
        "A": REQUEST_B
    }

    def __init__(self):
        self.held_keys: Set[str] = set()

    def press(self, key: str):
        self.held_keys.add(key.upper())

    def release(self, key: str):
        self.held_keys.discard(key.upper())

    def decide(self, observation: np.ndarray) -> int:
        for key, action in self.KEY_ACTIONS.items():
            if key in self.held_keys:
                return action
        return NO_SWITCH

    def reset(self):
        self.held_keys.clear()


class ExternalActionPolicy(Policy):
    """Action pushed in by an external learner, consumed at the next decision"""

    def __init__(self):
        self.pending_action: Optional[int] = None
        self.dropped_actions = 0

    def submit(self, action: int):
        self.pending_action = int(action)

    def decide(self, observation: np.ndarray) -> int:
        action = self.pending_action if self.pending_action is not None else NO_SWITCH
        self.pending_action = None
        return action

    def suppress(self):
        if self.pending_action is not None:
            logger.debug("Dropping action %s submitted during decision window", self.pending_action)
            self.pending_action = None
            self.dropped_actions += 1

    def reset(self):
        self.pending_action = None
