#!/usr/bin/env python3
"""
Decision Scheduler - Gates how often the policy may act
Pulls an action from the policy once the decision countdown has expired and
forwards switch requests to the signal phase controller.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from signal_controller import SignalPhaseController, CycleId, ACTION_TO_CYCLE
from agents.policies import Policy, NO_SWITCH, VALID_ACTIONS

logger = logging.getLogger(__name__)


@dataclass
class DecisionWindow:
    """Countdown until the policy may act again"""
    countdown: float = 0.0
    pending_action: int = NO_SWITCH


class DecisionScheduler:
    """Requests actions from a policy when no decision window is open"""

    def __init__(self,
                 controller: SignalPhaseController,
                 policy: Policy,
                 cooldowns: Optional[Dict[CycleId, float]] = None):
        self.controller = controller
        self.policy = policy
        self.cooldowns = cooldowns or {CycleId.A: 0.0, CycleId.B: 9.0}
        self.window = DecisionWindow()
        self.decisions_requested = 0

        controller.add_cycle_complete_listener(self._on_cycle_complete)

    def tick(self, dt: float, observation: np.ndarray) -> Optional[int]:
        """
        Advance the decision window by one tick

        Args:
            dt: Elapsed time of the tick
            observation: Observation vector handed to the policy

        Returns:
            Optional[int]: The action pulled this tick, or None while the
            decision window is still open
        """
        if self.window.countdown > 0.0:
            self.window.countdown = max(0.0, self.window.countdown - dt)
            # Input arriving during the window is dropped, not queued
            self.policy.suppress()
            return None

        action = self._pull_action(observation)
        self.window.pending_action = action
        self.decisions_requested += 1

        if action != NO_SWITCH:
            self.controller.request_switch(ACTION_TO_CYCLE[action])

        return action

    def _pull_action(self, observation: np.ndarray) -> int:
        """Ask the policy for an action, falling back to no switch"""
        try:
            action = int(self.policy.decide(observation))
        except Exception as e:
            logger.warning("Policy %s failed to decide, using no-switch: %s",
                           type(self.policy).__name__, e)
            return NO_SWITCH

        if action not in VALID_ACTIONS:
            logger.warning("Policy returned invalid action %s, using no-switch", action)
            return NO_SWITCH

        return action

    def _on_cycle_complete(self, cycle: CycleId):
        self.window.countdown = max(0.0, float(self.cooldowns.get(cycle, 0.0)))
        logger.debug("Decision cooldown set to %.2f after cycle %s", self.window.countdown, cycle.value)

    def reset(self):
        """Close any open decision window"""
        self.window = DecisionWindow()
        self.decisions_requested = 0
        self.policy.reset()


__all__ = [
    'DecisionWindow',
    'DecisionScheduler'
]
