#!/usr/bin/env python3
"""
Signal Controller - Two-cycle phase state machine
Switches right-of-way between two competing signal cycles through a
yellow hold, an instantaneous red settle and a minimum green hold.
"""

import logging
from collections import deque
from typing import Callable, Dict, List, Any, Optional, Iterable
from dataclasses import dataclass
from enum import Enum

from controller_config import ControllerConfig

logger = logging.getLogger(__name__)


class SignalState(Enum):
    """Lamp state shared by every head of a cycle"""
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class CycleId(Enum):
    """The two competing signal cycles"""
    A = "A"
    B = "B"


# Discrete policy actions: 0 = no switch, 1 = cycle A green, 2 = cycle B green
ACTION_TO_CYCLE = {
    1: CycleId.A,
    2: CycleId.B
}


class SubPhase(Enum):
    """Stages of a signal transition"""
    IDLE = "idle"
    YELLOW_HOLD = "yellow_hold"
    RED_SETTLE = "red_settle"
    GREEN_HOLD = "green_hold"


@dataclass
class PhaseState:
    """Current transition state of the controller"""
    granted_cycle: Optional[CycleId] = None
    transitioning: bool = False
    sub_phase: SubPhase = SubPhase.IDLE
    sub_phase_timer: float = 0.0
    requested_cycle: Optional[CycleId] = None
    source_cycle: Optional[CycleId] = None


@dataclass
class SwitchRecord:
    """A completed switch between cycles"""
    source: Optional[CycleId]
    target: CycleId
    requested_at: float
    completed_at: float


class SignalHead:
    """A single signal head; only its owning cycle changes its lamp"""

    def __init__(self, head_id: str):
        self.head_id = head_id
        self.state = SignalState.RED

    def apply(self, state: SignalState):
        self.state = state

    def __repr__(self) -> str:
        return f"SignalHead({self.head_id!r}, {self.state.value})"


class SignalCycle:
    """A named group of signal heads that always show the same state"""

    def __init__(self, cycle_id: CycleId, heads: Iterable[SignalHead]):
        self.cycle_id = cycle_id
        self.heads: List[SignalHead] = list(heads)
        self.state = SignalState.RED
        self.set_state(SignalState.RED)

    def set_state(self, state: SignalState):
        """Apply a state to every head in the cycle"""
        for head in self.heads:
            head.apply(state)
        self.state = state

    def head_states(self) -> Dict[str, SignalState]:
        return {head.head_id: head.state for head in self.heads}


class SignalPhaseController:
    """
    State machine granting green to exactly one of two cycles

    A switch request starts a transition which is advanced once per tick:
    the granted cycle holds yellow, settles to red, then the requested cycle
    turns green and holds for a minimum green time before the switch is
    complete. Requests arriving during a transition are ignored.
    """

    def __init__(self,
                 cycles: Dict[CycleId, SignalCycle],
                 yellow_duration: float = 2.0,
                 green_hold_duration: float = 1.5,
                 history_size: int = 100):
        self.cycles = dict(cycles)
        self.yellow_duration = yellow_duration
        self.green_hold_duration = green_hold_duration

        self.phase = PhaseState()
        self.enabled = True
        self.elapsed_time = 0.0
        self._requested_at = 0.0

        self._listeners: List[Callable[[CycleId], None]] = []
        self.transition_history = deque(maxlen=history_size)

        self._validate_cycles()
        if self.enabled:
            self._set_all_red()

    @classmethod
    def from_config(cls, config: ControllerConfig) -> "SignalPhaseController":
        """Build the controller and its cycles from configured head ids"""
        cycles = {}
        for name, head_ids in config.cycles.items():
            try:
                cycle_id = CycleId(name)
            except ValueError:
                logger.warning("Ignoring unknown signal cycle %r in configuration", name)
                continue
            cycles[cycle_id] = SignalCycle(cycle_id, [SignalHead(h) for h in head_ids])

        return cls(cycles,
                   yellow_duration=config.yellow_duration,
                   green_hold_duration=config.green_hold_duration,
                   history_size=config.history_size)

    def _validate_cycles(self):
        """Disable the controller when the cycle pair is not configured"""
        missing = [c.value for c in CycleId if c not in self.cycles]
        empty = [c.value for c, cycle in self.cycles.items() if not cycle.heads]
        if missing or empty:
            problems = []
            if missing:
                problems.append(f"missing cycles {', '.join(missing)}")
            if empty:
                problems.append(f"cycles without heads {', '.join(empty)}")
            logger.warning("There are no usable signal cycles (%s), controller will be disabled",
                           "; ".join(problems))
            self.enabled = False

    def _set_all_red(self):
        for cycle in self.cycles.values():
            cycle.set_state(SignalState.RED)

    def add_cycle_complete_listener(self, callback: Callable[[CycleId], None]):
        """Register a callback invoked with the newly granted cycle"""
        self._listeners.append(callback)

    def request_switch(self, target: CycleId) -> bool:
        """
        Request green for a cycle

        Args:
            target: Cycle that should receive green

        Returns:
            bool: True if a transition was started, False if debounced
        """
        if not self.enabled:
            return False

        if target == self.phase.granted_cycle or self.phase.transitioning:
            logger.debug("Switch request to %s ignored (granted=%s, sub_phase=%s)",
                         target.value,
                         self.phase.granted_cycle.value if self.phase.granted_cycle else None,
                         self.phase.sub_phase.value)
            return False

        self.phase.requested_cycle = target
        self.phase.source_cycle = self.phase.granted_cycle
        self.phase.transitioning = True
        self._requested_at = self.elapsed_time

        if self.phase.source_cycle is None:
            self._enter_green_hold()
        else:
            self._enter_yellow_hold()

        logger.debug("Switch to %s accepted, entering %s", target.value, self.phase.sub_phase.value)
        return True

    def advance(self, dt: float):
        """Advance the in-flight transition by ``dt`` time units"""
        if not self.enabled:
            return

        self.elapsed_time += dt

        if self.phase.sub_phase == SubPhase.IDLE:
            return

        self.phase.sub_phase_timer = max(0.0, self.phase.sub_phase_timer - dt)
        if self.phase.sub_phase_timer > 0.0:
            return

        if self.phase.sub_phase == SubPhase.YELLOW_HOLD:
            self._enter_red_settle()
            self._enter_green_hold()
        elif self.phase.sub_phase == SubPhase.GREEN_HOLD:
            self._complete_transition()

    def _enter_yellow_hold(self):
        self.cycles[self.phase.source_cycle].set_state(SignalState.YELLOW)
        self.phase.sub_phase = SubPhase.YELLOW_HOLD
        self.phase.sub_phase_timer = self.yellow_duration

    def _enter_red_settle(self):
        self.cycles[self.phase.source_cycle].set_state(SignalState.RED)
        self.phase.granted_cycle = None
        self.phase.sub_phase = SubPhase.RED_SETTLE
        self.phase.sub_phase_timer = 0.0

    def _enter_green_hold(self):
        self.cycles[self.phase.requested_cycle].set_state(SignalState.GREEN)
        self.phase.sub_phase = SubPhase.GREEN_HOLD
        self.phase.sub_phase_timer = self.green_hold_duration

    def _complete_transition(self):
        target = self.phase.requested_cycle
        self.transition_history.append(SwitchRecord(
            source=self.phase.source_cycle,
            target=target,
            requested_at=self._requested_at,
            completed_at=self.elapsed_time
        ))

        self.phase = PhaseState(granted_cycle=target)
        logger.info("Cycle %s granted green at t=%.2f", target.value, self.elapsed_time)

        for callback in self._listeners:
            callback(target)

    def green_cycles(self) -> List[CycleId]:
        """Cycles currently showing green"""
        return [c for c, cycle in self.cycles.items() if cycle.state == SignalState.GREEN]

    def reset(self):
        """Return to the initial all-red state"""
        self.phase = PhaseState()
        self.elapsed_time = 0.0
        self._requested_at = 0.0
        self.transition_history.clear()
        if self.enabled:
            self._set_all_red()

    def get_signal_info(self) -> Dict[str, Any]:
        """Get current signal information"""
        granted = self.phase.granted_cycle
        requested = self.phase.requested_cycle
        return {
            "enabled": self.enabled,
            "granted_cycle": granted.value if granted else None,
            "requested_cycle": requested.value if requested else None,
            "sub_phase": self.phase.sub_phase.value,
            "sub_phase_timer": self.phase.sub_phase_timer,
            "transitioning": self.phase.transitioning,
            "cycle_states": {c.value: cycle.state.value for c, cycle in self.cycles.items()},
            "completed_switches": len(self.transition_history)
        }


__all__ = [
    'SignalState',
    'CycleId',
    'ACTION_TO_CYCLE',
    'SubPhase',
    'PhaseState',
    'SwitchRecord',
    'SignalHead',
    'SignalCycle',
    'SignalPhaseController'
]
