#!/usr/bin/env python3
"""
Utils Package
============

Vehicle state and reward utilities for the intersection controller.
"""

from .state_utils import (
    VehicleProgressSnapshot,
    ProgressTracker,
    VehicleRegistry,
    read_snapshot,
    count_vehicles,
    build_observation,
    pad_observation,
    get_state_summary
)

from .reward_utils import (
    RewardEvaluator,
    RewardComponents,
    RewardLog,
    summarize_reward_log
)

__all__ = [
    # State utilities
    'VehicleProgressSnapshot',
    'ProgressTracker',
    'VehicleRegistry',
    'read_snapshot',
    'count_vehicles',
    'build_observation',
    'pad_observation',
    'get_state_summary',

    # Reward utilities
    'RewardEvaluator',
    'RewardComponents',
    'RewardLog',
    'summarize_reward_log'
]
