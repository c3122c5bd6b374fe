#!/usr/bin/env python3
"""
Controller Configuration
========================

Timing, reward and episode constants for the two-cycle signal controller,
plus loading of JSON overrides.
"""

import json
import os
from dataclasses import dataclass, field, asdict, fields
from typing import Dict, List, Any, Optional


class ConfigurationError(Exception):
    """Raised when a controller configuration file cannot be used"""
    pass


# Default controller configuration
CONTROLLER_CONFIG = {
    "yellow_duration": 2.0,
    "green_hold_duration": 1.5,
    # Post-cycle decision cooldown per cycle. The asymmetry models the
    # different right-of-way durations of the two directions.
    "post_cycle_cooldown": {"A": 0.0, "B": 9.0},
    "episode_duration": 30.0,
    "tick_dt": 0.02,
    "history_size": 100,
}

REWARD_CONFIG = {
    "step_penalty": -0.05,
    "completion_bonus": 3.0,
    "initial_reward_timer": 1.0,
    "cycle_completion_cost": -2.0,
    "success_bonus": 10.0,
    "timeout_penalty_per_vehicle": -1.0,
}

DEFAULT_CYCLES = {
    "A": ["A_north", "A_south"],
    "B": ["B_east", "B_west"],
}


def _number(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    return float(value)


@dataclass
class ControllerConfig:
    """Complete configuration for one intersection controller"""
    yellow_duration: float = CONTROLLER_CONFIG["yellow_duration"]
    green_hold_duration: float = CONTROLLER_CONFIG["green_hold_duration"]
    post_cycle_cooldown: Dict[str, float] = field(
        default_factory=lambda: dict(CONTROLLER_CONFIG["post_cycle_cooldown"]))
    episode_duration: float = CONTROLLER_CONFIG["episode_duration"]
    tick_dt: float = CONTROLLER_CONFIG["tick_dt"]
    history_size: int = CONTROLLER_CONFIG["history_size"]

    step_penalty: float = REWARD_CONFIG["step_penalty"]
    completion_bonus: float = REWARD_CONFIG["completion_bonus"]
    initial_reward_timer: float = REWARD_CONFIG["initial_reward_timer"]
    cycle_completion_cost: float = REWARD_CONFIG["cycle_completion_cost"]
    success_bonus: float = REWARD_CONFIG["success_bonus"]
    timeout_penalty_per_vehicle: float = REWARD_CONFIG["timeout_penalty_per_vehicle"]

    cycles: Dict[str, List[str]] = field(
        default_factory=lambda: {name: list(heads) for name, heads in DEFAULT_CYCLES.items()})

    def cooldown_for(self, cycle_name: str) -> float:
        """Decision cooldown applied after the given cycle turns green"""
        return float(self.post_cycle_cooldown.get(cycle_name, 0.0))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControllerConfig":
        """Build a config from a (partial) dictionary of overrides"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        config = cls()
        for key, value in data.items():
            if key == "post_cycle_cooldown":
                if not isinstance(value, dict):
                    raise ConfigurationError(f"{key} must be an object, got {value!r}")
                merged = dict(config.post_cycle_cooldown)
                merged.update({str(k): _number(f"{key}.{k}", v) for k, v in value.items()})
                value = merged
            elif key == "cycles":
                if not isinstance(value, dict):
                    raise ConfigurationError(f"{key} must be an object, got {value!r}")
                for name, heads in value.items():
                    if not isinstance(heads, list):
                        raise ConfigurationError(f"cycles.{name} must be a list of head ids, got {heads!r}")
                value = {str(k): [str(h) for h in v] for k, v in value.items()}
            elif key == "history_size":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigurationError(f"{key} must be an integer, got {value!r}")
            else:
                value = _number(key, value)
            setattr(config, key, value)

        if config.tick_dt <= 0:
            raise ConfigurationError(f"tick_dt must be positive, got {config.tick_dt}")
        return config


def load_config(path: Optional[str] = None) -> ControllerConfig:
    """
    Load controller configuration from a JSON file

    Args:
        path: Path to a JSON file of overrides. ``None`` returns the defaults.

    Returns:
        ControllerConfig: Defaults merged with the file's overrides
    """
    if path is None:
        return ControllerConfig()

    if not os.path.exists(path):
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a JSON object: {path}")

    return ControllerConfig.from_dict(data)


__all__ = [
    'ConfigurationError',
    'ControllerConfig',
    'CONTROLLER_CONFIG',
    'REWARD_CONFIG',
    'DEFAULT_CYCLES',
    'load_config'
]
