#!/usr/bin/env python3
"""
Agents Package
=============

Decision policies that drive the signal controller.
"""

from .policies import (
    Policy,
    IdlePolicy,
    ScriptedPolicy,
    RandomPolicy,
    ManualPolicy,
    ExternalActionPolicy,
    get_action_name,
    NO_SWITCH,
    REQUEST_A,
    REQUEST_B,
    VALID_ACTIONS
)

__all__ = [
    'Policy',
    'IdlePolicy',
    'ScriptedPolicy',
    'RandomPolicy',
    'ManualPolicy',
    'ExternalActionPolicy',
    'get_action_name',
    'NO_SWITCH',
    'REQUEST_A',
    'REQUEST_B',
    'VALID_ACTIONS'
]
