#!/usr/bin/env python3
"""
Environments Package
===================

Gym-compatible environments for traffic signal control.
"""

from .traffic_env import IntersectionEnv

__all__ = [
    'IntersectionEnv'
]
