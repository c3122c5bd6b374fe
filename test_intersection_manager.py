#!/usr/bin/env python3
"""
Tests for the fixed-order intersection tick loop.
"""

import unittest
from unittest import mock

from controller_config import ControllerConfig
from intersection_manager import IntersectionManager
from generate_traffic import TrafficGenerator
from signal_controller import CycleId, SignalState
from agents.policies import IdlePolicy, Policy, ScriptedPolicy, RandomPolicy
from utils.state_utils import ProgressTracker, VehicleRegistry

DT = 0.5


class Vehicle:
    def __init__(self):
        self.position = (0.0, 0.0, 5.0)
        self.progress = ProgressTracker()


class CountingPolicy(Policy):
    def __init__(self, action: int):
        self.action = action
        self.calls = 0

    def decide(self, observation):
        self.calls += 1
        return self.action


class ExplodingPolicy(Policy):
    def decide(self, observation):
        raise ValueError("bad observation")


def make_manager(policy: Policy, vehicles: int = 1, **config_overrides) -> IntersectionManager:
    registry = VehicleRegistry()
    for i in range(vehicles):
        registry.add(f"v{i}", Vehicle())
    config = ControllerConfig(tick_dt=DT, **config_overrides)
    return IntersectionManager(config=config, policy=policy, registry=registry)


class IntersectionManagerTests(unittest.TestCase):
    def test_first_switch_costs_once_after_green_hold(self) -> None:
        manager = make_manager(ScriptedPolicy([1]))

        rewards = [manager.tick() for _ in range(3)]

        self.assertEqual([r.info['components'].cycle_cost for r in rewards], [0.0, 0.0, -2.0])
        self.assertEqual(rewards[0].info['action'], 1)
        self.assertEqual(manager.controller.phase.granted_cycle, CycleId.A)
        self.assertEqual(manager.evaluator.cycle_completions, 1)

    def test_switch_between_cycles_takes_three_and_a_half(self) -> None:
        manager = make_manager(ScriptedPolicy([1, 0, 0, 2]))
        for _ in range(3):
            manager.tick()
        self.assertEqual(manager.controller.phase.granted_cycle, CycleId.A)

        costs = []
        for _ in range(7):
            costs.append(manager.tick().info['components'].cycle_cost)

        self.assertEqual(costs, [0.0] * 6 + [-2.0])
        self.assertEqual(manager.controller.phase.granted_cycle, CycleId.B)
        self.assertEqual(manager.controller.cycles[CycleId.A].state, SignalState.RED)
        # Cycle B completion opens a 9.0 decision window
        self.assertAlmostEqual(manager.scheduler.window.countdown, 9.0)

    def test_policy_not_consulted_during_cooldown(self) -> None:
        policy = CountingPolicy(2)
        manager = make_manager(policy)
        for _ in range(3):
            manager.tick()
        self.assertEqual(manager.controller.phase.granted_cycle, CycleId.B)
        consumed = policy.calls

        for _ in range(10):
            result = manager.tick()
            self.assertIsNone(result.info['action'])

        self.assertEqual(policy.calls, consumed)
        self.assertEqual(manager.controller.phase.granted_cycle, CycleId.B)

    def test_disabled_controller_processes_no_ticks(self) -> None:
        with self.assertLogs(level="WARNING"):
            manager = make_manager(ScriptedPolicy([1]), cycles={})

        result = manager.tick()

        self.assertFalse(manager.enabled)
        self.assertFalse(result.done)
        self.assertEqual(result.reward, 0.0)
        self.assertEqual(manager.total_ticks, 0)
        self.assertIsNone(manager.run_episode())

    def test_policy_errors_do_not_escape_tick(self) -> None:
        manager = make_manager(ExplodingPolicy())
        result = manager.tick()
        self.assertEqual(result.info['action'], 0)
        self.assertFalse(result.done)

    def test_failed_tick_reports_its_partial_reward(self) -> None:
        manager = make_manager(IdlePolicy())
        with mock.patch.object(manager.episode, 'check_terminal', side_effect=RuntimeError("boom")):
            with self.assertLogs("intersection_manager", level="ERROR"):
                failed = manager.tick()

        self.assertIn('error', failed.info)
        self.assertAlmostEqual(failed.reward, -0.05)

        following = manager.tick()
        self.assertAlmostEqual(following.reward, -0.05)
        self.assertAlmostEqual(failed.reward + following.reward, manager.evaluator.total)

    def test_tick_reward_sums_to_accumulator(self) -> None:
        manager = make_manager(ScriptedPolicy([1, 2, 1], loop=True), vehicles=3)
        total = 0.0
        for _ in range(20):
            total += manager.tick().reward
        self.assertAlmostEqual(total, manager.evaluator.total)

    def test_reset_restores_initial_state(self) -> None:
        manager = make_manager(ScriptedPolicy([2]))
        for _ in range(4):
            manager.tick()

        manager.reset()

        self.assertIsNone(manager.controller.phase.granted_cycle)
        self.assertEqual(manager.controller.green_cycles(), [])
        self.assertEqual(manager.scheduler.window.countdown, 0.0)
        self.assertEqual(manager.evaluator.total, 0.0)
        self.assertEqual(manager.episode.budget.remaining_time, manager.config.episode_duration)


class IntersectionSimulationTests(unittest.TestCase):
    def test_mutual_exclusion_over_full_episodes(self) -> None:
        registry = VehicleRegistry()
        generator = TrafficGenerator(n_vehicles=6, seed=11)
        generator.generate(registry)
        config = ControllerConfig(tick_dt=0.1, episode_duration=15.0)
        manager = IntersectionManager(config=config,
                                      policy=RandomPolicy(seed=5, switch_probability=0.3),
                                      registry=registry,
                                      scene_reset=lambda: generator.generate(registry))

        for _ in range(600):
            generator.step(config.tick_dt, manager.controller)
            manager.tick()
            self.assertLessEqual(len(manager.controller.green_cycles()), 1)

        self.assertGreaterEqual(len(manager.episode.summaries), 1)

    def test_run_episode_ends_with_outcome(self) -> None:
        registry = VehicleRegistry()
        generator = TrafficGenerator(n_vehicles=4, seed=2)
        generator.generate(registry)
        manager = IntersectionManager(config=ControllerConfig(tick_dt=0.1),
                                      policy=ScriptedPolicy([1, 2], loop=True),
                                      registry=registry,
                                      scene_reset=lambda: generator.generate(registry))

        info = manager.run_episode(vehicle_step=lambda dt: generator.step(dt, manager.controller))

        self.assertIsNotNone(info)
        self.assertIn(info['outcome'], ('success', 'timeout'))
        self.assertEqual(manager.episode.episode, 1)


if __name__ == "__main__":
    unittest.main()
