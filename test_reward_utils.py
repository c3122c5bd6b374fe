#!/usr/bin/env python3
"""
Tests for reward evaluation and the CSV reward log.
"""

import os
import tempfile
import unittest

from controller_config import ControllerConfig
from utils.reward_utils import RewardEvaluator, RewardLog, summarize_reward_log
from utils.state_utils import VehicleProgressSnapshot


def snap(vehicle_id: str, completed: bool, remaining: int = None) -> VehicleProgressSnapshot:
    if remaining is None:
        remaining = 0 if completed else 1
    return VehicleProgressSnapshot(vehicle_id, (0.0, 0.0, 0.0), remaining, completed)


class RewardEvaluatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.evaluator = RewardEvaluator(ControllerConfig())

    def test_step_penalty_scales_with_active_share(self) -> None:
        self.evaluator.score_tick(0.02, [], tracked=4, active=2)
        components = self.evaluator.collect()
        self.assertAlmostEqual(components.step_penalty, -0.025)
        self.assertAlmostEqual(self.evaluator.total, -0.025)

    def test_step_penalty_skipped_without_active_vehicles(self) -> None:
        self.evaluator.score_tick(0.02, [], tracked=3, active=0)
        self.evaluator.score_tick(0.02, [], tracked=0, active=0)
        self.assertEqual(self.evaluator.total, 0.0)

    def test_completion_bonus_uses_reward_timer(self) -> None:
        snapshots = [snap("v1", completed=True), snap("v2", completed=False)]

        self.evaluator.score_tick(1.0, snapshots, tracked=2, active=1)
        components = self.evaluator.collect()

        # Reward timer starts at 1.0 and has accumulated one tick
        self.assertAlmostEqual(self.evaluator.reward_timer, 2.0)
        self.assertAlmostEqual(components.completion_bonus, 1.5)
        self.assertAlmostEqual(components.step_penalty, -0.025)

    def test_completion_bonus_paid_once_per_vehicle(self) -> None:
        snapshots = [snap("v1", completed=True)]
        for _ in range(5):
            self.evaluator.score_tick(0.5, snapshots, tracked=1, active=0)

        self.assertAlmostEqual(self.evaluator.total, 3.0 / 1.5)

    def test_unreadable_snapshot_earns_nothing(self) -> None:
        snapshots = [VehicleProgressSnapshot("v1", (0.0, 0.0, 0.0), None, False)]
        self.evaluator.score_tick(0.5, snapshots, tracked=0, active=0)
        self.assertEqual(self.evaluator.total, 0.0)

    def test_cycle_completion_cost(self) -> None:
        self.evaluator.on_cycle_complete()
        components = self.evaluator.collect()
        self.assertEqual(components.cycle_cost, -2.0)
        self.assertEqual(self.evaluator.cycle_completions, 1)

    def test_terminal_reward_applied_once(self) -> None:
        self.assertEqual(self.evaluator.apply_success(), 10.0)
        self.assertEqual(self.evaluator.apply_success(), 0.0)
        self.assertEqual(self.evaluator.apply_timeout(3), 0.0)
        self.assertEqual(self.evaluator.total, 10.0)

    def test_timeout_penalty_per_incomplete_vehicle(self) -> None:
        self.assertEqual(self.evaluator.apply_timeout(2), -2.0)
        components = self.evaluator.collect()
        self.assertEqual(components.terminal_reward, -2.0)

    def test_collect_starts_a_new_tick(self) -> None:
        self.evaluator.on_cycle_complete()
        self.evaluator.collect()
        components = self.evaluator.collect()

        self.assertEqual(components.total_reward, 0.0)
        self.assertEqual(self.evaluator.total, -2.0)
        self.assertEqual(self.evaluator.history, [-2.0, 0.0])

    def test_reset_zeroes_accumulator(self) -> None:
        self.evaluator.score_tick(1.0, [snap("v1", True)], tracked=1, active=0)
        self.evaluator.apply_success()
        self.evaluator.reset()

        self.assertEqual(self.evaluator.total, 0.0)
        self.assertEqual(self.evaluator.reward_timer, 1.0)
        self.assertFalse(self.evaluator.terminal_applied)

        # Same vehicle id is rewarded again in the new episode
        self.evaluator.score_tick(1.0, [snap("v1", True)], tracked=1, active=0)
        self.assertAlmostEqual(self.evaluator.total, 1.5)


class RewardLogTests(unittest.TestCase):
    def test_log_rows_and_summary(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "logs", "reward_log.csv")
            evaluator = RewardEvaluator(ControllerConfig(), reward_log=RewardLog(path))

            evaluator.score_tick(0.5, [], tracked=2, active=2)
            evaluator.collect(2, 2)
            evaluator.on_cycle_complete()
            evaluator.apply_success()
            evaluator.collect(2, 0)

            summary = summarize_reward_log(path)

        self.assertEqual(summary['total_steps'], 2)
        self.assertEqual(summary['episodes'], 1)
        self.assertAlmostEqual(summary['total_step_penalty'], -0.05)
        self.assertAlmostEqual(summary['total_cycle_cost'], -2.0)
        self.assertAlmostEqual(summary['total_terminal_reward'], 10.0)
        self.assertAlmostEqual(summary['mean_episode_reward'], 7.95)

    def test_missing_log_has_empty_summary(self) -> None:
        self.assertEqual(summarize_reward_log("does-not-exist.csv"), {})


if __name__ == "__main__":
    unittest.main()
