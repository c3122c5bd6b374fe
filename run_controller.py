#!/usr/bin/env python3
"""
Run Intersection Controller
===========================

Runs controller episodes with a chosen decision policy against the
built-in traffic generator and reports per-episode rewards.
"""

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List

from controller_config import load_config, ConfigurationError
from intersection_manager import IntersectionManager
from generate_traffic import TrafficGenerator, SCENARIO_WEIGHTS
from agents.policies import IdlePolicy, RandomPolicy, ScriptedPolicy, Policy, REQUEST_A, REQUEST_B
from logging_setup import setup_logging
from utils.reward_utils import RewardLog
from utils.state_utils import VehicleRegistry


def build_policy(name: str, seed: int) -> Policy:
    """Create a decision policy by name"""
    if name == "random":
        return RandomPolicy(seed=seed, switch_probability=0.2)
    if name == "scripted":
        return ScriptedPolicy([REQUEST_A, REQUEST_B], loop=True)
    return IdlePolicy()


def run_episodes(manager: IntersectionManager,
                 generator: TrafficGenerator,
                 episodes: int) -> List[Dict[str, Any]]:
    """Run a number of episodes and collect their summaries"""
    results = []
    for i in range(episodes):
        info = manager.run_episode(
            vehicle_step=lambda dt: generator.step(dt, manager.controller))
        if info is None:
            print(f"⚠️ Episode {i + 1} did not finish")
            continue

        summary = manager.episode.summaries[-1]
        results.append(asdict(summary) | {'outcome': summary.outcome.value})
        print(f"Episode {i + 1}: {summary.outcome.value:<8} "
              f"duration {summary.duration:6.2f}  "
              f"reward {summary.total_reward:8.3f}  "
              f"completed {summary.completed_vehicles}/"
              f"{summary.completed_vehicles + summary.incomplete_vehicles}  "
              f"switches {summary.cycle_completions}")
    return results


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Run the two-cycle intersection controller')
    parser.add_argument('--episodes', type=int, default=5, help='Number of episodes')
    parser.add_argument('--policy', type=str, default='scripted',
                        choices=['idle', 'random', 'scripted'], help='Decision policy')
    parser.add_argument('--vehicles', type=int, default=4, help='Vehicles per episode')
    parser.add_argument('--scenario', type=str, default='uniform',
                        choices=sorted(SCENARIO_WEIGHTS), help='Traffic scenario')
    parser.add_argument('--config', type=str, help='JSON file with configuration overrides')
    parser.add_argument('--dt', type=float, help='Tick length override')
    parser.add_argument('--reward-log', type=str, help='CSV file for per-tick rewards')
    parser.add_argument('--save-results', type=str, help='JSON file for episode summaries')
    parser.add_argument('--seed', type=int, default=0, help='Random seed')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Log level')

    args = parser.parse_args()
    setup_logging(getattr(logging, args.log_level), log_file=None)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 1

    if args.dt is not None:
        config.tick_dt = args.dt

    registry = VehicleRegistry()
    generator = TrafficGenerator(n_vehicles=args.vehicles, seed=args.seed, scenario=args.scenario)
    generator.generate(registry)

    reward_log = RewardLog(args.reward_log) if args.reward_log else None
    manager = IntersectionManager(config=config,
                                  policy=build_policy(args.policy, args.seed),
                                  registry=registry,
                                  scene_reset=lambda: generator.generate(registry),
                                  reward_log=reward_log)

    if not manager.enabled:
        print("❌ Controller disabled: no signal cycles configured")
        return 1

    print(f"🚦 Running {args.episodes} episodes with {args.policy} policy "
          f"({args.vehicles} vehicles, {args.scenario} scenario)")
    print("=" * 60)

    results = run_episodes(manager, generator, args.episodes)

    summary = manager.episode.get_episode_summary()
    if summary:
        print("=" * 60)
        print(f"📊 Successes {summary['successes']}/{summary['episodes']}, "
              f"mean reward {summary['mean_reward']:.3f}, "
              f"mean duration {summary['mean_duration']:.2f}")

    if reward_log is not None:
        log_summary = reward_log.get_reward_summary()
        if log_summary:
            print(f"📈 Reward log: {log_summary['total_steps']} ticks, "
                  f"mean episode reward {log_summary['mean_episode_reward']:.3f}")

    if args.save_results:
        with open(args.save_results, 'w') as f:
            json.dump({'summary': summary, 'episodes': results}, f, indent=2)
        print(f"💾 Results saved to {args.save_results}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
