from __future__ import annotations

import argparse
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import PlannerMethod, SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def load_run_config(
    config_path: Optional[Path] = None,
    seed: Optional[int] = None,
    method: Optional[str] = None,
    workers: Optional[int] = None,
) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if method is not None:
        config.method = PlannerMethod(method.upper())
    if workers is not None:
        config.workers = workers
    return config


def run_headless(
    steps: int,
    seed: Optional[int] = None,
    config_path: Optional[Path] = None,
    method: Optional[str] = None,
    workers: Optional[int] = None,
    until_arrived: bool = False,
    deterministic: bool = False,
    summary_path: Optional[Path] = None,
) -> dict:
    config = load_run_config(config_path, seed=seed, method=method, workers=workers)

    tick_ms_series: list[float] = []
    colliding_series: list[float] = []
    speed_series: list[float] = []
    ticks_run = 0
    arrived_at: Optional[int] = None

    with World(config) as world:
        for tick in range(steps):
            metrics = world.step(tick)
            ticks_run += 1
            tick_ms_series.append(0.0 if deterministic else metrics.tick_duration_ms)
            colliding_series.append(float(metrics.colliding))
            speed_series.append(metrics.average_speed)
            if world.all_arrived:
                if arrived_at is None:
                    arrived_at = tick
                if until_arrived:
                    logger.info("all agents arrived at tick %d", tick)
                    break
        final = world.metrics

    summary = {
        "steps": steps,
        "ticks_run": ticks_run,
        "seed": config.seed,
        "method": config.method.value,
        "agents": config.num_agents,
        "all_arrived_tick": arrived_at,
        "final": {
            "active": final.active if final else 0,
            "arrived": final.arrived if final else 0,
            "inactive": final.inactive if final else 0,
        },
        "tick_ms": _summary_stats(tick_ms_series),
        "colliding": _summary_stats(colliding_series),
        "average_speed": _summary_stats(speed_series),
    }
    if summary_path:
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return summary


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless RVO/HRVO crowd simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--method", choices=["RVO", "HRVO", "rvo", "hrvo"], default=None)
    parser.add_argument("--workers", type=int, default=None, help="Worker threads per phase")
    parser.add_argument(
        "--until-arrived",
        action="store_true",
        help="Stop as soon as every active agent has reached its destination.",
    )
    parser.add_argument(
        "--deterministic",
        action="store_true",
        help="Force tick timings to 0 in the summary so identical seeds produce identical files.",
    )
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    summary = run_headless(
        args.steps,
        seed=args.seed,
        config_path=args.config,
        method=args.method,
        workers=args.workers,
        until_arrived=args.until_arrived,
        deterministic=args.deterministic,
        summary_path=args.summary,
    )
    logger.info(
        "ran %d ticks: arrived=%d active=%d",
        summary["ticks_run"],
        summary["final"]["arrived"],
        summary["final"]["active"],
    )


if __name__ == "__main__":
    main()
