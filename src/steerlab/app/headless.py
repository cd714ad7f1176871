from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Iterable, Optional

from pygame.math import Vector2

from ..sim.core.agent import CombineStrategy, SingleBehavior
from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.frame import BehaviorToggles, FrameInput, SteeringControls
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "mode",
    "strategy",
    "population",
    "avg_speed",
    "avg_force",
    "max_force",
    "wrapped",
    "tick_ms",
]

# Scripted pointer: one lap around the world centre every ORBIT_PERIOD ticks.
ORBIT_PERIOD = 600
ORBIT_RADIUS_FRACTION = 0.3


def scripted_target(config: SimulationConfig, tick: int) -> Vector2:
    angle = 2.0 * math.pi * (tick % ORBIT_PERIOD) / ORBIT_PERIOD
    radius = min(config.width, config.height) * ORBIT_RADIUS_FRACTION
    return Vector2(
        config.width * 0.5 + math.cos(angle) * radius,
        config.height * 0.5 + math.sin(angle) * radius,
    )


def build_controls(
    mode: str = "multi",
    behavior: str = SingleBehavior.SEEK.value,
    strategy: str = CombineStrategy.PRIORITY.value,
    combine_single: bool = False,
    disabled: Iterable[str] = (),
) -> SteeringControls:
    mode_name = mode.lower().strip()
    if mode_name not in {"single", "multi"}:
        raise ValueError(f"Unknown mode: {mode}")
    try:
        single_behavior = SingleBehavior(behavior.lower().strip())
    except ValueError:
        raise ValueError(f"Unknown behavior: {behavior}") from None
    try:
        combine_strategy = CombineStrategy(strategy.lower().strip())
    except ValueError:
        raise ValueError(f"Unknown combine strategy: {strategy}") from None
    toggles = BehaviorToggles()
    for name in disabled:
        if name not in BehaviorToggles.names():
            raise ValueError(f"Unknown behavior toggle: {name}")
        setattr(toggles, name, False)
    return SteeringControls(
        single_agent_mode=mode_name == "single",
        behavior=single_behavior,
        combine_single=combine_single,
        strategy=combine_strategy,
        toggles=toggles,
    )


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.mode,
        metrics.strategy,
        metrics.population,
        f"{metrics.average_speed:.4f}",
        f"{metrics.average_force:.4f}",
        f"{metrics.max_force:.4f}",
        metrics.wrapped,
        f"{tick_ms:.3f}",
    ]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0}
    return {
        "min": float(min(values)),
        "max": float(max(values)),
        "avg": float(sum(values) / len(values)),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    controls: Optional[SteeringControls] = None,
    config: Optional[SimulationConfig] = None,
    summary_path: Optional[Path] = None,
) -> World:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config.seed = seed
    controls = controls if controls is not None else build_controls()
    world = World(config)
    logger.info(
        "Running %d steps (seed=%s, mode=%s, strategy=%s)",
        steps,
        config.seed,
        "single" if controls.single_agent_mode else "multi",
        controls.strategy.value,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    speed_series: list[float] = []
    force_series: list[float] = []
    tick_ms_series: list[float] = []
    wrapped_total = 0
    try:
        for tick in range(steps):
            frame = FrameInput(dt=config.time_step, target=scripted_target(config, tick), controls=controls)
            metrics = world.step(tick, frame)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            speed_series.append(metrics.average_speed)
            force_series.append(metrics.max_force)
            tick_ms_series.append(tick_ms)
            wrapped_total += metrics.wrapped
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        summary = {
            "steps": steps,
            "seed": config.seed,
            "mode": "single" if controls.single_agent_mode else "multi",
            "strategy": controls.strategy.value,
            "deterministic_log": deterministic_log,
            "avg_speed": _summary_stats(speed_series),
            "max_force": _summary_stats(force_series),
            "tick_ms": _summary_stats(tick_ms_series),
            "wrapped": wrapped_total,
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Wrote summary to %s", summary_path)
    return world


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless steering simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with simulation settings")
    parser.add_argument("--mode", choices=["single", "multi"], default="multi")
    parser.add_argument(
        "--behavior",
        choices=[item.value for item in SingleBehavior],
        default=SingleBehavior.SEEK.value,
        help="Single-agent behavior (only used with --mode single).",
    )
    parser.add_argument(
        "--strategy",
        choices=[item.value for item in CombineStrategy],
        default=CombineStrategy.PRIORITY.value,
        help="How multi-agent forces are combined.",
    )
    parser.add_argument(
        "--combine-single",
        action="store_true",
        help="Blend wander and seek for the single agent instead of one behavior.",
    )
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        choices=list(BehaviorToggles.names()),
        help="Turn off a multi-agent behavior (repeatable).",
    )
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-tick metrics")
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    controls = build_controls(
        mode=args.mode,
        behavior=args.behavior,
        strategy=args.strategy,
        combine_single=args.combine_single,
        disabled=args.disable,
    )
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        controls=controls,
        config=config,
        summary_path=args.summary,
    )


if __name__ == "__main__":
    main()
