from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import yaml

logger = logging.getLogger(__name__)


def _default_path() -> List[tuple[float, float]]:
    return [
        (150.0, 120.0),
        (400.0, 90.0),
        (800.0, 150.0),
        (920.0, 300.0),
        (800.0, 520.0),
        (520.0, 620.0),
        (240.0, 500.0),
        (100.0, 350.0),
    ]


@dataclass
class ObstacleConfig:
    position: tuple[float, float] = (0.0, 0.0)
    radius: float = 50.0


def _default_obstacles() -> List[ObstacleConfig]:
    return [
        ObstacleConfig(position=(500.0, 320.0), radius=60.0),
        ObstacleConfig(position=(300.0, 380.0), radius=45.0),
        ObstacleConfig(position=(700.0, 460.0), radius=55.0),
    ]


@dataclass
class PlayerConfig:
    start_position: tuple[float, float] = (500.0, 400.0)
    # non-zero so the heading is defined on the first frame
    start_velocity: tuple[float, float] = (0.05, 0.0)
    max_speed: float = 3.0
    max_force: float = 0.12
    prediction_factor: float = 0.8
    slowing_radius: float = 140.0
    combine_wander_weight: float = 0.6
    combine_seek_weight: float = 1.0
    combine_force_multiplier: float = 2.0


@dataclass
class PopulationConfig:
    base_speed: float = 2.4
    speed_jitter: float = 0.3
    max_force: float = 0.14
    initial_velocity_range: float = 5.0
    colors: List[str] = field(default_factory=lambda: ["skyblue", "maroon"])


@dataclass
class WanderConfig:
    circle_distance: float = 50.0
    circle_radius: float = 30.0
    angle_change: float = 0.5


@dataclass
class BehaviorConfig:
    separation_radius: float = 48.0
    separation_strength: float = 0.9
    predictive_look_ahead: float = 0.9
    predictive_strength: float = 0.9
    predictive_combined_radius: float = 24.0
    obstacle_look_ahead: float = 70.0
    obstacle_strength: float = 1.2
    obstacle_buffer: float = 8.0
    wall_margin: float = 40.0
    wall_strength: float = 1.6
    path_waypoint_radius: float = 22.0


@dataclass
class PriorityWeights:
    obstacle: float = 2.0
    wall: float = 1.8
    predictive: float = 1.4
    separation: float = 1.2
    path: float = 0.9


@dataclass
class BlendWeights:
    obstacle: float = 1.8
    wall: float = 1.4
    predictive: float = 1.2
    separation: float = 1.0
    path: float = 0.9


@dataclass
class SimulationConfig:
    width: float = 1800.0
    height: float = 1000.0
    agent_count: int = 12
    seed: int = 42
    time_step: float = 1.0 / 60.0
    spawn_margin: float = 80.0
    wrap_margin: float = 60.0
    config_version: str = "v1"
    obstacles: List[ObstacleConfig] = field(default_factory=_default_obstacles)
    path: List[tuple[float, float]] = field(default_factory=_default_path)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    wander: WanderConfig = field(default_factory=WanderConfig)
    behaviors: BehaviorConfig = field(default_factory=BehaviorConfig)
    priority: PriorityWeights = field(default_factory=PriorityWeights)
    weights: BlendWeights = field(default_factory=BlendWeights)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"World size must be positive, got {self.width}x{self.height}")
        if self.agent_count < 0:
            raise ValueError(f"agent_count must be >= 0, got {self.agent_count}")

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        logger.debug("Loaded configuration from %s", path)
        return load_config(data)


def _pair(value: object, name: str) -> tuple[float, float]:
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return (float(value[0]), float(value[1]))
    raise ValueError(f"{name} must be a pair of numbers, got {value!r}")


_NESTED = {"obstacles", "path", "player", "population", "wander", "behaviors", "priority", "weights"}


def load_config(raw: dict) -> SimulationConfig:
    player_raw = dict(raw.get("player") or {})
    for key in ("start_position", "start_velocity"):
        if key in player_raw:
            player_raw[key] = _pair(player_raw[key], f"player.{key}")
    player = PlayerConfig(**player_raw)
    population = PopulationConfig(**(raw.get("population") or {}))
    wander = WanderConfig(**(raw.get("wander") or {}))
    behaviors = BehaviorConfig(**(raw.get("behaviors") or {}))
    priority = PriorityWeights(**(raw.get("priority") or {}))
    weights = BlendWeights(**(raw.get("weights") or {}))

    extra = {}
    if raw.get("obstacles") is not None:
        extra["obstacles"] = [
            ObstacleConfig(
                position=_pair(item.get("position"), "obstacle.position"),
                radius=float(item.get("radius", ObstacleConfig.radius)),
            )
            for item in raw["obstacles"]
        ]
    if raw.get("path") is not None:
        extra["path"] = [_pair(point, "path waypoint") for point in raw["path"]]

    sim_values = {k: v for k, v in raw.items() if k not in _NESTED}
    return SimulationConfig(
        player=player,
        population=population,
        wander=wander,
        behaviors=behaviors,
        priority=priority,
        weights=weights,
        **extra,
        **sim_values,
    )
