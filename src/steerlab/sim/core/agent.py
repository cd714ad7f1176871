from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from pygame.math import Vector2


class SingleBehavior(str, Enum):
    SEEK = "seek"
    FLEE = "flee"
    PURSUE = "pursue"
    EVADE = "evade"
    ARRIVE = "arrive"
    WANDER = "wander"


class CombineStrategy(str, Enum):
    PRIORITY = "priority"
    WEIGHTED = "weighted"


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    max_speed: float
    max_force: float
    path_index: int = 0
    wander_angle: float = 0.0
    color: str = "orange"
    heading: float = 0.0
    acceleration: Vector2 = field(default_factory=Vector2)


@dataclass(frozen=True, slots=True)
class Obstacle:
    center: Vector2
    radius: float


Path = Tuple[Vector2, ...]
