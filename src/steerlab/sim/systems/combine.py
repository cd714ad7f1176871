from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Protocol, Sequence, Tuple

from pygame.math import Vector2

from ..core.agent import CombineStrategy
from ..core.config import BlendWeights, PriorityWeights
from ..utils.math2d import add, length, limit, scale

DEFAULT_EPSILON = 1e-3


def priority_steering(forces: Iterable[Vector2], epsilon: float = DEFAULT_EPSILON) -> Vector2:
    for force in forces:
        if length(force) > epsilon:
            return Vector2(force)
    return Vector2()


def weighted_blend(weighted_forces: Iterable[Tuple[Vector2, float]], max_force: float) -> Vector2:
    """Sum ``force * weight`` over all entries, then clamp the total.

    Individual forces are not clamped before summation.
    """
    total = Vector2()
    for force, weight in weighted_forces:
        total = add(total, scale(force, weight))
    return limit(total, max_force)


@dataclass(slots=True)
class CandidateForces:
    obstacle: Vector2 = field(default_factory=Vector2)
    wall: Vector2 = field(default_factory=Vector2)
    predictive: Vector2 = field(default_factory=Vector2)
    separation: Vector2 = field(default_factory=Vector2)
    path: Vector2 = field(default_factory=Vector2)


class Combiner(Protocol):
    strategy: CombineStrategy

    def combine(self, forces: CandidateForces, max_force: float) -> Vector2:
        ...


class PriorityCombiner:
    """Immediate danger, then safety, then navigation."""

    strategy = CombineStrategy.PRIORITY

    def __init__(self, weights: PriorityWeights, epsilon: float = DEFAULT_EPSILON):
        self.weights = weights
        self.epsilon = epsilon

    def tiers(self, forces: CandidateForces, max_force: float) -> List[Vector2]:
        w = self.weights
        danger = add(scale(forces.obstacle, w.obstacle), scale(forces.wall, w.wall))
        safety = add(scale(forces.predictive, w.predictive), scale(forces.separation, w.separation))
        navigation = scale(forces.path, w.path)
        return [limit(danger, max_force), limit(safety, max_force), limit(navigation, max_force)]

    def combine(self, forces: CandidateForces, max_force: float) -> Vector2:
        return priority_steering(self.tiers(forces, max_force), self.epsilon)


class WeightedCombiner:
    strategy = CombineStrategy.WEIGHTED

    def __init__(self, weights: BlendWeights):
        self.weights = weights

    def entries(self, forces: CandidateForces) -> Sequence[Tuple[Vector2, float]]:
        w = self.weights
        return (
            (forces.obstacle, w.obstacle),
            (forces.wall, w.wall),
            (forces.predictive, w.predictive),
            (forces.separation, w.separation),
            (forces.path, w.path),
        )

    def combine(self, forces: CandidateForces, max_force: float) -> Vector2:
        return weighted_blend(self.entries(forces), max_force)


def combiner_for(strategy: CombineStrategy, priority: PriorityWeights, weights: BlendWeights) -> Combiner:
    if strategy is CombineStrategy.PRIORITY:
        return PriorityCombiner(priority)
    if strategy is CombineStrategy.WEIGHTED:
        return WeightedCombiner(weights)
    raise ValueError(f"Unknown combine strategy: {strategy!r}")
