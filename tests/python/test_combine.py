from __future__ import annotations

import random

import pytest
from pygame.math import Vector2
from pytest import approx

from steerlab.sim.core.agent import CombineStrategy
from steerlab.sim.core.config import BlendWeights, PriorityWeights
from steerlab.sim.systems.combine import (
    CandidateForces,
    PriorityCombiner,
    WeightedCombiner,
    combiner_for,
    priority_steering,
    weighted_blend,
)
from steerlab.sim.utils.math2d import length


def test_priority_returns_first_significant_force():
    a = Vector2(0.01, 0.0)
    b = Vector2(100.0, 100.0)
    c = Vector2(-5.0, 0.0)
    assert priority_steering([a, b, c]) == a


def test_priority_skips_negligible_forces():
    assert priority_steering([Vector2(0.0005, 0.0), Vector2(0.0, 2.0)]) == Vector2(0.0, 2.0)
    assert priority_steering([Vector2(), Vector2(0.0, 1e-4)]) == Vector2()
    assert priority_steering([]) == Vector2()


def test_priority_respects_custom_epsilon():
    forces = [Vector2(0.5, 0.0), Vector2(0.0, 3.0)]
    assert priority_steering(forces, epsilon=1.0) == Vector2(0.0, 3.0)


def test_weighted_blend_is_bounded():
    rng = random.Random(11)
    for _ in range(100):
        entries = [
            (Vector2(rng.uniform(-10.0, 10.0), rng.uniform(-10.0, 10.0)), rng.uniform(0.0, 3.0))
            for _ in range(rng.randint(0, 6))
        ]
        max_force = rng.uniform(0.05, 2.0)
        assert length(weighted_blend(entries, max_force)) <= max_force + 1e-9


def test_weighted_blend_does_not_clamp_individual_forces():
    blended = weighted_blend([(Vector2(10.0, 0.0), 0.01), (Vector2(0.0, 0.02), 1.0)], 1.0)
    assert blended.x == approx(0.1)
    assert blended.y == approx(0.02)

    dominated = weighted_blend([(Vector2(100.0, 0.0), 0.1), (Vector2(0.0, 0.01), 1.0)], 1.0)
    assert length(dominated) == approx(1.0)
    assert dominated.x > 0.99


def test_priority_combiner_prefers_danger_tier():
    combiner = PriorityCombiner(PriorityWeights())
    forces = CandidateForces(
        obstacle=Vector2(0.05, 0.0),
        separation=Vector2(0.0, 1.0),
        path=Vector2(-1.0, 0.0),
    )
    result = combiner.combine(forces, 0.14)
    assert result.x == approx(0.1)
    assert result.y == approx(0.0)


def test_priority_combiner_falls_back_to_safety_then_navigation():
    combiner = PriorityCombiner(PriorityWeights())
    safety = combiner.combine(CandidateForces(separation=Vector2(0.0, 0.9), path=Vector2(1.0, 0.0)), 0.14)
    assert safety.x == approx(0.0)
    assert safety.y == approx(0.14)

    navigation = combiner.combine(CandidateForces(path=Vector2(0.1, 0.0)), 0.14)
    assert navigation.x == approx(0.09)


def test_priority_combiner_tiers_sum_inside_tier():
    combiner = PriorityCombiner(PriorityWeights(obstacle=2.0, wall=1.8))
    tiers = combiner.tiers(CandidateForces(obstacle=Vector2(0.01, 0.0), wall=Vector2(0.0, 0.02)), 10.0)
    assert tiers[0].x == approx(0.02)
    assert tiers[0].y == approx(0.036)
    assert tiers[1] == Vector2()
    assert tiers[2] == Vector2()


def test_weighted_combiner_blends_every_candidate():
    combiner = WeightedCombiner(BlendWeights())
    forces = CandidateForces(
        obstacle=Vector2(0.01, 0.0),
        wall=Vector2(0.0, 0.01),
        predictive=Vector2(0.01, 0.0),
        separation=Vector2(0.0, 0.01),
        path=Vector2(0.01, 0.0),
    )
    result = combiner.combine(forces, 10.0)
    assert result.x == approx(0.018 + 0.012 + 0.009)
    assert result.y == approx(0.014 + 0.010)


def test_combiner_for_selects_strategy():
    priority = combiner_for(CombineStrategy.PRIORITY, PriorityWeights(), BlendWeights())
    weighted = combiner_for(CombineStrategy.WEIGHTED, PriorityWeights(), BlendWeights())
    assert isinstance(priority, PriorityCombiner)
    assert isinstance(weighted, WeightedCombiner)
    assert priority.strategy is CombineStrategy.PRIORITY
    assert weighted.strategy is CombineStrategy.WEIGHTED

    with pytest.raises(ValueError):
        combiner_for("blend", PriorityWeights(), BlendWeights())  # type: ignore[arg-type]
