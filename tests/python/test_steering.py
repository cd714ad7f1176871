from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from steerlab.sim.core.config import WanderConfig
from steerlab.sim.core.rng import DeterministicRng
from steerlab.sim.systems.steering import arrive, evade, flee, pursue, seek, steering_force, wander
from steerlab.sim.utils.math2d import length, limit


class FixedRng:
    def __init__(self, value: float):
        self.value = value

    def next_range(self, low: float, high: float) -> float:
        return self.value


def test_seek_toward_target_at_max_speed():
    desired = seek(Vector2(0.0, 0.0), Vector2(100.0, 0.0), 3.0)
    assert desired.x == approx(3.0)
    assert desired.y == approx(0.0)

    force = limit(steering_force(desired, Vector2()), 0.12)
    assert force.x == approx(0.12)
    assert force.y == approx(0.0)


def test_seek_on_target_is_zero():
    position = Vector2(42.0, -7.0)
    assert seek(position, Vector2(position), 3.0) == Vector2()


def test_flee_mirrors_seek():
    position = Vector2(10.0, 10.0)
    target = Vector2(13.0, 14.0)
    toward = seek(position, target, 2.0)
    away = flee(position, target, 2.0)
    assert away.x == approx(-toward.x)
    assert away.y == approx(-toward.y)
    assert length(away) == approx(2.0)


def test_pursue_with_still_target_is_seek():
    position = Vector2(0.0, 0.0)
    target = Vector2(50.0, 25.0)
    assert pursue(position, target, Vector2(), 3.0) == seek(position, target, 3.0)


def test_pursue_leads_moving_target():
    position = Vector2(0.0, 0.0)
    target = Vector2(100.0, 0.0)
    target_velocity = Vector2(0.0, 10.0)
    desired = pursue(position, target, target_velocity, 2.0, prediction_factor=0.5)

    time_ahead = 100.0 / (2.0 + 1e-4) * 0.5
    expected = seek(position, Vector2(100.0, 10.0 * time_ahead), 2.0)
    assert desired.x == approx(expected.x)
    assert desired.y == approx(expected.y)
    assert desired.y > 0.0


def test_evade_flees_the_predicted_point():
    position = Vector2(0.0, 0.0)
    target = Vector2(100.0, 0.0)
    target_velocity = Vector2(0.0, 10.0)
    chase = pursue(position, target, target_velocity, 2.0, 0.8)
    escape = evade(position, target, target_velocity, 2.0, 0.8)
    assert escape.x == approx(-chase.x)
    assert escape.y == approx(-chase.y)


def test_pursue_with_zero_max_speed_does_not_blow_up():
    desired = pursue(Vector2(), Vector2(10.0, 0.0), Vector2(1.0, 1.0), 0.0)
    assert length(desired) == approx(0.0)


def test_arrive_speed_ramps_linearly_inside_slowing_radius():
    position = Vector2(0.0, 0.0)
    assert arrive(position, Vector2(0.0, 0.0), 4.0, 100.0) == Vector2()
    assert length(arrive(position, Vector2(0.0005, 0.0), 4.0, 100.0)) == 0.0

    halfway = arrive(position, Vector2(50.0, 0.0), 4.0, 100.0)
    assert halfway.x == approx(2.0)
    assert halfway.y == approx(0.0)

    edge = arrive(position, Vector2(0.0, 100.0), 4.0, 100.0)
    assert length(edge) == approx(4.0)

    far = arrive(position, Vector2(-500.0, 0.0), 4.0, 100.0)
    assert far.x == approx(-4.0)


def test_arrive_never_exceeds_max_speed():
    for distance in (1.0, 10.0, 99.0, 100.0, 101.0, 1e4):
        assert length(arrive(Vector2(), Vector2(distance, 0.0), 3.0, 100.0)) <= 3.0 + 1e-9


def test_wander_projects_circle_ahead_of_heading(make_agent):
    agent = make_agent(vx=0.0, vy=0.0, max_speed=100.0)
    settings = WanderConfig(circle_distance=50.0, circle_radius=30.0, angle_change=0.5)

    desired = wander(agent, FixedRng(0.0), settings)

    # still agents use the default heading (0, -1); angle 0 puts the displacement at +x
    assert desired.x == approx(30.0)
    assert desired.y == approx(-50.0)
    assert agent.wander_angle == 0.0


def test_wander_advances_angle_and_clamps_to_max_speed(make_agent):
    agent = make_agent(vx=2.0, vy=0.0, max_speed=3.0)
    settings = WanderConfig()

    desired = wander(agent, FixedRng(1.0), settings)

    assert agent.wander_angle == approx(settings.angle_change)
    assert length(desired) == approx(3.0)
    expected = Vector2(
        50.0 + math.cos(settings.angle_change) * 30.0,
        math.sin(settings.angle_change) * 30.0,
    )
    assert desired.x == approx(expected.normalize().x * 3.0)
    assert desired.y == approx(expected.normalize().y * 3.0)


def test_wander_state_is_per_agent_and_bounded(make_agent):
    rng = DeterministicRng(3)
    settings = WanderConfig()
    first = make_agent(vx=1.0)
    second = make_agent(vx=1.0)

    previous = first.wander_angle
    for _ in range(50):
        wander(first, rng, settings)
        assert abs(first.wander_angle - previous) <= settings.angle_change + 1e-12
        previous = first.wander_angle

    assert second.wander_angle == 0.0
    assert first.wander_angle != 0.0
