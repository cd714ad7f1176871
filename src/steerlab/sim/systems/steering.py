from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..core.agent import Agent
from ..utils.math2d import add, heading_vector, length, limit, normalize, scale, subtract

if TYPE_CHECKING:
    from ..core.config import WanderConfig
    from ..core.rng import DeterministicRng

# Guards the time-to-intercept denominator when max speed is zero.
_PREDICTION_EPSILON = 1e-4
_ARRIVE_EPSILON = 1e-3


def seek(position: Vector2, target: Vector2, max_speed: float) -> Vector2:
    return scale(normalize(subtract(target, position)), max_speed)


def flee(position: Vector2, target: Vector2, max_speed: float) -> Vector2:
    return scale(normalize(subtract(position, target)), max_speed)


def predict_position(
    position: Vector2,
    target_position: Vector2,
    target_velocity: Vector2,
    max_speed: float,
    prediction_factor: float,
) -> Vector2:
    """Extrapolate the target linearly by ``distance / max_speed * prediction_factor``.

    Closing speed is approximated by the pursuer's own top speed, so this is a
    heuristic look-ahead rather than an exact intercept.
    """
    distance = length(subtract(target_position, position))
    time_ahead = distance / (max_speed + _PREDICTION_EPSILON) * prediction_factor
    return add(target_position, scale(target_velocity, time_ahead))


def pursue(
    position: Vector2,
    target_position: Vector2,
    target_velocity: Vector2,
    max_speed: float,
    prediction_factor: float = 0.5,
) -> Vector2:
    future = predict_position(position, target_position, target_velocity, max_speed, prediction_factor)
    return seek(position, future, max_speed)


def evade(
    position: Vector2,
    target_position: Vector2,
    target_velocity: Vector2,
    max_speed: float,
    prediction_factor: float = 0.5,
) -> Vector2:
    future = predict_position(position, target_position, target_velocity, max_speed, prediction_factor)
    return flee(position, future, max_speed)


def arrive(position: Vector2, target: Vector2, max_speed: float, slowing_radius: float) -> Vector2:
    offset = subtract(target, position)
    distance = length(offset)
    if distance < _ARRIVE_EPSILON:
        return Vector2()
    speed = max_speed
    if slowing_radius > 0.0:
        speed = min(max_speed, max_speed * (distance / slowing_radius))
    return scale(normalize(offset), speed)


def wander(agent: Agent, rng: DeterministicRng, settings: WanderConfig) -> Vector2:
    circle_center = scale(heading_vector(agent.velocity), settings.circle_distance)
    agent.wander_angle += rng.next_range(-1.0, 1.0) * settings.angle_change
    displacement = Vector2(
        math.cos(agent.wander_angle) * settings.circle_radius,
        math.sin(agent.wander_angle) * settings.circle_radius,
    )
    return limit(add(circle_center, displacement), agent.max_speed)


def steering_force(desired: Vector2, velocity: Vector2) -> Vector2:
    return subtract(desired, velocity)
