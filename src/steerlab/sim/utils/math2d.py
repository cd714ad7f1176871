from __future__ import annotations

import math

from pygame.math import Vector2

ZERO = Vector2()
DEFAULT_HEADING = Vector2(0.0, -1.0)


def length(vector: Vector2) -> float:
    return math.sqrt(vector.x * vector.x + vector.y * vector.y)


def normalize(vector: Vector2) -> Vector2:
    magnitude = length(vector)
    if magnitude == 0.0:
        return Vector2()
    return Vector2(vector.x / magnitude, vector.y / magnitude)


def scale(vector: Vector2, factor: float) -> Vector2:
    return Vector2(vector.x * factor, vector.y * factor)


def add(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x + b.x, a.y + b.y)


def subtract(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x - b.x, a.y - b.y)


def limit(vector: Vector2, max_length: float) -> Vector2:
    if max_length <= 0.0:
        return Vector2()
    magnitude = length(vector)
    if magnitude > max_length:
        return scale(vector, max_length / magnitude)
    return Vector2(vector)


def heading_vector(velocity: Vector2) -> Vector2:
    """Unit heading of ``velocity``, or straight up when the agent is nearly still."""
    heading = normalize(velocity)
    if length(heading) < 0.01:
        return Vector2(DEFAULT_HEADING)
    return heading


def heading_from_velocity(velocity: Vector2, default: float = 0.0) -> float:
    if length(velocity) < 0.01:
        return default
    return math.atan2(velocity.y, velocity.x)


def clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
