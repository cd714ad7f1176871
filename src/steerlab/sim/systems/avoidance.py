from __future__ import annotations

from typing import Sequence

from pygame.math import Vector2

from ..core.agent import Agent, Obstacle
from ..utils.math2d import add, heading_vector, length, limit, normalize, scale, subtract


def separation(agents: Sequence[Agent], index: int, radius: float, strength: float) -> Vector2:
    """Repulsion from every other agent inside ``radius``, stronger when closer.

    Peers are skipped by list index only, so an agent sharing this agent's exact
    position still counts as a neighbour.
    """
    if radius <= 0.0:
        return Vector2()
    agent = agents[index]
    steer_x = 0.0
    steer_y = 0.0
    count = 0
    for other_index, other in enumerate(agents):
        if other_index == index:
            continue
        diff = subtract(agent.position, other.position)
        dist = length(diff)
        if dist >= radius:
            continue
        away = normalize(diff)
        factor = (radius - dist) / radius
        steer_x += away.x * factor
        steer_y += away.y * factor
        count += 1
    if count == 0:
        return Vector2()
    steer = Vector2(steer_x / count, steer_y / count)
    if length(steer) < 1e-4:
        return Vector2()
    return scale(normalize(steer), strength)


def predictive_avoidance(
    agent: Agent,
    other: Agent,
    look_ahead_time: float,
    max_avoid_force: float,
    combined_radius: float = 24.0,
) -> Vector2:
    future_self = add(agent.position, scale(agent.velocity, look_ahead_time))
    future_other = add(other.position, scale(other.velocity, look_ahead_time))
    diff = subtract(future_self, future_other)
    dist = length(diff)
    if dist >= combined_radius or dist <= 1e-3:
        return Vector2()
    penetration = (combined_radius - dist) / combined_radius
    # never weaker than 0.4x, even right at the edge of the radius
    return scale(normalize(diff), max_avoid_force * (0.4 + 0.6 * penetration))


def predictive_avoidance_sum(
    agents: Sequence[Agent],
    index: int,
    look_ahead_time: float,
    max_avoid_force: float,
    combined_radius: float = 24.0,
) -> Vector2:
    agent = agents[index]
    total = Vector2()
    for other_index, other in enumerate(agents):
        if other_index == index:
            continue
        total = add(total, predictive_avoidance(agent, other, look_ahead_time, max_avoid_force, combined_radius))
    return total


def obstacle_avoidance(
    agent: Agent,
    obstacles: Sequence[Obstacle],
    look_ahead: float,
    strength: float,
    buffer: float = 8.0,
) -> Vector2:
    ahead = add(agent.position, scale(heading_vector(agent.velocity), look_ahead))
    steer = Vector2()
    for obstacle in obstacles:
        radius = obstacle.radius + buffer
        ahead_offset = subtract(ahead, obstacle.center)
        ahead_dist = length(ahead_offset)
        if ahead_dist < radius:
            steer = add(steer, scale(normalize(ahead_offset), (radius - ahead_dist) * strength))
            continue
        # Look-ahead is clear but the agent may already be inside.
        now_offset = subtract(agent.position, obstacle.center)
        now_dist = length(now_offset)
        if now_dist < radius:
            steer = add(steer, scale(normalize(now_offset), (radius - now_dist) * strength * 0.8))
    if length(steer) < 1e-3:
        return Vector2()
    return limit(steer, strength)


def wall_avoidance(agent: Agent, width: float, height: float, margin: float, strength: float) -> Vector2:
    if margin <= 0.0:
        return Vector2()
    x = agent.position.x
    y = agent.position.y
    steer_x = 0.0
    steer_y = 0.0
    if x < margin:
        steer_x = strength * (1.0 - x / margin)
    elif x > width - margin:
        steer_x = -strength * (1.0 - (width - x) / margin)
    if y < margin:
        steer_y = strength * (1.0 - y / margin)
    elif y > height - margin:
        steer_y = -strength * (1.0 - (height - y) / margin)
    return Vector2(steer_x, steer_y)
