from __future__ import annotations

from typing import Sequence

from pygame.math import Vector2

from ..core.agent import Agent
from ..utils.math2d import length, subtract
from .steering import arrive

SLOWING_RADIUS_FACTOR = 2.5


def path_following(agent: Agent, path: Sequence[Vector2], waypoint_radius: float) -> Vector2:
    """Desired velocity toward the agent's current waypoint on a closed loop.

    ``agent.path_index`` is advanced in place once the agent is inside
    ``waypoint_radius`` of its waypoint.
    """
    if not path:
        return Vector2()
    count = len(path)
    if not 0 <= agent.path_index < count:
        agent.path_index %= count
    target = path[agent.path_index]
    if length(subtract(target, agent.position)) < waypoint_radius:
        agent.path_index = (agent.path_index + 1) % count
        target = path[agent.path_index]
    return arrive(agent.position, target, agent.max_speed, waypoint_radius * SLOWING_RADIUS_FACTOR)
