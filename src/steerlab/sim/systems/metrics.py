from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    mode: str,
    strategy: str,
    agents: Sequence[Agent],
    wrapped: int,
    duration_ms: float,
) -> TickMetrics:
    population = len(agents)
    speed_sum = 0.0
    force_sum = 0.0
    max_force = 0.0
    for agent in agents:
        speed_sum += agent.velocity.length()
        force = agent.acceleration.length()
        force_sum += force
        if force > max_force:
            max_force = force
    return TickMetrics(
        tick=tick,
        mode=mode,
        strategy=strategy,
        population=population,
        average_speed=0.0 if population == 0 else speed_sum / population,
        average_force=0.0 if population == 0 else force_sum / population,
        max_force=max_force,
        wrapped=wrapped,
        tick_duration_ms=duration_ms,
    )
