from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    mode: str
    strategy: str
    population: int
    average_speed: float
    average_force: float
    max_force: float
    wrapped: int = 0
    tick_duration_ms: float = 0.0
