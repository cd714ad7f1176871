from __future__ import annotations

from dataclasses import dataclass, field, fields

from pygame.math import Vector2

from ..core.agent import CombineStrategy, SingleBehavior


@dataclass(slots=True)
class BehaviorToggles:
    path: bool = True
    separation: bool = True
    predictive: bool = True
    obstacle: bool = True
    wall: bool = True

    def toggle(self, name: str) -> bool:
        if name not in self.names():
            raise KeyError(f"Unknown behavior toggle: {name}")
        value = not getattr(self, name)
        setattr(self, name, value)
        return value

    @staticmethod
    def names() -> tuple[str, ...]:
        return tuple(item.name for item in fields(BehaviorToggles))


@dataclass(slots=True)
class SteeringControls:
    single_agent_mode: bool = True
    behavior: SingleBehavior = SingleBehavior.SEEK
    combine_single: bool = False
    strategy: CombineStrategy = CombineStrategy.PRIORITY
    toggles: BehaviorToggles = field(default_factory=BehaviorToggles)


@dataclass(slots=True)
class FrameInput:
    dt: float
    target: Vector2
    controls: SteeringControls = field(default_factory=SteeringControls)
