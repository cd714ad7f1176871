from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    controls: "SnapshotControls"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float
    target: List[float]
    obstacles: List[Dict[str, float]]
    path: List[List[float]]


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    elapsed: float
    seed: int
    config_version: str


@dataclass(slots=True)
class SnapshotControls:
    single_agent_mode: bool
    behavior: str
    combine_single: bool
    strategy: str
    toggles: Dict[str, bool]
