import sys
from pathlib import Path

import pytest
from pygame.math import Vector2

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from steerlab.sim.core.agent import Agent  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run long simulation soak tests",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: marks long-running simulation soak tests (use --run-slow)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow"):
        return

    skip_marker = pytest.mark.skip(reason="Long soak test (use --run-slow)")

    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def make_agent():
    def _make(
        x: float = 0.0,
        y: float = 0.0,
        vx: float = 0.0,
        vy: float = 0.0,
        max_speed: float = 3.0,
        max_force: float = 0.14,
        agent_id: int = 0,
        path_index: int = 0,
    ) -> Agent:
        return Agent(
            id=agent_id,
            position=Vector2(x, y),
            velocity=Vector2(vx, vy),
            max_speed=max_speed,
            max_force=max_force,
            path_index=path_index,
        )

    return _make
