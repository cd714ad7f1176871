import pytest

from steerlab.app.headless import scripted_target
from steerlab.sim.core.agent import CombineStrategy
from steerlab.sim.core.config import SimulationConfig
from steerlab.sim.core.world import World
from steerlab.sim.types.frame import FrameInput, SteeringControls


@pytest.mark.slow
@pytest.mark.parametrize("strategy", list(CombineStrategy))
def test_long_run_keeps_flock_bounded_and_fast(strategy):
    config = SimulationConfig(agent_count=60)
    world = World(config)
    controls = SteeringControls(single_agent_mode=False, strategy=strategy)

    durations = []
    for tick in range(5000):
        frame = FrameInput(dt=config.time_step, target=scripted_target(config, tick), controls=controls)
        durations.append(world.step(tick, frame).tick_duration_ms)

    margin = config.wrap_margin
    for agent in world.agents:
        assert -margin <= agent.position.x <= config.width + margin
        assert -margin <= agent.position.y <= config.height + margin
        assert agent.velocity.length() <= agent.max_speed + 1e-9

    average_tick_ms = sum(durations) / len(durations)
    assert average_tick_ms <= 35.0, f"avg_tick_ms={average_tick_ms:.2f}"
