from __future__ import annotations

import logging
from dataclasses import replace
from time import perf_counter
from typing import Dict, List

from pygame.math import Vector2

from .agent import Agent, CombineStrategy, Obstacle, Path, SingleBehavior
from .config import SimulationConfig
from .rng import DeterministicRng
from ..systems import avoidance, metrics as metrics_system, navigation, steering
from ..systems.combine import CandidateForces, Combiner, combiner_for, weighted_blend
from ..types.frame import BehaviorToggles, FrameInput, SteeringControls
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotControls, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import add, heading_from_velocity, limit, subtract

logger = logging.getLogger(__name__)

PLAYER_ID = -1


class World:
    """Owns the agents, obstacles and path, and advances them one frame at a time.

    Single-agent mode steers the player toward the pointer with one behavior and
    hard-clamps it to the world rectangle. Multi-agent mode composes the enabled
    group behaviors for every agent and wraps positions around the edges.

    Agents are updated in list order and in place, so pairwise behaviors for a
    later agent see earlier agents' positions from this same tick.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._obstacles: List[Obstacle] = [
            Obstacle(center=Vector2(item.position), radius=item.radius) for item in config.obstacles
        ]
        self._path: Path = tuple(Vector2(point) for point in config.path)
        self._agents: List[Agent] = []
        self._player = self._create_player()
        self._controls = SteeringControls()
        self._combiners: Dict[CombineStrategy, Combiner] = {
            strategy: combiner_for(strategy, config.priority, config.weights) for strategy in CombineStrategy
        }
        self._target = Vector2(self._player.position)
        self._previous_target: Vector2 | None = None
        self._target_velocity = Vector2()
        self._elapsed = 0.0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def player(self) -> Agent:
        return self._player

    @property
    def obstacles(self) -> List[Obstacle]:
        return self._obstacles

    @property
    def path(self) -> Path:
        return self._path

    @property
    def target_velocity(self) -> Vector2:
        return self._target_velocity

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._rng.reset()
        self._agents.clear()
        self._player = self._create_player()
        self._target = Vector2(self._player.position)
        self._previous_target = None
        self._target_velocity = Vector2()
        self._elapsed = 0.0
        self._metrics = None
        self._bootstrap_population()
        logger.debug("World reset (seed=%s, agents=%d)", self._config.seed, len(self._agents))

    def step(self, tick: int, frame: FrameInput) -> TickMetrics:
        start = perf_counter()
        controls = frame.controls
        self._log_control_changes(controls)
        # copy: callers mutate their controls between frames
        self._controls = replace(controls, toggles=replace(controls.toggles))
        self._elapsed += max(0.0, frame.dt)
        self._track_target(frame.target)

        wrapped = 0
        if controls.single_agent_mode:
            self._step_single(controls)
            active = [self._player]
            mode = "single"
        else:
            wrapped = self._step_multi(controls)
            active = self._agents
            mode = "multi"

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick, mode, controls.strategy.value, active, wrapped, elapsed_ms
        )
        self._metrics = metrics
        return metrics

    def desired_single_velocity(self, controls: SteeringControls) -> Vector2:
        player = self._player
        settings = self._config.player
        target = self._target
        if controls.combine_single:
            wander_force = steering.wander(player, self._rng, self._config.wander)
            seek_force = steering.seek(player.position, target, player.max_speed)
            return weighted_blend(
                [
                    (wander_force, settings.combine_wander_weight),
                    (seek_force, settings.combine_seek_weight),
                ],
                player.max_force * settings.combine_force_multiplier,
            )
        behavior = controls.behavior
        if behavior is SingleBehavior.SEEK:
            return steering.seek(player.position, target, player.max_speed)
        if behavior is SingleBehavior.FLEE:
            return steering.flee(player.position, target, player.max_speed)
        if behavior is SingleBehavior.PURSUE:
            return steering.pursue(
                player.position, target, self._target_velocity, player.max_speed, settings.prediction_factor
            )
        if behavior is SingleBehavior.EVADE:
            return steering.evade(
                player.position, target, self._target_velocity, player.max_speed, settings.prediction_factor
            )
        if behavior is SingleBehavior.ARRIVE:
            return steering.arrive(player.position, target, player.max_speed, settings.slowing_radius)
        return steering.wander(player, self._rng, self._config.wander)

    def candidate_forces(self, index: int, toggles: BehaviorToggles) -> CandidateForces:
        agents = self._agents
        agent = agents[index]
        behaviors = self._config.behaviors
        forces = CandidateForces()
        if toggles.path:
            desired = navigation.path_following(agent, self._path, behaviors.path_waypoint_radius)
            forces.path = steering.steering_force(desired, agent.velocity)
        if toggles.separation:
            forces.separation = avoidance.separation(
                agents, index, behaviors.separation_radius, behaviors.separation_strength
            )
        if toggles.predictive:
            forces.predictive = avoidance.predictive_avoidance_sum(
                agents,
                index,
                behaviors.predictive_look_ahead,
                behaviors.predictive_strength,
                behaviors.predictive_combined_radius,
            )
        if toggles.obstacle:
            forces.obstacle = avoidance.obstacle_avoidance(
                agent,
                self._obstacles,
                behaviors.obstacle_look_ahead,
                behaviors.obstacle_strength,
                behaviors.obstacle_buffer,
            )
        if toggles.wall:
            forces.wall = avoidance.wall_avoidance(
                agent, self._config.width, self._config.height, behaviors.wall_margin, behaviors.wall_strength
            )
        return forces

    def snapshot(self, tick: int) -> Snapshot:
        controls = self._controls
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        agents = [self._player] if controls.single_agent_mode else self._agents
        world = SnapshotWorld(
            width=self._config.width,
            height=self._config.height,
            target=[self._target.x, self._target.y],
            obstacles=[
                {"x": obstacle.center.x, "y": obstacle.center.y, "radius": obstacle.radius}
                for obstacle in self._obstacles
            ],
            path=[[point.x, point.y] for point in self._path],
        )
        metadata = SnapshotMetadata(
            sim_dt=self._config.time_step,
            elapsed=self._elapsed,
            seed=self._config.seed,
            config_version=self._config.config_version,
        )
        snapshot_controls = SnapshotControls(
            single_agent_mode=controls.single_agent_mode,
            behavior=controls.behavior.value,
            combine_single=controls.combine_single,
            strategy=controls.strategy.value,
            toggles={name: getattr(controls.toggles, name) for name in BehaviorToggles.names()},
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in agents],
            world=world,
            metadata=metadata,
            controls=snapshot_controls,
        )

    def _step_single(self, controls: SteeringControls) -> None:
        player = self._player
        desired = self.desired_single_velocity(controls)
        force = steering.steering_force(desired, player.velocity)
        self._integrate(player, force)
        player.position.update(*self._clamp_to_bounds(player.position, self._config.width, self._config.height))

    def _step_multi(self, controls: SteeringControls) -> int:
        combiner = self._combiners[controls.strategy]
        config = self._config
        wrapped = 0
        for index, agent in enumerate(self._agents):
            forces = self.candidate_forces(index, controls.toggles)
            force = combiner.combine(forces, agent.max_force)
            self._integrate(agent, force)
            x, y, crossed = self._wrap(agent.position, config.width, config.height, config.wrap_margin)
            if crossed:
                agent.position.update(x, y)
                wrapped += 1
        return wrapped

    @staticmethod
    def _integrate(agent: Agent, force: Vector2) -> None:
        applied = limit(force, agent.max_force)
        agent.acceleration = applied
        agent.velocity = limit(add(agent.velocity, applied), agent.max_speed)
        agent.position = add(agent.position, agent.velocity)
        agent.heading = heading_from_velocity(agent.velocity)

    @staticmethod
    def _clamp_to_bounds(position: Vector2, width: float, height: float) -> tuple[float, float]:
        return min(max(position.x, 0.0), width), min(max(position.y, 0.0), height)

    @staticmethod
    def _wrap(position: Vector2, width: float, height: float, margin: float) -> tuple[float, float, bool]:
        x = position.x
        y = position.y
        crossed = False
        if x < -margin:
            x = width + margin
            crossed = True
        elif x > width + margin:
            x = -margin
            crossed = True
        if y < -margin:
            y = height + margin
            crossed = True
        elif y > height + margin:
            y = -margin
            crossed = True
        return x, y, crossed

    def _track_target(self, target: Vector2) -> None:
        current = Vector2(target)
        if self._previous_target is None:
            self._target_velocity = Vector2()
        else:
            self._target_velocity = subtract(current, self._previous_target)
        self._previous_target = current
        self._target = current

    def _log_control_changes(self, controls: SteeringControls) -> None:
        previous = self._controls
        if previous.single_agent_mode != controls.single_agent_mode:
            logger.debug("Switched to %s-agent mode", "single" if controls.single_agent_mode else "multi")
        if previous.strategy is not controls.strategy:
            logger.debug("Combine strategy set to %s", controls.strategy.value)
        if previous.behavior is not controls.behavior:
            logger.debug("Single-agent behavior set to %s", controls.behavior.value)

    def _create_player(self) -> Agent:
        settings = self._config.player
        velocity = Vector2(settings.start_velocity)
        return Agent(
            id=PLAYER_ID,
            position=Vector2(settings.start_position),
            velocity=velocity,
            max_speed=settings.max_speed,
            max_force=settings.max_force,
            color="orange",
            heading=heading_from_velocity(velocity),
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        population = config.population
        margin = config.spawn_margin
        spread = population.initial_velocity_range
        colors = population.colors or ["skyblue"]
        for index in range(config.agent_count):
            position = self._rng.next_point(margin, config.width - margin, margin, config.height - margin)
            velocity = Vector2(self._rng.next_range(-spread, spread), self._rng.next_range(-spread, spread))
            max_speed = population.base_speed + self._rng.next_range(0.0, population.speed_jitter)
            path_index = self._rng.next_int(0, len(self._path) - 1) if self._path else 0
            agent = Agent(
                id=index,
                position=position,
                velocity=velocity,
                max_speed=max_speed,
                max_force=population.max_force,
                path_index=path_index,
                color=colors[index % len(colors)],
                heading=heading_from_velocity(velocity),
            )
            self._agents.append(agent)

    def _agent_snapshot(self, agent: Agent) -> Dict[str, float | int | str]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.velocity.length(),
            "heading": agent.heading,
            "color": agent.color,
            "path_index": agent.path_index,
        }

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        controls = self._controls
        active = [self._player] if controls.single_agent_mode else self._agents
        return metrics_system.create_metrics(
            tick, "single" if controls.single_agent_mode else "multi", controls.strategy.value, active, 0, 0.0
        )
