from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Sequence

from pygame.math import Vector2

from .agent import AgentSpawn, AgentStatus
from .config import SimulationConfig, validate_config
from .rng import DeterministicRng
from .spatial_grid import SpatialGrid
from .store import AgentStore
from ..systems import metrics as metrics_system
from ..systems.movement import integrate
from ..systems.observation import observe
from ..systems.planning import VelocityPlanner, make_planner
from ..systems.spawning import generate_spawns
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata
from ..utils.math2d import _heading_from_velocity
from ..utils.parallel import PhaseExecutor

logger = logging.getLogger(__name__)


class World:
    """
    Owns the agent store and spatial index and runs the per-tick phases.

    A tick is Observe -> Plan -> Integrate -> Rebuild. Each of the first three
    is a parallel map over agent indices that only writes the slot of its own
    index, and each is joined before the next starts.
    """

    def __init__(self, config: SimulationConfig, spawns: Sequence[AgentSpawn] | None = None):
        validate_config(config)
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._spawns: List[AgentSpawn] | None = list(spawns) if spawns is not None else None
        self._executor = PhaseExecutor(config.workers)
        self._metrics: TickMetrics | None = None
        self._store: AgentStore
        self._grid: SpatialGrid
        self._planner: VelocityPlanner
        self._neighbor_counts: List[int] = []
        self._delta_time = config.time_step
        self._bootstrap_population()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def store(self) -> AgentStore:
        return self._store

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def planner(self) -> VelocityPlanner:
        return self._planner

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def all_arrived(self) -> bool:
        store = self._store
        return all(store.reached_destination[i] for i in range(store.count) if store.active[i])

    def reset(self) -> None:
        self._rng.reset()
        self._metrics = None
        self._bootstrap_population()

    def step(self, tick: int, delta_time: float | None = None) -> TickMetrics:
        dt = self._config.time_step if delta_time is None else float(delta_time)
        if dt <= 0.0:
            raise ValueError(f"delta_time must be positive, got {dt}")
        start = perf_counter()
        self._delta_time = dt
        count = self._store.count
        run = self._executor.map_range

        run(self._observe_agent, count)
        run(self._plan_agent, count)
        run(self._integrate_agent, count)
        self._grid.rebuild()

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(tick, self._store, sum(self._neighbor_counts), elapsed_ms)
        self._metrics = metrics
        logger.debug(
            "tick %d: active=%d arrived=%d colliding=%d (%.2f ms)",
            tick,
            metrics.active,
            metrics.arrived,
            metrics.colliding,
            elapsed_ms,
        )
        return metrics

    def set_active(self, index: int, active: bool) -> None:
        self._store.set_active(index, active)
        if not active:
            self._neighbor_counts[index] = 0
        logger.debug("agent %d set %s", index, "active" if active else "inactive")

    def reset_agent(self, index: int, position: Vector2 | None = None, destination: Vector2 | None = None) -> None:
        self._store.reset_agent(index, position=position, destination=destination)
        if position is not None:
            self._grid.rebuild()

    def status(self, index: int) -> AgentStatus:
        return self._store.status(index)

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else metrics_system.create_metrics(
            tick, self._store, sum(self._neighbor_counts), 0.0
        )
        config = self._config
        metadata = SnapshotMetadata(
            bounds=(float(config.bounds[0]), float(config.bounds[1])),
            sim_dt=config.time_step,
            tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
            method=self._planner.method.value,
            seed=config.seed,
            config_version=config.config_version,
        )
        agents_payload = [self._agent_snapshot(index) for index in range(self._store.count)]
        return Snapshot(tick=tick, metrics=metrics, agents=agents_payload, metadata=metadata)

    def close(self) -> None:
        self._executor.close()

    def __enter__(self) -> "World":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _bootstrap_population(self) -> None:
        spawns = self._spawns if self._spawns is not None else generate_spawns(self._config, self._rng)
        store = AgentStore(len(spawns), self._config.max_neighbors)
        for index, spawn in enumerate(spawns):
            store.add_agent(index, spawn.position, spawn.destination, spawn.personality)
        self._store = store
        self._neighbor_counts = [0] * store.count
        self._grid = SpatialGrid(self._config.grid_cell_size)
        self._grid.build(store.positions)
        self._planner = make_planner(self._config.method, store, self._config)
        logger.info(
            "world ready: %d agents, method=%s, workers=%d",
            store.count,
            self._planner.method.value,
            self._executor.workers,
        )

    def _observe_agent(self, index: int) -> None:
        config = self._config
        self._neighbor_counts[index] = observe(
            self._store, self._grid, index, config.visual_radius, config.max_neighbors
        )

    def _plan_agent(self, index: int) -> None:
        self._store.new_velocities[index].update(self._planner.plan(index, self._delta_time))

    def _integrate_agent(self, index: int) -> None:
        integrate(self._store, index, self._delta_time, self._config.destination_buffer)

    def _agent_snapshot(self, index: int) -> Dict[str, Any]:
        store = self._store
        position = store.positions[index]
        velocity = store.velocities[index]
        heading = store.headings[index]
        return {
            "id": index,
            "x": position.x,
            "y": position.y,
            "vx": velocity.x,
            "vy": velocity.y,
            "speed": velocity.length(),
            "heading": _heading_from_velocity(heading),
            "heading_x": heading.x,
            "heading_y": heading.y,
            "radius": store.radii[index],
            "personality": store.personality_ids[index],
            "active": store.active[index],
            "reached_destination": store.reached_destination[index],
            "colliding": store.colliding[index],
            "status": store.status(index).value,
        }
