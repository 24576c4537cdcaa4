from __future__ import annotations

import pytest
from pygame.math import Vector2

from rvosim.sim.core.agent import Personality
from rvosim.sim.core.store import AgentStore
from rvosim.sim.systems.movement import integrate


def _store(position=(0, 0), destination=(10, 0)):
    store = AgentStore(1, max_neighbors=4)
    store.add_agent(0, Vector2(position), Vector2(destination), Personality())
    return store


def test_integrate_moves_by_planned_velocity():
    store = _store()
    store.new_velocities[0].update(1.0, 0.5)

    moved = integrate(store, 0, 0.1, destination_buffer=0.1)

    assert moved
    assert store.positions[0].x == pytest.approx(0.1)
    assert store.positions[0].y == pytest.approx(0.05)
    assert store.velocities[0] == Vector2(1.0, 0.5)
    assert store.headings[0].x == pytest.approx(Vector2(1.0, 0.5).normalize().x)
    assert store.headings[0].y == pytest.approx(Vector2(1.0, 0.5).normalize().y)
    assert not store.reached_destination[0]


def test_arrival_is_checked_after_the_move():
    store = _store(destination=(1, 0))
    store.new_velocities[0].update(1.0, 0.0)

    integrate(store, 0, 0.95, destination_buffer=0.1)

    assert store.reached_destination[0]


def test_zero_velocity_keeps_previous_heading():
    store = _store(destination=(0, 10))
    store.new_velocities[0].update(0.0, 0.0)

    integrate(store, 0, 0.1, destination_buffer=0.1)

    assert store.headings[0] == Vector2(0, 1)
    assert store.positions[0] == Vector2(0, 0)


def test_arrived_agent_stays_put_and_stays_arrived():
    store = _store()
    store.reached_destination[0] = True
    store.new_velocities[0].update(0.0, 0.0)

    moved = integrate(store, 0, 0.1, destination_buffer=0.1)

    assert not moved
    assert store.positions[0] == Vector2(0, 0)
    assert store.velocities[0] == Vector2(0, 0)
    assert store.reached_destination[0]


def test_inactive_agent_does_not_move():
    store = _store()
    store.new_velocities[0].update(1.0, 0.0)
    store.set_active(0, False)

    moved = integrate(store, 0, 0.1, destination_buffer=0.1)

    assert not moved
    assert store.positions[0] == Vector2(0, 0)
    assert store.velocities[0] == Vector2(0, 0)


def test_arrival_survives_being_pushed_away():
    store = _store(destination=(0.05, 0))
    store.new_velocities[0].update(0.5, 0.0)
    integrate(store, 0, 0.1, destination_buffer=0.1)
    assert store.reached_destination[0]

    store.positions[0].update(5.0, 5.0)
    store.new_velocities[0].update(0.0, 0.0)
    for _ in range(3):
        moved = integrate(store, 0, 0.1, destination_buffer=0.1)
        assert not moved

    assert store.reached_destination[0]
    assert store.positions[0] == Vector2(5, 5)
