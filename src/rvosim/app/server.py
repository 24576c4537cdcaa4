from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.agent import AgentSpawn
from ..sim.core.config import SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)

DEFAULT_HISTORY = 64


@dataclass(frozen=True)
class Frame:
    tick: int
    payload: str


@dataclass
class Subscriber:
    websocket: WebSocket
    last_sent: int = -1
    last_acked: int = -1


def encode_frame(world: World, tick: int) -> Frame:
    """Per-tick outputs only: where each agent is, how it moves and whether it is still walking."""
    store = world.store
    agents: List[Dict[str, Any]] = []
    for index in range(store.count):
        position = store.positions[index]
        velocity = store.velocities[index]
        heading = store.headings[index]
        agents.append(
            {
                "id": index,
                "position": [position.x, position.y],
                "velocity": [velocity.x, velocity.y],
                "heading": [heading.x, heading.y],
                "active": store.active[index],
                "reached_destination": store.reached_destination[index],
            }
        )
    payload = {"type": "frame", "tick": tick, "all_arrived": world.all_arrived, "agents": agents}
    return Frame(tick=tick, payload=json.dumps(payload))


class SimulationController:
    """
    Steps a `World` on a timer and streams frames to websocket subscribers.

    Frames are only kept while someone is subscribed, at most `history` of
    them, and are dropped once every subscriber has acknowledged them. The
    run pauses by itself when every active agent has arrived; toggling an
    agent back on resumes it.
    """

    def __init__(
        self,
        config: SimulationConfig,
        spawns: Sequence[AgentSpawn] | None = None,
        history: int = DEFAULT_HISTORY,
    ):
        self.config = config
        self.world = World(config, spawns=spawns)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.subscribers: Dict[WebSocket, Subscriber] = {}
        self._frames: deque[Frame] = deque(maxlen=max(1, history))
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._idle = False

    @property
    def pending_frames(self) -> int:
        return len(self._frames)

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        self.running = not self.world.all_arrived
        self._idle = not self.running
        logger.info("simulation %s at tick %d", "running" if self.running else "idle", self.tick)

    async def stop(self) -> None:
        self.running = False
        self._idle = False
        logger.info("simulation paused at tick %d", self.tick)

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        self._frames.clear()
        for subscriber in self.subscribers.values():
            subscriber.last_sent = -1
            subscriber.last_acked = -1
        await self.publish()

    async def set_active(self, index: int, active: bool) -> None:
        # Toggles land between ticks, never inside a phase.
        async with self._lock:
            self.world.set_active(index, active)
            if active and self._idle and not self.world.all_arrived:
                self.running = True
                self._idle = False
        await self.publish()

    async def advance(self) -> None:
        async with self._lock:
            self.world.step(self.tick)
            self.tick += 1
            if self.world.all_arrived:
                self.running = False
                self._idle = True
                logger.info("all agents arrived at tick %d; pausing", self.tick)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if self.running:
                await self.advance()
                await self.publish()

    async def publish(self) -> None:
        if not self.subscribers:
            return
        self._frames.append(encode_frame(self.world, self.tick))
        gone = []
        for subscriber in list(self.subscribers.values()):
            try:
                await self._flush(subscriber)
            except WebSocketDisconnect:
                gone.append(subscriber.websocket)
        for websocket in gone:
            self.detach(websocket)

    async def attach(self, websocket: WebSocket) -> None:
        subscriber = Subscriber(websocket)
        self.subscribers[websocket] = subscriber
        await websocket.send_text(encode_frame(self.world, self.tick).payload)
        subscriber.last_sent = self.tick

    def detach(self, websocket: WebSocket) -> None:
        self.subscribers.pop(websocket, None)
        self._trim()

    def acknowledge(self, websocket: WebSocket, tick: int) -> None:
        subscriber = self.subscribers.get(websocket)
        if subscriber is None:
            return
        subscriber.last_acked = max(subscriber.last_acked, tick)
        self._trim()

    async def _flush(self, subscriber: Subscriber) -> None:
        for frame in [frame for frame in self._frames if frame.tick > subscriber.last_sent]:
            await subscriber.websocket.send_text(frame.payload)
            subscriber.last_sent = frame.tick

    def _trim(self) -> None:
        if not self.subscribers:
            self._frames.clear()
            return
        floor = min(subscriber.last_acked for subscriber in self.subscribers.values())
        while self._frames and self._frames[0].tick <= floor:
            self._frames.popleft()


def _load_config() -> SimulationConfig:
    config_path = os.environ.get("RVOSIM_CONFIG")
    if config_path:
        return SimulationConfig.from_yaml(Path(config_path))
    return SimulationConfig()


app = FastAPI(title="RVO Crowd Simulation")
controller = SimulationController(_load_config())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    world = controller.world
    store = world.store
    statuses = [store.status(index).value for index in range(store.count)]
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "method": world.planner.method.value,
            "agents": store.count,
            "all_arrived": world.all_arrived,
            "counts": {value: statuses.count(value) for value in ("Active", "Arrived", "Inactive")},
        }
    )


@app.post("/api/control/{action}")
async def control(action: str, payload: dict | None = None) -> JSONResponse:
    if action == "start":
        await controller.start()
    elif action == "stop":
        await controller.stop()
    elif action == "reset":
        await controller.reset()
    elif action == "speed":
        multiplier = float((payload or {}).get("multiplier", 1.0))
        controller.speed_multiplier = max(0.1, min(5.0, multiplier))
    else:
        return JSONResponse({"error": f"unknown action {action!r}"}, status_code=404)
    return JSONResponse(
        {"running": controller.running, "tick": controller.tick, "multiplier": controller.speed_multiplier}
    )


@app.post("/api/agents/{index}/active")
async def set_agent_active(index: int, payload: dict) -> JSONResponse:
    if not 0 <= index < controller.world.store.count:
        return JSONResponse({"error": f"unknown agent {index}"}, status_code=404)
    active = bool(payload.get("active", True))
    await controller.set_active(index, active)
    return JSONResponse({"id": index, "active": active, "status": controller.world.status(index).value})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    await controller.attach(websocket)
    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                continue
            if message.get("type") == "ack" and isinstance(message.get("tick"), int):
                controller.acknowledge(websocket, message["tick"])
    except WebSocketDisconnect:
        controller.detach(websocket)


__all__ = ["app", "controller", "encode_frame", "SimulationController"]
