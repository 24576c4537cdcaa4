import asyncio
import json

from fastapi.testclient import TestClient

from rvosim.app.server import SimulationController, app, controller, encode_frame
from rvosim.sim.core.config import SimulationConfig


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text))


def _publish(controller: SimulationController, ticks) -> None:
    async def exercise() -> None:
        for tick in ticks:
            controller.tick = tick
            await controller.publish()

    asyncio.run(exercise())


def test_no_frames_are_kept_without_subscribers() -> None:
    controller = SimulationController(SimulationConfig(num_agents=2))

    _publish(controller, range(500))

    assert controller.pending_frames == 0


def test_frames_stay_bounded_when_a_subscriber_never_acks() -> None:
    controller = SimulationController(SimulationConfig(num_agents=2), history=8)
    socket = RecordingSocket()
    asyncio.run(controller.attach(socket))

    _publish(controller, range(1, 201))

    assert controller.pending_frames == 8
    assert [frame["tick"] for frame in socket.sent][-3:] == [198, 199, 200]


def test_frames_are_dropped_once_every_subscriber_acks() -> None:
    controller = SimulationController(SimulationConfig(num_agents=2))
    fast, slow = RecordingSocket(), RecordingSocket()
    asyncio.run(controller.attach(fast))
    asyncio.run(controller.attach(slow))
    _publish(controller, [1, 2, 3])

    controller.acknowledge(fast, 3)
    assert controller.pending_frames == 3

    controller.acknowledge(slow, 1)
    assert controller.pending_frames == 2

    controller.detach(slow)
    assert controller.pending_frames == 0


def test_frame_carries_per_agent_outputs(make_spawn) -> None:
    controller = SimulationController(SimulationConfig(), spawns=[make_spawn((1, 2), (1, 9))])
    socket = RecordingSocket()

    asyncio.run(controller.attach(socket))

    frame = socket.sent[0]
    assert frame["type"] == "frame"
    assert frame["tick"] == 0
    assert frame["all_arrived"] is False
    assert frame["agents"] == [
        {
            "id": 0,
            "position": [1.0, 2.0],
            "velocity": [0.0, 0.0],
            "heading": [0.0, 1.0],
            "active": True,
            "reached_destination": False,
        }
    ]
    assert encode_frame(controller.world, 0).tick == 0


def test_run_pauses_on_arrival_and_resumes_on_reactivation(make_spawn) -> None:
    config = SimulationConfig(time_step=0.5)
    controller = SimulationController(config, spawns=[make_spawn((0, 0), (0.5, 0))])
    controller.running = True

    async def exercise() -> None:
        await controller.advance()
        assert controller.world.all_arrived
        assert controller.running is False
        assert controller.tick == 1

        await controller.set_active(0, False)
        assert controller.running is False
        await controller.set_active(0, True)
        assert controller.running is True
        assert controller.world.store.reached_destination[0] is False

    asyncio.run(exercise())


def test_manual_stop_is_not_undone_by_a_toggle(make_spawn) -> None:
    controller = SimulationController(SimulationConfig(), spawns=[make_spawn((0, 0), (5, 0))])

    async def exercise() -> None:
        controller.running = True
        await controller.stop()
        await controller.set_active(0, False)
        await controller.set_active(0, True)
        assert controller.running is False

    asyncio.run(exercise())


def test_status_reports_population_and_method() -> None:
    client = TestClient(app)
    response = client.get("/api/status")

    assert response.status_code == 200
    body = response.json()
    assert body["agents"] == controller.world.store.count
    assert body["method"] == controller.config.method.value
    assert sum(body["counts"].values()) == body["agents"]


def test_speed_multiplier_is_clamped_and_unknown_actions_rejected() -> None:
    client = TestClient(app)
    assert client.post("/api/control/speed", json={"multiplier": 50}).json()["multiplier"] == 5.0
    assert client.post("/api/control/speed", json={"multiplier": 1}).json()["multiplier"] == 1.0
    assert client.post("/api/control/jump").status_code == 404


def test_agent_toggle_round_trip() -> None:
    client = TestClient(app)

    response = client.post("/api/agents/0/active", json={"active": False})
    assert response.status_code == 200
    assert response.json() == {"id": 0, "active": False, "status": "Inactive"}

    response = client.post("/api/agents/0/active", json={"active": True})
    assert response.json()["status"] == "Active"

    missing = client.post(f"/api/agents/{controller.world.store.count}/active", json={"active": True})
    assert missing.status_code == 404
