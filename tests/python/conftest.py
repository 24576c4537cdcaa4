import sys
from pathlib import Path

import pytest
from pygame.math import Vector2

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from rvosim.sim.core.agent import AgentSpawn, Personality  # noqa: E402


@pytest.fixture
def make_spawn():
    def _make(position, destination, **personality):
        return AgentSpawn(
            position=Vector2(position),
            destination=Vector2(destination),
            personality=Personality(**personality),
        )

    return _make


@pytest.fixture
def configs_dir() -> Path:
    return ROOT / "configs"
