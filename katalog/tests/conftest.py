"""
Katalog test fixtures.

Builds a kata store seeded with a small catalog plus in-memory gateways
wired the way a session wires the production adapters.
"""

from __future__ import annotations

import pytest

from katalog.gateway import MemoryKataGateway, MemoryObjectStorage
from katalog.orchestrator import KataOrchestrator
from katalog.store import EntityStore
from katalog.types import Kata


def make_katas() -> list[Kata]:
    return [
        Kata(id=1, name="Heian Shodan", description="First peaceful mind", style="Shotokan", order=0),
        Kata(id=2, name="Heian Nidan", description="Second peaceful mind", style="Shotokan", order=1),
        Kata(id=3, name="Saifa", description="Smash and tear", style="Goju-ryu", order=2),
    ]


@pytest.fixture
def storage():
    return MemoryObjectStorage()


@pytest.fixture
def gateway(storage):
    gw = MemoryKataGateway(storage)
    gw.seed(make_katas())
    return gw


@pytest.fixture
def store():
    return EntityStore[Kata](make_katas())


@pytest.fixture
def orchestrator(gateway, storage, store):
    return KataOrchestrator(gateway, storage, store)


@pytest.fixture
def images(tmp_path):
    paths = []
    for i in range(3):
        path = tmp_path / f"photo_{i}.jpg"
        path.write_bytes(b"\xff\xd8jpeg" + bytes([i]))
        paths.append(path)
    return paths
