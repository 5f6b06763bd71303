"""Pytest 配置和 Fixtures"""
import random

import pytest

from playmood.services.memory_store import InMemoryGraphStore
from playmood.services.reference_data import ensure_seed_users, load_reference_data


class FixedRandom(random.Random):
    """random() 恒定返回给定值，用于控制种子用户接纳"""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


@pytest.fixture
def store() -> InMemoryGraphStore:
    """空的内存图谱"""
    return InMemoryGraphStore()


@pytest.fixture
async def reference_store() -> InMemoryGraphStore:
    """已加载情绪词表和游戏目录的内存图谱"""
    graph = InMemoryGraphStore()
    await load_reference_data(graph)
    return graph


@pytest.fixture
async def seeded_store(reference_store) -> InMemoryGraphStore:
    """参考数据 + 种子用户"""
    await ensure_seed_users(reference_store)
    return reference_store


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def always_admit() -> FixedRandom:
    return FixedRandom(0.0)


@pytest.fixture
def never_admit() -> FixedRandom:
    return FixedRandom(0.99)
