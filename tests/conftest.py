"""Shared test fixtures."""

import pytest

from clndai_simulator import MarketConfig, MarketParticipant, MarketSimulator, PoolConfig, PoolEngine
from stake_simulator import StakeEngine


class ScriptedRandom:
    """Replays a fixed sequence of uniform draws and a fixed daily order."""

    def __init__(self, draws, order=None) -> None:
        self.draws = list(draws)
        self.order = order
        self.permutation_calls = 0

    def random(self) -> float:
        return self.draws.pop(0)

    def permutation(self, n: int) -> list[int]:
        self.permutation_calls += 1
        if self.order is not None:
            return list(self.order)
        return list(range(n))


@pytest.fixture
def pool() -> PoolEngine:
    return PoolEngine(PoolConfig(reserve_a=10_000, reserve_b=100_000, buy_fee_pct=0.3, sell_fee_pct=0.3))


@pytest.fixture
def fee_free_pool() -> PoolEngine:
    return PoolEngine(PoolConfig(reserve_a=10_000, reserve_b=100_000, buy_fee_pct=0, sell_fee_pct=0))


@pytest.fixture
def trader() -> MarketParticipant:
    return MarketParticipant(participant_id=1, name="Trader", balance_a=5_000)


@pytest.fixture
def market() -> MarketSimulator:
    """Empty roster, fixed seed."""
    return MarketSimulator(config=MarketConfig(seed=7, seed_default_roster=False))


@pytest.fixture
def stake() -> StakeEngine:
    return StakeEngine()


@pytest.fixture
def scripted_random():
    """Factory for ScriptedRandom sources."""
    return ScriptedRandom
