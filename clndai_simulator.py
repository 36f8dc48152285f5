"""
CLNDAI AMM Market Simulator
===========================

A discrete-time model of a constant-product pool (x * y = k) that exchanges
DAI (asset A) for CLNDAI (asset B), traded by a roster of simulated players.

Features:
- Constant-product pool with asymmetric fee accounting (buy fee on input,
  sell fee on output)
- Players with fixed behavioural strategies (passive, moderate, active, whale)
- Day stepping with a seedable random source for reproducible runs
- Joint-settlement valuation: "what if everyone sells right now", computed as
  an ordered cascade of sells against one shared, mutating pool
- Daily P/L snapshots and aggregate pool statistics
"""

from __future__ import annotations

import argparse
import enum
import itertools
import logging
import math
from dataclasses import dataclass, field
from numbers import Integral, Real
from typing import Iterable, Protocol, Sequence

import numpy as np


logger = logging.getLogger(__name__)


# =============================================================================
# Enumerations
# =============================================================================


class TradeKind(enum.Enum):
    """Direction of a trade against the pool."""
    BUY = "BUY"    # DAI in, CLNDAI out
    SELL = "SELL"  # CLNDAI in, DAI out


class Rejection(enum.Enum):
    """Reasons an engine operation was refused without mutating state."""
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_AMOUNT = "invalid_amount"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    DEGENERATE_STATE = "degenerate_state"


@dataclass(frozen=True)
class StrategyParams:
    """Behavioural constants of a trading strategy."""

    trade_chance: float  # Probability of trading on a given day
    trade_size: float    # Fraction of the relevant holding put into a trade


class Strategy(enum.Enum):
    """Closed set of player strategies."""
    PASSIVE = "passive"
    MODERATE = "moderate"
    ACTIVE = "active"
    WHALE = "whale"

    @property
    def params(self) -> StrategyParams:
        return STRATEGY_PARAMS[self]

    @classmethod
    def from_name(cls, name: str | Strategy) -> Strategy:
        """Parse a strategy name. Unknown names fall back to MODERATE."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            logger.debug("Unknown strategy %r, using moderate", name)
            return cls.MODERATE


STRATEGY_PARAMS: dict[Strategy, StrategyParams] = {
    Strategy.PASSIVE: StrategyParams(trade_chance=0.10, trade_size=0.10),
    Strategy.MODERATE: StrategyParams(trade_chance=0.30, trade_size=0.25),
    Strategy.ACTIVE: StrategyParams(trade_chance=0.60, trade_size=0.15),  # often, but small
    Strategy.WHALE: StrategyParams(trade_chance=0.20, trade_size=0.50),   # rarely, but large
}


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class PoolConfig:
    """Initial pool reserves and fee schedule (fees in percent)."""

    reserve_a: float = 10_000.0   # DAI
    reserve_b: float = 100_000.0  # CLNDAI
    buy_fee_pct: float = 0.3
    sell_fee_pct: float = 0.3

    def __post_init__(self) -> None:
        """Validate configuration."""
        assert self.reserve_a > 0, "reserve_a must be positive"
        assert self.reserve_b > 0, "reserve_b must be positive"
        assert 0 <= self.buy_fee_pct <= 100, "buy_fee_pct must be in [0, 100]"
        assert 0 <= self.sell_fee_pct <= 100, "sell_fee_pct must be in [0, 100]"


@dataclass(frozen=True)
class MarketConfig:
    """Market simulation parameters."""

    # Random seed
    seed: int | None = 42

    # Dust thresholds: random trades smaller than these are dropped
    min_buy_amount: float = 1.0
    min_sell_amount: float = 0.1

    # A player needs more than this much DAI to consider buying
    min_cash_to_buy: float = 10.0

    # Random trades never use more than this fraction of a holding
    max_trade_fraction: float = 0.9

    # Populate the roster with the default ten players on construction/reset
    seed_default_roster: bool = True

    def __post_init__(self) -> None:
        """Validate configuration."""
        assert self.min_buy_amount >= 0, "min_buy_amount must be non-negative"
        assert self.min_sell_amount >= 0, "min_sell_amount must be non-negative"
        assert self.min_cash_to_buy >= 0, "min_cash_to_buy must be non-negative"
        assert 0 < self.max_trade_fraction <= 1, "max_trade_fraction must be in (0, 1]"


# name, starting DAI, strategy
DEFAULT_ROSTER: tuple[tuple[str, float, Strategy], ...] = (
    ("Whale_Alex", 50_000, Strategy.WHALE),
    ("Whale_Boris", 30_000, Strategy.WHALE),
    ("Active_Vika", 5_000, Strategy.ACTIVE),
    ("Active_Gena", 8_000, Strategy.ACTIVE),
    ("Moderate_Dasha", 3_000, Strategy.MODERATE),
    ("Moderate_Evgen", 4_000, Strategy.MODERATE),
    ("Moderate_Zhenya", 2_500, Strategy.MODERATE),
    ("Passive_Zina", 10_000, Strategy.PASSIVE),
    ("Passive_Igor", 15_000, Strategy.PASSIVE),
    ("Newbie_Katya", 1_000, Strategy.MODERATE),
)


def is_valid_amount(amount: object) -> bool:
    """True for finite real numbers strictly greater than zero."""
    if isinstance(amount, bool) or not isinstance(amount, Real):
        return False
    return math.isfinite(amount) and amount > 0


# =============================================================================
# Players and Records
# =============================================================================


@dataclass
class MarketParticipant:
    """
    A player trading against the pool.

    Balances change only through trade execution. ``initial_balance_a`` is
    the fixed baseline every P/L figure is measured against.
    """

    participant_id: int
    name: str
    balance_a: float
    strategy: Strategy = Strategy.MODERATE
    balance_b: float = 0.0

    initial_balance_a: float = field(init=False)
    total_spent: float = field(default=0.0, init=False)
    total_received: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        self.initial_balance_a = self.balance_a

    @property
    def trade_chance(self) -> float:
        return self.strategy.params.trade_chance

    @property
    def trade_size(self) -> float:
        return self.strategy.params.trade_size


@dataclass(frozen=True)
class TradeQuote:
    """
    Result of pricing a trade against a given pool state.

    ``effective_price`` is always quoted in DAI per CLNDAI.
    """

    kind: TradeKind
    amount_in: float
    amount_out: float
    fee: float
    effective_price: float
    projected_reserve_a: float
    projected_reserve_b: float


@dataclass(frozen=True)
class TradeRecord:
    """Immutable log entry for an executed trade."""

    day: int
    participant_name: str
    kind: TradeKind
    amount_in: float
    amount_out: float
    effective_price: float
    fee: float
    reserve_a_after: float
    reserve_b_after: float


# =============================================================================
# Pool Engine
# =============================================================================


class PoolEngine:
    """
    Constant-product pool holding DAI (A) and CLNDAI (B).

    ``k`` is fixed at reset. Every trade lands the reserves back on the same
    curve, so fees leave the pool and are only tracked in ``total_fees``.
    """

    def __init__(self, config: PoolConfig | None = None) -> None:
        self.config = config or PoolConfig()

        self.buy_fee_pct: float = self.config.buy_fee_pct
        self.sell_fee_pct: float = self.config.sell_fee_pct

        # Trade history and counters
        self.trades: list[TradeRecord] = []
        self.total_fees: float = 0.0
        self.total_volume: float = 0.0

        self.last_rejection: Rejection | None = None

        self.reserve_a: float = self.config.reserve_a
        self.reserve_b: float = self.config.reserve_b
        self.k: float = self.reserve_a * self.reserve_b
        self.initial_reserve_a: float = self.reserve_a
        self.initial_reserve_b: float = self.reserve_b

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def current_price(self) -> float:
        """Spot price in DAI per CLNDAI."""
        if self.reserve_b <= 0:
            return 0.0
        return self.reserve_a / self.reserve_b

    def reset_pool(self, reserve_a: float, reserve_b: float) -> bool:
        """Reseed reserves and recompute k. History is kept."""
        self.last_rejection = None
        if not (is_valid_amount(reserve_a) and is_valid_amount(reserve_b)):
            self._reject(Rejection.INVALID_AMOUNT, "reset_pool(%r, %r)", reserve_a, reserve_b)
            return False

        self.reserve_a = float(reserve_a)
        self.reserve_b = float(reserve_b)
        self.k = self.reserve_a * self.reserve_b
        self.initial_reserve_a = self.reserve_a
        self.initial_reserve_b = self.reserve_b
        logger.info("Pool reset: %.2f DAI / %.2f CLNDAI (k=%.0f)", self.reserve_a, self.reserve_b, self.k)
        return True

    def clear_history(self) -> None:
        """Drop the trade log and cumulative counters."""
        self.trades = []
        self.total_fees = 0.0
        self.total_volume = 0.0

    def set_fees(self, buy_fee_pct: float, sell_fee_pct: float) -> bool:
        """Change the fee schedule. Fees are percentages in [0, 100]."""
        self.last_rejection = None
        for value in (buy_fee_pct, sell_fee_pct):
            if isinstance(value, bool) or not isinstance(value, Real) or not 0 <= value <= 100:
                self._reject(Rejection.INVALID_AMOUNT, "set_fees(%r, %r)", buy_fee_pct, sell_fee_pct)
                return False
        self.buy_fee_pct = float(buy_fee_pct)
        self.sell_fee_pct = float(sell_fee_pct)
        return True

    # -------------------------------------------------------------------------
    # Quotes (pure)
    # -------------------------------------------------------------------------

    def quote_buy(self, amount_in: float) -> TradeQuote | None:
        """
        Price a DAI -> CLNDAI trade without touching state.

        The fee is taken from the input; the net input moves along the curve:
            new_a = a + (amount_in - fee)
            new_b = k / new_a
            out   = b - new_b
        """
        if not is_valid_amount(amount_in):
            return None
        if self.reserve_a <= 0 or self.reserve_b <= 0:
            return None

        fee = amount_in * (self.buy_fee_pct / 100)
        net_in = amount_in - fee

        new_reserve_a = self.reserve_a + net_in
        new_reserve_b = self.k / new_reserve_a
        amount_out = self.reserve_b - new_reserve_b

        effective_price = amount_in / amount_out if amount_out > 0 else math.inf

        return TradeQuote(
            kind=TradeKind.BUY,
            amount_in=amount_in,
            amount_out=amount_out,
            fee=fee,
            effective_price=effective_price,
            projected_reserve_a=new_reserve_a,
            projected_reserve_b=new_reserve_b,
        )

    def quote_sell(self, amount_in: float) -> TradeQuote | None:
        """
        Price a CLNDAI -> DAI trade against the live reserves and k.

        The gross output comes off the curve first; the fee is then taken
        from the output side.
        """
        if self.reserve_a <= 0 or self.reserve_b <= 0:
            return None
        return self._quote_sell(amount_in, self.reserve_a, self.reserve_b, self.k)

    def quote_sell_against(
        self,
        amount_in: float,
        reserve_a: float,
        reserve_b: float,
    ) -> TradeQuote | None:
        """
        Price a sell against caller-supplied reserves.

        k is taken from the supplied reserves, which lets a caller walk a
        simulated copy of the pool forward one sale at a time.
        """
        if reserve_a <= 0 or reserve_b <= 0:
            return None
        return self._quote_sell(amount_in, reserve_a, reserve_b, reserve_a * reserve_b)

    def _quote_sell(
        self,
        amount_in: float,
        reserve_a: float,
        reserve_b: float,
        k: float,
    ) -> TradeQuote | None:
        if not is_valid_amount(amount_in):
            return None

        new_reserve_b = reserve_b + amount_in
        new_reserve_a = k / new_reserve_b
        gross_out = reserve_a - new_reserve_a

        fee = gross_out * (self.sell_fee_pct / 100)
        amount_out = max(0.0, gross_out - fee)

        return TradeQuote(
            kind=TradeKind.SELL,
            amount_in=amount_in,
            amount_out=amount_out,
            fee=fee,
            effective_price=amount_out / amount_in,
            projected_reserve_a=new_reserve_a,
            projected_reserve_b=new_reserve_b,
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute_buy(
        self,
        participant: MarketParticipant,
        amount_in: float,
        day: int = 0,
    ) -> TradeQuote | None:
        """Spend ``amount_in`` DAI of the participant's balance on CLNDAI."""
        self.last_rejection = None
        if not is_valid_amount(amount_in):
            return self._reject(Rejection.INVALID_AMOUNT, "buy %r by %s", amount_in, participant.name)
        if participant.balance_a < amount_in:
            return self._reject(
                Rejection.INSUFFICIENT_BALANCE,
                "buy %.4f by %s (has %.4f DAI)", amount_in, participant.name, participant.balance_a,
            )

        quote = self.quote_buy(amount_in)
        if not self._is_committable(quote):
            return self._reject(Rejection.DEGENERATE_STATE, "buy %.4f by %s", amount_in, participant.name)

        participant.balance_a -= amount_in
        participant.balance_b += quote.amount_out
        participant.total_spent += amount_in

        self.total_volume += amount_in
        self._commit(quote, participant, day)
        return quote

    def execute_sell(
        self,
        participant: MarketParticipant,
        amount_in: float,
        day: int = 0,
    ) -> TradeQuote | None:
        """Sell ``amount_in`` CLNDAI of the participant's holding for DAI."""
        self.last_rejection = None
        if not is_valid_amount(amount_in):
            return self._reject(Rejection.INVALID_AMOUNT, "sell %r by %s", amount_in, participant.name)
        if participant.balance_b < amount_in:
            return self._reject(
                Rejection.INSUFFICIENT_BALANCE,
                "sell %.4f by %s (has %.4f CLNDAI)", amount_in, participant.name, participant.balance_b,
            )

        quote = self.quote_sell(amount_in)
        if not self._is_committable(quote):
            return self._reject(Rejection.DEGENERATE_STATE, "sell %.4f by %s", amount_in, participant.name)

        participant.balance_b -= amount_in
        participant.balance_a += quote.amount_out
        participant.total_received += quote.amount_out

        # Sell volume is counted in DAI paid out
        self.total_volume += quote.amount_out
        self._commit(quote, participant, day)
        return quote

    @staticmethod
    def _is_committable(quote: TradeQuote | None) -> bool:
        return (
            quote is not None
            and quote.amount_out > 0
            and quote.projected_reserve_a > 0
            and quote.projected_reserve_b > 0
        )

    def _commit(self, quote: TradeQuote, participant: MarketParticipant, day: int) -> None:
        self.reserve_a = quote.projected_reserve_a
        self.reserve_b = quote.projected_reserve_b
        self.total_fees += quote.fee

        self.trades.append(TradeRecord(
            day=day,
            participant_name=participant.name,
            kind=quote.kind,
            amount_in=quote.amount_in,
            amount_out=quote.amount_out,
            effective_price=quote.effective_price,
            fee=quote.fee,
            reserve_a_after=self.reserve_a,
            reserve_b_after=self.reserve_b,
        ))
        logger.debug(
            "Day %d: %s %s %.4f -> %.4f (fee %.4f, price now %.6f)",
            day, participant.name, quote.kind.value, quote.amount_in,
            quote.amount_out, quote.fee, self.current_price(),
        )

    def _reject(self, reason: Rejection, msg: str, *args: object) -> None:
        self.last_rejection = reason
        logger.debug("Rejected (%s): " + msg, reason.value, *args)
        return None


# =============================================================================
# Settlement
# =============================================================================


@dataclass(frozen=True)
class SettlementResult:
    """Outcome for one participant of a simulated liquidation."""

    participant_id: int
    name: str
    amount_sold: float
    amount_received: float
    total_value: float  # DAI balance + DAI received from the sale
    pl: float           # total_value - initial DAI
    position: int | None = None  # Place in the sell cascade (None if nothing to sell)


@dataclass(frozen=True)
class PoolStats:
    """Aggregate drift and realised P/L, reduced from a joint settlement."""

    dai_change: float
    clndai_change: float
    total_initial_dai: float
    total_final_dai: float
    real_total_pl: float


class SettlementValuator:
    """
    Values participants' CLNDAI holdings by actually selling them.

    ``valuate_all`` answers "what if everyone exits now": holders sell one
    after another against a private copy of the reserves, each sale moving
    the price for the next. ``valuate_alone`` prices a single holder against
    the untouched pool. The gap between the two is the crowding cost.
    """

    def __init__(self, pool: PoolEngine) -> None:
        self.pool = pool

    @staticmethod
    def settlement_order(participants: Iterable[MarketParticipant]) -> list[MarketParticipant]:
        """Holders by descending CLNDAI; sort is stable so ties keep roster order."""
        holders = [p for p in participants if p.balance_b > 0]
        return sorted(holders, key=lambda p: p.balance_b, reverse=True)

    def valuate_all(self, participants: Sequence[MarketParticipant]) -> list[SettlementResult]:
        """
        Sequentially settle every holder against one mutating simulated pool.

        Holders come first in cascade order, followed by participants with
        nothing to sell. The live pool is never modified.
        """
        reserve_a = self.pool.reserve_a
        reserve_b = self.pool.reserve_b

        results: list[SettlementResult] = []

        for position, participant in enumerate(self.settlement_order(participants)):
            quote = self.pool.quote_sell_against(participant.balance_b, reserve_a, reserve_b)
            received = quote.amount_out if quote is not None else 0.0
            total_value = participant.balance_a + received

            results.append(SettlementResult(
                participant_id=participant.participant_id,
                name=participant.name,
                amount_sold=participant.balance_b,
                amount_received=received,
                total_value=total_value,
                pl=total_value - participant.initial_balance_a,
                position=position,
            ))

            if quote is not None:
                reserve_a = quote.projected_reserve_a
                reserve_b = quote.projected_reserve_b

        for participant in participants:
            if participant.balance_b > 0:
                continue
            results.append(SettlementResult(
                participant_id=participant.participant_id,
                name=participant.name,
                amount_sold=0.0,
                amount_received=0.0,
                total_value=participant.balance_a,
                pl=participant.balance_a - participant.initial_balance_a,
            ))

        return results

    def valuate_alone(self, participant: MarketParticipant) -> float:
        """DAI received if this participant were the only seller."""
        if participant.balance_b <= 0:
            return 0.0
        quote = self.pool.quote_sell_against(
            participant.balance_b, self.pool.reserve_a, self.pool.reserve_b
        )
        return quote.amount_out if quote is not None else 0.0

    def individual_pl(self, participant: MarketParticipant) -> float:
        """P/L if the participant sold everything alone."""
        return participant.balance_a + self.valuate_alone(participant) - participant.initial_balance_a

    def spot_value(self, participant: MarketParticipant) -> float:
        """Theoretical value at spot price, ignoring slippage."""
        return participant.balance_a + participant.balance_b * self.pool.current_price()

    def slippage_pct(self, participant: MarketParticipant) -> float:
        """Percent of spot value lost to slippage when selling alone."""
        theoretical = participant.balance_b * self.pool.current_price()
        if theoretical <= 0:
            return 0.0
        return (theoretical - self.valuate_alone(participant)) / theoretical * 100

    def pool_stats(self, participants: Sequence[MarketParticipant]) -> PoolStats:
        """Reserve drift since reset and the realised total P/L of a joint exit."""
        results = self.valuate_all(participants)

        total_initial = sum(p.initial_balance_a for p in participants)
        total_final = sum(r.total_value for r in results)

        return PoolStats(
            dai_change=self.pool.reserve_a - self.pool.initial_reserve_a,
            clndai_change=self.pool.reserve_b - self.pool.initial_reserve_b,
            total_initial_dai=total_initial,
            total_final_dai=total_final,
            real_total_pl=total_final - total_initial,
        )


# =============================================================================
# Market Simulator
# =============================================================================


class RandomSource(Protocol):
    """Subset of ``numpy.random.Generator`` the simulator draws from."""

    def random(self) -> float: ...

    def permutation(self, x: int) -> Sequence[int]: ...


@dataclass(frozen=True)
class ParticipantSnapshot:
    """One player's position at the end of a day."""

    participant_id: int
    name: str
    balance_a: float
    balance_b: float
    total_value: float  # Spot-price valuation
    pl: float           # Joint-settlement P/L


@dataclass(frozen=True)
class DailySnapshot:
    """End-of-day state of the whole roster."""

    day: int
    price: float
    participants: tuple[ParticipantSnapshot, ...]

    def pl_for(self, participant_id: int) -> float | None:
        for entry in self.participants:
            if entry.participant_id == participant_id:
                return entry.pl
        return None


class MarketSimulator:
    """
    Main simulation engine for the CLNDAI market.

    Owns the roster and the pool, advances days, and snapshots every
    player's joint-settlement P/L at the end of each day.
    """

    def __init__(
        self,
        config: MarketConfig | None = None,
        pool: PoolEngine | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        self.config = config or MarketConfig()

        # Initialize RNG
        self.rng: RandomSource = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.pool = pool or PoolEngine()
        self.valuator = SettlementValuator(self.pool)

        # Roster
        self.participants: list[MarketParticipant] = []
        self._ids = itertools.count(1)

        # Simulation state
        self.current_day: int = 0
        self.daily_snapshots: list[DailySnapshot] = []
        self.last_rejection: Rejection | None = None

        if self.config.seed_default_roster:
            self.add_default_participants()

    @property
    def trades(self) -> list[TradeRecord]:
        return self.pool.trades

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def add_participant(
        self,
        name: str,
        balance_a: float,
        strategy: Strategy | str = Strategy.MODERATE,
    ) -> MarketParticipant | None:
        """Add a player holding ``balance_a`` DAI and no CLNDAI."""
        self.last_rejection = None
        if not is_valid_amount(balance_a):
            self.last_rejection = Rejection.INVALID_AMOUNT
            logger.debug("Rejected participant %r with balance %r", name, balance_a)
            return None

        participant_id = next(self._ids)
        participant = MarketParticipant(
            participant_id=participant_id,
            name=name.strip() if name and name.strip() else f"Player {participant_id}",
            balance_a=float(balance_a),
            strategy=Strategy.from_name(strategy),
        )
        self.participants.append(participant)
        logger.info("Added %s (%s, %.2f DAI)", participant.name, participant.strategy.value, balance_a)
        return participant

    def add_default_participants(self) -> None:
        """Seed the roster with the ten default players."""
        for name, dai, strategy in DEFAULT_ROSTER:
            self.add_participant(name, dai, strategy)

    def remove_participant(self, participant_id: int) -> bool:
        """Drop a player from the roster. Pool state is untouched."""
        participant = self.get_participant(participant_id)
        if participant is None:
            return False
        self.participants.remove(participant)
        logger.info("Removed %s", participant.name)
        return True

    def get_participant(self, participant_id: int) -> MarketParticipant | None:
        self.last_rejection = None
        for participant in self.participants:
            if participant.participant_id == participant_id:
                return participant
        self.last_rejection = Rejection.UNKNOWN_PARTICIPANT
        logger.debug("Unknown participant %r", participant_id)
        return None

    # -------------------------------------------------------------------------
    # Manual Trading
    # -------------------------------------------------------------------------

    def execute_buy(self, participant_id: int, amount: float) -> TradeQuote | None:
        participant = self.get_participant(participant_id)
        if participant is None:
            return None
        return self._relay(self.pool.execute_buy(participant, amount, day=self.current_day))

    def execute_sell(self, participant_id: int, amount: float) -> TradeQuote | None:
        participant = self.get_participant(participant_id)
        if participant is None:
            return None
        return self._relay(self.pool.execute_sell(participant, amount, day=self.current_day))

    def sell_all(self, participant_id: int) -> TradeQuote | None:
        """Sell the participant's entire CLNDAI holding."""
        participant = self.get_participant(participant_id)
        if participant is None:
            return None
        if participant.balance_b <= 0:
            self.last_rejection = Rejection.INSUFFICIENT_BALANCE
            return None
        return self.execute_sell(participant_id, participant.balance_b)

    def _relay(self, quote: TradeQuote | None) -> TradeQuote | None:
        self.last_rejection = self.pool.last_rejection
        return quote

    # -------------------------------------------------------------------------
    # Simulation Methods
    # -------------------------------------------------------------------------

    def step_days(self, days: int = 1) -> list[DailySnapshot]:
        """
        Run ``days`` sequential days.

        Returns:
            The snapshots recorded, one per day
        """
        if isinstance(days, bool) or not isinstance(days, Integral) or days < 0:
            self.last_rejection = Rejection.INVALID_AMOUNT
            logger.debug("Rejected step_days(%r)", days)
            return []

        snapshots = []
        for _ in range(days):
            day = self.current_day + 1
            self.simulate_trading(day)
            self.current_day = day
            snapshots.append(self.record_snapshot())
        return snapshots

    def simulate_trading(self, day: int) -> None:
        """
        One day of random trading.

        Players act in a fresh random order each day; whoever goes first
        trades at the better price.
        """
        roster = list(self.participants)
        for index in self.rng.permutation(len(roster)):
            participant = roster[int(index)]

            if self.rng.random() > participant.trade_chance:
                continue

            has_dai = participant.balance_a > self.config.min_cash_to_buy
            has_clndai = participant.balance_b > 0

            if has_dai and has_clndai:
                if self.rng.random() > 0.5:
                    self._random_buy(participant, day)
                else:
                    self._random_sell(participant, day)
            elif has_dai:
                self._random_buy(participant, day)
            elif has_clndai:
                self._random_sell(participant, day)

    def _random_buy(self, participant: MarketParticipant, day: int) -> TradeQuote | None:
        amount = participant.balance_a * participant.trade_size * (0.5 + self.rng.random())
        if amount < self.config.min_buy_amount:
            return None
        amount = min(amount, participant.balance_a * self.config.max_trade_fraction)
        return self.pool.execute_buy(participant, amount, day=day)

    def _random_sell(self, participant: MarketParticipant, day: int) -> TradeQuote | None:
        amount = participant.balance_b * participant.trade_size * (0.5 + self.rng.random())
        if amount < self.config.min_sell_amount:
            return None
        amount = min(amount, participant.balance_b * self.config.max_trade_fraction)
        return self.pool.execute_sell(participant, amount, day=day)

    def record_snapshot(self) -> DailySnapshot:
        """Append a snapshot whose P/L comes from the joint settlement."""
        price = self.pool.current_price()
        settled = {r.participant_id: r for r in self.valuator.valuate_all(self.participants)}

        snapshot = DailySnapshot(
            day=self.current_day,
            price=price,
            participants=tuple(
                ParticipantSnapshot(
                    participant_id=p.participant_id,
                    name=p.name,
                    balance_a=p.balance_a,
                    balance_b=p.balance_b,
                    total_value=p.balance_a + p.balance_b * price,
                    pl=settled[p.participant_id].pl,
                )
                for p in self.participants
            ),
        )
        self.daily_snapshots.append(snapshot)
        return snapshot

    # -------------------------------------------------------------------------
    # Reset
    # -------------------------------------------------------------------------

    def reset_pool(self, reserve_a: float, reserve_b: float) -> bool:
        """Reseed the pool; players and history are kept."""
        ok = self.pool.reset_pool(reserve_a, reserve_b)
        self.last_rejection = self.pool.last_rejection
        return ok

    def reset_all(
        self,
        reserve_a: float | None = None,
        reserve_b: float | None = None,
    ) -> bool:
        """Reseed the pool and start over with a fresh roster and history."""
        ok = self.reset_pool(
            reserve_a if reserve_a is not None else self.pool.config.reserve_a,
            reserve_b if reserve_b is not None else self.pool.config.reserve_b,
        )
        if not ok:
            return False

        self.pool.clear_history()
        self.participants = []
        self._ids = itertools.count(1)
        self.current_day = 0
        self.daily_snapshots = []

        if self.config.seed_default_roster:
            self.add_default_participants()
        logger.info("Simulation reset with %d players", len(self.participants))
        return True

    # -------------------------------------------------------------------------
    # Analysis Methods
    # -------------------------------------------------------------------------

    def valuate_all(self) -> list[SettlementResult]:
        return self.valuator.valuate_all(self.participants)

    def valuate_alone(self, participant: MarketParticipant) -> float:
        return self.valuator.valuate_alone(participant)

    def pool_stats(self) -> PoolStats:
        return self.valuator.pool_stats(self.participants)

    def get_summary_statistics(self) -> dict:
        """Get summary statistics from the simulation."""
        stats = self.pool_stats()
        return {
            "day": self.current_day,
            "num_players": len(self.participants),
            "price": self.pool.current_price(),
            "reserve_dai": self.pool.reserve_a,
            "reserve_clndai": self.pool.reserve_b,
            "k": self.pool.k,
            "total_trades": len(self.trades),
            "total_volume": self.pool.total_volume,
            "total_fees": self.pool.total_fees,
            "dai_change": stats.dai_change,
            "clndai_change": stats.clndai_change,
            "real_total_pl": stats.real_total_pl,
        }


# =============================================================================
# Main Entry Point
# =============================================================================


def run_default_simulation(days: int = 30, seed: int | None = 42) -> MarketSimulator:
    """Run the default ten-player market for ``days`` days."""
    simulator = MarketSimulator(config=MarketConfig(seed=seed))
    logger.info("Running market simulation for %d days...", days)
    simulator.step_days(days)
    return simulator


def print_market_report(simulator: MarketSimulator) -> None:
    """Print the pool summary and the joint-settlement table."""
    stats = simulator.get_summary_statistics()

    print("\n" + "=" * 70)
    print("CLNDAI AMM MARKET SIMULATOR - SUMMARY REPORT")
    print("=" * 70)

    print(f"\nDays Simulated: {stats['day']}")
    print(f"Price:          {stats['price']:.6f} DAI/CLNDAI")
    print(f"Pool DAI:       {stats['reserve_dai']:,.2f}")
    print(f"Pool CLNDAI:    {stats['reserve_clndai']:,.2f}")

    print("\n--- Trading Activity ---")
    print(f"Total Trades:   {stats['total_trades']}")
    print(f"Total Volume:   {stats['total_volume']:,.2f} DAI")
    print(f"Total Fees:     {stats['total_fees']:,.2f} DAI")

    print("\n--- Joint Settlement ---")
    header = f"{'#':>3} | {'Player':<16} | {'CLNDAI Sold':>14} | {'DAI Received':>14} | {'P/L':>12}"
    print(header)
    print("-" * 70)
    for result in simulator.valuate_all():
        position = "-" if result.position is None else str(result.position + 1)
        print(
            f"{position:>3} | {result.name:<16} | {result.amount_sold:>14,.2f} | "
            f"{result.amount_received:>14,.2f} | {result.pl:>+12,.2f}"
        )
    print(f"\nRealised Total P/L: {stats['real_total_pl']:+,.2f} DAI")
    print("=" * 70)


def print_scenario_comparison(results: dict) -> None:
    """Print every exit of every stake scenario."""
    print(f"\n{'=' * 90}")
    print("STAKE SCENARIO COMPARISON")
    print(f"{'=' * 90}")

    header = f"{'Scenario':<18} | {'Staker':<10} | {'Deposit':>10} | {'Rating':>8} | {'Withdrawal':>12} | {'P/L':>10}"
    print(header)
    print("-" * 90)
    for name, result in results.items():
        for record in result.exits:
            print(
                f"{name:<18} | {record.name:<10} | {record.deposit:>10,.2f} | "
                f"{record.rating_at_exit:>8.4f} | {record.withdrawal_amount:>12,.2f} | "
                f"{record.profit_loss_at_exit:>+10,.2f}"
            )

    print("=" * 90)


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    from stake_simulator import ScenarioRunner

    parser = argparse.ArgumentParser(description="CLNDAI AMM and stake simulator")
    parser.add_argument("--days", type=int, default=30, help="Days to simulate")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--verbose", action="store_true", help="Log individual trades")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    simulator = run_default_simulation(days=args.days, seed=args.seed)
    print_market_report(simulator)

    logger.info("Running stake scenarios...")
    print_scenario_comparison(ScenarioRunner().run_all())


if __name__ == "__main__":
    main()
