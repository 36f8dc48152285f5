"""
CLNDAI Stake Rating Simulator
=============================

Models the rating-based withdrawal pool: players deposit DAI, farm CLNDAI in
the game, and on exit withdraw a share of the pool weighted by a rating that
grows with their farmed amount.

    fee        = dai_in * fee_rate
    D_i        = dai_in - fee
    R_i        = 1 + farmed_i / D_i
    W_i        = pool * (D_i * R_i) / sum_j (D_j * R_j)

where ``pool`` is the sum of active deposits and the sum runs over active
players only.
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass, field
from numbers import Real

from clndai_simulator import Rejection, is_valid_amount


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class StakeConfig:
    """Stake protocol parameters."""

    fee_rate: float = 0.05  # Entry fee taken from every deposit

    def __post_init__(self) -> None:
        """Validate configuration."""
        assert 0 <= self.fee_rate < 1, "fee_rate must be in [0, 1)"


# =============================================================================
# Participants
# =============================================================================


@dataclass
class StakeParticipant:
    """An active staker. Only ``farmed_units`` changes while active."""

    participant_id: int
    name: str
    dai_deposited: float  # Gross input
    fee: float
    deposit: float        # Net stake D_i
    farm_rate: float      # CLNDAI farmed per period
    entry_period: int
    farmed_units: float = 0.0

    @property
    def rating(self) -> float:
        """R_i = 1 + farmed / deposit, or 1 when there is no deposit."""
        if self.deposit <= 0:
            return 1.0
        return 1 + self.farmed_units / self.deposit

    @property
    def effective_rating(self) -> float:
        """D_i * R_i."""
        return self.deposit * self.rating


@dataclass(frozen=True)
class ExitRecord:
    """Final, immutable state of a staker who left the pool."""

    participant_id: int
    name: str
    dai_deposited: float
    fee: float
    deposit: float
    farm_rate: float
    entry_period: int
    exit_period: int
    rating_at_exit: float
    withdrawal_amount: float
    freed_farmed_units: float
    profit_loss_at_exit: float  # withdrawal - dai_deposited

    @property
    def periods_staked(self) -> int:
        return self.exit_period - self.entry_period


# =============================================================================
# Stake Engine
# =============================================================================


class StakeEngine:
    """
    Rating-weighted withdrawal pool.

    A participant lives in exactly one of ``active`` or ``exited``. Joins,
    exits and manual farming are explicit calls; ``step_period`` only accrues
    each active participant's farm rate.
    """

    def __init__(self, config: StakeConfig | None = None) -> None:
        self.config = config or StakeConfig()
        self.reset()

    def reset(self) -> None:
        """Clear all participants and counters."""
        self.active: dict[int, StakeParticipant] = {}
        self.exited: dict[int, ExitRecord] = {}
        self._ids = itertools.count(1)

        self.current_period: int = 0
        self.total_fees: float = 0.0
        self.total_withdrawn: float = 0.0
        self.liquid_farmed_units: float = 0.0

        # Denominator used by the most recent withdrawal-share computation
        self.last_total_effective_rating: float = 0.0

        self.last_rejection: Rejection | None = None

    # -------------------------------------------------------------------------
    # Setup Methods
    # -------------------------------------------------------------------------

    def add_participant(
        self,
        name: str,
        dai_deposit: float,
        farm_rate: float = 0.0,
    ) -> StakeParticipant | None:
        """Deposit ``dai_deposit`` DAI; the entry fee is kept by the protocol."""
        self.last_rejection = None
        if not is_valid_amount(dai_deposit) or not _is_rate(farm_rate):
            self.last_rejection = Rejection.INVALID_AMOUNT
            logger.debug("Rejected join of %r: deposit=%r farm_rate=%r", name, dai_deposit, farm_rate)
            return None

        fee = dai_deposit * self.config.fee_rate
        participant_id = next(self._ids)
        participant = StakeParticipant(
            participant_id=participant_id,
            name=name or f"Staker {participant_id}",
            dai_deposited=float(dai_deposit),
            fee=fee,
            deposit=dai_deposit - fee,
            farm_rate=float(farm_rate),
            entry_period=self.current_period,
        )

        self.active[participant_id] = participant
        self.total_fees += fee
        logger.debug(
            "Period %d: %s joined with %.2f DAI (deposit %.2f)",
            self.current_period, participant.name, dai_deposit, participant.deposit,
        )
        return participant

    def get_participant(self, participant_id: int) -> StakeParticipant | None:
        """Look up an active participant."""
        self.last_rejection = None
        participant = self.active.get(participant_id)
        if participant is None:
            self.last_rejection = Rejection.UNKNOWN_PARTICIPANT
            logger.debug("Unknown or exited participant %r", participant_id)
        return participant

    def farm(self, participant_id: int, amount: float) -> StakeParticipant | None:
        """Credit ``amount`` farmed CLNDAI to an active participant."""
        participant = self.get_participant(participant_id)
        if participant is None:
            return None
        if not is_valid_amount(amount):
            self.last_rejection = Rejection.INVALID_AMOUNT
            logger.debug("Rejected farm(%r, %r)", participant_id, amount)
            return None

        participant.farmed_units += amount
        return participant

    # -------------------------------------------------------------------------
    # Formulas
    # -------------------------------------------------------------------------

    @property
    def pool(self) -> float:
        """Sum of active deposits."""
        return sum(p.deposit for p in self.active.values())

    def total_effective_rating(self) -> float:
        """Sum of D_i * R_i over active participants, computed from scratch."""
        return sum(p.effective_rating for p in self.active.values())

    def rating(self, participant_id: int) -> float | None:
        participant = self.get_participant(participant_id)
        return participant.rating if participant is not None else None

    def effective_rating(self, participant_id: int) -> float | None:
        participant = self.get_participant(participant_id)
        return participant.effective_rating if participant is not None else None

    def withdrawal_share(self, participant_id: int) -> float | None:
        """
        What the participant would withdraw if they exited now.

        Recomputed on every call since any farming or membership change
        moves every share. Returns 0 when the rating total is zero.
        """
        participant = self.get_participant(participant_id)
        if participant is None:
            return None

        total = self.total_effective_rating()
        self.last_total_effective_rating = total
        if total <= 0:
            self.last_rejection = Rejection.DEGENERATE_STATE
            logger.debug("Rating total is %r, share of %s is 0", total, participant.name)
            return 0.0

        return self.pool * participant.effective_rating / total

    # -------------------------------------------------------------------------
    # Simulation Methods
    # -------------------------------------------------------------------------

    def exit_participant(self, participant_id: int) -> ExitRecord | None:
        """
        Withdraw a participant's share and retire them.

        The share is computed over the active set before removal. Their
        farmed units move into the liquid pool-wide counter.
        """
        participant = self.get_participant(participant_id)
        if participant is None:
            return None

        withdrawal = self.withdrawal_share(participant_id)
        # A zero rating total still allows the exit, with nothing withdrawn.
        self.last_rejection = None

        record = ExitRecord(
            participant_id=participant.participant_id,
            name=participant.name,
            dai_deposited=participant.dai_deposited,
            fee=participant.fee,
            deposit=participant.deposit,
            farm_rate=participant.farm_rate,
            entry_period=participant.entry_period,
            exit_period=self.current_period,
            rating_at_exit=participant.rating,
            withdrawal_amount=withdrawal,
            freed_farmed_units=participant.farmed_units,
            profit_loss_at_exit=withdrawal - participant.dai_deposited,
        )

        del self.active[participant_id]
        self.exited[participant_id] = record

        self.liquid_farmed_units += participant.farmed_units
        self.total_withdrawn += withdrawal

        logger.debug(
            "Period %d: %s exited with %.2f DAI (rating %.4f, P/L %+.2f)",
            self.current_period, record.name, withdrawal, record.rating_at_exit,
            record.profit_loss_at_exit,
        )
        return record

    def step_period(self) -> int:
        """Advance one period, accruing each active farm rate."""
        self.current_period += 1
        for participant in self.active.values():
            if participant.farm_rate > 0:
                participant.farmed_units += participant.farm_rate
        return self.current_period

    def step_periods(self, periods: int) -> int:
        for _ in range(periods):
            self.step_period()
        return self.current_period

    # -------------------------------------------------------------------------
    # Analysis Methods
    # -------------------------------------------------------------------------

    def get_summary_statistics(self) -> dict:
        """Get summary statistics for the current state."""
        return {
            "period": self.current_period,
            "active_participants": len(self.active),
            "exited_participants": len(self.exited),
            "pool": self.pool,
            "total_effective_rating": self.total_effective_rating(),
            "total_fees": self.total_fees,
            "total_withdrawn": self.total_withdrawn,
            "liquid_farmed_units": self.liquid_farmed_units,
            "active_farmed_units": sum(p.farmed_units for p in self.active.values()),
        }


def _is_rate(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value) and value >= 0


# =============================================================================
# Scenarios
# =============================================================================


@dataclass(frozen=True)
class Scenario:
    """
    A scripted sequence of stake actions.

    Steps are plain tuples:
        ("join", name, dai, farm_rate)
        ("step", periods)
        ("exit", name)
    """

    name: str
    description: str
    steps: tuple[tuple, ...]


@dataclass
class ScenarioResult:
    """Outcome of a played scenario."""

    name: str
    description: str
    exits: list[ExitRecord] = field(default_factory=list)
    periods: int = 0
    total_fees: float = 0.0
    total_withdrawn: float = 0.0
    liquid_farmed_units: float = 0.0

    @property
    def total_deposited(self) -> float:
        return sum(r.dai_deposited for r in self.exits)

    @property
    def total_pl(self) -> float:
        return sum(r.profit_loss_at_exit for r in self.exits)


SCENARIOS: dict[str, Scenario] = {
    scenario.name: scenario
    for scenario in (
        Scenario(
            name="solo_holder",
            description="One staker farms for a period and exits alone",
            steps=(
                ("join", "Alice", 1000, 50),
                ("step", 1),
                ("exit", "Alice"),
            ),
        ),
        Scenario(
            name="early_vs_late",
            description="Same deposit and farm rate, five periods apart",
            steps=(
                ("join", "Early", 1000, 10),
                ("step", 5),
                ("join", "Late", 1000, 10),
                ("step", 5),
                ("exit", "Early"),
                ("exit", "Late"),
            ),
        ),
        Scenario(
            name="farmer_vs_holder",
            description="Same deposit, one farms and one only holds",
            steps=(
                ("join", "Farmer", 1000, 50),
                ("join", "Holder", 1000, 0),
                ("step", 10),
                ("exit", "Farmer"),
                ("exit", "Holder"),
            ),
        ),
        Scenario(
            name="bank_run",
            description="Five mixed stakers all leave after six periods",
            steps=(
                ("join", "Whale", 20000, 20),
                ("join", "Grinder", 2000, 100),
                ("join", "Casual", 3000, 15),
                ("join", "Idle", 5000, 0),
                ("join", "Newbie", 500, 5),
                ("step", 6),
                ("exit", "Grinder"),
                ("exit", "Whale"),
                ("exit", "Casual"),
                ("exit", "Idle"),
                ("exit", "Newbie"),
            ),
        ),
    )
}


class ScenarioRunner:
    """Plays scripted scenarios against a freshly reset StakeEngine."""

    def __init__(
        self,
        engine: StakeEngine | None = None,
        scenarios: dict[str, Scenario] | None = None,
    ) -> None:
        self.engine = engine or StakeEngine()
        self.scenarios = scenarios if scenarios is not None else SCENARIOS

    def run(self, name: str) -> ScenarioResult:
        """Reset the engine and play one scenario."""
        scenario = self.scenarios.get(name)
        if scenario is None:
            raise ValueError(f"Scenario {name} not found")

        engine = self.engine
        engine.reset()
        ids: dict[str, int] = {}
        result = ScenarioResult(name=scenario.name, description=scenario.description)

        for step in scenario.steps:
            action = step[0]
            if action == "join":
                _, who, dai, farm_rate = step
                participant = engine.add_participant(who, dai, farm_rate)
                if participant is None:
                    raise ValueError(f"Scenario {name}: invalid join {step}")
                ids[who] = participant.participant_id
            elif action == "step":
                engine.step_periods(step[1])
            elif action == "exit":
                record = engine.exit_participant(ids.get(step[1], -1))
                if record is None:
                    raise ValueError(f"Scenario {name}: cannot exit {step[1]}")
                result.exits.append(record)
            else:
                raise ValueError(f"Scenario {name}: unknown action {action!r}")

        result.periods = engine.current_period
        result.total_fees = engine.total_fees
        result.total_withdrawn = engine.total_withdrawn
        result.liquid_farmed_units = engine.liquid_farmed_units
        logger.info("Scenario %s: %d exits over %d periods", name, len(result.exits), result.periods)
        return result

    def run_all(self) -> dict[str, ScenarioResult]:
        """Run every scenario for comparison."""
        return {name: self.run(name) for name in self.scenarios}
