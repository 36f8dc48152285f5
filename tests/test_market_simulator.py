import logging

import numpy as np
import pytest

from clndai_simulator import (
    DEFAULT_ROSTER,
    MarketConfig,
    MarketSimulator,
    Rejection,
    Strategy,
    TradeKind,
    main,
    run_default_simulation,
)


def scripted_market(source, **config) -> MarketSimulator:
    return MarketSimulator(config=MarketConfig(seed_default_roster=False, **config), rng=source)


class TestStrategy:
    def test_parameter_table(self) -> None:
        assert Strategy.PASSIVE.params.trade_chance == 0.10
        assert Strategy.PASSIVE.params.trade_size == 0.10
        assert Strategy.MODERATE.params.trade_chance == 0.30
        assert Strategy.MODERATE.params.trade_size == 0.25
        assert Strategy.ACTIVE.params.trade_chance == 0.60
        assert Strategy.ACTIVE.params.trade_size == 0.15
        assert Strategy.WHALE.params.trade_chance == 0.20
        assert Strategy.WHALE.params.trade_size == 0.50

    def test_from_name(self) -> None:
        assert Strategy.from_name("whale") is Strategy.WHALE
        assert Strategy.from_name(" Active ") is Strategy.ACTIVE
        assert Strategy.from_name(Strategy.PASSIVE) is Strategy.PASSIVE

    def test_unknown_name_falls_back_to_moderate(self) -> None:
        assert Strategy.from_name("degen") is Strategy.MODERATE


class TestRoster:
    def test_default_roster(self) -> None:
        sim = MarketSimulator()
        assert len(sim.participants) == len(DEFAULT_ROSTER) == 10
        assert [p.participant_id for p in sim.participants] == list(range(1, 11))
        assert sim.participants[0].strategy is Strategy.WHALE
        assert sim.participants[0].initial_balance_a == 50_000

    def test_add_participant(self, market: MarketSimulator) -> None:
        first = market.add_participant("Ann", 1_000, "active")
        second = market.add_participant("", 500)

        assert first.participant_id == 1
        assert first.strategy is Strategy.ACTIVE
        assert first.balance_b == 0
        assert first.initial_balance_a == 1_000
        assert second.participant_id == 2
        assert second.name == "Player 2"
        assert second.strategy is Strategy.MODERATE

    def test_add_participant_invalid_balance(self, market: MarketSimulator) -> None:
        assert market.add_participant("Ann", -5) is None
        assert market.last_rejection is Rejection.INVALID_AMOUNT
        assert market.participants == []

    def test_ids_are_not_reused_after_removal(self, market: MarketSimulator) -> None:
        market.add_participant("Ann", 1_000)
        assert market.remove_participant(1)
        assert market.add_participant("Bob", 1_000).participant_id == 2

    def test_remove_unknown(self, market: MarketSimulator) -> None:
        assert not market.remove_participant(99)
        assert market.last_rejection is Rejection.UNKNOWN_PARTICIPANT

    def test_roster_changes_logged_at_info(self, market: MarketSimulator, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="clndai_simulator"):
            market.add_participant("Ann", 1_000)
            market.remove_participant(1)

        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
        assert "Added Ann (moderate, 1000.00 DAI)" in messages
        assert "Removed Ann" in messages


class TestManualTrading:
    def test_buy_and_sell_all(self, market: MarketSimulator) -> None:
        ann = market.add_participant("Ann", 1_000)
        market.execute_buy(ann.participant_id, 400)
        assert ann.balance_b > 0

        quote = market.sell_all(ann.participant_id)
        assert quote.kind is TradeKind.SELL
        assert ann.balance_b == 0
        assert ann.balance_a < 1_000

    def test_sell_all_with_nothing_held(self, market: MarketSimulator) -> None:
        ann = market.add_participant("Ann", 1_000)
        assert market.sell_all(ann.participant_id) is None
        assert market.last_rejection is Rejection.INSUFFICIENT_BALANCE

    def test_unknown_participant(self, market: MarketSimulator) -> None:
        assert market.execute_buy(42, 10) is None
        assert market.last_rejection is Rejection.UNKNOWN_PARTICIPANT
        assert market.sell_all(42) is None

    def test_rejection_relayed_from_pool(self, market: MarketSimulator) -> None:
        ann = market.add_participant("Ann", 100)
        assert market.execute_buy(ann.participant_id, 101) is None
        assert market.last_rejection is Rejection.INSUFFICIENT_BALANCE
        assert market.trades == []

    def test_manual_trades_use_current_day(self, market: MarketSimulator) -> None:
        ann = market.add_participant("Ann", 1_000, "passive")
        market.current_day = 6
        market.execute_buy(ann.participant_id, 10)
        assert market.trades[-1].day == 6


class TestDailyTick:
    def test_single_buy(self, scripted_random) -> None:
        # trade draw, size draw
        sim = scripted_market(scripted_random([0.1, 0.5]))
        ann = sim.add_participant("Ann", 1_000, Strategy.MODERATE)

        sim.step_days(1)

        (trade,) = sim.trades
        assert trade.kind is TradeKind.BUY
        assert trade.amount_in == pytest.approx(250)
        assert trade.day == 1
        assert ann.balance_a == pytest.approx(750)

    def test_skip_when_draw_above_trade_chance(self, scripted_random) -> None:
        sim = scripted_market(scripted_random([0.5]))
        sim.add_participant("Zina", 1_000, Strategy.PASSIVE)

        sim.step_days(1)

        assert sim.trades == []
        assert len(sim.daily_snapshots) == 1

    def test_order_follows_permutation(self, scripted_random) -> None:
        sim = scripted_market(scripted_random([0.0, 0.5, 0.0, 0.5], order=[1, 0]))
        sim.add_participant("A", 1_000)
        sim.add_participant("B", 1_000)

        sim.step_days(1)

        assert [t.participant_name for t in sim.trades] == ["B", "A"]
        # A bought second, after B pushed the price up
        assert sim.trades[1].amount_out < sim.trades[0].amount_out

    def test_reshuffled_every_day(self, scripted_random) -> None:
        source = scripted_random([0.9] * 3)
        sim = scripted_market(source)
        sim.add_participant("Zina", 1_000, Strategy.PASSIVE)

        sim.step_days(3)

        assert source.permutation_calls == 3

    def test_choice_when_holding_both(self, scripted_random) -> None:
        source = scripted_random([0.0, 0.9, 0.5, 0.0, 0.2, 0.5])
        sim = scripted_market(source)
        ann = sim.add_participant("Ann", 1_000)
        sim.execute_buy(ann.participant_id, 100)

        sim.step_days(1)
        assert sim.trades[-1].kind is TradeKind.BUY

        held = ann.balance_b
        sim.step_days(1)
        assert sim.trades[-1].kind is TradeKind.SELL
        assert sim.trades[-1].amount_in == pytest.approx(held * 0.25)

    def test_forced_sell_without_cash(self, scripted_random) -> None:
        sim = scripted_market(scripted_random([0.0, 0.5]))
        broke = sim.add_participant("Broke", 5)
        broke.balance_b = 1_000

        sim.step_days(1)

        (trade,) = sim.trades
        assert trade.kind is TradeKind.SELL
        assert trade.amount_in == pytest.approx(250)

    def test_no_assets_means_no_trade(self, scripted_random) -> None:
        sim = scripted_market(scripted_random([0.0]))
        sim.add_participant("Poor", 5)

        sim.step_days(1)

        assert sim.trades == []

    def test_dust_buy_is_dropped(self, scripted_random) -> None:
        # 12 * 0.1 * 0.5 = 0.6 DAI, under the 1 DAI minimum
        sim = scripted_market(scripted_random([0.0, 0.0]))
        sim.add_participant("Zina", 12, Strategy.PASSIVE)

        sim.step_days(1)

        assert sim.trades == []

    def test_trade_capped_at_max_fraction(self, scripted_random) -> None:
        sim = scripted_market(scripted_random([0.0, 0.99]), max_trade_fraction=0.5)
        sim.add_participant("Alex", 1_000, Strategy.WHALE)

        sim.step_days(1)

        assert sim.trades[0].amount_in == pytest.approx(500)

    def test_invalid_day_count(self, market: MarketSimulator) -> None:
        assert market.step_days(-1) == []
        assert market.last_rejection is Rejection.INVALID_AMOUNT
        assert market.current_day == 0

    def test_numpy_integer_day_count(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=1))

        snapshots = sim.step_days(np.int64(3))

        assert len(snapshots) == 3
        assert sim.current_day == 3

    @pytest.mark.parametrize("days", [True, 1.5, "2"])
    def test_non_integer_day_count(self, market: MarketSimulator, days) -> None:
        assert market.step_days(days) == []
        assert market.last_rejection is Rejection.INVALID_AMOUNT


class TestSnapshots:
    def test_one_snapshot_per_day(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=3))
        snapshots = sim.step_days(4)

        assert [s.day for s in snapshots] == [1, 2, 3, 4]
        assert sim.daily_snapshots == snapshots
        assert sim.current_day == 4

    def test_pl_comes_from_joint_settlement(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=11))
        sim.step_days(10)

        snapshot = sim.daily_snapshots[-1]
        joint = {r.participant_id: r.pl for r in sim.valuate_all()}

        assert snapshot.price == sim.pool.current_price()
        for entry in snapshot.participants:
            assert entry.pl == pytest.approx(joint[entry.participant_id])
            assert entry.total_value == pytest.approx(entry.balance_a + entry.balance_b * snapshot.price)
        assert snapshot.pl_for(1) == pytest.approx(joint[1])
        assert snapshot.pl_for(999) is None

    def test_same_seed_replays_identically(self) -> None:
        first = MarketSimulator(config=MarketConfig(seed=123))
        second = MarketSimulator(config=MarketConfig(seed=123))
        first.step_days(20)
        second.step_days(20)

        assert first.trades == second.trades
        assert first.daily_snapshots == second.daily_snapshots


class TestReset:
    def test_reset_pool_keeps_players(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=5))
        sim.step_days(5)
        trades = len(sim.trades)

        assert sim.reset_pool(20_000, 100_000)
        assert sim.pool.current_price() == pytest.approx(0.2)
        assert len(sim.participants) == 10
        assert len(sim.trades) == trades

    def test_reset_all(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=5))
        sim.add_participant("Extra", 100)
        sim.step_days(5)

        assert sim.reset_all(5_000, 50_000)

        assert sim.current_day == 0
        assert sim.trades == []
        assert sim.daily_snapshots == []
        assert sim.pool.total_fees == 0
        assert sim.pool.k == 5_000 * 50_000
        assert [p.participant_id for p in sim.participants] == list(range(1, 11))
        assert all(p.balance_b == 0 for p in sim.participants)

    def test_reset_all_defaults_to_configured_pool(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=5))
        sim.step_days(2)
        sim.reset_all()
        assert sim.pool.reserve_a == 10_000
        assert sim.pool.reserve_b == 100_000

    def test_invalid_reset_all_changes_nothing(self) -> None:
        sim = MarketSimulator(config=MarketConfig(seed=5))
        sim.step_days(2)
        assert not sim.reset_all(-1, 10)
        assert sim.current_day == 2


class TestSummary:
    def test_summary_statistics(self) -> None:
        sim = run_default_simulation(days=3, seed=9)
        stats = sim.get_summary_statistics()

        assert stats["day"] == 3
        assert stats["num_players"] == 10
        assert stats["total_trades"] == len(sim.trades)
        assert stats["real_total_pl"] == pytest.approx(sim.pool_stats().real_total_pl)

    def test_main_prints_reports(self, capsys) -> None:
        main(["--days", "2", "--seed", "1"])

        out = capsys.readouterr().out
        assert "CLNDAI AMM MARKET SIMULATOR - SUMMARY REPORT" in out
        assert "Whale_Alex" in out
        assert "STAKE SCENARIO COMPARISON" in out
        assert "bank_run" in out
