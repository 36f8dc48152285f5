"""
CLNDAI Simulator - Tabular Views
================================

pandas DataFrames built from engine state, for whatever front end embeds
the simulators (notebook, dashboard, spreadsheet export).
"""

from __future__ import annotations

import pandas as pd

from clndai_simulator import MarketSimulator
from stake_simulator import ScenarioResult, StakeEngine


ROSTER_COLUMNS = [
    "ID", "Name", "Strategy", "DAI", "CLNDAI", "Initial DAI",
    "Total Spent", "Total Received", "Spot Value", "Slippage %",
]

TRADE_COLUMNS = [
    "Day", "Player", "Type", "Amount In", "Amount Out", "Price", "Fee",
    "Pool DAI", "Pool CLNDAI",
]

SNAPSHOT_COLUMNS = ["Day", "Price", "ID", "Name", "DAI", "CLNDAI", "Total Value", "P/L"]

SETTLEMENT_COLUMNS = [
    "ID", "Name", "Position", "CLNDAI Sold", "DAI Received", "Total DAI",
    "P/L", "Alone P/L", "Crowding Cost",
]

EXIT_COLUMNS = [
    "ID", "Name", "DAI Deposited", "Fee", "Deposit", "Entry", "Exit",
    "Rating", "Withdrawal", "Freed CLNDAI", "P/L",
]

SCENARIO_COLUMNS = [
    "Scenario", "Periods", "Exits", "Total Deposited", "Total Withdrawn",
    "Total Fees", "Total P/L", "Liquid CLNDAI",
]


def roster_frame(simulator: MarketSimulator) -> pd.DataFrame:
    """One row per player with spot valuation and solo-sale slippage."""
    valuator = simulator.valuator
    rows = [
        {
            "ID": p.participant_id,
            "Name": p.name,
            "Strategy": p.strategy.value,
            "DAI": p.balance_a,
            "CLNDAI": p.balance_b,
            "Initial DAI": p.initial_balance_a,
            "Total Spent": p.total_spent,
            "Total Received": p.total_received,
            "Spot Value": valuator.spot_value(p),
            "Slippage %": valuator.slippage_pct(p),
        }
        for p in simulator.participants
    ]
    return pd.DataFrame(rows, columns=ROSTER_COLUMNS)


def trades_frame(simulator: MarketSimulator) -> pd.DataFrame:
    rows = [
        {
            "Day": t.day,
            "Player": t.participant_name,
            "Type": t.kind.value,
            "Amount In": t.amount_in,
            "Amount Out": t.amount_out,
            "Price": t.effective_price,
            "Fee": t.fee,
            "Pool DAI": t.reserve_a_after,
            "Pool CLNDAI": t.reserve_b_after,
        }
        for t in simulator.trades
    ]
    return pd.DataFrame(rows, columns=TRADE_COLUMNS)


def snapshots_frame(simulator: MarketSimulator) -> pd.DataFrame:
    """Long format: one row per (day, player)."""
    rows = []
    for snapshot in simulator.daily_snapshots:
        for entry in snapshot.participants:
            rows.append({
                "Day": snapshot.day,
                "Price": snapshot.price,
                "ID": entry.participant_id,
                "Name": entry.name,
                "DAI": entry.balance_a,
                "CLNDAI": entry.balance_b,
                "Total Value": entry.total_value,
                "P/L": entry.pl,
            })
    return pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)


def pl_history_frame(simulator: MarketSimulator, last_days: int = 30) -> pd.DataFrame:
    """Wide P/L history: player IDs as rows, the last ``last_days`` days as columns."""
    df = snapshots_frame(simulator)
    if df.empty:
        return pd.DataFrame()
    recent = df[df["Day"] > df["Day"].max() - last_days]
    return recent.pivot(index="ID", columns="Day", values="P/L")


def settlement_frame(simulator: MarketSimulator) -> pd.DataFrame:
    """Joint-exit P/L next to solo-exit P/L; the difference is the crowding cost."""
    by_id = {p.participant_id: p for p in simulator.participants}
    rows = []
    for result in simulator.valuate_all():
        alone_pl = simulator.valuator.individual_pl(by_id[result.participant_id])
        rows.append({
            "ID": result.participant_id,
            "Name": result.name,
            "Position": result.position,
            "CLNDAI Sold": result.amount_sold,
            "DAI Received": result.amount_received,
            "Total DAI": result.total_value,
            "P/L": result.pl,
            "Alone P/L": alone_pl,
            "Crowding Cost": alone_pl - result.pl,
        })
    return pd.DataFrame(rows, columns=SETTLEMENT_COLUMNS)


def stake_exits_frame(engine: StakeEngine) -> pd.DataFrame:
    rows = [
        {
            "ID": r.participant_id,
            "Name": r.name,
            "DAI Deposited": r.dai_deposited,
            "Fee": r.fee,
            "Deposit": r.deposit,
            "Entry": r.entry_period,
            "Exit": r.exit_period,
            "Rating": r.rating_at_exit,
            "Withdrawal": r.withdrawal_amount,
            "Freed CLNDAI": r.freed_farmed_units,
            "P/L": r.profit_loss_at_exit,
        }
        for r in engine.exited.values()
    ]
    return pd.DataFrame(rows, columns=EXIT_COLUMNS)


def scenario_comparison_frame(results: dict[str, ScenarioResult]) -> pd.DataFrame:
    rows = [
        {
            "Scenario": name,
            "Periods": result.periods,
            "Exits": len(result.exits),
            "Total Deposited": result.total_deposited,
            "Total Withdrawn": result.total_withdrawn,
            "Total Fees": result.total_fees,
            "Total P/L": result.total_pl,
            "Liquid CLNDAI": result.liquid_farmed_units,
        }
        for name, result in results.items()
    ]
    return pd.DataFrame(rows, columns=SCENARIO_COLUMNS)
