"""Creating setups and moving them through their lifecycle.

Running -> Executed is the only transition. Skipped and Executed are terminal.
"""

import logging
from dataclasses import fields
from typing import Optional, Sequence

from journal.errors import InvalidTransitionError, SetupValidationError
from journal.models import (
    Checklist, RunningSetup, SkippedSetup, ExecutedSetup, Setup,
    BaseSetup, STATUS_RUNNING, STATUS_SKIPPED, STATUS_EXECUTED,
)

logger = logging.getLogger(__name__)

# Outcomes where the trader types the final PnL instead of using the plan
MANUAL_PNL_OUTCOMES = ("SL+", "Cutloss", "Manual")


def calculate_score(checklist: Checklist) -> int:
    """Count of satisfied checklist criteria (0-15)."""
    return checklist.score


def calculate_rr(sl_usd: float, tp_usd: float) -> float:
    """Reward-to-risk ratio tp/sl rounded to 2 decimals, 0.0 without a stop."""
    if sl_usd > 0:
        return round(tp_usd / sl_usd, 2)
    return 0.0


def default_name(pair: str, direction: str, date: str) -> str:
    return f"{pair} {direction} - {date}"


def new_setup(pair: str, direction: str, date: str, time: str = "",
              status: str = STATUS_RUNNING,
              sl_usd: float = 0.0, tp_usd: float = 0.0,
              sl_amount: float = 0.0, tp_amount: float = 0.0,
              setup_outcome: str = "",
              checklist: Optional[Checklist] = None,
              notes: str = "", name: str = "",
              screenshot_urls: Sequence[str] = (),
              pairs: Optional[Sequence[str]] = None) -> Setup:
    """Build a new Running or Skipped setup, computing its RR ratio once.

    Args:
        pair: Instrument symbol
        direction: "Buy" or "Sell"
        date: Entry date, YYYY-MM-DD
        time: Entry time, HH:MM (optional)
        status: "Running" or "Skipped"
        setup_outcome: For Skipped setups, the outcome it would have hit ("TP"/"SL")
        pairs: Allowed instruments. No check when None.

    Returns:
        RunningSetup or SkippedSetup without an id (storage assigns one)
    """
    if pairs is not None and pair not in pairs:
        raise SetupValidationError(f"'{pair}' is not a configured pair", "pair")

    common = dict(
        name=name.strip() or default_name(pair, direction, date),
        pair=pair,
        direction=direction,
        date=date,
        time=time,
        sl_usd=float(sl_usd),
        tp_usd=float(tp_usd),
        sl_amount=float(sl_amount),
        tp_amount=float(tp_amount),
        rr_ratio=calculate_rr(float(sl_usd), float(tp_usd)),
        checklist=checklist or Checklist(),
        notes=notes,
        screenshot_urls=tuple(screenshot_urls),
    )

    if status == STATUS_RUNNING:
        if setup_outcome:
            raise SetupValidationError("only Skipped setups have one", "setupOutcome")
        return RunningSetup(**common)
    if status == STATUS_SKIPPED:
        return SkippedSetup(setup_outcome=setup_outcome, **common)
    raise SetupValidationError(
        f"new setups start as {STATUS_RUNNING} or {STATUS_SKIPPED}", "status"
    )


def closing_pnl(setup: BaseSetup, outcome: str, pnl: Optional[float] = None) -> float:
    """Realized PnL for closing a setup with the given outcome.

    TP books the effective reward amount, SL loses the effective risk amount.
    SL+, Cutloss and Manual book the PnL the trader entered.
    """
    if outcome == "TP":
        return setup.effective_reward_amount
    if outcome == "SL":
        return -setup.effective_risk_amount
    if outcome in MANUAL_PNL_OUTCOMES:
        if pnl is None:
            raise SetupValidationError(f"required when closing with {outcome}", "pnl")
        return float(pnl)
    raise SetupValidationError(f"unknown close outcome '{outcome}'", "outcome")


def close_setup(setup: Setup, outcome: str, pnl: Optional[float] = None) -> ExecutedSetup:
    """Close a running setup. Returns the Executed record; the input is unchanged.

    Raises:
        InvalidTransitionError: if the setup is not Running
        SetupValidationError: for an unknown outcome or a missing manual PnL
    """
    if not isinstance(setup, RunningSetup):
        raise InvalidTransitionError(setup.status, STATUS_EXECUTED)

    realized = closing_pnl(setup, outcome, pnl)
    values = {f.name: getattr(setup, f.name) for f in fields(setup)}
    closed = ExecutedSetup(outcome=outcome, pnl=realized, **values)
    logger.debug(f"Closed setup {setup.id} ({setup.pair}) with {outcome}: {realized:+.2f}")
    return closed
