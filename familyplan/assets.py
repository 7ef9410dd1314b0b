"""
Asset growth module for familyplan.

Purpose
-------
Models a single financial account (fund, savings plan, pension) and its
monthly state transition: deposits, deposit-based fees, withdrawals,
returns and balance-based fees. The orchestrator (`simulation.py`) calls
`advance_month` once per asset per simulated month and accumulates the
returned flows into cumulative timeline totals.

Mathematical Framework
----------------------
For a month with gross deposit A, withdrawal request D and opening
balance W:

    fee_d   = A · f_d
    W'      = W - min(D, W) + (A - fee_d)
    R       = W' · r / 12
    fee_b   = W' · f_b / 12
    W_next  = W' + R - fee_b

where r is the annual return rate, f_d the deposit fee rate and f_b the
annual balance fee rate. The monthly rate is the simple r/12, not the
geometric (1 + r)^(1/12) - 1.

Order of operations is fixed: the withdrawal is taken before the deposit
lands, and returns/fees accrue on the post-deposit balance. Changing the
order changes fee semantics and rounding.

Key components
--------------
- AssetState:
    Immutable snapshot of one account (balance, deposits, rates).
- MonthFlows:
    Cash flows produced by one monthly step.
- advance_month:
    Pure state transition AssetState → (AssetState, MonthFlows).

Example
-------
>>> asset = AssetState(id="fund", name="Index fund", balance=100_000,
...                    monthly_deposit=1_000, annual_return_rate=0.06)
>>> nxt, flows = advance_month(asset, month_index=1)
>>> round(nxt.balance, 2)
101505.0
>>> flows.deposit, round(flows.return_, 2)
(1000.0, 505.0)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

from .constants import ASSET_TYPES, DEFAULT_CURRENCY, LIQUIDITY_ORDER, MONTHS_PER_YEAR
from .exceptions import InvalidParameterError
from .utils import check_fraction, check_non_negative

__all__ = [
    "AssetState",
    "MonthFlows",
    "advance_month",
    "liquidity_rank",
]


# ---------------------------------------------------------------------------
# Asset State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AssetState:
    """
    Snapshot of one financial account.

    Parameters
    ----------
    id : str
        Stable asset identifier (key of the timeline's assets_breakdown).
    name : str
        Display name.
    balance : float, default 0.0
        Current balance in currency units. Must be non-negative.
    monthly_deposit : float, default 0.0
        Own monthly deposit. Must be non-negative.
    employer_deposit : float, default 0.0
        Employer monthly deposit (pension/study funds). Must be non-negative.
    annual_return_rate : float, default 0.0
        Expected annual return as a fraction (0.05 = 5%). Must be >= -1.0.
    fee_on_balance_rate : float, default 0.0
        Annual management fee on balance as a fraction, in [0, 1].
    fee_on_deposit_rate : float, default 0.0
        Fee charged on each deposit as a fraction, in [0, 1].
    currency : str, default "ILS"
        Currency code (informational; no conversion is performed).
    asset_type : str, default "savings"
        One of LIQUIDITY_ORDER; determines the order expenses draw from.

    Raises
    ------
    InvalidParameterError
        On any out-of-range field.

    Notes
    -----
    - Immutable: the engine derives a new AssetState each month via
      dataclasses.replace, so the caller's snapshot is never touched.
    - Rates are fractions; the pydantic configs accept the same units.
    """
    id: str
    name: str = ""
    balance: float = 0.0
    monthly_deposit: float = 0.0
    employer_deposit: float = 0.0
    annual_return_rate: float = 0.0
    fee_on_balance_rate: float = 0.0
    fee_on_deposit_rate: float = 0.0
    currency: str = DEFAULT_CURRENCY
    asset_type: str = "savings"

    def __post_init__(self):
        """Validate asset parameters."""
        if not self.id:
            raise InvalidParameterError("asset id must be a non-empty string")
        check_non_negative(f"balance of asset {self.id!r}", self.balance)
        check_non_negative(f"monthly_deposit of asset {self.id!r}", self.monthly_deposit)
        check_non_negative(f"employer_deposit of asset {self.id!r}", self.employer_deposit)
        if self.annual_return_rate < -1.0:
            raise InvalidParameterError(
                f"annual_return_rate of asset {self.id!r} must be >= -1.0 "
                f"(-100%), got {self.annual_return_rate}"
            )
        check_fraction(f"fee_on_balance_rate of asset {self.id!r}", self.fee_on_balance_rate)
        check_fraction(f"fee_on_deposit_rate of asset {self.id!r}", self.fee_on_deposit_rate)
        if self.asset_type not in ASSET_TYPES:
            raise InvalidParameterError(
                f"asset_type must be one of {ASSET_TYPES}, got {self.asset_type!r}"
            )

    @property
    def scheduled_deposit(self) -> float:
        """Recurring monthly deposit (own + employer)."""
        return self.monthly_deposit + self.employer_deposit

    @property
    def monthly_return_rate(self) -> float:
        """Simple monthly-equivalent return rate r/12."""
        return self.annual_return_rate / MONTHS_PER_YEAR

    def __repr__(self) -> str:
        return (
            f"AssetState({self.id!r}: balance={self.balance:,.0f}, "
            f"return={self.annual_return_rate:.2%}/year, "
            f"deposit={self.scheduled_deposit:,.0f}/month)"
        )


@dataclass(frozen=True)
class MonthFlows:
    """Cash flows of one asset over one simulated month."""
    deposit: float
    deposit_fee: float
    balance_fee: float
    return_: float
    withdrawal: float
    requested_withdrawal: float

    @property
    def fee(self) -> float:
        """Total fees charged this month (deposit + balance based)."""
        return self.deposit_fee + self.balance_fee

    @property
    def is_partial(self) -> bool:
        """True if the withdrawal request was clamped to the balance."""
        return self.withdrawal < self.requested_withdrawal


# ---------------------------------------------------------------------------
# Monthly transition
# ---------------------------------------------------------------------------

def advance_month(
    asset: AssetState,
    month_index: int,
    extra_deposit: float = 0.0,
    extra_withdrawal: float = 0.0,
) -> Tuple[AssetState, MonthFlows]:
    """
    Advance one asset by one month.

    Parameters
    ----------
    asset : AssetState
        Opening state for the month.
    month_index : int
        Month being simulated (1-based; used in error messages only, the
        transition itself is time-homogeneous).
    extra_deposit : float, default 0.0
        Scenario deposit on top of the recurring deposits.
    extra_withdrawal : float, default 0.0
        Requested withdrawal. Clamped to the opening balance.

    Returns
    -------
    (AssetState, MonthFlows)
        Closing state and the month's flows.

    Raises
    ------
    InvalidParameterError
        If extra_deposit or extra_withdrawal is negative.

    Examples
    --------
    >>> a = AssetState("cash", balance=500.0)
    >>> nxt, flows = advance_month(a, 1, extra_withdrawal=800.0)
    >>> nxt.balance, flows.withdrawal, flows.is_partial
    (0.0, 500.0, True)
    """
    if extra_deposit < 0:
        raise InvalidParameterError(
            f"extra_deposit must be non-negative in month {month_index}, got {extra_deposit}"
        )
    if extra_withdrawal < 0:
        raise InvalidParameterError(
            f"extra_withdrawal must be non-negative in month {month_index}, got {extra_withdrawal}"
        )

    gross_deposit = asset.monthly_deposit + asset.employer_deposit + extra_deposit
    deposit_fee = gross_deposit * asset.fee_on_deposit_rate
    net_deposit = gross_deposit - deposit_fee

    balance = asset.balance
    withdrawal = min(extra_withdrawal, balance)
    balance -= withdrawal
    balance += net_deposit

    gross_return = balance * asset.monthly_return_rate
    balance_fee = balance * asset.fee_on_balance_rate / MONTHS_PER_YEAR
    balance = balance + gross_return - balance_fee

    flows = MonthFlows(
        deposit=gross_deposit,
        deposit_fee=deposit_fee,
        balance_fee=balance_fee,
        return_=gross_return,
        withdrawal=withdrawal,
        requested_withdrawal=extra_withdrawal,
    )
    return replace(asset, balance=max(balance, 0.0)), flows


def liquidity_rank(asset: AssetState) -> int:
    """Position of the asset's type in LIQUIDITY_ORDER (0 = most liquid)."""
    return LIQUIDITY_ORDER.index(asset.asset_type)
