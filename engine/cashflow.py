"""
Yearly state transition: the single-step simulation kernel.

``advance_year`` is shared unchanged by the deterministic runner (a batch of one
path fed expected values) and the Monte Carlo engine (a batch of many paths fed
sampled returns and inflation). All state is carried in numpy arrays shaped
(n_paths, ...), so a batch advances one year in a handful of vectorised steps.

Order of operations within a year:
  1. income (streams after shocks, Social Security, life-event credits)
  2. taxes on the taxable subset, brackets indexed to the path's inflation
  3. expenses (categories after shocks, life-event debits)
  4. net cashflow = gross income - taxes - expenses
  5. loans: 12 monthly amortization steps
  6. asset growth on prior balances, then surplus deposited / deficit drawn down
  7. capital life events applied against assets
  8. derived ratios

Assets never go below zero: any drawdown they cannot fund is recorded as
``unfunded_shortfall`` and the year is flagged insolvent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from core.config import AssetConfig, ProjectionConfig
from core.schema import YearlySnapshot
from core.utils import level_payment, safe_ratio
from economics.social_security import SocialSecuritySchedule, build_schedule
from economics.streams import StreamAmounts, expenses_for_year, income_for_year
from economics.taxes import BracketTaxFunction, TaxFunction, taxes_for_year

from .events import schedule_year

MARKET_LINKED_TYPES = ("taxable", "tax_deferred", "tax_free")

# cash first, real estate last
DRAWDOWN_ORDER = ("cash", "taxable", "tax_free", "tax_deferred", "other", "real_estate")

SAVINGS_ACCOUNT = "Savings"
SOCIAL_SECURITY_LABEL = "Social Security"
INSOLVENCY_TOLERANCE = 1e-6


@dataclass(frozen=True)
class ProjectionModel:
    """A ProjectionConfig resolved into arrays once per run, read-only for every path."""
    config: ProjectionConfig

    asset_names: Tuple[str, ...]
    asset_types: Tuple[str, ...]
    initial_assets: np.ndarray      # (n_assets,)
    market_mask: np.ndarray         # (n_assets,) bool
    return_offsets: np.ndarray      # (n_assets,) shift over the market sample
    fixed_returns: np.ndarray       # (n_assets,) for cash / real estate / other
    deposit_index: int
    drawdown_order: Tuple[int, ...]

    loan_names: Tuple[str, ...]
    initial_loans: np.ndarray       # (n_loans,)
    loan_monthly_rates: np.ndarray  # (n_loans,)
    loan_payments: np.ndarray       # (n_loans,)

    income: Tuple[StreamAmounts, ...]
    expenses: Tuple[StreamAmounts, ...]
    social_security: Optional[SocialSecuritySchedule]
    tax_function: TaxFunction
    ss_taxable_share: float

    @classmethod
    def from_config(
        cls, config: ProjectionConfig, tax_function: Optional[TaxFunction] = None
    ) -> "ProjectionModel":
        market = config.market
        assets = list(config.assets)
        if not any(a.type in MARKET_LINKED_TYPES for a in assets):
            assets.append(AssetConfig(name=SAVINGS_ACCOUNT, current_value=0.0, type="taxable"))

        default_fixed = {
            "cash": market.cash_return,
            "real_estate": market.real_estate_return,
            "other": market.other_return,
        }
        market_mask = np.array([a.type in MARKET_LINKED_TYPES for a in assets], dtype=bool)
        offsets = np.array([
            (a.expected_return - market.expected_return)
            if a.type in MARKET_LINKED_TYPES and a.expected_return is not None else 0.0
            for a in assets
        ], dtype=float)
        fixed = np.array([
            0.0 if a.type in MARKET_LINKED_TYPES
            else (a.expected_return if a.expected_return is not None else default_fixed[a.type])
            for a in assets
        ], dtype=float)

        deposit_index = next(i for i, a in enumerate(assets) if a.type in MARKET_LINKED_TYPES)
        order = tuple(
            i
            for asset_type in DRAWDOWN_ORDER
            for i, a in enumerate(assets)
            if a.type == asset_type
        )

        loans = list(config.loans)
        payments = np.array([
            loan.monthly_payment if loan.monthly_payment is not None
            else level_payment(loan.balance, loan.interest_rate / 12.0, loan.remaining_term_months)
            for loan in loans
        ], dtype=float)

        ss_share = config.taxes.taxable_social_security_share if config.taxes else 0.0

        return cls(
            config=config,
            asset_names=tuple(a.name for a in assets),
            asset_types=tuple(a.type for a in assets),
            initial_assets=np.array([a.current_value for a in assets], dtype=float),
            market_mask=market_mask,
            return_offsets=offsets,
            fixed_returns=fixed,
            deposit_index=deposit_index,
            drawdown_order=order,
            loan_names=tuple(loan.name for loan in loans),
            initial_loans=np.array([loan.balance for loan in loans], dtype=float),
            loan_monthly_rates=np.array([loan.interest_rate / 12.0 for loan in loans], dtype=float),
            loan_payments=payments,
            income=tuple(income_for_year(config, y) for y in range(config.projection_years)),
            expenses=tuple(expenses_for_year(config, y) for y in range(config.projection_years)),
            social_security=build_schedule(config),
            tax_function=tax_function if tax_function is not None else BracketTaxFunction(),
            ss_taxable_share=ss_share,
        )

    @property
    def n_assets(self) -> int:
        return len(self.asset_names)

    def asset_returns(self, market_return: np.ndarray) -> np.ndarray:
        """(n_paths,) market sample -> (n_paths, n_assets) returns, floored at -100%."""
        r = np.where(
            self.market_mask[None, :],
            market_return[:, None] + self.return_offsets[None, :],
            self.fixed_returns[None, :],
        )
        return np.maximum(r, -1.0)


@dataclass(frozen=True)
class PathState:
    """End-of-year position of every path in a batch."""
    year: int                       # next year to simulate
    asset_values: np.ndarray        # (n_paths, n_assets)
    loan_balances: np.ndarray       # (n_paths, n_loans)
    inflation_history: np.ndarray   # (n_paths, year + 1), column 0 == 1.0

    @classmethod
    def initial(cls, model: ProjectionModel, n_paths: int) -> "PathState":
        return cls(
            year=0,
            asset_values=np.tile(model.initial_assets, (n_paths, 1)),
            loan_balances=np.tile(model.initial_loans, (n_paths, 1)),
            inflation_history=np.ones((n_paths, 1), dtype=float),
        )

    @property
    def n_paths(self) -> int:
        return self.asset_values.shape[0]

    @property
    def total_assets(self) -> np.ndarray:
        return self.asset_values.sum(axis=1)

    @property
    def total_debt(self) -> np.ndarray:
        return self.loan_balances.sum(axis=1)

    @property
    def net_worth(self) -> np.ndarray:
        return self.total_assets - self.total_debt


@dataclass(frozen=True)
class YearOutcome:
    """Everything one year produced, per path. Scalars in breakdowns apply to every path."""
    year: int
    gross_income: np.ndarray
    social_security_income: np.ndarray
    taxes_paid: np.ndarray
    net_income: np.ndarray
    total_expenses: np.ndarray
    net_cashflow: np.ndarray
    debt_service: np.ndarray
    debt_interest: np.ndarray
    asset_growth: np.ndarray
    life_event_net_worth_impact: np.ndarray
    unfunded_shortfall: np.ndarray
    total_debt: np.ndarray
    total_assets: np.ndarray
    net_worth: np.ndarray
    savings_rate: np.ndarray
    fi_ratio: np.ndarray
    inflation_index: np.ndarray
    market_linked_assets: np.ndarray

    events: tuple
    income_breakdown: Dict[str, object]
    expense_breakdown: Dict[str, object]
    asset_values: np.ndarray
    loan_balances: np.ndarray

    @property
    def insolvent(self) -> np.ndarray:
        return self.unfunded_shortfall > INSOLVENCY_TOLERANCE

    def metric(self, name: str) -> np.ndarray:
        return getattr(self, name)

    def snapshot(self, model: ProjectionModel, path: int = 0) -> YearlySnapshot:
        """Freeze one path's outcome into a YearlySnapshot."""
        cfg = model.config
        return YearlySnapshot(
            year=self.year,
            age=cfg.current_age + self.year,
            calendar_year=cfg.start_year + self.year if cfg.start_year is not None else None,
            gross_income=_at(self.gross_income, path),
            social_security_income=_at(self.social_security_income, path),
            taxes_paid=_at(self.taxes_paid, path),
            net_income=_at(self.net_income, path),
            total_expenses=_at(self.total_expenses, path),
            net_cashflow=_at(self.net_cashflow, path),
            debt_service=_at(self.debt_service, path),
            debt_interest=_at(self.debt_interest, path),
            asset_growth=_at(self.asset_growth, path),
            life_event_net_worth_impact=_at(self.life_event_net_worth_impact, path),
            unfunded_shortfall=_at(self.unfunded_shortfall, path),
            total_debt=_at(self.total_debt, path),
            total_assets=_at(self.total_assets, path),
            net_worth=_at(self.net_worth, path),
            savings_rate=_at(self.savings_rate, path),
            fi_ratio=_at(self.fi_ratio, path),
            inflation_index=_at(self.inflation_index, path),
            life_events_this_year=self.events,
            income_breakdown={k: _at(v, path) for k, v in self.income_breakdown.items()},
            expense_breakdown={k: _at(v, path) for k, v in self.expense_breakdown.items()},
            asset_breakdown={
                name: float(self.asset_values[path, i]) for i, name in enumerate(model.asset_names)
            },
            loan_breakdown={
                name: float(self.loan_balances[path, i])
                for i, name in enumerate(model.loan_names)
                if self.loan_balances[path, i] > 0
            },
        )


def _at(value, path: int) -> float:
    if np.ndim(value) == 0:
        return float(value)
    return float(value[path])


def amortize_year(
    balances: np.ndarray,
    monthly_rates: np.ndarray,
    payments: np.ndarray,
    months: int = 12,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Run ``months`` scheduled payments on every loan of every path.

    Each month: interest = balance * rate, payment = min(scheduled, balance + interest).
    A loan whose payment clears it drops to exactly zero and stops accruing.

    Returns
    -------
    (end_balances, interest_paid, payments_made), each shaped like ``balances``
    """
    bal = balances.copy()
    interest_total = np.zeros_like(bal)
    paid_total = np.zeros_like(bal)
    for _ in range(months):
        active = bal > 0
        interest = np.where(active, bal * monthly_rates, 0.0)
        due = bal + interest
        payment = np.where(active, np.minimum(payments, due), 0.0)
        bal = np.where(payment >= due, 0.0, due - payment)
        interest_total += interest
        paid_total += payment
    return bal, interest_total, paid_total


def apply_cashflow(
    asset_values: np.ndarray,
    amount: np.ndarray,
    model: ProjectionModel,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Deposit positive ``amount`` into the savings account, fund negative ``amount``
    by drawing assets down in liquidity order.

    Returns
    -------
    (asset_values, unfunded) where ``unfunded`` is the part of each withdrawal the
    assets could not cover
    """
    values = asset_values.copy()
    values[:, model.deposit_index] += np.maximum(amount, 0.0)
    remaining = np.maximum(-amount, 0.0)
    for idx in model.drawdown_order:
        take = np.minimum(values[:, idx], remaining)
        values[:, idx] -= take
        remaining = remaining - take
    return values, remaining


def advance_year(
    state: PathState,
    model: ProjectionModel,
    year: int,
    market_return: np.ndarray,
    inflation: np.ndarray,
) -> Tuple[PathState, YearOutcome]:
    """
    Advance every path in ``state`` through simulation ``year``.

    Parameters
    ----------
    state : PathState
        Position at the end of ``year - 1`` (or the starting position).
    model : ProjectionModel
    year : int
        Must equal ``state.year``.
    market_return : np.ndarray
        (n_paths,) annual market return for this year.
    inflation : np.ndarray
        (n_paths,) inflation over this year; it moves the index used from next year on.

    Returns
    -------
    (next_state, outcome)
    """
    if year != state.year:
        raise ValueError(f"state is positioned at year {state.year}, cannot advance year {year}")
    if year >= model.config.projection_years:
        raise ValueError(f"year {year} is beyond the {model.config.projection_years}-year horizon")

    cfg = model.config
    n_paths = state.n_paths
    history = state.inflation_history
    index = history[:, year]

    # --- 1. income ---
    streams = model.income[year]
    if model.social_security is not None:
        ss = model.social_security.benefit_for_year(year, history)
    else:
        ss = np.zeros(n_paths, dtype=float)
    events = schedule_year(cfg.life_events, year, cfg.projection_years, history)

    income_breakdown: Dict[str, object] = dict(streams.amounts)
    if model.social_security is not None and np.any(ss > 0):
        income_breakdown[SOCIAL_SECURITY_LABEL] = ss
    for name, credit in events.cash_credits.items():
        income_breakdown[name] = income_breakdown.get(name, 0.0) + credit
    gross_income = streams.total + ss + events.total_credits

    # --- 2. taxes ---
    taxable = streams.taxable + ss * model.ss_taxable_share
    taxes = taxes_for_year(taxable, cfg.taxes, model.tax_function, index)

    # --- 3. expenses ---
    outflows = model.expenses[year]
    expense_breakdown: Dict[str, object] = dict(outflows.amounts)
    for name, debit in events.cash_debits.items():
        expense_breakdown[name] = expense_breakdown.get(name, 0.0) + debit
    total_expenses = outflows.total + events.total_debits

    # --- 4. cashflow ---
    net_income = gross_income - taxes
    net_cashflow = net_income - total_expenses

    # --- 5. loans ---
    loan_balances, interest, payments = amortize_year(
        state.loan_balances, model.loan_monthly_rates, model.loan_payments
    )
    debt_interest = interest.sum(axis=1)
    debt_service = payments.sum(axis=1)

    # --- 6. asset growth, then cashflow ---
    growth_by_asset = state.asset_values * model.asset_returns(market_return)
    assets = state.asset_values + growth_by_asset
    assets, unfunded = apply_cashflow(assets, net_cashflow - debt_service, model)

    # --- 7. capital life events ---
    assets, unfunded_capital = apply_cashflow(assets, events.capital, model)
    unfunded = unfunded + unfunded_capital

    # --- 8. derived ---
    total_assets = assets.sum(axis=1)
    total_debt = loan_balances.sum(axis=1)
    market_linked = assets[:, model.market_mask].sum(axis=1)
    passive = ss + cfg.market.withdrawal_rate * market_linked

    outcome = YearOutcome(
        year=year,
        gross_income=gross_income,
        social_security_income=ss,
        taxes_paid=taxes,
        net_income=net_income,
        total_expenses=total_expenses,
        net_cashflow=net_cashflow,
        debt_service=debt_service,
        debt_interest=debt_interest,
        asset_growth=growth_by_asset.sum(axis=1),
        life_event_net_worth_impact=events.capital,
        unfunded_shortfall=unfunded,
        total_debt=total_debt,
        total_assets=total_assets,
        net_worth=total_assets - total_debt,
        savings_rate=safe_ratio(net_cashflow, gross_income),
        fi_ratio=safe_ratio(passive, outflows.essential),
        inflation_index=index,
        market_linked_assets=market_linked,
        events=events.events,
        income_breakdown=income_breakdown,
        expense_breakdown=expense_breakdown,
        asset_values=assets,
        loan_balances=loan_balances,
    )

    next_state = PathState(
        year=year + 1,
        asset_values=assets,
        loan_balances=loan_balances,
        inflation_history=np.column_stack([history, index * (1.0 + inflation)]),
    )
    return next_state, outcome
