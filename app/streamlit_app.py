"""
Dhanam Projections: Financial Planning Dashboard
==================================================

Four sections:
  1. Inputs:          Sidebar forms for ages, income, expenses, assets, settings
  2. Projection:      Deterministic year-by-year table and net worth chart
  3. Monte Carlo:     Percentile bands, success probability, final net worth distribution
  4. Scenarios:       Plan and stress template comparison against the baseline

Run: streamlit run app/streamlit_app.py   (or the ``dhanam-projections`` console script)
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

# ---------------------------------------------------------------------------
# Make project root importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import SimulationSettings
from core.errors import ComputationTimeout, InvalidConfiguration
from core.log import configure_logging
from core.schema import ProjectionResult

from engine.montecarlo import SimulationResult
from engine.whatif import ScenarioComparison

from planning.aggregator import bands_to_dataframe
from planning.summary import RiskAssessment

from services.projection_service import ProjectionService

# ---------------------------------------------------------------------------
# Input presets
# ---------------------------------------------------------------------------
HOUSEHOLD_PRESETS: Dict[str, Dict[str, float]] = {
    "Early career": {
        "current_age": 28, "retirement_age": 65, "salary": 65_000,
        "essential": 30_000, "discretionary": 12_000, "savings": 15_000, "retirement": 20_000,
    },
    "Mid career": {
        "current_age": 40, "retirement_age": 65, "salary": 100_000,
        "essential": 45_000, "discretionary": 20_000, "savings": 50_000, "retirement": 150_000,
    },
    "Pre-retiree": {
        "current_age": 55, "retirement_age": 65, "salary": 120_000,
        "essential": 50_000, "discretionary": 25_000, "savings": 80_000, "retirement": 600_000,
    },
}

TEMPLATE_CATEGORIES = ["plan", "stress"]


# ---------------------------------------------------------------------------
# Cached service calls
# ---------------------------------------------------------------------------
@st.cache_resource
def _service() -> ProjectionService:
    return ProjectionService()


@st.cache_data(show_spinner="Running projection...")
def _run_projection(config: dict) -> ProjectionResult:
    return _service().generate_projection("dashboard", config)


@st.cache_data(show_spinner="Simulating paths...")
def _run_simulation(config: dict, iterations: int, seed: int) -> SimulationResult:
    settings = SimulationSettings(iterations=iterations, seed=seed, timeout_seconds=120.0)
    return _service().simulate_projection("dashboard", config, settings)


@st.cache_data(show_spinner="Comparing scenarios...")
def _run_comparison(config: dict, category: str) -> ScenarioComparison:
    service = _service()
    templates = [
        t for t in service.get_scenario_templates("dashboard", config) if t.category == category
    ]
    return service.compare_scenarios("dashboard", config, templates)


# ---------------------------------------------------------------------------
# Chart helpers
# ---------------------------------------------------------------------------
def _fmt_money(val):
    """Format money with commas."""
    return f"${val:,.0f}"


def _fmt_pct(val):
    """Format percentage with 1 decimal."""
    return f"{val:.1%}"


def _plot_lines(df: pd.DataFrame, *, x: str, ys: List[str], title: str, y_title: str, height=320):
    if df.empty or x not in df.columns or any(y not in df.columns for y in ys):
        st.info("No data to plot.")
        return
    fig = go.Figure()
    for y in ys:
        fig.add_trace(go.Scatter(x=df[x], y=df[y], mode="lines", name=y.replace("_", " ").title()))
    fig.update_layout(title=title, xaxis_title=x.title(), yaxis_title=y_title, height=height,
                      yaxis_tickformat=",.0f")
    st.plotly_chart(fig, use_container_width=True)


def _plot_band_chart(bands: pd.DataFrame, *, title: str, y_title: str, height=360):
    if bands.empty:
        return
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=bands["age"], y=bands["p90"], mode="lines",
                             line=dict(width=0), showlegend=False, hoverinfo="skip"))
    fig.add_trace(go.Scatter(x=bands["age"], y=bands["p10"], mode="lines", fill="tonexty",
                             line=dict(width=0), fillcolor="rgba(70,130,180,0.2)",
                             name="P10-P90"))
    if "p25" in bands.columns and "p75" in bands.columns:
        fig.add_trace(go.Scatter(x=bands["age"], y=bands["p75"], mode="lines",
                                 line=dict(width=0), showlegend=False, hoverinfo="skip"))
        fig.add_trace(go.Scatter(x=bands["age"], y=bands["p25"], mode="lines", fill="tonexty",
                                 line=dict(width=0), fillcolor="rgba(70,130,180,0.35)",
                                 name="P25-P75"))
    fig.add_trace(go.Scatter(x=bands["age"], y=bands["p50"], mode="lines",
                             line=dict(color="steelblue", width=2), name="Median"))
    fig.update_layout(title=title, xaxis_title="Age", yaxis_title=y_title, height=height,
                      yaxis_tickformat=",.0f")
    st.plotly_chart(fig, use_container_width=True)


def _plot_histogram(values, *, title: str, x_label: str, bins=40, height=300):
    if len(values) == 0:
        st.info("No data.")
        return
    fig = go.Figure(go.Histogram(x=values, nbinsx=bins, opacity=0.8))
    fig.update_layout(title=title, xaxis_title=x_label, yaxis_title="Paths", height=height,
                      xaxis_tickformat=",.0f")
    st.plotly_chart(fig, use_container_width=True)


# ---------------------------------------------------------------------------
# Sidebar inputs
# ---------------------------------------------------------------------------
def _sidebar_inputs() -> tuple:
    """Collect the household and settings; returns (config dict, iterations, seed)."""
    with st.sidebar:
        st.header("Household")
        preset = HOUSEHOLD_PRESETS[st.selectbox("Preset", list(HOUSEHOLD_PRESETS), index=1)]

        c1, c2 = st.columns(2)
        current_age = c1.number_input("Current age", 18, 90, int(preset["current_age"]))
        retirement_age = c2.number_input("Retirement age", 18, 100, int(preset["retirement_age"]))
        life_expectancy = st.number_input("Life expectancy", 50, 120, 90)
        years = st.slider("Projection years", 5, 80, max(30, int(life_expectancy - current_age)))

        st.header("Income & Expenses")
        salary = st.number_input("Salary (annual)", 0, 2_000_000, int(preset["salary"]), step=1_000)
        salary_growth = st.slider("Salary growth", 0.0, 0.08, 0.03, 0.005, format="%.3f")
        essential = st.number_input("Essential expenses", 0, 1_000_000, int(preset["essential"]), step=1_000)
        discretionary = st.number_input(
            "Discretionary expenses", 0, 1_000_000, int(preset["discretionary"]), step=1_000
        )
        ss_benefit = st.number_input("Social Security (monthly)", 0, 10_000, 2_200, step=50)

        st.header("Assets & Debt")
        savings = st.number_input("Cash savings", 0, 10_000_000, int(preset["savings"]), step=1_000)
        retirement = st.number_input(
            "Retirement accounts", 0, 20_000_000, int(preset["retirement"]), step=1_000
        )
        mortgage = st.number_input("Mortgage balance", 0, 5_000_000, 0, step=1_000)
        mortgage_rate = st.slider("Mortgage rate", 0.0, 0.12, 0.06, 0.0025, format="%.4f")

        st.header("Market & Settings")
        inflation = st.slider("Inflation", 0.0, 0.10, 0.03, 0.005, format="%.3f")
        expected_return = st.slider("Expected return", 0.0, 0.12, 0.07, 0.005, format="%.3f")
        volatility = st.slider("Return volatility", 0.0, 0.40, 0.15, 0.01)
        iterations = st.select_slider("Monte Carlo iterations", [500, 1_000, 2_000, 5_000, 10_000], 2_000)
        seed = st.number_input("Seed", 0, 1_000_000, 42)

    config = {
        "projectionYears": int(years),
        "inflationRate": float(inflation),
        "currentAge": int(current_age),
        "retirementAge": int(retirement_age),
        "lifeExpectancy": int(life_expectancy),
        "incomeStreams": [{
            "name": "Salary", "annualAmount": float(salary), "growthRate": float(salary_growth),
            "isTaxable": True, "stopsAtRetirement": True,
        }],
        "expenses": [
            {"name": "Essentials", "annualAmount": float(essential), "growthRate": float(inflation),
             "isEssential": True},
            {"name": "Discretionary", "annualAmount": float(discretionary),
             "growthRate": float(inflation)},
        ],
        "assets": [
            {"name": "Cash", "currentValue": float(savings), "type": "cash"},
            {"name": "Retirement", "currentValue": float(retirement), "type": "tax_deferred"},
        ],
        "loans": (
            [{"name": "Mortgage", "balance": float(mortgage), "interestRate": float(mortgage_rate),
              "remainingTermMonths": 360, "type": "mortgage"}]
            if mortgage > 0 else []
        ),
        "socialSecurity": (
            {"monthlyBenefit": float(ss_benefit), "claimAge": 67} if ss_benefit > 0 else None
        ),
        "taxes": {"country": "US", "filingStatus": "single"},
        "market": {"expectedReturn": float(expected_return), "returnVolatility": float(volatility)},
    }
    return config, int(iterations), int(seed)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------
def _show_projection(result: ProjectionResult) -> None:
    summary = result.summary
    k1, k2, k3, k4, k5 = st.columns(5)
    k1.metric("Peak Net Worth", _fmt_money(summary.peak_net_worth.amount),
              f"age {result.config.current_age + summary.peak_net_worth.year}")
    k2.metric("Replacement Ratio", _fmt_pct(summary.income_replacement_ratio))
    k3.metric("Savings Rate", _fmt_pct(summary.average_savings_rate))
    k4.metric("FI Year", "-" if summary.financial_independence_year is None
              else str(summary.financial_independence_year))
    k5.metric("Risk Score", f"{summary.risk_score:.0f} / 100")

    for warning in result.warnings:
        st.warning(warning)

    real = st.toggle("Show in today's dollars", value=False)
    df = result.to_dataframe(real=real)
    _plot_lines(df, x="age", ys=["net_worth", "total_assets", "total_debt"],
                title="Net Worth Trajectory", y_title="Dollars")

    left, right = st.columns(2)
    with left:
        _plot_lines(df, x="age", ys=["gross_income", "total_expenses", "taxes_paid"],
                    title="Income, Expenses and Taxes", y_title="Dollars per year")
    with right:
        st.markdown("**Risk Score Components**")
        risk = RiskAssessment(components=dict(summary.risk_components))
        st.dataframe(risk.to_dataframe(), use_container_width=True, hide_index=True)

    with st.expander("Year-by-year table", expanded=False):
        st.dataframe(df.round(2), use_container_width=True, hide_index=True)
    with st.expander("Asset breakdown", expanded=False):
        st.dataframe(result.breakdown_frame("asset").round(0), use_container_width=True, hide_index=True)


def _show_simulation(sim: SimulationResult) -> None:
    k1, k2, k3 = st.columns(3)
    k1.metric("Success Probability", _fmt_pct(sim.success_probability))
    k2.metric("Median Final Net Worth", _fmt_money(float(pd.Series(sim.final_net_worth).median())))
    k3.metric("Paths", f"{sim.iterations:,}")
    for warning in sim.warnings:
        st.warning(warning)

    _plot_band_chart(sim.timeline_frame("net_worth"), title="Net Worth (Percentile Bands)",
                     y_title="Dollars")
    left, right = st.columns(2)
    with left:
        _plot_histogram(sim.final_net_worth, title="Final Net Worth Distribution",
                        x_label="Net worth ($)")
    with right:
        st.markdown("**Distribution Summary**")
        st.dataframe(sim.summary().round(2), use_container_width=True, hide_index=True)
    with st.expander("Percentile table", expanded=False):
        st.dataframe(bands_to_dataframe(sim.timelines["net_worth"]).round(0),
                     use_container_width=True, hide_index=True)


def _show_comparison(comparison: ScenarioComparison) -> None:
    st.dataframe(comparison.to_dataframe().round(3), use_container_width=True, hide_index=True)
    frames = {"Baseline": comparison.baseline.to_dataframe()}
    for outcome in comparison.scenarios:
        frames[outcome.scenario.name] = outcome.result.to_dataframe()
    fig = go.Figure()
    for name, df in frames.items():
        fig.add_trace(go.Scatter(x=df["age"], y=df["net_worth"], mode="lines", name=name))
    fig.update_layout(title="Net Worth by Scenario", xaxis_title="Age", yaxis_title="Dollars",
                      height=420, yaxis_tickformat=",.0f")
    st.plotly_chart(fig, use_container_width=True)


# ═══════════════════════════════════════════════════════════════════════════
# PAGE
# ═══════════════════════════════════════════════════════════════════════════
def render() -> None:
    st.set_page_config(page_title="Dhanam Projections", layout="wide")
    st.title("Dhanam Projections")
    st.caption("Multi-year financial projection and Monte Carlo simulation")

    config, iterations, seed = _sidebar_inputs()

    try:
        tab_proj, tab_mc, tab_scen = st.tabs(["Projection", "Monte Carlo", "Scenarios"])
        with tab_proj:
            _show_projection(_run_projection(config))
        with tab_mc:
            if st.button("Run simulation", type="primary"):
                _show_simulation(_run_simulation(config, iterations, seed))
        with tab_scen:
            category = st.radio("Templates", TEMPLATE_CATEGORIES, horizontal=True)
            _show_comparison(_run_comparison(config, category))
    except InvalidConfiguration as exc:
        st.error(str(exc))
    except ComputationTimeout as exc:
        st.error(f"Simulation stopped: {exc}")


def main() -> None:
    """Console entry point: launch this file under ``streamlit run``."""
    from streamlit.web import cli as stcli

    sys.argv = ["streamlit", "run", str(Path(__file__).resolve())]
    sys.exit(stcli.main())


if __name__ == "__main__":
    configure_logging("INFO")
    render()
