"""
Aggregate N simulated paths into percentile trajectories and distribution summaries.

Instead of: "Net worth at 65 = $1.2M" (one number, no context)
The user gets: "Net worth at 65: median $1.2M, 10th pct $0.7M, 90th pct $2.0M"

  Q1: "What is the typical outcome?"          → median band
  Q2: "What does a bad decade look like?"     → p10 band
  Q3: "How wide is the uncertainty?"          → p90 - p10 spread per year
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from core.schema import PercentileBand
from core.utils import percentile_label


def percentile_bands(
    values: np.ndarray,
    *,
    percentiles: Sequence[float] = (0.10, 0.25, 0.50, 0.75, 0.90),
    start_age: int = 0,
    years: Optional[Sequence[int]] = None,
) -> List[PercentileBand]:
    """
    Per-year percentile band of one metric across paths.

    Parameters
    ----------
    values : np.ndarray
        Shape (n_paths, n_years)
    percentiles : sequence of float
        Levels in (0, 1); labels are "p10", "p50", ...
    start_age : int
        Age in the first column, used to label bands
    years : sequence of int, optional
        Year labels; defaults to 0..n_years-1

    Returns
    -------
    One PercentileBand per column, with p10 <= median <= p90
    """
    values = np.asarray(values, dtype=float)
    if values.ndim != 2:
        raise ValueError(f"expected (n_paths, n_years) array, got shape {values.shape}")
    n_years = values.shape[1]
    years = list(range(n_years)) if years is None else list(years)

    levels = sorted(percentiles)
    # one vectorised call, shape (n_levels, n_years)
    quantiles = np.quantile(values, levels, axis=0)
    means = values.mean(axis=0)

    bands = []
    for j in range(n_years):
        bands.append(PercentileBand(
            year=int(years[j]),
            age=start_age + j,
            mean=float(means[j]),
            percentiles={percentile_label(p): float(quantiles[i, j]) for i, p in enumerate(levels)},
        ))
    return bands


def bands_to_dataframe(bands: Sequence[PercentileBand]) -> pd.DataFrame:
    """One row per year: year, age, mean and one column per percentile."""
    return pd.DataFrame([
        {"year": b.year, "age": b.age, "mean": b.mean, **b.percentiles} for b in bands
    ])


def summarize_distribution(
    metrics: Dict[str, np.ndarray],
    *,
    percentiles: Tuple[float, ...] = (0.05, 0.10, 0.25, 0.50, 0.75, 0.90, 0.95),
) -> pd.DataFrame:
    """
    One row per metric with mean/std/min/percentiles/max across paths.

    Parameters
    ----------
    metrics : dict of label -> 1-D array
        One value per path (e.g. final net worth, years insolvent)
    percentiles : tuple of float
        Percentile levels to report
    """
    rows = []
    for label, raw in metrics.items():
        values = np.asarray(raw, dtype=float)
        values = values[np.isfinite(values)]
        if len(values) == 0:
            continue

        row = {
            "Metric": label,
            "Mean": float(np.mean(values)),
            "Std Dev": float(np.std(values)),
            "Min": float(np.min(values)),
        }
        for p in percentiles:
            row[f"P{int(round(p * 100)):02d}"] = float(np.percentile(values, p * 100))
        row["Max"] = float(np.max(values))
        rows.append(row)

    return pd.DataFrame(rows)
