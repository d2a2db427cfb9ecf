from __future__ import annotations

import hashlib
import json
from datetime import date

import numpy as np
from dateutil.relativedelta import relativedelta


def level_payment(balance: float, monthly_rate: float, n_months: int) -> float:
    """Standard fully-amortizing level payment (PMT) with near-zero rate guard."""
    if n_months <= 0:
        return float(balance)
    if abs(monthly_rate) < 1e-12:
        return float(balance) / n_months
    return float(balance) * (monthly_rate * (1 + monthly_rate) ** n_months) / (
        (1 + monthly_rate) ** n_months - 1
    )


def window_coverage(start: float, duration: float, year: int) -> float:
    """Fraction of simulation year ``[year, year+1)`` covered by ``[start, start+duration)``."""
    overlap = min(year + 1.0, start + duration) - max(float(year), start)
    return float(min(max(overlap, 0.0), 1.0))


def safe_ratio(numerator, denominator):
    """Elementwise numerator / denominator, 0 where the denominator is not positive."""
    num = np.asarray(numerator, dtype=float)
    den = np.asarray(denominator, dtype=float)
    out = np.zeros(np.broadcast(num, den).shape, dtype=float)
    np.divide(num, den, out=out, where=den > 0)
    return out


def percentile_label(p: float) -> str:
    """0.1 -> 'p10', 0.5 -> 'p50'."""
    return f"p{int(round(p * 100)):02d}"


def months_between(start: date, end: date) -> int:
    """Complete months from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def add_months(start: date, months: int) -> date:
    return start + relativedelta(months=months)


def config_fingerprint(config) -> str:
    """Stable sha256 of a pydantic config, usable as a result-cache key."""
    payload = json.dumps(config.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
