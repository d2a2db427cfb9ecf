"""
Correlation structure between annual market returns and inflation.

Order everywhere: [market_return, inflation].
"""

from __future__ import annotations

import numpy as np


def _ensure_positive_definite(matrix: np.ndarray) -> np.ndarray:
    """
    Force a correlation matrix to be positive semi-definite.

    A correlation of exactly +/-1 gives a singular matrix; eigenvalue clipping keeps
    the multivariate normal draw well defined.
    """
    eigenvalues, eigenvectors = np.linalg.eigh(matrix)
    eigenvalues = np.maximum(eigenvalues, 1e-8)
    fixed = eigenvectors @ np.diag(eigenvalues) @ eigenvectors.T
    d = np.sqrt(np.diag(fixed))
    fixed = fixed / np.outer(d, d)
    np.fill_diagonal(fixed, 1.0)
    return fixed


def return_inflation_matrix(rho: float) -> np.ndarray:
    """2x2 correlation matrix for (market_return, inflation)."""
    rho = float(np.clip(rho, -1.0, 1.0))
    return _ensure_positive_definite(np.array([[1.0, rho], [rho, 1.0]]))
