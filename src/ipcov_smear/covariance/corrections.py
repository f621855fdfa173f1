"""
Corrections applied to every covariance matrix read from a parametrisation.

Both corrections act by congruence, ``S^T C S`` with a diagonal ``S``, so a
matrix entry (i, j) picks up the factor ``s_i * s_j``.
"""

from __future__ import annotations

import numpy as np

from ipcov_smear.data.config import LOW_PT_UNCERTAINTY_MULTIPLIER, MEV_TO_GEV
from ipcov_smear.data.schema import D0, N_PARAMS, QOVERP, Z0


def congruence(matrix: np.ndarray, scales: np.ndarray) -> np.ndarray:
    """Return ``diag(scales) @ matrix @ diag(scales)``."""
    scale_matrix = np.diag(np.asarray(scales, dtype=float))
    return scale_matrix.T @ matrix @ scale_matrix


def convert_units_to_gev(matrix: np.ndarray) -> np.ndarray:
    """Convert the q/p row and column from 1/MeV to 1/GeV."""
    scales = np.ones(N_PARAMS)
    scales[QOVERP] = MEV_TO_GEV
    return congruence(matrix, scales)


def inflate_low_pt(
    matrix: np.ndarray, multiplier: float = LOW_PT_UNCERTAINTY_MULTIPLIER
) -> np.ndarray:
    """Enlarge the d0 and z0 uncertainties for tracks below the lowest pt edge.

    The measured bins start at the first pt edge; the low-pt bin reuses the
    first bin's matrix with d0 and z0 widths scaled by ``multiplier``.
    """
    scales = np.ones(N_PARAMS)
    scales[[D0, Z0]] = multiplier
    return congruence(matrix, scales)
