"""
Cholesky factors of the binned covariances and the eta fallback between bins.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from ipcov_smear.data.schema import BELOW_LOWEST_BIN

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from ipcov_smear.covariance.library import CovarianceLibrary

LOGGER = logging.getLogger(__name__)

# Relative tolerance on eigenvalues and pivots, in units of the largest variance
PSD_RTOL = 1e-10


def is_positive_semidefinite(matrix: np.ndarray, rtol: float = PSD_RTOL) -> bool:
    scale = np.max(np.abs(np.diag(matrix)))
    if scale == 0.0:
        return bool(np.all(matrix == 0.0))
    return bool(np.linalg.eigvalsh(matrix).min() >= -rtol * scale)


def lower_cholesky(matrix: np.ndarray, rtol: float = PSD_RTOL) -> np.ndarray:
    """Lower-triangular ``L`` with ``L @ L.T == matrix`` for a PSD matrix.

    Singular matrices are allowed: a column whose pivot vanishes is left at
    zero, so a parameter without variance receives no noise.

    Raises:
        np.linalg.LinAlgError: If the matrix is not finite or not positive
            semi-definite.
    """
    matrix = np.asarray(matrix, dtype=float)
    if not np.isfinite(matrix).all():
        raise np.linalg.LinAlgError("Matrix has non-finite entries")
    if not is_positive_semidefinite(matrix, rtol):
        raise np.linalg.LinAlgError("Matrix is not positive semi-definite")

    try:
        return np.linalg.cholesky(matrix)
    except np.linalg.LinAlgError:
        pass

    size = matrix.shape[0]
    tol = rtol * np.max(np.abs(np.diag(matrix)))
    factor = np.zeros_like(matrix)
    for col in range(size):
        pivot = matrix[col, col] - factor[col, :col] @ factor[col, :col]
        if pivot <= tol:
            continue
        factor[col, col] = np.sqrt(pivot)
        factor[col + 1 :, col] = (
            matrix[col + 1 :, col] - factor[col + 1 :, :col] @ factor[col, :col]
        ) / factor[col, col]
    return factor


class CholeskyCache:
    """Lower-triangular ``L`` with ``L @ L.T == C`` for each usable bin.

    A correlated Gaussian draw for a bin is ``L @ r`` with ``r`` standard
    normal. Bins whose matrix is non-finite or not positive semi-definite
    are dropped and behave as if the parametrisation never defined them.
    """

    def __init__(self, library: CovarianceLibrary) -> None:
        self.library = library
        self._factors: dict[tuple[int, int], np.ndarray] = {}
        self.rejected: list[tuple[int, int]] = []

        for key in library.available_bins():
            try:
                factor = lower_cholesky(library.covariance(*key))
            except np.linalg.LinAlgError as err:
                LOGGER.warning("covariance for pt-eta %d %d dropped: %s", *key, err)
                self.rejected.append(key)
                continue
            factor.flags.writeable = False
            self._factors[key] = factor

        LOGGER.debug("Cholesky factors cached for %d bins", len(self._factors))

    def __len__(self) -> int:
        return len(self._factors)

    def __contains__(self, key: tuple[int, int]) -> bool:
        return key in self._factors

    def factor(self, pt_bin: int, eta_bin: int) -> np.ndarray:
        return self._factors[(pt_bin, eta_bin)]

    def covariance(self, pt_bin: int, eta_bin: int) -> np.ndarray:
        """Covariance the factor of this bin was computed from."""
        if (pt_bin, eta_bin) not in self._factors:
            raise KeyError(f"No usable covariance for pt-eta {pt_bin} {eta_bin}")
        return self.library.covariance(pt_bin, eta_bin)


class BinResolver:
    """Find the usable bin nearest to a requested one.

    Only eta falls back, one bin at a time towards the central region. A pt
    bin whose eta bin 0 is unusable means the parametrisation does not
    match the bin table and is a hard error.
    """

    def __init__(self, cache: CholeskyCache) -> None:
        self.cache = cache
        self.bin_misses = 0

    def resolve(self, pt_bin: int, eta_bin: int) -> tuple[int, int]:
        bins = self.cache.library.bins
        if not BELOW_LOWEST_BIN <= pt_bin < bins.n_pt:
            raise IndexError(f"pt bin {pt_bin} outside table of {bins.n_pt} bins")
        if not 0 <= eta_bin < bins.n_eta:
            raise IndexError(f"eta bin {eta_bin} outside table of {bins.n_eta} bins")

        requested = eta_bin
        while (pt_bin, eta_bin) not in self.cache:
            if eta_bin == 0:
                raise RuntimeError(f"no eta bins for pt bin: {pt_bin}")
            self.bin_misses += 1
            eta_bin -= 1

        if eta_bin != requested:
            LOGGER.debug(
                "pt-eta %d %d not available, using eta bin %d", pt_bin, requested, eta_bin
            )
        return pt_bin, eta_bin
