"""
Per-bin measurement covariance matrices.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from ipcov_smear.binning import BinTable
from ipcov_smear.covariance.corrections import convert_units_to_gev, inflate_low_pt
from ipcov_smear.covariance.parametrisation import TfsParametrisation
from ipcov_smear.data.config import DEFAULT_SMEAR_MULTIPLE, LOW_PT_UNCERTAINTY_MULTIPLIER
from ipcov_smear.data.schema import BELOW_LOWEST_BIN, N_PARAMS, covmat_name

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Iterator
    from pathlib import Path

    from ipcov_smear.covariance.parametrisation import ParametrisationSource

LOGGER = logging.getLogger(__name__)


def load_bin_matrix(
    source: ParametrisationSource,
    pt_bin: int,
    eta_bin: int,
    low_pt_multiplier: float = LOW_PT_UNCERTAINTY_MULTIPLIER,
) -> np.ndarray | None:
    """Read and correct the matrix of one bin, ``None`` if the source lacks it.

    The low-pt bin has no matrix of its own: it reads pt bin 0 and inflates
    the impact-parameter uncertainties.
    """
    low_pt = pt_bin == BELOW_LOWEST_BIN
    name = covmat_name(0 if low_pt else pt_bin, eta_bin)
    matrix = source.get_matrix(name)
    if matrix is None:
        return None

    matrix = convert_units_to_gev(matrix)
    if low_pt:
        matrix = inflate_low_pt(matrix, low_pt_multiplier)
    return matrix


class CovarianceLibrary:
    """Corrected covariance matrices for every (pt, eta) bin of a ``BinTable``.

    Storage is dense, ``(n_pt + 1, n_eta, 5, 5)``, with a presence mask; row
    ``pt_bin + 1`` holds ``pt_bin`` so the low-pt bin sits in row 0. Bins the
    source does not define stay unset.
    """

    def __init__(self, bins: BinTable) -> None:
        self.bins = bins
        shape = (bins.n_pt + 1, bins.n_eta)
        self._matrices = np.full(shape + (N_PARAMS, N_PARAMS), np.nan)
        self._present = np.zeros(shape, dtype=bool)

    @classmethod
    def from_source(
        cls,
        source: ParametrisationSource,
        bins: BinTable | None = None,
        smear_multiple: float = DEFAULT_SMEAR_MULTIPLE,
        low_pt_multiplier: float = LOW_PT_UNCERTAINTY_MULTIPLIER,
    ) -> CovarianceLibrary:
        library = cls(bins or BinTable())
        for pt_bin in library.bins.pt_bins():
            for eta_bin in library.bins.eta_bins():
                matrix = load_bin_matrix(source, pt_bin, eta_bin, low_pt_multiplier)
                if matrix is None:
                    LOGGER.info("no smearing defined for pt-eta %d %d", pt_bin, eta_bin)
                    continue
                library._store(pt_bin, eta_bin, matrix * smear_multiple)

        library._matrices.flags.writeable = False
        LOGGER.info(
            "Loaded %d of %d covariance bins (smearing multiple %g)",
            len(library),
            library._present.size,
            smear_multiple,
        )
        return library

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> CovarianceLibrary:
        return cls.from_source(TfsParametrisation.read(path), **kwargs)

    def _row(self, pt_bin: int, eta_bin: int) -> int:
        if not BELOW_LOWEST_BIN <= pt_bin < self.bins.n_pt:
            raise IndexError(f"pt bin {pt_bin} outside table of {self.bins.n_pt} bins")
        if not 0 <= eta_bin < self.bins.n_eta:
            raise IndexError(f"eta bin {eta_bin} outside table of {self.bins.n_eta} bins")
        return pt_bin - BELOW_LOWEST_BIN

    def _store(self, pt_bin: int, eta_bin: int, matrix: np.ndarray) -> None:
        row = self._row(pt_bin, eta_bin)
        self._matrices[row, eta_bin] = matrix
        self._present[row, eta_bin] = True

    def __len__(self) -> int:
        return int(self._present.sum())

    def has(self, pt_bin: int, eta_bin: int) -> bool:
        return bool(self._present[self._row(pt_bin, eta_bin), eta_bin])

    def covariance(self, pt_bin: int, eta_bin: int) -> np.ndarray | None:
        """Stored matrix of a bin (read-only view), or ``None`` if unset."""
        if not self.has(pt_bin, eta_bin):
            return None
        return self._matrices[self._row(pt_bin, eta_bin), eta_bin]

    def available_bins(self) -> Iterator[tuple[int, int]]:
        for row, eta_bin in zip(*np.nonzero(self._present)):
            yield int(row) + BELOW_LOWEST_BIN, int(eta_bin)
