"""
Readers and writers for the binned covariance parametrisation.

A parametrisation is a collection of named symmetric 5x5 matrices, one per
(pt, eta) bin. On disk it is a TFS table with one row per matrix, indexed by
``NAME``, holding the lower triangle in the ``COVARIANCE_COLS`` columns.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import numpy as np
import pandas as pd
import tfs

from ipcov_smear.data.schema import COVARIANCE_COLS, LOWER_TRIANGLE, N_PARAMS, NAME

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Mapping

LOGGER = logging.getLogger(__name__)


class ParametrisationSource(Protocol):
    def get_matrix(self, name: str) -> np.ndarray | None:
        """Return the named matrix, or ``None`` if the source has none."""


def pack_lower_triangle(matrix: np.ndarray) -> np.ndarray:
    """Flatten the lower triangle of a 5x5 matrix, row by row."""
    rows, cols = zip(*LOWER_TRIANGLE)
    return np.asarray(matrix, dtype=float)[list(rows), list(cols)]


def unpack_lower_triangle(values) -> np.ndarray:
    """Rebuild the symmetric 5x5 matrix from its packed lower triangle."""
    values = np.asarray(values, dtype=float)
    if values.shape != (len(LOWER_TRIANGLE),):
        raise ValueError(
            f"Expected {len(LOWER_TRIANGLE)} lower-triangle values, got shape {values.shape}"
        )
    matrix = np.zeros((N_PARAMS, N_PARAMS))
    rows, cols = zip(*LOWER_TRIANGLE)
    matrix[list(rows), list(cols)] = values
    matrix[list(cols), list(rows)] = values
    return matrix


def _as_matrix(matrix, name: str) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape != (N_PARAMS, N_PARAMS):
        raise ValueError(f"Matrix {name} must be {N_PARAMS}x{N_PARAMS}, got {matrix.shape}")
    # Only the lower triangle is trusted, like the on-disk format
    return unpack_lower_triangle(pack_lower_triangle(matrix))


class MappingParametrisation:
    """Parametrisation held in memory as ``{name: matrix}``."""

    def __init__(self, matrices: Mapping[str, np.ndarray]) -> None:
        self._matrices = {name: _as_matrix(matrix, name) for name, matrix in matrices.items()}

    def __len__(self) -> int:
        return len(self._matrices)

    def get_matrix(self, name: str) -> np.ndarray | None:
        matrix = self._matrices.get(name)
        return None if matrix is None else matrix.copy()


class TfsParametrisation:
    """Parametrisation read from a TFS file."""

    def __init__(self, table: pd.DataFrame, source: str = "<table>") -> None:
        missing = set(COVARIANCE_COLS).difference(table.columns)
        if missing:
            raise ValueError(
                f"Corrupt parametrisation {source}, missing columns: {sorted(missing)}"
            )
        self.source = source
        self._table = table.loc[:, list(COVARIANCE_COLS)].astype(float)

    @classmethod
    def read(cls, path: str | Path) -> TfsParametrisation:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Parametrisation file not found: {path}")
        LOGGER.info("Reading smearing parametrisation from %s", path)
        return cls(tfs.read(path, index=NAME), source=str(path))

    def __len__(self) -> int:
        return len(self._table)

    def get_matrix(self, name: str) -> np.ndarray | None:
        if name not in self._table.index:
            return None
        return unpack_lower_triangle(self._table.loc[name].to_numpy())


def write_parametrisation(
    path: str | Path, matrices: Mapping[str, np.ndarray], headers: dict | None = None
) -> Path:
    """Write named 5x5 matrices in the TFS parametrisation format."""
    path = Path(path)
    names = list(matrices)
    rows = [pack_lower_triangle(_as_matrix(matrices[name], name)) for name in names]
    table = tfs.TfsDataFrame(
        np.asarray(rows, dtype=float).reshape(len(names), len(COVARIANCE_COLS)),
        index=pd.Index(names, name=NAME),
        columns=list(COVARIANCE_COLS),
        headers=headers or {},
    )
    # wide columns keep the full float64 precision of the matrices
    tfs.write(path, table, save_index=NAME, colwidth=30)
    LOGGER.debug("Wrote %d covariance matrices to %s", len(names), path)
    return path
