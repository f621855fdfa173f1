"""
Common pytest fixtures for the smearing tests.

Covariance matrices are synthetic but realistic in scale: d0/z0 in mm,
angles in rad and q/p in 1/MeV, the native unit of a parametrisation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest

from ipcov_smear import (
    BinTable,
    CovarianceLibrary,
    GaussianSampler,
    MappingParametrisation,
    SmearingEngine,
    TrackState,
    write_parametrisation,
)
from ipcov_smear.data.schema import N_PARAMS, covmat_name

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

SIGMAS = np.array([0.01, 0.05, 2e-4, 3e-4, 1e-7])


def make_covariance(seed: int, scale: float = 1.0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    a = rng.normal(size=(N_PARAMS, N_PARAMS))
    spd = a @ a.T + N_PARAMS * np.eye(N_PARAMS)
    norm = np.sqrt(np.diag(spd))
    corr = spd / np.outer(norm, norm)
    sigmas = SIGMAS * scale
    return corr * np.outer(sigmas, sigmas)


class FixedSampler:
    """Sampler returning the same noise vector on every draw."""

    def __init__(self, noise) -> None:
        self.noise = np.asarray(noise, dtype=float)
        self.calls = 0

    def draw(self) -> np.ndarray:
        self.calls += 1
        return self.noise.copy()


@pytest.fixture(scope="session")
def bin_table() -> BinTable:
    return BinTable()


@pytest.fixture(scope="session")
def matrices(bin_table: BinTable) -> dict[str, np.ndarray]:
    """One matrix per physical (pt, eta) bin, widening with |eta|."""
    out = {}
    for pt_bin in range(bin_table.n_pt):
        for eta_bin in bin_table.eta_bins():
            seed = 100 * pt_bin + eta_bin
            out[covmat_name(pt_bin, eta_bin)] = make_covariance(seed, 1.0 + 0.2 * eta_bin)
    return out


@pytest.fixture
def source(matrices) -> MappingParametrisation:
    return MappingParametrisation(matrices)


@pytest.fixture
def library(source, bin_table) -> CovarianceLibrary:
    return CovarianceLibrary.from_source(source, bin_table)


@pytest.fixture
def engine(library) -> SmearingEngine:
    return SmearingEngine(library, GaussianSampler(seed=42))


@pytest.fixture
def zero_engine(library) -> SmearingEngine:
    return SmearingEngine(library, FixedSampler(np.zeros(N_PARAMS)))


@pytest.fixture
def fixed_sampler() -> Callable[..., FixedSampler]:
    return FixedSampler


@pytest.fixture
def param_file(tmp_path: Path, matrices) -> Path:
    return write_parametrisation(tmp_path / "parametrisation.tfs", matrices)


@pytest.fixture(scope="session")
def make_track() -> Callable[..., TrackState]:
    """Build a track whose displacement sits at its perigee.

    ``xd, yd`` are placed perpendicular to the momentum so that ``d0`` fully
    describes them.
    """

    def _make_track(
        pt: float = 50.0,
        eta: float = 0.5,
        phi: float = 0.3,
        charge: int = 1,
        d0: float = 0.02,
        z0: float = -1.5,
        mass: float = 0.13957,
    ) -> TrackState:
        return TrackState(
            pt=pt,
            eta=eta,
            phi=phi,
            mass=mass,
            charge=charge,
            xd=d0 * np.sin(phi),
            yd=-d0 * np.cos(phi),
            zd=z0,
        )

    return _make_track
