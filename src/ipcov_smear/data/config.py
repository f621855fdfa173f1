"""Configuration constants for track parameter smearing."""

from __future__ import annotations

from dataclasses import dataclass

# Lower edges of the measured pt bins (GeV).
PT_BIN_EDGES: tuple[float, ...] = (10, 20, 50, 100, 200, 250, 500, 750)

# Lower edges of the measured |eta| bins.
ETA_BIN_EDGES: tuple[float, ...] = (0.0, 0.4, 0.8, 1.05, 1.5, 1.7, 2.0, 2.25, 2.7)

# d0/z0 uncertainty increase below the lowest pt edge.
LOW_PT_UNCERTAINTY_MULTIPLIER = 2.0

# The parametrisation stores q/p in 1/MeV.
MEV_TO_GEV = 1000.0

DEFAULT_SMEAR_MULTIPLE = 1.0
DEFAULT_PARAM_FILE = "Parametrisation/IDParametrisierung.tfs"


@dataclass(frozen=True)
class SmearingSettings:
    """Inputs needed to build a smearing engine.

    No parametrisation ships with the package: ``param_file`` must name an
    existing TFS parametrisation, the default is resolved relative to the
    working directory like a run card entry.
    """

    smear_multiple: float = DEFAULT_SMEAR_MULTIPLE
    param_file: str = DEFAULT_PARAM_FILE
    pt_edges: tuple[float, ...] = PT_BIN_EDGES
    eta_edges: tuple[float, ...] = ETA_BIN_EDGES
    low_pt_multiplier: float = LOW_PT_UNCERTAINTY_MULTIPLIER
    seed: int | None = None
