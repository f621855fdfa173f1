"""
Mapping of continuous (pt, |eta|) values onto the measured resolution bins.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ipcov_smear.data.config import ETA_BIN_EDGES, PT_BIN_EDGES
from ipcov_smear.data.schema import BELOW_LOWEST_BIN


def _validate_edges(edges, label: str) -> tuple[float, ...]:
    values = tuple(float(edge) for edge in edges)
    if not values:
        raise ValueError(f"No {label} bin edges given")
    if np.any(np.diff(values) <= 0.0):
        raise ValueError(f"{label} bin edges must be strictly increasing: {values}")
    return values


def _lower_edge_index(edges: tuple[float, ...], value):
    # Greatest i with value > edges[i]; ties go to the lower bin
    return np.searchsorted(edges, value, side="left") - 1


@dataclass(frozen=True)
class BinTable:
    """Ordered pt and |eta| bin edges.

    A value that does not exceed the first edge maps to ``BELOW_LOWEST_BIN``.
    For pt this is the low-momentum regime, for |eta| it only happens at
    exactly ``eta_edges[0]``.
    """

    pt_edges: tuple[float, ...] = PT_BIN_EDGES
    eta_edges: tuple[float, ...] = ETA_BIN_EDGES

    def __post_init__(self) -> None:
        object.__setattr__(self, "pt_edges", _validate_edges(self.pt_edges, "pt"))
        object.__setattr__(self, "eta_edges", _validate_edges(self.eta_edges, "eta"))

    @property
    def n_pt(self) -> int:
        return len(self.pt_edges)

    @property
    def n_eta(self) -> int:
        return len(self.eta_edges)

    def pt_bin(self, pt):
        """Index of the pt bin, ``-1`` below the lowest edge.

        Accepts scalars or arrays.
        """
        index = _lower_edge_index(self.pt_edges, pt)
        return int(index) if np.ndim(index) == 0 else index

    def eta_bin(self, abs_eta):
        """Index of the |eta| bin, ``-1`` if not above the first edge."""
        index = _lower_edge_index(self.eta_edges, abs_eta)
        return int(index) if np.ndim(index) == 0 else index

    def locate(self, pt: float, eta: float) -> tuple[int, int]:
        return self.pt_bin(pt), self.eta_bin(abs(eta))

    def pt_bins(self) -> range:
        """All pt bins a library holds, including the low-pt one."""
        return range(BELOW_LOWEST_BIN, self.n_pt)

    def eta_bins(self) -> range:
        return range(self.n_eta)
