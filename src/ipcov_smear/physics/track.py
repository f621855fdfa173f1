from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ipcov_smear.covariance.parametrisation import pack_lower_triangle
from ipcov_smear.data.schema import D0, PERIGEE_PARAMS, PHI, QOVERP, THETA, Z0


@dataclass(frozen=True)
class TrackState:
    """Kinematic view of a track: momentum, charge and perigee displacement."""

    pt: float
    eta: float
    phi: float
    mass: float
    charge: int
    xd: float = 0.0
    yd: float = 0.0
    zd: float = 0.0

    @property
    def px(self) -> float:
        return self.pt * np.cos(self.phi)

    @property
    def py(self) -> float:
        return self.pt * np.sin(self.phi)


@dataclass(frozen=True, eq=False)
class SmearedTrack:
    """A smeared track together with its resolution model.

    ``truth`` is the unsmeared input; ``covariance`` and ``bins`` describe the
    resolution bin the smearing was drawn from.
    """

    state: TrackState
    truth: TrackState
    perigee: np.ndarray = field(repr=False)
    covariance: np.ndarray = field(repr=False)
    bins: tuple[int, int]

    @property
    def d0(self) -> float:
        return float(self.perigee[D0])

    @property
    def z0(self) -> float:
        return float(self.perigee[Z0])

    @property
    def uncertainties(self) -> np.ndarray:
        # abs() only removes -0.0 style noise on the diagonal
        return np.sqrt(np.abs(np.diag(self.covariance)))

    @property
    def d0_err(self) -> float:
        return float(self.uncertainties[D0])

    @property
    def z0_err(self) -> float:
        return float(self.uncertainties[Z0])

    @property
    def phi_err(self) -> float:
        return float(self.uncertainties[PHI])

    @property
    def theta_err(self) -> float:
        return float(self.uncertainties[THETA])

    @property
    def qoverp_err(self) -> float:
        return float(self.uncertainties[QOVERP])

    @property
    def packed_covariance(self) -> np.ndarray:
        return pack_lower_triangle(self.covariance)

    def uncertainty_dict(self) -> dict[str, float]:
        return {
            f"{name}_err": float(value)
            for name, value in zip(PERIGEE_PARAMS, self.uncertainties)
        }
