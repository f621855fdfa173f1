"""
Conversion between the kinematic track view and the perigee basis
``(d0, z0, phi, theta, qoverp)`` the covariance matrices are expressed in.
"""

from __future__ import annotations

import numpy as np

from ipcov_smear.data.schema import D0, N_PARAMS, PHI, QOVERP, THETA, Z0
from ipcov_smear.physics.track import TrackState


def theta_from_eta(eta):
    return 2.0 * np.arctan(np.exp(-eta))


def eta_from_theta(theta):
    return -np.log(np.tan(theta / 2.0))


def qoverp_from_pt(charge, pt, eta):
    return charge / (pt * np.cosh(eta))


def wrap_phi(phi):
    """Map an angle onto (-pi, pi]."""
    wrapped = np.arctan2(np.sin(phi), np.cos(phi))
    return np.where(wrapped <= -np.pi, np.pi, wrapped)


def to_perigee(track: TrackState) -> np.ndarray:
    """Perigee vector of a track.

    Momentum direction and phi are taken at the production vertex, not
    extrapolated to the perigee; the bending between the two is neglected.
    """
    if track.charge == 0:
        raise ValueError("Cannot express a neutral track in q/p")
    if not track.pt > 0.0:
        raise ValueError(f"Track pt must be positive, got {track.pt}")

    params = np.empty(N_PARAMS)
    params[D0] = (track.xd * track.py - track.yd * track.px) / track.pt
    params[Z0] = track.zd
    params[PHI] = track.phi
    params[THETA] = theta_from_eta(track.eta)
    params[QOVERP] = qoverp_from_pt(track.charge, track.pt, track.eta)
    return params


def from_perigee(params: np.ndarray, track: TrackState) -> TrackState:
    """Kinematic track for perigee ``params`` smeared from ``track``.

    The pt is recovered from q/p with the cosh of the *original* eta, and
    eta itself from the smeared theta. The displacement is rebuilt from d0
    along the direction perpendicular to the smeared phi.
    """
    smeared_pt = track.charge / (params[QOVERP] * np.cosh(track.eta))
    if not smeared_pt > 0.0:
        raise ValueError(
            f"Smeared pt must be positive, got {smeared_pt} (q/p={params[QOVERP]})"
        )
    with np.errstate(divide="ignore", invalid="ignore"):
        smeared_eta = eta_from_theta(params[THETA])
    if not np.isfinite(smeared_eta):
        raise ValueError(f"Smeared theta {params[THETA]} outside (0, pi)")

    phi_d0 = track.phi - np.pi / 2
    phi_d0_reco = phi_d0 + (params[PHI] - track.phi)
    return TrackState(
        pt=float(smeared_pt),
        eta=float(smeared_eta),
        phi=float(wrap_phi(params[PHI])),
        mass=track.mass,
        charge=track.charge,
        xd=float(params[D0] * np.cos(phi_d0_reco)),
        yd=float(params[D0] * np.sin(phi_d0_reco)),
        zd=float(params[Z0]),
    )
