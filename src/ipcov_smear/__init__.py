"""Track impact-parameter and momentum smearing.

This package smears generator-level charged tracks with correlated Gaussian
noise drawn from a pt/eta-binned covariance parametrisation, and attaches
the covariance of the bin used to the smeared track.
"""

from __future__ import annotations

from .binning import BinTable
from .covariance.library import CovarianceLibrary
from .covariance.parametrisation import (
    MappingParametrisation,
    TfsParametrisation,
    write_parametrisation,
)
from .data.config import SmearingSettings
from .physics.track import SmearedTrack, TrackState
from .smearing.engine import SmearingEngine
from .smearing.frame import smear_tracks
from .smearing.sampler import GaussianSampler

__all__ = [
    "BinTable",
    "CovarianceLibrary",
    "GaussianSampler",
    "MappingParametrisation",
    "SmearedTrack",
    "SmearingEngine",
    "SmearingSettings",
    "TfsParametrisation",
    "TrackState",
    "smear_tracks",
    "write_parametrisation",
]
