"""
Track smearing with correlated Gaussian noise from the binned covariances.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ipcov_smear.binning import BinTable
from ipcov_smear.covariance.cholesky import BinResolver, CholeskyCache
from ipcov_smear.covariance.library import CovarianceLibrary
from ipcov_smear.covariance.parametrisation import TfsParametrisation
from ipcov_smear.data.config import SmearingSettings
from ipcov_smear.physics.perigee import from_perigee, to_perigee
from ipcov_smear.physics.track import SmearedTrack
from ipcov_smear.smearing.sampler import GaussianSampler

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Iterable, Iterator

    from ipcov_smear.covariance.parametrisation import ParametrisationSource
    from ipcov_smear.physics.track import TrackState

LOGGER = logging.getLogger(__name__)


class SmearingEngine:
    """Smear tracks one at a time.

    The covariance library and its Cholesky factors are fixed once the engine
    is built; the only state that changes while smearing is the sampler's
    generator and the bin-miss count.
    """

    def __init__(self, library: CovarianceLibrary, sampler: GaussianSampler | None = None) -> None:
        self.library = library
        self.bins = library.bins
        self.cache = CholeskyCache(library)
        self.resolver = BinResolver(self.cache)
        self.sampler = sampler or GaussianSampler()

    @classmethod
    def from_settings(
        cls,
        settings: SmearingSettings | None = None,
        source: ParametrisationSource | None = None,
    ) -> SmearingEngine:
        """Build an engine from settings.

        ``source`` replaces reading ``settings.param_file`` when given.
        """
        settings = settings or SmearingSettings()
        if source is None:
            source = TfsParametrisation.read(settings.param_file)
        library = CovarianceLibrary.from_source(
            source,
            bins=BinTable(settings.pt_edges, settings.eta_edges),
            smear_multiple=settings.smear_multiple,
            low_pt_multiplier=settings.low_pt_multiplier,
        )
        return cls(library, GaussianSampler(seed=settings.seed))

    @property
    def bin_misses(self) -> int:
        return self.resolver.bin_misses

    def resolve_bins(self, track: TrackState) -> tuple[int, int]:
        pt_bin, eta_bin = self.bins.locate(track.pt, track.eta)
        # |eta| == first edge exactly is still the most central bin
        return self.resolver.resolve(pt_bin, max(eta_bin, 0))

    def smear(self, track: TrackState) -> SmearedTrack:
        bins = self.resolve_bins(track)
        factor = self.cache.factor(*bins)
        covariance = self.cache.covariance(*bins)

        params = to_perigee(track)
        smeared = params + factor @ self.sampler.draw()

        return SmearedTrack(
            state=from_perigee(smeared, track),
            truth=track,
            perigee=smeared,
            covariance=covariance,
            bins=bins,
        )

    def smear_many(self, tracks: Iterable[TrackState]) -> Iterator[SmearedTrack]:
        for track in tracks:
            yield self.smear(track)

    def finish(self) -> int:
        """Report the bin-miss count of the run and return it."""
        if self.bin_misses:
            LOGGER.warning("PROBLEM: %d bin misses in track smearing", self.bin_misses)
        else:
            LOGGER.info("No bin misses in track smearing")
        return self.bin_misses
