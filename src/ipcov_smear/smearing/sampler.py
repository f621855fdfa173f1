from __future__ import annotations

import numpy as np

from ipcov_smear.data.schema import N_PARAMS


def get_rng(rng: np.random.Generator | None, seed: int | None = None) -> np.random.Generator:
    return rng or np.random.default_rng(seed)


class GaussianSampler:
    """Independent standard-normal perigee vectors from one shared generator.

    Draws are consumed in call order, so a fixed seed and a fixed track order
    reproduce the same smearing.
    """

    def __init__(self, rng: np.random.Generator | None = None, seed: int | None = None) -> None:
        if rng is not None and seed is not None:
            raise ValueError("Pass either a generator or a seed, not both")
        self.rng = get_rng(rng, seed)

    def draw(self) -> np.ndarray:
        return self.rng.standard_normal(N_PARAMS)
