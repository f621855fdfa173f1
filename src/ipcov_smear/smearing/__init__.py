"""Per-track smearing with the binned covariance parametrisation."""

from __future__ import annotations

__all__ = [
    "engine",
    "frame",
    "sampler",
]
