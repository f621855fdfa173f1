"""Binned covariance parametrisation of the track resolution."""

from __future__ import annotations

__all__ = [
    "cholesky",
    "corrections",
    "library",
    "parametrisation",
]
