"""Track kinematics and the perigee parametrisation."""

from __future__ import annotations

__all__ = [
    "perigee",
    "track",
]
