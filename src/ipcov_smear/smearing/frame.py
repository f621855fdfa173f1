from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from ipcov_smear.data.schema import (
    COVARIANCE_OUT_COLS,
    D0,
    IP_COLS,
    TRACK_COLS,
    UNCERTAINTY_COLS,
)
from ipcov_smear.physics.perigee import to_perigee
from ipcov_smear.physics.track import TrackState

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from ipcov_smear.smearing.engine import SmearingEngine

LOGGER = logging.getLogger(__name__)

OUT_COLS = list(TRACK_COLS + IP_COLS + UNCERTAINTY_COLS + COVARIANCE_OUT_COLS)


def validate_input(df: pd.DataFrame) -> None:
    missing = set(TRACK_COLS).difference(df.columns)
    if missing:
        raise ValueError(f"Missing required column(s): {sorted(missing)}")


def _track_from_row(row) -> TrackState:
    return TrackState(
        pt=float(row.pt),
        eta=float(row.eta),
        phi=float(row.phi),
        mass=float(row.mass),
        charge=int(row.charge),
        xd=float(row.xd),
        yd=float(row.yd),
        zd=float(row.zd),
    )


def smear_tracks(
    orig_data: pd.DataFrame,
    engine: SmearingEngine,
    info: bool = True,
) -> pd.DataFrame:
    """Smear every track of a table, in row order.

    Args:
        orig_data: One row per track with the ``TRACK_COLS`` columns.
        engine: Engine providing the resolution model and the random draws.
        info: Whether to log diagnostics comparing input and output.

    Returns:
        Copy of ``orig_data`` with the kinematic columns replaced by the smeared
        values and ``d0``, ``z0``, uncertainty and covariance columns added.
    """
    LOGGER.info("Smearing %d tracks", len(orig_data))
    validate_input(orig_data)
    data = orig_data.copy(deep=True)

    records = []
    for row in orig_data[list(TRACK_COLS)].itertuples(index=False):
        smeared = engine.smear(_track_from_row(row))
        state = smeared.state
        record = {col: getattr(state, col) for col in TRACK_COLS}
        record["d0"] = smeared.d0
        record["z0"] = smeared.z0
        record.update(smeared.uncertainty_dict())
        record.update(zip(COVARIANCE_OUT_COLS, smeared.packed_covariance))
        records.append(record)

    smeared_df = pd.DataFrame(records, columns=OUT_COLS)
    for col in OUT_COLS:
        data[col] = smeared_df[col].to_numpy()

    diagnostics(orig_data, data, info)
    return data


def diagnostics(orig_data: pd.DataFrame, smeared: pd.DataFrame, info: bool) -> None:
    if not info or smeared.empty:
        return

    rows = orig_data[list(TRACK_COLS)].itertuples(index=False)
    true_d0 = np.array([to_perigee(_track_from_row(row))[D0] for row in rows])
    pt_rel = (smeared["pt"] - orig_data["pt"]) / orig_data["pt"]
    d0_diff = smeared["d0"] - true_d0
    z0_diff = smeared["z0"] - orig_data["zd"]

    LOGGER.info("SMEARING DIFFERENCES ------")
    LOGGER.info("pt_diff mean (rel) %s ± %s", pt_rel.abs().mean(), pt_rel.std())
    LOGGER.info("d0_diff mean %s ± %s", d0_diff.abs().mean(), d0_diff.std())
    LOGGER.info("z0_diff mean %s ± %s", z0_diff.abs().mean(), z0_diff.std())
    LOGGER.info(
        "d0 pull std %s, z0 pull std %s",
        (d0_diff / smeared["d0_err"]).std(),
        (z0_diff / smeared["z0_err"]).std(),
    )
