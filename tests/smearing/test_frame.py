from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from ipcov_smear import GaussianSampler, SmearingEngine, smear_tracks
from ipcov_smear.data.schema import COVARIANCE_OUT_COLS, TRACK_COLS, UNCERTAINTY_COLS


@pytest.fixture
def tracks(make_track) -> pd.DataFrame:
    states = [
        make_track(pt=15.0, eta=0.2, phi=0.1),
        make_track(pt=60.0, eta=-1.9, phi=-2.0, charge=-1),
        make_track(pt=8.0, eta=1.0, phi=2.5, d0=-0.1),
        make_track(pt=300.0, eta=0.95, phi=1.0),
    ]
    df = pd.DataFrame([{col: getattr(state, col) for col in TRACK_COLS} for state in states])
    df["event"] = [0, 0, 1, 1]
    return df


def test_zero_noise_keeps_kinematics(zero_engine, tracks):
    result = smear_tracks(tracks, zero_engine, info=False)

    for col in ("pt", "eta", "phi", "xd", "yd", "zd", "mass"):
        np.testing.assert_allclose(result[col], tracks[col], rtol=1e-9, atol=1e-12)
    np.testing.assert_array_equal(result["charge"], tracks["charge"])
    np.testing.assert_array_equal(result["event"], tracks["event"])
    np.testing.assert_allclose(result["z0"], tracks["zd"])


def test_output_columns(engine, tracks):
    result = smear_tracks(tracks, engine, info=False)

    assert len(result) == len(tracks)
    for col in ("d0", "z0", *UNCERTAINTY_COLS, *COVARIANCE_OUT_COLS):
        assert col in result.columns
    assert (result["d0_err"] > 0).all()
    np.testing.assert_allclose(result["cov_d0d0"], result["d0_err"] ** 2)


def test_input_frame_not_modified(engine, tracks):
    original = tracks.copy(deep=True)
    smear_tracks(tracks, engine, info=False)
    pd.testing.assert_frame_equal(tracks, original)


def test_rows_smeared_in_order(library, tracks, make_track):
    result = smear_tracks(tracks, SmearingEngine(library, GaussianSampler(seed=9)), info=False)

    reference = SmearingEngine(library, GaussianSampler(seed=9))
    for row, (_, out) in zip(tracks.itertuples(index=False), result.iterrows()):
        state = reference.smear(
            make_track(pt=row.pt, eta=row.eta, phi=row.phi, charge=row.charge)
        ).state
        assert out["pt"] == pytest.approx(state.pt)
        assert out["eta"] == pytest.approx(state.eta)


def test_diagnostics_logged(engine, tracks, caplog):
    with caplog.at_level(logging.INFO, logger="ipcov_smear.smearing.frame"):
        smear_tracks(tracks, engine, info=True)
    assert "SMEARING DIFFERENCES" in caplog.text
    assert "d0_diff mean" in caplog.text


def test_missing_columns(engine, tracks):
    with pytest.raises(ValueError, match="charge"):
        smear_tracks(tracks.drop(columns="charge"), engine)


def test_empty_frame(engine):
    empty = pd.DataFrame(columns=list(TRACK_COLS))
    result = smear_tracks(empty, engine)
    assert result.empty
    assert "d0" in result.columns
