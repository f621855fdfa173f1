from __future__ import annotations

import logging

import numpy as np
import pytest

from ipcov_smear import CovarianceLibrary, MappingParametrisation
from ipcov_smear.covariance.corrections import convert_units_to_gev
from ipcov_smear.data.schema import D0, QOVERP, Z0, covmat_name


def test_all_bins_loaded(library, bin_table):
    assert len(library) == (bin_table.n_pt + 1) * bin_table.n_eta
    assert sorted(library.available_bins())[0] == (-1, 0)


def test_units_converted(library, matrices):
    stored = library.covariance(2, 3)
    raw = matrices[covmat_name(2, 3)]
    assert stored[QOVERP, QOVERP] == pytest.approx(raw[QOVERP, QOVERP] * 1e6)
    np.testing.assert_allclose(stored, convert_units_to_gev(raw))


def test_low_pt_bin_inflates_bin_zero(library):
    for eta_bin in range(library.bins.n_eta):
        low = library.covariance(-1, eta_bin)
        first = library.covariance(0, eta_bin)
        assert low[D0, D0] == pytest.approx(2.0**2 * first[D0, D0])
        assert low[Z0, Z0] == pytest.approx(2.0**2 * first[Z0, Z0])
        assert low[QOVERP, QOVERP] == pytest.approx(first[QOVERP, QOVERP])


def test_smear_multiple_scales_every_matrix(source, bin_table, library):
    scaled = CovarianceLibrary.from_source(source, bin_table, smear_multiple=2.5)
    for key in library.available_bins():
        np.testing.assert_allclose(scaled.covariance(*key), 2.5 * library.covariance(*key))


def test_missing_bins_left_unset(matrices, bin_table, caplog):
    partial = dict(matrices)
    del partial[covmat_name(0, 5)]
    del partial[covmat_name(4, 8)]

    with caplog.at_level(logging.INFO, logger="ipcov_smear.covariance.library"):
        library = CovarianceLibrary.from_source(MappingParametrisation(partial), bin_table)

    # pt bin 0 also feeds the low-pt bin
    assert not library.has(0, 5)
    assert not library.has(-1, 5)
    assert not library.has(4, 8)
    assert library.covariance(4, 8) is None
    assert len(library) == (bin_table.n_pt + 1) * bin_table.n_eta - 3
    assert "no smearing defined for pt-eta 4 8" in caplog.text
    assert "no smearing defined for pt-eta -1 5" in caplog.text


def test_stored_matrices_are_read_only(library):
    with pytest.raises(ValueError):
        library.covariance(1, 1)[0, 0] = 1.0


@pytest.mark.parametrize("pt_bin, eta_bin", [(-2, 0), (8, 0), (0, -1), (0, 9)])
def test_out_of_table(library, pt_bin, eta_bin):
    with pytest.raises(IndexError):
        library.has(pt_bin, eta_bin)


def test_from_file(param_file, library):
    from_file = CovarianceLibrary.from_file(param_file)
    for key in library.available_bins():
        np.testing.assert_allclose(from_file.covariance(*key), library.covariance(*key), rtol=1e-12)
