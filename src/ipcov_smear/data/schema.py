"""Names and indices of the perigee parametrisation."""

from __future__ import annotations

# Perigee parameter order used by every covariance matrix
PERIGEE_PARAMS = ("d0", "z0", "phi", "theta", "qoverp")
D0, Z0, PHI, THETA, QOVERP = range(len(PERIGEE_PARAMS))
N_PARAMS = len(PERIGEE_PARAMS)

# Sentinel for "below the lowest edge"
BELOW_LOWEST_BIN = -1

# Name of a bin's matrix inside the parametrisation source
COVMAT_NAME_FORMAT = "covmat_ptbin{pt:02d}_etabin{eta:02d}"
NAME = "NAME"

# Lower triangle, row-major: (row, col) pairs with row >= col
LOWER_TRIANGLE = tuple((row, col) for row in range(N_PARAMS) for col in range(row + 1))
COVARIANCE_COLS = tuple(
    f"{PERIGEE_PARAMS[row]}{PERIGEE_PARAMS[col]}".upper() for row, col in LOWER_TRIANGLE
)

# Track table columns
TRACK_COLS = ("pt", "eta", "phi", "mass", "charge", "xd", "yd", "zd")
IP_COLS = ("d0", "z0")
UNCERTAINTY_COLS = tuple(f"{param}_err" for param in PERIGEE_PARAMS)
COVARIANCE_OUT_COLS = tuple(f"cov_{col.lower()}" for col in COVARIANCE_COLS)


def covmat_name(pt_bin: int, eta_bin: int) -> str:
    return COVMAT_NAME_FORMAT.format(pt=pt_bin, eta=eta_bin)
