"""
hybridfg/linear/elimination.py

Joint elimination of a group of continuous frontals from Jacobian factors.

The factors are stacked into one augmented matrix with the frontal columns
first and the separator (ascending key order) after them:

    [A_F  A_S | b]  --QR-->  [ R   S    | d      ]   rows 0 .. n_F
                             [ 0   A'   | b'     ]   rows n_F .. n_F + n_S
                             [ 0   0    | b_tail ]   remaining rows

giving the conditional (R, S, d) and the remaining factor (A', b') on the
separator. Their product is the input potential exactly when the
remaining factor carries

    c' = Σ c_i + ½‖b_tail‖² + log|det R| − (n_F/2) log 2π.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from scipy.linalg import qr

from hybridfg.core.keys import key_names
from hybridfg.errors import DisconnectedVariableError, SingularSystemError
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.jacobian import JacobianFactor, collect_dims, stack_augmented

_LOG_2PI = float(np.log(2.0 * np.pi))


def eliminate_gaussian(
    factors: Sequence[JacobianFactor],
    frontals: Sequence[int],
    rank_tolerance: float = 1e-10,
) -> Tuple[GaussianConditional, JacobianFactor]:
    """
    Eliminate `frontals` jointly.

    Returns:
        (conditional on the separator, remaining factor over the separator;
        keyless when the separator is empty)

    Raises:
        DisconnectedVariableError: a frontal key appears in no factor
        SingularSystemError: the frontal block is rank deficient
    """
    factors = list(factors)
    frontals = tuple(frontals)
    dims = collect_dims(factors)
    missing = [k for k in frontals if k not in dims]
    if missing:
        raise DisconnectedVariableError(
            f"frontal keys {key_names(missing)} do not appear in any factor", key=missing[0]
        )

    fset = set(frontals)
    separator = tuple(sorted(k for k in dims if k not in fset))
    order = frontals + separator
    n_f = sum(dims[k] for k in frontals)
    n = n_f + sum(dims[k] for k in separator)

    Ab, _ = stack_augmented(factors, order, dims)
    if Ab.shape[0] > 0:
        R = qr(Ab, mode="r", check_finite=True)[0]
    else:
        R = np.zeros((0, n + 1))
    R = R[: n + 1]
    if R.shape[0] < n + 1:
        R = np.vstack([R, np.zeros((n + 1 - R.shape[0], n + 1))])

    diag = np.abs(np.diag(R[:n_f, :n_f]))
    scale = max(float(diag.max()) if diag.size else 0.0, np.finfo(np.float64).tiny)
    if np.any(diag <= rank_tolerance * scale):
        raise SingularSystemError(
            f"frontal block {key_names(frontals)} is rank deficient "
            f"(min |diag R| = {diag.min():.3e})"
        )

    # Canonical sign: positive diagonal on the frontal rows.
    signs = np.sign(np.diag(R[:n_f, :n_f]))
    R[:n_f] *= signs[:, None]

    R_f = R[:n_f, :n_f]
    d = R[:n_f, n]
    S = _split_columns(R[:n_f, n_f:n], separator, dims)
    conditional = GaussianConditional(frontals, [dims[k] for k in frontals], R_f, separator, S, d)

    b_tail = R[n:, n]
    constant = (
        sum(f.constant for f in factors)
        + 0.5 * float(b_tail @ b_tail)
        + conditional.log_determinant()
        - 0.5 * n_f * _LOG_2PI
    )

    if not separator:
        return conditional, JacobianFactor.constant_factor(constant)

    A_rem = R[n_f:n, n_f:n]
    b_rem = R[n_f:n, n]
    keep = np.any(A_rem != 0.0, axis=1) | (b_rem != 0.0)
    remaining = JacobianFactor(
        separator, _split_columns(A_rem[keep], separator, dims), b_rem[keep], constant
    )
    return conditional, remaining


def _split_columns(M: np.ndarray, keys: Sequence[int], dims) -> List[np.ndarray]:
    blocks = []
    offset = 0
    for k in keys:
        blocks.append(M[:, offset:offset + dims[k]])
        offset += dims[k]
    return blocks
