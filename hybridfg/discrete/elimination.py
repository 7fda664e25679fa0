"""
hybridfg/discrete/elimination.py

Sum-product elimination of discrete keys.

    joint    = ⋆_i f_i              (Section product on the union domain)
    marginal = ρ_{U -> U \\ F} joint  (sum out the frontals)
    P(F | S) = joint / marginal

The conditional and the marginal multiply back to the joint, so the
factorization is exact.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from hybridfg.algebra.semiring import prob_semiring
from hybridfg.core.keys import key_names
from hybridfg.discrete.factor import DecisionTreeFactor, DiscreteConditional
from hybridfg.errors import DisconnectedVariableError, UnsupportedFactorKindError
from hybridfg.utils.logging import get_logger

logger = get_logger(__name__)


def eliminate_discrete(
    factors: Sequence[DecisionTreeFactor],
    frontals: Sequence[int],
) -> Tuple[DiscreteConditional, Optional[DecisionTreeFactor]]:
    """
    Eliminate discrete frontal keys from a set of discrete factors.

    Returns:
        (P(frontals | separator), marginal over the separator or None when
        the separator is empty)
    """
    factors = list(factors)
    for f in factors:
        if not isinstance(f, DecisionTreeFactor):
            raise UnsupportedFactorKindError(
                f"eliminate_discrete only accepts discrete factors, got {type(f).__name__}"
            )
    scope = {k for f in factors for k in f.keys()}
    for k in frontals:
        if k not in scope:
            raise DisconnectedVariableError(f"discrete key {key_names([k])[0]} is not in any factor", key=k)

    joint = factors[0].to_section(prob_semiring)
    for f in factors[1:]:
        joint = joint.star(f.to_section(prob_semiring))

    fset = set(frontals)
    separator = tuple(k for k in joint.domain if k not in fset)
    marginal = joint.restrict(separator)
    conditional = DiscreteConditional.from_joint_section(joint.divide(marginal), frontals)

    logger.debug(
        "eliminated discrete %s from %d factors, separator=%s",
        key_names(frontals), len(factors), key_names(separator),
    )
    if not separator:
        return conditional, None
    return conditional, DecisionTreeFactor.from_section(marginal)
