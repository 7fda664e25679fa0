"""
Topology module: factor incidence structure, orderings and elimination trees.
"""

from hybridfg.topology.structure import FactorDef, FactorGraphStructure
from hybridfg.topology.elimination_tree import EliminationTree, Ordering

__all__ = [
    "FactorDef",
    "FactorGraphStructure",
    "EliminationTree",
    "Ordering",
]
