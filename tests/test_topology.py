"""
Tests for factor graph structure, orderings and elimination trees.
"""

import pytest

from hybridfg.core.keys import M, X
from hybridfg.errors import DisconnectedVariableError
from hybridfg.models.switching import Switching
from hybridfg.topology.elimination_tree import EliminationTree, Ordering
from hybridfg.topology.structure import FactorDef, FactorGraphStructure


class TestFactorGraphStructure:
    def test_factor_def_canonicalizes_scope(self):
        fdef = FactorDef(0, (X(2), X(1)))
        assert fdef.scope == (X(1), X(2))

    def test_incidence(self):
        struct = FactorGraphStructure()
        struct.add_factor(0, (X(1), X(2)))
        struct.add_factor(1, (X(2), X(3)))

        assert struct.get_scope(0) == (X(1), X(2))
        assert struct.factors_containing(X(2)) == [0, 1]
        assert struct.factors_containing(X(9)) == []
        assert struct.all_keys() == [X(1), X(2), X(3)]

    def test_key_components(self):
        struct = FactorGraphStructure()
        struct.add_factor(0, (X(1), X(2)))
        struct.add_factor(1, (X(3),))
        struct.add_factor(2, (M(1), X(3)))

        components = struct.key_components()
        assert components == [(M(1), X(3)), (X(1), X(2))]

    def test_empty_components(self):
        assert FactorGraphStructure().key_components() == []


class TestOrdering:
    def test_groups(self):
        ordering = Ordering([X(1), (X(2), X(3))])
        assert len(ordering) == 2
        assert ordering.groups == ((X(1),), (X(2), X(3)))
        assert ordering.keys() == (X(1), X(2), X(3))
        assert ordering.position(X(3)) == 1
        assert ordering.rank(X(3)) == 2
        assert X(2) in ordering
        assert M(1) not in ordering

    def test_duplicate_key_raises(self):
        with pytest.raises(ValueError):
            Ordering([X(1), (X(2), X(1))])

    def test_empty_group_raises(self):
        with pytest.raises(ValueError):
            Ordering([()])

    def test_coerce(self):
        ordering = Ordering([X(1)])
        assert Ordering.coerce(ordering) is ordering
        assert Ordering.coerce([X(1)]).keys() == (X(1),)

    def test_repr(self):
        assert repr(Ordering([X(1), (X(2), X(3))])) == "Ordering([x1, (x2, x3)])"


class TestEliminationTree:
    @pytest.fixture
    def switching_graph(self):
        return Switching(3).linearized_factor_graph

    def test_chain_has_single_root(self, switching_graph):
        etree = EliminationTree(switching_graph, [X(1), X(2), X(3)])
        assert etree.roots() == [(X(3),)]
        assert etree.parent((X(1),)) == (X(2),)
        assert etree.parent((X(2),)) == (X(3),)
        assert etree.children((X(3),)) == [(X(2),)]
        assert etree.postorder() == [(X(1),), (X(2),), (X(3),)]

    def test_separators(self, switching_graph):
        etree = EliminationTree(switching_graph, [X(1), X(2), X(3)])
        assert etree.separator((X(1),)) == (M(1), X(2))
        assert etree.separator((X(2),)) == (M(1), M(2), X(3))
        assert etree.separator((X(3),)) == (M(1), M(2))

    def test_factor_assignment(self, switching_graph):
        etree = EliminationTree(switching_graph, [X(1), X(2), X(3)])
        # prior + measurement on x1 + mixture(x1, x2)
        assert len(etree.factors((X(1),))) == 3
        # discrete factors touch no ordered key
        assert len(etree.remaining_factors) == 2

    def test_disconnected_key_raises(self, switching_graph):
        with pytest.raises(DisconnectedVariableError) as info:
            EliminationTree(switching_graph, [X(1), X(7)])
        assert info.value.key == X(7)

    def test_independent_groups_are_roots(self):
        struct_graph = Switching(1).linearized_factor_graph
        etree = EliminationTree(struct_graph, [X(1)])
        assert etree.roots() == [(X(1),)]
        assert etree.children((X(1),)) == []
