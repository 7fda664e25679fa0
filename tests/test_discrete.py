"""
Tests for keys, discrete assignments, decision trees and discrete factors.
"""

import numpy as np
import pytest

from hybridfg.core.keys import M, X, key_name, symbol, symbol_chr, symbol_index
from hybridfg.discrete.assignment import (
    DiscreteKey,
    assignment_index,
    cartesian_product,
    merge_discrete_keys,
)
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.discrete.elimination import eliminate_discrete
from hybridfg.discrete.factor import DecisionTreeFactor, DiscreteConditional, DiscretePrior
from hybridfg.errors import DisconnectedVariableError, UnsupportedFactorKindError
from hybridfg.linear.jacobian import JacobianFactor

M1, M2, M3 = DiscreteKey(M(1), 2), DiscreteKey(M(2), 2), DiscreteKey(M(3), 3)


class TestKeys:
    def test_symbol_roundtrip(self):
        k = symbol("x", 7)
        assert symbol_chr(k) == "x"
        assert symbol_index(k) == 7
        assert key_name(k) == "x7"

    def test_disjoint_spaces(self):
        assert X(1) != M(1)
        assert M(1) < M(2) < X(0)

    def test_plain_int_name(self):
        assert key_name(42) == "42"

    def test_bad_tag_raises(self):
        with pytest.raises(ValueError):
            symbol("xy", 1)


class TestAssignments:
    def test_cartesian_product_first_key_slowest(self):
        assignments = cartesian_product([M1, M2])
        assert assignments == [
            {M(1): 0, M(2): 0},
            {M(1): 0, M(2): 1},
            {M(1): 1, M(2): 0},
            {M(1): 1, M(2): 1},
        ]

    def test_empty_product(self):
        assert cartesian_product([]) == [{}]

    def test_assignment_index(self):
        keys = [M1, M3]
        for i, a in enumerate(cartesian_product(keys)):
            assert assignment_index(keys, a) == i

    def test_merge_sorted_descending(self):
        assert merge_discrete_keys([M1], [M2, M1]) == (M2, M1)

    def test_conflicting_cardinality_raises(self):
        with pytest.raises(ValueError):
            merge_discrete_keys([M1], [DiscreteKey(M(1), 3)])

    def test_bad_cardinality_raises(self):
        with pytest.raises(ValueError):
            DiscreteKey(M(1), 0)


class TestDecisionTree:
    def test_evaluation(self):
        tree = DecisionTree.from_function([M1, M2], lambda a: 10 * a[M(1)] + a[M(2)])
        assert tree({M(1): 1, M(2): 0}) == 10
        assert tree({M(1): 0, M(2): 1}) == 1
        assert tree.keys() == (M(2), M(1))

    def test_missing_key_raises(self):
        tree = DecisionTree.from_function([M1, M2], lambda a: float(a[M(1)] + a[M(2)]))
        with pytest.raises(KeyError):
            tree({M(1): 0})

    def test_equal_leaves_merge(self):
        tree = DecisionTree.from_function([M1, M2], lambda a: float(a[M(1)]))
        assert tree.nr_leaves() == 2
        assert tree.nr_nodes() == 3
        # M2 never matters, so the root is a choice on M1 only
        assert tree({M(1): 1, M(2): 0}) == tree({M(1): 1, M(2): 1}) == 1.0

    def test_constant_collapses_to_leaf(self):
        tree = DecisionTree.from_function([M1, M2], lambda a: 0.5)
        assert tree.is_leaf()
        assert tree.nr_leaves() == 1
        assert tree.nr_nodes() == 1
        assert tree({M(1): 1, M(2): 1}) == 0.5

    def test_evaluation_independent_of_merging(self):
        fn = lambda a: float(a[M(1)] * a[M(3)])
        merged = DecisionTree.from_function([M1, M3], fn, merge=True)
        full = DecisionTree.from_function([M1, M3], fn, merge=False)
        assert full.nr_leaves() == 6
        assert merged.nr_leaves() < full.nr_leaves()
        for a in cartesian_product([M1, M3]):
            assert merged(a) == full(a)

    def test_from_values_order(self):
        tree = DecisionTree.from_values([M1, M2], [1.0, 2.0, 3.0, 4.0])
        assert tree({M(1): 1, M(2): 0}) == 3.0
        with pytest.raises(ValueError):
            DecisionTree.from_values([M1, M2], [1.0, 2.0])

    def test_map(self):
        tree = DecisionTree.from_values([M1], [1.0, 2.0])
        doubled = tree.map(lambda v: 2 * v)
        assert doubled({M(1): 1}) == 4.0

    def test_apply_unions_keys(self):
        a = DecisionTree.from_values([M1], [1.0, 2.0])
        b = DecisionTree.from_values([M2], [10.0, 20.0])
        c = a.apply(b, lambda x, y: x + y)
        assert c.keys() == (M(2), M(1))
        for assignment in cartesian_product([M1, M2]):
            assert c(assignment) == a(assignment) + b(assignment)

    def test_restrict(self):
        tree = DecisionTree.from_function([M1, M2], lambda a: float(10 * a[M(1)] + a[M(2)]))
        fixed = tree.restrict({M(2): 1})
        assert fixed.keys() == (M(1),)
        assert fixed({M(1): 1}) == 11.0

    def test_items(self):
        tree = DecisionTree.from_values([M1], ["a", "b"])
        assert tree.items() == [({M(1): 0}, "a"), ({M(1): 1}, "b")]

    def test_structural_key_merges_factors(self):
        f = JacobianFactor([X(1)], [np.eye(1)], [1.0])
        g = JacobianFactor([X(1)], [np.eye(1)], [1.0])
        tree = DecisionTree.from_values([M1], [f, g])
        assert tree.nr_leaves() == 1


class TestDecisionTreeFactor:
    def test_keys_descending(self):
        f = DecisionTreeFactor([M1, M2], [1.0, 2.0, 3.0, 4.0])
        assert f.keys() == (M(2), M(1))
        assert f({M(1): 1, M(2): 1}) == 4.0

    def test_negative_values_raise(self):
        with pytest.raises(ValueError):
            DecisionTreeFactor([M1], [1.0, -1.0])

    def test_product(self):
        f = DecisionTreeFactor([M1], [1.0, 2.0])
        g = DecisionTreeFactor([M2, M1], [1.0, 2.0, 3.0, 4.0])
        h = f * g
        assert h.keys() == (M(2), M(1))
        for a in cartesian_product([M1, M2]):
            assert h(a) == pytest.approx(f(a) * g(a))

    def test_section_roundtrip_layout(self):
        f = DecisionTreeFactor([M1, M2], [1.0, 2.0, 3.0, 4.0])
        sec = f.to_section()
        assert sec.domain == (M(2), M(1))
        assert sec.value_at({M(1): 1, M(2): 0}) == 3.0
        g = DecisionTreeFactor.from_section(sec)
        assert g.equals(f)

    def test_sum_out(self):
        f = DecisionTreeFactor([M1, M2], [1.0, 2.0, 3.0, 4.0])
        g = f.sum_out([M(2)])
        assert g.keys() == (M(1),)
        assert np.allclose(g.values(), [3.0, 7.0])

    def test_error(self):
        f = DecisionTreeFactor([M1], [1.0, 0.0])
        assert f.error({M(1): 0}) == pytest.approx(0.0)
        assert f.error({M(1): 1}) == float("inf")


class TestDiscreteConditional:
    def test_from_spec(self):
        c = DiscreteConditional.from_spec(M2, [M1], "1/2 3/2")
        assert c.frontal_keys() == (M(2),)
        assert c.parent_keys() == (M(1),)
        assert c.keys() == (M(2), M(1))
        assert c({M(1): 0, M(2): 0}) == pytest.approx(1.0 / 3.0)
        assert c({M(1): 0, M(2): 1}) == pytest.approx(2.0 / 3.0)
        assert c({M(1): 1, M(2): 0}) == pytest.approx(0.6)
        assert c({M(1): 1, M(2): 1}) == pytest.approx(0.4)

    def test_malformed_spec_raises(self):
        with pytest.raises(ValueError):
            DiscreteConditional.from_spec(M2, [M1], "1/2")
        with pytest.raises(ValueError):
            DiscreteConditional.from_spec(M2, [M1], "1/a 3/2")
        with pytest.raises(ValueError):
            DiscreteConditional.from_spec(M2, [M1], "1/2/3 3/2")

    def test_prior(self):
        p = DiscretePrior(M1, "1/1")
        assert p.keys() == (M(1),)
        assert p({M(1): 0}) == pytest.approx(0.5)
        assert p.parent_keys() == ()

    def test_argmax(self):
        c = DiscreteConditional.from_spec(M2, [M1], "1/2 3/2")
        assert c.argmax({M(1): 0}) == {M(2): 1}
        assert c.argmax({M(1): 1}) == {M(2): 0}
        with pytest.raises(KeyError):
            c.argmax({})


class TestEliminateDiscrete:
    def test_chain(self):
        prior = DiscretePrior(M1, "1/3")
        cond = DiscreteConditional.from_spec(M2, [M1], "1/2 3/2")
        conditional, marginal = eliminate_discrete([prior, cond], [M(1)])

        assert conditional.frontal_keys() == (M(1),)
        assert conditional.parent_keys() == (M(2),)
        assert marginal.keys() == (M(2),)

        # Marginal on M2 by hand
        p_m2_0 = 0.25 * (1 / 3) + 0.75 * 0.6
        assert marginal({M(2): 0}) == pytest.approx(p_m2_0)
        assert marginal({M(2): 1}) == pytest.approx(1.0 - p_m2_0)

        # conditional * marginal reproduces the joint
        for a in cartesian_product([M1, M2]):
            assert conditional(a) * marginal(a) == pytest.approx(prior(a) * cond(a))

    def test_last_key_has_no_residual(self):
        prior = DiscretePrior(M1, "1/3")
        conditional, marginal = eliminate_discrete([prior], [M(1)])
        assert marginal is None
        assert conditional({M(1): 1}) == pytest.approx(0.75)

    def test_unknown_frontal_raises(self):
        with pytest.raises(DisconnectedVariableError):
            eliminate_discrete([DiscretePrior(M1, "1/1")], [M(2)])

    def test_non_discrete_raises(self):
        f = JacobianFactor([X(1)], [np.eye(1)], [0.0])
        with pytest.raises(UnsupportedFactorKindError):
            eliminate_discrete([f], [M(1)])
