"""
Tests for the typed hybrid factor container and the switching model.
"""

import numpy as np
import pytest

from hybridfg.core.keys import M, X
from hybridfg.core.values import Values
from hybridfg.discrete.assignment import DiscreteKey, cartesian_product
from hybridfg.discrete.factor import DecisionTreeFactor, DiscretePrior
from hybridfg.errors import UnsupportedFactorKindError
from hybridfg.hybrid.factor_graph import HybridFactorGraph
from hybridfg.hybrid.gaussian_mixture import GaussianMixture, GaussianMixtureFactor
from hybridfg.hybrid.kinds import FactorKind, factor_kind
from hybridfg.hybrid.mixture import MixtureFactor
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.jacobian import JacobianFactor, stack_augmented
from hybridfg.linear.noise import Isotropic
from hybridfg.models.switching import Switching, motion_models
from hybridfg.nonlinear.factors import PriorFactor

M1 = DiscreteKey(M(1), 2)


def linear_part(graph):
    """Gaussian and hybrid factors only (discrete factors dropped)."""
    return HybridFactorGraph(list(graph.gaussian_graph) + list(graph.hybrid_graph))


class TestPushBack:
    def test_routing(self):
        graph = HybridFactorGraph()
        graph.push_back(PriorFactor(X(1), 0.0, Isotropic.sigma(1, 1.0)))
        graph.push_back(JacobianFactor([X(1)], [np.eye(1)], [0.0]))
        graph.push_back(DiscretePrior(M1, "1/1"))
        graph.push_back(MixtureFactor([X(1), X(2)], [M1], motion_models(1)))

        assert len(graph.nonlinear_graph) == 1
        assert len(graph.gaussian_graph) == 1
        assert len(graph.discrete_graph) == 1
        assert len(graph.hybrid_graph) == 1
        assert graph.size() == 4

    def test_conditionals_stored_as_factors(self):
        conditional = GaussianConditional([X(1)], [1], np.eye(1), [], [], [1.0])
        mixture = GaussianMixture([X(1)], [], [M1], [conditional, conditional])
        graph = HybridFactorGraph([conditional, mixture])

        assert isinstance(graph.gaussian_graph[0], JacobianFactor)
        assert isinstance(graph.hybrid_graph[0], GaussianMixtureFactor)
        values = Values({X(1): 0.2})
        assert np.exp(-graph.gaussian_graph[0].error(values)) == pytest.approx(conditional.evaluate(values))

    def test_push_graph_and_list(self):
        switching = Switching(3)
        graph = HybridFactorGraph()
        graph.push_back(switching.linearized_factor_graph)
        graph.push_back([JacobianFactor([X(1)], [np.eye(1)], [0.0])])
        assert graph.size() == switching.linearized_factor_graph.size() + 1

    def test_unsupported_factor_raises(self):
        graph = HybridFactorGraph()
        with pytest.raises(UnsupportedFactorKindError):
            graph.push_back("not a factor")

    def test_typed_push_checks_kind(self):
        graph = HybridFactorGraph()
        with pytest.raises(UnsupportedFactorKindError):
            graph.push_hybrid(JacobianFactor([X(1)], [np.eye(1)], [0.0]))
        graph.push_gaussian(JacobianFactor([X(1)], [np.eye(1)], [0.0]))
        assert graph.size() == 1

    def test_factor_kind(self):
        assert factor_kind(DiscretePrior(M1, "1/1")) is FactorKind.DISCRETE
        assert factor_kind(PriorFactor(X(1), 0.0, Isotropic.sigma(1, 1.0))) is FactorKind.NONLINEAR


class TestSwitchingGraph:
    def test_nonlinear_sizes(self):
        switching = Switching(3)
        graph = switching.nonlinear_factor_graph
        assert graph.size() == 8
        assert len(graph.nonlinear_graph) == 4
        assert len(graph.discrete_graph) == 2
        assert len(graph.hybrid_graph) == 2
        assert len(graph.gaussian_graph) == 0

    def test_linearized_sizes(self):
        graph = Switching(3).linearized_factor_graph
        assert graph.size() == 8
        assert len(graph.nonlinear_graph) == 0
        assert len(graph.discrete_graph) == 2
        assert len(graph.gaussian_graph) == 4
        assert len(graph.hybrid_graph) == 2
        assert all(isinstance(f, GaussianMixtureFactor) for f in graph.hybrid_graph)

    def test_linearization_point(self):
        switching = Switching(3)
        for k in range(1, 4):
            assert np.allclose(switching.linearization_point[X(k)], [float(k)])

    def test_linearize_is_repeatable_and_pure(self):
        switching = Switching(3)
        nonlinear = switching.nonlinear_factor_graph
        buckets = [
            nonlinear.nonlinear_graph,
            nonlinear.discrete_graph,
            nonlinear.gaussian_graph,
            nonlinear.hybrid_graph,
        ]

        first = nonlinear.linearize(switching.linearization_point)
        second = nonlinear.linearize(switching.linearization_point)

        assert len(first.gaussian_graph) == len(second.gaussian_graph) == 4
        for a, b in zip(first.gaussian_graph, second.gaussian_graph):
            assert a.equals(b)
        for a, b in zip(first.hybrid_graph, second.hybrid_graph):
            for assignment in cartesian_product(a.discrete_keys):
                assert a(assignment).equals(b(assignment))

        after = [
            nonlinear.nonlinear_graph,
            nonlinear.discrete_graph,
            nonlinear.gaussian_graph,
            nonlinear.hybrid_graph,
        ]
        assert [len(bucket) for bucket in after] == [4, 2, 0, 2]
        for old, new in zip(buckets, after):
            assert len(old) == len(new)
            assert all(x is y for x, y in zip(old, new))
        assert all(isinstance(f, MixtureFactor) for f in nonlinear.hybrid_graph)

    def test_keys(self):
        graph = Switching(3).linearized_factor_graph
        assert graph.continuous_keys() == (X(1), X(2), X(3))
        assert [dk.key for dk in graph.discrete_keys()] == [M(1), M(2)]

    def test_connected_components(self):
        graph = Switching(3).linearized_factor_graph
        components = graph.connected_components()
        assert len(components) == 1
        assert set(components[0]) == {X(1), X(2), X(3), M(1), M(2)}

    def test_error_matches_nonlinear(self):
        switching = Switching(3)
        linear = switching.linearized_factor_graph
        nonlinear = switching.nonlinear_factor_graph
        x0 = switching.linearization_point
        zero = Values({X(k): 0.0 for k in range(1, 4)})

        for a in cartesian_product(linear.discrete_keys()):
            expected = sum(f.error(x0) for f in nonlinear.nonlinear_graph)
            expected += sum(f.error(x0, a) for f in nonlinear.hybrid_graph)
            expected += sum(f.error(a) for f in nonlinear.discrete_graph)
            assert linear.error(zero, a) == pytest.approx(expected)

    def test_error_on_nonlinear_graph_raises(self):
        graph = Switching(2).nonlinear_factor_graph
        with pytest.raises(UnsupportedFactorKindError):
            graph.error(Values(), {M(1): 0})

    def test_copy_is_independent(self):
        graph = Switching(2).linearized_factor_graph
        clone = graph.copy()
        clone.clear()
        assert clone.empty()
        assert not graph.empty()


class TestSum:
    def test_selects_components(self):
        graph = linear_part(Switching(3).linearized_factor_graph)
        select = graph.sum()
        for a in cartesian_product(graph.discrete_keys()):
            chosen = select(a)
            # 4 Gaussian factors followed by one component per mixture
            assert chosen.size() == len(graph.gaussian_graph) + len(graph.hybrid_graph) == 6
            assert chosen[4].equals(graph.hybrid_graph[0](a))
            assert chosen[5].equals(graph.hybrid_graph[1](a))

    def test_rejects_discrete(self):
        with pytest.raises(UnsupportedFactorKindError):
            Switching(3).linearized_factor_graph.sum()

    def test_rejects_nonlinear(self):
        with pytest.raises(UnsupportedFactorKindError):
            Switching(2).nonlinear_factor_graph.sum()


class TestToDecisionTreeFactor:
    def test_values_at_branch_optimum(self):
        graph = linear_part(Switching(2).linearized_factor_graph)
        factor = graph.to_decision_tree_factor()
        assert isinstance(factor, DecisionTreeFactor)
        assert factor.keys() == (M(1),)

        select = graph.sum()
        for a in cartesian_product(graph.discrete_keys()):
            branch = select(a)
            Ab, _ = stack_augmented(list(branch), branch.keys())
            A, b = Ab[:, :-1], Ab[:, -1]
            x_star = np.linalg.lstsq(A, b, rcond=None)[0]
            expected = np.exp(-0.5 * np.sum((A @ x_star - b) ** 2))
            assert factor(a) == pytest.approx(expected, rel=1e-9)

    def test_tight_noise_matches_least_squares(self):
        graph = linear_part(Switching(3, 5e-8, 1e-7).linearized_factor_graph)
        factor = graph.to_decision_tree_factor()
        assert factor.keys() == (M(2), M(1))

        select = graph.sum()
        for a in cartesian_product(graph.discrete_keys()):
            branch = select(a)
            Ab, _ = stack_augmented(list(branch), branch.keys())
            A, b = Ab[:, :-1], Ab[:, -1]
            x_star = np.linalg.lstsq(A, b, rcond=None)[0]
            expected = np.exp(-0.5 * np.sum((A @ x_star - b) ** 2))
            assert factor(a) == pytest.approx(expected, abs=1e-12)
