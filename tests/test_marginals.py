"""
Tests for mode queries after eliminating the continuous variables,
checked against brute-force Gaussian integrals.
"""

import numpy as np
import pytest

from hybridfg.api.marginals import (
    discrete_posterior,
    hybrid_map_estimate,
    max_probability,
    mode_marginals,
    most_probable_modes,
)
from hybridfg.core.keys import M, X
from hybridfg.discrete.assignment import DiscreteKey, cartesian_product
from hybridfg.discrete.factor import DecisionTreeFactor
from hybridfg.errors import UnsupportedFactorKindError
from hybridfg.hybrid.elimination import eliminate_partial_sequential
from hybridfg.hybrid.factor_graph import HybridFactorGraph
from hybridfg.linear.jacobian import JacobianFactor, stack_augmented
from hybridfg.models.switching import Switching


def brute_force_posterior(graph):
    """
    P(m) ∝ Π discrete(m) · ∫ exp(−E_m(x)) dx, with every Gaussian integral
    done in closed form. Returns {assignment tuple (ascending keys): prob}.
    """
    linear = HybridFactorGraph(list(graph.gaussian_graph) + list(graph.hybrid_graph))
    select = linear.sum()
    modes = graph.discrete_keys()
    log_weights = {}
    for a in cartesian_product(modes):
        branch = select(a)
        Ab, _ = stack_augmented(list(branch), branch.keys())
        A, b = Ab[:, :-1], Ab[:, -1]
        x_star = np.linalg.lstsq(A, b, rcond=None)[0]
        e_star = 0.5 * np.sum((A @ x_star - b) ** 2)
        log_w = -e_star + 0.5 * A.shape[1] * np.log(2 * np.pi) - 0.5 * np.linalg.slogdet(A.T @ A)[1]
        log_w += sum(np.log(f(a)) for f in graph.discrete_graph)
        log_weights[tuple(a[dk.key] for dk in modes)] = log_w
    top = max(log_weights.values())
    total = sum(np.exp(w - top) for w in log_weights.values())
    return {k: float(np.exp(w - top) / total) for k, w in log_weights.items()}


class TestModeMarginals:
    @pytest.fixture
    def switching(self):
        return Switching(3)

    @pytest.fixture
    def remaining(self, switching):
        _, remaining = eliminate_partial_sequential(
            switching.linearized_factor_graph, [X(1), X(2), X(3)]
        )
        return remaining

    def test_matches_brute_force(self, switching, remaining):
        brute = brute_force_posterior(switching.linearized_factor_graph)
        marginals = mode_marginals(remaining)
        assert set(marginals) == {M(1), M(2)}

        for axis, key in enumerate([M(1), M(2)]):
            expected = np.zeros(2)
            for values, p in brute.items():
                expected[values[axis]] += p
            assert np.allclose(marginals[key], expected, atol=1e-9)

    def test_marginals_sum_to_one(self, remaining):
        for p in mode_marginals(remaining).values():
            assert p.sum() == pytest.approx(1.0)

    def test_selected_keys(self, remaining):
        marginals = mode_marginals(remaining, [M(2)])
        assert list(marginals) == [M(2)]

    def test_posterior_domain(self, remaining):
        posterior = discrete_posterior(remaining)
        assert posterior.domain == (M(2), M(1))
        assert posterior.data.sum() == pytest.approx(1.0)

    def test_most_probable_modes(self, switching, remaining):
        brute = brute_force_posterior(switching.linearized_factor_graph)
        best = max(brute, key=brute.get)
        modes = most_probable_modes(remaining)
        assert (modes[M(1)], modes[M(2)]) == best

    def test_max_probability(self, remaining):
        modes = most_probable_modes(remaining)
        value = 1.0
        for f in remaining:
            value *= f(modes)
        assert max_probability(remaining) == pytest.approx(value)

    def test_continuous_factors_rejected(self, switching):
        with pytest.raises(UnsupportedFactorKindError):
            mode_marginals(switching.linearized_factor_graph)

    def test_hand_computed(self):
        m1 = DiscreteKey(M(1), 2)
        factors = [DecisionTreeFactor([m1], [1.0, 3.0]), DecisionTreeFactor([m1], [2.0, 2.0])]
        marginals = mode_marginals(factors)
        assert np.allclose(marginals[M(1)], [0.25, 0.75])
        assert most_probable_modes(factors) == {M(1): 1}

    def test_no_discrete_keys(self):
        assert most_probable_modes([DecisionTreeFactor.constant(2.0)]) == {}


class TestHybridMapEstimate:
    def test_matches_branch_least_squares(self):
        switching = Switching(3)
        graph = switching.linearized_factor_graph
        bayes_net, remaining = eliminate_partial_sequential(graph, [X(1), X(2), X(3)])
        modes, estimate = hybrid_map_estimate(bayes_net, remaining)

        brute = brute_force_posterior(graph)
        assert (modes[M(1)], modes[M(2)]) == max(brute, key=brute.get)

        linear = HybridFactorGraph(list(graph.gaussian_graph) + list(graph.hybrid_graph))
        branch = linear.sum()(modes)
        Ab, _ = stack_augmented(list(branch), branch.keys())
        expected = np.linalg.lstsq(Ab[:, :-1], Ab[:, -1], rcond=None)[0]
        actual = np.concatenate([estimate[X(k)] for k in range(1, 4)])
        assert np.allclose(actual, expected)

    def test_after_full_elimination(self):
        graph = Switching(2).linearized_factor_graph
        bayes_net = graph.eliminate_sequential()
        modes, estimate = hybrid_map_estimate(bayes_net, [])
        assert set(modes) == {M(1)}
        assert set(estimate.keys()) == {X(1), X(2)}

    def test_plain_gaussian_net(self):
        graph = HybridFactorGraph([JacobianFactor([X(1)], [np.eye(1)], [2.0])])
        bayes_net, remaining = eliminate_partial_sequential(graph, [X(1)])
        modes, estimate = hybrid_map_estimate(bayes_net, remaining)
        assert modes == {}
        assert np.allclose(estimate[X(1)], [2.0])
