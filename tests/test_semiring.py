"""
Tests for semiring operations.
"""

import numpy as np
import pytest

from hybridfg.algebra.semiring import (
    MaxProductSemiring,
    ProbSemiring,
    max_product_semiring,
    prob_semiring,
)


class TestProbSemiring:
    def test_identities(self):
        sr = ProbSemiring()
        assert sr.zero == 0.0
        assert sr.one == 1.0

    def test_add_mul(self):
        sr = ProbSemiring()
        assert sr.add(0.25, 0.5) == pytest.approx(0.75)
        assert sr.mul(0.25, 0.5) == pytest.approx(0.125)

    def test_add_reduce(self):
        sr = ProbSemiring()
        x = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert np.allclose(sr.add_reduce(x, axis=1), [3.0, 7.0])
        assert sr.add_reduce(x) == pytest.approx(10.0)

    def test_normalize(self):
        sr = ProbSemiring()
        x = np.array([[1.0, 3.0], [0.0, 0.0]])
        out = sr.normalize(x, axis=1)
        assert np.allclose(out[0], [0.25, 0.75])
        # All-zero rows stay zero instead of dividing by zero
        assert np.allclose(out[1], [0.0, 0.0])

    def test_is_zero(self):
        sr = ProbSemiring()
        assert sr.is_zero(0.0)
        assert not sr.is_zero(1e-300)


class TestMaxProductSemiring:
    def test_identities(self):
        sr = MaxProductSemiring()
        assert sr.zero == 0.0
        assert sr.one == 1.0

    def test_add_is_max(self):
        sr = MaxProductSemiring()
        assert sr.add(0.25, 0.5) == pytest.approx(0.5)
        assert np.allclose(sr.add(np.array([1.0, 4.0]), np.array([2.0, 3.0])), [2.0, 4.0])

    def test_add_reduce(self):
        sr = MaxProductSemiring()
        x = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert np.allclose(sr.add_reduce(x, axis=0), [3.0, 4.0])
        assert sr.add_reduce(x) == pytest.approx(4.0)

    def test_mul_is_product(self):
        sr = MaxProductSemiring()
        assert sr.mul(2.0, 3.0) == pytest.approx(6.0)


class TestSingletons:
    def test_names(self):
        assert prob_semiring.name == "PROB"
        assert max_product_semiring.name == "MAXPROD"

    def test_distinct_types(self):
        assert type(prob_semiring) is not type(max_product_semiring)
