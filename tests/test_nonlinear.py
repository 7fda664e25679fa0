"""
Tests for nonlinear factors and their linearization.
"""

import numpy as np
import pytest

from hybridfg.core.keys import X
from hybridfg.core.values import Values
from hybridfg.errors import LinearizationError
from hybridfg.linear.noise import Isotropic
from hybridfg.nonlinear.factors import BetweenFactor, CustomFactor, PriorFactor


class TestPriorFactor:
    def test_linearize(self):
        f = PriorFactor(X(1), 0.0, Isotropic.sigma(1, 0.1))
        jf = f.linearize(Values({X(1): 1.0}))
        assert jf.keys() == (X(1),)
        assert np.allclose(jf.block(X(1)), [[10.0]])
        assert np.allclose(jf.b, [-10.0])

    def test_error_matches_linearized_at_zero_delta(self):
        f = PriorFactor(X(1), 0.5, Isotropic.sigma(1, 0.2))
        values = Values({X(1): 1.0})
        jf = f.linearize(values)
        delta = Values({X(1): 0.0})
        assert jf.error(delta) == pytest.approx(f.error(values))

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValueError):
            PriorFactor(X(1), [0.0, 0.0], Isotropic.sigma(1, 1.0))


class TestBetweenFactor:
    def test_linearize(self):
        f = BetweenFactor(X(1), X(2), 1.0, Isotropic.sigma(1, 0.5))
        jf = f.linearize(Values({X(1): 0.0, X(2): 2.0}))
        assert np.allclose(jf.block(X(1)), [[-2.0]])
        assert np.allclose(jf.block(X(2)), [[2.0]])
        # r = (2 - 0) - 1 = 1, whitened 2
        assert np.allclose(jf.b, [-2.0])

    def test_missing_key_raises(self):
        f = BetweenFactor(X(1), X(2), 1.0, Isotropic.sigma(1, 0.5))
        with pytest.raises(LinearizationError) as info:
            f.linearize(Values({X(1): 0.0}))
        assert info.value.key == X(2)

    def test_linearization_error_is_key_error(self):
        f = PriorFactor(X(3), 0.0, Isotropic.sigma(1, 1.0))
        with pytest.raises(KeyError):
            f.error(Values())


class TestCustomFactor:
    def test_callback(self):
        def range_sq(values):
            x = values[X(1)]
            return x * x - 4.0, [np.array([[2.0 * x[0]]])]

        f = CustomFactor([X(1)], Isotropic.sigma(1, 1.0), range_sq)
        jf = f.linearize(Values({X(1): 3.0}))
        assert np.allclose(jf.block(X(1)), [[6.0]])
        assert np.allclose(jf.b, [-5.0])

    def test_one_dimensional_jacobian_is_a_column(self):
        # two rows on a scalar variable, Jacobian given as a flat vector
        def two_rows(values):
            x = values[X(1)][0]
            return np.array([x - 1.0, 2.0 * x]), [np.array([1.0, 2.0])]

        f = CustomFactor([X(1)], Isotropic.sigma(2, 1.0), two_rows)
        jf = f.linearize(Values({X(1): 1.0}))
        assert jf.block(X(1)).shape == (2, 1)
        assert np.allclose(jf.block(X(1)), [[1.0], [2.0]])
        assert np.allclose(jf.b, [0.0, -2.0])

    def test_wrong_jacobian_count_raises(self):
        f = CustomFactor([X(1), X(2)], Isotropic.sigma(1, 1.0), lambda v: (np.zeros(1), [np.eye(1)]))
        with pytest.raises(ValueError):
            f.linearize(Values({X(1): 0.0, X(2): 0.0}))


class TestValues:
    def test_insert_and_at(self):
        values = Values({X(1): 1.0})
        values.insert(X(2), [1.0, 2.0])
        assert values.dim(X(2)) == 2
        assert np.allclose(values.at(X(1)), [1.0])

    def test_duplicate_insert_raises(self):
        values = Values({X(1): 1.0})
        with pytest.raises(ValueError):
            values.insert(X(1), 2.0)

    def test_update_missing_raises(self):
        with pytest.raises(KeyError):
            Values().update(X(1), 0.0)

    def test_retract(self):
        values = Values({X(1): 1.0, X(2): 2.0})
        moved = values.retract(Values({X(1): 0.5}))
        assert np.allclose(moved[X(1)], [1.5])
        assert np.allclose(moved[X(2)], [2.0])
        # Original is untouched
        assert np.allclose(values[X(1)], [1.0])

    def test_stored_vectors_are_read_only(self):
        values = Values({X(1): 1.0})
        with pytest.raises(ValueError):
            values[X(1)][0] = 5.0
