"""
Linear module: noise models, Jacobian factors, Gaussian conditionals and graphs.
"""

from hybridfg.linear.noise import Diagonal, Isotropic, NoiseModel, Unit
from hybridfg.linear.jacobian import JacobianFactor
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.elimination import eliminate_gaussian
from hybridfg.linear.graph import GaussianBayesNet, GaussianFactorGraph

__all__ = [
    "Diagonal",
    "Isotropic",
    "NoiseModel",
    "Unit",
    "JacobianFactor",
    "GaussianConditional",
    "eliminate_gaussian",
    "GaussianBayesNet",
    "GaussianFactorGraph",
]
