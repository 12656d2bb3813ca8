"""Tabulated 2D distributions.

Components:
    grid: Grid data container and slice normalization
    params: Interpolation across extra parameter axes
    base: Python-scope API and kernels shared by the distributions
    hierarchical: Hierarchical2D (pyramid of block sums)
    marginal: Marginal2D (marginal and conditional CDFs)

Both distributions accept the same grids and produce the same density;
which one to use is up to the caller.

Example:
    >>> import numpy as np
    >>> from src.sampling.distr import Grid, Marginal2D
    >>> distr = Marginal2D(Grid(np.random.rand(32, 64)), reconstruction="bilinear")
    >>> points, pdf = distr.sample(np.random.rand(256, 2))
"""

from src.sampling.distr.base import Distribution2D
from src.sampling.distr.grid import Grid, Reconstruction
from src.sampling.distr.hierarchical import Hierarchical2D
from src.sampling.distr.marginal import Marginal2D

__all__ = [
    "Grid",
    "Reconstruction",
    "Distribution2D",
    "Hierarchical2D",
    "Marginal2D",
]
