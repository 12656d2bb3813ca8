"""Importance-sampling warp library built on Taichi.

This package turns uniformly distributed variates into samples of the densities
a path tracer needs, together with the exact density of every sample and an
exact inverse mapping:

- Closed-form warps (disk, triangle, tent, sphere, hemisphere, cone, Gaussian,
  Beckmann, von Mises-Fisher, linear and bilinear densities)
- Tabulated 2D distributions (hierarchical and marginal/conditional) with
  optional interpolation across extra parameter axes
- Batched execution of every operation through Taichi kernels
- Chi-square goodness-of-fit testing of warps and distributions

Subpackages:
    core: Runtime setup, errors, math helpers and the batch execution layer
    warp: Analytic warps (Taichi-scope and Python-scope) and the warp registry
    distr: Grid data and the Hierarchical2D / Marginal2D distributions
    stats: Chi-square statistical tests
    preview: Histogram export utilities
"""

__version__ = "0.1.0"
