"""Statistical validation of sampling routines."""

from src.sampling.stats.chi2 import (
    ChiSquareTest,
    LineDomain,
    PlanarDomain,
    SamplingType,
    SphericalDomain,
    distribution_chi2_test,
    warp_chi2_test,
)

__all__ = [
    "ChiSquareTest",
    "SamplingType",
    "LineDomain",
    "PlanarDomain",
    "SphericalDomain",
    "warp_chi2_test",
    "distribution_chi2_test",
]
