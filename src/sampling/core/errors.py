"""Exception types raised by the sampling library.

Only Python-scope entry points raise. Taichi-scope functions cannot raise,
so their preconditions are documented instead of checked.
"""


class SamplingError(Exception):
    """Base class for all errors raised by this package."""


class ConstructionError(SamplingError, ValueError):
    """A tabulated distribution could not be built from the supplied data.

    Raised for grids with zero total mass, negative or non-finite entries,
    inconsistent parameter axes, or a resolution too small for the
    requested reconstruction. No distribution is returned.
    """


class ParameterError(SamplingError, ValueError):
    """A warp shape parameter lies outside its documented valid range.

    Raised immediately; the value is never clamped silently.
    """
