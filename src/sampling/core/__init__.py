"""Core runtime module.

This module contains the building blocks shared by every warp and
distribution:

Components:
    config: Taichi runtime initialization and floating-point precision
    errors: Exception hierarchy of the library
    math: Taichi-scope scalar and vector helpers
    batch: Batched execution of Taichi functions over NumPy arrays

Note: ``math`` is not re-exported here; import it directly from
``src.sampling.core.math`` inside Taichi code.
"""

from src.sampling.core.batch import (
    MAX_WARP_PARAMS,
    as_batch,
    map_kernel,
    pack_params,
    run_map,
    unbatch,
)
from src.sampling.core.config import (
    DOMAIN_EPSILON,
    RuntimeConfig,
    float_dtype,
    get_runtime_config,
    init_runtime,
)
from src.sampling.core.errors import ConstructionError, ParameterError, SamplingError

__all__ = [
    # Runtime
    "RuntimeConfig",
    "init_runtime",
    "get_runtime_config",
    "float_dtype",
    "DOMAIN_EPSILON",
    # Errors
    "SamplingError",
    "ConstructionError",
    "ParameterError",
    # Batch execution
    "MAX_WARP_PARAMS",
    "as_batch",
    "unbatch",
    "pack_params",
    "map_kernel",
    "run_map",
]
