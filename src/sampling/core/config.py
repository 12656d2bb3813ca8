"""Taichi runtime configuration.

Every warp and distribution in this package runs as Taichi code, so Taichi
has to be initialized once per process before the first kernel launch. The
helpers here wrap ``ti.init`` and expose the floating-point precision the
runtime was started with, which the batch layer uses to convert NumPy input.

Example:
    >>> from src.sampling.core.config import RuntimeConfig, init_runtime
    >>> init_runtime(RuntimeConfig(arch="cpu", default_fp="f64"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

import numpy as np
import taichi as ti

logger = logging.getLogger(__name__)

# Tolerance of the "lies on the unit sphere" test in spherical densities
DOMAIN_EPSILON = 1e-5

ArchName = Literal["cpu", "gpu"]
PrecisionName = Literal["f32", "f64"]

_ARCHS = {"cpu": ti.cpu, "gpu": ti.gpu}
_PRECISIONS = {"f32": ti.f32, "f64": ti.f64}

_active_config: RuntimeConfig | None = None


@dataclass(frozen=True)
class RuntimeConfig:
    """Settings passed to ``ti.init``.

    Attributes:
        arch: Backend to run kernels on. "gpu" falls back to the CPU when
            no GPU backend is available.
        default_fp: Precision of ``float`` in Taichi scope. Double precision
            is the default so that inverse mappings round-trip tightly.
        random_seed: Seed of Taichi's internal random number generator.
        debug: Enable Taichi's debug mode (bounds checks in kernels).
    """

    arch: ArchName = "cpu"
    default_fp: PrecisionName = "f64"
    random_seed: int = 0
    debug: bool = False

    def __post_init__(self) -> None:
        if self.arch not in _ARCHS:
            raise ValueError(f"Unknown arch: {self.arch}")
        if self.default_fp not in _PRECISIONS:
            raise ValueError(f"Unknown default_fp: {self.default_fp}")

    @property
    def numpy_dtype(self) -> type[np.floating]:
        """NumPy float type matching ``default_fp``."""
        return np.float64 if self.default_fp == "f64" else np.float32


def init_runtime(config: RuntimeConfig | None = None) -> RuntimeConfig:
    """Initialize Taichi with the given configuration.

    Args:
        config: Runtime settings. Uses ``RuntimeConfig()`` if omitted.

    Returns:
        The configuration that is now active. Its ``arch`` reflects the
        backend actually used after a GPU fallback.
    """
    global _active_config
    if config is None:
        config = RuntimeConfig()

    kwargs = {
        "default_fp": _PRECISIONS[config.default_fp],
        "random_seed": config.random_seed,
        "debug": config.debug,
    }
    try:
        ti.init(arch=_ARCHS[config.arch], **kwargs)
    except Exception as e:
        if config.arch != "gpu":
            raise
        logger.warning("GPU backend unavailable (%s); falling back to CPU", e)
        ti.init(arch=ti.cpu, **kwargs)
        config = RuntimeConfig(
            arch="cpu",
            default_fp=config.default_fp,
            random_seed=config.random_seed,
            debug=config.debug,
        )

    logger.info("Taichi initialized (arch=%s, default_fp=%s)", config.arch, config.default_fp)
    _active_config = config
    return config


def get_runtime_config() -> RuntimeConfig | None:
    """Return the configuration passed to the last ``init_runtime`` call."""
    return _active_config


def float_dtype() -> type[np.floating]:
    """NumPy float type matching the precision of ``float`` in Taichi scope.

    Falls back to the default configuration (double precision) when
    ``init_runtime`` has not been called.
    """
    config = _active_config if _active_config is not None else RuntimeConfig()
    return config.numpy_dtype
