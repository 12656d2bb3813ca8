"""Pytest configuration for sampling tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import numpy as np
import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Double precision
    keeps round-trip tolerances tight.
    """
    from src.sampling.core.config import RuntimeConfig, init_runtime

    init_runtime(RuntimeConfig(arch="cpu", default_fp="f64", random_seed=42))
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture
def rng():
    """Seeded NumPy random generator."""
    return np.random.default_rng(0)


@pytest.fixture
def unit_samples():
    """Dense grid of samples in [1e-6, 1 - 1e-6]^2, shape (256, 2)."""
    t = np.linspace(1e-6, 1.0 - 1e-6, 16)
    x, y = np.meshgrid(t, t, indexing="xy")
    return np.stack([x.ravel(), y.ravel()], axis=1)
