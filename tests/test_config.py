"""Tests for the runtime configuration and error types."""

import numpy as np
import pytest


class TestRuntimeConfig:
    """Tests for RuntimeConfig and the active runtime."""

    def test_defaults(self):
        from src.sampling.core.config import RuntimeConfig

        config = RuntimeConfig()
        assert config.arch == "cpu"
        assert config.default_fp == "f64"

    def test_invalid_values_raise(self):
        from src.sampling.core.config import RuntimeConfig

        with pytest.raises(ValueError):
            RuntimeConfig(arch="tpu")
        with pytest.raises(ValueError):
            RuntimeConfig(default_fp="f16")

    def test_active_config(self):
        """Test that the session fixture's configuration is reported."""
        from src.sampling.core.config import float_dtype, get_runtime_config

        config = get_runtime_config()
        assert config is not None
        assert config.arch == "cpu"
        assert float_dtype() is np.float64

    def test_numpy_dtype_follows_precision(self):
        from src.sampling.core.config import RuntimeConfig

        assert RuntimeConfig(default_fp="f64").numpy_dtype is np.float64
        assert RuntimeConfig(default_fp="f32").numpy_dtype is np.float32

    def test_float_dtype_uses_public_config(self):
        """Test that float_dtype does not reach into Taichi internals."""
        from src.sampling.core import config

        assert not hasattr(config, "impl")


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_errors_are_value_errors(self):
        from src.sampling.core.errors import ConstructionError, ParameterError, SamplingError

        for error in (ConstructionError, ParameterError):
            assert issubclass(error, SamplingError)
            assert issubclass(error, ValueError)