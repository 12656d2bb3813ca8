#!/usr/bin/env python3
"""Importance sample a synthetic environment map.

This script builds a procedural latitude-longitude environment map (a
bright sun on a sky gradient), constructs a Hierarchical2D or Marginal2D
distribution from its luminance, verifies it with a chi-square test, and
writes the observed/expected histograms as a PNG.

Usage:
    python -m examples.sample_environment [options]

Options:
    --width WIDTH           Map width in texels (default: 256)
    --height HEIGHT         Map height in texels (default: 128)
    --method METHOD         hierarchical or marginal (default: hierarchical)
    --reconstruction MODE   constant or bilinear (default: constant)
    --samples SAMPLES       Number of samples for the test (default: 1000000)
    --output OUTPUT         Output file path (default: environment.png)
    --quiet                 Suppress progress output

Example:
    python -m examples.sample_environment --method marginal --reconstruction bilinear
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Importance sample a synthetic environment map.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=256, help="Map width in texels (default: 256)")
    parser.add_argument("--height", type=int, default=128, help="Map height in texels (default: 128)")
    parser.add_argument(
        "--method",
        choices=["hierarchical", "marginal"],
        default="hierarchical",
        help="Sampling structure (default: hierarchical)",
    )
    parser.add_argument(
        "--reconstruction",
        choices=["constant", "bilinear"],
        default="constant",
        help="Density reconstruction (default: constant)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=1_000_000,
        help="Number of samples for the test (default: 1000000)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="environment.png",
        help="Output file path (default: environment.png)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def make_environment(width: int, height: int) -> np.ndarray:
    """Luminance of a sky gradient with a small bright sun.

    Returns:
        Array of shape (height, width), weighted by ``sin(theta)`` so that
        it is proportional to the density over the (phi, theta) rectangle.
    """
    phi = (np.arange(width) + 0.5) / width * 2.0 * np.pi
    theta = (np.arange(height) + 0.5) / height * np.pi
    phi, theta = np.meshgrid(phi, theta, indexing="xy")

    sky = 0.2 + 0.8 * np.clip(np.cos(theta), 0.0, 1.0)
    sun_dir = np.array([np.sin(0.6) * np.cos(2.0), np.sin(0.6) * np.sin(2.0), np.cos(0.6)])
    dirs = np.stack([np.sin(theta) * np.cos(phi), np.sin(theta) * np.sin(phi), np.cos(theta)], axis=-1)
    sun = 500.0 * np.exp(2000.0 * (dirs @ sun_dir - 1.0))
    return (sky + sun) * np.sin(theta)


def sample_environment(
    width: int = 256,
    height: int = 128,
    method: str = "hierarchical",
    reconstruction: str = "constant",
    sample_count: int = 1_000_000,
    output_path: str = "environment.png",
    quiet: bool = False,
) -> bool:
    """Build the distribution, test it, and save the histograms.

    Returns:
        True if the chi-square test passed.
    """
    # Lazy imports to allow Taichi initialization first
    from src.sampling.distr import Grid, Hierarchical2D, Marginal2D
    from src.sampling.preview.export import save_histograms_png
    from src.sampling.stats.chi2 import distribution_chi2_test

    start_time = time.time()
    grid = Grid(make_environment(width, height), bounds=((0.0, 0.0), (2.0 * np.pi, np.pi)))
    cls = Hierarchical2D if method == "hierarchical" else Marginal2D
    distr = cls(grid, reconstruction=reconstruction)
    if not quiet:
        print(f"Built {cls.__name__} ({width}x{height}, {reconstruction}) in {time.time() - start_time:.2f}s")

    test = distribution_chi2_test(distr, sample_count=sample_count, res=min(width, 101))
    passed = test.run()
    if not quiet:
        for message in test.messages:
            print(f"  {message}")

    output_file = Path(output_path)
    save_histograms_png(test, str(output_file))
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")
    return passed


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    from src.sampling.core.config import init_runtime

    init_runtime()

    try:
        passed = sample_environment(
            width=args.width,
            height=args.height,
            method=args.method,
            reconstruction=args.reconstruction,
            sample_count=args.samples,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0 if passed else 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
