#!/usr/bin/env python3
"""Run chi-square tests on the analytic warps.

This script draws samples from one or all registered warps, compares their
histograms against the integrated densities with a chi-square test, and
optionally writes the observed/expected histograms as PNG images.

Usage:
    python -m examples.warp_statistics [options]

Options:
    --warp NAME         Warp to test, e.g. COSINE_HEMISPHERE (default: all)
    --samples COUNT     Number of samples per test (default: 1000000)
    --res RES           Histogram resolution (default: 101)
    --sampling TYPE     independent, grid or stratified (default: independent)
    --param NAME=VALUE  Shape parameter of the warp (repeatable)
    --output-dir DIR    Write histogram PNGs into DIR
    --gpu               Run on the GPU backend if available
    --quiet             Suppress progress output

Example:
    python -m examples.warp_statistics --warp UNIFORM_CONE --param cos_cutoff=0.3
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run chi-square tests on the analytic warps.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--warp",
        type=str,
        default=None,
        help="Warp to test, e.g. COSINE_HEMISPHERE (default: all)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=1_000_000,
        help="Number of samples per test (default: 1000000)",
    )
    parser.add_argument(
        "--res",
        type=int,
        default=101,
        help="Histogram resolution (default: 101)",
    )
    parser.add_argument(
        "--sampling",
        choices=["independent", "grid", "stratified"],
        default="independent",
        help="Point set used as input (default: independent)",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Shape parameter of the warp (repeatable)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Write histogram PNGs into this directory",
    )
    parser.add_argument(
        "--gpu",
        action="store_true",
        help="Run on the GPU backend if available",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def parse_params(items: list[str]) -> dict[str, float]:
    """Parse NAME=VALUE pairs into a dictionary."""
    params = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Expected NAME=VALUE, got {item!r}")
        params[name.strip()] = float(value)
    return params


def run_warp_statistics(
    warp: str | None = None,
    sample_count: int = 1_000_000,
    res: int = 101,
    sampling: str = "independent",
    params: dict[str, float] | None = None,
    output_dir: str | None = None,
    quiet: bool = False,
) -> bool:
    """Run the chi-square test on one or all warps.

    Args:
        warp: Name of a ``WarpKind`` member, or None for all warps.
        sample_count: Number of samples per test.
        res: Histogram resolution.
        sampling: Input point set ("independent", "grid" or "stratified").
        params: Shape parameters of the tested warp. Only valid together
            with ``warp``.
        output_dir: Directory for histogram PNGs, or None.
        quiet: If True, suppress progress output.

    Returns:
        True if every test passed.
    """
    # Lazy imports to allow Taichi initialization first
    from src.sampling.preview.export import save_histograms_png
    from src.sampling.stats.chi2 import SamplingType, warp_chi2_test
    from src.sampling.warp.adapters import WARPS, WarpKind

    if warp is None:
        if params:
            raise ValueError("--param requires --warp")
        kinds = list(WARPS)
    else:
        kinds = [WarpKind[warp.upper()]]

    out_dir = Path(output_dir) if output_dir else None
    if out_dir is not None:
        out_dir.mkdir(parents=True, exist_ok=True)

    passed = True
    for kind in kinds:
        start_time = time.time()
        test = warp_chi2_test(
            kind,
            sample_count=sample_count,
            res=res,
            sampling_type=SamplingType[sampling.upper()],
            **(params or {}),
        )
        # Sidak correction over all warps tested in this run
        ok = test.run(significance_level=0.01, test_count=len(kinds))
        passed = passed and ok

        if not quiet:
            status = "PASS" if ok else "FAIL"
            print(f"[{status}] {WARPS[kind].name} ({time.time() - start_time:.2f}s)")
            for message in test.messages:
                print(f"    {message}")

        if out_dir is not None:
            output_file = out_dir / f"{kind.name.lower()}.png"
            save_histograms_png(test, str(output_file))
            if not quiet:
                print(f"    Saved histograms to: {output_file.absolute()}")

    return passed


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    from src.sampling.core.config import RuntimeConfig, init_runtime

    init_runtime(RuntimeConfig(arch="gpu" if args.gpu else "cpu"))

    try:
        passed = run_warp_statistics(
            warp=args.warp,
            sample_count=args.samples,
            res=args.res,
            sampling=args.sampling,
            params=parse_params(args.param),
            output_dir=args.output_dir,
            quiet=args.quiet,
        )
        return 0 if passed else 2
    except (KeyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
