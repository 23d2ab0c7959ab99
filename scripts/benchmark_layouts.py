#!/usr/bin/env python3
"""
Benchmark both layout engines on synthetic frame streams.

Usage:
    uv run python scripts/benchmark_layouts.py [--steps N] [--sizes SMALL,MEDIUM,...]

Examples:
    uv run python scripts/benchmark_layouts.py
    uv run python scripts/benchmark_layouts.py --steps 500
    uv run python scripts/benchmark_layouts.py --sizes large --output results.json
"""

from __future__ import annotations

import argparse
import json
import time
from typing import Any, Callable

from flow_layout import (
    Frame,
    generate_frames,
    plan_historical_layout,
    stability_summary,
    stabilize_realtime_layout,
)

# (sources, intermediates, targets) per size
SIZES = {
    "small": (2, 4, 4),
    "medium": (5, 10, 10),
    "large": (15, 30, 30),
}


def build_stream(size: str, steps: int, seed: int) -> list[Frame]:
    """Generate a reproducible stream for one size."""
    s, i, t = SIZES[size]
    return generate_frames(
        sources=[f"src{k}" for k in range(s)],
        intermediates=[f"mid{k}" for k in range(i)],
        targets=[f"dst{k}" for k in range(t)],
        steps=steps,
        seed=seed,
    )


def run_historical(frames: list[Frame], width: float, height: float) -> list:
    return plan_historical_layout(frames, width, height)


def run_realtime(frames: list[Frame], width: float, height: float) -> list:
    layout, cache = None, None
    states = []
    for frame in frames:
        layout, cache = stabilize_realtime_layout(frame, layout, cache, width=width, height=height)
        states.append(layout)
    return states


ENGINES: dict[str, Callable[[list[Frame], float, float], list]] = {
    "historical": run_historical,
    "realtime": run_realtime,
}


def benchmark_engine(
    engine: Callable[[list[Frame], float, float], list],
    frames: list[Frame],
    width: float,
    height: float,
) -> dict[str, Any]:
    """
    Benchmark a single engine on one stream.

    Returns:
        Dict with timing and stability info
    """
    start = time.perf_counter()
    states = engine(frames, width, height)
    elapsed = time.perf_counter() - start

    summary = stability_summary(states, height=height)
    return {
        "time_seconds": elapsed,
        "ms_per_frame": 1000 * elapsed / max(1, len(frames)),
        **summary,
    }


def run_benchmarks(
    sizes: list[str],
    steps: int = 200,
    width: float = 800.0,
    height: float = 600.0,
    seed: int = 0,
) -> list[dict[str, Any]]:
    """Run every engine on every stream size and print a summary table."""
    results = []

    print(f"Benchmarking {len(ENGINES)} engines on {len(sizes)} stream sizes, {steps} frames each")
    print("=" * 80)

    for size in sizes:
        frames = build_stream(size, steps, seed)
        print(f"\n{size} ({sum(SIZES[size])} nodes)")
        for name, engine in ENGINES.items():
            result = benchmark_engine(engine, frames, width, height)
            print(
                f"  {name:12s}: {result['time_seconds']:.4f}s "
                f"({result['ms_per_frame']:.2f} ms/frame, "
                f"orderings={result['distinct_orderings']}, "
                f"displacement={result['mean_displacement']:.2f})"
            )
            results.append({"size": size, "engine": name, **result})

    print("\n" + "=" * 80)
    print("SUMMARY (ms per frame)")
    print("=" * 80)
    print(f"{'Size':<12s}", end="")
    for name in ENGINES:
        print(f"{name:>14s}", end="")
    print()
    print("-" * (12 + 14 * len(ENGINES)))
    for size in sizes:
        print(f"{size:<12s}", end="")
        for name in ENGINES:
            matching = [r for r in results if r["size"] == size and r["engine"] == name]
            print(f"{matching[0]['ms_per_frame']:>14.3f}", end="")
        print()

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark flow layout engines")
    parser.add_argument("--sizes", default="small,medium,large", help="Comma-separated stream sizes")
    parser.add_argument("--steps", type=int, default=200, help="Frames per stream")
    parser.add_argument("--width", type=float, default=800.0, help="Canvas width")
    parser.add_argument("--height", type=float, default=600.0, help="Canvas height")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    sizes = [s.strip() for s in args.sizes.split(",") if s.strip()]
    unknown = [s for s in sizes if s not in SIZES]
    if unknown:
        parser.error(f"unknown sizes: {', '.join(unknown)} (choose from {', '.join(SIZES)})")

    results = run_benchmarks(sizes, steps=args.steps, width=args.width, height=args.height, seed=args.seed)

    if args.output and results:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
