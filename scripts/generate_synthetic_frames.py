#!/usr/bin/env python3
"""
Generate synthetic flow frames for demos and benchmarks.

Sources feed intermediates, intermediates feed targets, and some sources
link straight to targets. Every frame lists all nodes.

Usage:
    uv run python scripts/generate_synthetic_frames.py [--format json|csv] [--output FILE]

Examples:
    uv run python scripts/generate_synthetic_frames.py --steps 30 --output frames.json
    uv run python scripts/generate_synthetic_frames.py --format csv --sources "FTP,User" \\
        --intermediates "Pump,Reactor" --targets "S3,DB" --duration 3600 --interval 60
    uv run python scripts/generate_synthetic_frames.py --nodes "FTP,S3,DB,API" --seed 1
"""

from __future__ import annotations

import argparse
import csv
import io
import json
import math
import sys
from pathlib import Path
from typing import Optional

from flow_layout import Frame, generate_frames
from flow_layout.synthetic import split_roles


def _names(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def frames_to_json(frames: list[Frame]) -> str:
    """Serialize frames as a JSON array of {timestamp, nodes, links}."""
    data = [
        {
            "timestamp": frame.timestamp,
            "nodes": [{"name": node.name} for node in frame.nodes],
            "links": [
                {"source": link.source, "target": link.target, "value": link.value}
                for link in frame.links
            ],
        }
        for frame in frames
    ]
    return json.dumps(data, indent=2)


def frames_to_csv(frames: list[Frame]) -> str:
    """Serialize frames as timestamp,source,target,value rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["timestamp", "source", "target", "value"])
    for frame in frames:
        for link in frame.links:
            writer.writerow([frame.timestamp, link.source, link.target, link.value])
    return buffer.getvalue()


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic flow frames")
    parser.add_argument("--format", choices=["json", "csv"], default="json", help="Output format")
    parser.add_argument("--nodes", help="Comma-separated node names, split into thirds by role")
    parser.add_argument("--sources", help="Comma-separated source node names")
    parser.add_argument("--intermediates", help="Comma-separated intermediate node names")
    parser.add_argument("--targets", help="Comma-separated target node names")
    parser.add_argument("--steps", type=int, help="Number of frames (overrides --duration)")
    parser.add_argument("--duration", type=float, default=3600, help="Total duration in seconds")
    parser.add_argument("--interval", type=float, default=60, help="Seconds between frames")
    parser.add_argument("--seed", type=int, help="Random seed for reproducibility")
    parser.add_argument("--output", help="Output file path (default: stdout)")

    args = parser.parse_args()

    if args.interval <= 0:
        parser.error("--interval must be positive")
    steps = args.steps if args.steps is not None else math.ceil(args.duration / args.interval)

    if args.sources or args.intermediates or args.targets:
        roles = (_names(args.sources), _names(args.intermediates), _names(args.targets))
    elif args.nodes:
        roles = split_roles(_names(args.nodes))
    else:
        roles = (None, None, None)

    frames = generate_frames(*roles, steps=steps, interval=args.interval, seed=args.seed)
    text = frames_to_json(frames) + "\n" if args.format == "json" else frames_to_csv(frames)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"{args.format.upper()} data written to {args.output}")
    else:
        sys.stdout.write(text)


if __name__ == "__main__":
    main()
