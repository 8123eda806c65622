#!/usr/bin/env python3
"""Solve a TSP cost matrix with Little's method and print the trace.

The input file is JSON, either a bare matrix ``[[0, 10, ...], ...]``
or an object ``{"labels": ["A", ...], "costs": [[...], ...]}``.

Usage:
    python scripts/solve_matrix.py instance.json
    python scripts/solve_matrix.py instance.json --json > trace.json
    python scripts/solve_matrix.py instance.json --steps 10
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import argparse
import json
import logging

from little_tsp import (
    DEFAULT_SETTINGS, LittleError, LittleSolver, format_tour,
)


def load_instance(path):
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        return payload["costs"], payload.get("labels")
    return payload, None


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("instance", help="JSON file with the cost matrix")
    parser.add_argument("--json", action="store_true",
                        help="print the full result as JSON")
    parser.add_argument("--steps", type=int, default=None,
                        help="only print the first N trace records")
    parser.add_argument("--max-expansions", type=int, default=0,
                        help="stop after N node expansions (0 = no limit)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    costs, labels = load_instance(args.instance)
    settings = DEFAULT_SETTINGS.replace(
        {"search.max_expansions": args.max_expansions})
    try:
        solver = LittleSolver(costs, labels, settings=settings)
        if args.steps is not None:
            for record in solver.steps():
                if record.seq > args.steps:
                    break
                print(record.summary())
                for line in record.description.splitlines():
                    print(f"    {line}")
            return 0
        result = solver.run()
    except LittleError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(result.trace.explain())
        print()
        print(f"Optimal tour: {format_tour(result.tour, result.labels)}")
        print(f"Cost: {result.cost:g}  (root bound {result.root_bound:g}, "
              f"{result.nodes_expanded} expansions)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
