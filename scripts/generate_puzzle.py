#!/usr/bin/env python3
"""
Build a puzzle partition and print a per-piece report.

Usage:
    python scripts/generate_puzzle.py
    python scripts/generate_puzzle.py --grid 3x4 --split-mode wave
    python scripts/generate_puzzle.py --width 150 --height 100 --grid-x 5 --grid-y 3 \\
        --split-mode zigzag --scatter --seed 7 --difficulty hard --snap-distance 8
"""
import sys
import argparse
import logging
from pathlib import Path

import numpy as np
from shapely.ops import unary_union

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from adjacency import check_symmetry
from interaction import InteractionController
from partition import create_all_shapes
from puzzle_config import (
    GRID_PRESETS,
    Difficulty,
    PuzzleError,
    SplitMode,
)
from puzzle_session import PuzzleSession
from snapping import find_snap_candidates


def main():
    parser = argparse.ArgumentParser(
        description="Cut a block into interlocking puzzle pieces and report on them"
    )
    parser.add_argument("--width", type=float, default=100.0, help="Block width in mm (default: 100)")
    parser.add_argument("--height", type=float, default=100.0, help="Block height in mm (default: 100)")
    parser.add_argument("--depth", type=float, default=10.0, help="Block thickness in mm (default: 10)")

    grid_group = parser.add_mutually_exclusive_group()
    grid_group.add_argument(
        "--grid", type=str, choices=list(GRID_PRESETS.keys()),
        help="Grid preset (default: 2x2)",
    )
    grid_group.add_argument("--grid-x", type=int, default=None, help="Columns")
    parser.add_argument("--grid-y", type=int, default=None, help="Rows (with --grid-x)")

    parser.add_argument(
        "--split-mode", type=str, default="straight",
        choices=[m.value for m in SplitMode],
        help="Cut style for interior lines (default: straight)",
    )
    parser.add_argument(
        "--difficulty", type=str, default="easy",
        choices=[d.value for d in Difficulty],
        help="Snap difficulty (default: easy, 20 mm)",
    )
    parser.add_argument(
        "--snap-distance", type=float, default=5.0,
        help="Hard-mode snap distance in mm, 1-30 (default: 5)",
    )
    parser.add_argument("--scatter", action="store_true", help="Scatter pieces and report snap state")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for --scatter")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    changes = dict(
        width=args.width,
        height=args.height,
        depth=args.depth,
        split_mode=args.split_mode,
    )
    if args.grid:
        preset = GRID_PRESETS[args.grid]
        changes.update(grid_x=preset.grid_x, grid_y=preset.grid_y)
    elif args.grid_x is not None:
        changes.update(grid_x=args.grid_x, grid_y=args.grid_y or args.grid_x)

    session = PuzzleSession()
    session.set_difficulty(Difficulty(args.difficulty))
    session.set_hard_snap_distance(args.snap_distance)
    try:
        session.update_params(**changes)
        session.set_game_mode(True)
    except PuzzleError as e:
        print(f"Error: {e}")
        return 1

    params = session.params
    print(f"\nBlock: {params.width:.1f} x {params.height:.1f} x {params.depth:.1f} mm")
    print(f"Grid: {params.grid_x} x {params.grid_y} ({params.split_mode.value}, "
          f"amplitude {params.amplitude:.2f} mm)")
    print(f"Pieces: {len(session.solids)}")

    for info, solid in zip(session.infos, session.solids):
        nbrs = ", ".join(
            f"{edge}={idx if idx is not None else '-'}" for edge, idx in info.neighbors.items()
        )
        print(
            f"  #{info.index} ({info.col},{info.row}) centre "
            f"({info.center_x:.1f}, {info.center_y:.1f}) "
            f"{len(solid.mesh.vertices)} verts / {len(solid.mesh.faces)} faces, "
            f"volume {solid.mesh.volume:.1f} mm3 [{nbrs}]"
        )

    issues = check_symmetry([info.neighbors for info in session.infos])
    shapes = [s.global_polygon for s in create_all_shapes(params)]
    covered = unary_union(shapes).area
    total = sum(p.area for p in shapes)
    print(f"\nAdjacency: {'symmetric' if not issues else f'{len(issues)} issues'}")
    print(f"Coverage: {covered:.2f} / {params.width * params.height:.2f} mm2 "
          f"(overlap {total - covered:.4f} mm2)")

    if args.scatter:
        controller = InteractionController(session)
        controller.scatter(np.random.default_rng(args.seed))
        threshold = session.snap_settings.snap_distance
        snappable = 0
        for info in session.infos:
            cands = find_snap_candidates(info.index, session.transforms, session.infos, threshold)
            if cands and cands[0].can_snap:
                snappable += 1
        print(f"\nScattered (seed {args.seed}), snap distance {threshold:.1f} mm: "
              f"{snappable} pieces within snap range of a neighbour")

    return 0


if __name__ == "__main__":
    sys.exit(main())
