"""
Cut-line generation for the puzzle grid.

split_offset() gives the lateral deviation of a cut at parameter t in [0, 1].
Edges are sampled into ordered (N, 2) point arrays. EdgeBank generates every
interior edge of a grid exactly once so that the two pieces sharing it consume
the same points (one of them reversed); wave cuts are not symmetric under
t -> 1 - t, so sampling each side independently would leave gaps.
"""
import logging
import math
from typing import Dict, Tuple

import numpy as np

from puzzle_config import AMPLITUDE_RATIO, PuzzleParams, SplitMode

logger = logging.getLogger(__name__)

DEFAULT_SEGMENTS = 30

# Zigzag teeth per edge
ZIGZAG_TEETH = 8


def split_offset(t: float, mode: SplitMode, amplitude: float) -> float:
    """Lateral offset of a cut at normalized parameter t."""
    if mode is SplitMode.WAVE:
        return math.sin(t * math.pi * 4) * amplitude
    if mode is SplitMode.ZIGZAG:
        zt = (t * ZIGZAG_TEETH) % 1
        tri = zt * 2 if zt < 0.5 else (1 - zt) * 2
        return tri * amplitude - amplitude * 0.5
    return 0.0


def edge_amplitude(piece_width: float, piece_height: float) -> float:
    """Default amplitude: 8% of the shorter piece side."""
    return min(piece_width, piece_height) * AMPLITUDE_RATIO


def _offsets(mode: SplitMode, amplitude: float, segments: int) -> np.ndarray:
    ts = np.linspace(0.0, 1.0, segments + 1)
    return np.array([split_offset(float(t), mode, amplitude) for t in ts])


def horizontal_edge(
    x_start: float,
    x_end: float,
    y: float,
    mode: SplitMode,
    amplitude: float,
    segments: int = DEFAULT_SEGMENTS,
) -> np.ndarray:
    """Sample a cut from (x_start, y) to (x_end, y); offset applied along Y."""
    ts = np.linspace(0.0, 1.0, segments + 1)
    xs = x_start + (x_end - x_start) * ts
    ys = y + _offsets(mode, amplitude, segments)
    return np.column_stack([xs, ys])


def vertical_edge(
    x: float,
    y_start: float,
    y_end: float,
    mode: SplitMode,
    amplitude: float,
    segments: int = DEFAULT_SEGMENTS,
) -> np.ndarray:
    """Sample a cut from (x, y_start) to (x, y_end); offset applied along X."""
    ts = np.linspace(0.0, 1.0, segments + 1)
    ys = y_start + (y_end - y_start) * ts
    xs = x + _offsets(mode, amplitude, segments)
    return np.column_stack([xs, ys])


def is_reversal_symmetric(
    mode: SplitMode,
    amplitude: float = 1.0,
    segments: int = DEFAULT_SEGMENTS,
    tol: float = 1e-9,
) -> bool:
    """True if f(1 - t) == f(t) at every sample, i.e. both traversal
    directions of an independently sampled edge coincide."""
    forward = _offsets(mode, amplitude, segments)
    return bool(np.allclose(forward, forward[::-1], atol=tol))


class EdgeBank:
    """Canonical cut curves for one parameter snapshot.

    Horizontal lines are addressed by (col, line_row) with line_row in
    1..grid_y-1; vertical lines by (line_col, row) with line_col in
    1..grid_x-1. Curves always run in the ascending axis direction and their
    end samples sit exactly on the lattice corners. Outer border lines come
    back as two-point straight segments.
    """

    def __init__(self, params: PuzzleParams, segments: int = DEFAULT_SEGMENTS):
        self.params = params
        self.segments = segments
        self.amplitude = edge_amplitude(params.piece_width, params.piece_height)
        self._horizontal: Dict[Tuple[int, int], np.ndarray] = {}
        self._vertical: Dict[Tuple[int, int], np.ndarray] = {}
        logger.debug(
            "Edge bank: mode=%s amplitude=%.3f segments=%d",
            params.split_mode.value, self.amplitude, segments,
        )

    def grid_x(self, line_col: int) -> float:
        """X coordinate of vertical grid line line_col (0..grid_x)."""
        p = self.params
        return -p.width / 2 + line_col * p.piece_width

    def grid_y(self, line_row: int) -> float:
        """Y coordinate of horizontal grid line line_row (0..grid_y)."""
        p = self.params
        return -p.height / 2 + line_row * p.piece_height

    def corner(self, line_col: int, line_row: int) -> np.ndarray:
        return np.array([self.grid_x(line_col), self.grid_y(line_row)])

    def horizontal(self, col: int, line_row: int) -> np.ndarray:
        """Cut along horizontal line line_row spanning cell column col."""
        key = (col, line_row)
        if key not in self._horizontal:
            start = self.corner(col, line_row)
            end = self.corner(col + 1, line_row)
            if line_row in (0, self.params.grid_y):
                pts = np.vstack([start, end])
            else:
                pts = horizontal_edge(
                    start[0], end[0], start[1],
                    self.params.split_mode, self.amplitude, self.segments,
                )
                pts[0], pts[-1] = start, end
            self._horizontal[key] = pts
        return self._horizontal[key]

    def vertical(self, line_col: int, row: int) -> np.ndarray:
        """Cut along vertical line line_col spanning cell row row."""
        key = (line_col, row)
        if key not in self._vertical:
            start = self.corner(line_col, row)
            end = self.corner(line_col, row + 1)
            if line_col in (0, self.params.grid_x):
                pts = np.vstack([start, end])
            else:
                pts = vertical_edge(
                    start[0], start[1], end[1],
                    self.params.split_mode, self.amplitude, self.segments,
                )
                pts[0], pts[-1] = start, end
            self._vertical[key] = pts
        return self._vertical[key]

    def __len__(self) -> int:
        return len(self._horizontal) + len(self._vertical)
