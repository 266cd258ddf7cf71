"""
Piece outlines for a grid partition of the block.

Coordinate convention: X along width, Y along height, Z up through the
thickness. The block is centred on the origin in XY. Each piece outline is
expressed in a local frame whose origin is the piece's cell centre, so poses
rotate pieces about their own middle.
"""
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from shapely.geometry import Polygon

from adjacency import Neighbors, neighbors_of, piece_index
from boundary_curves import DEFAULT_SEGMENTS, EdgeBank
from puzzle_config import PuzzleParams


@dataclass(frozen=True)
class PieceInfo:
    """Grid placement and assembled-state centre of one piece."""
    col: int
    row: int
    index: int
    center_x: float
    center_y: float
    neighbors: Neighbors = field(default_factory=Neighbors)


@dataclass
class PieceShape:
    """Closed outline in the piece's local frame (ring not repeated at the end)."""
    points: np.ndarray              # (N, 2)
    center_x: float
    center_y: float

    @property
    def polygon(self) -> Polygon:
        return Polygon(self.points)

    def to_global(self) -> np.ndarray:
        return self.points + np.array([self.center_x, self.center_y])

    @property
    def global_polygon(self) -> Polygon:
        """Outline placed at its assembled position in the block."""
        return Polygon(self.to_global())


def cell_center(col: int, row: int, params: PuzzleParams) -> np.ndarray:
    x = -params.width / 2 + (col + 0.5) * params.piece_width
    y = -params.height / 2 + (row + 0.5) * params.piece_height
    return np.array([x, y])


def build_piece_infos(params: PuzzleParams) -> List[PieceInfo]:
    """PieceInfo for every cell, row-major."""
    infos = []
    for row in range(params.grid_y):
        for col in range(params.grid_x):
            cx, cy = cell_center(col, row, params)
            infos.append(PieceInfo(
                col=col,
                row=row,
                index=piece_index(col, row, params.grid_x),
                center_x=float(cx),
                center_y=float(cy),
                neighbors=neighbors_of(col, row, params.grid_x, params.grid_y),
            ))
    return infos


def piece_ring(col: int, row: int, bank: EdgeBank) -> np.ndarray:
    """Global-coordinate outline of cell (col, row).

    Walks bottom (left to right), right (bottom to top), top (right to left)
    and left (top to bottom) starting at the bottom-left corner. Each segment
    ends where the next starts, so its last point is dropped.
    """
    segments = [
        bank.horizontal(col, row),
        bank.vertical(col + 1, row),
        bank.horizontal(col, row + 1)[::-1],
        bank.vertical(col, row)[::-1],
    ]
    return np.vstack([seg[:-1] for seg in segments])


def create_piece_shape(
    col: int,
    row: int,
    params: PuzzleParams,
    bank: Optional[EdgeBank] = None,
) -> PieceShape:
    """Outline of cell (col, row) translated so its cell centre is the origin.

    Pass a shared EdgeBank when building several pieces of one partition so
    that neighbours reuse the same interior curves.
    """
    if bank is None:
        bank = EdgeBank(params, DEFAULT_SEGMENTS)
    ring = piece_ring(col, row, bank)
    center = cell_center(col, row, params)
    return PieceShape(
        points=ring - center,
        center_x=float(center[0]),
        center_y=float(center[1]),
    )


def create_all_shapes(
    params: PuzzleParams,
    segments: int = DEFAULT_SEGMENTS,
) -> List[PieceShape]:
    """Outlines of every piece, row-major, from one shared EdgeBank."""
    bank = EdgeBank(params, segments)
    return [
        create_piece_shape(col, row, params, bank)
        for row in range(params.grid_y)
        for col in range(params.grid_x)
    ]
