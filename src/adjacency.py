"""
4-neighbour grid adjacency for puzzle pieces.

Pieces are indexed row-major: index = row * grid_x + col. Border sides have
no neighbour (None).
"""
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

EDGES = ("left", "right", "bottom", "top")

OPPOSITE_EDGE: Dict[str, str] = {
    "left": "right",
    "right": "left",
    "bottom": "top",
    "top": "bottom",
}


@dataclass(frozen=True)
class Neighbors:
    """Adjacent piece index per side, None on the outer border."""
    left: Optional[int] = None
    right: Optional[int] = None
    bottom: Optional[int] = None
    top: Optional[int] = None

    def items(self) -> Iterator[Tuple[str, Optional[int]]]:
        for edge in EDGES:
            yield edge, getattr(self, edge)

    def get(self, edge: str) -> Optional[int]:
        return getattr(self, edge)

    def edge_to(self, other: int) -> Optional[str]:
        """Side shared with piece `other`, or None if not adjacent."""
        for edge, idx in self.items():
            if idx is not None and idx == other:
                return edge
        return None


def piece_index(col: int, row: int, grid_x: int) -> int:
    return row * grid_x + col


def neighbors_of(col: int, row: int, grid_x: int, grid_y: int) -> Neighbors:
    return Neighbors(
        left=piece_index(col - 1, row, grid_x) if col > 0 else None,
        right=piece_index(col + 1, row, grid_x) if col < grid_x - 1 else None,
        bottom=piece_index(col, row - 1, grid_x) if row > 0 else None,
        top=piece_index(col, row + 1, grid_x) if row < grid_y - 1 else None,
    )


def build_adjacency(grid_x: int, grid_y: int) -> List[Neighbors]:
    """Neighbours of every piece, in index order."""
    return [
        neighbors_of(col, row, grid_x, grid_y)
        for row in range(grid_y)
        for col in range(grid_x)
    ]


def check_symmetry(adjacency: List[Neighbors]) -> List[str]:
    """Verify A lists B on edge E iff B lists A on the opposite edge.

    Returns list of violation strings (empty = ok).
    """
    issues = []
    n = len(adjacency)
    for i, nbrs in enumerate(adjacency):
        for edge, j in nbrs.items():
            if j is None:
                continue
            if not 0 <= j < n:
                issues.append(f"Piece {i} {edge} neighbour {j} out of range")
                continue
            back = adjacency[j].get(OPPOSITE_EDGE[edge])
            if back != i:
                issues.append(
                    f"Piece {i} lists {j} on {edge}, but {j} lists {back} "
                    f"on {OPPOSITE_EDGE[edge]}"
                )
    return issues
