"""
Full partition pass: parameters in, piece infos and extruded solids out.

The two returned lists form an arena addressed by piece index; the session
keeps a parallel list of PieceTransform of the same length.
"""
import logging
from typing import Any, List, Tuple

from boundary_curves import DEFAULT_SEGMENTS
from extrusion import PieceSolid, extrude_piece
from partition import PieceInfo, build_piece_infos, create_all_shapes
from puzzle_config import PuzzleParams

logger = logging.getLogger(__name__)


def generate_partition(
    params: PuzzleParams,
    texture: Any = None,
    segments: int = DEFAULT_SEGMENTS,
) -> Tuple[List[PieceInfo], List[PieceSolid]]:
    """Cut the block into grid_x * grid_y pieces and extrude each one.

    Args:
        params: Block size, grid and cut style. Assumed valid.
        texture: Opaque image handle attached to every solid unchanged.
        segments: Samples per interior cut.

    Returns:
        (infos, solids), both row-major and index-aligned.
    """
    infos = build_piece_infos(params)
    shapes = create_all_shapes(params, segments)
    solids = [
        extrude_piece(shape, params, index=info.index, texture=texture)
        for info, shape in zip(infos, shapes)
    ]
    logger.info(
        "Generated %d pieces (%dx%d, %s, %.1fx%.1fx%.1f mm)",
        len(solids), params.grid_x, params.grid_y, params.split_mode.value,
        params.width, params.height, params.depth,
    )
    return infos, solids
