"""
Snap matching between grid-adjacent pieces.

Two neighbours lock together when they share a rotation (within
ROTATION_TOLERANCE_RAD, modulo a full turn) and the moving piece sits within
`threshold` of where it would be if the pair were assembled, given the
neighbour's current pose. Bad indices yield None / [] so a stale pointer event
during a rebuild cannot break the interaction loop.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from partition import PieceInfo
from puzzle_config import PuzzleParams

logger = logging.getLogger(__name__)

ROTATION_TOLERANCE_RAD = 0.1

# Hint lines float slightly above the top face
HINT_LIFT_MM = 0.5


@dataclass
class PieceTransform:
    """Runtime pose: position and rotation about +Z (radians)."""
    x: float
    y: float
    z: float
    rotation: float = 0.0

    def copy(self) -> "PieceTransform":
        return PieceTransform(self.x, self.y, self.z, self.rotation)


@dataclass(frozen=True)
class SnapCandidate:
    """Result of matching a moving piece against one neighbour."""
    neighbor_index: int
    edge: str
    distance: float
    can_snap: bool
    target_x: Optional[float] = None
    target_y: Optional[float] = None
    target_rotation: Optional[float] = None


@dataclass(frozen=True)
class SnapHint:
    """Proximity feedback for one neighbour while dragging."""
    neighbor_index: int
    edge: str
    distance: float
    intensity: float
    segment: np.ndarray              # (2, 3) world coordinates


def rotations_match(a: float, b: float, tol: float = ROTATION_TOLERANCE_RAD) -> bool:
    diff = abs(a - b) % (2 * math.pi)
    return diff < tol or abs(diff - 2 * math.pi) < tol


def _rotate(dx: float, dy: float, angle: float):
    c, s = math.cos(angle), math.sin(angle)
    return dx * c - dy * s, dx * s + dy * c


def _lookup(seq: Sequence, index: int):
    if index is None or not 0 <= index < len(seq):
        return None
    return seq[index]


def evaluate_snap(
    moving_index: int,
    neighbor_index: int,
    transforms: Sequence[PieceTransform],
    infos: Sequence[PieceInfo],
    threshold: float,
) -> Optional[SnapCandidate]:
    """Match the moving piece against one neighbour.

    Returns None if either piece is unknown or they are not grid-adjacent.
    A rotation mismatch yields can_snap=False with infinite distance.
    """
    info_m = _lookup(infos, moving_index)
    info_n = _lookup(infos, neighbor_index)
    moving = _lookup(transforms, moving_index)
    neighbor = _lookup(transforms, neighbor_index)
    if info_m is None or info_n is None or moving is None or neighbor is None:
        return None

    edge = info_m.neighbors.edge_to(neighbor_index)
    if edge is None:
        return None

    if not rotations_match(moving.rotation, neighbor.rotation):
        return SnapCandidate(neighbor_index, edge, math.inf, False)

    # assembled offset, carried along by the neighbour's rotation
    rdx, rdy = _rotate(
        info_m.center_x - info_n.center_x,
        info_m.center_y - info_n.center_y,
        neighbor.rotation or 0.0,
    )
    distance = math.hypot(
        (moving.x - neighbor.x) - rdx,
        (moving.y - neighbor.y) - rdy,
    )

    if distance <= threshold:
        return SnapCandidate(
            neighbor_index, edge, distance, True,
            target_x=neighbor.x + rdx,
            target_y=neighbor.y + rdy,
            target_rotation=neighbor.rotation,
        )
    return SnapCandidate(neighbor_index, edge, distance, False)


def find_snap_candidates(
    piece_index: int,
    transforms: Sequence[PieceTransform],
    infos: Sequence[PieceInfo],
    threshold: float,
) -> List[SnapCandidate]:
    """Finite-distance matches against every neighbour, nearest first."""
    info = _lookup(infos, piece_index)
    if info is None or _lookup(transforms, piece_index) is None:
        return []

    candidates = []
    for _edge, neighbor_index in info.neighbors.items():
        if neighbor_index is None:
            continue
        result = evaluate_snap(piece_index, neighbor_index, transforms, infos, threshold)
        if result is not None and math.isfinite(result.distance):
            candidates.append(result)

    candidates.sort(key=lambda c: c.distance)
    return candidates


def highlight_intensity(distance: float, radius: float) -> float:
    """0..1 feedback strength, quadratic falloff to 0 at `radius`."""
    if radius <= 0 or distance >= radius:
        return 0.0
    ratio = 1.0 - distance / radius
    return ratio * ratio


def shared_edge_segment(
    info: PieceInfo,
    neighbor: PieceInfo,
    transform: PieceTransform,
    params: PuzzleParams,
) -> np.ndarray:
    """Nominal straight edge shared with `neighbor`, posed with `transform`.

    Returns a (2, 3) array lifted just above the top face, or an empty
    (0, 3) array if the pieces do not touch.
    """
    hw = params.piece_width / 2
    hh = params.piece_height / 2
    dc = info.col - neighbor.col
    dr = info.row - neighbor.row

    if dc == 1 and dr == 0:
        local = [(-hw, -hh), (-hw, hh)]
    elif dc == -1 and dr == 0:
        local = [(hw, -hh), (hw, hh)]
    elif dr == 1 and dc == 0:
        local = [(-hw, -hh), (hw, -hh)]
    elif dr == -1 and dc == 0:
        local = [(-hw, hh), (hw, hh)]
    else:
        return np.zeros((0, 3))

    z = params.depth + HINT_LIFT_MM
    points = []
    for lx, ly in local:
        rx, ry = _rotate(lx, ly, transform.rotation or 0.0)
        points.append((transform.x + rx, transform.y + ry, z))
    return np.array(points, dtype=float)


def snap_hints(
    piece_index: int,
    transforms: Sequence[PieceTransform],
    infos: Sequence[PieceInfo],
    params: PuzzleParams,
    snap_distance: float,
) -> List[SnapHint]:
    """Proximity hints, evaluated over twice the snap distance."""
    radius = snap_distance * 2
    hints = []
    for cand in find_snap_candidates(piece_index, transforms, infos, radius):
        intensity = highlight_intensity(cand.distance, radius)
        if intensity <= 0:
            continue
        hints.append(SnapHint(
            neighbor_index=cand.neighbor_index,
            edge=cand.edge,
            distance=cand.distance,
            intensity=intensity,
            segment=shared_edge_segment(
                infos[piece_index], infos[cand.neighbor_index],
                transforms[piece_index], params,
            ),
        ))
    return hints


def apply_snap(transform: PieceTransform, candidate: SnapCandidate) -> bool:
    """Hard-lock a pose onto a candidate target; False if not snappable."""
    if not candidate.can_snap:
        return False
    transform.x = candidate.target_x
    transform.y = candidate.target_y
    transform.rotation = candidate.target_rotation
    logger.debug(
        "Snapped onto piece %d (%s edge, %.3f mm)",
        candidate.neighbor_index, candidate.edge, candidate.distance,
    )
    return True
