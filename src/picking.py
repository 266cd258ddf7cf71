"""
Reference hit testing against posed piece solids.

The interaction controller only consumes PointerHit results; a render
consumer normally produces them with its own scene raycaster. This module does
the same job with trimesh so headless drivers and tests can feed real rays:
the selected piece's rotation ring is tested first, then every posed solid,
nearest hit wins.
"""
import logging
from typing import Optional, Sequence

import numpy as np
import trimesh
from scipy.spatial.transform import Rotation

from extrusion import PieceSolid
from interaction import HitKind, NO_HIT, PointerHit, Ray, intersect_horizontal_plane
from puzzle_config import PuzzleParams
from snapping import PieceTransform

logger = logging.getLogger(__name__)

RING_INNER_FACTOR = 0.6
RING_OUTER_FACTOR = 0.7
RING_LIFT_MM = 1.0


def pose_matrix(transform: PieceTransform) -> np.ndarray:
    """4x4 homogeneous matrix: rotate about +Z, then translate."""
    matrix = np.eye(4)
    matrix[:3, :3] = Rotation.from_euler("z", transform.rotation).as_matrix()
    matrix[:3, 3] = [transform.x, transform.y, transform.z]
    return matrix


def posed_mesh(solid: PieceSolid, transform: PieceTransform) -> trimesh.Trimesh:
    """World-space copy of a solid at its current pose."""
    mesh = solid.mesh.copy()
    mesh.apply_transform(pose_matrix(transform))
    return mesh


def rotation_ring_radii(params: PuzzleParams):
    size = max(params.piece_width, params.piece_height)
    return size * RING_INNER_FACTOR, size * RING_OUTER_FACTOR


def hits_rotation_ring(ray: Ray, transform: PieceTransform, params: PuzzleParams) -> bool:
    """Ray crosses the annulus drawn around a selected piece."""
    point = intersect_horizontal_plane(ray, params.depth + RING_LIFT_MM)
    if point is None:
        return False
    inner, outer = rotation_ring_radii(params)
    r = float(np.hypot(point[0] - transform.x, point[1] - transform.y))
    return inner <= r <= outer


def pick(
    ray: Ray,
    solids: Sequence[PieceSolid],
    transforms: Sequence[PieceTransform],
    params: PuzzleParams,
    selected_index: Optional[int] = None,
) -> PointerHit:
    """Resolve what a pick ray hits first."""
    if selected_index is not None and 0 <= selected_index < len(transforms):
        if hits_rotation_ring(ray, transforms[selected_index], params):
            return PointerHit(HitKind.ROTATION_HANDLE, selected_index)

    origins = np.asarray(ray.origin, dtype=float).reshape((1, 3))
    directions = np.asarray(ray.direction, dtype=float).reshape((1, 3))
    best_index, best_dist = None, np.inf
    for solid, transform in zip(solids, transforms):
        if solid.retired:
            continue
        mesh = posed_mesh(solid, transform)
        locations, _ray_idx, _tri_idx = mesh.ray.intersects_location(
            ray_origins=origins, ray_directions=directions,
        )
        if len(locations) == 0:
            continue
        dist = float(np.min(np.linalg.norm(locations - origins[0], axis=1)))
        if dist < best_dist:
            best_index, best_dist = solid.index, dist

    if best_index is None:
        return NO_HIT
    logger.debug("Picked piece %d at %.2f mm", best_index, best_dist)
    return PointerHit(HitKind.PIECE, best_index)
