"""
Extrude piece outlines into flat-capped solids with shared-texture UVs.

Caps are triangulated with trimesh and emitted at z=0 (bottom) and z=depth
(top). Every outline edge becomes a wall quad with its own four vertices, so
cap and wall vertices never merge and per-vertex normals stay either vertical
(caps) or horizontal (walls). Cap UVs are then rewritten from local to global
normalized coordinates so one full-image texture spans all pieces exactly as
it would span the unpartitioned block.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, List, Optional

import numpy as np
import trimesh
from shapely.geometry import Polygon
from shapely.geometry.polygon import orient

from partition import PieceShape
from puzzle_config import PuzzleError, PuzzleParams

logger = logging.getLogger(__name__)

# Vertices whose normal is within this angle of +/-Z count as cap vertices
CAP_NORMAL_ANGLE_DEG = 25.0
_CAP_NZ_MIN = math.cos(math.radians(CAP_NORMAL_ANGLE_DEG))

TOP_COLOR = "#FFFFFF"


class ExtrusionError(PuzzleError):
    """An outline could not be turned into a solid."""
    pass


class FaceKind(IntEnum):
    """Material group of a solid face."""
    SIDE = 0
    TOP = 1
    BOTTOM = 2


@dataclass
class PieceSolid:
    """Extruded piece in its local frame, ready for the render consumer."""
    index: int
    mesh: trimesh.Trimesh
    uv: np.ndarray                   # (V, 2)
    face_kinds: np.ndarray           # (F,) FaceKind values
    center_x: float
    center_y: float
    texture: Any = None              # opaque handle, passed through
    retired: bool = False
    _on_retire: List[Callable[["PieceSolid"], None]] = field(
        default_factory=list, repr=False,
    )

    def on_retire(self, callback: Callable[["PieceSolid"], None]) -> None:
        """Register a callback run when the solid is retired (e.g. GPU buffer release)."""
        self._on_retire.append(callback)

    def retire(self) -> None:
        """Release the solid before a rebuild; safe to call twice."""
        if self.retired:
            return
        self.retired = True
        for callback in self._on_retire:
            callback(self)
        self._on_retire.clear()
        self.texture = None

    def global_uv_point(self, local_xy: np.ndarray, params: PuzzleParams) -> np.ndarray:
        """Texture coordinate of a local XY point."""
        return _global_uv(np.atleast_2d(local_xy), self.center_x, self.center_y, params)


def _global_uv(
    local_xy: np.ndarray, center_x: float, center_y: float, params: PuzzleParams,
) -> np.ndarray:
    gx = local_xy[:, 0] + center_x
    gy = local_xy[:, 1] + center_y
    u = (gx + params.width / 2) / params.width
    v = (gy + params.height / 2) / params.height
    return np.column_stack([u, v])


def _triangulate_cap(polygon: Polygon):
    """Triangulate a polygon; faces wound counter-clockwise (normal +Z)."""
    try:
        verts, faces = trimesh.creation.triangulate_polygon(polygon)
    except (ValueError, ImportError) as exc:
        raise ExtrusionError(f"Cap triangulation failed: {exc}") from exc
    verts = np.asarray(verts, dtype=float)
    faces = np.asarray(faces, dtype=np.int64).reshape((-1, 3))
    if len(faces) == 0:
        raise ExtrusionError("Cap triangulation produced no faces")

    # Drop vertices the triangulator did not reference (e.g. closing point)
    used, inverse = np.unique(faces, return_inverse=True)
    verts = verts[used]
    faces = inverse.reshape(faces.shape)

    a, b, c = verts[faces[:, 0]], verts[faces[:, 1]], verts[faces[:, 2]]
    signed = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    flip = signed < 0
    faces[flip] = faces[flip][:, ::-1]
    return verts, faces


def _wall_geometry(ring: np.ndarray, depth: float):
    """One quad per ring edge; ring must be counter-clockwise."""
    n = len(ring)
    nxt = np.roll(ring, -1, axis=0)
    seg_len = np.linalg.norm(nxt - ring, axis=1)
    perimeter = float(seg_len.sum()) or 1.0
    start_s = np.concatenate([[0.0], np.cumsum(seg_len)[:-1]]) / perimeter
    end_s = start_s + seg_len / perimeter

    zeros = np.zeros(n)
    tops = np.full(n, depth)
    # per edge: b0, b1, t1, t0
    quad = np.stack([
        np.column_stack([ring, zeros]),
        np.column_stack([nxt, zeros]),
        np.column_stack([nxt, tops]),
        np.column_stack([ring, tops]),
    ], axis=1)
    vertices = quad.reshape((-1, 3))

    quad_uv = np.stack([
        np.column_stack([start_s, zeros]),
        np.column_stack([end_s, zeros]),
        np.column_stack([end_s, np.ones(n)]),
        np.column_stack([start_s, np.ones(n)]),
    ], axis=1)
    uv = quad_uv.reshape((-1, 2))

    base = (np.arange(n) * 4).reshape((-1, 1))
    faces = np.vstack([
        base + np.array([0, 1, 2]),
        base + np.array([0, 2, 3]),
    ])
    return vertices, faces, uv


def extrude_piece(
    shape: PieceShape,
    params: PuzzleParams,
    index: int = 0,
    texture: Any = None,
) -> PieceSolid:
    """Extrude a piece outline by params.depth and correct its cap UVs."""
    polygon = orient(shape.polygon, sign=1.0)
    if not polygon.is_valid or polygon.is_empty:
        raise ExtrusionError(f"Piece {index} outline is not a valid polygon")

    depth = float(params.depth)
    cap_verts, cap_faces = _triangulate_cap(polygon)
    n_cap = len(cap_verts)

    bottom = np.column_stack([cap_verts, np.zeros(n_cap)])
    top = np.column_stack([cap_verts, np.full(n_cap, depth)])

    ring = np.asarray(polygon.exterior.coords[:-1], dtype=float)
    wall_verts, wall_faces, wall_uv = _wall_geometry(ring, depth)

    vertices = np.vstack([bottom, top, wall_verts])
    faces = np.vstack([
        cap_faces[:, ::-1],
        cap_faces + n_cap,
        wall_faces + 2 * n_cap,
    ])
    face_kinds = np.concatenate([
        np.full(len(cap_faces), FaceKind.BOTTOM, dtype=np.int8),
        np.full(len(cap_faces), FaceKind.TOP, dtype=np.int8),
        np.full(len(wall_faces), FaceKind.SIDE, dtype=np.int8),
    ])
    uv = np.vstack([cap_verts, cap_verts, wall_uv])

    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)

    cap_mask = np.abs(mesh.vertex_normals[:, 2]) > _CAP_NZ_MIN
    uv[cap_mask] = _global_uv(vertices[cap_mask, :2], shape.center_x, shape.center_y, params)

    mesh.visual = trimesh.visual.TextureVisuals(uv=uv)
    logger.debug(
        "Piece %d: %d cap triangles, %d wall quads, %d cap UVs rewritten",
        index, len(cap_faces), len(ring), int(cap_mask.sum()),
    )

    return PieceSolid(
        index=index,
        mesh=mesh,
        uv=uv,
        face_kinds=face_kinds,
        center_x=shape.center_x,
        center_y=shape.center_y,
        texture=texture,
    )


def face_colors(solid: PieceSolid, params: PuzzleParams) -> np.ndarray:
    """RGBA per face: white top, side_color walls, bottom_color bottom."""
    palette = np.array([
        trimesh.visual.color.hex_to_rgba(params.side_color),
        trimesh.visual.color.hex_to_rgba(TOP_COLOR),
        trimesh.visual.color.hex_to_rgba(params.bottom_color),
    ], dtype=np.uint8)
    return palette[solid.face_kinds.astype(int)]


def retire_all(solids: Optional[List[PieceSolid]]) -> int:
    """Retire every solid in an arena; returns how many were live."""
    if not solids:
        return 0
    live = 0
    for solid in solids:
        if not solid.retired:
            live += 1
        solid.retire()
    return live
