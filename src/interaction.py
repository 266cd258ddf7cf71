"""
Pointer-driven select / drag / rotate state machine for puzzle pieces.

The render consumer performs ray casting and hands each pointer event over as
a PointerEvent carrying the pick ray, the pointer's screen X and the hit (a
piece, the selected piece's rotation ring, or nothing). The controller decides
the transition and writes poses into the session:

    Idle --down(piece i)--> Dragging(i) --up--> Selected(i)
    Selected(i) --down(ring)--> Rotating(i) --up--> Selected(i)
    Idle/Selected --down(nothing)--> Idle

Releasing a drag snaps the piece onto its nearest matching neighbour.
Releasing a rotation never snaps.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Union

import numpy as np

from partition import PieceInfo
from puzzle_config import PuzzleParams
from snapping import (
    PieceTransform,
    SnapHint,
    apply_snap,
    find_snap_candidates,
    snap_hints,
)

logger = logging.getLogger(__name__)

ROTATION_SPEED_RAD_PER_PX = 0.01

SCATTER_RADIUS_FACTOR = 1.5
SCATTER_ANGLE_JITTER_RAD = 0.5


# ─── Events ──────────────────────────────────────────────────────────────────


class HitKind(Enum):
    """What the pick ray hit first."""
    NONE = "none"
    PIECE = "piece"
    ROTATION_HANDLE = "rotation_handle"


@dataclass(frozen=True)
class PointerHit:
    kind: HitKind = HitKind.NONE
    piece_index: Optional[int] = None


NO_HIT = PointerHit()


@dataclass(frozen=True)
class Ray:
    origin: np.ndarray               # (3,)
    direction: np.ndarray            # (3,)

    @classmethod
    def from_points(cls, origin, toward) -> "Ray":
        origin = np.asarray(origin, dtype=float)
        direction = np.asarray(toward, dtype=float) - origin
        return cls(origin=origin, direction=direction / np.linalg.norm(direction))


@dataclass(frozen=True)
class PointerEvent:
    ray: Optional[Ray] = None
    screen_x: float = 0.0
    hit: PointerHit = NO_HIT


def intersect_horizontal_plane(ray: Ray, z: float) -> Optional[np.ndarray]:
    """Point where the ray crosses the plane at height z, None if it never does."""
    dz = float(ray.direction[2])
    if abs(dz) < 1e-12:
        return None
    t = (z - float(ray.origin[2])) / dz
    if t < 0:
        return None
    return ray.origin + t * ray.direction


# ─── States ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Selected:
    index: int


@dataclass(frozen=True)
class Dragging:
    index: int
    offset_x: float
    offset_y: float


@dataclass(frozen=True)
class Rotating:
    index: int
    start_pointer_x: float
    start_rotation: float


InteractionState = Union[Idle, Selected, Dragging, Rotating]


# ─── Global layouts ──────────────────────────────────────────────────────────


def assemble(infos: Sequence[PieceInfo], params: PuzzleParams) -> List[PieceTransform]:
    """Every piece at its grid centre with zero rotation."""
    z = params.depth / 2
    return [PieceTransform(info.center_x, info.center_y, z, 0.0) for info in infos]


def initial_transforms(infos: Sequence[PieceInfo], params: PuzzleParams) -> List[PieceTransform]:
    return assemble(infos, params)


def scatter(
    infos: Sequence[PieceInfo],
    params: PuzzleParams,
    rng: Optional[np.random.Generator] = None,
) -> List[PieceTransform]:
    """Spread pieces around the block with random radius and rotation.

    Angles are spaced evenly by index plus a random jitter; radius is
    1.5 * max(width, height) scaled by U(0.5, 1). No collision avoidance.
    """
    if rng is None:
        rng = np.random.default_rng()
    n = len(infos)
    base_radius = max(params.width, params.height) * SCATTER_RADIUS_FACTOR
    z = params.depth / 2
    transforms = []
    for i in range(n):
        angle = (i / n) * 2 * math.pi + rng.random() * SCATTER_ANGLE_JITTER_RAD
        radius = base_radius * (0.5 + rng.random() * 0.5)
        transforms.append(PieceTransform(
            x=math.cos(angle) * radius,
            y=math.sin(angle) * radius,
            z=z,
            rotation=rng.random() * 2 * math.pi,
        ))
    return transforms


# ─── Controller ──────────────────────────────────────────────────────────────


class InteractionController:
    """Owns the transient interaction state for one PuzzleSession.

    The session provides `infos`, `transforms`, `params`, `snap_settings`,
    `update_transform()`, `set_transforms()`, `ensure_transforms()`,
    `set_selected_index()` and `subscribe()`. A rebuild or a game-mode change
    drops whatever the controller was doing.
    """

    RESET_KEYS = ("partition", "game_mode")

    def __init__(self, session, rotation_speed: float = ROTATION_SPEED_RAD_PER_PX):
        self.session = session
        self.rotation_speed = rotation_speed
        self.state: InteractionState = Idle()
        self.camera_controls_enabled = True
        self._unsubscribe = session.subscribe(self._on_session_change)

    def detach(self) -> None:
        """Stop following session rebuilds."""
        self._unsubscribe()

    @property
    def selected_index(self) -> Optional[int]:
        if isinstance(self.state, Idle):
            return None
        return self.state.index

    @property
    def is_busy(self) -> bool:
        """True while a drag or rotation owns the pointer."""
        return isinstance(self.state, (Dragging, Rotating))

    # -- pointer events --

    def handle_pointer_down(self, event: PointerEvent) -> InteractionState:
        if self.is_busy:
            return self.state
        self.session.ensure_transforms()
        hit = event.hit

        if hit.kind is HitKind.ROTATION_HANDLE and isinstance(self.state, Selected):
            index = self.state.index
            pose = self._pose(index)
            if pose is None:
                return self._set_state(Idle())
            self.camera_controls_enabled = False
            return self._set_state(Rotating(index, event.screen_x, pose.rotation))

        if hit.kind is HitKind.PIECE and hit.piece_index is not None:
            index = hit.piece_index
            pose = self._pose(index)
            if pose is None:
                logger.warning("Ignoring pointer-down on unknown piece %s", index)
                return self._set_state(Idle())
            offset_x = offset_y = 0.0
            if event.ray is not None:
                point = intersect_horizontal_plane(event.ray, pose.z)
                if point is not None:
                    offset_x = pose.x - float(point[0])
                    offset_y = pose.y - float(point[1])
            self.camera_controls_enabled = False
            return self._set_state(Dragging(index, offset_x, offset_y))

        return self._set_state(Idle())

    def handle_pointer_move(self, event: PointerEvent) -> InteractionState:
        state = self.state
        if isinstance(state, Dragging):
            pose = self._pose(state.index)
            if pose is None:
                return self._abort()
            if event.ray is None:
                return state
            point = intersect_horizontal_plane(event.ray, pose.z)
            if point is not None:
                self.session.update_transform(
                    state.index,
                    x=float(point[0]) + state.offset_x,
                    y=float(point[1]) + state.offset_y,
                )
        elif isinstance(state, Rotating):
            if self._pose(state.index) is None:
                return self._abort()
            rotation = state.start_rotation + (
                event.screen_x - state.start_pointer_x
            ) * self.rotation_speed
            self.session.update_transform(state.index, rotation=rotation)
        return self.state

    def handle_pointer_up(self, event: Optional[PointerEvent] = None) -> InteractionState:
        state = self.state
        if not self.is_busy:
            return state
        self.camera_controls_enabled = True
        if self._pose(state.index) is None:
            return self._abort()

        if isinstance(state, Dragging):
            candidates = find_snap_candidates(
                state.index,
                self.session.transforms,
                self.session.infos,
                self.session.snap_settings.snap_distance,
            )
            if candidates and candidates[0].can_snap:
                best = candidates[0]
                snapped = self._pose(state.index).copy()
                apply_snap(snapped, best)
                self.session.update_transform(
                    state.index,
                    x=snapped.x, y=snapped.y, rotation=snapped.rotation,
                )
        return self._set_state(Selected(state.index))

    def handle_pointer_leave(self, event: Optional[PointerEvent] = None) -> InteractionState:
        """Leaving the surface ends a drag or rotation exactly like pointer-up."""
        return self.handle_pointer_up(event)

    # -- global commands --

    def scatter(self, rng: Optional[np.random.Generator] = None) -> List[PieceTransform]:
        transforms = scatter(self.session.infos, self.session.params, rng)
        self.reset()
        self.session.set_transforms(transforms, scattered=True)
        return transforms

    def assemble(self) -> List[PieceTransform]:
        transforms = assemble(self.session.infos, self.session.params)
        self.reset()
        self.session.set_transforms(transforms, scattered=False)
        return transforms

    def reset(self) -> InteractionState:
        """Drop any selection, e.g. after a rebuild or a layout command."""
        self.camera_controls_enabled = True
        return self._set_state(Idle())

    def snap_hints(self) -> List[SnapHint]:
        """Proximity hints for the piece being dragged (empty otherwise)."""
        if not isinstance(self.state, Dragging):
            return []
        return snap_hints(
            self.state.index,
            self.session.transforms,
            self.session.infos,
            self.session.params,
            self.session.snap_settings.snap_distance,
        )

    # -- internals --

    def _on_session_change(self, session, key: str) -> None:
        if key in self.RESET_KEYS and not isinstance(self.state, Idle):
            logger.info("Session %s changed, dropping %s", key, self.state)
            self.reset()

    def _pose(self, index: int) -> Optional[PieceTransform]:
        transforms = self.session.transforms
        if index is None or not 0 <= index < len(transforms):
            return None
        if index >= len(self.session.infos):
            return None
        return transforms[index]

    def _abort(self) -> InteractionState:
        logger.warning("Interaction on stale piece index, returning to idle")
        return self.reset()

    def _set_state(self, new_state: InteractionState) -> InteractionState:
        if new_state != self.state:
            logger.debug("Interaction %s -> %s", self.state, new_state)
        self.state = new_state
        self.session.set_selected_index(self.selected_index)
        return new_state
