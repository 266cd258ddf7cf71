"""
Per-session state for the puzzle game.

PuzzleSession is the key-value store the interaction core reads parameters
from and writes poses to. It owns the piece arena (infos + solids, addressed by
piece index) and the parallel list of PieceTransform, and rebuilds the arena
from scratch whenever parameters or the selected texture change.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from extrusion import PieceSolid, retire_all
from interaction import initial_transforms
from partition import PieceInfo
from puzzle_config import InvalidParamsError, PuzzleParams, SnapSettings
from puzzle_generator import generate_partition
from snapping import PieceTransform

logger = logging.getLogger(__name__)

POSE_FIELDS = ("x", "y", "z", "rotation")

Listener = Callable[["PuzzleSession", str], None]


@dataclass
class PuzzleSession:
    """Root session state."""

    params: PuzzleParams = field(default_factory=PuzzleParams)
    texture: Any = None
    snap_settings: SnapSettings = field(default_factory=SnapSettings)
    game_mode: bool = False
    scattered: bool = False
    selected_index: Optional[int] = None
    infos: List[PieceInfo] = field(default_factory=list)
    solids: List[PieceSolid] = field(default_factory=list)
    transforms: List[PieceTransform] = field(default_factory=list)
    _listeners: List[Listener] = field(default_factory=list, repr=False)

    # -- observation --

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(session, key)` after every change; returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            listener(self, key)

    # -- parameters --

    def update_params(self, **changes: Any) -> PuzzleParams:
        """Apply parameter changes and rebuild the partition.

        Raises:
            InvalidParamsError: if the resulting parameters fail validation;
                the session is left unchanged.
        """
        try:
            candidate = self.params.with_changes(**changes)
        except TypeError as exc:
            raise InvalidParamsError(f"Unknown parameter: {exc}") from exc
        issues = candidate.validate()
        if issues:
            raise InvalidParamsError("; ".join(issues))
        self.params = candidate
        self._notify("params")
        if self.game_mode:
            self.rebuild()
        return candidate

    def set_param(self, key: str, value: Any) -> PuzzleParams:
        return self.update_params(**{key: value})

    def apply_grid_preset(self, key: str) -> PuzzleParams:
        preset = self.params.with_preset(key)
        return self.update_params(grid_x=preset.grid_x, grid_y=preset.grid_y)

    def select_texture(self, texture: Any) -> None:
        """Swap the top-face image; solids are rebuilt to carry the new handle."""
        self.texture = texture
        self._notify("texture")
        if self.game_mode:
            self.rebuild()

    def set_difficulty(self, difficulty) -> float:
        self.snap_settings.difficulty = difficulty
        self._notify("snap_settings")
        return self.snap_settings.snap_distance

    def set_hard_snap_distance(self, value: float) -> float:
        self.snap_settings.set_hard_snap_distance(value)
        self._notify("snap_settings")
        return self.snap_settings.snap_distance

    # -- arena lifecycle --

    def rebuild(self) -> None:
        """Retire the current solids, then regenerate infos, solids and poses."""
        retired = retire_all(self.solids)
        if retired:
            logger.info("Retired %d solids before rebuild", retired)
        self.solids = []
        self.infos, self.solids = generate_partition(self.params, texture=self.texture)
        self.transforms = initial_transforms(self.infos, self.params)
        self.scattered = False
        self.selected_index = None
        self._notify("partition")

    def set_game_mode(self, enabled: bool) -> None:
        """Entering builds the pieces; leaving clears poses and selection."""
        self.game_mode = enabled
        if enabled:
            self.rebuild()
        else:
            retire_all(self.solids)
            self.infos, self.solids, self.transforms = [], [], []
            self.scattered = False
            self.selected_index = None
        self._notify("game_mode")

    # -- poses --

    def ensure_transforms(self) -> bool:
        """Reset poses if their count no longer matches the grid.

        Does nothing outside game mode. Returns True if a reset happened.
        """
        if not self.game_mode:
            return False
        expected = self.params.piece_count
        if len(self.transforms) == expected and len(self.infos) == expected:
            return False
        logger.warning(
            "Transform count %d does not match %d pieces, resetting",
            len(self.transforms), expected,
        )
        if len(self.infos) != expected:
            self.rebuild()
        else:
            self.transforms = initial_transforms(self.infos, self.params)
            self._notify("transforms")
        return True

    def set_transforms(self, transforms: List[PieceTransform], scattered: Optional[bool] = None) -> None:
        self.transforms = list(transforms)
        if scattered is not None:
            self.scattered = scattered
        self._notify("transforms")

    def update_transform(self, index: int, **fields: float) -> bool:
        """Merge fields into one pose; unknown indices are ignored."""
        if index is None or not 0 <= index < len(self.transforms):
            return False
        unknown = set(fields) - set(POSE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown pose fields: {sorted(unknown)}")
        pose = self.transforms[index]
        for name, value in fields.items():
            setattr(pose, name, float(value))
        self._notify("transforms")
        return True

    def set_selected_index(self, index: Optional[int]) -> None:
        if index == self.selected_index:
            return
        self.selected_index = index
        self._notify("selected_index")
