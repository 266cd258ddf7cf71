"""
Puzzle parameters, grid presets and snap difficulty settings.

PuzzleParams is the immutable snapshot a generation pass consumes. SnapSettings
turns the easy/hard difficulty choice into the active snap distance.
"""
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List


class SplitMode(Enum):
    """Cut style applied to interior grid lines."""
    STRAIGHT = "straight"
    WAVE = "wave"
    ZIGZAG = "zigzag"


SPLIT_MODE_NAMES = frozenset(m.value for m in SplitMode)


class Difficulty(Enum):
    """Snap difficulty; hard mode uses a user-adjustable distance."""
    EASY = "easy"
    HARD = "hard"


class PuzzleError(Exception):
    """Base exception for puzzle generation and session errors."""
    pass


class InvalidParamsError(PuzzleError):
    """Parameters failed validation and were not applied."""
    pass


# Cut deviation as a fraction of the shorter piece side
AMPLITUDE_RATIO = 0.08

EASY_SNAP_DISTANCE_MM = 20.0
HARD_SNAP_MIN_MM = 1.0
HARD_SNAP_MAX_MM = 30.0


@dataclass(frozen=True)
class GridPreset:
    """A named grid size offered by the parameter panel."""
    key: str
    grid_x: int
    grid_y: int

    @property
    def label(self) -> str:
        return f"{self.grid_x} × {self.grid_y}"


GRID_PRESETS: Dict[str, GridPreset] = {
    p.key: p
    for p in [
        GridPreset("2x2", 2, 2),
        GridPreset("3x3", 3, 3),
        GridPreset("4x4", 4, 4),
        GridPreset("5x5", 5, 5),
        GridPreset("2x3", 2, 3),
        GridPreset("3x4", 3, 4),
    ]
}


@dataclass(frozen=True)
class PuzzleParams:
    """Block dimensions (mm), grid size and cut style for one partition."""

    width: float = 100.0
    height: float = 100.0
    depth: float = 10.0
    grid_x: int = 2
    grid_y: int = 2
    split_mode: SplitMode = SplitMode.STRAIGHT
    side_color: str = "#808080"
    bottom_color: str = "#404040"

    @property
    def piece_width(self) -> float:
        return self.width / self.grid_x

    @property
    def piece_height(self) -> float:
        return self.height / self.grid_y

    @property
    def piece_count(self) -> int:
        return self.grid_x * self.grid_y

    @property
    def amplitude(self) -> float:
        """Lateral cut deviation, proportional to the piece size."""
        return min(self.piece_width, self.piece_height) * AMPLITUDE_RATIO

    def with_changes(self, **changes: Any) -> "PuzzleParams":
        """Return a copy with the given fields replaced.

        Unknown split mode names are kept as given so validate() reports them.
        """
        mode = changes.get("split_mode")
        if mode in SPLIT_MODE_NAMES:
            changes["split_mode"] = SplitMode(mode)
        return replace(self, **changes)

    def with_preset(self, key: str) -> "PuzzleParams":
        preset = GRID_PRESETS[key]
        return replace(self, grid_x=preset.grid_x, grid_y=preset.grid_y)

    def validate(self) -> List[str]:
        """Check preconditions of a generation pass.

        Returns list of issue strings (empty = ok).
        """
        issues = []
        for name in ("width", "height", "depth"):
            value = getattr(self, name)
            if not value > 0:
                issues.append(f"{name} must be positive, got {value}")
        for name in ("grid_x", "grid_y"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                issues.append(f"{name} must be an integer >= 1, got {value!r}")
        if not isinstance(self.split_mode, SplitMode):
            issues.append(f"Unknown split mode: {self.split_mode!r}")
        return issues

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["split_mode"] = self.split_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PuzzleParams":
        """Build params from a store snapshot, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if "split_mode" in known:
            known["split_mode"] = SplitMode(known["split_mode"])
        return cls(**known)


@dataclass
class SnapSettings:
    """Difficulty-derived snap tolerance."""

    difficulty: Difficulty = Difficulty.EASY
    hard_snap_distance: float = 5.0
    easy_snap_distance: float = field(default=EASY_SNAP_DISTANCE_MM)

    def __post_init__(self):
        self.hard_snap_distance = _clamp(
            self.hard_snap_distance, HARD_SNAP_MIN_MM, HARD_SNAP_MAX_MM,
        )

    @property
    def snap_distance(self) -> float:
        if self.difficulty is Difficulty.EASY:
            return self.easy_snap_distance
        return self.hard_snap_distance

    @property
    def highlight_radius(self) -> float:
        """Wider radius used for proximity hints while dragging."""
        return self.snap_distance * 2.0

    def set_hard_snap_distance(self, value: float) -> None:
        self.hard_snap_distance = _clamp(value, HARD_SNAP_MIN_MM, HARD_SNAP_MAX_MM)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(value)))
