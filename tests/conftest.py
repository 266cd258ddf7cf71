"""
Shared test fixtures for puzzle partition and interaction tests.
"""
import sys
import warnings
from pathlib import Path

# Collinear cut samples can leave zero-area cap triangles; trimesh warns
# while normalizing their normals.
warnings.filterwarnings(
    "ignore",
    message="invalid value encountered in divide",
    category=RuntimeWarning,
    module=r"trimesh\..*",
)

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from puzzle_config import PuzzleParams, SplitMode
from puzzle_generator import generate_partition
from puzzle_session import PuzzleSession


@pytest.fixture
def default_params():
    """The stock 100x100x10mm block cut 2x2 with straight lines."""
    return PuzzleParams()


@pytest.fixture
def wave_params():
    """A non-square 3x2 wave cut."""
    return PuzzleParams(
        width=150.0, height=100.0, depth=8.0,
        grid_x=3, grid_y=2, split_mode=SplitMode.WAVE,
    )


@pytest.fixture
def zigzag_params():
    """A 3x3 zigzag cut."""
    return PuzzleParams(
        width=120.0, height=90.0, depth=6.0,
        grid_x=3, grid_y=3, split_mode=SplitMode.ZIGZAG,
    )


@pytest.fixture(params=list(SplitMode), ids=lambda m: m.value)
def any_mode_params(request):
    """A 3x2 block for every cut style."""
    return PuzzleParams(
        width=120.0, height=80.0, depth=5.0,
        grid_x=3, grid_y=2, split_mode=request.param,
    )


@pytest.fixture
def default_partition(default_params):
    return generate_partition(default_params)


@pytest.fixture
def session():
    """A session in game mode with the default 2x2 block."""
    s = PuzzleSession()
    s.set_game_mode(True)
    return s


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
