"""Tests for snapping module."""
import math

import numpy as np
import pytest

from interaction import assemble
from partition import build_piece_infos
from snapping import (
    HINT_LIFT_MM,
    PieceTransform,
    apply_snap,
    evaluate_snap,
    find_snap_candidates,
    highlight_intensity,
    rotations_match,
    shared_edge_segment,
    snap_hints,
)


@pytest.fixture
def infos(default_params):
    return build_piece_infos(default_params)


@pytest.fixture
def assembled(infos, default_params):
    return assemble(infos, default_params)


class TestRotationsMatch:

    def test_equal(self):
        assert rotations_match(1.0, 1.0)

    def test_within_tolerance(self):
        assert rotations_match(0.0, 0.09)
        assert not rotations_match(0.0, 0.11)

    def test_wraps_full_turn(self):
        assert rotations_match(0.02, 2 * math.pi - 0.02)
        assert rotations_match(4 * math.pi + 0.05, 0.0)

    def test_quarter_turn_mismatch(self):
        assert not rotations_match(0.0, math.pi / 2)


class TestEvaluateSnap:

    def test_assembled_pair_is_exact(self, infos, assembled):
        cand = evaluate_snap(1, 0, assembled, infos, 5.0)
        assert cand.edge == "left"
        assert cand.distance == pytest.approx(0.0, abs=1e-9)
        assert cand.can_snap
        assert cand.target_x == pytest.approx(25.0)
        assert cand.target_y == pytest.approx(-25.0)
        assert cand.target_rotation == pytest.approx(0.0)

    def test_every_assembled_adjacency_is_exact(self, wave_params):
        """All neighbour pairs of a non-square grid match at the assembled pose."""
        grid_infos = build_piece_infos(wave_params)
        poses = assemble(grid_infos, wave_params)
        pairs = 0
        for info in grid_infos:
            for edge, other in info.neighbors.items():
                if other is None:
                    continue
                cand = evaluate_snap(info.index, other, poses, grid_infos, 0.5)
                assert cand.edge == edge
                assert cand.distance == pytest.approx(0.0, abs=1e-9)
                assert cand.can_snap
                assert cand.target_x == pytest.approx(info.center_x)
                assert cand.target_y == pytest.approx(info.center_y)
                pairs += 1
        # 3x2 grid: 4 horizontal + 3 vertical shared edges, seen from both sides
        assert pairs == 14

    def test_drag_within_one_mm(self, infos, assembled):
        assembled[1].x += 0.6
        assembled[1].y -= 0.3
        cand = evaluate_snap(1, 0, assembled, infos, 20.0)
        assert cand.edge == "left"
        assert cand.distance <= 1.0
        assert cand.can_snap

    def test_rotation_mismatch(self, infos, assembled):
        assembled[1].rotation = math.pi / 2
        cand = evaluate_snap(1, 0, assembled, infos, 20.0)
        assert not cand.can_snap
        assert math.isinf(cand.distance)
        assert cand.target_x is None

    def test_beyond_threshold(self, infos, assembled):
        assembled[1].x += 30.0
        cand = evaluate_snap(1, 0, assembled, infos, 20.0)
        assert cand.distance == pytest.approx(30.0)
        assert not cand.can_snap
        assert cand.target_x is None

    def test_not_adjacent(self, infos, assembled):
        assert evaluate_snap(0, 3, assembled, infos, 20.0) is None

    def test_bad_indices(self, infos, assembled):
        assert evaluate_snap(7, 0, assembled, infos, 20.0) is None
        assert evaluate_snap(0, -1, assembled, infos, 20.0) is None
        assert evaluate_snap(0, 1, assembled[:1], infos, 20.0) is None

    def test_rotated_pair_follows_neighbor(self, infos, assembled):
        """Both pieces rotated a quarter turn around piece 0's centre still match."""
        angle = math.pi / 2
        pivot = np.array([assembled[0].x, assembled[0].y])
        for t in assembled[:2]:
            rel = np.array([t.x, t.y]) - pivot
            c, s = math.cos(angle), math.sin(angle)
            t.x, t.y = pivot + [rel[0] * c - rel[1] * s, rel[0] * s + rel[1] * c]
            t.rotation = angle
        cand = evaluate_snap(1, 0, assembled, infos, 1.0)
        assert cand.distance == pytest.approx(0.0, abs=1e-9)
        assert cand.can_snap


class TestFindSnapCandidates:

    def test_sorted_by_distance(self, infos, assembled):
        assembled[1].x += 5.0
        cands = find_snap_candidates(0, assembled, infos, 20.0)
        assert [c.neighbor_index for c in cands] == [2, 1]
        distances = [c.distance for c in cands]
        assert distances == sorted(distances)

    def test_skips_rotation_mismatches(self, infos, assembled):
        assembled[1].rotation = 1.0
        cands = find_snap_candidates(0, assembled, infos, 20.0)
        assert [c.neighbor_index for c in cands] == [2]

    def test_bad_index_is_empty(self, infos, assembled):
        assert find_snap_candidates(9, assembled, infos, 20.0) == []
        assert find_snap_candidates(None, assembled, infos, 20.0) == []
        assert find_snap_candidates(0, [], infos, 20.0) == []


class TestHighlight:

    def test_quadratic_falloff(self):
        assert highlight_intensity(0.0, 10.0) == pytest.approx(1.0)
        assert highlight_intensity(5.0, 10.0) == pytest.approx(0.25)
        assert highlight_intensity(10.0, 10.0) == 0.0
        assert highlight_intensity(12.0, 10.0) == 0.0

    def test_shared_edge_segment(self, infos, assembled, default_params):
        seg = shared_edge_segment(infos[1], infos[0], assembled[1], default_params)
        assert seg.shape == (2, 3)
        assert np.allclose(seg[:, 0], 0.0)
        assert np.allclose(sorted(seg[:, 1]), [-50.0, 0.0])
        assert np.allclose(seg[:, 2], default_params.depth + HINT_LIFT_MM)

    def test_segment_empty_when_not_touching(self, infos, assembled, default_params):
        seg = shared_edge_segment(infos[0], infos[3], assembled[0], default_params)
        assert seg.shape == (0, 3)

    def test_hints_use_double_radius(self, infos, assembled, default_params):
        assembled[1].x += 8.0
        hints = snap_hints(1, assembled, infos, default_params, snap_distance=5.0)
        by_neighbor = {h.neighbor_index: h for h in hints}
        assert by_neighbor[0].intensity == pytest.approx((1 - 8.0 / 10.0) ** 2)
        assert by_neighbor[0].edge == "left"
        assert by_neighbor[3].edge == "top"

    def test_hints_empty_for_stale_index(self, infos, assembled, default_params):
        assert snap_hints(5, assembled, infos, default_params, 5.0) == []


class TestApplySnap:

    def test_locks_pose(self, infos, assembled):
        assembled[1].x += 2.0
        assembled[1].rotation = 0.05
        cand = evaluate_snap(1, 0, assembled, infos, 20.0)
        pose = assembled[1].copy()
        assert apply_snap(pose, cand)
        assert pose.x == pytest.approx(25.0)
        assert pose.y == pytest.approx(-25.0)
        assert pose.rotation == pytest.approx(0.0)
        assert pose.z == assembled[1].z

    def test_refuses_unsnappable(self, infos, assembled):
        assembled[1].x += 40.0
        cand = evaluate_snap(1, 0, assembled, infos, 20.0)
        pose = assembled[1].copy()
        assert not apply_snap(pose, cand)
        assert pose.x == assembled[1].x

    def test_transform_copy_is_independent(self):
        t = PieceTransform(1.0, 2.0, 3.0, 0.5)
        c = t.copy()
        c.x = 9.0
        assert t.x == 1.0
