"""Tests for slice masks, twist strings, twist lists and the undo/redo history."""

import logging
import math

import pytest

from tilepuzzle.circles import CircleNE
from tilepuzzle.config import preset
from tilepuzzle.errors import StateFormatError
from tilepuzzle.geometry import INFINITY, PointMap, infinity_safe
from tilepuzzle.io import history_from_lines, history_to_lines, load_history, save_history
from tilepuzzle.twist_assembly import add_opp_twisters
from tilepuzzle.twist_data import (
    ElementType,
    IdentifiedTwistData,
    TwistData,
    dir_seg_to_mask,
    mask_to_dir_seg,
    mask_to_slice,
    mask_to_slices,
    slice_to_mask,
)
from tilepuzzle.twists import SingleTwist, TwistHistory, TwistList


def make_axes(count=3, order=7):
    axes = []
    for i in range(count):
        identified = IdentifiedTwistData(i)
        identified.add(TwistData(ElementType.FACE, complex(0.1 * i, 0), order, []), True)
        axes.append(identified)
    return axes


@pytest.fixture
def axes():
    return make_axes()


# ═══════════════════════════════════════════════════════════════════
# Slice masks
# ═══════════════════════════════════════════════════════════════════


class TestSliceMasks:
    def test_slice_to_mask(self):
        assert slice_to_mask(1) == 1
        assert slice_to_mask(3) == 4
        assert slice_to_mask(0) == 0
        assert slice_to_mask(11) == 0

    def test_mask_to_slices(self):
        assert mask_to_slices(0b101) == [1, 3]
        assert mask_to_slices(0) == []

    def test_mask_to_slice_defaults_to_first(self):
        assert mask_to_slice(0b110) == 2
        assert mask_to_slice(0) == 1

    def test_dir_segments(self):
        assert mask_to_dir_seg(slice_to_mask(2)) == 3
        assert dir_seg_to_mask(5) == slice_to_mask(3)
        assert dir_seg_to_mask(2) == 0


# ═══════════════════════════════════════════════════════════════════
# SingleTwist
# ═══════════════════════════════════════════════════════════════════


class TestSingleTwist:
    def test_to_string(self, axes):
        assert SingleTwist(axes[2], left_click=False, slice_mask=3).to_string() == "2:R:3"
        macro = SingleTwist(axes[0], macro_start=True)
        assert macro.to_string() == "[0:L:1"

    def test_parse(self, axes):
        twist = SingleTwist.parse("1:R:2]", axes)
        assert twist.identified is axes[1]
        assert not twist.left_click
        assert twist.slice_mask == 2
        assert twist.macro_end and not twist.macro_start

    def test_parse_one_twist_macro(self, axes):
        twist = SingleTwist.parse("[1:L:1]", axes)
        assert not twist.macro_start and not twist.macro_end

    def test_parse_zero_mask_means_first_slice(self, axes):
        assert SingleTwist.parse("0:L:0", axes).slice_mask == 1

    @pytest.mark.parametrize("saved", ["1:X:1", "1:L", "a:L:1", "1:L:b", "9:L:1", "-1:L:1"])
    def test_parse_rejects(self, axes, saved):
        with pytest.raises(StateFormatError):
            SingleTwist.parse(saved, axes)

    def test_reverse_and_undo(self, axes):
        twist = SingleTwist(axes[0], slice_mask=2)
        back = twist.reversed()
        assert not back.left_click
        assert twist.left_click
        assert back.is_undo(twist)
        assert not twist.is_undo(twist)
        assert not twist.is_undo(None)

    def test_clone_is_independent(self, axes):
        twist = SingleTwist(axes[0])
        clone = twist.clone()
        clone.reverse()
        assert twist.left_click
        assert clone.identified is twist.identified

    def test_magnitude(self, axes):
        assert SingleTwist(axes[0]).magnitude == pytest.approx(2 * math.pi / 7)

    def test_state_calc_td_includes_earthquake_axis(self, axes):
        twist = SingleTwist(axes[0], identified_earthquake=axes[1])
        assert twist.state_calc_td == axes[0].for_state_calcs + axes[1].for_state_calcs


class TestAntipodalFusion:
    def test_ambiguous_antipode_is_not_fused(self, caplog):
        # The axis at the antipode is identified with an unrelated axis.
        td = TwistData(ElementType.FACE, 0j, 4, [CircleNE(0j, 0.5, center_ne=0j)])
        anti = TwistData(ElementType.FACE, INFINITY, 4, [])
        other = TwistData(ElementType.FACE, 1 + 0j, 4, [CircleNE(1 + 0j, 0.3, center_ne=1 + 0j)])
        identified = IdentifiedTwistData(0)
        identified.add(anti, True)
        identified.add(other, True)

        td_map = PointMap()
        for t in (td, anti, other):
            td_map[infinity_safe(t.center)] = t
        with caplog.at_level(logging.WARNING, logger="tilepuzzle.twist_assembly"):
            add_opp_twisters(preset("cube"), td_map)

        assert len(td.circles) == 1
        assert td.num_slices_no_opp == 1
        assert td.num_slices == 2
        assert "Not fusing" in caplog.text


class TestTwistList:
    def test_blocks_of_ten(self, axes):
        twists = TwistList(SingleTwist(axes[i % 3]) for i in range(23))
        blocks = twists.to_blocks()
        assert len(blocks) == 3
        assert len(blocks[0].split("\t")) == 10
        assert len(blocks[2].split("\t")) == 3

    def test_from_blocks(self, axes):
        twists = TwistList([SingleTwist(axes[1], False, 2), SingleTwist(axes[2])])
        loaded = TwistList.from_blocks(twists.to_blocks(), axes)
        assert [t.to_string() for t in loaded] == ["1:R:2", "2:L:1"]

    def test_clone(self, axes):
        twists = TwistList([SingleTwist(axes[0])])
        clone = twists.clone()
        clone[0].reverse()
        assert twists[0].left_click


# ═══════════════════════════════════════════════════════════════════
# TwistHistory
# ═══════════════════════════════════════════════════════════════════


class TestTwistHistory:
    def test_update_clears_redo(self, axes):
        history = TwistHistory()
        history.update(SingleTwist(axes[0]))
        history.redo_twists.append(SingleTwist(axes[1]))
        history.update(SingleTwist(axes[2]))
        assert len(history.twists) == 2
        assert not history.redo_twists

    def test_undo_redo_cycle(self, axes):
        history = TwistHistory()
        first = SingleTwist(axes[0])
        history.update(first)

        undo = history.undo_twist()
        assert undo.is_undo(first)
        assert history.undoing
        history.update(undo)
        assert not history.twists
        assert len(history.redo_twists) == 1
        assert not history.undoing

        redo = history.redo_twist()
        assert redo.matches(first)
        history.update(redo)
        assert len(history.twists) == 1
        assert not history.redo_twists

    def test_nothing_to_undo_or_redo(self):
        history = TwistHistory()
        assert history.undo_twist() is None
        assert history.redo_twist() is None
        assert not history.undoing

    def test_counts_and_clear(self, axes):
        history = TwistHistory()
        history.update(SingleTwist(axes[0]))
        history.update_toggle(5)
        history.scrambles = 4
        assert history.all_moves_count == 2
        assert history.scrambled
        history.clear()
        assert history.all_moves_count == 0
        assert not history.scrambled


class TestHistoryPersistence:
    def test_lines_round_trip(self, axes):
        history = TwistHistory(scrambles=2)
        for i in range(12):
            history.update(SingleTwist(axes[i % 3], left_click=i % 2 == 0))
        lines = history_to_lines(history)
        assert lines[0] == "scrambles=2"

        loaded = history_from_lines(lines, axes)
        assert loaded.scrambles == 2
        assert [t.to_string() for t in loaded.twists] == [t.to_string() for t in history.twists]

    def test_empty(self, axes):
        assert history_from_lines([], axes).all_moves_count == 0

    def test_bad_header(self, axes):
        with pytest.raises(StateFormatError):
            history_from_lines(["twists=3"], axes)
        with pytest.raises(StateFormatError):
            history_from_lines(["scrambles=x"], axes)

    def test_file_round_trip(self, axes, tmp_path):
        history = TwistHistory()
        history.update(SingleTwist(axes[2], slice_mask=4))
        path = tmp_path / "history.txt"
        save_history(history, path)
        loaded = load_history(path, axes)
        assert loaded.twists[0].identified is axes[2]
        assert loaded.twists[0].slice_mask == 4
