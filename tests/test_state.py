"""Tests for the staged color state and its hex persistence."""

import numpy as np
import pytest

from tilepuzzle.errors import StateFormatError
from tilepuzzle.io import load_state, save_state
from tilepuzzle.state import OFF_COLOR, State


@pytest.fixture
def state():
    return State(4, 3)


class TestSolvedState:
    def test_initially_solved(self, state):
        assert state.is_solved
        assert state.is_all_on
        np.testing.assert_array_equal(state.committed[2], [2, 2, 2])

    def test_empty_state_is_solved(self):
        assert State(0, 0).is_solved

    def test_negative_size(self):
        with pytest.raises(ValueError):
            State(-1, 2)


class TestStaging:
    def test_set_is_invisible_until_commit(self, state):
        state.set(0, 1, 3)
        assert state.get(0, 1) == 0
        state.commit()
        assert state.get(0, 1) == 3
        assert not state.is_solved

    def test_swap_reads_committed_colors(self, state):
        # Both writes read the pre-twist colors, so this is a clean swap.
        state.set(0, 0, state.get(1, 0))
        state.set(1, 0, state.get(0, 0))
        state.commit()
        assert (state.get(0, 0), state.get(1, 0)) == (1, 0)

    def test_commit_single_cell(self, state):
        state.set(0, 0, 2)
        state.set(1, 0, 2)
        state.commit(1)
        assert state.get(0, 0) == 0
        assert state.get(1, 0) == 2

    def test_commit_cell_list(self, state):
        state.set(0, 0, 3)
        state.set(2, 0, 3)
        state.commit([0, 2])
        assert state.get(0, 0) == 3
        assert state.get(2, 0) == 3

    def test_reset(self, state):
        state.set(0, 0, 3)
        state.commit()
        state.reset()
        assert state.is_solved
        np.testing.assert_array_equal(state.staging, state.committed)


class TestToggle:
    def test_toggle_off_and_on(self, state):
        state.toggle(2, 0)
        state.commit()
        assert state.get(2, 0) == OFF_COLOR
        assert not state.is_all_on

        state.toggle(2, 0)
        state.commit()
        assert state.get(2, 0) == 2
        assert state.is_all_on


class TestPersistence:
    def test_save_cell_hex(self, state):
        state.set(1, 2, 11)
        state.toggle(1, 0)
        state.commit()
        assert state.save_cell(1) == "ff010b"

    def test_load_cell(self, state):
        state.load_cell(3, "00ff02")
        assert [state.get(3, i) for i in range(3)] == [0, OFF_COLOR, 2]

    @pytest.mark.parametrize("saved", ["0001", "0001020", "zz0102"])
    def test_load_cell_rejects(self, state, saved):
        with pytest.raises(StateFormatError):
            state.load_cell(0, saved)

    def test_strings_round_trip(self, state):
        state.set(0, 0, 3)
        state.set(3, 2, 0)
        state.commit()
        other = State(4, 3)
        other.from_strings(state.to_strings())
        np.testing.assert_array_equal(other.committed, state.committed)

    def test_load_cell_rejects_unknown_color(self, state):
        with pytest.raises(StateFormatError, match="out of range"):
            state.load_cell(0, "000104")

    def test_bad_row_leaves_state_untouched(self):
        state = State(3, 2)
        with pytest.raises(StateFormatError):
            state.from_strings(["0101", "0000", "zz00"])
        np.testing.assert_array_equal(state.committed, [[0, 0], [1, 1], [2, 2]])
        np.testing.assert_array_equal(state.staging, state.committed)

    def test_wrong_line_count(self, state):
        with pytest.raises(StateFormatError):
            state.from_strings(["000000"])

    def test_file_round_trip(self, state, tmp_path):
        state.toggle(1, 1)
        state.commit()
        path = tmp_path / "state.txt"
        save_state(state, path)
        assert path.read_text(encoding="utf-8").splitlines()[1] == "01ff01"

        other = State(4, 3)
        load_state(other, path)
        np.testing.assert_array_equal(other.committed, state.committed)
