"""Export a puzzle's twists as a GAP permutation group.

Every sticker gets a positive id (GAP only permutes positive integers),
and each twist axis contributes one generator per slice.  Spherical axes
are fused with their antipode; only the slices on this side are used,
otherwise the opposite twist would appear twice and the group would be
described inconsistently.

Usage
-----
>>> from tilepuzzle.gap import save_gap_script
>>> save_gap_script(puzzle, "cube.g")

In GAP, ``Read("cube.g");`` prints the group order and its factors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple, Union

from .models import Sticker
from .puzzle import update_state
from .state import State
from .twists import SingleTwist

Cycle = Tuple[int, ...]
Generator = List[Cycle]


def gap_sticker_id(num_stickers: int, cell_index: int, sticker_index: int) -> int:
    return 1 + cell_index * num_stickers + sticker_index


def gap_sticker_info(num_stickers: int, gap_id: int) -> Tuple[int, int]:
    """Inverse of :func:`gap_sticker_id`: ``(cell_index, sticker_index)``."""
    return divmod(gap_id - 1, num_stickers)


def gap_generators(puzzle) -> List[Generator]:
    """One permutation per axis and slice, as disjoint cycles.

    Twists are applied to a scratch state, so the puzzle's own state is
    left alone.
    """
    state = State(puzzle.state.num_cells, puzzle.state.num_stickers)
    generators: List[Generator] = []
    for identified in puzzle.all_twist_data:
        td = (identified.for_state_calcs or identified.for_drawing)[0]
        for slice_index in range(td.num_slices_no_opp):
            twist = SingleTwist(identified, slice_mask=1 << slice_index)
            state.reset()
            moved = update_state(puzzle.config, state, twist)
            generators.append(_cycles(moved, state.num_stickers, td.order))
    return generators


def _cycles(moved: Dict[Sticker, Sticker], num_stickers: int, order: int) -> Generator:
    remaining = dict.fromkeys(moved)
    seen = set()
    cycles: Generator = []
    while remaining:
        start = next(iter(remaining))
        ids: List[int] = []
        sticker = start
        for _ in range(order):
            remaining.pop(sticker, None)
            ids.append(gap_sticker_id(num_stickers, sticker.cell_index, sticker.sticker_index))
            sticker = moved.get(sticker)
            if sticker is None or sticker is start:
                break

        # Hyperbolic puzzles track several copies of the same sticker.
        first = ids.index(min(ids))
        cycle = tuple(ids[first:] + ids[:first])
        if len(cycle) < 2 or cycle in seen:
            continue
        seen.add(cycle)
        cycles.append(cycle)
    return cycles


def format_generator(generator: Generator) -> str:
    return "".join("(" + ",".join(str(i) for i in cycle) + ")" for cycle in generator)


def gap_script(generators: List[Generator]) -> str:
    lines = ["puzzle := Group("]
    lines.append(",\n".join(format_generator(g) for g in generators))
    lines += [
        ");",
        "size := Size( puzzle );",
        "Print( size );",
        'Print( "\\n" );',
        "Print( Collected( Factors( size ) ) );",
    ]
    return "\n".join(lines) + "\n"


def save_gap_script(puzzle, path: Union[str, Path]) -> None:
    Path(path).write_text(gap_script(gap_generators(puzzle)), encoding="utf-8")
