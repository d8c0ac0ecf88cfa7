"""Twists and the undo/redo history.

A twist is written as ``index:L|R:mask``, e.g. ``"3:L:1"``; a leading
``[`` or trailing ``]`` marks the first or last twist of a macro.
Twist lists are stored as tab-separated blocks of ten.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from .errors import StateFormatError
from .twist_data import IdentifiedTwistData, TwistData

BLOCK_SIZE = 10


@dataclass
class SingleTwist:
    identified: IdentifiedTwistData
    left_click: bool = True
    slice_mask: int = 1
    identified_earthquake: Optional[IdentifiedTwistData] = None
    slice_mask_earthquake: int = 0
    macro_start: bool = False
    macro_end: bool = False

    def clone(self) -> "SingleTwist":
        return replace(self)

    def matches(self, other: "SingleTwist") -> bool:
        """Same axis, direction and slices (macro markers ignored)."""
        return (
            self.identified is other.identified
            and self.left_click == other.left_click
            and self.slice_mask == other.slice_mask
        )

    def is_undo(self, other: Optional["SingleTwist"]) -> bool:
        if other is None:
            return False
        return self.reversed().matches(other)

    def reverse(self) -> None:
        self.left_click = not self.left_click

    def reversed(self) -> "SingleTwist":
        clone = self.clone()
        clone.reverse()
        return clone

    @property
    def magnitude(self) -> float:
        """The rotation angle in radians."""
        return 2 * math.pi / self.identified.order

    @property
    def state_calc_td(self) -> List[TwistData]:
        result = list(self.identified.for_state_calcs)
        if self.identified_earthquake is not None:
            result.extend(self.identified_earthquake.for_state_calcs)
        return result

    def to_string(self) -> str:
        text = f"{self.identified.index}:{'L' if self.left_click else 'R'}:{self.slice_mask}"
        if self.macro_start:
            text = "[" + text
        if self.macro_end:
            text += "]"
        return text

    @classmethod
    def parse(cls, saved: str, all_twist_data: Sequence[IdentifiedTwistData]) -> "SingleTwist":
        macro_start = saved.startswith("[")
        macro_end = saved.endswith("]")
        if macro_start and macro_end:
            # A one-twist macro is just a twist.
            macro_start = macro_end = False

        parts = saved.strip("[]").split(":")
        if len(parts) != 3 or parts[1] not in ("L", "R"):
            raise StateFormatError(f"Bad twist {saved!r}; expected 'index:L|R:mask'")
        try:
            index = int(parts[0])
            mask = int(parts[2])
        except ValueError:
            raise StateFormatError(f"Bad twist {saved!r}; index and mask must be integers") from None
        if not 0 <= index < len(all_twist_data):
            raise StateFormatError(f"Twist index {index} out of range (0..{len(all_twist_data) - 1})")

        return cls(
            all_twist_data[index],
            left_click=parts[1] == "L",
            slice_mask=mask or 1,
            macro_start=macro_start,
            macro_end=macro_end,
        )


class TwistList(list):
    def clone(self) -> "TwistList":
        return TwistList(t.clone() for t in self)

    def to_blocks(self) -> List[str]:
        strings = [t.to_string() for t in self]
        return ["\t".join(strings[i : i + BLOCK_SIZE]) for i in range(0, len(strings), BLOCK_SIZE)]

    @classmethod
    def from_blocks(
        cls, blocks: Sequence[str], all_twist_data: Sequence[IdentifiedTwistData]
    ) -> "TwistList":
        result = cls()
        for block in blocks:
            for item in block.split("\t"):
                item = item.strip()
                if item:
                    result.append(SingleTwist.parse(item, all_twist_data))
        return result


@dataclass
class TwistHistory:
    """Twists applied so far plus what can be redone.

    :meth:`undo_twist` and :meth:`redo_twist` put the history in undo or
    redo mode; the next :meth:`update` (called once the twist has been
    applied) then moves that twist between the two lists instead of
    recording a new one.
    """

    twists: TwistList = field(default_factory=TwistList)
    redo_twists: TwistList = field(default_factory=TwistList)
    toggles: List[int] = field(default_factory=list)
    scrambles: int = 0
    _undo_mode: bool = False
    _redo_mode: bool = False

    def clear(self) -> None:
        self.twists.clear()
        self.redo_twists.clear()
        self.toggles.clear()
        self.scrambles = 0
        self._undo_mode = self._redo_mode = False

    @property
    def scrambled(self) -> bool:
        return self.scrambles != 0

    @property
    def undoing(self) -> bool:
        return self._undo_mode

    @property
    def all_moves_count(self) -> int:
        return len(self.twists) + len(self.toggles)

    def update(self, twist: SingleTwist) -> None:
        if self._undo_mode:
            self.twists.pop()
            self.redo_twists.append(twist.reversed())
            self._undo_mode = False
            return

        if self._redo_mode:
            self.redo_twists.pop()
            self._redo_mode = False
        else:
            self.redo_twists.clear()
        self.twists.append(twist)

    def update_toggle(self, cell_index: int) -> None:
        self.toggles.append(cell_index)

    def undo_twist(self) -> Optional[SingleTwist]:
        """The twist undoing the last one, or None if there is nothing to undo."""
        if not self.twists:
            return None
        self._undo_mode = True
        return self.twists[-1].reversed()

    def redo_twist(self) -> Optional[SingleTwist]:
        if not self.redo_twists:
            return None
        self._redo_mode = True
        return self.redo_twists[-1]
