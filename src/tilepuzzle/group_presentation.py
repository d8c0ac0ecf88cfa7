"""Read group presentations of regular maps as words in mirror reflections.

Presentations follow the notation of Marston Conder's census of regular
maps, for example ``"[R^7, S^3, (R*S)^2, (R*R*s)^4]"`` for the Klein
quartic.  ``R`` and ``S`` are the rotations about a face center and a
vertex, ``T`` is a single reflection, lowercase ``r``/``s`` their
inverses.  Each relation is expanded to a word in the three mirrors
``a``, ``b``, ``c`` of the fundamental triangle (``d`` is accepted as a
fourth mirror) and returned as a list of mirror indices.
"""

from __future__ import annotations

import re
from typing import List

MULT = "*"
POWER = "^"

_INVERSES = {"R": "r", "r": "R", "S": "s", "s": "S", "T": "T", "a": "a", "b": "b", "c": "c", "d": "d"}
_ROTARY = (("R", "a*b"), ("r", "b*a"), ("S", "b*c"), ("s", "c*b"), ("T", "b"))
_MIRRORS = {"a": 0, "b": 1, "c": 2, "d": 3}

_SIMPLE_POWER = re.compile(r"([A-Za-z])\^(-?\d+)")
_POWER_AFTER_PAREN = re.compile(r"\^(-?\d+)")


def read_relations(presentation: str) -> List[List[int]]:
    """Parse *presentation* into one list of mirror indices per relation.

    Raises ``ValueError`` for malformed input.
    """
    presentation = presentation.strip().strip("[]")
    presentation = re.sub(r"\s+", "", presentation)
    if not presentation:
        return []

    result = []
    for condensed in presentation.split(","):
        word = _expand_simple_powers(condensed)
        word = _expand_paren_powers(word)
        word = rotary_to_reflections(word)
        result.append(word_as_reflections(word))
    return result


def expand_power(power: int, word: str) -> str:
    if power < 0:
        power = -power
        word = reverse_word(word)
    return MULT.join([word] * power)


def reverse_word(word: str) -> str:
    """The inverse of an expanded word."""
    if POWER in word:
        raise ValueError(f"cannot invert unexpanded word {word!r}")
    letters = word.split(MULT)
    try:
        return MULT.join(_INVERSES[letter] for letter in reversed(letters))
    except KeyError as exc:
        raise ValueError(f"unknown generator {exc.args[0]!r} in {word!r}") from None


def _expand_simple_powers(condensed: str) -> str:
    return _SIMPLE_POWER.sub(lambda m: expand_power(int(m.group(2)), m.group(1)), condensed)


def _expand_paren_powers(condensed: str) -> str:
    while "(" in condensed:
        start = condensed.index("(")
        depth = 0
        end = -1
        for i in range(start, len(condensed)):
            if condensed[i] == "(":
                depth += 1
            elif condensed[i] == ")":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end < 0:
            raise ValueError(f"unbalanced parentheses in {condensed!r}")

        match = _POWER_AFTER_PAREN.match(condensed, end + 1)
        if match is None:
            raise ValueError(f"parenthesised group without a power in {condensed!r}")
        power = int(match.group(1))
        inner = condensed[start + 1 : end]
        if "(" in inner and power < 0:
            inner = _expand_paren_powers(inner)
        expanded = expand_power(power, inner)
        condensed = (condensed[:start] + expanded + condensed[match.end() :]).rstrip(" " + MULT)
    return condensed


def rotary_to_reflections(word: str) -> str:
    for rotary, reflections in _ROTARY:
        word = word.replace(rotary, reflections)
    return word


def word_as_reflections(word: str) -> List[int]:
    result = []
    for letter in word.strip().split(MULT):
        letter = letter.strip()
        if not letter:
            continue
        if letter not in _MIRRORS:
            raise ValueError(f"unknown generator {letter!r} in {word!r}")
        result.append(_MIRRORS[letter])
    return result
