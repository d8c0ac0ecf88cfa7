"""Puzzle configuration.

A :class:`PuzzleConfig` fully describes a puzzle: the {p,q} tiling, how
tiles are identified into colors (explicit edge-reflection sequences or
a group presentation), and the face/edge/vertex slicing circles.

Configurations round-trip through plain dicts (and so JSON, see
:mod:`tilepuzzle.io`).  The dict layout is described by
``schemas/puzzle_config.schema.json``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .geometry import Geometry, geometry_for, triangle_hypotenuse, triangle_p_side, triangle_q_side

VERSION_PREVIEW = "2.0"
VERSION_CURRENT = "2.1"


# ═══════════════════════════════════════════════════════════════════
# Distances and slicing circles
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Distance:
    """A slicing-circle radius as a combination of {p,q} triangle sides.

    The radius in the puzzle's geometry is
    ``p * p_side + q * q_side + r * hypotenuse + d``.
    """

    p: float = 0.0
    q: float = 0.0
    r: float = 0.0
    d: float = 0.0

    def dist(self, p: int, q: int) -> float:
        return (
            self.p * triangle_p_side(p, q)
            + self.q * triangle_q_side(p, q)
            + self.r * triangle_hypotenuse(p, q)
            + self.d
        )

    def to_string(self) -> str:
        return ":".join(_format_number(v) for v in (self.p, self.q, self.r, self.d))

    def to_short_string(self) -> str:
        if self.d == 0:
            return ":".join(_format_number(v) for v in (self.p, self.q, self.r))
        return self.to_string()

    @classmethod
    def from_string(cls, saved: str) -> "Distance":
        parts = saved.split(":")
        if len(parts) == 3:
            parts.append("0")
        if len(parts) != 4:
            raise ValueError(f"Distance needs four ':'-separated values, got {saved!r}")
        return cls(*(float(x) for x in parts))


def _format_number(value: float) -> str:
    return repr(int(value)) if float(value).is_integer() else repr(value)


@dataclass
class SlicingCircles:
    face_centered: List[Distance] = field(default_factory=list)
    edge_centered: List[Distance] = field(default_factory=list)
    vertex_centered: List[Distance] = field(default_factory=list)
    thickness: float = 0.01

    @property
    def face_twisting(self) -> bool:
        return len(self.face_centered) > 0

    @property
    def edge_twisting(self) -> bool:
        return len(self.edge_centered) > 0

    @property
    def vertex_twisting(self) -> bool:
        return len(self.vertex_centered) > 0

    @property
    def sliced(self) -> bool:
        return self.face_twisting or self.edge_twisting or self.vertex_twisting

    def to_dict(self) -> Dict[str, Any]:
        return {
            "face_centered": [d.to_string() for d in self.face_centered],
            "edge_centered": [d.to_string() for d in self.edge_centered],
            "vertex_centered": [d.to_string() for d in self.vertex_centered],
            "thickness": self.thickness,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SlicingCircles":
        return cls(
            face_centered=[Distance.from_string(s) for s in payload.get("face_centered", [])],
            edge_centered=[Distance.from_string(s) for s in payload.get("edge_centered", [])],
            vertex_centered=[Distance.from_string(s) for s in payload.get("vertex_centered", [])],
            thickness=float(payload.get("thickness", 0.01)),
        )


# ═══════════════════════════════════════════════════════════════════
# Identifications
# ═══════════════════════════════════════════════════════════════════


@dataclass
class Identification:
    """One explicit identification rule.

    Starting from each of *initial_edges* (all edges when empty) the
    template is reflected across that edge and then across each edge
    offset in *edges*, alternating direction with the orientation.
    """

    edges: List[int] = field(default_factory=list)
    initial_edges: List[int] = field(default_factory=list)
    in_place_reflection: bool = False
    end_rotation: int = 0
    use_mirrored: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edges": list(self.edges),
            "initial_edges": list(self.initial_edges),
            "in_place_reflection": self.in_place_reflection,
            "end_rotation": self.end_rotation,
            "use_mirrored": self.use_mirrored,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Identification":
        return cls(
            edges=[int(e) for e in payload.get("edges", [])],
            initial_edges=[int(e) for e in payload.get("initial_edges", [])],
            in_place_reflection=bool(payload.get("in_place_reflection", False)),
            end_rotation=int(payload.get("end_rotation", 0)),
            use_mirrored=bool(payload.get("use_mirrored", True)),
        )


@dataclass
class IRPConfig:
    """Settings for an associated skew-polyhedron mesh.

    ``expected_sides`` checks the mesh against the tiling, and a set
    ``data_file`` keeps the cells around each master tracked on unsliced
    puzzles.  The mesh itself is never read.
    """

    data_file: str = ""
    first_tile: int = 0
    reflect: bool = False
    rotate: int = 0
    expected_sides: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_file": self.data_file,
            "first_tile": self.first_tile,
            "reflect": self.reflect,
            "rotate": self.rotate,
            "expected_sides": self.expected_sides,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "IRPConfig":
        return cls(
            data_file=payload.get("data_file", ""),
            first_tile=int(payload.get("first_tile", 0)),
            reflect=bool(payload.get("reflect", False)),
            rotate=int(payload.get("rotate", 0)),
            expected_sides=int(payload.get("expected_sides", 0)),
        )


# ═══════════════════════════════════════════════════════════════════
# Puzzle configuration
# ═══════════════════════════════════════════════════════════════════


@dataclass
class PuzzleConfig:
    id: str = "Puzzle.{7,3}.Classic"
    display_name: str = "{7,3} Classic"
    p: int = 7
    q: int = 3
    identifications: List[Identification] = field(default_factory=list)
    group_relations: str = ""
    expected_num_colors: int = 0
    num_tiles: int = 0
    slicing_circles: Optional[SlicingCircles] = field(default_factory=SlicingCircles)
    tile_shrink: float = 1.0
    earthquake: bool = False
    version: str = VERSION_CURRENT
    irp_config: Optional[IRPConfig] = None

    @property
    def geometry(self) -> Geometry:
        return geometry_for(self.p, self.q)

    @property
    def using_relations(self) -> bool:
        return bool(self.group_relations)

    @property
    def edge_or_vertex_twisting(self) -> bool:
        sc = self.slicing_circles
        return sc is not None and (sc.edge_twisting or sc.vertex_twisting)

    def validate(self) -> List[str]:
        """Return a list of problems; empty if the config is usable."""
        problems: List[str] = []
        if self.p < 2 or self.q < 2:
            problems.append(f"p and q must be at least 2, got {{{self.p},{self.q}}}")
        elif self.p == 2 and self.q == 2:
            problems.append("{2,2} is degenerate")
        if self.num_tiles < 0:
            problems.append(f"num_tiles must not be negative, got {self.num_tiles}")
        elif self.num_tiles == 0 and self.p >= 2 and self.q >= 2 and self.geometry != Geometry.SPHERICAL:
            problems.append("euclidean and hyperbolic tilings need num_tiles > 0")
        if self.expected_num_colors < 0:
            problems.append(f"expected_num_colors must not be negative, got {self.expected_num_colors}")
        if self.using_relations and self.expected_num_colors <= 0:
            problems.append("group relations need expected_num_colors to bound the closure")
        if self.p >= 2:
            for ident in self.identifications:
                bad = [e for e in ident.initial_edges if not 0 <= e < self.p]
                if bad:
                    problems.append(f"initial edges {bad} out of range for p={self.p}")
        if self.version not in (VERSION_PREVIEW, VERSION_CURRENT):
            problems.append(f"unknown version {self.version!r}")
        if self.slicing_circles is not None and self.slicing_circles.thickness < 0:
            problems.append("slicing circle thickness must not be negative")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "display_name": self.display_name,
            "p": self.p,
            "q": self.q,
            "identifications": [i.to_dict() for i in self.identifications],
            "group_relations": self.group_relations,
            "expected_num_colors": self.expected_num_colors,
            "num_tiles": self.num_tiles,
            "tile_shrink": self.tile_shrink,
            "earthquake": self.earthquake,
            "version": self.version,
        }
        if self.slicing_circles is not None:
            data["slicing_circles"] = self.slicing_circles.to_dict()
        if self.irp_config is not None:
            data["irp_config"] = self.irp_config.to_dict()
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PuzzleConfig":
        slicing = payload.get("slicing_circles")
        irp = payload.get("irp_config")
        return cls(
            id=payload.get("id", ""),
            display_name=payload.get("display_name", ""),
            p=int(payload["p"]),
            q=int(payload["q"]),
            identifications=[Identification.from_dict(i) for i in payload.get("identifications", [])],
            group_relations=payload.get("group_relations", ""),
            expected_num_colors=int(payload.get("expected_num_colors", 0)),
            num_tiles=int(payload.get("num_tiles", 0)),
            slicing_circles=SlicingCircles.from_dict(slicing) if slicing is not None else None,
            tile_shrink=float(payload.get("tile_shrink", 1.0)),
            earthquake=bool(payload.get("earthquake", False)),
            version=payload.get("version", VERSION_CURRENT),
            irp_config=IRPConfig.from_dict(irp) if irp is not None else None,
        )

    def copy(self, **changes: Any) -> "PuzzleConfig":
        return replace(self, **changes)


# ═══════════════════════════════════════════════════════════════════
# Presets
# ═══════════════════════════════════════════════════════════════════


def default_config() -> PuzzleConfig:
    """The {7,3} Klein quartic puzzle with 24 colors."""
    return PuzzleConfig(
        id="Puzzle.{7,3}.Classic",
        display_name="{7,3} Classic",
        p=7,
        q=3,
        identifications=[Identification(edges=[3, 3, 3], end_rotation=0, use_mirrored=True)],
        expected_num_colors=24,
        num_tiles=5000,
        slicing_circles=SlicingCircles(face_centered=[Distance(2.0 / 3, 0, 1.0, 0)]),
        tile_shrink=0.94,
    )


def _cube() -> PuzzleConfig:
    return PuzzleConfig(
        id="Puzzle.{4,3}.Face",
        display_name="{4,3} Face Turning",
        p=4,
        q=3,
        expected_num_colors=6,
        num_tiles=6,
        slicing_circles=SlicingCircles(face_centered=[Distance(0, 1.5, 0, 0)]),
    )


def _octahedron_edges() -> PuzzleConfig:
    return PuzzleConfig(
        id="Puzzle.{3,4}.Edge",
        display_name="{3,4} Edge Turning",
        p=3,
        q=4,
        expected_num_colors=8,
        num_tiles=8,
        slicing_circles=SlicingCircles(edge_centered=[Distance(0, 1.25, 0, 0)]),
    )


def _dodecahedron() -> PuzzleConfig:
    return PuzzleConfig(
        id="Puzzle.{5,3}.Face",
        display_name="{5,3} Face Turning",
        p=5,
        q=3,
        expected_num_colors=12,
        num_tiles=12,
        slicing_circles=SlicingCircles(face_centered=[Distance(0, 1.6, 0, 0)]),
    )


def _lights_out() -> PuzzleConfig:
    return PuzzleConfig(
        id="Puzzle.{7,3}.Tiling",
        display_name="{7,3} Tiling",
        p=7,
        q=3,
        identifications=[Identification(edges=[3, 3, 3], use_mirrored=True)],
        expected_num_colors=24,
        num_tiles=5000,
        slicing_circles=None,
        tile_shrink=0.94,
    )


PRESETS = {
    "klein-quartic": default_config,
    "cube": _cube,
    "octahedron-edges": _octahedron_edges,
    "dodecahedron": _dodecahedron,
    "klein-quartic-tiling": _lights_out,
}


def preset(name: str) -> PuzzleConfig:
    try:
        factory = PRESETS[name]
    except KeyError:
        raise KeyError(f"Unknown preset {name!r}; choose from {sorted(PRESETS)}") from None
    return factory()
