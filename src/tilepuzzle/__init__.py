"""tilepuzzle: twisty puzzles on regular {p,q} tilings.

Public API is organised into layers:

- **Geometry**: tolerant comparisons, Möbius maps, generalized circles, polygons
- **Core**: tiling, identifications, cell graph, topology, twist data
- **Puzzle**: building, state, twisting, history
- **I/O**: configs, states, histories, sessions and GAP scripts
- **Rendering**: PNG output (requires matplotlib)
"""

# ── Geometry ────────────────────────────────────────────────────────
from .geometry import Geometry, PointMap, PointSet, geometry_for
from .mobius import Mobius
from .isometry import Isometry
from .circles import Circle, CircleNE
from .polygon import Polygon, Segment

# ── Core ────────────────────────────────────────────────────────────
from .config import (
    PRESETS,
    Distance,
    Identification,
    IRPConfig,
    PuzzleConfig,
    SlicingCircles,
    default_config,
    preset,
)
from .errors import BuildCancelled, ConfigError, PuzzleError, StateFormatError
from .tiling import Tile, Tiling, TilingConfig
from .models import Cell, Sticker
from .cells import CellGraph
from .topology import TopologyAnalyzer
from .twist_data import ElementType, IdentifiedTwistData, TwistData
from .neartree import NearTree

# ── Puzzle ──────────────────────────────────────────────────────────
from .state import State
from .twists import SingleTwist, TwistHistory, TwistList
from .puzzle import BuildStatus, Cancelled, LoggingStatus, Puzzle, build_puzzle, update_state

# ── I/O ─────────────────────────────────────────────────────────────
from .io import (
    load_config,
    load_history,
    load_puzzle_session,
    load_state,
    save_config,
    save_history,
    save_puzzle_session,
    save_state,
)
from .gap import gap_generators, gap_script, save_gap_script
from .logging_config import setup_logging

# ── Rendering (lazy import of matplotlib) ───────────────────────────
from .render import render_puzzle_png

__version__ = "0.1.0"

__all__ = [
    # Geometry
    "Geometry",
    "PointMap",
    "PointSet",
    "geometry_for",
    "Mobius",
    "Isometry",
    "Circle",
    "CircleNE",
    "Polygon",
    "Segment",
    # Core
    "PRESETS",
    "Distance",
    "Identification",
    "IRPConfig",
    "PuzzleConfig",
    "SlicingCircles",
    "default_config",
    "preset",
    "BuildCancelled",
    "ConfigError",
    "PuzzleError",
    "StateFormatError",
    "Tile",
    "Tiling",
    "TilingConfig",
    "Cell",
    "Sticker",
    "CellGraph",
    "TopologyAnalyzer",
    "ElementType",
    "IdentifiedTwistData",
    "TwistData",
    "NearTree",
    # Puzzle
    "State",
    "SingleTwist",
    "TwistHistory",
    "TwistList",
    "BuildStatus",
    "Cancelled",
    "LoggingStatus",
    "Puzzle",
    "build_puzzle",
    "update_state",
    # I/O
    "load_config",
    "load_history",
    "load_puzzle_session",
    "load_state",
    "save_config",
    "save_history",
    "save_puzzle_session",
    "save_state",
    "gap_generators",
    "gap_script",
    "save_gap_script",
    "setup_logging",
    # Rendering
    "render_puzzle_png",
]
