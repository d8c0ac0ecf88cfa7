from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple, Union

from .geometry import Geometry
from .state import OFF_COLOR

OFF_FACE_COLOR = "#3a3a3a"
HIGHLIGHT_COLOR = "#ffffff"


def render_puzzle_png(
    puzzle,
    output_path: Union[str, Path],
    edge_color: str = "#202020",
    colormap: str = "hsv",
    extent: float = 3.0,
    dpi: int = 150,
    show_disk: bool = True,
    highlight=None,
) -> None:
    """Render every sticker, colored by the puzzle's current state.

    Hyperbolic puzzles are drawn in the Poincaré disk; spherical and
    Euclidean ones are clipped to ``[-extent, extent]``.  Passing a
    :class:`~tilepuzzle.twists.SingleTwist` as *highlight* outlines the
    circles bounding its selected slices on every copy of the axis.

    Requires matplotlib; imported lazily to keep core package lightweight.
    """
    try:
        import matplotlib.pyplot as plt
        from matplotlib.patches import Circle, Polygon
    except ImportError as exc:  # pragma: no cover - requires optional dep
        raise RuntimeError(
            "matplotlib is required for rendering. Install with `pip install matplotlib`."
        ) from exc

    num_colors = max(puzzle.state.num_cells, 1)
    cmap = plt.get_cmap(colormap)
    hyperbolic = puzzle.geometry == Geometry.HYPERBOLIC

    fig, ax = plt.subplots(figsize=(6, 6))
    for cell in puzzle.all_cells:
        for sticker in cell.stickers:
            points = _sticker_points(sticker.poly)
            if points is None:
                continue
            color = puzzle.state.get(sticker.cell_index, sticker.sticker_index)
            face = OFF_FACE_COLOR if color == OFF_COLOR else cmap(color / num_colors)
            ax.add_patch(Polygon(points, closed=True, facecolor=face, edgecolor=edge_color, linewidth=0.3))

    if highlight is not None:
        for td in highlight.identified.for_drawing:
            for c in td.circles_for_slice_mask(highlight.slice_mask):
                if c.is_line:
                    ax.axline((c.p1.real, c.p1.imag), (c.p2.real, c.p2.imag), color=HIGHLIGHT_COLOR, linewidth=1.0)
                else:
                    ax.add_patch(
                        Circle((c.center.real, c.center.imag), c.radius, fill=False, edgecolor=HIGHLIGHT_COLOR, linewidth=1.0)
                    )

    if hyperbolic:
        limit = 1.05
        if show_disk:
            ax.add_patch(Circle((0, 0), 1.0, fill=False, edgecolor=edge_color, linewidth=1.0))
    else:
        limit = extent

    ax.set_aspect("equal", "box")
    ax.set_xlim(-limit, limit)
    ax.set_ylim(-limit, limit)
    ax.axis("off")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight", pad_inches=0)
    plt.close(fig)


def _sticker_points(poly) -> Optional[List[Tuple[float, float]]]:
    points = [(p.real, p.imag) for p in poly.edge_points()]
    if len(points) < 3:
        return None
    return points
