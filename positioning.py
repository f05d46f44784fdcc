"""
Positioning Engine.

Turns a partial placement request into a concrete rectangle that fits on
the current page.

Overflow policy (right / bottom edge):
- explicit start (caller gave ``x``/``y``): the start is an anchor, so the
  size shrinks to fit (never below ``min_dimension``)
- inferred start: the size is what the caller asked for, so the start slides
  back toward the page origin instead

Only when neither move is enough (an inferred span wider than the page, or
an explicit anchor beyond the far edge) is the other value adjusted too.
"""

from geometry import is_number, round_to_precision, validate_positioning

FALLBACK_POSITION = {"x": 10, "y": 10, "width": 100, "height": 50}
DEFAULT_WIDTH = 100
DEFAULT_HEIGHT = 50

ANCHORS = (
    "top-left", "top-center", "top-right",
    "center-left", "center", "center-right",
    "bottom-left", "bottom-center", "bottom-right",
)


def _fit_axis(start: float, size: float, explicit: bool, extent: float, config) -> tuple[float, float]:
    """Resolve one axis against the page edge at ``extent``."""
    limit = extent - config.min_margin

    if start + size > limit:
        if explicit:
            size = max(limit - start, config.min_dimension)
        else:
            start = max(limit - size, config.min_margin)

    size = max(size, config.min_dimension)
    start = max(start, config.min_margin)

    # Still off the page: cap to the usable extent and pull the start inside.
    if start + size > limit:
        size = max(min(size, limit - config.min_margin), config.min_dimension)
        start = max(min(start, limit - size), config.min_margin)

    return start, size


def _round_axis(start: float, size: float, extent: float, config) -> tuple[float, float]:
    """Round one axis, pulling it back inside if rounding crossed the edge.

    One unit of size is given up first.  A size already at ``min_dimension``
    cannot shrink, so the start steps toward the page origin instead.
    """
    precision = config.precision
    limit = extent - config.min_margin
    step = 10 ** -precision
    start = round_to_precision(start, precision)
    size = round_to_precision(size, precision)
    if start + size > limit and size > config.min_dimension:
        size = max(round_to_precision(size - step, precision), config.min_dimension)
    while start + size > limit and start > config.min_margin:
        start = max(round_to_precision(start - step, precision), config.min_margin)
    return start, size


def calculate_positioning(page_dimensions, config, x=None, y=None,
                          width=None, height=None, margin=None) -> dict:
    """Resolve a possibly-partial rectangle for the given page.

    Without page dimensions a fixed fallback rectangle is returned (with any
    explicitly given values kept) and no bounds checking is done.
    """
    if not page_dimensions:
        position = dict(FALLBACK_POSITION)
        for key, value in (("x", x), ("y", y), ("width", width), ("height", height)):
            if is_number(value):
                position[key] = value
        position["note"] = "No page dimensions available - using default positioning"
        return position

    page_width = page_dimensions["width"]
    page_height = page_dimensions["height"]
    margin = margin if is_number(margin) else config.default_margin
    safe_width = page_width - margin * 2
    safe_height = page_height - margin * 2

    rx = x if is_number(x) else margin
    ry = y if is_number(y) else margin
    rw = width if is_number(width) else min(safe_width, DEFAULT_WIDTH)
    rh = height if is_number(height) else min(safe_height, DEFAULT_HEIGHT)

    rx, rw = _fit_axis(rx, rw, is_number(x), page_width, config)
    ry, rh = _fit_axis(ry, rh, is_number(y), page_height, config)

    rx, rw = _round_axis(rx, rw, page_width, config)
    ry, rh = _round_axis(ry, rh, page_height, config)
    return {
        "x": rx,
        "y": ry,
        "width": rw,
        "height": rh,
        "page_width": page_width,
        "page_height": page_height,
        "safe_area": {
            "width": safe_width,
            "height": safe_height,
            "margin": margin,
        },
    }


def anchor_point(align: str, width: float, height: float,
                 page_width: float, page_height: float, margin: float) -> tuple[float, float]:
    """Top-left corner for a ``width`` x ``height`` box at a named anchor."""
    left = margin
    center_x = (page_width - width) / 2
    right = page_width - width - margin
    top = margin
    center_y = (page_height - height) / 2
    bottom = page_height - height - margin

    positions = {
        "top-left": (left, top),
        "top-center": (center_x, top),
        "top-right": (right, top),
        "center-left": (left, center_y),
        "center": (center_x, center_y),
        "center-right": (right, center_y),
        "bottom-left": (left, bottom),
        "bottom-center": (center_x, bottom),
        "bottom-right": (right, bottom),
    }
    return positions[align]


def find_optimal_position(page_dimensions, config, width, height,
                          align: str = "top-left", margin=None) -> dict | None:
    """Place a box at one of the nine anchors and validate the placement.

    Unknown anchor names fall back to ``top-left``.  Returns None when no page
    dimensions are known.
    """
    if not page_dimensions:
        return None

    if align not in ANCHORS:
        align = "top-left"
    margin = margin if is_number(margin) else config.default_margin

    x, y = anchor_point(
        align, width, height, page_dimensions["width"], page_dimensions["height"], margin
    )
    x = round_to_precision(x, config.precision)
    y = round_to_precision(y, config.precision)

    validation = validate_positioning(
        x, y, width, height, page_dimensions, config.min_margin, config.min_dimension
    )
    return {"x": x, "y": y, "align": align, "validation": validation}


def available_space(page_dimensions, config, x, y) -> dict | None:
    """Room to the right of and below a point, plus the page's usable extent."""
    if not page_dimensions:
        return None

    page_width = page_dimensions["width"]
    page_height = page_dimensions["height"]
    min_margin = config.min_margin
    return {
        "width": max(0, page_width - x - min_margin),
        "height": max(0, page_height - y - min_margin),
        "max_width": page_width - min_margin * 2,
        "max_height": page_height - min_margin * 2,
    }
