"""
Page Geometry and Bounds Validation.

Pure arithmetic over rectangles and page dimensions (millimetres).
No I/O, no session state: every function receives the page size and the
margin settings it needs.

Conventions:
- A rectangle is ``(x, y, width, height)`` measured from the page's top-left.
- Page dimensions are a mapping with ``width`` and ``height``.
- Validation results are plain dicts: ``{valid, reason?, suggested?, bounds?,
  warning?, input?}``.  An infeasible but well-typed rectangle is reported,
  never raised.
"""

import math
from typing import Any


def is_number(value: Any) -> bool:
    """True for finite real numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def round_to_precision(value: float, precision: int) -> float:
    """Round half away from zero to ``precision`` decimal digits."""
    factor = 10 ** precision
    return math.copysign(math.floor(abs(value) * factor + 0.5), value) / factor


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def validate_positioning_inputs(x, y, width, height, min_dimension: float) -> dict:
    """Check that a rectangle is made of finite numbers with a positive size."""
    for key, value in (("x", x), ("y", y), ("width", width), ("height", height)):
        if not is_number(value):
            return {
                "valid": False,
                "reason": f"{key} must be a valid number",
                "input": key,
            }

    if width <= 0 or height <= 0:
        return {
            "valid": False,
            "reason": "Width and height must be positive",
            "suggested": {
                "width": max(width, min_dimension),
                "height": max(height, min_dimension),
            },
        }

    return {"valid": True}


# ---------------------------------------------------------------------------
# Page bounds
# ---------------------------------------------------------------------------

def _fit_span(start: float, extent: float,
              min_margin: float, min_dimension: float) -> dict:
    """Suggest a correction for a span that runs past the far edge.

    Shrinks the span first; when that would go below ``min_dimension`` the
    span is set to the minimum and its start is pulled back instead.
    """
    limit = extent - min_margin
    shrunk = limit - start
    if shrunk >= min_dimension:
        return {"size": shrunk}
    return {"size": min_dimension, "start": max(limit - min_dimension, min_margin)}


def validate_against_page_bounds(x, y, width, height, page_dimensions,
                                 min_margin: float, min_dimension: float) -> dict:
    """Check a rectangle against the page edges.

    Edges are checked left, top, right, bottom; only the first violation is
    reported so the suggested correction never mixes two adjustments.
    """
    page_width = page_dimensions["width"]
    page_height = page_dimensions["height"]
    max_x = page_width - min_margin
    max_y = page_height - min_margin

    if x < min_margin:
        return {
            "valid": False,
            "reason": f"X position ({x}mm) is too close to left edge",
            "suggested": {"x": min_margin},
            "bounds": {"min_x": min_margin},
        }

    if y < min_margin:
        return {
            "valid": False,
            "reason": f"Y position ({y}mm) is too close to top edge",
            "suggested": {"y": min_margin},
            "bounds": {"min_y": min_margin},
        }

    if x + width > max_x:
        fit = _fit_span(x, page_width, min_margin, min_dimension)
        suggested = {"width": fit["size"]}
        if "start" in fit:
            suggested["x"] = fit["start"]
        return {
            "valid": False,
            "reason": f"Content extends beyond right edge ({x + width}mm > {max_x}mm)",
            "suggested": suggested,
            "bounds": {"max_x": max_x},
        }

    if y + height > max_y:
        fit = _fit_span(y, page_height, min_margin, min_dimension)
        suggested = {"height": fit["size"]}
        if "start" in fit:
            suggested["y"] = fit["start"]
        return {
            "valid": False,
            "reason": f"Content extends beyond bottom edge ({y + height}mm > {max_y}mm)",
            "suggested": suggested,
            "bounds": {"max_y": max_y},
        }

    return {"valid": True, "reason": "Positioning is within page bounds"}


def validate_positioning(x, y, width, height, page_dimensions,
                         min_margin: float, min_dimension: float) -> dict:
    """Input check, then page-bounds check.  The input check short-circuits."""
    result = validate_positioning_inputs(x, y, width, height, min_dimension)
    if not result["valid"]:
        return result

    if not page_dimensions:
        return {
            "valid": True,
            "reason": "No page dimensions available for validation",
            "warning": "Consider setting page dimensions for better validation",
        }

    return validate_against_page_bounds(
        x, y, width, height, page_dimensions, min_margin, min_dimension
    )


def compute_bounds(page_dimensions, margin: float, min_margin: float) -> dict:
    """Derive the safe area, absolute bounds and centre of a page."""
    page_width = page_dimensions["width"]
    page_height = page_dimensions["height"]
    return {
        "page_width": page_width,
        "page_height": page_height,
        "margin": margin,
        "min_margin": min_margin,
        "safe_area": {
            "x": margin,
            "y": margin,
            "width": max(0, page_width - margin * 2),
            "height": max(0, page_height - margin * 2),
        },
        "absolute_bounds": {
            "x": min_margin,
            "y": min_margin,
            "width": max(0, page_width - min_margin * 2),
            "height": max(0, page_height - min_margin * 2),
        },
        "center": {
            "x": page_width / 2,
            "y": page_height / 2,
        },
    }
