"""
JSX snippet helpers.

Small formatting functions shared by the tool handlers when they
interpolate arguments into ExtendScript source.
"""

import math


def escape_jsx_string(value) -> str:
    """Escape backslashes, double quotes and control characters for a JSX "..." literal."""
    if not isinstance(value, str):
        return ""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )


def js_string(value) -> str:
    """Quoted JSX string literal; None becomes an empty string."""
    return '"' + escape_jsx_string("" if value is None else str(value)) + '"'


def js_number(value) -> str:
    """Number literal without exponent notation or a trailing ``.0``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"Not a finite number: {value!r}")
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def js_bool(value) -> str:
    return "true" if value else "false"


def geometric_bounds(position: dict) -> str:
    """``[top, left, bottom, right]`` array literal for ``geometricBounds``."""
    top = position["y"]
    left = position["x"]
    bottom = top + position["height"]
    right = left + position["width"]
    return "[" + ", ".join(js_number(v) for v in (top, left, bottom, right)) + "]"


def page_reference(page_index: int | None) -> str:
    """JSX expression for the target page (active page when no index is given)."""
    if page_index is None:
        return (
            "(app.layoutWindows.length > 0 && app.activeWindow.activePage"
            " ? app.activeWindow.activePage : doc.pages[0])"
        )
    return f"doc.pages[{int(page_index)}]"
