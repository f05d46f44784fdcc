# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "mcp>=1.0.0",
#     "pywin32>=306",
# ]
# ///
"""
InDesign Layout MCP Server.

Session-aware layout tools for a running Adobe InDesign instance (via COM/OLE):
  Document  - get_document_info, create_document, open_document, save_document, close_document
  Pages     - add_page, get_page_info, navigate_to_page
  Content   - create_text_frame, create_rectangle, create_ellipse, create_polygon, place_image
  Export    - export_pdf
  Utility   - execute_indesign_code
  Session   - get_session_info, clear_session, calculate_positioning, validate_positioning,
              find_optimal_position, get_available_space, export_session, import_session

The server remembers the active document's page size, so content tools can
be called with partial geometry: missing coordinates and sizes are filled in
and out-of-page rectangles are corrected before anything is created.

Requires InDesign Desktop running on Windows for the document/page/content tools.
"""

import json
import logging
import os
import sys
from pathlib import Path

# Add script directory to sys.path so the sibling modules can be imported
sys.path.insert(0, str(Path(__file__).parent))

from mcp.server.fastmcp import FastMCP

import handlers
import indesign_com as com
from events import log_event
from session import SessionManager, autosave_listener, config_from_env, load_snapshot

log = logging.getLogger("server")

SESSION_FILE = os.environ.get("INDESIGN_SESSION_FILE")

SESSION = SessionManager(config_from_env())
SESSION.subscribe(log_event)
CONTEXT = handlers.ToolContext(session=SESSION, run_jsx=com.run_jsx)

mcp = FastMCP(
    "InDesign Layout",
    instructions=(
        "This server creates and edits Adobe InDesign documents. All lengths are millimetres.\n\n"
        "Call get_document_info (or create_document / open_document) first: the server then "
        "knows the page size and every content tool (create_text_frame, create_rectangle, "
        "create_ellipse, create_polygon, place_image) accepts partial geometry. Omitted x/y/width/height "
        "are filled in inside the page margins, and rectangles that would leave the page are "
        "shrunk or moved back inside. The response reports the final position and any adjustment.\n\n"
        "Use calculate_positioning, validate_positioning, find_optimal_position and "
        "get_available_space to plan a layout without touching the document.\n"
        "Use execute_indesign_code for anything not covered; assign the return value to __result."
    ),
)


# ---------------------------------------------------------------------------
# MCP Resource: Usage instructions for the agent
# ---------------------------------------------------------------------------

@mcp.resource("config://usage")
def usage_instructions() -> str:
    """Usage guide for the InDesign Layout MCP. Read this first."""
    config = SESSION.config
    return f"""\
# InDesign Layout MCP: Usage Guide

## Units and coordinates
- Millimetres everywhere. Origin is the top-left corner of the page.
- x grows to the right, y grows downwards.

## Session
The server keeps a small session: page size, active document, active page and
the last created item. It is filled by get_document_info, create_document,
open_document, add_page, get_page_info and navigate_to_page, and inspected with
get_session_info.  clear_session(preserve=[...]) resets it; the slot names are
pageDimensions, activeDocument, activePage and lastCreatedItem.

## Automatic positioning
Content tools take optional x, y, width and height:
- Missing x/y start at the margin ({config.default_margin} mm).
- Missing width/height default to 100 x 50 mm, capped to the space inside the margin.
- Without any page size, a fixed fallback rectangle (10, 10, 100 x 50) is used.
- A rectangle that leaves the page is corrected: explicit coordinates keep their
  position and the size shrinks; inferred coordinates move back inside.
- Nothing is placed closer than {config.min_margin} mm to the page edge, and no side is
  smaller than {config.min_dimension} mm.

## Planning tools
- calculate_positioning(x?, y?, width?, height?, margin?) -> resolved rectangle
- validate_positioning(x, y, width, height) -> valid / reason / suggested fix
- find_optimal_position(width, height, align) -> x/y for one of nine anchors:
  top-left, top-center, top-right, center-left, center, center-right,
  bottom-left, bottom-center, bottom-right
- get_available_space(x, y) -> room to the right of x and below y

## Raw JSX
execute_indesign_code runs arbitrary ExtendScript in one undo step.
Assign the value to return to __result; do not use return statements.
"""


def _fmt(obj) -> str:
    """Format result as indented JSON string."""
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _call(handler, *args, **kwargs) -> str:
    """Run a handler and turn any failure into an error envelope."""
    try:
        return _fmt(handler(CONTEXT, *args, **kwargs))
    except ConnectionError as e:
        return _fmt({"success": False, "error": str(e), "name": "ConnectionError"})
    except Exception as e:
        log.debug("%s failed", handler.__name__, exc_info=True)
        return _fmt({"success": False, "error": str(e), "name": type(e).__name__})


# ---------------------------------------------------------------------------
# Document tools
# ---------------------------------------------------------------------------

@mcp.tool()
def get_document_info() -> str:
    """Get an overview of the active InDesign document.

    Returns name, path, page/spread/layer counts, page size, margins and
    bleed, plus the page shown in the layout window.  The page size is
    remembered for automatic positioning.  Read-only operation.
    """
    return _call(handlers.get_document_info)


@mcp.tool()
def create_document(
    width: float = 210,
    height: float = 297,
    pages: int = 1,
    facing_pages: bool = False,
    margin_top: float = 20,
    margin_bottom: float = 20,
    margin_left: float = 20,
    margin_right: float = 20,
    bleed_top: float = 3,
    bleed_bottom: float = 3,
    bleed_inside: float = 3,
    bleed_outside: float = 3,
) -> str:
    """Create a new InDesign document and make it the active document.

    Args:
        width: Page width in mm (default A4)
        height: Page height in mm (default A4)
        pages: Number of pages
        facing_pages: Create spreads with left/right pages
        margin_top, margin_bottom, margin_left, margin_right: Page margins in mm
        bleed_top, bleed_bottom, bleed_inside, bleed_outside: Bleed in mm
    """
    return _call(
        handlers.create_document,
        width=width, height=height, pages=pages, facing_pages=facing_pages,
        margin_top=margin_top, margin_bottom=margin_bottom,
        margin_left=margin_left, margin_right=margin_right,
        bleed_top=bleed_top, bleed_bottom=bleed_bottom,
        bleed_inside=bleed_inside, bleed_outside=bleed_outside,
    )


@mcp.tool()
def open_document(file_path: str) -> str:
    """Open an InDesign document (.indd) and make it the active document.

    Args:
        file_path: Absolute path to the document
    """
    return _call(handlers.open_document, file_path)


@mcp.tool()
def save_document(file_path: str | None = None) -> str:
    """Save the active document.

    Args:
        file_path: Save under this path ("Save As").  Required for a document
                   that has never been saved.
    """
    return _call(handlers.save_document, file_path)


@mcp.tool()
def close_document(save: bool = False) -> str:
    """Close the active document and reset the session.

    Args:
        save: Save changes before closing (default: discard)
    """
    return _call(handlers.close_document, save=save)


# ---------------------------------------------------------------------------
# Page tools
# ---------------------------------------------------------------------------

@mcp.tool()
def add_page(position: str = "AT_END", reference_page: int | None = None) -> str:
    """Add a page to the active document.

    Args:
        position: "AT_END" (default), "AT_BEGINNING", "BEFORE" or "AFTER"
        reference_page: 0-based page index, required for BEFORE/AFTER
    """
    return _call(handlers.add_page, position=position, reference_page=reference_page)


@mcp.tool()
def get_page_info(page_index: int = 0) -> str:
    """Get size, side, master and item counts of one page.

    Args:
        page_index: 0-based page index
    """
    return _call(handlers.get_page_info, page_index=page_index)


@mcp.tool()
def navigate_to_page(page_index: int) -> str:
    """Show a page in the layout window and make it the active page.

    Args:
        page_index: 0-based page index
    """
    return _call(handlers.navigate_to_page, page_index)


# ---------------------------------------------------------------------------
# Content tools
# ---------------------------------------------------------------------------

@mcp.tool()
def create_text_frame(
    content: str,
    x: float | None = None,
    y: float | None = None,
    width: float | None = None,
    height: float | None = None,
    font_size: float = 12,
    font_name: str = "Arial\tRegular",
    text_color: str = "Black",
    alignment: str = "LEFT",
    paragraph_style: str | None = None,
    character_style: str | None = None,
    page_index: int | None = None,
) -> str:
    """Create a text frame.  Omitted geometry is filled in automatically.

    Args:
        content: Text content
        x, y: Top-left corner in mm
        width, height: Frame size in mm
        font_size: Point size
        font_name: Font as "Family\\tStyle" (e.g. "Minion Pro\\tRegular")
        text_color: Swatch name
        alignment: "LEFT", "CENTER", "RIGHT" or "JUSTIFY"
        paragraph_style: Paragraph style name (overrides font settings)
        character_style: Character style name (overrides font settings)
        page_index: 0-based page index (default: active page)
    """
    return _call(
        handlers.create_text_frame, content,
        x=x, y=y, width=width, height=height,
        font_size=font_size, font_name=font_name, text_color=text_color, alignment=alignment,
        paragraph_style=paragraph_style, character_style=character_style, page_index=page_index,
    )


@mcp.tool()
def create_rectangle(
    x: float | None = None,
    y: float | None = None,
    width: float | None = None,
    height: float | None = None,
    fill_color: str | None = None,
    stroke_color: str | None = None,
    stroke_width: float = 1,
    corner_radius: float = 0,
    page_index: int | None = None,
) -> str:
    """Create a rectangle.  Omitted geometry is filled in automatically.

    Args:
        x, y: Top-left corner in mm
        width, height: Size in mm
        fill_color: Fill swatch name
        stroke_color: Stroke swatch name
        stroke_width: Stroke weight in points
        corner_radius: Rounded corner radius in mm (0 = square)
        page_index: 0-based page index (default: active page)
    """
    return _call(
        handlers.create_rectangle,
        x=x, y=y, width=width, height=height,
        fill_color=fill_color, stroke_color=stroke_color, stroke_width=stroke_width,
        corner_radius=corner_radius, page_index=page_index,
    )


@mcp.tool()
def create_ellipse(
    x: float | None = None,
    y: float | None = None,
    width: float | None = None,
    height: float | None = None,
    fill_color: str | None = None,
    stroke_color: str | None = None,
    stroke_width: float = 1,
    page_index: int | None = None,
) -> str:
    """Create an ellipse inside the given bounding box.

    Args:
        x, y: Top-left corner of the bounding box in mm
        width, height: Size in mm
        fill_color: Fill swatch name
        stroke_color: Stroke swatch name
        stroke_width: Stroke weight in points
        page_index: 0-based page index (default: active page)
    """
    return _call(
        handlers.create_ellipse,
        x=x, y=y, width=width, height=height,
        fill_color=fill_color, stroke_color=stroke_color, stroke_width=stroke_width,
        page_index=page_index,
    )


@mcp.tool()
def create_polygon(
    x: float | None = None,
    y: float | None = None,
    width: float | None = None,
    height: float | None = None,
    sides: int = 6,
    fill_color: str | None = None,
    stroke_color: str | None = None,
    stroke_width: float = 1,
    page_index: int | None = None,
) -> str:
    """Create a regular polygon inside the given bounding box.

    Args:
        x, y: Top-left corner of the bounding box in mm
        width, height: Size in mm
        sides: Number of sides (>= 3)
        fill_color: Fill swatch name
        stroke_color: Stroke swatch name
        stroke_width: Stroke weight in points
        page_index: 0-based page index (default: active page)
    """
    return _call(
        handlers.create_polygon,
        x=x, y=y, width=width, height=height, sides=sides,
        fill_color=fill_color, stroke_color=stroke_color, stroke_width=stroke_width,
        page_index=page_index,
    )


@mcp.tool()
def place_image(
    file_path: str,
    x: float | None = None,
    y: float | None = None,
    width: float | None = None,
    height: float | None = None,
    fit_mode: str = "PROPORTIONALLY",
    scale: float = 100,
    object_style: str | None = None,
    page_index: int | None = None,
) -> str:
    """Place an image file in a new frame.

    Args:
        file_path: Absolute path to the image
        x, y: Top-left corner of the frame in mm
        width, height: Frame size in mm
        fit_mode: "PROPORTIONALLY", "FILL_FRAME", "FIT_CONTENT", "FIT_FRAME" or "CENTER"
        scale: Image scale in percent; anything but 100 overrides fit_mode
        object_style: Object style to apply to the frame
        page_index: 0-based page index (default: active page)
    """
    return _call(
        handlers.place_image, file_path,
        x=x, y=y, width=width, height=height,
        fit_mode=fit_mode, scale=scale, object_style=object_style, page_index=page_index,
    )


# ---------------------------------------------------------------------------
# Export / utility
# ---------------------------------------------------------------------------

@mcp.tool()
def export_pdf(file_path: str, preset: str = "[High Quality Print]") -> str:
    """Export the active document to PDF.

    Args:
        file_path: Target PDF path
        preset: PDF export preset name; unknown presets fall back to current settings
    """
    return _call(handlers.export_pdf, file_path, preset=preset)


@mcp.tool()
def execute_indesign_code(code: str, undo_name: str = "Agent Script") -> str:
    """Execute JSX (ExtendScript) code in InDesign as one undo step.

    Assign the value you want to return to the variable __result.
    Example:
        var doc = app.activeDocument;
        __result = {name: doc.name, pages: doc.pages.length};

    Args:
        code: The JSX code to execute
        undo_name: Label for Edit > Undo
    """
    return _call(handlers.execute_indesign_code, code, undo_name=undo_name)


# ---------------------------------------------------------------------------
# Session tools
# ---------------------------------------------------------------------------

@mcp.tool()
def get_session_info() -> str:
    """Show what the session knows: page size, document, page, last item, bounds and config."""
    return _call(handlers.get_session_info)


@mcp.tool()
def clear_session(preserve: list[str] | None = None) -> str:
    """Reset the session.

    Args:
        preserve: Slots to keep: "pageDimensions", "activeDocument",
                  "activePage", "lastCreatedItem"
    """
    return _call(handlers.clear_session, preserve)


@mcp.tool()
def calculate_positioning(
    x: float | None = None,
    y: float | None = None,
    width: float | None = None,
    height: float | None = None,
    margin: float | None = None,
) -> str:
    """Resolve a partial rectangle against the current page without creating anything.

    Args:
        x, y: Top-left corner in mm (optional)
        width, height: Size in mm (optional)
        margin: Margin used for inferred values (default from config)
    """
    return _call(handlers.calculate_positioning, x=x, y=y, width=width, height=height, margin=margin)


@mcp.tool()
def validate_positioning(x: float, y: float, width: float, height: float) -> str:
    """Check a rectangle against the page bounds; returns a suggested fix when invalid."""
    return _call(handlers.validate_positioning, x, y, width, height)


@mcp.tool()
def find_optimal_position(width: float, height: float, align: str = "top-left",
                          margin: float | None = None) -> str:
    """Position a box of the given size at one of nine page anchors.

    Args:
        width, height: Box size in mm
        align: top-left, top-center, top-right, center-left, center,
               center-right, bottom-left, bottom-center, bottom-right
        margin: Distance from the page edges (default from config)
    """
    return _call(handlers.find_optimal_position, width, height, align=align, margin=margin)


@mcp.tool()
def get_available_space(x: float, y: float) -> str:
    """Room left to the right of x and below y, inside the margins."""
    return _call(handlers.get_available_space, x, y)


@mcp.tool()
def export_session() -> str:
    """Export the session as a JSON snapshot string."""
    return _call(handlers.export_session)


@mcp.tool()
def import_session(snapshot: str) -> str:
    """Restore a snapshot produced by export_session.

    Args:
        snapshot: The JSON string returned by export_session
    """
    return _call(handlers.import_session, snapshot)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def configure_logging() -> None:
    """Log to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        stream=sys.stderr,
        level=os.environ.get("INDESIGN_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    """Run the MCP server via stdio transport."""
    configure_logging()
    if SESSION_FILE:
        if load_snapshot(SESSION, SESSION_FILE):
            log.info("Session restored from %s", SESSION_FILE)
        SESSION.subscribe(autosave_listener(SESSION, SESSION_FILE))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
