"""
InDesign tool handlers.

Each handler builds a JSX snippet from its arguments, runs it through the
injected runner and returns a result dict.  Handlers that create page
content resolve their geometry through the session's positioning engine
first; document and page handlers write what they learn back into the
session.

Handlers never talk to COM directly: ``ToolContext.run_jsx`` is
``indesign_com.run_jsx`` in the server and a fake in the tests.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable

from jsx import geometric_bounds, js_bool, js_number, js_string, page_reference
from positioning import ANCHORS
from session import SLOTS, SessionManager

log = logging.getLogger("handlers")

_PLACEHOLDER = re.compile(r"\$([A-Z_]+)\$")

PAGE_POSITIONS = ("AT_END", "AT_BEGINNING", "BEFORE", "AFTER")
TEXT_ALIGNMENTS = {
    "LEFT": "Justification.LEFT_ALIGN",
    "CENTER": "Justification.CENTER_ALIGN",
    "RIGHT": "Justification.RIGHT_ALIGN",
    "JUSTIFY": "Justification.FULLY_JUSTIFIED",
}
FIT_MODES = {
    "PROPORTIONALLY": "FittingOptions.PROPORTIONALLY",
    "FILL_FRAME": "FittingOptions.FILL_PROPORTIONALLY",
    "FIT_CONTENT": "FittingOptions.FRAME_TO_CONTENT",
    "FIT_FRAME": "FittingOptions.CONTENT_TO_FRAME",
    "CENTER": "FittingOptions.CENTER_CONTENT",
}


@dataclass
class ToolContext:
    """What a handler needs: the session store and a JSX runner.

    ``run_jsx(code, undo_name=..., undo_mode=..., require_document=...)``
    returns ``{"success": bool, "result": ...}`` or an error dict.
    """

    session: SessionManager
    run_jsx: Callable[..., dict]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fill(template: str, **values: str) -> str:
    """Substitute ``$NAME$`` placeholders in one pass (inserted text is never rescanned)."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1).lower(), m.group(0)), template)


def _unwrap_result(result: dict) -> dict:
    """Flatten {success: true, result: {...}} into {success: true, ...}."""
    if result.get("success") and isinstance(result.get("result"), dict):
        return {"success": True, **result["result"]}
    return result


def _ok(**data) -> dict:
    return {"success": True, **data}


def _rect(position: dict) -> dict:
    return {key: position[key] for key in ("x", "y", "width", "height")}


def resolve_geometry(session: SessionManager, x=None, y=None, width=None, height=None) -> dict:
    """Resolve a partial rectangle and apply any validation correction.

    Returns ``{"position": {x, y, width, height}, "validation": {...}}``.
    """
    position = session.get_calculated_positioning(x=x, y=y, width=width, height=height)
    rect = _rect(position)
    validation = session.validate_positioning(rect["x"], rect["y"], rect["width"], rect["height"])
    if not validation["valid"]:
        if validation.get("suggested"):
            rect.update(validation["suggested"])
        else:
            rect = _rect(session.get_calculated_positioning())
        log.info("Adjusted placement: %s", validation.get("reason"))
    return {"position": rect, "validation": validation}


# Shared JSX fragments --------------------------------------------------------

_PAGE_INFO_FN = """\
function __pageInfo(page) {
    var b = page.bounds;
    var master = null;
    try { master = page.appliedMaster.name; } catch (e) {}
    return {
        name: page.name,
        index: page.documentOffset,
        width: b[3] - b[1],
        height: b[2] - b[0],
        side: String(page.side),
        appliedMaster: master,
        itemCount: page.allPageItems.length
    };
}
"""

_DOC_INFO_FN = """\
function __docInfo(doc) {
    var prefs = doc.documentPreferences;
    var margins = doc.marginPreferences;
    var path = "Unsaved";
    try { if (doc.saved) { path = doc.fullName.fsName; } } catch (e) {}
    return {
        name: doc.name,
        path: path,
        pages: doc.pages.length,
        spreads: doc.spreads.length,
        layers: doc.layers.length,
        masterSpreads: doc.masterSpreads.length,
        width: prefs.pageWidth,
        height: prefs.pageHeight,
        facingPages: prefs.facingPages,
        margins: {top: margins.top, bottom: margins.bottom, left: margins.left, right: margins.right},
        bleed: {
            top: prefs.documentBleedTopOffset,
            bottom: prefs.documentBleedBottomOffset,
            inside: prefs.documentBleedInsideOrLeftOffset,
            outside: prefs.documentBleedOutsideOrRightOffset
        }
    };
}
"""

_APPLY_SWATCHES = """\
var __warnings = [];
function __swatch(name) {
    if (!name) { return null; }
    var sw = doc.swatches.itemByName(name);
    if (!sw.isValid) { __warnings.push("Swatch not found: " + name); return null; }
    return sw;
}
var __fillSwatch = __swatch($FILL$);
if (__fillSwatch) { item.fillColor = __fillSwatch; }
var __strokeSwatch = __swatch($STROKE$);
if (__strokeSwatch) { item.strokeColor = __strokeSwatch; }
if ($STROKE$ !== "") { item.strokeWeight = $STROKE_WIDTH$; }
"""


def _document_facts(info: dict) -> dict:
    """The subset of document info kept in the session."""
    return {
        "name": info.get("name"),
        "path": info.get("path", "Unsaved"),
        "pages": info.get("pages"),
        "width": info.get("width"),
        "height": info.get("height"),
    }


def _record_document(session: SessionManager, info: dict) -> None:
    dimensions = {"width": info.get("width"), "height": info.get("height")}
    session.validate_page_dimensions(dimensions)
    session.set_active_document(_document_facts(info))
    session.set_page_dimensions(dimensions)
    page = info.get("activePage")
    if isinstance(page, dict):
        session.set_active_page(page)


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

_GET_DOCUMENT_INFO_JSX = _DOC_INFO_FN + _PAGE_INFO_FN + """\
var doc = app.activeDocument;
__result = __docInfo(doc);
try {
    if (app.layoutWindows.length > 0) {
        __result.activePage = __pageInfo(app.activeWindow.activePage);
    }
} catch (viewErr) {}
"""


def get_document_info(ctx: ToolContext) -> dict:
    """Describe the active document and remember its page size."""
    result = ctx.run_jsx(_GET_DOCUMENT_INFO_JSX, undo_mode="none", require_document=True)
    result = _unwrap_result(result)
    if result.get("success"):
        _record_document(ctx.session, result)
    return result


_CREATE_DOCUMENT_JSX = _DOC_INFO_FN + _PAGE_INFO_FN + """\
var doc = app.documents.add();
var prefs = doc.documentPreferences;
prefs.facingPages = $FACING$;
prefs.pagesPerDocument = $PAGES$;
prefs.pageWidth = $WIDTH$;
prefs.pageHeight = $HEIGHT$;
prefs.documentBleedTopOffset = $BLEED_TOP$;
prefs.documentBleedBottomOffset = $BLEED_BOTTOM$;
prefs.documentBleedInsideOrLeftOffset = $BLEED_INSIDE$;
prefs.documentBleedOutsideOrRightOffset = $BLEED_OUTSIDE$;
doc.marginPreferences.properties = {top: $MARGIN_TOP$, bottom: $MARGIN_BOTTOM$, left: $MARGIN_LEFT$, right: $MARGIN_RIGHT$};
for (var i = 0; i < doc.pages.length; i++) {
    doc.pages[i].marginPreferences.properties = doc.marginPreferences.properties;
}
__result = __docInfo(doc);
__result.activePage = __pageInfo(doc.pages[0]);
"""


def create_document(ctx: ToolContext, width: float = 210, height: float = 297, pages: int = 1,
                    facing_pages: bool = False, margin_top: float = 20, margin_bottom: float = 20,
                    margin_left: float = 20, margin_right: float = 20, bleed_top: float = 3,
                    bleed_bottom: float = 3, bleed_inside: float = 3, bleed_outside: float = 3) -> dict:
    """Create a document (sizes in mm) and make it the session's active document."""
    ctx.session.validate_page_dimensions({"width": width, "height": height})
    if pages < 1:
        raise ValueError("pages must be >= 1")

    jsx = _fill(
        _CREATE_DOCUMENT_JSX,
        facing=js_bool(facing_pages),
        pages=js_number(int(pages)),
        width=js_number(width),
        height=js_number(height),
        bleed_top=js_number(bleed_top),
        bleed_bottom=js_number(bleed_bottom),
        bleed_inside=js_number(bleed_inside),
        bleed_outside=js_number(bleed_outside),
        margin_top=js_number(margin_top),
        margin_bottom=js_number(margin_bottom),
        margin_left=js_number(margin_left),
        margin_right=js_number(margin_right),
    )
    result = _unwrap_result(ctx.run_jsx(jsx, undo_name="Agent: Create document", undo_mode="none"))
    if result.get("success"):
        _record_document(ctx.session, result)
    return result


_OPEN_DOCUMENT_JSX = _DOC_INFO_FN + _PAGE_INFO_FN + """\
var file = File($PATH$);
if (!file.exists) { throw new Error("File not found: " + $PATH$); }
var doc = app.open(file);
__result = __docInfo(doc);
__result.activePage = __pageInfo(doc.pages[0]);
"""


def open_document(ctx: ToolContext, file_path: str) -> dict:
    """Open an .indd file and make it the session's active document."""
    if not file_path or not file_path.strip():
        raise ValueError("file_path must not be empty")
    jsx = _fill(_OPEN_DOCUMENT_JSX, path=js_string(file_path))
    result = _unwrap_result(ctx.run_jsx(jsx, undo_name="Agent: Open document", undo_mode="none"))
    if result.get("success"):
        _record_document(ctx.session, result)
    return result


_SAVE_DOCUMENT_JSX = """\
var doc = app.activeDocument;
var target = $PATH$;
if (target) {
    doc = doc.save(File(target));
} else if (doc.saved) {
    doc.save();
} else {
    throw new Error("Document has never been saved; a file_path is required.");
}
__result = {name: doc.name, path: doc.fullName.fsName};
"""


def save_document(ctx: ToolContext, file_path: str | None = None) -> dict:
    """Save the active document, optionally under a new path."""
    jsx = _fill(_SAVE_DOCUMENT_JSX, path=js_string(file_path))
    result = _unwrap_result(ctx.run_jsx(jsx, undo_mode="none", require_document=True))
    if result.get("success"):
        document = ctx.session.get_active_document() or {}
        document.update({"name": result.get("name"), "path": result.get("path")})
        ctx.session.set_active_document(document)
    return result


_CLOSE_DOCUMENT_JSX = """\
var doc = app.activeDocument;
var name = doc.name;
doc.close($SAVE$ ? SaveOptions.YES : SaveOptions.NO);
__result = {closed: name, remaining: app.documents.length};
"""


def close_document(ctx: ToolContext, save: bool = False) -> dict:
    """Close the active document and forget everything the session knew about it."""
    jsx = _fill(_CLOSE_DOCUMENT_JSX, save=js_bool(save))
    result = _unwrap_result(ctx.run_jsx(jsx, undo_mode="none", require_document=True))
    if result.get("success"):
        ctx.session.clear_session()
    return result


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

_ADD_PAGE_JSX = _PAGE_INFO_FN + """\
var doc = app.activeDocument;
var where = $POSITION$;
var ref = $REFERENCE$;
var page;
if (where === "AT_BEGINNING") {
    page = doc.pages.add(LocationOptions.AT_BEGINNING);
} else if ((where === "BEFORE" || where === "AFTER") && ref !== null) {
    if (ref >= doc.pages.length) { throw new Error("Reference page " + ref + " out of range"); }
    page = doc.pages.add(where === "BEFORE" ? LocationOptions.BEFORE : LocationOptions.AFTER, doc.pages[ref]);
} else {
    page = doc.pages.add(LocationOptions.AT_END);
}
__result = {page: __pageInfo(page), totalPages: doc.pages.length};
"""


def add_page(ctx: ToolContext, position: str = "AT_END", reference_page: int | None = None) -> dict:
    """Add a page and make it the session's active page."""
    position = position.upper()
    if position not in PAGE_POSITIONS:
        raise ValueError(f"position must be one of: {', '.join(PAGE_POSITIONS)}")
    if position in ("BEFORE", "AFTER") and reference_page is None:
        raise ValueError(f"position {position} requires reference_page")

    jsx = _fill(
        _ADD_PAGE_JSX,
        position=js_string(position),
        reference="null" if reference_page is None else js_number(int(reference_page)),
    )
    result = _unwrap_result(ctx.run_jsx(jsx, undo_name="Agent: Add page", require_document=True))
    if result.get("success"):
        ctx.session.set_active_page(result["page"])
        document = ctx.session.get_active_document()
        if document is not None:
            document["pages"] = result.get("totalPages")
            ctx.session.set_active_document(document)
    return result


_PAGE_INFO_JSX = _PAGE_INFO_FN + """\
var doc = app.activeDocument;
var index = $INDEX$;
if (index < 0 || index >= doc.pages.length) {
    throw new Error("Page index " + index + " out of range (document has " + doc.pages.length + " pages)");
}
var page = doc.pages[index];
__result = __pageInfo(page);
__result.textFrames = page.textFrames.length;
__result.rectangles = page.rectangles.length;
__result.ovals = page.ovals.length;
__result.polygons = page.polygons.length;
"""


def get_page_info(ctx: ToolContext, page_index: int = 0) -> dict:
    """Describe one page and make it the session's active page."""
    jsx = _fill(_PAGE_INFO_JSX, index=js_number(int(page_index)))
    result = _unwrap_result(ctx.run_jsx(jsx, undo_mode="none", require_document=True))
    if result.get("success"):
        ctx.session.set_active_page(
            {key: result.get(key) for key in ("name", "index", "width", "height", "side", "appliedMaster")}
        )
    return result


_NAVIGATE_JSX = _PAGE_INFO_FN + """\
var doc = app.activeDocument;
var index = $INDEX$;
if (index < 0 || index >= doc.pages.length) {
    throw new Error("Page index " + index + " out of range (document has " + doc.pages.length + " pages)");
}
var page = doc.pages[index];
if (app.layoutWindows.length > 0) {
    app.activeWindow.activePage = page;
}
__result = {page: __pageInfo(page)};
"""


def navigate_to_page(ctx: ToolContext, page_index: int) -> dict:
    """Show a page in the layout window and make it the session's active page."""
    jsx = _fill(_NAVIGATE_JSX, index=js_number(int(page_index)))
    result = _unwrap_result(ctx.run_jsx(jsx, undo_mode="none", require_document=True))
    if result.get("success"):
        ctx.session.set_active_page(result["page"])
    return result


# ---------------------------------------------------------------------------
# Page content
# ---------------------------------------------------------------------------

def _finish_creation(ctx: ToolContext, result: dict, geometry: dict, item: dict) -> dict:
    result = _unwrap_result(result)
    if result.get("success"):
        result["position"] = geometry["position"]
        if not geometry["validation"]["valid"]:
            result["adjusted"] = geometry["validation"].get("reason")
        ctx.session.set_last_created_item({**item, "position": geometry["position"]})
    return result


_TEXT_FRAME_JSX = """\
var doc = app.activeDocument;
var page = $PAGE$;
var item = page.textFrames.add();
item.geometricBounds = $BOUNDS$;
item.contents = $CONTENT$;
var text = item.texts[0];
var paraName = $PARA_STYLE$;
var charName = $CHAR_STYLE$;
var styled = false;
var messages = [];
if (paraName) {
    var ps = doc.paragraphStyles.itemByName(paraName);
    if (ps.isValid) { text.appliedParagraphStyle = ps; styled = true; }
    else { messages.push("Paragraph style not found: " + paraName); }
}
if (charName) {
    var cs = doc.characterStyles.itemByName(charName);
    if (cs.isValid) { text.appliedCharacterStyle = cs; styled = true; }
    else { messages.push("Character style not found: " + charName); }
}
if (!styled) {
    var font = app.fonts.itemByName($FONT$);
    if (font.isValid) { text.appliedFont = font; }
    else { messages.push("Font not found: " + $FONT$); }
    text.pointSize = $FONT_SIZE$;
    var color = doc.swatches.itemByName($COLOR$);
    if (color.isValid) { text.fillColor = color; }
    else { messages.push("Swatch not found: " + $COLOR$); }
    text.justification = $JUSTIFICATION$;
}
__result = {id: item.id, page: page.name, overset: item.overflows, messages: messages};
"""


def create_text_frame(ctx: ToolContext, content: str, x: float | None = None, y: float | None = None,
                      width: float | None = None, height: float | None = None, font_size: float = 12,
                      font_name: str = "Arial\tRegular", text_color: str = "Black",
                      alignment: str = "LEFT", paragraph_style: str | None = None,
                      character_style: str | None = None, page_index: int | None = None) -> dict:
    """Create a text frame; omitted geometry is filled in by the positioning engine."""
    alignment = alignment.upper()
    if alignment not in TEXT_ALIGNMENTS:
        raise ValueError(f"alignment must be one of: {', '.join(TEXT_ALIGNMENTS)}")

    geometry = resolve_geometry(ctx.session, x, y, width, height)
    jsx = _fill(
        _TEXT_FRAME_JSX,
        page=page_reference(page_index),
        bounds=geometric_bounds(geometry["position"]),
        content=js_string(content),
        para_style=js_string(paragraph_style),
        char_style=js_string(character_style),
        font=js_string(font_name),
        font_size=js_number(font_size),
        color=js_string(text_color),
        justification=TEXT_ALIGNMENTS[alignment],
    )
    result = ctx.run_jsx(jsx, undo_name="Agent: Create text frame", require_document=True)
    return _finish_creation(ctx, result, geometry, {
        "type": "textFrame",
        "content": content,
        "fontSize": font_size,
        "fontName": font_name,
        "paragraphStyle": paragraph_style,
        "characterStyle": character_style,
    })


_SHAPE_JSX = """\
var doc = app.activeDocument;
var page = $PAGE$;
$BEFORE$
var item = page.$COLLECTION$.add();
item.geometricBounds = $BOUNDS$;
$AFTER$
""" + _APPLY_SWATCHES + """\
__result = {id: item.id, page: page.name, messages: __warnings};
"""


def _create_shape(ctx: ToolContext, kind: str, collection: str, x, y, width, height,
                  fill_color, stroke_color, stroke_width, page_index, item: dict,
                  before: str = "", after: str = "") -> dict:
    geometry = resolve_geometry(ctx.session, x, y, width, height)
    jsx = _fill(
        _SHAPE_JSX,
        page=page_reference(page_index),
        collection=collection,
        bounds=geometric_bounds(geometry["position"]),
        before=before,
        after=after,
        fill=js_string(fill_color),
        stroke=js_string(stroke_color),
        stroke_width=js_number(stroke_width),
    )
    result = ctx.run_jsx(jsx, undo_name=f"Agent: Create {kind}", require_document=True)
    return _finish_creation(ctx, result, geometry, {
        "type": kind,
        "fillColor": fill_color,
        "strokeColor": stroke_color,
        "strokeWidth": stroke_width,
        **item,
    })


def create_rectangle(ctx: ToolContext, x: float | None = None, y: float | None = None,
                     width: float | None = None, height: float | None = None,
                     fill_color: str | None = None, stroke_color: str | None = None,
                     stroke_width: float = 1, corner_radius: float = 0,
                     page_index: int | None = None) -> dict:
    """Create a rectangle, optionally with rounded corners."""
    corners = ""
    if corner_radius > 0:
        corners = (
            "item.topLeftCornerOption = item.topRightCornerOption = "
            "item.bottomLeftCornerOption = item.bottomRightCornerOption = CornerOptions.ROUNDED_CORNER;\n"
            "item.topLeftCornerRadius = item.topRightCornerRadius = "
            f"item.bottomLeftCornerRadius = item.bottomRightCornerRadius = {js_number(corner_radius)};"
        )
    return _create_shape(ctx, "rectangle", "rectangles", x, y, width, height,
                         fill_color, stroke_color, stroke_width, page_index,
                         {"cornerRadius": corner_radius}, after=corners)


def create_ellipse(ctx: ToolContext, x: float | None = None, y: float | None = None,
                   width: float | None = None, height: float | None = None,
                   fill_color: str | None = None, stroke_color: str | None = None,
                   stroke_width: float = 1, page_index: int | None = None) -> dict:
    return _create_shape(ctx, "ellipse", "ovals", x, y, width, height,
                         fill_color, stroke_color, stroke_width, page_index, {})


def create_polygon(ctx: ToolContext, x: float | None = None, y: float | None = None,
                   width: float | None = None, height: float | None = None, sides: int = 6,
                   fill_color: str | None = None, stroke_color: str | None = None,
                   stroke_width: float = 1, page_index: int | None = None) -> dict:
    if sides < 3:
        raise ValueError("A polygon needs at least 3 sides")
    # polygons.add() takes its side count from the polygon preferences
    preferences = (
        f"app.polygonPreferences.numberOfSides = {js_number(int(sides))};\n"
        "app.polygonPreferences.insetPercentage = 0;"
    )
    return _create_shape(ctx, "polygon", "polygons", x, y, width, height,
                         fill_color, stroke_color, stroke_width, page_index,
                         {"sides": int(sides)}, before=preferences)


_PLACE_IMAGE_JSX = """\
var doc = app.activeDocument;
var page = $PAGE$;
var file = File($PATH$);
if (!file.exists) { throw new Error("Image file not found: " + $PATH$); }
var item = page.rectangles.add();
item.geometricBounds = $BOUNDS$;
try {
    item.place(file);
} catch (placeErr) {
    item.remove();
    throw placeErr;
}
var messages = [];
var styleName = $OBJECT_STYLE$;
if (styleName) {
    var os = doc.objectStyles.itemByName(styleName);
    if (os.isValid) { item.appliedObjectStyle = os; }
    else { messages.push("Object style not found: " + styleName); }
}
if (item.graphics.length > 0) {
    var graphic = item.graphics[0];
    if ($SCALE$ !== 100) {
        graphic.horizontalScale = $SCALE$;
        graphic.verticalScale = $SCALE$;
    } else {
        item.fit($FIT$);
    }
}
__result = {id: item.id, page: page.name, file: file.fsName, messages: messages};
"""


def place_image(ctx: ToolContext, file_path: str, x: float | None = None, y: float | None = None,
                width: float | None = None, height: float | None = None,
                fit_mode: str = "PROPORTIONALLY", scale: float = 100,
                object_style: str | None = None, page_index: int | None = None) -> dict:
    """Place an image file into a new frame."""
    if not file_path or not file_path.strip():
        raise ValueError("file_path must not be empty")
    fit_mode = fit_mode.upper()
    if fit_mode not in FIT_MODES:
        raise ValueError(f"fit_mode must be one of: {', '.join(FIT_MODES)}")

    geometry = resolve_geometry(ctx.session, x, y, width, height)
    jsx = _fill(
        _PLACE_IMAGE_JSX,
        page=page_reference(page_index),
        path=js_string(file_path),
        bounds=geometric_bounds(geometry["position"]),
        object_style=js_string(object_style),
        scale=js_number(scale),
        fit=FIT_MODES[fit_mode],
    )
    result = ctx.run_jsx(jsx, undo_name="Agent: Place image", require_document=True)
    return _finish_creation(ctx, result, geometry, {
        "type": "image",
        "filePath": file_path,
        "fitMode": fit_mode,
        "scale": scale,
        "objectStyle": object_style,
    })


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

_EXPORT_PDF_JSX = """\
var doc = app.activeDocument;
var file = File($PATH$);
var presetName = $PRESET$;
var preset = app.pdfExportPresets.itemByName(presetName);
var usedPreset = null;
if (preset.isValid) {
    doc.exportFile(ExportFormat.PDF_TYPE, file, false, preset);
    usedPreset = preset.name;
} else {
    doc.exportFile(ExportFormat.PDF_TYPE, file, false);
}
__result = {file: file.fsName, preset: usedPreset};
"""


def export_pdf(ctx: ToolContext, file_path: str, preset: str = "[High Quality Print]") -> dict:
    """Export the active document to PDF (falls back to current settings if the preset is missing)."""
    if not file_path or not file_path.strip():
        raise ValueError("file_path must not be empty")
    jsx = _fill(_EXPORT_PDF_JSX, path=js_string(file_path), preset=js_string(preset))
    return _unwrap_result(ctx.run_jsx(jsx, undo_mode="none", require_document=True))


# ---------------------------------------------------------------------------
# Utility / session
# ---------------------------------------------------------------------------

def execute_indesign_code(ctx: ToolContext, code: str, undo_name: str = "Agent Script") -> dict:
    """Run caller-supplied JSX (assign the return value to ``__result``)."""
    if not code or not code.strip():
        raise ValueError("code must not be empty")
    return ctx.run_jsx(code, undo_name=undo_name)


def get_session_info(ctx: ToolContext) -> dict:
    return _ok(session=ctx.session.get_session_summary())


def clear_session(ctx: ToolContext, preserve: list[str] | None = None) -> dict:
    preserve = list(preserve or [])
    ctx.session.clear_session(preserve)
    return _ok(message="Session data cleared", preserved=preserve, available_fields=list(SLOTS))


def calculate_positioning(ctx: ToolContext, x: float | None = None, y: float | None = None,
                          width: float | None = None, height: float | None = None,
                          margin: float | None = None) -> dict:
    return _ok(position=ctx.session.get_calculated_positioning(x=x, y=y, width=width, height=height, margin=margin))


def validate_positioning(ctx: ToolContext, x: float, y: float, width: float, height: float) -> dict:
    return _ok(validation=ctx.session.validate_positioning(x, y, width, height))


def find_optimal_position(ctx: ToolContext, width: float, height: float, align: str = "top-left",
                          margin: float | None = None) -> dict:
    position = ctx.session.find_optimal_position(width, height, align=align, margin=margin)
    if position is None:
        return {"success": False, "error": "No page dimensions known; open or inspect a document first."}
    if align not in ANCHORS:
        position["note"] = f"Unknown alignment '{align}', used top-left"
    return _ok(position=position)


def get_available_space(ctx: ToolContext, x: float, y: float) -> dict:
    space = ctx.session.get_available_space(x, y)
    if space is None:
        return {"success": False, "error": "No page dimensions known; open or inspect a document first."}
    return _ok(space=space)


def export_session(ctx: ToolContext) -> dict:
    return _ok(snapshot=ctx.session.export_session())


def import_session(ctx: ToolContext, snapshot: str) -> dict:
    if not ctx.session.import_session(snapshot):
        return {"success": False, "error": "Snapshot rejected: expected an export_session() JSON document."}
    return _ok(session=ctx.session.get_session_summary())
