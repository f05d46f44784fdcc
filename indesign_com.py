"""
InDesign COM Bridge.

Runs generated JSX inside a running InDesign instance via Windows COM/OLE:
- attaches to a running instance (GetActiveObject, Dispatch fallback)
- wraps every snippet in try/catch and returns a structured result dict
- suppresses modal dialogs while the snippet runs
- forces millimetre measurement units for the duration of the script, so the
  geometry computed by the positioning engine is interpreted as mm
- groups each call into one labelled undo step (optional)

Snippet convention: assign the value to return to ``__result``.

Result shape:
    {"success": True, "result": <value>}
    {"success": False, "error": str, "name": str, "line": int}
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

import pywintypes
import win32com.client

log = logging.getLogger("indesign_com")

SCRIPT_LANGUAGE_JAVASCRIPT = 1246973031

# UndoModes enum values
UNDO_MODES = {
    "entire": 1699963733,   # UndoModes.ENTIRE_SCRIPT
    "auto": 1699967573,     # UndoModes.SCRIPT_REQUEST
}

PROGIDS = [
    "InDesign.Application.2026",
    "InDesign.Application.2025",
    "InDesign.Application.2024",
    "InDesign.Application",
]

DEFAULT_TIMEOUT = int(os.environ.get("INDESIGN_EXEC_TIMEOUT", "30"))

# HRESULTs meaning the InDesign process went away
_CONNECTION_LOST = {
    -2147417848,  # RPC_E_DISCONNECTED
    -2147023174,  # RPC_S_SERVER_UNAVAILABLE
    -2147220992,  # CO_E_OBJNOTCONNECTED
    -2147417851,  # RPC_E_SERVERFAULT
}

_SERIALIZER_PATH = Path(__file__).parent / "json_polyfill.jsx"
_serializer_code: str | None = None


def _serializer() -> str:
    """ExtendScript source defining ``__safeStringify`` (read once)."""
    global _serializer_code
    if _serializer_code is None:
        _serializer_code = _SERIALIZER_PATH.read_text(encoding="utf-8")
    return _serializer_code


def _progids() -> list[str]:
    forced = os.environ.get("INDESIGN_PROGID")
    return [forced] if forced else PROGIDS


def wrap_script(code: str, require_document: bool = False) -> str:
    """Wrap a snippet in the safety IIFE.

    Dialog level and measurement unit are saved, overridden and restored on
    both the success and the error path.
    """
    guard = ""
    if require_document:
        guard = "if (app.documents.length === 0) { throw new Error('No document open in InDesign.'); }\n"

    return (
        _serializer() + "\n"
        "(function() {\n"
        "var __result;\n"
        "var __prefs = app.scriptPreferences;\n"
        "var __uilevel = __prefs.userInteractionLevel;\n"
        "var __unit = __prefs.measurementUnit;\n"
        "function __restore() {\n"
        "    try { __prefs.userInteractionLevel = __uilevel; } catch(x) {}\n"
        "    try { __prefs.measurementUnit = __unit; } catch(x) {}\n"
        "}\n"
        "__prefs.userInteractionLevel = UserInteractionLevels.neverInteract;\n"
        "__prefs.measurementUnit = MeasurementUnits.MILLIMETERS;\n"
        "try {\n"
        + guard
        + code + "\n"
        "} catch(e) {\n"
        "    __restore();\n"
        "    return __safeStringify({\n"
        "        success: false,\n"
        "        error: e.message || String(e),\n"
        "        name: e.name || 'Error',\n"
        "        line: typeof e.line === 'number' ? e.line : -1\n"
        "    });\n"
        "}\n"
        "__restore();\n"
        "try {\n"
        "    return __safeStringify({success: true, result: (typeof __result === 'undefined') ? null : __result});\n"
        "} catch(jsonErr) {\n"
        "    return __safeStringify({success: true, result: String(__result)});\n"
        "}\n"
        "})();\n"
    )


class InDesignBridge:
    """Cached COM connection plus JSX execution."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout
        self._app = None
        self._lock = threading.Lock()

    # -- connection --------------------------------------------------------

    def connect(self) -> Any:
        """Return the COM Application, attaching or reconnecting as needed.

        Raises ConnectionError if InDesign is not reachable.
        """
        with self._lock:
            if self._app is not None:
                try:
                    _ = self._app.Name
                    return self._app
                except Exception:
                    log.info("Cached InDesign connection is stale, reconnecting")
                    self._app = None

            last_error = None
            for prog_id in _progids():
                try:
                    self._app = win32com.client.GetActiveObject(prog_id)
                    log.debug("Attached to running %s", prog_id)
                    return self._app
                except pywintypes.com_error:
                    pass

                try:
                    app = win32com.client.Dispatch(prog_id)
                    _ = app.Name
                    self._app = app
                    log.debug("Dispatched %s", prog_id)
                    return self._app
                except pywintypes.com_error as e:
                    last_error = e

            raise ConnectionError(
                f"Could not connect to InDesign. Is it running? Last error: {last_error}"
            )

    def disconnect(self) -> None:
        with self._lock:
            self._app = None

    def is_connected(self) -> bool:
        if self._app is None:
            return False
        try:
            _ = self._app.Name
            return True
        except Exception:
            self._app = None
            return False

    # -- execution ---------------------------------------------------------

    def run(self, code: str, undo_name: str = "Agent Script", undo_mode: str = "entire",
            require_document: bool = False) -> dict:
        """Execute a JSX snippet and return the parsed result dict.

        ``undo_mode``: "entire" (one undo step), "auto" (InDesign decides) or
        "none" (no undo grouping, for read-only snippets).
        """
        app = self.connect()
        script = wrap_script(code, require_document=require_document)

        t0 = time.monotonic()
        try:
            if undo_mode in UNDO_MODES:
                raw = app.DoScript(script, SCRIPT_LANGUAGE_JAVASCRIPT, [], UNDO_MODES[undo_mode], undo_name)
            else:
                raw = app.DoScript(script, SCRIPT_LANGUAGE_JAVASCRIPT)
        except pywintypes.com_error as e:
            return self._com_error(e)

        elapsed = time.monotonic() - t0
        if elapsed > self.timeout:
            # DoScript cannot be interrupted; report only.
            log.warning("DoScript took %.1fs (timeout hint: %ds)", elapsed, self.timeout)
        result = parse_result(raw)
        result["_elapsed_s"] = round(elapsed, 2)
        return result

    def _com_error(self, e: "pywintypes.com_error") -> dict:
        """Turn a COM exception into a result dict; drop a dead connection."""
        hresult = e.args[0] if e.args else 0
        desc = ""
        if len(e.args) > 2 and e.args[2] and len(e.args[2]) > 2 and e.args[2][2]:
            desc = str(e.args[2][2])

        if hresult in _CONNECTION_LOST:
            log.warning("Connection to InDesign lost (HRESULT %s). Will reconnect on next call.",
                        hex(hresult & 0xFFFFFFFF))
            self._app = None
        else:
            log.error("DoScript failed: %s", desc or e)

        return {
            "success": False,
            "error": desc or str(e),
            "name": "COMError",
            "line": -1,
            "source": "COM/DoScript",
        }


def parse_result(raw) -> dict:
    """Parse the wrapper's JSON string into a dict."""
    if raw is None:
        return {"success": True, "result": None}
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {"success": True, "result": raw}
        if isinstance(parsed, dict) and "success" in parsed:
            return parsed
        return {"success": True, "result": parsed}
    return {"success": True, "result": raw}


# ---------------------------------------------------------------------------
# Module-level default bridge
# ---------------------------------------------------------------------------

_bridge = InDesignBridge()


def connect() -> Any:
    return _bridge.connect()


def disconnect() -> None:
    _bridge.disconnect()


def is_connected() -> bool:
    return _bridge.is_connected()


def run_jsx(code: str, undo_name: str = "Agent Script", undo_mode: str = "entire",
            require_document: bool = False) -> dict:
    """Execute JSX on the default bridge.  See ``InDesignBridge.run``."""
    return _bridge.run(code, undo_name=undo_name, undo_mode=undo_mode, require_document=require_document)
