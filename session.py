"""
Session State Store.

Process-lifetime record of the current layout context:
  - page dimensions of the active document (millimetres)
  - active document / active page descriptors (free-form mappings)
  - the last page item created through the tools
  - the positioning configuration

Every mutator validates before committing and emits exactly one
``SessionEvent`` afterwards.  Every getter returns a deep copy, so nothing a
caller holds can change store-owned state.

The store is not a module global: the server constructs one instance and
passes it to the handlers.  Calls are serialised by a re-entrant lock; event
listeners run while it is held, so events arrive in call order.
"""

import copy
import json
import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import geometry
import positioning
from events import EventEmitter, EventType, SessionEvent

log = logging.getLogger("session")

SESSION_FORMAT_VERSION = "2.0"

SLOTS = ("pageDimensions", "activeDocument", "activePage", "lastCreatedItem")

_CONFIG_KEYS = {
    "defaultMargin": "default_margin",
    "minMargin": "min_margin",
    "minDimension": "min_dimension",
    "maxDimension": "max_dimension",
    "precision": "precision",
}

_CONFIG_ENV = {
    "defaultMargin": "INDESIGN_DEFAULT_MARGIN",
    "minMargin": "INDESIGN_MIN_MARGIN",
    "minDimension": "INDESIGN_MIN_DIMENSION",
    "maxDimension": "INDESIGN_MAX_DIMENSION",
    "precision": "INDESIGN_PRECISION",
}


def _utc_now_iso() -> str:
    """Return current UTC timestamp as ISO8601."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionConfig:
    """Positioning configuration, fixed for the lifetime of a store.

    ``extra`` keeps unrecognised option keys so they survive an
    export/import round trip; they have no effect on positioning.
    """

    default_margin: float = 20
    min_margin: float = 5
    min_dimension: float = 10
    max_dimension: float = 10000
    precision: int = 2
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, options: Mapping | None) -> "SessionConfig":
        """Build from a flat camelCase options mapping (``defaultMargin`` ...)."""
        if options is None:
            return cls()
        if not isinstance(options, Mapping):
            raise TypeError("Session config must be a mapping")

        values = {}
        extra = {}
        for key, value in options.items():
            attr = _CONFIG_KEYS.get(key)
            if attr is None:
                extra[key] = value
                continue
            if value is None:
                continue
            if not geometry.is_number(value):
                raise TypeError(f"Config option '{key}' must be a number, got {value!r}")
            if attr == "precision":
                if int(value) != value or value < 0:
                    raise ValueError(f"Config option 'precision' must be a non-negative integer, got {value!r}")
                value = int(value)
            values[attr] = value
        return cls(extra=extra, **values)

    def to_dict(self) -> dict:
        """Flat camelCase options, unknown keys included."""
        data = copy.deepcopy(self.extra)
        for key, attr in _CONFIG_KEYS.items():
            data[key] = getattr(self, attr)
        return data


def config_from_env() -> SessionConfig:
    """Read the session config from ``INDESIGN_*`` environment variables."""
    options = {}
    for key, env_name in _CONFIG_ENV.items():
        raw = os.environ.get(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            options[key] = int(raw) if key == "precision" else float(raw)
        except ValueError:
            raise ValueError(f"{env_name} must be numeric, got {raw!r}") from None
    return SessionConfig.from_mapping(options)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def _empty_data() -> dict:
    return {
        "pageDimensions": None,
        "activeDocument": None,
        "activePage": None,
        "lastCreatedItem": None,
        "createdAt": _utc_now_iso(),
        "lastModified": None,
    }


def _check_dimensions(dimensions, max_dimension: float) -> None:
    if not isinstance(dimensions, Mapping):
        raise TypeError("Dimensions must be a mapping with width and height")

    width = dimensions.get("width")
    height = dimensions.get("height")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (width, height)):
        raise TypeError("Width and height must be numbers")
    if not (geometry.is_number(width) and geometry.is_number(height)):
        raise ValueError("Width and height must be finite")
    if width <= 0 or height <= 0:
        raise ValueError("Width and height must be positive")
    if width > max_dimension or height > max_dimension:
        raise ValueError(f"Dimensions exceed maximum allowed size of {max_dimension}mm")


def _check_descriptor(info, label: str) -> None:
    if info and not isinstance(info, Mapping):
        raise TypeError(f"{label} info must be a mapping")


def _descriptor(info) -> dict | None:
    return copy.deepcopy(dict(info)) if isinstance(info, Mapping) else None


class SessionManager:
    """Observable, copy-safe store for the current layout context."""

    def __init__(self, config: SessionConfig | Mapping | None = None):
        if not isinstance(config, SessionConfig):
            config = SessionConfig.from_mapping(config)
        self._config = config
        self._data = _empty_data()
        self._events = EventEmitter()
        self._lock = threading.RLock()

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener, event_type: EventType | None = None):
        """Register a listener; returns a callable that removes it."""
        return self._events.subscribe(listener, event_type)

    def unsubscribe(self, listener, event_type: EventType | None = None) -> bool:
        return self._events.unsubscribe(listener, event_type)

    def _emit(self, event_type: EventType, old=None, new=None, **detail) -> None:
        self._events.emit(SessionEvent(event_type, old, new, detail))

    def _touch(self) -> None:
        self._data["lastModified"] = _utc_now_iso()

    @property
    def config(self) -> SessionConfig:
        return self._config

    # -- page dimensions ---------------------------------------------------

    def set_page_dimensions(self, dimensions: Mapping) -> None:
        """Replace the page size.  Raises TypeError/ValueError on bad input."""
        with self._lock:
            _check_dimensions(dimensions, self._config.max_dimension)
            old = self._data["pageDimensions"]
            new = {"width": dimensions["width"], "height": dimensions["height"]}
            self._data["pageDimensions"] = new
            self._touch()
            self._emit(EventType.DIMENSIONS_CHANGED, copy.copy(old), dict(new))

    def get_page_dimensions(self) -> dict | None:
        with self._lock:
            return copy.deepcopy(self._data["pageDimensions"])

    def validate_page_dimensions(self, dimensions: Mapping) -> None:
        """Raise TypeError/ValueError if ``set_page_dimensions`` would reject ``dimensions``."""
        _check_dimensions(dimensions, self._config.max_dimension)

    # -- descriptors -------------------------------------------------------

    def _set_descriptor(self, slot: str, info, label: str, event_type: EventType) -> None:
        with self._lock:
            _check_descriptor(info, label)
            old = self._data[slot]
            self._data[slot] = _descriptor(info)
            self._touch()
            self._emit(event_type, copy.deepcopy(old), copy.deepcopy(self._data[slot]))

    def set_active_document(self, info: Mapping | None) -> None:
        self._set_descriptor("activeDocument", info, "Document", EventType.DOCUMENT_CHANGED)

    def get_active_document(self) -> dict | None:
        with self._lock:
            return copy.deepcopy(self._data["activeDocument"])

    def set_active_page(self, info: Mapping | None) -> None:
        self._set_descriptor("activePage", info, "Page", EventType.PAGE_CHANGED)

    def get_active_page(self) -> dict | None:
        with self._lock:
            return copy.deepcopy(self._data["activePage"])

    def set_last_created_item(self, info: Mapping | None) -> None:
        """Record the last created page item, stamped with ``createdAt``."""
        with self._lock:
            old = self._data["lastCreatedItem"]
            item = _descriptor(info)
            if item is not None:
                item["createdAt"] = _utc_now_iso()
            self._data["lastCreatedItem"] = item
            self._touch()
            self._emit(EventType.LAST_CREATED_ITEM_CHANGED, copy.deepcopy(old), copy.deepcopy(item))

    def get_last_created_item(self) -> dict | None:
        with self._lock:
            return copy.deepcopy(self._data["lastCreatedItem"])

    # -- geometry ----------------------------------------------------------

    def get_page_bounds(self) -> dict | None:
        """Safe area / absolute bounds / centre of the current page."""
        with self._lock:
            dims = self._data["pageDimensions"]
            if not dims:
                return None
            return geometry.compute_bounds(dims, self._config.default_margin, self._config.min_margin)

    def get_calculated_positioning(self, x=None, y=None, width=None, height=None, margin=None) -> dict:
        with self._lock:
            return positioning.calculate_positioning(
                self._data["pageDimensions"], self._config,
                x=x, y=y, width=width, height=height, margin=margin,
            )

    def validate_positioning(self, x, y, width, height) -> dict:
        with self._lock:
            return geometry.validate_positioning(
                x, y, width, height, self._data["pageDimensions"],
                self._config.min_margin, self._config.min_dimension,
            )

    def find_optimal_position(self, width, height, align: str = "top-left", margin=None) -> dict | None:
        with self._lock:
            return positioning.find_optimal_position(
                self._data["pageDimensions"], self._config, width, height, align=align, margin=margin
            )

    def get_available_space(self, x, y) -> dict | None:
        with self._lock:
            return positioning.available_space(self._data["pageDimensions"], self._config, x, y)

    # -- lifecycle ---------------------------------------------------------

    def clear_session(self, preserve=()) -> None:
        """Reset every slot except those named in ``preserve``."""
        preserve = list(preserve or ())
        unknown = [name for name in preserve if name not in SLOTS]
        if unknown:
            raise ValueError(f"Cannot preserve unknown session fields: {', '.join(unknown)} (known: {', '.join(SLOTS)})")

        with self._lock:
            old = copy.deepcopy(self._data)
            data = _empty_data()
            for slot in preserve:
                data[slot] = self._data[slot]
            self._data = data
            self._emit(EventType.SESSION_CLEARED, old, copy.deepcopy(data), preserved=preserve)

    def get_session_summary(self) -> dict:
        with self._lock:
            data = copy.deepcopy(self._data)
            return {
                "has_page_dimensions": data["pageDimensions"] is not None,
                "has_active_document": data["activeDocument"] is not None,
                "has_active_page": data["activePage"] is not None,
                "has_last_created_item": data["lastCreatedItem"] is not None,
                "page_dimensions": data["pageDimensions"],
                "active_document": data["activeDocument"],
                "active_page": data["activePage"],
                "last_created_item": data["lastCreatedItem"],
                "bounds": self.get_page_bounds(),
                "timestamps": {
                    "created_at": data["createdAt"],
                    "last_modified": data["lastModified"],
                },
                "config": self._config.to_dict(),
            }

    # -- persistence -------------------------------------------------------

    def export_session(self) -> str:
        """JSON snapshot: ``{sessionData, config, version}``."""
        with self._lock:
            return json.dumps(
                {
                    "sessionData": self._data,
                    "config": self._config.to_dict(),
                    "version": SESSION_FORMAT_VERSION,
                },
                ensure_ascii=False,
                default=str,
            )

    def import_session(self, session_string: str) -> bool:
        """Restore a snapshot from ``export_session``.

        Best effort: a malformed snapshot is logged and rejected with False,
        leaving the current state untouched.
        """
        try:
            imported = json.loads(session_string)
        except (TypeError, ValueError) as e:
            log.warning("Failed to import session: %s", e)
            return False

        if not isinstance(imported, dict) or not imported.get("version") \
                or not isinstance(imported.get("sessionData"), dict):
            log.warning("Failed to import session: expected {version, sessionData} snapshot")
            return False

        session_data = imported["sessionData"]
        config_data = imported.get("config") or {}

        with self._lock:
            try:
                if not isinstance(config_data, dict):
                    raise TypeError("config must be an object")
                config = SessionConfig.from_mapping({**self._config.to_dict(), **config_data})
                if session_data.get("pageDimensions") is not None:
                    _check_dimensions(session_data["pageDimensions"], config.max_dimension)
                for slot, label in (("activeDocument", "Document"), ("activePage", "Page"),
                                    ("lastCreatedItem", "Item")):
                    value = session_data.get(slot)
                    if value is not None and not isinstance(value, Mapping):
                        raise TypeError(f"{label} info must be a mapping")
            except (TypeError, ValueError) as e:
                log.warning("Failed to import session: %s", e)
                return False

            old = copy.deepcopy(self._data)
            data = {slot: copy.deepcopy(session_data.get(slot)) for slot in SLOTS}
            data["createdAt"] = session_data.get("createdAt") or _utc_now_iso()
            data["lastModified"] = session_data.get("lastModified")
            self._config = config
            self._data = data
            self._emit(EventType.SESSION_IMPORTED, old, copy.deepcopy(data), version=imported["version"])
            return True


# ---------------------------------------------------------------------------
# Snapshot files
# ---------------------------------------------------------------------------

def load_snapshot(session: SessionManager, path: str | Path) -> bool:
    """Import a snapshot file into ``session``.  Missing file -> False."""
    path = Path(path)
    if not path.exists():
        log.info("No session snapshot at %s", path)
        return False
    return session.import_session(path.read_text(encoding="utf-8"))


def save_snapshot(session: SessionManager, path: str | Path) -> Path:
    """Write ``session.export_session()`` to ``path`` (parents created)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(session.export_session(), encoding="utf-8")
    tmp.replace(path)
    return path


def autosave_listener(session: SessionManager, path: str | Path):
    """Listener that rewrites the snapshot file after every transition."""

    def _save(event: SessionEvent) -> None:
        save_snapshot(session, path)
        log.debug("Session snapshot saved to %s after %s", path, event.type.value)

    return _save
