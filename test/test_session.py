"""Tests for the session state store."""

import json
import logging
import math

import pytest

from events import EventType
from session import (
    SESSION_FORMAT_VERSION,
    SLOTS,
    SessionConfig,
    SessionManager,
    autosave_listener,
    config_from_env,
    load_snapshot,
    save_snapshot,
)

A4 = {"width": 210, "height": 297}


class TestSessionConfig:
    """Tests for SessionConfig construction."""

    def test_defaults(self):
        config = SessionConfig()
        assert config.to_dict() == {
            "defaultMargin": 20,
            "minMargin": 5,
            "minDimension": 10,
            "maxDimension": 10000,
            "precision": 2,
        }

    def test_from_mapping(self):
        config = SessionConfig.from_mapping({"defaultMargin": 12, "precision": 1})
        assert config.default_margin == 12
        assert config.precision == 1
        assert config.min_margin == 5

    def test_unknown_keys_are_kept(self):
        config = SessionConfig.from_mapping({"bleed": 3})
        assert config.extra == {"bleed": 3}
        assert config.to_dict()["bleed"] == 3

    def test_non_numeric_option(self):
        with pytest.raises(TypeError):
            SessionConfig.from_mapping({"minMargin": "5"})

    @pytest.mark.parametrize("precision", [1.5, -1])
    def test_bad_precision(self, precision):
        with pytest.raises(ValueError):
            SessionConfig.from_mapping({"precision": precision})

    def test_manager_accepts_mapping(self):
        session = SessionManager({"defaultMargin": 15})
        assert session.config.default_margin == 15

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("INDESIGN_DEFAULT_MARGIN", "12.5")
        monkeypatch.setenv("INDESIGN_PRECISION", "3")
        config = config_from_env()
        assert config.default_margin == 12.5
        assert config.precision == 3

    def test_from_env_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("INDESIGN_MIN_MARGIN", "lots")
        with pytest.raises(ValueError, match="INDESIGN_MIN_MARGIN"):
            config_from_env()


class TestPageDimensions:
    """Tests for set_page_dimensions / get_page_dimensions."""

    def test_set_and_get(self, session):
        session.set_page_dimensions(A4)
        assert session.get_page_dimensions() == A4

    def test_only_width_and_height_are_stored(self, session):
        session.set_page_dimensions({"width": 100, "height": 200, "unit": "mm"})
        assert session.get_page_dimensions() == {"width": 100, "height": 200}

    @pytest.mark.parametrize("dims", [None, [210, 297], "A4", {"width": "210", "height": 297}, {"width": 210}])
    def test_type_errors(self, session, dims):
        with pytest.raises(TypeError):
            session.set_page_dimensions(dims)

    @pytest.mark.parametrize("dims", [
        {"width": 0, "height": 297},
        {"width": 210, "height": -1},
        {"width": math.inf, "height": 297},
        {"width": math.nan, "height": 297},
        {"width": 10001, "height": 297},
    ])
    def test_value_errors(self, session, dims):
        with pytest.raises(ValueError):
            session.set_page_dimensions(dims)

    def test_rejected_value_keeps_old_state(self, session):
        session.set_page_dimensions(A4)
        with pytest.raises(ValueError):
            session.set_page_dimensions({"width": 0, "height": 0})
        assert session.get_page_dimensions() == A4

    def test_max_dimension_from_config(self):
        session = SessionManager({"maxDimension": 500})
        with pytest.raises(ValueError, match="500"):
            session.set_page_dimensions({"width": 600, "height": 100})

    def test_validate_page_dimensions_does_not_store(self, session):
        session.validate_page_dimensions(A4)
        assert session.get_page_dimensions() is None
        with pytest.raises(ValueError):
            session.validate_page_dimensions({"width": -1, "height": 10})


class TestDescriptors:
    """Tests for document, page and last-item slots."""

    def test_document(self, session):
        session.set_active_document({"name": "Brochure.indd", "pages": 4})
        assert session.get_active_document() == {"name": "Brochure.indd", "pages": 4}

    def test_page(self, session):
        session.set_active_page({"name": "2", "index": 1})
        assert session.get_active_page() == {"name": "2", "index": 1}

    def test_none_clears_slot(self, session):
        session.set_active_document({"name": "a"})
        session.set_active_document(None)
        assert session.get_active_document() is None

    @pytest.mark.parametrize("value", ["doc", 42, ["a"]])
    def test_non_mapping_rejected(self, session, value):
        with pytest.raises(TypeError):
            session.set_active_document(value)
        with pytest.raises(TypeError):
            session.set_active_page(value)

    def test_last_created_item_is_stamped(self, session):
        session.set_last_created_item({"type": "rectangle"})
        item = session.get_last_created_item()
        assert item["type"] == "rectangle"
        assert item["createdAt"].endswith("+00:00")

    def test_getters_return_copies(self, session):
        session.set_active_document({"name": "a", "meta": {"tags": ["x"]}})
        copy_ = session.get_active_document()
        copy_["name"] = "b"
        copy_["meta"]["tags"].append("y")
        assert session.get_active_document() == {"name": "a", "meta": {"tags": ["x"]}}

    def test_setters_copy_their_input(self, session):
        info = {"name": "a", "meta": {"tags": ["x"]}}
        session.set_active_page(info)
        info["meta"]["tags"].append("y")
        assert session.get_active_page()["meta"]["tags"] == ["x"]

    def test_page_dimensions_copy(self, session):
        session.set_page_dimensions(A4)
        session.get_page_dimensions()["width"] = 1
        assert session.get_page_dimensions() == A4


class TestGeometry:
    """Tests for the session's geometry helpers."""

    def test_bounds_without_page(self, session):
        assert session.get_page_bounds() is None

    def test_bounds(self, a4_session):
        bounds = a4_session.get_page_bounds()
        assert bounds["safe_area"] == {"x": 20, "y": 20, "width": 170, "height": 257}

    def test_calculated_positioning_uses_page(self, a4_session):
        result = a4_session.get_calculated_positioning(width=190)
        assert result["x"] == 15
        assert result["width"] == 190

    def test_calculated_positioning_fallback(self, session):
        result = session.get_calculated_positioning()
        assert (result["x"], result["y"], result["width"], result["height"]) == (10, 10, 100, 50)

    def test_validate(self, a4_session):
        assert a4_session.validate_positioning(150, 20, 100, 50)["suggested"] == {"width": 55}

    def test_optimal_position(self, a4_session):
        result = a4_session.find_optimal_position(50, 30, align="bottom-right")
        assert (result["x"], result["y"]) == (140, 247)

    def test_available_space(self, a4_session):
        assert a4_session.get_available_space(50, 100)["width"] == 155


class TestClearSession:
    """Tests for clear_session."""

    def _fill(self, session):
        session.set_page_dimensions(A4)
        session.set_active_document({"name": "a"})
        session.set_active_page({"name": "1"})
        session.set_last_created_item({"type": "ellipse"})

    def test_clear_everything(self, session):
        self._fill(session)
        session.clear_session()
        summary = session.get_session_summary()
        assert not summary["has_page_dimensions"]
        assert not summary["has_active_document"]
        assert not summary["has_active_page"]
        assert not summary["has_last_created_item"]
        assert summary["timestamps"]["last_modified"] is None

    def test_preserve(self, session):
        self._fill(session)
        session.clear_session(["pageDimensions", "activeDocument"])
        assert session.get_page_dimensions() == A4
        assert session.get_active_document() == {"name": "a"}
        assert session.get_active_page() is None
        assert session.get_last_created_item() is None

    def test_unknown_preserve_name(self, session):
        self._fill(session)
        with pytest.raises(ValueError, match="bogus"):
            session.clear_session(["bogus"])
        assert session.get_active_page() == {"name": "1"}

    def test_config_survives(self):
        session = SessionManager({"defaultMargin": 7})
        session.clear_session()
        assert session.config.default_margin == 7


class TestSummary:
    """Tests for get_session_summary."""

    def test_empty(self, session):
        summary = session.get_session_summary()
        assert summary["has_page_dimensions"] is False
        assert summary["bounds"] is None
        assert summary["timestamps"]["created_at"]
        assert summary["config"]["defaultMargin"] == 20

    def test_filled(self, a4_session):
        a4_session.set_active_document({"name": "a"})
        summary = a4_session.get_session_summary()
        assert summary["has_page_dimensions"] is True
        assert summary["page_dimensions"] == A4
        assert summary["active_document"] == {"name": "a"}
        assert summary["bounds"]["center"] == {"x": 105, "y": 148.5}
        assert summary["timestamps"]["last_modified"] is not None

    def test_summary_is_a_copy(self, a4_session):
        a4_session.get_session_summary()["page_dimensions"]["width"] = 1
        assert a4_session.get_page_dimensions() == A4


class TestExportImport:
    """Tests for export_session / import_session."""

    def test_export_shape(self, a4_session):
        data = json.loads(a4_session.export_session())
        assert data["version"] == SESSION_FORMAT_VERSION
        assert data["sessionData"]["pageDimensions"] == A4
        assert data["config"]["minMargin"] == 5

    def test_round_trip(self, a4_session):
        a4_session.set_active_document({"name": "a", "pages": 2})
        a4_session.set_active_page({"name": "1", "index": 0})
        a4_session.set_last_created_item({"type": "textFrame", "position": {"x": 20}})

        restored = SessionManager()
        assert restored.import_session(a4_session.export_session()) is True
        assert restored.get_session_summary() == a4_session.get_session_summary()

    def test_import_merges_config(self):
        source = SessionManager({"defaultMargin": 15, "custom": "x"})
        target = SessionManager()
        assert target.import_session(source.export_session())
        assert target.config.default_margin == 15
        assert target.config.extra == {"custom": "x"}

    @pytest.mark.parametrize("payload", [
        "not json",
        "[]",
        json.dumps({"sessionData": {}}),
        json.dumps({"version": "2.0"}),
        json.dumps({"version": "2.0", "sessionData": {"pageDimensions": {"width": -1, "height": 5}}}),
        json.dumps({"version": "2.0", "sessionData": {"activeDocument": "doc"}}),
        json.dumps({"version": "2.0", "sessionData": {}, "config": {"minMargin": "x"}}),
    ])
    def test_rejected_imports_leave_state_alone(self, a4_session, payload, caplog):
        before = a4_session.get_session_summary()
        with caplog.at_level(logging.WARNING, logger="session"):
            assert a4_session.import_session(payload) is False
        assert a4_session.get_session_summary() == before
        assert "Failed to import session" in caplog.text

    def test_import_none(self, session):
        assert session.import_session(None) is False

    def test_minimal_snapshot(self, session):
        assert session.import_session(json.dumps({"version": "1.0", "sessionData": {}}))
        assert session.get_page_dimensions() is None
        assert session.get_session_summary()["timestamps"]["created_at"]


class TestEvents:
    """Tests for change notification from the store."""

    def test_one_event_per_mutation(self, session):
        events = []
        session.subscribe(events.append)
        session.set_page_dimensions(A4)
        session.set_active_document({"name": "a"})
        session.set_active_page({"name": "1"})
        session.set_last_created_item({"type": "oval"})
        session.clear_session(["pageDimensions"])
        session.import_session(session.export_session())
        assert [e.type for e in events] == [
            EventType.DIMENSIONS_CHANGED,
            EventType.DOCUMENT_CHANGED,
            EventType.PAGE_CHANGED,
            EventType.LAST_CREATED_ITEM_CHANGED,
            EventType.SESSION_CLEARED,
            EventType.SESSION_IMPORTED,
        ]

    def test_dimensions_payload(self, session):
        events = []
        session.subscribe(events.append, EventType.DIMENSIONS_CHANGED)
        session.set_page_dimensions(A4)
        session.set_page_dimensions({"width": 100, "height": 100})
        assert events[0].old is None
        assert events[0].new == A4
        assert events[1].old == A4

    def test_cleared_detail(self, session):
        events = []
        session.subscribe(events.append, EventType.SESSION_CLEARED)
        session.clear_session(["activePage"])
        assert events[0].detail == {"preserved": ["activePage"]}

    def test_failed_mutation_emits_nothing(self, session):
        events = []
        session.subscribe(events.append)
        with pytest.raises(TypeError):
            session.set_page_dimensions("A4")
        session.import_session("garbage")
        assert events == []

    def test_event_payload_is_a_copy(self, session):
        events = []
        session.subscribe(events.append)
        session.set_active_document({"name": "a"})
        events[0].new["name"] = "changed"
        assert session.get_active_document() == {"name": "a"}

    def test_unsubscribe(self, session):
        events = []
        unsubscribe = session.subscribe(events.append)
        unsubscribe()
        session.set_page_dimensions(A4)
        assert events == []

    def test_failing_listener_does_not_break_mutation(self, session):
        def broken(event):
            raise RuntimeError("listener bug")

        session.subscribe(broken)
        session.set_page_dimensions(A4)
        assert session.get_page_dimensions() == A4


class TestSnapshots:
    """Tests for snapshot files."""

    def test_save_and_load(self, a4_session, tmp_path):
        path = save_snapshot(a4_session, tmp_path / "state" / "session.json")
        assert path.exists()
        restored = SessionManager()
        assert load_snapshot(restored, path) is True
        assert restored.get_page_dimensions() == A4

    def test_missing_file(self, session, tmp_path):
        assert load_snapshot(session, tmp_path / "nope.json") is False

    def test_autosave(self, session, tmp_path):
        path = tmp_path / "session.json"
        session.subscribe(autosave_listener(session, path))
        session.set_page_dimensions(A4)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["sessionData"]["pageDimensions"] == A4
        assert not path.with_suffix(".json.tmp").exists()

    def test_slots(self):
        assert SLOTS == ("pageDimensions", "activeDocument", "activePage", "lastCreatedItem")
