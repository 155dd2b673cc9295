"""Tests for the local persistence gateway: autosave, export and import."""

import json
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine

from charsheet import db_engine
from charsheet.debounce import ManualScheduler
from charsheet.errors import ImportFormatError
from charsheet.models import CharacterDocument
from charsheet.orm_models import Base


@pytest.fixture
def temp_db():
    """Create a temporary in-memory database for testing."""
    test_engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(test_engine)
    db_engine.set_engine(test_engine)
    yield test_engine
    db_engine.reset_engine()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def gateway(temp_db, scheduler):
    from charsheet.persistence import PersistenceGateway

    return PersistenceGateway(scheduler=scheduler, delay=0.5)


def _doc(name: str) -> CharacterDocument:
    d = CharacterDocument()
    d.basic_info.name = name
    return d


class TestExportFilename:

    def test_whitespace_replaced(self):
        from charsheet.persistence import export_filename

        assert export_filename("Elara  the Wise") == "Elara_the_Wise.json"

    def test_empty_name(self):
        from charsheet.persistence import export_filename

        assert export_filename("") == "character.json"


class TestScheduledSave:

    def test_nothing_written_before_delay(self, gateway, scheduler):
        doc = _doc("Elara")
        gateway.schedule_save("a", lambda: ("Elara", doc, None))

        scheduler.advance(0.4)
        assert gateway.load("a") is None
        assert gateway.save_pending

        scheduler.advance(0.1)
        assert gateway.load("a").name == "Elara"
        assert not gateway.save_pending

    def test_snapshot_read_when_timer_fires(self, gateway, scheduler):
        state = {"doc": _doc("Draft")}
        gateway.schedule_save("a", lambda: (state["doc"].basic_info.name, state["doc"], None))

        state["doc"] = _doc("Final")
        scheduler.advance(0.5)

        assert gateway.load("a").name == "Final"

    def test_burst_writes_once(self, gateway, scheduler):
        from charsheet import persistence

        with patch.object(persistence, "save_character", wraps=persistence.save_character) as spy:
            for name in ("One", "Two", "Three"):
                doc = _doc(name)
                gateway.schedule_save("a", lambda doc=doc: (doc.basic_info.name, doc, None))
                scheduler.advance(0.1)
            scheduler.advance(0.5)

        assert spy.call_count == 1
        assert gateway.load("a").name == "Three"

    def test_on_saved_callback(self, gateway, scheduler):
        saved = []
        doc = _doc("Elara")
        gateway.schedule_save("a", lambda: ("Elara", doc, None), saved.append)

        gateway.flush()

        assert len(saved) == 1
        assert saved[0].local_id == "a"


class TestListAndDelete:

    def test_list(self, gateway):
        gateway.save_now("a", "Elara", _doc("Elara"))
        gateway.save_now("b", "Borin", _doc("Borin"))

        assert [r.local_id for r in gateway.list_characters()] == ["a", "b"]

    def test_delete(self, gateway):
        gateway.save_now("a", "Elara", _doc("Elara"))

        assert gateway.delete("a") is True
        assert gateway.load("a") is None
        assert gateway.delete("a") is False


class TestExportImport:

    def test_export_envelope(self, gateway):
        record = gateway.save_now("a", "Elara", _doc("Elara"))

        payload = json.loads(gateway.export_json(record))

        assert payload["id"] == "a"
        assert payload["name"] == "Elara"
        assert payload["data"]["basicInfo"]["name"] == "Elara"
        assert payload["createdAt"] == record.created_at

    def test_import_assigns_new_id_and_keeps_content(self, gateway):
        doc = _doc("Elara")
        doc.abilities.intelligence = 18
        original = gateway.save_now("a", "Elara", doc)

        imported = gateway.import_json(gateway.export_json(original))

        assert imported.local_id != original.local_id
        assert imported.data == original.data
        assert imported.created_at == original.created_at
        assert gateway.load("a") is not None
        assert len(gateway.list_characters()) == 2

    def test_import_twice_creates_two_entries(self, gateway):
        text = gateway.export_json(gateway.save_now("a", "Elara", _doc("Elara")))

        first = gateway.import_json(text)
        second = gateway.import_json(text)

        assert first.local_id != second.local_id
        assert len(gateway.list_characters()) == 3

    def test_import_name_falls_back_to_document(self, gateway):
        text = json.dumps({"data": {"basicInfo": {"name": "Nameless Envelope"}}})

        record = gateway.import_json(text)

        assert record.name == "Nameless Envelope"

    @pytest.mark.parametrize("text", [
        "not json",
        "[]",
        json.dumps({"name": "No data"}),
        json.dumps({"data": {"basicInfo": {"level": "high"}}}),
        json.dumps({"data": {"spellcasting": {"spellcastingAbility": "INT"}}}),
        json.dumps({"data": {"abilities": {"strength": 15.9}}}),
    ])
    def test_malformed_import_rejected_without_writing(self, gateway, text):
        with pytest.raises(ImportFormatError):
            gateway.import_json(text)

        assert gateway.list_characters() == []

    def test_undecodable_file_rejected(self, gateway, tmp_path):
        path = tmp_path / "garbled.json"
        path.write_bytes(b'{"name": "\xff\xfe"}')

        with pytest.raises(ImportFormatError):
            gateway.import_file(path)

        assert gateway.list_characters() == []

    def test_missing_file_rejected(self, gateway, tmp_path):
        with pytest.raises(ImportFormatError):
            gateway.import_file(tmp_path / "absent.json")

    def test_write_export_and_import_file(self, gateway, tmp_path):
        record = gateway.save_now("a", "Elara the Wise", _doc("Elara the Wise"))

        path = gateway.write_export(record, tmp_path)
        imported = gateway.import_file(path)

        assert path.name == "Elara_the_Wise.json"
        assert imported.name == "Elara the Wise"
