"""Tests for loading and saving the member list."""

import json
import os
import pytest
import sys

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from family_tree import PersonRecord
from storage import FamilyDataStorage, parse_records_snippet


BASE_RECORDS = [
    {"id": 1, "name": "अमर", "nameEn": "Amar", "birthYear": 1900, "generation": 1, "parentId": None},
    {"id": 2, "name": "भोला", "nameEn": "Bhola", "generation": 2, "parentId": 1},
]


@pytest.fixture
def base_path(tmp_path):
    path = tmp_path / "family.json"
    path.write_text(json.dumps(BASE_RECORDS, ensure_ascii=False), encoding="utf-8")
    return str(path)


@pytest.fixture
def storage(base_path, tmp_path):
    return FamilyDataStorage(base_path, str(tmp_path / "edits.json"))


class TestParseSnippet:
    """Tests for reading data.js style snippets."""

    def test_plain_json(self):
        assert parse_records_snippet(json.dumps(BASE_RECORDS)) == BASE_RECORDS

    def test_const_snippet(self):
        content = "const familyMembers = " + json.dumps(BASE_RECORDS, indent=2) + ";\n"
        assert parse_records_snippet(content) == BASE_RECORDS

    def test_snippet_without_semicolon(self):
        content = "var members = " + json.dumps(BASE_RECORDS)
        assert parse_records_snippet(content) == BASE_RECORDS

    def test_not_a_list(self):
        with pytest.raises(ValueError):
            parse_records_snippet('{"id": 1}')

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            parse_records_snippet("const familyMembers = [oops];")


class TestFamilyDataStorage:
    """Tests for base data, local edits and reset."""

    def test_load_base(self, storage):
        records = storage.load()
        assert [r.id for r in records] == [1, 2]
        assert records[0].name_en == "Amar"
        assert not storage.has_local_edits

    def test_load_base_snippet(self, tmp_path):
        path = tmp_path / "data.js"
        path.write_text("const familyMembers = " + json.dumps(BASE_RECORDS) + ";", encoding="utf-8")
        storage = FamilyDataStorage(str(path), str(tmp_path / "edits.json"))
        assert len(storage.load()) == 2

    def test_missing_base_file(self, tmp_path):
        storage = FamilyDataStorage(str(tmp_path / "missing.json"), str(tmp_path / "edits.json"))
        assert storage.load() == []

    def test_save_then_load_prefers_edits(self, storage):
        records = storage.load() + [PersonRecord(id=3, name="चेतन", generation=2, parent_id=1)]
        storage.save(records)

        assert storage.has_local_edits
        loaded = storage.load()
        assert [r.id for r in loaded] == [1, 2, 3]

    def test_saved_file_keeps_devanagari(self, storage):
        storage.save(storage.load())
        with open(storage.edits_path, encoding="utf-8") as f:
            content = f.read()
        assert "अमर" in content
        assert '"nameEn": "Amar"' in content

    def test_corrupt_edits_fall_back_to_base(self, storage):
        with open(storage.edits_path, "w", encoding="utf-8") as f:
            f.write("not json")
        assert [r.id for r in storage.load()] == [1, 2]

    def test_clear(self, storage):
        storage.save(storage.load())
        storage.clear()
        assert not storage.has_local_edits
        # Clearing twice is harmless
        storage.clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
