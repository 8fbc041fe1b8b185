"""Tests for the HTTP API."""

import os
import pytest
import sys

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

import main


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def sample_data_path():
    return os.path.join(
        os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
        "sample-family.json"
    )


@pytest.fixture
def edits_path(tmp_path):
    return str(tmp_path / "family-edits.json")


def start_client(monkeypatch, base_path, edits_path, language="hi"):
    monkeypatch.setenv("VANSHAVALI_BASE_DATA", base_path)
    monkeypatch.setenv("VANSHAVALI_EDITS_FILE", edits_path)
    monkeypatch.setenv("VANSHAVALI_LANGUAGE", language)
    return TestClient(main.app)


@pytest.fixture
def client(monkeypatch, sample_data_path, edits_path):
    with start_client(monkeypatch, sample_data_path, edits_path) as client:
        yield client


# ============================================================================
# Member Tests
# ============================================================================

class TestMembers:
    """Tests for reading members and statistics."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "data_loaded": True}

    def test_stats(self, client):
        data = client.get("/stats").json()
        assert data["totalMembers"] == 14
        assert data["maxGeneration"] == 6
        assert data["generations"]["2"] == 3
        assert data["integrityIssues"] == []

    def test_members(self, client):
        members = client.get("/members").json()["members"]
        assert len(members) == 14
        assert members[0]["id"] == 1

    def test_member(self, client):
        data = client.get("/members/8").json()
        assert data["nameEn"] == "Rahul Pandey"
        assert data["parentName"] == "हरिकृष्ण पाण्डेय"
        assert [c["id"] for c in data["children"]] == [11, 13]

    def test_member_not_found(self, client):
        assert client.get("/members/999").status_code == 404

    def test_generation(self, client):
        data = client.get("/generations/2").json()
        assert [m["id"] for m in data["members"]] == [2, 3, 4]


# ============================================================================
# Editing Tests
# ============================================================================

class TestEditing:
    """Tests for adding members, reset and export."""

    def test_add_member(self, client, edits_path):
        response = client.post("/members", json={
            "parentId": 9, "name": "कविता पाण्डेय", "nameEn": "Kavita Pandey", "birthYear": 1980,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["person"]["id"] == 15
        assert data["person"]["generation"] == 5
        assert data["warnings"] == []
        assert os.path.exists(edits_path)
        assert client.get("/stats").json()["totalMembers"] == 15

    def test_add_member_unknown_parent(self, client):
        response = client.post("/members", json={"parentId": 999, "name": "कोई"})
        assert response.status_code == 404

    def test_add_member_blank_name(self, client):
        response = client.post("/members", json={"parentId": 8, "name": "  "})
        assert response.status_code == 400

    def test_add_member_warnings(self, client):
        response = client.post("/members", json={"parentId": 8, "name": "नया", "birthYear": 1955})
        assert response.status_code == 200
        assert any("too young" in w for w in response.json()["warnings"])

    def test_reset(self, client, edits_path):
        client.post("/members", json={"parentId": 1, "name": "नया सदस्य"})
        response = client.post("/reset")
        assert response.status_code == 200
        assert response.json()["totalMembers"] == 14
        assert not os.path.exists(edits_path)

    def test_edits_survive_restart(self, monkeypatch, sample_data_path, edits_path):
        with start_client(monkeypatch, sample_data_path, edits_path) as client:
            client.post("/members", json={"parentId": 1, "name": "नया सदस्य"})
        with start_client(monkeypatch, sample_data_path, edits_path) as client:
            assert client.get("/stats").json()["totalMembers"] == 15

    def test_export_snippet(self, client):
        response = client.get("/export")
        assert response.status_code == 200
        assert response.text.startswith("const familyMembers = [")
        assert "data.js" in response.headers["content-disposition"]

    def test_export_gedcom(self, client):
        response = client.get("/export/gedcom")
        assert response.status_code == 200
        assert response.text.startswith("0 HEAD")
        assert "0 @I14@ INDI" in response.text


# ============================================================================
# Search and Tree Tests
# ============================================================================

class TestSearchAndTrees:
    """Tests for search, descendant trees and lineage."""

    def test_search(self, client):
        results = client.get("/search", params={"q": "rahul", "filter": "name"}).json()["results"]
        assert [r["id"] for r in results] == [8]

    def test_search_by_year(self, client):
        results = client.get("/search", params={"q": "1958", "filter": "year"}).json()["results"]
        assert [r["id"] for r in results] == [10]

    def test_search_bad_filter(self, client):
        response = client.get("/search", params={"q": "rahul", "filter": "spouse"})
        assert response.status_code == 400

    def test_search_requires_query(self, client):
        assert client.get("/search").status_code == 422

    def test_full_tree(self, client):
        tree = client.get("/tree").json()["tree"]
        assert tree["id"] == 1
        assert [c["id"] for c in tree["children"]] == [2, 3, 4]

    def test_descendant_tree(self, client):
        tree = client.get("/tree/13").json()["tree"]
        assert tree["children"][0]["id"] == 14
        assert "children" not in tree["children"][0]

    def test_descendant_tree_not_found(self, client):
        assert client.get("/tree/999").status_code == 404

    def test_lineage(self, client):
        data = client.get("/lineage/8").json()
        assert data["lineageIds"][:4] == [8, 5, 2, 1]

    def test_lineage_not_found(self, client):
        assert client.get("/lineage/999").status_code == 404


# ============================================================================
# Relationship Tests
# ============================================================================

class TestRelationship:

    def test_relationship_by_id(self, client):
        data = client.get("/relationship", params={"person_a": "8", "person_b": "6"}).json()
        assert data["relation"] == "younger_uncle"
        assert data["term"] == "चाचा"
        assert data["commonAncestor"]["id"] == 2
        assert data["generationDifference"] == -1

    def test_relationship_by_name(self, client):
        data = client.get(
            "/relationship", params={"person_a": "Rahul Pandey", "person_b": "Maya Pandey"}
        ).json()
        assert data["relation"] == "sister"
        assert data["term"] == "बहन"

    def test_relationship_unknown_person(self, client):
        response = client.get("/relationship", params={"person_a": "8", "person_b": "Nobody"})
        assert response.status_code == 404


# ============================================================================
# Assistant Tests
# ============================================================================

class TestAsk:
    """Tests for the assistant endpoint and per-session context."""

    def test_ask_show(self, client):
        data = client.post("/ask", json={"prompt": "rahul ko dikhao"}).json()
        assert data["focus_person_id"] == 8
        assert data["context_person_id"] == 8
        assert "राहुल पाण्डेय" in data["answer"]

    def test_follow_up_in_same_session(self, client):
        client.post("/ask", json={"prompt": "rahul ko dikhao", "session_id": "a"})
        data = client.post("/ask", json={"prompt": "uske pita kaun hain", "session_id": "a"}).json()
        assert data["answer"] == "राहुल पाण्डेय के पिता हरिकृष्ण पाण्डेय हैं।"
        assert data["focus_person_id"] is None

    def test_sessions_are_separate(self, client):
        client.post("/ask", json={"prompt": "rahul ko dikhao", "session_id": "a"})
        data = client.post("/ask", json={"prompt": "uske pita kaun hain", "session_id": "b"}).json()
        assert data["context_person_id"] is None

    def test_context_survives_reset(self, client):
        client.post("/ask", json={"prompt": "rahul ko dikhao", "session_id": "a"})
        assert client.post("/reset").status_code == 200
        data = client.post("/ask", json={"prompt": "uske pita kaun hain", "session_id": "a"}).json()
        assert data["answer"] == "राहुल पाण्डेय के पिता हरिकृष्ण पाण्डेय हैं।"

    def test_oldest_session_is_dropped(self, monkeypatch, sample_data_path, edits_path):
        monkeypatch.setenv("VANSHAVALI_MAX_SESSIONS", "2")
        with start_client(monkeypatch, sample_data_path, edits_path) as client:
            client.post("/ask", json={"prompt": "rahul ko dikhao", "session_id": "a"})
            client.post("/ask", json={"prompt": "maya ko dikhao", "session_id": "b"})
            client.post("/ask", json={"prompt": "govind ko dikhao", "session_id": "c"})
            kept = client.post("/ask", json={"prompt": "uske pita kaun hain", "session_id": "c"}).json()
            dropped = client.post("/ask", json={"prompt": "uske pita kaun hain", "session_id": "a"}).json()
        assert kept["context_person_id"] == 6
        assert dropped["context_person_id"] is None

    def test_english(self, monkeypatch, sample_data_path, edits_path):
        with start_client(monkeypatch, sample_data_path, edits_path, language="en") as client:
            data = client.post("/ask", json={"prompt": "total members"}).json()
        assert data["answer"] == "Our family tree has 14 members in total."


# ============================================================================
# No Data Tests
# ============================================================================

class TestNoData:
    """The server starts without data and reports it."""

    @pytest.fixture
    def empty_client(self, monkeypatch, tmp_path, edits_path):
        with start_client(monkeypatch, str(tmp_path / "missing.json"), edits_path) as client:
            yield client

    def test_health(self, empty_client):
        assert empty_client.get("/health").json()["data_loaded"] is False

    def test_stats_unavailable(self, empty_client):
        assert empty_client.get("/stats").status_code == 503

    def test_ask_without_data(self, empty_client):
        data = empty_client.post("/ask", json={"prompt": "rahul ke pita"}).json()
        assert data["answer"] == "क्षमा करें, परिवार का डेटा अभी उपलब्ध नहीं है।"


# ============================================================================
# Run Tests
# ============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
