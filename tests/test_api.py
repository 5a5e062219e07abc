"""
Integration tests for API endpoints
"""
import json

import pytest
from fastapi.websockets import WebSocketDisconnect

from conftest import register

DOCUMENT = (
    "Laconic: using very few words to express a great deal of meaning\n"
    "Abate: to reduce\n"
    "Pithy: popular since 1890 among many writers\n"
)


def add_words(client, headers, *pairs):
    for word, definition in pairs:
        response = client.post("/words", data={"word": word, "definition": definition}, headers=headers)
        assert response.status_code == 200, response.text


def upload(name, content, content_type):
    return {"file": (name, content, content_type)}


class TestHealthEndpoints:
    def test_health_check(self, client):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["cache"]["backend"] == "memory"
        assert "timestamp" in data

    def test_metrics_endpoint(self, client):
        """Test metrics endpoint"""
        client.get("/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "http_requests_total" in response.text

    def test_process_time_header(self, client):
        """Test every response carries its processing time"""
        assert "x-process-time" in client.get("/health").headers


class TestWordEndpoints:
    def test_add_and_list(self, client, auth_headers):
        """Test adding words and listing them in both orders"""
        add_words(client, auth_headers, ("banal", "Lacking originality"), ("Abate", "To lessen"))

        data = client.get("/words", params={"sort": "alphabetical"}, headers=auth_headers).json()
        assert data["count"] == 2
        assert [w["word"] for w in data["words"]] == ["Abate", "banal"]

        newest = client.get("/words", headers=auth_headers).json()["words"]
        assert newest[0]["word"] == "Abate"

    def test_search(self, client, auth_headers):
        """Test search matches definitions case-insensitively"""
        add_words(client, auth_headers, ("banal", "Lacking originality"), ("Abate", "To lessen"))
        data = client.get("/words", params={"search": "ORIGINAL"}, headers=auth_headers).json()
        assert [w["word"] for w in data["words"]] == ["banal"]

    def test_bad_sort(self, client, auth_headers):
        """Test unknown sort orders are refused"""
        assert client.get("/words", params={"sort": "random"}, headers=auth_headers).status_code == 400

    def test_blank_word_rejected(self, client, auth_headers):
        """Test blank words cannot be added"""
        response = client.post("/words", data={"word": "  ", "definition": "x"}, headers=auth_headers)
        assert response.status_code == 400

    def test_delete(self, client, auth_headers):
        """Test only the owner can delete a word"""
        add_words(client, auth_headers, ("Abate", "To lessen"))
        entry_id = client.get("/words", headers=auth_headers).json()["words"][0]["id"]

        other = register(client, email="other@example.com")
        other_headers = {"Authorization": f"Bearer {other['access_token']}"}
        assert client.delete(f"/words/{entry_id}", headers=other_headers).status_code == 404

        assert client.delete(f"/words/{entry_id}", headers=auth_headers).status_code == 200
        assert client.get("/words", headers=auth_headers).json()["count"] == 0

    def test_users_see_only_their_words(self, client, auth_headers):
        """Test word lists are private to their owner"""
        add_words(client, auth_headers, ("Abate", "To lessen"))
        other = register(client, email="other@example.com")
        response = client.get("/words", headers={"Authorization": f"Bearer {other['access_token']}"})
        assert response.json()["count"] == 0

    def test_stats(self, client, auth_headers):
        """Test word list statistics"""
        assert client.get("/words/stats", headers=auth_headers).json() == {
            "total_words": 0, "words_added_today": 0, "last_addition": None,
        }
        add_words(client, auth_headers, ("Abate", "To lessen"), ("Candor", "Frankness"))
        stats = client.get("/words/stats", headers=auth_headers).json()
        assert stats["total_words"] == 2
        assert stats["words_added_today"] == 2
        assert stats["last_addition"] is not None


class TestJsonImport:
    def test_sample(self, client):
        """Test the sample import file is served"""
        sample = client.get("/words/import/sample").json()
        assert [item["word"] for item in sample][:2] == ["Abate", "Aberrant"]

    def test_import_sample_file(self, client, auth_headers):
        """Test importing the sample file"""
        sample = client.get("/words/import/sample").json()
        response = client.post("/words/import", files=upload("words.json", json.dumps(sample), "application/json"),
                               headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["imported"] == 5
        assert client.get("/words", headers=auth_headers).json()["count"] == 5

    def test_import_reports_duplicates_and_invalid(self, client, auth_headers):
        """Test import counts duplicates and invalid entries"""
        add_words(client, auth_headers, ("Abate", "To lessen"))
        items = [
            {"word": "abate", "definition": "Again"},
            {"word": "Candor", "definition": "Frankness"},
            {"word": "Candor"},
        ]
        response = client.post("/words/import", files=upload("w.json", json.dumps(items), "application/json"),
                               headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"imported": 1, "total": 3, "valid": 1, "duplicates": ["abate"], "invalid": 1}

    def test_malformed_file(self, client, auth_headers):
        """Test malformed JSON is rejected"""
        response = client.post("/words/import", files=upload("w.json", "{oops", "application/json"),
                               headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid JSON file. Please check the format."

    def test_nothing_valid(self, client, auth_headers):
        """Test an import with no usable entries writes nothing"""
        response = client.post("/words/import", files=upload("w.json", "[{\"word\": 1}]", "application/json"),
                               headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "No valid word entries found."
        assert client.get("/words", headers=auth_headers).json()["count"] == 0


class TestExtractEndpoints:
    def test_extract_text_document(self, client, auth_headers):
        """Test extraction from a plain text upload"""
        response = client.post("/extract", files=upload("notes.txt", DOCUMENT, "text/plain"), headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_found"] == 2
        assert data["duplicates"] == []
        assert [w["word"] for w in data["words"]] == ["Laconic"]
        assert data["words"][0]["confidence"] == pytest.approx(0.9)
        assert data["words"][0]["selected"] is True

    def test_show_low_confidence(self, client, auth_headers):
        """Test low-confidence candidates can be revealed"""
        response = client.post("/extract", params={"show_low_confidence": "true"},
                               files=upload("notes.txt", DOCUMENT, "text/plain"), headers=auth_headers)
        words = response.json()["words"]
        assert [w["word"] for w in words] == ["Laconic", "Pithy"]
        assert words[1]["selected"] is False

    def test_known_words_are_skipped(self, client, auth_headers):
        """Test words already in the list are not offered again"""
        add_words(client, auth_headers, ("laconic", "Terse"))
        response = client.post("/extract", files=upload("notes.txt", DOCUMENT, "text/plain"), headers=auth_headers)
        assert response.json()["total_found"] == 1
        assert response.json()["words"] == []
        assert response.json()["duplicates"] == []

    def test_unsupported_file(self, client, auth_headers):
        """Test unsupported uploads are refused"""
        response = client.post("/extract", files=upload("photo.png", b"\x89PNG", "image/png"), headers=auth_headers)
        assert response.status_code == 400

    def test_unreadable_pdf_yields_nothing(self, client, auth_headers):
        """Test a broken PDF gives no candidates instead of an error"""
        response = client.post("/extract", files=upload("scan.pdf", b"not really a pdf", "application/pdf"),
                               headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total_found"] == 0

    def test_import_selected_candidates(self, client, auth_headers):
        """Test only selected candidates are saved"""
        words = client.post("/extract", params={"show_low_confidence": "true"},
                            files=upload("notes.txt", DOCUMENT, "text/plain"), headers=auth_headers).json()["words"]
        response = client.post("/extract/import", json={"candidates": words}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["imported"] == 1

        stored = client.get("/words", headers=auth_headers).json()["words"]
        assert [(w["word"], w["definition"]) for w in stored] == [
            ("Laconic", "using very few words to express a great deal of meaning"),
        ]

    def test_import_requires_a_selection(self, client, auth_headers):
        """Test importing with nothing selected is refused"""
        payload = {"candidates": [{"word": "Pithy", "definition": "Concise and forcefully expressive", "selected": False}]}
        response = client.post("/extract/import", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Please select at least one word to import."


class TestStudyEndpoints:
    @pytest.fixture
    def words(self, client, auth_headers):
        add_words(client, auth_headers, ("Candor", "Frankness"), ("Abate", "To lessen"), ("banal", "Trite"))

    def test_empty_pool(self, client, auth_headers):
        """Test starting a session without words"""
        response = client.post("/study/session", json={"unique_words_mode": False}, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "No words available."

    def test_timed_session_flow(self, client, auth_headers, words):
        """Test a timed session from start to completion"""
        settings = {"words_per_session": 2, "time_per_word": 2, "shuffle_words": False}
        session = client.post("/study/session", json=settings, headers=auth_headers).json()
        assert session["state"] == "active"
        assert [w["word"] for w in session["words"]] == ["Abate", "banal"]
        assert session["time_left"] == 2

        client.post("/study/session/tick", headers=auth_headers)
        session = client.post("/study/session/tick", headers=auth_headers).json()
        assert session["current_index"] == 1
        assert session["time_left"] == 2

        session = client.post("/study/session/advance", headers=auth_headers).json()
        assert session["state"] == "complete"
        assert session["words_studied"] == 2
        assert client.post("/study/session/advance", headers=auth_headers).status_code == 409

        progress = client.get("/study/progress", headers=auth_headers).json()
        assert progress == {"studied": 2, "total": 3, "available": 1}

    def test_all_words_studied(self, client, auth_headers, words):
        """Test unique mode runs out of words until progress is reset"""
        settings = {"shuffle_words": False}
        client.post("/study/session", json=settings, headers=auth_headers)
        for _ in range(3):
            client.post("/study/session/advance", headers=auth_headers)

        response = client.post("/study/session", json=settings, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "All words studied! Reset progress to study again."

        client.post("/study/progress/reset", headers=auth_headers)
        assert client.post("/study/session", json=settings, headers=auth_headers).status_code == 200

    def test_pause_and_definition(self, client, auth_headers, words):
        """Test pausing stops the clock and the definition can be hidden"""
        client.post("/study/session", headers=auth_headers)
        assert client.post("/study/session/pause", headers=auth_headers).json()["is_paused"] is True
        assert client.post("/study/session/tick", headers=auth_headers).json()["time_left"] == 30
        assert client.post("/study/session/definition", headers=auth_headers).json()["show_definition"] is False

    def test_reset_session(self, client, auth_headers, words):
        """Test resetting discards the session"""
        client.post("/study/session", headers=auth_headers)
        assert client.delete("/study/session", headers=auth_headers).json() == {"state": "configuring"}
        assert client.get("/study/session", headers=auth_headers).status_code == 404

    def test_invalid_settings(self, client, auth_headers, words):
        """Test out-of-range settings are rejected"""
        response = client.post("/study/session", json={"time_per_word": 0}, headers=auth_headers)
        assert response.status_code == 422

    def test_checklist_flow(self, client, auth_headers, words):
        """Test a checklist from start to completion"""
        settings = {"shuffle_words": False, "unique_words_mode": False}
        checklist = client.post("/study/checklist", json=settings, headers=auth_headers).json()
        assert checklist["state"] == "reading"
        assert len(checklist["items"]) == 3

        for index in range(3):
            checklist = client.post(f"/study/checklist/items/{index}", headers=auth_headers).json()
        assert checklist["state"] == "complete"
        assert checklist["progress"] == 100

        assert client.post("/study/checklist/items/9", headers=auth_headers).status_code == 404
        assert client.get("/study/progress", headers=auth_headers).json()["studied"] == 0

        client.delete("/study/checklist", headers=auth_headers)
        assert client.get("/study/checklist", headers=auth_headers).status_code == 404


class TestWordSubscription:
    def test_rejects_bad_token(self, client):
        """Test the subscription refuses invalid tokens"""
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/words?token=nope") as websocket:
                websocket.receive_text()

    def test_receives_changes(self, client):
        """Test subscribers hear about added and deleted words"""
        tokens = register(client)
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}
        with client.websocket_connect(f"/ws/words?token={tokens['access_token']}") as websocket:
            add_words(client, headers, ("Abate", "To lessen"))
            message = websocket.receive_json()
            assert message["type"] == "added"
            assert message["entries"][0]["word"] == "Abate"

            entry_id = message["entries"][0]["id"]
            client.delete(f"/words/{entry_id}", headers=headers)
            assert websocket.receive_json() == {"type": "deleted", "ids": [entry_id]}
