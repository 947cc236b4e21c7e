"""
Tests for the FastAPI surface, with the orchestrator built over fakes.
"""
import unittest

from fastapi.testclient import TestClient

from paperchat.errors import AuthError
from paperchat.main import app, get_orchestrator
from tests.fakes import PAPER_TEXT, FakeFullTextIndex, FakeGateway, FakeLibrary, FakeViewerBridge, make_orchestrator


class TestAPI(unittest.TestCase):

    def setUp(self):
        library = FakeLibrary()
        library.add_pdf("12", "Metformin in Type 2 Diabetes")
        library.add_pdf("7", "Statins Revisited")
        self.viewer = FakeViewerBridge()
        self.gateway = FakeGateway(reply="Results are on page 4.")
        self.orchestrator = make_orchestrator(
            library=library,
            viewer_bridge=self.viewer,
            index=FakeFullTextIndex(content={"12": PAPER_TEXT, "7": PAPER_TEXT}),
            gateway=self.gateway
        )
        app.dependency_overrides[get_orchestrator] = lambda: self.orchestrator
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_health(self):
        response = self.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_select_context(self):
        response = self.client.post("/context", json={"item_ids": ["7", "12"]})

        data = response.json()
        assert response.status_code == 200
        assert data["conversation_id"] == "12_7"
        assert data["status"] == "Chatting with 2 paper(s)"
        assert data["messages"][0]["role"] == "assistant"

    def test_select_unknown_items(self):
        response = self.client.post("/context", json={"item_ids": ["nope"]})

        assert response.status_code == 404

    def test_unknown_selection_keeps_current_papers(self):
        self.client.post("/context", json={"item_ids": ["12"]})
        self.client.post("/chat", json={"message": "Where are the results?"})

        response = self.client.post("/context", json={"item_ids": ["nope"]})

        assert response.status_code == 404
        assert self.orchestrator.conversation_id == "12"
        assert len(self.client.get("/conversation").json()["messages"]) == 2

    def test_chat_turn(self):
        self.client.post("/context", json={"item_ids": ["12"]})

        response = self.client.post("/chat", json={"message": "Where are the results?"})

        data = response.json()
        assert response.status_code == 200
        assert data["accepted"]
        assert data["error"] is None
        assert data["references"] == [4]
        assert data["shortcuts"] == [4]
        assert data["linked_reply"] == [
            {"type": "text", "text": "Results are on "},
            {"type": "page", "document_id": "12", "page": 4},
            {"type": "text", "text": "."},
        ]
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]

    def test_chat_auth_failure_is_200_with_category(self):
        self.gateway.error = AuthError(403, "forbidden")
        self.client.post("/context", json={"item_ids": ["12"]})

        response = self.client.post("/chat", json={"message": "Summarize"})

        assert response.status_code == 200
        assert response.json()["error"] == "auth"
        assert response.json()["linked_reply"] is None

    def test_chat_with_image(self):
        self.client.post("/context", json={"item_ids": ["12"]})

        self.client.post("/chat", json={"message": "Explain the figure", "images": [{"data": "aGVsbG8=", "mime_type": "image/png"}]})

        parts = self.gateway.calls[0]["contents"][0]["parts"]
        assert parts[1]["inlineData"]["data"] == "aGVsbG8="

    def test_add_document(self):
        self.client.post("/context", json={"item_ids": ["12"]})

        response = self.client.post("/context/documents", json={"item_id": "7"})

        assert response.status_code == 200
        assert response.json()["conversation_id"] == "12_7"
        assert response.json()["messages"][0]["role"] == "system"

    def test_add_unknown_document(self):
        self.client.post("/context", json={"item_ids": ["12"]})

        response = self.client.post("/context/documents", json={"item_id": "nope"})

        assert response.status_code == 404

    def test_conversation_requires_selection(self):
        assert self.client.get("/conversation").status_code == 404
        assert self.client.get("/conversation/export").status_code == 404
        assert self.client.get("/conversation/stats").status_code == 404
        assert self.client.delete("/conversation").status_code == 404

    def test_conversation_history_export_and_stats(self):
        self.client.post("/context", json={"item_ids": ["12"]})
        self.client.post("/chat", json={"message": "Where are the results?"})

        history = self.client.get("/conversation").json()
        export = self.client.get("/conversation/export")
        stats = self.client.get("/conversation/stats").json()

        assert history["conversation_id"] == "12"
        assert history["documents"][0]["title"] == "Metformin in Type 2 Diabetes"
        assert len(history["messages"]) == 2
        assert export.text.startswith("Paper Chat Conversation Export")
        assert stats["message_count"] == 2
        assert stats["user_messages"] == 1

    def test_clear_conversation(self):
        self.client.post("/context", json={"item_ids": ["12"]})
        self.client.post("/chat", json={"message": "Where are the results?"})

        response = self.client.delete("/conversation")

        assert response.status_code == 200
        assert self.client.get("/conversation").json()["messages"] == []

    def test_quick_action(self):
        self.client.post("/context", json={"item_ids": ["12"]})

        response = self.client.post("/chat/quick-action", json={"action": "summarize"})

        assert response.status_code == 200
        assert len(self.gateway.calls) == 1

    def test_get_settings(self):
        data = self.client.get("/settings").json()

        assert data["model"] == "gemini-2.0-flash"
        assert "gemini-2.0-flash" in data["available_models"]
        assert data["max_history_length"] == 20
        assert data["has_api_key"] is True

    def test_connection_check(self):
        response = self.client.post("/settings/test-connection")

        assert response.json() == {"success": True, "error": None}

    def test_set_model(self):
        response = self.client.put("/settings/model", json={"model": "gemini-2.5-flash"})

        assert response.status_code == 200
        assert self.orchestrator.preferences.model == "gemini-2.5-flash"

    def test_navigate(self):
        self.viewer.pages["12"] = ["p1", "p2"]

        response = self.client.post("/navigate", json={"document_id": "12", "page": 2})

        assert response.json()["in_viewer"] is True
        assert self.viewer.navigated == [("12", 2)]


if __name__ == "__main__":
    unittest.main()
