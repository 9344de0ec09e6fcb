"""
Tests for the REST API.

The app starts with its real lifespan on the in-memory backend; the global
workspace is then swapped for one wired to the fake providers.
"""

import base64

import pytest
from fastapi.testclient import TestClient

import app as app_module
from conftest import FakeEmbedder, FakeLLM, build_workspace


@pytest.fixture
def client(monkeypatch, test_config, storage):
    monkeypatch.setenv("OPENCANVAS_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("OPENCANVAS_LOG_TO_FILE", "false")

    with TestClient(app_module.app) as test_client:
        ws = build_workspace(storage, test_config, FakeLLM(), FakeEmbedder())
        test_client.portal.call(ws.initialize, False)
        original = app_module.workspace
        app_module.workspace = ws
        try:
            yield test_client
        finally:
            app_module.workspace = original
            test_client.portal.call(ws.close)


def add_chat(client, title="Chat", **fields):
    response = client.post("/nodes/chat", json={"title": title, **fields})
    assert response.status_code == 200
    return response.json()


@pytest.mark.integration
class TestHealth:
    """Test health and root endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage_backend"] == "memory"

    def test_health_checks_providers(self, client):
        assert client.get("/health").json()["providers"] is None

        body = client.get("/health", params={"check_providers": True}).json()

        assert body["providers"] == {"ollama": True, "embedding": True}

    def test_root(self, client):
        assert client.get("/").json()["name"] == "OpenCanvas API"

    def test_uninitialized_workspace(self, client):
        # The client fixture restores the lifespan's workspace afterwards
        app_module.workspace = None

        assert client.get("/canvas").status_code == 503
        assert client.get("/health").json()["workspace_initialized"] is False


@pytest.mark.integration
class TestNodeEndpoints:
    """Test node and edge endpoints."""

    def test_add_and_get_chat(self, client):
        chat = add_chat(client, "Plan", system_prompt="Be brief")

        assert chat["kind"] == "chat"
        assert chat["payload"]["model"] == "llama3.1:8b"
        assert client.get(f"/nodes/{chat['id']}").json()["payload"]["title"] == "Plan"

    def test_get_missing_node(self, client):
        assert client.get("/nodes/chat_missing").status_code == 404

    def test_patch_node(self, client):
        chat = add_chat(client)

        response = client.patch(
            f"/nodes/{chat['id']}",
            json={"title": "Renamed", "position": {"x": 5, "y": 6}, "model": "mistral"},
        )

        body = response.json()
        assert body["payload"]["title"] == "Renamed"
        assert body["position"] == {"x": 5.0, "y": 6.0}
        assert body["payload"]["model"] == "mistral"

    def test_edges(self, client):
        a = add_chat(client, "A")
        b = add_chat(client, "B")

        edge = client.post("/edges", json={"source": a["id"], "target": b["id"]})
        assert edge.status_code == 200
        assert edge.json()["kind"] == "context"

        duplicate = client.post("/edges", json={"source": a["id"], "target": b["id"]})
        assert duplicate.status_code == 409

        cycle = client.post("/edges", json={"source": b["id"], "target": a["id"]})
        assert cycle.status_code == 409

        missing = client.post("/edges", json={"source": a["id"], "target": "chat_missing"})
        assert missing.status_code == 404

        assert client.delete(f"/edges/{edge.json()['id']}").status_code == 200
        assert client.delete(f"/edges/{edge.json()['id']}").status_code == 404

    def test_branch_and_merge(self, client):
        a = add_chat(client, "A")
        b = add_chat(client, "B")

        branch = client.post(f"/nodes/{a['id']}/branch").json()
        assert branch["payload"]["title"] == "A (Branch)"

        merged = client.post("/nodes/merge", json={"node_ids": [a["id"], b["id"]]})
        assert merged.json()["payload"]["title"] == "Merged Chat"

        too_few = client.post("/nodes/merge", json={"node_ids": [a["id"]]})
        assert too_few.status_code == 422

    def test_delete_node(self, client):
        chat = add_chat(client)

        assert client.delete(f"/nodes/{chat['id']}").status_code == 200
        assert client.delete(f"/nodes/{chat['id']}").status_code == 404


@pytest.mark.integration
class TestConversationEndpoints:
    """Test sending messages and uploading documents."""

    def test_send_message(self, client):
        chat = add_chat(client)

        response = client.post(f"/nodes/{chat['id']}/messages", json={"content": "Hi"})

        assert response.status_code == 200
        body = response.json()
        assert body["reply"]["content"] == "Hello world"
        assert body["message_count"] == 2

    def test_send_errors(self, client):
        no_model = add_chat(client, model="")

        empty = client.post(f"/nodes/{no_model['id']}/messages", json={"content": " "})
        assert empty.status_code == 400
        unset = client.post(f"/nodes/{no_model['id']}/messages", json={"content": "Hi"})
        assert unset.status_code == 400
        missing = client.post("/nodes/chat_missing/messages", json={"content": "Hi"})
        assert missing.status_code == 404

    def test_upload_documents(self, client):
        memory = client.post("/nodes/memory", json={"title": "Docs"}).json()
        encoded = base64.b64encode(b"name,age\nAda,36\n").decode()

        response = client.post(
            f"/nodes/{memory['id']}/documents",
            json={
                "files": [
                    {"name": "notes.txt", "text": "Plain notes."},
                    {"name": "people.csv", "content_base64": encoded},
                ]
            },
        )

        assert response.status_code == 200
        assert response.json()["document_count"] == 2

    def test_upload_invalid_content(self, client):
        memory = client.post("/nodes/memory", json={"title": "Docs"}).json()

        bad = client.post(
            f"/nodes/{memory['id']}/documents",
            json={"files": [{"name": "x.bin", "content_base64": "***"}]},
        )
        empty = client.post(
            f"/nodes/{memory['id']}/documents", json={"files": [{"name": "x.txt"}]}
        )
        chat = add_chat(client)
        wrong_kind = client.post(
            f"/nodes/{chat['id']}/documents", json={"files": [{"name": "a.txt", "text": "a"}]}
        )

        assert bad.status_code == 400
        assert empty.status_code == 400
        assert wrong_kind.status_code == 404


@pytest.mark.integration
class TestSessionEndpoints:
    """Test session and settings endpoints."""

    def test_session_lifecycle(self, client):
        add_chat(client)
        session_id = client.get("/canvas").json()["session_id"]
        assert session_id is not None

        renamed = client.patch(f"/sessions/{session_id}", json={"title": "Planning"})
        assert renamed.json()["title"] == "Planning"

        exported = client.get(f"/sessions/{session_id}/export").json()
        assert client.delete(f"/sessions/{session_id}").status_code == 200
        assert client.get("/canvas").json()["canvas"]["nodes"] == []

        imported = client.post("/sessions/import", json=exported).json()
        loaded = client.post(f"/sessions/{imported['id']}/load")
        assert loaded.status_code == 200
        assert len(client.get("/canvas").json()["canvas"]["nodes"]) == 1

    def test_new_canvas_and_list(self, client):
        add_chat(client)
        client.post("/sessions/new")
        add_chat(client)

        assert len(client.get("/sessions").json()) == 2

    def test_missing_session(self, client):
        assert client.post("/sessions/canvas-missing/load").status_code == 404
        assert client.get("/sessions/canvas-missing/export").status_code == 404

    def test_invalid_import(self, client):
        assert client.post("/sessions/import", json={"title": "no id"}).status_code == 400

    def test_settings(self, client):
        settings = client.get("/settings").json()
        assert settings["enabled_providers"] == ["ollama"]
        assert settings["openai_api_key_set"] is False

        updated = client.put(
            "/settings",
            json={"enabled_providers": ["ollama", "openai"], "api_keys": {"openai": "sk-x"}},
        ).json()
        assert updated["openai_api_key_set"] is True
        assert "sk-x" not in str(updated)

        rejected = client.put("/settings", json={"enabled_providers": ["nope"]})
        assert rejected.status_code == 400
