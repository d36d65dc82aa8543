"""
End-to-end tests for the MleziCare API endpoints.

These tests verify the login gate, chatting, mood check-ins, the journal
prompt, the tool panels and Server-Sent Events streaming of the dashboard.
"""

import asyncio
import contextlib
import json
import random
import socket
import threading
import time

import httpx
import uvicorn
from fakes import ScriptedGenerator
from fastapi.testclient import TestClient
from httpx_sse import aconnect_sse

from mlezi_care.content import FALLBACK_REPLY, GREETING, JOURNAL_PROMPTS
from mlezi_care.conversation import ConversationManager
from mlezi_care.server import create_app
from mlezi_care.session import SessionController


def make_controller(generator: ScriptedGenerator) -> SessionController:
    def factory(email: str) -> ConversationManager:
        return ConversationManager(email, generator, rng=random.Random(3))

    return SessionController(factory)


# MARK: - Sync


class TestAPISync:
    """Integration tests covering the complete application flow using HTTP
    synchronous request/response flow."""

    def setup_method(self):
        """Set up a fresh app with a new session controller for each test."""
        self.generator = ScriptedGenerator(replies=["That sounds hard.", "Well done."])
        self.app = create_app(make_controller(self.generator))

    def test_login_gate(self):
        """Test that the dashboard is only reachable after login."""
        with TestClient(self.app) as client:
            assert client.get("/session").json() == {
                "authenticated": False,
                "email": "",
            }
            assert client.get("/dashboard").status_code == 401
            assert client.post("/chat", json={"message": "hi"}).status_code == 401

            response = client.post("/login", json={"email": "me", "password": "pw"})
            assert response.status_code == 422
            assert response.json()["detail"] == "Please enter a valid email address."

            response = client.post("/login", json={"email": "me@example.com"})
            assert response.status_code == 422
            assert response.json()["detail"] == "Please enter both email and password."

            response = client.post(
                "/login", json={"email": "me@example.com", "password": "pw"}
            )
            assert response.status_code == 200
            assert response.json() == {"authenticated": True, "email": "me@example.com"}
            assert client.get("/dashboard").status_code == 200

            response = client.post(
                "/login", json={"email": "other@example.com", "password": "pw"}
            )
            assert response.status_code == 409
            assert client.get("/session").json()["email"] == "me@example.com"

            assert client.post("/logout").json()["authenticated"] is False
            assert client.get("/dashboard").status_code == 401

    def test_complete_workflow(self):
        """Test the workflow: login -> chat -> mood -> journal -> tools -> logout."""
        with TestClient(self.app) as client:
            client.post("/login", json={"email": "me@example.com", "password": "pw"})

            # 1. Fresh dashboard holds the greeting only
            dashboard = client.get("/dashboard").json()
            assert [m["text"] for m in dashboard["messages"]] == [GREETING]
            assert dashboard["is_loading"] is False
            assert dashboard["mood_chart"] is None
            assert dashboard["journal_prompt"] in JOURNAL_PROMPTS

            # 2. Send the draft
            response = client.put("/chat/draft", json={"text": "I feel stuck."})
            assert response.json() == {"draft": "I feel stuck."}

            response = client.post("/chat", json={})
            assert response.status_code == 200
            assert response.json()["reply"] == {
                "sender": "model",
                "text": "That sounds hard.",
                "is_silent": False,
            }
            assert self.generator.calls[0][0].text == "I feel stuck."

            # 3. Check in a mood; the silent turn stays hidden
            response = client.post("/mood", json={"mood": "sad"})
            assert response.status_code == 200
            result = response.json()
            assert [e["mood"] for e in result["history"]] == ["sad"]
            assert result["reply"]["text"] == "Well done."

            dashboard = client.get("/dashboard").json()
            texts = [m["text"] for m in dashboard["messages"]]
            assert "I'm feeling sad." not in texts
            assert dashboard["draft"] == ""
            assert dashboard["mood_chart"][-1]["mood"] == "sad"

            assert client.post("/mood", json={"mood": "grumpy"}).status_code == 422
            assert len(client.get("/mood").json()) == 1
            assert len(client.get("/mood/chart").json()) == 7

            # 4. Journal prompt into the draft
            prompt = client.post("/journal/prompt").json()["prompt"]
            assert prompt in JOURNAL_PROMPTS
            assert client.get("/journal/prompt").json()["prompt"] == prompt
            draft = client.post("/journal/write").json()["draft"]
            assert draft == f'Regarding the prompt "{prompt}": '

            # 5. Tool panels
            assert len(client.get("/tools").json()) == 4
            state = client.post("/tools/crisis/open").json()
            assert state == {"active_tool": "crisis", "modal_open": True}
            panel = client.get("/dashboard").json()["active_panel"]
            assert panel["warning"].startswith("If you are in immediate danger")
            assert client.post("/tools/close").json()["modal_open"] is False
            assert client.post("/tools/yoga/open").status_code == 404

            # 6. New chat keeps the moods, drops the conversation
            dashboard = client.post("/chat/new").json()
            assert [m["text"] for m in dashboard["messages"]] == [GREETING]
            assert len(dashboard["mood_history"]) == 1

            # 7. Logging out and back in starts over
            client.post("/logout")
            client.post("/login", json={"email": "me@example.com", "password": "pw"})
            dashboard = client.get("/dashboard").json()
            assert dashboard["mood_history"] == []
            assert len(dashboard["messages"]) == 1

    def test_remote_failure_returns_fallback(self):
        generator = ScriptedGenerator(error=RuntimeError("quota exceeded"))
        app = create_app(make_controller(generator))

        with TestClient(app) as client:
            client.post("/login", json={"email": "me@example.com", "password": "pw"})
            response = client.post("/chat", json={"message": "Hello"})

            assert response.status_code == 200
            assert response.json()["reply"]["text"] == FALLBACK_REPLY
            assert client.get("/dashboard").json()["is_loading"] is False


# MARK: - Streaming


class TestAPIStream:
    """Integration tests covering the dashboard stream over SSE."""

    def setup_method(self):
        """Set up a fresh app with a new session controller for each test."""
        self.generator = ScriptedGenerator(replies=["I'm here with you."])
        self.app = create_app(make_controller(self.generator))

    async def test_streaming_api(self):
        """Test that a stream consumer sees the chat and ends on logout."""

        # Start a real HTTP server in a background thread on a free port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        host, port = sock.getsockname()
        sock.close()
        base_url = f"http://{host}:{port}"

        config = uvicorn.Config(
            app=self.app,
            host=host,
            port=port,
            loop="asyncio",
            lifespan="on",
            log_level="warning",
            ws="none",  # Avoid importing deprecated websockets implementation
        )
        server = uvicorn.Server(config)

        def run_server() -> None:
            asyncio.run(server.serve())

        thread = threading.Thread(target=run_server, daemon=True)
        thread.start()

        # Wait for server to be ready
        start = time.time()
        while time.time() - start < 5.0:
            try:
                r = httpx.get(base_url + "/", timeout=0.2)
                if r.status_code == 200:
                    break
            except Exception:
                pass
            time.sleep(0.05)
        else:
            server.should_exit = True
            thread.join(timeout=1.0)
            assert False, "Server did not start in time"

        async with httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(5.0, read=None)
        ) as client:
            response = await client.post(
                "/login", json={"email": "me@example.com", "password": "pw"}
            )
            assert response.status_code == 200

            received: list[dict] = []
            got_initial = asyncio.Event()

            async def consume() -> None:
                async with aconnect_sse(client, "GET", "/dashboard/stream") as es:
                    assert es.response.status_code == 200
                    content_type = es.response.headers.get("content-type", "")
                    assert content_type.startswith("text/event-stream")

                    async for sse in es.aiter_sse():
                        if sse.event == "error":
                            assert False, f"SSE error event: {sse.data}"

                        received.append(json.loads(sse.data))
                        got_initial.set()

            consumer_task = asyncio.create_task(consume())

            try:
                await asyncio.wait_for(got_initial.wait(), timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception):
                    await consumer_task
                server.should_exit = True
                thread.join(timeout=1.0)
                assert False, "Consumer did not receive initial event in time"

            resp = await client.post("/chat", json={"message": "Long day."})
            assert resp.status_code == 200
            assert resp.json()["reply"]["text"] == "I'm here with you."

            # Logging out closes the stream
            resp = await client.post("/logout")
            assert resp.status_code == 200

            try:
                await asyncio.wait_for(consumer_task, timeout=3.0)
            except TimeoutError:
                consumer_task.cancel()
                with contextlib.suppress(Exception):
                    await consumer_task
                server.should_exit = True
                thread.join(timeout=1.0)
                assert False, f"Stream did not end on logout. Received: {received}"

            assert [m["text"] for m in received[0]["messages"]] == [GREETING]
            assert [m["text"] for m in received[-1]["messages"]] == [
                GREETING,
                "Long day.",
                "I'm here with you.",
            ]
            assert received[-1]["is_loading"] is False

        # Shutdown server
        server.should_exit = True
        thread.join(timeout=2.0)
