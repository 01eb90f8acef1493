"""Tests for JSON API endpoints."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi.responses import Response
from fastapi.testclient import TestClient

from carrier.api import ApiModel, api_respond
from carrier.core.config import Settings
from carrier.core.http import respond_json_ok
from carrier.main import create_app


class EchoApi(ApiModel):
    def consume(self, content: Any) -> Response:
        if content is None:
            return api_respond(422, None, ["Body required."])
        return api_respond(200, content)


class TestApiManager:
    def test_json_body_is_consumed(self, settings: Settings) -> None:
        client = TestClient(create_app(settings, api_models={"/api/echo": EchoApi()}))

        response = client.post("/api/echo", json={"a": 1})

        assert response.status_code == 200
        assert response.json() == {"data": {"a": 1}, "messages": []}

    def test_empty_body(self, settings: Settings) -> None:
        client = TestClient(create_app(settings, api_models={"/api/echo": EchoApi()}))

        response = client.post("/api/echo")

        assert response.status_code == 422
        assert response.json()["messages"] == ["Body required."]

    def test_invalid_json(self, settings: Settings) -> None:
        client = TestClient(create_app(settings, api_models={"/api/echo": EchoApi()}))

        response = client.post("/api/echo", content=b"{broken")

        assert response.status_code == 400
        assert response.json() == {"data": None, "messages": ["Invalid JSON body."]}

    def test_consume_runs_outside_the_event_loop(self, settings: Settings) -> None:
        class LoopApi(ApiModel):
            def consume(self, content: Any) -> Response:
                try:
                    asyncio.get_running_loop()
                except RuntimeError:
                    return api_respond(200, "threadpool")
                return api_respond(200, "event loop")

        client = TestClient(create_app(settings, api_models={"/api/loop": LoopApi()}))

        assert client.post("/api/loop", json={}).json()["data"] == "threadpool"


class TestJsonHelpers:
    def test_respond_json_ok_merges_status(self) -> None:
        response = respond_json_ok({"id": 3})

        assert response.status_code == 200
        assert response.body == b'{"status":"ok","id":3}'
        assert response.headers["content-type"] == "application/json; charset=utf-8"
