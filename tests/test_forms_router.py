"""End-to-end tests for the shared AJAX forms endpoint."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from carrier.core.config import Settings
from carrier.core.http import JSON_CONTENT_TYPE
from carrier.forms.ajax import AjaxForm
from carrier.main import create_app

JSON_HEADERS = {"Content-Type": JSON_CONTENT_TYPE}


@pytest.fixture()
def forms(make_contact_form):
    return [make_contact_form("contact-form"), make_contact_form("newsletter", expected_submit_method="PUT")]


@pytest.fixture()
def client(settings: Settings, forms) -> TestClient:
    return TestClient(create_app(settings, ajax_forms=forms))


def fetch(client: TestClient, form_id: str) -> Dict[str, Any]:
    response = client.get("/ajax/forms", params={"form-id": form_id}, headers=JSON_HEADERS)
    assert response.status_code == 200
    return response.json()


def submit(client: TestClient, payload: Dict[str, Any], method: str = "POST"):
    return client.request(method, "/ajax/forms", content=json.dumps(payload), headers=JSON_HEADERS)


class TestAjaxFormsEndpoint:
    def test_get_then_post_round_trip(self, client: TestClient, forms) -> None:
        envelope = fetch(client, "contact-form")
        assert envelope["form-id"] == "contact-form"
        assert envelope["name"] == "Ada"

        response = submit(
            client, {"form-id": "contact-form", "csrf-token": envelope["csrf-token"], "message": "hi"}
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == JSON_CONTENT_TYPE
        assert response.json() == {"status": "ok", "form-id": "contact-form", "received": "hi"}
        assert len(forms[0].submitted) == 1

    def test_token_cannot_be_replayed(self, client: TestClient) -> None:
        token = fetch(client, "contact-form")["csrf-token"]
        submit(client, {"form-id": "contact-form", "csrf-token": token})

        response = submit(client, {"form-id": "contact-form", "csrf-token": token})

        assert response.status_code == 400
        assert response.json()["status"] == "error"

    def test_tokens_are_bound_to_the_session(self, settings: Settings, forms) -> None:
        app = create_app(settings, ajax_forms=forms)
        first, second = TestClient(app), TestClient(app)
        token = fetch(first, "contact-form")["csrf-token"]

        response = submit(second, {"form-id": "contact-form", "csrf-token": token})

        assert response.status_code == 400
        assert forms[0].submitted == []

    def test_forms_share_the_endpoint(self, client: TestClient, forms) -> None:
        contact_token = fetch(client, "contact-form")["csrf-token"]
        newsletter_token = fetch(client, "newsletter")["csrf-token"]

        response = submit(client, {"form-id": "newsletter", "csrf-token": newsletter_token}, method="PUT")
        assert response.status_code == 200
        assert response.json()["form-id"] == "newsletter"

        response = submit(client, {"form-id": "contact-form", "csrf-token": contact_token})
        assert response.status_code == 200
        assert len(forms[0].submitted) == 1
        assert len(forms[1].submitted) == 1

    def test_unknown_form_is_not_found(self, client: TestClient) -> None:
        response = client.get("/ajax/forms", params={"form-id": "missing"}, headers=JSON_HEADERS)

        assert response.status_code == 404
        assert response.json() == {"detail": "Form not found"}

    def test_non_json_request_gets_error_envelope(self, client: TestClient) -> None:
        response = client.get("/ajax/forms", params={"form-id": "contact-form"})

        assert response.status_code == 400
        assert response.json()["messages"] == ["Content type not supported"]

    def test_wrong_method_for_addressed_form(self, client: TestClient) -> None:
        token = fetch(client, "contact-form")["csrf-token"]

        response = submit(client, {"form-id": "contact-form", "csrf-token": token}, method="PATCH")

        assert response.status_code == 400
        assert response.json()["form-id"] == "contact-form"
        assert response.json()["messages"] == ["Method not supported"]

    def test_duplicate_form_ids_fail_app_creation(self, settings: Settings, make_contact_form) -> None:
        with pytest.raises(ValueError):
            create_app(settings, ajax_forms=[make_contact_form("a"), make_contact_form("a")])

    def test_custom_endpoint_path(self, forms, settings: Settings) -> None:
        settings.ajax_forms_path = "/forms"
        client = TestClient(create_app(settings, ajax_forms=forms))

        response = client.get("/forms", params={"form-id": "contact-form"}, headers=JSON_HEADERS)

        assert response.status_code == 200


class TestUnaddressedRequests:
    @pytest.fixture()
    def mixed_client(self, settings: Settings, make_contact_form) -> TestClient:
        forms = [make_contact_form("edit", expected_submit_method="PUT"), make_contact_form("contact-form")]
        return TestClient(create_app(settings, ajax_forms=forms))

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    def test_unknown_form_id_is_not_found_for_every_method(self, mixed_client: TestClient, method: str) -> None:
        response = submit(mixed_client, {"form-id": "nope", "csrf-token": "x"}, method=method)

        assert response.status_code == 404
        assert response.json() == {"detail": "Form not found"}

    def test_stray_request_keeps_issued_token(self, mixed_client: TestClient) -> None:
        token = fetch(mixed_client, "edit")["csrf-token"]

        assert submit(mixed_client, {"form-id": "nope"}).status_code == 404
        assert mixed_client.post("/ajax/forms", content=b"plain text").status_code == 404

        response = submit(mixed_client, {"form-id": "edit", "csrf-token": token}, method="PUT")

        assert response.status_code == 200
        assert response.json()["form-id"] == "edit"

    def test_each_form_keeps_its_own_method(self, mixed_client: TestClient) -> None:
        edit_token = fetch(mixed_client, "edit")["csrf-token"]
        contact_token = fetch(mixed_client, "contact-form")["csrf-token"]

        assert submit(mixed_client, {"form-id": "contact-form", "csrf-token": contact_token}).status_code == 200
        assert submit(mixed_client, {"form-id": "edit", "csrf-token": edit_token}, method="PUT").status_code == 200


class TestBlockingWork:
    def test_submissions_run_outside_the_event_loop(self, settings: Settings) -> None:
        loops = []

        class ThreadedForm(AjaxForm):
            def process_submit(self, data):
                try:
                    loops.append(asyncio.get_running_loop())
                except RuntimeError:
                    loops.append(None)
                return self.respond_ok()

        form = ThreadedForm("worker", "Worker", expected_submit_method="POST")
        client = TestClient(create_app(settings, ajax_forms=[form]))
        token = fetch(client, "worker")["csrf-token"]

        assert submit(client, {"form-id": "worker", "csrf-token": token}).status_code == 200
        assert loops == [None]


class TestPages:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}

    def test_home_page_embeds_forms(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert 'data-ajax-form-id="contact-form"' in response.text
        assert 'data-ajax-form-id="newsletter"' in response.text
        assert "btn-ajax-modal-fire" in response.text
        assert '<a class="nav-link active" href="http://testserver/">Home</a>' in response.text
        assert '<template id="toast">' in response.text

    def test_unknown_page_renders_not_found(self, client: TestClient) -> None:
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert "Page not found" in response.text
