"""Shared fixtures for carrier tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Dict, Optional

import pytest
from fastapi.responses import Response
from sqlalchemy.orm import Session

from carrier.core.config import Settings
from carrier.core.session import DictSessionStore
from carrier.db.models import Base
from carrier.db.session import create_database_engine, create_session_factory
from carrier.forms.ajax import AjaxForm

SECRET_KEY = "test-secret-key-with-at-least-32-characters"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        secret_key=SECRET_KEY,
        database_url="sqlite://",
        session_cookie_secure=False,
        url="http://testserver",
    )


@pytest.fixture()
def session() -> DictSessionStore:
    return DictSessionStore({})


@pytest.fixture()
def db(settings: Settings) -> Iterator[Session]:
    engine = create_database_engine(settings)
    Base.metadata.create_all(bind=engine)
    factory = create_session_factory(engine)
    with factory() as db_session:
        yield db_session
    engine.dispose()


class ContactForm(AjaxForm):
    """Minimal form used across tests; records what it was asked to process."""

    def __init__(self, form_id: str = "contact-form", **kwargs: Any) -> None:
        kwargs.setdefault("expected_submit_method", "POST")
        super().__init__(form_id, "Contact", **kwargs)
        self.submitted: list[Dict[str, Any]] = []
        self.default_data: Dict[str, Any] = {"name": "Ada"}

    def get_default_data(self, request_data: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.default_data)

    def process_submit(self, data: Dict[str, Any]) -> Optional[Response]:
        self.submitted.append(data)
        return self.respond_ok({"received": data.get("message")})

    def generate_form_inputs(self) -> str:
        return '<input type="text" name="message">'


@pytest.fixture()
def contact_form() -> ContactForm:
    return ContactForm()


@pytest.fixture()
def make_contact_form() -> type[ContactForm]:
    return ContactForm
