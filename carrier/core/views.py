from typing import Any, Dict, List, Optional, Tuple

from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse
from markupsafe import Markup

from carrier.core.config import Settings
from carrier.core.session import DictSessionStore, SessionStore
from carrier.core.templating import render_fragment, templates


MESSAGES_SESSION_KEY = "carrier_session_messages"

MESSAGE_ERROR = "error"
MESSAGE_SUCCESS = "success"

TEMPLATE_ELEMENTS_DIR = "html_templates"
TOAST_TEMPLATE_ID = "toast"
TOAST_TEMPLATE_FILE = "template_toast"


class ViewManager:
    """Queues user messages in the session and renders pages around them.

    Messages survive redirects because they live in the session; they are
    drained (shown once) the next time a page is rendered. Template elements
    are ``<template>`` blocks emitted after the page content for client-side
    cloning; a toast template is always included.
    """

    def __init__(self, session: SessionStore, settings: Settings):
        self.session = session
        self.settings = settings
        self.current_page_id: Optional[str] = None
        self.current_page_name: Optional[str] = None
        self.template_elements: List[Dict[str, Any]] = []
        self.main_menu_links: List[Tuple[str, str, str]] = []
        self.user_menu_items: List[str] = []

    def _queue(self, kind: str, content: str, header_location: Optional[str]) -> Optional[RedirectResponse]:
        queued = list(self.session.get(MESSAGES_SESSION_KEY) or [])
        queued.append({"kind": kind, "content": content})
        self.session.set(MESSAGES_SESSION_KEY, queued)
        if header_location is None:
            return None
        return RedirectResponse(self.settings.url + header_location, status_code=303)

    def add_error_message(self, content: str, header_location: Optional[str] = None) -> Optional[RedirectResponse]:
        """Queue an error; with ``header_location``, also return a redirect to it."""
        return self._queue(MESSAGE_ERROR, content, header_location)

    def add_success_message(
        self, content: str, header_location: Optional[str] = None
    ) -> Optional[RedirectResponse]:
        return self._queue(MESSAGE_SUCCESS, content, header_location)

    def any_error_messages(self) -> bool:
        queued = self.session.get(MESSAGES_SESSION_KEY) or []
        return any(message.get("kind") == MESSAGE_ERROR for message in queued)

    def pop_messages(self) -> List[Dict[str, str]]:
        queued = list(self.session.get(MESSAGES_SESSION_KEY) or [])
        self.session.delete(MESSAGES_SESSION_KEY)
        return queued

    #
    # template elements
    #

    def add_template_element(self, html_id: str, file_name: str, filling: Dict[str, Any]) -> None:
        self.template_elements.append({"html_id": html_id, "file_name": file_name, "filling": filling})

    def any_template_elements(self) -> bool:
        return bool(self.template_elements)

    def _render_template_elements(self) -> List[Dict[str, Any]]:
        toast = {
            "html_id": TOAST_TEMPLATE_ID,
            "file_name": TOAST_TEMPLATE_FILE,
            "filling": {"autohide": "", "type": "", "app_name": "", "content": ""},
        }
        return [
            {
                "html_id": element["html_id"],
                "html": render_fragment(f"{TEMPLATE_ELEMENTS_DIR}/{element['file_name']}.html", **element["filling"]),
            }
            for element in self.template_elements + [toast]
        ]

    #
    # navigation
    #

    def add_main_menu_link(self, page_id: str, page_name: str, route: str) -> None:
        self.main_menu_links.append((page_id, page_name, route))

    def generate_main_menu_link(self, page_id: str, page_name: str, route: str) -> Markup:
        active = " active" if self.current_page_id == page_id else ""
        return Markup('<li class="nav-item"><a class="nav-link{}" href="{}">{}</a></li>').format(
            Markup(active), self.settings.url + route, page_name
        )

    def add_user_menu_item(self, content: str) -> None:
        self.user_menu_items.append(content)

    def generate_user_menu_item(self, content: str) -> Markup:
        return Markup('<span class="nav-item">{}</span>').format(content)

    def render(
        self,
        request: Request,
        template_name: str,
        context: Optional[Dict[str, Any]] = None,
        *,
        page_id: str = "",
        page_name: str = "",
        status_code: int = 200,
    ) -> HTMLResponse:
        self.current_page_id = page_id
        self.current_page_name = page_name

        full_context = {
            "app_name": self.settings.project_name,
            "app_url": self.settings.url,
            "dev_mode": self.settings.dev_mode,
            "page_id": page_id,
            "page_name": page_name,
            "main_menu": [self.generate_main_menu_link(*link) for link in self.main_menu_links],
            "user_menu": [self.generate_user_menu_item(item) for item in self.user_menu_items],
        }
        full_context.update(context or {})
        full_context["messages"] = self.pop_messages()
        full_context["template_elements"] = self._render_template_elements()
        return templates.TemplateResponse(request, template_name, full_context, status_code=status_code)


def view_manager(request: Request) -> ViewManager:
    return ViewManager(DictSessionStore(request.session), request.app.state.settings)
