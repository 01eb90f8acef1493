import logging
from typing import Any, Dict, Mapping, Optional

from markupsafe import Markup

from carrier.core.config import Settings
from carrier.core.csrf import STATIC_CSRF_PREFIX, CsrfTokenManager
from carrier.core.session import SessionStore
from carrier.core.templating import render_fragment
from carrier.core.views import ViewManager


logger = logging.getLogger("carrier.forms.static")

ACTION_FIELD = "action"
CSRF_TOKEN_FIELD = "csrf-token"

MESSAGE_CSRF_FAILED = "A security check failed. Please try again."


class StaticForm:
    """A classic HTML form posted with a full page reload.

    The hidden ``action`` input carries the form id so a page hosting several
    forms only processes the one that was sent. Subclasses override
    ``generate_fields`` and ``process``; processing errors are reported
    through the view manager's flash messages.
    """

    def __init__(self, form_id: str, settings: Settings, action: Optional[str] = None):
        self.form_id = form_id
        self.settings = settings
        self.action_url = settings.url + action if action else ""
        self._csrf_disabled = False
        self._html = Markup("")

    def force_disable_csrf_validation(self) -> None:
        self._csrf_disabled = True

    @property
    def csrf_enabled(self) -> bool:
        return not (self._csrf_disabled or self.settings.dev_mode)

    @property
    def html(self) -> Markup:
        return self._html

    def is_sent(self, data: Mapping[str, Any]) -> bool:
        return data.get(ACTION_FIELD) == self.form_id

    def handle(self, data: Mapping[str, Any], session: SessionStore, views: ViewManager) -> bool:
        """Process ``data`` if it was posted by this form; return whether it was."""
        if not self.is_sent(data):
            return False

        if self.csrf_enabled:
            manager = CsrfTokenManager(session, prefix=STATIC_CSRF_PREFIX)
            if not manager.validate(self.form_id, data.get(CSRF_TOKEN_FIELD)):
                logger.warning("static_form_csrf_failed", extra={"form_id": self.form_id})
                views.add_error_message(MESSAGE_CSRF_FAILED)
                return True

        self.process(dict(data), session, views)
        return True

    def initialize(self, session: SessionStore, preloaded: Optional[Dict[str, Any]] = None) -> Markup:
        """Render the form, issuing a new CSRF token when validation is enabled."""
        fields = self.generate_fields(preloaded or {})

        csrf_token = None
        if self.csrf_enabled:
            csrf_token = CsrfTokenManager(session, prefix=STATIC_CSRF_PREFIX).generate(self.form_id)

        self._html = render_fragment(
            "forms/static_form.html",
            form_id=self.form_id,
            action=self.action_url,
            csrf_token=csrf_token,
            csrf_token_field=CSRF_TOKEN_FIELD,
            fields=Markup(fields),
        )
        return self._html

    def generate_fields(self, preloaded: Dict[str, Any]) -> str:
        return ""

    def process(self, data: Dict[str, Any], session: SessionStore, views: ViewManager) -> None:
        pass
