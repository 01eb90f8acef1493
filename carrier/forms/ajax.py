"""AJAX form handling.

An AJAX form is fetched and submitted by browser-side code that only speaks
JSON. The lifecycle is:

1. The page renders the form's modal (``generate_modal``) with empty inputs.
2. When the modal opens, the browser issues a GET carrying ``form-id`` (and
   optionally a unique id) in the query string. The form answers with its
   default data plus a fresh ``csrf-token``.
3. The browser submits the filled form with the form's declared method and a
   JSON body carrying ``form-id`` and ``csrf-token``. The token is checked and
   consumed, then ``process_submit`` builds the response.

Several forms can share one endpoint: a form that does not recognise the
``form-id`` of a request returns ``None`` and leaves the request to the next
form. Every error envelope carries a new token so the client can retry.

Envelope fields::

    {
        "status": "ok" | "error",
        "form-id": <form id>,
        "csrf-token": <fresh token>,
        "error": <http status code>,        # errors only
        "messages": [<message>, ...],       # errors only
        ...                                 # default data fields on success
    }
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from fastapi import Request
from fastapi.responses import Response
from markupsafe import Markup

from carrier.core.csrf import AJAX_CSRF_PREFIX, CsrfTokenManager
from carrier.core.http import JSON_CONTENT_TYPE, METHOD_GET, METHODS, JsonResponse
from carrier.core.session import SessionStore
from carrier.core.templating import render_fragment


logger = logging.getLogger("carrier.forms.ajax")

FORM_ID_FIELD = "form-id"
CSRF_TOKEN_FIELD = "csrf-token"

TARGET_OBJECT_NAME_ATTR = "ajax-target-object-name"
READ_ONLY_ATTR = "ajax-read-only"
SUBMIT_URL_ATTR = "ajax-submit-url"
SUBMIT_METHOD_ATTR = "ajax-submit-method"
ON_SUCCESS_EVENT_NAME_ATTR = "ajax-on-success-event-name"
ON_SUCCESS_EVENT_TARGET_ATTR = "ajax-on-success-event-target"

MESSAGE_CONTENT_TYPE_NOT_SUPPORTED = "Content type not supported"
MESSAGE_METHOD_NOT_SUPPORTED = "Method not supported"
MESSAGE_CSRF_FAILED = "CSRF validation failed. Please reload the form."


@dataclass(frozen=True)
class AjaxRequest:
    """The parts of an HTTP request an AJAX form looks at."""

    method: str
    content_type: Optional[str] = None
    query_params: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    async def from_starlette(cls, request: Request) -> "AjaxRequest":
        return cls(
            method=request.method.upper(),
            content_type=request.headers.get("content-type"),
            query_params=dict(request.query_params),
            body=await request.body(),
        )

    @property
    def has_json_content_type(self) -> bool:
        return (self.content_type or "").lower() == JSON_CONTENT_TYPE.lower()

    def json_payload(self) -> Dict[str, Any]:
        """Decode the body as a JSON object; anything else yields an empty mapping."""
        if not self.body:
            return {}
        try:
            data = json.loads(self.body)
        except (ValueError, UnicodeDecodeError):
            logger.info("ajax_body_not_json", extra={"size": len(self.body)})
            return {}
        return data if isinstance(data, dict) else {}


class AjaxResponse(JsonResponse):
    """JSON envelope response; ``envelope`` keeps the unserialised body."""

    def __init__(self, envelope: Dict[str, Any], status_code: int = 200):
        self.envelope = envelope
        super().__init__(envelope, status_code=status_code)


class AjaxOkResponse(AjaxResponse):
    def __init__(self, fields: Mapping[str, Any]):
        super().__init__({"status": "ok", **fields}, status_code=200)


class AjaxErrorResponse(AjaxResponse):
    def __init__(self, form_id: str, csrf_token: str, http_code: int, messages: Iterable[str]):
        self.http_code = http_code
        self.messages = [messages] if isinstance(messages, str) else list(messages)
        super().__init__(
            {
                "status": "error",
                FORM_ID_FIELD: form_id,
                CSRF_TOKEN_FIELD: csrf_token,
                "error": http_code,
                "messages": self.messages,
            },
            status_code=http_code,
        )


def hateoas_select_link(rel: str, select_type: str, data: Any) -> Dict[str, Any]:
    """Describe a selectable related resource, following HATEOAS link conventions.

    ``select_type`` is ``"multi"`` or ``"single"``; scalar ``data`` is wrapped
    in a list and mappings contribute their values.
    """
    if isinstance(data, Mapping):
        items = list(data.values())
    elif isinstance(data, (list, tuple)):
        items = list(data)
    else:
        items = [data]
    return {"rel": rel, "selectType": select_type, "data": items}


class AjaxForm(ABC):
    """Base class for AJAX forms.

    Subclasses provide ``process_submit`` and usually ``get_default_data`` and
    ``generate_form_inputs``.
    """

    def __init__(
        self,
        form_id: str,
        form_name: str,
        target_object_name: Optional[str] = None,
        submit_url: Optional[str] = None,
        expected_submit_method: Optional[str] = None,
    ):
        if expected_submit_method and expected_submit_method not in METHODS:
            raise ValueError(f'Unsupported submit method "{expected_submit_method}".')

        self.form_id = form_id
        self.form_name = form_name
        self.target_object_name = target_object_name
        self.submit_url = submit_url
        self.expected_submit_method = expected_submit_method
        self.on_success_event_name: Optional[str] = None
        self.on_success_event_target: Optional[str] = None
        self._read_only = False
        self._session: Optional[SessionStore] = None

    def set_on_success(self, event_name: str, event_target: str) -> None:
        self.on_success_event_name = event_name
        self.on_success_event_target = event_target

    def set_read_only(self) -> None:
        self._read_only = True

    @property
    def is_read_only(self) -> bool:
        return self._read_only

    #
    # request handling
    #

    def handle(self, request: AjaxRequest, session: SessionStore) -> Optional[Response]:
        """Answer ``request`` if it is addressed to this form, else return None."""
        bound = copy.copy(self)
        bound._session = session
        return bound._dispatch(request)

    def _dispatch(self, request: AjaxRequest) -> Optional[Response]:
        if not request.has_json_content_type:
            logger.info(
                "ajax_content_type_rejected",
                extra={"form_id": self.form_id, "content_type": request.content_type},
            )
            return self.respond_error(400, [MESSAGE_CONTENT_TYPE_NOT_SUPPORTED])

        if request.method == METHOD_GET:
            if request.query_params.get(FORM_ID_FIELD) != self.form_id:
                return None
            return self.process_initial_data(request.query_params)

        if self.is_read_only or request.method != self.expected_submit_method:
            logger.info("ajax_method_rejected", extra={"form_id": self.form_id, "method": request.method})
            return self.respond_error(400, [MESSAGE_METHOD_NOT_SUPPORTED])

        data = request.json_payload()
        if data.get(FORM_ID_FIELD) != self.form_id:
            return None

        if not self.csrf.validate(self.form_id, data.get(CSRF_TOKEN_FIELD)):
            logger.warning("ajax_csrf_failed", extra={"form_id": self.form_id})
            return self.respond_error(400, [MESSAGE_CSRF_FAILED])

        response = self.process_submit(data)
        if response is None:
            return Response(status_code=204)
        return response

    def process_initial_data(self, request_data: Mapping[str, Any]) -> Response:
        default_data = self.get_default_data(dict(request_data))

        if default_data.get("status") == "error":
            return self.respond_error(default_data.get("error", 400), default_data.get("messages", []))

        hidden = {FORM_ID_FIELD: self.form_id, CSRF_TOKEN_FIELD: self.csrf.generate(self.form_id)}
        return AjaxOkResponse({**hidden, **default_data})

    #
    # collaborator hooks
    #

    def get_default_data(self, request_data: Dict[str, Any]) -> Dict[str, Any]:
        """Data used to fill the form when it is opened.

        ``request_data`` holds the GET parameters (for instance a unique id of
        the record being edited). Return ``{"status": "error", "error": <code>,
        "messages": [...]}`` to reject the request.
        """
        return {}

    @abstractmethod
    def process_submit(self, data: Dict[str, Any]) -> Optional[Response]:
        """Handle a submission whose CSRF token has already been validated."""

    def generate_form_inputs(self) -> str:
        return ""

    #
    # response helpers for subclasses
    #

    @property
    def csrf(self) -> CsrfTokenManager:
        if self._session is None:
            raise RuntimeError("CSRF tokens are only available while handling a request.")
        return CsrfTokenManager(self._session, prefix=AJAX_CSRF_PREFIX)

    def respond_error(self, http_code: int, messages: Iterable[str]) -> AjaxErrorResponse:
        return AjaxErrorResponse(self.form_id, self.csrf.generate(self.form_id), http_code, messages)

    def respond_ok(self, fields: Optional[Mapping[str, Any]] = None) -> AjaxOkResponse:
        return AjaxOkResponse({FORM_ID_FIELD: self.form_id, **(fields or {})})

    #
    # HTML
    #

    def generate_modal(self) -> Markup:
        data_attrs = {
            TARGET_OBJECT_NAME_ATTR: self.target_object_name or "",
            READ_ONLY_ATTR: "true" if self.is_read_only else "false",
            SUBMIT_URL_ATTR: self.submit_url or "",
            SUBMIT_METHOD_ATTR: self.expected_submit_method or "",
        }
        if self.on_success_event_name:
            data_attrs[ON_SUCCESS_EVENT_NAME_ATTR] = self.on_success_event_name
        if self.on_success_event_target:
            data_attrs[ON_SUCCESS_EVENT_TARGET_ATTR] = self.on_success_event_target

        return render_fragment(
            "forms/ajax_modal.html",
            form_id=self.form_id,
            form_name=self.form_name,
            form_id_field=FORM_ID_FIELD,
            csrf_token_field=CSRF_TOKEN_FIELD,
            data_attrs=data_attrs,
            read_only=self.is_read_only,
            inputs=Markup(self.generate_form_inputs()),
        )

    def generate_button(self, content: Optional[str] = None, unique_id: Any = None, small: bool = False) -> Markup:
        return render_fragment(
            "forms/ajax_button.html",
            form_id=self.form_id,
            content=content or self.form_name,
            unique_id=unique_id,
            small=small,
        )


def collect_form_ids(forms: Iterable[AjaxForm]) -> List[str]:
    """Return the ids of ``forms``, refusing duplicates."""
    seen: List[str] = []
    for form in forms:
        if form.form_id in seen:
            raise ValueError(f'Duplicate AJAX form id "{form.form_id}".')
        seen.append(form.form_id)
    return seen
