import logging
from typing import Iterable, List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from carrier.core.http import METHOD_GET, METHODS, respond_json
from carrier.core.session import DictSessionStore, session_store
from carrier.forms.ajax import FORM_ID_FIELD, AjaxForm, AjaxRequest, collect_form_ids


logger = logging.getLogger("carrier.forms")


def _declared_form_id(ajax_request: AjaxRequest):
    if ajax_request.method == METHOD_GET:
        return ajax_request.query_params.get(FORM_ID_FIELD)
    return ajax_request.json_payload().get(FORM_ID_FIELD)


def _addressed(forms: List[AjaxForm], declared_form_id) -> List[AjaxForm]:
    return [form for form in forms if form.form_id == declared_form_id]


def build_ajax_forms_router(forms: Iterable[AjaxForm], path: str = "/ajax/forms") -> APIRouter:
    """Expose several AJAX forms on a single endpoint.

    Only the form named by the request's ``form-id`` sees it; a request
    naming no registered form never touches any form's session state.
    """
    registered = list(forms)
    collect_form_ids(registered)
    router = APIRouter(tags=["Forms"])

    @router.api_route(path, methods=list(METHODS), name="ajax_forms")
    async def ajax_forms(request: Request, session: DictSessionStore = Depends(session_store)) -> Response:
        ajax_request = await AjaxRequest.from_starlette(request)
        declared = _declared_form_id(ajax_request)

        for form in _addressed(registered, declared):
            response = await run_in_threadpool(form.handle, ajax_request, session)
            if response is not None:
                return response

        logger.info("ajax_form_not_found", extra={"form_id": declared, "method": ajax_request.method})
        return respond_json(status.HTTP_404_NOT_FOUND, {"detail": "Form not found"})

    return router
