import logging
from typing import Iterable, Mapping, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from markupsafe import Markup
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import PlainTextResponse

from carrier.api import ApiManager, ApiModel
from carrier.core.config import Settings, get_settings
from carrier.core.logging import configure_logging
from carrier.core.views import ViewManager, view_manager
from carrier.db.session import create_database_engine, create_session_factory
from carrier.forms.ajax import AjaxForm
from carrier.routers.forms import build_ajax_forms_router


logger = logging.getLogger("carrier.app")


def _api_endpoint(api: ApiModel):
    manager = ApiManager()

    async def endpoint(request: Request):
        return await manager.call(api, request)

    return endpoint


def create_app(
    settings: Optional[Settings] = None,
    *,
    ajax_forms: Iterable[AjaxForm] = (),
    api_models: Optional[Mapping[str, ApiModel]] = None,
    routers: Iterable[APIRouter] = (),
) -> FastAPI:
    """Build the application; this is the front controller every request goes through.

    Run with ``uvicorn --factory carrier.main:create_app``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.framework_log_level)
    forms = list(ajax_forms)

    app = FastAPI(title=settings.project_name, root_path=settings.path_base)
    app.state.settings = settings
    app.state.engine = create_database_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.ajax_forms = forms

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie_name,
        same_site=settings.session_cookie_same_site,
        https_only=settings.session_cookie_secure,
        max_age=settings.session_cookie_max_age,
    )

    app.include_router(build_ajax_forms_router(forms, path=settings.ajax_forms_path))
    for path, api in (api_models or {}).items():
        app.add_api_route(path, _api_endpoint(api), methods=["POST"], tags=["API"])
    for router in routers:
        app.include_router(router)

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request, views: ViewManager = Depends(view_manager)):
        views.add_main_menu_link("home", "Home", "/")
        buttons = Markup("").join(form.generate_button() for form in forms)
        return views.render(
            request,
            "site/page.html",
            {
                "heading": settings.project_name,
                "body": buttons,
                "modals": [form.generate_modal() for form in forms],
            },
            page_id="home",
            page_name="Home",
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            views = view_manager(request)
            return views.render(
                request,
                "site/page.html",
                {"heading": "Page not found", "body": "The page you requested does not exist."},
                page_id="404",
                page_name="Not found",
                status_code=404,
            )
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    logger.info("app_created", extra={"ajax_forms": [form.form_id for form in forms]})
    return app
