import logging
from typing import Any, MutableMapping, Optional, Protocol

from fastapi import HTTPException, Request, status

from carrier.core.config import Settings


logger = logging.getLogger("carrier.session")

USER_SESSION_KEY = "carrier_session"


class SessionStore(Protocol):
    """String-keyed session state shared by CSRF, messages and login handling."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class DictSessionStore:
    """Adapts a mutable mapping (usually ``request.session``) to ``SessionStore``."""

    def __init__(self, data: MutableMapping[str, Any]):
        self._data = data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data


def session_store(request: Request) -> DictSessionStore:
    return DictSessionStore(request.session)


class SessionManager:
    """Tracks whether the current session belongs to a logged-in user."""

    def __init__(self, session: DictSessionStore, settings: Settings):
        self.session = session
        self.settings = settings

    @property
    def logged_in_user_id(self) -> Optional[Any]:
        return self.session.get(USER_SESSION_KEY)

    @property
    def is_logged_in(self) -> bool:
        return self.logged_in_user_id is not None

    def log_in(self, user_id: Any) -> None:
        # Drop whatever the anonymous session carried before binding the user.
        self.session.clear()
        self.session.set(USER_SESSION_KEY, user_id)
        logger.info("session_login", extra={"user_id": user_id})

    def log_out(self) -> None:
        user_id = self.logged_in_user_id
        self.session.clear()
        logger.info("session_logout", extra={"user_id": user_id})

    def require_logged_in(self, api: bool = False) -> None:
        if self.is_logged_in:
            return
        if api:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated.")
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Login required.",
            headers={"Location": self.settings.path_base + self.settings.login_path},
        )

    def require_not_logged_in(self, views, api: bool = False) -> None:
        if not self.is_logged_in:
            return
        if api:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Should not be authenticated.")
        views.add_error_message("You cannot access this page while logged in.")


def session_manager(request: Request) -> SessionManager:
    return SessionManager(DictSessionStore(request.session), request.app.state.settings)
