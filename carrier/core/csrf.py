import logging
import secrets
from typing import Optional

from carrier.core.session import SessionStore


logger = logging.getLogger("carrier.csrf")

AJAX_CSRF_PREFIX = "csrf"
STATIC_CSRF_PREFIX = "carrier_csrf"


def generate_token() -> str:
    """Return a fresh 64-character hexadecimal token."""
    return secrets.token_hex(32)


class CsrfTokenManager:
    """Single-use CSRF tokens stored in the session, one slot per form id."""

    def __init__(self, session: SessionStore, prefix: str = AJAX_CSRF_PREFIX):
        self.session = session
        self.prefix = prefix

    def session_key(self, form_id: str) -> str:
        return f"{self.prefix}_{form_id}"

    def generate(self, form_id: str) -> str:
        """Mint a token for the form, replacing any token issued before."""
        token = generate_token()
        self.session.set(self.session_key(form_id), token)
        return token

    def validate(self, form_id: str, provided_token: Optional[str]) -> bool:
        """Check the token against the session.

        Any attempt that finds a stored token consumes it, whether or not the
        provided value matches, so a token can never be tried twice.
        """
        if not provided_token or not isinstance(provided_token, str):
            return False

        key = self.session_key(form_id)
        expected = self.session.get(key)
        if not expected:
            logger.info("csrf_token_missing", extra={"form_id": form_id})
            return False

        self.session.delete(key)
        if not secrets.compare_digest(expected.encode("utf-8"), provided_token.encode("utf-8")):
            logger.info("csrf_token_mismatch", extra={"form_id": form_id})
            return False

        return True
