"""Validation helpers shared by forms and repositories."""

import re
from typing import Any, Optional, Union

_UPPER_EXT = "A-ZÀ-ÖØ-Ý"
_LOWER_EXT = "a-zà-öø-ý"

TOKEN_PATTERN = re.compile(r"[0-9a-z]{32}")
PASSWORD_PATTERN = re.compile(
    rf"(?=.*[{_LOWER_EXT}])(?=.*[{_UPPER_EXT}])(?=.*\d).{{12,}}",
    re.DOTALL,
)
NIF_PATTERN = re.compile(r"[0-9]{8}[A-Z]")
NIE_PATTERN = re.compile(r"[XYZ][0-9]{7}[A-Z]")

# Check letters indexed by the id number modulo 23.
GOV_ID_CHECK_LETTERS = "TRWAGMYFPDXBNJZSQVHLCKE"


def ensure_utf8(value: Union[str, bytes, None]) -> Optional[str]:
    """Return text for ``value``, decoding bytes as UTF-8 or falling back to Latin-1."""
    if value is None or isinstance(value, str):
        return value
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


def _check_letter(number: str) -> str:
    return GOV_ID_CHECK_LETTERS[int(number) % 23]


def _validate_nif(candidate: str) -> bool:
    if not NIF_PATTERN.fullmatch(candidate):
        return False
    return candidate[8] == _check_letter(candidate[:8])


def _validate_nie(candidate: str) -> bool:
    if not NIE_PATTERN.fullmatch(candidate):
        return False
    prefix = str("XYZ".index(candidate[0]))
    return candidate[8] == _check_letter(prefix + candidate[1:8])


def validate_gov_id(value: Any) -> bool:
    """Validate a Spanish NIF or NIE, case-insensitively."""
    if not isinstance(value, str):
        return False
    candidate = value.upper()
    return _validate_nif(candidate) or _validate_nie(candidate)


def validate_token(value: Any) -> bool:
    """Validate an activation or recovery token (32 lowercase alphanumerics)."""
    return isinstance(value, str) and bool(TOKEN_PATTERN.fullmatch(value))


def validate_password(value: Any) -> bool:
    """At least 12 characters with a lowercase letter, an uppercase letter and a digit."""
    return isinstance(value, str) and bool(PASSWORD_PATTERN.fullmatch(value))
