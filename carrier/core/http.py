from typing import Any, Mapping

from fastapi.responses import JSONResponse


METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_DELETE = "DELETE"
METHOD_PATCH = "PATCH"

METHODS = (METHOD_GET, METHOD_POST, METHOD_PUT, METHOD_DELETE, METHOD_PATCH)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class JsonResponse(JSONResponse):
    """JSON response that always declares the UTF-8 charset."""

    media_type = JSON_CONTENT_TYPE


def respond_json(status_code: int, data: Mapping[str, Any]) -> JsonResponse:
    return JsonResponse(dict(data), status_code=status_code)


def respond_json_ok(data: Mapping[str, Any]) -> JsonResponse:
    """Return a 200 response with ``status: ok`` merged under the given data."""
    return respond_json(200, {"status": "ok", **data})
