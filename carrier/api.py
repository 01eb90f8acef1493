import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable

from fastapi import Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from carrier.core.http import respond_json


logger = logging.getLogger("carrier.api")


def api_respond(status_code: int, data: Any, messages: Iterable[str] = ()) -> Response:
    """Reply with the API envelope ``{"data": ..., "messages": [...]}``."""
    return respond_json(status_code, {"data": data, "messages": list(messages)})


class ApiModel(ABC):
    """An endpoint that consumes a decoded JSON body and builds its own reply."""

    @abstractmethod
    def consume(self, content: Any) -> Response:
        ...


class ApiManager:
    async def call(self, api: ApiModel, request: Request) -> Response:
        raw = await request.body()
        if not raw:
            return await run_in_threadpool(api.consume, None)
        try:
            content = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            logger.info("api_body_not_json", extra={"path": request.url.path})
            return api_respond(400, None, ["Invalid JSON body."])
        return await run_in_threadpool(api.consume, content)
