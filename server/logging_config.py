"""JSON logging for the Memsync service.

Every line carries the request ID of the hook call that produced it. Records
logged with ``extra={"user_id": ..., "outcome": ..., "delivery_id": ...}``
keep those keys as top-level JSON fields, and the access line of an event
request names the sync outcome and delivery row the request produced.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

OUTCOME_HEADER = "X-Memsync-Outcome"
DELIVERY_HEADER = "X-Memsync-Delivery"

SYNC_FIELDS = ("user_id", "outcome", "delivery_id", "attempts")


class JSONFormatter(logging.Formatter):
    def __init__(self, service_name: str = "memsync", **kwargs):
        super().__init__(**kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": request_id_var.get("-"),
        }
        for key in SYNC_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def access_line(request: Request, response: Response, elapsed_ms: float, rid: str) -> str:
    line = f"{request.method} {request.url.path} {response.status_code} {elapsed_ms}ms rid={rid}"
    outcome = response.headers.get(OUTCOME_HEADER)
    if outcome:
        line += f" outcome={outcome} delivery={response.headers.get(DELIVERY_HEADER, '-')}"
    return line


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("X-Request-ID", uuid.uuid4().hex[:12])
        token = request_id_var.set(rid)
        start = time.monotonic()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.monotonic() - start) * 1000, 1)
            response.headers["X-Request-ID"] = rid
            logging.getLogger("memsync.access").info(access_line(request, response, elapsed_ms, rid))
        finally:
            request_id_var.reset(token)
        return response


def setup_logging(service_name: str = "memsync") -> None:
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for h in root.handlers[:]:
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter(service_name))
    root.addHandler(handler)
    # hook traffic is already covered by the memsync.access line
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
