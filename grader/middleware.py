import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _request_id(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER, "")
    return inbound if _REQUEST_ID_RE.match(inbound) else uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign every request an id and log its start, end and failures."""

    def __init__(self, app, logger_name: str = "grader.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        request_id = _request_id(request)
        request.state.request_id = request_id
        path = request.url.path
        method = request.method
        self._logger.debug("http.request start id=%s method=%s path=%s", request_id, method, path)
        try:
            response: Response = await call_next(request)
        except Exception as e:
            dur_ms = int((time.time() - start) * 1000)
            self._logger.warning("http.request error id=%s method=%s path=%s dur_ms=%s err=%r",
                                 request_id, method, path, dur_ms, e)
            raise
        dur_ms = int((time.time() - start) * 1000)
        self._logger.debug("http.request end id=%s method=%s path=%s status=%s dur_ms=%s",
                           request_id, method, path, response.status_code, dur_ms)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
