# utmbot/middleware/request_logger.py
import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("utmbot.http")


class RequestLoggerMiddleware:
    """
    Logs every HTTP request with method, path, status and duration.
    X-Req-Id from the client is echoed in the log line when present.
    """
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status = {"code": 500}
        headers = dict(scope.get("headers") or [])
        rid = headers.get(b"x-req-id", b"-").decode("latin-1")
        method, path = scope.get("method", "-"), scope.get("path", "-")

        async def send_wrapper(message: Message):
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        logger.debug("[HTTP ►] rid=%s %s %s", rid, method, path)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            dur_ms = (time.perf_counter() - start) * 1000
            logger.info("[HTTP ◄] rid=%s %s %s status=%s in %.1fms", rid, method, path, status["code"], dur_ms)
