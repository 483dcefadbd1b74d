"""
ASGI middleware enforcing the request body size limit.

The limit is checked against Content-Length when present and against the
bytes actually received otherwise, so chunked uploads are bounded too.
"""
from loguru import logger
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from agenda_gateway.config import MEGABYTE
from agenda_gateway.errors import PayloadTooLargeError


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_body_bytes`` with a 413.

    The body is read before the application runs and replayed to it as a
    single message; later ``receive`` calls go to the server so disconnects
    still reach the application.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: str):
        logger.warning(f"Rejected request body of {size} bytes (limit {self.max_body_bytes})")
        error = PayloadTooLargeError(
            f"La petición excede el límite de {self.max_body_bytes / MEGABYTE:g} MB"
        )
        response = JSONResponse(status_code=error.status_code, content=error.to_payload())
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_bytes:
            await self._reject(scope, receive, send, content_length)
            return

        chunks = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                logger.warning("Client disconnected while sending the request body")
                return
            body = message.get("body", b"")
            received += len(body)
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, f"more than {received}")
                return
            chunks.append(body)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay_receive, send)
