# diskmanager/backend/limits.py

from fastapi import HTTPException
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from shared.logging_config import setup_logger

logger = setup_logger(__name__)

class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_body_size`` bytes.

    A declared Content-Length over the limit is answered with 413 before the
    app runs. Bodies without one (chunked uploads) are counted as they are
    received and abort the request with 413 once they cross the limit.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = None
        for key, value in scope.get("headers", []):
            if key == b"content-length":
                try:
                    content_length = int(value)
                except ValueError:
                    logger.warning(f"Invalid content-length header: {value!r}")
                break

        if content_length is not None and content_length > self.max_body_size:
            logger.warning(
                f"Rejected {scope.get('path')}: declared body of {content_length} bytes "
                f"exceeds limit of {self.max_body_size}"
            )
            response = JSONResponse({"detail": "Request body too large"}, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    logger.warning(
                        f"Aborted {scope.get('path')}: streamed body exceeded limit of {self.max_body_size} bytes"
                    )
                    raise HTTPException(status_code=413, detail="Request body too large")
            return message

        await self.app(scope, limited_receive, send)
