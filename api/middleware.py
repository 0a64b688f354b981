"""
Proof Middleware

Pure ASGI middleware that records the exchanges a Starlette/FastAPI app
serves. Request and response bytes are observed on their way through;
nothing the client receives is changed.

Usage:
    interceptor = ProofInterceptor(client, patterns=["/api/*"])
    app.add_middleware(ProofMiddleware, interceptor=interceptor)
"""

from __future__ import annotations

import logging
import time
from http import HTTPStatus

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.http.client import decode_body
from core.schemas.records import Exchange, RequestCapture, ResponseCapture

from api.interception import ProofInterceptor


logger = logging.getLogger(__name__)


def _headers(raw: list[tuple[bytes, bytes]]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for key, value in raw:
        name = key.decode("latin-1").lower()
        text = value.decode("latin-1")
        headers[name] = f"{headers[name]}, {text}" if name in headers else text
    return headers


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class ProofMiddleware:
    """Records qualifying HTTP exchanges through a ProofInterceptor."""

    def __init__(self, app: ASGIApp, interceptor: ProofInterceptor) -> None:
        self.app = app
        self.interceptor = interceptor

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.interceptor.should_record(scope["path"]):
            await self.app(scope, receive, send)
            return

        clock = self.interceptor.clock
        started_at = clock.now()
        started = time.perf_counter()
        request_body = bytearray()
        response_body = bytearray()
        response_start: dict[str, Message] = {}

        async def receive_and_capture() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_body.extend(message.get("body", b""))
            return message

        async def send_and_capture(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_start["message"] = message
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))
            await send(message)

        await self.app(scope, receive_and_capture, send_and_capture)

        if "message" not in response_start:
            return
        duration_ms = (time.perf_counter() - started) * 1000

        try:
            start = response_start["message"]
            status = start["status"]
            path = scope["path"]
            query = scope.get("query_string", b"").decode("latin-1")
            client = scope.get("client")
            ip = client[0] if client else None

            exchange = Exchange(
                request=RequestCapture(
                    url=f"{path}?{query}" if query else path,
                    method=scope["method"],
                    headers=_headers(scope.get("headers", [])),
                    body=decode_body(bytes(request_body)),
                    timestamp=started_at,
                    ip=ip,
                ),
                response=ResponseCapture(
                    status=status,
                    status_text=_reason(status),
                    headers=_headers(start.get("headers", [])),
                    body=decode_body(bytes(response_body)),
                    timestamp=clock.now(),
                    duration_ms=duration_ms,
                ),
            )
        except Exception:
            logger.exception(f"Failed to capture exchange for {scope.get('path')}")
            return

        # The response is already sent; this holds the request task open until
        # the anchor confirms. Batch mode only enqueues.
        await self.interceptor.handle(
            exchange,
            metadata={
                "ip": ip,
                "timestamp": int(started_at.timestamp() * 1000),
                "duration": duration_ms,
            },
        )
