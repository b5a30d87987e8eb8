"""WSGI middlewares for gzip transfer encoding and request logging."""

from __future__ import annotations

import gzip
import time
import zlib
from typing import Any, Callable, Iterable, List, Optional, Tuple
from urllib.parse import quote

from io import BytesIO

from werkzeug.wsgi import get_input_stream

from .logger import get_logger

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]
Headers = List[Tuple[str, str]]


def _run_buffered(app: WSGIApp, environ: dict) -> Tuple[str, Headers, bytes]:
    """Call ``app`` and collect its status, headers and whole body."""
    captured: dict[str, Any] = {}
    chunks: List[bytes] = []

    def start_response(status: str, headers: Headers, exc_info: Optional[tuple] = None):
        captured["status"] = status
        captured["headers"] = list(headers)
        return chunks.append

    result = app(environ, start_response)
    try:
        for chunk in result:
            chunks.append(chunk)
    finally:
        close = getattr(result, "close", None)
        if close is not None:
            close()
    return captured.get("status", "200 OK"), captured.get("headers", []), b"".join(chunks)


def _decompress(data: bytes) -> bytes:
    if not data:
        raise EOFError("empty gzip body")
    return gzip.decompress(data)


def gzip_middleware(app: WSGIApp) -> WSGIApp:
    """Decompress gzip request bodies and gzip responses for clients that accept it.

    A request body that cannot be decompressed is answered with 400 Bad Request.
    """

    def middleware(environ: dict, start_response: Callable) -> Iterable[bytes]:
        if environ.get("HTTP_CONTENT_ENCODING") == "gzip":
            raw = get_input_stream(environ).read()
            try:
                body = _decompress(raw)
            except (OSError, EOFError, zlib.error):
                start_response("400 Bad Request", [("Content-Length", "0")])
                return [b""]
            environ["wsgi.input"] = BytesIO(body)
            environ["CONTENT_LENGTH"] = str(len(body))

        if "gzip" not in environ.get("HTTP_ACCEPT_ENCODING", ""):
            return app(environ, start_response)

        status, headers, body = _run_buffered(app, environ)
        compressed = gzip.compress(body)
        kept = [
            (name, value)
            for name, value in headers
            if name.lower() not in ("content-length", "content-encoding")
        ]
        kept.append(("Content-Encoding", "gzip"))
        kept.append(("Content-Length", str(len(compressed))))
        start_response(status, kept)
        return [compressed]

    return middleware


def _request_uri(environ: dict) -> str:
    uri = environ.get("REQUEST_URI") or environ.get("RAW_URI")
    if uri:
        return uri
    path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
    quoted = quote(path.encode("latin-1", "replace"), safe="/")
    query = environ.get("QUERY_STRING")
    return f"{quoted}?{query}" if query else quoted


def logging_middleware(app: WSGIApp) -> WSGIApp:
    """Log each request's method, URI and duration, and the response's status and size."""

    def middleware(environ: dict, start_response: Callable) -> Iterable[bytes]:
        started = time.perf_counter()
        status, headers, body = _run_buffered(app, environ)
        duration = time.perf_counter() - started

        log = get_logger()
        log.info(
            "Request method=%s uri=%s duration=%.6fs",
            environ.get("REQUEST_METHOD", ""),
            _request_uri(environ),
            duration,
        )
        try:
            status_code = int(status.split(" ", 1)[0])
        except ValueError:
            status_code = 0
        log.info("Response status=%d response_size=%d", status_code, len(body))

        start_response(status, headers)
        return [body]

    return middleware