"""Small WSGI helpers: per-method routing, error and JSON responses, cancelable servers."""

from __future__ import annotations

import json
import sys
import threading
from collections.abc import Callable, Iterable, MutableMapping
from concurrent.futures import Future
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Protocol

from opskit.cancel import Context

WSGIApp = Callable[[dict, Callable[..., Any]], Iterable[bytes]]

# same as nginx; mitigates slowloris
DEFAULT_READ_HEADER_TIMEOUT = 60.0


class _Shutdownable(Protocol):
    def shutdown(self) -> Any: ...


def _status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


def _status_line(status_code: int) -> str:
    text = _status_text(status_code)
    return f"{status_code} {text}" if text else f"{status_code} Unknown"


def _http_error(
    start_response: Callable[..., Any],
    message: str,
    status_code: int,
    exc_info: Any = None,
) -> list[bytes]:
    body = (message + "\n").encode("utf-8")
    headers = [
        ("Content-Type", "text/plain; charset=utf-8"),
        ("X-Content-Type-Options", "nosniff"),
        ("Content-Length", str(len(body))),
    ]
    if exc_info is None:
        start_response(_status_line(status_code), headers)
    else:
        start_response(_status_line(status_code), headers, exc_info)
    return [body]


def error_response(start_response: Callable[..., Any], status_code: int) -> list[bytes]:
    """Respond with ``status_code`` and its standard text as a plain-text body."""
    return _http_error(start_response, _status_text(status_code), status_code)


def no_cache_headers(headers: MutableMapping[str, str]) -> None:
    """Forbid caching of the response."""
    headers["Cache-Control"] = "no-store, must-revalidate"


class ServeMux:
    """Routes requests by path.

    A pattern ending in "/" matches its whole subtree, other patterns match
    exactly; the longest matching pattern wins.
    """

    def __init__(self) -> None:
        self._routes: dict[str, WSGIApp] = {}
        self._lock = threading.Lock()

    def handle(self, pattern: str, handler: WSGIApp) -> None:
        if not pattern:
            raise ValueError("http: invalid pattern")
        if handler is None:
            raise ValueError("http: nil handler")
        with self._lock:
            if pattern in self._routes:
                raise ValueError(f"http: multiple registrations for {pattern}")
            self._routes[pattern] = handler

    def _match(self, path: str) -> WSGIApp | None:
        with self._lock:
            exact = self._routes.get(path)
            if exact is not None:
                return exact
            best = max(
                (p for p in self._routes if p.endswith("/") and path.startswith(p)),
                key=len,
                default=None,
            )
            return self._routes[best] if best is not None else None

    def _has_pattern(self, pattern: str) -> bool:
        with self._lock:
            return pattern in self._routes

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"
        handler = self._match(path)
        if handler is not None:
            return handler(environ, start_response)

        if self._has_pattern(path + "/"):
            location = path + "/"
            query = environ.get("QUERY_STRING", "")
            if query:
                location += "?" + query
            body = f'<a href="{location}">Moved Permanently</a>.\n\n'.encode("utf-8")
            start_response(
                _status_line(301),
                [
                    ("Location", location),
                    ("Content-Type", "text/html; charset=utf-8"),
                    ("Content-Length", str(len(body))),
                ],
            )
            return [body]

        return _http_error(start_response, "404 page not found", 404)


@dataclass
class MethodMux:
    """Separate path routing for each supported HTTP method."""

    GET: ServeMux = field(default_factory=ServeMux)
    HEAD: ServeMux = field(default_factory=ServeMux)
    POST: ServeMux = field(default_factory=ServeMux)
    PUT: ServeMux = field(default_factory=ServeMux)
    DELETE: ServeMux = field(default_factory=ServeMux)

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "")
        mux = {
            "GET": self.GET,
            "HEAD": self.HEAD,
            "POST": self.POST,
            "PUT": self.PUT,
            "DELETE": self.DELETE,
        }.get(method)
        if mux is None:
            return _http_error(start_response, f"unsupported method: {method}", 400)
        return mux(environ, start_response)


def cancelable_server(ctx: Context, server: _Shutdownable, listener: Callable[[], Any]) -> None:
    """Run ``listener()`` (e.g. ``server.serve_forever``), shutting the server down on cancellation.

    Raises what the listener raised, or what shutting down raised.
    """
    shutdowner_ctx = ctx.child()
    listener_finished = threading.Event()
    shutdown_result: Future[None] = Future()
    shutdown_started = threading.Event()

    def shutdowner() -> None:
        shutdowner_ctx.wait()
        if listener_finished.is_set():
            return  # listener exited on its own; nothing is serving to shut down
        shutdown_started.set()
        try:
            server.shutdown()
        except BaseException as err:
            shutdown_result.set_exception(err)
        else:
            shutdown_result.set_result(None)

    threading.Thread(target=shutdowner, daemon=True).start()

    try:
        listener()
    finally:
        if not shutdown_started.is_set():
            listener_finished.set()
        shutdowner_ctx.cancel()

    if shutdown_started.is_set():
        shutdown_result.result()


def wrap_with_error_handling(inner: WSGIApp) -> WSGIApp:
    """A WSGI app that answers 500 with the message of whatever ``inner`` raised."""

    def app(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        try:
            return list(inner(environ, start_response))
        except Exception as err:
            return _http_error(start_response, str(err), 500, sys.exc_info())

    return app


def _encode_json(data: Any) -> bytes:
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    text = (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return (text + "\n").encode("utf-8")


def respond_json(start_response: Callable[..., Any], data: Any) -> list[bytes]:
    """Respond 200 with ``data`` encoded as JSON; 500 if it cannot be encoded."""
    try:
        body = _encode_json(data)
    except (TypeError, ValueError) as err:
        return _http_error(start_response, str(err), 500)
    start_response(
        _status_line(200),
        [("Content-Type", "application/json"), ("Content-Length", str(len(body)))],
    )
    return [body]