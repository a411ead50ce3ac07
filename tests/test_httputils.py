import json
import threading
import time
from wsgiref.headers import Headers
from wsgiref.simple_server import WSGIRequestHandler, make_server
from wsgiref.util import setup_testing_defaults

import pytest

from opskit.cancel import background
from opskit.httputils import (
    MethodMux,
    ServeMux,
    cancelable_server,
    error_response,
    no_cache_headers,
    respond_json,
    wrap_with_error_handling,
)


def call(app, method="GET", path="/"):
    environ = {}
    setup_testing_defaults(environ)
    environ["REQUEST_METHOD"] = method
    environ["PATH_INFO"] = path
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app(environ, start_response))
    return captured["status"], captured["headers"], body


def text_app(text):
    def app(environ, start_response):
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [text.encode()]

    return app


def test_method_mux_routes_by_method():
    mux = MethodMux()
    mux.GET.handle("/hello", text_app("get"))
    mux.POST.handle("/hello", text_app("post"))
    assert call(mux, "GET", "/hello")[2] == b"get"
    assert call(mux, "POST", "/hello")[2] == b"post"


def test_method_mux_unsupported_method():
    status, _, body = call(MethodMux(), "PATCH", "/")
    assert status.startswith("400")
    assert body == b"unsupported method: PATCH\n"


def test_serve_mux_longest_prefix_wins():
    mux = ServeMux()
    mux.handle("/", text_app("root"))
    mux.handle("/api/", text_app("api"))
    assert call(mux, path="/api/users")[2] == b"api"
    assert call(mux, path="/other")[2] == b"root"


def test_serve_mux_not_found():
    mux = ServeMux()
    mux.handle("/exact", text_app("exact"))
    status, _, _ = call(mux, path="/exact/more")
    assert status.startswith("404")


def test_serve_mux_redirects_to_subtree():
    mux = ServeMux()
    mux.handle("/tree/", text_app("tree"))
    status, headers, _ = call(mux, path="/tree")
    assert status.startswith("301")
    assert headers["Location"] == "/tree/"


def test_serve_mux_rejects_duplicate_pattern():
    mux = ServeMux()
    mux.handle("/a", text_app("a"))
    with pytest.raises(ValueError):
        mux.handle("/a", text_app("b"))


def test_error_response_uses_status_text():
    status, headers, body = call(lambda environ, sr: error_response(sr, 404))
    assert status == "404 Not Found"
    assert body == b"Not Found\n"
    assert headers["Content-Type"].startswith("text/plain")


def test_no_cache_headers():
    headers = Headers([("Cache-Control", "max-age=60")])
    no_cache_headers(headers)
    assert headers.get_all("Cache-Control") == ["no-store, must-revalidate"]


def test_wrap_with_error_handling_reports_error():
    def failing(environ, start_response):
        raise RuntimeError("database is down")

    status, _, body = call(wrap_with_error_handling(failing))
    assert status.startswith("500")
    assert body == b"database is down\n"


def test_wrap_with_error_handling_passes_success_through():
    assert call(wrap_with_error_handling(text_app("fine")))[2] == b"fine"


def test_respond_json_round_trip():
    data = {"name": "<b>", "count": 3}
    status, headers, body = call(lambda environ, sr: respond_json(sr, data))
    assert status.startswith("200")
    assert headers["Content-Type"] == "application/json"
    assert json.loads(body) == data
    assert b"<" not in body


def test_respond_json_unencodable_is_500():
    status, _, _ = call(lambda environ, sr: respond_json(sr, {"x": object()}))
    assert status.startswith("500")


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, *args):
        pass


def test_cancelable_server_stops_on_cancel():
    server = make_server("127.0.0.1", 0, text_app("x"), handler_class=_QuietHandler)
    ctx = background()
    threading.Timer(0.1, ctx.cancel).start()
    started = time.monotonic()
    try:
        cancelable_server(ctx, server, server.serve_forever)
    finally:
        server.server_close()
    assert ctx.is_done()
    assert time.monotonic() - started < 5


def test_cancelable_server_propagates_listener_error():
    class _Server:
        shutdowns = 0

        def shutdown(self):
            self.shutdowns += 1

    server = _Server()

    def listener():
        raise OSError("address in use")

    with pytest.raises(OSError, match="address in use"):
        cancelable_server(background(), server, listener)
    time.sleep(0.05)
    assert server.shutdowns == 0