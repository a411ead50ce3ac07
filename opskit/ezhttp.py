"""HTTP requests with sane defaults.

Non-2xx responses are errors unless tolerated explicitly, and sending or
receiving JSON needs little ceremony; receiving JSON forces a choice about
unknown fields.
"""

from __future__ import annotations

import base64
import io
import json
import os
import ssl
import string
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from opskit.cookies import Cookie
from opskit.jsonfile import unmarshal_allow_unknown_fields, unmarshal_disallow_unknown_fields

JSON_CONTENT_TYPE = "application/json"
DEFAULT_TIMEOUT_10S = 10.0

_ERROR_SAMPLE_LENGTH = 128
_TOKEN_CHARS = frozenset("!#$%&'*+-.^_`|~" + string.ascii_letters + string.digits)

_DEFAULT_SESSION = requests.Session()

INSECURE_TLS_CLIENT = requests.Session()
INSECURE_TLS_CLIENT.verify = False


def _canonical_header_key(key: str) -> str:
    """"x-correlation-id" => "X-Correlation-Id"; keys with odd characters are left alone."""
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class ResponseStatusError(Exception):
    """The server answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, response: requests.Response | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


@dataclass
class Config:
    """A request being prepared, along with how its response is to be handled."""

    abort: Optional[BaseException] = None  # a hook may set this to stop the request
    session: requests.Session = field(default_factory=lambda: _DEFAULT_SESSION)
    request: Optional[requests.Request] = None
    tolerate_non_2xx_response: bool = False
    request_body: Any = None
    outputs_json: bool = False
    outputs_json_into: Any = None
    outputs_json_allow_unknown_fields: bool = False
    timeout: Optional[float] = None

    def send(self) -> requests.Response:
        """Send the request; raise :class:`ResponseStatusError` on a non-2xx response."""
        if self.abort is not None:
            raise self.abort
        assert self.request is not None

        prepared = self.session.prepare_request(self.request)
        resp = self.session.send(prepared, timeout=self.timeout)

        # 304 is only expected when the caller sent caching headers
        if resp.status_code == 304 and self.request.headers.get("If-None-Match"):
            return resp

        if not self.tolerate_non_2xx_response and not 200 <= resp.status_code <= 299:
            raise _error_with_response_body_sample(resp)

        if self.outputs_json:
            decode = (
                unmarshal_allow_unknown_fields
                if self.outputs_json_allow_unknown_fields
                else unmarshal_disallow_unknown_fields
            )
            decode(io.BytesIO(resp.content), self.outputs_json_into)

        return resp

    def curl_equivalent(self) -> list[str]:
        """The request as the arguments of an equivalent curl command."""
        if self.abort is not None:
            raise self.abort
        assert self.request is not None

        cmd = ["curl", "--request=" + self.request.method]
        cmd.extend(f"--header={key}={value}" for key, value in self.request.headers.items())
        cmd.append(self.request.url)
        return cmd


ConfigHook = Callable[[Config], None]


@dataclass(frozen=True)
class ConfigPiece:
    """Hooks run before the request exists (for the body) and after it is created."""

    before_init: Optional[ConfigHook] = None
    after_init: Optional[ConfigHook] = None


NO_OP_CONFIG = ConfigPiece()


def after(fn: ConfigHook) -> ConfigPiece:
    """A piece that runs once the request has been created."""
    return ConfigPiece(after_init=fn)


def before(fn: ConfigHook) -> ConfigPiece:
    """A piece that runs before the request exists (``Config.request`` is None)."""
    return ConfigPiece(before_init=fn)


def header(key: str, value: str) -> ConfigPiece:
    def apply(conf: Config) -> None:
        conf.request.headers[_canonical_header_key(key)] = value

    return after(apply)


def cookie(cookie: Cookie) -> ConfigPiece:
    def apply(conf: Config) -> None:
        pair = f"{cookie.name}={cookie.value}"
        existing = conf.request.headers.get("Cookie")
        conf.request.headers["Cookie"] = f"{existing}; {pair}" if existing else pair

    return after(apply)


def auth_basic(username: str, password: str) -> ConfigPiece:
    credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return header("Authorization", "Basic " + credentials)


def auth_bearer(token: str) -> ConfigPiece:
    return header("Authorization", "Bearer " + token)


def send_json(obj: Any) -> ConfigPiece:
    def before_init(conf: Config) -> None:
        try:
            conf.request_body = json.dumps(obj, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as err:
            conf.abort = err

    def after_init(conf: Config) -> None:
        conf.request.headers["Content-Type"] = JSON_CONTENT_TYPE

    return ConfigPiece(before_init=before_init, after_init=after_init)


def send_body(body: Any, content_type: str) -> ConfigPiece:
    def before_init(conf: Config) -> None:
        conf.request_body = body

    def after_init(conf: Config) -> None:
        conf.request.headers["Content-Type"] = content_type

    return ConfigPiece(before_init=before_init, after_init=after_init)


def _responds_json(into: Any, allow_unknown_fields: bool) -> ConfigPiece:
    def apply(conf: Config) -> None:
        if not conf.request.headers.get("Accept"):  # keep an explicit Accept header
            conf.request.headers["Accept"] = JSON_CONTENT_TYPE
        conf.outputs_json = True
        conf.outputs_json_into = into
        conf.outputs_json_allow_unknown_fields = allow_unknown_fields

    return after(apply)


def responds_json_allow_unknown_fields(into: Any) -> ConfigPiece:
    """Decode the JSON response into ``into``; the server may add new fields."""
    return _responds_json(into, True)


def responds_json_disallow_unknown_fields(into: Any) -> ConfigPiece:
    """Decode the JSON response into ``into``; unknown fields are an error."""
    return _responds_json(into, False)


def client(session: requests.Session) -> ConfigPiece:
    def apply(conf: Config) -> None:
        conf.session = session

    return after(apply)


def _tolerate(conf: Config) -> None:
    conf.tolerate_non_2xx_response = True


TOLERATE_NON_2XX_RESPONSE = after(_tolerate)


class _SSLContextAdapter(HTTPAdapter):
    def __init__(self, context: ssl.SSLContext) -> None:
        self._context = context
        super().__init__()

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> Any:
        kwargs["ssl_context"] = self._context
        return super().init_poolmanager(*args, **kwargs)


_key_logging_lock = threading.Lock()
_key_logging_cache: dict[str, requests.Session] = {}


def _key_logging_session() -> requests.Session:
    with _key_logging_lock:
        cached = _key_logging_cache.get("session")
        if cached is not None:
            return cached

        name = os.environ.get("SSLKEYLOGFILE", "")
        if name:
            context = ssl.create_default_context()
            try:
                context.keylog_filename = name
            except OSError as err:
                raise RuntimeError(f"SSLKEYLOGFILE requested but: {err}") from err
            session = requests.Session()
            session.mount("https://", _SSLContextAdapter(context))
        else:
            session = _DEFAULT_SESSION

        _key_logging_cache["session"] = session
        return session


def _use_key_logging_session(conf: Config) -> None:
    conf.session = _key_logging_session()


# opt-in: log TLS secrets to the file named by SSLKEYLOGFILE, if it is set
ENABLE_TLS_KEY_LOG = after(_use_key_logging_session)


def _new_request(method: str, url: str, pieces: tuple[ConfigPiece, ...]) -> Config:
    conf = Config()

    for piece in pieces:
        if piece.before_init is not None:
            piece.before_init(conf)

    if conf.abort is not None:
        return conf

    if conf.request_body is not None and method in ("GET", "HEAD"):
        conf.abort = ValueError(f"ezhttp: {method} with non-nil body is usually a mistake")
        return conf

    try:
        urlsplit(url)
    except ValueError as err:
        conf.abort = err
        return conf

    conf.request = requests.Request(
        method=method,
        url=url,
        headers=CaseInsensitiveDict(),
        data=conf.request_body,
    )

    for piece in pieces:
        if piece.after_init is not None:
            piece.after_init(conf)

    return conf


def _error_with_response_body_sample(resp: requests.Response) -> ResponseStatusError:
    sample = resp.content[:_ERROR_SAMPLE_LENGTH]
    truncated = ".." if len(sample) == _ERROR_SAMPLE_LENGTH else ""
    text = sample.decode("utf-8", errors="replace") if sample else "<no response body>"
    status = f"{resp.status_code} {resp.reason}" if resp.reason else str(resp.status_code)
    return ResponseStatusError(f"{status}; {text}{truncated}", resp.status_code, resp)


def new_get(url: str, *args: ConfigPiece) -> Config:
    """Prepare a GET request without sending it."""
    return _new_request("GET", url, args)


def new_post(url: str, *args: ConfigPiece) -> Config:
    """Prepare a POST request without sending it."""
    return _new_request("POST", url, args)


def new_put(url: str, *args: ConfigPiece) -> Config:
    """Prepare a PUT request without sending it."""
    return _new_request("PUT", url, args)


def new_head(url: str, *args: ConfigPiece) -> Config:
    """Prepare a HEAD request without sending it."""
    return _new_request("HEAD", url, args)


def new_delete(url: str, *args: ConfigPiece) -> Config:
    """Prepare a DELETE request without sending it."""
    return _new_request("DELETE", url, args)


def get(url: str, *args: ConfigPiece) -> requests.Response:
    return new_get(url, *args).send()


def post(url: str, *args: ConfigPiece) -> requests.Response:
    return new_post(url, *args).send()


def put(url: str, *args: ConfigPiece) -> requests.Response:
    return new_put(url, *args).send()


def head(url: str, *args: ConfigPiece) -> requests.Response:
    return new_head(url, *args).send()


def delete(url: str, *args: ConfigPiece) -> requests.Response:
    return new_delete(url, *args).send()


def error_is(err: BaseException | None, status_code: int) -> bool:
    """Whether ``err`` is a :class:`ResponseStatusError` with the given status."""
    return isinstance(err, ResponseStatusError) and err.status_code == status_code