import base64
import json
from dataclasses import dataclass

import pytest
import responses

from opskit import ezhttp
from opskit.cookies import Cookie
from opskit.jsonfile import JsonDecodeError

URL = "https://example.com/api"


@dataclass
class _Payload:
    name: str = ""


def test_curl_equivalent():
    curl_cmd = ezhttp.new_post("https://example.net/hello", ezhttp.header("x-correlation-id", "123")).curl_equivalent()
    assert " ".join(curl_cmd) == "curl --request=POST --header=X-Correlation-Id=123 https://example.net/hello"


def test_curl_equivalent_raises_abort():
    conf = ezhttp.new_get(URL, ezhttp.send_body(b"data", "text/plain"))
    with pytest.raises(ValueError):
        conf.curl_equivalent()


def test_get_json_into_dict():
    into = {}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, json={"name": "a", "extra": 1})
        resp = ezhttp.get(URL, ezhttp.responds_json_allow_unknown_fields(into))
        assert rsps.calls[0].request.headers["Accept"] == "application/json"
    assert resp.status_code == 200
    assert into == {"name": "a", "extra": 1}


def test_disallow_unknown_fields():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, json={"name": "a", "extra": 1})
        with pytest.raises(JsonDecodeError, match="extra"):
            ezhttp.get(URL, ezhttp.responds_json_disallow_unknown_fields(_Payload()))


def test_allow_unknown_fields_into_object():
    payload = _Payload()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, json={"name": "a", "extra": 1})
        ezhttp.get(URL, ezhttp.responds_json_allow_unknown_fields(payload))
    assert payload.name == "a"


def test_explicit_accept_is_kept():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, json={})
        ezhttp.get(URL, ezhttp.header("Accept", "text/plain"), ezhttp.responds_json_allow_unknown_fields({}))
        assert rsps.calls[0].request.headers["Accept"] == "text/plain"


def test_non_2xx_is_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=404, body="nope")
        with pytest.raises(ezhttp.ResponseStatusError) as info:
            ezhttp.get(URL)
    assert info.value.status_code == 404
    assert str(info.value).startswith("404")
    assert str(info.value).endswith("; nope")
    assert ezhttp.error_is(info.value, 404)
    assert not ezhttp.error_is(info.value, 500)


def test_empty_error_body():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=500, body="")
        with pytest.raises(ezhttp.ResponseStatusError) as info:
            ezhttp.get(URL)
    assert str(info.value).endswith("; <no response body>")


def test_long_error_body_is_truncated():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=500, body="x" * 200)
        with pytest.raises(ezhttp.ResponseStatusError) as info:
            ezhttp.get(URL)
    assert str(info.value).endswith("; " + "x" * 128 + "..")


def test_tolerate_non_2xx():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=500, body="boom")
        resp = ezhttp.get(URL, ezhttp.TOLERATE_NON_2XX_RESPONSE)
    assert resp.status_code == 500


def test_not_modified_with_if_none_match():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=304)
        resp = ezhttp.get(URL, ezhttp.header("If-None-Match", '"abc"'))
    assert resp.status_code == 304


def test_not_modified_without_if_none_match_is_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, status=304)
        with pytest.raises(ezhttp.ResponseStatusError) as info:
            ezhttp.get(URL)
    assert info.value.status_code == 304


def test_send_json():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL, status=201)
        ezhttp.post(URL, ezhttp.send_json({"a": 1}))
        request = rsps.calls[0].request
    assert json.loads(request.body) == {"a": 1}
    assert request.headers["Content-Type"] == "application/json"


def test_send_json_unserializable_aborts():
    with pytest.raises(TypeError):
        ezhttp.post(URL, ezhttp.send_json({"a": object()}))


def test_get_with_body_is_refused():
    with pytest.raises(ValueError) as info:
        ezhttp.get(URL, ezhttp.send_body(b"data", "text/plain"))
    assert str(info.value) == "ezhttp: GET with non-nil body is usually a mistake"


def test_put_with_body():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, URL)
        ezhttp.put(URL, ezhttp.send_body(b"data", "text/plain"))
        request = rsps.calls[0].request
    assert request.body == b"data"
    assert request.headers["Content-Type"] == "text/plain"


def test_auth_bearer():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, URL)
        ezhttp.delete(URL, ezhttp.auth_bearer("token"))
        assert rsps.calls[0].request.headers["Authorization"] == "Bearer token"


def test_auth_basic():
    password = "password"
    conf = ezhttp.new_head(URL, ezhttp.auth_basic("user", password))
    scheme, encoded = conf.request.headers["Authorization"].split(" ")
    assert scheme == "Basic"
    assert base64.b64decode(encoded).decode() == "user:password"


def test_cookies_are_joined():
    conf = ezhttp.new_get(URL, ezhttp.cookie(Cookie("a", "1")), ezhttp.cookie(Cookie("b", "2")))
    assert conf.request.headers["Cookie"] == "a=1; b=2"


def test_before_abort_skips_after_hooks():
    calls = []

    def stop(conf):
        conf.abort = RuntimeError("stop")

    conf = ezhttp.new_get(URL, ezhttp.before(stop), ezhttp.after(calls.append))
    assert calls == []
    with pytest.raises(RuntimeError, match="stop"):
        conf.send()


def test_client_piece_sets_session():
    conf = ezhttp.new_get(URL, ezhttp.client(ezhttp.INSECURE_TLS_CLIENT))
    assert conf.session is ezhttp.INSECURE_TLS_CLIENT
    assert conf.session.verify is False


def test_no_op_config_changes_nothing():
    conf = ezhttp.new_get(URL, ezhttp.NO_OP_CONFIG)
    assert conf.request.method == "GET"
    assert dict(conf.request.headers) == {}
    assert conf.abort is None


def test_error_is_false_for_other_errors():
    assert ezhttp.error_is(ValueError("x"), 404) is False
    assert ezhttp.error_is(None, 404) is False