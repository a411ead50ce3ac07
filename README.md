# opskit

Small, dependable building blocks for writing services and command-line
tools on Linux. The only runtime dependency is `requests`, used by
`opskit.ezhttp`.

## What is inside

| Module | Purpose |
| --- | --- |
| `opskit.sliceutil` | `contains()` and `filter_by()` for sequences |
| `opskit.stringutils` | character-aware `substr()` and `truncate()` |
| `opskit.timeutil` | `humanize_duration()` – "2 weeks", "1 hour", "499 milliseconds" |
| `opskit.mime` | a built-in content-type table: `type_by_extension()`, `extension_by_type()`, `is_type()`, `MediaType`, `Spec` |
| `opskit.cancel` | a cancellable `Context` with `background()`, `child()`, `cancel()`, `is_done()` and `wait()` |
| `opskit.envvar` | `getenv_required()`, `getenv_required_from_base64()`, `parse_env()`, `exit_if_error()` |
| `opskit.filemode` | readable chmod bits: `file_mode(Owner.RW, Group.R, Other.NONE)` |
| `opskit.fileutil` | `exists()`, `exists_no_link_follow()`, `create_empty_file()` |
| `opskit.atomicfile` | `write_file_atomic()` – the file only appears once it is fully written |
| `opskit.copyfile` | `copy_file()` preserving metadata, `move_file()` that also works across filesystems |
| `opskit.jsonfile` | read and write JSON files, with or without tolerating unknown fields |
| `opskit.bidipipe` | `pipe()` two endpoints to each other, for proxying |
| `opskit.hashverifyreader` | `HashVerifyReader` – raises `DigestMismatchError` at end of stream if the digest is wrong |
| `opskit.systemdinstaller` | build and install systemd unit files for the running program |
| `opskit.systemdcli` | a ready-made `service` command tree: start, stop, restart, status, logs, optionally install |
| `opskit.privileges` | require root, drop back to the invoking `sudo` user, regain root for short steps |
| `opskit.cookies` | the `Cookie` dataclass and its `Set-Cookie` header value |
| `opskit.ezhttp` | HTTP requests with sane defaults: non-2xx is an error, JSON in and out |
| `opskit.httputils` | `ServeMux`, `MethodMux`, JSON and error responses for WSGI apps, `cancelable_server()` |

## Examples

Strings, durations and permission bits:

```python
from datetime import timedelta

from opskit.filemode import Group, Other, Owner, file_mode
from opskit.stringutils import substr, truncate
from opskit.timeutil import humanize_duration

substr("foobar", 3, 2)                    # "ba"
truncate("foobar", 5)                     # "foo.."
humanize_duration(timedelta(days=14))     # "2 weeks"
file_mode(Owner.RW, Group.R, Other.NONE)  # 0o640
```

Content types, independent of what the operating system happens to know:

```python
from opskit.mime import OCTET_STREAM, MediaType, extension_by_type, is_type, type_by_extension

type_by_extension(".JSON")                  # "application/json"
type_by_extension("unknown", OCTET_STREAM)  # "application/octet-stream"
extension_by_type("image/jpeg", "bin")      # "jpg"
is_type("image/png", MediaType.IMAGE)       # True
```

Atomic writes and JSON files:

```python
from opskit import jsonfile
from opskit.atomicfile import write_file_atomic, write_file_mode

write_file_atomic("out.txt", lambda sink: sink.write(b"hello\n"), write_file_mode(0o600))

jsonfile.write("config.json", {"port": 8080})
config = jsonfile.read_disallow_unknown_fields("config.json", {})
```

Verifying a download while reading it:

```python
import hashlib

from opskit.hashverifyreader import HashVerifyReader

reader = HashVerifyReader(source_stream, hashlib.sha256(), expected_digest)
data = reader.read()  # raises DigestMismatchError if the digest differs
```

HTTP with errors for non-2xx responses:

```python
from opskit import ezhttp

things = {}
try:
    ezhttp.get(
        "https://example.com/api/things",
        ezhttp.auth_bearer("token"),
        ezhttp.responds_json_allow_unknown_fields(things),
    )
except ezhttp.ResponseStatusError as err:
    if ezhttp.error_is(err, 404):
        ...

ezhttp.new_post("https://example.com/hello", ezhttp.header("x-correlation-id", "123")).curl_equivalent()
# ["curl", "--request=POST", "--header=X-Correlation-Id=123", "https://example.com/hello"]
```

WSGI routing per method:

```python
from opskit.httputils import MethodMux, respond_json

def hello(environ, start_response):
    return respond_json(start_response, {"hello": "world"})

app = MethodMux()
app.GET.handle("/hello", hello)
```

A systemd unit for the running program, and a `service` command to manage it:

```python
from opskit.systemdcli import entrypoint, with_install_and_uninstall_commands
from opskit.systemdinstaller import args, require_network_online, serialize, service

svc = service("myservice", "My cool service", args("start"), require_network_online)
print(serialize(svc))  # the unit file text

cli = entrypoint(
    "myservice",
    with_install_and_uninstall_commands(lambda name: service(name, "My cool service", args("start"))),
)
exit_status = cli.execute(["status"])  # runs "systemctl status myservice"
```

`install()` writes `/etc/systemd/system/<name>.service` (or, for
`user_service()`, under the user's `systemd/user` config directory) and refuses
to overwrite an existing file.

## Not included

- No logging helpers: use the standard `logging` module.
- No task supervisor or worker-pool helpers; `opskit.cancel.Context` only
  carries the cancellation signal.
- No Unix socket listener helpers.
- No login tokens or request authentication. `opskit.cookies.Cookie` only
  describes and serializes cookies; checking a CSRF token is left to the
  application.
- The `service` command tree has an `install` command but no `uninstall`.

## Testing

The test suite uses `pytest` and `responses`, available through the `test`
extra.