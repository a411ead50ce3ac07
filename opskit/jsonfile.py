"""Reading and writing JSON files with strict or lenient field checking."""

from __future__ import annotations

import dataclasses
import json
import os
from typing import IO, Any, Union

from opskit.atomicfile import WriteFileOption, write_file_atomic

StrPath = Union[str, "os.PathLike[str]"]


class JsonDecodeError(ValueError):
    """JSON content could not be decoded into the requested shape."""


def _decode_into(data: Any, into: Any, disallow_unknown: bool) -> Any:
    if into is None:
        return data
    if isinstance(into, dict):
        if not isinstance(data, dict):
            raise JsonDecodeError("decode failed: json: cannot unmarshal into object")
        into.update(data)
        return into
    if isinstance(into, list):
        if not isinstance(data, list):
            raise JsonDecodeError("decode failed: json: cannot unmarshal into array")
        into[:] = data
        return into
    if not isinstance(data, dict):
        raise JsonDecodeError("decode failed: json: cannot unmarshal into object")
    if dataclasses.is_dataclass(into):
        known = {f.name for f in dataclasses.fields(into)}
    else:
        known = set(vars(into))
    for key, value in data.items():
        if key not in known:
            if disallow_unknown:
                raise JsonDecodeError(f'decode failed: json: unknown field "{key}"')
            continue
        setattr(into, key, value)
    return into


def _unmarshal(source: IO[Any], into: Any, disallow_unknown: bool) -> Any:
    content = source.read()
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as err:
        raise JsonDecodeError(f"decode failed: {err}") from err
    return _decode_into(data, into, disallow_unknown)


def unmarshal_disallow_unknown_fields(source: IO[Any], into: Any) -> Any:
    """Decode JSON from ``source`` into ``into``; unknown fields are an error."""
    return _unmarshal(source, into, True)


def unmarshal_allow_unknown_fields(source: IO[Any], into: Any) -> Any:
    """Decode JSON from ``source`` into ``into``; unknown fields are ignored."""
    return _unmarshal(source, into, False)


def _read(path: StrPath, into: Any, disallow_unknown: bool) -> Any:
    with open(path, "rb") as file:
        try:
            return _unmarshal(file, into, disallow_unknown)
        except JsonDecodeError as err:
            raise JsonDecodeError(f"{os.fspath(path)}: {err}") from err


def read_disallow_unknown_fields(path: StrPath, into: Any) -> Any:
    """Read a JSON file into ``into``, rejecting unknown fields."""
    return _read(path, into, True)


def read_allow_unknown_fields(path: StrPath, into: Any) -> Any:
    """Read a JSON file into ``into``, ignoring unknown fields."""
    return _read(path, into, False)


def _to_jsonable(data: Any) -> Any:
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    return data


def marshal(destination: IO[Any], data: Any) -> None:
    """Write ``data`` as 4-space-indented JSON followed by a newline."""
    text = json.dumps(_to_jsonable(data), indent=4) + "\n"
    try:
        destination.write(text)
    except TypeError:
        destination.write(text.encode("utf-8"))


def write(path: StrPath, data: Any, *options: WriteFileOption) -> None:
    """Atomically write ``data`` as JSON to ``path``."""
    write_file_atomic(path, lambda sink: marshal(sink, data), *options)