"""Environment variable helpers and a process exit helper for entrypoints."""

from __future__ import annotations

import base64
import os
import re
import sys
from typing import NoReturn

_ENV_PARSE_RE = re.compile(r"^([^=]+)=(.*)")


class EnvNotDefinedError(LookupError):
    """A required environment variable is unset or empty."""

    def __init__(self, key: str) -> None:
        super().__init__(f"ENV not defined: {key}")
        self.key = key


def getenv_required(key: str) -> str:
    """Value of environment variable ``key``; raises if it is unset or empty."""
    value = os.environ.get(key, "")
    if value == "":
        raise EnvNotDefinedError(key)
    return value


def getenv_required_from_base64(key: str) -> bytes:
    """Decode the standard base64 value of a required environment variable.

    Raises :class:`EnvNotDefinedError` if missing, ``binascii.Error`` if malformed.
    """
    return base64.b64decode(getenv_required(key), validate=True)


def parse_env(serialized: str) -> tuple[str, str]:
    """Split ``"key=value"`` into its parts; ``("", "")`` if it is not of that form."""
    match = _ENV_PARSE_RE.match(serialized)
    if match is None:
        return "", ""
    return match.group(1), match.group(2)


def exit_if_error(err: BaseException | None) -> None | NoReturn:
    """If ``err`` is given, print it to stderr and exit with status 1."""
    if err is None:
        return None

    stream = sys.stderr
    if stream.isatty():
        # make it stand out for people reading a terminal
        stream.write(f"✗ ERROR: {err}\n")
    else:
        stream.write(f"ERROR: {err}\n")
    stream.flush()

    raise SystemExit(1)