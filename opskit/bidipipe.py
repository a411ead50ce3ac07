"""Bi-directional pipe between two endpoints, for proxying."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

_CHUNK = 32 * 1024


class BidiPipeError(IOError):
    """Copying in one direction failed."""


@dataclass
class NamedEndpoint:
    """A readable, writable, closable endpoint with a name for error messages."""

    name: str
    endpoint: Any


def with_name(name: str, endpoint: Any) -> NamedEndpoint:
    return NamedEndpoint(name, endpoint)


def unnamed(endpoint: Any) -> NamedEndpoint:
    return NamedEndpoint("", endpoint)


def _copy(dst: NamedEndpoint, src: NamedEndpoint) -> None:
    try:
        while True:
            chunk = src.endpoint.read(_CHUNK)
            if not chunk:
                return
            dst.endpoint.write(chunk)
    except Exception as err:
        raise BidiPipeError(f"bidipipe: {src.name} -> {dst.name} error: {err}") from err


def pipe(party1: NamedEndpoint, party2: NamedEndpoint) -> None:
    """Copy data both ways until either side ends; raise the first error."""
    party1 = NamedEndpoint(party1.name or "party1", party1.endpoint)
    party2 = NamedEndpoint(party2.name or "party2", party2.endpoint)

    close_once = threading.Lock()
    closed = False
    errors: list[BaseException] = []
    errors_lock = threading.Lock()

    def close_both() -> None:
        nonlocal closed
        with close_once:
            if closed:
                return
            closed = True
        for party in (party1, party2):
            try:
                party.endpoint.close()
            except Exception:
                pass  # at least one close is expected to fail after an I/O error

    def run(dst: NamedEndpoint, src: NamedEndpoint) -> None:
        try:
            _copy(dst, src)
        except BaseException as err:
            with errors_lock:
                errors.append(err)
        finally:
            close_both()

    threads = [
        threading.Thread(target=run, args=(party1, party2), daemon=True),
        threading.Thread(target=run, args=(party2, party1), daemon=True),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    if errors:
        raise errors[0]