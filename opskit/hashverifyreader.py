"""A reader that verifies a stream's digest when the stream ends."""

from __future__ import annotations

import hmac
from typing import IO, Any


class DigestMismatchError(IOError):
    """The stream's digest did not match the expected one."""

    def __init__(self) -> None:
        super().__init__("hashVerifyReader: digest mismatch")


class HashVerifyReader:
    """Passes data through from ``source``; raises at end of stream if the hash differs."""

    def __init__(self, source: IO[bytes], hasher: Any, expected_hash: bytes) -> None:
        self._source = source
        self._hasher = hasher
        self._expected = expected_hash
        self._finished = False

    def read(self, size: int = -1) -> bytes:
        if self._finished:
            return b""
        data = self._source.read(size)
        if data:
            self._hasher.update(data)
            if size is None or size < 0:
                self._verify()
            return data
        self._verify()
        return b""

    def _verify(self) -> None:
        self._finished = True
        if not hmac.compare_digest(self._hasher.digest(), self._expected):
            self._finished = False
            raise DigestMismatchError()