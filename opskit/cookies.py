"""HTTP cookies and their ``Set-Cookie`` serialization."""

from __future__ import annotations

import string
from dataclasses import dataclass

SAME_SITE_DEFAULT = ""
SAME_SITE_LAX = "Lax"
SAME_SITE_STRICT = "Strict"
SAME_SITE_NONE = "None"

_TOKEN_CHARS = frozenset("!#$%&'*+-.^_`|~" + string.ascii_letters + string.digits)


def _is_token(text: str) -> bool:
    return text != "" and all(ch in _TOKEN_CHARS for ch in text)


def _valid_value_char(ch: str) -> bool:
    return 0x20 <= ord(ch) < 0x7F and ch not in '";\\'


def _sanitize_value(value: str) -> str:
    cleaned = "".join(ch for ch in value if _valid_value_char(ch))
    if " " in cleaned or "," in cleaned:
        return f'"{cleaned}"'
    return cleaned


@dataclass
class Cookie:
    """A cookie to be sent to a client.

    ``max_age`` of 0 means no Max-Age attribute; a negative value deletes the cookie.
    """

    name: str
    value: str
    path: str = ""
    domain: str = ""
    max_age: int = 0
    http_only: bool = False
    secure: bool = False
    same_site: str = SAME_SITE_DEFAULT

    def to_header(self) -> str:
        """The value of a ``Set-Cookie`` header for this cookie."""
        if not _is_token(self.name):
            raise ValueError(f"invalid cookie name: {self.name!r}")

        parts = [f"{self.name}={_sanitize_value(self.value)}"]
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain.lstrip('.')}")
        if self.max_age > 0:
            parts.append(f"Max-Age={self.max_age}")
        elif self.max_age < 0:
            parts.append("Max-Age=0")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.same_site in (SAME_SITE_LAX, SAME_SITE_STRICT, SAME_SITE_NONE):
            parts.append(f"SameSite={self.same_site}")
        elif self.same_site:
            raise ValueError(f"invalid SameSite value: {self.same_site!r}")
        return "; ".join(parts)