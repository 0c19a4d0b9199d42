"""Reading cookies out of request ``Cookie`` headers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Union

Headers = Union[Mapping[str, str], Iterable[tuple[str, str]]]

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~"
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
)
_INVALID_VALUE_CHARS = frozenset('";\\')
_TRIM = " \t\n\r"


@dataclass(frozen=True)
class Cookie:
    """A cookie sent by a client."""

    name: str
    value: str


class NoCookieError(LookupError):
    """Raised when a named cookie is not present in the request."""

    def __init__(self, name: str) -> None:
        super().__init__(f"named cookie not present: {name}")
        self.name = name


def _cookie_lines(headers: Headers) -> list[str]:
    pairs = headers.items() if isinstance(headers, Mapping) else headers
    return [value for name, value in pairs if name.lower() == "cookie"]


def _is_valid_name(name: str) -> bool:
    return name != "" and all(c in _TOKEN_CHARS for c in name)


def _parse_value(raw: str) -> str | None:
    if len(raw) > 1 and raw[0] == '"' and raw[-1] == '"':
        raw = raw[1:-1]
    if all(0x20 <= ord(c) < 0x7F and c not in _INVALID_VALUE_CHARS for c in raw):
        return raw
    return None


def _parse_cookies(lines: Iterable[str], wanted: str) -> list[Cookie]:
    cookies = []
    for line in lines:
        for part in line.strip(_TRIM).split(";"):
            part = part.strip(_TRIM)
            if not part:
                continue
            name, _, raw = part.partition("=")
            name = name.strip(_TRIM)
            if not _is_valid_name(name):
                continue
            if wanted and wanted != name:
                continue
            value = _parse_value(raw)
            if value is None:
                continue
            cookies.append(Cookie(name, value))
    return cookies


def read_cookie(headers: Headers, name: str) -> Cookie:
    """Return the first cookie with the given name, or raise NoCookieError."""
    for cookie in _parse_cookies(_cookie_lines(headers), name):
        return cookie
    raise NoCookieError(name)


def read_cookies(headers: Headers) -> list[Cookie]:
    """Return every validly formed cookie found in the headers."""
    return _parse_cookies(_cookie_lines(headers), "")