"""A small HTTP request router with named parameters, wildcards and groups."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, replace
from typing import Callable
from urllib.parse import unquote_plus

ALL_METHODS = (
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
)

_compiled_patterns: dict[str, re.Pattern[str]] = {}
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass
class Request:
    """An incoming request; ``params`` holds values captured by the route."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    params: dict[str, str] = field(default_factory=dict)
    query: str = ""

    def __post_init__(self) -> None:
        path, sep, query = self.path.partition("?")
        if sep:
            self.path = path
            self.query = query


@dataclass
class Response:
    """A response being written by a handler."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    _header_written: bool = field(default=False, repr=False)

    def write_header(self, status: int) -> None:
        """Set the status code; only the first call has any effect."""
        if not self._header_written:
            self.status = status
            self._header_written = True

    def write(self, data: bytes | str) -> None:
        """Append data to the body, fixing the status if not yet written."""
        if isinstance(data, str):
            data = data.encode()
        self._header_written = True
        self.body += data

    def error(self, message: str, status: int) -> None:
        """Reply with a plain-text error message and status code."""
        self.headers["Content-Type"] = "text/plain; charset=utf-8"
        self.headers["X-Content-Type-Options"] = "nosniff"
        self.write_header(status)
        self.write(message + "\n")


Handler = Callable[[Response, Request], None]
MiddlewareFn = Callable[[Handler], Handler]


def param(request: Request, name: str) -> str:
    """Return the named parameter or wildcard value, or "" if absent."""
    return request.params.get(name, "")


def _not_found(response: Response, request: Request) -> None:
    response.error("404 page not found", 404)


def _method_not_allowed(response: Response, request: Request) -> None:
    response.error("Method Not Allowed", 405)


def _options(response: Response, request: Request) -> None:
    response.write_header(204)


def _regex(pattern: str) -> re.Pattern[str]:
    compiled = _compiled_patterns.get(pattern)
    if compiled is None:
        compiled = _compiled_patterns[pattern] = re.compile(pattern)
    return compiled


def _query_unescape(value: str) -> str:
    if _BAD_ESCAPE.search(value):
        raise ValueError(f"invalid URL escape in {value!r}")
    return unquote_plus(value)


@dataclass
class _Route:
    method: str
    segments: list[str]
    wildcard: bool
    handler: Handler

    def match(self, url_segments: list[str]) -> dict[str, str] | None:
        if not self.wildcard and len(url_segments) != len(self.segments):
            return None

        params: dict[str, str] = {}
        for i, segment in enumerate(self.segments):
            if i >= len(url_segments):
                return None
            if segment == "...":
                params["..."] = "/".join(url_segments[i:])
                return params
            if segment.startswith(":"):
                key, has_rx, rx = segment[1:].partition("|")
                try:
                    value = _query_unescape(url_segments[i])
                except ValueError:
                    return None
                if has_rx:
                    if _regex(rx).search(value):
                        params[key] = value
                        continue
                elif value != "":
                    params[key] = value
                    continue
                return None
            if url_segments[i] != segment:
                return None
        return params


class Mux:
    """Dispatches requests to handlers registered by path pattern and method."""

    def __init__(self) -> None:
        self.not_found: Handler = _not_found
        self.method_not_allowed: Handler = _method_not_allowed
        self.options: Handler = _options
        self._routes: list[_Route] = []
        self._middlewares: list[MiddlewareFn] = []

    def handle(self, pattern: str, handler: Handler, *methods: str) -> None:
        """Register a handler for a pattern and methods (all if none given)."""
        chosen = list(methods)
        if "GET" in chosen and "HEAD" not in chosen:
            chosen.append("HEAD")
        if not chosen:
            chosen = list(ALL_METHODS)

        segments = pattern.split("/")
        wildcard = pattern.endswith("/...")
        wrapped = self._wrap(handler)
        self._routes.extend(
            _Route(method.upper(), segments, wildcard, wrapped) for method in chosen
        )

        for segment in segments:
            if segment.startswith(":"):
                _, has_rx, rx = segment.partition("|")
                if has_rx:
                    _regex(rx)

    def use(self, *middlewares: MiddlewareFn) -> None:
        """Add middleware of the form ``fn(handler) -> handler``."""
        self._middlewares.extend(middlewares)

    def group(self, fn: Callable[[Mux], None]) -> None:
        """Call ``fn`` with a mux whose middleware applies only to its routes."""
        sub = copy.copy(self)
        sub._middlewares = list(self._middlewares)
        fn(sub)

    def serve_http(self, response: Response, request: Request) -> None:
        """Dispatch the request to the matching route or an error handler."""
        url_segments = request.path.split("/")
        allowed: list[str] = []

        for route in self._routes:
            params = route.match(url_segments)
            if params is None:
                continue
            if request.method == route.method:
                routed = replace(request, params={**request.params, **params})
                route.handler(response, routed)
                return
            if route.method not in allowed:
                allowed.append(route.method)

        if allowed:
            response.headers["Allow"] = ", ".join([*allowed, "OPTIONS"])
            if request.method == "OPTIONS":
                self._wrap(self.options)(response, request)
            else:
                self._wrap(self.method_not_allowed)(response, request)
            return

        self._wrap(self.not_found)(response, request)

    def _wrap(self, handler: Handler) -> Handler:
        for middleware in reversed(self._middlewares):
            handler = middleware(handler)
        return handler