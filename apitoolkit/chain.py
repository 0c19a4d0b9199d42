"""Composition of middleware functions around an endpoint handler."""

from __future__ import annotations

from typing import Any, Callable

Handler = Callable[[Any], Any]
Middleware = Callable[[Any, Handler], Any]


def _wrap(middleware: Middleware, following: Handler) -> Handler:
    def handler(ctx: Any) -> Any:
        return middleware(ctx, following)

    return handler


class Middlewares(list):
    """A list of ``fn(ctx, next)`` middleware run in the order they were added."""

    def handler(self, endpoint: Handler) -> Handler:
        """Build a handler running every middleware, then ``endpoint``."""
        built = endpoint
        for middleware in reversed(self):
            built = _wrap(middleware, built)
        return built