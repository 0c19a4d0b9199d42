"""Building blocks for HTTP APIs: routing, middleware, formats, cookies, conditional requests, casing and patching."""

__version__ = "0.1.0"

__all__ = [
    "api",
    "autoconfig",
    "autopatch",
    "casing",
    "chain",
    "conditional",
    "cookies",
    "flow",
]