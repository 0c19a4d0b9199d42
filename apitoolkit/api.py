"""API configuration, content formats and the built-in documentation routes."""

from __future__ import annotations

import json
import posixpath
import re
from dataclasses import dataclass, field, replace
from typing import IO, Any, Callable, Iterator, Protocol
from urllib.parse import parse_qs, urlparse

from apitoolkit.chain import Middleware, Middlewares
from apitoolkit.flow import Mux, Request, Response, param

SCHEMA_PREFIX = "#/components/schemas/"
DEFAULT_DOCS_ASSETS_URL = "/static/elements"

_RX_SCHEMA = re.compile(r'#/components/schemas/([^"]+)')
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_HTML_ESCAPE_RE = re.compile("[<>&\u2028\u2029]")


class UnknownContentTypeError(ValueError):
    """Raised when no format is registered for a content type."""

    def __init__(self, content_type: str) -> None:
        super().__init__(f"unknown content type: {content_type}")
        self.content_type = content_type


@dataclass(frozen=True)
class Format:
    """How to write a value to a byte stream and read it back from bytes."""

    marshal: Callable[[IO[bytes], Any], None]
    unmarshal: Callable[[bytes], Any]


def _encode_json(value: Any) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return _HTML_ESCAPE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], text)


def _json_marshal(stream: IO[bytes], value: Any) -> None:
    stream.write((_encode_json(value) + "\n").encode("utf-8"))


def _json_unmarshal(data: bytes) -> Any:
    return json.loads(data)


DEFAULT_JSON_FORMAT = Format(marshal=_json_marshal, unmarshal=_json_unmarshal)

DEFAULT_FORMATS: dict[str, Format] = {
    "application/json": DEFAULT_JSON_FORMAT,
    "json": DEFAULT_JSON_FORMAT,
}

Transformer = Callable[[Any, str, Any], Any]


class Context(Protocol):
    """What the built-in routes need from a request/response context."""

    def param(self, name: str) -> str: ...

    def set_header(self, name: str, value: str) -> None: ...

    def write(self, data: bytes) -> None: ...


class Adapter(Protocol):
    """Registers handlers with a router and dispatches requests to them."""

    def handle(self, method: str, path: str, handler: Callable[[Any], None]) -> None: ...


@dataclass
class Config:
    """Settings for a new API; see ``default_config`` for a starting point."""

    openapi: dict[str, Any] | None = None
    openapi_path: str = ""
    docs_path: str = ""
    schemas_path: str = ""
    formats: dict[str, Format] = field(default_factory=dict)
    default_format: str = ""
    transformers: list[Transformer] = field(default_factory=list)
    create_hooks: list[Callable[[Config], Config]] = field(default_factory=list)
    docs_assets_url: str = DEFAULT_DOCS_ASSETS_URL


def default_config(title: str, version: str) -> Config:
    """Return a JSON-capable configuration serving spec, docs and schemas."""
    return Config(
        openapi={
            "openapi": "3.1.0",
            "info": {"title": title, "version": version},
            "components": {"schemas": {}},
        },
        openapi_path="/openapi",
        docs_path="/docs",
        schemas_path="/schemas",
        formats=dict(DEFAULT_FORMATS),
        default_format="application/json",
    )


def get_api_prefix(server_urls: list[str]) -> str:
    """Return the path of the first server URL that has one, else ""."""
    for url in server_urls:
        try:
            path = urlparse(url).path
        except ValueError:
            continue
        if path:
            return path
    return ""


def _select_q_value(accept: str, allowed: list[str]) -> str:
    best = ""
    best_q = 0.0
    for entry in accept.split(","):
        media, *params = (piece.strip() for piece in entry.split(";"))
        if media not in allowed:
            continue
        q = 1.0
        for item in params:
            key, _, raw = item.partition("=")
            if key.strip() == "q":
                try:
                    q = float(raw)
                except ValueError:
                    q = 0.0
        if q > best_q:
            best, best_q = media, q
    return best


class MuxContext:
    """A request/response context over the router's request and response."""

    def __init__(self, request: Request, response: Response) -> None:
        self.request = request
        self.response = response

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def status(self) -> int:
        return self.response.status

    @property
    def body(self) -> bytes:
        return self.request.body

    def param(self, name: str) -> str:
        return param(self.request, name)

    def query(self, name: str) -> str:
        values = parse_qs(self.request.query, keep_blank_values=True).get(name)
        return values[0] if values else ""

    def header(self, name: str) -> str:
        wanted = name.lower()
        for key, value in self.request.headers.items():
            if key.lower() == wanted:
                return value
        return ""

    def each_header(self) -> Iterator[tuple[str, str]]:
        yield from self.request.headers.items()

    def set_status(self, code: int) -> None:
        self.response.write_header(code)

    def set_header(self, name: str, value: str) -> None:
        self.response.headers[name] = value

    def append_header(self, name: str, value: str) -> None:
        existing = self.response.headers.get(name)
        self.response.headers[name] = value if existing is None else f"{existing}, {value}"

    def write(self, data: bytes | str) -> None:
        self.response.write(data)


class MuxAdapter:
    """Adapter registering API handlers on a ``flow.Mux``, with a path prefix."""

    def __init__(self, mux: Mux, prefix: str = "") -> None:
        self.mux = mux
        self.prefix = prefix

    def handle(self, method: str, path: str, handler: Callable[[MuxContext], None]) -> None:
        pattern = self.prefix + path.replace("{", ":").replace("}", "")

        def serve(response: Response, request: Request) -> None:
            handler(MuxContext(request, response))

        self.mux.handle(pattern, serve, method)

    def serve_http(self, response: Response, request: Request) -> None:
        self.mux.serve_http(response, request)


class Api:
    """An API bound to a router adapter, with formats, transformers and middleware."""

    def __init__(self, config: Config, adapter: Adapter) -> None:
        config = replace(config)
        for hook in config.create_hooks:
            config = hook(config)

        spec = config.openapi if config.openapi is not None else {}
        spec.setdefault("openapi", "3.1.0")
        components = spec.setdefault("components", {})
        components.setdefault("schemas", {})
        config.openapi = spec

        self.config = config
        self.adapter = adapter
        self.transformers: list[Transformer] = list(config.transformers)
        self.middlewares = Middlewares()
        self.formats: dict[str, Format] = dict(config.formats)

        if not config.default_format and "application/json" in config.formats:
            config.default_format = "application/json"
        self._format_keys: list[str] = []
        if config.default_format:
            self._format_keys.append(config.default_format)
        self._format_keys.extend(config.formats)

        self._register_builtin_routes()

    @property
    def openapi(self) -> dict[str, Any]:
        """The OpenAPI document, editable until the server starts."""
        return self.config.openapi  # type: ignore[return-value]

    def unmarshal(self, content_type: str, data: bytes) -> Any:
        """Decode data of the given content type, defaulting to JSON."""
        start = content_type.find("+") + 1
        end = content_type.find(";")
        if end == -1:
            end = len(content_type)
        ct = content_type[start:end] or "application/json"
        fmt = self.formats.get(ct)
        if fmt is None:
            raise UnknownContentTypeError(content_type)
        return fmt.unmarshal(data)

    def negotiate(self, accept: str) -> str:
        """Pick a content type from an ``Accept`` header, falling back to the default."""
        ct = _select_q_value(accept, self._format_keys)
        if not ct and self._format_keys:
            ct = self._format_keys[0]
        if ct not in self.formats:
            raise UnknownContentTypeError(ct)
        return ct

    def transform(self, ctx: Any, status: str, value: Any) -> Any:
        """Run every transformer over the value in order."""
        for transformer in self.transformers:
            value = transformer(ctx, status, value)
        return value

    def marshal(self, stream: IO[bytes], content_type: str, value: Any) -> None:
        """Write the value to the stream in the format for the content type."""
        fmt = self.formats.get(content_type)
        if fmt is None:
            start = content_type.find("+") + 1
            fmt = self.formats.get(content_type[start:])
        if fmt is None:
            raise UnknownContentTypeError(content_type)
        fmt.marshal(stream, value)

    def use_middleware(self, *middlewares: Middleware) -> None:
        """Append middleware of the form ``fn(ctx, next)`` to the stack."""
        self.middlewares.extend(middlewares)

    def _server_urls(self) -> list[str]:
        return [s.get("url", "") for s in self.openapi.get("servers") or []]

    def _register_builtin_routes(self) -> None:
        config = self.config
        if config.openapi_path:
            cache: dict[str, bytes] = {}

            def spec_handler(kind: str) -> Callable[[Any], None]:
                def handler(ctx: Any) -> None:
                    ctx.set_header("Content-Type", f"application/vnd.oai.openapi+{kind}")
                    if "spec" not in cache:
                        cache["spec"] = _encode_json(self.openapi).encode("utf-8")
                    ctx.write(cache["spec"])

                return handler

            # JSON is valid YAML, so the same document serves both.
            self.adapter.handle("GET", config.openapi_path + ".json", spec_handler("json"))
            self.adapter.handle("GET", config.openapi_path + ".yaml", spec_handler("yaml"))

        if config.docs_path:
            self.adapter.handle("GET", config.docs_path, self._docs_handler)

        if config.schemas_path:
            self.adapter.handle("GET", config.schemas_path + "/{schema}", self._schema_handler)

    def _docs_handler(self, ctx: Any) -> None:
        openapi_path = self.config.openapi_path
        prefix = get_api_prefix(self._server_urls())
        if prefix:
            openapi_path = posixpath.join(prefix, openapi_path.lstrip("/"))
        title = "Elements in HTML"
        info = self.openapi.get("info") or {}
        if info.get("title"):
            title = info["title"] + " Reference"
        assets = self.config.docs_assets_url
        ctx.set_header("Content-Type", "text/html")
        ctx.write(
            f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="referrer" content="same-origin" />
    <meta name="viewport" content="width=device-width, initial-scale=1, shrink-to-fit=no" />
    <title>{title}</title>
    <link href="{assets}/styles.min.css" rel="stylesheet" />
    <script src="{assets}/web-components.min.js"></script>
  </head>
  <body style="height: 100vh;">

    <elements-api
      apiDescriptionUrl="{openapi_path}.yaml"
      router="hash"
      layout="sidebar"
      tryItCredentialsPolicy="same-origin"
    />

  </body>
</html>""".encode("utf-8")
        )

    def _schema_handler(self, ctx: Any) -> None:
        name = ctx.param("schema")
        if name.endswith(".json"):
            name = name[: -len(".json")]
        ctx.set_header("Content-Type", "application/json")
        schema = self.openapi["components"]["schemas"].get(name)
        base = self.config.schemas_path
        text = _RX_SCHEMA.sub(lambda m: f"{base}/{m.group(1)}.json", _encode_json(schema))
        ctx.write(text.encode("utf-8"))