# apitoolkit

Building blocks for HTTP APIs in plain Python, using only the standard library.

## Modules

- `apitoolkit.casing` splits identifiers into words and rejoins them:
  `split`, `join`, `merge_numbers`, `camel`, `lower_camel`, `snake`, `kebab`,
  with the transforms `identity` and `initialism`.
- `apitoolkit.chain` provides `Middlewares`, a list of `fn(ctx, next)`
  functions; `handler(endpoint)` composes them, in order, around an endpoint.
- `apitoolkit.cookies` parses `Cookie` request headers (a mapping or a list of
  `(name, value)` pairs). `read_cookie(headers, name)` returns the first
  matching `Cookie` or raises `NoCookieError`; `read_cookies(headers)` returns
  every well-formed cookie.
- `apitoolkit.autoconfig` has the `AutoConfig` and `AutoConfigVar` dataclasses
  for CLI auto-configuration, each with a `to_dict()` that omits empty fields.
- `apitoolkit.flow` is a small router. `Mux.handle(pattern, handler, *methods)`
  registers a `handler(response, request)`; patterns support `:name`
  parameters, `:name|regex` constraints and a trailing `/...` wildcard.
  Registering `GET` also registers `HEAD`; no methods means all methods.
  `Mux.use` adds `fn(handler) -> handler` middleware, `Mux.group` scopes
  middleware to a set of routes, and `Mux.serve_http(response, request)`
  dispatches, answering 404, 405 (with an `Allow` header) or 204 for
  `OPTIONS`. The `not_found`, `method_not_allowed` and `options` handlers can
  be replaced. Read captured values with `param(request, name)`.
- `apitoolkit.conditional` evaluates `If-Match`, `If-None-Match`,
  `If-Modified-Since` and `If-Unmodified-Since` with `Params`. Call
  `resolve(method)` first; `precondition_failed(etag, modified)` returns
  `None` when the conditions hold and otherwise raises `StatusError` — 304
  for reads, 412 with `ErrorDetail` entries for writes.
- `apitoolkit.api` holds `Api(config, adapter)`: content negotiation
  (`negotiate`), `Format`-based `marshal` and `unmarshal` (raising
  `UnknownContentTypeError`), response `transform`ers and `use_middleware`.
  `default_config(title, version)` gives a JSON-capable `Config`.
  `MuxAdapter` connects an `Api` to a `flow.Mux`, converting `{param}` paths
  and optionally adding a prefix. When the paths are configured, the `Api`
  registers routes serving the OpenAPI document (`<openapi_path>.json` and
  `.yaml`, both as JSON), an HTML docs page and `<schemas_path>/{schema}`.
  `get_api_prefix(server_urls)` returns the path of the first server URL.
- `apitoolkit.autopatch` applies patches to decoded JSON documents:
  `apply_merge_patch` (RFC 7386), `apply_json_patch` (RFC 6902) and
  `apply_patch(content_type, original, patch_data)`, which also accepts
  `application/merge-patch+shorthand` and raises `PatchError` carrying 422 or
  415. `make_optional_schema` drops every `required` list from a schema, and
  `patch_operation_name("get-thing")` gives `"thing"`.

## Quick look

```python
from apitoolkit.casing import camel, initialism, snake
from apitoolkit.flow import Mux, Request, Response, param

snake("h.264 stream")              # "h264_stream"
camel("platform-api", initialism)  # "PlatformAPI"

mux = Mux()

def show_profile(response, request):
    response.write("Hello, " + param(request, "name"))

mux.handle("/profile/:name", show_profile, "GET")

response = Response()
mux.serve_http(response, Request("GET", "/profile/ada"))
response.body  # b"Hello, ada"
```

```python
from apitoolkit.autopatch import apply_merge_patch, apply_patch

apply_merge_patch({"price": 1.0, "tags": ["a"]}, {"price": 1.23})
# {"price": 1.23, "tags": ["a"]}

apply_patch("application/merge-patch+shorthand", {"tags": ["a"]}, "{tags[]: b}")
# {"tags": ["a", "b"]}
```

## What it does not do

- There is no HTTP server; `Mux.serve_http` works on in-memory `Request` and
  `Response` objects, which you connect to a server of your choice.
- There is no registration of typed operations, no request validation and no
  generation of JSON Schemas or OpenAPI operations from Python types; the
  OpenAPI document is a plain dictionary you fill in yourself.
- `autopatch` does not add PATCH routes to an `Api` by itself; it supplies the
  patching functions such a route would use.
- The docs page loads its scripts and styles from `Config.docs_assets_url`
  (`/static/elements` by default); those assets are not included.
- OpenAPI 3.0 downgrades and real YAML output are not provided.

## Running the tests

```
pip install -e .[test]
pytest
```