import pytest

from apitoolkit.flow import Mux, Request, Response, param

MATCHING = [
    (["GET"], "/one", "GET", "/one", 200, None, ""),
    (["GET"], "/one", "GET", "/two", 404, None, ""),
    (["GET"], "/parent/child/one", "GET", "/parent/child/one", 200, None, ""),
    (["GET"], "/parent/child/one", "GET", "/parent/child/two", 404, None, ""),
    (["GET"], "/not/enough", "GET", "/not/enough/items", 404, None, ""),
    (["GET"], "/not/enough/items", "GET", "/not/enough", 404, None, ""),
    (["GET"], "/prefix/...", "GET", "/prefix/anything/else", 200,
     {"...": "anything/else"}, ""),
    (["GET"], "/prefix/...", "GET", "/prefix/", 200, {"...": ""}, ""),
    (["GET"], "/prefix/...", "GET", "/prefix", 404, None, ""),
    (["GET"], "/prefix", "GET", "/prefix/anything/else", 404, None, ""),
    (["GET"], "/prefix/", "GET", "/prefix/anything/else", 404, None, ""),
    (["GET"], "/prefix...", "GET", "/prefix/anything/else", 404, None, ""),
    (["GET"], "/path-params/:era/:group/:member", "GET",
     "/path-params/60/beatles/lennon", 200,
     {"era": "60", "group": "beatles", "member": "lennon"}, ""),
    (["GET"], "/path-params/:era/:group/:member/foo", "GET",
     "/path-params/60/beatles/lennon/bar", 404,
     {"era": "60", "group": "beatles", "member": "lennon"}, ""),
    (["GET"], "/path-params/:era", "GET", "/path-params/a%3A%2F%2Fb%2Fc", 200,
     {"era": "a://b/c"}, ""),
    (["GET"], "/path-params/:era|^[0-9]{2}$/:group|^[a-z].+$", "GET",
     "/path-params/60/beatles", 200, {"era": "60", "group": "beatles"}, ""),
    (["GET"], "/path-params/:era|^[0-9]{2}$/:group|^[a-z].+$", "GET",
     "/path-params/abc/123", 404, None, ""),
    (["GET"], "/path-params/:id/:era|^[0-9]{2}$/...", "GET",
     "/path-params/abc/12/foo/bar/baz", 200,
     {"id": "abc", "era": "12", "...": "foo/bar/baz"}, ""),
    (["GET"], "/path-params/:id/:era|^[0-9]{2}$/...", "GET",
     "/path-params/abc/12", 404, None, ""),
    (["GET"], "slashes/one", "GET", "/slashes/one", 404, None, ""),
    (["GET"], "/slashes/two", "GET", "slashes/two", 404, None, ""),
    (["GET"], "/slashes/three/", "GET", "/slashes/three", 404, None, ""),
    (["GET"], "/slashes/four", "GET", "/slashes/four/", 404, None, ""),
    (["GET"], "/baz/:id/:age", "GET", "/baz/123/", 404, None, ""),
    (["GET"], "/baz/:id/:age/", "GET", "/baz/123//", 404, None, ""),
    (["GET"], "/baz/:id/:age", "GET", "/baz//21", 404, None, ""),
    (["GET"], "/baz//:age", "GET", "/baz//21", 200, None, ""),
    (["GET"], "/baz/:id|^$/:age/", "GET", "/baz//21/", 200, None, ""),
    (["POST"], "/one", "POST", "/one", 200, None, ""),
    (["GET"], "/one", "POST", "/one", 405, None, ""),
    (["GET", "POST", "PUT"], "/one", "POST", "/one", 200, None, ""),
    (["GET", "POST", "PUT"], "/one", "PUT", "/one", 200, None, ""),
    (["GET", "POST", "PUT"], "/one", "DELETE", "/one", 405, None, ""),
    ([], "/one", "GET", "/one", 200, None, ""),
    ([], "/one", "DELETE", "/one", 200, None, ""),
    (["gEt"], "/one", "GET", "/one", 200, None, ""),
    (["GET"], "/one", "HEAD", "/one", 200, None, ""),
    (["HEAD"], "/one", "HEAD", "/one", 200, None, ""),
    (["HEAD"], "/one", "GET", "/one", 405, None, ""),
    (["GET", "PUT"], "/one", "DELETE", "/one", 405, None,
     "GET, PUT, HEAD, OPTIONS"),
    (["GET", "PUT"], "/one", "OPTIONS", "/one", 204, None,
     "GET, PUT, HEAD, OPTIONS"),
]


@pytest.mark.parametrize(
    "methods,pattern,req_method,req_path,status,params,allow", MATCHING
)
def test_matching(methods, pattern, req_method, req_path, status, params, allow):
    mux = Mux()
    seen = []
    mux.handle(pattern, lambda w, r: seen.append(r), *methods)

    response = Response()
    mux.serve_http(response, Request(req_method, req_path))

    assert response.status == status
    if status == 200 and params:
        for key, value in params.items():
            assert param(seen[-1], key) == value
    if allow:
        assert response.headers.get("Allow") == allow


def _recorder(used, label):
    def middleware(following):
        def handler(w, r):
            used.append(label)
            following(w, r)

        return handler

    return middleware


def _build_middleware_mux(used):
    def hf(w, r):
        pass

    mux = Mux()
    mux.use(_recorder(used, "1"))
    mux.use(_recorder(used, "2"))
    mux.handle("/", hf, "GET")

    def group_a(m):
        m.use(_recorder(used, "3"), _recorder(used, "4"))
        m.handle("/foo", hf, "GET")

        def nested(n):
            n.use(_recorder(used, "5"))
            n.handle("/nested/foo", hf, "GET")

        m.group(nested)

    mux.group(group_a)

    def group_b(m):
        m.use(_recorder(used, "6"))
        m.handle("/bar", hf, "GET")

    mux.group(group_b)
    mux.handle("/baz", hf, "GET")
    return mux


@pytest.mark.parametrize(
    "method,path,expected_used,expected_status",
    [
        ("GET", "/", "12", 200),
        ("GET", "/foo", "1234", 200),
        ("GET", "/nested/foo", "12345", 200),
        ("GET", "/bar", "126", 200),
        ("GET", "/baz", "12", 200),
        ("GET", "/notfound", "12", 404),
        ("POST", "/nested/foo", "12", 405),
        ("OPTIONS", "/nested/foo", "12", 204),
    ],
)
def test_middleware(method, path, expected_used, expected_status):
    used = []
    mux = _build_middleware_mux(used)
    response = Response()
    mux.serve_http(response, Request(method, path))
    assert response.status == expected_status
    assert "".join(used) == expected_used


@pytest.mark.parametrize(
    "method,path,expected_body",
    [
        ("GET", "/notfound", b"custom not found handler"),
        ("POST", "/", b"custom method not allowed handler"),
        ("OPTIONS", "/", b"custom options handler"),
    ],
)
def test_custom_handlers(method, path, expected_body):
    mux = Mux()
    mux.not_found = lambda w, r: w.write("custom not found handler")
    mux.method_not_allowed = lambda w, r: w.write(
        "custom method not allowed handler"
    )
    mux.options = lambda w, r: w.write("custom options handler")
    mux.handle("/", lambda w, r: None, "GET")

    response = Response()
    mux.serve_http(response, Request(method, path))
    assert response.body == expected_body


@pytest.mark.parametrize(
    "name,expected",
    [("id", "123"), ("missing", "")],
)
def test_params(name, expected):
    mux = Mux()
    seen = []
    mux.handle("/foo/:id", lambda w, r: seen.append(r), "GET")
    mux.serve_http(Response(), Request("GET", "/foo/123"))
    assert param(seen[0], name) == expected


def test_default_not_found_body():
    mux = Mux()
    response = Response()
    mux.serve_http(response, Request("GET", "/nothing"))
    assert response.status == 404
    assert response.body == b"404 page not found\n"
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"


def test_query_string_is_ignored_for_matching():
    mux = Mux()
    seen = []
    mux.handle("/items/:id", lambda w, r: seen.append(r), "GET")
    response = Response()
    mux.serve_http(response, Request("GET", "/items/7?full=true"))
    assert response.status == 200
    assert param(seen[0], "id") == "7"
    assert seen[0].query == "full=true"


def test_invalid_escape_does_not_match():
    mux = Mux()
    mux.handle("/items/:id", lambda w, r: None, "GET")
    response = Response()
    mux.serve_http(response, Request("GET", "/items/%zz"))
    assert response.status == 404