import pytest

from apitoolkit.cookies import Cookie, NoCookieError, read_cookie, read_cookies


def test_read_all_cookies_from_one_header():
    headers = [("Cookie", "a=1; b=2")]
    assert read_cookies(headers) == [Cookie("a", "1"), Cookie("b", "2")]


def test_header_name_is_case_insensitive_and_repeatable():
    headers = [("cookie", "a=1"), ("Accept", "x"), ("COOKIE", "b=2")]
    assert [c.name for c in read_cookies(headers)] == ["a", "b"]


def test_mapping_headers_are_accepted():
    assert read_cookies({"Cookie": "session=token"}) == [Cookie("session", "token")]


def test_quotes_are_stripped():
    assert read_cookie([("Cookie", 'q="quoted"')], "q").value == "quoted"


def test_empty_parts_and_whitespace_ignored():
    headers = [("Cookie", "  ;  a=1 ;;  b = 2 ")]
    cookies = read_cookies(headers)
    assert [c.name for c in cookies] == ["a", "b"]


def test_first_matching_cookie_is_returned():
    headers = [("Cookie", "id=first; id=second")]
    assert read_cookie(headers, "id") == Cookie("id", "first")


def test_missing_cookie_raises():
    with pytest.raises(NoCookieError) as info:
        read_cookie([("Cookie", "a=1")], "missing")
    assert info.value.name == "missing"
    assert "missing" in str(info.value)


def test_no_cookie_headers_gives_empty_list():
    assert read_cookies([("Accept", "text/html")]) == []