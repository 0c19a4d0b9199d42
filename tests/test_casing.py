import pytest

from apitoolkit import casing


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("CamelCaseTest", ["Camel", "Case", "Test"]),
        ("lowerCamelTest", ["lower", "Camel", "Test"]),
        ("snake_case_test", ["snake", "case", "test"]),
        ("kabob-case-test", ["kabob", "case", "test"]),
        ("Space delimited test", ["Space", "delimited", "test"]),
        ("AnyKind of_string", ["Any", "Kind", "of", "string"]),
        ("hello__man how-Are you??", ["hello", "man", "how", "Are", "you"]),
        ("UserID", ["User", "ID"]),
        ("HTTPServer", ["HTTP", "Server"]),
        ("Test123Test", ["Test", "123", "Test"]),
        ("Test123test", ["Test", "123", "test"]),
        ("Dupe-_---test", ["Dupe", "test"]),
        ("ÜberWürsteÄußerst", ["Über", "Würste", "Äußerst"]),
        ("MakeAWish", ["Make", "A", "Wish"]),
        ("uHTTP123", ["u", "HTTP", "123"]),
        ("aB1-1Ba", ["a", "B", "1", "1", "Ba"]),
        ("a.bc.d", ["a", "bc", "d"]),
        ("Emojis 🎉🎊-🎈", ["Emojis", "🎉🎊", "🎈"]),
        ("a b c", ["a", "b", "c"]),
        ("1 2 3", ["1", "2", "3"]),
    ],
)
def test_split(value, expected):
    assert casing.split(value) == expected


def test_camel_cases():
    assert casing.camel("camel_case_TEST", casing.identity) == "CamelCaseTEST"
    assert casing.camel("camel_case_TEST") == "CamelCaseTest"
    assert (
        casing.lower_camel("lower_camel_case_TEST", casing.identity)
        == "lowerCamelCaseTEST"
    )
    assert casing.lower_camel("lower_camel_case_TEST") == "lowerCamelCaseTest"
    assert casing.lower_camel("ÜberStraße") == "überStraße"


def test_snake_case():
    assert casing.snake("SnakeCaseTEST", casing.identity) == "Snake_Case_TEST"
    assert casing.snake("SnakeCaseTEST") == "snake_case_test"
    assert casing.snake("UnsinnÜberall") == "unsinn_überall"
    assert casing.snake("mp4") == "mp4"
    assert casing.snake("h.264 stream") == "h264_stream"
    assert casing.snake("Foo1-23") == "foo1_23"
    assert casing.snake("1 stop") == "1stop"


def test_kebab_case():
    assert casing.kebab("KebabCaseTEST", casing.identity) == "Kebab-Case-TEST"
    assert casing.kebab("KebabCaseTEST") == "kebab-case-test"


def test_initialism():
    assert casing.camel("USER_ID", str.lower, casing.initialism) == "UserID"
    assert casing.camel("platform-api", casing.initialism) == "PlatformAPI"


def test_remove_part():
    def drop_and(part):
        return "" if part == "and" else part

    assert casing.snake("one-and-two-and", drop_and) == "one_two"


def test_right_align():
    assert casing.snake("Stream1080P") == "stream_1080p"
    assert (
        casing.join(casing.merge_numbers(casing.split("test 123 foo"), "FOO"), "_")
        == "test_123foo"
    )


def test_default_suffix_right_aligns():
    assert casing.merge_numbers(["MODE", "4", "K"]) == ["MODE", "4K"]


def test_join_does_not_mutate_input():
    parts = ["a", "and", "b"]
    casing.join(parts, "-", lambda p: "" if p == "and" else p)
    assert parts == ["a", "and", "b"]


def test_initialism_leaves_unknown_words():
    assert casing.initialism("server") == "server"
    assert casing.initialism("http") == "HTTP"


def test_identity_returns_input():
    assert casing.identity("MiXeD") == "MiXeD"