import pytest

from venom.types import (
    Failure,
    H,
    TestCase,
    TestStep,
    remove_not_printable_char,
)


def test_h_add_and_prefix():
    h = H()
    h.add("a", 1)
    h.add_with_prefix("input", "foo", 2)
    assert h["a"] == 1
    assert h["input.foo"] == 2


def test_h_clone_is_independent():
    h = H(a=1)
    copy = h.clone()
    copy.add("b", 2)
    assert "b" not in h
    assert copy == {"a": 1, "b": 2}
    assert isinstance(copy, H)


def test_h_add_all():
    h = H(a=1)
    h.add_all({"a": 3, "c": 4})
    h.add_all(None)
    assert h == {"a": 3, "c": 4}


def test_h_add_all_with_prefix():
    h = H()
    h.add_all_with_prefix("p", {"x": 1, "y": 2})
    h.add_all_with_prefix("p", None)
    assert h == {"p.x": 1, "p.y": 2}


def test_int_value_from_string_and_missing():
    step = TestStep(retry="42", delay=7)
    assert step.int_value("retry") == 42
    assert step.int_value("delay") == 7
    assert step.int_value("timeout") == 0


def test_int_value_hex_prefix():
    assert TestStep(retry="0x10").int_value("retry") == 16


def test_int_value_bool_and_float():
    step = TestStep(a=True, b=3.9)
    assert step.int_value("a") == 1
    assert step.int_value("b") == 3


@pytest.mark.parametrize("value", ["abc", "1.5", [1], {"a": 1}])
def test_int_value_invalid(value):
    with pytest.raises(ValueError, match="is not an integer"):
        TestStep(retry=value).int_value("retry")


def test_string_value_conversions():
    step = TestStep(type="http", flag=True, n=7)
    assert step.string_value("type") == "http"
    assert step.string_value("flag") == "true"
    assert step.string_value("n") == "7"
    assert step.string_value("missing") == ""


def test_string_value_invalid():
    with pytest.raises(ValueError, match="is not an string"):
        TestStep(type=["a"]).string_value("type")


def test_string_slice_value():
    step = TestStep(one="a", empty="", many=["a", "b"])
    assert step.string_slice_value("one") == ["a"]
    assert step.string_slice_value("empty") == []
    assert step.string_slice_value("missing") == []
    assert step.string_slice_value("many") == ["a", "b"]


def test_string_slice_value_invalid():
    with pytest.raises(ValueError, match="neither a string nor a string array"):
        TestStep(info={"a": 1}).string_slice_value("info")


def test_remove_not_printable_char_replaces_control():
    assert remove_not_printable_char("abc\x00d") == "abc d"


@pytest.mark.parametrize("text", ["hello world", "tab\there\nnew line", "été ✓ !?"])
def test_remove_not_printable_char_keeps_printable(text):
    assert remove_not_printable_char(text) == text


def test_remove_not_printable_char_preserves_length():
    text = "\x01\x02x\x7fy\u200b"
    result = remove_not_printable_char(text)
    assert len(result) == len(text)
    assert "x" in result and "y" in result
    assert "\x01" not in result and "\x7f" not in result


def test_append_error():
    tc = TestCase()
    tc.append_error(ValueError("oops"))
    assert len(tc.errors) == 1
    assert tc.errors[0].value == "oops"


def test_failure_str_without_colour(monkeypatch):
    monkeypatch.setenv("IS_TTY", "false")
    assert str(Failure(value="boom")) == "boom"
    assert str(Failure(error=RuntimeError("bad"))) == "bad"
    assert str(Failure(message="msg")) == "msg"


def test_failure_str_with_colour(monkeypatch):
    monkeypatch.setenv("IS_TTY", "true")
    assert str(Failure(value="boom")) == "\x1b[33mboom\x1b[0m"
    assert str(Failure(message="msg")) == "msg"


def test_failure_value_takes_precedence(monkeypatch):
    monkeypatch.setenv("IS_TTY", "0")
    failure = Failure(value="v", error=RuntimeError("e"), message="m")
    assert str(failure) == "v"