import pytest

from qtmetagen.declarations import (
    DeclarationError,
    is_valid_repr,
    parse_base_class,
    parse_method,
    parse_property,
    parse_signal,
    property_flags,
)

BASE_FLAGS = 1 | 2 | 0x00004000 | 0x00001000 | 0x00010000


def test_property_flags_default():
    assert property_flags([]) == BASE_FLAGS


def test_property_flags_notify():
    assert property_flags(["NOTIFY"]) == BASE_FLAGS | 0x00400000


def test_property_flags_const_clears_writable():
    flags = property_flags(["CONST"])
    assert flags & 2 == 0
    assert flags & 0x00000400
    assert flags & 1


def test_property_flags_accessors_do_not_change_flags():
    assert property_flags(["READ", "WRITE", "ALIAS"]) == BASE_FLAGS


def test_property_flags_unknown_keyword():
    with pytest.raises(DeclarationError):
        property_flags(["BOGUS"])


def test_parse_simple_property():
    prop = parse_property("count", "i32")
    assert prop.name == "count"
    assert prop.type_name == "i32"
    assert prop.flags == BASE_FLAGS
    assert prop.notify_signal is None


def test_parse_property_with_keywords():
    prop = parse_property(
        "text", "QString; NOTIFY text_changed READ get_text WRITE set_text ALIAS label"
    )
    assert prop.type_name == "QString"
    assert prop.notify_signal == "text_changed"
    assert prop.getter == "get_text"
    assert prop.setter == "set_text"
    assert prop.alias == "label"
    assert prop.flags & 0x00400000


def test_parse_const_property():
    prop = parse_property("value", "f64; CONST")
    assert prop.flags & 2 == 0
    assert prop.flags & 0x400


def test_parse_property_generic_type_keeps_semicolon_inside_brackets():
    prop = parse_property("data", "[u8; 4]")
    assert prop.type_name == "[u8; 4]"


def test_parse_property_duplicate_notify():
    with pytest.raises(DeclarationError):
        parse_property("x", "i32; NOTIFY a NOTIFY b")


def test_parse_property_missing_argument():
    with pytest.raises(DeclarationError):
        parse_property("x", "i32; READ")


def test_parse_property_bad_keyword():
    with pytest.raises(DeclarationError):
        parse_property("x", "i32; FOO bar")


def test_parse_property_empty_type():
    with pytest.raises(DeclarationError):
        parse_property("x", "  ")


def test_parse_method_full_function():
    method = parse_method("add", "fn add(&self, a: i32, b: i32) -> i32 { a + b }")
    assert method.name == "add"
    assert [a.name for a in method.args] == ["a", "b"]
    assert [a.type_name for a in method.args] == ["i32", "i32"]
    assert method.ret_type == "i32"
    assert method.flags == 0x2
    assert not method.is_signal


def test_parse_method_without_return_type_is_unit():
    method = parse_method("reset", "fn reset(&mut self) { self.x = 0; }")
    assert method.ret_type == "()"
    assert method.args == ()


def test_parse_method_generic_argument_types():
    method = parse_method(
        "take", "fn take(&self, items: Vec<(i32, String)>, mut n: u8) -> Option<u8> { None }"
    )
    assert [a.type_name for a in method.args] == ["Vec<(i32, String)>", "u8"]
    assert [a.name for a in method.args] == ["items", "n"]
    assert method.ret_type == "Option<u8>"


def test_parse_method_wildcard_argument_has_no_name():
    method = parse_method("f", "fn f(&self, _: i32) {}")
    assert method.args[0].name is None
    assert method.args[0].type_name == "i32"


def test_parse_method_bare_function_type():
    method = parse_method("compute", "fn(x: f64, std::string::String) -> f64")
    assert [a.name for a in method.args] == ["x"]
    assert method.ret_type == "f64"


def test_parse_method_name_mismatch():
    with pytest.raises(DeclarationError):
        parse_method("foo", "fn bar(&self) {}")


def test_parse_method_unparsable():
    with pytest.raises(DeclarationError):
        parse_method("foo", "struct Foo;")


def test_parse_method_named_without_body():
    with pytest.raises(DeclarationError):
        parse_method("foo", "fn foo(&self) -> i32")


def test_parse_signal():
    signal = parse_signal("changed", "value: i32, label: QString,")
    assert signal.name == "changed"
    assert signal.is_signal
    assert signal.flags == 0x2 | 0x4
    assert signal.ret_type == "()"
    assert [(a.name, a.type_name) for a in signal.args] == [
        ("value", "i32"),
        ("label", "QString"),
    ]


def test_parse_signal_without_arguments():
    assert parse_signal("clicked", "").args == ()


def test_parse_signal_invalid_argument():
    with pytest.raises(DeclarationError):
        parse_signal("broken", "i32")


def test_parse_base_class():
    assert parse_base_class("trait QQuickItem") == "QQuickItem"


@pytest.mark.parametrize("spec", ["QQuickItem", "trait", "struct QObject", "trait a b"])
def test_parse_base_class_invalid(spec):
    with pytest.raises(DeclarationError):
        parse_base_class(spec)


@pytest.mark.parametrize("repr_name", ["u8", "u16", "u32", "i8", "i16", "i32", "C"])
def test_valid_representations(repr_name):
    assert is_valid_repr(repr_name) is True


@pytest.mark.parametrize("repr_name", ["u64", "i64", "usize", "transparent", ""])
def test_invalid_representations(repr_name):
    assert is_valid_repr(repr_name) is False