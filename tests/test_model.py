from typing import List, Optional, TypeVar

import pytest

from errderive.attrs import TRANSPARENT, DeriveError, backtrace, error, from_, source
from errderive.model import build_enum, build_struct
from errderive.template import render

E = TypeVar("E")


class Backtrace:
    pass


def test_braced_struct_renders_named_field():
    item = build_struct("Error", [error("braced error: {msg}")], [("msg", str, [])])
    assert render(item.attrs.display, {"msg": "T"}) == "braced error: T"
    assert item.attrs.display.has_bonus_display


def test_tuple_struct_rewrites_positional_placeholder():
    item = build_struct("Error", [error("tuple error: {0}")], [(None, int, [])])
    assert item.attrs.display.fmt == "tuple error: {field__0}"
    assert render(item.attrs.display, {0: 0}) == "tuple error: 0"
    assert item.fields[0].member == 0


def test_mixed_arguments():
    item = build_struct(
        "Error",
        [error("a={a} :: b={} :: c={c} :: d={d}", 1, c=2, d=3)],
        [("a", int, []), ("d", int, [])],
    )
    assert render(item.attrs.display, {"a": 0, "d": 0}) == "a=0 :: b=1 :: c=2 :: d=3"


def test_raw_conflict():
    item = build_enum(
        "Error",
        [],
        [("Braced", [error("braced raw error: {r#func}, {func}", func="U")], [("func", str, [])])],
    )
    display = item.variants[0].attrs.display
    assert render(display, {"func": "T"}) == "braced raw error: T, U"


def test_keyword():
    item = build_struct("Error", [error("error: {type}", type=1)], [])
    assert render(item.attrs.display, {}) == "error: 1"


def test_ints_not_a_field_stay_positional():
    item = build_enum(
        "Error",
        [],
        [
            ("Tuple", [error("error {0}")], [(None, int, []), (None, int, [])]),
            ("Struct", [error("error {0}", "?")], [("v", int, [])]),
        ],
    )
    tuple_variant, struct_variant = item.variants
    assert render(tuple_variant.attrs.display, {0: 9, 1: 0}) == "error 9"
    assert struct_variant.attrs.display.fmt == "error {0}"
    assert render(struct_variant.attrs.display, {"v": 0}) == "error ?"


def test_enum_message_is_inherited():
    item = build_enum(
        "Error",
        [error("{0}")],
        [
            ("Some", [], [(None, str, [])]),
            ("Other", [error("other error")], [(None, str, [])]),
        ],
    )
    some, other = item.variants
    assert render(some.attrs.display, {0: "some error"}) == "some error"
    assert render(other.attrs.display, {0: "..."}) == "other error"
    assert item.attrs.display.fmt == "{0}"


def test_enum_transparency_is_inherited():
    item = build_enum(
        "Error",
        [error(TRANSPARENT)],
        [("Other", [], [(None, ValueError, [])])],
    )
    assert item.variants[0].attrs.transparent is item.attrs.transparent
    assert item.variants[0].attrs.display is None


def test_opt_source_no_backtrace():
    item = build_struct(
        "E", [error("...")], [("source", Optional[ValueError], [source()])]
    )
    assert item.source_field().member == "source"
    assert item.backtrace_field() is None


def test_opt_source_always_backtrace():
    item = build_struct(
        "E",
        [error("...")],
        [("source", Optional[ValueError], [source()]), ("backtrace", Backtrace, [])],
    )
    assert item.source_field().member == "source"
    assert item.backtrace_field().member == "backtrace"
    assert item.distinct_backtrace_field().member == "backtrace"


def test_no_source_opt_backtrace():
    item = build_struct(
        "E", [error("...")], [("backtrace", Optional[Backtrace], [backtrace()])]
    )
    assert item.source_field() is None
    assert item.backtrace_field().member == "backtrace"
    assert not item.backtrace_field().is_backtrace()


def test_always_source_opt_backtrace_enum():
    item = build_enum(
        "E",
        [],
        [
            (
                "Test",
                [error("...")],
                [("source", ValueError, []), ("backtrace", Optional[Backtrace], [backtrace()])],
            )
        ],
    )
    variant = item.variants[0]
    assert variant.source_field().member == "source"
    assert variant.backtrace_field().member == "backtrace"
    assert item.has_source()
    assert item.has_backtrace()


def test_explicit_source_beats_name():
    item = build_struct(
        "E", [error("x")], [("source", str, []), ("io", OSError, [source()])]
    )
    assert item.source_field().member == "io"


def test_from_field_is_source():
    item = build_struct("E", [error("x")], [(None, OSError, [from_()])])
    assert item.from_field().member == 0
    assert item.source_field().member == 0


def test_combined_from_backtrace_is_not_distinct():
    item = build_struct("E", [error("x")], [("source", OSError, [from_(), backtrace()])])
    assert item.backtrace_field().member == "source"
    assert item.distinct_backtrace_field() is None


@pytest.mark.parametrize(
    "ty, expected",
    [(Backtrace, True), ("Backtrace", True), ("core.Backtrace", True),
     ("Optional[Backtrace]", False), (Optional[Backtrace], False), (str, False)],
)
def test_is_backtrace(ty, expected):
    item = build_struct("E", [], [("bt", ty, [])])
    assert item.fields[0].is_backtrace() is expected


def test_contains_generic():
    item = build_struct(
        "E", [], [("a", E, []), ("b", List[E], []), ("c", int, [])]
    )
    assert [f.contains_generic for f in item.fields] == [True, True, False]


def test_enum_without_source_or_backtrace():
    item = build_enum("E", [], [("Unit", [error("unit")], [])])
    assert not item.has_source()
    assert not item.has_backtrace()
    assert item.has_display()


def test_enum_without_messages_has_no_display():
    item = build_enum(
        "E", [], [("Braced", [], [("cause", OSError, [source()])]), ("Unit", [], [])]
    )
    assert not item.has_display()
    assert item.has_source()


def test_empty_enum_has_display():
    assert build_enum("E", [error("...")], []).has_display()


def test_duplicate_message_rejected():
    with pytest.raises(DeriveError, match="only one"):
        build_struct("E", [error("..."), error("...")], [])