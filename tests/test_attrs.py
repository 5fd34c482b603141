import pytest

from errderive.attrs import (
    TRANSPARENT,
    Attrs,
    DeriveError,
    Marker,
    Trait,
    backtrace,
    error,
    from_,
    parse_attrs,
    source,
)


def test_error_marker_parses_display():
    attrs = parse_attrs([error("msg {x}", 1, a=2)])
    assert attrs.display.fmt == "msg {x}"
    assert attrs.display.args == (1,)
    assert dict(attrs.display.kwargs) == {"a": 2}
    assert attrs.transparent is None


def test_keyword_named_argument():
    attrs = parse_attrs([error("error: {type}", type=1)])
    assert dict(attrs.display.kwargs) == {"type": 1}


def test_transparent():
    marker = error(TRANSPARENT)
    attrs = parse_attrs([marker])
    assert attrs.transparent.original is marker
    assert attrs.display is None


def test_duplicate_display():
    with pytest.raises(DeriveError, match=r"only one #\[error\(\.\.\.\)\] attribute is allowed"):
        parse_attrs([error("..."), error("...")])


def test_duplicate_transparent():
    with pytest.raises(DeriveError, match=r"duplicate #\[error\(transparent\)\] attribute"):
        parse_attrs([error(TRANSPARENT), error(TRANSPARENT)])


@pytest.mark.parametrize(
    "make, name", [(source, "source"), (backtrace, "backtrace"), (from_, "from")]
)
def test_duplicate_field_markers(make, name):
    with pytest.raises(DeriveError, match=rf"duplicate #\[{name}\] attribute"):
        parse_attrs([make(), make()])


def test_transparent_and_display_both_collected():
    attrs = parse_attrs([error(TRANSPARENT), error("...")])
    assert attrs.transparent is not None and attrs.display.fmt == "..."


def test_field_markers_collected():
    s, b, f = source(), backtrace(), from_()
    attrs = parse_attrs([s, b, f])
    assert (attrs.source, attrs.backtrace, attrs.from_) == (s, b, f)


@pytest.mark.parametrize("marker", [error(), error(5)])
def test_error_needs_string(marker):
    with pytest.raises(DeriveError, match="expected string literal"):
        parse_attrs([marker])


def test_transparent_takes_nothing_else():
    with pytest.raises(DeriveError, match="unexpected token"):
        parse_attrs([error(TRANSPARENT, "x")])


def test_from_with_arguments_is_ignored():
    attrs = parse_attrs([Marker("from", ("other",))])
    assert attrs.from_ is None


def test_source_with_arguments_rejected():
    with pytest.raises(DeriveError, match="unexpected token"):
        parse_attrs([Marker("source", ("x",))])


def test_unknown_markers_ignored():
    attrs = parse_attrs([Marker("deprecated"), "noise"])
    assert attrs == Attrs()


@pytest.mark.parametrize(
    "spec, trait",
    [
        (":?", Trait.DEBUG),
        ("", Trait.DISPLAY),
        (":>5", Trait.DISPLAY),
        (":x", Trait.LOWER_HEX),
        (":#X", Trait.UPPER_HEX),
        (":o", Trait.OCTAL),
        (":b", Trait.BINARY),
        (":p", Trait.POINTER),
        (":e", Trait.LOWER_EXP),
        (":E", Trait.UPPER_EXP),
    ],
)
def test_trait_from_spec(spec, trait):
    assert Trait.from_spec(spec) is trait