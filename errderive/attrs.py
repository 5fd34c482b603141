"""Markers that describe an error type, and their parsing into attributes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional


class DeriveError(Exception):
    """Raised when an error type's declaration is malformed."""


class _Keyword:
    """A bare keyword accepted inside ``error(...)``."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


TRANSPARENT = _Keyword("transparent")


class Trait(enum.Enum):
    """Formatting trait a placeholder asks of its value."""

    DEBUG = "Debug"
    DISPLAY = "Display"
    OCTAL = "Octal"
    LOWER_HEX = "LowerHex"
    UPPER_HEX = "UpperHex"
    POINTER = "Pointer"
    BINARY = "Binary"
    LOWER_EXP = "LowerExp"
    UPPER_EXP = "UpperExp"

    @classmethod
    def from_spec(cls, spec: str) -> "Trait":
        """Pick the trait named by the last character of a format spec."""
        return _SPEC_TRAITS.get(spec[-1:], cls.DISPLAY)


_SPEC_TRAITS = {
    "?": Trait.DEBUG,
    "o": Trait.OCTAL,
    "x": Trait.LOWER_HEX,
    "X": Trait.UPPER_HEX,
    "p": Trait.POINTER,
    "b": Trait.BINARY,
    "e": Trait.LOWER_EXP,
    "E": Trait.UPPER_EXP,
}


@dataclass(frozen=True, eq=False)
class Marker:
    """One annotation placed on an error type, variant or field."""

    kind: str
    args: tuple = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Display:
    """A message template with its extra arguments."""

    original: Marker
    fmt: str
    args: tuple = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    has_bonus_display: bool = False
    implied_bounds: frozenset = frozenset()


@dataclass(frozen=True)
class Transparent:
    """Marks that message and source are forwarded to the only field."""

    original: Marker


@dataclass
class Attrs:
    """Attributes collected from a list of markers."""

    display: Optional[Display] = None
    source: Optional[Marker] = None
    backtrace: Optional[Marker] = None
    from_: Optional[Marker] = None
    transparent: Optional[Transparent] = None


def error(*args: Any, **kwargs: Any) -> Marker:
    """Message marker: ``error("fmt", *args, **named)`` or ``error(TRANSPARENT)``."""
    return Marker("error", tuple(args), dict(kwargs))


def source() -> Marker:
    """Marks a field as the underlying cause."""
    return Marker("source")


def from_() -> Marker:
    """Marks a field as the one a conversion is built from."""
    return Marker("from")


def backtrace() -> Marker:
    """Marks a field as holding a backtrace."""
    return Marker("backtrace")


def parse_attrs(markers: Iterable[Any]) -> Attrs:
    """Collect markers into :class:`Attrs`, rejecting duplicates."""
    attrs = Attrs()
    for marker in markers:
        if not isinstance(marker, Marker):
            continue
        if marker.kind == "error":
            _parse_error(attrs, marker)
        elif marker.kind == "source":
            _require_empty(marker)
            if attrs.source is not None:
                raise DeriveError("duplicate #[source] attribute")
            attrs.source = marker
        elif marker.kind == "backtrace":
            _require_empty(marker)
            if attrs.backtrace is not None:
                raise DeriveError("duplicate #[backtrace] attribute")
            attrs.backtrace = marker
        elif marker.kind == "from":
            if marker.args or marker.kwargs:
                # Meant for some other tool; not ours.
                continue
            if attrs.from_ is not None:
                raise DeriveError("duplicate #[from] attribute")
            attrs.from_ = marker
    return attrs


def _require_empty(marker: Marker) -> None:
    if marker.args or marker.kwargs:
        raise DeriveError("unexpected token")


def _parse_error(attrs: Attrs, marker: Marker) -> None:
    args = marker.args
    if args and args[0] is TRANSPARENT:
        if len(args) > 1 or marker.kwargs:
            raise DeriveError("unexpected token")
        if attrs.transparent is not None:
            raise DeriveError("duplicate #[error(transparent)] attribute")
        attrs.transparent = Transparent(marker)
        return
    if not args or not isinstance(args[0], str):
        raise DeriveError("expected string literal")
    display = Display(marker, args[0], tuple(args[1:]), dict(marker.kwargs))
    if attrs.display is not None:
        raise DeriveError("only one #[error(...)] attribute is allowed")
    attrs.display = display