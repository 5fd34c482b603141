"""Expansion and rendering of error message templates."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable, Mapping

from errderive.attrs import DeriveError, Display, Trait


@dataclass(frozen=True)
class _FieldRef:
    """Refers to a field (or a named value) to be filled in at render time."""

    target: Any
    bonus: bool = False


class _FieldView:
    """Fields of an error, by attribute name or by tuple index."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[Any, Any]) -> None:
        self._values = values

    def __getattr__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __getitem__(self, index: Any) -> Any:
        return self._values[index]


def as_display(value: Any) -> str:
    """The text a value shows as in a message."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, os.PathLike):
        return os.fsdecode(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "-inf" if value < 0 else "inf"
        if value.is_integer():
            return str(int(value))
    return str(value)


def _take_int(read: str) -> tuple[str, str]:
    match = re.match(r"[0-9]*", read)
    return match.group(), read[match.end():]


def _take_ident(read: str) -> tuple[str, str]:
    match = re.match(r"(?:r#)?[A-Za-z0-9_]*", read)
    return match.group(), read[match.end():]


def expand_shorthand(display: Display, members: Iterable[Any]) -> Display:
    """Turn ``{field}`` placeholders into named arguments bound to fields.

    ``members`` lists the fields in order: names for named fields, integers
    for positional ones. The display is returned unchanged if the template
    cannot be expanded.
    """
    member_index = {member: i for i, member in enumerate(members)}
    named_args = set(display.kwargs)
    kwargs = dict(display.kwargs)
    read = display.fmt
    out: list[str] = []
    has_bonus_display = False
    implied_bounds = set()

    while (brace := read.find("{")) != -1:
        out.append(read[: brace + 1])
        read = read[brace + 1:]
        if read.startswith("{"):
            out.append("{")
            read = read[1:]
            continue
        if not read:
            return display
        first = read[0]
        if first.isascii() and first.isdigit():
            digits, read = _take_int(read)
            member = int(digits)
            if member > 0xFFFF_FFFF:
                return display
            if member not in member_index:
                out.append(digits)
                continue
            formatvar = f"_{member}"
        elif first.isascii() and (first.isalpha() or first == "_"):
            ident, read = _take_ident(read)
            if ident.startswith("r#"):
                member = ident[2:]
                if not member:
                    return display
                formatvar = f"r_{member}"
            else:
                member = ident
                formatvar = ident
        else:
            continue

        if member in member_index:
            end_spec = read.find("}")
            if end_spec == -1:
                return display
            implied_bounds.add((member_index[member], Trait.from_spec(read[:end_spec])))

        if formatvar.startswith("_"):
            formatvar = f"field_{formatvar}"
        out.append(formatvar)
        if formatvar in named_args:
            continue
        named_args.add(formatvar)
        bonus = read.startswith("}") and member in member_index
        has_bonus_display |= bonus
        kwargs[formatvar] = _FieldRef(member, bonus)

    out.append(read)
    return replace(
        display,
        fmt="".join(out),
        kwargs=kwargs,
        has_bonus_display=has_bonus_display,
        implied_bounds=frozenset(implied_bounds),
    )


def render(display: Display, values: Mapping[Any, Any]) -> str:
    """Render a display against field values.

    Arguments that are callables are called with a view of the fields,
    which offers named fields as attributes and positional ones by index.
    """
    view = _FieldView(values)

    def resolve(arg: Any) -> Any:
        if isinstance(arg, _FieldRef):
            try:
                value = values[arg.target]
            except KeyError:
                raise DeriveError(
                    f"cannot find value `{arg.target}` in this scope"
                ) from None
            return as_display(value) if arg.bonus else value
        if callable(arg):
            return arg(view)
        return arg

    positional = [resolve(arg) for arg in display.args]
    named = {key: resolve(arg) for key, arg in display.kwargs.items()}
    return _format(display.fmt, positional, named)


_PIECE = re.compile(r"\{\{|\}\}|\{([^{}]*)\}|\{|\}")


def _format(fmt: str, positional: list, named: dict) -> str:
    out: list[str] = []
    implicit = 0
    last = 0
    for match in _PIECE.finditer(fmt):
        out.append(fmt[last:match.start()])
        last = match.end()
        piece = match.group()
        if piece == "{{":
            out.append("{")
        elif piece == "}}":
            out.append("}")
        elif piece == "{":
            raise DeriveError("invalid format string: expected `}` but string was terminated")
        elif piece == "}":
            raise DeriveError("invalid format string: unmatched `}` found")
        else:
            name, _, spec = match.group(1).partition(":")
            if not name:
                value = _positional(positional, implicit)
                implicit += 1
            elif name.isdigit():
                value = _positional(positional, int(name))
            elif name in named:
                value = named[name]
            else:
                raise DeriveError(f"there is no argument named `{name}`")
            out.append(_format_value(value, spec))
    out.append(fmt[last:])
    return "".join(out)


def _positional(positional: list, index: int) -> Any:
    try:
        return positional[index]
    except IndexError:
        raise DeriveError(
            f"invalid reference to positional argument {index}"
        ) from None


_INT_CODES = {
    Trait.OCTAL: "o",
    Trait.LOWER_HEX: "x",
    Trait.UPPER_HEX: "X",
    Trait.BINARY: "b",
}


def _format_value(value: Any, spec: str) -> str:
    trait = Trait.from_spec(spec)
    rest = spec if trait is Trait.DISPLAY else spec[:-1]
    match trait:
        case Trait.DISPLAY:
            if not rest:
                return as_display(value)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return format(value, rest)
            return format(as_display(value), rest)
        case Trait.DEBUG:
            return format(_debug(value), rest)
        case Trait.POINTER:
            return format(hex(id(value)), rest)
        case Trait.LOWER_EXP | Trait.UPPER_EXP:
            return _exp(value, rest, trait is Trait.UPPER_EXP)
        case _:
            text = format(value, rest + _INT_CODES[trait])
            return text.replace("0X", "0x")


def _exp(value: Any, rest: str, upper: bool) -> str:
    prefix, precision = re.fullmatch(r"(.*?)(?:\.(\d+))?", rest).groups()
    marker = "E" if upper else "e"
    if isinstance(value, float) and not math.isfinite(value):
        text = as_display(value)
    elif precision is not None:
        mantissa, exponent = format(value, f".{precision}e").split("e")
        text = f"{mantissa}{marker}{int(exponent)}"
    else:
        number = Decimal(repr(value)) if isinstance(value, float) else Decimal(int(value))
        sign, digits, exponent = number.as_tuple()
        digits = list(digits)
        while len(digits) > 1 and digits[-1] == 0:
            digits.pop()
            exponent += 1
        if digits == [0]:
            exponent = 0
        head, tail = str(digits[0]), "".join(map(str, digits[1:]))
        mantissa = f"{head}.{tail}" if tail else head
        text = f"{'-' if sign else ''}{mantissa}{marker}{exponent + len(digits) - 1}"
    return format(text, prefix) if prefix else text


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t", "\0": "\\0"}


def _debug_str(text: str) -> str:
    def escape(ch: str) -> str:
        if ch in _ESCAPES:
            return _ESCAPES[ch]
        if not ch.isprintable() and ch != " ":
            return f"\\u{{{ord(ch):x}}}"
        return ch

    return '"' + "".join(map(escape, text)) + '"'


def _debug(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _debug_str(value)
    if isinstance(value, list):
        return "[" + ", ".join(map(_debug, value)) + "]"
    if isinstance(value, tuple):
        if len(value) == 1:
            return f"({_debug(value[0])},)"
        return "(" + ", ".join(map(_debug, value)) + ")"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{_debug(k)}: {_debug(v)}" for k, v in value.items()) + "}"
    if isinstance(value, (set, frozenset)):
        return "{" + ", ".join(map(_debug, value)) + "}"
    return repr(value)