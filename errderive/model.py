"""Declared shape of an error type: its fields, variants and attributes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple, TypeVar, Union, get_args, get_origin

from errderive.attrs import Attrs, parse_attrs
from errderive.template import expand_shorthand

Member = Union[str, int]
FieldSpec = Tuple[Optional[str], Any, Iterable[Any]]
VariantSpec = Tuple[str, Iterable[Any], Iterable[FieldSpec]]


@dataclass
class Field:
    """One field of a struct or variant.

    ``member`` is the field's name, or its position for positional fields.
    """

    member: Member
    ty: Any
    attrs: Attrs
    markers: tuple = ()
    contains_generic: bool = False

    def is_backtrace(self) -> bool:
        """Whether the field's type is named ``Backtrace``."""
        return _type_is_backtrace(self.ty)


@dataclass
class Variant:
    """One variant of an error enum."""

    name: str
    attrs: Attrs
    fields: List[Field] = field(default_factory=list)
    markers: tuple = ()

    def from_field(self) -> Optional[Field]:
        return _from_field(self.fields)

    def source_field(self) -> Optional[Field]:
        return _source_field(self.fields)

    def backtrace_field(self) -> Optional[Field]:
        return _backtrace_field(self.fields)

    def distinct_backtrace_field(self) -> Optional[Field]:
        return _distinct_backtrace_field(self.backtrace_field(), self.from_field())


@dataclass
class Struct:
    """An error declared as a single record."""

    name: str
    attrs: Attrs
    fields: List[Field] = field(default_factory=list)
    markers: tuple = ()

    def from_field(self) -> Optional[Field]:
        return _from_field(self.fields)

    def source_field(self) -> Optional[Field]:
        return _source_field(self.fields)

    def backtrace_field(self) -> Optional[Field]:
        return _backtrace_field(self.fields)

    def distinct_backtrace_field(self) -> Optional[Field]:
        return _distinct_backtrace_field(self.backtrace_field(), self.from_field())


@dataclass
class Enum:
    """An error declared as a set of variants."""

    name: str
    attrs: Attrs
    variants: List[Variant] = field(default_factory=list)
    markers: tuple = ()

    def has_source(self) -> bool:
        return any(
            v.source_field() is not None or v.attrs.transparent is not None
            for v in self.variants
        )

    def has_backtrace(self) -> bool:
        return any(v.backtrace_field() is not None for v in self.variants)

    def has_display(self) -> bool:
        return (
            self.attrs.display is not None
            or self.attrs.transparent is not None
            or any(v.attrs.display is not None for v in self.variants)
            or all(v.attrs.transparent is not None for v in self.variants)
        )


def build_struct(name: str, markers: Iterable[Any], fields: Iterable[FieldSpec]) -> Struct:
    """Build a struct from its markers and ``(name, type, markers)`` field specs.

    A field spec whose name is ``None`` is positional.
    """
    markers = tuple(markers)
    attrs = parse_attrs(markers)
    built = _build_fields(fields)
    if attrs.display is not None:
        attrs.display = expand_shorthand(attrs.display, [f.member for f in built])
    return Struct(name, attrs, built, markers)


def build_enum(name: str, markers: Iterable[Any], variants: Iterable[VariantSpec]) -> Enum:
    """Build an enum from its markers and ``(name, markers, fields)`` variant specs.

    Variants without a message take the enum's message; variants with
    neither message nor transparency take the enum's transparency.
    """
    markers = tuple(markers)
    attrs = parse_attrs(markers)
    built = []
    for variant_name, variant_markers, field_specs in variants:
        variant_markers = tuple(variant_markers)
        variant = Variant(
            variant_name,
            parse_attrs(variant_markers),
            _build_fields(field_specs),
            variant_markers,
        )
        if variant.attrs.display is None:
            variant.attrs.display = attrs.display
        if variant.attrs.display is not None:
            variant.attrs.display = expand_shorthand(
                variant.attrs.display, [f.member for f in variant.fields]
            )
        elif variant.attrs.transparent is None:
            variant.attrs.transparent = attrs.transparent
        built.append(variant)
    return Enum(name, attrs, built, markers)


def _build_fields(specs: Iterable[FieldSpec]) -> List[Field]:
    fields = []
    for position, (name, ty, markers) in enumerate(specs):
        markers = tuple(markers)
        fields.append(
            Field(
                member=position if name is None else name,
                ty=ty,
                attrs=parse_attrs(markers),
                markers=markers,
                contains_generic=_contains_typevar(ty),
            )
        )
    return fields


def _contains_typevar(ty: Any) -> bool:
    if isinstance(ty, TypeVar):
        return True
    return any(_contains_typevar(arg) for arg in get_args(ty))


def _type_is_backtrace(ty: Any) -> bool:
    if isinstance(ty, str):
        text = ty.strip()
        if "[" in text:
            return False
        return text.rpartition(".")[2] == "Backtrace"
    if get_origin(ty) is not None:
        return False
    return isinstance(ty, type) and ty.__name__ == "Backtrace"


def _from_field(fields: List[Field]) -> Optional[Field]:
    return next((f for f in fields if f.attrs.from_ is not None), None)


def _source_field(fields: List[Field]) -> Optional[Field]:
    marked = next(
        (f for f in fields if f.attrs.from_ is not None or f.attrs.source is not None),
        None,
    )
    if marked is not None:
        return marked
    return next((f for f in fields if f.member == "source"), None)


def _backtrace_field(fields: List[Field]) -> Optional[Field]:
    marked = next((f for f in fields if f.attrs.backtrace is not None), None)
    if marked is not None:
        return marked
    return next((f for f in fields if f.is_backtrace()), None)


def _distinct_backtrace_field(
    backtrace_field: Optional[Field], from_field: Optional[Field]
) -> Optional[Field]:
    if backtrace_field is None:
        return None
    if from_field is not None and from_field.member == backtrace_field.member:
        return None
    return backtrace_field