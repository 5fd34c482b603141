"""Checks that an error declaration is consistent."""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from errderive.attrs import Attrs, DeriveError
from errderive.model import Enum, Field, Struct, Variant

Item = Union[Struct, Enum]


def validate(item: Item) -> Item:
    """Raise :class:`DeriveError` if the declaration is inconsistent; else return it."""
    if isinstance(item, Struct):
        _validate_struct(item)
    elif isinstance(item, Enum):
        _validate_enum(item)
    else:
        raise TypeError(f"expected a struct or enum declaration, got {type(item).__name__}")
    return item


def _validate_struct(item: Struct) -> None:
    check_non_field_attrs(item.attrs)
    if item.attrs.transparent is not None:
        if len(item.fields) != 1:
            raise DeriveError("#[error(transparent)] requires exactly one field")
        if any(f.attrs.source is not None for f in item.fields):
            raise DeriveError("transparent error struct can't contain #[source]")
    check_field_attrs(item.fields)
    for f in item.fields:
        _validate_field(f)


def _validate_enum(item: Enum) -> None:
    check_non_field_attrs(item.attrs)
    has_display = item.has_display()
    for variant in item.variants:
        _validate_variant(variant)
        if (
            has_display
            and variant.attrs.display is None
            and variant.attrs.transparent is None
        ):
            raise DeriveError('missing #[error("...")] display attribute')
    from_types: list = []
    for variant in item.variants:
        from_field = variant.from_field()
        if from_field is None:
            continue
        if from_field.ty in from_types:
            raise DeriveError(
                "cannot derive From because another variant has the same source type"
            )
        from_types.append(from_field.ty)


def _validate_variant(variant: Variant) -> None:
    check_non_field_attrs(variant.attrs)
    if variant.attrs.transparent is not None:
        if len(variant.fields) != 1:
            raise DeriveError("#[error(transparent)] requires exactly one field")
        if any(f.attrs.source is not None for f in variant.fields):
            raise DeriveError("transparent variant can't contain #[source]")
    check_field_attrs(variant.fields)
    for f in variant.fields:
        _validate_field(f)


def _validate_field(f: Field) -> None:
    if f.attrs.display is not None:
        raise DeriveError(
            "not expected here; the #[error(...)] attribute belongs on top of a "
            "struct or an enum variant"
        )


def check_non_field_attrs(attrs: Attrs) -> None:
    """Reject field-only markers on a type or variant, and message plus transparency."""
    if attrs.from_ is not None:
        raise DeriveError(
            "not expected here; the #[from] attribute belongs on a specific field"
        )
    if attrs.source is not None:
        raise DeriveError(
            "not expected here; the #[source] attribute belongs on a specific field"
        )
    if attrs.backtrace is not None:
        raise DeriveError(
            "not expected here; the #[backtrace] attribute belongs on a specific field"
        )
    if attrs.display is not None and attrs.transparent is not None:
        raise DeriveError(
            "cannot have both #[error(transparent)] and a display attribute"
        )


def check_field_attrs(fields: Iterable[Field]) -> None:
    """Check the markers on one struct's or variant's fields."""
    fields = list(fields)
    from_field: Optional[Field] = None
    source_field: Optional[Field] = None
    backtrace_field: Optional[Field] = None
    has_backtrace = False
    for f in fields:
        if f.attrs.from_ is not None:
            if from_field is not None:
                raise DeriveError("duplicate #[from] attribute")
            from_field = f
        if f.attrs.source is not None:
            if source_field is not None:
                raise DeriveError("duplicate #[source] attribute")
            source_field = f
        if f.attrs.backtrace is not None:
            if backtrace_field is not None:
                raise DeriveError("duplicate #[backtrace] attribute")
            backtrace_field = f
            has_backtrace = True
        if f.attrs.transparent is not None:
            raise DeriveError(
                "#[error(transparent)] needs to go outside the enum or struct, "
                "not on an individual field"
            )
        has_backtrace = has_backtrace or f.is_backtrace()

    if from_field is not None and source_field is not None:
        if from_field.member != source_field.member:
            raise DeriveError(
                "#[from] is only supported on the source field, not any other field"
            )
    if from_field is not None:
        if backtrace_field is not None:
            max_expected = 1 + (from_field.member != backtrace_field.member)
        else:
            max_expected = 1 + has_backtrace
        if len(fields) > max_expected:
            raise DeriveError(
                "deriving From requires no fields other than source and backtrace"
            )


__all__: List[str] = ["validate", "check_non_field_attrs", "check_field_attrs"]