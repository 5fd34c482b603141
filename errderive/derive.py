"""Turn declared classes into error types with messages, sources and backtraces."""

from __future__ import annotations

import re
import traceback
from typing import Annotated, Any, Dict, Optional, Union, get_args, get_origin

from errderive.attrs import DeriveError
from errderive.model import Enum, Field, Struct, Variant, build_enum, build_struct
from errderive.template import as_display, render
from errderive.validate import validate

_POSITIONAL = re.compile(r"_\d+")


def as_dyn_error(value: Any) -> BaseException:
    """Return ``value`` as an exception, or raise ``TypeError`` if it is not one."""
    if isinstance(value, BaseException):
        return value
    raise TypeError(f"{type(value).__name__} is not an error type")


def _source_of(exc: BaseException) -> Optional[BaseException]:
    if isinstance(exc, DerivedError):
        return exc.source()
    return exc.__cause__


def _backtrace_of(exc: BaseException) -> Any:
    if isinstance(exc, DerivedError):
        return exc.backtrace()
    return None


def _capture() -> traceback.StackSummary:
    return traceback.extract_stack()[:-3]


def _unoptional(ty: Any) -> Any:
    if get_origin(ty) is Union:
        args = [arg for arg in get_args(ty) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return ty


def _accepts(ty: Any, value: Any) -> bool:
    if not isinstance(ty, type):
        return True
    return isinstance(value, ty)


class DerivedError(Exception):
    """Base of error types built by :func:`derive`.

    Field values are available as ``error[member]`` (a name or a position)
    and, for named fields, as attributes.
    """

    _shape: Optional[Union[Struct, Variant]] = None
    _enum: Optional[Enum] = None
    _is_enum: bool = False

    def __init_subclass__(cls, kind: str = "struct", **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if kind not in ("struct", "enum"):
            raise ValueError(f"kind must be 'struct' or 'enum', not {kind!r}")
        cls._is_enum = kind == "enum"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        shape = type(self)._shape
        if shape is None:
            raise TypeError(
                f"{type(self).__qualname__} cannot be instantiated directly"
            )
        fields = shape.fields
        if len(args) > len(fields):
            raise TypeError(
                f"{type(self).__qualname__} takes {len(fields)} values, got {len(args)}"
            )
        values: Dict[Any, Any] = {f.member: a for f, a in zip(fields, args)}
        named = {f.member for f in fields if isinstance(f.member, str)}
        for key, value in kwargs.items():
            if key not in named or key in values:
                raise TypeError(f"unexpected or repeated field {key!r}")
            values[key] = value
        missing = [f.member for f in fields if f.member not in values]
        if missing:
            raise TypeError(f"missing fields: {missing}")
        self._setup(values)

    def _setup(self, values: Dict[Any, Any]) -> None:
        self._values = values
        Exception.__init__(self, *values.values())
        cause = self.source()
        if cause is not None:
            self.__cause__ = cause

    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_values")
        if values is not None and name in values:
            return values[name]
        raise AttributeError(name)

    def __getitem__(self, member: Any) -> Any:
        return self._values[member]

    def __repr__(self) -> str:
        parts = ", ".join(
            repr(v) if isinstance(k, int) else f"{k}={v!r}"
            for k, v in self._values.items()
        )
        return f"{type(self).__qualname__}({parts})"

    def __str__(self) -> str:
        shape = self._shape
        if shape.attrs.transparent is not None:
            return as_display(self._values[shape.fields[0].member])
        if shape.attrs.display is not None:
            return render(shape.attrs.display, self._values)
        return repr(self)

    def source(self) -> Optional[BaseException]:
        """The lower-level error that caused this one, if any."""
        shape = self._shape
        if shape.attrs.transparent is not None:
            only = self._values[shape.fields[0].member]
            return _source_of(as_dyn_error(only))
        source_field = shape.source_field()
        if source_field is None:
            return None
        value = self._values[source_field.member]
        if value is None:
            return None
        return as_dyn_error(value)

    def backtrace(self) -> Any:
        """The backtrace held by this error or forwarded from its source."""
        shape = self._shape
        backtrace_field = shape.backtrace_field()
        if backtrace_field is None:
            return None
        own = self._values[backtrace_field.member]
        source_field = shape.source_field()
        if source_field is None:
            return own
        source = self._values[source_field.member]
        from_source = None if source is None else _backtrace_of(as_dyn_error(source))
        if source_field.member == backtrace_field.member:
            return from_source
        if self._enum is not None and backtrace_field.attrs.backtrace is not None:
            return own
        return from_source if from_source is not None else own

    @classmethod
    def convert(cls, value: Any) -> "DerivedError":
        """Build an error from its ``from_()`` field's value."""
        if cls._shape is not None:
            candidates = [(cls, cls._shape)]
        elif cls._enum is not None:
            candidates = [(getattr(cls, v.name), v) for v in cls._enum.variants]
        else:
            candidates = []
        candidates = [(t, s) for t, s in candidates if s.from_field() is not None]
        for target, shape in candidates:
            from_field = shape.from_field()
            if _accepts(_unoptional(from_field.ty), value):
                values = {from_field.member: value}
                backtrace_field = shape.distinct_backtrace_field()
                if backtrace_field is not None:
                    values[backtrace_field.member] = _capture()
                instance = target.__new__(target)
                instance._setup(values)
                return instance
        raise TypeError(f"{cls.__qualname__} cannot be built from {type(value).__name__}")


def _field_specs(namespace: type) -> list:
    specs = []
    for name, ty in namespace.__dict__.get("__annotations__", {}).items():
        markers: tuple = ()
        if get_origin(ty) is Annotated:
            ty, *rest = get_args(ty)
            markers = tuple(rest)
        member = None if _POSITIONAL.fullmatch(name) else name
        specs.append((member, ty, markers))
    return specs


def derive(cls: type) -> type:
    """Check a declared error class and give it its behaviour."""
    if not (isinstance(cls, type) and issubclass(cls, DerivedError)):
        raise TypeError("derive() needs a subclass of DerivedError")
    markers = cls.__dict__.get("__markers__", ())
    if not cls._is_enum:
        item = validate(build_struct(cls.__name__, markers, _field_specs(cls)))
        cls._shape = item
        cls._enum = None
        return cls

    declared = [
        (name, obj)
        for name, obj in cls.__dict__.items()
        if isinstance(obj, type) and not name.startswith("_")
    ]
    specs = [
        (name, obj.__dict__.get("__markers__", ()), _field_specs(obj))
        for name, obj in declared
    ]
    item = validate(build_enum(cls.__name__, markers, specs))
    cls._shape = None
    cls._enum = item
    for variant in item.variants:
        subclass = type(
            variant.name,
            (cls,),
            {
                "_shape": variant,
                "__qualname__": f"{cls.__qualname__}.{variant.name}",
                "__module__": cls.__module__,
            },
        )
        setattr(cls, variant.name, subclass)
    return cls


__all__ = ["DerivedError", "DeriveError", "as_dyn_error", "derive", "Field"]