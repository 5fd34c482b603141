# errderive

Declare exception classes with markers and let `errderive` fill in the
rest: the message built from a template, the underlying cause, conversion
from another error, and transparent wrapping of an inner error.

## Installing

```
pip install errderive
```

The `test` extra adds pytest for running the test suite.

## Declaring an error

Subclass `errderive.derive.DerivedError`, declare the fields as class
annotations and apply `errderive.derive.derive` to the class. Markers from
`errderive.attrs` go in two places:

- on the class (or on an enum variant), in a `__markers__` tuple;
- on a field, inside `typing.Annotated[type, marker, ...]`.

A field named `_0`, `_1`, ... is positional; any other name is a named field.

```python
from typing import Annotated

from errderive.attrs import TRANSPARENT, error, from_, source
from errderive.derive import DerivedError, derive


@derive
class ReadError(DerivedError):
    __markers__ = (error("failed to read {path}: {cause}"),)
    path: str
    cause: Annotated[OSError, source()]


err = ReadError("a.txt", OSError("boom"))
str(err)          # 'failed to read a.txt: boom'
err.source()      # the OSError; it is also set as err.__cause__
err.path          # 'a.txt'
err["cause"]      # fields by name or position
```

Positional and keyword values are both accepted; a missing, extra or
repeated field raises `TypeError`.

### Markers

- `error("template", *args, **named)` gives the message. Fields are
  interpolated by name (`{path}`) or by position (`{0}`); `{{` and `}}` are
  literal braces. Extra positional and named arguments fill `{}` and
  `{name}` placeholders. An argument that is callable is called with a view
  of the fields, which offers named fields as attributes and positional
  ones by index: `error("!bool = {}", lambda f: not f[0])`.
- `error(TRANSPARENT)` forwards both the message and the source to the one
  field the error wraps.
- `source()` marks the underlying cause. A field named `source` is the cause
  even without the marker (read it with `err["source"]`, since
  `err.source` is the method).
- `from_()` marks the field the error can be built from; it implies
  `source()`. `Cls.convert(value)` builds the error from such a value.
- `backtrace()` marks the field holding a backtrace. A field whose type is
  named `Backtrace` is found without the marker. When `convert` builds an
  error that has a separate backtrace field, it fills it with the current
  stack (`traceback.StackSummary`).

### Format specs

After a colon a placeholder takes a spec: `?` for a debug form (strings
quoted and escaped, `true`/`false` for booleans, `repr` otherwise), `x`,
`X`, `o`, `b` for integers in hex, octal or binary, `e`/`E` for exponent
notation, `p` for the object's address, and otherwise the usual width,
fill, alignment and precision. Without a spec, booleans show as
`true`/`false`, whole floats without a fraction, and path-like values as
their path.

### Enums

An error with several variants is declared with `kind="enum"` and one
nested class per variant. A message on the enum itself is the default for
variants that have none; every variant needs a message unless it is
transparent.

```python
@derive
class DataStoreError(DerivedError, kind="enum"):
    class Disconnect:
        __markers__ = (error("data store disconnected"),)
        _0: Annotated[OSError, from_()]

    class Redaction:
        __markers__ = (error("the data for key `{0}` is not available"),)
        _0: str

    class InvalidHeader:
        __markers__ = (error("invalid header (expected {expected:?}, found {found:?})"),)
        expected: str
        found: str


str(DataStoreError.Redaction("k"))
# 'the data for key `k` is not available'
str(DataStoreError.InvalidHeader(expected="a", found="b"))
# 'invalid header (expected "a", found "b")'
DataStoreError.convert(OSError("x"))   # a DataStoreError.Disconnect


@derive
class AppError(DerivedError):
    __markers__ = (error(TRANSPARENT),)
    _0: DataStoreError
```

Each variant becomes a subclass of the enum class, so
`except DataStoreError` catches all of them. The enum class itself cannot
be instantiated.

### Mistakes in a declaration

Problems such as two messages, `TRANSPARENT` together with a message,
transparency with more than one field, two `source()` fields, `from_()` on
a field other than the source or next to unrelated fields, field markers on
the class, a message on a field, a variant without a message, or two
variants converting from the same type raise
`errderive.attrs.DeriveError` when `derive` is applied. A template that
refers to a value no argument supplies raises `DeriveError` when the
message is rendered.

`errderive.derive.as_dyn_error(value)` returns `value` if it is an
exception and raises `TypeError` otherwise.

## Lower-level pieces

- `errderive.attrs`: the markers, `parse_attrs(markers)` and the `Trait`
  enumeration of format kinds (`Trait.from_spec(spec)`).
- `errderive.template`: `expand_shorthand(display, members)` rewrites a
  template's field placeholders into named arguments; `render(display,
  values)` produces the message; `as_display(value)` gives a value's
  displayed text.
- `errderive.model`: `build_struct` and `build_enum` turn declarations into
  `Struct` and `Enum` descriptions with `Field` and `Variant` parts.
- `errderive.validate`: `validate(item)` checks a description and raises
  `DeriveError` on the first problem.

## What it does not do

Field types are not checked when an error is built; `convert` only uses a
plain class type to choose the matching `from_()` field.