# qtmetagen

Pure-Python generators for the binary tables that Qt reads at run time.
No third-party packages are needed.

- `qtmetagen.metaobject`: the integer table, string table and meta-type list
  behind a `QMetaObject`, in the Qt 5 or Qt 6 layout.
- `qtmetagen.declarations`: parse property, method, signal and base-class
  declarations into the descriptions `metaobject` works from.
- `qtmetagen.generator`: complete tables for QObject, gadget and enum types,
  and the metadata block of a QML extension plugin.
- `qtmetagen.qrc`: the tree, name and payload blobs that Qt's resource
  registration takes, built from a short resource description.
- `qtmetagen.qbjs`: the binary-JSON ("qbjs") encoding of a flat object.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Meta-objects

Declarations are plain strings:

```python
from qtmetagen.declarations import parse_method, parse_property, parse_signal
from qtmetagen.generator import build_qobject_meta

value = parse_property("value", "i32; NOTIFY value_changed")
changed = parse_signal("value_changed", "")
reset = parse_method("reset", "fn reset(&mut self) {}")
meta = build_qobject_meta("Counter", [value], [reset], [changed], 5)

meta.int_data          # tuple of ints for the QMetaObject data array
meta.string_data       # the strings in table order
meta.string_table(64)  # the string table laid out for a 64-bit target
```

- `parse_property(name, spec)` takes `Type[; KEYWORD ...]` with the keywords
  `NOTIFY <signal>`, `READ <getter>`, `WRITE <setter>`, `ALIAS <name>` and
  `CONST`; `property_flags(keywords)` gives the Qt property flags they imply.
- `parse_method(name, signature)` accepts a full function (`fn name(...) -> T { ... }`)
  or a bare function type (`fn(x: i32) -> T`).
- `parse_signal(name, arguments)` takes a comma-separated argument list.
- `parse_base_class(spec)` takes `trait Name` and returns `Name`.
- `is_valid_repr(representation)` accepts `u8`, `u16`, `u32`, `i8`, `i16`,
  `i32` and `C`.

Malformed or inconsistent declarations raise `DeclarationError`, a subclass of
`ValueError`.

`generator` builds whole tables:

- `build_qobject_meta(class_name, properties, methods, signals, qt_version)`
  places the signals before the methods and rejects a NOTIFY signal with more
  than one argument.
- `build_gadget_meta(class_name, properties, methods, qt_version)` has no signals.
- `build_enum_meta(name, variants, representation, qt_version)` takes variant
  names or `(name, value)` pairs; a bare name takes the value after the
  previous one, starting at 0.

Each returns a `GeneratedMeta`. Helpers `signal_index(signals, offset_name)`
and `notify_argument_count(methods, signal_name)` are in the same module.

For lower-level work, `metaobject.MetaObject` offers `add_string`, `add_type`,
`add_meta_type`, `compute_int_data` and `build_string_data`, and
`builtin_type(type_name)` maps type names such as `i32`, `f64` or `QString` to
Qt meta-type ids (43 for `()`, 0 for anything not built in).

## Resources

```python
from qtmetagen.qrc import process_qrc

data = process_qrc('"assets" as "/ui" { "main.qml", "icon.png" as "images/icon.png" }', ".")
data.tree_data, data.names, data.payload, data.files
```

The description is a comma-separated list of
`["base_dir" as] "prefix" { "path" [as "alias"], ... }`. Files are read
relative to the `base_dir` argument of `process_qrc` (or the current
directory). The steps are also available one by one: `parse_resources`,
`build_tree`, `DirectoryNode.compute_offsets`, `generate_data`, plus
`qt_hash` and `simplify_prefix`. Errors in the description, duplicate files and
characters outside the Basic Multilingual Plane raise `ValueError`.

## Plugin metadata

```python
from qtmetagen.generator import plugin_metadata

blob = plugin_metadata("org.qt-project.Qt.QQmlExtensionInterface/1.0", "MyPlugin", False)
```

The blob is the `QTMETADATA  qbjs` header followed by a qbjs object holding
`IID`, `className`, `debug` and `version`. `qbjs.serialize(entries)` encodes
any list of `(key, value)` pairs whose values are strings, numbers or booleans.

## What this package does not do

It produces data only. It does not emit source code, write object files,
register anything with a running Qt, or provide a command-line tool; embedding
the tables and blobs it returns is left to the caller.