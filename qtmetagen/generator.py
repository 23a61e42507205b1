"""Assemble complete meta-object tables for objects, gadgets, enums and plugins."""

from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional, Union

from . import qbjs
from .declarations import DeclarationError, is_valid_repr
from .metaobject import MetaEnum, MetaMethod, MetaObject, MetaProperty

_PLUGIN_MAGIC = b"QTMETADATA  qbjs" + struct.pack("<I", 1)
_PLUGIN_VERSION = float(0x050100)

EnumVariant = Union[str, tuple[str, int]]


@dataclass(frozen=True)
class GeneratedMeta:
    """The tables describing one class, ready to be embedded."""

    class_name: str
    qt_version: int
    int_data: tuple[int, ...]
    string_data: tuple[str, ...]
    meta_types: tuple[str, ...]
    methods: tuple[MetaMethod, ...]
    properties: tuple[MetaProperty, ...]
    signal_count: int
    string_table_32: bytes
    string_table_64: bytes

    def string_table(self, pointer_width: int) -> bytes:
        """Return the string table laid out for a 32- or 64-bit target."""
        if pointer_width == 32:
            return self.string_table_32
        if pointer_width == 64:
            return self.string_table_64
        raise ValueError("target pointer width must be 32 or 64")


def _build(
    class_name: str,
    properties: list[MetaProperty],
    methods: list[MetaMethod],
    enums: list[MetaEnum],
    signal_count: int,
    qt_version: int,
) -> GeneratedMeta:
    meta = MetaObject(qt_version=qt_version)
    meta.compute_int_data(class_name, properties, methods, enums, signal_count)
    if qt_version == 6:
        # The Qt 6 layout does not depend on the pointer width.
        table = meta.build_string_data(32)
        table32 = table64 = table
    else:
        table32 = meta.build_string_data(32)
        table64 = meta.build_string_data(64)
    return GeneratedMeta(
        class_name=class_name,
        qt_version=qt_version,
        int_data=tuple(meta.int_data),
        string_data=tuple(meta.string_data),
        meta_types=tuple(meta.meta_types),
        methods=tuple(methods),
        properties=tuple(properties),
        signal_count=signal_count,
        string_table_32=table32,
        string_table_64=table64,
    )


def notify_argument_count(methods: Iterable[MetaMethod], signal_name: str) -> int:
    """Return the argument count of the named signal, or 0 when there is none."""
    for method in methods:
        if method.name == signal_name and method.is_signal:
            return len(method.args)
    return 0


def signal_index(signals: Sequence[MetaMethod], offset_name: str) -> Optional[int]:
    """Return the index of the signal declared under ``offset_name``, or None."""
    for index, signal in enumerate(signals):
        if signal.name == offset_name:
            return index
    return None


def _check_notify(properties: list[MetaProperty], methods: list[MetaMethod]) -> None:
    for prop in properties:
        if prop.notify_signal is None:
            continue
        if notify_argument_count(methods, prop.notify_signal) > 1:
            raise DeclarationError(
                f"NOTIFY signal {prop.notify_signal} for property {prop.name} "
                "has too many arguments"
            )


def build_qobject_meta(
    class_name: str,
    properties: Iterable[MetaProperty],
    methods: Iterable[MetaMethod],
    signals: Iterable[MetaMethod],
    qt_version: int = 5,
) -> GeneratedMeta:
    """Build the meta-object of a QObject; signals are placed before the methods."""
    properties = list(properties)
    signals = list(signals)
    methods = list(methods)
    for signal in signals:
        if not signal.is_signal:
            raise DeclarationError(f"{signal.name!r} is not a signal")
    for method in methods:
        if method.is_signal:
            raise DeclarationError(f"{method.name!r} is a signal, not a method")
    all_methods = signals + methods
    _check_notify(properties, all_methods)
    return _build(class_name, properties, all_methods, [], len(signals), qt_version)


def build_gadget_meta(
    class_name: str,
    properties: Iterable[MetaProperty],
    methods: Iterable[MetaMethod],
    qt_version: int = 5,
) -> GeneratedMeta:
    """Build the meta-object of a gadget, which has no signals."""
    properties = list(properties)
    methods = list(methods)
    for method in methods:
        if method.is_signal:
            raise DeclarationError(f"a gadget cannot declare the signal {method.name!r}")
    return _build(class_name, properties, methods, [], 0, qt_version)


def build_enum_meta(
    name: str,
    variants: Iterable[EnumVariant],
    representation: str,
    qt_version: int = 5,
) -> GeneratedMeta:
    """Build the meta-object of an enum.

    Variants are names or ``(name, value)`` pairs; a bare name takes the value
    after the previous variant's, starting at 0.
    """
    if not is_valid_repr(representation):
        raise DeclarationError(
            "enums need an explicit representation; possible representations "
            "are u8, u16, u32, i8, i16, i32, C"
        )
    resolved: list[tuple[str, int]] = []
    seen: set[str] = set()
    next_value = 0
    for variant in variants:
        if isinstance(variant, str):
            variant_name, value = variant, next_value
        else:
            variant_name, value = variant
        if variant_name in seen:
            raise DeclarationError(f"duplicate enum variant {variant_name!r}")
        seen.add(variant_name)
        resolved.append((variant_name, value))
        next_value = value + 1
    enum = MetaEnum(name=name, variants=tuple(resolved))
    return _build(name, [], [], [enum], 0, qt_version)


def plugin_metadata(iid: str, class_name: str, debug: bool = False) -> bytes:
    """Return the plugin metadata blob: magic header followed by a qbjs object."""
    entries: list[tuple[str, qbjs.Value]] = [
        ("IID", iid),
        ("className", class_name),
        ("version", _PLUGIN_VERSION),
        ("debug", bool(debug)),
    ]
    entries.sort(key=lambda entry: entry[0].encode("utf-8"))
    return _PLUGIN_MAGIC + qbjs.serialize(entries)