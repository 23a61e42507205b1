"""Compute the integer and string tables that make up a Qt meta-object."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

_I32_MAX = 2**31 - 1
_UNRESOLVED_TYPE = 0x80000000

# Method flags from Qt::MethodFlags.
ACCESS_PUBLIC = 0x02
METHOD_SIGNAL = 0x04

_BUILTIN_TYPES = {
    "bool": 1,
    "i32": 2,
    "u32": 3,
    "i64": 4,
    "u64": 5,
    "f64": 6,
    "i16": 33,
    "i8": 34,
    "u16": 36,
    "u8": 37,
    "f32": 38,
    "QString": 10,
    "QByteArray": 12,
    "QVariant": 41,
}


def builtin_type(type_name: str) -> int:
    """Return the Qt meta-type id of a builtin type, 43 for the unit type, else 0."""
    compact = "".join(type_name.split())
    if compact.startswith("(") and compact.endswith(")"):
        return 43 if compact == "()" else 0
    return _BUILTIN_TYPES.get(compact, 0)


@dataclass(frozen=True)
class MetaMethodParameter:
    """One parameter of a method or signal."""

    type_name: str
    name: Optional[str] = None


@dataclass(frozen=True)
class MetaMethod:
    """A method or signal; ``flags`` holds Qt::MethodFlags bits."""

    name: str
    args: tuple[MetaMethodParameter, ...] = ()
    flags: int = ACCESS_PUBLIC
    ret_type: str = "()"

    @property
    def is_signal(self) -> bool:
        return bool(self.flags & METHOD_SIGNAL)


@dataclass(frozen=True)
class MetaProperty:
    """A property with its Qt property flags and optional accessors."""

    name: str
    type_name: str
    flags: int
    notify_signal: Optional[str] = None
    getter: Optional[str] = None
    setter: Optional[str] = None
    alias: Optional[str] = None


@dataclass(frozen=True)
class MetaEnum:
    """An enum and its ``(variant name, value)`` pairs."""

    name: str
    variants: tuple[tuple[str, int], ...] = ()


def _notify_index(methods: list[MetaMethod], signal: str) -> int:
    for position, method in enumerate(methods):
        if method.name == signal and method.is_signal:
            return position
    raise ValueError(f"Invalid NOTIFY signal {signal!r}")


@dataclass
class MetaObject:
    """Accumulates the integer data, string data and meta types of one class."""

    qt_version: int = 5
    int_data: list[int] = field(default_factory=list)
    meta_types: list[str] = field(default_factory=list)
    string_data: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.qt_version not in (5, 6):
            raise ValueError(f"unsupported Qt version {self.qt_version}")

    def build_string_data(self, target_pointer_width: int) -> bytes:
        """Return the string table laid out for the given pointer width (32 or 64)."""
        if target_pointer_width not in (32, 64):
            raise ValueError("target pointer width must be 32 or 64")
        encoded = [s.encode("utf-8") for s in self.string_data]
        out = bytearray()

        def write_i32(value: int) -> None:
            if not -(2**31) <= value <= _I32_MAX:
                raise OverflowError("string data offset out of range")
            out.extend(struct.pack("<i", value))

        if self.qt_version == 5:
            wide = target_pointer_width == 64
            record_size = 24 if wide else 16
            ofs = record_size * len(encoded)
            for data in encoded:
                write_i32(-1)  # ref
                write_i32(len(data))  # size
                write_i32(0)  # alloc / capacityReserved
                if wide:
                    write_i32(0)  # padding
                write_i32(ofs)  # offset, low half
                if wide:
                    write_i32(0)  # offset, high half
                ofs += len(data) + 1 - record_size
        else:
            ofs = len(encoded) * 8
            for data in encoded:
                write_i32(ofs)
                write_i32(len(data))
                ofs += len(data) + 1

        for data in encoded:
            out += data
            out.append(0)
        return bytes(out)

    def add_string(self, text: str) -> int:
        """Return the index of ``text`` in the string table, adding it if new."""
        try:
            return self.string_data.index(text)
        except ValueError:
            pass
        if len(self.string_data) >= _I32_MAX:
            raise ValueError("String Data: Too many strings registered")
        if len(text.encode("utf-8")) > _I32_MAX:
            raise ValueError("String Data: String is too large")
        self.string_data.append(text)
        return len(self.string_data) - 1

    def add_type(self, type_name: str) -> int:
        """Return a builtin type id, or a string index flagged as unresolved."""
        type_id = builtin_type(type_name)
        if type_id == 0:
            type_id = self.add_string(type_name) | _UNRESOLVED_TYPE
        return type_id

    def add_meta_type(self, type_name: str) -> int:
        """Append a type to the meta-type list and return its index."""
        self.meta_types.append(type_name)
        return len(self.meta_types) - 1

    def compute_int_data(
        self,
        class_name: str,
        properties: list[MetaProperty],
        methods: list[MetaMethod],
        enums: list[MetaEnum],
        signal_count: int,
    ) -> None:
        """Fill the integer table for a class; signals must come first in ``methods``."""
        properties = list(properties)
        methods = list(methods)
        enums = list(enums)
        qt6 = self.qt_version == 6
        has_notify = any(p.notify_signal is not None for p in properties)
        self.add_string(class_name)
        self.add_string("")

        method_size = 6 if qt6 else 5
        property_size = 5 if qt6 else (4 if has_notify else 3)
        enum_size = 5 if qt6 else 4

        offset = 14
        property_offset = offset + len(methods) * method_size
        enum_offset = property_offset + len(properties) * property_size

        self.int_data.extend([
            9 if qt6 else 7,  # revision
            0,  # class name
            0, 0,  # class info count and offset
            len(methods), offset if methods else 0,
            len(properties), property_offset if properties else 0,
            len(enums), enum_offset if enums else 0,
            0, 0,  # constructor count and offset
            0x4,  # flags (PropertyAccessInStaticMetaCall)
            signal_count,
        ])

        offset = enum_offset + len(enums) * enum_size

        for prop in properties:
            self.add_meta_type(prop.type_name)

        for method in methods:
            name_index = self.add_string(method.name)
            self.int_data.extend([name_index, len(method.args), offset, 1, method.flags])
            if qt6:
                self.int_data.append(self.add_meta_type(method.ret_type))
                for arg in method.args:
                    self.add_meta_type(arg.type_name)
            offset += 1 + 2 * len(method.args)

        for prop in properties:
            name_index = self.add_string(prop.alias if prop.alias is not None else prop.name)
            type_id = self.add_type(prop.type_name)
            self.int_data.extend([name_index, type_id, prop.flags])
            if qt6:
                self.int_data.append(
                    0 if prop.notify_signal is None
                    else _notify_index(methods, prop.notify_signal)
                )
                self.int_data.append(0)  # revision

        for enum in enums:
            name_index = self.add_string(enum.name)
            if qt6:
                # name, alias, flags, count, data offset
                self.int_data.extend([name_index, name_index, 0x2, len(enum.variants), offset])
            else:
                # name, flags, count, data offset
                self.int_data.extend([name_index, 0x2, len(enum.variants), offset])
            offset += 2 * len(enum.variants)

        if not qt6 and has_notify:
            for prop in properties:
                self.int_data.append(
                    0 if prop.notify_signal is None
                    else _notify_index(methods, prop.notify_signal)
                )

        for method in methods:
            self.int_data.append(self.add_type(method.ret_type))
            for arg in method.args:
                self.int_data.append(self.add_type(arg.type_name))
            for arg in method.args:
                self.int_data.append(self.add_string(arg.name or ""))

        for enum in enums:
            for variant, value in enum.variants:
                self.int_data.append(self.add_string(variant))
                self.int_data.append(value & 0xFFFFFFFF)