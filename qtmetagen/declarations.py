"""Parse the property, method, signal and base-class declarations of a class."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Optional

from .metaobject import ACCESS_PUBLIC, METHOD_SIGNAL, MetaMethod, MetaMethodParameter, MetaProperty

# Qt property flags.
_READABLE = 0x00000001
_WRITABLE = 0x00000002
_CONSTANT = 0x00000400
_DESIGNABLE = 0x00001000
_SCRIPTABLE = 0x00004000
_STORED = 0x00010000
_NOTIFY = 0x00400000

_BASE_PROPERTY_FLAGS = _READABLE | _WRITABLE | _SCRIPTABLE | _DESIGNABLE | _STORED

_PROPERTY_KEYWORDS = {"NOTIFY", "CONST", "READ", "WRITE", "ALIAS"}
_KEYWORDS_WITH_ARGUMENT = {"NOTIFY", "READ", "WRITE", "ALIAS"}

_ACCEPTABLE_REPRESENTATIONS = frozenset({"u8", "u16", "u32", "i8", "i16", "i32", "C"})

_IDENT = re.compile(r"[A-Za-z_]\w*")
_FN_HEAD = re.compile(
    r'\s*(?:pub(?:\s*\([^)]*\))?\s+)?'
    r'(?:(?:const|async|unsafe|extern(?:\s+"[^"]*")?)\s+)*fn\b\s*'
)
_RECEIVER = re.compile(r"(?:&\s*(?:'\w+\s*)?)?(?:mut\s+)?self\b")
_PATTERN_IDENT = re.compile(r"(?:ref\s+)?(?:mut\s+)?([A-Za-z_]\w*)")

_OPENERS = "([{<"
_CLOSERS = ")]}>"


class DeclarationError(ValueError):
    """Raised when a declaration cannot be parsed or is inconsistent."""


def _normalize_type(text: str) -> str:
    return " ".join(text.split())


def _is_ident(text: str) -> bool:
    return _IDENT.fullmatch(text) is not None


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split on a separator that is not nested inside any brackets."""
    parts: list[str] = []
    depth = 0
    start = 0
    previous = ""
    for position, char in enumerate(text):
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and not (char == ">" and previous == "-"):
            depth -= 1
        elif char == separator and depth == 0:
            parts.append(text[start:position])
            start = position + 1
        previous = char
    parts.append(text[start:])
    return parts


def _find_single_colon(text: str) -> int:
    """Return the position of the first top-level ':' that is not part of '::', or -1."""
    depth = 0
    previous = ""
    for position, char in enumerate(text):
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and not (char == ">" and previous == "-"):
            depth -= 1
        elif char == ":" and depth == 0:
            before = text[position - 1] if position > 0 else ""
            after = text[position + 1] if position + 1 < len(text) else ""
            if before != ":" and after != ":":
                return position
        previous = char
    return -1


def _matching_close(text: str, start: int, opener: str, closer: str) -> int:
    depth = 0
    previous = ""
    for position in range(start, len(text)):
        char = text[position]
        if char == opener:
            depth += 1
        elif char == closer and not (closer == ">" and previous == "-"):
            depth -= 1
            if depth == 0:
                return position
        previous = char
    return -1


def property_flags(keywords: Iterable[str]) -> int:
    """Return the Qt property flags implied by the given property keywords."""
    flags = _BASE_PROPERTY_FLAGS
    for keyword in keywords:
        if keyword not in _PROPERTY_KEYWORDS:
            raise DeclarationError(f"expected a property keyword, found {keyword!r}")
        if keyword == "NOTIFY":
            flags |= _NOTIFY
        elif keyword == "CONST":
            flags |= _CONSTANT
            flags &= ~_WRITABLE
    return flags


def parse_property(name: str, spec: str) -> MetaProperty:
    """Parse ``Type[; KEYWORD [ident] ...]`` into a property description."""
    if not _is_ident(name):
        raise DeclarationError(f"invalid property name {name!r}")
    parts = _split_top_level(spec, ";")
    if len(parts) > 2:
        raise DeclarationError(f"unexpected ';' in property {name!r}")
    type_name = _normalize_type(parts[0])
    if not type_name:
        raise DeclarationError(f"property {name!r} has no type")

    tokens = parts[1].split() if len(parts) == 2 else []
    keywords: list[str] = []
    values: dict[str, str] = {}
    position = 0
    while position < len(tokens):
        keyword = tokens[position]
        position += 1
        if keyword not in _PROPERTY_KEYWORDS:
            raise DeclarationError(f"expected a property keyword, found {keyword!r}")
        keywords.append(keyword)
        if keyword in _KEYWORDS_WITH_ARGUMENT:
            if position >= len(tokens) or not _is_ident(tokens[position]):
                raise DeclarationError(f"{keyword} of property {name!r} needs an identifier")
            if keyword in values:
                raise DeclarationError(f"Duplicate {keyword} for a property")
            values[keyword] = tokens[position]
            position += 1

    return MetaProperty(
        name=name,
        type_name=type_name,
        flags=property_flags(keywords),
        notify_signal=values.get("NOTIFY"),
        getter=values.get("READ"),
        setter=values.get("WRITE"),
        alias=values.get("ALIAS"),
    )


def _parse_typed_arguments(text: str) -> tuple[MetaMethodParameter, ...]:
    """Parse function arguments, skipping receivers; non-identifier patterns get no name."""
    params: list[MetaMethodParameter] = []
    for raw in _split_top_level(text, ","):
        arg = raw.strip()
        if not arg:
            continue
        if _RECEIVER.match(arg):
            continue
        colon = _find_single_colon(arg)
        if colon < 0:
            raise DeclarationError(f"argument {arg!r} has no type")
        pattern = arg[:colon].strip()
        type_name = _normalize_type(arg[colon + 1:])
        if not type_name:
            raise DeclarationError(f"argument {arg!r} has no type")
        match = _PATTERN_IDENT.fullmatch(pattern)
        arg_name = match.group(1) if match and match.group(1) != "_" else None
        params.append(MetaMethodParameter(type_name=type_name, name=arg_name))
    return tuple(params)


def _parse_bare_arguments(text: str) -> tuple[MetaMethodParameter, ...]:
    """Parse bare function type arguments; only named arguments are kept."""
    params: list[MetaMethodParameter] = []
    for raw in _split_top_level(text, ","):
        arg = raw.strip()
        if not arg:
            continue
        colon = _find_single_colon(arg)
        if colon < 0:
            continue
        arg_name = arg[:colon].strip()
        if not _is_ident(arg_name):
            raise DeclarationError(f"invalid argument name {arg_name!r}")
        type_name = _normalize_type(arg[colon + 1:])
        if not type_name:
            raise DeclarationError(f"argument {arg!r} has no type")
        params.append(MetaMethodParameter(type_name=type_name, name=arg_name))
    return tuple(params)


def _split_return_and_body(rest: str, name: str) -> tuple[str, str]:
    if not rest.startswith("->"):
        return "()", rest
    rest = rest[2:]
    depth = 0
    previous = ""
    for position, char in enumerate(rest):
        if char == "{" and depth == 0:
            return rest[:position], rest[position:]
        if char in "([<":
            depth += 1
        elif char in ")]>" and not (char == ">" and previous == "-"):
            depth -= 1
        previous = char
    return rest, ""


def parse_method(name: str, signature: str) -> MetaMethod:
    """Parse a method given as a full function or as a bare function type."""
    head = _FN_HEAD.match(signature)
    if head is None:
        raise DeclarationError(f"Cannot parse qt_method {name}")
    position = head.end()
    ident_match = _IDENT.match(signature, position)
    ident: Optional[str] = None
    if ident_match is not None:
        ident = ident_match.group()
        position = ident_match.end()
        while position < len(signature) and signature[position].isspace():
            position += 1
        if position < len(signature) and signature[position] == "<":
            close = _matching_close(signature, position, "<", ">")
            if close < 0:
                raise DeclarationError(f"Cannot parse qt_method {name}")
            position = close + 1
            while position < len(signature) and signature[position].isspace():
                position += 1
    if position >= len(signature) or signature[position] != "(":
        raise DeclarationError(f"Cannot parse qt_method {name}")
    close = _matching_close(signature, position, "(", ")")
    if close < 0:
        raise DeclarationError(f"Cannot parse qt_method {name}")
    arguments = signature[position + 1:close]
    rest = signature[close + 1:].strip()
    ret_type, body = _split_return_and_body(rest, name)
    body = body.strip()

    if ident is not None:
        if not (body.startswith("{") and body.endswith("}")):
            raise DeclarationError(f"Cannot parse qt_method {name}")
        if ident != name:
            raise DeclarationError(f"method {ident!r} is declared under the name {name!r}")
        ret_type = re.split(r"\bwhere\b", ret_type, maxsplit=1)[0]
        args = _parse_typed_arguments(arguments)
    else:
        if body:
            raise DeclarationError(f"Cannot parse qt_method {name}")
        args = _parse_bare_arguments(arguments)

    ret_type = _normalize_type(ret_type)
    if not ret_type:
        raise DeclarationError(f"method {name!r} has an empty return type")
    return MetaMethod(name=name, args=args, flags=ACCESS_PUBLIC, ret_type=ret_type)


def parse_signal(name: str, arguments: str) -> MetaMethod:
    """Parse a comma-separated argument list into a signal description."""
    if not _is_ident(name):
        raise DeclarationError(f"invalid signal name {name!r}")
    return MetaMethod(
        name=name,
        args=_parse_typed_arguments(arguments),
        flags=ACCESS_PUBLIC | METHOD_SIGNAL,
        ret_type="()",
    )


def parse_base_class(spec: str) -> str:
    """Parse ``trait Name`` and return the base class name."""
    tokens = spec.split()
    if len(tokens) != 2 or tokens[0] != "trait" or not _is_ident(tokens[1]):
        raise DeclarationError(f"expected 'trait <Name>', found {spec!r}")
    return tokens[1]


def is_valid_repr(representation: str) -> bool:
    """Tell whether an enum representation is one that enums may use."""
    return representation.strip() in _ACCEPTABLE_REPRESENTATIONS