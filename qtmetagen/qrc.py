"""Build compiled Qt resource (qrc) data from a resource description."""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class ResourceFile:
    """A file on the local file system and its virtual path in the resource tree."""

    path: str
    alias: Optional[str] = None

    def resolved_alias(self) -> str:
        """Return the explicit alias, or the physical path when there is none."""
        return self.alias if self.alias is not None else self.path


@dataclass(frozen=True)
class Resource:
    """A group of files under one virtual prefix, optionally relative to a base directory."""

    prefix: str
    entries: tuple[ResourceFile, ...] = ()
    base_dir: Optional[str] = None

    def files(self) -> Iterator[ResourceFile]:
        """Yield the files with the base directory applied to their physical paths."""
        for entry in self.entries:
            if self.base_dir is None:
                yield entry
            else:
                yield ResourceFile(
                    path=f"./{self.base_dir}/{entry.path}",
                    alias=entry.resolved_alias(),
                )


def qt_hash(key: str) -> int:
    """Compute the stable hash Qt stores with each resource name."""
    h = 0
    for char in key:
        code = ord(char)
        if code > 0xFFFF:
            raise ValueError("Surrogate pair not supported by the hash function")
        h = ((h << 4) + code) & 0xFFFFFFFF
        h ^= (h & 0xF0000000) >> 23
        h &= 0x0FFFFFFF
    return h


@dataclass(frozen=True, order=True)
class HashedString:
    """A resource name together with its precomputed Qt hash; ordered by hash first."""

    hash_value: int
    string: str

    @classmethod
    def of(cls, string: str) -> "HashedString":
        return cls(qt_hash(string), string)


@dataclass
class FileNode:
    """Leaf of the virtual tree, pointing at a file on the local file system."""

    path: str


@dataclass
class DirectoryNode:
    """Directory of the virtual tree; its name is known only by its parent."""

    contents: dict[HashedString, Union[FileNode, "DirectoryNode"]] = field(default_factory=dict)
    offset: int = 0

    def insert_node(self, virtual_rel_path: str, node: Union[FileNode, "DirectoryNode"]) -> None:
        """Insert a node at a path relative to this directory."""
        if virtual_rel_path == "":
            if not isinstance(node, DirectoryNode):
                raise ValueError("cannot merge a file into a directory")
            self.contents.update(node.contents)
            return

        name, slash, rest = virtual_rel_path.partition("/")
        key = HashedString.of(name)
        if slash:
            child = self.contents.setdefault(key, DirectoryNode())
            if not isinstance(child, DirectoryNode):
                raise ValueError(f"{name!r} is a file, not a directory")
            child.insert_node(rest, node)
        else:
            if key in self.contents:
                raise ValueError(f"the same file {name!r} appears several times")
            self.contents[key] = node

    def sorted_items(self) -> list[tuple[HashedString, Union[FileNode, "DirectoryNode"]]]:
        return sorted(self.contents.items(), key=lambda item: item[0])

    def compute_offsets(self, offset: int) -> int:
        """Assign the tree offset of every directory; return the next free offset."""
        self.offset = offset
        offset += len(self.contents)
        for _, node in self.sorted_items():
            if isinstance(node, DirectoryNode):
                offset = node.compute_offsets(offset)
        return offset


def simplify_prefix(prefix: str) -> str:
    """Remove leading, trailing and repeated slashes."""
    kept: list[str] = []
    last_slash = True
    for char in prefix:
        if not (last_slash and char == "/"):
            kept.append(char)
        last_slash = char == "/"
    if last_slash and kept:
        kept.pop()
    return "".join(kept)


_TOKEN_RE = re.compile(
    r'(?P<space>\s+)|(?P<str>"(?:[^"\\]|\\.)*")|(?P<kw>as\b)|(?P<punct>[{},])',
    re.DOTALL,
)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def _unescape(body: str) -> str:
    def replace(match: re.Match) -> str:
        char = match.group(1)
        if char not in _ESCAPES:
            raise ValueError(f"unsupported escape sequence \\{char}")
        return _ESCAPES[char]

    return re.sub(r"\\(.)", replace, body, flags=re.DOTALL)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ValueError(f"unexpected input at position {pos}: {text[pos:pos + 10]!r}")
        pos = match.end()
        kind = match.lastgroup
        if kind == "str":
            tokens.append(("str", _unescape(match.group()[1:-1])))
        elif kind == "kw":
            tokens.append(("as", "as"))
        elif kind == "punct":
            tokens.append((match.group(), match.group()))
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self._tokens = _tokenize(text)
        self._pos = 0

    def _peek(self) -> Optional[str]:
        return self._tokens[self._pos][0] if self._pos < len(self._tokens) else None

    def _accept(self, kind: str) -> Optional[str]:
        if self._peek() == kind:
            value = self._tokens[self._pos][1]
            self._pos += 1
            return value
        return None

    def _expect(self, kind: str) -> str:
        value = self._accept(kind)
        if value is None:
            found = self._peek() or "end of input"
            raise ValueError(f"expected {kind!r}, found {found!r}")
        return value

    def _file(self) -> ResourceFile:
        path = self._expect("str")
        alias = self._expect("str") if self._accept("as") is not None else None
        return ResourceFile(path, alias)

    def _resource(self) -> Resource:
        base_dir = None
        prefix = self._expect("str")
        if self._accept("as") is not None:
            base_dir, prefix = prefix, self._expect("str")
        self._expect("{")
        entries: list[ResourceFile] = []
        while self._peek() != "}":
            entries.append(self._file())
            if self._accept(",") is None:
                break
        self._expect("}")
        return Resource(prefix=prefix, entries=tuple(entries), base_dir=base_dir)

    def resources(self) -> list[Resource]:
        result: list[Resource] = []
        while self._peek() is not None:
            result.append(self._resource())
            if self._accept(",") is None:
                break
        if self._peek() is not None:
            raise ValueError(f"unexpected token {self._peek()!r}")
        return result


def parse_resources(text: str) -> list[Resource]:
    """Parse ``[base as] "prefix" { "file" [as "alias"], ... }, ...`` into resources."""
    return _Parser(text).resources()


def build_tree(resources: list[Resource]) -> DirectoryNode:
    """Build the virtual file system tree for the given resources."""
    root = DirectoryNode()
    for resource in resources:
        node = DirectoryNode()
        for entry in resource.files():
            node.insert_node(entry.resolved_alias(), FileNode(entry.path))
        root.insert_node(simplify_prefix(resource.prefix), node)
    return root


@dataclass(frozen=True)
class QrcData:
    """The three blobs Qt's resource registration expects, and the files read."""

    payload: bytes
    names: bytes
    tree_data: bytes
    files: tuple[str, ...]


class _DataBuilder:
    def __init__(self, base_dir: Optional[Path]) -> None:
        self.base_dir = base_dir
        self.payload = bytearray()
        self.names = bytearray()
        self.tree = bytearray()
        self.files: list[str] = []

    def insert_file(self, filename: str) -> None:
        path = self.base_dir / filename if self.base_dir is not None else Path(filename)
        data = path.read_bytes()
        self.payload += struct.pack(">I", len(data) & 0xFFFFFFFF)
        self.payload += data
        self.files.append(str(path))

    def insert_name(self, name: HashedString) -> int:
        offset = len(self.names)
        self.names += struct.pack(">HI", len(name.string.encode("utf-8")) & 0xFFFF, name.hash_value)
        for char in name.string:
            code = ord(char)
            if code > 0xFFFF:
                raise ValueError("Surrogate pair not supported")
            self.names += struct.pack(">H", code)
        return offset

    def insert_directory(self, directory: DirectoryNode) -> None:
        items = directory.sorted_items()
        for name, node in items:
            self.tree += struct.pack(">I", self.insert_name(name))
            if isinstance(node, FileNode):
                # flags, country, language (C), data offset
                self.tree += struct.pack(">HHHI", 0, 0, 1, len(self.payload))
                self.insert_file(node.path)
            else:
                self.tree += struct.pack(">HII", 2, len(node.contents), node.offset)
            self.tree += struct.pack(">II", 0, 0)  # modification time
        for _, node in items:
            if isinstance(node, DirectoryNode):
                self.insert_directory(node)


def generate_data(
    root: DirectoryNode, base_dir: Union[str, PathLike, None] = None
) -> QrcData:
    """Serialize a tree whose offsets are computed; files are read relative to base_dir."""
    builder = _DataBuilder(Path(base_dir) if base_dir is not None else None)
    builder.tree += struct.pack(">IHII", 0, 2, len(root.contents), 1)
    builder.tree += struct.pack(">II", 0, 0)
    builder.insert_directory(root)
    return QrcData(
        payload=bytes(builder.payload),
        names=bytes(builder.names),
        tree_data=bytes(builder.tree),
        files=tuple(builder.files),
    )


def process_qrc(text: str, base_dir: Union[str, PathLike, None] = None) -> QrcData:
    """Parse a resource description and produce the compiled resource data."""
    tree = build_tree(parse_resources(text))
    tree.compute_offsets(1)
    return generate_data(tree, base_dir)