import struct

import pytest

from qtmetagen.qrc import (
    DirectoryNode,
    FileNode,
    HashedString,
    Resource,
    ResourceFile,
    build_tree,
    parse_resources,
    process_qrc,
    qt_hash,
    simplify_prefix,
)

ENTRY_SIZE = 22


@pytest.mark.parametrize(
    "prefix, expected",
    [("/", ""), ("///", ""), ("/foo//bar/d", "foo/bar/d"), ("hello/", "hello")],
)
def test_simplify_prefix(prefix, expected):
    assert simplify_prefix(prefix) == expected


def test_qt_hash_empty():
    assert qt_hash("") == 0


def test_qt_hash_single_char():
    assert qt_hash("a") == ord("a")


def test_qt_hash_stays_within_28_bits():
    assert 0 <= qt_hash("a-rather-long-resource-name.qml" * 4) < (1 << 28)


def test_qt_hash_rejects_astral_characters():
    with pytest.raises(ValueError):
        qt_hash("\U0001F600")


def test_hashed_string_orders_by_hash():
    names = [HashedString.of(n) for n in ["zeta", "a", "main.qml", "b"]]
    ordered = sorted(names)
    hashes = [n.hash_value for n in ordered]
    assert hashes == sorted(hashes)
    assert HashedString.of("a").string == "a"


def test_resolved_alias():
    assert ResourceFile("img/logo.png").resolved_alias() == "img/logo.png"
    assert ResourceFile("img/logo.png", "logo.png").resolved_alias() == "logo.png"


def test_parse_resources_basic():
    resources = parse_resources('"/" { "main.qml", "img/logo.png" as "logo.png" }')
    assert resources == [
        Resource(
            prefix="/",
            entries=(ResourceFile("main.qml"), ResourceFile("img/logo.png", "logo.png")),
        )
    ]


def test_parse_resources_with_base_dir_and_trailing_commas():
    resources = parse_resources('"qml" as "/app" { "a.qml", }, "/x" {},')
    assert resources[0].base_dir == "qml"
    assert resources[0].prefix == "/app"
    assert list(resources[0].files()) == [ResourceFile("./qml/a.qml", "a.qml")]
    assert resources[1] == Resource(prefix="/x")


def test_parse_resources_escapes():
    resources = parse_resources(r'"a\"b" {}')
    assert resources[0].prefix == 'a"b'


@pytest.mark.parametrize("text", ['"a" {', "foo", '"a" { "b" } "c" {}', '"a" as { }'])
def test_parse_resources_errors(text):
    with pytest.raises(ValueError):
        parse_resources(text)


def test_build_tree_structure():
    tree = build_tree(parse_resources('"/qml/app" { "main.qml", "sub/x.qml" }'))
    qml = tree.contents[HashedString.of("qml")]
    app = qml.contents[HashedString.of("app")]
    assert app.contents[HashedString.of("main.qml")] == FileNode("main.qml")
    sub = app.contents[HashedString.of("sub")]
    assert sub.contents[HashedString.of("x.qml")] == FileNode("sub/x.qml")


def test_duplicate_file_is_rejected():
    with pytest.raises(ValueError):
        build_tree(parse_resources('"/" { "a.qml", "b.qml" as "a.qml" }'))


def test_merging_file_into_directory_is_rejected():
    with pytest.raises(ValueError):
        DirectoryNode().insert_node("", FileNode("x"))


def test_compute_offsets():
    root = DirectoryNode()
    root.insert_node("a/b/c.qml", FileNode("c.qml"))
    root.insert_node("a/d.qml", FileNode("d.qml"))
    end = root.compute_offsets(1)
    a = root.contents[HashedString.of("a")]
    b = a.contents[HashedString.of("b")]
    assert root.offset == 1
    assert a.offset == 2
    assert b.offset == 4
    assert end == 5


def test_process_single_file(tmp_path):
    (tmp_path / "main.qml").write_bytes(b"Item {}")
    data = process_qrc('"/" { "main.qml" }', tmp_path)
    assert data.payload == struct.pack(">I", 7) + b"Item {}"
    assert data.files == (str(tmp_path / "main.qml"),)
    assert data.names == struct.pack(">HI", 8, qt_hash("main.qml")) + "main.qml".encode(
        "utf-16-be"
    )
    assert len(data.tree_data) == ENTRY_SIZE * 2
    assert data.tree_data[:ENTRY_SIZE] == struct.pack(">IHIIII", 0, 2, 1, 1, 0, 0)
    assert data.tree_data[ENTRY_SIZE:] == struct.pack(">IHHHIII", 0, 0, 0, 1, 0, 0, 0)


def test_process_nested_prefix(tmp_path):
    (tmp_path / "main.qml").write_bytes(b"x")
    data = process_qrc('"/qml/app" { "main.qml" }', tmp_path)
    assert len(data.tree_data) == ENTRY_SIZE * 4
    # second entry is the "qml" directory with one child at offset 2
    assert data.tree_data[ENTRY_SIZE + 4: ENTRY_SIZE + 14] == struct.pack(">HII", 2, 1, 2)


def test_process_payload_offsets(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"aaa")
    (tmp_path / "b.txt").write_bytes(b"bb")
    data = process_qrc('"/" { "a.txt", "b.txt" }', tmp_path)
    assert len(data.payload) == 4 + 3 + 4 + 2
    assert sorted(data.files) == sorted([str(tmp_path / "a.txt"), str(tmp_path / "b.txt")])


def test_process_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_qrc('"/" { "missing.qml" }', tmp_path)