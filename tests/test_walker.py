# tests/test_walker.py
import json
import os
from pathlib import Path

import pytest

from app.services.sandbox import PathSandbox
from app.services.walker import DIRECTORY, FILE, HierarchyWalker


@pytest.fixture
def walker(sandbox: PathSandbox) -> HierarchyWalker:
    return HierarchyWalker(sandbox)


def _touch(path: Path, text: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_list_tags_and_sorts(walker, sandbox, root: Path):
    _touch(root / "b.txt")
    (root / "a_dir").mkdir()
    entries = walker.list(sandbox.validate(str(root)))
    assert [(e.name, e.kind) for e in entries] == [("a_dir", DIRECTORY), ("b.txt", FILE)]
    assert [e.render() for e in entries] == ["[DIR] a_dir", "[FILE] b.txt"]


def test_tree_file_has_no_children_and_empty_dir_has_empty_list(walker, sandbox, root: Path):
    _touch(root / "a.txt")
    (root / "sub").mkdir()
    nodes = json.loads(walker.tree_json(sandbox.validate(str(root))))
    assert nodes == [
        {"name": "a.txt", "type": "file"},
        {"name": "sub", "type": "directory", "children": []},
    ]


def test_tree_nested(walker, sandbox, root: Path):
    _touch(root / "src" / "pkg" / "mod.py")
    _touch(root / "src" / "main.py")
    nodes = json.loads(walker.tree_json(sandbox.validate(str(root))))
    assert nodes == [
        {"name": "src", "type": "directory", "children": [
            {"name": "main.py", "type": "file"},
            {"name": "pkg", "type": "directory", "children": [
                {"name": "mod.py", "type": "file"},
            ]},
        ]},
    ]


def test_tree_does_not_follow_symlinked_directories(walker, sandbox, root: Path, outside: Path):
    os.symlink(outside, root / "escape")
    nodes = json.loads(walker.tree_json(sandbox.validate(str(root))))
    assert nodes == [{"name": "escape", "type": "file"}]


def test_search_is_case_insensitive_and_preorder(walker, sandbox, root: Path):
    _touch(root / "Alpha" / "alpha.txt")
    _touch(root / "beta" / "alpha2.md")
    _touch(root / "gamma.txt")
    found = walker.search(sandbox.validate(str(root)), "ALPHA")
    assert found == [
        str(root / "Alpha"),
        str(root / "Alpha" / "alpha.txt"),
        str(root / "beta" / "alpha2.md"),
    ]


def test_search_plain_exclude_matches_directory_anywhere(walker, sandbox, root: Path):
    _touch(root / "node_modules" / "x.js")
    _touch(root / "pkg" / "node_modules" / "x.js")
    _touch(root / "pkg" / "x.js")
    found = walker.search(sandbox.validate(str(root)), "x", ["node_modules"])
    assert found == [str(root / "pkg" / "x.js")]


def test_search_glob_exclude(walker, sandbox, root: Path):
    _touch(root / "app.log")
    _touch(root / "sub" / "deep.log")
    _touch(root / "sub" / "catalog.txt")
    found = walker.search(sandbox.validate(str(root)), "log", ["**/*.log"])
    assert found == [str(root / "sub" / "catalog.txt")]


def test_search_single_star_stays_within_one_segment(walker, sandbox, root: Path):
    _touch(root / "top.log")
    _touch(root / "sub" / "deep.log")
    found = walker.search(sandbox.validate(str(root)), "log", ["*.log"])
    assert found == [str(root / "sub" / "deep.log")]


def test_search_nested_glob_exclude(walker, sandbox, root: Path):
    _touch(root / "src" / "gen" / "a.py")
    _touch(root / "src" / "lib" / "gen" / "b.py")
    found = walker.search(sandbox.validate(str(root)), ".py", ["src/*/gen/**"])
    assert found == [str(root / "src" / "gen" / "a.py")]


def test_search_plain_exclude_keeps_files_with_that_name(walker, sandbox, root: Path):
    _touch(root / "build")
    _touch(root / "out" / "build" / "build.txt")
    found = walker.search(sandbox.validate(str(root)), "build", ["build"])
    assert found == [str(root / "build")]


def test_search_glob_exclude_includes_dotfiles(walker, sandbox, root: Path):
    _touch(root / ".env")
    _touch(root / "env.txt")
    found = walker.search(sandbox.validate(str(root)), "env", [".*"])
    assert found == [str(root / "env.txt")]


def test_search_skips_entries_escaping_the_sandbox(walker, sandbox, root: Path, outside: Path):
    os.symlink(outside / "secret.txt", root / "secret-link")
    _touch(root / "secret-notes.txt")
    found = walker.search(sandbox.validate(str(root)), "secret")
    assert found == [str(root / "secret-notes.txt")]


def test_search_no_matches(walker, sandbox, root: Path):
    _touch(root / "a.txt")
    assert walker.search(sandbox.validate(str(root)), "zzz") == []
