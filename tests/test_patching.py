# tests/test_patching.py
import re
from pathlib import Path

import pytest

from app.errors import EditNotFound
from app.services.patching import (
    Edit,
    PatchEngine,
    apply_to_text,
    fence_for,
    render_fenced_diff,
    unified_diff,
)
from app.services.sandbox import PathSandbox

HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def apply_unified_diff(original: str, diff: str) -> str:
    """Minimal patch(1): rebuild the new text from the old one plus a unified diff."""
    src = original.splitlines(keepends=True)
    lines = diff.splitlines(keepends=True)
    out = []
    pos = 0
    i = 0
    while i < len(lines) and not lines[i].startswith("@@"):
        i += 1
    while i < len(lines):
        m = HUNK_RE.match(lines[i])
        start = int(m.group(1))
        old_len = int(m.group(2)) if m.group(2) is not None else 1
        begin = start - 1 if old_len else start
        out.extend(src[pos:begin])
        pos = begin
        i += 1
        prev = None
        while i < len(lines) and not lines[i].startswith("@@"):
            line = lines[i]
            tag, body = line[0], line[1:]
            if tag == "\\":
                if prev in (" ", "+"):
                    out[-1] = out[-1].rstrip("\n")
            elif tag == " ":
                out.append(body)
                pos += 1
            elif tag == "-":
                pos += 1
            elif tag == "+":
                out.append(body)
            prev = tag
            i += 1
    out.extend(src[pos:])
    return "".join(out)


@pytest.fixture
def engine() -> PatchEngine:
    return PatchEngine()


def _file(root: Path, text: str, name: str = "f.txt") -> Path:
    p = root / name
    p.write_bytes(text.encode("utf-8"))
    return p


def test_exact_match_replaces_first_occurrence_only():
    assert apply_to_text("a b a", [Edit("a", "x")]) == "x b a"


def test_edits_apply_left_to_right():
    assert apply_to_text("one", [Edit("one", "two"), Edit("two", "three")]) == "three"


def test_whitespace_tolerant_match_keeps_file_indentation(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "\tfoo\n\tbar")
    engine.apply_edits(sandbox.validate(str(p)), [Edit("  foo\n  bar", "  foo\n  baz")])
    assert p.read_bytes().decode("utf-8") == "\tfoo\n\tbaz"


def test_relative_indentation_is_carried_over():
    content = "class A:\n    def f():\n        return 1\n"
    # caller's snippet is dedented by four spaces; the body shift is relative to the def line
    out = apply_to_text(content, [Edit("def f():\n    return 1", "def g():\n        return 2")])
    assert out == "class A:\n    def g():\n        return 2\n"


def test_negative_indent_change_shrinks_indentation():
    content = "    def f():\n        return 1\n"
    out = apply_to_text(content, [Edit("def f():\n    return 1", "def f():\n  return 1")])
    assert out == "    def f():\n  return 1\n"


def test_unindented_replacement_line_is_used_verbatim():
    content = "    if x:\n        y()\n"
    out = apply_to_text(content, [Edit("if x:\n    y()", "if x:\ny()\n# done")])
    assert out == "    if x:\ny()\n# done\n"


def test_crlf_is_normalized(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "a\r\nb\r\nc\r\n")
    engine.apply_edits(sandbox.validate(str(p)), [Edit("a\r\nb", "x")])
    assert p.read_bytes() == b"x\nc\n"


def test_missing_second_edit_leaves_file_untouched(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "alpha\nbeta\n")
    with pytest.raises(EditNotFound) as exc:
        engine.apply_edits(sandbox.validate(str(p)), [Edit("alpha", "ALPHA"), Edit("gamma", "GAMMA")])
    assert exc.value.old_text == "gamma"
    assert "gamma" in str(exc.value)
    assert p.read_text(encoding="utf-8") == "alpha\nbeta\n"


def test_dry_run_never_writes(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "alpha\nbeta\n")
    result = engine.apply_edits(sandbox.validate(str(p)), [Edit("beta", "BETA")], dry_run=True)
    assert "-beta\n" in result.diff
    assert "+BETA\n" in result.diff
    assert p.read_text(encoding="utf-8") == "alpha\nbeta\n"


def test_dry_run_with_failing_edit_never_writes(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "alpha\n")
    with pytest.raises(EditNotFound):
        engine.apply_edits(sandbox.validate(str(p)), [Edit("nope", "x")], dry_run=True)
    assert p.read_text(encoding="utf-8") == "alpha\n"


def test_diff_labels_both_sides_with_path(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "alpha\n")
    vp = sandbox.validate(str(p))
    result = engine.apply_edits(vp, [Edit("alpha", "omega")])
    assert result.diff.startswith(f"--- {vp}\toriginal\n+++ {vp}\tmodified\n@@ ")
    assert result.fenced == f"```diff\n{result.diff}```\n\n"
    assert p.read_text(encoding="utf-8") == "omega\n"


def test_fence_outgrows_backtick_runs_in_diff():
    assert fence_for("plain") == "```"
    assert fence_for("a ``` b") == "````"
    diff = unified_diff("x\n", "`````\n", "f")
    rendered = render_fenced_diff(diff)
    assert rendered.startswith("``````diff\n")
    assert rendered.endswith("\n``````\n\n")


def test_unchanged_content_still_names_the_file(engine, sandbox: PathSandbox, root: Path):
    p = _file(root, "same\n")
    vp = sandbox.validate(str(p))
    result = engine.apply_edits(vp, [Edit("same", "same")], dry_run=True)
    assert result.diff == f"--- {vp}\toriginal\n+++ {vp}\tmodified\n"
    assert result.fenced == f"```diff\n{result.diff}```\n\n"


def test_nested_lines_are_shifted_from_the_first_line_only():
    content = "def f():\n    if x:\n        return 1\n"
    out = apply_to_text(content, [Edit("if x:\n  return 1", "if x:\n    return 2")])
    assert out == "def f():\n    if x:\n      return 2\n"


def test_missing_final_newline_is_marked():
    diff = unified_diff("a\nb", "a\nc", "f")
    assert "\\ No newline at end of file\n" in diff


@pytest.mark.parametrize("content,edits", [
    ("a\nb\nc\n", [Edit("b", "B")]),
    ("one\ntwo", [Edit("two", "2"), Edit("one", "1")]),
    ("x = 1\ny = 2\nz = 3", [Edit("x = 1\n", "")]),
    ("head\n" + "keep\n" * 10 + "tail", [Edit("head", "HEAD\nextra"), Edit("tail", "TAIL\n")]),
])
def test_diff_reproduces_engine_output(content, edits):
    modified = apply_to_text(content, edits)
    assert apply_unified_diff(content, unified_diff(content, modified, "f")) == modified
