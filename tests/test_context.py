"""Tests for completion context building and fingerprinting."""

from codecompleter.context import (
    CURSOR_MARKER,
    CompletionContext,
    build_context,
    detect_language,
    fingerprint,
)


class TestBuildContext:
    def test_windows_around_caret(self):
        document = "a" * 600 + "b" * 200
        context = build_context(document, 600, "main.py")
        assert context.before == "a" * 500
        assert context.after == "b" * 100
        assert context.language == "python"

    def test_caret_near_start(self):
        context = build_context("def foo():\n    pass", 4, "x.py")
        assert context.before == "def "
        assert context.after == "foo():\n    pass"

    def test_out_of_range_offset_is_clamped(self):
        context = build_context("abc", 99, "x.go")
        assert context.before == "abc"
        assert context.after == ""
        context = build_context("abc", -5, "x.go")
        assert context.before == ""
        assert context.after == "abc"

    def test_text_layout(self):
        context = CompletionContext(before="x = ", after="\ny = 2", file_name="a.kt", language="kotlin")
        lines = context.text.split("\n")
        assert lines[0] == "// File: a.kt"
        assert lines[1] == "// Language: kotlin"
        assert CURSOR_MARKER in lines
        assert lines.index(CURSOR_MARKER) > lines.index("x = ")


class TestDetectLanguage:
    def test_known_extensions(self):
        assert detect_language("Main.kt") == "kotlin"
        assert detect_language("app.TS") == "javascript/typescript"
        assert detect_language("lib.rs") == "rust"
        assert detect_language("src/engine.cxx") == "cpp"

    def test_unknown_extension(self):
        assert detect_language("README") == "unknown"
        assert detect_language("notes.txt") == "unknown"


class TestFingerprint:
    def test_identical_text_same_fingerprint(self):
        a = CompletionContext(before="foo(", after=")", file_name="a.js", language="javascript/typescript")
        b = CompletionContext(before="foo(", after=")", file_name="a.js", language="javascript/typescript")
        assert fingerprint(a) == fingerprint(b)
        assert fingerprint(a) == fingerprint(a.text)

    def test_different_text_different_fingerprint(self):
        assert fingerprint("foo(") != fingerprint("foo)")

    def test_empty_and_large_inputs(self):
        assert fingerprint("")
        assert len(fingerprint("x" * 1_000_000)) == 32
