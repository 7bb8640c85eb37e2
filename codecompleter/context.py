"""Completion context - the text window around the caret and its fingerprint.

The editor hands over the document, the caret offset and the file name. A
bounded window before and after the caret is cut out, tagged with the file
name and language, and rendered into a single text blob. That blob is both
the prompt payload and the source of the cache key.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import PurePath

CURSOR_MARKER = "// <CURSOR_POSITION>"

LANGUAGES = {
    "kt": "kotlin",
    "java": "java",
    "js": "javascript/typescript",
    "ts": "javascript/typescript",
    "py": "python",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "c": "c",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "rb": "ruby",
    "swift": "swift",
    "cs": "csharp",
}


@dataclass(frozen=True)
class CompletionContext:
    """Immutable snapshot of the code around the caret."""

    before: str
    after: str
    file_name: str = ""
    language: str = "unknown"

    @property
    def text(self) -> str:
        return "\n".join(
            [
                f"// File: {self.file_name}",
                f"// Language: {self.language}",
                "// Context before cursor:",
                self.before,
                CURSOR_MARKER,
                "// Context after cursor:",
                self.after,
            ]
        )


def detect_language(file_name: str) -> str:
    """Map a file name to a language tag by its extension."""
    suffix = PurePath(file_name).suffix.lstrip(".").lower()
    return LANGUAGES.get(suffix, "unknown")


def build_context(
    document: str,
    caret_offset: int,
    file_name: str = "",
    before_chars: int = 500,
    after_chars: int = 100,
) -> CompletionContext:
    """Cut the context windows around ``caret_offset`` out of ``document``.

    Out-of-range offsets are clamped to the document bounds.
    """
    caret = min(max(caret_offset, 0), len(document))
    start = max(0, caret - before_chars)
    end = min(len(document), caret + after_chars)
    return CompletionContext(
        before=document[start:caret],
        after=document[caret:end],
        file_name=file_name,
        language=detect_language(file_name),
    )


def fingerprint(context: CompletionContext | str) -> str:
    """Return a stable cache key for a context.

    Textually identical contexts always give the same key. No cryptographic
    strength is needed, only a low collision rate.
    """
    text = context.text if isinstance(context, CompletionContext) else context
    return hashlib.blake2b(text.encode("utf-8", "surrogatepass"), digest_size=16).hexdigest()
