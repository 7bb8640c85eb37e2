"""Command-line driver.

Stands in for the editor: reads a document, cuts the context around a caret
offset, prints the immediate suggestions, then waits for the background
fetch and prints the update.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading

from .config import Config, load_config
from .context import build_context
from .orchestrator import CompletionOrchestrator, CompletionResult
from .response_parser import Suggestion

logger = logging.getLogger(__name__)


def _print_suggestions(header: str, suggestions: list[Suggestion]) -> None:
    print(header)
    for s in suggestions:
        print(f"  [{s.index}] {s.label}")


class CompletionSession:
    """Issues requests against an orchestrator and prints what comes back."""

    def __init__(self, config: Config, orchestrator: CompletionOrchestrator | None = None):
        self.config = config
        self.orchestrator = orchestrator or CompletionOrchestrator(config)
        self._print_lock = threading.Lock()

    def complete(
        self, document: str, offset: int, file_name: str, timeout: float | None = None
    ) -> list[Suggestion]:
        context = build_context(
            document,
            offset,
            file_name,
            before_chars=self.config.context_before_chars,
            after_chars=self.config.context_after_chars,
        )
        result = self.orchestrator.request(context, on_update=self._on_update)
        with self._print_lock:
            _print_suggestions(f"Suggestions ({result.source}):", result.suggestions)
        return self._wait(result, timeout)

    def _on_update(self, suggestions: list[Suggestion]) -> None:
        with self._print_lock:
            _print_suggestions("Updated suggestions:", suggestions)

    @staticmethod
    def _wait(result: CompletionResult, timeout: float | None) -> list[Suggestion]:
        if result.future is None:
            return result.suggestions
        return result.future.result(timeout=timeout)

    def close(self) -> None:
        self.orchestrator.close()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="codecompleter",
        description="Fetch code completion suggestions for a caret position.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="Document to complete (reads stdin when omitted)",
    )
    parser.add_argument(
        "--offset",
        type=int,
        default=None,
        help="Caret offset in characters (default: end of document)",
    )
    parser.add_argument(
        "--file-name",
        default=None,
        help="File name used for language detection (default: FILE)",
    )
    parser.add_argument(
        "--repeat",
        type=int,
        default=1,
        help="Issue the same request this many times",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the code completer."""
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # Quiet down noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if args.file:
        with open(args.file, encoding="utf-8") as f:
            document = f.read()
    else:
        document = sys.stdin.read()

    config = load_config()
    if not config.has_api_key:
        logger.warning("GEMINI_API_KEY is not set; only fallback suggestions will be served")

    offset = len(document) if args.offset is None else args.offset
    file_name = args.file_name or args.file or "untitled"

    session = CompletionSession(config)
    try:
        for _ in range(max(1, args.repeat)):
            session.complete(
                document, offset, file_name, timeout=config.request_timeout + 5
            )
    except KeyboardInterrupt:
        return 130
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
