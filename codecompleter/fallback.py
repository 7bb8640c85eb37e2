"""Fallback suggestions - keyword heuristics used when the remote model is unavailable.

The rules are evaluated in the order they appear in ``FALLBACK_RULES``; the
first rule with a keyword present in the lower-cased context wins. When no
rule matches, ``DEFAULT_SUGGESTIONS`` is returned. Every suggestion set holds
exactly three entries.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FallbackRule:
    name: str
    keywords: tuple[str, ...]
    suggestions: tuple[str, str, str]

    def matches(self, lowered: str) -> bool:
        return any(keyword in lowered for keyword in self.keywords)


FALLBACK_RULES: tuple[FallbackRule, ...] = (
    FallbackRule(
        "function",
        ("function", "fun ", "def "),
        (
            "    return result",
            '    console.log("Debug:", value)',
            "    // TODO: Implement functionality",
        ),
    ),
    FallbackRule(
        "class",
        ("class ",),
        (
            "    constructor() {",
            '    private val property = ""',
            "    public fun method() {",
        ),
    ),
    FallbackRule(
        "conditional",
        ("if ", "if("),
        (
            "} else {",
            "    return false",
            '    throw new Error("Invalid condition")',
        ),
    ),
    FallbackRule(
        "loop",
        ("for ", "while "),
        (
            "    console.log(item)",
            "    break",
            "    continue",
        ),
    ),
    FallbackRule(
        "import",
        ("import ", "from "),
        (
            "import { Component } from 'react'",
            "import * as utils from './utils'",
            "from typing import List, Dict",
        ),
    ),
    FallbackRule(
        "declaration",
        ("const ", "let ", "var "),
        (
            " = useState()",
            " = []",
            " = null",
        ),
    ),
    FallbackRule(
        "console",
        ("console.",),
        (
            'log("Value:", variable)',
            'error("Error occurred:", error)',
            'warn("Warning:", message)',
        ),
    ),
    FallbackRule(
        "print",
        ("print",),
        (
            'println("Debug: $value")',
            'print(f"Value: {value}")',
            'printf("Result: %s", result)',
        ),
    ),
    FallbackRule(
        "error_handling",
        ("try ", "catch"),
        (
            "} catch (error) {",
            "    console.error(error)",
            "} finally {",
        ),
    ),
    FallbackRule(
        "collection",
        ("array", "list"),
        (
            ".map(item => item.id)",
            ".filter(item => item.active)",
            ".forEach(item => console.log(item))",
        ),
    ),
)

DEFAULT_RULE_NAME = "default"
DEFAULT_SUGGESTIONS: tuple[str, str, str] = (
    "// Auto-generated suggestion",
    "const result = ",
    "return ",
)


class FallbackGenerator:
    """Pure, deterministic generator of heuristic suggestions."""

    def __init__(self, rules: tuple[FallbackRule, ...] = FALLBACK_RULES):
        self.rules = rules

    def match(self, context: str) -> str:
        """Return the name of the rule that applies to ``context``."""
        lowered = context.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule.name
        return DEFAULT_RULE_NAME

    def generate(self, context: str) -> list[str]:
        lowered = context.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return list(rule.suggestions)
        return list(DEFAULT_SUGGESTIONS)

    __call__ = generate


def fallback_suggestions(context: str) -> list[str]:
    """Shortcut for the default rule set."""
    return FallbackGenerator().generate(context)
