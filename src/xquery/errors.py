"""Centralized error message definitions for selector and import errors.

This module provides human-readable messages for the error codes raised by
the selector compiler and by document construction.
"""

from __future__ import annotations


def generate_error_message(code: str, detail: str | None = None) -> str:
    """Generate human-readable error message from error code.

    Args:
        code: The error code string (kebab-case format)
        detail: Optional context (offending selector, position, type name)

    Returns:
        Human-readable error message string
    """
    messages = {
        # ================================================================
        # SELECTOR ERRORS
        # ================================================================
        "expected-identifier": "Expected identifier",
        "expected-pseudo-name": "Expected pseudo-class name after :",
        "expected-attribute-name": "Expected attribute name",
        "expected-closing-bracket": "Expected ]",
        "expected-selector-before-combinator": "Expected selector before combinator in",
        "expected-selector-after-combinator": "Expected selector after combinator in",
        "unexpected-character": "Unexpected character",
        "unterminated-string": "Unterminated string in selector",
        "unbalanced-parentheses": "Unbalanced parentheses in selector",
        "invalid-nth-expression": "Invalid An+B expression",
        "unsupported-pseudo-class": "Unsupported pseudo-class",
        "of-type-without-tag": "Pseudo-class requires a tag name",
        "empty-not": "Empty :not() in selector",
        "complex-not": ":not() accepts a single compound selector, got",
        "nesting-too-deep": "Selector nesting exceeds the maximum depth of",
        # ================================================================
        # IMPORT ERRORS
        # ================================================================
        "unsupported-document-type": "Unsupported document type submitted for import",
        "unreadable-location": "Could not read document from",
        "invalid-node-list": "Node lists may only contain elements, got",
        "unknown-encoding": "Unknown document encoding",
    }

    message = messages.get(code, code)
    if detail:
        return f"{message}: {detail}"
    return message
