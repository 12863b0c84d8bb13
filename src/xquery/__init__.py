from .context import Cancellation, SiblingCursor
from .engine import Document, DocumentImportError
from .node import XQuery, load
from .selector import SelectorError, compile_selector, parse_selector

__all__ = [
    "Cancellation",
    "Document",
    "DocumentImportError",
    "SelectorError",
    "SiblingCursor",
    "XQuery",
    "compile_selector",
    "load",
    "parse_selector",
]
