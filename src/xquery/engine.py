"""Document construction, query execution and serialization on top of lxml."""

from __future__ import annotations

import codecs
import copy
import logging
import os
import re
from typing import Any

from lxml import etree, html

from .errors import generate_error_message
from .selector import ROOT_ANCHOR

logger = logging.getLogger(__name__)

# A path that selects nothing in any document; composing onto it stays empty
EMPTY_PATH: str = "/.."

# Container element for imported node lists
FRAGMENT_ROOT_TAG: str = "xquery-fragment"

_MARKUP_START = re.compile(r"^<(!?)(\w+)")
_MARKUP_START_BYTES = re.compile(rb"^<(!?)(\w+)")


class DocumentImportError(TypeError):
    """Raised when a document cannot be built from the given input."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(generate_error_message(code, detail))


def _canonical_encoding(encoding: str | None) -> str | None:
    # libxml2 rejects some Python aliases ("latin-1") but knows the codec names
    if not encoding:
        return None
    try:
        return codecs.lookup(encoding).name
    except LookupError as e:
        raise DocumentImportError("unknown-encoding", encoding) from e


def _is_fragment_root(node: Any) -> bool:
    return node.tag == FRAGMENT_ROOT_TAG and node.getparent() is None


def _detached_copy(node: Any) -> Any:
    clone = copy.deepcopy(node)
    clone.tail = None
    return clone


class Document:
    """An lxml tree plus the path selecting its top-level nodes.

    ``doc`` can be any of an HTML string (or bytes), a document location
    (path or URL), an lxml ElementTree (used as is), an lxml element (copied
    into a new tree) or a list of lxml elements (copied under a fragment
    container). ``None`` and blank strings give an empty document.
    """

    __slots__ = ("base_url", "encoding", "path", "tree")

    base_url: str | None
    encoding: str | None
    path: str
    tree: Any

    def __init__(
        self,
        doc: Any,
        *,
        encoding: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self.encoding = _canonical_encoding(encoding)
        self.base_url = base_url
        self.tree = None
        self.path = EMPTY_PATH

        if doc is None:
            return

        if isinstance(doc, (bytes, bytearray, memoryview)):
            data = bytes(doc).strip()
            if not data:
                return
            if _MARKUP_START_BYTES.match(data):
                self._load_markup(data)
            else:
                self._load_location(os.fsdecode(data))
            return

        if isinstance(doc, str):
            text = doc.strip()
            if not text:
                return
            if _MARKUP_START.match(text):
                self._load_markup(text)
            else:
                self._load_location(text)
            return

        if isinstance(doc, os.PathLike):
            self._load_location(os.fspath(doc))
            return

        if isinstance(doc, etree._ElementTree):
            self.tree = doc
            self.path = ROOT_ANCHOR
            logger.debug("Borrowed existing tree")
            return

        if etree.iselement(doc):
            self.tree = etree.ElementTree(_detached_copy(doc))
            self.path = ROOT_ANCHOR
            logger.debug("Imported element <%s>", doc.tag)
            return

        if isinstance(doc, (list, tuple)):
            container = html.Element(FRAGMENT_ROOT_TAG)
            for node in doc:
                if not etree.iselement(node):
                    raise DocumentImportError("invalid-node-list", type(node).__name__)
                container.append(_detached_copy(node))
            self.tree = etree.ElementTree(container)
            self.path = ROOT_ANCHOR + "/*"
            logger.debug("Imported node list of %d element(s)", len(container))
            return

        raise DocumentImportError("unsupported-document-type", type(doc).__name__)

    def _parser(self) -> Any:
        if not self.encoding:
            return None
        try:
            return html.HTMLParser(encoding=self.encoding)
        except LookupError as e:
            raise DocumentImportError("unknown-encoding", self.encoding) from e

    def _load_markup(self, markup: str | bytes) -> None:
        # Encoding overrides only make sense for undecoded input
        parser = self._parser() if isinstance(markup, bytes) else None
        root = html.document_fromstring(markup, parser=parser, base_url=self.base_url)
        self.tree = root.getroottree()
        self.path = ROOT_ANCHOR
        logger.debug("Parsed %d characters of markup", len(markup))

    def _load_location(self, location: str) -> None:
        try:
            self.tree = html.parse(location, parser=self._parser(), base_url=self.base_url)
        except OSError as e:
            raise DocumentImportError("unreadable-location", location) from e
        self.path = ROOT_ANCHOR
        logger.debug("Parsed document from %s", location)

    def query(self, path: str) -> list[Any]:
        """Run an XPath query against the whole document."""
        return run_query(self.tree, path)


def run_query(context: Any, query: str) -> list[Any]:
    """
    Execute an XPath query and return the matching elements in document order.

    Args:
        context: An lxml tree or element; ``None`` yields no matches
        query: An XPath 1.0 expression

    Returns:
        A list of elements (attribute, text and number results are dropped)
    """
    if context is None or not query:
        return []
    if isinstance(context, etree._ElementTree) and context.getroot() is None:
        return []

    result = context.xpath(query)
    if not isinstance(result, list):
        return []
    # The container of an imported node list is never part of a result
    nodes = [item for item in result if etree.iselement(item) and not _is_fragment_root(item)]
    logger.debug("Query %r matched %d node(s)", query, len(nodes))
    return nodes


def serialize_markup(nodes: list[Any] | tuple[Any, ...]) -> str:
    """Return the outer HTML of each node, concatenated."""
    return "".join(html.tostring(node, encoding="unicode", with_tail=False) for node in nodes)


def serialize_text(nodes: list[Any] | tuple[Any, ...]) -> str:
    """Return the text content of each node, concatenated."""
    return "".join(etree.tostring(node, method="text", encoding="unicode", with_tail=False) for node in nodes)


def attributes_of(node: Any) -> dict[str, str]:
    return dict(node.attrib)
