"""The immutable traversal node behind the fluent query API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .context import Cancellation, SiblingCursor
from .engine import EMPTY_PATH, Document, attributes_of, run_query, serialize_markup, serialize_text
from .selector import SELF_AXIS, compile_selector, strip_root_anchor

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)


def _nth(path: str, index: int) -> str:
    # Position over the whole result, not per context node
    return f"({path})[position() = {index + 1}]"


def _sibling_path(anchor_path: str, offset: int) -> str:
    if offset > 0:
        return f"{anchor_path}/following-sibling::*[position() = {offset}]"
    if offset < 0:
        return f"{anchor_path}/preceding-sibling::*[position() = {-offset}]"
    return anchor_path


class XQuery:
    """An immutable set of matched elements and the chain that produced it.

    Every traversal returns a new instance linked to its predecessor, so
    ``end()`` can walk back up the chain and axis queries can be evaluated
    against the node set they were derived from.
    """

    __slots__ = ("_attrs", "cursor", "document", "lineage_root", "nodes", "path", "previous")

    nodes: tuple[Any, ...]
    path: str
    previous: XQuery | None
    lineage_root: XQuery
    document: Any
    cursor: SiblingCursor | None
    _attrs: dict[str, str] | None

    def __init__(
        self,
        nodes: list[Any] | tuple[Any, ...] = (),
        path: str = EMPTY_PATH,
        previous: XQuery | None = None,
        lineage_root: XQuery | None = None,
        document: Any = None,
        cursor: SiblingCursor | None = None,
    ) -> None:
        self.nodes = tuple(nodes)
        self.path = path
        self.previous = previous
        self.lineage_root = lineage_root if lineage_root is not None else self
        self.document = document
        self.cursor = cursor
        self._attrs = None

    @classmethod
    def load(cls, doc: Any, *, encoding: str | None = None, base_url: str | None = None) -> XQuery:
        """
        Build the first node of a chain from a document.

        Args:
            doc: HTML text or bytes, a path or URL, an lxml tree, an lxml
                element or a list of lxml elements
            encoding: Encoding override for bytes and locations
            base_url: Base URL recorded on the parsed document

        Raises:
            DocumentImportError: If ``doc`` is of an unsupported kind or
                cannot be read
        """
        document = Document(doc, encoding=encoding, base_url=base_url)
        return cls(document.query(document.path), path=document.path, document=document.tree)

    def __repr__(self) -> str:
        return f"XQuery({self.path!r}, length={len(self.nodes)})"

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[XQuery]:
        for index in range(len(self.nodes)):
            yield self._project(index)

    def length(self) -> int:
        return len(self.nodes)

    # Chain control

    def end(self) -> XQuery:
        """Return the set of matched elements to its previous state."""
        if self.previous is None:
            return XQuery()
        return self.previous

    def root(self) -> XQuery:
        return self.lineage_root

    def _derive(
        self,
        context: XQuery | None,
        path: str,
        lineage_root: XQuery | None = None,
        cursor: SiblingCursor | None = None,
    ) -> XQuery:
        nodes = run_query(context.document, path) if context is not None else []
        return XQuery(
            nodes,
            path=path,
            previous=self,
            lineage_root=lineage_root if lineage_root is not None else self,
            document=self.document,
            cursor=cursor,
        )

    def _empty(self, lineage_root: XQuery | None = None) -> XQuery:
        return XQuery(
            (),
            previous=self,
            lineage_root=lineage_root if lineage_root is not None else self,
            document=self.document,
        )

    def _project(self, index: int) -> XQuery:
        # Single-node view of an already computed match
        return XQuery(
            (self.nodes[index],),
            path=_nth(self.path, index),
            previous=self,
            lineage_root=self,
            document=self.document,
        )

    # Selecting

    def find(self, selector: str, index: int | None = None) -> XQuery:
        """
        Query the descendants of the matched elements with a CSS selector.

        Args:
            selector: A CSS selector string
            index: Keep only the match at this zero-based position

        Raises:
            SelectorError: If the selector is invalid
        """
        path = self.path + strip_root_anchor(compile_selector(selector))
        if index is not None:
            path = _nth(path, index)
        return self._derive(self, path)

    def eq(self, index: int) -> XQuery:
        """Select the element at ``index``; out of range gives an empty set."""
        return self._derive(self, _nth(self.path, index))

    def is_(self, selector: str) -> bool:
        """Tell whether the first matched element matches ``selector``.

        An empty selector matches nothing.
        """
        if not selector or not selector.strip():
            return False
        first = self.eq(0)
        if not first.nodes:
            return False
        query = SELF_AXIS + compile_selector(selector, scope_to_current_node=True)
        return len(run_query(first.nodes[0], query)) == 1

    # Reading

    def text(self) -> str:
        return serialize_text(self.nodes)

    def html(self) -> str:
        return serialize_markup(self.nodes)

    def attrs(self) -> dict[str, str]:
        """Return the attributes of the first matched element."""
        if self._attrs is None:
            self._attrs = attributes_of(self.nodes[0]) if self.nodes else {}
        return dict(self._attrs)

    def attr(self, name: str) -> str | None:
        self.attrs()
        return self._attrs.get(name) if self._attrs else None

    def has_attribute(self, name: str) -> bool:
        self.attrs()
        return bool(self._attrs) and name in self._attrs

    # Traversing

    def _axis(self, axis: str, selector: str | None) -> str:
        path = f"{self.path}/{axis}::*"
        if selector:
            path += compile_selector(selector, scope_to_current_node=True)
        return path

    def children(self, selector: str | None = None) -> XQuery:
        """Select the element children of the matched elements."""
        return self._derive(self, self._axis("child", selector))

    def parent(self, selector: str | None = None) -> XQuery:
        """Select the parents of the matched elements."""
        return self._derive(self.previous, self._axis("parent", selector))

    def parents(self, selector: str | None = None) -> XQuery:
        """Select all ancestors of the matched elements, optionally filtered."""
        return self._derive(self.previous, self._axis("ancestor", selector))

    def next_all(self, selector: str | None = None) -> XQuery:
        return self._derive(self.previous, self._axis("following-sibling", selector))

    def prev_all(self, selector: str | None = None) -> XQuery:
        return self._derive(self.previous, self._axis("preceding-sibling", selector))

    def next(self, selector: str | None = None) -> XQuery:
        """Select the immediately following sibling, if it matches ``selector``."""
        return self._step_sibling(1, selector)

    def prev(self, selector: str | None = None) -> XQuery:
        """Select the immediately preceding sibling, if it matches ``selector``."""
        return self._step_sibling(-1, selector)

    def _step_sibling(self, delta: int, selector: str | None) -> XQuery:
        if self.cursor is None:
            cursor = SiblingCursor(self, delta)
        else:
            cursor = self.cursor.step(delta)
        anchor = cursor.anchor

        if not self.nodes:
            # Walking off either end never comes back
            return self._empty(lineage_root=anchor)

        result = self._derive(
            anchor.previous,
            _sibling_path(anchor.path, cursor.offset),
            lineage_root=anchor,
            cursor=cursor,
        )
        if selector and not result.is_(selector):
            return self._empty(lineage_root=anchor)
        return result

    # Iterating

    def each(self, callback: Callable[[XQuery, Cancellation], Any]) -> XQuery:
        """
        Call ``callback(node, cancellation)`` for each matched element in order.

        Iteration stops once ``cancellation.cancel()`` was called or the
        callback returns ``False``.
        """
        cancellation = Cancellation()
        for index in range(len(self.nodes)):
            if callback(self._project(index), cancellation) is False or cancellation.cancelled:
                logger.debug("each() stopped after %d of %d node(s)", index + 1, len(self.nodes))
                break
        return self


def load(doc: Any, *, encoding: str | None = None, base_url: str | None = None) -> XQuery:
    """Shortcut for :meth:`XQuery.load`."""
    return XQuery.load(doc, encoding=encoding, base_url=base_url)
