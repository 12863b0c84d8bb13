# CSS selector to XPath compiler for xquery
# Supports a subset of CSS selectors, translated for lxml's XPath 1.0 engine

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from .errors import generate_error_message

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# Every root-scoped query starts from the top-level nodes of its document
ROOT_ANCHOR: str = "/*"
DESCENDANT_AXIS: str = "/descendant::*"
CHILD_AXIS: str = "/child::*"
SELF_AXIS: str = "self::*"

MAX_NESTING_DEPTH: int = 16

_WHITESPACE: str = " \t\n\r\f"

_NTH_PATTERN = re.compile(r"^(?:(?P<a>[+-]?\d*)n(?P<b>[+-]\d+)?|(?P<b_only>[+-]?\d+))$")


class SelectorError(ValueError):
    """Raised when a CSS selector is invalid."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(generate_error_message(code, detail))


class PseudoSelector:
    """A pseudo-class such as :first-child or :nth-child(2n+1)."""

    __slots__ = ("argument", "name")

    name: str
    argument: str | None

    def __init__(self, name: str, argument: str | None = None) -> None:
        self.name = name
        self.argument = argument  # Raw text between the parentheses

    def __repr__(self) -> str:
        if self.argument is None:
            return f"PseudoSelector({self.name!r})"
        return f"PseudoSelector({self.name!r}, argument={self.argument!r})"


class AttributeSelector:
    """An attribute test: [attr], [attr=value], [attr~=value], ..."""

    __slots__ = ("name", "operator", "value")

    name: str
    operator: str | None
    value: str | None

    def __init__(self, name: str, operator: str | None = None, value: str | None = None) -> None:
        self.name = name
        self.operator = operator
        self.value = value

    def __repr__(self) -> str:
        if self.operator is None:
            return f"AttributeSelector({self.name!r})"
        return f"AttributeSelector({self.name!r}, op={self.operator!r}, value={self.value!r})"


class Rule:
    """One compiled selector segment (e.g. the ``ul.menu`` in ``nav > ul.menu``)."""

    __slots__ = ("attributes", "classes", "direct_child", "id", "pseudo_selectors", "tag_name")

    tag_name: str | None
    id: str | None
    classes: list[str]
    attributes: list[AttributeSelector]
    pseudo_selectors: list[PseudoSelector]
    direct_child: bool

    def __init__(self, direct_child: bool = False) -> None:
        self.tag_name = None
        self.id = None
        self.classes = []
        self.attributes = []
        self.pseudo_selectors = []
        self.direct_child = direct_child

    def is_empty(self) -> bool:
        return (
            self.tag_name is None
            and self.id is None
            and not self.classes
            and not self.attributes
            and not self.pseudo_selectors
        )

    def __repr__(self) -> str:
        parts = ["Rule("]
        fields: list[str] = []
        if self.tag_name:
            fields.append(f"tag={self.tag_name!r}")
        if self.id:
            fields.append(f"id={self.id!r}")
        if self.classes:
            fields.append(f"classes={self.classes!r}")
        if self.attributes:
            fields.append(f"attributes={self.attributes!r}")
        if self.pseudo_selectors:
            fields.append(f"pseudo={self.pseudo_selectors!r}")
        if self.direct_child:
            fields.append("direct_child=True")
        parts.append(", ".join(fields))
        parts.append(")")
        return "".join(parts)


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    # Both quote kinds present: split on double quotes and glue with concat()
    pieces: list[str] = []
    for i, chunk in enumerate(value.split('"')):
        if i:
            pieces.append("'\"'")
        if chunk:
            pieces.append(f'"{chunk}"')
    return f"concat({', '.join(pieces)})"


class SelectorCompiler:
    """Scans a CSS selector into Rules in a single left-to-right pass."""

    __slots__ = ("depth", "length", "pos", "selector")

    selector: str
    pos: int
    length: int
    depth: int

    def __init__(self, selector: str, depth: int = 0) -> None:
        if depth > MAX_NESTING_DEPTH:
            raise SelectorError("nesting-too-deep", str(MAX_NESTING_DEPTH))
        self.selector = selector.strip()
        self.pos = 0
        self.length = len(self.selector)
        self.depth = depth

    def _peek(self, offset: int = 0) -> str:
        pos = self.pos + offset
        if pos < self.length:
            return self.selector[pos]
        return ""

    def _skip_whitespace(self) -> None:
        while self.pos < self.length and self.selector[self.pos] in _WHITESPACE:
            self.pos += 1

    def _read_while(self, accept: Callable[[str], bool]) -> str:
        start = self.pos
        while self.pos < self.length and accept(self.selector[self.pos]):
            self.pos += 1
        return self.selector[start : self.pos]

    def _read_identifier(self) -> str:
        # [A-Za-z0-9_-]+ for ids, classes and attribute names
        return self._read_while(lambda ch: (ch.isascii() and ch.isalnum()) or ch in "_-")

    def _read_tag_name(self) -> str:
        start = self.pos
        self.pos += 1
        self._read_while(lambda ch: (ch.isascii() and ch.isalnum()) or ch == "-")
        return self.selector[start : self.pos].lower()  # Tags are case-insensitive

    def _read_string(self, quote: str) -> str:
        # Skip opening quote
        self.pos += 1
        start = self.pos
        parts: list[str] = []

        while self.pos < self.length:
            ch = self.selector[self.pos]
            if ch == quote:
                if self.pos > start:
                    parts.append(self.selector[start : self.pos])
                self.pos += 1
                return "".join(parts)
            if ch == "\\":
                if self.pos > start:
                    parts.append(self.selector[start : self.pos])
                self.pos += 1
                if self.pos < self.length:
                    parts.append(self.selector[self.pos])
                    self.pos += 1
                start = self.pos
            else:
                self.pos += 1

        raise SelectorError("unterminated-string", self.selector)

    def _read_balanced_argument(self) -> str:
        # Called with pos on the opening parenthesis
        self.pos += 1
        depth = 1
        start = self.pos
        while self.pos < self.length:
            ch = self.selector[self.pos]
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    argument = self.selector[start : self.pos].strip()
                    self.pos += 1
                    return argument
            self.pos += 1
        raise SelectorError("unbalanced-parentheses", self.selector)

    def _read_pseudo(self) -> PseudoSelector:
        self.pos += 1  # the colon
        name = self._read_while(lambda ch: ch.isascii() and (ch.isalpha() or ch == "-")).lower()
        if not name:
            raise SelectorError("expected-pseudo-name", f"at position {self.pos}")
        if self._peek() == "(":
            return PseudoSelector(name, self._read_balanced_argument())
        return PseudoSelector(name)

    def _read_attribute(self) -> AttributeSelector:
        self.pos += 1  # the opening bracket
        self._skip_whitespace()
        name = self._read_identifier()
        if not name:
            raise SelectorError("expected-attribute-name", f"at position {self.pos}")
        self._skip_whitespace()

        ch = self._peek()
        if ch == "]":
            self.pos += 1
            return AttributeSelector(name)

        if ch == "=":
            operator = "="
            self.pos += 1
        elif ch and ch in "~|^$*" and self._peek(1) == "=":
            operator = ch + "="
            self.pos += 2
        else:
            raise SelectorError("unexpected-character", f"{ch!r} at position {self.pos}")

        self._skip_whitespace()
        quote = self._peek()
        if quote in ('"', "'"):
            value = self._read_string(quote)
        else:
            value = self._read_while(lambda c: c not in _WHITESPACE and c != "]")
        self._skip_whitespace()

        if self._peek() != "]":
            raise SelectorError("expected-closing-bracket", f"at position {self.pos}")
        self.pos += 1
        return AttributeSelector(name, operator, value)

    def _skip_combinator(self) -> bool:
        """Skip a separator run; return True if it held a child combinator."""
        direct_child = False
        while self.pos < self.length:
            ch = self.selector[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
            elif ch == ">" and not direct_child:
                direct_child = True
                self.pos += 1
            else:
                break
        return direct_child

    def rules(self) -> list[Rule]:
        rules: list[Rule] = []
        rule = Rule()

        while self.pos < self.length:
            ch = self.selector[self.pos]

            if ch == "#" or ch == ".":
                self.pos += 1
                value = self._read_identifier()
                if not value:
                    raise SelectorError("expected-identifier", f"after {ch} at position {self.pos}")
                if ch == "#":
                    rule.id = value
                else:
                    rule.classes.append(value)
                continue

            if ch.isascii() and ch.isalpha():
                rule.tag_name = self._read_tag_name()
                continue

            if ch == "*":
                rule.tag_name = "*"
                self.pos += 1
                continue

            if ch == ":":
                rule.pseudo_selectors.append(self._read_pseudo())
                continue

            if ch == "[":
                rule.attributes.append(self._read_attribute())
                continue

            if ch in _WHITESPACE or ch == ">":
                if rule.is_empty():
                    raise SelectorError("expected-selector-before-combinator", self.selector)
                rules.append(rule)
                rule = Rule(direct_child=self._skip_combinator())
                continue

            raise SelectorError("unexpected-character", f"{ch!r} at position {self.pos}")

        if rule.is_empty():
            raise SelectorError("expected-selector-after-combinator", self.selector)
        rules.append(rule)
        return rules

    def compile(self) -> str:
        if not self.selector:
            return ""
        rules = self.rules()
        parts = [ROOT_ANCHOR]
        for rule in rules:
            parts.append(CHILD_AXIS if rule.direct_child else DESCENDANT_AXIS)
            filters = self.rule_filters(rule)
            if filters:
                parts.append(f"[{' and '.join(filters)}]")
        return "".join(parts)

    # Translation of a single rule

    def rule_filters(self, rule: Rule) -> list[str]:
        """Return the XPath conditions a node must satisfy to match ``rule``."""
        filters: list[str] = []

        if rule.tag_name and rule.tag_name != "*":
            filters.append(f"local-name() = {xpath_literal(rule.tag_name)}")

        for class_name in rule.classes:
            filters.append(f'contains(concat(" ", normalize-space(@class), " "), {xpath_literal(f" {class_name} ")})')

        if rule.id is not None:
            filters.append(f"@id = {xpath_literal(rule.id)}")

        for attribute in rule.attributes:
            filters.append(_attribute_filter(attribute))

        for pseudo in rule.pseudo_selectors:
            filters.append(self._pseudo_filter(rule, pseudo))

        return filters

    def _pseudo_filter(self, rule: Rule, pseudo: PseudoSelector) -> str:
        name = pseudo.name

        if name == "first-child":
            return "count(preceding-sibling::*) = 0"

        if name == "last-child":
            return "count(following-sibling::*) = 0"

        if name == "only-child":
            return "count(preceding-sibling::*) = 0 and count(following-sibling::*) = 0"

        if name == "nth-child":
            a, b = parse_nth_expression(pseudo.argument)
            return _nth_filter("preceding-sibling::*", a, b)

        if name == "nth-last-child":
            a, b = parse_nth_expression(pseudo.argument)
            return _nth_filter("following-sibling::*", a, b)

        if name == "not":
            if not pseudo.argument:
                raise SelectorError("empty-not", self.selector)
            inner_compiler = SelectorCompiler(pseudo.argument, self.depth + 1)
            inner = inner_compiler.rules()
            if len(inner) != 1:
                raise SelectorError("complex-not", pseudo.argument)
            filters = inner_compiler.rule_filters(inner[0])
            if not filters:
                # :not(*) excludes every element
                return "not(true())"
            return f"not({' and '.join(filters)})"

        if name == "empty":
            return "not(*) and not(string-length())"

        if name == "root":
            return "not(parent::*)"

        if name in ("first-of-type", "last-of-type", "only-of-type", "nth-of-type", "nth-last-of-type"):
            if not rule.tag_name or rule.tag_name == "*":
                raise SelectorError("of-type-without-tag", f":{name}")
            same_type = f"[local-name() = {xpath_literal(rule.tag_name)}]"
            preceding = f"preceding-sibling::*{same_type}"
            following = f"following-sibling::*{same_type}"
            if name == "first-of-type":
                return f"count({preceding}) = 0"
            if name == "last-of-type":
                return f"count({following}) = 0"
            if name == "only-of-type":
                return f"count({preceding}) = 0 and count({following}) = 0"
            a, b = parse_nth_expression(pseudo.argument)
            return _nth_filter(preceding if name == "nth-of-type" else following, a, b)

        raise SelectorError("unsupported-pseudo-class", f":{name}")


def _attribute_filter(attribute: AttributeSelector) -> str:
    name = f"@{attribute.name}"
    op = attribute.operator
    value = attribute.value or ""

    if op is None:
        return name

    if op == "=":
        return f"{name} = {xpath_literal(value)}"

    if op == "~=":
        # Space-separated word match
        if not value or any(ch in _WHITESPACE for ch in value):
            return "false()"
        return f'contains(concat(" ", normalize-space({name}), " "), {xpath_literal(f" {value} ")})'

    if op == "|=":
        return f"({name} = {xpath_literal(value)} or starts-with({name}, {xpath_literal(value + '-')}))"

    if not value:
        # ^=, $= and *= never match an empty value
        return "false()"

    if op == "^=":
        return f"starts-with({name}, {xpath_literal(value)})"

    if op == "$=":
        # XPath 1.0 has starts-with() but no ends-with()
        return f"substring({name}, string-length({name}) - {len(value) - 1}) = {xpath_literal(value)}"

    return f"contains({name}, {xpath_literal(value)})"


def _nth_filter(sibling_axis: str, a: int, b: int) -> str:
    """Condition for "position = a*j + b for some integer j >= 0".

    The position is counted along ``sibling_axis`` (preceding siblings for
    nth-child, following siblings for nth-last-child).
    """
    count = f"count({sibling_axis})"
    position = f"{count} + 1"

    if a == 0:
        return f"{position} = {b}"

    # position - b == count + (1 - b)
    offset = 1 - b
    if offset > 0:
        shifted = f"({count} + {offset})"
    elif offset < 0:
        shifted = f"({count} - {-offset})"
    else:
        shifted = count

    conditions: list[str] = []
    if abs(a) != 1:
        conditions.append(f"{shifted} mod {abs(a)} = 0")
    if a > 0:
        if b > 1:
            conditions.append(f"{position} >= {b}")
    else:
        if b < 1:
            return "false()"
        conditions.append(f"{position} <= {b}")

    if not conditions:
        # n, +n, n+0, n+1 ... match every element
        return "true()"
    return " and ".join(conditions)


def parse_nth_expression(expr: str | None) -> tuple[int, int]:
    """Parse an nth-child expression like '2n+1', 'odd', 'even', '3'."""
    if not expr:
        raise SelectorError("invalid-nth-expression", repr(expr))

    normalized = "".join(expr.split()).lower()

    if normalized == "odd":
        return (2, 1)
    if normalized == "even":
        return (2, 0)

    match = _NTH_PATTERN.match(normalized)
    if match is None:
        raise SelectorError("invalid-nth-expression", repr(expr))

    if match.group("b_only") is not None:
        return (0, int(match.group("b_only")))

    a_part = match.group("a")
    if a_part == "" or a_part == "+":
        a = 1
    elif a_part == "-":
        a = -1
    else:
        a = int(a_part)

    b_part = match.group("b")
    b = int(b_part) if b_part else 0
    return (a, b)


def parse_selector(selector: str) -> list[Rule]:
    """Parse a CSS selector string into its Rules."""
    if not selector or not selector.strip():
        return []
    return SelectorCompiler(selector).rules()


def strip_root_anchor(query: str) -> str:
    """Drop the leading ``/*`` so the query can be rebased onto another path."""
    if query.startswith(ROOT_ANCHOR):
        return query[len(ROOT_ANCHOR) :]
    return query


def strip_deep_traversal(query: str) -> str:
    """Drop the leading ``/*/descendant::*`` so only node-level filters remain."""
    prefix = ROOT_ANCHOR + DESCENDANT_AXIS
    if query.startswith(prefix):
        return query[len(prefix) :]
    return query


def compile_selector(selector: str, scope_to_current_node: bool = False) -> str:
    """
    Compile a CSS selector into an XPath query.

    Args:
        selector: A CSS selector string
        scope_to_current_node: Strip the leading document-root traversal so the
            result can follow an axis step relative to an already selected node

    Returns:
        The XPath query, or an empty string for an empty selector

    Raises:
        SelectorError: If the selector is invalid
    """
    query = SelectorCompiler(selector or "").compile()
    logger.debug("Compiled selector %r to %r", selector, query)
    if scope_to_current_node:
        return strip_deep_traversal(query)
    return query
